from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from notes_api.auth import (
    get_current_user,
    get_password_hash,
    issue_token,
    verify_password,
)
from notes_api.config import Settings
from notes_api.database import get_db
from notes_api.dependencies import get_app_settings
from notes_api.errors import Conflict, InvalidCredentials, ValidationFailure
from notes_api.logging_config import get_logger
from notes_api.models import User
from notes_api.responses import ok
from notes_api.schemas import (
    AuthData,
    ChangePasswordRequest,
    Envelope,
    LoginRequest,
    ProfileUpdateRequest,
    UserCreateRequest,
    UserResponse,
)

logger = get_logger(__name__)

router = APIRouter()


def _find_by_email(db: Session, email: str):
    return db.scalars(select(User).where(User.email == email)).first()


# PUBLIC_INTERFACE
@router.post(
    "/register",
    response_model=Envelope[AuthData],
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
def register_user(
    payload: UserCreateRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """
    Register a new user and return an access token.

    Raises:
        409 if email already in use.
    """
    email = payload.email.lower()
    if _find_by_email(db, email):
        raise Conflict("Email already registered")
    user = User(name=payload.name, email=email, password_hash=get_password_hash(payload.password))
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s", user.id)
    data = AuthData(user=UserResponse.model_validate(user), token=issue_token(user, settings))
    return ok(data, "User registered successfully")


# PUBLIC_INTERFACE
@router.post("/login", response_model=Envelope[AuthData], summary="Login and obtain JWT access token")
def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """
    Exchange email and password for an access token.

    Raises:
        401 on invalid credentials; the same response for unknown email and wrong password.
    """
    user = _find_by_email(db, payload.email.lower())
    if not user or not verify_password(payload.password, user.password_hash):
        raise InvalidCredentials()
    data = AuthData(user=UserResponse.model_validate(user), token=issue_token(user, settings))
    return ok(data, "Login successful")


# PUBLIC_INTERFACE
@router.get("/profile", response_model=Envelope[UserResponse], summary="Get the current user's profile")
def get_profile(current_user: User = Depends(get_current_user)):
    return ok(UserResponse.model_validate(current_user), "User profile retrieved successfully")


# PUBLIC_INTERFACE
@router.put("/profile", response_model=Envelope[UserResponse], summary="Update name and/or email")
def update_profile(
    payload: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Partially update the profile.

    Raises:
        400 if no field is given; 409 if the email belongs to another user.
    """
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise ValidationFailure("No fields provided for update")
    if "email" in changes:
        email = changes["email"].lower()
        existing = _find_by_email(db, email)
        if existing and existing.id != current_user.id:
            raise Conflict("Email already taken by another user")
        current_user.email = email
    if "name" in changes:
        current_user.name = changes["name"]
    db.add(current_user)
    db.commit()
    db.refresh(current_user)
    return ok(UserResponse.model_validate(current_user), "User profile updated successfully")


# PUBLIC_INTERFACE
@router.put("/change-password", response_model=Envelope[None], summary="Change password")
def change_password(
    payload: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Replace the password after checking the current one.

    Raises:
        400 if the current password does not match.
    """
    if not verify_password(payload.current_password, current_user.password_hash):
        raise ValidationFailure("Invalid current password")
    current_user.password_hash = get_password_hash(payload.new_password)
    db.add(current_user)
    db.commit()
    logger.info("Password changed for user %s", current_user.id)
    return ok(None, "Password changed successfully")


# PUBLIC_INTERFACE
@router.post("/logout", response_model=Envelope[None], summary="Logout")
def logout(current_user: User = Depends(get_current_user)):
    """
    Tokens are stateless; the client discards its token. Only acknowledges.
    """
    logger.info("User %s logged out", current_user.id)
    return ok(None, "Logged out successfully")
