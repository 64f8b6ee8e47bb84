from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from notes_api.config import Settings
from notes_api.database import get_db
from notes_api.dependencies import get_app_settings
from notes_api.errors import Unauthorized
from notes_api.logging_config import get_logger
from notes_api.models import User

logger = get_logger(__name__)

# Setup password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Missing tokens are reported through the envelope, not FastAPI's default 403
bearer_scheme = HTTPBearer(auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a plaintext password."""
    return pwd_context.hash(password)


def create_access_token(
    data: dict,
    secret_key: str,
    algorithm: str = "HS256",
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a signed JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(tz=timezone.utc) + (expires_delta or timedelta(minutes=60))
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, secret_key, algorithm=algorithm)
    return encoded_jwt


def issue_token(user: User, settings: Settings) -> str:
    """Token whose only claim besides expiry is the user id."""
    return create_access_token(
        {"sub": str(user.id)},
        settings.secret_key,
        algorithm=settings.algorithm,
        expires_delta=timedelta(minutes=settings.access_token_expire_minutes),
    )


def decode_user_id(token: str, settings: Settings) -> int:
    """
    Return the user id encoded in a token.

    Raises:
        Unauthorized if the token is malformed, badly signed or expired.
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        subject: str = payload.get("sub")
        if subject is None:
            raise Unauthorized()
        return int(subject)
    except (JWTError, ValueError) as err:
        raise Unauthorized("Invalid or expired token") from err


# PUBLIC_INTERFACE
def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> User:
    """
    Dependency that returns the currently authenticated user based on JWT bearer token.

    Raises:
        Unauthorized if the token is missing or invalid, or its user no longer exists.
    """
    if credentials is None or not credentials.credentials:
        raise Unauthorized("No token provided")
    user_id = decode_user_id(credentials.credentials, settings)
    user = db.get(User, user_id)
    if user is None:
        logger.warning("Token subject %s no longer exists", user_id)
        raise Unauthorized("User not found for token")
    return user
