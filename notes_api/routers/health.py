import time

from fastapi import APIRouter, Depends

from notes_api.config import Settings
from notes_api.dependencies import get_app_settings
from notes_api.responses import ok

router = APIRouter()

_STARTED = time.monotonic()


# PUBLIC_INTERFACE
@router.get("/health", summary="Health Check")
def health_check(settings: Settings = Depends(get_app_settings)):
    """
    Liveness probe; needs no token and does not touch the database.

    Returns:
        Envelope indicating service status.
    """
    data = {
        "status": "OK",
        "environment": settings.env,
        "uptime": round(time.monotonic() - _STARTED, 3),
    }
    return ok(data, "Healthy")
