from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from notes_api.schemas import Pagination


def _now() -> datetime:
    return datetime.now(timezone.utc)


def ok(data: Any = None, message: str = "Success") -> Dict[str, Any]:
    """Success envelope; routes return it and let their response_model serialize it."""
    return {
        "success": True,
        "message": message,
        "data": data,
        "errors": None,
        "timestamp": _now(),
    }


def paginated(data: Any, pagination: Pagination, message: str = "Success") -> Dict[str, Any]:
    body = ok(data, message)
    body["pagination"] = pagination
    return body


def error_response(
    status_code: int,
    message: str,
    errors: Any = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Failure envelope; never carries stack traces or echoed input."""
    body = {
        "success": False,
        "message": message,
        "data": None,
        "errors": errors,
        "timestamp": _now(),
    }
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body), headers=headers)
