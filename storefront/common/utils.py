from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse
from uuid6 import uuid7

from storefront.common.constants import request_id_ctx


def now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # some drivers (sqlite) hand back naive datetimes for tz-aware columns
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def new_id() -> str:
    return str(uuid7())


def build_success(data: Any, status_code: int = 200, request_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "success": True,
        "status": status_code,
        "data": data,
        "request_id": request_id if request_id is not None else request_id_ctx.get(),
    }


def build_message(message: str, status_code: int = 200, success: bool = True,
                  request_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "message": message,
        "success": success,
        "status": status_code,
        "request_id": request_id if request_id is not None else request_id_ctx.get(),
    }


def build_error(message: str, status_code: int, code: str = "UNKNOWN_ERROR",
                details: Optional[Any] = None, request_id: Optional[str] = None) -> Dict[str, Any]:
    body = build_message(message, status_code, success=False, request_id=request_id)
    body["code"] = code
    if details is not None:
        body["errors"] = details
    return body


def json_ok(content: Dict[str, Any], status_code: int = 200, headers=None) -> JSONResponse:
    return JSONResponse(content, status_code=status_code, headers=headers)


def json_error(content: Dict[str, Any], status_code: int = 500, headers=None) -> JSONResponse:
    return JSONResponse(content, status_code=status_code, headers=headers)


def success_response(data: Any, status_code: int = 200, headers: Optional[Dict[str, Any]] = None) -> JSONResponse:
    return json_ok(build_success(data, status_code), status_code=status_code, headers=headers)


def message_response(message: str, status_code: int = 200) -> JSONResponse:
    return json_ok(build_message(message, status_code), status_code=status_code)
