"""The JSON envelope every endpoint answers with."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse

from .errors import AppError


def envelope(
    data: Any = None,
    message: Optional[str] = None,
    total: Optional[int] = None,
    version: Optional[str] = None,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    if total is not None:
        body["total"] = total
    if version is not None:
        body["version"] = version
    return body


def listing(items, present, version: Optional[str] = None) -> Dict[str, Any]:
    data = [present(item) for item in items]
    return envelope(data, total=len(data), version=version)


def error_body(
    error: AppError,
    path: str,
    error_fields: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """``error_fields`` are merged into the ``error`` object (e.g. a route hint)."""
    return {
        "success": False,
        "error": {**error.to_dict(), **(error_fields or {})},
        "timestamp": datetime.now(tz=timezone.utc).isoformat(),
        "path": path,
    }


def error_response(
    error: AppError,
    path: str,
    headers=None,
    error_fields: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content=error_body(error, path, error_fields),
        headers=headers,
    )
