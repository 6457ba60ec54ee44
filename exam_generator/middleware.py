import logging
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger(__name__)

V1_PREFIX = "/v1"
SUCCESSOR = "/v2"


def http_date(iso_value: Optional[str]) -> Optional[str]:
    """``2026-12-31T23:59:59Z`` -> ``Thu, 31 Dec 2026 23:59:59 GMT``."""
    if not iso_value:
        return None
    moment = datetime.fromisoformat(iso_value.replace("Z", "+00:00"))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return format_datetime(moment.astimezone(timezone.utc), usegmt=True)


class DeprecationHeadersMiddleware(BaseHTTPMiddleware):
    """Flags ``/v1`` responses as deprecated in favour of ``/v2``."""

    def __init__(self, app, enabled: bool = False, sunset: Optional[str] = None):
        super().__init__(app)
        self.enabled = enabled
        self.sunset = http_date(sunset)

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        path = request.url.path
        if self.enabled and (path == V1_PREFIX or path.startswith(V1_PREFIX + "/")):
            response.headers["Deprecation"] = "true"
            if self.sunset:
                response.headers["Sunset"] = self.sunset
            response.headers["Link"] = f'<{SUCCESSOR}>; rel="successor-version"'
            logger.debug("Served deprecated route %s %s", request.method, path)
        return response
