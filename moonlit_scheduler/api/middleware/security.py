from typing import Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware

# Responses carry patient details, so nothing may be framed or cached.
DEFAULT_SECURITY_HEADERS: Dict[str, str] = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "no-referrer",
    "Cache-Control": "no-store",
}


class SecurityHeaders(BaseHTTPMiddleware):
    def __init__(self, app, headers: Optional[Dict[str, str]] = None):
        super().__init__(app)
        self.headers = dict(DEFAULT_SECURITY_HEADERS)
        if headers:
            self.headers.update(headers)

    async def dispatch(self, request, call_next):
        resp = await call_next(request)
        for name, value in self.headers.items():
            resp.headers.setdefault(name, value)
        return resp
