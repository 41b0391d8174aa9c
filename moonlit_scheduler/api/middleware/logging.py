import time

from starlette.middleware.base import BaseHTTPMiddleware

from ...utils.logging import get_logger

logger = get_logger("moonlit.http")


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        started = time.perf_counter()
        resp = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "%s %s -> %s (%.1f ms)",
            request.method,
            request.url.path,
            resp.status_code,
            elapsed_ms,
        )
        return resp
