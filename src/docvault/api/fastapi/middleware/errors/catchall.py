import logging

from starlette.middleware.base import BaseHTTPMiddleware

from .handlers import problem_response

logger = logging.getLogger(__name__)


class CatchAllExceptionMiddleware(BaseHTTPMiddleware):
    """Last line of defence: any unhandled exception becomes a logged 500 problem.

    The exception text is logged, never returned to the caller.
    """

    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            logger.error(
                "Unhandled %s on %s", type(exc).__name__, request.url.path,
                exc_info=True,
                extra={"http_method": request.method, "path": request.url.path, "status_code": 500},
            )
            return problem_response(
                status=500,
                title="Internal Server Error",
                detail="Unexpected error.",
                code="INTERNAL_ERROR",
                instance=request.url.path,
            )
