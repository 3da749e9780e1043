"""Authentication middleware for the HTTP server."""

from typing import Any, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from bucket_repo.auth.resolver import PrincipalResolver, is_secure_scheme
from bucket_repo.observability import RequestContext, Timer, get_logger

logger = get_logger(__name__)


class BasicAuthMiddleware(BaseHTTPMiddleware):
    """Resolves the caller from a Basic Authorization header.

    Sets request.state.security_context to a SecurityContext, or to None
    when no principal could be established. It never rejects a request
    itself; routes decide whether the context grants access.
    """

    def __init__(self, app: Any, resolver: PrincipalResolver) -> None:
        """Initialize authentication middleware.

        Args:
            app: The ASGI application
            resolver: Maps Authorization values to security contexts
        """
        super().__init__(app)
        self.resolver = resolver

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Any],
    ) -> Response:
        """Resolve the principal, then hand over to the route.

        Args:
            request: The incoming request
            call_next: Next middleware/handler in chain

        Returns:
            Response from handler
        """
        security_context = await self.resolver.resolve(
            request.headers.get("Authorization"),
            secure=is_secure_scheme(request.url.scheme),
        )
        request.state.security_context = security_context

        principal = security_context.principal if security_context else None
        async with RequestContext(
            principal=principal.name if principal else None,
            method=request.method,
            path=request.url.path,
        ):
            with Timer() as timer:
                response = await call_next(request)
            logger.info(
                "Request handled",
                context={"status": response.status_code},
                duration_ms=timer.duration_ms,
            )
            return response
