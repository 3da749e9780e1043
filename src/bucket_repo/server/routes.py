"""HTTP route handlers for the artifact repository.

Paths ending in "/" (and the root) are directory listings; any other path
names a file. Access is granted per role from the security context set
by BasicAuthMiddleware.
"""

import functools
import re
from collections.abc import Awaitable, Callable
from urllib.parse import quote

from starlette.requests import Request
from starlette.responses import JSONResponse, Response, StreamingResponse
from starlette.routing import Route

from bucket_repo.auth.resolver import SecurityContext
from bucket_repo.config import ROLE_LIST, ROLE_READ, ROLE_WRITE, Config
from bucket_repo.repository import (
    NOT_MODIFIED,
    ArtifactRepository,
    evaluate_preconditions,
    format_http_date,
)
from bucket_repo.server.rendering import directory_page
from bucket_repo.utils.validation import validate_key

Handler = Callable[[Request], Awaitable[Response]]

_UNSAFE_FILENAME_CHARS = re.compile(r"[^\x20-\x7e]|[\"\\]")


def get_security_context(request: Request) -> SecurityContext | None:
    """Security context resolved for this request, if any."""
    return getattr(request.state, "security_context", None)


def require_roles(*roles: str, realm: str = "repository") -> Callable[[Handler], Handler]:
    """Decorator to require one of the given roles for a route handler.

    Checks authentication first (401 with a Basic challenge), then
    authorization (403).
    """

    def decorator(handler: Handler) -> Handler:
        @functools.wraps(handler)
        async def wrapper(request: Request) -> Response:
            context = get_security_context(request)
            if context is None:
                return JSONResponse(
                    {"error": "Authentication required"},
                    status_code=401,
                    headers={"WWW-Authenticate": f'Basic realm="{realm}"'},
                )

            if not any(context.is_user_in_role(role) for role in roles):
                return JSONResponse({"error": "Access denied"}, status_code=403)
            return await handler(request)

        return wrapper

    return decorator


def wants_json(request: Request) -> bool:
    """Whether the client asked for a JSON listing rather than HTML."""
    accept = request.headers.get("accept", "")
    return "application/json" in accept and "text/html" not in accept


def content_disposition(filename: str) -> str:
    """Attachment header for a download (RFC 6266).

    Header values travel as latin-1, so names outside printable ASCII get
    a substituted plain ``filename`` plus the exact UTF-8 ``filename*``.
    """
    fallback = _UNSAFE_FILENAME_CHARS.sub("_", filename)
    value = f'attachment; filename="{fallback}"'
    if fallback != filename:
        value += f"; filename*=UTF-8''{quote(filename, safe='')}"
    return value


def create_routes(repository: ArtifactRepository, config: Config) -> list[Route]:
    """Create HTTP routes for the repository.

    Args:
        repository: Artifact repository serving the bucket
        config: Application configuration

    Returns:
        List of Starlette routes
    """
    realm = config.auth.realm
    cache_control_list = config.repository.cache_control_list
    cache_control_fetch = config.repository.cache_control_fetch

    def cache_headers(value: str | None) -> dict[str, str]:
        return {"Cache-Control": value} if value else {}

    async def startup(request: Request) -> Response:
        """Warm-up probe."""
        return Response(status_code=202)

    @require_roles(ROLE_WRITE, ROLE_READ, ROLE_LIST, realm=realm)
    async def list_directory(request: Request) -> Response:
        """Render one directory level."""
        prefix = request.path_params.get("path", "")
        validate_key(prefix)
        directory = await repository.list_directory(prefix, request.url.path)

        headers = cache_headers(cache_control_list)
        if wants_json(request):
            return JSONResponse(directory.to_dict(), headers=headers)
        return directory_page(request, directory, headers=headers)

    @require_roles(ROLE_WRITE, ROLE_READ, realm=realm)
    async def fetch(request: Request) -> Response:
        """Download a file, honouring conditional request headers."""
        key = validate_key(request.path_params["path"])
        artifact = await repository.open_artifact(key)

        headers = cache_headers(cache_control_fetch)
        status = evaluate_preconditions(request.headers, artifact.etag, artifact.last_modified)

        if status == NOT_MODIFIED:
            if artifact.etag:
                headers["ETag"] = artifact.etag
            return Response(status_code=status, headers=headers, media_type=artifact.content_type)
        if status is not None:
            return Response(status_code=status, headers=headers)

        headers["Content-Disposition"] = content_disposition(artifact.filename)
        headers["Content-Length"] = str(artifact.blob.size)
        if artifact.etag:
            headers["ETag"] = artifact.etag
        if artifact.last_modified:
            headers["Last-Modified"] = format_http_date(artifact.last_modified)

        return StreamingResponse(
            artifact.iter_bytes(),
            media_type=artifact.media_type,
            headers=headers,
        )

    async def get_path(request: Request) -> Response:
        """Dispatch GET to a listing or a download by trailing slash."""
        path = request.path_params.get("path", "")
        if not path or path.endswith("/"):
            return await list_directory(request)
        return await fetch(request)

    @require_roles(ROLE_WRITE, realm=realm)
    async def put(request: Request) -> Response:
        """Upload a file."""
        key = validate_key(request.path_params["path"])
        if not key or key.endswith("/"):
            return JSONResponse({"error": "A file path is required"}, status_code=400)

        content = await request.body()
        await repository.put_artifact(
            key,
            content,
            content_type=request.headers.get("content-type"),
        )
        return Response(status_code=202)

    return [
        Route("/_ah/start", startup, methods=["GET"]),
        Route("/{path:path}", get_path, methods=["GET"]),
        Route("/{path:path}", put, methods=["PUT"]),
    ]
