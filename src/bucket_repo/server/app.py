"""ASGI application for standalone deployment."""

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from bucket_repo.auth.credentials import CredentialStore, load_users
from bucket_repo.auth.resolver import PrincipalResolver
from bucket_repo.config import Config
from bucket_repo.exceptions import DuplicateArtifactError, NotFoundError, StorageError
from bucket_repo.observability import get_logger
from bucket_repo.plugins import create_blob_store
from bucket_repo.protocols import BlobStore
from bucket_repo.repository import ArtifactRepository
from bucket_repo.server.middleware import BasicAuthMiddleware
from bucket_repo.server.routes import create_routes

logger = get_logger(__name__)


def create_store(config: Config) -> BlobStore:
    """Create the blob store named in the configuration."""
    storage = config.storage
    return create_blob_store(
        storage.backend,
        path=storage.path,
        bucket=config.repository.bucket_name,
        access_token=storage.access_token,
        endpoint=storage.endpoint,
    )


async def not_found(request: Request, exc: Exception) -> Response:
    return JSONResponse({"error": str(exc) or "Not found"}, status_code=404)


async def not_acceptable(request: Request, exc: Exception) -> Response:
    return JSONResponse({"error": str(exc)}, status_code=406)


async def bad_request(request: Request, exc: Exception) -> Response:
    return JSONResponse({"error": str(exc)}, status_code=400)


async def storage_failure(request: Request, exc: Exception) -> Response:
    logger.error("Storage failure", error=exc)
    return JSONResponse({"error": "Storage failure"}, status_code=500)


def create_app(
    config: Config,
    store: BlobStore | None = None,
    credentials: CredentialStore | None = None,
    resolver: PrincipalResolver | None = None,
) -> Starlette:
    """Create the ASGI application.

    Args:
        config: Application configuration
        store: Blob store to serve (created from config when omitted)
        credentials: Credential table (loaded from config when omitted)
        resolver: Principal resolver (built over credentials when omitted)

    Returns:
        Starlette application
    """
    if store is None:
        store = create_store(config)
    if credentials is None:
        credentials = CredentialStore(load_users(config.auth))
    if resolver is None:
        resolver = PrincipalResolver(credentials, max_delay_ms=config.auth.max_delay_ms)

    repository = ArtifactRepository(store, unique_artifacts=config.repository.unique_artifacts)

    logger.info(
        "Repository configured",
        context={
            "bucket": config.repository.bucket_name,
            "backend": config.storage.backend,
            "unique_artifacts": config.repository.unique_artifacts,
            "users": len(credentials),
        },
    )

    app = Starlette(
        routes=create_routes(repository, config),
        middleware=[Middleware(BasicAuthMiddleware, resolver=resolver)],
        exception_handlers={
            NotFoundError: not_found,
            DuplicateArtifactError: not_acceptable,
            StorageError: storage_failure,
            ValueError: bad_request,
        },
    )
    app.state.repository = repository
    app.state.credentials = credentials
    return app
