"""HTTP Server module."""

from bucket_repo.server.app import create_app, create_store
from bucket_repo.server.middleware import BasicAuthMiddleware
from bucket_repo.server.routes import create_routes, require_roles

__all__ = [
    "BasicAuthMiddleware",
    "create_app",
    "create_routes",
    "create_store",
    "require_roles",
]
