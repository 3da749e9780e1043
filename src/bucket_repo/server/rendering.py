"""HTML rendering of directory listings through Jinja2 templates."""

from pathlib import Path
from typing import Any

from starlette.requests import Request
from starlette.responses import Response
from starlette.templating import Jinja2Templates

from bucket_repo.repository.listing import Directory

TEMPLATES_DIR = Path(__file__).parent / "templates"
LIST_TEMPLATE = "list.html"

templates = Jinja2Templates(directory=TEMPLATES_DIR)


def listing_context(directory: Directory) -> dict[str, Any]:
    """Template variables for one directory page."""
    path = directory.path or "/"
    return {
        "path": path,
        "parent": path != "/",
        "entries": directory.entries,
    }


def directory_page(request: Request, directory: Directory, headers: dict[str, str] | None = None) -> Response:
    """Render a listing as an HTML index page."""
    return templates.TemplateResponse(request, LIST_TEMPLATE, listing_context(directory), headers=headers)
