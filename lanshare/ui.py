"""
Listing page routes and template rendering for lanshare
"""

import logging
from pathlib import Path
from fastapi import APIRouter, Request, Depends
from fastapi.responses import HTMLResponse, PlainTextResponse
from fastapi.templating import Jinja2Templates
from jinja2 import TemplateError

from .context import ShareContext, get_context
from .fs import FileSystemError
from .models import IMAGE_EXTENSIONS, VIDEO_EXTENSIONS, FILE_ICONS, DEFAULT_ICON, MIME_TYPES
from .utils import get_file_extension

logger = logging.getLogger(__name__)

# UI router
ui_router = APIRouter(tags=["ui"])

# Templates ship inside the package
templates_dir = Path(__file__).parent / "templates"
templates = Jinja2Templates(directory=str(templates_dir))

PAGE_TITLE = "Shared Files"


def is_image(filename: str) -> bool:
    """Whether the listing shows an inline image preview"""
    return get_file_extension(filename) in IMAGE_EXTENSIONS


def is_video(filename: str) -> bool:
    """Whether the listing shows an inline video player"""
    return get_file_extension(filename) in VIDEO_EXTENSIONS


def file_icon(filename: str) -> str:
    """Static icon for files without a preview"""
    return FILE_ICONS.get(get_file_extension(filename), DEFAULT_ICON)


def video_type(filename: str) -> str:
    return MIME_TYPES.get(get_file_extension(filename), "video/mp4")


@ui_router.get("/", response_class=HTMLResponse)
async def index(request: Request, context: ShareContext = Depends(get_context)):
    """File listing page"""

    try:
        files = await context.list_files()
    except FileSystemError as e:
        logger.error(f"Error listing files: {e}")
        return PlainTextResponse("Error listing files", status_code=500)

    template_context = {
        "title": PAGE_TITLE,
        "files": files,
        "uptime": context.uptime_display(),
    }

    try:
        return templates.TemplateResponse(request, "index.html", template_context)
    except TemplateError as e:
        logger.error(f"Error rendering template: {e}")
        return PlainTextResponse("Error rendering template", status_code=500)


def setup_ui_routes(app):
    """Setup UI routes"""
    app.include_router(ui_router)
    logger.info("UI routes setup complete")


# Template filters and functions
def setup_template_filters():
    """Setup custom template functions"""

    templates.env.globals["is_image"] = is_image
    templates.env.globals["is_video"] = is_video
    templates.env.globals["file_icon"] = file_icon
    templates.env.globals["video_type"] = video_type


# Initialize template filters
setup_template_filters()
