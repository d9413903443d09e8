"""
Download route for lanshare
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Request, Depends
from fastapi.responses import PlainTextResponse, Response, StreamingResponse

from .context import ShareContext, get_context
from .fs import FileSystemError, PathTraversalError, stat_regular_file, read_file_range
from .utils import (
    create_content_range_header,
    file_headers,
    generate_etag,
    get_mime_type,
    parse_http_date,
    parse_http_range,
)

logger = logging.getLogger(__name__)

DOWNLOAD_PREFIX = "/download"

download_router = APIRouter(tags=["download"])


class GuardedStreamingResponse(StreamingResponse):
    """Streaming response that releases a held lock once it has been sent.

    The lock is released however sending ends: completion, error or client
    disconnect.
    """

    def __init__(self, content, lock: asyncio.Lock, **kwargs):
        super().__init__(content, **kwargs)
        self.lock = lock

    async def __call__(self, scope, receive, send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            self.lock.release()


def _not_modified(request: Request, etag: str, mtime: float) -> bool:
    if_none_match = request.headers.get("If-None-Match")
    if if_none_match:
        candidates = [tag.strip() for tag in if_none_match.split(",")]
        return "*" in candidates or f'"{etag}"' in candidates or f'W/"{etag}"' in candidates

    since = parse_http_date(request.headers.get("If-Modified-Since", ""))
    return since is not None and int(mtime) <= since


async def _build_download_response(request: Request, context: ShareContext, rel_path: str) -> Response:
    """Validate the requested path and build the response. The guard must be held."""

    try:
        file_path, stat = await stat_regular_file(context.root, rel_path)
    except PathTraversalError as e:
        logger.warning(f"Rejected download outside share: {e}")
        return PlainTextResponse("404 page not found", status_code=404)
    except FileSystemError as e:
        logger.debug(f"Download not found: {e}")
        return PlainTextResponse("404 page not found", status_code=404)

    total_size = stat.st_size
    etag = generate_etag(file_path, stat)
    content_type = get_mime_type(file_path)

    if _not_modified(request, etag, stat.st_mtime):
        return Response(status_code=304, headers=file_headers(etag, stat.st_mtime))

    # Malformed Range headers are ignored and the whole file is sent
    http_range = parse_http_range(request.headers.get("Range", ""))

    if http_range is None:
        start, end = 0, total_size - 1
        status_code = 200
    else:
        span = http_range.resolve(total_size)
        if span is None:
            return PlainTextResponse(
                "416 Requested Range Not Satisfiable",
                status_code=416,
                headers={"Content-Range": f"bytes */{total_size}"},
            )
        start, end = span
        status_code = 206

    headers = file_headers(etag, stat.st_mtime, content_type, content_length=end - start + 1)
    if status_code == 206:
        headers["Content-Range"] = create_content_range_header(start, end, total_size)

    logger.info(f"Serving {rel_path} ({start}-{end}/{total_size})")

    return GuardedStreamingResponse(
        read_file_range(file_path, start, end),
        context.download_lock,
        status_code=status_code,
        headers=headers,
        media_type=content_type,
    )


@download_router.get(DOWNLOAD_PREFIX + "/{rel_path:path}")
async def download_file(
    rel_path: str,
    request: Request,
    context: ShareContext = Depends(get_context),
):
    """Download file with range support, one download at a time"""

    await context.download_lock.acquire()
    try:
        response = await _build_download_response(request, context, rel_path)
    except BaseException:
        context.download_lock.release()
        raise

    if not isinstance(response, GuardedStreamingResponse):
        context.download_lock.release()
    return response


def setup_download_routes(app):
    """Setup download routes"""
    app.include_router(download_router)
    logger.info("Download routes setup complete")
