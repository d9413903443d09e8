"""
Main application factory for lanshare
"""

import logging
import logging.handlers
import sys
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Callable, Optional

import uvicorn
from fastapi import FastAPI

from . import __version__
from .config import load_config, apply_overrides
from .context import build_context
from .download import setup_download_routes
from .fs import FileSystemError, resolve_root, scan_directory
from .middleware import setup_middleware
from .models import Config
from .network import base_url
from .ui import setup_ui_routes


logger = logging.getLogger(__name__)


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
JSON_LOG_FORMAT = '{"time":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","msg":"%(message)s"}'


def setup_logging(config: Config):
    """Send root logging to stdout and, if configured, a rotating file"""
    log_config = config.logging

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_config.file:
        log_file = Path(log_config.file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=log_config.max_size_mb * 1024 * 1024,
            backupCount=log_config.backup_count,
            encoding='utf-8',
        ))

    formatter = logging.Formatter(JSON_LOG_FORMAT if log_config.json else LOG_FORMAT)
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_config.level.upper(), logging.INFO))


def create_app(config: Optional[Config] = None, clock: Callable[[], float] = time.monotonic) -> FastAPI:
    """
    Create FastAPI application

    Raises:
        FileSystemError: If the shared directory cannot be resolved or listed
    """

    if config is None:
        config = load_config()

    root = resolve_root(config.share.path)

    # Fail at startup rather than on the first listing request
    initial = scan_directory(root)
    logger.info(f"Found {len(initial)} files in {root}")

    context = build_context(root, config, clock=clock)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if context.listing_cache is not None:
            context.listing_cache.start_watching()
        logger.info(f"lanshare starting on {config.server.addr}:{config.server.port}")
        yield
        if context.listing_cache is not None:
            context.listing_cache.stop_watching()
        logger.info("lanshare shutdown complete")

    app = FastAPI(
        title="lanshare",
        description="Local network file sharing",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )

    # Store context in app state
    app.state.context = context

    setup_middleware(app)

    setup_ui_routes(app)
    setup_download_routes(app)

    return app


def parse_args(argv=None):
    """Parse `lanshare [port] [directory]`"""
    import argparse

    parser = argparse.ArgumentParser(prog="lanshare", description="Share a directory over HTTP")
    parser.add_argument("port", nargs="?", type=int, default=None, help="Port to listen on (default 8080)")
    parser.add_argument("directory", nargs="?", default=None, help="Directory to share (default ./file)")
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point for running the server"""

    args = parse_args(argv)

    config = apply_overrides(load_config(), port=args.port, directory=args.directory)
    setup_logging(config)

    try:
        app = create_app(config)
    except FileSystemError as e:
        logger.error(f"Error starting server: {e}")
        sys.exit(1)

    logger.info(f"Sharing files from: {app.state.context.root}")
    logger.info(f"Server started at: {base_url(config.server.port, config.server.addr)}")
    logger.info("Use Ctrl+C to stop.")

    uvicorn.run(
        app,
        host=config.server.addr,
        port=config.server.port,
        access_log=False,  # We handle access logging ourselves
        server_header=False,
        log_config=None,
    )


if __name__ == "__main__":
    main()
