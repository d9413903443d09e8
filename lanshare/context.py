"""Process-wide state shared by request handlers."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from fastapi import Request

from .fs import scan_directory_async
from .models import Config
from .utils import format_uptime
from .watcher import ListingCache


@dataclass(frozen=True)
class ShareContext:
    """Everything a handler needs, built once at startup and never replaced."""

    root: Path
    config: Config
    started_at: float
    clock: Callable[[], float] = time.monotonic
    download_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    listing_cache: Optional[ListingCache] = None

    def uptime(self) -> float:
        return self.clock() - self.started_at

    def uptime_display(self) -> str:
        return format_uptime(self.uptime())

    async def list_files(self) -> List[str]:
        if self.listing_cache is not None:
            return await self.listing_cache.get_files()
        return await scan_directory_async(self.root)


def build_context(
    root: Path,
    config: Config,
    clock: Callable[[], float] = time.monotonic,
) -> ShareContext:
    """Create the context for a resolved shared directory."""

    cache = ListingCache(root) if config.listing.watch else None
    return ShareContext(
        root=root,
        config=config,
        started_at=clock(),
        clock=clock,
        listing_cache=cache,
    )


def get_context(request: Request) -> ShareContext:
    """FastAPI dependency returning the application's ShareContext."""

    return request.app.state.context
