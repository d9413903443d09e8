"""
Listing snapshot invalidated by filesystem events
"""

import logging
import threading
from pathlib import Path
from typing import List, Optional
from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler

from .fs import scan_directory_async

logger = logging.getLogger(__name__)


class ListingCache:
    """Last directory scan, dropped whenever the share changes on disk"""

    def __init__(self, root_path: Path):
        self.root_path = root_path
        self._files: Optional[List[str]] = None
        self._generation = 0
        self._lock = threading.Lock()
        self.observer: Optional[Observer] = None

    def invalidate(self):
        with self._lock:
            self._files = None
            self._generation += 1

    @property
    def is_valid(self) -> bool:
        with self._lock:
            return self._files is not None

    async def get_files(self) -> List[str]:
        """Return the cached listing, rescanning when it was invalidated"""
        with self._lock:
            if self._files is not None:
                return list(self._files)
            generation = self._generation

        files = await scan_directory_async(self.root_path)

        # Keep the result only if nothing changed while scanning
        with self._lock:
            if generation == self._generation:
                self._files = files
        return list(files)

    def start_watching(self):
        """Start watching the share for changes"""
        if self.observer:
            return  # Already watching

        self.observer = Observer()
        self.observer.schedule(ShareEventHandler(self), str(self.root_path), recursive=True)
        self.observer.start()
        logger.info(f"Started watching shared directory: {self.root_path}")

    def stop_watching(self):
        """Stop watching the share"""
        if self.observer:
            self.observer.stop()
            self.observer.join()
            self.observer = None
            logger.info("Stopped watching shared directory")


class ShareEventHandler(FileSystemEventHandler):
    """Invalidates a ListingCache on any event below the share"""

    def __init__(self, cache: ListingCache):
        self.cache = cache

    def on_any_event(self, event):
        if event.event_type in ("opened", "closed", "closed_no_write"):
            return
        logger.debug(f"Share changed ({event.event_type}): {event.src_path}")
        self.cache.invalidate()
