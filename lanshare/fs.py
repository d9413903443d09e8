"""
Safe filesystem operations for lanshare
"""

import asyncio
import os
import logging
from pathlib import Path
from typing import List, Tuple, AsyncGenerator
import aiofiles
import aiofiles.os

from .utils import normalize_path

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class FileSystemError(Exception):
    """Generic filesystem error"""
    pass


class PathTraversalError(FileSystemError):
    """A requested path would leave the shared root"""
    pass


def safe_join(root_path: Path, rel_path: str) -> Path:
    """
    Map a URL-decoded relative path onto root_path

    Empty and '.' segments are dropped, so '/a//b' and './a/b' both name
    'a/b'. A '..' segment is refused outright, and the resolved result
    (symlinks followed) must still lie under the resolved root.

    Raises:
        PathTraversalError: If the path leaves the root
        FileSystemError: If the path cannot be resolved
    """
    base = root_path.resolve()
    segments = [s for s in normalize_path(rel_path).split('/') if s not in ('', '.')]
    if '..' in segments:
        raise PathTraversalError(f"Parent reference in {rel_path!r}")

    try:
        target = base.joinpath(*segments).resolve(strict=False)
    except (OSError, RuntimeError, ValueError) as e:
        raise FileSystemError(f"Cannot resolve {rel_path!r}: {e}")

    if target != base and base not in target.parents:
        raise PathTraversalError(f"{rel_path!r} escapes the share")
    return target


def resolve_root(path: str) -> Path:
    """
    Resolve the shared directory to an absolute path and verify it is usable

    Raises:
        FileSystemError: If the directory is missing, not a directory or unreadable
    """
    try:
        root = Path(path).expanduser().resolve(strict=True)
    except (OSError, RuntimeError) as e:
        raise FileSystemError(f"Cannot resolve shared directory {path}: {e}")

    if not root.is_dir():
        raise FileSystemError(f"Not a directory: {root}")

    if not os.access(root, os.R_OK | os.X_OK):
        raise FileSystemError(f"Directory is not readable: {root}")

    return root


def scan_directory(root_path: Path) -> List[str]:
    """
    Recursively list every regular file below root_path

    Entries that fail mid-walk (unreadable subdirectories, files removed
    while scanning) are skipped with a warning. Symlinked files are only
    reported when their target stays inside the root.

    Returns:
        Relative paths joined with '/'

    Raises:
        FileSystemError: If the root itself cannot be read
    """

    root = root_path.resolve()
    if not root.is_dir():
        raise FileSystemError(f"Directory not found: {root}")

    root_error: List[OSError] = []

    def _on_error(error: OSError):
        if error.filename is not None and Path(error.filename) == root:
            root_error.append(error)
        else:
            logger.warning(f"Skipping unreadable entry {error.filename}: {error.strerror}")

    files = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        dirnames.sort()
        current = Path(dirpath)

        for filename in sorted(filenames):
            entry = current / filename
            try:
                if entry.is_symlink():
                    target = entry.resolve(strict=True)
                    target.relative_to(root)
                    if not target.is_file():
                        continue
                elif not entry.is_file():
                    continue
            except ValueError:
                logger.debug(f"Skipping symlink outside share: {entry}")
                continue
            except (OSError, RuntimeError) as e:
                logger.warning(f"Skipping unreadable entry {entry}: {e}")
                continue

            files.append(entry.relative_to(root).as_posix())

    if root_error:
        raise FileSystemError(f"Failed to list directory: {root_error[0]}")

    return files


async def scan_directory_async(root_path: Path) -> List[str]:
    """Run scan_directory in a worker thread"""
    return await asyncio.to_thread(scan_directory, root_path)


async def stat_regular_file(root_path: Path, rel_path: str) -> Tuple[Path, os.stat_result]:
    """
    Locate a downloadable file

    Args:
        root_path: Shared root directory
        rel_path: Relative file path taken from the URL

    Returns:
        (absolute_path, stat_result) tuple

    Raises:
        PathTraversalError: If the path escapes the root
        FileSystemError: If the file is missing or not a regular file
    """

    file_path = safe_join(root_path, rel_path)

    if not await aiofiles.os.path.isfile(file_path):
        raise FileSystemError(f"File not found: {rel_path}")

    try:
        stat = await aiofiles.os.stat(file_path)
    except OSError as e:
        raise FileSystemError(f"Failed to stat file: {e}")

    return file_path, stat


async def read_file_range(
    file_path: Path,
    start: int,
    end: int,
) -> AsyncGenerator[bytes, None]:
    """Yield the bytes start..end (inclusive) of file_path in chunks"""

    async with aiofiles.open(file_path, 'rb') as f:
        await f.seek(start)
        remaining = end - start + 1

        while remaining > 0:
            chunk = await f.read(min(CHUNK_SIZE, remaining))

            if not chunk:
                break

            remaining -= len(chunk)
            yield chunk
