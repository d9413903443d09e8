"""
Data models and constants for lanshare
"""

from typing import Dict, Optional, Tuple
from dataclasses import dataclass, field


@dataclass
class ServerConfig:
    """Server configuration"""
    addr: str = "0.0.0.0"
    port: int = 8080


@dataclass
class ShareConfig:
    """Shared directory configuration"""
    path: str = "./file"


@dataclass
class LoggingConfig:
    """Logging configuration"""
    json: bool = False
    file: str = ""
    level: str = "INFO"
    max_size_mb: int = 100
    backup_count: int = 5


@dataclass
class ListingConfig:
    """Listing snapshot configuration"""
    watch: bool = False


@dataclass
class Config:
    """Main configuration container"""
    server: ServerConfig = field(default_factory=ServerConfig)
    share: ShareConfig = field(default_factory=ShareConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    listing: ListingConfig = field(default_factory=ListingConfig)


# A single byte range from a Range header
@dataclass
class HttpRange:
    """First range of a `bytes=` Range header"""
    start: Optional[int] = None
    end: Optional[int] = None
    suffix_length: Optional[int] = None

    def resolve(self, content_length: int) -> Optional[Tuple[int, int]]:
        """Inclusive (first, last) byte offsets, or None if no byte is selected"""
        last = content_length - 1

        if self.suffix_length is not None:
            if self.suffix_length <= 0 or last < 0:
                return None
            return max(0, content_length - self.suffix_length), last

        if self.start is None or self.start > last:
            return None
        if self.end is None:
            return self.start, last
        if self.end < self.start:
            return None
        return self.start, min(self.end, last)


# Extensions rendered with an inline preview on the listing page
IMAGE_EXTENSIONS = frozenset({'.jpg', '.jpeg', '.png', '.gif', '.webp'})
VIDEO_EXTENSIONS = frozenset({'.mp4', '.webm', '.ogg'})

# Static icons for everything else
FILE_ICONS: Dict[str, str] = {
    '.pdf': '📄',
    '.txt': '📝',
    '.zip': '📦',
    '.rar': '📦',
    '.docx': '📃',
    '.xlsx': '📊',
    '.pptx': '📽',
    '.mp3': '🎵',
    '.wav': '🎶',
}

DEFAULT_ICON = '📁'


# Pinned types for everything the listing previews or has an icon for;
# the rest goes through the mimetypes registry
MIME_TYPES = {
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.png': 'image/png',
    '.gif': 'image/gif',
    '.webp': 'image/webp',
    '.mp4': 'video/mp4',
    '.webm': 'video/webm',
    '.ogg': 'video/ogg',
    '.pdf': 'application/pdf',
    '.txt': 'text/plain',
    '.zip': 'application/zip',
    '.rar': 'application/vnd.rar',
    '.mp3': 'audio/mpeg',
    '.wav': 'audio/wav',
    '.docx': 'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    '.xlsx': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    '.pptx': 'application/vnd.openxmlformats-officedocument.presentationml.presentation',
}

DEFAULT_MIME_TYPE = 'application/octet-stream'
