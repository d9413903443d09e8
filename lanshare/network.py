"""Local address discovery for the startup banner."""

from __future__ import annotations

import logging
import socket
from typing import List, Set

logger = logging.getLogger(__name__)


def _format_host(address: str) -> str:
    """Return host formatted for URLs, wrapping IPv6 in brackets."""

    if ":" in address and not address.startswith("["):
        return f"[{address}]"
    return address


def discover_local_addresses() -> List[str]:
    """Try to discover non-loopback IPv4 addresses for quick LAN access."""

    addresses: Set[str] = set()

    # Resolve hostname interfaces
    try:
        infos = socket.getaddrinfo(socket.gethostname(), None, socket.AF_INET, socket.SOCK_STREAM)
    except (socket.gaierror, OSError):
        infos = []

    for info in infos:
        addr = info[4][0]
        if addr and not addr.startswith("127."):
            addresses.add(addr)

    # UDP connect trick to learn outbound interface; nothing is sent
    if not addresses:
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
                sock.connect(("8.8.8.8", 80))
                addr = sock.getsockname()[0]
                if not addr.startswith("127."):
                    addresses.add(addr)
        except OSError as exc:
            logger.debug("Outbound interface lookup failed: %s", exc)

    return sorted(addresses)


def base_url(port: int, host: str = "") -> str:
    """Return the URL printed at startup, falling back to localhost."""

    if not host or host in {"0.0.0.0", "::"}:
        addresses = discover_local_addresses()
        host = addresses[0] if addresses else "localhost"
    return f"http://{_format_host(host)}:{port}/"
