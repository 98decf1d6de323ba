"""Connectivity inspector — host-reported network state, for display only.

Reads interface flags through psutil; never touches the network. When the
host exposes nothing usable the answer is the conservative "online, quality
unknown".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import psutil

logger = logging.getLogger(__name__)

LOOPBACK_PREFIXES = ("lo",)


@dataclass(frozen=True)
class ConnectivityStatus:
    online: bool
    link_quality: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"online": self.online, "link_quality": self.link_quality}


UNAVAILABLE = ConnectivityStatus(online=True, link_quality=None)


def _is_loopback(name: str) -> bool:
    return name.lower().startswith(LOOPBACK_PREFIXES) or "loopback" in name.lower()


def _describe(stats: Any) -> str | None:
    """e.g. '1000Mbps full-duplex'; None when the NIC doesn't report a speed."""
    if not stats.speed:
        return None
    duplex = {
        psutil.NIC_DUPLEX_FULL: " full-duplex",
        psutil.NIC_DUPLEX_HALF: " half-duplex",
    }.get(stats.duplex, "")
    return f"{stats.speed}Mbps{duplex}"


def current_status() -> ConnectivityStatus:
    """Current host reachability flag plus a link-quality hint, if any."""
    try:
        interfaces = psutil.net_if_stats()
    except Exception as e:
        logger.debug("Interface stats unavailable: %s", e)
        return UNAVAILABLE

    external = {name: s for name, s in interfaces.items() if not _is_loopback(name)}
    if not external:
        return UNAVAILABLE

    up = [s for s in external.values() if s.isup]
    if not up:
        return ConnectivityStatus(online=False)

    fastest = max(up, key=lambda s: s.speed or 0)
    return ConnectivityStatus(online=True, link_quality=_describe(fastest))
