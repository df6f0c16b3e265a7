"""Target platform definitions.

Each platform module exposes a ``PLATFORM`` value: its flow, fallback
content, persona flavour and environment prefix.
"""

from __future__ import annotations

from betasim.platforms import lumina, mednext_healthcare, scholarly
from betasim.platforms.base import Platform

PLATFORMS: dict[str, Platform] = {
    p.name: p
    for p in (
        lumina.PLATFORM,
        mednext_healthcare.PLATFORM,
        scholarly.PLATFORM,
    )
}


def get_platform(name: str) -> Platform:
    try:
        return PLATFORMS[name]
    except KeyError:
        raise KeyError(f"unknown platform {name!r}; choose from {sorted(PLATFORMS)}") from None


__all__ = ["PLATFORMS", "Platform", "get_platform"]
