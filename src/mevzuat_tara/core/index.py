from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Iterable

import structlog

from mevzuat_tara.connectors.base import TitleSource

from .text import normalize_title

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ExistingTitleIndex:
    """Normalized titles already present in MevzuatGPT (primary) and the portal (secondary)."""

    primary: frozenset[str] = field(default_factory=frozenset)
    secondary: frozenset[str] = field(default_factory=frozenset)


def title_set(titles: Iterable[str | None]) -> frozenset[str]:
    keys = (normalize_title(title) for title in titles)
    return frozenset(key for key in keys if key)


async def _collect(store: TitleSource, role: str) -> frozenset[str]:
    try:
        titles = await store.list_titles()
    except Exception as exc:
        # Degrades to an empty set, never fails the scan.
        logger.warning(f"index.{role}_failed", source=store.source, error=str(exc))
        return frozenset()
    keys = title_set(titles)
    logger.info(f"index.{role}_loaded", source=store.source, titles=len(keys))
    return keys


async def build_index(primary: TitleSource, secondary: TitleSource) -> ExistingTitleIndex:
    primary_keys, secondary_keys = await asyncio.gather(
        _collect(primary, "primary"),
        _collect(secondary, "secondary"),
    )
    return ExistingTitleIndex(primary=primary_keys, secondary=secondary_keys)
