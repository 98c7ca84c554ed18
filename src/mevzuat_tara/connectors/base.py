from __future__ import annotations

from abc import ABC, abstractmethod


class TitleSource(ABC):
    """A document store whose titles tell us what has been uploaded already."""

    source: str

    @abstractmethod
    async def list_titles(self) -> list[str]:
        """Return raw (un-normalized) titles of every stored document."""
