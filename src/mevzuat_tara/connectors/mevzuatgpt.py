from __future__ import annotations

from typing import Any

import structlog

from mevzuat_tara.core.http import HttpClient

from .base import TitleSource


class MevzuatGPTConnector(TitleSource):
    """Primary document store (MevzuatGPT admin API)."""

    source = "MEVZUATGPT"
    DOCUMENTS_PATH = "/api/admin/documents"

    logger = structlog.get_logger(__name__)

    def __init__(self, http: HttpClient, page_size: int = 1000) -> None:
        self.http = http
        self.page_size = page_size

    async def list_documents(
        self,
        page: int = 1,
        limit: int | None = None,
        category: str | None = None,
        status: str | None = None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"page": page, "limit": limit or self.page_size}
        if category:
            params["category"] = category
        if status:
            params["status"] = status
        data = await self.http.get_json(self.DOCUMENTS_PATH, params=params)
        return data if isinstance(data, dict) else {}

    async def list_titles(self) -> list[str]:
        # One capped page; stores above page_size yield false "not uploaded" rows.
        data = await self.list_documents(page=1, limit=self.page_size)
        documents = data.get("documents") or []
        titles: list[str] = []
        for doc in documents:
            for key in ("title", "document_title"):
                value = doc.get(key)
                if isinstance(value, str) and value:
                    titles.append(value)
        self.logger.debug(
            "documents.listed", documents=len(documents), total=data.get("total_count")
        )
        return titles
