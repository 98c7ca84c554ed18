from __future__ import annotations

# Not: tarama ve belge işleme uçları uzun sürdüğü için dashboard proxy'si
# üzerinden event-stream olarak açılır (started/keepalive/result/error/done).
# Kurum, metadata ve kuyruk uçları doğrudan Scrapper API'ye gider.

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import structlog
from pydantic import ValidationError

from mevzuat_tara.core.errors import ProtocolError, RemoteError
from mevzuat_tara.core.http import HttpClient
from mevzuat_tara.core.schema import BulkPayload, Institution, ProcessDocumentRequest, ProcessDocumentResponse
from mevzuat_tara.core.sse import frame_message, iter_frames

from .base import TitleSource

PROCESS_FAILED = "Belge işleme sırasında bir hata oluştu."
RESULT_MISSING = "Sunucudan beklenen sonuç alınamadı."


class ScraperConnector(TitleSource):
    """Scrapper API plus the streaming proxy in front of its long-running endpoints."""

    source = "PORTAL"
    INSTITUTIONS_PATH = "/api/mongo/kurumlar"
    METADATA_PATH = "/api/mongo/metadata"
    SCAN_STREAM_PATH = "/api/mevzuatgpt-scan"
    PROCESS_STREAM_PATH = "/api/process-document"
    QUEUE_PATH = "/api/kurum/queue"
    QUEUE_STATUS_PATH = "/api/kurum/queue/status"
    QUEUE_CLEAR_PATH = "/api/kurum/queue/clear"

    logger = structlog.get_logger(__name__)

    def __init__(
        self,
        api: HttpClient,
        stream: HttpClient | None = None,
        page_size: int = 1000,
    ) -> None:
        self.api = api
        self.stream = stream or api
        self.page_size = page_size

    async def list_institutions(self, limit: int | None = None, offset: int = 0) -> list[Institution]:
        data = await self.api.get_json(
            self.INSTITUTIONS_PATH, params={"limit": limit or self.page_size, "offset": offset}
        )
        rows = data.get("data") if isinstance(data, dict) else None
        if not rows:
            return []
        return [Institution.model_validate(row) for row in rows]

    async def list_metadata(self, limit: int | None = None, offset: int = 0) -> list[dict[str, Any]]:
        data = await self.api.get_json(
            self.METADATA_PATH, params={"limit": limit or self.page_size, "offset": offset}
        )
        if not isinstance(data, dict) or not data.get("success"):
            return []
        return list(data.get("data") or [])

    async def list_titles(self) -> list[str]:
        records = await self.list_metadata(limit=self.page_size, offset=0)
        return [rec["pdf_adi"] for rec in records if isinstance(rec.get("pdf_adi"), str) and rec["pdf_adi"]]

    @asynccontextmanager
    async def scan_stream(self, institution: Institution, query_type: str) -> AsyncIterator[AsyncIterator[bytes]]:
        payload = {"kurumId": institution.id, "detsis": institution.detsis, "type": query_type}
        self.logger.info("scan.stream_open", kurum_id=institution.id, type=query_type)
        async with self.stream.stream_post(self.SCAN_STREAM_PATH, payload) as chunks:
            yield chunks

    async def process_document(self, request: ProcessDocumentRequest) -> ProcessDocumentResponse:
        """Run one upload; only the terminal ``result``/``error`` frame matters."""
        final: ProcessDocumentResponse | None = None
        async with self.stream.stream_post(self.PROCESS_STREAM_PATH, request.to_wire()) as chunks:
            async for frame in iter_frames(chunks):
                if frame.event == "result":
                    try:
                        final = ProcessDocumentResponse.model_validate_json(frame.data)
                    except ValidationError as exc:
                        raise ProtocolError() from exc
                elif frame.event == "error":
                    raise RemoteError(frame_message(frame.data, PROCESS_FAILED))
        if final is None:
            raise ProtocolError(RESULT_MISSING)
        if not final.success:
            raise RemoteError(final.message or PROCESS_FAILED)
        return final

    async def submit_queue(self, payload: BulkPayload) -> dict[str, Any]:
        self.logger.info("queue.submit", jobs=len(payload.items))
        return await self.api.post_json(self.QUEUE_PATH, payload.to_wire())

    async def queue_status(self) -> dict[str, Any]:
        return await self.api.get_json(self.QUEUE_STATUS_PATH)

    async def clear_queue(self) -> dict[str, Any]:
        self.logger.info("queue.clear")
        return await self.api.post_json(self.QUEUE_CLEAR_PATH)
