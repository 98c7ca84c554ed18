from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable

import structlog
from pydantic import ValidationError

from mevzuat_tara.connectors.base import TitleSource
from mevzuat_tara.connectors.scraper import ScraperConnector
from mevzuat_tara.core.errors import INSTITUTION_REQUIRED, UNPROCESSABLE_PAYLOAD, TaramaError
from mevzuat_tara.core.index import ExistingTitleIndex, build_index
from mevzuat_tara.core.reconcile import (
    StatusFilter,
    UploadCounts,
    filter_items,
    mark_uploaded,
    reconcile,
    upload_counts,
)
from mevzuat_tara.core.schema import Institution, ItemId, ScanItem, ScanResponse, ScanResult, UploadMode
from mevzuat_tara.core.sse import Frame, FrameDecoder, frame_message

logger = structlog.get_logger(__name__)

SCAN_FAILED = "Tarama sırasında bir hata oluştu."
SCAN_REJECTED = "Tarama işlemi başarısız oldu"
RESULT_UNPROCESSABLE = UNPROCESSABLE_PAYLOAD
RESULT_NOT_RECEIVED = "Sunucudan beklenen sonuç alınamadı. Lütfen tekrar deneyin."


class ScanPhase(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    STREAMING = "streaming"
    RECONCILING = "reconciling"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class ScanState:
    phase: ScanPhase
    result: ScanResult | None
    error: str | None
    message: str | None = None


class ScanOrchestrator:
    """Drives one institution scan over the event stream and owns its result.

    ``run`` never raises for remote or transport problems; they end up in
    ``error`` and the FAILED phase. Concurrent runs on one orchestrator race and
    the last ``result`` frame wins.
    """

    def __init__(
        self,
        scraper: ScraperConnector,
        primary_store: TitleSource,
        secondary_store: TitleSource | None = None,
        grace_attempts: int = 15,
        grace_interval: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.scraper = scraper
        self.primary_store = primary_store
        self.secondary_store = secondary_store or scraper
        self.grace_attempts = grace_attempts
        self.grace_interval = grace_interval
        self.sleep = sleep

        self.phase = ScanPhase.IDLE
        self.result: ScanResult | None = None
        self.error: str | None = None
        self.message: str | None = None
        self.index = ExistingTitleIndex()

    def snapshot(self) -> ScanState:
        return ScanState(phase=self.phase, result=self.result, error=self.error, message=self.message)

    def _fail(self, message: str) -> ScanState:
        self.error = message
        self.phase = ScanPhase.FAILED
        logger.warning("scan.failed", error=message)
        return self.snapshot()

    async def run(self, institution: Institution | None, query_type: str = "kaysis") -> ScanState:
        if institution is None or not institution.id:
            return self._fail(INSTITUTION_REQUIRED)

        self.result = None
        self.error = None
        self.message = None
        try:
            self.scraper.stream.auth_headers()
        except TaramaError as exc:
            return self._fail(exc.message)

        self.phase = ScanPhase.REQUESTING
        logger.info("scan.started", kurum_id=institution.id, detsis=institution.detsis, type=query_type)
        self.index = await build_index(self.primary_store, self.secondary_store)

        decoder = FrameDecoder()
        try:
            async with self.scraper.scan_stream(institution, query_type) as chunks:
                self.phase = ScanPhase.STREAMING
                async for chunk in chunks:
                    for frame in decoder.feed(chunk):
                        self.handle_frame(frame)
        except TaramaError as exc:
            self.error = exc.message
            logger.warning("scan.stream_error", error=exc.message, has_result=self.result is not None)

        if self.result is None and self.error is None:
            await self._await_late_result()

        if self.result is None:
            return self._fail(self.error or RESULT_NOT_RECEIVED)
        self.phase = ScanPhase.DONE
        logger.info(
            "scan.finished",
            sections=self.result.total_sections,
            items=self.result.total_items,
            error=self.error,
        )
        return self.snapshot()

    async def _await_late_result(self) -> None:
        # "done" can overtake a slow final "result" frame; wait a bounded time for it.
        for attempt in range(self.grace_attempts):
            if self.result is not None:
                return
            logger.debug("scan.grace_wait", attempt=attempt + 1, of=self.grace_attempts)
            await self.sleep(self.grace_interval)

    def handle_frame(self, frame: Frame) -> None:
        if frame.event in ("started", "keepalive"):
            logger.debug(f"scan.{frame.event}", data=frame.data)
        elif frame.event == "result":
            self._on_result(frame.data)
        elif frame.event == "error":
            self.error = frame_message(frame.data, SCAN_FAILED)
            logger.warning("scan.remote_error", error=self.error)
        elif frame.event == "done":
            logger.info("scan.done", message=self.message or frame.data)
        else:
            logger.debug("scan.unknown_event", event=frame.event)

    def _on_result(self, data: str) -> None:
        try:
            response = ScanResponse.model_validate_json(data)
        except ValidationError:
            self.error = RESULT_UNPROCESSABLE
            logger.warning("scan.result_unparsable", size=len(data))
            return
        if not response.success:
            self.error = response.message or SCAN_REJECTED
            logger.warning("scan.result_rejected", error=self.error)
            return

        self.phase = ScanPhase.RECONCILING
        self.result = reconcile(response.data, self.index)
        self.message = response.message or None
        self.error = None
        logger.info(
            "scan.result",
            sections=self.result.total_sections,
            items=self.result.total_items,
            server_uploaded=self.result.uploaded_documents_count,
        )

    def apply_upload(self, section_title: str, item_id: ItemId, mode: UploadMode) -> None:
        if self.result is None:
            return
        self.result = mark_uploaded(self.result, section_title, item_id, mode)

    def filtered_rows(
        self, status: StatusFilter = StatusFilter.ALL, section_title: str | None = None
    ) -> list[tuple[str, ScanItem]]:
        if self.result is None:
            return []
        return [
            (section.section_title, item)
            for section in self.result.sections
            for item in filter_items(section, status, section_title)
        ]

    def section_titles(self) -> list[str]:
        if self.result is None:
            return []
        return [section.section_title for section in self.result.sections]

    def stats(self) -> UploadCounts:
        return upload_counts(self.result)
