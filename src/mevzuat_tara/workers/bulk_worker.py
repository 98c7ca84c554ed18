from __future__ import annotations

from typing import Any, Iterable, Iterator

import structlog
from pydantic import ValidationError

from mevzuat_tara.connectors.scraper import ScraperConnector
from mevzuat_tara.core.errors import UNPROCESSABLE_PAYLOAD, TaramaError
from mevzuat_tara.core.schema import (
    BulkJob,
    BulkPayload,
    Institution,
    ItemId,
    QueueAck,
    QueueStatus,
    ScanResult,
    SelectionKey,
    UploadMode,
)
from mevzuat_tara.core.text import is_truthy

logger = structlog.get_logger(__name__)

CONFIRMATION_REQUIRED = "Kuyruğu temizlemek için onay gerekli."
EMPTY_PAYLOAD = "Kuyruğa eklenecek belge seçilmedi."


class Selection:
    """Rows picked for a bulk run, keyed by (section title, item id).

    Every change swaps ``keys`` for a new frozenset. Submitting a batch does
    not clear it.
    """

    def __init__(self, keys: Iterable[SelectionKey] = ()) -> None:
        self.keys: frozenset[SelectionKey] = frozenset(keys)

    def __contains__(self, key: object) -> bool:
        return key in self.keys

    def __len__(self) -> int:
        return len(self.keys)

    def __iter__(self) -> Iterator[SelectionKey]:
        return iter(self.keys)

    def toggle(self, section_title: str, item_id: ItemId) -> bool:
        key = SelectionKey(section_title, item_id)
        if key in self.keys:
            self.keys = self.keys - {key}
            return False
        self.keys = self.keys | {key}
        return True

    def select(self, keys: Iterable[SelectionKey]) -> None:
        self.keys = self.keys | frozenset(keys)

    def clear(self) -> None:
        self.keys = frozenset()


def build_payload(
    selection: Iterable[SelectionKey],
    scan_result: ScanResult | None,
    institution: Institution,
    query_type: str = "kaysis",
) -> BulkPayload:
    """Project selected rows into queue jobs, in scan order.

    Keys that no longer exist in ``scan_result`` (e.g. after a re-scan) are
    dropped without error.
    """
    wanted = frozenset(SelectionKey(*key) for key in selection)
    if scan_result is None or not wanted:
        return BulkPayload()
    jobs: list[BulkJob] = []
    found: set[SelectionKey] = set()
    for section in scan_result.sections:
        for item in section.items:
            key = SelectionKey(section.section_title, item.id)
            if key not in wanted:
                continue
            found.add(key)
            jobs.append(
                BulkJob(
                    institution_id=institution.id,
                    detsis=institution.detsis,
                    type=query_type,
                    link=item.link,
                    mode=UploadMode.BOTH,
                    category=section.section_title,
                    document_name=item.title,
                    use_ocr=False,
                )
            )
    if len(found) < len(wanted):
        logger.debug("bulk.stale_keys", dropped=len(wanted) - len(found))
    return BulkPayload(items=tuple(jobs))


def _ack(data: Any, default_message: str) -> QueueAck:
    if not isinstance(data, dict):
        return QueueAck(success=True, message=default_message)
    body = data.get("data")
    return QueueAck(
        success=is_truthy(data.get("success", True)),
        message=str(data.get("message") or default_message),
        data=body if isinstance(body, dict) else None,
    )


class BulkQueue:
    """Remote job queue. Every call returns a structured result instead of raising."""

    def __init__(self, scraper: ScraperConnector) -> None:
        self.scraper = scraper

    async def submit(self, payload: BulkPayload) -> QueueAck:
        if not payload.items:
            return QueueAck(success=False, message=EMPTY_PAYLOAD)
        try:
            data = await self.scraper.submit_queue(payload)
        except TaramaError as exc:
            logger.warning("bulk.submit_failed", jobs=len(payload.items), error=exc.message)
            return QueueAck(success=False, message=exc.message)
        ack = _ack(data, f"{len(payload.items)} belge kuyruğa eklendi.")
        logger.info("bulk.submitted", jobs=len(payload.items), success=ack.success)
        return ack

    async def status(self) -> QueueStatus:
        try:
            data = await self.scraper.queue_status()
        except TaramaError as exc:
            logger.warning("bulk.status_failed", error=exc.message)
            return QueueStatus(success=False, message=exc.message)
        if not isinstance(data, dict):
            return QueueStatus(success=False, message=UNPROCESSABLE_PAYLOAD)
        body = data.get("data") if isinstance(data.get("data"), dict) else data
        try:
            return QueueStatus.model_validate(
                {
                    **body,
                    "success": is_truthy(data.get("success", True)),
                    "message": data.get("message") or body.get("message") or "",
                }
            )
        except ValidationError:
            return QueueStatus(success=False, message=UNPROCESSABLE_PAYLOAD)

    async def clear(self, confirmed: bool = False) -> QueueAck:
        if not confirmed:
            return QueueAck(success=False, message=CONFIRMATION_REQUIRED)
        try:
            data = await self.scraper.clear_queue()
        except TaramaError as exc:
            logger.warning("bulk.clear_failed", error=exc.message)
            return QueueAck(success=False, message=exc.message)
        return _ack(data, "Kuyruk temizlendi.")
