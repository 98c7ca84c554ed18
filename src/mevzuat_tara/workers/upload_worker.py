from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping

import structlog

from mevzuat_tara.connectors.scraper import ScraperConnector
from mevzuat_tara.core.errors import INSTITUTION_REQUIRED, TaramaError
from mevzuat_tara.core.schema import (
    Institution,
    ItemId,
    ItemKey,
    ProcessDocumentRequest,
    ProcessDocumentResponse,
    ScanItem,
    SelectionKey,
    UploadMode,
)

from .scan_worker import ScanOrchestrator

logger = structlog.get_logger(__name__)

CONNECTIVITY_VOCAB = ("bağlanılamıyor", "bağlantı", "connection")
TIMEOUT_VOCAB = ("zaman aşımı", "zamanaşımı", "timeout")

BACKGROUND_RETRY = (
    "{target} uzun sürebilir. Bağlantı hatası alındı ancak işlem arka planda devam ediyor olabilir. "
    "Lütfen birkaç dakika bekleyip tekrar deneyin."
)
LONG_PROCESSING = (
    "PDF işleme işlemi zaman aşımına uğradı. Bu durum büyük PDF dosyalarında normal olabilir. "
    "{target} 2 saate kadar sürebilir. Lütfen işlemi tekrar deneyin."
)
UPLOAD_IN_PROGRESS = "Bu belge için yükleme işlemi devam ediyor."
UPLOAD_FAILED = "Yükleme sırasında beklenmeyen bir hata oluştu."

SUCCESS_MESSAGES = {
    UploadMode.MEVZUATGPT: "MevzuatGPT'ye yükleme işlemi tamamlandı",
    UploadMode.PORTAL: "Portal'a yükleme işlemi tamamlandı",
    UploadMode.BOTH: "Her iki platforma yükleme işlemi tamamlandı",
}

# mode -> modes whose in-flight submission for the same item disables it
# (m and p never block each other).
BLOCKED_BY = {
    UploadMode.MEVZUATGPT: (UploadMode.MEVZUATGPT, UploadMode.BOTH),
    UploadMode.PORTAL: (UploadMode.PORTAL, UploadMode.BOTH),
    UploadMode.BOTH: (UploadMode.MEVZUATGPT, UploadMode.PORTAL, UploadMode.BOTH),
}


class UploadState(str, Enum):
    PRISTINE = "pristine"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class UploadOutcome:
    key: ItemKey | None
    ok: bool
    message: str
    response: ProcessDocumentResponse | None = None


def classify_error(message: str, mode: UploadMode) -> str:
    lowered = message.lower()
    if any(word in lowered for word in CONNECTIVITY_VOCAB):
        target = "Portal yükleme işlemi" if mode is UploadMode.PORTAL else "Yükleme işlemi"
        return BACKGROUND_RETRY.format(target=target)
    if any(word in lowered for word in TIMEOUT_VOCAB):
        target = "İşlem" if mode is UploadMode.MEVZUATGPT else "Portal yükleme işlemi"
        return LONG_PROCESSING.format(target=target)
    return message


def offered_modes(item: ScanItem) -> list[UploadMode]:
    modes: list[UploadMode] = []
    if not item.mevzuatgpt_flag:
        modes.append(UploadMode.MEVZUATGPT)
    if not item.portal_flag:
        modes.append(UploadMode.PORTAL)
    if modes:
        modes.append(UploadMode.BOTH)
    return modes


class UploadTracker:
    """Per (section, item, mode) upload state.

    The loading/failed/error collections are replaced on every change, never
    mutated in place. Mode exclusion is advisory: nothing stops another client
    from submitting the same item.
    """

    def __init__(self, scraper: ScraperConnector, scan: ScanOrchestrator) -> None:
        self.scraper = scraper
        self.scan = scan
        self.loading: frozenset[ItemKey] = frozenset()
        self.failed: frozenset[ItemKey] = frozenset()
        self.succeeded: frozenset[ItemKey] = frozenset()
        self.errors: Mapping[ItemKey, str] = {}
        self.ocr: Mapping[SelectionKey, bool] = {}

    def state(self, key: ItemKey) -> UploadState:
        if key in self.loading:
            return UploadState.SUBMITTING
        if key in self.failed:
            return UploadState.FAILED
        if key in self.succeeded:
            return UploadState.SUCCEEDED
        return UploadState.PRISTINE

    def is_disabled(self, section_title: str, item_id: ItemId, mode: UploadMode) -> bool:
        return any(
            ItemKey(section_title, item_id, other) in self.loading for other in BLOCKED_BY[mode]
        )

    def set_ocr(self, section_title: str, item_id: ItemId, enabled: bool) -> None:
        self.ocr = {**self.ocr, SelectionKey(section_title, item_id): enabled}

    def _mark_failed(self, key: ItemKey, message: str) -> UploadOutcome:
        self.failed = self.failed | {key}
        self.errors = {**self.errors, key: message}
        return UploadOutcome(key=key, ok=False, message=message)

    async def submit(
        self,
        section_title: str,
        item: ScanItem,
        mode: UploadMode,
        institution: Institution | None,
        query_type: str = "kaysis",
    ) -> UploadOutcome:
        if institution is None or not institution.id:
            return UploadOutcome(key=None, ok=False, message=INSTITUTION_REQUIRED)
        key = ItemKey(section_title, item.id, mode)
        if self.is_disabled(section_title, item.id, mode):
            return UploadOutcome(key=key, ok=False, message=UPLOAD_IN_PROGRESS)
        try:
            self.scraper.stream.auth_headers()
        except TaramaError as exc:
            return UploadOutcome(key=key, ok=False, message=exc.message)

        self.loading = self.loading | {key}
        self.failed = self.failed - {key}
        self.succeeded = self.succeeded - {key}
        self.errors = {k: v for k, v in self.errors.items() if k != key}

        request = ProcessDocumentRequest(
            institution_id=institution.id,
            link=item.link,
            mode=mode,
            category=section_title,
            document_name=item.title,
            detsis=institution.detsis,
            type=query_type,
            use_ocr=self.ocr.get(SelectionKey(section_title, item.id)) or None,
        )
        logger.info("upload.started", item_id=item.id, mode=mode.value, section=section_title)
        try:
            response = await self.scraper.process_document(request)
        except TaramaError as exc:
            logger.warning("upload.failed", item_id=item.id, mode=mode.value, error=exc.message)
            return self._mark_failed(key, classify_error(exc.message, mode))
        except Exception as exc:
            logger.exception("upload.crashed", item_id=item.id, mode=mode.value, error=str(exc))
            return self._mark_failed(key, UPLOAD_FAILED)
        finally:
            self.loading = self.loading - {key}

        self.succeeded = self.succeeded | {key}
        self.scan.apply_upload(section_title, item.id, mode)
        logger.info("upload.succeeded", item_id=item.id, mode=mode.value)
        return UploadOutcome(key=key, ok=True, message=SUCCESS_MESSAGES[mode], response=response)
