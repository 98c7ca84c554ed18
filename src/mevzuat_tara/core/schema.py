from __future__ import annotations

from enum import Enum
from typing import Any, NamedTuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .text import is_truthy

ItemId = Union[int, str]


class UploadMode(str, Enum):
    """Target store selector for an upload."""

    MEVZUATGPT = "m"
    PORTAL = "p"
    BOTH = "t"


class SelectionKey(NamedTuple):
    section_title: str
    item_id: ItemId


class ItemKey(NamedTuple):
    """Upload slot; ids repeat across sections, so the section is part of the key."""

    section_title: str
    item_id: ItemId
    mode: UploadMode


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ScanItem(WireModel):
    """One candidate document; unique only together with its section title."""

    id: ItemId
    title: str = Field(default="", alias="baslik")
    link: str = ""
    mevzuatgpt_flag: bool = Field(default=False, alias="mevzuatgpt")
    portal_flag: bool = Field(default=False, alias="portal")

    @field_validator("mevzuatgpt_flag", "portal_flag", mode="before")
    @classmethod
    def _coerce_flag(cls, value: Any) -> bool:
        return is_truthy(value)

    @field_validator("title", "link", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class ScanSection(WireModel):
    section_title: str
    items_count: int = 0
    items: list[ScanItem] = Field(default_factory=list)


class SectionStats(WireModel):
    section_title: str
    total: int
    uploaded: int
    not_uploaded: int


class ScanResult(WireModel):
    total_sections: int = 0
    total_items: int = 0
    uploaded_documents_count: int = 0
    sections: list[ScanSection] = Field(default_factory=list)
    sections_stats: list[SectionStats] = Field(default_factory=list)

    def find(self, key: SelectionKey) -> tuple[ScanSection, ScanItem] | None:
        for section in self.sections:
            if section.section_title != key.section_title:
                continue
            for item in section.items:
                if item.id == key.item_id:
                    return section, item
        return None


class ScanResponse(WireModel):
    """Payload of a ``result`` frame on the scan stream."""

    success: bool = True
    message: str = ""
    data: ScanResult = Field(default_factory=ScanResult)


class Institution(WireModel):
    id: str = Field(alias="_id")
    name: str = Field(default="", alias="kurum_adi")
    detsis: str = ""
    description: str | None = Field(default=None, alias="aciklama")

    @field_validator("detsis", mode="before")
    @classmethod
    def _detsis_as_text(cls, value: Any) -> str:
        return "" if value is None else str(value)


class ProcessDocumentRequest(WireModel):
    institution_id: str = Field(serialization_alias="kurum_id")
    link: str
    mode: UploadMode
    category: str | None = None
    document_name: str | None = None
    detsis: str | None = None
    type: str | None = None
    use_ocr: bool | None = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class UploadSummary(WireModel):
    success: bool = False
    uploaded_count: int = 0
    failed_count: int = 0


class ProcessDocumentData(WireModel):
    category: str | None = None
    institution: str | None = None
    document_name: str | None = None
    output_dir: str | None = None
    sections_count: int = 0
    upload_response: UploadSummary | None = None


class ProcessDocumentResponse(WireModel):
    success: bool = True
    message: str = ""
    data: ProcessDocumentData | None = None


class BulkJob(WireModel):
    institution_id: str = Field(serialization_alias="kurum_id")
    detsis: str
    type: str
    link: str
    mode: UploadMode = UploadMode.BOTH
    category: str
    document_name: str
    use_ocr: bool = False


class BulkPayload(WireModel):
    model_config = ConfigDict(frozen=True)

    items: tuple[BulkJob, ...] = ()

    def to_wire(self) -> dict[str, Any]:
        return {"items": [job.model_dump(mode="json", by_alias=True) for job in self.items]}


class QueueAck(WireModel):
    """Remote acknowledgement; failures are reported here, not raised."""

    success: bool
    message: str = ""
    data: dict[str, Any] | None = None


class QueueStatus(WireModel):
    success: bool
    message: str = ""
    queued: int = 0
    processing: int = 0
    completed: int = 0
    failed: int = 0
    jobs: list[dict[str, Any]] = Field(default_factory=list)
