from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .index import ExistingTitleIndex
from .schema import ItemId, ScanItem, ScanResult, ScanSection, SectionStats, UploadMode
from .text import normalize_title


class StatusFilter(str, Enum):
    ALL = "all"
    UPLOADED = "uploaded"
    NOT_UPLOADED = "not-uploaded"


@dataclass(frozen=True)
class UploadCounts:
    uploaded: int
    not_uploaded: int


def reconcile_item(item: ScanItem, index: ExistingTitleIndex) -> ScanItem:
    # Either source may assert "already uploaded"; a True flag is never lowered.
    key = normalize_title(item.title)
    return item.model_copy(
        update={
            "mevzuatgpt_flag": item.mevzuatgpt_flag or key in index.primary,
            "portal_flag": item.portal_flag or key in index.secondary,
        }
    )


def section_stats(section: ScanSection) -> SectionStats:
    uploaded = sum(1 for item in section.items if item.mevzuatgpt_flag)
    total = len(section.items)
    return SectionStats(
        section_title=section.section_title,
        total=total,
        uploaded=uploaded,
        not_uploaded=total - uploaded,
    )


def with_recomputed_stats(result: ScanResult, sections: list[ScanSection]) -> ScanResult:
    """Return a copy of ``result`` whose totals and stats derive from ``sections``."""
    return result.model_copy(
        update={
            "sections": sections,
            "total_sections": len(sections),
            "total_items": sum(len(section.items) for section in sections),
            "sections_stats": [section_stats(section) for section in sections],
        }
    )


def reconcile(result: ScanResult, index: ExistingTitleIndex) -> ScanResult:
    sections = [
        section.model_copy(update={"items": [reconcile_item(item, index) for item in section.items]})
        for section in result.sections
    ]
    return with_recomputed_stats(result, sections)


def mark_uploaded(result: ScanResult, section_title: str, item_id: ItemId, mode: UploadMode) -> ScanResult:
    """Local patch after a successful upload; safe to apply more than once."""
    update: dict[str, bool] = {}
    if mode in (UploadMode.MEVZUATGPT, UploadMode.BOTH):
        update["mevzuatgpt_flag"] = True
    if mode in (UploadMode.PORTAL, UploadMode.BOTH):
        update["portal_flag"] = True

    sections: list[ScanSection] = []
    for section in result.sections:
        if section.section_title == section_title:
            section = section.model_copy(
                update={
                    "items": [
                        item.model_copy(update=update) if item.id == item_id else item
                        for item in section.items
                    ]
                }
            )
        sections.append(section)
    return with_recomputed_stats(result, sections)


def filter_items(
    section: ScanSection,
    status: StatusFilter = StatusFilter.ALL,
    section_title: str | None = None,
) -> list[ScanItem]:
    if section_title and section.section_title != section_title:
        return []
    if status is StatusFilter.UPLOADED:
        return [item for item in section.items if item.mevzuatgpt_flag]
    if status is StatusFilter.NOT_UPLOADED:
        return [item for item in section.items if not item.mevzuatgpt_flag]
    return list(section.items)


def upload_counts(result: ScanResult | None) -> UploadCounts:
    if result is None:
        return UploadCounts(uploaded=0, not_uploaded=0)
    flags = [item.mevzuatgpt_flag for section in result.sections for item in section.items]
    uploaded = sum(flags)
    return UploadCounts(uploaded=uploaded, not_uploaded=len(flags) - uploaded)
