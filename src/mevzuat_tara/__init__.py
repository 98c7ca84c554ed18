"""
MevzuatGPT admin scan-and-reconciliation client.

Scans an institution for candidate legal documents, reconciles them with the
MevzuatGPT and portal document stores, and drives single and bulk uploads.
"""

from .core.config import Settings
from .core.reconcile import StatusFilter
from .core.schema import Institution, ScanItem, ScanResult, UploadMode
from .workers.bulk_worker import BulkQueue, Selection, build_payload
from .workers.scan_worker import ScanOrchestrator, ScanPhase, ScanState
from .workers.upload_worker import UploadTracker

__all__ = [
    "Settings",
    "StatusFilter",
    "Institution",
    "ScanItem",
    "ScanResult",
    "UploadMode",
    "BulkQueue",
    "Selection",
    "build_payload",
    "ScanOrchestrator",
    "ScanPhase",
    "ScanState",
    "UploadTracker",
]
