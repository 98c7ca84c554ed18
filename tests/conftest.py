from __future__ import annotations

import copy
from typing import Callable

import httpx
import pytest
from tenacity import wait_none

from mevzuat_tara.core.auth import StaticCredentials
from mevzuat_tara.core.http import HttpClient
from mevzuat_tara.core.schema import Institution, ScanResult

SCAN_RESULT = {
    "total_sections": 9,
    "total_items": 99,
    "uploaded_documents_count": 4,
    "sections": [
        {
            "section_title": "Yönetmelikler",
            "items_count": 2,
            "items": [
                {"id": 1, "baslik": "Özel  Yönetmelik!", "link": "https://kurum.test/1.pdf", "mevzuatgpt": "false", "portal": 0},
                {"id": 2, "baslik": "Diğer Yönerge", "link": "https://kurum.test/2.pdf", "mevzuatgpt": "true", "portal": "1"},
            ],
        },
        {
            "section_title": "Genelgeler",
            "items_count": 1,
            "items": [
                {"id": 1, "baslik": "Genelge 2024/1", "link": "https://kurum.test/3.pdf", "mevzuatgpt": False, "portal": False},
            ],
        },
    ],
    "sections_stats": [],
}


def encode_frames(*frames: tuple[str, str]) -> bytes:
    return "".join(f"event: {event}\ndata: {data}\n\n" for event, data in frames).encode("utf-8")


@pytest.fixture
def make_client() -> Callable[..., HttpClient]:
    def factory(handler, token: str | None = "test-token", base_url: str = "http://scrapper.test") -> HttpClient:
        return HttpClient(
            base_url,
            StaticCredentials(token),
            max_attempts=3,
            wait=wait_none(),
            transport=httpx.MockTransport(handler),
        )

    return factory


@pytest.fixture
def institution() -> Institution:
    return Institution.model_validate({"_id": "k1", "kurum_adi": "Test Kurumu", "detsis": 12345})


@pytest.fixture
def frames() -> Callable[..., bytes]:
    return encode_frames


@pytest.fixture
def scan_payload() -> dict:
    return copy.deepcopy(SCAN_RESULT)


@pytest.fixture
def scan_result(scan_payload) -> ScanResult:
    return ScanResult.model_validate(scan_payload)
