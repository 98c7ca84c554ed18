import pytest

from mevzuat_tara.connectors.base import TitleSource
from mevzuat_tara.core.errors import ConnectivityError
from mevzuat_tara.core.index import build_index, title_set


class FakeStore(TitleSource):
    def __init__(self, source, titles=(), error=None):
        self.source = source
        self.titles = list(titles)
        self.error = error
        self.calls = 0

    async def list_titles(self):
        self.calls += 1
        if self.error:
            raise self.error
        return self.titles


def test_title_set_drops_empty_keys():
    assert title_set(["", None, "!!", "Özel Yönetmelik"]) == frozenset({"ozel yonetmelik"})


@pytest.mark.asyncio
async def test_both_stores_are_normalized():
    index = await build_index(
        FakeStore("MEVZUATGPT", ["Özel  Yönetmelik!"]),
        FakeStore("PORTAL", ["GENELGE 2024/1", "genelge 2024/1"]),
    )
    assert index.primary == frozenset({"ozel yonetmelik"})
    assert index.secondary == frozenset({"genelge 20241"})


@pytest.mark.asyncio
async def test_failing_store_degrades_to_empty_set():
    failing = FakeStore("MEVZUATGPT", error=ConnectivityError())
    healthy = FakeStore("PORTAL", ["Genelge"])
    index = await build_index(failing, healthy)
    assert index.primary == frozenset()
    assert index.secondary == frozenset({"genelge"})
    assert failing.calls == healthy.calls == 1
