import json

import httpx
import pytest

from mevzuat_tara.connectors.scraper import ScraperConnector
from mevzuat_tara.core.schema import ScanResult, SelectionKey
from mevzuat_tara.workers.bulk_worker import (
    CONFIRMATION_REQUIRED,
    EMPTY_PAYLOAD,
    BulkQueue,
    Selection,
    build_payload,
)


def queue_for(make_client, routes):
    requests = []

    def handler(request):
        requests.append(request)
        status, body = routes[(request.method, request.url.path)]
        return httpx.Response(status, json=body)

    return BulkQueue(ScraperConnector(make_client(handler))), requests


def test_selection_toggle():
    selection = Selection()
    assert selection.toggle("Genelgeler", 1) is True
    assert SelectionKey("Genelgeler", 1) in selection
    before = selection.keys
    assert selection.toggle("Genelgeler", 1) is False
    assert len(selection) == 0
    assert before == frozenset({SelectionKey("Genelgeler", 1)})


def test_payload_follows_scan_order(scan_result, institution):
    selection = Selection([SelectionKey("Genelgeler", 1), SelectionKey("Yönetmelikler", 1)])
    payload = build_payload(selection, scan_result, institution)

    assert [job.category for job in payload.items] == ["Yönetmelikler", "Genelgeler"]
    assert payload.to_wire()["items"][1] == {
        "kurum_id": "k1",
        "detsis": "12345",
        "type": "kaysis",
        "link": "https://kurum.test/3.pdf",
        "mode": "t",
        "category": "Genelgeler",
        "document_name": "Genelge 2024/1",
        "use_ocr": False,
    }


def test_stale_keys_are_dropped(scan_payload, institution):
    selection = Selection([SelectionKey("Yönetmelikler", 1), SelectionKey("Yönetmelikler", 2)])
    scan_payload["sections"][0]["items"].pop()
    rescanned = ScanResult.model_validate(scan_payload)

    payload = build_payload(selection, rescanned, institution)

    assert [job.document_name for job in payload.items] == ["Özel  Yönetmelik!"]


def test_empty_inputs_build_empty_payload(scan_result, institution):
    assert build_payload(Selection(), scan_result, institution).items == ()
    assert build_payload(Selection([SelectionKey("Genelgeler", 1)]), None, institution).items == ()


@pytest.mark.asyncio
async def test_submit(make_client, scan_result, institution):
    queue, requests = queue_for(
        make_client,
        {("POST", ScraperConnector.QUEUE_PATH): (200, {"success": True, "message": "2 iş kuyruğa alındı", "data": {"queued": 2}})},
    )
    payload = build_payload(
        Selection([SelectionKey("Genelgeler", 1), SelectionKey("Yönetmelikler", 2)]), scan_result, institution
    )

    ack = await queue.submit(payload)

    assert ack.success
    assert ack.message == "2 iş kuyruğa alındı"
    assert ack.data == {"queued": 2}
    assert len(json.loads(requests[0].content)["items"]) == 2


@pytest.mark.asyncio
async def test_submit_failure_is_structured(make_client, scan_result, institution):
    queue, _ = queue_for(make_client, {("POST", ScraperConnector.QUEUE_PATH): (500, {"detail": "Kuyruk dolu"})})
    payload = build_payload(Selection([SelectionKey("Genelgeler", 1)]), scan_result, institution)

    ack = await queue.submit(payload)

    assert not ack.success
    assert ack.message == "Kuyruk dolu"


@pytest.mark.asyncio
async def test_empty_submit_makes_no_request(make_client):
    queue, requests = queue_for(make_client, {})
    ack = await queue.submit(build_payload(Selection(), None, None))
    assert ack.message == EMPTY_PAYLOAD
    assert requests == []


@pytest.mark.asyncio
async def test_status(make_client):
    queue, _ = queue_for(
        make_client,
        {
            ("GET", ScraperConnector.QUEUE_STATUS_PATH): (
                200,
                {"success": True, "data": {"queued": 3, "processing": 1, "completed": 5, "failed": 0, "jobs": [{"id": "j1"}]}},
            )
        },
    )
    status = await queue.status()
    assert status.success
    assert (status.queued, status.processing, status.completed, status.failed) == (3, 1, 5, 0)
    assert status.jobs == [{"id": "j1"}]


@pytest.mark.asyncio
async def test_status_failure_is_structured(make_client):
    queue, _ = queue_for(make_client, {("GET", ScraperConnector.QUEUE_STATUS_PATH): (404, {"detail": "Kuyruk servisi yok"})})
    status = await queue.status()
    assert not status.success
    assert status.message == "Kuyruk servisi yok"


@pytest.mark.asyncio
async def test_clear_requires_confirmation(make_client):
    queue, requests = queue_for(
        make_client,
        {("POST", ScraperConnector.QUEUE_CLEAR_PATH): (200, {"success": True, "message": "Kuyruk boşaltıldı"})},
    )

    refused = await queue.clear()
    assert not refused.success
    assert refused.message == CONFIRMATION_REQUIRED
    assert requests == []

    ack = await queue.clear(confirmed=True)
    assert ack.success
    assert ack.message == "Kuyruk boşaltıldı"
    assert len(requests) == 1


@pytest.mark.parametrize(
    "reported, expected",
    [("false", False), ("0", False), (0, False), (False, False), ("true", True), (1, True), ("1", True)],
)
@pytest.mark.asyncio
async def test_remote_success_values_are_coerced(make_client, reported, expected):
    queue, _ = queue_for(
        make_client,
        {
            ("POST", ScraperConnector.QUEUE_CLEAR_PATH): (200, {"success": reported, "message": "reddedildi"}),
            ("GET", ScraperConnector.QUEUE_STATUS_PATH): (200, {"success": reported, "data": {"queued": 1}}),
        },
    )

    ack = await queue.clear(confirmed=True)
    status = await queue.status()

    assert ack.success is expected
    assert ack.message == "reddedildi"
    assert status.success is expected


@pytest.mark.asyncio
async def test_missing_success_field_means_accepted(make_client):
    queue, _ = queue_for(make_client, {("POST", ScraperConnector.QUEUE_CLEAR_PATH): (200, {"message": "tamam"})})
    ack = await queue.clear(confirmed=True)
    assert ack.success is True


def test_selection_iterates_keys():
    selection = Selection([SelectionKey("Genelgeler", 1)])
    assert list(selection) == [SelectionKey("Genelgeler", 1)]
