"""
Operator CLI for the scan/upload workflow.

Examples:
  MEVZUAT_ACCESS_TOKEN=... mevzuat-tara institutions
  mevzuat-tara scan --institution 64f0c... --status not-uploaded
  mevzuat-tara upload --institution 64f0c... --section "Yönetmelikler" --item 12 --mode t --ocr
  mevzuat-tara bulk --institution 64f0c... --section "Yönetmelikler" --submit
  mevzuat-tara queue-status
  mevzuat-tara queue-clear --yes
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Callable

from mevzuat_tara.connectors.mevzuatgpt import MevzuatGPTConnector
from mevzuat_tara.connectors.scraper import ScraperConnector
from mevzuat_tara.core.auth import CredentialProvider, default_credentials
from mevzuat_tara.core.config import Settings
from mevzuat_tara.core.errors import TaramaError
from mevzuat_tara.core.http import HttpClient
from mevzuat_tara.core.reconcile import StatusFilter
from mevzuat_tara.core.schema import Institution, SelectionKey, UploadMode
from mevzuat_tara.core.utils import configure_logging
from mevzuat_tara.workers.bulk_worker import BulkQueue, Selection, build_payload
from mevzuat_tara.workers.scan_worker import ScanOrchestrator, ScanPhase
from mevzuat_tara.workers.upload_worker import UploadTracker


@dataclass
class Services:
    settings: Settings
    documents: MevzuatGPTConnector
    scraper: ScraperConnector
    scan: ScanOrchestrator
    uploads: UploadTracker
    queue: BulkQueue


@asynccontextmanager
async def open_services(
    settings: Settings,
    credentials: CredentialProvider,
    transport_factory: Callable[[], object] | None = None,
) -> AsyncIterator[Services]:
    def client(base_url: str, read_timeout: float | None = settings.timeout) -> HttpClient:
        return HttpClient(
            base_url,
            credentials,
            timeout=settings.timeout,
            stream_read_timeout=read_timeout,
            transport=transport_factory() if transport_factory else None,
        )

    api = client(settings.api_base_url)
    scraper_api = client(settings.scraper_base_url)
    stream = client(settings.stream_base_url, read_timeout=settings.stream_timeout)
    try:
        documents = MevzuatGPTConnector(api, page_size=settings.page_size)
        scraper = ScraperConnector(scraper_api, stream, page_size=settings.page_size)
        scan = ScanOrchestrator(
            scraper,
            documents,
            grace_attempts=settings.grace_attempts,
            grace_interval=settings.grace_interval,
        )
        yield Services(
            settings=settings,
            documents=documents,
            scraper=scraper,
            scan=scan,
            uploads=UploadTracker(scraper, scan),
            queue=BulkQueue(scraper),
        )
    finally:
        for http in (api, scraper_api, stream):
            await http.close()


async def resolve_institution(services: Services, institution_id: str) -> Institution | None:
    for institution in await services.scraper.list_institutions():
        if institution.id == institution_id:
            return institution
    return None


def print_scan(services: Services, status: StatusFilter, section: str | None) -> None:
    scan = services.scan
    result = scan.result
    if scan.error:
        print(f"[HATA] {scan.error}")
    if result is None:
        return
    counts = scan.stats()
    print(
        f"Bölüm: {result.total_sections}  Öğe: {result.total_items}  "
        f"MevzuatGPT belgeleri: {result.uploaded_documents_count}  "
        f"Yüklü: {counts.uploaded}  Yüklenmesi gereken: {counts.not_uploaded}"
    )
    for stat in result.sections_stats:
        print(f"  {stat.section_title}: {stat.total} toplam, {stat.uploaded} yüklü, {stat.not_uploaded} eksik")
    for section_title, item in scan.filtered_rows(status, section):
        marks = ("M" if item.mevzuatgpt_flag else "-") + ("P" if item.portal_flag else "-")
        print(f"[{marks}] {section_title} #{item.id} {item.title} <{item.link}>")


async def _scan(services: Services, args: argparse.Namespace) -> Institution | None:
    institution = await resolve_institution(services, args.institution)
    if institution is None:
        print(f"[HATA] Kurum bulunamadı: {args.institution}")
        return None
    state = await services.scan.run(institution, args.type or services.settings.query_type)
    if state.phase is ScanPhase.FAILED:
        print(f"[HATA] {state.error}")
        return None
    return institution


async def cmd_institutions(services: Services, args: argparse.Namespace) -> int:
    for institution in await services.scraper.list_institutions():
        print(f"{institution.id}\t{institution.detsis or '-'}\t{institution.name}")
    return 0


async def cmd_scan(services: Services, args: argparse.Namespace) -> int:
    if await _scan(services, args) is None:
        return 1
    print_scan(services, StatusFilter(args.status), args.section)
    return 0


async def cmd_upload(services: Services, args: argparse.Namespace) -> int:
    institution = await _scan(services, args)
    if institution is None or services.scan.result is None:
        return 1
    section_title, item = None, None
    for title, candidate in services.scan.filtered_rows(section_title=args.section):
        if str(candidate.id) == args.item:
            section_title, item = title, candidate
            break
    if item is None or section_title is None:
        print(f"[HATA] Öğe bulunamadı: {args.section} #{args.item}")
        return 1
    mode = UploadMode(args.mode)
    if args.ocr:
        services.uploads.set_ocr(section_title, item.id, True)
    outcome = await services.uploads.submit(
        section_title, item, mode, institution, args.type or services.settings.query_type
    )
    print(("[OK] " if outcome.ok else "[HATA] ") + outcome.message)
    return 0 if outcome.ok else 1


async def cmd_bulk(services: Services, args: argparse.Namespace) -> int:
    institution = await _scan(services, args)
    result = services.scan.result
    if institution is None or result is None:
        return 1
    selection = Selection()
    selection.select(
        SelectionKey(title, item.id)
        for title, item in services.scan.filtered_rows(StatusFilter.NOT_UPLOADED, args.section)
    )
    payload = build_payload(selection, result, institution, args.type or services.settings.query_type)
    for job in payload.items:
        print(f"  {job.category} | {job.document_name}")
    print(f"{len(payload.items)} belge seçildi.")
    if not args.submit:
        return 0
    ack = await services.queue.submit(payload)
    print(("[OK] " if ack.success else "[HATA] ") + ack.message)
    return 0 if ack.success else 1


async def cmd_queue_status(services: Services, args: argparse.Namespace) -> int:
    status = await services.queue.status()
    if not status.success:
        print(f"[HATA] {status.message}")
        return 1
    print(
        f"Kuyrukta: {status.queued}  İşleniyor: {status.processing}  "
        f"Tamamlanan: {status.completed}  Hatalı: {status.failed}"
    )
    return 0


async def cmd_queue_clear(services: Services, args: argparse.Namespace) -> int:
    confirmed = args.yes or _confirm("Kuyruktaki tüm işler silinecek. Devam edilsin mi? [e/H] ")
    ack = await services.queue.clear(confirmed=confirmed)
    print(("[OK] " if ack.success else "[HATA] ") + ack.message)
    return 0 if ack.success else 1


def _confirm(prompt: str) -> bool:
    try:
        answer = input(prompt)
    except EOFError:
        return False
    return answer.strip().lower() in {"e", "evet", "y", "yes"}


COMMANDS = {
    "institutions": cmd_institutions,
    "scan": cmd_scan,
    "upload": cmd_upload,
    "bulk": cmd_bulk,
    "queue-status": cmd_queue_status,
    "queue-clear": cmd_queue_clear,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mevzuat-tara")
    parser.add_argument("--token-file", help="Session JSON with an access_token (default: ~/.mevzuat-tara/session.json).")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("institutions", help="List institutions with their detsis ids.")

    def scan_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("--institution", required=True, help="Institution (_id) to scan.")
        p.add_argument("--type", default=None, help="Query type (default: MEVZUAT_QUERY_TYPE or kaysis).")
        p.add_argument("--section", default=None, help="Only this section title.")

    scan = sub.add_parser("scan", help="Scan an institution and reconcile with existing documents.")
    scan_args(scan)
    scan.add_argument("--status", choices=[s.value for s in StatusFilter], default=StatusFilter.ALL.value)

    upload = sub.add_parser("upload", help="Upload a single scanned item.")
    scan_args(upload)
    upload.add_argument("--item", required=True, help="Item id inside the section.")
    upload.add_argument("--mode", choices=[m.value for m in UploadMode], default=UploadMode.BOTH.value)
    upload.add_argument("--ocr", action="store_true", help="Ask the backend to OCR the PDF.")

    bulk = sub.add_parser("bulk", help="Queue every not-yet-uploaded item of a scan.")
    scan_args(bulk)
    bulk.add_argument("--submit", action="store_true", help="Submit the batch (default: dry run).")

    sub.add_parser("queue-status", help="Show the remote job queue.")
    clear = sub.add_parser("queue-clear", help="Drop every job in the remote queue.")
    clear.add_argument("--yes", action="store_true", help="Skip the confirmation prompt.")
    return parser


async def run(args: argparse.Namespace, settings: Settings | None = None) -> int:
    settings = settings or Settings.from_env()
    async with open_services(settings, default_credentials(args.token_file)) as services:
        try:
            return await COMMANDS[args.command](services, args)
        except TaramaError as exc:
            print(f"[HATA] {exc.message}")
            return 1


def main(argv: list[str] | None = None) -> None:
    configure_logging()
    args = build_parser().parse_args(argv)
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
