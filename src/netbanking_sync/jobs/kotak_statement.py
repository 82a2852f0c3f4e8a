from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Optional

from playwright.async_api import async_playwright

from ..alerts.sinks import AlertSink
from ..config import AppConfig
from ..mongo import build_retriever, open_client
from ..portal.browser import launch_browser, save_debug
from ..portal.kotak import GridDownload, KotakSession
from ..reports.kotak import KOTAK_PAYMENT_GRID_KEYS, KOTAK_PAYMENT_GRID_MAPPING
from ..reports.store import ResultsStore, ingest_report_file
from ..state import RunLedger
from .base import JobContext


logger = logging.getLogger(__name__)

JOB_NAME = "Kotak Statement Download"


async def store_grid_download(item: GridDownload, store: ResultsStore, *, day: date) -> int:
    return await ingest_report_file(
        item.path,
        store,
        mapping=KOTAK_PAYMENT_GRID_MAPPING,
        extra={
            "dateDownloaded": day.strftime("%d/%m/%Y"),
            "page": item.page_index,
            "file": item.file_index,
        },
    )


async def run_kotak_statement(
    cfg: AppConfig,
    *,
    alerts: AlertSink,
    ledger: RunLedger,
    headless: bool = True,
    day: Optional[date] = None,
    slow_mo_ms: int = 0,
    debug_dir: str = "data/debug",
) -> int:
    """Download the grid XLS of every file processed on `day` and store its rows. Returns the row count."""
    ctx = JobContext(JOB_NAME, alerts=alerts, ledger=ledger)
    async with ctx:
        day = day or date.today()
        login = getattr(cfg.kotak, cfg.kotak.statement_account)
        logger.info("Using date %s (account=%s)", day.isoformat(), cfg.kotak.statement_account)

        results_client = open_client(cfg.mongo.uri)
        otp_client = open_client(cfg.otp_store.uri)
        records = 0
        files = 0
        try:
            store = ResultsStore(
                results_client[cfg.mongo.database][cfg.mongo.kotak_statements_collection],
                key_fields=KOTAK_PAYMENT_GRID_KEYS,
            )
            retriever = build_retriever(otp_client, cfg.otp_store)

            async with async_playwright() as p:
                browser = await launch_browser(p, headless=headless, slow_mo_ms=slow_mo_ms)
                page = None
                try:
                    async with ctx.step("Login"):
                        page = await (await browser.new_context(accept_downloads=True)).new_page()
                        session = KotakSession(page, retriever=retriever, base_url=cfg.kotak.base_url)
                        await session.login(login.crn, login.password)

                    async with ctx.step("Download Processed Files"):
                        async for item in session.download_processed_files(Path(cfg.kotak.statement_dir), day=day):
                            records += await store_grid_download(item, store, day=day)
                            files += 1

                    async with ctx.step("Logout"):
                        await session.logout()
                except Exception:
                    if page is not None:
                        await save_debug(page, debug_dir=debug_dir, name_prefix=f"kotak_statement_{ctx.current_step}")
                    raise
                finally:
                    await browser.close()

            logger.info("All files processed (files=%d records=%d)", files, records)
            ctx.finish(f"files={files} records={records}")
            return records
        finally:
            await results_client.close()
            await otp_client.close()
