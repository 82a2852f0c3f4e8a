from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Optional

from playwright.async_api import async_playwright

from ..alerts.messages import format_report_saved
from ..alerts.sinks import AlertSink
from ..config import AppConfig
from ..mongo import build_retriever, open_client
from ..portal.axis import AxisSession
from ..portal.browser import launch_browser, save_debug
from ..reports.axis import AXIS_HEADER_ROW, AXIS_TRANSACTION_MAPPING
from ..reports.store import ResultsStore, ingest_report_file
from ..state import RunLedger
from .base import JobContext


logger = logging.getLogger(__name__)

JOB_NAME = "Axis Report Download"


async def run_axis_report(
    cfg: AppConfig,
    *,
    alerts: AlertSink,
    ledger: RunLedger,
    headless: bool = True,
    from_day: int = 1,
    to_day: Optional[int] = None,
    otp_mode: Optional[str] = None,
    slow_mo_ms: int = 0,
    debug_dir: str = "data/debug",
) -> int:
    ctx = JobContext(JOB_NAME, alerts=alerts, ledger=ledger)
    async with ctx:
        mode = otp_mode or cfg.axis.otp_mode
        today = date.today()
        end_day = to_day or today.day

        client = open_client(cfg.mongo.uri)
        otp_client = open_client(cfg.otp_store.uri) if mode == "store" else None
        try:
            async with ctx.step("MongoDB Connection"):
                await client.admin.command("ping")
                store = ResultsStore(client[cfg.mongo.database][cfg.mongo.axis_reports_collection])

            retriever = build_retriever(otp_client, cfg.otp_store) if otp_client is not None else None

            async with async_playwright() as p:
                browser = await launch_browser(p, headless=headless, slow_mo_ms=slow_mo_ms)
                page = None
                try:
                    async with ctx.step("Login to Axis Bank"):
                        page = await (await browser.new_context(accept_downloads=True)).new_page()
                        session = AxisSession(page, base_url=cfg.axis.base_url, retriever=retriever)
                        await session.login(cfg.axis.corporate_id, cfg.axis.login_id, cfg.axis.password, otp_mode=mode)

                    async with ctx.step("Download Report"):
                        path = await session.download_transaction_report(
                            Path(cfg.axis.download_dir),
                            from_day=from_day,
                            to_day=end_day,
                            today=today,
                        )
                except Exception:
                    if page is not None:
                        await save_debug(page, debug_dir=debug_dir, name_prefix=f"axis_failure_{ctx.current_step}")
                    raise
                finally:
                    await browser.close()

            async with ctx.step("Parse and Save to MongoDB"):
                count = await ingest_report_file(path, store, mapping=AXIS_TRANSACTION_MAPPING, header_row=AXIS_HEADER_ROW)

            await alerts.notify(format_report_saved("Axis", path.name, count))
            ctx.finish(f"file={path.name} records={count}")
            return count
        finally:
            await client.close()
            if otp_client is not None:
                await otp_client.close()
