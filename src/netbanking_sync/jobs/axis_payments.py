from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from playwright.async_api import async_playwright

from ..alerts.messages import format_no_upload_file, format_payment_success, format_payment_unconfirmed
from ..alerts.sinks import AlertSink
from ..config import AppConfig
from ..errors import PaymentNotConfirmedError
from ..mongo import build_retriever, open_client
from ..portal.axis import AxisSession
from ..portal.browser import launch_browser, save_debug
from ..state import RunLedger
from ..util.files import latest_file
from .base import JobContext


logger = logging.getLogger(__name__)

JOB_NAME = "Axis Bank Payments"


async def report_payment_result(ctx: JobContext, file_name: str, confirmed: bool) -> bool:
    """Send the payment outcome alert. An unconfirmed payment marks the run failed without raising."""
    if confirmed:
        await ctx.alerts.notify(format_payment_success(file_name))
        ctx.finish(f"file={file_name}")
    else:
        await ctx.fail(PaymentNotConfirmedError(file_name), message=format_payment_unconfirmed(file_name))
    return confirmed


async def run_axis_payments(
    cfg: AppConfig,
    *,
    alerts: AlertSink,
    ledger: RunLedger,
    headless: bool = True,
    otp_mode: Optional[str] = None,
    slow_mo_ms: int = 0,
    debug_dir: str = "data/debug",
) -> Optional[bool]:
    """
    Upload the newest `.xlsx` in the Axis upload directory as a bulk vendor payment and release it.

    Returns None when there was nothing to upload, otherwise whether the bank confirmed the transfer.
    The file is left in place either way.
    """
    ctx = JobContext(JOB_NAME, alerts=alerts, ledger=ledger)
    async with ctx:
        mode = otp_mode or cfg.axis.otp_mode

        async with ctx.step("Find Upload File"):
            file_path = latest_file(Path(cfg.axis.upload_dir), suffix=".xlsx")
        if file_path is None:
            logger.warning("No .xlsx files in %s", cfg.axis.upload_dir)
            await alerts.notify(format_no_upload_file("Axis"))
            ctx.finish("no upload file")
            return None
        logger.info("Selected file for upload: %s", file_path.name)

        otp_client = open_client(cfg.otp_store.uri) if mode == "store" else None
        try:
            retriever = build_retriever(otp_client, cfg.otp_store) if otp_client is not None else None

            async with async_playwright() as p:
                browser = await launch_browser(p, headless=headless, slow_mo_ms=slow_mo_ms)
                page = None
                try:
                    async with ctx.step("Login to Axis Bank"):
                        page = await (await browser.new_context()).new_page()
                        session = AxisSession(page, base_url=cfg.axis.base_url, retriever=retriever)
                        await session.login(cfg.axis.corporate_id, cfg.axis.login_id, cfg.axis.password, otp_mode=mode)

                    async with ctx.step("Upload Bulk Payment File"):
                        await session.upload_bulk_payment(file_path)

                    async with ctx.step("Make Payment"):
                        confirmed = await session.make_payment(otp_mode=mode)
                except Exception:
                    if page is not None:
                        await save_debug(page, debug_dir=debug_dir, name_prefix=f"axis_payment_failure_{ctx.current_step}")
                    raise
                finally:
                    await browser.close()

            return await report_payment_result(ctx, file_path.name, confirmed)
        finally:
            if otp_client is not None:
                await otp_client.close()
