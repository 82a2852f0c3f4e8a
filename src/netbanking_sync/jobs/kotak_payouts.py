from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from playwright.async_api import async_playwright
from pymongo.errors import PyMongoError

from ..alerts.messages import format_db_failure, format_upload_issue
from ..alerts.sinks import AlertSink
from ..config import AppConfig
from ..errors import UploadRejectedError
from ..mongo import build_retriever, open_client, restore_object_ids
from ..payouts import KotakCsvProfile, PayoutRepository, build_kotak_rows, csv_file_name, write_payout_csv
from ..portal.browser import launch_browser, save_debug
from ..portal.kotak import KotakSession, upload_succeeded
from ..state import RunLedger
from ..util.files import cleanup_files, delete_quietly, latest_file
from .base import JobContext


logger = logging.getLogger(__name__)

JOB_NAME = "Kotak Payout Upload"


@dataclass
class PayoutBatch:
    path: Path
    payout_ids: list[Any] = field(default_factory=list)
    reused: bool = False

    @property
    def file_name(self) -> str:
        return self.path.name


async def prepare_payout_file(
    repo: PayoutRepository,
    ledger: RunLedger,
    *,
    download_dir: Path,
    profile: KotakCsvProfile,
    limit: int = 100,
    now: Optional[datetime] = None,
) -> Optional[PayoutBatch]:
    """
    Reuse a CSV left behind by a failed run, or build a new one from `processing` payouts.

    Returns None when there is nothing to pay out.
    """
    cleanup_files(download_dir, suffixes=(".xls", ".xlsx"))

    existing = latest_file(download_dir, suffix=".csv")
    if existing is not None:
        ids = ledger.get_payout_batch(existing.name)
        if ids is None:
            logger.warning("No batch recorded for %s; payout statuses will not be updated after upload.", existing.name)
            ids = []
        logger.info("Using existing CSV file: %s (%d payout ids)", existing.name, len(ids))
        return PayoutBatch(path=existing, payout_ids=restore_object_ids(ids), reused=True)

    payouts = await repo.fetch_processing(limit=limit)
    if not payouts:
        logger.info("No processing payouts found; nothing to upload.")
        return None

    stamp = now or datetime.now()
    rows = build_kotak_rows(payouts, profile=profile, today=stamp.date())
    path = write_payout_csv(download_dir / csv_file_name(stamp), rows)
    ids = [p.id for p in payouts]
    ledger.save_payout_batch(path.name, ids)
    return PayoutBatch(path=path, payout_ids=ids)


async def finalize_payout_batch(
    repo: PayoutRepository,
    ledger: RunLedger,
    batch: PayoutBatch,
    *,
    alerts: AlertSink,
) -> int:
    """Mark the uploaded payouts as queued, then drop the CSV. A DB failure here is alerted, not fatal."""
    updated = 0
    if batch.payout_ids:
        try:
            updated = await repo.mark_queued(batch.payout_ids)
        except PyMongoError as e:
            logger.error("Error updating payout statuses: %s", e)
            await alerts.notify(format_db_failure("DB Update", e))
    delete_quietly(batch.path)
    ledger.delete_payout_batch(batch.file_name)
    return updated


async def verify_upload(ctx: JobContext, file_name: str, remarks: str) -> None:
    """Raise UploadRejectedError unless the portal reported a clean upload, alerting with the upload-issue text."""
    if upload_succeeded(remarks):
        return
    err = UploadRejectedError(file_name, remarks)
    await ctx.fail(err, message=format_upload_issue(file_name, remarks))
    raise err


def _profile_from(cfg: AppConfig) -> KotakCsvProfile:
    p = cfg.kotak.csv_profile
    return KotakCsvProfile(
        client_code=p.client_code,
        product_code=p.product_code,
        payment_type=p.payment_type,
        debit_account=p.debit_account,
        bank_code_indicator=p.bank_code_indicator,
    )


async def run_kotak_payouts(
    cfg: AppConfig,
    *,
    alerts: AlertSink,
    ledger: RunLedger,
    headless: bool = True,
    slow_mo_ms: int = 0,
    debug_dir: str = "data/debug",
) -> int:
    """
    Full cycle: build the payout CSV, upload it with account A, approve it with account B,
    then mark the payouts as queued. Returns the number of payouts marked queued.
    """
    ctx = JobContext(JOB_NAME, alerts=alerts, ledger=ledger)
    async with ctx:
        results_client = open_client(cfg.mongo.uri)
        otp_client = open_client(cfg.otp_store.uri)
        try:
            repo = PayoutRepository(results_client[cfg.mongo.database][cfg.mongo.payouts_collection])

            async with ctx.step("Prepare Payout File"):
                batch = await prepare_payout_file(
                    repo,
                    ledger,
                    download_dir=Path(cfg.kotak.download_dir),
                    profile=_profile_from(cfg),
                    limit=cfg.kotak.batch_size,
                )
            if batch is None:
                ctx.finish("no processing payouts")
                return 0

            # One retriever for both logins; each OTP request carries its own reference timestamp.
            retriever = build_retriever(otp_client, cfg.otp_store)

            async with async_playwright() as p:
                browser = await launch_browser(p, headless=headless, slow_mo_ms=slow_mo_ms)
                page = None
                try:
                    async with ctx.step("Login Account A"):
                        page = await (await browser.new_context()).new_page()
                        uploader = KotakSession(page, retriever=retriever, base_url=cfg.kotak.base_url)
                        await uploader.login(cfg.kotak.uploader.crn, cfg.kotak.uploader.password)

                    async with ctx.step("File Upload"):
                        remarks = await uploader.upload_file(batch.path)

                    async with ctx.step("Upload Status Verification"):
                        await verify_upload(ctx, batch.file_name, remarks)

                    async with ctx.step("Login Account B"):
                        page = await (await browser.new_context()).new_page()
                        approver = KotakSession(page, retriever=retriever, base_url=cfg.kotak.base_url)
                        await approver.login(cfg.kotak.approver.crn, cfg.kotak.approver.password)

                    async with ctx.step("Approval Flow"):
                        await approver.approve_all()
                except Exception:
                    if page is not None:
                        await save_debug(page, debug_dir=debug_dir, name_prefix=f"kotak_failure_{ctx.current_step}")
                    raise
                finally:
                    await browser.close()

            updated = await finalize_payout_batch(repo, ledger, batch, alerts=alerts)
            logger.info("Upload and approval completed for %s (queued=%d)", batch.file_name, updated)
            ctx.finish(f"file={batch.file_name} queued={updated}")
            return updated
        finally:
            await results_client.close()
            await otp_client.close()
