from __future__ import annotations

import logging
import re
from datetime import date, datetime
from pathlib import Path
from typing import Optional

from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..otp.retriever import OtpRetriever, utc_now
from .selectors import AxisSelectors


logger = logging.getLogger(__name__)


def report_file_name(today: date) -> str:
    return f"axis_report_{today.isoformat()}.xls"


class AxisSession:
    def __init__(
        self,
        page: Page,
        *,
        base_url: str = "https://gtb1.axisbank.com/pre-login-interim",
        retriever: Optional[OtpRetriever] = None,
        selectors: Optional[AxisSelectors] = None,
        action_delay_ms: int = 2000,
    ) -> None:
        self.page = page
        self.base_url = base_url
        self.retriever = retriever
        self.selectors = selectors or AxisSelectors()
        self.action_delay_ms = action_delay_ms

    async def _settle(self, factor: float = 1.0) -> None:
        await self.page.wait_for_timeout(int(self.action_delay_ms * factor))

    def _check_otp_mode(self, otp_mode: str) -> None:
        if otp_mode not in ("manual", "store"):
            raise ValueError(f"Unknown otp_mode {otp_mode!r}")
        if otp_mode == "store" and self.retriever is None:
            raise ValueError("otp_mode='store' requires an OtpRetriever")

    async def _enter_otp(self, reference: datetime, *, otp_mode: str) -> None:
        """Manual mode pauses for the operator; store mode fills the first code newer than `reference`."""
        s = self.selectors
        page = self.page
        if otp_mode == "manual":
            logger.info("Paused for manual OTP entry and submit. Resume from the Playwright inspector when ready.")
            await page.pause()
            return

        otp = await self.retriever.retrieve(reference)
        await page.locator(s.otp_input).first.fill(otp)
        for text in s.otp_submit_texts:
            button = page.get_by_role("button", name=text)
            if await button.count() > 0:
                await button.first.click()
                break
        await self._settle(1.5)

    async def login(self, corporate_id: str, login_id: str, password: str, *, otp_mode: str = "manual") -> None:
        s = self.selectors
        page = self.page
        self._check_otp_mode(otp_mode)

        await page.goto(self.base_url, wait_until="networkidle")
        await page.get_by_role("textbox", name=s.corporate_id_textbox).fill(corporate_id)
        await self._settle()
        await page.get_by_role("textbox", name=s.login_id_textbox).fill(login_id)
        await self._settle()
        await page.get_by_role("button", name=s.proceed_button).click()
        await self._settle()
        await page.get_by_role("textbox", name=s.password_textbox).fill(password)
        await self._settle(0.5)

        reference = utc_now()
        await page.get_by_role("button", name=s.proceed_button).click()

        await self._enter_otp(reference, otp_mode=otp_mode)
        logger.info("Logged in to Axis.")

    async def download_transaction_report(
        self,
        download_dir: Path,
        *,
        from_day: int,
        to_day: int,
        today: Optional[date] = None,
    ) -> Path:
        s = self.selectors
        page = self.page

        await page.get_by_role("button", name=s.reports_button).click()
        await self._settle()
        await page.get_by_text(s.transaction_report_text).click()
        await self._settle()
        await page.get_by_role("radio", name=s.admin_report_radio).check()
        await self._settle()

        choose_date = page.get_by_role("button", name=re.compile(s.choose_date_button))
        await choose_date.first.click()
        await page.get_by_role("gridcell", name=str(from_day), exact=True).click()
        await self._settle()
        await choose_date.nth(1).click()
        await page.get_by_role("gridcell", name=str(to_day), exact=True).click()
        await self._settle()
        await page.get_by_role("button", name=s.generate_report_button).click()
        await self._settle(2.5)

        async with page.expect_download() as download_info:
            await page.get_by_role("button", name=s.download_all_button).click()
            await page.locator("div").filter(has_text=re.compile(s.xls_option_pattern)).click()
        download = await download_info.value

        download_dir.mkdir(parents=True, exist_ok=True)
        path = download_dir / report_file_name(today or date.today())
        await download.save_as(str(path))
        logger.info("Report saved: %s", path)
        return path

    async def upload_bulk_payment(self, file_path: Path) -> None:
        """Open Vendor Payments > Bulk Payment, upload `file_path` and proceed once the bank has validated it."""
        s = self.selectors
        page = self.page

        await page.get_by_role("button", name=s.payments_button).click()
        await self._settle()
        await page.get_by_text(s.new_payments_text).first.click()
        await self._settle()
        await page.get_by_role("button", name=s.vendor_payments_button).first.click()
        await self._settle()
        await page.get_by_role("tab", name=s.bulk_payment_tab).click()
        await self._settle()
        await page.get_by_role("radio", name=s.across_all_banks_radio).check()
        await self._settle(0.5)
        await page.locator("div").filter(has_text=re.compile(s.bulk_template_pattern)).first.click()
        await self._settle()

        logger.info("Uploading file: %s", file_path.name)
        await page.locator(s.file_input).set_input_files(str(file_path))
        await self._settle(1.5)
        await page.get_by_role("button", name=s.proceed_button).click()

        await page.get_by_text(s.validation_completed_text).wait_for(state="visible", timeout=60_000)
        logger.info("File validation completed.")
        await page.get_by_role("button", name=s.proceed_button).click()
        await self._settle(1.5)

    async def make_payment(self, *, otp_mode: str = "manual") -> bool:
        """
        Release the validated bulk file and authorize it with the payment OTP.

        Returns whether the bank confirmed the transfer; an unconfirmed payment is not an
        exception because the bank may still have accepted it.
        """
        s = self.selectors
        page = self.page
        self._check_otp_mode(otp_mode)

        reference = utc_now()
        await page.get_by_role("button", name=s.make_payment_button).click()
        await self._settle(1.5)
        await self._enter_otp(reference, otp_mode=otp_mode)

        success = page.locator("div").filter(has_text=re.compile(s.payment_success_pattern))
        try:
            await success.wait_for(state="visible", timeout=30_000)
            confirmed = True
            logger.info("Payment processed successfully.")
        except PlaywrightTimeoutError:
            confirmed = False
            logger.warning("Payment success message not found.")

        await page.get_by_role("button", name=s.back_to_overview_button).click()
        await self._settle(1.5)
        return confirmed
