from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import AsyncIterator, Optional

from playwright.async_api import FrameLocator, Page, expect

from ..otp.retriever import OtpRetriever, utc_now
from .selectors import KotakSelectors


logger = logging.getLogger(__name__)

UPLOAD_SUCCESS_TEXT = "File Uploaded Successfully"


def upload_succeeded(remarks: str) -> bool:
    """A clean upload says "File Uploaded Successfully" and mentions no rejected records."""
    return UPLOAD_SUCCESS_TEXT.lower() in (remarks or "").lower() and "rejected" not in (remarks or "").lower()


def grid_file_name(day: date, page_index: int, file_index: int) -> str:
    return f"payment_{day.strftime('%d-%m-%Y')}_p{page_index}_f{file_index}.xls"


@dataclass(frozen=True)
class GridDownload:
    path: Path
    page_index: int
    file_index: int


class KotakSession:
    """
    One logged-in Kotak netbanking page. Each OTP request captures its reference instant
    right before the click that makes the bank send the SMS.
    """

    def __init__(
        self,
        page: Page,
        *,
        retriever: OtpRetriever,
        base_url: str = "https://netbanking.kotak.com/knb2/",
        selectors: Optional[KotakSelectors] = None,
        action_delay_ms: int = 2000,
    ) -> None:
        self.page = page
        self.retriever = retriever
        self.base_url = base_url
        self.selectors = selectors or KotakSelectors()
        self.action_delay_ms = action_delay_ms

    async def _settle(self, factor: float = 1.0) -> None:
        await self.page.wait_for_timeout(int(self.action_delay_ms * factor))

    @property
    def cms(self) -> FrameLocator:
        return self.page.frame_locator(self.selectors.cms_frame)

    async def login(self, crn: str, password: str) -> None:
        s = self.selectors
        page = self.page
        await page.goto(self.base_url)
        await page.get_by_role("textbox", name=s.username_textbox).fill(crn)
        await self._settle()
        await page.get_by_role("textbox", name=s.password_textbox).fill(password)
        await self._settle()

        reference = utc_now()
        await page.get_by_role("button", name=s.secure_login_button).click()

        otp = await self.retriever.retrieve(reference)
        await page.get_by_role("textbox", name=s.otp_textbox).fill(otp)
        await self._settle()
        await page.get_by_role("button", name=s.secure_login_button).click()
        await self._settle(1.5)
        await page.get_by_text(s.cms_entry_text).click()
        logger.info("Logged in to Kotak CMS.")

    async def upload_file(self, csv_path: Path, *, file_name: Optional[str] = None) -> str:
        """Upload a bulk payment CSV and return the portal's remarks for it."""
        s = self.selectors
        frame = self.cms
        name = file_name or csv_path.name

        await self._settle()
        await frame.get_by_role("link", name=s.payments_link).click()
        await frame.get_by_role("link", name=s.file_upload_link).click()
        await self._settle()
        await frame.get_by_role("button", name=s.file_upload_button).click()
        await self._settle()
        await frame.locator(s.upload_format_select).get_by_text("Select").click()
        await frame.get_by_role("listitem", name=re.compile(s.upload_format_option, re.I)).click()
        await self._settle()

        async with self.page.expect_file_chooser() as chooser_info:
            await frame.get_by_role("button", name=s.select_file_button).click()
        chooser = await chooser_info.value
        await chooser.set_files(str(csv_path))
        await frame.get_by_role("button", name=s.upload_button, exact=True).click()
        logger.info("Upload initiated for %s", name)
        await self._settle(5)

        # The grid only picks up the processed file after a few manual refreshes.
        for factor in (2.5, 1.5, 0):
            await frame.get_by_label(s.refresh_label).click()
            if factor:
                await self._settle(factor)

        remarks_cell = frame.get_by_role("row").filter(has_text=name).locator(s.remarks_cell)
        await expect(remarks_cell).to_have_text(re.compile(s.upload_status_pattern, re.I), timeout=90_000)
        remarks = (await remarks_cell.inner_text()).strip()
        logger.info("Upload remark for %s: %r", name, remarks)
        return remarks

    async def approve_all(self) -> None:
        s = self.selectors
        frame = self.cms

        await self._settle()
        await frame.get_by_role("link", name=s.payments_link).click()
        await self._settle()
        await frame.locator(s.more_button).click()
        await frame.get_by_role("link", name=s.approve_link).click()
        await self._settle()
        await frame.get_by_role("button", name=s.approve_all_button).click()
        await self._settle()

        reference = utc_now()
        await frame.get_by_role("button", name=s.continue_button).click()

        otp = await self.retriever.retrieve(reference)
        otp_input = frame.locator(s.auth_otp_input)
        await otp_input.focus()
        await otp_input.fill(otp)
        await self._settle()
        await frame.get_by_role("button", name=s.submit_button).click()
        await self._settle(2.5)

        for factor in (2.5, 0):
            await frame.get_by_label(s.refresh_label).click()
            if factor:
                await self._settle(factor)
        logger.info("Approval submitted.")

    async def _open_payment_center(self) -> None:
        s = self.selectors
        frame = self.cms
        await frame.get_by_role("link", name=s.payments_link).click()
        await frame.get_by_role("link", name=s.payment_center_link).click()
        await self._settle(1.5)

    async def download_processed_files(self, download_dir: Path, *, day: date) -> AsyncIterator[GridDownload]:
        """
        Walk Payment Center for files processed on `day` and download each one's grid XLS.

        Yields after every download so the caller can store the file before the grid is reloaded.
        """
        s = self.selectors
        frame = self.cms
        download_dir.mkdir(parents=True, exist_ok=True)

        await self._settle(1.5)
        await self._open_payment_center()
        await frame.locator(s.filter_tool).click()
        await frame.get_by_placeholder(s.status_placeholder).click()
        await frame.locator(s.uncheck_all_link).click()
        await self._settle(0.5)
        await frame.get_by_role("option", name=s.processed_option).locator("span").click()
        await frame.locator(s.date_picker).click()
        await self._settle(1.5)
        await frame.get_by_role("link", name=str(day.day), exact=True).click()
        await self._settle(1.5)
        await frame.get_by_role("button", name=s.view_button).click()
        await self._settle(0.25)
        await frame.get_by_role("link", name=s.page_size_link).click()
        await self._settle()

        page_index = 1
        while True:
            file_count = await frame.locator(s.file_rows).count()
            logger.info("Payment Center page %d: %d file(s)", page_index, file_count)

            for i in range(file_count):
                await frame.locator(s.row_more_button.format(index=i)).click()
                await self._settle(0.5)
                await frame.get_by_role("link", name=s.view_record_link).click()
                await self._settle(2.5)

                async with self.page.expect_download() as download_info:
                    await frame.get_by_title(s.grid_download_title).click()
                    await self._settle(1.5)
                    await frame.get_by_role("link", name=s.xls_link).click()
                download = await download_info.value
                path = download_dir / grid_file_name(day, page_index, i + 1)
                await download.save_as(str(path))
                logger.info("Downloaded %s", path.name)

                yield GridDownload(path=path, page_index=page_index, file_index=i + 1)

                await self._settle(2)
                await self._open_payment_center()

            next_button = frame.locator(s.next_page_button)
            if s.disabled_class in (await next_button.get_attribute("class") or ""):
                logger.info("No more Payment Center pages.")
                return
            await next_button.click()
            await self._settle()
            page_index += 1

    async def logout(self) -> None:
        s = self.selectors
        await self._settle(1.5)
        await self.page.get_by_role("listitem").filter(has_text=s.profile_menu_text).locator("span").click()
        await self._settle(1.5)
        await self.page.locator("app-header").get_by_text(s.logout_text).click()
        logger.info("Logged out of Kotak.")
