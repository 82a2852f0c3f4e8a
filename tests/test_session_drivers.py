from __future__ import annotations

import asyncio
import re
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from netbanking_sync.alerts.messages import format_upload_issue
from netbanking_sync.alerts.sinks import LoggingAlertSink
from netbanking_sync.errors import OtpTimeoutError, StepFailedError, UploadRejectedError
from netbanking_sync.jobs.base import JobContext
from netbanking_sync.jobs.kotak_payouts import verify_upload
from netbanking_sync.otp.retriever import OtpRetriever
from netbanking_sync.otp.store import InMemoryOtpStore
from netbanking_sync.portal import axis as axis_portal
from netbanking_sync.portal import kotak as kotak_portal
from netbanking_sync.portal.axis import AxisSession
from netbanking_sync.portal.kotak import KotakSession
from netbanking_sync.portal.selectors import AxisSelectors


T = datetime(2025, 8, 1, 10, 0, 0, tzinfo=timezone.utc)
OTP = "482913"


class FakeLocator:
    """Records every action against the page's shared event log."""

    def __init__(self, page: "FakePage", desc: str) -> None:
        self.page = page
        self.desc = desc

    @property
    def first(self) -> "FakeLocator":
        return self

    def nth(self, index: int) -> "FakeLocator":
        return self

    def filter(self, *, has_text) -> "FakeLocator":
        text = has_text.pattern if isinstance(has_text, re.Pattern) else has_text
        return FakeLocator(self.page, f"filter:{text}")

    def locator(self, selector: str) -> "FakeLocator":
        return FakeLocator(self.page, f"css:{selector}")

    def get_by_role(self, role: str, *, name=None, exact=None) -> "FakeLocator":
        label = name.pattern if isinstance(name, re.Pattern) else name
        return FakeLocator(self.page, f"{role}:{label}")

    def get_by_text(self, text: str) -> "FakeLocator":
        return FakeLocator(self.page, f"text:{text}")

    def get_by_label(self, text: str) -> "FakeLocator":
        return FakeLocator(self.page, f"label:{text}")

    async def click(self) -> None:
        self.page.events.append(("click", self.desc))

    async def fill(self, value: str) -> None:
        self.page.events.append(("fill", self.desc, value))

    async def check(self) -> None:
        self.page.events.append(("check", self.desc))

    async def focus(self) -> None:
        self.page.events.append(("focus", self.desc))

    async def set_input_files(self, files: str) -> None:
        self.page.events.append(("set_input_files", self.desc, files))

    async def count(self) -> int:
        return 1

    async def wait_for(self, *, state: str = "visible", timeout: float = 30_000) -> None:
        if self.desc in self.page.missing:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {self.desc}")
        self.page.events.append(("wait_for", self.desc))


class FakePage(FakeLocator):
    def __init__(self) -> None:
        self.events: list[tuple] = []
        self.missing: set[str] = set()
        super().__init__(self, "page")

    async def goto(self, url: str, **kwargs) -> None:
        self.events.append(("goto", url))

    async def wait_for_timeout(self, ms: int) -> None:
        pass

    async def pause(self) -> None:
        self.events.append(("pause",))

    def frame_locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, f"frame:{selector}")


class RecordingRetriever(OtpRetriever):
    def __init__(self, page: FakePage, store: InMemoryOtpStore, clock) -> None:
        super().__init__(store, timeout=6.0, poll_interval=3.0, clock=clock, sleep=clock.sleep)
        self.page = page

    async def retrieve(self, reference_timestamp, timeout=None, poll_interval=None) -> str:
        self.page.events.append(("retrieve", reference_timestamp))
        return await super().retrieve(reference_timestamp, timeout=timeout, poll_interval=poll_interval)


@pytest.fixture
def page(monkeypatch: pytest.MonkeyPatch) -> FakePage:
    fake = FakePage()

    def fake_utc_now() -> datetime:
        fake.events.append(("reference",))
        return T

    monkeypatch.setattr(kotak_portal, "utc_now", fake_utc_now)
    monkeypatch.setattr(axis_portal, "utc_now", fake_utc_now)
    return fake


@pytest.fixture
def store() -> InMemoryOtpStore:
    s = InMemoryOtpStore()
    s.append(OTP, T + timedelta(seconds=5))
    return s


def test_kotak_login_captures_reference_before_secure_login_then_fills_otp(page, store, clock) -> None:
    session = KotakSession(page, retriever=RecordingRetriever(page, store, clock), base_url="https://kotak.test/")

    asyncio.run(session.login("111222333", "pw"))

    assert page.events == [
        ("goto", "https://kotak.test/"),
        ("fill", "textbox:CRN, Username or Card Number", "111222333"),
        ("fill", "textbox:Password", "pw"),
        ("reference",),
        ("click", "button:Secure login"),
        ("retrieve", T),
        ("fill", "textbox:otpMobile", OTP),
        ("click", "button:Secure login"),
        ("click", "text:CMS NetIT-New"),
    ]


def test_kotak_approve_all_requests_otp_after_continue(page, store, clock) -> None:
    session = KotakSession(page, retriever=RecordingRetriever(page, store, clock))

    asyncio.run(session.approve_all())

    events = page.events
    reference = events.index(("reference",))
    assert events[reference + 1] == ("click", "button:Continue")
    assert events[reference + 2] == ("retrieve", T)
    fill = events.index(("fill", "css:#AuthDialog-innerCt input#token", OTP))
    assert fill > reference + 2
    assert events.index(("click", "button:Submit")) > fill
    assert ("click", "button:Approve All") in events[:reference]


def test_axis_store_login_fills_otp_after_password_proceed(page, store, clock) -> None:
    otp_input = AxisSelectors().otp_input
    session = AxisSession(page, retriever=RecordingRetriever(page, store, clock), action_delay_ms=0)

    asyncio.run(session.login("corp", "user", "pw", otp_mode="store"))

    events = page.events
    reference = events.index(("reference",))
    assert events[reference - 1] == ("fill", "textbox:Password*", "pw")
    assert events[reference + 1] == ("click", "button:Proceed")
    assert events[reference + 2] == ("retrieve", T)
    assert events[reference + 3] == ("fill", f"css:{otp_input}", OTP)
    assert events[reference + 4] == ("click", "button:Submit")


def test_axis_store_mode_without_retriever_is_rejected(page) -> None:
    with pytest.raises(ValueError, match="OtpRetriever"):
        asyncio.run(AxisSession(page).login("corp", "user", "pw", otp_mode="store"))
    assert page.events == []


def test_otp_timeout_during_login_sends_one_alert_naming_the_step(page, clock) -> None:
    alerts = LoggingAlertSink()
    session = KotakSession(page, retriever=RecordingRetriever(page, InMemoryOtpStore(), clock))

    async def run() -> None:
        async with JobContext("Kotak Payout Upload", alerts=alerts) as ctx:
            async with ctx.step("Login Account A"):
                await session.login("111222333", "pw")

    with pytest.raises(StepFailedError) as exc:
        asyncio.run(run())

    assert exc.value.step == "Login Account A"
    assert isinstance(exc.value.__cause__, OtpTimeoutError)
    assert len(alerts.sent) == 1
    assert "Step: Login Account A" in alerts.sent[0]
    assert "No OTP newer than" in alerts.sent[0]
    assert not any(e[0] == "fill" and e[1] == "textbox:otpMobile" for e in page.events)


def test_upload_issue_sends_only_the_upload_issue_message() -> None:
    alerts = LoggingAlertSink()
    remarks = "File Uploaded Successfully. 2 records rejected"

    async def run() -> None:
        async with JobContext("Kotak Payout Upload", alerts=alerts) as ctx:
            async with ctx.step("Upload Status Verification"):
                await verify_upload(ctx, "payout_01.csv", remarks)

    with pytest.raises(StepFailedError) as exc:
        asyncio.run(run())

    assert isinstance(exc.value.__cause__, UploadRejectedError)
    assert alerts.sent == [format_upload_issue("payout_01.csv", remarks)]


def test_clean_upload_passes_verification_without_alert() -> None:
    alerts = LoggingAlertSink()

    async def run() -> None:
        async with JobContext("Kotak Payout Upload", alerts=alerts) as ctx:
            async with ctx.step("Upload Status Verification"):
                await verify_upload(ctx, "payout_01.csv", "File Uploaded Successfully")

    asyncio.run(run())
    assert alerts.sent == []


def test_axis_bulk_upload_waits_for_validation_before_proceeding(page, tmp_path: Path) -> None:
    bulk = tmp_path / "vendors.xlsx"
    session = AxisSession(page, action_delay_ms=0)

    asyncio.run(session.upload_bulk_payment(bulk))

    events = page.events
    assert ("check", "radio:Across All Banks") in events
    assert ("click", "filter:^Admin BulkXLSXCUSTOM$") in events
    upload = events.index(("set_input_files", 'css:input[type="file"]', str(bulk)))
    validated = events.index(("wait_for", "text:Validation Completed"))
    assert events[upload + 1] == ("click", "button:Proceed")
    assert validated > upload + 1
    assert events[validated + 1] == ("click", "button:Proceed")


def test_axis_bulk_upload_fails_when_validation_never_completes(page, tmp_path: Path) -> None:
    page.missing.add("text:Validation Completed")

    with pytest.raises(PlaywrightTimeoutError):
        asyncio.run(AxisSession(page, action_delay_ms=0).upload_bulk_payment(tmp_path / "vendors.xlsx"))
    assert ("click", "button:Make Payment") not in page.events


def test_axis_make_payment_captures_reference_right_before_make_payment(page, store, clock) -> None:
    otp_input = AxisSelectors().otp_input
    session = AxisSession(page, retriever=RecordingRetriever(page, store, clock), action_delay_ms=0)

    confirmed = asyncio.run(session.make_payment(otp_mode="store"))

    assert confirmed is True
    assert page.events[:4] == [
        ("reference",),
        ("click", "button:Make Payment"),
        ("retrieve", T),
        ("fill", f"css:{otp_input}", OTP),
    ]
    assert page.events[-2:] == [
        ("wait_for", "filter:^Fund transfer successful$"),
        ("click", "button:Back to Payment Overview"),
    ]


def test_axis_make_payment_manual_mode_pauses_after_make_payment(page) -> None:
    confirmed = asyncio.run(AxisSession(page, action_delay_ms=0).make_payment(otp_mode="manual"))

    assert confirmed is True
    assert page.events[:3] == [("reference",), ("click", "button:Make Payment"), ("pause",)]
    assert not any(e[0] == "retrieve" for e in page.events)


def test_axis_make_payment_without_confirmation_returns_false(page, store, clock) -> None:
    page.missing.add("filter:^Fund transfer successful$")
    session = AxisSession(page, retriever=RecordingRetriever(page, store, clock), action_delay_ms=0)

    confirmed = asyncio.run(session.make_payment(otp_mode="store"))

    assert confirmed is False
    assert page.events[-1] == ("click", "button:Back to Payment Overview")
