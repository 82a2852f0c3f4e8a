from __future__ import annotations

from datetime import datetime
from typing import Optional


class NetbankingSyncError(RuntimeError):
    """Base class for errors raised by this package."""


class TransientStoreError(NetbankingSyncError):
    """
    A store query failed (connectivity, server selection, ...).

    The OTP retriever treats this as "no code yet" and keeps polling.
    """


class OtpTimeoutError(NetbankingSyncError, TimeoutError):
    """No OTP newer than the reference timestamp appeared within the polling budget."""

    def __init__(self, *, reference_timestamp: datetime, timeout: float, attempts: int) -> None:
        self.reference_timestamp = reference_timestamp
        self.timeout = timeout
        self.attempts = attempts
        super().__init__(
            f"No OTP newer than {reference_timestamp.isoformat()} after {timeout:g}s ({attempts} polls)"
        )


class AlertDeliveryError(NetbankingSyncError):
    """An operator alert could not be delivered. Logged, never propagated."""


class StepFailedError(NetbankingSyncError):
    def __init__(self, step: str, message: Optional[str] = None) -> None:
        self.step = step
        super().__init__(message or f"Step failed: {step}")


class UploadRejectedError(NetbankingSyncError):
    """The bank portal did not report a clean upload for the payout file."""

    def __init__(self, file_name: str, remarks: str) -> None:
        self.file_name = file_name
        self.remarks = remarks
        super().__init__(f"Approval skipped due to upload issue (file={file_name!r} remarks={remarks!r})")


class ReportParseError(NetbankingSyncError):
    """A downloaded report could not be read."""


class PaymentNotConfirmedError(NetbankingSyncError):
    """The bank never showed its transfer confirmation after the payment OTP was submitted."""

    def __init__(self, file_name: str) -> None:
        self.file_name = file_name
        super().__init__(f"Payment not confirmed (file={file_name!r})")
