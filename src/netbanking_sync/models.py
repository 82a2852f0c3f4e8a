from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def ensure_utc(value: datetime) -> datetime:
    # Mongo hands back naive datetimes (UTC) unless the client is tz_aware.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class OtpRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def _to_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    def masked(self) -> str:
        return mask_code(self.code)


class RetrievalRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    reference_timestamp: datetime
    timeout: float = Field(default=60.0, gt=0)
    poll_interval: float = Field(default=3.0, gt=0)

    @field_validator("reference_timestamp")
    @classmethod
    def _to_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class PayoutInstruction(BaseModel):
    """A `processing` payout document, projected to what the Kotak bulk-upload file needs."""

    id: Any
    payout_id: str = ""
    amount: float
    beneficiary_name: str = ""
    ifsc: str = ""
    account: str = ""

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "PayoutInstruction":
        beneficiary = doc.get("beneficiary") or {}
        return cls(
            id=doc.get("_id"),
            payout_id=str(doc.get("payoutId") or ""),
            amount=float(doc.get("amount") or 0),
            beneficiary_name=str(beneficiary.get("name") or ""),
            ifsc=str(beneficiary.get("ifsc") or ""),
            account=str(beneficiary.get("account") or ""),
        )


def mask_code(code: Optional[str]) -> str:
    code = code or ""
    return f"{code[:2]}****{code[-2:]}" if len(code) >= 4 else "***"
