from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional, Protocol

from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from ..errors import TransientStoreError
from ..models import OtpRecord, ensure_utc


logger = logging.getLogger(__name__)


class OtpStore(Protocol):
    async def latest_after(self, reference_timestamp: datetime) -> Optional[OtpRecord]:
        """Return the newest record created strictly after `reference_timestamp`, if any."""
        ...


class MongoOtpStore:
    """
    Read-only view over the `otps` collection filled by the SMS/email capture agent.

    The collection handle is owned by the caller (one client per process); this class
    never connects or closes anything.
    """

    def __init__(self, collection: Any, *, code_field: str = "otp", created_at_field: str = "createdAt") -> None:
        self._collection = collection
        self.code_field = code_field
        self.created_at_field = created_at_field

    async def latest_after(self, reference_timestamp: datetime) -> Optional[OtpRecord]:
        query = {self.created_at_field: {"$gt": ensure_utc(reference_timestamp)}}
        try:
            doc = await self._collection.find_one(query, sort=[(self.created_at_field, DESCENDING)])
        except PyMongoError as e:
            raise TransientStoreError(f"OTP store query failed: {e}") from e

        if not doc:
            return None

        raw_code = doc.get(self.code_field)
        code = "" if raw_code is None else str(raw_code).strip()
        created_at = doc.get(self.created_at_field)
        if not code or not isinstance(created_at, datetime):
            logger.warning("Ignoring malformed OTP document (_id=%s).", doc.get("_id"))
            return None
        return OtpRecord(code=code, created_at=created_at)


class InMemoryOtpStore:
    """Append-only in-process store with the same query semantics as MongoOtpStore."""

    def __init__(self) -> None:
        self._records: list[OtpRecord] = []

    def append(self, code: str, created_at: datetime) -> OtpRecord:
        record = OtpRecord(code=code, created_at=created_at)
        self._records.append(record)
        return record

    def __len__(self) -> int:
        return len(self._records)

    async def latest_after(self, reference_timestamp: datetime) -> Optional[OtpRecord]:
        ref = ensure_utc(reference_timestamp)
        newer = [r for r in self._records if r.created_at > ref]
        if not newer:
            return None
        return max(newer, key=lambda r: r.created_at)
