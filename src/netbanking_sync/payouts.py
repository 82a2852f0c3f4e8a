from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable, Sequence

from pymongo import ASCENDING

from .models import PayoutInstruction
from .util.amounts import format_amount


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KotakCsvProfile:
    """Static columns of the Kotak CMS bulk payment file for our corporate account."""

    client_code: str = "TTPL7"
    product_code: str = "VPAY"
    payment_type: str = "IMPS"
    debit_account: str = ""
    bank_code_indicator: str = "KKBK0000660"


class PayoutRepository:
    def __init__(self, collection: Any) -> None:
        self._collection = collection

    async def fetch_processing(self, *, limit: int = 100) -> list[PayoutInstruction]:
        cursor = self._collection.find({"status": "processing"}).sort("createdAt", ASCENDING).limit(limit)
        docs = await cursor.to_list(length=limit)
        payouts = [PayoutInstruction.from_document(d) for d in docs]
        logger.info("Found %d processing payout(s).", len(payouts))
        return payouts

    async def mark_queued(self, ids: Sequence[Any]) -> int:
        if not ids:
            return 0
        result = await self._collection.update_many({"_id": {"$in": list(ids)}}, {"$set": {"status": "queued"}})
        logger.info("Updated %d payout(s) to 'queued' status.", result.modified_count)
        return int(result.modified_count)


def build_kotak_rows(
    payouts: Iterable[PayoutInstruction],
    *,
    profile: KotakCsvProfile,
    today: date,
) -> list[list[str]]:
    day = today.strftime("%d/%m/%Y")
    rows: list[list[str]] = []
    for p in payouts:
        rows.append(
            [
                profile.client_code,
                profile.product_code,
                profile.payment_type,
                p.payout_id,
                day,
                "",
                profile.debit_account,
                format_amount(p.amount),
                profile.bank_code_indicator,
                "",
                p.beneficiary_name,
                "",
                p.ifsc,
                p.account,
            ]
        )
    return rows


def csv_file_name(now: datetime) -> str:
    return now.strftime("%d_%m_%Y_%H_%M") + ".csv"


def write_payout_csv(path: Path, rows: Sequence[Sequence[str]]) -> Path:
    # The bank's parser expects no header row.
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as fh:
        csv.writer(fh).writerows(rows)
    logger.info("CSV file generated: %s (%d rows)", path, len(rows))
    return path
