from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Sequence

from pymongo import InsertOne, UpdateOne

from ..util.files import delete_quietly
from .ingest import ColumnMapping, read_report


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpsertSummary:
    inserted: int = 0
    updated: int = 0
    upserted: int = 0

    @property
    def total(self) -> int:
        return self.inserted + self.updated + self.upserted


class ResultsStore:
    """
    Upsert parsed report records into a Mongo collection.

    Records are keyed on the first non-empty `key_fields` value so re-running a report for
    an overlapping date range refreshes rows instead of duplicating them.
    """

    def __init__(self, collection: Any, *, key_fields: Sequence[str] = ("UTR", "CRN")) -> None:
        self._collection = collection
        self.key_fields = tuple(key_fields)

    def _key_for(self, record: dict) -> dict:
        for name in self.key_fields:
            value = record.get(name)
            if value not in (None, ""):
                return {name: value}
        return {}

    def build_operations(self, records: Iterable[dict]) -> list:
        ops: list = []
        for record in records:
            key = self._key_for(record)
            if key:
                ops.append(UpdateOne(key, {"$set": record}, upsert=True))
            else:
                ops.append(InsertOne(dict(record)))
        return ops

    async def upsert(self, records: Iterable[dict]) -> UpsertSummary:
        ops = self.build_operations(records)
        if not ops:
            logger.info("No records to save.")
            return UpsertSummary()

        result = await self._collection.bulk_write(ops, ordered=False)
        summary = UpsertSummary(
            inserted=int(result.inserted_count),
            updated=int(result.modified_count),
            upserted=int(result.upserted_count),
        )
        logger.info(
            "Saved %d record(s) (inserted=%d upserted=%d updated=%d)",
            len(ops),
            summary.inserted,
            summary.upserted,
            summary.updated,
        )
        return summary


async def ingest_report_file(
    path: Path,
    store: ResultsStore,
    *,
    mapping: ColumnMapping,
    header_row: int = 0,
    extra: Optional[Mapping[str, Any]] = None,
) -> int:
    """
    Parse a downloaded report and upsert it; `extra` fields are stamped on every record.

    The file is removed once its records are stored, and kept for inspection when nothing parsed.
    """
    records = read_report(path, mapping, header_row=header_row)
    if not records:
        logger.warning("No records parsed from %s; keeping the file for inspection.", path.name)
        return 0
    if extra:
        for record in records:
            record.update(extra)
    await store.upsert(records)
    delete_quietly(path)
    return len(records)
