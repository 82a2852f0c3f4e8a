from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Optional, Union

import pandas as pd

from ..errors import ReportParseError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldSpec:
    field: str
    column: str
    required: bool = False
    default: Any = ""
    convert: Optional[Callable[[Any], Any]] = None


@dataclass(frozen=True)
class ColumnMapping:
    """
    Declarative column -> record field mapping for a spreadsheet export.

    `stop_markers` are lower-case phrases; the first row whose text contains one ends the
    data section (exports append summary tables after the transactions).
    """

    fields: tuple[FieldSpec, ...]
    stop_markers: tuple[str, ...] = field(default_factory=tuple)

    def is_stop_row(self, row: Mapping[str, Any]) -> bool:
        text = " ".join(str(v) for v in row.values() if v is not None).lower()
        return any(marker in text for marker in self.stop_markers)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_rows(
    rows: Iterable[Mapping[str, Any]],
    mapping: ColumnMapping,
    *,
    fetched_at: Optional[datetime] = None,
) -> list[dict]:
    stamp = fetched_at or datetime.now(timezone.utc)
    out: list[dict] = []
    skipped = 0

    for row in rows:
        if mapping.is_stop_row(row):
            logger.info("Stop marker found; halting report processing.")
            break

        if any(spec.required and _is_blank(row.get(spec.column)) for spec in mapping.fields):
            skipped += 1
            continue

        record: dict = {}
        for spec in mapping.fields:
            raw = row.get(spec.column)
            if _is_blank(raw):
                record[spec.field] = None if spec.convert else spec.default
                continue
            value = raw.strip() if isinstance(raw, str) else raw
            if spec.convert is not None:
                try:
                    value = spec.convert(value)
                except (TypeError, ValueError):
                    logger.debug("Could not convert column=%r value=%r", spec.column, raw)
                    value = None
            record[spec.field] = value
        record["fetchedAt"] = stamp
        out.append(record)

    logger.info("Extracted %d record(s) (skipped %d incomplete row(s)).", len(out), skipped)
    return out


def read_report(
    path: Union[str, Path],
    mapping: ColumnMapping,
    *,
    header_row: int = 0,
    fetched_at: Optional[datetime] = None,
) -> list[dict]:
    """Read the first sheet of `path` (header on 0-based `header_row`) and map its rows."""
    p = Path(path)
    try:
        frame = pd.read_excel(p, sheet_name=0, header=header_row, dtype=str)
    except Exception as e:
        raise ReportParseError(f"Could not read report {p.name}: {e}") from e

    frame = frame.fillna("")
    frame.columns = [str(c).strip() for c in frame.columns]
    logger.info("Read %d potential row(s) from %s", len(frame), p.name)
    return parse_rows(frame.to_dict(orient="records"), mapping, fetched_at=fetched_at)
