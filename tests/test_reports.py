from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from pathlib import Path

import pytest
from openpyxl import Workbook
from pymongo import InsertOne, UpdateOne

from netbanking_sync.errors import ReportParseError
from netbanking_sync.reports.axis import AXIS_HEADER_ROW, AXIS_TRANSACTION_MAPPING
from netbanking_sync.reports.ingest import ColumnMapping, FieldSpec, parse_rows, read_report
from netbanking_sync.reports.store import ResultsStore, ingest_report_file
from netbanking_sync.util.amounts import format_amount, parse_amount


FETCHED = datetime(2025, 8, 22, 9, 30, tzinfo=timezone.utc)

HEADER = [
    "S. No.",
    "Transaction Date",
    "Beneficiary Name",
    "Beneficiary Account Number",
    "Beneficiary Bank",
    "Beneficiary IFSC",
    "Amount",
    "UTR",
    "CRN",
    "File Name",
    "Status",
    "Payment Mode",
]


def _row(**overrides) -> dict:
    row = {h: "" for h in HEADER}
    row.update(
        {
            "S. No.": "1",
            "Transaction Date": "01-08-2025",
            "Beneficiary Name": "RAVI KUMAR",
            "Beneficiary Account Number": "001234567890",
            "Beneficiary Bank": "HDFC BANK",
            "Beneficiary IFSC": "HDFC0000123",
            "Amount": "1,250.50",
            "UTR": "AXISN123456789",
            "CRN": "CRN001",
            "File Name": "payout_01.csv",
            "Status": "Executed",
            "Payment Mode": "IMPS",
        }
    )
    row.update(overrides)
    return row


def test_parse_rows_maps_columns_to_fields() -> None:
    records = parse_rows([_row()], AXIS_TRANSACTION_MAPPING, fetched_at=FETCHED)

    assert records == [
        {
            "Serial_No": "1",
            "Transaction_Date": "01-08-2025",
            "Beneficiary_Name": "RAVI KUMAR",
            "Beneficiary_Account_Number": "001234567890",
            "Beneficiary_Bank": "HDFC BANK",
            "Beneficiary_IFSC": "HDFC0000123",
            "Amount": 1250.5,
            "UTR": "AXISN123456789",
            "CRN": "CRN001",
            "File_Name": "payout_01.csv",
            "Status": "Executed",
            "Payment_Mode": "IMPS",
            "fetchedAt": FETCHED,
        }
    ]


def test_parse_rows_stops_at_summary_marker() -> None:
    rows = [
        _row(),
        _row(**{"S. No.": "2", "UTR": "U2"}),
        {"S. No.": "Payment Type Summary", "Transaction Date": ""},
        _row(**{"S. No.": "3", "UTR": "U3"}),
    ]

    records = parse_rows(rows, AXIS_TRANSACTION_MAPPING, fetched_at=FETCHED)

    assert [r["Serial_No"] for r in records] == ["1", "2"]


def test_parse_rows_skips_rows_missing_required_columns() -> None:
    rows = [_row(**{"Beneficiary Name": "  "}), _row(**{"Transaction Date": ""}), _row()]
    assert len(parse_rows(rows, AXIS_TRANSACTION_MAPPING, fetched_at=FETCHED)) == 1


def test_missing_optional_columns_take_defaults() -> None:
    mapping = ColumnMapping(
        fields=(
            FieldSpec("name", "Name", required=True),
            FieldSpec("note", "Note", default="-"),
            FieldSpec("amount", "Amount", convert=parse_amount),
        )
    )

    records = parse_rows([{"Name": "A"}], mapping, fetched_at=FETCHED)

    assert records == [{"name": "A", "note": "-", "amount": None, "fetchedAt": FETCHED}]


def test_failed_conversion_yields_none() -> None:
    def strict_int(value):
        return int(value)

    mapping = ColumnMapping(fields=(FieldSpec("n", "N", convert=strict_int),))
    assert parse_rows([{"N": "abc"}], mapping, fetched_at=FETCHED)[0]["n"] is None


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("1,00,000.50", 100000.5),
        ("INR 2,500.00", 2500.0),
        ("₹ 99", 99.0),
        ("-12.5", -12.5),
        (1500, 1500.0),
        ("", None),
        ("N/A", None),
        (None, None),
    ],
)
def test_parse_amount(raw, expected) -> None:
    assert parse_amount(raw) == expected


def test_format_amount_rounds_half_up() -> None:
    assert format_amount(10) == "10.00"
    assert format_amount(2.005) == "2.01"


def _write_axis_export(path: Path, rows: list[list[str]]) -> Path:
    wb = Workbook()
    ws = wb.active
    for i in range(AXIS_HEADER_ROW):
        ws.append([f"Axis Bank letterhead line {i + 1}"])
    ws.append(HEADER)
    for r in rows:
        ws.append(r)
    wb.save(path)
    return path


def test_read_report_from_xlsx(tmp_path: Path) -> None:
    data = [
        ["1", "01-08-2025", "RAVI KUMAR", "001234567890", "HDFC BANK", "HDFC0000123", "1,250.50", "U1", "", "f.csv", "Executed", "IMPS"],
        ["2", "02-08-2025", "ANITA", "", "", "", "99", "", "C2", "f.csv", "Pending", "NEFT"],
        ["Payment Method wise Summary"],
        ["3", "03-08-2025", "SHOULD NOT APPEAR", "", "", "", "1", "U3", "", "", "", ""],
    ]
    path = _write_axis_export(tmp_path / "axis_report_2025-08-22.xlsx", data)

    records = read_report(path, AXIS_TRANSACTION_MAPPING, header_row=AXIS_HEADER_ROW, fetched_at=FETCHED)

    assert [r["Beneficiary_Name"] for r in records] == ["RAVI KUMAR", "ANITA"]
    assert records[0]["Amount"] == 1250.5
    assert records[1]["Beneficiary_Bank"] == ""
    assert records[1]["CRN"] == "C2"


def test_read_report_rejects_unreadable_file(tmp_path: Path) -> None:
    bad = tmp_path / "broken.xls"
    bad.write_bytes(b"not a spreadsheet")

    with pytest.raises(ReportParseError):
        read_report(bad, AXIS_TRANSACTION_MAPPING)


class FakeBulkResult:
    def __init__(self, ops) -> None:
        self.inserted_count = sum(isinstance(o, InsertOne) for o in ops)
        self.upserted_count = sum(isinstance(o, UpdateOne) for o in ops)
        self.modified_count = 0


class FakeReportsCollection:
    def __init__(self) -> None:
        self.calls: list[tuple[list, bool]] = []

    async def bulk_write(self, ops, ordered=True):
        self.calls.append((list(ops), ordered))
        return FakeBulkResult(ops)


def test_results_store_upserts_by_key_and_inserts_keyless() -> None:
    coll = FakeReportsCollection()
    store = ResultsStore(coll)
    keyed = {"UTR": "U1", "CRN": "C1", "Amount": 10.0}
    crn_only = {"UTR": "", "CRN": "C2", "Amount": 20.0}
    keyless = {"UTR": "", "CRN": "", "Amount": 30.0}

    summary = asyncio.run(store.upsert([keyed, crn_only, keyless]))

    ops, ordered = coll.calls[0]
    assert ordered is False
    assert ops == [
        UpdateOne({"UTR": "U1"}, {"$set": keyed}, upsert=True),
        UpdateOne({"CRN": "C2"}, {"$set": crn_only}, upsert=True),
        InsertOne(keyless),
    ]
    assert summary.inserted == 1
    assert summary.upserted == 2
    assert summary.total == 3


def test_results_store_skips_empty_batches() -> None:
    coll = FakeReportsCollection()
    summary = asyncio.run(ResultsStore(coll).upsert([]))
    assert coll.calls == []
    assert summary.total == 0


def test_ingest_report_file_saves_and_deletes(tmp_path: Path) -> None:
    data = [["1", "01-08-2025", "RAVI KUMAR", "", "", "", "100", "U1", "", "", "", ""]]
    path = _write_axis_export(tmp_path / "report.xlsx", data)
    coll = FakeReportsCollection()

    count = asyncio.run(ingest_report_file(path, ResultsStore(coll), mapping=AXIS_TRANSACTION_MAPPING, header_row=AXIS_HEADER_ROW))

    assert count == 1
    assert len(coll.calls) == 1
    assert not path.exists()


def test_ingest_report_file_keeps_file_when_nothing_parsed(tmp_path: Path) -> None:
    path = _write_axis_export(tmp_path / "report.xlsx", [["Payment Type Summary"]])
    coll = FakeReportsCollection()

    assert asyncio.run(ingest_report_file(path, ResultsStore(coll), mapping=AXIS_TRANSACTION_MAPPING, header_row=AXIS_HEADER_ROW)) == 0
    assert coll.calls == []
    assert path.exists()
