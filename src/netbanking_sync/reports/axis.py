from __future__ import annotations

from ..util.amounts import parse_amount
from .ingest import ColumnMapping, FieldSpec


# The Axis "Transaction Analysis Report" has 15 rows of letterhead before the column header.
AXIS_HEADER_ROW = 15

AXIS_TRANSACTION_MAPPING = ColumnMapping(
    fields=(
        FieldSpec("Serial_No", "S. No."),
        FieldSpec("Transaction_Date", "Transaction Date", required=True),
        FieldSpec("Beneficiary_Name", "Beneficiary Name", required=True),
        FieldSpec("Beneficiary_Account_Number", "Beneficiary Account Number"),
        FieldSpec("Beneficiary_Bank", "Beneficiary Bank"),
        FieldSpec("Beneficiary_IFSC", "Beneficiary IFSC"),
        FieldSpec("Amount", "Amount", convert=parse_amount),
        FieldSpec("UTR", "UTR"),
        FieldSpec("CRN", "CRN"),
        FieldSpec("File_Name", "File Name"),
        FieldSpec("Status", "Status"),
        FieldSpec("Payment_Mode", "Payment Mode"),
    ),
    stop_markers=(
        "payment type summary",
        "payment method wise summary",
        "note: unless the constituent",
    ),
)
