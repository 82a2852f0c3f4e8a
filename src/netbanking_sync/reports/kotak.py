from __future__ import annotations

from ..util.amounts import parse_amount
from .ingest import ColumnMapping, FieldSpec


def _column(field: str, column: str) -> FieldSpec:
    return FieldSpec(field, column, default=None)


# "Payment Grid Details" XLS from CMS Payment Center (one file per processed upload).
KOTAK_PAYMENT_GRID_MAPPING = ColumnMapping(
    fields=(
        _column("Sending_Account_Number", "Sending Account Number"),
        _column("Receiver_Name", "Receiver Name"),
        _column("Receiver_Code", "Receiver Code"),
        _column("Product_Code", "Product Code"),
        _column("Package_Code", "Package Code"),
        _column("IFSC_Code", "IFSC Code"),
        _column("Receiver_Account_Number", "Receiver Account Number"),
        FieldSpec("Amount", "Amount", convert=parse_amount),
        _column("Instrument_Date", "Instrument Date"),
        _column("Effective_Date", "Effective Date"),
        _column("UTR_SrNo", "UTR SrNo"),
        _column("Instrument_No", "Instrument No"),
        _column("Instrument_Status", "Instrument Status"),
        _column("Maker", "Maker"),
        _column("Maker_DateTime", "Maker DateTime"),
        _column("Checker_1", "Checker 1"),
        _column("Checker_1_DateTime", "Checker 1 DateTime"),
        _column("Checker_2", "Checker 2"),
        _column("Checker_2_DateTime", "Checker 2 DateTime"),
        _column("Sent_By", "Sent By"),
        _column("Sent_By_DateTime", "Sent By DateTime"),
        _column("Instrument_Payment_Ref_No", "Instrument Payment Ref No"),
        _column("Batch_Payment_Ref_No", "Batch Payment Ref No"),
        _column("Payment_Details", "Payment Details"),
        _column("Payment_Details_2", "Payment Details 2"),
        _column("Payment_Details_3", "Payment Details 3"),
        _column("Payment_Details_4", "Payment Details 4"),
        # The export's header carries a trailing space; read_report strips column names.
        _column("Host_Processing_Date_", "Host Processing Date & Time"),
        _column("Reject_Remarks", "Reject Remarks"),
        _column("Debit_Type", "Debit Type"),
        _column("Verified_Beneficiary_Name", "Verified Beneficiary Name"),
    ),
)

# Instrument_Payment_Ref_No is unique per instrument; UTR SrNo is only a row counter.
KOTAK_PAYMENT_GRID_KEYS = ("Instrument_Payment_Ref_No",)
