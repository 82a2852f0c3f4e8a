from .axis_payments import report_payment_result, run_axis_payments
from .axis_report import run_axis_report
from .base import JobContext
from .kotak_payouts import PayoutBatch, finalize_payout_batch, prepare_payout_file, run_kotak_payouts, verify_upload
from .kotak_statement import run_kotak_statement, store_grid_download

__all__ = [
    "JobContext",
    "PayoutBatch",
    "finalize_payout_batch",
    "prepare_payout_file",
    "report_payment_result",
    "run_axis_payments",
    "run_axis_report",
    "run_kotak_payouts",
    "run_kotak_statement",
    "store_grid_download",
    "verify_upload",
]
