from .messages import (
    format_db_failure,
    format_no_upload_file,
    format_payment_success,
    format_payment_unconfirmed,
    format_report_saved,
    format_run_failure,
    format_step_failure,
    format_upload_issue,
)
from .sinks import AlertSink, LoggingAlertSink, TelegramAlertSink, build_alert_sink

__all__ = [
    "AlertSink",
    "LoggingAlertSink",
    "TelegramAlertSink",
    "build_alert_sink",
    "format_db_failure",
    "format_no_upload_file",
    "format_payment_success",
    "format_payment_unconfirmed",
    "format_report_saved",
    "format_run_failure",
    "format_step_failure",
    "format_upload_issue",
]
