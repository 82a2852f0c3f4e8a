from __future__ import annotations

from typing import Optional


def _fence(text: str) -> str:
    # Backticks inside the payload would close the Markdown code fence early.
    return "```" + (text or "").replace("`", "") + "```"


def format_step_failure(job: str, step: str, error: BaseException) -> str:
    return f"❌ *{job} Failed*\n🔍 Step: {step}\n🧨 Error: {str(error) or type(error).__name__}"


def format_run_failure(title: str, error: Optional[BaseException] = None, *, status: str = "failed") -> str:
    msg = f"❗ *{title}*"
    if error is not None and str(error):
        return msg + "\n" + _fence(str(error))
    if status == "timedOut":
        return msg + "\n" + _fence("Run timed out.")
    if status == "interrupted":
        return msg + "\n" + _fence("Run was interrupted")
    return msg + "\n" + _fence(f"Unknown failure. Status: {status}")


def format_upload_issue(file_name: str, remarks: str) -> str:
    return f"⚠️ *Upload Issue Detected*\n📂 File: `{file_name}`\n📝 Remark: _{remarks}_"


def format_report_saved(bank: str, file_name: str, count: int) -> str:
    return f"📊 *{bank} Report Downloaded & Saved*\n✅ File: {file_name}\n🧾 Records: {count}"


def format_db_failure(what: str, error: BaseException) -> str:
    return f"❌ *{what} Failed*\n" + _fence(str(error))


def format_payment_success(file_name: str) -> str:
    return f"✅ *Axis Bank Payment Success*\n📄 File: {file_name}\n💰 Payments processed successfully"


def format_payment_unconfirmed(file_name: str) -> str:
    return (
        "❌ *Something went wrong with the payment process. Please check the file and try again.*\n"
        f"📄 File: {file_name}"
    )


def format_no_upload_file(bank: str) -> str:
    return f"⚠️ *{bank} Bank Payments*\n" + _fence("No Excel files found in directory for upload")
