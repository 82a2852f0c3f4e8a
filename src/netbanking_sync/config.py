from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Literal, Union

import yaml
from pydantic import BaseModel, Field, field_validator


_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z0-9_]+)\}")


def _expand_env_vars(value: object) -> object:
    if isinstance(value, str):
        def repl(match: re.Match[str]) -> str:
            return os.getenv(match.group(1), "")

        return _ENV_VAR_PATTERN.sub(repl, value)
    if isinstance(value, list):
        return [_expand_env_vars(v) for v in value]
    if isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}
    return value


def _deep_merge(base: object, override: object) -> object:
    if isinstance(base, dict) and isinstance(override, dict):
        out = dict(base)
        for k, v in override.items():
            out[k] = _deep_merge(out[k], v) if k in out else v
        return out
    return override


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name, "") or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _default_config_from_env() -> dict:
    """
    Env-only config so the usual deployment only needs a `.env`.

    Variable names match the ones the bank scripts have always used (MONGODB_URI_ALI for the
    OTP relay, KOTAK_CRN_A/B, ...). YAML stays an optional override.
    """
    return {
        "otp_store": {
            "uri": os.getenv("OTP_MONGODB_URI", "") or os.getenv("MONGODB_URI_ALI", ""),
            "database": os.getenv("OTP_MONGO_DB", ""),
            "collection": os.getenv("OTP_MONGO_COLL", "otps"),
            "timeout_seconds": _env_float("OTP_TIMEOUT_SECONDS", 60.0),
            "poll_interval_seconds": _env_float("OTP_POLL_INTERVAL_SECONDS", 3.0),
        },
        "mongo": {
            "uri": os.getenv("MONGODB_URI", ""),
            "database": os.getenv("MONGO_DB", "Paylogic"),
            "payouts_collection": os.getenv("MONGO_COLL", "payouts"),
            "axis_reports_collection": os.getenv("AXIS_REPORTS_COLL", "axis_reports"),
            "kotak_statements_collection": os.getenv("KOTAK_STATEMENTS_COLL", "temppayouts"),
        },
        "telegram": {
            "bot_token": os.getenv("TELEGRAM_BOT_TOKEN", ""),
            "chat_id": os.getenv("TELEGRAM_CHAT_ID", ""),
        },
        "kotak": {
            "base_url": os.getenv("KOTAK_BASE_URL", "https://netbanking.kotak.com/knb2/"),
            "uploader": {
                "crn": os.getenv("KOTAK_CRN_A", ""),
                "password": os.getenv("KOTAK_PASSWORD_A", ""),
            },
            "approver": {
                "crn": os.getenv("KOTAK_CRN_B", ""),
                "password": os.getenv("KOTAK_PASSWORD_B", ""),
            },
            "download_dir": os.getenv("KOTAK_DOWNLOAD_DIR", "data/kotak"),
            "statement_dir": os.getenv("KOTAK_STATEMENT_DIR", "data/kotak_statements"),
            "statement_account": os.getenv("KOTAK_STATEMENT_ACCOUNT", "uploader"),
            "csv_profile": {
                "client_code": os.getenv("KOTAK_CLIENT_CODE", "TTPL7"),
                "product_code": os.getenv("KOTAK_PRODUCT_CODE", "VPAY"),
                "payment_type": os.getenv("KOTAK_PAYMENT_TYPE", "IMPS"),
                "debit_account": os.getenv("KOTAK_DEBIT_ACCOUNT", ""),
                "bank_code_indicator": os.getenv("KOTAK_BANK_CODE_INDICATOR", "KKBK0000660"),
            },
        },
        "axis": {
            "base_url": os.getenv("AXIS_BASE_URL", "https://gtb1.axisbank.com/pre-login-interim"),
            "corporate_id": os.getenv("AXIS_CORPORATE_ID", ""),
            "login_id": os.getenv("AXIS_LOGIN_ID", ""),
            "password": os.getenv("AXIS_PASSWORD", ""),
            "download_dir": os.getenv("AXIS_DOWNLOAD_DIR", "data/axis"),
            "upload_dir": os.getenv("AXIS_UPLOAD_DIR", "data/axis_uploads"),
            "otp_mode": os.getenv("AXIS_OTP_MODE", "manual"),
        },
        "state": {
            "db_path": os.getenv("STATE_DB_PATH", "data/state.db"),
        },
        "logging": {
            "level": os.getenv("LOG_LEVEL", "INFO"),
            "file_path": os.getenv("LOG_FILE", "data/netbanking_sync.log"),
        },
    }


class OtpStoreConfig(BaseModel):
    uri: str = Field(default="", repr=False)
    # Empty means "the database named in the URI".
    database: str = ""
    collection: str = "otps"
    code_field: str = "otp"
    created_at_field: str = "createdAt"
    timeout_seconds: float = Field(default=60.0, gt=0)
    poll_interval_seconds: float = Field(default=3.0, gt=0)


class MongoConfig(BaseModel):
    uri: str = Field(default="", repr=False)
    database: str = "Paylogic"
    payouts_collection: str = "payouts"
    axis_reports_collection: str = "axis_reports"
    kotak_statements_collection: str = "temppayouts"


class TelegramConfig(BaseModel):
    bot_token: str = Field(default="", repr=False)
    chat_id: str = ""


class BankLogin(BaseModel):
    crn: str = ""
    password: str = Field(default="", repr=False)


class KotakCsvProfileConfig(BaseModel):
    client_code: str = "TTPL7"
    product_code: str = "VPAY"
    payment_type: str = "IMPS"
    debit_account: str = ""
    bank_code_indicator: str = "KKBK0000660"


class KotakConfig(BaseModel):
    base_url: str = "https://netbanking.kotak.com/knb2/"
    uploader: BankLogin = BankLogin()
    approver: BankLogin = BankLogin()
    download_dir: str = "data/kotak"
    csv_profile: KotakCsvProfileConfig = KotakCsvProfileConfig()
    batch_size: int = Field(default=100, gt=0)
    # Kept apart from download_dir: the payout job clears spreadsheets there.
    statement_dir: str = "data/kotak_statements"
    statement_account: Literal["uploader", "approver"] = "uploader"

    @field_validator("statement_account", mode="before")
    @classmethod
    def _normalize_account(cls, v: object) -> object:
        return v.strip().lower() if isinstance(v, str) else v


class AxisConfig(BaseModel):
    base_url: str = "https://gtb1.axisbank.com/pre-login-interim"
    corporate_id: str = ""
    login_id: str = ""
    password: str = Field(default="", repr=False)
    download_dir: str = "data/axis"
    upload_dir: str = "data/axis_uploads"
    otp_mode: Literal["manual", "store"] = "manual"

    @field_validator("otp_mode", mode="before")
    @classmethod
    def _normalize_mode(cls, v: object) -> object:
        return v.strip().lower() if isinstance(v, str) else v


class StateConfig(BaseModel):
    db_path: str = "data/state.db"


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file_path: str = "data/netbanking_sync.log"


class AppConfig(BaseModel):
    otp_store: OtpStoreConfig = OtpStoreConfig()
    mongo: MongoConfig = MongoConfig()
    telegram: TelegramConfig = TelegramConfig()
    kotak: KotakConfig = KotakConfig()
    axis: AxisConfig = AxisConfig()
    state: StateConfig = StateConfig()
    logging: LoggingConfig = LoggingConfig()


def load_config(path: Union[str, Path]) -> AppConfig:
    p = Path(path)
    raw: dict = {}
    if p.exists():
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
        raw = _expand_env_vars(raw)  # supports ${ENV_VAR} in YAML

    merged = _deep_merge(_default_config_from_env(), raw)
    return AppConfig.model_validate(merged)


def require_otp_store(cfg: AppConfig) -> None:
    if not cfg.otp_store.uri:
        raise SystemExit("Missing OTP store connection. Set OTP_MONGODB_URI (or MONGODB_URI_ALI) in your .env.")


def require_mongo(cfg: AppConfig) -> None:
    if not cfg.mongo.uri:
        raise SystemExit("Missing results database connection. Set MONGODB_URI in your .env.")


def require_kotak_logins(cfg: AppConfig) -> None:
    missing = [
        name
        for name, login in (("KOTAK_CRN_A/KOTAK_PASSWORD_A", cfg.kotak.uploader), ("KOTAK_CRN_B/KOTAK_PASSWORD_B", cfg.kotak.approver))
        if not (login.crn and login.password)
    ]
    if missing:
        raise SystemExit(f"Missing Kotak credentials: {', '.join(missing)}")
    if not cfg.kotak.csv_profile.debit_account:
        raise SystemExit("Missing KOTAK_DEBIT_ACCOUNT (debit account number for the bulk payment file).")


def require_axis_login(cfg: AppConfig) -> None:
    a = cfg.axis
    if not (a.corporate_id and a.login_id and a.password):
        raise SystemExit("Missing Axis credentials. Set AXIS_CORPORATE_ID, AXIS_LOGIN_ID and AXIS_PASSWORD in your .env.")


def require_kotak_statement_login(cfg: AppConfig) -> None:
    login = getattr(cfg.kotak, cfg.kotak.statement_account)
    suffix = "A" if cfg.kotak.statement_account == "uploader" else "B"
    if not (login.crn and login.password):
        raise SystemExit(f"Missing Kotak credentials: KOTAK_CRN_{suffix}/KOTAK_PASSWORD_{suffix}")
