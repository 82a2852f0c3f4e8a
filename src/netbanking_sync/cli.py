from __future__ import annotations

import argparse
import asyncio
import logging
import os
from datetime import date, timedelta
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from telegram import Bot

from .alerts.sinks import build_alert_sink
from .config import (
    AppConfig,
    load_config,
    require_axis_login,
    require_kotak_logins,
    require_kotak_statement_login,
    require_mongo,
    require_otp_store,
)
from .errors import OtpTimeoutError, StepFailedError
from .jobs.axis_payments import run_axis_payments
from .jobs.axis_report import run_axis_report
from .jobs.kotak_payouts import run_kotak_payouts
from .jobs.kotak_statement import run_kotak_statement
from .logging_config import configure_logging
from .models import mask_code
from .mongo import build_retriever, open_client
from .otp.retriever import utc_now
from .state import RunLedger


logger = logging.getLogger("netbanking_sync")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="netbanking_sync")
    p.add_argument(
        "--env-file",
        default=".env",
        help="Path to a dotenv file (default: .env). If missing, env vars must already be set.",
    )

    sub = p.add_subparsers(dest="cmd", required=True)

    kotak = sub.add_parser(
        "kotak-payouts",
        help="Build the Kotak bulk payment CSV from processing payouts, upload it (account A) and approve it (account B)",
    )
    kotak.add_argument("--config", default="config.yaml", help="Path to YAML config (default: config.yaml)")
    kotak.add_argument("--headful", action="store_true", help="Run browser headful (debug)")
    kotak.add_argument("--slowmo-ms", type=int, default=0, help="Playwright slow motion in milliseconds (debug).")
    kotak.add_argument("--no-alerts", action="store_true", help="Log alerts instead of sending them to Telegram.")

    statement = sub.add_parser(
        "kotak-statement",
        help="Download the grid XLS of every Kotak file processed on a day and save the rows to MongoDB",
    )
    statement.add_argument("--config", default="config.yaml", help="Path to YAML config (default: config.yaml)")
    statement.add_argument("--headful", action="store_true", help="Run browser headful (debug)")
    statement.add_argument("--slowmo-ms", type=int, default=0, help="Playwright slow motion in milliseconds (debug).")
    statement.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Processing date as YYYY-MM-DD (default: today)",
    )
    statement.add_argument("--no-alerts", action="store_true", help="Log alerts instead of sending them to Telegram.")

    axis = sub.add_parser("axis-report", help="Download the Axis transaction analysis report and save it to MongoDB")
    axis.add_argument("--config", default="config.yaml", help="Path to YAML config (default: config.yaml)")
    axis.add_argument("--headful", action="store_true", help="Run browser headful (required for --otp-mode manual)")
    axis.add_argument("--slowmo-ms", type=int, default=0, help="Playwright slow motion in milliseconds (debug).")
    axis.add_argument("--from-day", type=int, default=1, help="First day of the current month to include (default: 1)")
    axis.add_argument("--to-day", type=int, default=0, help="Last day of the current month to include (default: today)")
    axis.add_argument(
        "--otp-mode",
        choices=("manual", "store"),
        default=None,
        help="manual: pause for the OTP to be typed in the browser; store: read it from the OTP store (default: config).",
    )
    axis.add_argument("--no-alerts", action="store_true", help="Log alerts instead of sending them to Telegram.")

    payments = sub.add_parser(
        "axis-payments",
        help="Upload the newest .xlsx in the Axis upload directory as a bulk vendor payment and release it",
    )
    payments.add_argument("--config", default="config.yaml", help="Path to YAML config (default: config.yaml)")
    payments.add_argument("--headful", action="store_true", help="Run browser headful (required for --otp-mode manual)")
    payments.add_argument("--slowmo-ms", type=int, default=0, help="Playwright slow motion in milliseconds (debug).")
    payments.add_argument(
        "--otp-mode",
        choices=("manual", "store"),
        default=None,
        help="manual: pause for the OTPs to be typed in the browser; store: read them from the OTP store (default: config).",
    )
    payments.add_argument("--no-alerts", action="store_true", help="Log alerts instead of sending them to Telegram.")

    fetch = sub.add_parser("fetch-otp", help="Wait for the next OTP in the OTP store (debug the capture relay)")
    fetch.add_argument("--config", default="config.yaml", help="Path to YAML config (default: config.yaml)")
    fetch.add_argument(
        "--since-seconds",
        type=float,
        default=0.0,
        help="Accept codes created up to this many seconds ago (default: only codes created from now on).",
    )
    fetch.add_argument("--timeout", type=float, default=None, help="Polling budget in seconds (default: config)")
    fetch.add_argument("--interval", type=float, default=None, help="Seconds between polls (default: config)")
    fetch.add_argument(
        "--print-code",
        action="store_true",
        help="Print the full code instead of a masked one (avoid in unattended/logged environments).",
    )

    preflight = sub.add_parser("preflight", help="Validate configuration and external dependencies (MongoDB, Telegram)")
    preflight.add_argument("--config", default="config.yaml", help="Path to YAML config (default: config.yaml)")
    preflight.add_argument("--skip-mongo", action="store_true", help="Skip MongoDB connectivity checks")
    preflight.add_argument("--skip-telegram", action="store_true", help="Skip Telegram bot check")
    return p


def _load(args: argparse.Namespace) -> AppConfig:
    cfg = load_config(args.config)
    configure_logging(level=cfg.logging.level, file_path=cfg.logging.file_path)
    return cfg


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    env_path = Path(args.env_file)
    if env_path.exists():
        load_dotenv(env_path)

    # Default logging: can be overridden once config is loaded.
    configure_logging(level=os.getenv("LOG_LEVEL", "INFO"))

    if args.cmd == "kotak-payouts":
        cfg = _load(args)
        require_mongo(cfg)
        require_otp_store(cfg)
        require_kotak_logins(cfg)
        alerts = build_alert_sink(cfg.telegram.bot_token, cfg.telegram.chat_id, enabled=not args.no_alerts)
        ledger = RunLedger(cfg.state.db_path)
        try:
            asyncio.run(
                run_kotak_payouts(
                    cfg,
                    alerts=alerts,
                    ledger=ledger,
                    headless=not args.headful,
                    slow_mo_ms=args.slowmo_ms,
                )
            )
            return 0
        except StepFailedError as e:
            logger.error("Kotak payouts failed: %s", e)
            return 1
        except Exception:
            logger.exception("Kotak payouts failed")
            return 1
        finally:
            ledger.close()

    if args.cmd == "kotak-statement":
        cfg = _load(args)
        require_mongo(cfg)
        require_otp_store(cfg)
        require_kotak_statement_login(cfg)
        alerts = build_alert_sink(cfg.telegram.bot_token, cfg.telegram.chat_id, enabled=not args.no_alerts)
        ledger = RunLedger(cfg.state.db_path)
        try:
            count = asyncio.run(
                run_kotak_statement(
                    cfg,
                    alerts=alerts,
                    ledger=ledger,
                    headless=not args.headful,
                    day=args.date,
                    slow_mo_ms=args.slowmo_ms,
                )
            )
            logger.info("Kotak statement saved (records=%d)", count)
            return 0
        except StepFailedError as e:
            logger.error("Kotak statement failed: %s", e)
            return 1
        except Exception:
            logger.exception("Kotak statement failed")
            return 1
        finally:
            ledger.close()

    if args.cmd == "axis-report":
        cfg = _load(args)
        require_mongo(cfg)
        require_axis_login(cfg)
        mode = args.otp_mode or cfg.axis.otp_mode
        if mode == "manual" and not args.headful:
            raise SystemExit("--otp-mode manual requires --headful (you must be able to type the OTP in the browser).")
        if mode == "store":
            require_otp_store(cfg)
        alerts = build_alert_sink(cfg.telegram.bot_token, cfg.telegram.chat_id, enabled=not args.no_alerts)
        ledger = RunLedger(cfg.state.db_path)
        try:
            count = asyncio.run(
                run_axis_report(
                    cfg,
                    alerts=alerts,
                    ledger=ledger,
                    headless=not args.headful,
                    from_day=args.from_day,
                    to_day=args.to_day or None,
                    otp_mode=mode,
                    slow_mo_ms=args.slowmo_ms,
                )
            )
            logger.info("Axis report saved (records=%d)", count)
            return 0
        except StepFailedError as e:
            logger.error("Axis report failed: %s", e)
            return 1
        except Exception:
            logger.exception("Axis report failed")
            return 1
        finally:
            ledger.close()

    if args.cmd == "axis-payments":
        cfg = _load(args)
        require_axis_login(cfg)
        mode = args.otp_mode or cfg.axis.otp_mode
        if mode == "manual" and not args.headful:
            raise SystemExit("--otp-mode manual requires --headful (you must be able to type the OTP in the browser).")
        if mode == "store":
            require_otp_store(cfg)
        alerts = build_alert_sink(cfg.telegram.bot_token, cfg.telegram.chat_id, enabled=not args.no_alerts)
        ledger = RunLedger(cfg.state.db_path)
        try:
            confirmed = asyncio.run(
                run_axis_payments(
                    cfg,
                    alerts=alerts,
                    ledger=ledger,
                    headless=not args.headful,
                    otp_mode=mode,
                    slow_mo_ms=args.slowmo_ms,
                )
            )
            if confirmed is None:
                logger.info("Axis payments: nothing to upload")
                return 0
            return 0 if confirmed else 1
        except StepFailedError as e:
            logger.error("Axis payments failed: %s", e)
            return 1
        except Exception:
            logger.exception("Axis payments failed")
            return 1
        finally:
            ledger.close()

    if args.cmd == "fetch-otp":
        cfg = _load(args)
        require_otp_store(cfg)
        try:
            code = asyncio.run(
                _fetch_otp(cfg, since_seconds=args.since_seconds, timeout=args.timeout, interval=args.interval)
            )
        except OtpTimeoutError as e:
            print(f"❌ {e}")
            return 2
        print(code if args.print_code else mask_code(code))
        return 0

    if args.cmd == "preflight":
        cfg = _load(args)
        logger.info("Starting preflight checks")
        if not args.skip_mongo:
            require_mongo(cfg)
            require_otp_store(cfg)
            asyncio.run(_preflight_mongo(cfg))
        if not args.skip_telegram:
            asyncio.run(_preflight_telegram(cfg))
        logger.info("Preflight OK")
        return 0

    raise AssertionError("Unhandled command")


async def _fetch_otp(
    cfg: AppConfig,
    *,
    since_seconds: float,
    timeout: Optional[float],
    interval: Optional[float],
) -> str:
    reference = utc_now() - timedelta(seconds=max(0.0, since_seconds))
    client = open_client(cfg.otp_store.uri)
    try:
        retriever = build_retriever(client, cfg.otp_store)
        return await retriever.retrieve(reference, timeout=timeout, poll_interval=interval)
    finally:
        await client.close()


async def _preflight_mongo(cfg: AppConfig) -> None:
    for label, uri in (("results", cfg.mongo.uri), ("otp store", cfg.otp_store.uri)):
        client = open_client(uri)
        try:
            await client.admin.command("ping")
            logger.info("MongoDB preflight OK (%s)", label)
        except Exception as e:
            raise RuntimeError(f"MongoDB preflight failed for the {label} connection. Check the connection string.") from e
        finally:
            await client.close()


async def _preflight_telegram(cfg: AppConfig) -> None:
    t = cfg.telegram
    if not (t.bot_token and t.chat_id):
        raise SystemExit("Missing Telegram config. Set TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID in your .env.")
    try:
        async with Bot(t.bot_token) as bot:
            me = await bot.get_me()
        logger.info("Telegram preflight OK (bot=@%s chat_id=%s)", me.username, t.chat_id)
    except Exception as e:
        raise RuntimeError("Telegram preflight failed. Check TELEGRAM_BOT_TOKEN.") from e
