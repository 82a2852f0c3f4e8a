from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional


_NOISY_LOGGERS = ("playwright", "pymongo", "httpx", "httpcore", "telegram", "asyncio")


def configure_logging(level: str = "INFO", file_path: Optional[str] = None) -> None:
    numeric_level = getattr(logging, (level or "INFO").upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if file_path:
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
        handlers=handlers,
        force=True,  # the CLI reconfigures once the YAML/env config is loaded
    )

    # httpx logs every Telegram request URL, which contains the bot token.
    for noisy in _NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(os.getenv("NOISY_LOG_LEVEL", "WARNING"))
