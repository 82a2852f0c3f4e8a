from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

from playwright.async_api import Browser, Page, Playwright


logger = logging.getLogger(__name__)


async def launch_browser(
    playwright: Playwright,
    *,
    headless: bool = True,
    slow_mo_ms: int = 0,
    channel: Optional[str] = "chrome",
) -> Browser:
    """
    Bank portals reject some headless Chromium builds, so prefer an installed Chrome and fall back
    to Playwright's bundled Chromium when the channel isn't available.
    """
    slow_mo = int(slow_mo_ms or 0)
    if channel:
        try:
            return await playwright.chromium.launch(headless=headless, slow_mo=slow_mo, channel=channel)
        except Exception as e:
            logger.warning("Browser channel %r unavailable; falling back to bundled Chromium. (%s)", channel, e)
    return await playwright.chromium.launch(headless=headless, slow_mo=slow_mo)


def safe_name(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9_-]+", "_", name).strip("_")[:60] or "page"


async def save_debug(page: Page, *, debug_dir: str, name_prefix: str) -> None:
    try:
        out_dir = Path(debug_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        prefix = safe_name(name_prefix)
        await page.screenshot(path=str(out_dir / f"{prefix}.png"), full_page=True)
        (out_dir / f"{prefix}.html").write_text(await page.content(), encoding="utf-8")
        logger.info("Saved debug artifacts: %s", out_dir / prefix)
    except Exception:
        logger.debug("Failed to save debug artifacts.", exc_info=True)
