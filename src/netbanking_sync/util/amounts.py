from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union


_NON_NUMERIC_RE = re.compile(r"[^0-9.\-]+")


def parse_amount(value: Union[str, int, float, None]) -> Optional[float]:
    """
    Parse report amounts like:
    - "1,00,000.50"
    - "INR 2,500.00"
    - "₹ 99"
    - 1500 (already numeric)
    """
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)

    s = _NON_NUMERIC_RE.sub("", str(value))
    if not s or s in {"-", ".", "-."}:
        return None
    try:
        return float(Decimal(s))
    except InvalidOperation:
        return None


def format_amount(value: Union[int, float, Decimal]) -> str:
    dec = Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{dec:.2f}"
