from .amounts import format_amount, parse_amount
from .polling import poll_until

__all__ = ["format_amount", "parse_amount", "poll_until"]
