from .axis import AxisSession
from .browser import launch_browser, save_debug
from .kotak import GridDownload, KotakSession
from .selectors import AxisSelectors, KotakSelectors

__all__ = [
    "AxisSelectors",
    "AxisSession",
    "GridDownload",
    "KotakSelectors",
    "KotakSession",
    "launch_browser",
    "save_debug",
]
