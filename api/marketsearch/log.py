"""Logging setup shared by the API process."""
from __future__ import annotations

import logging
import sys

from .config import get_settings

_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"
_configured = False


def configure_logging(level_name: str | None = None) -> None:
    """Install a stdout handler on the root logger once per process."""
    global _configured
    if _configured:
        return
    _configured = True

    level_name = (level_name or get_settings().log_level).upper()
    level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    if root.handlers:
        return

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FMT))
    root.addHandler(console)
