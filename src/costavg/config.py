"""Environment-driven settings.

Values are read from the process environment after loading a `.env` file
from the working directory, if there is one.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

from .store import DEFAULT_UNDO_WINDOW_SECONDS

load_dotenv()

DEFAULT_DATA_FILE = Path.home() / ".costavg" / "portfolio.json"
DEFAULT_CURRENCY_SYMBOL = "₺"


def get_data_file(override: str | None = None) -> Path:
    """Path of the JSON file holding portfolios and transactions.

    Args:
        override: Explicit path, e.g. from a `--data-file` argument. Wins over
            the COSTAVG_DATA_FILE environment variable.
    """
    raw = override or os.getenv("COSTAVG_DATA_FILE")
    if raw:
        return Path(raw).expanduser()
    return DEFAULT_DATA_FILE


def get_undo_window_seconds() -> float:
    """Seconds a reset stays undoable (COSTAVG_UNDO_SECONDS, default 5)."""
    raw = os.getenv("COSTAVG_UNDO_SECONDS")
    if not raw:
        return DEFAULT_UNDO_WINDOW_SECONDS
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"COSTAVG_UNDO_SECONDS must be a number, got '{raw}'")
    if value < 0:
        raise ValueError(f"COSTAVG_UNDO_SECONDS must not be negative, got '{raw}'")
    return value


def get_currency_symbol() -> str:
    """Currency symbol used when printing amounts (COSTAVG_CURRENCY_SYMBOL)."""
    return os.getenv("COSTAVG_CURRENCY_SYMBOL", DEFAULT_CURRENCY_SYMBOL)
