"""Helpers shared by the CLI subcommands: store access and number formatting."""

from decimal import Decimal

from rich.console import Console

from ..config import get_currency_symbol, get_data_file, get_undo_window_seconds
from ..persistence import load_store_from_json, save_store_to_json
from ..store import TransactionNotFoundError, TransactionStore

console = Console()


def open_store(args) -> TransactionStore:
    """Load the store from the configured data file, starting empty if it does not exist."""
    return load_store_from_json(
        get_data_file(getattr(args, "data_file", None)),
        create_if_missing=True,
        undo_window=get_undo_window_seconds(),
    )


def save_store(store: TransactionStore, args) -> None:
    save_store_to_json(store, get_data_file(getattr(args, "data_file", None)))


def find_transaction_id(store: TransactionStore, prefix: str) -> str:
    """Resolve a full transaction id from a unique prefix.

    Raises:
        TransactionNotFoundError: If no transaction, or more than one,
            starts with the prefix.
    """
    prefix = prefix.strip().lower()
    matches = [t.id for t in store.transactions if t.id.startswith(prefix)] if prefix else []
    if len(matches) == 1:
        return matches[0]
    if not matches:
        raise TransactionNotFoundError(f"No transaction with id {prefix}")
    raise TransactionNotFoundError(f"Id prefix {prefix} matches {len(matches)} transactions")


def format_currency(value: Decimal | None, precision: int = 2) -> str:
    """Format a monetary amount with the configured currency symbol.

    Returns:
        Formatted currency string, or "N/A" if value is None.
    """
    if value is None:
        return "N/A"
    symbol = get_currency_symbol()
    if value < 0:
        return f"-{symbol}{-value:,.{precision}f}"
    return f"{symbol}{value:,.{precision}f}"


def format_number(value: Decimal | None, precision: int = 2) -> str:
    """Format a number with thousands separators and at most `precision` decimals."""
    if value is None:
        return "N/A"
    text = f"{value:,.{precision}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def colorize(text: str, value: Decimal | None) -> str:
    """Wrap text in green for positive values and red for negative ones."""
    if value is None or value == 0:
        return text
    if value > 0:
        return f"[green]+{text}[/green]"
    return f"[red]{text}[/red]"
