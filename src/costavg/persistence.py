"""Loading and saving portfolios: the JSON state file and Excel transaction sheets."""

import json
import logging
import os
import warnings
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

import pandas as pd
from openpyxl import Workbook

from .portfolio import Transaction, TransactionType, new_transaction_id, parse_positive_decimal
from .store import DEFAULT_UNDO_WINDOW_SECONDS, TransactionStore, UndoBuffer

logger = logging.getLogger(__name__)

EXCEL_HEADERS = ["ID", "SYMBOL", "DATE AND TIME", "TRANSACTION TYPE", "PRICE", "QUANTITY", "ACTIVE"]
EXCEL_REQUIRED_COLUMNS = {"SYMBOL", "DATE AND TIME", "PRICE", "QUANTITY"}


def _timestamp_to_millis(timestamp: datetime) -> int:
    return int(round(timestamp.timestamp() * 1000))


def _parse_timestamp(raw: Any) -> datetime:
    """Parse epoch milliseconds or an ISO-8601 string into an aware datetime."""
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return datetime.fromtimestamp(raw / 1000, tz=timezone.utc)
    parsed = datetime.fromisoformat(str(raw))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_active(raw: Any) -> bool:
    """Anything other than an explicit false counts as active."""
    if raw is None:
        return True
    if isinstance(raw, str):
        return raw.strip().lower() not in ("false", "0", "no", "n")
    return bool(raw)


def transaction_to_dict(txn: Transaction) -> dict[str, Any]:
    """Serialize a transaction into the persisted record layout."""
    return {
        "id": txn.id,
        "symbol": txn.symbol,
        "price": float(txn.price),
        "quantity": float(txn.quantity),
        "timestamp": _timestamp_to_millis(txn.timestamp),
        "isActive": txn.is_active,
        "type": txn.transaction_type.value,
    }


def transaction_from_dict(item: dict[str, Any]) -> tuple[Transaction, bool]:
    """
    Build a transaction from a persisted record.

    Older records may lack `isActive` (treated as active) or `type`
    (treated as BUY).

    Returns:
        A tuple of (transaction, was_migrated).

    Raises:
        ValueError: If the price or quantity is not a positive number.
    """
    migrated = "isActive" not in item or not item.get("type")

    price = parse_positive_decimal(item.get("price"))
    quantity = parse_positive_decimal(item.get("quantity"))
    if price is None or quantity is None:
        raise ValueError(
            f"Transaction {item.get('id')!r}: price and quantity must be positive numbers"
        )

    transaction = Transaction(
        id=str(item.get("id") or new_transaction_id()),
        symbol=str(item["symbol"]).strip().upper(),
        transaction_type=TransactionType(item.get("type") or TransactionType.BUY.value),
        price=price,
        quantity=quantity,
        timestamp=_parse_timestamp(item["timestamp"]),
        is_active=_parse_active(item.get("isActive", True)),
    )
    return transaction, migrated


def load_store_from_json(
    file_path: str | Path,
    create_if_missing: bool = False,
    undo_window: float = DEFAULT_UNDO_WINDOW_SECONDS,
    clock: Callable[[], float] | None = None,
) -> TransactionStore:
    """
    Load a TransactionStore from a JSON state file.

    Args:
        file_path: Path to the JSON file.
        create_if_missing: If True and the file does not exist, return an
            empty store instead of raising.
        undo_window: Seconds a reset stays undoable.
        clock: Epoch-seconds clock passed to the store.

    Returns:
        The loaded store. A pending undo buffer saved with the file is
        restored as long as it has not expired. Records without a positive
        price and quantity are skipped with a warning.

    Raises:
        FileNotFoundError: If the file is missing and create_if_missing is False.
        ValueError: If the file is not a JSON object with the expected lists.

    Expected JSON structure:
        {
            "stocks": ["AAPL", "THYAO"],
            "transactions": [
                {
                    "id": "3f2c...",
                    "symbol": "AAPL",
                    "price": 150.5,
                    "quantity": 10,
                    "timestamp": 1718000000000,
                    "isActive": true,
                    "type": "BUY"
                }
            ],
            "undo": {"symbol": "THYAO", "expiresAt": 1718000005.0, "transactions": [...]}
        }
    """
    file_path = Path(file_path)
    if not file_path.exists():
        if create_if_missing:
            return TransactionStore(undo_window=undo_window, clock=clock)
        raise FileNotFoundError(f"Portfolio file not found: {file_path}")

    with open(file_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError("Portfolio file must contain a JSON object")

    stocks = data.get("stocks") or []
    records = data.get("transactions") or []
    if not isinstance(stocks, list) or not isinstance(records, list):
        raise ValueError("'stocks' and 'transactions' must be lists")

    transactions: list[Transaction] = []
    any_migrated = False
    skipped = 0
    for item in records:
        try:
            transaction, migrated = transaction_from_dict(item)
        except ValueError as e:
            logger.debug("Skipping record: %s", e)
            skipped += 1
            continue
        any_migrated = any_migrated or migrated
        transactions.append(transaction)

    if any_migrated:
        warnings.warn(
            f"Some transactions in '{file_path}' were missing the active flag or type. "
            f"Assuming active BUY transactions for these records.",
            UserWarning,
        )
    if skipped:
        warnings.warn(
            f"Skipped {skipped} invalid transaction(s) in '{file_path}'. Run with --verbose for details.",
            UserWarning,
        )

    store = TransactionStore(
        stocks=[str(s) for s in stocks],
        transactions=transactions,
        undo_window=undo_window,
        clock=clock,
    )

    undo = data.get("undo")
    if isinstance(undo, dict) and undo.get("transactions"):
        buffered: list[Transaction] = []
        for item in undo["transactions"]:
            try:
                buffered.append(transaction_from_dict(item)[0])
            except ValueError as e:
                logger.debug("Dropping record from undo buffer: %s", e)
        if buffered:
            buffer = UndoBuffer(
                symbol=str(undo["symbol"]),
                transactions=tuple(buffered),
                expires_at=float(undo["expiresAt"]),
            )
            store.restore_undo_buffer(buffer)

    logger.debug("Loaded %d transactions from %s", len(transactions), file_path)
    return store


def save_store_to_json(store: TransactionStore, file_path: str | Path) -> None:
    """
    Save a TransactionStore to a JSON state file.

    The parent directory is created if needed. A pending, unexpired undo
    buffer is written alongside the transactions.
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    data: dict[str, Any] = {
        "stocks": store.stocks,
        "transactions": [transaction_to_dict(t) for t in store.transactions],
    }

    buffer = store.pending_undo
    if buffer is not None:
        data["undo"] = {
            "symbol": buffer.symbol,
            "expiresAt": buffer.expires_at,
            "transactions": [transaction_to_dict(t) for t in buffer.transactions],
        }

    with open(file_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)

    logger.debug("Saved %d transactions to %s", len(data["transactions"]), file_path)


def save_transactions_to_excel(transactions: list[Transaction], file_path: str) -> None:
    """
    Save transactions to an Excel file.

    Args:
        transactions: Transactions to write, in the order given.
        file_path: Path to the Excel file to write.

    The Excel file will have the following columns:
        - ID: Transaction identifier
        - SYMBOL: Portfolio symbol
        - DATE AND TIME: Transaction datetime (ISO format)
        - TRANSACTION TYPE: BUY or SELL
        - PRICE: Price per share
        - QUANTITY: Number of shares
        - ACTIVE: TRUE if the transaction counts toward the position
    """
    wb = Workbook()
    ws = wb.active
    assert ws is not None

    for col, header in enumerate(EXCEL_HEADERS, start=1):
        ws.cell(row=1, column=col, value=header)

    for row, txn in enumerate(transactions, start=2):
        ws.cell(row=row, column=1, value=txn.id)
        ws.cell(row=row, column=2, value=txn.symbol)
        ws.cell(row=row, column=3, value=txn.timestamp.isoformat())
        ws.cell(row=row, column=4, value=txn.transaction_type.value)
        ws.cell(row=row, column=5, value=float(txn.price))
        ws.cell(row=row, column=6, value=float(txn.quantity))
        ws.cell(row=row, column=7, value=txn.is_active)

    wb.save(file_path)


def load_transactions_from_excel(file_path: str) -> list[Transaction]:
    """
    Load transactions from an Excel file.

    Args:
        file_path: Path to the Excel file.

    Returns:
        The transactions in sheet order.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If a required column is missing or a row has a
            non-positive price or quantity.

    Expected Excel columns (order independent):
        - SYMBOL, DATE AND TIME, PRICE, QUANTITY: required
        - ID: optional; a new id is generated when empty
        - TRANSACTION TYPE: optional; BUY when empty
        - ACTIVE: optional; TRUE when empty
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Transaction file not found: {file_path}")

    df = pd.read_excel(file_path)
    if df.empty:
        return []

    missing_columns = EXCEL_REQUIRED_COLUMNS - set(df.columns)
    if missing_columns:
        raise ValueError(f"Missing required columns: {missing_columns}")

    transactions: list[Transaction] = []
    any_defaults = False

    for index, row in df.iterrows():
        raw_id = row.get("ID")
        raw_type = row.get("TRANSACTION TYPE")
        raw_active = row.get("ACTIVE")

        has_id = pd.notna(raw_id) and str(raw_id).strip() != ""
        has_type = pd.notna(raw_type) and str(raw_type).strip() != ""
        has_active = pd.notna(raw_active)
        any_defaults = any_defaults or not (has_id and has_type and has_active)

        timestamp = pd.to_datetime(row["DATE AND TIME"]).to_pydatetime()  # type: ignore[assignment]
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)

        price = parse_positive_decimal(row["PRICE"])
        quantity = parse_positive_decimal(row["QUANTITY"])
        if price is None or quantity is None:
            raise ValueError(f"Row {index + 2}: price and quantity must be positive numbers")

        transactions.append(
            Transaction(
                id=str(raw_id).strip() if has_id else new_transaction_id(),
                symbol=str(row["SYMBOL"]).strip().upper(),
                transaction_type=TransactionType(str(raw_type).strip().upper()) if has_type else TransactionType.BUY,
                price=price,
                quantity=quantity,
                timestamp=timestamp,
                is_active=_parse_active(raw_active) if has_active else True,
            )
        )

    if any_defaults:
        warnings.warn(
            f"Some rows in '{file_path}' were missing an ID, type or active flag. "
            f"Generated ids and assumed active BUY transactions for these rows.",
            UserWarning,
        )

    return transactions

