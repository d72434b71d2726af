"""Tests for the JSON state file and Excel import/export."""

import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from openpyxl import Workbook

from costavg.persistence import (
    load_store_from_json,
    load_transactions_from_excel,
    save_store_to_json,
    save_transactions_to_excel,
)
from costavg.portfolio import TransactionType, aggregate
from costavg.store import DEFAULT_PORTFOLIO, TransactionStore

BASE_TIME = datetime(2025, 3, 3, 10, 0, 0, 123000, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _sample_store(clock=None) -> TransactionStore:
    store = TransactionStore(stocks=["THYAO", "ASELS"], clock=clock)
    store.add_transaction(TransactionType.BUY, "100.25", "10", timestamp=BASE_TIME)
    sale = store.add_transaction(TransactionType.SELL, "150", "2.5", timestamp=BASE_TIME.replace(hour=11))
    store.toggle_transaction(sale.id)
    store.add_transaction(TransactionType.BUY, "42", "3", symbol="ASELS", timestamp=BASE_TIME)
    return store


def test_json_save_and_load(tmp_path):
    """Saving and loading keeps portfolios, values, flags and timestamps."""
    path = tmp_path / "state" / "portfolio.json"
    store = _sample_store()
    save_store_to_json(store, path)

    loaded = load_store_from_json(path)
    assert loaded.stocks == ["THYAO", "ASELS"]
    assert loaded.transactions == store.transactions
    assert aggregate(loaded.transactions_for("THYAO")).average_cost == Decimal("100.25")


def test_json_layout(tmp_path):
    """Records use the persisted field names and epoch-millisecond timestamps."""
    path = tmp_path / "portfolio.json"
    save_store_to_json(_sample_store(), path)

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["stocks"] == ["THYAO", "ASELS"]
    record = data["transactions"][0]
    assert set(record) == {"id", "symbol", "price", "quantity", "timestamp", "isActive", "type"}
    assert record["timestamp"] == 1740996000123
    assert record["type"] == "BUY"
    assert "undo" not in data


def test_legacy_records_are_migrated(tmp_path):
    """Records without an active flag or type load as active BUYs, with a warning."""
    path = tmp_path / "portfolio.json"
    path.write_text(json.dumps({
        "stocks": ["THYAO"],
        "transactions": [
            {"id": "a", "symbol": "THYAO", "price": 10, "quantity": 2, "timestamp": 1700000000000},
            {"id": "b", "symbol": "THYAO", "price": 12, "quantity": 1, "timestamp": 1700000001000, "isActive": False, "type": "SELL"},
        ],
    }))

    with pytest.warns(UserWarning, match="missing the active flag or type"):
        store = load_store_from_json(path)

    first, second = store.transactions
    assert first.transaction_type == TransactionType.BUY
    assert first.is_active is True
    assert second.transaction_type == TransactionType.SELL
    assert second.is_active is False


def test_missing_file(tmp_path):
    """A missing file raises unless asked to start empty."""
    path = tmp_path / "missing.json"
    with pytest.raises(FileNotFoundError):
        load_store_from_json(path)

    store = load_store_from_json(path, create_if_missing=True)
    assert store.stocks == [DEFAULT_PORTFOLIO]
    assert store.transactions == []


def test_empty_stock_list_gets_default(tmp_path):
    path = tmp_path / "portfolio.json"
    path.write_text(json.dumps({"stocks": [], "transactions": []}))
    assert load_store_from_json(path).stocks == [DEFAULT_PORTFOLIO]


def test_invalid_json_structure(tmp_path):
    path = tmp_path / "portfolio.json"
    path.write_text(json.dumps([1, 2, 3]))
    with pytest.raises(ValueError, match="JSON object"):
        load_store_from_json(path)


def test_pending_undo_survives_save_and_load(tmp_path):
    """A reset saved within the undo window can be undone after reloading."""
    clock = FakeClock()
    path = tmp_path / "portfolio.json"
    store = _sample_store(clock)
    store.reset_transactions("THYAO")
    save_store_to_json(store, path)

    loaded = load_store_from_json(path, clock=clock)
    assert loaded.transactions_for("THYAO") == []
    restored = loaded.undo_reset()
    assert len(restored) == 2

    clock.now += 10
    expired = load_store_from_json(path, clock=clock)
    assert expired.pending_undo is None
    assert expired.undo_reset() == []


def test_excel_export_and_import(tmp_path):
    """Transactions written to Excel read back with their ids, types and flags."""
    path = str(tmp_path / "transactions.xlsx")
    transactions = _sample_store().transactions
    save_transactions_to_excel(transactions, path)

    loaded = load_transactions_from_excel(path)
    assert [t.id for t in loaded] == [t.id for t in transactions]
    assert [t.symbol for t in loaded] == ["THYAO", "THYAO", "ASELS"]
    assert [t.transaction_type for t in loaded] == [TransactionType.BUY, TransactionType.SELL, TransactionType.BUY]
    assert [t.is_active for t in loaded] == [True, False, True]
    assert loaded[0].price == Decimal("100.25")
    assert loaded[1].quantity == Decimal("2.5")
    assert loaded[0].timestamp == BASE_TIME


def test_excel_import_fills_defaults(tmp_path):
    """Rows without id, type or active flag get defaults and a single warning."""
    path = str(tmp_path / "minimal.xlsx")
    wb = Workbook()
    ws = wb.active
    ws.append(["SYMBOL", "DATE AND TIME", "PRICE", "QUANTITY"])
    ws.append(["thyao", "2025-03-03T10:00:00", 100, 10])
    ws.append(["thyao", "2025-03-04T10:00:00", 80, 10])
    wb.save(path)

    with pytest.warns(UserWarning, match="missing an ID"):
        loaded = load_transactions_from_excel(path)

    assert len(loaded) == 2
    assert all(t.transaction_type == TransactionType.BUY for t in loaded)
    assert all(t.is_active for t in loaded)
    assert loaded[0].symbol == "THYAO"
    assert loaded[0].id != loaded[1].id
    assert loaded[0].timestamp.tzinfo is not None
    assert aggregate(loaded).average_cost == Decimal("90")


def test_excel_import_missing_columns(tmp_path):
    path = str(tmp_path / "bad.xlsx")
    wb = Workbook()
    ws = wb.active
    ws.append(["SYMBOL", "PRICE"])
    ws.append(["THYAO", 100])
    wb.save(path)

    with pytest.raises(ValueError, match="Missing required columns"):
        load_transactions_from_excel(path)


def test_excel_import_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_transactions_from_excel(str(tmp_path / "nope.xlsx"))


def test_records_without_positive_amounts_are_skipped(tmp_path):
    """Records with a non-positive or missing price or quantity are dropped with a warning."""
    path = tmp_path / "portfolio.json"
    path.write_text(json.dumps({
        "stocks": ["THYAO"],
        "transactions": [
            {"id": "ok", "symbol": "THYAO", "price": 10, "quantity": 2, "timestamp": 1700000000000, "isActive": True, "type": "BUY"},
            {"id": "neg", "symbol": "THYAO", "price": -10, "quantity": 5, "timestamp": 1700000001000, "isActive": True, "type": "BUY"},
            {"id": "zero", "symbol": "THYAO", "price": 10, "quantity": 0, "timestamp": 1700000002000, "isActive": True, "type": "BUY"},
            {"id": "none", "symbol": "THYAO", "price": None, "quantity": 1, "timestamp": 1700000003000, "isActive": True, "type": "BUY"},
        ],
    }))

    with pytest.warns(UserWarning, match="Skipped 3 invalid transaction"):
        store = load_store_from_json(path)

    assert [t.id for t in store.transactions] == ["ok"]
    position = aggregate(store.transactions_for("THYAO"))
    assert position.total_quantity == Decimal("2")
    assert position.average_cost == Decimal("10")


def test_excel_import_blank_price_cell(tmp_path):
    """A blank price cell is reported as a ValueError naming the row."""
    path = str(tmp_path / "blank.xlsx")
    wb = Workbook()
    ws = wb.active
    ws.append(["SYMBOL", "DATE AND TIME", "PRICE", "QUANTITY"])
    ws.append(["THYAO", "2025-03-03T10:00:00", 100, 5])
    ws.append(["THYAO", "2025-03-04T10:00:00", None, 5])
    wb.save(path)

    with pytest.raises(ValueError, match="Row 3"):
        load_transactions_from_excel(path)
