"""In-memory transaction store: portfolios, transactions and the reset undo buffer."""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from .portfolio import (
    NumberInput,
    Transaction,
    TransactionType,
    parse_positive_decimal,
    sort_transactions,
)

logger = logging.getLogger(__name__)

DEFAULT_PORTFOLIO = "GENERAL"
DEFAULT_UNDO_WINDOW_SECONDS = 5.0


class PortfolioExistsError(ValueError):
    """Raised when creating or renaming a portfolio to a name already in use."""


class LastPortfolioError(ValueError):
    """Raised when deleting the only remaining portfolio."""


class UnknownPortfolioError(ValueError):
    """Raised when referring to a portfolio that does not exist."""


class TransactionNotFoundError(ValueError):
    """Raised when no transaction has the requested id."""


def normalize_symbol(name: str) -> str:
    """Strip and uppercase a portfolio name."""
    return name.strip().upper()


@dataclass(frozen=True)
class UndoBuffer:
    """Transactions removed by the most recent reset, restorable until expires_at."""

    symbol: str
    transactions: tuple[Transaction, ...]
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class TransactionStore:
    """
    Ordered collection of transactions for every portfolio.

    The store owns the portfolio list, the active portfolio and the single
    undo slot used by `reset_transactions`. Every mutation replaces the
    transaction list (and the affected Transaction values) instead of
    editing them in place, so lists handed out earlier never change.
    """

    def __init__(
        self,
        stocks: list[str] | None = None,
        transactions: list[Transaction] | None = None,
        undo_window: float = DEFAULT_UNDO_WINDOW_SECONDS,
        clock: Callable[[], float] | None = None,
    ):
        """Initialize a TransactionStore.

        Args:
            stocks: Portfolio symbols in display order. The first one becomes
                the active portfolio. Defaults to a single GENERAL portfolio.
            transactions: Initial transactions, in insertion order. Symbols
                used by a transaction but missing from `stocks` are appended.
            undo_window: Seconds a reset stays undoable.
            clock: Returns the current time in epoch seconds. Defaults to
                `time.time`.
        """
        symbols: list[str] = []
        for name in stocks or []:
            symbol = normalize_symbol(name)
            if symbol and symbol not in symbols:
                symbols.append(symbol)

        self._transactions: list[Transaction] = list(transactions or [])
        for txn in self._transactions:
            if txn.symbol not in symbols:
                symbols.append(txn.symbol)

        if not symbols:
            symbols.append(DEFAULT_PORTFOLIO)

        self._stocks: list[str] = symbols
        self.active_symbol: str = symbols[0]
        self.undo_window = undo_window
        self._clock = clock or time.time
        self._undo: UndoBuffer | None = None

    # ── Portfolios ───────────────────────────────────────────

    @property
    def stocks(self) -> list[str]:
        return list(self._stocks)

    def _require_portfolio(self, symbol: str) -> str:
        symbol = normalize_symbol(symbol)
        if symbol not in self._stocks:
            raise UnknownPortfolioError(f"Unknown portfolio: {symbol}")
        return symbol

    def select_portfolio(self, symbol: str) -> str:
        """Make an existing portfolio the active one and return its symbol."""
        self.active_symbol = self._require_portfolio(symbol)
        return self.active_symbol

    def set_default_portfolio(self, symbol: str) -> str:
        """Move a portfolio to the front of the list, which makes it active on load."""
        symbol = self.select_portfolio(symbol)
        self._stocks = [symbol, *[s for s in self._stocks if s != symbol]]
        return symbol

    def add_portfolio(self, name: str) -> str:
        """
        Create a portfolio and make it active.

        Raises:
            ValueError: If the name is empty after normalization.
            PortfolioExistsError: If a portfolio with that name exists.
        """
        symbol = normalize_symbol(name)
        if not symbol:
            raise ValueError("Portfolio name cannot be empty")
        if symbol in self._stocks:
            raise PortfolioExistsError(f"A portfolio named {symbol} already exists")

        self._stocks = [*self._stocks, symbol]
        self.active_symbol = symbol
        logger.info("Added portfolio %s", symbol)
        return symbol

    def rename_portfolio(self, old_name: str, new_name: str) -> str:
        """
        Rename a portfolio and move all its transactions to the new name.

        Renaming a portfolio to its current name changes nothing.

        Returns:
            The new symbol.

        Raises:
            ValueError: If the new name is empty after normalization.
            UnknownPortfolioError: If `old_name` does not exist.
            PortfolioExistsError: If `new_name` is taken by another portfolio.
        """
        old_symbol = self._require_portfolio(old_name)
        new_symbol = normalize_symbol(new_name)
        if not new_symbol:
            raise ValueError("Portfolio name cannot be empty")
        if new_symbol == old_symbol:
            return old_symbol
        if new_symbol in self._stocks:
            raise PortfolioExistsError(f"A portfolio named {new_symbol} already exists")

        self._stocks = [new_symbol if s == old_symbol else s for s in self._stocks]
        self._transactions = [
            t.with_symbol(new_symbol) if t.symbol == old_symbol else t
            for t in self._transactions
        ]
        if self.active_symbol == old_symbol:
            self.active_symbol = new_symbol

        logger.info("Renamed portfolio %s to %s", old_symbol, new_symbol)
        return new_symbol

    def delete_portfolio(self, name: str) -> list[Transaction]:
        """
        Delete a portfolio together with all of its transactions.

        Returns:
            The deleted transactions.

        Raises:
            UnknownPortfolioError: If the portfolio does not exist.
            LastPortfolioError: If it is the only portfolio left.
        """
        symbol = self._require_portfolio(name)
        if len(self._stocks) <= 1:
            raise LastPortfolioError("At least one portfolio must remain")

        removed = [t for t in self._transactions if t.symbol == symbol]
        self._transactions = [t for t in self._transactions if t.symbol != symbol]
        self._stocks = [s for s in self._stocks if s != symbol]
        if self.active_symbol == symbol:
            self.active_symbol = self._stocks[0]

        logger.info("Deleted portfolio %s with %d transactions", symbol, len(removed))
        return removed

    # ── Transactions ─────────────────────────────────────────

    @property
    def transactions(self) -> list[Transaction]:
        """All transactions of every portfolio, in insertion order."""
        return list(self._transactions)

    def transactions_for(self, symbol: str | None = None) -> list[Transaction]:
        """
        Transactions of one portfolio, sorted by timestamp.

        Args:
            symbol: Portfolio symbol. Defaults to the active portfolio.
        """
        symbol = normalize_symbol(symbol) if symbol else self.active_symbol
        return sort_transactions([t for t in self._transactions if t.symbol == symbol])

    def get_transaction(self, transaction_id: str) -> Transaction:
        for txn in self._transactions:
            if txn.id == transaction_id:
                return txn
        raise TransactionNotFoundError(f"No transaction with id {transaction_id}")

    def add_transaction(
        self,
        transaction_type: TransactionType,
        price: NumberInput,
        quantity: NumberInput,
        symbol: str | None = None,
        timestamp: datetime | None = None,
    ) -> Transaction | None:
        """
        Record a new, active transaction.

        Args:
            transaction_type: BUY or SELL.
            price: Price per share as entered.
            quantity: Number of shares as entered.
            symbol: Portfolio to record into. Defaults to the active portfolio.
            timestamp: When the transaction happened. Defaults to now (UTC);
                naive datetimes are assumed to be UTC.

        Returns:
            The new Transaction, or None if price or quantity is missing,
            not a number, or not positive. Nothing is recorded in that case.

        Raises:
            UnknownPortfolioError: If `symbol` is not an existing portfolio.
        """
        symbol = self._require_portfolio(symbol) if symbol else self.active_symbol

        p = parse_positive_decimal(price)
        q = parse_positive_decimal(quantity)
        if p is None or q is None:
            logger.debug("Ignoring transaction with price=%r quantity=%r", price, quantity)
            return None

        if timestamp is None:
            timestamp = datetime.now(timezone.utc)
        elif timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)

        txn = Transaction(
            symbol=symbol,
            transaction_type=transaction_type,
            price=p,
            quantity=q,
            timestamp=timestamp,
        )
        self._transactions = [*self._transactions, txn]
        logger.info("Recorded %s", txn)
        return txn

    def merge_transactions(self, transactions: list[Transaction]) -> list[Transaction]:
        """
        Append existing transactions (e.g. from an import), skipping known ids.

        Portfolios referenced by the new transactions are created as needed.

        Returns:
            The transactions that were added.
        """
        known_ids = {t.id for t in self._transactions}
        added: list[Transaction] = []
        for txn in transactions:
            if txn.id in known_ids:
                continue
            known_ids.add(txn.id)
            added.append(txn)
            if txn.symbol not in self._stocks:
                self._stocks = [*self._stocks, txn.symbol]

        self._transactions = [*self._transactions, *added]
        logger.info("Merged %d of %d transactions", len(added), len(transactions))
        return added

    def remove_transaction(self, transaction_id: str) -> Transaction:
        """Permanently delete a transaction and return it."""
        txn = self.get_transaction(transaction_id)
        self._transactions = [t for t in self._transactions if t.id != transaction_id]
        logger.info("Removed %s", txn)
        return txn

    def toggle_transaction(self, transaction_id: str) -> Transaction:
        """Flip a transaction's active flag and return the updated transaction."""
        toggled = self.get_transaction(transaction_id)
        toggled = toggled.with_active(not toggled.is_active)
        self._transactions = [
            toggled if t.id == transaction_id else t for t in self._transactions
        ]
        logger.info("Set %s active=%s", transaction_id, toggled.is_active)
        return toggled

    # ── Reset / undo ─────────────────────────────────────────

    def reset_transactions(self, symbol: str | None = None) -> list[Transaction]:
        """
        Remove every transaction of a portfolio, keeping them undoable for a while.

        The removed transactions replace whatever the undo slot held. A
        portfolio without transactions is left alone and the undo slot is
        not touched.

        Args:
            symbol: Portfolio to reset. Defaults to the active portfolio.

        Returns:
            The removed transactions.
        """
        symbol = self._require_portfolio(symbol) if symbol else self.active_symbol
        removed = [t for t in self._transactions if t.symbol == symbol]
        if not removed:
            return []

        self._transactions = [t for t in self._transactions if t.symbol != symbol]
        self._undo = UndoBuffer(
            symbol=symbol,
            transactions=tuple(removed),
            expires_at=self._clock() + self.undo_window,
        )
        logger.info("Reset %s: %d transactions staged for undo", symbol, len(removed))
        return removed

    @property
    def pending_undo(self) -> UndoBuffer | None:
        """The pending undo buffer, or None if there is none or it expired."""
        if self._undo is not None and self._undo.is_expired(self._clock()):
            logger.debug("Undo buffer for %s expired", self._undo.symbol)
            self._undo = None
        return self._undo

    def restore_undo_buffer(self, buffer: UndoBuffer | None) -> None:
        """Install an undo buffer loaded from storage."""
        self._undo = buffer

    def undo_reset(self) -> list[Transaction]:
        """
        Bring back the transactions removed by the last reset.

        Returns:
            The restored transactions, or an empty list when there is nothing
            to undo (no reset yet, already undone, or expired).
        """
        buffer = self.pending_undo
        if buffer is None:
            return []

        if buffer.symbol not in self._stocks:
            self._stocks = [*self._stocks, buffer.symbol]

        known_ids = {t.id for t in self._transactions}
        restored = [t for t in buffer.transactions if t.id not in known_ids]
        self._transactions = [*self._transactions, *restored]
        self._undo = None
        logger.info("Restored %d transactions to %s", len(restored), buffer.symbol)
        return restored
