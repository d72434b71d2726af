"""Weighted-average cost accounting for a single portfolio.

Every function here is a pure derivation over an ordered list of
transactions: nothing is cached and nothing is mutated. Callers re-run the
derivations after every change to the transaction list or to the
hypothetical inputs (price, quantity, target average).
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Union

ZERO = Decimal("0")
HUNDRED = Decimal("100")

NumberInput = Union[Decimal, float, int, str, None]


class TransactionType(Enum):
    """Supported transaction types."""

    BUY = "BUY"
    SELL = "SELL"


class SimulationStatus(Enum):
    """Sign of the unrealized profit or loss of a simulated position."""

    PROFIT = "PROFIT"
    LOSS = "LOSS"
    NEUTRAL = "NEUTRAL"


class InfeasibilityReason(Enum):
    """Why a cost-averaging target cannot be reached."""

    TARGET_NOT_ABOVE_PRICE = "Target must exceed the current simulated price"
    TARGET_NOT_BELOW_AVERAGE = "Target must be below the current average cost"


def parse_positive_decimal(value: NumberInput) -> Decimal | None:
    """
    Parse a user-entered number into a strictly positive Decimal.

    Args:
        value: The raw value. Strings are stripped and may use a comma as
            the decimal separator.

    Returns:
        The parsed Decimal, or None if the value is missing, not a finite
        number, or not greater than zero.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        number = value
    else:
        text = str(value).strip().replace(",", ".")
        if not text:
            return None
        try:
            number = Decimal(text)
        except InvalidOperation:
            return None
    if not number.is_finite() or number <= 0:
        return None
    return number


def new_transaction_id() -> str:
    """Return a fresh opaque transaction identifier."""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Transaction:
    """
    A single BUY or SELL of one symbol.

    Transactions are immutable values. The two fields that may change over
    a transaction's lifetime (`symbol` on a portfolio rename and
    `is_active` on a toggle) are changed by building a new value with
    `with_symbol` / `with_active`.
    """

    symbol: str
    transaction_type: TransactionType
    price: Decimal
    quantity: Decimal
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    is_active: bool = True
    id: str = field(default_factory=new_transaction_id)

    @property
    def total_value(self) -> Decimal:
        return self.price * self.quantity

    def with_active(self, is_active: bool) -> "Transaction":
        return replace(self, is_active=is_active)

    def with_symbol(self, symbol: str) -> "Transaction":
        return replace(self, symbol=symbol)

    def __repr__(self):
        return (
            f"Transaction(id={self.id}, ticker={self.symbol}, type={self.transaction_type.value}, "
            f"quantity={self.quantity}, price={self.price}, date={self.timestamp}, active={self.is_active})"
        )


@dataclass(frozen=True)
class Position:
    """The weighted-average position derived from a transaction history."""

    total_quantity: Decimal = ZERO
    total_cost: Decimal = ZERO
    average_cost: Decimal = ZERO

    @property
    def is_empty(self) -> bool:
        return self.total_quantity == 0


@dataclass(frozen=True)
class AnnotatedTransaction:
    """A transaction together with the profit/loss its sale realized."""

    transaction: Transaction
    realized_pl: Decimal | None = None
    realized_pl_percent: Decimal = ZERO


@dataclass(frozen=True)
class TransactionPreview:
    """How a pending, uncommitted transaction would move the average cost."""

    new_average: Decimal
    delta: Decimal
    is_first_transaction: bool
    estimated_realized_pl: Decimal | None


@dataclass(frozen=True)
class SimulationResult:
    """Unrealized profit or loss of a position at a hypothetical price."""

    price: Decimal
    current_value: Decimal
    profit_or_loss_total: Decimal
    profit_or_loss_per_share: Decimal
    percentage_change: Decimal
    status: SimulationStatus


@dataclass(frozen=True)
class CostAveragingPlan:
    """Additional purchase that brings the average cost down to a target."""

    target_average: Decimal
    required_quantity: Decimal
    required_capital: Decimal


@dataclass(frozen=True)
class CostAveragingInfeasible:
    """A cost-averaging target that cannot be reached."""

    target_average: Decimal
    reason: InfeasibilityReason

    @property
    def message(self) -> str:
        return self.reason.value


def sort_transactions(transactions: list[Transaction]) -> list[Transaction]:
    """
    Order transactions by timestamp.

    The sort is stable, so transactions sharing a timestamp keep their
    insertion order.
    """
    return sorted(transactions, key=lambda t: t.timestamp)


def _average(quantity: Decimal, cost: Decimal) -> Decimal:
    return cost / quantity if quantity > 0 else ZERO


def aggregate(transactions: list[Transaction]) -> Position:
    """
    Replay a portfolio's transactions into its weighted-average position.

    A BUY adds its price * quantity to the cost basis. A SELL out of a held
    position keeps the average cost and scales the cost basis down to the
    remaining quantity. A SELL with nothing held subtracts its proceeds from
    the cost basis. Quantity and cost are clamped at zero after every step.

    Args:
        transactions: Transactions of one portfolio in timestamp order.
            Inactive transactions are ignored.

    Returns:
        The resulting Position. An empty history yields an all-zero Position.
    """
    quantity = ZERO
    cost = ZERO

    for txn in transactions:
        if not txn.is_active:
            continue

        if txn.transaction_type == TransactionType.BUY:
            cost += txn.total_value
            quantity += txn.quantity

        elif txn.transaction_type == TransactionType.SELL:
            if quantity > 0:
                average_cost = cost / quantity
                quantity -= txn.quantity
                cost = quantity * average_cost
            else:
                # Selling from an empty book: no average cost applies.
                quantity -= txn.quantity
                cost -= txn.total_value

        quantity = max(ZERO, quantity)
        cost = max(ZERO, cost)

    return Position(
        total_quantity=quantity,
        total_cost=cost,
        average_cost=_average(quantity, cost),
    )


def annotate(transactions: list[Transaction]) -> list[AnnotatedTransaction]:
    """
    Attach realized profit/loss to every sale in a transaction history.

    Each SELL is measured against the average cost as it stood immediately
    before that sale, which is why this runs its own replay instead of
    reusing the final Position.

    Args:
        transactions: Transactions of one portfolio in timestamp order.

    Returns:
        One AnnotatedTransaction per input transaction, in input order.
        BUYs, inactive transactions and sales made with nothing held carry
        a realized_pl of None.
    """
    quantity = ZERO
    cost = ZERO
    annotated: list[AnnotatedTransaction] = []

    for txn in transactions:
        realized_pl: Decimal | None = None
        realized_pl_percent = ZERO

        if txn.is_active:
            if txn.transaction_type == TransactionType.BUY:
                cost += txn.total_value
                quantity += txn.quantity

            elif txn.transaction_type == TransactionType.SELL:
                if quantity > 0:
                    average_cost = cost / quantity
                    cost_basis = txn.quantity * average_cost
                    realized_pl = txn.total_value - cost_basis
                    if average_cost > 0:
                        realized_pl_percent = (txn.price - average_cost) / average_cost * HUNDRED

                    quantity -= txn.quantity
                    cost = quantity * average_cost
                else:
                    quantity -= txn.quantity
                    cost -= txn.total_value

            quantity = max(ZERO, quantity)
            cost = max(ZERO, cost)

        annotated.append(
            AnnotatedTransaction(
                transaction=txn,
                realized_pl=realized_pl,
                realized_pl_percent=realized_pl_percent,
            )
        )

    return annotated


def preview(
    position: Position,
    transaction_type: TransactionType,
    price: NumberInput,
    quantity: NumberInput,
) -> TransactionPreview | None:
    """
    Preview the effect of a transaction that has not been recorded yet.

    Args:
        position: The current position.
        transaction_type: BUY or SELL.
        price: Price per share as entered.
        quantity: Number of shares as entered.

    Returns:
        The preview, or None while price or quantity is missing, not a
        number, or not positive.
    """
    p = parse_positive_decimal(price)
    q = parse_positive_decimal(quantity)
    if p is None or q is None:
        return None

    estimated_realized_pl: Decimal | None = None

    if transaction_type == TransactionType.BUY:
        new_quantity = position.total_quantity + q
        new_cost = position.total_cost + p * q
    else:
        new_quantity = max(ZERO, position.total_quantity - q)
        new_cost = new_quantity * position.average_cost
        estimated_realized_pl = (p - position.average_cost) * q

    new_average = _average(new_quantity, new_cost)

    return TransactionPreview(
        new_average=new_average,
        delta=new_average - position.average_cost,
        is_first_transaction=position.total_quantity == 0,
        estimated_realized_pl=estimated_realized_pl,
    )


def simulate(position: Position, price: NumberInput) -> SimulationResult | None:
    """
    Value a position at a hypothetical market price.

    Args:
        position: The current position.
        price: The hypothetical price per share as entered.

    Returns:
        The simulation, or None when nothing is held or the price is
        missing, not a number, or not positive.
    """
    if position.total_quantity == 0:
        return None

    p = parse_positive_decimal(price)
    if p is None:
        return None

    current_value = p * position.total_quantity
    total = current_value - position.total_cost
    per_share = p - position.average_cost

    if position.average_cost > 0:
        percentage_change = per_share / position.average_cost * HUNDRED
    else:
        percentage_change = ZERO

    if total > 0:
        status = SimulationStatus.PROFIT
    elif total < 0:
        status = SimulationStatus.LOSS
    else:
        status = SimulationStatus.NEUTRAL

    return SimulationResult(
        price=p,
        current_value=current_value,
        profit_or_loss_total=total,
        profit_or_loss_per_share=per_share,
        percentage_change=percentage_change,
        status=status,
    )


def solve_cost_averaging(
    simulation: SimulationResult | None,
    position: Position,
    target_average: NumberInput,
) -> CostAveragingPlan | CostAveragingInfeasible | None:
    """
    Solve how many shares to buy at the simulated price to reach a target average.

    Buying x shares at price s moves the average to
    (qty * avg + x * s) / (qty + x). Setting that equal to the target t
    gives x = qty * (avg - t) / (t - s).

    Args:
        simulation: The simulation of the position. The solver only
            applies to positions simulated at a loss.
        position: The current position.
        target_average: The desired average cost as entered.

    Returns:
        A CostAveragingPlan, a CostAveragingInfeasible naming why the target
        cannot be reached, or None when the solver does not apply (no
        losing simulation, or a missing or non-positive target).
    """
    if simulation is None or simulation.status != SimulationStatus.LOSS:
        return None

    target = parse_positive_decimal(target_average)
    if target is None:
        return None

    simulated_price = simulation.price

    if target <= simulated_price:
        return CostAveragingInfeasible(target, InfeasibilityReason.TARGET_NOT_ABOVE_PRICE)

    if target >= position.average_cost:
        return CostAveragingInfeasible(target, InfeasibilityReason.TARGET_NOT_BELOW_AVERAGE)

    required_quantity = (
        position.total_quantity * (position.average_cost - target) / (target - simulated_price)
    )

    return CostAveragingPlan(
        target_average=target,
        required_quantity=required_quantity,
        required_capital=required_quantity * simulated_price,
    )
