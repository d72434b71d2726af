"""Weighted-average cost tracking for personal stock portfolios.

The accounting engine lives in `costavg.portfolio`; `costavg.store` holds
the mutable transaction collection and `costavg.persistence` reads and
writes it.
"""

from .portfolio import (
    AnnotatedTransaction,
    CostAveragingInfeasible,
    CostAveragingPlan,
    InfeasibilityReason,
    Position,
    SimulationResult,
    SimulationStatus,
    Transaction,
    TransactionPreview,
    TransactionType,
    aggregate,
    annotate,
    preview,
    simulate,
    solve_cost_averaging,
)
from .store import TransactionStore
