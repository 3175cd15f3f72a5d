"""
Trading Module

Provides:
- Trade orchestration with atomic ledger linkage
- Trade / ledger linking rules
- Position and realized P&L calculation
"""
from investment_tracker.core.trading.orchestrator import (
    TradeOrchestrator,
    TradeRequest,
    TradeResult,
)
from investment_tracker.core.trading.linking import (
    LinkedEntrySpec,
    build_linked_entry,
    build_linked_entry_spec,
    ensure_currency_matches_ledger,
)
from investment_tracker.core.trading.positions import (
    StockPosition,
    UnrealizedPnl,
    apply_transaction,
    calculate_position,
    calculate_positions,
    calculate_realized_pnl,
    calculate_unrealized_pnl,
    held_tickers,
)

__all__ = [
    "TradeOrchestrator",
    "TradeRequest",
    "TradeResult",
    "LinkedEntrySpec",
    "build_linked_entry",
    "build_linked_entry_spec",
    "ensure_currency_matches_ledger",
    "StockPosition",
    "UnrealizedPnl",
    "apply_transaction",
    "calculate_position",
    "calculate_positions",
    "calculate_realized_pnl",
    "calculate_unrealized_pnl",
    "held_tickers",
]
