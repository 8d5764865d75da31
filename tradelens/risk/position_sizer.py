"""Position sizing — pure math, no I/O.

Calculates how many units of an asset to buy or sell from account equity,
the risk budget and the distance between entry and stop-loss.
"""

from typing import Optional

from tradelens.decision.models import DecisionResult

MAX_POSITION_RISK = 0.02  # fraction of equity
KELLY_FRACTION = 0.25


def calculate_units(
    equity: float,
    risk_pct: float,
    entry_price: float,
    stop_loss: float,
) -> float:
    """Calculate position size in units.

    Formula::

        risk_amount = equity × (risk_pct / 100)
        unit_risk   = |entry_price − stop_loss|
        units       = risk_amount / unit_risk

    Args:
        equity: Current account equity (e.g. 10_000.0).
        risk_pct: Percentage of equity to risk per trade (e.g. 1.0 for 1 %).
        entry_price: Planned entry price.
        stop_loss: Stop-loss price.

    Returns:
        Position size in units (always positive).

    Raises:
        ValueError: If equity, risk or prices are non-positive, or the stop
            sits at the entry price.
    """
    if equity <= 0:
        raise ValueError(f"equity must be positive, got {equity}")
    if risk_pct <= 0:
        raise ValueError(f"risk_pct must be positive, got {risk_pct}")
    if entry_price <= 0 or stop_loss <= 0:
        raise ValueError(
            f"prices must be positive, got entry={entry_price} stop={stop_loss}"
        )
    unit_risk = abs(entry_price - stop_loss)
    if unit_risk == 0:
        raise ValueError("stop_loss must differ from entry_price")

    risk_amount = equity * (risk_pct / 100.0)
    return risk_amount / unit_risk


def kelly_position_value(
    win_rate: float,
    avg_win: float,
    avg_loss: float,
    equity: float,
) -> float:
    """Capital to allocate by quarter-Kelly, capped at 2 % of *equity*.

    ``kelly = (p·b − (1 − p)) / b`` with ``b = avg_win / avg_loss``.  A
    negative edge allocates nothing, as does a non-positive *avg_loss*.

    Raises:
        ValueError: If *win_rate* is outside ``[0, 1]`` or *equity* is negative.
    """
    if not 0.0 <= win_rate <= 1.0:
        raise ValueError(f"win_rate must be within [0, 1], got {win_rate}")
    if equity < 0:
        raise ValueError(f"equity must be non-negative, got {equity}")
    if avg_loss <= 0 or avg_win <= 0:
        return 0.0

    ratio = avg_win / avg_loss
    kelly = (win_rate * ratio - (1 - win_rate)) / ratio
    fraction = max(0.0, min(kelly * KELLY_FRACTION, MAX_POSITION_RISK))
    return equity * fraction


def position_size_for_decision(
    decision: DecisionResult,
    equity: float,
    risk_pct: float = 1.0,
) -> Optional[float]:
    """Units to trade for an actionable decision, ``None`` for a HOLD."""
    if decision.levels is None:
        return None
    return calculate_units(
        equity,
        risk_pct,
        decision.levels.entry_price,
        decision.levels.stop_loss,
    )
