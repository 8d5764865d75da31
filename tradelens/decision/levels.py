"""Entry, stop-loss and target levels — pure math, no I/O.

ATR approach (primary):
    SL is placed ``atr_stop_multiplier × ATR`` beyond the price and the
    three targets sit at the configured risk-reward multiples of that stop
    distance in the profit direction.

Percentage fallback:
    Used when ATR cannot be computed (short history) or is zero.  Flat
    3 % stop and +3/+6/+10 % targets, mirrored for sells.
"""

from typing import Literal, Optional

from tradelens.analysis.indicators import calculate_atr
from tradelens.analysis.models import CandleData
from tradelens.config import Config
from tradelens.decision.models import EntryExitLevels

Direction = Literal["BUY", "SELL"]


def _entry_price(price: float, direction: Direction, slippage_pct: float) -> float:
    """Entry with a slippage allowance: below price for buys, above for sells."""
    slip = slippage_pct / 100
    return price * (1 - slip) if direction == "BUY" else price * (1 + slip)


def fallback_levels(
    price: float,
    direction: Direction,
    config: Optional[Config] = None,
) -> EntryExitLevels:
    """Percentage-based levels for when no usable ATR exists."""
    cfg = config or Config()
    is_buy = direction == "BUY"
    sign = 1 if is_buy else -1

    stop_loss = price * (1 - sign * cfg.fallback_stop_pct)
    t1, t2, t3 = (price * (1 + sign * pct) for pct in cfg.fallback_target_pcts)

    return EntryExitLevels(
        entry_price=_entry_price(price, direction, cfg.entry_slippage_pct),
        stop_loss=stop_loss,
        targets=(t1, t2, t3),
        risk_reward_ratio=cfg.risk_reward_ratios[1],
        atr=None,
    )


def calculate_levels(
    price: float,
    direction: Direction,
    candles: list[CandleData],
    config: Optional[Config] = None,
) -> EntryExitLevels:
    """Compute stop-loss and targets for a trade at *price*.

    Args:
        price: Current market price.
        direction: ``"BUY"`` or ``"SELL"``.
        candles: History used for ATR, oldest-first.
        config: Engine configuration (defaults to ``Config()``).

    Returns:
        ``EntryExitLevels`` whose targets move away from the price in the
        profit direction.  ``risk_reward_ratio`` reports the T2 multiple.

    Raises:
        ValueError: If *direction* is not BUY or SELL.
    """
    if direction not in ("BUY", "SELL"):
        raise ValueError(f"direction must be 'BUY' or 'SELL', got '{direction}'")

    cfg = config or Config()
    atr = calculate_atr(candles, cfg.atr_period)
    if atr is None or atr == 0:
        return fallback_levels(price, direction, cfg)

    sign = 1 if direction == "BUY" else -1
    stop_distance = atr * cfg.atr_stop_multiplier
    t1, t2, t3 = (price + sign * stop_distance * ratio for ratio in cfg.risk_reward_ratios)

    return EntryExitLevels(
        entry_price=_entry_price(price, direction, cfg.entry_slippage_pct),
        stop_loss=price - sign * stop_distance,
        targets=(t1, t2, t3),
        risk_reward_ratio=cfg.risk_reward_ratios[1],
        atr=atr,
    )
