"""Risk metrics — pure functions over price levels and return series."""

import math


def risk_reward(entry_price: float, stop_loss: float, take_profit: float) -> float:
    """Reward-to-risk multiple of a trade; 0.0 when the stop sits at entry."""
    risk = abs(entry_price - stop_loss)
    reward = abs(take_profit - entry_price)
    return reward / risk if risk > 0 else 0.0


def portfolio_heat(risk_fractions: list[float]) -> float:
    """Total open risk as a fraction of equity."""
    return sum(risk_fractions)


def max_drawdown(equity_curve: list[float]) -> float:
    """Largest peak-to-trough decline as a fraction of the peak.

    Returns 0.0 for an empty or monotonically rising curve.

    Raises:
        ValueError: If the curve contains a non-positive value.
    """
    if not equity_curve:
        return 0.0
    if min(equity_curve) <= 0:
        raise ValueError("equity_curve values must be positive")

    peak = equity_curve[0]
    max_dd = 0.0
    for value in equity_curve:
        if value > peak:
            peak = value
        dd = (peak - value) / peak
        if dd > max_dd:
            max_dd = dd
    return max_dd


def sharpe_ratio(returns: list[float], risk_free_rate: float = 0.02) -> float:
    """Per-period Sharpe ratio against an annual risk-free rate.

    The annual rate is converted to a daily one over 252 trading days and
    the population standard deviation is used.  Returns 0.0 with fewer
    than 2 observations or zero variance.
    """
    n = len(returns)
    if n < 2:
        return 0.0
    mean = sum(returns) / n
    variance = sum((r - mean) ** 2 for r in returns) / n
    std = math.sqrt(variance)
    if std == 0:
        return 0.0
    return (mean - risk_free_rate / 252) / std


def correlation(returns_a: list[float], returns_b: list[float]) -> float:
    """Pearson correlation of two aligned return series.

    Returns 0.0 for fewer than 2 observations or a flat series.

    Raises:
        ValueError: If the series differ in length.
    """
    if len(returns_a) != len(returns_b):
        raise ValueError(
            f"return series must be aligned, got {len(returns_a)} and {len(returns_b)}"
        )
    n = len(returns_a)
    if n < 2:
        return 0.0

    mean_a = sum(returns_a) / n
    mean_b = sum(returns_b) / n
    numerator = 0.0
    sum_sq_a = 0.0
    sum_sq_b = 0.0
    for a, b in zip(returns_a, returns_b):
        da = a - mean_a
        db = b - mean_b
        numerator += da * db
        sum_sq_a += da * da
        sum_sq_b += db * db

    denominator = math.sqrt(sum_sq_a * sum_sq_b)
    return numerator / denominator if denominator > 0 else 0.0
