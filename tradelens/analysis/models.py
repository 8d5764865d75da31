"""Analysis data models — typed inputs and indicator outputs."""

from dataclasses import dataclass, field
from typing import Literal, Optional


@dataclass(frozen=True)
class CandleData:
    """A single OHLCV bar, oldest-first in any sequence the engine reads."""

    time: str
    open: float
    high: float
    low: float
    close: float
    volume: float


@dataclass(frozen=True)
class Ticker:
    """Live 24h ticker fields used by the liquidity checks."""

    last_price: float
    high_24h: float
    low_24h: float
    volume_24h: float  # quote-currency volume


@dataclass(frozen=True)
class OrderBookSnapshot:
    """Top-of-book summary supplied by the exchange client."""

    spread: float
    spread_percent: float
    bid_depth: float = 0.0
    ask_depth: float = 0.0


# ── Indicator sub-structures ─────────────────────────────────────────────


@dataclass(frozen=True)
class MACDSnapshot:
    """Latest MACD reading.

    ``signal`` is ``macd * 0.8``, an approximation of the 9-period EMA of
    the MACD line, so ``histogram`` is always ``0.2 * macd``.
    """

    macd: float
    signal: float
    histogram: float


@dataclass(frozen=True)
class BollingerBands:
    """Latest Bollinger Band values."""

    upper: float
    middle: float
    lower: float
    squeeze: bool  # bandwidth below 10 % of the middle band


@dataclass(frozen=True)
class IchimokuCloud:
    """Latest Ichimoku lines and the price/cloud classification."""

    tenkan_sen: float
    kijun_sen: float
    senkou_span_a: float
    senkou_span_b: float
    signal: Literal["bullish", "bearish", "neutral"]


@dataclass(frozen=True)
class FibonacciLevel:
    """One retracement level measured down from the range high."""

    level: float
    price: float
    label: str


@dataclass(frozen=True)
class SupportResistance:
    """Pivot-derived support and resistance levels, ascending."""

    supports: tuple[float, ...] = ()
    resistances: tuple[float, ...] = ()
    nearest_support: Optional[float] = None
    nearest_resistance: Optional[float] = None


@dataclass(frozen=True)
class TechnicalIndicators:
    """Scalar indicator readings plus optional nested structures.

    The optional fields are ``None`` (or empty) when the price history is
    too short to compute them; consumers must check before use.
    """

    rsi: float
    ma50: float
    ma200: float
    ema12: float
    ema26: float
    macd: float
    volatility: float
    bollinger_bands: Optional[BollingerBands] = None
    ichimoku: Optional[IchimokuCloud] = None
    fibonacci: tuple[FibonacciLevel, ...] = field(default_factory=tuple)
    support_resistance: Optional[SupportResistance] = None
