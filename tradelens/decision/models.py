"""Decision data models — the engine's input bundle and result record."""

from dataclasses import asdict, dataclass, field
from typing import Literal, Optional

from tradelens.analysis.divergence import Divergence
from tradelens.analysis.models import CandleData, OrderBookSnapshot, TechnicalIndicators
from tradelens.analysis.volume import VolumeAnalysisResult

Verdict = Literal["BUY", "SELL", "HOLD"]
Priority = Literal["low", "medium", "high"]


@dataclass(frozen=True)
class QualityMetrics:
    """The four data-quality sub-scores, each in ``[0, 1]``."""

    liquidity_score: float
    volume_reliability: float
    price_stability: float
    data_completeness: float


@dataclass(frozen=True)
class DataQuality:
    """Outcome of the data-quality gate.

    A decision must not be trusted when ``is_valid`` is false.
    """

    is_valid: bool
    confidence: float  # 0-1, mean of the sub-scores
    warnings: tuple[str, ...]
    metrics: QualityMetrics


@dataclass(frozen=True)
class EntryExitLevels:
    """Entry, stop and three ascending-distance targets for a trade."""

    entry_price: float
    stop_loss: float
    targets: tuple[float, float, float]
    risk_reward_ratio: float
    atr: Optional[float] = None  # None when the percentage fallback was used


@dataclass(frozen=True)
class WaitCondition:
    """A human-readable trigger that would upgrade a HOLD."""

    condition: str
    description: str
    priority: Priority


@dataclass(frozen=True)
class DecisionInput:
    """Everything the scorer needs, computed ahead of time."""

    price: float
    indicators: TechnicalIndicators
    divergences: tuple[Divergence, ...]
    volume_analysis: Optional[VolumeAnalysisResult]
    volume_24h: float
    candles: tuple[CandleData, ...]
    orderbook: Optional[OrderBookSnapshot] = None
    symbol: str = ""
    timeframe: str = "1h"


@dataclass(frozen=True)
class DecisionResult:
    """Final engine verdict.

    ``levels`` is set only for BUY/SELL and ``wait_for`` only for HOLD.
    """

    verdict: Verdict
    confidence: float  # 0-0.95
    score: float  # -100..100
    reasons: tuple[str, ...]
    risks: tuple[str, ...]
    data_quality: DataQuality
    timestamp: str
    timeframe: str
    symbol: str = ""
    levels: Optional[EntryExitLevels] = None
    wait_for: Optional[tuple[WaitCondition, ...]] = field(default=None)

    @property
    def is_actionable(self) -> bool:
        return self.verdict != "HOLD"

    def to_dict(self) -> dict:
        """Plain nested dict, ready for ``json.dumps``."""
        return asdict(self)
