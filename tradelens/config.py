"""TradeLens — engine configuration.

Every threshold the decision engine uses lives on one frozen ``Config``.
``Config()`` carries the production defaults; ``load_config()`` layers a
.env file and ``TRADELENS_*`` environment variables on top and validates
the result on startup.
"""

import os
from dataclasses import dataclass, fields, replace

from dotenv import load_dotenv

_ENV_PREFIX = "TRADELENS_"


@dataclass(frozen=True)
class Config:
    """Typed engine configuration."""

    # Verdict thresholds
    buy_threshold: float = 70.0
    sell_threshold: float = -70.0

    # Data quality gate
    min_data_quality: float = 0.60
    min_liquidity: float = 100_000.0  # min 24h quote volume
    max_spread_percent: float = 0.5
    max_missing_candles: float = 0.10
    expected_candles: int = 200
    min_liquidity_score: float = 0.5

    # Entry/exit levels
    atr_period: int = 14
    atr_stop_multiplier: float = 1.5
    risk_reward_ratios: tuple[float, ...] = (1.0, 2.0, 3.5)
    fallback_stop_pct: float = 0.03
    fallback_target_pcts: tuple[float, ...] = (0.03, 0.06, 0.10)
    entry_slippage_pct: float = 0.2

    # Confidence modifiers
    high_volatility_penalty: float = 0.7
    low_volume_penalty: float = 0.8

    log_level: str = "INFO"
    api_port: int = 8080

    def __post_init__(self) -> None:
        if self.buy_threshold <= self.sell_threshold:
            raise ValueError(
                f"{_ENV_PREFIX}BUY_THRESHOLD ({self.buy_threshold}) must be greater "
                f"than {_ENV_PREFIX}SELL_THRESHOLD ({self.sell_threshold})"
            )
        if not 0.0 <= self.min_data_quality <= 1.0:
            raise ValueError(
                f"{_ENV_PREFIX}MIN_DATA_QUALITY must be within [0, 1], "
                f"got {self.min_data_quality}"
            )
        for name in ("expected_candles", "atr_period", "atr_stop_multiplier", "api_port"):
            if getattr(self, name) <= 0:
                raise ValueError(
                    f"{_ENV_PREFIX}{name.upper()} must be positive, got {getattr(self, name)}"
                )
        if len(self.risk_reward_ratios) != 3 or len(self.fallback_target_pcts) != 3:
            raise ValueError(
                f"{_ENV_PREFIX}RISK_REWARD_RATIOS and {_ENV_PREFIX}FALLBACK_TARGET_PCTS "
                "need exactly three values"
            )


def _parse(name: str, raw: str, default):
    var = f"{_ENV_PREFIX}{name.upper()}"
    try:
        if isinstance(default, tuple):
            return tuple(float(part) for part in raw.split(",") if part.strip())
        if isinstance(default, int):
            return int(raw)
        if isinstance(default, float):
            return float(raw)
    except ValueError:
        raise ValueError(f"Invalid value for {var}: {raw!r}") from None
    return raw


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from a .env file and ``TRADELENS_*`` variables.

    All variables are optional; anything unset keeps its ``Config()``
    default.  Tuple settings are comma-separated
    (``TRADELENS_RISK_REWARD_RATIOS=1,2,3.5``).

    Raises ``ValueError`` naming the offending variable when a value does
    not parse or the combination is inconsistent.
    """
    load_dotenv(dotenv_path=env_path)

    defaults = Config()
    overrides = {}
    for f in fields(Config):
        raw = os.environ.get(f"{_ENV_PREFIX}{f.name.upper()}")
        if raw is None or raw == "":
            continue
        overrides[f.name] = _parse(f.name, raw, getattr(defaults, f.name))

    if "log_level" in overrides:
        overrides["log_level"] = overrides["log_level"].upper()

    return replace(defaults, **overrides)
