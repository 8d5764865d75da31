"""BatchAnalyzer — runs many symbol/timeframe analyses concurrently.

Each job is an independent ``analyze_async`` call scheduled as its own
``asyncio`` task.  One failing job (e.g. an empty candle list, or a
malformed candle that crashes an indicator) is logged and reported in its
outcome; it never cancels the others.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from tradelens.analysis.models import CandleData, OrderBookSnapshot, Ticker
from tradelens.config import Config
from tradelens.decision.engine import analyze_async
from tradelens.decision.models import DecisionResult

logger = logging.getLogger("tradelens.batch")


@dataclass(frozen=True)
class AnalysisJob:
    """One symbol/timeframe to analyze."""

    symbol: str
    timeframe: str
    candles: tuple[CandleData, ...]
    ticker: Ticker
    orderbook: Optional[OrderBookSnapshot] = None

    @property
    def key(self) -> str:
        return f"{self.symbol}:{self.timeframe}"


@dataclass(frozen=True)
class BatchOutcome:
    """Result of one job: a decision, or the error that prevented it."""

    key: str
    result: Optional[DecisionResult] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BatchAnalyzer:
    """Schedules analysis jobs and gathers their outcomes.

    Args:
        config:          Engine configuration shared by every job.
        max_concurrency: Upper bound on jobs in flight; ``None`` = unbounded.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        max_concurrency: Optional[int] = None,
    ) -> None:
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")
        self._config = config or Config()
        self._max_concurrency = max_concurrency
        self._jobs: dict[str, AnalysisJob] = {}

    # ── Public API ───────────────────────────────────────────────────────

    @property
    def job_keys(self) -> list[str]:
        """Registered ``symbol:timeframe`` keys in insertion order."""
        return list(self._jobs.keys())

    def add(self, job: AnalysisJob) -> None:
        """Register *job*; a later job with the same key replaces it."""
        if job.key in self._jobs:
            logger.info("Replacing queued job '%s'.", job.key)
        self._jobs[job.key] = job

    async def run_all(self) -> dict[str, BatchOutcome]:
        """Run every registered job concurrently.

        Returns:
            ``{symbol:timeframe: BatchOutcome}`` in registration order.
        """
        semaphore = (
            asyncio.Semaphore(self._max_concurrency)
            if self._max_concurrency is not None
            else None
        )

        async def _run_job(job: AnalysisJob) -> DecisionResult:
            if semaphore is None:
                return await self._analyze(job)
            async with semaphore:
                return await self._analyze(job)

        tasks = {
            key: asyncio.create_task(_run_job(job))
            for key, job in self._jobs.items()
        }

        outcomes: dict[str, BatchOutcome] = {}
        for key, task in tasks.items():
            try:
                outcomes[key] = BatchOutcome(key=key, result=await task)
            except ValueError as exc:
                logger.error("Job '%s' failed: %s", key, exc)
                outcomes[key] = BatchOutcome(key=key, error=str(exc))
            except Exception as exc:
                logger.exception("Job '%s' crashed: %s", key, exc)
                outcomes[key] = BatchOutcome(key=key, error=f"{type(exc).__name__}: {exc}")

        actionable = sum(1 for o in outcomes.values() if o.ok and o.result.is_actionable)
        logger.info("Batch finished: %d job(s), %d actionable.", len(outcomes), actionable)
        return outcomes

    async def _analyze(self, job: AnalysisJob) -> DecisionResult:
        logger.debug("Starting job '%s'.", job.key)
        return await analyze_async(
            list(job.candles),
            job.ticker,
            job.orderbook,
            timeframe=job.timeframe,
            symbol=job.symbol,
            config=self._config,
        )


async def analyze_batch(
    jobs: list[AnalysisJob],
    config: Optional[Config] = None,
    max_concurrency: Optional[int] = None,
) -> dict[str, BatchOutcome]:
    """Convenience wrapper: analyze *jobs* concurrently and return outcomes."""
    analyzer = BatchAnalyzer(config, max_concurrency)
    for job in jobs:
        analyzer.add(job)
    return await analyzer.run_all()
