"""Candle adapters — exchange klines, DataFrames and CSV/Parquet files.

Everything funnels through ``clean_candles()`` so the engine always sees an
ascending, duplicate-free, finite OHLCV history.

Usage (quick look at a file):
    python -m tradelens.main analyze --candles data/BTCUSDT_1h.parquet --volume-24h 2.5e6
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Sequence

import numpy as np
import pandas as pd

from tradelens.analysis.models import CandleData

logger = logging.getLogger("tradelens.data")

OHLCV_COLUMNS = ["time", "open", "high", "low", "close", "volume"]
_NUMERIC = ["open", "high", "low", "close", "volume"]


# ── Cleaning ─────────────────────────────────────────────────────────────


def clean_candles(df: pd.DataFrame) -> pd.DataFrame:
    """Normalise a raw OHLCV frame.

    1. Parse ``time`` as UTC datetimes.
    2. Sort ascending by time.
    3. Drop duplicate timestamps (the last row wins).
    4. Drop rows with non-finite OHLCV values.

    Raises:
        ValueError: If a required column is missing.
    """
    missing = [c for c in OHLCV_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Candle frame is missing column(s): {', '.join(missing)}")

    df = df[OHLCV_COLUMNS].copy()
    if df.empty:
        return df

    if not pd.api.types.is_datetime64_any_dtype(df["time"]):
        df["time"] = pd.to_datetime(df["time"], utc=True)
    elif df["time"].dt.tz is None:
        df["time"] = df["time"].dt.tz_localize("UTC")

    for col in _NUMERIC:
        df[col] = pd.to_numeric(df[col], errors="coerce")

    before = len(df)
    df = df.sort_values("time", kind="stable")
    df = df.drop_duplicates(subset="time", keep="last")
    finite = np.isfinite(df[_NUMERIC].to_numpy(dtype=float)).all(axis=1)
    df = df[finite].reset_index(drop=True)

    dropped = before - len(df)
    if dropped:
        logger.debug("Dropped %d duplicate or non-finite candle row(s)", dropped)
    return df


def _format_time(ts: pd.Timestamp) -> str:
    return ts.strftime("%Y-%m-%dT%H:%M:%SZ")


# ── Adapters ─────────────────────────────────────────────────────────────


def candles_from_frame(df: pd.DataFrame) -> list[CandleData]:
    """Convert a ``time, open, high, low, close, volume`` frame to candles."""
    clean = clean_candles(df)
    return [
        CandleData(
            time=_format_time(row.time),
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
            volume=float(row.volume),
        )
        for row in clean.itertuples(index=False)
    ]


def candles_from_klines(rows: Iterable[Sequence]) -> list[CandleData]:
    """Convert exchange kline rows ``[open_time_ms, o, h, l, c, v, ...]``.

    Values may be strings or numbers; extra trailing fields are ignored.

    Raises:
        ValueError: If a row has fewer than six fields.
    """
    records = []
    for i, row in enumerate(rows):
        if len(row) < 6:
            raise ValueError(f"Kline row {i} has {len(row)} field(s), expected at least 6")
        records.append(list(row[:6]))

    df = pd.DataFrame(records, columns=OHLCV_COLUMNS)
    if df.empty:
        return []
    df["time"] = pd.to_datetime(pd.to_numeric(df["time"]), unit="ms", utc=True)
    return candles_from_frame(df)


def candles_to_frame(candles: Sequence[CandleData]) -> pd.DataFrame:
    """Inverse of :func:`candles_from_frame`."""
    df = pd.DataFrame(
        [(c.time, c.open, c.high, c.low, c.close, c.volume) for c in candles],
        columns=OHLCV_COLUMNS,
    )
    if not df.empty:
        df["time"] = pd.to_datetime(df["time"], utc=True)
    return df


# ── File I/O ─────────────────────────────────────────────────────────────


def load_candles(path: str | Path) -> list[CandleData]:
    """Read candles from a ``.csv`` or ``.parquet`` file.

    Raises:
        ValueError: For any other file extension.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".csv":
        df = pd.read_csv(path)
    elif suffix in (".parquet", ".pq"):
        df = pd.read_parquet(path, engine="pyarrow")
    else:
        raise ValueError(f"Unsupported candle file type: {path.suffix or path.name}")

    candles = candles_from_frame(df)
    logger.info("Loaded %d candles from %s", len(candles), path)
    return candles


def save_candles(candles: Sequence[CandleData], path: str | Path) -> None:
    """Write candles to a Parquet file, creating directories as needed."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    candles_to_frame(candles).to_parquet(path, engine="pyarrow", index=False)
    logger.info("Saved %d candles → %s", len(candles), path)
