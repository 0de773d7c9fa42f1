"""Historical candle loading from CSV files.

One file per timeframe (``4h.csv``, ``1h.csv``, ``15m.csv``, ``5m.csv``)
with columns ``time, open, high, low, close, volume``.  ``time`` may be
an ISO-8601 string or epoch milliseconds.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from switchcx.repos.candle_cache import CandleCache
from switchcx.strategy.models import TIMEFRAMES, Candle, Timeframe

logger = logging.getLogger("switchcx.data")

REQUIRED_COLUMNS = ["time", "open", "high", "low", "close", "volume"]

_EPOCH = pd.Timestamp(0, tz="UTC")


# ── Data quality ─────────────────────────────────────────────────────────


def clean_candles(df: pd.DataFrame) -> pd.DataFrame:
    """Normalise raw candle rows.

    1. Parse ``time`` to UTC datetimes.
    2. Drop rows with a missing price or time.
    3. Drop duplicate timestamps, keeping the last row.
    4. Sort oldest-first.

    Raises:
        ValueError: If a required column is missing.
    """
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Candle data missing columns: {missing}")

    df = df[REQUIRED_COLUMNS].copy()
    if df.empty:
        return df

    if pd.api.types.is_numeric_dtype(df["time"]):
        df["time"] = pd.to_datetime(df["time"], unit="ms", utc=True)
    elif not pd.api.types.is_datetime64_any_dtype(df["time"]):
        df["time"] = pd.to_datetime(df["time"], utc=True)
    elif df["time"].dt.tz is None:
        df["time"] = df["time"].dt.tz_localize("UTC")

    df["volume"] = df["volume"].fillna(0)
    before = len(df)
    df = df.dropna(subset=["time", "open", "high", "low", "close"])
    df = df.drop_duplicates(subset="time", keep="last")
    df = df.sort_values("time").reset_index(drop=True)

    dropped = before - len(df)
    if dropped:
        logger.info("Dropped %d invalid or duplicate candle rows", dropped)
    return df


def to_candles(df: pd.DataFrame) -> list[Candle]:
    """Convert a cleaned frame to ``Candle`` objects with epoch-ms timestamps."""
    if df.empty:
        return []
    millis = (df["time"] - _EPOCH) // pd.Timedelta(milliseconds=1)
    return [
        Candle(
            timestamp=int(ts),
            open=float(o),
            high=float(h),
            low=float(lo),
            close=float(c),
            volume=float(v),
        )
        for ts, o, h, lo, c, v in zip(
            millis, df["open"], df["high"], df["low"], df["close"], df["volume"],
        )
    ]


# ── Loading ──────────────────────────────────────────────────────────────


def load_candles_csv(path: Union[str, Path]) -> list[Candle]:
    """Read, clean and convert one CSV file."""
    path = Path(path)
    df = clean_candles(pd.read_csv(path))
    logger.info("Loaded %d candles from %s", len(df), path)
    return to_candles(df)


def load_market_data(
    directory: Union[str, Path],
    cache: Optional[CandleCache] = None,
    now: Optional[int] = None,
) -> dict[Timeframe, list[Candle]]:
    """Load every timeframe found in *directory*.

    Timeframes without a file map to an empty list.  With a *cache*, a
    timeframe read less than one bar ago (relative to *now*, epoch ms,
    default the wall clock) is served from it instead of the file.

    Raises:
        FileNotFoundError: If *directory* does not exist.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise FileNotFoundError(f"No such data directory: {directory}")
    if now is None:
        now = int(datetime.now(timezone.utc).timestamp() * 1000)

    market_data: dict[Timeframe, list[Candle]] = {}
    for tf in TIMEFRAMES:
        path = directory / f"{tf}.csv"
        key = str(path.resolve())
        cached = cache.get(tf, key, now) if cache is not None else None
        if cached is not None:
            market_data[tf] = cached
        elif path.exists():
            market_data[tf] = load_candles_csv(path)
            if cache is not None:
                cache.set(tf, key, market_data[tf], now)
        else:
            logger.warning("No %s data at %s", tf, path)
            market_data[tf] = []
    return market_data
