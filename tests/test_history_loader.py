"""Tests for CSV candle loading and cleaning."""

import pandas as pd
import pytest

from switchcx.data.history import clean_candles, load_candles_csv, load_market_data, to_candles
from switchcx.repos.candle_cache import InMemoryCandleCache


HEADER = "time,open,high,low,close,volume\n"


def _write(path, rows: list[str]) -> None:
    path.write_text(HEADER + "".join(r + "\n" for r in rows))


class TestCleanCandles:
    def test_iso_times_sorted_and_deduplicated(self, tmp_path):
        path = tmp_path / "1h.csv"
        _write(path, [
            "2025-03-05T11:00:00Z,2001,2003,2000,2002,900",
            "2025-03-05T10:00:00Z,2000,2002,1999,2001,800",
            "2025-03-05T11:00:00Z,2001,2004,2000,2003,950",
        ])
        candles = load_candles_csv(path)

        assert [c.close for c in candles] == [2001.0, 2003.0]
        assert candles[0].timestamp == int(pd.Timestamp("2025-03-05T10:00:00Z").timestamp() * 1000)
        assert candles[1].timestamp - candles[0].timestamp == 3_600_000

    def test_epoch_millisecond_times(self):
        df = pd.DataFrame({
            "time": [7_200_000, 3_600_000],
            "open": [1.0, 2.0], "high": [1.5, 2.5], "low": [0.5, 1.5],
            "close": [1.2, 2.2], "volume": [10, 20],
        })
        candles = to_candles(clean_candles(df))
        assert [c.timestamp for c in candles] == [3_600_000, 7_200_000]
        assert candles[0].close == 2.2

    def test_missing_prices_dropped_and_volume_filled(self, tmp_path):
        path = tmp_path / "5m.csv"
        _write(path, [
            "2025-03-05T10:00:00Z,2000,2002,1999,2001,",
            "2025-03-05T10:05:00Z,2001,,2000,2002,100",
        ])
        candles = load_candles_csv(path)
        assert len(candles) == 1
        assert candles[0].volume == 0.0

    def test_missing_column(self):
        df = pd.DataFrame({"time": [0], "open": [1.0], "high": [1.0], "low": [1.0], "close": [1.0]})
        with pytest.raises(ValueError, match="volume"):
            clean_candles(df)

    def test_empty_frame(self):
        df = pd.DataFrame(columns=["time", "open", "high", "low", "close", "volume"])
        assert to_candles(clean_candles(df)) == []


class TestLoadMarketData:
    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_market_data(tmp_path / "nope")

    def test_missing_timeframe_is_empty(self, tmp_path):
        _write(tmp_path / "1h.csv", ["2025-03-05T10:00:00Z,2000,2002,1999,2001,800"])
        data = load_market_data(tmp_path, now=0)
        assert set(data) == {"4h", "1h", "15m", "5m"}
        assert len(data["1h"]) == 1
        assert data["4h"] == []

    def test_cache_serves_within_one_bar(self, tmp_path):
        path = tmp_path / "1h.csv"
        _write(path, ["2025-03-05T10:00:00Z,2000,2002,1999,2001,800"])
        cache = InMemoryCandleCache()

        first = load_market_data(tmp_path, cache=cache, now=0)
        _write(path, [
            "2025-03-05T10:00:00Z,2000,2002,1999,2001,800",
            "2025-03-05T11:00:00Z,2001,2003,2000,2002,900",
        ])

        assert load_market_data(tmp_path, cache=cache, now=30 * 60_000)["1h"] == first["1h"]
        assert len(load_market_data(tmp_path, cache=cache, now=60 * 60_000)["1h"]) == 2
