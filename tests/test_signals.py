"""Tests for the signal generator.

The positive paths pin the multi-timeframe analysis and the breakout
lookup with monkeypatch so each gate can be exercised in isolation; the
Chandelier stop and targets are computed from real 1h candles.
"""

from datetime import datetime, timezone

import pytest

from switchcx.config import StrategyConfig
from switchcx.models.engine_state import EngineState
from switchcx.strategy import signals as signals_module
from switchcx.strategy.models import (
    BreakoutResult,
    BreakoutZone,
    Candle,
    TimeframeCriteria,
    TimeframeScore,
    Trendline,
)
from switchcx.strategy.signals import MarketAnalysis, SignalGenerator, analyze_market
from switchcx.strategy.tiers import calculate_confirmation_tier


HOUR_MS = 3_600_000

# Wednesday 10:00 UTC, London session
LONDON_NOW = int(datetime(2025, 3, 5, 10, 0, tzinfo=timezone.utc).timestamp() * 1000)
ASIAN_NOW = int(datetime(2025, 3, 5, 2, 0, tzinfo=timezone.utc).timestamp() * 1000)

ZONE = BreakoutZone(level=2058.0, zone_type="resistance", strength=60.0, touches=3)


def _rising_1h(n: int = 120, last_volume: float = 1000.0) -> list[Candle]:
    """Close rises 0.5 per bar with a constant 4-point range (ATR 4)."""
    candles = []
    for i in range(n):
        close = 2000.0 + 0.5 * i
        candles.append(
            Candle(
                timestamp=i * HOUR_MS,
                open=close - 0.25,
                high=close + 2.0,
                low=close - 2.0,
                close=close,
                volume=last_volume if i == n - 1 else 1000.0,
            )
        )
    return candles


def _market_data(**overrides) -> dict:
    data = {"4h": [], "1h": _rising_1h(), "15m": [], "5m": []}
    data.update(overrides)
    return data


def _analysis(
    trends: tuple[str, str, str, str],
    scores: tuple[int, int, int, int],
    fast_trends: tuple[str, str, str] | None = None,
) -> MarketAnalysis:
    tfs = ("4h", "1h", "15m", "5m")
    score_map = {
        tf: TimeframeScore(timeframe=tf, score=s, criteria=TimeframeCriteria(), adx_value=25.0)
        for tf, s in zip(tfs, scores)
    }
    trend_map = dict(zip(tfs, trends))
    tier = calculate_confirmation_tier(score_map, *trends)
    aggressive = None
    if fast_trends is not None:
        aggressive = {"4h": trends[0], **dict(zip(tfs[1:], fast_trends))}
    return MarketAnalysis(scores=score_map, trends=trend_map, tier=tier, aggressive_trends=aggressive)


@pytest.fixture
def pin(monkeypatch):
    """Pin analysis and breakout; returns a setter for both."""

    def _pin(
        generator: SignalGenerator,
        trends=("bullish", "bullish", "bullish", "bullish"),
        scores=(3, 3, 3, 3),
        breakout=BreakoutResult(is_breakout=True, direction="bullish", zone=ZONE),
        fast_trends=None,
    ):
        analysis = _analysis(trends, scores, fast_trends)
        monkeypatch.setattr(signals_module, "analyze_market", lambda data, cfg: analysis)
        monkeypatch.setattr(generator, "_find_breakout", lambda candles, price: breakout)

    return _pin


PRICE = 2059.5  # last 1h close
STOP_LONG = 2049.5  # highest high 2061.5 − 3 × ATR 4


class TestSignalEmission:
    def test_conservative_bullish_signal(self, pin):
        generator = SignalGenerator()
        pin(generator)
        state = EngineState()

        signal = generator.generate_signal(_market_data(), PRICE, state, now=LONDON_NOW)

        assert signal is not None
        assert signal.id == f"signal_{LONDON_NOW}"
        assert signal.direction == "bullish"
        assert signal.entry_price == PRICE
        assert signal.stop_loss == pytest.approx(STOP_LONG)
        assert signal.chandelier_stop == pytest.approx(STOP_LONG)
        assert signal.tp1 == pytest.approx(PRICE + 2 * 10.0)
        assert signal.tp2 == pytest.approx(PRICE + 3 * 10.0)
        assert signal.session == "london"
        assert signal.status == "active"
        assert signal.mode == "conservative"
        assert signal.breakout_zone == ZONE
        assert signal.metadata["source"] == "zone"
        assert signal.metadata["strong_confirmations"] == 4
        assert len(signal.timeframe_scores) == 4
        assert state.session_trades == 1

    def test_deterministic(self, pin):
        generator = SignalGenerator()
        pin(generator)
        a = generator.generate_signal(_market_data(), PRICE, EngineState(), now=LONDON_NOW)
        b = generator.generate_signal(_market_data(), PRICE, EngineState(), now=LONDON_NOW)
        assert a == b

    def test_now_defaults_to_latest_1h_candle(self, pin):
        generator = SignalGenerator(StrategyConfig(asian_min_volatility=0.0))
        pin(generator)
        signal = generator.generate_signal(_market_data(), PRICE, EngineState())
        assert signal.timestamp == 119 * HOUR_MS

    def test_trendline_source(self, pin):
        generator = SignalGenerator()
        line = Trendline(
            slope=-0.5, intercept=2100.0, line_type="descending",
            strength=50.0, touches=2, start_index=60, end_index=100,
        )
        pin(generator, breakout=BreakoutResult(is_breakout=True, direction="bullish", trendline=line))
        signal = generator.generate_signal(_market_data(), PRICE, EngineState(), now=LONDON_NOW)
        assert signal.metadata["source"] == "trendline"
        assert signal.trendline == line
        assert signal.breakout_zone is None

    def test_aggressive_mode(self, pin):
        generator = SignalGenerator()
        pin(generator, trends=("bearish", "bullish", "bullish", "bullish"))
        signal = generator.generate_signal(_market_data(), PRICE, EngineState(), now=LONDON_NOW)
        assert signal is not None
        assert signal.mode == "aggressive"

    def test_aggressive_mode_needs_early_entry(self, pin):
        generator = SignalGenerator()
        pin(generator, trends=("bearish", "bullish", "bullish", "bullish"))
        signal = generator.generate_signal(
            _market_data(), PRICE, EngineState(), now=LONDON_NOW, allow_early_entry=False,
        )
        assert signal is None

    def test_aggressive_mode_reads_fast_ema_trends(self, pin):
        # slow pair: 1h/15m/5m bearish, so a bullish breakout conflicts
        generator = SignalGenerator()
        trends = ("bullish", "bearish", "bearish", "bearish")
        pin(generator, trends=trends)
        assert generator.generate_signal(_market_data(), PRICE, EngineState(), now=LONDON_NOW) is None

        pin(generator, trends=trends, fast_trends=("bullish", "bullish", "bullish"))
        signal = generator.generate_signal(_market_data(), PRICE, EngineState(), now=LONDON_NOW)
        assert signal is not None
        assert signal.mode == "aggressive"
        assert signal.direction == "bullish"

    def test_fast_trends_do_not_affect_conservative(self, pin):
        generator = SignalGenerator()
        pin(generator, fast_trends=("bearish", "bearish", "bearish"))
        signal = generator.generate_signal(_market_data(), PRICE, EngineState(), now=LONDON_NOW)
        assert signal.mode == "conservative"

    def test_volume_surge_rescues_weak_scores(self, pin):
        generator = SignalGenerator()
        pin(generator, scores=(2, 2, 1, 1))
        data = _market_data(**{"1h": _rising_1h(last_volume=2000.0)})
        signal = generator.generate_signal(data, PRICE, EngineState(), now=LONDON_NOW)
        assert signal is not None
        assert signal.metadata["volume_confirmed"] is True


class TestSignalGates:
    def test_weak_scores_without_volume(self, pin):
        generator = SignalGenerator()
        pin(generator, scores=(2, 2, 1, 1))
        assert generator.generate_signal(_market_data(), PRICE, EngineState(), now=LONDON_NOW) is None

    def test_insufficient_confirmations(self, pin):
        generator = SignalGenerator()
        pin(generator, scores=(3, 1, 1, 1))
        assert generator.generate_signal(_market_data(), PRICE, EngineState(), now=LONDON_NOW) is None

    def test_no_aligned_mode(self, pin):
        generator = SignalGenerator()
        pin(generator, trends=("bullish", "bearish", "bullish", "ranging"))
        assert generator.generate_signal(_market_data(), PRICE, EngineState(), now=LONDON_NOW) is None

    def test_no_breakout(self, pin):
        generator = SignalGenerator()
        pin(generator, breakout=BreakoutResult(is_breakout=False, direction="ranging"))
        assert generator.generate_signal(_market_data(), PRICE, EngineState(), now=LONDON_NOW) is None

    def test_breakout_against_trend(self, pin):
        generator = SignalGenerator()
        pin(generator, breakout=BreakoutResult(is_breakout=True, direction="bearish", zone=ZONE))
        assert generator.generate_signal(_market_data(), PRICE, EngineState(), now=LONDON_NOW) is None

    def test_5m_opposing(self, pin):
        generator = SignalGenerator()
        pin(generator, trends=("bullish", "bullish", "bullish", "bearish"))
        assert generator.generate_signal(_market_data(), PRICE, EngineState(), now=LONDON_NOW) is None

    def test_quiet_asian_session(self, pin):
        generator = SignalGenerator(StrategyConfig(asian_min_volatility=50.0))
        pin(generator)
        assert generator.generate_signal(_market_data(), PRICE, EngineState(), now=ASIAN_NOW) is None

    def test_stop_on_wrong_side(self, pin):
        # lowest low 2047 + 3 × ATR 4 = 2059, below a 2059.5 short entry
        generator = SignalGenerator()
        pin(
            generator,
            trends=("bearish", "bearish", "bearish", "bearish"),
            breakout=BreakoutResult(is_breakout=True, direction="bearish", zone=ZONE),
        )
        assert generator.generate_signal(_market_data(), PRICE, EngineState(), now=LONDON_NOW) is None


class TestRiskPreconditions:
    def test_locked_out(self, pin):
        generator = SignalGenerator()
        pin(generator)
        state = EngineState(locked_out=True)
        assert generator.generate_signal(_market_data(), PRICE, state, now=LONDON_NOW) is None

    def test_session_cap(self, pin):
        generator = SignalGenerator()
        pin(generator)
        state = EngineState(session_trades=3)
        assert generator.generate_signal(_market_data(), PRICE, state, now=LONDON_NOW) is None
        assert state.session_trades == 3

    def test_stop_loss_cooldown(self, pin):
        generator = SignalGenerator()
        pin(generator)
        state = EngineState(last_stop_loss_at=LONDON_NOW - 30 * 60_000)
        assert generator.generate_signal(_market_data(), PRICE, state, now=LONDON_NOW) is None

    def test_no_1h_candles(self):
        generator = SignalGenerator()
        assert generator.generate_signal(_market_data(**{"1h": []}), PRICE, EngineState()) is None


class TestAnalyzeMarket:
    def test_unordered_candles_raise(self):
        data = _market_data(**{"1h": list(reversed(_rising_1h()))})
        with pytest.raises(ValueError):
            SignalGenerator().generate_signal(data, PRICE, EngineState(), now=LONDON_NOW)

    def test_short_history_is_ranging(self):
        analysis = analyze_market(_market_data())
        assert analysis.trends["1h"] == "ranging"
        assert analysis.tier.mode == "none"

    def test_full_history_all_bullish(self):
        candles = _rising_1h(250)
        analysis = analyze_market({"4h": candles, "1h": candles, "15m": candles, "5m": candles})
        assert set(analysis.trends.values()) == {"bullish"}
        assert analysis.dominant_direction() == "bullish"
        assert analysis.tier.tier == 3
        assert analysis.tier.mode == "aggressive"
        assert [s.timeframe for s in analysis.ordered_scores] == ["4h", "1h", "15m", "5m"]

    def test_fast_pair_sees_recent_reversal(self):
        # long decline, then a 30-bar rally: EMA50/200 still bearish, EMA8/21 bullish
        candles = []
        for i in range(260):
            close = 2300.0 - i if i < 230 else 2071.0 + 2.0 * (i - 229)
            candles.append(
                Candle(timestamp=i * HOUR_MS, open=close - 0.25, high=close + 2.0,
                       low=close - 2.0, close=close, volume=1000.0)
            )
        analysis = analyze_market({"4h": candles, "1h": candles, "15m": candles, "5m": candles})
        assert analysis.trends["1h"] == "bearish"
        fast = analysis.trends_for("aggressive")
        assert fast["4h"] == "bearish"
        assert fast["1h"] == fast["15m"] == fast["5m"] == "bullish"
        assert analysis.trends_for("conservative") is analysis.trends
