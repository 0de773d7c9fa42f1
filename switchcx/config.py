"""SwitchCX — strategy configuration.

Every tunable constant of the decision core lives on ``StrategyConfig``.
Defaults are the production values; any field can be overridden from the
environment (or a ``.env`` file) as ``SWITCHCX_<FIELD_NAME>``.
"""

import os
from dataclasses import dataclass, fields, replace

from dotenv import load_dotenv


ENV_PREFIX = "SWITCHCX_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class StrategyConfig:
    """Typed strategy parameters."""

    symbol: str = "XAU/USD"
    log_level: str = "INFO"

    # Indicators
    ema_fast: int = 50
    ema_slow: int = 200
    aggressive_ema_fast: int = 8
    aggressive_ema_slow: int = 21
    atr_period: int = 14
    adx_period: int = 14
    chandelier_period: int = 22
    chandelier_multiplier: float = 3.0
    volume_period: int = 20

    # Timeframe scoring
    min_candles: int = 100
    adx_threshold_1h: float = 15.0
    adx_threshold_default: float = 18.0
    volume_multiplier: float = 1.2
    trend_clarity_pct: float = 0.001

    # Chop / volatility
    chop_min_candles: int = 50
    chop_atr_ratio: float = 0.5
    volatility_lookback: int = 50
    expansion_ratio: float = 1.5
    compression_ratio: float = 0.7

    # Breakout zones & trendlines
    swing_lookback: int = 50
    zone_tolerance: float = 0.001
    max_zones: int = 5
    breakout_sensitivity: float = 0.0002
    breakout_band: float = 0.003
    trendline_tolerance: float = 0.005
    trendline_min_slope: float = 0.1
    max_trendlines: int = 3
    trendline_breakout_threshold: float = 0.003
    trendline_recent_candles: int = 5

    # Signal generation & risk
    tp1_r_multiple: float = 2.0
    tp2_r_multiple: float = 3.0
    max_trades_per_session: int = 3
    lockout_threshold: int = 3
    stop_loss_cooldown_minutes: int = 120
    emergency_cooldown_minutes: int = 15
    asian_min_volatility: float = 20.0
    allow_early_entry: bool = True

    # Scan engine
    reversal_stop_fraction: float = 0.7
    signal_ttl_minutes: int = 240

    # Backtest
    backtest_start_index: int = 150
    backtest_end_margin: int = 20
    backtest_step: int = 5
    backtest_forward_candles: int = 40
    backtest_skip_after_signal: int = 20
    backtest_4h_offset: int = 100


def _parse(name: str, raw: str, target_type: type):
    if target_type is bool:
        lowered = raw.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ValueError(f"Invalid boolean for {name}: {raw!r}")
    try:
        return target_type(raw)
    except ValueError:
        raise ValueError(
            f"Invalid value for {name}: {raw!r} (expected {target_type.__name__})"
        ) from None


def load_config(env_path: str | None = None) -> StrategyConfig:
    """Load configuration from environment variables.

    Unset variables keep their defaults.  ``LOG_LEVEL`` is honoured as a
    fallback for ``SWITCHCX_LOG_LEVEL``.

    Raises ``ValueError`` with a message naming the variable when a value
    cannot be parsed.
    """
    load_dotenv(dotenv_path=env_path)

    base = StrategyConfig()
    overrides: dict = {}

    for f in fields(StrategyConfig):
        var = ENV_PREFIX + f.name.upper()
        raw = os.environ.get(var)
        if raw is None and f.name == "log_level":
            raw = os.environ.get("LOG_LEVEL")
        if raw is None or raw == "":
            continue
        overrides[f.name] = _parse(var, raw, f.type)

    config = replace(base, **overrides)
    _validate(config)
    return config


def _validate(config: StrategyConfig) -> None:
    if config.ema_fast >= config.ema_slow:
        raise ValueError(
            f"SWITCHCX_EMA_FAST ({config.ema_fast}) must be below "
            f"SWITCHCX_EMA_SLOW ({config.ema_slow})"
        )
    if config.tp1_r_multiple <= 0 or config.tp2_r_multiple <= config.tp1_r_multiple:
        raise ValueError(
            "SWITCHCX_TP2_R_MULTIPLE must exceed SWITCHCX_TP1_R_MULTIPLE, "
            "and both must be positive"
        )
    if config.backtest_step <= 0:
        raise ValueError("SWITCHCX_BACKTEST_STEP must be positive")
