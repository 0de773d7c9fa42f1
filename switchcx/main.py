"""SwitchCX — command-line entry point.

Runs a backtest or a single scan over per-timeframe CSV files::

    switchcx backtest --data data/xauusd --mode compare
    switchcx scan --data data/xauusd
"""

import argparse
import logging
import sys
from typing import Optional

from switchcx.backtest.engine import BacktestSimulator
from switchcx.cli.dashboard import print_analysis, print_backtest, print_comparison
from switchcx.config import StrategyConfig, load_config
from switchcx.data.history import load_market_data
from switchcx.engine import Alert, ScanEngine
from switchcx.strategy.session_filter import get_current_session, is_market_open, to_utc
from switchcx.strategy.signals import analyze_market

logger = logging.getLogger("switchcx")


def _print_alert(alert: Alert) -> None:
    print(f"[{alert.alert_type.upper()}] {alert.message}")


def _run_backtest(args: argparse.Namespace, config: StrategyConfig) -> int:
    market_data = load_market_data(args.data)
    simulator = BacktestSimulator(config)
    if args.mode == "compare":
        print_comparison(simulator.run_comparison(market_data))
    else:
        print_backtest(simulator.run(market_data, args.mode))
    return 0


def _run_scan(args: argparse.Namespace, config: StrategyConfig) -> int:
    market_data = load_market_data(args.data)
    candles_1h = market_data.get("1h", [])
    if not candles_1h:
        logger.error("Scan needs 1h candles in %s", args.data)
        return 1

    now = candles_1h[-1].timestamp
    price = (market_data.get("5m") or candles_1h)[-1].close
    print_analysis(
        analyze_market(market_data, config), price, config.symbol,
        session=get_current_session(to_utc(now)),
    )

    engine = ScanEngine(
        config,
        alert_sink=_print_alert,
        market_open=True if args.ignore_hours else is_market_open,
    )
    result = engine.scan(market_data, price, now)
    logger.info("Scan result: %s", result)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Parse CLI arguments and dispatch to the requested command."""
    parser = argparse.ArgumentParser(description="SwitchCX XAU/USD trade confirmation")
    parser.add_argument("--env-file", help="Path to a .env file with SWITCHCX_* overrides")
    sub = parser.add_subparsers(dest="command", required=True)

    bt = sub.add_parser("backtest", help="Replay the signal generator over history")
    bt.add_argument("--data", required=True, help="Directory holding 4h/1h/15m/5m CSV files")
    bt.add_argument(
        "--mode",
        choices=["conservative", "aggressive", "compare"],
        default="compare",
        help="Mode to backtest (default: compare both)",
    )

    sc = sub.add_parser("scan", help="Run one scan cycle on the latest candles")
    sc.add_argument("--data", required=True, help="Directory holding 4h/1h/15m/5m CSV files")
    sc.add_argument(
        "--ignore-hours",
        action="store_true",
        help="Treat the market as open regardless of the trading week",
    )

    args = parser.parse_args(argv)

    try:
        config = load_config(args.env_file)
    except ValueError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        if args.command == "backtest":
            return _run_backtest(args, config)
        return _run_scan(args, config)
    except (FileNotFoundError, ValueError) as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
