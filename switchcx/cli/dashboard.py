"""CLI dashboard — prints scan and backtest summaries to the console."""

from typing import Optional

from switchcx.backtest.engine import BacktestResult, ModeComparison
from switchcx.strategy.indicators import is_valid
from switchcx.strategy.models import TradingSession
from switchcx.strategy.session_filter import session_label
from switchcx.strategy.signals import MarketAnalysis

_RULE = "──────────────────────────────────────────────────"


def print_analysis(
    analysis: MarketAnalysis,
    price: float,
    symbol: str = "XAU/USD",
    session: Optional[TradingSession] = None,
) -> str:
    """Format and print the confirmation tier and per-timeframe scores.

    A session line is included when *session* is given.

    Returns:
        The formatted string (also printed to stdout).
    """
    tier = analysis.tier
    debug = tier.debug_info

    lines = [
        "──────────────── SwitchCX Scan ───────────────────",
        f"  Symbol:          {symbol}",
        f"  Price:           ${price:,.2f}",
        f"  Tier:            {tier.tier} ({tier.mode})",
        f"  Strong TFs:      {debug.strong_timeframes}",
        f"  Full Alignment:  {debug.full_alignment}",
    ]
    if session is not None:
        lines.insert(3, f"  Session:         {session_label(session)}")
    for score in analysis.ordered_scores:
        adx = f"{score.adx_value:.1f}" if is_valid(score.adx_value) else "N/A"
        lines.append(
            f"  {score.timeframe:<4} {score.score}/{score.max_score}"
            f"  trend={analysis.trends[score.timeframe]:<8} ADX={adx}"
        )
    lines.append(_RULE)

    output = "\n".join(lines)
    print(output)
    return output


def _result_lines(result: BacktestResult) -> list[str]:
    return [
        f"  Mode:            {result.mode}",
        f"  Signals:         {result.total_signals} ({result.wins}W / {result.losses}L)",
        f"  Win Rate:        {result.win_rate:.1f}%",
        f"  Total R:         {result.total_r_multiples:+.2f}",
        f"  Avg R:           {result.avg_r_multiple:+.2f}",
        f"  Profit Factor:   {result.profit_factor:.2f}",
        f"  Max Drawdown:    {result.max_drawdown_r:.2f}R",
        f"  Sharpe:          {result.sharpe_ratio:.2f}",
    ]


def print_backtest(result: BacktestResult) -> str:
    """Format and print one backtest result."""
    lines = ["────────────── SwitchCX Backtest ─────────────────"]
    lines.extend(_result_lines(result))
    lines.append(_RULE)
    output = "\n".join(lines)
    print(output)
    return output


def print_comparison(comparison: ModeComparison) -> str:
    """Format and print a conservative-vs-aggressive comparison."""
    lines = ["────────────── SwitchCX Comparison ───────────────"]
    lines.extend(_result_lines(comparison.conservative))
    lines.append(f"  Score:           {comparison.conservative_score:.2f}")
    lines.append("")
    lines.extend(_result_lines(comparison.aggressive))
    lines.append(f"  Score:           {comparison.aggressive_score:.2f}")
    lines.append("")
    lines.append(f"  Recommendation:  {comparison.recommendation}")
    lines.append(_RULE)
    output = "\n".join(lines)
    print(output)
    return output
