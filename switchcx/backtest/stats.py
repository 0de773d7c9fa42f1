"""Backtest statistics — pure functions over a series of R-multiples."""

import math


def calculate_stats(r_multiples: list[float]) -> dict:
    """Compute summary statistics from closed-trade R-multiples.

    A trade with a positive R-multiple counts as a win; anything else is
    a loss.

    Returns:
        Dict with ``total_trades``, ``wins``, ``losses``, ``win_rate``
        (percent), ``total_r``, ``avg_r_multiple``, ``profit_factor``,
        ``best_trade``, ``worst_trade``, ``max_drawdown_r`` and
        ``sharpe_ratio``.  ``profit_factor`` equals the winning R when
        there are no losing trades.
    """
    if not r_multiples:
        return {
            "total_trades": 0,
            "wins": 0,
            "losses": 0,
            "win_rate": 0.0,
            "total_r": 0.0,
            "avg_r_multiple": 0.0,
            "profit_factor": 0.0,
            "best_trade": 0.0,
            "worst_trade": 0.0,
            "max_drawdown_r": 0.0,
            "sharpe_ratio": 0.0,
        }

    total = len(r_multiples)
    winners = [r for r in r_multiples if r > 0]
    losers = [r for r in r_multiples if r <= 0]

    winning_r = sum(winners)
    losing_r = abs(sum(losers))
    profit_factor = winning_r / losing_r if losing_r > 0 else winning_r

    total_r = sum(r_multiples)

    return {
        "total_trades": total,
        "wins": len(winners),
        "losses": len(losers),
        "win_rate": len(winners) / total * 100.0,
        "total_r": total_r,
        "avg_r_multiple": total_r / total,
        "profit_factor": profit_factor,
        "best_trade": max(r_multiples),
        "worst_trade": min(r_multiples),
        "max_drawdown_r": _max_drawdown(r_multiples),
        "sharpe_ratio": _sharpe(r_multiples),
    }


# ── Helpers ──────────────────────────────────────────────────────────────


def _sharpe(returns: list[float]) -> float:
    """Per-trade Sharpe ratio of an R-multiple series.

    Uses sample standard deviation (n − 1).  Returns 0.0 when the series
    has fewer than 2 observations or zero variance.
    """
    n = len(returns)
    if n < 2:
        return 0.0
    mean = sum(returns) / n
    variance = sum((r - mean) ** 2 for r in returns) / (n - 1)
    std = math.sqrt(variance)
    if std == 0:
        return 0.0
    return mean / std


def _max_drawdown(returns: list[float]) -> float:
    """Largest peak-to-trough decline of the cumulative R curve, as a positive number."""
    cumulative = 0.0
    peak = 0.0
    max_dd = 0.0
    for r in returns:
        cumulative += r
        if cumulative > peak:
            peak = cumulative
        dd = peak - cumulative
        if dd > max_dd:
            max_dd = dd
    return max_dd
