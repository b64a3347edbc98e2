"""Aggregate risk statistics for a batch of simulated paths."""

from typing import Dict, List, Sequence
import logging
import math

import numpy as np

from edge_lab.models.simulation import MarketRegime, SimulationConfig, SimulationResult
from edge_lab.models.statistics import (
    PERCENTILE_LEVELS,
    HistogramBin,
    PercentileData,
    RegimePerformance,
    SimulationStats,
)
from edge_lab.risk.position_sizing import PositionSizer
from edge_lab.simulation.simulator import analyze_drawdown_durations
from edge_lab.utils.error_handling import safe_divide

logger = logging.getLogger("edge_lab.metrics")

RETURN_HISTOGRAM_BINS = 30
DRAWDOWN_HISTOGRAM_BINS = 6
RUIN_THRESHOLD = 0.5
BREAKEVEN_BAND = 0.05
# Stand-in for an infinite ratio when there are gains but no losses
RATIO_CEILING = 999.0


def nearest_rank_percentile(sorted_values: Sequence[float], p: float) -> float:
    """Nearest-rank percentile of an ascending sequence.

    Index is floor(n·p), clamped to the last element. Returns 0 for an
    empty sequence.
    """
    n = len(sorted_values)
    if n == 0:
        return 0.0
    idx = min(int(math.floor(n * p)), n - 1)
    return float(sorted_values[idx])


def histogram(values: Sequence[float], bins: int) -> List[HistogramBin]:
    """Equal-width histogram over [min, max].

    A zero-width range uses a bin width of 1. The maximum lands in the
    last bin.
    """
    if len(values) == 0:
        return []

    data = np.asarray(values, dtype=float)
    lo = float(data.min())
    hi = float(data.max())
    width = (hi - lo) / bins or 1.0

    idx = np.minimum(np.floor((data - lo) / width).astype(int), bins - 1)
    counts = np.bincount(idx, minlength=bins)

    return [
        HistogramBin(
            lower=lo + i * width,
            upper=lo + (i + 1) * width,
            midpoint=lo + (i + 0.5) * width,
            count=int(count),
            frequency=count / len(data) * 100,
        )
        for i, count in enumerate(counts)
    ]


def value_at_risk(sorted_returns: Sequence[float], confidence: float) -> float:
    """Loss at the given confidence level (positive number)."""
    if len(sorted_returns) == 0:
        return 0.0
    idx = int(math.floor(len(sorted_returns) * (1 - confidence)))
    return abs(float(sorted_returns[max(0, idx)]))


def conditional_value_at_risk(sorted_returns: Sequence[float], confidence: float) -> float:
    """Mean of the worst (1 - confidence) share of returns, as a positive number."""
    if len(sorted_returns) == 0:
        return 0.0
    idx = int(math.floor(len(sorted_returns) * (1 - confidence)))
    tail = sorted_returns[:max(1, idx)]
    return abs(float(np.mean(tail)))


def ulcer_index(equity_curve: Sequence[float]) -> float:
    """Root-mean-square drawdown (%) of an equity curve."""
    if len(equity_curve) < 2:
        return 0.0

    peak = equity_curve[0]
    sum_sq = 0.0
    for value in equity_curve:
        if value > peak:
            peak = value
        dd = (peak - value) / peak * 100 if peak > 0 else 0.0
        sum_sq += dd * dd

    return math.sqrt(sum_sq / len(equity_curve))


def pain_index(drawdown_curve: Sequence[float]) -> float:
    """Mean drawdown (%) along a path."""
    if len(drawdown_curve) == 0:
        return 0.0
    return sum(drawdown_curve) / len(drawdown_curve)


def calmar_ratio(mean_return_pct: float, median_max_dd: float, years: float) -> float:
    """Annualised growth (%) over median max drawdown."""
    growth = 1 + mean_return_pct / 100
    if median_max_dd == 0 or years <= 0 or growth <= 0:
        return 0.0
    cagr = growth ** (1 / years) - 1
    return cagr * 100 / median_max_dd


def omega_ratio(returns: Sequence[float], threshold: float = 0.0) -> float:
    gains = sum(r - threshold for r in returns if r > threshold)
    losses = sum(abs(r - threshold) for r in returns if r <= threshold)
    if losses > 0:
        return gains / losses
    return RATIO_CEILING if gains > 0 else 0.0


def tail_ratio(sorted_returns: Sequence[float]) -> float:
    """|p95 / p5| of the return distribution."""
    p95 = nearest_rank_percentile(sorted_returns, 0.95)
    p5 = nearest_rank_percentile(sorted_returns, 0.05)
    return abs(p95 / p5) if p5 != 0 else 0.0


def gain_to_pain_ratio(returns: Sequence[float]) -> float:
    total_gain = sum(r for r in returns if r > 0)
    total_pain = abs(sum(r for r in returns if r < 0))
    if total_pain > 0:
        return total_gain / total_pain
    return RATIO_CEILING if total_gain > 0 else 0.0


def regime_performance(
    results: Sequence[SimulationResult],
    regimes: Sequence[MarketRegime]
) -> List[RegimePerformance]:
    """Per-regime realised trade statistics, in the order regimes are given.

    Trade i of a path is attributed to regime_history[i]; its drawdown is
    the drawdown curve value right after that trade. Regimes that never
    became active are reported with zero trades.
    """
    tallies = {regime.id: {'pnls': [], 'max_dd': 0.0} for regime in regimes}
    tagged_trades = 0

    for result in results:
        for i, (regime_id, pnl) in enumerate(zip(result.regime_history, result.trade_pnls)):
            tally = tallies.get(regime_id)
            if tally is None:
                logger.debug("Trade tagged with unknown regime %r", regime_id)
                continue
            tally['pnls'].append(pnl)
            if i + 1 < len(result.drawdown_curve):
                tally['max_dd'] = max(tally['max_dd'], result.drawdown_curve[i + 1])
            tagged_trades += 1

    performance = []
    for regime in regimes:
        pnls = tallies[regime.id]['pnls']
        gross_profit = sum(p for p in pnls if p > 0)
        gross_loss = abs(sum(p for p in pnls if p < 0))
        performance.append(RegimePerformance(
            regime_id=regime.id,
            regime_name=regime.name,
            total_trades=len(pnls),
            time_share_pct=safe_divide(len(pnls), tagged_trades) * 100,
            win_rate=safe_divide(sum(1 for p in pnls if p > 0), len(pnls)) * 100,
            avg_trade_pnl=safe_divide(sum(pnls), len(pnls)),
            total_pnl=sum(pnls),
            max_drawdown=tallies[regime.id]['max_dd'],
            profit_factor=safe_divide(gross_profit, gross_loss),
        ))

    return performance


def _empty_stats(config: SimulationConfig) -> SimulationStats:
    """Neutral statistics for an empty result set."""
    optimal_f = PositionSizer.optimal_f(config.win_rate, config.avg_win, config.avg_loss) * 100
    zero = PercentileData(total_return=0.0, return_pct=0.0, max_drawdown=0.0, final_capital=0.0)
    return SimulationStats(
        num_results=0,
        mean_return=0.0, median_return=0.0, std_dev_return=0.0,
        best_case=0.0, worst_case=0.0, median_return_pct=0.0,
        win_probability=0.0, loss_probability=0.0,
        breakeven_probability=0.0, probability_of_ruin=0.0,
        median_max_drawdown=0.0, worst_max_drawdown=0.0,
        sharpe_ratio=0.0, sortino_ratio=0.0, profit_factor=0.0,
        avg_win_rate=0.0, expected_value_per_trade=0.0,
        var_95=0.0, var_99=0.0, cvar_95=0.0, cvar_99=0.0,
        ulcer_index=0.0, pain_index=0.0, calmar_ratio=0.0, mar_ratio=0.0,
        omega_ratio=0.0, tail_ratio=0.0, gain_to_pain_ratio=0.0,
        optimal_f=optimal_f, kelly_fraction=optimal_f,
        half_kelly=optimal_f / 2, quarter_kelly=optimal_f / 4,
        avg_drawdown_duration=0.0, max_drawdown_duration=0,
        avg_recovery_time=0.0, time_in_drawdown_pct=0.0,
        projected_daily_return=0.0, projected_weekly_return=0.0,
        projected_monthly_return=0.0, projected_yearly_return=0.0,
        percentiles={name: zero for name in PERCENTILE_LEVELS},
        return_distribution=[],
        drawdown_distribution=[],
    )


def calculate_statistics(results: List[SimulationResult], config: SimulationConfig) -> SimulationStats:
    """Reduce a batch of results to aggregate statistics.

    Args:
        results: Paths from run_batch (any order)
        config: Config the batch was run with

    Returns:
        SimulationStats; neutral values for an empty batch
    """
    if not results:
        logger.warning("No simulation results to summarise")
        return _empty_stats(config)

    n = len(results)
    returns = np.sort(np.array([r.total_return for r in results], dtype=float))
    return_pcts = np.sort(np.array([r.return_pct for r in results], dtype=float))
    max_dds = np.sort(np.array([r.max_drawdown for r in results], dtype=float))
    final_capitals = np.sort(np.array([r.final_capital for r in results], dtype=float))

    mean_return = float(returns.mean())
    std_return = float(returns.std())

    # Sharpe and Sortino on raw currency returns, population std
    sharpe = safe_divide(mean_return, std_return)
    downside = returns[returns < 0]
    downside_std = float(downside.std()) if downside.size > 0 else std_return
    sortino = safe_divide(mean_return, downside_std)

    # Outcome probabilities
    win_probability = float((returns > 0).sum()) / n * 100
    loss_probability = float((returns < 0).sum()) / n * 100
    breakeven_probability = float(
        (np.abs(returns) < config.starting_capital * BREAKEVEN_BAND).sum()
    ) / n * 100
    probability_of_ruin = float(
        (final_capitals < config.starting_capital * RUIN_THRESHOLD).sum()
    ) / n * 100

    median_max_dd = nearest_rank_percentile(max_dds, 0.5)
    mean_return_pct = float(return_pcts.mean())
    years = safe_divide(config.num_trades, config.trading_days_per_year * config.avg_trades_per_day)

    optimal_f = PositionSizer.optimal_f(config.win_rate, config.avg_win, config.avg_loss) * 100

    dd_analyses = [analyze_drawdown_durations(r.drawdown_curve) for r in results]

    expected_value_per_trade = safe_divide(mean_return, config.num_trades)
    projected_daily = expected_value_per_trade * config.avg_trades_per_day

    percentiles: Dict[str, PercentileData] = {
        name: PercentileData(
            total_return=nearest_rank_percentile(returns, p),
            return_pct=nearest_rank_percentile(return_pcts, p),
            max_drawdown=nearest_rank_percentile(max_dds, p),
            final_capital=nearest_rank_percentile(final_capitals, p),
        )
        for name, p in PERCENTILE_LEVELS.items()
    }

    stats = SimulationStats(
        num_results=n,
        mean_return=mean_return,
        median_return=nearest_rank_percentile(returns, 0.5),
        std_dev_return=std_return,
        best_case=nearest_rank_percentile(returns, 0.95),
        worst_case=nearest_rank_percentile(returns, 0.05),
        median_return_pct=nearest_rank_percentile(return_pcts, 0.5),
        win_probability=win_probability,
        loss_probability=loss_probability,
        breakeven_probability=breakeven_probability,
        probability_of_ruin=probability_of_ruin,
        median_max_drawdown=median_max_dd,
        worst_max_drawdown=nearest_rank_percentile(max_dds, 0.95),
        sharpe_ratio=sharpe,
        sortino_ratio=sortino,
        profit_factor=float(np.mean([r.profit_factor for r in results])),
        avg_win_rate=float(np.mean([r.win_rate for r in results])),
        expected_value_per_trade=expected_value_per_trade,
        var_95=value_at_risk(returns, 0.95),
        var_99=value_at_risk(returns, 0.99),
        cvar_95=conditional_value_at_risk(returns, 0.95),
        cvar_99=conditional_value_at_risk(returns, 0.99),
        ulcer_index=float(np.mean([ulcer_index(r.equity_curve) for r in results])),
        pain_index=float(np.mean([pain_index(r.drawdown_curve) for r in results])),
        calmar_ratio=calmar_ratio(mean_return_pct, median_max_dd, years),
        mar_ratio=safe_divide(mean_return_pct, median_max_dd),
        omega_ratio=omega_ratio(return_pcts.tolist()),
        tail_ratio=tail_ratio(returns),
        gain_to_pain_ratio=gain_to_pain_ratio(returns.tolist()),
        optimal_f=optimal_f,
        kelly_fraction=optimal_f,
        half_kelly=optimal_f / 2,
        quarter_kelly=optimal_f / 4,
        avg_drawdown_duration=float(np.mean([a.avg_duration for a in dd_analyses])),
        max_drawdown_duration=max(a.max_duration for a in dd_analyses),
        avg_recovery_time=float(np.mean([a.avg_recovery_time for a in dd_analyses])),
        time_in_drawdown_pct=float(np.mean([a.time_in_drawdown_pct for a in dd_analyses])),
        projected_daily_return=projected_daily,
        projected_weekly_return=projected_daily * 5,
        projected_monthly_return=projected_daily * 21,
        projected_yearly_return=projected_daily * config.trading_days_per_year,
        percentiles=percentiles,
        return_distribution=histogram(returns, RETURN_HISTOGRAM_BINS),
        drawdown_distribution=histogram(max_dds, DRAWDOWN_HISTOGRAM_BINS),
        regime_performance=regime_performance(results, config.regimes) if config.enable_regimes else [],
    )

    logger.debug("Computed statistics for %d results: %r", n, stats)
    return stats
