"""Console output formatter for strategy analysis and simulation results."""

import math
from typing import List

from ..analytics.strategy import StrategyAnalysis
from ..data.loaders import TradeHistorySummary
from ..models.simulation import SimulationConfig
from ..models.statistics import HistogramBin, SimulationStats


def print_header(title: str, subtitle: str = ""):
    """Print a session header."""
    print("\n" + "=" * 80)
    print(f"  {title}")
    if subtitle:
        print(f"  {subtitle}")
    print("=" * 80)


def print_strategy_analysis(analysis: StrategyAnalysis):
    """Print legs, Greeks and risk metrics of an analysed strategy.

    Args:
        analysis: Result of analyze_strategy()
    """
    market = analysis.market
    metrics = analysis.risk_metrics
    greeks = analysis.greeks

    print_header(
        f"STRATEGY ANALYSIS - {analysis.name}",
        f"Spot ${market.spot:.2f} | IV {market.volatility:.1%} | "
        f"{market.days_to_expiry:.0f} DTE | r {market.rate:.2%} | q {market.dividend_yield:.2%}"
    )

    print("\nLegs:")
    print("-" * 60)
    print(f"{'#':>3} {'Action':^6} {'Qty':>4} {'Type':^5} {'Strike':>10} {'Premium':>10}")
    print("-" * 60)
    for i, leg in enumerate(analysis.legs, start=1):
        print(f"{i:>3} {leg.action.upper():^6} {leg.quantity:>4} {leg.option_type.upper():^5} "
              f"{leg.strike:>10.2f} {leg.premium:>10.2f}")
    print("-" * 60)

    print(f"\nPosition Greeks:")
    print(f"  Delta:  {greeks.delta:>10.4f}")
    print(f"  Gamma:  {greeks.gamma:>10.4f}")
    print(f"  Theta:  {greeks.theta:>10.4f} /day")
    print(f"  Vega:   {greeks.vega:>10.4f} /vol pt")
    print(f"  Rho:    {greeks.rho:>10.4f} /1% rate")

    max_profit = "Unlimited" if metrics.profit_unbounded else f"${metrics.max_profit:,.2f}"
    max_loss = f"${metrics.max_loss:,.2f}" + (" (unbounded)" if metrics.loss_unbounded else "")
    if math.isinf(metrics.risk_reward_ratio):
        risk_reward = "Unlimited"
    else:
        risk_reward = f"{metrics.risk_reward_ratio:.2f}"
    breakevens = ", ".join(f"${b:.2f}" for b in metrics.breakevens) or "none in range"

    print(f"\nRisk/Reward:")
    print(f"  Max Profit:           {max_profit}")
    print(f"  Max Loss:             {max_loss}")
    print(f"  Risk/Reward:          {risk_reward}")
    print(f"  Breakevens:           {breakevens}")
    print(f"  Prob. of Profit:      {metrics.probability_of_profit:.1f}% (of scanned prices)")
    print(f"{'=' * 80}\n")


def print_pnl_table(analysis: StrategyAnalysis, rows: int = 11):
    """Print an evenly thinned P&L table of the strategy's curve."""
    curve = analysis.pnl_curve
    if not curve:
        print("No P&L points to display.")
        return

    step = max(1, (len(curve) - 1) // max(rows - 1, 1))
    points = list(curve[::step])
    if points[-1] is not curve[-1]:
        points.append(curve[-1])

    print(f"{'Price':>10} {'At Expiry':>12} {'Today':>12}")
    print("-" * 36)
    for point in points:
        print(f"{point.price:>10.2f} {point.pnl_at_expiration:>12.2f} {point.current_pnl:>12.2f}")
    print("-" * 36)


def print_simulation_summary(stats: SimulationStats, config: SimulationConfig):
    """Print the headline numbers of a simulation batch.

    Args:
        stats: Statistics from calculate_statistics()
        config: Config the batch was run with
    """
    print_header(
        "MONTE CARLO SIMULATION",
        f"{stats.num_results:,} runs x {config.num_trades} trades | "
        f"{config.win_rate:.1f}% win rate | ${config.avg_win:,.2f}/${config.avg_loss:,.2f} | "
        f"{config.position_sizing.replace('_', ' ')}"
    )

    print(f"\nOutcomes:")
    print(f"  Median Return:        ${stats.median_return:,.2f} ({stats.median_return_pct:+.2f}%)")
    print(f"  Mean Return:          ${stats.mean_return:,.2f} (std ${stats.std_dev_return:,.2f})")
    print(f"  Best Case (p95):      ${stats.best_case:,.2f}")
    print(f"  Worst Case (p5):      ${stats.worst_case:,.2f}")
    print(f"  Win Probability:      {stats.win_probability:.1f}%")
    print(f"  Breakeven (±5%):      {stats.breakeven_probability:.1f}%")
    print(f"  Probability of Ruin:  {stats.probability_of_ruin:.1f}%")

    print(f"\nRisk:")
    print(f"  Median Max DD:        {stats.median_max_drawdown:.1f}%")
    print(f"  Worst Max DD (p95):   {stats.worst_max_drawdown:.1f}%")
    print(f"  VaR 95 / 99:          ${stats.var_95:,.2f} / ${stats.var_99:,.2f}")
    print(f"  CVaR 95 / 99:         ${stats.cvar_95:,.2f} / ${stats.cvar_99:,.2f}")
    print(f"  Sharpe / Sortino:     {stats.sharpe_ratio:.2f} / {stats.sortino_ratio:.2f}")
    print(f"  Calmar / MAR:         {stats.calmar_ratio:.2f} / {stats.mar_ratio:.2f}")
    print(f"  Ulcer / Pain:         {stats.ulcer_index:.2f} / {stats.pain_index:.2f}")

    print(f"\nSizing:")
    print(f"  Kelly / Half / Qtr:   {stats.kelly_fraction:.1f}% / {stats.half_kelly:.1f}% / "
          f"{stats.quarter_kelly:.1f}%")
    print(f"  EV per Trade:         ${stats.expected_value_per_trade:,.2f}")
    print(f"  Projected Monthly:    ${stats.projected_monthly_return:,.2f}")
    print(f"  Projected Yearly:     ${stats.projected_yearly_return:,.2f}")
    print(f"{'=' * 80}\n")


def print_percentile_table(stats: SimulationStats):
    """Print percentiles of return, drawdown and final capital."""
    print(f"{'Pct':>5} {'Return':>12} {'Return %':>10} {'Max DD %':>10} {'Final Capital':>15}")
    print("-" * 56)
    for name, data in stats.percentiles.items():
        print(f"{name:>5} {data.total_return:>12,.2f} {data.return_pct:>9.2f}% "
              f"{data.max_drawdown:>9.2f}% {data.final_capital:>15,.2f}")
    print("-" * 56)


def print_histogram(bins: List[HistogramBin], title: str, width: int = 50):
    """Print a horizontal bar chart of histogram frequencies."""
    if not bins:
        print(f"{title}: no data")
        return

    print(f"\n{title}:")
    peak = max(b.frequency for b in bins) or 1.0
    for b in bins:
        bar = "█" * int(round(b.frequency / peak * width))
        print(f"  {b.midpoint:>12,.1f} | {bar} {b.frequency:.1f}%")


def print_trade_history(summary: TradeHistorySummary):
    """Print statistics of an imported trade history."""
    print(f"\nImported Trade History ({summary.profit_column}):")
    print(f"  Trades:               {summary.total_trades} "
          f"({summary.winning_trades}W / {summary.losing_trades}L)")
    print(f"  Win Rate:             {summary.win_rate:.1f}%")
    print(f"  Avg Win / Avg Loss:   ${summary.avg_win:,.2f} / ${summary.avg_loss:,.2f}")
    print(f"  Profit Factor:        {summary.profit_factor:.2f}")
    print(f"  Max Streaks (W/L):    {summary.max_consecutive_wins} / {summary.max_consecutive_losses}")
    print(f"  Total P&L:            ${summary.total_pnl:,.2f}")


def print_regime_performance(stats: SimulationStats):
    """Print the per-regime breakdown of a regime-enabled batch."""
    if not stats.regime_performance:
        return

    print(f"\nMarket Regimes:")
    print(f"{'Regime':<12} {'Trades':>8} {'Share':>7} {'Win %':>7} {'Avg P&L':>10} "
          f"{'Max DD %':>9} {'PF':>6}")
    print("-" * 64)
    for perf in stats.regime_performance:
        print(f"{perf.regime_name:<12} {perf.total_trades:>8,} {perf.time_share_pct:>6.1f}% "
              f"{perf.win_rate:>6.1f}% {perf.avg_trade_pnl:>10,.2f} "
              f"{perf.max_drawdown:>8.1f}% {perf.profit_factor:>6.2f}")
    print("-" * 64)
