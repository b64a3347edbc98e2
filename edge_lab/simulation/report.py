"""CSV export and Markdown report for Monte Carlo simulation batches."""

from datetime import datetime
from pathlib import Path
from typing import List
import logging

from edge_lab.models.simulation import SimulationConfig, SimulationResult
from edge_lab.models.statistics import HistogramBin, SimulationStats

logger = logging.getLogger("edge_lab.report")

CSV_HEADER = "Simulation,Final Capital,Return,Return %,Max DD %"


def results_to_csv(results: List[SimulationResult]) -> str:
    """Render results as CSV text, one row per simulation (1-based index).

    Example:
        >>> print(results_to_csv(results[:1]))
        Simulation,Final Capital,Return,Return %,Max DD %
        1,10523.18,523.18,5.23,7.41
    """
    rows = [CSV_HEADER]
    for i, r in enumerate(results, start=1):
        rows.append(
            f"{i},{r.final_capital:.2f},{r.total_return:.2f},{r.return_pct:.2f},{r.max_drawdown:.2f}"
        )
    return "\n".join(rows)


def export_results_csv(
    results: List[SimulationResult],
    output_path: str | Path = "monte_carlo_results.csv"
) -> str:
    """Write results_to_csv() output to a file.

    Returns:
        Path to the written file
    """
    output_path = Path(output_path)

    with open(output_path, 'w') as f:
        f.write(results_to_csv(results))
        f.write("\n")

    logger.info("Exported %d simulation rows to %s", len(results), output_path)
    return str(output_path)


def generate_simulation_report(
    stats: SimulationStats,
    config: SimulationConfig,
    results: List[SimulationResult],
    output_path: str | Path = "MONTE_CARLO_REPORT.md"
) -> str:
    """Generate a Markdown summary of a simulation batch.

    Args:
        stats: Statistics from calculate_statistics()
        config: Config the batch was run with
        results: The batch itself (for exit-reason breakdown)
        output_path: Path to save report

    Returns:
        Path to generated report
    """
    output_path = Path(output_path)
    report = _build_report_content(stats, config, results)

    with open(output_path, 'w') as f:
        f.write(report)

    logger.info("Simulation report generated: %s", output_path)
    return str(output_path)


def _build_report_content(stats: SimulationStats, config: SimulationConfig,
                          results: List[SimulationResult]) -> str:
    """Build the complete report content."""
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    return f"""# 📊 Monte Carlo Simulation Report

**Generated**: {timestamp}
**Simulations**: {stats.num_results} × {config.num_trades} trades

---

## ⚙️ Configuration

{_format_config_table(config)}

---

## 🎯 Outcome Summary

| Metric | Value |
|--------|-------|
| **Median Return** | ${stats.median_return:,.2f} ({stats.median_return_pct:+.2f}%) |
| **Mean Return** | ${stats.mean_return:,.2f} |
| **Std Dev** | ${stats.std_dev_return:,.2f} |
| **Best Case (p95)** | ${stats.best_case:,.2f} |
| **Worst Case (p5)** | ${stats.worst_case:,.2f} |
| **Win Probability** | {stats.win_probability:.1f}% |
| **Loss Probability** | {stats.loss_probability:.1f}% |
| **Breakeven Probability** | {stats.breakeven_probability:.1f}% |
| **Probability of Ruin** | {stats.probability_of_ruin:.1f}% |

---

## 📈 Percentiles

{_format_percentile_table(stats)}

---

## 📉 Risk Metrics

| Metric | Value |
|--------|-------|
| **Median Max Drawdown** | {stats.median_max_drawdown:.1f}% |
| **Worst Max Drawdown (p95)** | {stats.worst_max_drawdown:.1f}% |
| **VaR 95% / 99%** | ${stats.var_95:,.2f} / ${stats.var_99:,.2f} |
| **CVaR 95% / 99%** | ${stats.cvar_95:,.2f} / ${stats.cvar_99:,.2f} |
| **Sharpe Ratio** | {stats.sharpe_ratio:.2f} |
| **Sortino Ratio** | {stats.sortino_ratio:.2f} |
| **Calmar Ratio** | {stats.calmar_ratio:.2f} |
| **MAR Ratio** | {stats.mar_ratio:.2f} |
| **Omega Ratio** | {stats.omega_ratio:.2f} |
| **Tail Ratio** | {stats.tail_ratio:.2f} |
| **Gain-to-Pain** | {stats.gain_to_pain_ratio:.2f} |
| **Ulcer Index** | {stats.ulcer_index:.2f} |
| **Pain Index** | {stats.pain_index:.2f} |

### Drawdown Timing
- **Avg Drawdown Duration**: {stats.avg_drawdown_duration:.1f} trades
- **Max Drawdown Duration**: {stats.max_drawdown_duration} trades
- **Avg Recovery Time**: {stats.avg_recovery_time:.1f} trades
- **Time in Drawdown**: {stats.time_in_drawdown_pct:.1f}%

---

## 💰 Sizing Guidance

- **Optimal f (full Kelly)**: {stats.kelly_fraction:.1f}% of capital
- **Half Kelly**: {stats.half_kelly:.1f}%
- **Quarter Kelly**: {stats.quarter_kelly:.1f}%
- **Average Win Rate**: {stats.avg_win_rate:.1f}%
- **Mean Profit Factor**: {stats.profit_factor:.2f}
- **Expected Value / Trade**: ${stats.expected_value_per_trade:,.2f}

### Projections
| Period | Expected Return |
|--------|-----------------|
| Daily | ${stats.projected_daily_return:,.2f} |
| Weekly | ${stats.projected_weekly_return:,.2f} |
| Monthly | ${stats.projected_monthly_return:,.2f} |
| Yearly | ${stats.projected_yearly_return:,.2f} |

---

## 🛑 Exit Reasons

{_analyze_exit_reasons(results)}

---
{_format_regime_section(stats)}
## 📊 Return Distribution

{_format_histogram(stats.return_distribution)}

---

**Report End**
"""


def _format_config_table(config: SimulationConfig) -> str:
    """Format the main simulation parameters as a markdown table."""
    rows = [
        ("Starting Capital", f"${config.starting_capital:,.2f}"),
        ("Win Rate", f"{config.win_rate:.1f}%"),
        ("Avg Win / Avg Loss", f"${config.avg_win:,.2f} / ${config.avg_loss:,.2f}"),
        ("Risk per Trade", f"{config.risk_per_trade:.2f}%"),
        ("Position Sizing", config.position_sizing.replace('_', ' ').title()),
        ("Compounding", "on" if config.enable_compounding else "off"),
        ("Slippage", f"{config.slippage_percent:.2f}%" if config.include_slippage else "off"),
        ("Commission", f"${config.commission_per_trade:.2f}" if config.include_commission else "off"),
        ("Drawdown Stop",
         f"{config.max_drawdown_stop:.1f}%" if config.max_drawdown_stop is not None else "none"),
        ("Market Regimes", "on" if config.enable_regimes else "off"),
        ("Sequence Risk", config.sequence_risk_mode.replace('_', ' ')),
    ]
    lines = ["| Parameter | Value |", "|-----------|-------|"]
    lines.extend(f"| **{name}** | {value} |" for name, value in rows)
    return "\n".join(lines)


def _format_percentile_table(stats: SimulationStats) -> str:
    lines = [
        "| Percentile | Return | Return % | Max DD % | Final Capital |",
        "|------------|--------|----------|----------|---------------|",
    ]
    for name, data in stats.percentiles.items():
        lines.append(
            f"| {name} | ${data.total_return:,.2f} | {data.return_pct:+.2f}% | "
            f"{data.max_drawdown:.1f}% | ${data.final_capital:,.2f} |"
        )
    return "\n".join(lines)


def _analyze_exit_reasons(results: List[SimulationResult]) -> str:
    """Analyze and format exit reason statistics."""
    exit_counts = {}
    for result in results:
        exit_counts[result.exit_reason] = exit_counts.get(result.exit_reason, 0) + 1

    total = len(results)
    lines = ["| Exit Reason | Count | Percentage |", "|-------------|-------|------------|"]

    for reason, count in sorted(exit_counts.items(), key=lambda x: x[1], reverse=True):
        pct = (count / total * 100) if total > 0 else 0
        lines.append(f"| {reason.replace('_', ' ').title()} | {count} | {pct:.1f}% |")

    return "\n".join(lines)


def _format_histogram(bins: List[HistogramBin], width: int = 40) -> str:
    """Text bar chart of a histogram inside a code block."""
    if not bins:
        return "_No data_"

    peak = max(b.frequency for b in bins) or 1.0
    lines = ["```"]
    for b in bins:
        bar = "#" * int(round(b.frequency / peak * width))
        lines.append(f"{b.midpoint:>12,.0f} | {bar} {b.frequency:.1f}%")
    lines.append("```")
    return "\n".join(lines)


def _format_regime_section(stats: SimulationStats) -> str:
    """Regime breakdown section, or nothing when regimes were off."""
    if not stats.regime_performance:
        return ""

    lines = [
        "",
        "## 🌦️ Market Regimes",
        "",
        "| Regime | Trades | Share | Win Rate | Avg P&L | Total P&L | Max DD % | Profit Factor |",
        "|--------|--------|-------|----------|---------|-----------|----------|---------------|",
    ]
    for perf in stats.regime_performance:
        lines.append(
            f"| {perf.regime_name} | {perf.total_trades:,} | {perf.time_share_pct:.1f}% | "
            f"{perf.win_rate:.1f}% | ${perf.avg_trade_pnl:,.2f} | ${perf.total_pnl:,.2f} | "
            f"{perf.max_drawdown:.1f}% | {perf.profit_factor:.2f} |"
        )
    lines.extend(["", "---", ""])
    return "\n".join(lines)
