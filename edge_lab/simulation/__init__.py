"""Monte Carlo simulation of trade sequences."""

from edge_lab.simulation.simulator import DrawdownAnalysis, analyze_drawdown_durations, simulate_path
from edge_lab.simulation.runner import CancellationToken, run_batch
from edge_lab.simulation.metrics import (
    calculate_statistics,
    nearest_rank_percentile,
    regime_performance,
)
from edge_lab.simulation.report import export_results_csv, generate_simulation_report, results_to_csv

__all__ = [
    'DrawdownAnalysis',
    'analyze_drawdown_durations',
    'simulate_path',
    'CancellationToken',
    'run_batch',
    'calculate_statistics',
    'nearest_rank_percentile',
    'regime_performance',
    'export_results_csv',
    'generate_simulation_report',
    'results_to_csv',
]
