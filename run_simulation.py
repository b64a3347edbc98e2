#!/usr/bin/env python3
"""
Run a Monte Carlo simulation of a trading edge.

Loads a SimulationConfig from YAML (the packaged default when none is
given), optionally calibrates win rate and average win/loss from a CSV of
realised trades, runs the batch and prints the summary statistics. CSV
rows and a Markdown report can be written alongside.

USAGE:
    python3 run_simulation.py
    python3 run_simulation.py --config my_edge.yaml --simulations 2000 --seed 7
    python3 run_simulation.py --trades-csv journal.csv --csv results.csv --report REPORT.md
"""

import argparse
import logging
import sys

from edge_lab.data.loaders import load_simulation_config, load_trade_history_csv
from edge_lab.data.validators import validate_simulation_config
from edge_lab.models.simulation import POSITION_SIZING_METHODS, SEQUENCE_RISK_MODES
from edge_lab.output.console import (
    print_histogram,
    print_percentile_table,
    print_regime_performance,
    print_simulation_summary,
    print_trade_history,
)
from edge_lab.simulation.metrics import calculate_statistics
from edge_lab.simulation.report import export_results_csv, generate_simulation_report
from edge_lab.simulation.runner import run_batch
from edge_lab.utils.error_handling import EdgeLabError
from edge_lab.utils.logging_config import setup_logging

logger = logging.getLogger("edge_lab.cli")


def _progress_printer():
    """Progress callback that prints once per 10% step."""
    last_step = -1

    def on_progress(pct: float):
        nonlocal last_step
        step = int(pct // 10)
        if step > last_step:
            last_step = step
            print(f"  ... {pct:5.1f}% complete", flush=True)

    return on_progress


def main(argv=None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Monte Carlo simulation of trade sequences under a position-sizing policy',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('--config', help='YAML config (default: packaged default_simulation.yaml)')
    parser.add_argument('--trades-csv', help='CSV of realised trades to calibrate win rate and averages')
    parser.add_argument('--simulations', type=int, help='Override num_simulations')
    parser.add_argument('--trades', type=int, help='Override num_trades')
    parser.add_argument('--sizing', choices=POSITION_SIZING_METHODS, help='Override position_sizing')
    parser.add_argument('--sequence-risk', choices=SEQUENCE_RISK_MODES, help='Override sequence_risk_mode')
    parser.add_argument('--regimes', action='store_true', help='Enable market regimes')
    parser.add_argument('--seed', type=int, help='Random seed for a reproducible batch')
    parser.add_argument('--csv', help='Write per-simulation results to this CSV file')
    parser.add_argument('--report', help='Write a Markdown report to this file')
    parser.add_argument('--log-level', default='WARNING',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level (default: WARNING)')
    parser.add_argument('--log-file', help='Also write logs to this file')

    args = parser.parse_args(argv)
    setup_logging(log_level=args.log_level, log_file=args.log_file)

    overrides = {
        'num_simulations': args.simulations,
        'num_trades': args.trades,
        'position_sizing': args.sizing,
        'sequence_risk_mode': args.sequence_risk,
    }
    if args.regimes:
        overrides['enable_regimes'] = True

    try:
        config = load_simulation_config(args.config, overrides)

        if args.trades_csv:
            history = load_trade_history_csv(args.trades_csv)
            print_trade_history(history)
            config = history.apply_to_config(config)

        validate_simulation_config(config)
        print(f"\nRunning {config.num_simulations:,} simulations of {config.num_trades} trades...")
        results = run_batch(config, seed=args.seed, on_progress=_progress_printer())
    except (EdgeLabError, FileNotFoundError) as e:
        logger.error("Simulation failed: %s", e)
        print(f"❌ {e}", file=sys.stderr)
        return 1

    stats = calculate_statistics(results, config)

    print_simulation_summary(stats, config)
    print_percentile_table(stats)
    print_regime_performance(stats)
    print_histogram(stats.return_distribution, "Return Distribution ($)")
    print_histogram(stats.drawdown_distribution, "Max Drawdown Distribution (%)")
    print()

    if args.csv:
        export_results_csv(results, args.csv)
        print(f"✅ Results saved to: {args.csv}")

    if args.report:
        generate_simulation_report(stats, config, results, args.report)
        print(f"✅ Report saved to: {args.report}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
