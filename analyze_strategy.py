#!/usr/bin/env python3
"""
Analyze a multi-leg option strategy with Black-Scholes pricing.

Build a strategy from a named template around the spot price, or from
explicit legs, then print position Greeks, breakevens, max profit/loss and
a P&L table over a price range. Optionally simulates terminal prices to
estimate probability of profit, and writes the full analysis as JSON.

USAGE:
    python3 analyze_strategy.py --template "Iron Condor" --spot 100 --iv 0.25 --dte 30
    python3 analyze_strategy.py --spot 100 --leg buy:call:100 --leg sell:call:110
    python3 analyze_strategy.py --template "Long Straddle" --spot 50 --simulate 20000 --json out.json

Leg format: action:type:strike[:quantity], e.g. sell:put:95:2
"""

import argparse
import json
import logging
import sys
from typing import List

import numpy as np

from edge_lab.analytics.strategy import (
    STRATEGY_TEMPLATES,
    OptionStrategy,
    build_strategy,
    simulate_expiration_pnl,
)
from edge_lab.data.validators import validate_market_inputs
from edge_lab.models.option import MarketInputs
from edge_lab.output.console import print_pnl_table, print_strategy_analysis
from edge_lab.utils.error_handling import EdgeLabError
from edge_lab.utils.logging_config import setup_logging

logger = logging.getLogger("edge_lab.cli")


def parse_leg(spec: str) -> tuple:
    """Parse 'action:type:strike[:quantity]' into a tuple."""
    parts = spec.split(':')
    if len(parts) not in (3, 4):
        raise argparse.ArgumentTypeError(f"Leg must be action:type:strike[:quantity], got '{spec}'")

    action, option_type = parts[0].lower(), parts[1].lower()
    if action not in ('buy', 'sell') or option_type not in ('call', 'put'):
        raise argparse.ArgumentTypeError(f"Invalid leg '{spec}': use buy|sell and call|put")

    try:
        strike = float(parts[2])
        quantity = int(parts[3]) if len(parts) == 4 else 1
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid strike or quantity in leg '{spec}'")

    return action, option_type, strike, quantity


def main(argv: List[str] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Analyze an option strategy: Greeks, breakevens and P&L profile',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Templates: " + ", ".join(STRATEGY_TEMPLATES),
    )
    parser.add_argument('--template', choices=list(STRATEGY_TEMPLATES), help='Strategy template')
    parser.add_argument('--leg', action='append', type=parse_leg, default=[],
                        help='Explicit leg action:type:strike[:quantity] (repeatable)')
    parser.add_argument('--spot', type=float, required=True, help='Underlying price')
    parser.add_argument('--iv', type=float, default=0.25, help='Implied volatility (default: 0.25)')
    parser.add_argument('--dte', type=float, default=30, help='Days to expiration (default: 30)')
    parser.add_argument('--rate', type=float, default=0.05, help='Risk-free rate (default: 0.05)')
    parser.add_argument('--dividend-yield', type=float, default=0.0, help='Dividend yield (default: 0)')
    parser.add_argument('--quantity', type=int, default=1, help='Contracts per template leg')
    parser.add_argument('--range', type=float, default=0.3,
                        help='Scan spot ± this fraction (default: 0.3)')
    parser.add_argument('--steps', type=int, default=100, help='Price grid steps (default: 100)')
    parser.add_argument('--simulate', type=int, default=0,
                        help='Simulate this many terminal prices for probability of profit')
    parser.add_argument('--seed', type=int, help='Random seed for --simulate')
    parser.add_argument('--json', help='Write the analysis to this JSON file')
    parser.add_argument('--log-level', default='WARNING',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])

    args = parser.parse_args(argv)
    setup_logging(log_level=args.log_level)

    if not args.template and not args.leg:
        parser.error("Provide --template or at least one --leg")

    try:
        market = validate_market_inputs(MarketInputs.from_days(
            spot=args.spot,
            strike=args.spot,
            days_to_expiry=args.dte,
            rate=args.rate,
            dividend_yield=args.dividend_yield,
            volatility=args.iv,
        ))

        if args.template:
            strategy = build_strategy(args.template, market, quantity=args.quantity)
        else:
            strategy = OptionStrategy(market)
        for action, option_type, strike, quantity in args.leg:
            strategy.add_leg(option_type, action, strike, quantity)

        analysis = strategy.analyze(
            min_price=args.spot * (1 - args.range),
            max_price=args.spot * (1 + args.range),
            steps=args.steps,
        )
    except (EdgeLabError, ValueError) as e:
        logger.error("Strategy analysis failed: %s", e)
        print(f"❌ {e}", file=sys.stderr)
        return 1

    print_strategy_analysis(analysis)
    print_pnl_table(analysis)

    output = analysis.to_dict()

    if args.simulate > 0:
        rng = np.random.default_rng(args.seed)
        sim = simulate_expiration_pnl(strategy.legs, market, args.simulate, rng)
        print(f"\nTerminal-price simulation ({args.simulate:,} paths):")
        print(f"  Probability of Profit: {sim.probability_of_profit:.1f}%")
        print(f"  Expected P&L:          ${sim.expected_pnl:,.2f}")
        output['simulation'] = {
            'num_simulations': args.simulate,
            'probability_of_profit': sim.probability_of_profit,
            'expected_pnl': sim.expected_pnl,
        }

    if args.json:
        with open(args.json, 'w') as f:
            json.dump(output, f, indent=2)
        print(f"\n✅ Analysis saved to: {args.json}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
