"""Boundary validation for simulation configs and market inputs.

Checks run before any batch or analysis starts so bad parameters fail with
a typed error instead of producing NaN statistics downstream.
"""

import logging
import math
import numbers
from typing import List

from ..models.option import MarketInputs
from ..models.simulation import (
    POSITION_SIZING_METHODS,
    SEQUENCE_RISK_MODES,
    MarketRegime,
    SimulationConfig,
)
from ..utils.error_handling import ConfigurationError, DataValidationError

logger = logging.getLogger("edge_lab.validators")

COUNT_FIELDS = (
    'num_trades',
    'num_simulations',
    'regime_switch_frequency',
    'bad_start_losses',
    'trading_days_per_year',
)
NUMBER_FIELDS = (
    'starting_capital',
    'win_rate',
    'avg_win',
    'avg_loss',
    'risk_per_trade',
    'slippage_percent',
    'commission_per_trade',
    'retirement_withdrawal',
    'avg_trades_per_day',
)
FLAG_FIELDS = ('include_slippage', 'include_commission', 'enable_compounding', 'enable_regimes')
REGIME_NUMBER_FIELDS = (
    'probability',
    'win_rate_modifier',
    'avg_win_multiplier',
    'avg_loss_multiplier',
    'volatility_multiplier',
)


def _is_count(value) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _is_number(value) -> bool:
    return (isinstance(value, numbers.Real) and not isinstance(value, bool)
            and math.isfinite(value))


def collect_type_problems(config: SimulationConfig) -> List[str]:
    """List fields whose values have the wrong type.

    Counts must be integers, amounts and percentages finite numbers and
    switches booleans. YAML hands back strings for values like '1e3' and
    floats for '50.0', neither of which the simulator can use.
    """
    problems = []

    for name in COUNT_FIELDS:
        value = getattr(config, name)
        if not _is_count(value):
            problems.append(f"{name} must be a whole number, got {value!r}")

    for name in NUMBER_FIELDS:
        value = getattr(config, name)
        if not _is_number(value):
            problems.append(f"{name} must be a finite number, got {value!r}")

    if config.max_drawdown_stop is not None and not _is_number(config.max_drawdown_stop):
        problems.append(
            f"max_drawdown_stop must be a finite number or null, got {config.max_drawdown_stop!r}"
        )

    for name in FLAG_FIELDS:
        value = getattr(config, name)
        if not isinstance(value, bool):
            problems.append(f"{name} must be true or false, got {value!r}")

    for name in ('position_sizing', 'sequence_risk_mode'):
        value = getattr(config, name)
        if not isinstance(value, str):
            problems.append(f"{name} must be a string, got {value!r}")

    for regime in config.regimes:
        if not isinstance(regime, MarketRegime):
            problems.append(f"regimes must contain MarketRegime entries, got {regime!r}")
            continue
        for name in REGIME_NUMBER_FIELDS:
            value = getattr(regime, name)
            if not _is_number(value):
                problems.append(
                    f"regime '{regime.id}' {name} must be a finite number, got {value!r}"
                )

    return problems


def collect_config_problems(config: SimulationConfig) -> List[str]:
    """List every problem with a simulation config (empty when valid).

    Type problems are reported on their own: the range checks below
    compare values and only make sense once every field is a number.

    Args:
        config: SimulationConfig to check

    Returns:
        Human-readable problem descriptions in field order
    """
    problems = collect_type_problems(config)
    if problems:
        return problems

    if not config.starting_capital > 0:
        problems.append(f"starting_capital must be positive, got {config.starting_capital}")

    if not 0 <= config.win_rate <= 100:
        problems.append(f"win_rate must be within 0-100, got {config.win_rate}")

    if not config.avg_win >= 0:
        problems.append(f"avg_win cannot be negative, got {config.avg_win}")

    # Payoff ratio and Kelly sizing both divide by avg_loss
    if not config.avg_loss > 0:
        problems.append(f"avg_loss must be positive, got {config.avg_loss}")

    if not 0 < config.risk_per_trade <= 100:
        problems.append(f"risk_per_trade must be within (0, 100], got {config.risk_per_trade}")

    if config.num_trades <= 0:
        problems.append(f"num_trades must be positive, got {config.num_trades}")

    if config.num_simulations <= 0:
        problems.append(f"num_simulations must be positive, got {config.num_simulations}")

    if config.position_sizing not in POSITION_SIZING_METHODS:
        problems.append(
            f"position_sizing must be one of {', '.join(POSITION_SIZING_METHODS)}, "
            f"got '{config.position_sizing}'"
        )

    if config.include_slippage and not 0 <= config.slippage_percent <= 100:
        problems.append(f"slippage_percent must be within 0-100, got {config.slippage_percent}")

    if config.include_commission and config.commission_per_trade < 0:
        problems.append(f"commission_per_trade cannot be negative, got {config.commission_per_trade}")

    if config.max_drawdown_stop is not None and not 0 < config.max_drawdown_stop <= 100:
        problems.append(f"max_drawdown_stop must be within (0, 100], got {config.max_drawdown_stop}")

    if config.sequence_risk_mode not in SEQUENCE_RISK_MODES:
        problems.append(
            f"sequence_risk_mode must be one of {', '.join(SEQUENCE_RISK_MODES)}, "
            f"got '{config.sequence_risk_mode}'"
        )
    elif config.sequence_risk_mode == 'bad_start' and config.bad_start_losses < 0:
        problems.append(f"bad_start_losses cannot be negative, got {config.bad_start_losses}")
    elif config.sequence_risk_mode == 'retirement' and config.retirement_withdrawal < 0:
        problems.append(f"retirement_withdrawal cannot be negative, got {config.retirement_withdrawal}")

    if config.enable_regimes:
        if not config.regimes:
            problems.append("enable_regimes requires at least one regime")
        else:
            total = sum(regime.probability for regime in config.regimes)
            if not math.isclose(total, 100.0, abs_tol=1e-6):
                problems.append(f"regime probabilities must sum to 100, got {total}")
            for regime in config.regimes:
                if regime.avg_loss_multiplier <= 0:
                    problems.append(f"regime '{regime.id}' avg_loss_multiplier must be positive")
        if config.regime_switch_frequency <= 0:
            problems.append(
                f"regime_switch_frequency must be positive, got {config.regime_switch_frequency}"
            )

    if config.trading_days_per_year <= 0 or config.avg_trades_per_day <= 0:
        problems.append("trading_days_per_year and avg_trades_per_day must be positive")

    return problems


def validate_simulation_config(config: SimulationConfig) -> SimulationConfig:
    """Reject an invalid config before a batch run starts.

    Returns:
        The same config, for chaining

    Raises:
        ConfigurationError: Listing every problem found
    """
    problems = collect_config_problems(config)
    if problems:
        logger.error("Rejected simulation config: %s", "; ".join(problems))
        raise ConfigurationError(problems)
    return config


def validate_market_inputs(inputs: MarketInputs) -> MarketInputs:
    """Check market inputs for a full Black-Scholes evaluation.

    price_option() tolerates T <= 0 and vol <= 0 by falling back to
    intrinsic value; this stricter check is for entry points that expect
    live Greeks.

    Raises:
        DataValidationError: If any input is out of range
    """
    problems = []
    if inputs.spot <= 0:
        problems.append(f"spot must be positive, got {inputs.spot}")
    if inputs.strike <= 0:
        problems.append(f"strike must be positive, got {inputs.strike}")
    if inputs.time_to_expiry < 0:
        problems.append(f"time_to_expiry cannot be negative, got {inputs.time_to_expiry}")
    if inputs.volatility <= 0:
        problems.append(f"volatility must be positive, got {inputs.volatility}")

    if problems:
        logger.error("Rejected market inputs %r: %s", inputs, "; ".join(problems))
        raise DataValidationError("; ".join(problems))

    return inputs
