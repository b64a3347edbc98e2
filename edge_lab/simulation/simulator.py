"""Single-path trade sequence simulator.

Simulates one account trading a fixed edge, accounting for:
- Position sizing policy (fixed %, fixed $, Kelly variants, anti-martingale)
- Outcome dispersion around the average win/loss
- Slippage and commissions
- Optional market regimes and sequence-risk scenarios
- Drawdown stop and a hard ruin floor at 10% of starting capital
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
import logging

import numpy as np

from edge_lab.models.simulation import (
    EXIT_COMPLETED,
    EXIT_DRAWDOWN_STOP,
    EXIT_RUIN,
    MarketRegime,
    SimulationConfig,
    SimulationResult,
)
from edge_lab.risk.position_sizing import PositionSizer

logger = logging.getLogger("edge_lab.simulator")

BASE_VARIANCE = 0.3
RETIREMENT_WITHDRAWAL_INTERVAL = 20


@dataclass(frozen=True)
class DrawdownAnalysis:
    """Drawdown episodes of one drawdown curve, measured in trades.

    Attributes:
        durations: Length of every drawdown episode, including an open one
        avg_duration: Mean episode length
        max_duration: Longest episode
        recovery_times: Length of episodes that got back to a new peak
        avg_recovery_time: Mean recovery length
        time_in_drawdown_pct: Share of curve points spent below the peak (%)
    """
    durations: Tuple[int, ...]
    avg_duration: float
    max_duration: int
    recovery_times: Tuple[int, ...]
    avg_recovery_time: float
    time_in_drawdown_pct: float


def analyze_drawdown_durations(drawdown_curve: Sequence[float]) -> DrawdownAnalysis:
    """Split a drawdown curve into episodes below the running peak."""
    durations: List[int] = []
    recovery_times: List[int] = []
    current = 0
    time_in_drawdown = 0

    for dd in drawdown_curve:
        if dd > 0:
            current += 1
            time_in_drawdown += 1
        elif current > 0:
            durations.append(current)
            recovery_times.append(current)
            current = 0

    if current > 0:
        durations.append(current)

    return DrawdownAnalysis(
        durations=tuple(durations),
        avg_duration=sum(durations) / len(durations) if durations else 0.0,
        max_duration=max(durations) if durations else 0,
        recovery_times=tuple(recovery_times),
        avg_recovery_time=sum(recovery_times) / len(recovery_times) if recovery_times else 0.0,
        time_in_drawdown_pct=(time_in_drawdown / len(drawdown_curve) * 100) if drawdown_curve else 0.0,
    )


def _select_regime(regimes: Sequence[MarketRegime], rng: np.random.Generator) -> MarketRegime:
    """Pick a regime with probability proportional to regime.probability."""
    draw = rng.random() * 100
    cumulative = 0.0
    for regime in regimes:
        cumulative += regime.probability
        if draw <= cumulative:
            return regime
    return regimes[0]


def _regime_duration(switch_frequency: int, rng: np.random.Generator) -> int:
    """Trades until the next regime switch: frequency ± 25%."""
    return switch_frequency + int(np.floor((rng.random() - 0.5) * switch_frequency * 0.5))


def simulate_path(config: SimulationConfig, rng: np.random.Generator) -> SimulationResult:
    """Simulate one sequence of config.num_trades trades.

    Each step checks the drawdown stop, draws the outcome, sizes the
    position, applies variance and costs, updates the curves and finally
    checks the ruin floor. The path ends when all trades are done, the
    drawdown stop fires, or capital falls below 10% of starting capital.

    Args:
        config: Validated simulation parameters
        rng: Random source owned by the caller (seed it for replay)

    Returns:
        SimulationResult for this path
    """
    num_trades = config.num_trades
    outcome_draws = rng.random(num_trades).tolist()
    variance_draws = rng.random(num_trades).tolist()

    capital = config.starting_capital
    peak = capital
    max_dd = 0.0

    equity = [capital]
    drawdown = [0.0]
    regime_history: List[str] = []
    trade_pnls: List[float] = []

    wins = losses = 0
    consecutive_wins = consecutive_losses = 0
    max_consecutive_wins = max_consecutive_losses = 0
    largest_win = largest_loss = 0.0
    total_win_amount = total_loss_amount = 0.0
    trades_executed = 0
    exit_reason = EXIT_COMPLETED

    regime: Optional[MarketRegime] = None
    regime_trades_remaining = 0
    if config.enable_regimes:
        regime = _select_regime(config.regimes, rng)
        regime_trades_remaining = _regime_duration(config.regime_switch_frequency, rng)

    forced_losses_remaining = config.bad_start_losses if config.sequence_risk_mode == 'bad_start' else 0

    for i in range(num_trades):
        # Rule 1: drawdown stop
        current_dd = ((peak - capital) / peak * 100) if peak > 0 else 0.0
        if config.max_drawdown_stop is not None and current_dd >= config.max_drawdown_stop:
            exit_reason = EXIT_DRAWDOWN_STOP
            break

        win_rate = config.win_rate
        avg_win = config.avg_win
        avg_loss = config.avg_loss
        volatility = 1.0

        if regime is not None:
            if regime_trades_remaining <= 0:
                regime = _select_regime(config.regimes, rng)
                regime_trades_remaining = _regime_duration(config.regime_switch_frequency, rng)
            regime_trades_remaining -= 1
            regime_history.append(regime.id)

            win_rate = max(0.0, min(100.0, win_rate + regime.win_rate_modifier))
            avg_win *= regime.avg_win_multiplier
            avg_loss *= regime.avg_loss_multiplier
            volatility = regime.volatility_multiplier

        # Rule 2: outcome
        if forced_losses_remaining > 0:
            is_win = False
            forced_losses_remaining -= 1
        else:
            is_win = outcome_draws[i] < win_rate / 100

        # Rule 3: sizing
        position_size = PositionSizer.position_size(
            method=config.position_sizing,
            capital=capital,
            starting_capital=config.starting_capital,
            risk_per_trade=config.risk_per_trade,
            win_rate=win_rate,
            avg_win=avg_win,
            avg_loss=avg_loss,
            compounding=config.enable_compounding,
            consecutive_wins=consecutive_wins,
        )

        # Rule 4: dispersion around the average outcome
        variance = BASE_VARIANCE * volatility
        multiplier = 1 + (variance_draws[i] - 0.5) * 2 * variance

        if is_win:
            pnl = position_size * (avg_win / avg_loss) * multiplier
        else:
            pnl = -position_size * multiplier

        # Rule 5: costs
        if config.include_slippage:
            pnl *= (1 - config.slippage_percent / 100)
        if config.include_commission:
            pnl -= config.commission_per_trade

        if (config.sequence_risk_mode == 'retirement' and i > 0
                and i % RETIREMENT_WITHDRAWAL_INTERVAL == 0):
            capital -= config.retirement_withdrawal

        # Rule 6: bookkeeping
        capital += pnl
        trades_executed += 1
        trade_pnls.append(pnl)

        if is_win:
            wins += 1
            consecutive_wins += 1
            consecutive_losses = 0
        else:
            losses += 1
            consecutive_losses += 1
            consecutive_wins = 0
        max_consecutive_wins = max(max_consecutive_wins, consecutive_wins)
        max_consecutive_losses = max(max_consecutive_losses, consecutive_losses)

        if pnl > 0:
            largest_win = max(largest_win, pnl)
            total_win_amount += pnl
        else:
            largest_loss = min(largest_loss, pnl)
            total_loss_amount += -pnl

        if capital > peak:
            peak = capital
        dd = ((peak - capital) / peak * 100) if peak > 0 else 0.0
        max_dd = max(max_dd, dd)

        equity.append(capital)
        drawdown.append(dd)

        # Rule 7: ruin floor
        if capital < config.ruin_floor:
            exit_reason = EXIT_RUIN
            break

    dd_analysis = analyze_drawdown_durations(drawdown)
    total_return = capital - config.starting_capital

    return SimulationResult(
        final_capital=capital,
        total_return=total_return,
        return_pct=total_return / config.starting_capital * 100,
        max_drawdown=max_dd,
        equity_curve=tuple(equity),
        drawdown_curve=tuple(drawdown),
        num_wins=wins,
        num_losses=losses,
        max_consecutive_wins=max_consecutive_wins,
        max_consecutive_losses=max_consecutive_losses,
        largest_win=largest_win,
        largest_loss=largest_loss,
        profit_factor=(total_win_amount / total_loss_amount) if total_loss_amount > 0 else 0.0,
        total_win_amount=total_win_amount,
        total_loss_amount=total_loss_amount,
        trades_executed=trades_executed,
        exit_reason=exit_reason,
        drawdown_durations=dd_analysis.durations,
        recovery_times=dd_analysis.recovery_times,
        regime_history=tuple(regime_history),
        trade_pnls=tuple(trade_pnls),
    )
