"""Tests for single-path trade sequence simulation."""

import numpy as np
import pytest

from edge_lab.models.simulation import (
    DEFAULT_REGIMES,
    EXIT_COMPLETED,
    EXIT_DRAWDOWN_STOP,
    EXIT_RUIN,
    SimulationConfig,
)
from edge_lab.simulation.simulator import analyze_drawdown_durations, simulate_path


@pytest.fixture
def config():
    """Default edge: 60% win rate, 150/100, 2% risk, 100 trades."""
    return SimulationConfig(num_simulations=1)


@pytest.fixture
def always_win():
    """Every trade wins and sizes stay constant, so costs are easy to isolate."""
    return SimulationConfig(win_rate=100.0, position_sizing='fixed_dollar',
                            risk_per_trade=1.0, num_simulations=1)


class TestSimulatePath:
    """Test suite for the path simulator's bookkeeping."""

    def test_seeded_path_reproducible(self, config):
        a = simulate_path(config, np.random.default_rng(42))
        b = simulate_path(config, np.random.default_rng(42))
        assert a == b

    def test_curves_and_counters_consistent(self, config):
        result = simulate_path(config, np.random.default_rng(7))

        assert result.exit_reason == EXIT_COMPLETED
        assert result.trades_executed == config.num_trades
        assert result.num_wins + result.num_losses == result.trades_executed
        assert len(result.equity_curve) == result.trades_executed + 1
        assert len(result.drawdown_curve) == len(result.equity_curve)
        assert result.equity_curve[0] == config.starting_capital
        assert result.final_capital == result.equity_curve[-1]
        assert result.total_return == pytest.approx(result.final_capital - config.starting_capital)
        assert result.return_pct == pytest.approx(result.total_return / config.starting_capital * 100)

    def test_drawdown_curve_tracks_running_peak(self, config):
        result = simulate_path(config, np.random.default_rng(3))

        peak = result.equity_curve[0]
        for capital, dd in zip(result.equity_curve, result.drawdown_curve):
            peak = max(peak, capital)
            assert dd == pytest.approx((peak - capital) / peak * 100)
        assert result.max_drawdown == pytest.approx(max(result.drawdown_curve))

    def test_largest_win_and_loss_signs(self, config):
        result = simulate_path(config, np.random.default_rng(9))
        assert result.largest_win >= 0
        assert result.largest_loss <= 0
        assert result.max_consecutive_wins <= result.num_wins
        assert result.max_consecutive_losses <= result.num_losses

    def test_trade_pnls_match_equity_steps(self, config):
        result = simulate_path(config, np.random.default_rng(11))

        assert len(result.trade_pnls) == result.trades_executed
        steps = [b - a for a, b in zip(result.equity_curve, result.equity_curve[1:])]
        assert list(result.trade_pnls) == pytest.approx(steps)

    def test_regime_history_empty_when_disabled(self, config):
        assert simulate_path(config, np.random.default_rng(1)).regime_history == ()


class TestTerminations:
    """Ruin floor and drawdown stop end a path without raising."""

    def test_ruin_floor_terminates_path(self):
        config = SimulationConfig(win_rate=0.0, risk_per_trade=50.0, num_simulations=1)
        result = simulate_path(config, np.random.default_rng(0))

        assert result.exit_reason == EXIT_RUIN
        assert result.is_ruined
        assert result.final_capital < config.ruin_floor
        assert result.trades_executed < config.num_trades
        assert all(capital >= config.ruin_floor for capital in result.equity_curve[:-1])

    def test_drawdown_stop(self):
        config = SimulationConfig(win_rate=0.0, risk_per_trade=5.0, max_drawdown_stop=20.0,
                                  num_simulations=1)
        result = simulate_path(config, np.random.default_rng(0))

        assert result.exit_reason == EXIT_DRAWDOWN_STOP
        assert result.stopped_early
        assert result.drawdown_curve[-1] >= 20.0
        assert all(dd < 20.0 for dd in result.drawdown_curve[:-1])
        assert result.trades_executed < config.num_trades


class TestCostsAndSequenceRisk:

    def test_commission_deducted_per_trade(self, always_win):
        base = simulate_path(always_win, np.random.default_rng(5))
        with_costs = simulate_path(
            always_win.with_overrides(include_commission=True, commission_per_trade=7.0),
            np.random.default_rng(5)
        )
        assert base.final_capital - with_costs.final_capital == pytest.approx(700.0)

    def test_slippage_scales_every_trade(self, always_win):
        base = simulate_path(always_win, np.random.default_rng(5))
        slipped = simulate_path(
            always_win.with_overrides(include_slippage=True, slippage_percent=0.5),
            np.random.default_rng(5)
        )
        assert slipped.total_return == pytest.approx(base.total_return * 0.995)

    def test_retirement_withdraws_every_20_trades(self, always_win):
        base = simulate_path(always_win, np.random.default_rng(8))
        retired = simulate_path(
            always_win.with_overrides(sequence_risk_mode='retirement', retirement_withdrawal=500.0),
            np.random.default_rng(8)
        )
        # Withdrawals at trades 20, 40, 60 and 80
        assert base.final_capital - retired.final_capital == pytest.approx(2000.0)

    def test_bad_start_forces_initial_losses(self):
        config = SimulationConfig(win_rate=100.0, sequence_risk_mode='bad_start',
                                  bad_start_losses=5, num_simulations=1)
        result = simulate_path(config, np.random.default_rng(2))

        assert result.num_losses == 5
        assert result.max_consecutive_losses == 5
        assert result.max_consecutive_wins == config.num_trades - 5
        early = result.equity_curve[:6]
        assert list(early) == sorted(early, reverse=True)

    def test_regimes_recorded_per_trade(self, config):
        result = simulate_path(config.with_overrides(enable_regimes=True), np.random.default_rng(4))

        assert len(result.regime_history) == result.trades_executed
        assert set(result.regime_history) <= {regime.id for regime in DEFAULT_REGIMES}


class TestDrawdownDurations:

    def test_episodes_and_recoveries(self):
        analysis = analyze_drawdown_durations([0.0, 1.0, 2.0, 0.0, 0.0, 3.0, 4.0, 5.0])

        assert analysis.durations == (2, 3)
        assert analysis.recovery_times == (2,)
        assert analysis.max_duration == 3
        assert analysis.avg_duration == pytest.approx(2.5)
        assert analysis.avg_recovery_time == pytest.approx(2.0)
        assert analysis.time_in_drawdown_pct == pytest.approx(62.5)

    def test_flat_curve(self):
        analysis = analyze_drawdown_durations([0.0, 0.0, 0.0])
        assert analysis.durations == ()
        assert analysis.max_duration == 0
        assert analysis.time_in_drawdown_pct == 0.0

    def test_empty_curve(self):
        assert analyze_drawdown_durations([]).time_in_drawdown_pct == 0.0
