"""Tests for multi-leg strategy aggregation and scenario analysis."""

import json
import math

import numpy as np
import pytest

from edge_lab.analytics.strategy import (
    STRATEGY_TEMPLATES,
    OptionStrategy,
    aggregate_greeks,
    analyze_strategy,
    build_strategy,
    calculate_pnl_curve,
    find_breakevens,
    payoff_slopes,
    price_grid,
    simulate_expiration_pnl,
)
from edge_lab.models.option import MarketInputs, OptionLeg
from edge_lab.utils.error_handling import DataValidationError


@pytest.fixture
def market():
    """SPY-like market: spot 100, 30 DTE, 25% IV, 5% rate."""
    return MarketInputs.from_days(spot=100.0, strike=100.0, days_to_expiry=30,
                                  rate=0.05, volatility=0.25)


@pytest.fixture
def bull_call_spread_legs():
    """Buy 100 call @ 5, sell 110 call @ 2: max profit 7, max loss 3, breakeven 103."""
    return [
        OptionLeg('call', 'buy', strike=100.0, premium=5.0),
        OptionLeg('call', 'sell', strike=110.0, premium=2.0),
    ]


class TestLongCallScenario:
    """Single long call, strike 100, premium 5, scanned over [80, 120]."""

    @pytest.fixture
    def analysis(self, market):
        leg = OptionLeg('call', 'buy', strike=100.0, premium=5.0, quantity=1)
        return analyze_strategy([leg], market, 80.0, 120.0)

    def test_single_breakeven_at_strike_plus_premium(self, analysis):
        breakevens = analysis.risk_metrics.breakevens
        assert len(breakevens) == 1
        assert breakevens[0] == pytest.approx(105.0, abs=1e-6)

    def test_max_loss_is_premium_paid(self, analysis):
        assert analysis.risk_metrics.max_loss == pytest.approx(-5.0)

    def test_profit_unbounded(self, analysis):
        metrics = analysis.risk_metrics
        assert metrics.profit_unbounded
        assert not metrics.loss_unbounded
        assert math.isinf(metrics.max_profit)
        assert math.isinf(metrics.risk_reward_ratio)

    def test_expiration_pnl_rises_toward_top_of_range(self, analysis):
        tail = [p.pnl_at_expiration for p in analysis.pnl_curve[-10:]]
        assert tail == sorted(tail)
        assert analysis.pnl_curve[-1].pnl_at_expiration == pytest.approx(15.0)

    def test_grid_has_steps_plus_one_points(self, analysis):
        assert len(analysis.pnl_curve) == 101
        assert analysis.pnl_curve[0].price == pytest.approx(80.0)
        assert analysis.pnl_curve[-1].price == pytest.approx(120.0)

    def test_to_dict_is_json_serialisable(self, analysis):
        data = analysis.to_dict()
        assert data['risk_metrics']['max_profit'] is None
        assert data['risk_metrics']['risk_reward_ratio'] is None
        json.dumps(data)


class TestRiskMetrics:

    def test_capped_spread_not_reported_unbounded(self, market, bull_call_spread_legs):
        metrics = analyze_strategy(bull_call_spread_legs, market, 80.0, 130.0).risk_metrics

        assert not metrics.profit_unbounded
        assert metrics.max_profit == pytest.approx(7.0)
        assert metrics.max_loss == pytest.approx(-3.0)
        assert metrics.risk_reward_ratio == pytest.approx(7.0 / 3.0)
        assert metrics.breakevens == pytest.approx((103.0,), abs=1e-6)

    def test_capped_spread_bounded_even_when_grid_stops_inside_strikes(self, market,
                                                                       bull_call_spread_legs):
        """Scanning only up to 105 still sees the short call cap analytically."""
        metrics = analyze_strategy(bull_call_spread_legs, market, 90.0, 105.0).risk_metrics
        assert not metrics.profit_unbounded
        assert math.isfinite(metrics.max_profit)

    def test_naked_short_call_loss_unbounded(self, market):
        leg = OptionLeg('call', 'sell', strike=100.0, premium=4.0)
        metrics = analyze_strategy([leg], market, 80.0, 120.0).risk_metrics

        assert metrics.loss_unbounded
        assert not metrics.profit_unbounded
        assert metrics.max_profit == pytest.approx(4.0)

    def test_probability_of_profit_is_share_of_grid(self, market):
        leg = OptionLeg('call', 'buy', strike=100.0, premium=5.0)
        metrics = analyze_strategy([leg], market, 80.0, 120.0, steps=40).risk_metrics
        # Grid points 106..120 are profitable: 15 of 41
        assert metrics.probability_of_profit == pytest.approx(15 / 41 * 100)

    def test_payoff_slopes(self):
        long_put = OptionLeg('put', 'buy', strike=100.0, premium=3.0)
        short_call = OptionLeg('call', 'sell', strike=110.0, premium=1.0, quantity=2)
        assert payoff_slopes([long_put, short_call]) == (-1.0, -2.0)

    def test_find_breakevens_on_both_sides(self, market):
        straddle = [
            OptionLeg('call', 'buy', strike=100.0, premium=2.0),
            OptionLeg('put', 'buy', strike=100.0, premium=2.0),
        ]
        curve = calculate_pnl_curve(straddle, market, 80.0, 120.0)
        assert find_breakevens(curve) == pytest.approx([96.0, 104.0], abs=1e-6)


class TestAggregation:

    def test_short_leg_negates_greeks(self, market):
        long_leg = OptionLeg('call', 'buy', strike=100.0, premium=3.0)
        short_leg = OptionLeg('call', 'sell', strike=100.0, premium=3.0)
        total = aggregate_greeks([long_leg, short_leg], market)

        assert total.delta == pytest.approx(0.0, abs=1e-12)
        assert total.gamma == pytest.approx(0.0, abs=1e-12)
        assert total.theta == pytest.approx(0.0, abs=1e-12)

    def test_quantity_scales_greeks(self, market):
        one = aggregate_greeks([OptionLeg('put', 'buy', 95.0, 1.0, quantity=1)], market)
        three = aggregate_greeks([OptionLeg('put', 'buy', 95.0, 1.0, quantity=3)], market)
        assert three.delta == pytest.approx(3 * one.delta)
        assert three.vega == pytest.approx(3 * one.vega)

    def test_current_pnl_equals_expiration_pnl_once_expired(self):
        expired = MarketInputs(spot=100.0, strike=100.0, time_to_expiry=0.0)
        leg = OptionLeg('put', 'sell', strike=100.0, premium=2.5)
        for point in calculate_pnl_curve([leg], expired, 90.0, 110.0, steps=20):
            assert point.current_pnl == pytest.approx(point.pnl_at_expiration)

    def test_invalid_price_grid(self):
        with pytest.raises(DataValidationError):
            price_grid(100.0, 90.0)
        with pytest.raises(DataValidationError):
            price_grid(90.0, 100.0, steps=0)


class TestTemplatesAndLegLifecycle:

    def test_all_templates_build(self, market):
        for name, (_, legs) in STRATEGY_TEMPLATES.items():
            strategy = build_strategy(name, market)
            assert len(strategy) == len(legs)
            assert all(leg.premium == round(leg.premium, 2) for leg in strategy.legs)

    def test_iron_condor_template(self, market):
        strategy = build_strategy('Iron Condor', market)
        strikes = sorted(leg.strike for leg in strategy.legs)
        assert strikes == [90.0, 95.0, 105.0, 110.0]

        metrics = strategy.analyze(70.0, 130.0).risk_metrics
        assert len(metrics.breakevens) == 2
        assert 90.0 < metrics.breakevens[0] < 95.0
        assert 105.0 < metrics.breakevens[1] < 110.0
        assert metrics.max_profit > 0
        assert not metrics.profit_unbounded
        assert not metrics.loss_unbounded

    def test_unknown_template(self, market):
        with pytest.raises(KeyError):
            build_strategy('Butterfly of Doom', market)

    def test_update_strike_recaptures_premium(self, market):
        strategy = OptionStrategy(market)
        original = strategy.add_leg('call', 'buy', 100.0)
        updated = strategy.update_leg(0, strike=110.0)

        assert updated.strike == 110.0
        assert updated.premium < original.premium

    def test_update_quantity_keeps_premium(self, market):
        strategy = OptionStrategy(market)
        original = strategy.add_leg('put', 'sell', 95.0)
        updated = strategy.update_leg(0, quantity=4)

        assert updated.quantity == 4
        assert updated.premium == original.premium

    def test_update_explicit_premium(self, market):
        strategy = OptionStrategy(market)
        strategy.add_leg('call', 'sell', 105.0)
        updated = strategy.update_leg(0, premium=2.5)

        assert updated.premium == 2.5
        assert updated.strike == 105.0

    def test_premium_with_strike_change_rejected(self, market):
        strategy = OptionStrategy(market)
        original = strategy.add_leg('call', 'buy', 100.0)

        with pytest.raises(ValueError):
            strategy.update_leg(0, strike=110.0, premium=1.0)
        assert strategy.legs[0] == original

    def test_remove_leg(self, market):
        strategy = build_strategy('Bull Call Spread', market)
        removed = strategy.remove_leg(1)
        assert removed.action == 'sell'
        assert len(strategy) == 1

    def test_add_leg_defaults_to_atm(self, market):
        strategy = OptionStrategy(market)
        leg = strategy.add_leg('call', 'buy')
        assert leg.strike == market.spot

    def test_invalid_leg_rejected(self):
        with pytest.raises(ValueError):
            OptionLeg('call', 'hold', strike=100.0, premium=1.0)
        with pytest.raises(ValueError):
            OptionLeg('call', 'buy', strike=100.0, premium=1.0, quantity=0)


class TestExpirationSimulation:

    def test_seeded_runs_reproduce(self, market):
        legs = build_strategy('Long Straddle', market).legs
        a = simulate_expiration_pnl(legs, market, 1000, np.random.default_rng(11))
        b = simulate_expiration_pnl(legs, market, 1000, np.random.default_rng(11))
        np.testing.assert_array_equal(a.pnls, b.pnls)

    def test_terminal_price_mean_is_forward(self, market):
        sim = simulate_expiration_pnl([], market, 200_000, np.random.default_rng(3))
        forward = market.spot * math.exp((market.rate - market.dividend_yield) * market.time_to_expiry)
        assert float(sim.terminal_prices.mean()) == pytest.approx(forward, abs=0.1)

    def test_probability_of_profit_in_range(self, market):
        leg = OptionLeg('call', 'buy', strike=100.0, premium=3.0)
        sim = simulate_expiration_pnl([leg], market, 5000, np.random.default_rng(5))
        assert 0 <= sim.probability_of_profit <= 100
        assert sim.pnls.min() >= -3.0 - 1e-12

    def test_non_positive_count_rejected(self, market):
        with pytest.raises(DataValidationError):
            simulate_expiration_pnl([], market, 0, np.random.default_rng(0))
