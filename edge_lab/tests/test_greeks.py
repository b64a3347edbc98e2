"""Tests for Black-Scholes pricing, Greeks and the normal distribution helpers."""

import math

import numpy as np
import pytest
from scipy import special, stats

from edge_lab.analytics.greeks import (
    BlackScholesGreeks,
    intrinsic_value,
    price_option,
    validate_greeks,
)
from edge_lab.analytics.normal import erf, norm_cdf, norm_pdf
from edge_lab.data.validators import validate_market_inputs
from edge_lab.models.option import Greeks, MarketInputs
from edge_lab.utils.error_handling import DataValidationError


class TestNormalDistribution:
    """Abramowitz-Stegun erf against SciPy as an independent reference."""

    def test_erf_within_published_error_bound(self):
        xs = np.linspace(-5, 5, 2001)
        max_err = max(abs(erf(x) - special.erf(x)) for x in xs)
        assert max_err <= 1.5e-7

    def test_erf_is_odd(self):
        for x in (0.1, 0.7, 1.9, 3.3):
            assert erf(-x) == pytest.approx(-erf(x))

    def test_erf_of_zero(self):
        assert erf(0.0) == pytest.approx(0.0, abs=1e-9)

    def test_norm_cdf_matches_scipy(self):
        for x in (-3.0, -1.0, -0.25, 0.0, 0.5, 1.96, 4.0):
            assert norm_cdf(x) == pytest.approx(stats.norm.cdf(x), abs=1e-7)

    def test_norm_pdf_matches_scipy(self):
        for x in (-2.5, 0.0, 1.3):
            assert norm_pdf(x) == pytest.approx(stats.norm.pdf(x))


class TestBlackScholesGreeks:
    """Test suite for Black-Scholes price and Greeks."""

    def test_put_call_parity(self):
        """C - P = S·e^(-qT) - K·e^(-rT) on the unfloored model price."""
        for strike in (70.0, 90.0, 100.0, 115.0, 140.0):
            args = (100.0, strike, 0.5, 0.04, 0.3)
            call = BlackScholesGreeks.theoretical_price(*args, 'call', 0.02)
            put = BlackScholesGreeks.theoretical_price(*args, 'put', 0.02)
            expected = 100.0 * math.exp(-0.02 * 0.5) - strike * math.exp(-0.04 * 0.5)
            assert call - put == pytest.approx(expected, abs=1e-4)

    def test_atm_call_price_reference_value(self):
        """S=K=100, T=1, r=5%, vol=20% has a textbook price of ~10.45."""
        price = BlackScholesGreeks.theoretical_price(100, 100, 1.0, 0.05, 0.2, 'call')
        assert price == pytest.approx(10.4506, abs=1e-3)

    def test_atm_call_delta_approximately_half(self):
        delta = BlackScholesGreeks.calculate_delta(
            spot=100.0, strike=100.0, time_to_expiry=0.25, rate=0.02, vol=0.25, option_type='call'
        )
        assert 0.45 <= delta <= 0.6

    def test_put_delta_equals_call_delta_minus_carry(self):
        args = (100.0, 105.0, 0.25, 0.02, 0.25)
        call_delta = BlackScholesGreeks.calculate_delta(*args, 'call', 0.01)
        put_delta = BlackScholesGreeks.calculate_delta(*args, 'put', 0.01)
        assert call_delta - put_delta == pytest.approx(math.exp(-0.01 * 0.25))

    def test_sign_rules_across_strikes(self):
        """Call delta in [0,1], put delta in [-1,0], gamma and vega >= 0."""
        for strike in np.linspace(50, 150, 21):
            for option_type in ('call', 'put'):
                greeks = BlackScholesGreeks.calculate_all_greeks(
                    100.0, float(strike), 0.3, 0.03, 0.35, option_type, 0.01
                )
                is_valid, error = validate_greeks(greeks, option_type)
                assert is_valid, error

    def test_gamma_highest_near_atm(self):
        gammas = {
            strike: BlackScholesGreeks.calculate_gamma(100.0, strike, 0.25, 0.02, 0.25)
            for strike in (80.0, 100.0, 120.0)
        }
        assert gammas[100.0] > gammas[80.0]
        assert gammas[100.0] > gammas[120.0]

    def test_theta_negative_for_long_atm_options(self):
        for option_type in ('call', 'put'):
            theta = BlackScholesGreeks.calculate_theta(100.0, 100.0, 0.25, 0.02, 0.25, option_type)
            assert theta < 0

    def test_rho_sign(self):
        args = (100.0, 100.0, 0.5, 0.05, 0.2)
        assert BlackScholesGreeks.calculate_rho(*args, 'call') > 0
        assert BlackScholesGreeks.calculate_rho(*args, 'put') < 0

    def test_vega_matches_finite_difference(self):
        """Vega is per vol point: price(σ + 0.01) - price(σ) ≈ vega."""
        base = BlackScholesGreeks.theoretical_price(100, 95, 0.5, 0.03, 0.25, 'call')
        bumped = BlackScholesGreeks.theoretical_price(100, 95, 0.5, 0.03, 0.26, 'call')
        vega = BlackScholesGreeks.calculate_vega(100, 95, 0.5, 0.03, 0.25)
        assert bumped - base == pytest.approx(vega, rel=0.02)

    def test_invalid_option_type(self):
        with pytest.raises(ValueError):
            BlackScholesGreeks.calculate_delta(100, 100, 0.25, 0.02, 0.25, 'straddle')


class TestPriceOption:
    """Test suite for the price_option entry point and its fallbacks."""

    def test_expired_call_is_intrinsic_with_zero_greeks(self):
        """Expired option: S=110, K=100 call is worth exactly 10."""
        pricing = price_option(MarketInputs(spot=110, strike=100, time_to_expiry=0.0), is_call=True)

        assert pricing.price == pytest.approx(10.0)
        assert pricing.intrinsic == pytest.approx(10.0)
        assert pricing.time_value == 0.0
        assert pricing.greeks == Greeks()

    def test_zero_volatility_falls_back_to_intrinsic(self):
        inputs = MarketInputs(spot=100, strike=90, time_to_expiry=0.5, volatility=0.0)
        pricing = price_option(inputs, is_call=True)

        assert pricing.price == pytest.approx(10.0)
        assert pricing.greeks == Greeks()
        assert all(math.isfinite(v) for v in pricing.greeks.to_dict().values())

    def test_time_value_never_negative(self):
        for strike in np.linspace(40, 200, 33):
            for is_call in (True, False):
                inputs = MarketInputs(spot=100, strike=float(strike), time_to_expiry=1.0, rate=0.08)
                pricing = price_option(inputs, is_call)
                assert pricing.time_value >= 0
                assert pricing.intrinsic >= 0
                assert pricing.price >= pricing.intrinsic

    def test_deep_itm_put_floored_at_intrinsic(self):
        """European put below intrinsic is reported at intrinsic value."""
        inputs = MarketInputs(spot=50, strike=100, time_to_expiry=1.0, rate=0.05, volatility=0.2)
        raw = BlackScholesGreeks.theoretical_price(50, 100, 1.0, 0.05, 0.2, 'put')
        pricing = price_option(inputs, is_call=False)

        assert raw < 50.0
        assert pricing.price == pytest.approx(50.0)
        assert pricing.time_value == 0.0

    def test_non_positive_spot_or_strike_rejected(self):
        with pytest.raises(DataValidationError):
            price_option(MarketInputs(spot=0, strike=100, time_to_expiry=0.5), is_call=True)
        with pytest.raises(DataValidationError):
            price_option(MarketInputs(spot=100, strike=-5, time_to_expiry=0.5), is_call=False)

    def test_from_days(self):
        inputs = MarketInputs.from_days(spot=100, strike=100, days_to_expiry=73)
        assert inputs.time_to_expiry == pytest.approx(0.2)
        assert inputs.days_to_expiry == pytest.approx(73)

    def test_intrinsic_value(self):
        assert intrinsic_value(110, 100, 'call') == 10
        assert intrinsic_value(110, 100, 'put') == 0
        assert intrinsic_value(90, 100, 'put') == 10


class TestGreeksBundle:

    def test_scaled_and_added(self):
        a = Greeks(delta=0.5, gamma=0.02, theta=-0.03, vega=0.1, rho=0.05)
        total = a + a.scaled(-1)
        assert total.delta == pytest.approx(0.0)
        assert total.vega == pytest.approx(0.0)
        assert a.scaled(2).gamma == pytest.approx(0.04)


class TestValidateMarketInputs:

    def test_valid_inputs_pass_through(self):
        inputs = MarketInputs(spot=100, strike=100, time_to_expiry=0.25)
        assert validate_market_inputs(inputs) is inputs

    def test_non_positive_volatility_rejected(self):
        with pytest.raises(DataValidationError, match="volatility"):
            validate_market_inputs(MarketInputs(spot=100, strike=100, time_to_expiry=0.25, volatility=0))

    def test_every_problem_reported(self):
        with pytest.raises(DataValidationError) as exc_info:
            validate_market_inputs(MarketInputs(spot=-1, strike=0, time_to_expiry=-1, volatility=-0.1))
        message = str(exc_info.value)
        for field_name in ("spot", "strike", "time_to_expiry", "volatility"):
            assert field_name in message
