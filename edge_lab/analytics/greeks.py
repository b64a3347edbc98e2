"""Option pricing and Greeks using the Black-Scholes-Merton model.

European options on an underlying with a continuous dividend yield. The
normal CDF is the Abramowitz-Stegun approximation from analytics.normal.
"""

import logging
import math
from typing import Tuple

from ..models.option import Greeks, MarketInputs, OptionPricing
from ..utils.error_handling import DataValidationError
from .normal import norm_cdf, norm_pdf

logger = logging.getLogger("edge_lab.greeks")


def intrinsic_value(spot: float, strike: float, option_type: str) -> float:
    """Exercise value of an option right now (never negative)."""
    if option_type == 'call':
        return max(spot - strike, 0.0)
    if option_type == 'put':
        return max(strike - spot, 0.0)
    raise ValueError(f"Invalid option_type: {option_type}")


class BlackScholesGreeks:
    """Closed-form Black-Scholes-Merton price and sensitivities.

    Every method expects time_to_expiry > 0 and vol > 0. price_option()
    handles the degenerate cases before it gets here.
    """

    @staticmethod
    def theoretical_price(
        spot: float,
        strike: float,
        time_to_expiry: float,
        rate: float,
        vol: float,
        option_type: str,
        dividend_yield: float = 0.0
    ) -> float:
        """Raw Black-Scholes price, not floored at intrinsic.

        Call = S·e^(-qT)·N(d1) - K·e^(-rT)·N(d2)
        Put  = K·e^(-rT)·N(-d2) - S·e^(-qT)·N(-d1)
        """
        d1 = BlackScholesGreeks._d1(spot, strike, time_to_expiry, rate, vol, dividend_yield)
        d2 = d1 - vol * math.sqrt(time_to_expiry)
        spot_disc = spot * math.exp(-dividend_yield * time_to_expiry)
        strike_disc = strike * math.exp(-rate * time_to_expiry)

        if option_type == 'call':
            return spot_disc * norm_cdf(d1) - strike_disc * norm_cdf(d2)
        elif option_type == 'put':
            return strike_disc * norm_cdf(-d2) - spot_disc * norm_cdf(-d1)
        raise ValueError(f"Invalid option_type: {option_type}")

    @staticmethod
    def calculate_delta(
        spot: float,
        strike: float,
        time_to_expiry: float,
        rate: float,
        vol: float,
        option_type: str,
        dividend_yield: float = 0.0
    ) -> float:
        """Calculate delta.

        Args:
            spot: Current underlying price
            strike: Strike price
            time_to_expiry: Time to expiration in years
            rate: Risk-free interest rate (annualized)
            vol: Implied volatility (annualized)
            option_type: 'call' or 'put'
            dividend_yield: Continuous dividend yield (annualized)

        Returns:
            Delta in [0, 1] for calls, [-1, 0] for puts

        Example:
            >>> delta = BlackScholesGreeks.calculate_delta(
            >>>     spot=100, strike=105, time_to_expiry=0.25,
            >>>     rate=0.02, vol=0.25, option_type='call'
            >>> )
            >>> # Returns ~0.37 for an OTM call
        """
        d1 = BlackScholesGreeks._d1(spot, strike, time_to_expiry, rate, vol, dividend_yield)
        carry = math.exp(-dividend_yield * time_to_expiry)

        if option_type == 'call':
            return carry * norm_cdf(d1)
        elif option_type == 'put':
            return -carry * norm_cdf(-d1)
        raise ValueError(f"Invalid option_type: {option_type}")

    @staticmethod
    def calculate_gamma(
        spot: float,
        strike: float,
        time_to_expiry: float,
        rate: float,
        vol: float,
        dividend_yield: float = 0.0
    ) -> float:
        """Calculate gamma. Same for calls and puts, always >= 0."""
        d1 = BlackScholesGreeks._d1(spot, strike, time_to_expiry, rate, vol, dividend_yield)
        carry = math.exp(-dividend_yield * time_to_expiry)
        return carry * norm_pdf(d1) / (spot * vol * math.sqrt(time_to_expiry))

    @staticmethod
    def calculate_theta(
        spot: float,
        strike: float,
        time_to_expiry: float,
        rate: float,
        vol: float,
        option_type: str,
        dividend_yield: float = 0.0
    ) -> float:
        """Calculate theta (time decay) per calendar day.

        Args:
            spot: Current underlying price
            strike: Strike price
            time_to_expiry: Time to expiration in years
            rate: Risk-free interest rate (annualized)
            vol: Implied volatility (annualized)
            option_type: 'call' or 'put'
            dividend_yield: Continuous dividend yield (annualized)

        Returns:
            Theta per day (annual theta / 365), typically negative
        """
        sqrt_t = math.sqrt(time_to_expiry)
        d1 = BlackScholesGreeks._d1(spot, strike, time_to_expiry, rate, vol, dividend_yield)
        d2 = d1 - vol * sqrt_t
        carry = math.exp(-dividend_yield * time_to_expiry)
        discount = math.exp(-rate * time_to_expiry)

        decay = -(spot * norm_pdf(d1) * vol * carry) / (2 * sqrt_t)

        if option_type == 'call':
            theta = (decay
                     - rate * strike * discount * norm_cdf(d2)
                     + dividend_yield * spot * carry * norm_cdf(d1))
        elif option_type == 'put':
            theta = (decay
                     + rate * strike * discount * norm_cdf(-d2)
                     - dividend_yield * spot * carry * norm_cdf(-d1))
        else:
            raise ValueError(f"Invalid option_type: {option_type}")

        return theta / 365

    @staticmethod
    def calculate_vega(
        spot: float,
        strike: float,
        time_to_expiry: float,
        rate: float,
        vol: float,
        dividend_yield: float = 0.0
    ) -> float:
        """Calculate vega per 1 vol point (0.01 change in IV).

        Vega is the same for both calls and puts.
        """
        d1 = BlackScholesGreeks._d1(spot, strike, time_to_expiry, rate, vol, dividend_yield)
        carry = math.exp(-dividend_yield * time_to_expiry)
        return spot * carry * norm_pdf(d1) * math.sqrt(time_to_expiry) / 100

    @staticmethod
    def calculate_rho(
        spot: float,
        strike: float,
        time_to_expiry: float,
        rate: float,
        vol: float,
        option_type: str,
        dividend_yield: float = 0.0
    ) -> float:
        """Calculate rho per 1% change in the risk-free rate."""
        d1 = BlackScholesGreeks._d1(spot, strike, time_to_expiry, rate, vol, dividend_yield)
        d2 = d1 - vol * math.sqrt(time_to_expiry)
        discounted = strike * time_to_expiry * math.exp(-rate * time_to_expiry)

        if option_type == 'call':
            return discounted * norm_cdf(d2) / 100
        elif option_type == 'put':
            return -discounted * norm_cdf(-d2) / 100
        raise ValueError(f"Invalid option_type: {option_type}")

    @staticmethod
    def calculate_all_greeks(
        spot: float,
        strike: float,
        time_to_expiry: float,
        rate: float,
        vol: float,
        option_type: str,
        dividend_yield: float = 0.0
    ) -> Greeks:
        """Calculate the full Greeks bundle."""
        args = (spot, strike, time_to_expiry, rate, vol)
        return Greeks(
            delta=BlackScholesGreeks.calculate_delta(*args, option_type, dividend_yield),
            gamma=BlackScholesGreeks.calculate_gamma(*args, dividend_yield),
            theta=BlackScholesGreeks.calculate_theta(*args, option_type, dividend_yield),
            vega=BlackScholesGreeks.calculate_vega(*args, dividend_yield),
            rho=BlackScholesGreeks.calculate_rho(*args, option_type, dividend_yield),
        )

    @staticmethod
    def _d1(
        spot: float,
        strike: float,
        time_to_expiry: float,
        rate: float,
        vol: float,
        dividend_yield: float = 0.0
    ) -> float:
        """Calculate d1 term in Black-Scholes formula."""
        return (math.log(spot / strike) + (rate - dividend_yield + 0.5 * vol ** 2) * time_to_expiry) / \
               (vol * math.sqrt(time_to_expiry))


def price_option(inputs: MarketInputs, is_call: bool) -> OptionPricing:
    """Price one option and compute its Greeks.

    Expired options (T <= 0) and zero/negative volatility have no defined
    time value: the result is intrinsic value with all Greeks zero.

    Args:
        inputs: Market state including the strike
        is_call: True for a call, False for a put

    Returns:
        OptionPricing with price floored at intrinsic value

    Raises:
        DataValidationError: If spot or strike is not positive

    Example:
        >>> pricing = price_option(MarketInputs(110, 100, 0.0), is_call=True)
        >>> pricing.price
        10.0
    """
    if inputs.spot <= 0 or inputs.strike <= 0:
        logger.error("Cannot price option with spot=%s strike=%s", inputs.spot, inputs.strike)
        raise DataValidationError(
            f"Spot and strike must be positive (spot={inputs.spot}, strike={inputs.strike})"
        )

    option_type = 'call' if is_call else 'put'
    intrinsic = intrinsic_value(inputs.spot, inputs.strike, option_type)

    if inputs.time_to_expiry <= 0 or inputs.volatility <= 0:
        if inputs.time_to_expiry > 0:
            logger.debug("Non-positive volatility %s, returning intrinsic value", inputs.volatility)
        return OptionPricing(price=intrinsic, intrinsic=intrinsic, time_value=0.0, greeks=Greeks())

    args = (inputs.spot, inputs.strike, inputs.time_to_expiry, inputs.rate, inputs.volatility,
            option_type, inputs.dividend_yield)
    price = BlackScholesGreeks.theoretical_price(*args)
    greeks = BlackScholesGreeks.calculate_all_greeks(*args)

    return OptionPricing(
        price=max(price, intrinsic),
        intrinsic=intrinsic,
        time_value=max(price - intrinsic, 0.0),
        greeks=greeks,
    )


def validate_greeks(greeks: Greeks, option_type: str, tolerance: float = 1e-9) -> Tuple[bool, str]:
    """Check that a Greeks bundle respects the model's sign and range rules.

    Args:
        greeks: Greeks to validate (single long contract)
        option_type: 'call' or 'put'
        tolerance: Slack for floating-point noise

    Returns:
        Tuple of (is_valid, error_message)

    Example:
        >>> is_valid, error = validate_greeks(pricing.greeks, 'call')
        >>> if not is_valid:
        >>>     logger.warning("Invalid Greeks: %s", error)
    """
    if option_type == 'call':
        if greeks.delta < -tolerance or greeks.delta > 1.0 + tolerance:
            return False, f"Call delta {greeks.delta:.4f} outside [0, 1]"
    elif option_type == 'put':
        if greeks.delta > tolerance or greeks.delta < -1.0 - tolerance:
            return False, f"Put delta {greeks.delta:.4f} outside [-1, 0]"
    else:
        return False, f"Invalid option_type: {option_type}"

    if greeks.gamma < -tolerance:
        return False, f"Gamma should be non-negative, got: {greeks.gamma:.4f}"

    if greeks.vega < -tolerance:
        return False, f"Vega should be non-negative, got: {greeks.vega:.4f}"

    return True, ""
