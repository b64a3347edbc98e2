"""Multi-leg option strategy analysis.

Aggregates per-leg Black-Scholes results into portfolio Greeks, profit/loss
curves over a price grid, breakevens and summary risk metrics. Everything
here is a pure function of (legs, market inputs, scan range) except the
OptionStrategy container, which owns its legs.
"""

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..models.option import Greeks, MarketInputs, OptionLeg, OptionPricing
from ..utils.error_handling import DataValidationError
from .greeks import price_option

logger = logging.getLogger("edge_lab.strategy")


# name -> (description, legs as (type, action, strike offset as fraction of spot))
STRATEGY_TEMPLATES: Dict[str, Tuple[str, Tuple[Tuple[str, str, float], ...]]] = {
    'Long Call': (
        'Bullish strategy with unlimited profit potential',
        (('call', 'buy', 0.0),),
    ),
    'Long Put': (
        'Bearish strategy with high profit potential',
        (('put', 'buy', 0.0),),
    ),
    'Covered Call': (
        'Income generation on existing stock position (option leg only)',
        (('call', 'sell', 0.05),),
    ),
    'Bull Call Spread': (
        'Limited risk bullish strategy',
        (('call', 'buy', 0.0), ('call', 'sell', 0.10)),
    ),
    'Bear Put Spread': (
        'Limited risk bearish strategy',
        (('put', 'buy', 0.10), ('put', 'sell', 0.0)),
    ),
    'Long Straddle': (
        'Profit from high volatility in either direction',
        (('call', 'buy', 0.0), ('put', 'buy', 0.0)),
    ),
    'Iron Condor': (
        'Profit from low volatility and time decay',
        (('put', 'sell', -0.05), ('put', 'buy', -0.10),
         ('call', 'sell', 0.05), ('call', 'buy', 0.10)),
    ),
}


@dataclass(frozen=True)
class PnLPoint:
    """Strategy P&L at one underlying price."""
    price: float
    pnl_at_expiration: float
    current_pnl: float


@dataclass(frozen=True)
class RiskMetrics:
    """Summary risk numbers for a strategy.

    Attributes:
        max_profit: Best sampled P&L, or math.inf if upside is unbounded
        max_loss: Worst sampled P&L (negative for a loss)
        breakevens: Zero crossings of the expiration curve, ascending
        probability_of_profit: % of grid samples with positive P&L. Treats
            the grid as uniformly likely, not a risk-neutral distribution.
        risk_reward_ratio: |max_profit / max_loss|
        net_delta: Aggregate position delta
        profit_unbounded: Payoff keeps rising as the underlying rises
        loss_unbounded: Payoff keeps falling as the underlying rises
    """
    max_profit: float
    max_loss: float
    breakevens: Tuple[float, ...]
    probability_of_profit: float
    risk_reward_ratio: float
    net_delta: float = 0.0
    profit_unbounded: bool = False
    loss_unbounded: bool = False


@dataclass(frozen=True)
class StrategyAnalysis:
    """Complete analysis of a strategy under one market state."""
    name: str
    market: MarketInputs
    legs: Tuple[OptionLeg, ...]
    greeks: Greeks
    pnl_curve: Tuple[PnLPoint, ...]
    risk_metrics: RiskMetrics

    def to_dict(self) -> dict:
        """JSON-ready form. Unbounded values are reported as None."""
        metrics = self.risk_metrics
        return {
            'market': {
                'underlying_price': self.market.spot,
                'risk_free_rate': self.market.rate,
                'dividend_yield': self.market.dividend_yield,
                'implied_volatility': self.market.volatility,
                'days_to_expiration': self.market.days_to_expiry,
            },
            'strategy': {
                'name': self.name,
                'legs': [leg.to_dict() for leg in self.legs],
            },
            'greeks': self.greeks.to_dict(),
            'risk_metrics': {
                'max_profit': None if math.isinf(metrics.max_profit) else metrics.max_profit,
                'max_loss': metrics.max_loss,
                'profit_unbounded': metrics.profit_unbounded,
                'loss_unbounded': metrics.loss_unbounded,
                'breakevens': list(metrics.breakevens),
                'probability_of_profit': metrics.probability_of_profit,
                'risk_reward_ratio': (None if math.isinf(metrics.risk_reward_ratio)
                                      else metrics.risk_reward_ratio),
                'net_delta': metrics.net_delta,
            },
            'pnl_curve': [
                {
                    'price': round(point.price, 2),
                    'pnl_at_expiration': round(point.pnl_at_expiration, 2),
                    'current_pnl': round(point.current_pnl, 2),
                }
                for point in self.pnl_curve
            ],
        }


def leg_pricing(leg: OptionLeg, market: MarketInputs, spot: Optional[float] = None) -> OptionPricing:
    """Price one leg under the market state, optionally at another spot."""
    inputs = replace(market, strike=leg.strike, spot=market.spot if spot is None else spot)
    return price_option(inputs, leg.is_call)


def create_leg(
    option_type: str,
    action: str,
    strike: float,
    market: MarketInputs,
    quantity: int = 1
) -> OptionLeg:
    """Create a leg with its premium captured from the current model price.

    The premium is rounded to cents, like a quoted fill.
    """
    pricing = price_option(replace(market, strike=strike), option_type == 'call')
    return OptionLeg(
        option_type=option_type,
        action=action,
        strike=strike,
        premium=round(pricing.price, 2),
        quantity=quantity,
    )


class OptionStrategy:
    """A named, editable collection of legs under one market state.

    The strategy owns its legs: removing a leg discards it. Premiums are
    captured when a leg is added and re-captured only when its strike or
    option type changes.
    """

    def __init__(self, market: MarketInputs, name: str = "Custom Strategy",
                 legs: Optional[Sequence[OptionLeg]] = None):
        self.market = market
        self.name = name
        self._legs: List[OptionLeg] = list(legs or [])

    @property
    def legs(self) -> Tuple[OptionLeg, ...]:
        return tuple(self._legs)

    def add_leg(self, option_type: str, action: str, strike: Optional[float] = None,
                quantity: int = 1) -> OptionLeg:
        """Add a leg priced at the current market. Strike defaults to spot."""
        leg = create_leg(option_type, action, self.market.spot if strike is None else strike,
                         self.market, quantity)
        self._legs.append(leg)
        logger.debug("Added %r to %s", leg, self.name)
        return leg

    def update_leg(self, index: int, **changes) -> OptionLeg:
        """Replace fields of the leg at index.

        Changing strike or option_type re-prices the premium; other fields
        (action, quantity, an explicit premium) are applied as given.

        Raises:
            ValueError: If premium is given together with strike or option_type
        """
        repriced = 'strike' in changes or 'option_type' in changes
        if repriced and 'premium' in changes:
            raise ValueError("premium cannot be set while changing strike or option_type; "
                             "the leg is re-priced from the market")
        leg = replace(self._legs[index], **changes)
        if repriced:
            leg = create_leg(leg.option_type, leg.action, leg.strike, self.market, leg.quantity)
        self._legs[index] = leg
        return leg

    def remove_leg(self, index: int) -> OptionLeg:
        return self._legs.pop(index)

    def clear(self) -> None:
        self._legs.clear()

    def analyze(self, min_price: float, max_price: float, steps: int = 100) -> StrategyAnalysis:
        return analyze_strategy(self._legs, self.market, min_price, max_price, steps, name=self.name)

    def __len__(self) -> int:
        return len(self._legs)

    def __repr__(self) -> str:
        return f"OptionStrategy({self.name!r}, legs={self._legs!r})"


def build_strategy(name: str, market: MarketInputs, quantity: int = 1) -> OptionStrategy:
    """Instantiate a template from STRATEGY_TEMPLATES around the current spot.

    Raises:
        KeyError: If the template name is unknown
    """
    if name not in STRATEGY_TEMPLATES:
        raise KeyError(f"Unknown strategy template: {name}")

    _, template_legs = STRATEGY_TEMPLATES[name]
    strategy = OptionStrategy(market, name=name)
    for option_type, action, offset in template_legs:
        strike = round(market.spot * (1.0 + offset), 2)
        strategy.add_leg(option_type, action, strike, quantity)

    return strategy


def aggregate_greeks(legs: Sequence[OptionLeg], market: MarketInputs) -> Greeks:
    """Sum of leg Greeks x quantity x sign (+1 buy, -1 sell)."""
    total = Greeks()
    for leg in legs:
        total = total + leg_pricing(leg, market).greeks.scaled(leg.quantity * leg.sign)
    return total


def price_grid(min_price: float, max_price: float, steps: int = 100) -> List[float]:
    """Evenly spaced underlying prices from min_price to max_price inclusive."""
    if steps < 1:
        raise DataValidationError(f"Price grid needs at least 1 step, got {steps}")
    if min_price <= 0 or max_price <= min_price:
        raise DataValidationError(
            f"Invalid price range [{min_price}, {max_price}]: need 0 < min < max"
        )
    return np.linspace(min_price, max_price, steps + 1).tolist()


def calculate_pnl_curve(
    legs: Sequence[OptionLeg],
    market: MarketInputs,
    min_price: float,
    max_price: float,
    steps: int = 100
) -> List[PnLPoint]:
    """Expiration and current P&L at each grid price.

    Current P&L values each leg at its model price with the remaining time;
    once expired it equals the expiration P&L.
    """
    curve = []
    for price in price_grid(min_price, max_price, steps):
        expiration_pnl = 0.0
        current_pnl = 0.0
        for leg in legs:
            payoff = leg.expiration_payoff(price)
            expiration_pnl += leg.pnl_for_value(payoff)
            if market.time_to_expiry > 0:
                current_pnl += leg.pnl_for_value(leg_pricing(leg, market, spot=price).price)
            else:
                current_pnl += leg.pnl_for_value(payoff)
        curve.append(PnLPoint(price=price, pnl_at_expiration=expiration_pnl, current_pnl=current_pnl))

    return curve


def find_breakevens(curve: Sequence[PnLPoint]) -> List[float]:
    """Interpolated zero crossings of the expiration P&L, ascending."""
    breakevens = []
    for prev, curr in zip(curve, curve[1:]):
        pnl0, pnl1 = prev.pnl_at_expiration, curr.pnl_at_expiration
        crosses_up = pnl0 <= 0 < pnl1
        crosses_down = pnl0 >= 0 > pnl1
        if not (crosses_up or crosses_down):
            continue
        ratio = abs(pnl0) / (abs(pnl0) + abs(pnl1))
        breakevens.append(prev.price + ratio * (curr.price - prev.price))

    return sorted(breakevens)


def payoff_slopes(legs: Sequence[OptionLeg]) -> Tuple[float, float]:
    """Slopes of the expiration payoff beyond all strikes.

    The payoff is piecewise linear in the underlying. Below the lowest
    strike only puts are in the money, above the highest only calls.

    Returns:
        (slope as price -> 0, slope as price -> infinity)
    """
    lower = -sum(leg.sign * leg.quantity for leg in legs if not leg.is_call)
    upper = sum(leg.sign * leg.quantity for leg in legs if leg.is_call)
    return float(lower), float(upper)


def calculate_risk_metrics(
    legs: Sequence[OptionLeg],
    curve: Sequence[PnLPoint],
    greeks: Optional[Greeks] = None
) -> RiskMetrics:
    """Max profit/loss, breakevens, probability of profit and risk/reward.

    Unboundedness comes from the payoff's upper boundary slope, not from
    the finite grid, so capped strategies are never reported as unbounded.
    """
    if not curve:
        return RiskMetrics(max_profit=0.0, max_loss=0.0, breakevens=(),
                           probability_of_profit=0.0, risk_reward_ratio=0.0)

    pnls = [point.pnl_at_expiration for point in curve]
    _, upper_slope = payoff_slopes(legs)
    profit_unbounded = upper_slope > 0
    loss_unbounded = upper_slope < 0

    max_profit = math.inf if profit_unbounded else max(pnls)
    max_loss = min(pnls)

    profitable = sum(1 for pnl in pnls if pnl > 0)
    probability_of_profit = profitable / len(pnls) * 100

    if max_loss == 0:
        risk_reward = 0.0
    elif profit_unbounded:
        risk_reward = math.inf
    else:
        risk_reward = abs(max_profit / max_loss)

    return RiskMetrics(
        max_profit=max_profit,
        max_loss=max_loss,
        breakevens=tuple(find_breakevens(curve)),
        probability_of_profit=probability_of_profit,
        risk_reward_ratio=risk_reward,
        net_delta=greeks.delta if greeks is not None else 0.0,
        profit_unbounded=profit_unbounded,
        loss_unbounded=loss_unbounded,
    )


def analyze_strategy(
    legs: Sequence[OptionLeg],
    market: MarketInputs,
    min_price: float,
    max_price: float,
    steps: int = 100,
    name: str = "Custom Strategy"
) -> StrategyAnalysis:
    """Run the full strategy analysis over [min_price, max_price].

    Example:
        >>> leg = OptionLeg('call', 'buy', strike=100, premium=5)
        >>> analysis = analyze_strategy([leg], market, 80, 120)
        >>> analysis.risk_metrics.breakevens
        (105.0,)
    """
    greeks = aggregate_greeks(legs, market)
    curve = calculate_pnl_curve(legs, market, min_price, max_price, steps)
    metrics = calculate_risk_metrics(legs, curve, greeks)

    logger.info(
        "%s: %d legs, max profit %s, max loss %.2f, %d breakevens",
        name, len(legs),
        "unbounded" if metrics.profit_unbounded else f"{metrics.max_profit:.2f}",
        metrics.max_loss, len(metrics.breakevens)
    )

    return StrategyAnalysis(
        name=name,
        market=market,
        legs=tuple(legs),
        greeks=greeks,
        pnl_curve=tuple(curve),
        risk_metrics=metrics,
    )


@dataclass(frozen=True)
class ExpirationSimulation:
    """Terminal-price Monte Carlo outcome for a strategy."""
    terminal_prices: np.ndarray = field(repr=False)
    pnls: np.ndarray = field(repr=False)

    @property
    def probability_of_profit(self) -> float:
        if self.pnls.size == 0:
            return 0.0
        return float(np.mean(self.pnls > 0) * 100)

    @property
    def expected_pnl(self) -> float:
        if self.pnls.size == 0:
            return 0.0
        return float(np.mean(self.pnls))


def simulate_expiration_pnl(
    legs: Sequence[OptionLeg],
    market: MarketInputs,
    num_simulations: int,
    rng: np.random.Generator
) -> ExpirationSimulation:
    """Simulate expiration P&L under geometric Brownian motion.

    Terminal price S_T = S·exp((r - q - σ²/2)T + σ√T·Z), then each leg is
    settled at intrinsic value against its captured premium.

    Args:
        legs: Strategy legs
        market: Market state (spot, T, r, q, σ)
        num_simulations: Number of terminal prices to draw
        rng: Random source, injected for reproducibility
    """
    if num_simulations <= 0:
        raise DataValidationError(f"num_simulations must be positive, got {num_simulations}")

    t = max(market.time_to_expiry, 0.0)
    vol = max(market.volatility, 0.0)
    drift = (market.rate - market.dividend_yield - 0.5 * vol * vol) * t
    shocks = rng.standard_normal(num_simulations)
    terminal = market.spot * np.exp(drift + vol * math.sqrt(t) * shocks)

    pnls = np.zeros(num_simulations)
    for leg in legs:
        if leg.is_call:
            payoff = np.maximum(terminal - leg.strike, 0.0)
        else:
            payoff = np.maximum(leg.strike - terminal, 0.0)
        pnls += leg.sign * (payoff - leg.premium) * leg.quantity

    return ExpirationSimulation(terminal_prices=terminal, pnls=pnls)
