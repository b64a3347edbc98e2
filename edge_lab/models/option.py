"""Option pricing data models."""

from dataclasses import dataclass
from typing import Literal

OptionType = Literal["call", "put"]
LegAction = Literal["buy", "sell"]


@dataclass(frozen=True)
class MarketInputs:
    """Market state for a single pricing call.

    Immutable so a pricing result can never drift from the inputs that
    produced it. Rates, yields and volatility are decimals (0.25 = 25%).
    """

    spot: float
    strike: float
    time_to_expiry: float  # years
    rate: float = 0.05
    dividend_yield: float = 0.0
    volatility: float = 0.25

    @classmethod
    def from_days(
        cls,
        spot: float,
        strike: float,
        days_to_expiry: float,
        rate: float = 0.05,
        dividend_yield: float = 0.0,
        volatility: float = 0.25,
    ) -> "MarketInputs":
        """Build inputs from calendar days to expiry (365-day year)."""
        return cls(
            spot=spot,
            strike=strike,
            time_to_expiry=days_to_expiry / 365.0,
            rate=rate,
            dividend_yield=dividend_yield,
            volatility=volatility,
        )

    @property
    def days_to_expiry(self) -> float:
        """Time to expiry in calendar days."""
        return self.time_to_expiry * 365.0

    def __repr__(self) -> str:
        return (f"MarketInputs(S={self.spot:.2f} K={self.strike:.2f} "
                f"T={self.time_to_expiry:.4f} r={self.rate:.2%} "
                f"q={self.dividend_yield:.2%} vol={self.volatility:.2%})")


@dataclass(frozen=True)
class Greeks:
    """Option sensitivities, always reported together.

    theta is per calendar day, vega per 1 vol point, rho per 1% rate.
    """

    delta: float = 0.0
    gamma: float = 0.0
    theta: float = 0.0
    vega: float = 0.0
    rho: float = 0.0

    def scaled(self, factor: float) -> "Greeks":
        """Return a new bundle with every Greek multiplied by factor."""
        return Greeks(
            delta=self.delta * factor,
            gamma=self.gamma * factor,
            theta=self.theta * factor,
            vega=self.vega * factor,
            rho=self.rho * factor,
        )

    def __add__(self, other: "Greeks") -> "Greeks":
        if not isinstance(other, Greeks):
            return NotImplemented
        return Greeks(
            delta=self.delta + other.delta,
            gamma=self.gamma + other.gamma,
            theta=self.theta + other.theta,
            vega=self.vega + other.vega,
            rho=self.rho + other.rho,
        )

    def to_dict(self) -> dict[str, float]:
        return {
            'delta': self.delta,
            'gamma': self.gamma,
            'theta': self.theta,
            'vega': self.vega,
            'rho': self.rho,
        }


@dataclass(frozen=True)
class OptionPricing:
    """Theoretical price of one option with its Greeks.

    Derived on demand from MarketInputs; never cached.
    """

    price: float
    intrinsic: float
    time_value: float
    greeks: Greeks

    def __repr__(self) -> str:
        return (f"OptionPricing(price={self.price:.4f} intrinsic={self.intrinsic:.4f} "
                f"time={self.time_value:.4f} Δ={self.greeks.delta:.3f})")


@dataclass(frozen=True)
class OptionLeg:
    """One position inside a multi-leg strategy.

    The premium is the price captured when the leg was created. It only
    changes when the strike or option type changes (see OptionStrategy).
    """

    option_type: OptionType
    action: LegAction
    strike: float
    premium: float
    quantity: int = 1

    def __post_init__(self) -> None:
        """Validate leg structure."""
        if self.option_type not in ("call", "put"):
            raise ValueError(f"Invalid option_type: {self.option_type}")
        if self.action not in ("buy", "sell"):
            raise ValueError(f"Invalid action: {self.action}")
        if self.strike <= 0:
            raise ValueError(f"Strike must be positive, got {self.strike}")
        if self.premium < 0:
            raise ValueError(f"Premium cannot be negative, got {self.premium}")
        if int(self.quantity) != self.quantity or self.quantity < 1:
            raise ValueError(f"Quantity must be an integer >= 1, got {self.quantity}")

    @property
    def is_call(self) -> bool:
        return self.option_type == "call"

    @property
    def sign(self) -> int:
        """+1 for long legs, -1 for short legs."""
        return 1 if self.action == "buy" else -1

    def expiration_payoff(self, spot: float) -> float:
        """Intrinsic value of one contract at expiration."""
        if self.is_call:
            return max(spot - self.strike, 0.0)
        return max(self.strike - spot, 0.0)

    def pnl_for_value(self, option_value: float) -> float:
        """P&L of the whole leg if the option is worth option_value."""
        return self.sign * (option_value - self.premium) * self.quantity

    def to_dict(self) -> dict:
        return {
            'type': self.option_type,
            'action': self.action,
            'strike': self.strike,
            'premium': self.premium,
            'quantity': self.quantity,
        }

    def __repr__(self) -> str:
        return (f"OptionLeg({self.action} {self.quantity}x {self.strike:.2f}"
                f"{self.option_type[0].upper()} @ {self.premium:.2f})")
