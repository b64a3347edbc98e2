"""Position sizing strategies for simulated trade sequences.

Implements the Kelly Criterion and the other sizing policies a trade
sequence can be run under. All functions return the capital committed to
one trade (the amount lost on an average loser).
"""

import logging

from ..utils.error_handling import ConfigurationError

logger = logging.getLogger("edge_lab.position_sizing")

KELLY_CAP = 0.25
HALF_KELLY_CAP = 0.25
QUARTER_KELLY_CAP = 0.10
ANTI_MARTINGALE_STEP = 0.2
ANTI_MARTINGALE_MAX_MULTIPLIER = 2.0


class PositionSizer:
    """Calculate position sizes using various methods."""

    @staticmethod
    def optimal_f(win_rate: float, avg_win: float, avg_loss: float) -> float:
        """Calculate the Kelly fraction f = (p·b - q) / b.

        Args:
            win_rate: Win probability in percent (0-100)
            avg_win: Average profit on winning trades (positive)
            avg_loss: Average loss on losing trades (positive)

        Returns:
            Kelly fraction clamped to [0, 1]. Zero means no edge.

        Example:
            >>> # 60% win rate, wins 1.5x the size of losses
            >>> PositionSizer.optimal_f(60, 150, 100)
            0.3333...
        """
        if avg_loss <= 0 or avg_win <= 0:
            return 0.0

        p = win_rate / 100
        q = 1 - p
        b = avg_win / avg_loss

        kelly = (p * b - q) / b

        return max(0.0, min(kelly, 1.0))

    @staticmethod
    def fixed_percent(base_capital: float, risk_per_trade: float) -> float:
        """Risk a fixed percentage of the base capital.

        Args:
            base_capital: Current capital when compounding, else starting capital
            risk_per_trade: Percent of base capital (2.0 = 2%)

        Example:
            >>> PositionSizer.fixed_percent(10000, 2.0)
            200.0
        """
        return base_capital * (risk_per_trade / 100)

    @staticmethod
    def fixed_dollar(starting_capital: float, risk_per_trade: float) -> float:
        """Risk a constant dollar amount derived from the starting capital."""
        return starting_capital * (risk_per_trade / 100)

    @staticmethod
    def kelly(base_capital: float, kelly_fraction: float, divisor: float = 1.0,
              cap: float = KELLY_CAP) -> float:
        """Fractional Kelly position: base × min(f / divisor, cap).

        Args:
            base_capital: Capital the fraction applies to
            kelly_fraction: Full Kelly fraction from optimal_f
            divisor: 1 for full Kelly, 2 for half Kelly, 4 for quarter Kelly
            cap: Maximum fraction of capital committed
        """
        return base_capital * min(kelly_fraction / divisor, cap)

    @staticmethod
    def anti_martingale(base_capital: float, risk_per_trade: float, consecutive_wins: int) -> float:
        """Scale the fixed-percent size up by 20% per consecutive win, capped at 2x."""
        multiplier = min(1 + consecutive_wins * ANTI_MARTINGALE_STEP, ANTI_MARTINGALE_MAX_MULTIPLIER)
        return base_capital * (risk_per_trade / 100) * multiplier

    @staticmethod
    def position_size(
        method: str,
        capital: float,
        starting_capital: float,
        risk_per_trade: float,
        win_rate: float,
        avg_win: float,
        avg_loss: float,
        compounding: bool = True,
        consecutive_wins: int = 0
    ) -> float:
        """Size one trade under the named policy.

        Args:
            method: One of fixed_percent, fixed_dollar, kelly, half_kelly,
                quarter_kelly, anti_martingale
            capital: Current capital
            starting_capital: Capital at the start of the sequence
            risk_per_trade: Percent of base capital for percent-based policies
            win_rate: Win probability in percent, for Kelly policies
            avg_win: Average win, for Kelly policies
            avg_loss: Average loss, for Kelly policies
            compounding: Base sizes on current capital instead of starting capital
            consecutive_wins: Current winning streak, for anti-martingale

        Returns:
            Capital committed to the trade

        Raises:
            ConfigurationError: If method is unknown
        """
        base_capital = capital if compounding else starting_capital

        if method == 'fixed_percent':
            return PositionSizer.fixed_percent(base_capital, risk_per_trade)

        if method == 'fixed_dollar':
            return PositionSizer.fixed_dollar(starting_capital, risk_per_trade)

        if method == 'anti_martingale':
            return PositionSizer.anti_martingale(base_capital, risk_per_trade, consecutive_wins)

        if method in ('kelly', 'half_kelly', 'quarter_kelly'):
            f = PositionSizer.optimal_f(win_rate, avg_win, avg_loss)
            if method == 'kelly':
                return PositionSizer.kelly(base_capital, f, 1.0, KELLY_CAP)
            if method == 'half_kelly':
                return PositionSizer.kelly(base_capital, f, 2.0, HALF_KELLY_CAP)
            return PositionSizer.kelly(base_capital, f, 4.0, QUARTER_KELLY_CAP)

        logger.error("Invalid sizing method: %s", method)
        raise ConfigurationError([f"unknown position_sizing '{method}'"])
