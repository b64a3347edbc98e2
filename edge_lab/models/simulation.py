"""Trade-sequence simulation data models."""

from dataclasses import dataclass, field, fields, replace, asdict
from typing import Any, Dict, Optional, Tuple

POSITION_SIZING_METHODS = (
    'fixed_percent',
    'fixed_dollar',
    'kelly',
    'half_kelly',
    'quarter_kelly',
    'anti_martingale',
)

SEQUENCE_RISK_MODES = ('normal', 'bad_start', 'retirement')

EXIT_COMPLETED = 'completed'
EXIT_DRAWDOWN_STOP = 'drawdown_stop'
EXIT_RUIN = 'ruin'


@dataclass(frozen=True)
class MarketRegime:
    """A market state that shifts the trade distribution while active.

    Attributes:
        id: Short identifier stored in regime histories
        name: Display name
        probability: Chance (0-100) of picking this regime at a switch
        win_rate_modifier: Percentage points added to the base win rate
        avg_win_multiplier: Multiplier on the average win
        avg_loss_multiplier: Multiplier on the average loss
        volatility_multiplier: Multiplier on the outcome variance
    """
    id: str
    name: str
    probability: float
    win_rate_modifier: float = 0.0
    avg_win_multiplier: float = 1.0
    avg_loss_multiplier: float = 1.0
    volatility_multiplier: float = 1.0


DEFAULT_REGIMES: Tuple[MarketRegime, ...] = (
    MarketRegime('trending', 'Trending', 30, 10, 1.3, 0.8, 0.8),
    MarketRegime('ranging', 'Ranging', 40, 0, 0.9, 1.0, 1.0),
    MarketRegime('volatile', 'Volatile', 20, -5, 1.5, 1.3, 1.5),
    MarketRegime('quiet', 'Quiet', 10, 5, 0.7, 0.7, 0.5),
)


@dataclass(frozen=True)
class SimulationConfig:
    """Parameters for a Monte Carlo batch of trade sequences.

    Percent-style fields (win_rate, risk_per_trade, slippage_percent,
    max_drawdown_stop) use 0-100 units, matching how traders quote them.
    Validate with data.validators.validate_simulation_config before use.
    """
    starting_capital: float = 10000.0
    win_rate: float = 60.0
    avg_win: float = 150.0
    avg_loss: float = 100.0
    risk_per_trade: float = 2.0
    num_trades: int = 100
    num_simulations: int = 10000
    position_sizing: str = 'fixed_percent'
    include_slippage: bool = False
    slippage_percent: float = 0.5
    include_commission: bool = False
    commission_per_trade: float = 7.0
    enable_compounding: bool = True
    max_drawdown_stop: Optional[float] = None

    # Market regimes
    enable_regimes: bool = False
    regimes: Tuple[MarketRegime, ...] = DEFAULT_REGIMES
    regime_switch_frequency: int = 25

    # Sequence risk
    sequence_risk_mode: str = 'normal'
    bad_start_losses: int = 5
    retirement_withdrawal: float = 500.0

    # Time projection
    trading_days_per_year: int = 252
    avg_trades_per_day: float = 2.0

    @property
    def payoff_ratio(self) -> float:
        """Average win divided by average loss (the Kelly 'b')."""
        return self.avg_win / self.avg_loss

    @property
    def ruin_floor(self) -> float:
        """Capital level below which a single path is terminated."""
        return self.starting_capital * 0.1

    def with_overrides(self, **changes: Any) -> "SimulationConfig":
        """Copy of this config with some fields replaced."""
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "SimulationConfig":
        """Create SimulationConfig from a dictionary (e.g., from YAML).

        Unknown keys are ignored. Regimes may be given as a list of mappings.

        Args:
            config: Dictionary with simulation parameters

        Returns:
            SimulationConfig instance
        """
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in config.items() if key in known}

        if 'regimes' in values:
            values['regimes'] = tuple(
                regime if isinstance(regime, MarketRegime) else MarketRegime(**regime)
                for regime in values['regimes']
            )

        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        """Plain-dict form suitable for yaml.safe_dump."""
        data = asdict(self)
        data['regimes'] = [asdict(regime) for regime in self.regimes]
        return data


@dataclass(frozen=True)
class SimulationResult:
    """Outcome of one simulated trade sequence.

    Attributes:
        final_capital: Capital after the last executed trade
        total_return: final_capital - starting_capital
        return_pct: total_return as % of starting capital
        max_drawdown: Largest peak-to-trough decline seen (%)
        equity_curve: Capital before the first trade and after each trade
        drawdown_curve: Drawdown (%) aligned with equity_curve
        num_wins: Trades drawn as winners
        num_losses: Trades drawn as losers
        max_consecutive_wins: Longest winning streak
        max_consecutive_losses: Longest losing streak
        largest_win: Largest single-trade gain (>= 0)
        largest_loss: Largest single-trade loss (<= 0)
        profit_factor: total_win_amount / total_loss_amount (0 if no losses)
        total_win_amount: Sum of winning trade P&L
        total_loss_amount: Sum of absolute losing trade P&L
        trades_executed: Number of trades actually taken
        exit_reason: 'completed', 'drawdown_stop' or 'ruin'
        drawdown_durations: Length (trades) of each drawdown episode
        recovery_times: Length of each drawdown episode that recovered
        regime_history: Regime id per trade (empty when regimes are off)
        trade_pnls: P&L of each executed trade after costs, excluding withdrawals
    """
    final_capital: float
    total_return: float
    return_pct: float
    max_drawdown: float
    equity_curve: Tuple[float, ...]
    drawdown_curve: Tuple[float, ...]
    num_wins: int
    num_losses: int
    max_consecutive_wins: int
    max_consecutive_losses: int
    largest_win: float
    largest_loss: float
    profit_factor: float
    total_win_amount: float
    total_loss_amount: float
    trades_executed: int
    exit_reason: str = EXIT_COMPLETED
    drawdown_durations: Tuple[int, ...] = ()
    recovery_times: Tuple[int, ...] = ()
    regime_history: Tuple[str, ...] = field(default=(), repr=False)
    trade_pnls: Tuple[float, ...] = field(default=(), repr=False)

    @property
    def is_ruined(self) -> bool:
        return self.exit_reason == EXIT_RUIN

    @property
    def stopped_early(self) -> bool:
        return self.exit_reason != EXIT_COMPLETED

    @property
    def win_rate(self) -> float:
        """Realised win rate of this path (0-100)."""
        if self.trades_executed == 0:
            return 0.0
        return self.num_wins / self.trades_executed * 100

    def __repr__(self) -> str:
        return (f"SimulationResult(final=${self.final_capital:,.2f} "
                f"ret={self.return_pct:+.1f}% maxDD={self.max_drawdown:.1f}% "
                f"W/L={self.num_wins}/{self.num_losses} exit={self.exit_reason})")
