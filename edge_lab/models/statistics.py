"""Batch-level statistics data model."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

PERCENTILE_LEVELS: Dict[str, float] = {
    'p1': 0.01,
    'p5': 0.05,
    'p10': 0.10,
    'p25': 0.25,
    'p50': 0.50,
    'p75': 0.75,
    'p90': 0.90,
    'p95': 0.95,
    'p99': 0.99,
}


@dataclass(frozen=True)
class PercentileData:
    """One percentile level across the batch's key metrics."""
    total_return: float
    return_pct: float
    max_drawdown: float
    final_capital: float


@dataclass(frozen=True)
class HistogramBin:
    """Equal-width histogram bin.

    Attributes:
        lower: Left edge of the bin
        upper: Right edge of the bin
        midpoint: Bin centre
        count: Number of samples in the bin
        frequency: count as % of all samples
    """
    lower: float
    upper: float
    midpoint: float
    count: int
    frequency: float

    @property
    def label(self) -> str:
        return f"{self.lower:.0f}"


@dataclass(frozen=True)
class RegimePerformance:
    """Realised trade statistics for one market regime across a batch.

    Attributes:
        regime_id: MarketRegime.id
        regime_name: Display name
        total_trades: Trades taken while the regime was active (all paths)
        time_share_pct: total_trades as % of all regime-tagged trades
        win_rate: % of those trades with a positive P&L after costs
        avg_trade_pnl: Mean P&L per trade
        total_pnl: Sum of P&L over those trades
        max_drawdown: Deepest drawdown (%) reached on a trade in this regime
        profit_factor: Gross profit / gross loss (0 if no losses)
    """
    regime_id: str
    regime_name: str
    total_trades: int
    time_share_pct: float
    win_rate: float
    avg_trade_pnl: float
    total_pnl: float
    max_drawdown: float
    profit_factor: float


@dataclass(frozen=True)
class SimulationStats:
    """Reduction of a batch of SimulationResults.

    Recomputed whenever the result set changes; never mutated in place.
    Monetary values are in account currency, *_pct and probabilities in %.
    """
    num_results: int

    # Central tendency and spread of total return
    mean_return: float
    median_return: float
    std_dev_return: float
    best_case: float           # p95 total return
    worst_case: float          # p5 total return
    median_return_pct: float

    # Outcome probabilities (0-100)
    win_probability: float
    loss_probability: float
    breakeven_probability: float
    probability_of_ruin: float

    # Drawdown
    median_max_drawdown: float
    worst_max_drawdown: float  # p95 max drawdown

    # Risk-adjusted ratios
    sharpe_ratio: float
    sortino_ratio: float
    profit_factor: float
    avg_win_rate: float
    expected_value_per_trade: float

    # Tail risk (positive numbers = loss size)
    var_95: float
    var_99: float
    cvar_95: float
    cvar_99: float

    # Path-shape ratios
    ulcer_index: float
    pain_index: float
    calmar_ratio: float
    mar_ratio: float
    omega_ratio: float
    tail_ratio: float
    gain_to_pain_ratio: float

    # Sizing guidance (% of capital)
    optimal_f: float
    kelly_fraction: float
    half_kelly: float
    quarter_kelly: float

    # Time in drawdown (trades)
    avg_drawdown_duration: float
    max_drawdown_duration: int
    avg_recovery_time: float
    time_in_drawdown_pct: float

    # Projections (currency per period)
    projected_daily_return: float
    projected_weekly_return: float
    projected_monthly_return: float
    projected_yearly_return: float

    percentiles: Dict[str, PercentileData] = field(default_factory=dict)
    return_distribution: List[HistogramBin] = field(default_factory=list)
    drawdown_distribution: List[HistogramBin] = field(default_factory=list)
    # Filled only when the batch ran with market regimes
    regime_performance: List[RegimePerformance] = field(default_factory=list)

    def percentile(self, name: str) -> Optional[PercentileData]:
        """Look up a percentile level such as 'p50'."""
        return self.percentiles.get(name)

    def __repr__(self) -> str:
        return (f"SimulationStats(n={self.num_results} median=${self.median_return:,.2f} "
                f"win={self.win_probability:.1f}% ruin={self.probability_of_ruin:.1f}% "
                f"sharpe={self.sharpe_ratio:.2f})")
