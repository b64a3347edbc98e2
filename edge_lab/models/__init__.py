"""Core data models for option pricing and trade simulation."""

from .option import Greeks, MarketInputs, OptionLeg, OptionPricing
from .simulation import DEFAULT_REGIMES, MarketRegime, SimulationConfig, SimulationResult
from .statistics import HistogramBin, PercentileData, RegimePerformance, SimulationStats

__all__ = [
    "MarketInputs",
    "Greeks",
    "OptionPricing",
    "OptionLeg",
    "MarketRegime",
    "DEFAULT_REGIMES",
    "SimulationConfig",
    "SimulationResult",
    "PercentileData",
    "HistogramBin",
    "RegimePerformance",
    "SimulationStats",
]
