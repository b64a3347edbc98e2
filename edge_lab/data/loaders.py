"""Loaders for simulation configs (YAML) and realised trade histories (CSV)."""

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..models.simulation import SimulationConfig
from ..utils.error_handling import DataValidationError, InsufficientDataError

logger = logging.getLogger("edge_lab.loaders")

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "default_simulation.yaml"

# Header names recognised as the realised P&L column, matched case-insensitively
PROFIT_COLUMN_ALIASES = ('profit', 'pnl', 'p&l', 'net_profit', 'realized_pnl', 'profit/loss')


def load_simulation_config(
    yaml_path: str | Path | None = None,
    overrides: Optional[Dict[str, Any]] = None
) -> SimulationConfig:
    """Load a SimulationConfig from YAML.

    Keys are SimulationConfig field names; unknown keys are ignored. An
    empty file yields the defaults.

    Args:
        yaml_path: YAML file to read (the packaged default when omitted)
        overrides: Values applied on top of the file, e.g. from CLI flags

    Returns:
        SimulationConfig (not yet validated)

    Raises:
        FileNotFoundError: If the file doesn't exist
        DataValidationError: If the file isn't a YAML mapping or regimes are malformed

    Example:
        >>> config = load_simulation_config('my_edge.yaml', {'num_simulations': 1000})
    """
    yaml_path = Path(yaml_path) if yaml_path is not None else DEFAULT_CONFIG_PATH
    if not yaml_path.exists():
        logger.error("Config file not found: %s", yaml_path)
        raise FileNotFoundError(f"Config file not found: {yaml_path}")

    logger.info("Loading simulation config from: %s", yaml_path)

    with open(yaml_path) as f:
        try:
            params = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error("Invalid YAML in %s: %s", yaml_path, e)
            raise DataValidationError(f"Invalid YAML in {yaml_path}: {e}") from e

    if params is None:
        params = {}
    if not isinstance(params, dict):
        raise DataValidationError(f"Config file {yaml_path} must contain a mapping of settings")

    if overrides:
        params = {**params, **{k: v for k, v in overrides.items() if v is not None}}

    unknown = set(params) - set(SimulationConfig().to_dict())
    if unknown:
        logger.warning("Ignoring unknown config keys: %s", ", ".join(sorted(unknown)))

    try:
        return SimulationConfig.from_dict(params)
    except TypeError as e:
        # Malformed regime entries (unknown keys, not a list of mappings)
        logger.error("Invalid regimes in %s: %s", yaml_path, e)
        raise DataValidationError(f"Invalid regimes in {yaml_path}: {e}") from e


def save_simulation_config(config: SimulationConfig, yaml_path: str | Path) -> str:
    """Write a SimulationConfig as YAML that load_simulation_config() reads back."""
    yaml_path = Path(yaml_path)
    with open(yaml_path, 'w') as f:
        yaml.safe_dump(config.to_dict(), f, sort_keys=False)
    logger.info("Saved simulation config to %s", yaml_path)
    return str(yaml_path)


@dataclass(frozen=True)
class TradeHistorySummary:
    """Summary of a realised trade history.

    Attributes:
        total_trades: Rows with a parsable P&L value
        winning_trades: Trades with P&L > 0
        losing_trades: Trades with P&L < 0
        win_rate: winning_trades / total_trades (0-100)
        avg_win: Mean winning P&L
        avg_loss: Mean absolute losing P&L
        max_consecutive_wins: Longest run of winners
        max_consecutive_losses: Longest run of losers
        profit_factor: Gross profit / gross loss (0 if no losses)
        total_pnl: Net realised P&L
        profit_column: Header the P&L values were read from
    """
    total_trades: int
    winning_trades: int
    losing_trades: int
    win_rate: float
    avg_win: float
    avg_loss: float
    max_consecutive_wins: int
    max_consecutive_losses: int
    profit_factor: float
    total_pnl: float
    profit_column: str

    def apply_to_config(self, config: SimulationConfig) -> SimulationConfig:
        """Copy of config with win rate and average win/loss from this history.

        Averages that the history can't supply (no winners or no losers)
        keep the config's values.
        """
        changes: Dict[str, Any] = {'win_rate': self.win_rate}
        if self.avg_win > 0:
            changes['avg_win'] = self.avg_win
        if self.avg_loss > 0:
            changes['avg_loss'] = self.avg_loss
        else:
            logger.warning("Trade history has no losing trades; keeping avg_loss=%s", config.avg_loss)
        return config.with_overrides(**changes)


def detect_profit_column(fieldnames: List[str]) -> Optional[str]:
    """Find the P&L column: exact alias match first, then substring match."""
    for name in fieldnames:
        if name.strip().lower() in PROFIT_COLUMN_ALIASES:
            return name
    for name in fieldnames:
        lowered = name.strip().lower()
        if any(alias in lowered for alias in PROFIT_COLUMN_ALIASES):
            return name
    return None


def _parse_profit(value: str) -> float:
    """Parse a P&L cell such as '1,250.50', '$-80' or '(80.00)'."""
    text = value.strip().replace('$', '').replace(',', '')
    if text.startswith('(') and text.endswith(')'):
        text = '-' + text[1:-1]
    return float(text)


def summarize_trades(profits: List[float], profit_column: str = 'profit') -> TradeHistorySummary:
    """Compute win rate, averages, streaks and profit factor from a P&L list.

    Raises:
        InsufficientDataError: If profits is empty
    """
    if not profits:
        raise InsufficientDataError("Trade history contains no trades")

    wins = [p for p in profits if p > 0]
    losses = [p for p in profits if p < 0]
    total_wins = sum(wins)
    total_losses = abs(sum(losses))

    max_wins = max_losses = 0
    win_streak = loss_streak = 0
    for p in profits:
        if p > 0:
            win_streak += 1
            loss_streak = 0
            max_wins = max(max_wins, win_streak)
        elif p < 0:
            loss_streak += 1
            win_streak = 0
            max_losses = max(max_losses, loss_streak)

    return TradeHistorySummary(
        total_trades=len(profits),
        winning_trades=len(wins),
        losing_trades=len(losses),
        win_rate=len(wins) / len(profits) * 100,
        avg_win=total_wins / len(wins) if wins else 0.0,
        avg_loss=total_losses / len(losses) if losses else 0.0,
        max_consecutive_wins=max_wins,
        max_consecutive_losses=max_losses,
        profit_factor=(total_wins / total_losses) if total_losses > 0 else 0.0,
        total_pnl=total_wins - total_losses,
        profit_column=profit_column,
    )


def load_trade_history_csv(csv_path: str | Path, profit_column: Optional[str] = None) -> TradeHistorySummary:
    """Load realised trades from a broker/journal CSV and summarise them.

    The P&L column is auto-detected from common header names (Profit, pnl,
    P&L, net_profit, realized_pnl, profit/loss) unless given explicitly.
    Rows with an unparsable P&L are skipped with a warning.

    Args:
        csv_path: Path to CSV file
        profit_column: Header of the P&L column (auto-detect when None)

    Returns:
        TradeHistorySummary

    Raises:
        FileNotFoundError: If CSV file doesn't exist
        DataValidationError: If no P&L column can be found
        InsufficientDataError: If no row has a usable P&L value
    """
    csv_path = Path(csv_path)
    if not csv_path.exists():
        logger.error("CSV file not found: %s", csv_path)
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    logger.info("Loading trade history from CSV: %s", csv_path)

    profits: List[float] = []
    with open(csv_path, 'r', newline='') as f:
        reader = csv.DictReader(f)
        fieldnames = reader.fieldnames or []

        column = profit_column or detect_profit_column(fieldnames)
        if column is None or column not in fieldnames:
            logger.error("No profit column found in %s (headers: %s)", csv_path.name, fieldnames)
            raise DataValidationError(f"No profit column found in {csv_path}")

        skipped_rows = 0
        for row_num, row in enumerate(reader, start=2):  # Start at 2 (header is row 1)
            raw = (row.get(column) or '').strip()
            if not raw:
                skipped_rows += 1
                continue
            try:
                profits.append(_parse_profit(raw))
            except ValueError:
                logger.warning("Skipping row %d in %s: bad P&L value %r", row_num, csv_path.name, raw)
                skipped_rows += 1

        if skipped_rows > 0:
            logger.warning("Skipped %d rows without a usable P&L in %s", skipped_rows, csv_path.name)

    if not profits:
        logger.error("No usable trades found in %s", csv_path)
        raise InsufficientDataError(f"No usable trades found in {csv_path}")

    summary = summarize_trades(profits, column)
    logger.info(
        "Loaded %d trades from %s: win rate %.1f%%, profit factor %.2f",
        summary.total_trades, csv_path.name, summary.win_rate, summary.profit_factor
    )
    return summary
