"""Batch execution of many independent simulated paths.

Paths run in chunks; between chunks the runner reports progress and checks
a cancellation token, so a long batch can be watched and stopped cleanly.
"""

from typing import Callable, List, Optional
import logging
import threading

import numpy as np

from edge_lab.data.validators import validate_simulation_config
from edge_lab.models.simulation import SimulationConfig, SimulationResult
from edge_lab.simulation.simulator import simulate_path

logger = logging.getLogger("edge_lab.runner")

DEFAULT_CHUNK_SIZE = 500

ProgressCallback = Callable[[float], None]


class CancellationToken:
    """Cooperative cancellation flag shared between a runner and its caller."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def reset(self) -> None:
        self._event.clear()


def run_batch(
    config: SimulationConfig,
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    on_progress: Optional[ProgressCallback] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> List[SimulationResult]:
    """Run config.num_simulations independent paths.

    Args:
        config: Simulation parameters (validated before any path runs)
        rng: Random generator to draw from; built from seed when omitted
        seed: Seed for a fresh generator (ignored when rng is given)
        chunk_size: Paths per chunk between progress/cancellation checks
        on_progress: Called after each chunk with percent complete (0-100]
        cancel_token: Checked between chunks; when cancelled the batch stops

    Returns:
        Results in execution order. Shorter than num_simulations only if
        the batch was cancelled.

    Raises:
        ConfigurationError: If the config is invalid
        ValueError: If chunk_size is not positive
    """
    validate_simulation_config(config)
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    if rng is None:
        rng = np.random.default_rng(seed)

    total = config.num_simulations
    results: List[SimulationResult] = []

    logger.info(
        "Running %d simulations of %d trades (%s sizing)",
        total, config.num_trades, config.position_sizing
    )

    for chunk_start in range(0, total, chunk_size):
        if cancel_token is not None and cancel_token.cancelled:
            logger.warning("Batch cancelled after %d of %d simulations", len(results), total)
            return results

        chunk_end = min(chunk_start + chunk_size, total)
        for _ in range(chunk_start, chunk_end):
            results.append(simulate_path(config, rng))

        if on_progress is not None:
            on_progress(chunk_end / total * 100)

    ruined = sum(1 for r in results if r.is_ruined)
    logger.info("Batch complete: %d simulations, %d hit the ruin floor", len(results), ruined)

    return results
