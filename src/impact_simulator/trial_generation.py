"""
Monte Carlo trial generation for intervention impact.

Each trial draws the fraction of the population reached, the fraction of
those who take up the intervention, the baseline adverse-event rate and the
intervention effect size, then simulates adverse-event counts with and
without the intervention. Trials are independent, so they are generated in
vectorised blocks. Every block gets its own child seed from a single root
``SeedSequence``, which keeps the output identical for any number of workers.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Tuple, Union

import numpy as np
import pandas as pd

from .beta_parameters import derive_distribution_parameters
from .exceptions import DistributionDomainError
from .models import DistributionParameters, SimulationConfig, TRIAL_COLUMNS
from .utils.logging import log_call
from .utils.validation import validate_simulation_config

logger = logging.getLogger(__name__)

DEFAULT_BLOCK_SIZE = 10_000

RandomState = Union[None, int, np.random.SeedSequence, np.random.Generator]


@log_call
def as_seed_sequence(random_state: RandomState) -> np.random.SeedSequence:
    """
    Normalise a seed, seed sequence or generator into a root SeedSequence.

    A ``Generator`` is advanced by the draw of the root entropy, so repeated
    calls with the same generator give different but reproducible streams.
    """
    if isinstance(random_state, np.random.SeedSequence):
        return random_state
    if isinstance(random_state, np.random.Generator):
        entropy = random_state.integers(0, 2**63 - 1, size=4, dtype=np.int64)
        return np.random.SeedSequence([int(e) for e in entropy])
    if random_state is None or isinstance(random_state, (int, np.integer)):
        return np.random.SeedSequence(random_state)
    raise TypeError(
        "random_state must be None, an int, a SeedSequence or a Generator, "
        f"got {type(random_state).__name__}"
    )


def _draw_beta(
    rng: np.random.Generator,
    shape: Tuple[float, float],
    size: int,
    name: str
) -> np.ndarray:
    shape_a, shape_b = shape
    if not (np.isfinite(shape_a) and np.isfinite(shape_b)):
        raise DistributionDomainError(
            f"{name}: Beta shapes must be finite, got ({shape_a}, {shape_b})"
        )
    if shape_a <= 0 or shape_b < 0:
        raise DistributionDomainError(
            f"{name}: Beta shapes out of domain ({shape_a}, {shape_b})"
        )
    # Target probability of exactly 1: point mass, Beta(a, 0) is undefined
    if shape_b == 0:
        return np.ones(size)
    return rng.beta(shape_a, shape_b, size)


def _draw_binomial(
    rng: np.random.Generator,
    n: np.ndarray,
    p: np.ndarray,
    name: str
) -> np.ndarray:
    if not np.issubdtype(n.dtype, np.integer):
        raise DistributionDomainError(
            f"{name}: binomial trial counts must be integers, got {n.dtype}"
        )
    if np.any(n < 0):
        raise DistributionDomainError(
            f"{name}: binomial trial counts must be non-negative"
        )
    if not np.all((p >= 0) & (p <= 1)):
        raise DistributionDomainError(
            f"{name}: binomial probabilities must lie in [0, 1]"
        )
    return rng.binomial(n, p)


def _generate_block(
    population_size: int,
    params: DistributionParameters,
    seed: np.random.SeedSequence,
    size: int
) -> Dict[str, np.ndarray]:
    """Draw ``size`` independent trials from one child seed."""
    rng = np.random.default_rng(seed)

    p_reached = _draw_beta(rng, params.reached, size, "p_reached")
    n_reached = np.clip(
        np.rint(population_size * p_reached), 0, population_size
    ).astype(np.int64)

    p_uptake = _draw_beta(rng, params.uptake, size, "p_uptake")
    n_uptake = _draw_binomial(rng, n_reached, p_uptake, "n_uptake")

    p_adverse_event = _draw_beta(
        rng, params.adverse_event, size, "p_adverse_event"
    )

    n_no_intervention = population_size - n_uptake
    adverse_events_no_intervention = _draw_binomial(
        rng, n_no_intervention, p_adverse_event,
        "adverse_events_no_intervention"
    )

    low, high = params.effect_size_bounds
    if not (np.isfinite(low) and np.isfinite(high)) or low > high:
        raise DistributionDomainError(
            f"effect_size: invalid uniform bounds ({low}, {high})"
        )
    effect_size = rng.uniform(low, high, size)

    adjusted_rate = np.clip(p_adverse_event * (1 - effect_size), 0, 1)
    adverse_events_with_intervention = _draw_binomial(
        rng, n_uptake, adjusted_rate, "adverse_events_with_intervention"
    )

    total_adverse_events = (
        adverse_events_no_intervention + adverse_events_with_intervention
    )
    # Expected events in the uptake group at the drawn baseline rate,
    # minus the simulated events under the intervention
    cases_prevented = (
        n_uptake * p_adverse_event - adverse_events_with_intervention
    )

    return {
        "p_reached": p_reached,
        "n_reached": n_reached,
        "p_uptake": p_uptake,
        "n_uptake": n_uptake,
        "p_adverse_event": p_adverse_event,
        "n_no_intervention": n_no_intervention,
        "adverse_events_no_intervention": adverse_events_no_intervention,
        "effect_size": effect_size,
        "adjusted_adverse_event_rate": adjusted_rate,
        "adverse_events_with_intervention": adverse_events_with_intervention,
        "total_adverse_events": total_adverse_events,
        "cases_prevented": cases_prevented,
    }


def _block_sizes(n_trials: int, block_size: int) -> List[int]:
    n_full, remainder = divmod(n_trials, block_size)
    sizes = [block_size] * n_full
    if remainder:
        sizes.append(remainder)
    return sizes


@log_call
def generate_trials(
    config: SimulationConfig,
    parameters: Optional[DistributionParameters] = None,
    random_state: RandomState = None,
    n_workers: int = 1,
    block_size: int = DEFAULT_BLOCK_SIZE
) -> pd.DataFrame:
    """
    Generate ``config.n_trials`` independent trial records.

    Parameters
    ----------
    config : SimulationConfig
        Scenario to simulate
    parameters : DistributionParameters, optional
        Pre-computed distribution parameters; derived from ``config`` when
        omitted
    random_state : int, SeedSequence or Generator, optional
        Source of randomness. The same value and config always produce the
        same table.
    n_workers : int, default=1
        Number of threads generating blocks concurrently. Does not change
        the result.
    block_size : int, default=10000
        Number of trials drawn per block. Part of the random stream layout,
        so changing it changes the draws.

    Returns
    -------
    trials : pd.DataFrame
        One row per trial with the ``TrialRecord`` columns, indexed by trial
        number starting at 1

    Raises
    ------
    InvalidParameter
        If the configuration is invalid.
    DistributionDomainError
        If a draw would be made with out-of-domain parameters.
    """
    validate_simulation_config(config)
    if n_workers < 1:
        raise ValueError("n_workers must be at least 1")
    if block_size < 1:
        raise ValueError("block_size must be at least 1")
    if parameters is None:
        parameters = derive_distribution_parameters(config)

    sizes = _block_sizes(config.n_trials, block_size)
    seeds = as_seed_sequence(random_state).spawn(len(sizes))
    population_size = int(config.population_size)

    logger.debug(
        "Generating %d trials for %s in %d blocks on %d workers",
        config.n_trials, config.simulation_name, len(sizes), n_workers
    )

    if n_workers == 1 or len(sizes) == 1:
        blocks = [
            _generate_block(population_size, parameters, seed, size)
            for seed, size in zip(seeds, sizes)
        ]
    else:
        with ThreadPoolExecutor(max_workers=n_workers) as executor:
            blocks = list(executor.map(
                _generate_block,
                [population_size] * len(sizes),
                [parameters] * len(sizes),
                seeds,
                sizes,
            ))

    trials = pd.DataFrame({
        column: np.concatenate([block[column] for block in blocks])
        for column in TRIAL_COLUMNS
    })
    trials.index = pd.RangeIndex(1, config.n_trials + 1, name="trial")
    return trials
