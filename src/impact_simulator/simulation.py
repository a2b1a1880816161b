"""
Entry point for running one intervention scenario.
"""

import logging
from typing import Optional

from .beta_parameters import derive_distribution_parameters
from .models import SimulationConfig, SimulationOutput
from .simulation_cache import SimulationStore, load_or_compute
from .trial_generation import RandomState
from .utils.logging import log_call
from .utils.validation import validate_simulation_config

logger = logging.getLogger(__name__)


@log_call
def run_simulation(
    config: SimulationConfig,
    store: Optional[SimulationStore] = None,
    use_cache: bool = True,
    random_state: RandomState = None,
    n_workers: int = 1,
    strict_cache_key: bool = False
) -> SimulationOutput:
    """
    Validate a scenario, derive its distributions and simulate it.

    Parameters
    ----------
    config : SimulationConfig
        Scenario to simulate
    store : SimulationStore, optional
        Cache for outputs; nothing is cached without one
    use_cache : bool, default=True
        Return a stored output for the same name and trial count if present
    random_state : int, SeedSequence or Generator, optional
        Randomness for fresh trials
    n_workers : int, default=1
        Worker threads for trial generation
    strict_cache_key : bool, default=False
        Key the cache on the full configuration instead of name and trial
        count only

    Returns
    -------
    output : SimulationOutput
        Configuration and trial table

    Raises
    ------
    InvalidParameter
        If any configuration field is out of its domain.

    Examples
    --------
    >>> config = SimulationConfig(
    ...     population_size=10000, n_trials=1000,
    ...     target_p_reached=0.5, target_p_uptake=0.75,
    ...     target_p_adverse_event=0.06,
    ...     effect_size_min=0.1, effect_size_max=0.24,
    ...     simulation_name="example")
    >>> output = run_simulation(config, random_state=42)
    >>> output.n_trials()
    1000
    """
    validate_simulation_config(config)
    parameters = derive_distribution_parameters(config)
    logger.debug(
        "Distribution parameters for %s: %s",
        config.simulation_name, parameters
    )
    return load_or_compute(
        config,
        use_cache=use_cache,
        store=store,
        parameters=parameters,
        random_state=random_state,
        n_workers=n_workers,
        strict_key=strict_cache_key,
    )
