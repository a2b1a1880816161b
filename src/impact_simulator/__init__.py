"""Monte Carlo impact estimation for maternal-health interventions."""

from typing import List

from .exceptions import (
    ImpactSimulatorError,
    InvalidParameter,
    DistributionDomainError,
    CacheIOError
)
from .models import (
    SimulationConfig,
    TrialRecord,
    SimulationOutput,
    DistributionParameters,
    TRIAL_COLUMNS
)
from .beta_parameters import (
    derive_beta_shape,
    derive_distribution_parameters,
    describe_beta,
    input_distribution_table
)
from .trial_generation import generate_trials, as_seed_sequence
from .simulation_cache import (
    CacheKey,
    cache_key,
    config_fingerprint,
    SimulationStore,
    InMemorySimulationStore,
    FileSimulationStore,
    load_or_compute
)
from .simulation import run_simulation
from .summary import (
    SummaryStatistics,
    summarize,
    summarize_columns,
    summary_table,
    SUMMARY_PERCENTILES
)
from .population import total_population, load_population_total

__all__: List[str] = [
    # Errors
    "ImpactSimulatorError",
    "InvalidParameter",
    "DistributionDomainError",
    "CacheIOError",
    # Data model
    "SimulationConfig",
    "TrialRecord",
    "SimulationOutput",
    "DistributionParameters",
    "TRIAL_COLUMNS",
    # Distribution parameterisation
    "derive_beta_shape",
    "derive_distribution_parameters",
    "describe_beta",
    "input_distribution_table",
    # Trial generation
    "generate_trials",
    "as_seed_sequence",
    # Caching
    "CacheKey",
    "cache_key",
    "config_fingerprint",
    "SimulationStore",
    "InMemorySimulationStore",
    "FileSimulationStore",
    "load_or_compute",
    # Orchestration
    "run_simulation",
    # Summaries
    "SummaryStatistics",
    "summarize",
    "summarize_columns",
    "summary_table",
    "SUMMARY_PERCENTILES",
    # Population source
    "total_population",
    "load_population_total",
]
__version__ = "0.1.0"
