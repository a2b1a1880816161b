from dataclasses import dataclass, field

from omegaconf import MISSING

from impact_simulator.models import DEFAULT_CONCENTRATION


@dataclass
class ScenarioConfig:
    simulation_name: str = MISSING
    population_size: int = MISSING
    n_trials: int = MISSING
    target_p_reached: float = MISSING
    target_p_uptake: float = MISSING
    target_p_adverse_event: float = MISSING
    effect_size_min: float = MISSING
    effect_size_max: float = MISSING
    concentration: float = DEFAULT_CONCENTRATION


@dataclass
class CacheConfig:
    enabled: bool = True
    use_cache: bool = True
    directory: str = "simulation_cache"


@dataclass
class RunConfig:
    scenario: ScenarioConfig = field(default_factory=ScenarioConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    random_seed: int = 2024
    n_workers: int = 1
    strict_cache_key: bool = False
