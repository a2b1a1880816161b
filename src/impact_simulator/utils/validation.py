import math
from numbers import Integral, Real
from typing import Any

from omegaconf import DictConfig

from impact_simulator.exceptions import InvalidParameter
from impact_simulator.models import SimulationConfig
from impact_simulator.utils.logging import log_call

SCENARIO_FIELDS = (
    "population_size",
    "n_trials",
    "target_p_reached",
    "target_p_uptake",
    "target_p_adverse_event",
    "effect_size_min",
    "effect_size_max",
    "simulation_name",
)


def _require_positive_int(field: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise InvalidParameter(field, f"must be an integer, got {value!r}")
    if value <= 0:
        raise InvalidParameter(field, f"must be positive, got {value}")


def _require_real(field: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidParameter(field, f"must be a number, got {value!r}")
    if not math.isfinite(value):
        raise InvalidParameter(field, f"must be finite, got {value}")
    return float(value)


@log_call
def validate_probability(field: str, value: Any) -> float:
    """Check that a target probability lies in (0, 1]."""
    value = _require_real(field, value)
    if not 0 < value <= 1:
        raise InvalidParameter(
            field, f"must be greater than 0 and at most 1, got {value}"
        )
    return value


@log_call
def validate_simulation_config(config: SimulationConfig) -> None:
    """Check every field of a scenario before any random draws are made."""

    _require_positive_int("population_size", config.population_size)
    _require_positive_int("n_trials", config.n_trials)

    concentration = _require_real("concentration", config.concentration)
    if concentration <= 0:
        raise InvalidParameter(
            "concentration", f"must be positive, got {concentration}"
        )

    validate_probability("target_p_reached", config.target_p_reached)
    validate_probability("target_p_uptake", config.target_p_uptake)
    validate_probability(
        "target_p_adverse_event", config.target_p_adverse_event
    )

    low = _require_real("effect_size_min", config.effect_size_min)
    high = _require_real("effect_size_max", config.effect_size_max)
    if not 0 <= low <= 1:
        raise InvalidParameter(
            "effect_size_min", f"must be between 0 and 1, got {low}"
        )
    if not 0 <= high <= 1:
        raise InvalidParameter(
            "effect_size_max", f"must be between 0 and 1, got {high}"
        )
    if low > high:
        raise InvalidParameter(
            "effect_size_min",
            f"must not exceed effect_size_max ({low} > {high})",
        )

    if not isinstance(config.simulation_name, str) or not (
        config.simulation_name.strip()
    ):
        raise InvalidParameter(
            "simulation_name", "must be a non-empty string"
        )


@log_call
def validate_config(cfg: DictConfig) -> None:
    """Validation for a composed Hydra run configuration."""

    if "scenario" not in cfg:
        raise InvalidParameter("scenario", "missing scenario section")
    for name in SCENARIO_FIELDS:
        if name not in cfg.scenario:
            raise InvalidParameter(f"scenario.{name}", "missing field")
    if cfg.get("n_workers", 1) < 1:
        raise InvalidParameter("n_workers", "must be at least 1")
    if "cache" in cfg and cfg.cache.enabled and not cfg.cache.directory:
        raise InvalidParameter(
            "cache.directory", "required when the cache is enabled"
        )
