"""
Beta distribution parameterisation for uncertain scenario inputs.

Every uncertain probability in a scenario (fraction reached, fraction taking
up the intervention, baseline adverse-event rate) is drawn from a Beta
distribution whose first shape parameter is a fixed concentration and whose
second shape parameter is chosen so that the distribution mean equals the
target probability. Holding the first shape fixed gives comparable spread
across inputs with very different target means.
"""

import math
from numbers import Real
from typing import Dict, Tuple

import pandas as pd
from scipy import stats  # type: ignore

from .exceptions import DistributionDomainError, InvalidParameter
from .models import DistributionParameters, SimulationConfig
from .utils.logging import log_call
from .utils.validation import validate_probability


@log_call
def derive_beta_shape(
    concentration: float,
    target_probability: float
) -> Tuple[float, float]:
    """
    Convert a target probability into Beta shape parameters.

    Parameters
    ----------
    concentration : float
        First shape parameter, shared by all Beta inputs of a scenario.
        Larger values give tighter distributions around the target.
    target_probability : float
        Desired mean of the distribution, in (0, 1]

    Returns
    -------
    shape_a, shape_b : tuple of float
        ``shape_a = concentration`` and
        ``shape_b = concentration * (1 - p) / p``. A target of exactly 1
        yields ``shape_b = 0``, the point mass at 1.

    Raises
    ------
    InvalidParameter
        If the concentration is not positive or the target is outside (0, 1].
    DistributionDomainError
        If the derived shape is not finite.

    Examples
    --------
    >>> derive_beta_shape(40, 0.5)
    (40.0, 40.0)
    """
    if (
        isinstance(concentration, bool)
        or not isinstance(concentration, Real)
        or not math.isfinite(concentration)
        or concentration <= 0
    ):
        raise InvalidParameter(
            "concentration",
            f"must be a positive finite number, got {concentration!r}",
        )
    p = validate_probability("target_probability", target_probability)

    shape_a = float(concentration)
    shape_b = shape_a * (1 - p) / p

    if not math.isfinite(shape_b) or shape_b < 0:
        raise DistributionDomainError(
            f"Beta shape for target {p} is not finite: {shape_b}"
        )
    return shape_a, shape_b


@log_call
def derive_distribution_parameters(
    config: SimulationConfig
) -> DistributionParameters:
    """Derive the three Beta shape pairs and uniform bounds of a scenario."""
    return DistributionParameters(
        reached=derive_beta_shape(
            config.concentration, config.target_p_reached
        ),
        uptake=derive_beta_shape(
            config.concentration, config.target_p_uptake
        ),
        adverse_event=derive_beta_shape(
            config.concentration, config.target_p_adverse_event
        ),
        effect_size_bounds=(
            float(config.effect_size_min),
            float(config.effect_size_max)
        ),
    )


@log_call
def describe_beta(
    shape_a: float,
    shape_b: float,
    interval: float = 0.95
) -> Dict[str, float]:
    """
    Theoretical moments and central interval of Beta(shape_a, shape_b).

    ``shape_b == 0`` is treated as the point mass at 1.
    """
    if not 0 < interval < 1:
        raise InvalidParameter(
            "interval", f"must be in (0, 1), got {interval}"
        )
    tail = (1 - interval) / 2
    if shape_b == 0:
        return {"mean": 1.0, "variance": 0.0, "lower": 1.0, "upper": 1.0}

    dist = stats.beta(shape_a, shape_b)
    return {
        "mean": float(dist.mean()),
        "variance": float(dist.var()),
        "lower": float(dist.ppf(tail)),
        "upper": float(dist.ppf(1 - tail)),
    }


@log_call
def input_distribution_table(
    config: SimulationConfig,
    interval: float = 0.95
) -> pd.DataFrame:
    """
    Summarise the distribution of every uncertain input of a scenario.

    Returns one row per input with its distribution family, parameters,
    theoretical mean and central interval.
    """
    params = derive_distribution_parameters(config)
    rows = []
    for name, (shape_a, shape_b) in (
        ("p_reached", params.reached),
        ("p_uptake", params.uptake),
        ("p_adverse_event", params.adverse_event),
    ):
        described = describe_beta(shape_a, shape_b, interval=interval)
        rows.append({
            "input": name,
            "distribution": "beta",
            "param_1": shape_a,
            "param_2": shape_b,
            **described,
        })

    low, high = params.effect_size_bounds
    tail = (1 - interval) / 2
    rows.append({
        "input": "effect_size",
        "distribution": "uniform",
        "param_1": low,
        "param_2": high,
        "mean": (low + high) / 2,
        "variance": (high - low) ** 2 / 12,
        "lower": low + tail * (high - low),
        "upper": high - tail * (high - low),
    })
    return pd.DataFrame(rows).set_index("input")
