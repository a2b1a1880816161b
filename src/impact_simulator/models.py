"""
Data model for intervention impact simulations.

A ``SimulationConfig`` describes one scenario, the trial generator produces one
``TrialRecord`` per Monte Carlo trial, and a ``SimulationOutput`` bundles the
configuration with the complete trial table. All three are treated as
immutable once constructed.
"""

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Iterator, List, Mapping, NamedTuple, Tuple

import pandas as pd

from .exceptions import InvalidParameter
from .utils.logging import log_call

DEFAULT_CONCENTRATION = 40.0


@dataclass(frozen=True)
class SimulationConfig:
    """Immutable input to a simulation run."""

    population_size: int
    n_trials: int
    target_p_reached: float
    target_p_uptake: float
    target_p_adverse_event: float
    effect_size_min: float
    effect_size_max: float
    simulation_name: str
    concentration: float = DEFAULT_CONCENTRATION

    @log_call
    def to_dict(self) -> Dict[str, Any]:
        """Plain dictionary of all fields."""
        return asdict(self)

    @classmethod
    @log_call
    def from_dict(cls, values: Mapping[str, Any]) -> "SimulationConfig":
        """Build a config from a mapping, rejecting unknown or missing keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise InvalidParameter(unknown[0], "unknown configuration field")
        required = {
            f.name for f in fields(cls) if f.name != "concentration"
        }
        missing = sorted(required - set(values))
        if missing:
            raise InvalidParameter(missing[0], "missing configuration field")
        return cls(**dict(values))


class TrialRecord(NamedTuple):
    """One row of Monte Carlo output."""

    p_reached: float
    n_reached: int
    p_uptake: float
    n_uptake: int
    p_adverse_event: float
    n_no_intervention: int
    adverse_events_no_intervention: int
    effect_size: float
    adjusted_adverse_event_rate: float
    adverse_events_with_intervention: int
    total_adverse_events: int
    cases_prevented: float


TRIAL_COLUMNS: List[str] = list(TrialRecord._fields)

COUNT_COLUMNS: List[str] = [
    "n_reached",
    "n_uptake",
    "n_no_intervention",
    "adverse_events_no_intervention",
    "adverse_events_with_intervention",
    "total_adverse_events",
]


@dataclass(frozen=True)
class DistributionParameters:
    """Shape parameters for every uncertain input of one scenario."""

    reached: Tuple[float, float]
    uptake: Tuple[float, float]
    adverse_event: Tuple[float, float]
    effect_size_bounds: Tuple[float, float]


@dataclass(frozen=True, eq=False)
class SimulationOutput:
    """
    A configuration together with its complete trial table.

    ``trials`` has one column per ``TrialRecord`` field and is indexed by
    trial number, starting at 1.
    """

    config: SimulationConfig
    trials: pd.DataFrame

    @log_call
    def n_trials(self) -> int:
        return len(self.trials)

    @log_call
    def record(self, trial: int) -> TrialRecord:
        """Return the record for a 1-based trial number."""
        row = self.trials.loc[trial, TRIAL_COLUMNS]
        return _row_to_record(row.tolist())

    @log_call
    def records(self) -> Iterator[TrialRecord]:
        """Iterate over all trial records in trial order."""
        for values in self.trials[TRIAL_COLUMNS].itertuples(index=False):
            yield _row_to_record(list(values))

    @log_call
    def column(self, name: str) -> pd.Series:
        """Values of one trial column."""
        if name not in TRIAL_COLUMNS:
            raise KeyError(f"Unknown trial column: {name}")
        return self.trials[name]


def _row_to_record(values: List[Any]) -> TrialRecord:
    converted = [
        int(v) if name in COUNT_COLUMNS else float(v)
        for name, v in zip(TRIAL_COLUMNS, values)
    ]
    return TrialRecord(*converted)
