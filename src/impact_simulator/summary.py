"""
Summary statistics of completed simulations.

Everything here is a pure function of the trial table: no randomness and no
side effects. Quantiles use linear interpolation between order statistics
(numpy's default percentile method).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .models import SimulationOutput, TRIAL_COLUMNS
from .utils.logging import log_call

SUMMARY_PERCENTILES = (2.5, 5.0, 10.0, 25.0, 50.0, 75.0, 90.0, 95.0, 97.5)


def _percentile_label(q: float) -> str:
    return f"p{q:g}".replace(".", "_")


@dataclass(frozen=True)
class SummaryStatistics:
    """
    Percentiles of cases prevented and effect-size range for one simulation.

    Attributes
    ----------
    simulation_name : str
        Name of the summarised scenario
    n_trials : int
        Number of trials summarised
    cases_prevented_percentiles : dict
        Percentile (e.g. 2.5, 50.0) to value of ``cases_prevented``
    mean_cases_prevented : float
        Mean of ``cases_prevented``
    mean_effect_size, min_effect_size, max_effect_size : float
        Moments of the sampled effect sizes
    """

    simulation_name: str
    n_trials: int
    cases_prevented_percentiles: Dict[float, float] = field(
        default_factory=dict
    )
    mean_cases_prevented: float = 0.0
    mean_effect_size: float = 0.0
    min_effect_size: float = 0.0
    max_effect_size: float = 0.0

    @log_call
    def percentile(self, q: float) -> float:
        """Value of a summarised percentile of cases prevented."""
        try:
            return self.cases_prevented_percentiles[float(q)]
        except KeyError:
            raise KeyError(
                f"Percentile {q} not summarised; "
                f"available: {sorted(self.cases_prevented_percentiles)}"
            ) from None

    @log_call
    def median(self) -> float:
        return self.percentile(50.0)

    @log_call
    def interval(
        self,
        lower: float = 2.5,
        upper: float = 97.5
    ) -> Tuple[float, float]:
        """Percentile interval of cases prevented."""
        return self.percentile(lower), self.percentile(upper)

    @log_call
    def to_dict(self) -> Dict[str, Any]:
        """Flat dictionary, one key per statistic."""
        result: Dict[str, Any] = {
            "simulation_name": self.simulation_name,
            "n_trials": self.n_trials,
        }
        for q, value in sorted(self.cases_prevented_percentiles.items()):
            result[f"cases_prevented_{_percentile_label(q)}"] = value
        result.update({
            "mean_cases_prevented": self.mean_cases_prevented,
            "mean_effect_size": self.mean_effect_size,
            "min_effect_size": self.min_effect_size,
            "max_effect_size": self.max_effect_size,
        })
        return result

    @log_call
    def to_frame(self) -> pd.DataFrame:
        """Two-column table of statistic names and values."""
        values = self.to_dict()
        return pd.DataFrame({
            "statistic": list(values),
            "value": list(values.values()),
        })


@log_call
def summarize(
    output: SimulationOutput,
    percentiles: Sequence[float] = SUMMARY_PERCENTILES
) -> SummaryStatistics:
    """
    Reduce a simulation to percentiles of cases prevented.

    Parameters
    ----------
    output : SimulationOutput
        Completed simulation
    percentiles : sequence of float
        Percentiles (0-100) of ``cases_prevented`` to report

    Returns
    -------
    stats : SummaryStatistics
    """
    cases = output.trials["cases_prevented"].to_numpy(dtype=float)
    effect = output.trials["effect_size"].to_numpy(dtype=float)
    if cases.size == 0:
        raise ValueError("Cannot summarise a simulation without trials")

    qs = [float(q) for q in percentiles]
    values = np.percentile(cases, qs)

    return SummaryStatistics(
        simulation_name=output.config.simulation_name,
        n_trials=int(cases.size),
        cases_prevented_percentiles={
            q: float(v) for q, v in zip(qs, values)
        },
        mean_cases_prevented=float(np.mean(cases)),
        mean_effect_size=float(np.mean(effect)),
        min_effect_size=float(np.min(effect)),
        max_effect_size=float(np.max(effect)),
    )


@log_call
def summarize_columns(
    output: SimulationOutput,
    columns: Optional[Iterable[str]] = None,
    percentiles: Sequence[float] = SUMMARY_PERCENTILES
) -> pd.DataFrame:
    """
    Percentile table for any trial columns.

    Returns a DataFrame indexed by column name with ``mean``, ``min``,
    ``max`` and one column per percentile (``p2_5``, ``p50``, ...).
    """
    columns = list(columns) if columns is not None else list(TRIAL_COLUMNS)
    unknown = [c for c in columns if c not in TRIAL_COLUMNS]
    if unknown:
        raise KeyError(f"Unknown trial columns: {unknown}")

    qs = [float(q) for q in percentiles]
    rows = {}
    for column in columns:
        values = output.trials[column].to_numpy(dtype=float)
        row = {
            "mean": float(np.mean(values)),
            "min": float(np.min(values)),
            "max": float(np.max(values)),
        }
        for q, v in zip(qs, np.percentile(values, qs)):
            row[_percentile_label(q)] = float(v)
        rows[column] = row
    return pd.DataFrame.from_dict(rows, orient="index")


@log_call
def summary_table(summaries: Iterable[SummaryStatistics]) -> pd.DataFrame:
    """Stack several scenario summaries into one table, one row each."""
    records = [s.to_dict() for s in summaries]
    if not records:
        return pd.DataFrame()
    return pd.DataFrame(records).set_index("simulation_name")
