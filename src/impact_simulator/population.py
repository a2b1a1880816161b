"""
Population totals from tabular sources.

Population counts usually arrive as one row per sub-region (district,
facility catchment, ...). The simulator only needs the total, summed across
rows.
"""

from pathlib import Path
from typing import Optional, Union

import numpy as np
import pandas as pd

from .exceptions import InvalidParameter
from .utils.logging import log_call


@log_call
def total_population(
    frame: pd.DataFrame,
    column: str = "population",
    region_column: Optional[str] = None
) -> int:
    """
    Sum a population column across sub-region rows.

    Parameters
    ----------
    frame : pd.DataFrame
        One row per sub-region
    column : str, default="population"
        Column holding the population counts
    region_column : str, optional
        Column naming the sub-regions; when given, duplicated regions are
        rejected

    Returns
    -------
    total : int
        Non-negative population total
    """
    if column not in frame.columns:
        raise InvalidParameter(column, "column not found in population table")

    counts = pd.to_numeric(frame[column], errors="coerce")
    if counts.isna().any():
        bad_rows = list(frame.index[counts.isna()])
        raise InvalidParameter(
            column, f"missing or non-numeric values in rows {bad_rows}"
        )
    if (counts < 0).any():
        raise InvalidParameter(column, "population counts must be >= 0")
    if not np.all(np.equal(np.mod(counts.to_numpy(), 1), 0)):
        raise InvalidParameter(column, "population counts must be integers")

    if region_column is not None:
        if region_column not in frame.columns:
            raise InvalidParameter(
                region_column, "column not found in population table"
            )
        duplicated = frame[region_column][frame[region_column].duplicated()]
        if not duplicated.empty:
            raise InvalidParameter(
                region_column,
                f"duplicated regions: {sorted(set(duplicated))}",
            )

    return int(counts.sum())


@log_call
def load_population_total(
    path: Union[str, Path],
    column: str = "population",
    region_column: Optional[str] = None
) -> int:
    """Read a CSV of sub-region populations and return the total."""
    frame = pd.read_csv(path)
    return total_population(frame, column=column, region_column=region_column)
