"""
Persistence and reuse of simulation outputs.

Outputs are stored under a ``CacheKey`` built from the simulation name and
trial count. The store is passed in explicitly; ``InMemorySimulationStore``
suits tests and notebooks, ``FileSimulationStore`` keeps one pickle per key
in a directory.
"""

import hashlib
import json
import logging
import os
import re
import tempfile
import warnings
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, NamedTuple, Optional, Union

import pandas as pd

from .exceptions import CacheIOError
from .models import (
    DistributionParameters,
    SimulationConfig,
    SimulationOutput,
    TRIAL_COLUMNS,
)
from .trial_generation import RandomState, generate_trials
from .utils.logging import log_call

logger = logging.getLogger(__name__)

TrialGenerator = Callable[..., pd.DataFrame]

COUNT_FIELDS = ("population_size", "n_trials")


class CacheKey(NamedTuple):
    """Identifier of one cache entry."""

    simulation_name: str
    n_trials: int
    fingerprint: Optional[str] = None


@log_call
def config_fingerprint(config: SimulationConfig) -> str:
    """Stable short hash of every field of a configuration."""
    values = {}
    for name, value in config.to_dict().items():
        if name in COUNT_FIELDS:
            value = int(value)
        elif name != "simulation_name":
            value = float(value)
        values[name] = value
    payload = json.dumps(values, sort_keys=True)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]


@log_call
def cache_key(config: SimulationConfig, strict: bool = False) -> CacheKey:
    """
    Cache key of a configuration.

    By default only the simulation name and trial count identify an entry,
    so a reused name with different parameters returns the stored output.
    ``strict=True`` adds a fingerprint of the whole configuration.
    """
    fingerprint = config_fingerprint(config) if strict else None
    return CacheKey(config.simulation_name, int(config.n_trials), fingerprint)


class SimulationStore(ABC):
    """Key-value store of simulation outputs."""

    @abstractmethod
    @log_call
    def get(self, key: CacheKey) -> Optional[SimulationOutput]:
        """Return the stored output, or None when there is no entry."""

    @abstractmethod
    @log_call
    def put(self, key: CacheKey, output: SimulationOutput) -> None:
        """Store an output under ``key``, replacing any previous entry."""

    @abstractmethod
    @log_call
    def delete(self, key: CacheKey) -> bool:
        """Remove an entry; return whether it existed."""

    @abstractmethod
    @log_call
    def clear(self) -> None:
        """Remove every entry."""


class InMemorySimulationStore(SimulationStore):
    """Dictionary-backed store."""

    def __init__(self) -> None:
        self._entries: Dict[CacheKey, SimulationOutput] = {}

    @log_call
    def get(self, key: CacheKey) -> Optional[SimulationOutput]:
        return self._entries.get(key)

    @log_call
    def put(self, key: CacheKey, output: SimulationOutput) -> None:
        self._entries[key] = output

    @log_call
    def delete(self, key: CacheKey) -> bool:
        return self._entries.pop(key, None) is not None

    @log_call
    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


class FileSimulationStore(SimulationStore):
    """
    Directory of pickled simulation outputs, one file per key.

    Each file holds the configuration as a plain dictionary and the trial
    table as a DataFrame. Writes go to a temporary file in the same
    directory which is then moved into place.
    """

    SUFFIX = ".pkl"

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    @log_call
    def path_for(self, key: CacheKey) -> Path:
        """File path of an entry."""
        safe_name = re.sub(r"[^A-Za-z0-9_.-]+", "_", key.simulation_name)
        name_hash = hashlib.sha256(
            key.simulation_name.encode("utf-8")
        ).hexdigest()[:8]
        stem = f"{safe_name}_{name_hash}_{key.n_trials}"
        if key.fingerprint:
            stem = f"{stem}_{key.fingerprint}"
        return self.directory / f"{stem}{self.SUFFIX}"

    @log_call
    def get(self, key: CacheKey) -> Optional[SimulationOutput]:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            with open(path, "rb") as handle:
                payload = pd.read_pickle(handle)
            config = SimulationConfig.from_dict(payload["config"])
            trials = payload["trials"]
        except Exception as exc:
            raise CacheIOError(
                f"Could not read cached simulation: {exc}", str(path)
            ) from exc
        if not isinstance(trials, pd.DataFrame) or list(
            trials.columns
        ) != TRIAL_COLUMNS:
            raise CacheIOError(
                "Cached simulation has an unexpected trial table", str(path)
            )
        if (config.simulation_name != key.simulation_name
                or config.n_trials != key.n_trials):
            logger.warning(
                "Cache file %s holds %s (%d trials), not the requested key",
                path, config.simulation_name, config.n_trials
            )
            return None
        return SimulationOutput(config=config, trials=trials)

    @log_call
    def put(self, key: CacheKey, output: SimulationOutput) -> None:
        path = self.path_for(key)
        payload = {
            "config": output.config.to_dict(),
            "trials": output.trials,
        }
        tmp_name = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.directory, suffix=".tmp"
            )
            with os.fdopen(fd, "wb") as handle:
                pd.to_pickle(payload, handle)
            os.replace(tmp_name, path)
        except Exception as exc:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise CacheIOError(
                f"Could not write cached simulation: {exc}", str(path)
            ) from exc

    @log_call
    def delete(self, key: CacheKey) -> bool:
        path = self.path_for(key)
        if not path.exists():
            return False
        path.unlink()
        return True

    @log_call
    def clear(self) -> None:
        if not self.directory.exists():
            return
        for path in self.directory.glob(f"*{self.SUFFIX}"):
            path.unlink()


@log_call
def load_or_compute(
    config: SimulationConfig,
    use_cache: bool,
    store: Optional[SimulationStore] = None,
    parameters: Optional[DistributionParameters] = None,
    random_state: RandomState = None,
    n_workers: int = 1,
    strict_key: bool = False,
    trial_generator: Optional[TrialGenerator] = None
) -> SimulationOutput:
    """
    Return a cached simulation output or compute and store a fresh one.

    Parameters
    ----------
    config : SimulationConfig
        Scenario to simulate
    use_cache : bool
        Whether an existing entry may be returned. A fresh result is
        written to the store either way.
    store : SimulationStore, optional
        Where outputs are persisted. Without a store nothing is cached.
    parameters : DistributionParameters, optional
        Distribution parameters passed through to the trial generator
    random_state : int, SeedSequence or Generator, optional
        Randomness for a fresh computation
    n_workers : int, default=1
        Worker threads for trial generation
    strict_key : bool, default=False
        Include a fingerprint of the full configuration in the key
    trial_generator : callable, optional
        Function producing the trial table; defaults to ``generate_trials``

    Returns
    -------
    output : SimulationOutput
        The stored entry when one is found, otherwise a new output

    Notes
    -----
    A failed read falls back to recomputation. A failed write is reported
    with a ``RuntimeWarning`` and the computed output is still returned.
    """
    key = cache_key(config, strict=strict_key)

    if store is not None and use_cache:
        try:
            cached = store.get(key)
        except CacheIOError as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            warnings.warn(
                f"Ignoring unreadable cache entry for {key.simulation_name}: "
                f"{exc}",
                RuntimeWarning
            )
            cached = None
        if cached is not None:
            logger.info(
                "Loaded %s (%d trials) from cache",
                key.simulation_name, key.n_trials
            )
            if cached.config != config:
                logger.warning(
                    "Cached entry %s was computed with a different "
                    "configuration; returning it unchanged",
                    key.simulation_name
                )
            return cached

    logger.info(
        "Running %d trials for %s", config.n_trials, config.simulation_name
    )
    if trial_generator is None:
        trial_generator = generate_trials
    trials = trial_generator(
        config,
        parameters=parameters,
        random_state=random_state,
        n_workers=n_workers
    )
    output = SimulationOutput(config=config, trials=trials)

    if store is not None:
        try:
            store.put(key, output)
        except CacheIOError as exc:
            logger.warning("Cache write failed for %s: %s", key, exc)
            warnings.warn(
                f"Could not cache {key.simulation_name}: {exc}",
                RuntimeWarning
            )
    return output
