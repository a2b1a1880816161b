from pathlib import Path
from typing import List, Optional

from hydra import compose, initialize_config_dir
from omegaconf import DictConfig, OmegaConf
from omegaconf.errors import OmegaConfBaseException

from impact_simulator.config.schemas import RunConfig
from impact_simulator.exceptions import InvalidParameter
from impact_simulator.models import SimulationConfig
from impact_simulator.utils.logging import log_call
from impact_simulator.utils.validation import validate_config

CONFIG_DIR = Path(__file__).resolve().parents[1] / "configs"


@log_call
def load_config(overrides: Optional[List[str]] = None) -> DictConfig:
    """Compose, type-check and validate a run configuration using Hydra."""

    overrides = overrides or []
    with initialize_config_dir(
        CONFIG_DIR.resolve().as_posix(), version_base=None
    ):
        cfg = compose(config_name="config", overrides=overrides)
    return check_config(cfg)


@log_call
def check_config(cfg: DictConfig) -> DictConfig:
    """Merge a configuration onto the structured schema and validate it."""

    validate_config(cfg)
    try:
        merged = OmegaConf.merge(OmegaConf.structured(RunConfig), cfg)
    except OmegaConfBaseException as exc:
        raise InvalidParameter("config", str(exc)) from exc
    return merged


@log_call
def scenario_from_config(cfg: DictConfig) -> SimulationConfig:
    """Build the simulation configuration of a composed run config."""

    values = OmegaConf.to_container(cfg.scenario, resolve=True)
    return SimulationConfig.from_dict(values)
