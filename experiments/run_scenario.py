#!/usr/bin/env python3
"""
Scenario Experiment Runner

Runs one intervention scenario with Hydra configuration management and writes
the summary statistics and the trial table to the Hydra run directory.

Usage:
    python experiments/run_scenario.py
    python experiments/run_scenario.py scenario=full_anc_coverage
    python experiments/run_scenario.py --multirun \
        scenario=baseline,full_anc_coverage cache=none
"""

import logging
import os
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import hydra  # noqa: E402
from hydra.utils import get_original_cwd  # noqa: E402
from omegaconf import DictConfig, OmegaConf  # noqa: E402

from impact_simulator.beta_parameters import (  # noqa: E402
    input_distribution_table
)
from impact_simulator.config import (  # noqa: E402
    check_config,
    scenario_from_config
)
from impact_simulator.runner import build_store, run_scenario  # noqa: E402
from impact_simulator.summary import summarize_columns  # noqa: E402

CONFIG_PATH = str(
    Path(__file__).resolve().parents[1]
    / "src" / "impact_simulator" / "configs"
)


@hydra.main(version_base=None, config_path=CONFIG_PATH, config_name="config")
def main(cfg: DictConfig) -> None:
    """Run the configured scenario and save its outputs."""
    logger = logging.getLogger(__name__)
    cfg = check_config(cfg)
    logger.info("Configuration:\n%s", OmegaConf.to_yaml(cfg))

    config = scenario_from_config(cfg)
    logger.info(
        "Input distributions:\n%s",
        input_distribution_table(config).to_string()
    )

    # Cache lives relative to where the script was launched, not the run dir
    store = build_store(cfg, base_dir=get_original_cwd())
    result = run_scenario(cfg, store=store)

    output_dir = Path.cwd()
    result.summary.to_frame().to_csv(output_dir / "summary.csv", index=False)
    summarize_columns(result.output).to_csv(output_dir / "trial_summary.csv")
    result.output.trials.to_csv(output_dir / "trials.csv")

    logger.info("Summary:\n%s", result.summary.to_frame().to_string())
    logger.info("Results saved to: %s", output_dir)


if __name__ == "__main__":
    main()
