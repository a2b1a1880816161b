"""
Shared test fixtures.

Scenario configurations and trial tables are built once per session where
they are read-only, so the larger scenarios are not regenerated by every
test module.
"""

import os
import sys

import pytest
from omegaconf import OmegaConf

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from impact_simulator.models import SimulationConfig  # noqa: E402
from impact_simulator.simulation import run_simulation  # noqa: E402
from impact_simulator.simulation_cache import (  # noqa: E402
    InMemorySimulationStore
)


@pytest.fixture
def small_config():
    """Small scenario (5,000 people, 500 trials) for fast tests."""
    return SimulationConfig(
        population_size=5000,
        n_trials=500,
        target_p_reached=0.4,
        target_p_uptake=0.75,
        target_p_adverse_event=0.06,
        effect_size_min=0.10,
        effect_size_max=0.24,
        simulation_name="small_test",
    )


@pytest.fixture(scope="session")
def example_config():
    """The documented example scenario at full scale."""
    return SimulationConfig(
        population_size=422726,
        n_trials=100000,
        concentration=40,
        target_p_reached=0.145,
        target_p_uptake=0.75,
        target_p_adverse_event=0.06,
        effect_size_min=0.10,
        effect_size_max=0.24,
        simulation_name="example_scenario",
    )


@pytest.fixture(scope="session")
def example_output(example_config):
    """Simulated output of the example scenario."""
    return run_simulation(example_config, random_state=42)


@pytest.fixture
def memory_store():
    return InMemorySimulationStore()


@pytest.fixture
def invalid_run_config():
    """Composed run configuration with an invalid worker count."""
    return OmegaConf.create(
        {
            "scenario": {
                "simulation_name": "bad",
                "population_size": 1000,
                "n_trials": 10,
                "concentration": 40,
                "target_p_reached": 0.5,
                "target_p_uptake": 0.5,
                "target_p_adverse_event": 0.1,
                "effect_size_min": 0.1,
                "effect_size_max": 0.2,
            },
            "cache": {
                "enabled": False,
                "use_cache": False,
                "directory": "",
            },
            "random_seed": 1,
            "n_workers": 0,
            "strict_cache_key": False,
        }
    )
