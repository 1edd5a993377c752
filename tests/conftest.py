"""
Shared test fixtures.

Full 366-day scenarios are run once per session and shared, since several
test modules check different properties of the same batches.
"""

import os
import sys

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from seiqhrf_sim.compartments import CompartmentCounts  # noqa: E402
from seiqhrf_sim.orchestrator import run_simulation  # noqa: E402
from seiqhrf_sim.policies import linear_ramp  # noqa: E402
from seiqhrf_sim.settings import (  # noqa: E402
    SimulationConfig,
    StochasticFlags
)
from seiqhrf_sim.parameters import ParameterSet  # noqa: E402

LARGE_INITIAL = CompartmentCounts(s=99970, e=0, i=3, q=0, h=0, r=0, f=0)


@pytest.fixture
def rng():
    """Fresh, seeded random generator."""
    return np.random.default_rng(42)


@pytest.fixture(scope="session")
def baseline_parameters():
    return ParameterSet()


@pytest.fixture(scope="session")
def small_config():
    """Short, small scenario for fast tests."""
    return SimulationConfig(
        horizon=60,
        nsims=3,
        ncores=1,
        initial=CompartmentCounts(s=2000, e=5, i=10, q=0, h=0, r=0, f=0),
        seed=2024,
    )


@pytest.fixture(scope="session")
def deterministic_config(small_config):
    return SimulationConfig(
        horizon=small_config.horizon,
        nsims=1,
        initial=small_config.initial,
        flags=StochasticFlags.deterministic(),
    )


@pytest.fixture(scope="session")
def baseline_output():
    """The end-to-end baseline: 100k population, 366 days, 8 replicates."""
    config = SimulationConfig(
        horizon=366, nsims=8, initial=LARGE_INITIAL, seed=42
    )
    return run_simulation(config, keep_runs=True)


@pytest.fixture(scope="session")
def quarantine_ramp_output():
    """Baseline with isolation ramped from 0.0333 to 0.3333 over 17 days."""
    parameters = ParameterSet().with_overrides(
        quar_rate=linear_ramp(0.0333, 0.3333, ramp_days=17, horizon=366)
    )
    config = SimulationConfig(
        horizon=366, nsims=8, initial=LARGE_INITIAL, seed=42,
        parameters=parameters,
    )
    return run_simulation(config)


@pytest.fixture(scope="session")
def low_quarantine_output():
    """Baseline with a constant low isolation rate of 0.0333."""
    parameters = ParameterSet().with_overrides(quar_rate=0.0333)
    config = SimulationConfig(
        horizon=366, nsims=8, initial=LARGE_INITIAL, seed=42,
        parameters=parameters,
    )
    return run_simulation(config)


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: full-size scenario runs (slow)"
    )
