"""SEIQHRF epidemic scenario simulator package."""

from typing import List

from .errors import ConfigError, InvalidStateError, AggregationError
from .compartments import (
    COMPARTMENTS,
    FLOWS,
    CompartmentCounts,
    Flows,
    RunResult,
    AggregatedResult,
    SimulationOutput
)
from .parameters import (
    InfectionParameters,
    ProgressionParameters,
    CapacityParameters,
    VitalParameters,
    ParameterSet
)
from .rates import resolve_rate, resolve_series, resolve_schedule, RateSchedule
from .settings import StochasticFlags, SimulationConfig
from .policies import (
    constant,
    linear_ramp,
    step_schedule,
    window,
    evaluate_policy,
    apply_policies
)
from .sojourn import (
    BinomialDraw,
    ExpectedDraw,
    WeibullSojourn,
    ExponentialSojourn,
    DelaySampler
)
from .transitions import CohortState, TransitionEngine
from .vital_dynamics import VitalDynamics
from .simulator import EpidemicSimulator, simulate_run
from .orchestrator import (
    replicate_seeds,
    run_replicates,
    aggregate,
    run_simulation
)
from .scenarios import compare_scenarios, scenario_summary

__all__: List[str] = [
    # Errors
    "ConfigError",
    "InvalidStateError",
    "AggregationError",
    # Data model
    "COMPARTMENTS",
    "FLOWS",
    "CompartmentCounts",
    "Flows",
    "RunResult",
    "AggregatedResult",
    "SimulationOutput",
    # Parameters and configuration
    "InfectionParameters",
    "ProgressionParameters",
    "CapacityParameters",
    "VitalParameters",
    "ParameterSet",
    "StochasticFlags",
    "SimulationConfig",
    # Rate resolution and policies
    "resolve_rate",
    "resolve_series",
    "resolve_schedule",
    "RateSchedule",
    "constant",
    "linear_ramp",
    "step_schedule",
    "window",
    "evaluate_policy",
    "apply_policies",
    # Engine
    "BinomialDraw",
    "ExpectedDraw",
    "WeibullSojourn",
    "ExponentialSojourn",
    "DelaySampler",
    "CohortState",
    "TransitionEngine",
    "VitalDynamics",
    "EpidemicSimulator",
    "simulate_run",
    # Orchestration and scenarios
    "replicate_seeds",
    "run_replicates",
    "aggregate",
    "run_simulation",
    "compare_scenarios",
    "scenario_summary",
]
__version__ = "0.1.0"
