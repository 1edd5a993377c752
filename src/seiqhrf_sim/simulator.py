"""
Single-run simulator: one stochastic replicate over the full horizon.

Row 0 of every series is the initial state. Each later timestep resolves
the parameters for that day, draws the disease-driven flows, applies vital
dynamics when enabled and records the new counts. Runs never stop early,
so every replicate of a batch has the same length.
"""

from typing import Optional, Union

import numpy as np

from utils.logging import log_call
from .compartments import COMPARTMENTS, FLOWS, RunResult
from .rates import RateSchedule
from .settings import SimulationConfig
from .transitions import CohortState, TransitionEngine, advance
from .vital_dynamics import VitalDynamics

Seed = Union[None, int, np.random.SeedSequence]


class EpidemicSimulator:
    """
    Drives the transition engine and vital dynamics across the horizon.

    Parameters
    ----------
    config : SimulationConfig
        Scenario to simulate
    schedule : RateSchedule, optional
        Pre-resolved parameters; resolved (and validated) from ``config``
        when not given

    Examples
    --------
    >>> sim = EpidemicSimulator(SimulationConfig(horizon=30))
    >>> run = sim.run(seed=1)
    >>> len(run)
    30
    """

    def __init__(
        self,
        config: SimulationConfig,
        schedule: Optional[RateSchedule] = None
    ):
        self.config = config
        self.schedule = schedule if schedule is not None else config.validate()
        self.engine = TransitionEngine(config.flags)
        self.vital_dynamics = VitalDynamics(config.flags)

    @log_call
    def run(self, seed: Seed = None, replicate: int = 0) -> RunResult:
        """
        Simulate one replicate.

        Parameters
        ----------
        seed : int or np.random.SeedSequence, optional
            Seed of this replicate's random stream
        replicate : int, default=0
            Index recorded on the result

        Returns
        -------
        result : RunResult
            Counts, flows and vital-dynamics totals for every timestep

        Raises
        ------
        InvalidStateError
            If a count goes negative or a probability leaves [0, 1]
        """
        horizon = self.config.horizon
        rng = np.random.default_rng(seed)

        counts = np.zeros((horizon, len(COMPARTMENTS)), dtype=np.int64)
        flows = np.zeros((horizon, len(FLOWS)), dtype=np.int64)
        arrivals = np.zeros(horizon, dtype=np.int64)
        departures = np.zeros(horizon, dtype=np.int64)

        state = CohortState.from_counts(self.config.initial, max_age=horizon)
        counts[0] = state.counts().as_array()

        for t in range(1, horizon):
            params = self.schedule.at(t)
            outcome = self.engine.step(state, params, rng)
            stayers = outcome.stayers
            arrived = None
            if self.config.vital:
                removed = self.vital_dynamics.departures(
                    stayers, params.vital, rng
                )
                stayers = stayers.without(removed)
                departures[t] = removed.counts().total()
                arrived = self.vital_dynamics.arrivals(
                    state.living(), params.vital, rng
                )
                arrivals[t] = arrived.total()
            state = advance(stayers, outcome, arrived)
            counts[t] = state.counts().as_array()
            flows[t] = outcome.flows

        return RunResult(
            replicate=replicate,
            counts=counts,
            flows=flows,
            arrivals=arrivals,
            departures=departures,
        )


@log_call
def simulate_run(
    config: SimulationConfig,
    seed: Seed = None,
    replicate: int = 0,
    schedule: Optional[RateSchedule] = None
) -> RunResult:
    """Run a single replicate of ``config``; see ``EpidemicSimulator.run``."""
    return EpidemicSimulator(config, schedule=schedule).run(
        seed=seed, replicate=replicate
    )
