"""
Multi-run orchestration: independent replicates and their aggregation.

Replicates share nothing mutable. Each gets its own child seed spawned
from the master seed with ``numpy.random.SeedSequence``, so streams are
statistically independent and a batch is reproducible regardless of how
many worker processes run it.
"""

import logging
from multiprocessing import Pool
from typing import List, Optional, Sequence, Tuple

import numpy as np

from utils.logging import log_call
from .compartments import AggregatedResult, RunResult, SimulationOutput
from .errors import AggregationError, ConfigError, InvalidStateError
from .rates import RateSchedule
from .settings import STATISTICS, SimulationConfig
from .simulator import EpidemicSimulator

logger = logging.getLogger(__name__)

_Task = Tuple[SimulationConfig, RateSchedule, int, np.random.SeedSequence]


@log_call
def replicate_seeds(
    seed: Optional[int],
    nsims: int
) -> List[np.random.SeedSequence]:
    """
    Independent child seeds for ``nsims`` replicates.

    The same master seed always yields the same children; ``None`` draws
    fresh entropy from the OS.
    """
    return np.random.SeedSequence(seed).spawn(nsims)


def _run_replicate(task: _Task) -> RunResult:
    config, schedule, replicate, seed = task
    try:
        return EpidemicSimulator(config, schedule=schedule).run(
            seed=seed, replicate=replicate
        )
    except InvalidStateError as exc:
        raise InvalidStateError(f"Replicate {replicate} failed: {exc}") from exc


@log_call
def run_replicates(
    config: SimulationConfig,
    schedule: Optional[RateSchedule] = None
) -> List[RunResult]:
    """
    Run every replicate of ``config``, serially or on a process pool.

    Results come back ordered by replicate index. If any replicate fails
    the whole batch fails: a partial batch would bias the aggregate.

    Raises
    ------
    ConfigError
        If the config is invalid (checked before any replicate starts)
    InvalidStateError
        If a replicate hits an invalid state
    """
    if schedule is None:
        schedule = config.validate()
    seeds = replicate_seeds(config.seed, config.nsims)
    tasks = [
        (config, schedule, replicate, seed)
        for replicate, seed in enumerate(seeds)
    ]
    n_workers = min(config.ncores, config.nsims)
    logger.info(
        "Running %d replicates of %d steps on %d worker(s)",
        config.nsims, config.horizon, n_workers,
    )
    try:
        if n_workers <= 1:
            runs = [_run_replicate(task) for task in tasks]
        else:
            with Pool(processes=n_workers) as pool:
                runs = pool.map(_run_replicate, tasks)
    except InvalidStateError:
        logger.error("Batch of %d replicates failed", config.nsims,
                     exc_info=True)
        raise
    logger.info("Completed %d replicates", len(runs))
    return runs


@log_call
def aggregate(
    runs: Sequence[RunResult],
    statistic: str = "mean"
) -> AggregatedResult:
    """
    Summarise replicate series timestep by timestep.

    Parameters
    ----------
    runs : sequence of RunResult
        Replicates of one scenario
    statistic : str, default="mean"
        "mean" or "median", applied per timestep and compartment

    Returns
    -------
    aggregated : AggregatedResult

    Raises
    ------
    AggregationError
        If there are no runs, their lengths differ, or the statistic is
        unknown
    """
    if not runs:
        raise AggregationError("No replicate results to aggregate")
    if statistic not in STATISTICS:
        raise AggregationError(
            f"Unknown statistic {statistic!r}; expected one of {STATISTICS}"
        )
    lengths = {len(run) for run in runs}
    if len(lengths) != 1:
        raise AggregationError(
            f"Replicate series lengths differ: {sorted(lengths)}"
        )
    summarize = np.mean if statistic == "mean" else np.median
    counts = np.stack([run.counts for run in runs])
    flows = np.stack([run.flows for run in runs])
    return AggregatedResult(
        statistic=statistic,
        n_replicates=len(runs),
        counts=summarize(counts, axis=0),
        flows=summarize(flows, axis=0),
    )


@log_call
def run_simulation(
    config: SimulationConfig,
    keep_runs: bool = False
) -> SimulationOutput:
    """
    Validate, run all replicates and aggregate them.

    Parameters
    ----------
    config : SimulationConfig
        Scenario to simulate
    keep_runs : bool, default=False
        Also return the per-replicate series, for consumers that need the
        spread between replicates

    Returns
    -------
    output : SimulationOutput
    """
    try:
        schedule = config.validate()
    except ConfigError:
        logger.error("Invalid simulation config", exc_info=True)
        raise
    runs = run_replicates(config, schedule=schedule)
    aggregated = aggregate(runs, config.statistic)
    return SimulationOutput(
        aggregated=aggregated,
        runs=runs if keep_runs else None,
    )
