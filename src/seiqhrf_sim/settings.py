"""
Run-level configuration: stochastic flags and the simulation config.
"""

from dataclasses import dataclass, field, fields
from numbers import Integral
from typing import Optional, Tuple

from utils.logging import log_call
from .compartments import CompartmentCounts
from .errors import ConfigError, InvalidStateError
from .parameters import ParameterSet
from .rates import RateSchedule, resolve_schedule

STATISTICS: Tuple[str, ...] = ("mean", "median")


@dataclass(frozen=True)
class StochasticFlags:
    """
    Which transitions use random draws rather than their expectation.

    Defaults: infection, discharge, fatality and the vital dynamics are
    random; progression, recovery, quarantine, hospitalisation and
    clearance use expected values.
    """

    infection: bool = True
    progression: bool = False
    recovery: bool = False
    quarantine: bool = False
    hospitalisation: bool = False
    discharge: bool = True
    fatality: bool = True
    clearance: bool = False
    arrivals: bool = True
    departures: bool = True

    @classmethod
    def deterministic(cls) -> "StochasticFlags":
        return cls(**{f.name: False for f in fields(cls)})

    @classmethod
    def fully_random(cls) -> "StochasticFlags":
        return cls(**{f.name: True for f in fields(cls)})


DEFAULT_INITIAL = CompartmentCounts(s=9997, e=0, i=3, q=0, h=0, r=0, f=0)


@dataclass(frozen=True)
class SimulationConfig:
    """
    Everything needed to run one scenario.

    Attributes
    ----------
    horizon : int
        Number of timesteps in each run, including the initial state
    nsims : int
        Number of replicates
    ncores : int
        Maximum number of worker processes
    initial : CompartmentCounts
        State at timestep 0
    parameters : ParameterSet
        Model parameters, scalars or per-day sequences
    flags : StochasticFlags
        Random or expected-value draws per transition
    vital : bool
        Whether vital dynamics (arrivals and background deaths) run
    statistic : str
        Aggregation across replicates, "mean" or "median"
    seed : int, optional
        Master seed; replicate seeds are spawned from it
    """

    horizon: int = 366
    nsims: int = 8
    ncores: int = 1
    initial: CompartmentCounts = DEFAULT_INITIAL
    parameters: ParameterSet = field(default_factory=ParameterSet)
    flags: StochasticFlags = field(default_factory=StochasticFlags)
    vital: bool = True
    statistic: str = "mean"
    seed: Optional[int] = None

    @log_call
    def validate(self) -> RateSchedule:
        """
        Check the config and pre-resolve its parameters.

        Returns
        -------
        schedule : RateSchedule
            Per-day parameter values over the horizon

        Raises
        ------
        ConfigError
            On any problem, before a single step is simulated
        """
        for name in ("horizon", "nsims", "ncores"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, Integral) \
                    or value <= 0:
                raise ConfigError(
                    f"{name} must be a positive integer, got {value!r}"
                )
        if self.statistic not in STATISTICS:
            raise ConfigError(
                f"statistic must be one of {STATISTICS}, "
                f"got {self.statistic!r}"
            )
        if self.seed is not None and (
            not isinstance(self.seed, Integral) or self.seed < 0
        ):
            raise ConfigError(
                f"seed must be a non-negative integer, got {self.seed!r}"
            )
        try:
            initial = CompartmentCounts(*self.initial).validate()
        except (InvalidStateError, TypeError) as exc:
            raise ConfigError(f"Invalid initial state: {exc}") from exc
        if any(
            isinstance(value, bool) or not isinstance(value, Integral)
            for value in initial
        ):
            raise ConfigError(
                f"Initial compartment counts must be integers, "
                f"got {tuple(initial)}"
            )
        return resolve_schedule(self.parameters, self.horizon)
