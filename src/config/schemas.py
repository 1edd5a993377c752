from dataclasses import dataclass
from typing import Optional


@dataclass
class SimulationSchema:
    horizon: int = 366
    nsims: int = 8
    ncores: int = 1
    seed: Optional[int] = 42
    statistic: str = "mean"
    vital: bool = True


@dataclass
class InitialStateSchema:
    s: int = 9997
    e: int = 0
    i: int = 0
    q: int = 0
    h: int = 0
    r: int = 0
    f: int = 0


@dataclass
class FlagsSchema:
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


# Config group -> schema its composed node must conform to
SCHEMAS = {
    "simulation": SimulationSchema,
    "initial_state": InitialStateSchema,
    "flags": FlagsSchema,
}
