"""
Compartment data model for the SEIQHRF simulation.

This module defines the immutable compartment count record, the per-replicate
time series produced by a single run, and the aggregated summary handed to
external reporting.
"""

from dataclasses import dataclass, field
from typing import Iterator, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
import pandas as pd  # type: ignore

from .errors import InvalidStateError

COMPARTMENTS: Tuple[str, ...] = ("S", "E", "I", "Q", "H", "R", "F")

# Directed edges of the compartment graph, in the column order used for
# per-step flow series.
FLOWS: Tuple[str, ...] = (
    "se", "ei", "es", "is", "iq", "ir", "ih",
    "qs", "qr", "qh", "hr", "hf",
)


class CompartmentCounts(NamedTuple):
    """Number of individuals in each compartment at one timestep."""

    s: int
    e: int
    i: int
    q: int
    h: int
    r: int
    f: int

    def total(self) -> int:
        """Living plus dead population."""
        return int(sum(self))

    def living(self) -> int:
        """Everyone except the Fatal compartment."""
        return self.total() - self.f

    def as_array(self) -> np.ndarray:
        return np.array(self, dtype=np.int64)

    @classmethod
    def from_array(cls, values: Sequence[int]) -> "CompartmentCounts":
        if len(values) != len(COMPARTMENTS):
            raise InvalidStateError(
                f"Expected {len(COMPARTMENTS)} compartment values, "
                f"got {len(values)}"
            )
        return cls(*(int(v) for v in values))

    def validate(self) -> "CompartmentCounts":
        """Return self, raising InvalidStateError if any count is negative."""
        negative = [
            name for name, value in zip(COMPARTMENTS, self) if value < 0
        ]
        if negative:
            raise InvalidStateError(
                f"Negative compartment count(s) {negative}: {tuple(self)}"
            )
        return self


class Flows(NamedTuple):
    """Number of individuals moving along each edge during one timestep."""

    se: int = 0
    ei: int = 0
    es: int = 0
    is_: int = 0
    iq: int = 0
    ir: int = 0
    ih: int = 0
    qs: int = 0
    qr: int = 0
    qh: int = 0
    hr: int = 0
    hf: int = 0

    def into_s(self) -> int:
        return self.es + self.is_ + self.qs

    def into_h(self) -> int:
        return self.ih + self.qh

    def into_r(self) -> int:
        return self.ir + self.qr + self.hr


@dataclass
class RunResult:
    """
    Time series produced by one stochastic replicate.

    Row ``t`` of ``counts`` holds the compartment counts at timestep ``t``;
    row 0 is the initial state. ``flows``, ``arrivals`` and ``departures``
    record what happened during the step that produced row ``t`` and are
    zero for row 0.

    Attributes
    ----------
    replicate : int
        Index of the replicate within its batch
    counts : np.ndarray
        Shape (horizon, 7) compartment counts, columns ordered as COMPARTMENTS
    flows : np.ndarray
        Shape (horizon, 12) transition counts, columns ordered as FLOWS
    arrivals : np.ndarray
        Shape (horizon,) vital-dynamics arrivals per step
    departures : np.ndarray
        Shape (horizon,) vital-dynamics background departures per step
    """

    replicate: int
    counts: np.ndarray
    flows: np.ndarray
    arrivals: np.ndarray
    departures: np.ndarray

    def __len__(self) -> int:
        return int(self.counts.shape[0])

    def __getitem__(self, t: int) -> CompartmentCounts:
        return CompartmentCounts.from_array(self.counts[t])

    def __iter__(self) -> Iterator[CompartmentCounts]:
        for t in range(len(self)):
            yield self[t]

    def population(self) -> np.ndarray:
        """Running total: initial population plus net vital dynamics."""
        initial = int(self.counts[0].sum())
        return initial + np.cumsum(self.arrivals - self.departures)

    def to_frame(self) -> pd.DataFrame:
        """Counts and flows as a DataFrame indexed by timestep."""
        frame = pd.DataFrame(self.counts, columns=list(COMPARTMENTS))
        flow_frame = pd.DataFrame(
            self.flows, columns=[f"{name}_flow" for name in FLOWS]
        )
        frame = pd.concat([frame, flow_frame], axis=1)
        frame["arrivals"] = self.arrivals
        frame["departures"] = self.departures
        frame.index.name = "time"
        return frame


def _frozen(values: np.ndarray) -> np.ndarray:
    values = np.array(values, dtype=float)
    values.setflags(write=False)
    return values


@dataclass(frozen=True)
class AggregatedResult:
    """
    Per-timestep summary of compartment counts across replicates.

    Attributes
    ----------
    statistic : str
        Summary statistic used ("mean" or "median")
    n_replicates : int
        Number of replicates aggregated
    counts : np.ndarray
        Shape (horizon, 7) read-only summary of compartment counts
    flows : np.ndarray
        Shape (horizon, 12) read-only summary of transition counts
    """

    statistic: str
    n_replicates: int
    counts: np.ndarray = field(repr=False)
    flows: np.ndarray = field(repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "counts", _frozen(self.counts))
        object.__setattr__(self, "flows", _frozen(self.flows))

    def __len__(self) -> int:
        return int(self.counts.shape[0])

    def compartment(self, name: str) -> np.ndarray:
        """Series for one compartment label, e.g. ``"H"``."""
        return self.counts[:, COMPARTMENTS.index(name.upper())]

    def to_frame(self, include_flows: bool = False) -> pd.DataFrame:
        frame = pd.DataFrame(self.counts, columns=list(COMPARTMENTS))
        if include_flows:
            flow_frame = pd.DataFrame(
                self.flows, columns=[f"{name}_flow" for name in FLOWS]
            )
            frame = pd.concat([frame, flow_frame], axis=1)
        frame.index.name = "time"
        return frame


@dataclass
class SimulationOutput:
    """Aggregated result plus, optionally, the replicate series behind it."""

    aggregated: AggregatedResult
    runs: Optional[List[RunResult]] = None
