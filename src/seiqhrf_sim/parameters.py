"""
Parameter value objects for the SEIQHRF model.

The model takes some thirty named rates. They are grouped into four
immutable value objects so that each engine component only sees the rates
it uses. Every field is either a scalar or a per-day sequence; the kind of
value a field accepts is declared in its metadata and enforced by the rate
resolver.
"""

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from utils.logging import log_call
from .errors import ConfigError

Rate = Union[float, Sequence[float]]
OptionalRate = Optional[Rate]

# Kinds of parameter values
PROBABILITY = "probability"   # per-contact or per-step probability in [0, 1]
RATE = "rate"                 # non-negative, unbounded (contact rates)
POSITIVE = "positive"         # strictly positive, may be None (Weibull)
CAPACITY = "capacity"         # non-negative integer


def _param(default: Any, kind: str) -> Any:
    return field(default=default, metadata={"kind": kind})


@dataclass(frozen=True)
class InfectionParameters:
    """Contact rates and per-contact transmission probabilities."""

    act_rate_e: Rate = _param(10.0, RATE)
    inf_prob_e: Rate = _param(0.02, PROBABILITY)
    act_rate_i: Rate = _param(10.0, RATE)
    inf_prob_i: Rate = _param(0.05, PROBABILITY)
    act_rate_q: Rate = _param(2.5, RATE)
    inf_prob_q: Rate = _param(0.02, PROBABILITY)


@dataclass(frozen=True)
class ProgressionParameters:
    """
    Rates moving infected individuals between compartments.

    ``prog_*`` govern E to I and ``rec_*`` govern I/Q to R. When both the
    shape and the scale of a sojourn distribution are given the delay is
    Weibull-distributed; when either is None the corresponding ``*_rate``
    is used as a constant per-step probability instead.
    """

    prog_rate: Rate = _param(1 / 10, PROBABILITY)
    prog_dist_shape: OptionalRate = _param(1.5, POSITIVE)
    prog_dist_scale: OptionalRate = _param(5.0, POSITIVE)
    rec_rate: Rate = _param(1 / 20, PROBABILITY)
    rec_dist_shape: OptionalRate = _param(1.5, POSITIVE)
    rec_dist_scale: OptionalRate = _param(35.0, POSITIVE)
    quar_rate: Rate = _param(1 / 30, PROBABILITY)
    hosp_rate: Rate = _param(1 / 100, PROBABILITY)
    disch_rate: Rate = _param(1 / 15, PROBABILITY)
    clear_rate_e: Rate = _param(0.0, PROBABILITY)
    clear_rate_i: Rate = _param(0.0, PROBABILITY)
    clear_rate_q: Rate = _param(0.0, PROBABILITY)


@dataclass(frozen=True)
class CapacityParameters:
    """Hospital capacity and the fatality rates that depend on it."""

    hosp_cap: Rate = _param(40, CAPACITY)
    fat_rate_base: Rate = _param(1 / 50, PROBABILITY)
    fat_rate_overcap: Rate = _param(1 / 25, PROBABILITY)
    fat_tcoeff: Rate = _param(0.5, RATE)


@dataclass(frozen=True)
class VitalParameters:
    """Arrival rate, arrival proportions and background death rates."""

    a_rate: Rate = _param((10.5 / 365) / 1000, PROBABILITY)
    a_prop_e: Rate = _param(0.01, PROBABILITY)
    a_prop_i: Rate = _param(0.001, PROBABILITY)
    a_prop_q: Rate = _param(0.01, PROBABILITY)
    ds_rate: Rate = _param((7 / 365) / 1000, PROBABILITY)
    de_rate: Rate = _param((7 / 365) / 1000, PROBABILITY)
    di_rate: Rate = _param((7 / 365) / 1000, PROBABILITY)
    dq_rate: Rate = _param((7 / 365) / 1000, PROBABILITY)
    dh_rate: Rate = _param((20 / 365) / 1000, PROBABILITY)
    dr_rate: Rate = _param((7 / 365) / 1000, PROBABILITY)


GROUPS: Tuple[Tuple[str, type], ...] = (
    ("infection", InfectionParameters),
    ("progression", ProgressionParameters),
    ("capacity", CapacityParameters),
    ("vital", VitalParameters),
)

# Flat parameter name -> (group attribute, kind)
PARAMETER_INDEX: Dict[str, Tuple[str, str]] = {
    f.name: (group, f.metadata["kind"])
    for group, cls in GROUPS
    for f in fields(cls)
}


@log_call
def canonical_name(name: str) -> str:
    """
    Map a parameter name to its snake-case form.

    Both ``quar_rate`` and the dotted ``quar.rate`` spelling are accepted.

    Raises
    ------
    ConfigError
        If the name is not a known parameter.
    """
    key = name.strip().replace(".", "_")
    if key not in PARAMETER_INDEX:
        raise ConfigError(f"Unknown parameter '{name}'")
    return key


@dataclass(frozen=True)
class ParameterSet:
    """All model parameters, grouped by the component that consumes them."""

    infection: InfectionParameters = field(default_factory=InfectionParameters)
    progression: ProgressionParameters = field(
        default_factory=ProgressionParameters
    )
    capacity: CapacityParameters = field(default_factory=CapacityParameters)
    vital: VitalParameters = field(default_factory=VitalParameters)

    @classmethod
    def from_flat(cls, values: Mapping[str, Any]) -> "ParameterSet":
        """Build a parameter set from flat names, defaults for the rest."""
        return cls().with_overrides(**dict(values))

    def flat(self) -> Dict[str, Any]:
        """Flat ``name -> value`` mapping of every parameter."""
        return {
            name: getattr(getattr(self, group), name)
            for name, (group, _) in PARAMETER_INDEX.items()
        }

    def get(self, name: str) -> Any:
        key = canonical_name(name)
        group, _ = PARAMETER_INDEX[key]
        return getattr(getattr(self, group), key)

    def with_overrides(self, **overrides: Any) -> "ParameterSet":
        """Return a copy with the given flat parameters replaced."""
        by_group: Dict[str, Dict[str, Any]] = {}
        for name, value in overrides.items():
            key = canonical_name(name)
            group, _ = PARAMETER_INDEX[key]
            by_group.setdefault(group, {})[key] = value
        changes = {
            group: replace(getattr(self, group), **group_values)
            for group, group_values in by_group.items()
        }
        return replace(self, **changes)
