"""
Policy evaluation: turning intervention policies into per-day sequences.

Interventions such as isolation ramps, social-distancing steps or lockdown
windows are expressed as per-day parameter sequences. The helpers here
build those sequences; ``apply_policies`` applies a list of declarative
policy specs (as found in the Hydra ``policy`` config group) to a
ParameterSet.
"""

from typing import Any, Callable, Iterable, List, Mapping

import numpy as np

from utils.logging import log_call
from .errors import ConfigError
from .parameters import ParameterSet, canonical_name


def _check_horizon(horizon: int) -> None:
    if horizon <= 0:
        raise ConfigError(f"Horizon must be positive, got {horizon}")


@log_call
def constant(value: float, horizon: int) -> List[float]:
    """Sequence holding ``value`` on every day."""
    _check_horizon(horizon)
    return [float(value)] * horizon


@log_call
def linear_ramp(
    start_value: float,
    end_value: float,
    ramp_days: int,
    horizon: int,
    start_day: int = 0
) -> List[float]:
    """
    Hold ``start_value``, ramp linearly to ``end_value``, then hold it.

    The ramp begins on ``start_day`` and reaches ``end_value`` on day
    ``start_day + ramp_days``.

    Examples
    --------
    >>> linear_ramp(0.0, 1.0, ramp_days=4, horizon=6)
    [0.0, 0.25, 0.5, 0.75, 1.0, 1.0]
    """
    _check_horizon(horizon)
    if ramp_days < 0 or start_day < 0:
        raise ConfigError("ramp_days and start_day must be non-negative")
    days = np.arange(horizon, dtype=float)
    if ramp_days == 0:
        fraction = (days >= start_day).astype(float)
    else:
        fraction = np.clip((days - start_day) / ramp_days, 0.0, 1.0)
    values = start_value + fraction * (end_value - start_value)
    return [float(v) for v in values]


@log_call
def step_schedule(
    initial: float,
    changes: Mapping[int, float],
    horizon: int
) -> List[float]:
    """
    Piecewise-constant sequence.

    ``changes`` maps a day to the value that takes effect from that day on.

    Examples
    --------
    >>> step_schedule(10.0, {2: 5.0, 4: 7.5}, horizon=6)
    [10.0, 10.0, 5.0, 5.0, 7.5, 7.5]
    """
    _check_horizon(horizon)
    values = np.full(horizon, float(initial))
    for day in sorted(int(d) for d in changes):
        if day < 0:
            raise ConfigError(f"Change day must be non-negative, got {day}")
        values[day:] = float(changes[day])
    return [float(v) for v in values]


@log_call
def window(
    base: float,
    value: float,
    start_day: int,
    end_day: int,
    horizon: int
) -> List[float]:
    """
    ``value`` on days ``start_day`` up to (excluding) ``end_day``, else
    ``base``. Models a lockdown or any other temporary measure.
    """
    _check_horizon(horizon)
    if not 0 <= start_day <= end_day:
        raise ConfigError(
            f"Invalid window [{start_day}, {end_day}): need "
            f"0 <= start_day <= end_day"
        )
    values = np.full(horizon, float(base))
    values[start_day:end_day] = float(value)
    return [float(v) for v in values]


@log_call
def evaluate_policy(func: Callable[[int], float], horizon: int) -> List[float]:
    """
    Sample a policy function ``t -> value`` into a per-day sequence.

    The function is called once per day here, never by the engine.
    """
    _check_horizon(horizon)
    return [float(func(t)) for t in range(horizon)]


_BUILDERS = {
    "constant": lambda spec, horizon: constant(spec["value"], horizon),
    "ramp": lambda spec, horizon: linear_ramp(
        spec["start_value"], spec["end_value"], int(spec["ramp_days"]),
        horizon, start_day=int(spec.get("start_day", 0)),
    ),
    "step": lambda spec, horizon: step_schedule(
        spec["initial"],
        {int(day): v for day, v in dict(spec["changes"]).items()},
        horizon,
    ),
    "window": lambda spec, horizon: window(
        spec["base"], spec["value"], int(spec["start_day"]),
        int(spec["end_day"]), horizon,
    ),
}


@log_call
def build_policy(spec: Mapping[str, Any], horizon: int) -> List[float]:
    """
    Evaluate one declarative policy spec.

    A spec names its ``kind`` (constant, ramp, step or window) and the
    arguments of the matching builder, e.g.::

        {"parameter": "quar_rate", "kind": "ramp", "start_value": 0.0333,
         "end_value": 0.3333, "ramp_days": 17}
    """
    kind = spec.get("kind")
    if kind not in _BUILDERS:
        raise ConfigError(
            f"Unknown policy kind {kind!r}; expected one of "
            f"{sorted(_BUILDERS)}"
        )
    try:
        return _BUILDERS[kind](spec, horizon)
    except ConfigError:
        raise
    except KeyError as exc:
        raise ConfigError(
            f"Policy of kind '{kind}' is missing field {exc}"
        ) from exc
    except (TypeError, ValueError) as exc:
        raise ConfigError(
            f"Policy of kind '{kind}' has a non-numeric field: {exc}"
        ) from exc


@log_call
def apply_policies(
    parameters: ParameterSet,
    specs: Iterable[Mapping[str, Any]],
    horizon: int
) -> ParameterSet:
    """
    Return a copy of ``parameters`` with each policy's sequence applied.

    Later specs for the same parameter replace earlier ones.
    """
    overrides = {}
    for spec in specs:
        if "parameter" not in spec:
            raise ConfigError(f"Policy spec without 'parameter': {spec!r}")
        name = canonical_name(spec["parameter"])
        overrides[name] = build_policy(spec, horizon)
    if not overrides:
        return parameters
    return parameters.with_overrides(**overrides)
