"""
Rate resolution for time-varying parameters.

Any parameter may be given as a scalar, constant for the whole run, or as a
per-day sequence with one value per timestep. Sequences are produced ahead
of time by a policy-evaluation step (see ``policies``) so that the engine
only ever reads plain numbers.
"""

from dataclasses import fields
from typing import Any, Dict, Optional

import numpy as np

from utils.logging import log_call
from .errors import ConfigError
from .parameters import (
    CAPACITY,
    GROUPS,
    PARAMETER_INDEX,
    POSITIVE,
    PROBABILITY,
    RATE,
    ParameterSet,
    Rate,
)


def _is_scalar(value: Any) -> bool:
    return np.ndim(value) == 0


@log_call
def resolve_rate(value: Rate, t: int, horizon: int) -> float:
    """
    Return the value of a parameter effective at timestep ``t``.

    Parameters
    ----------
    value : float or sequence of float
        Scalar (constant for all timesteps) or per-day sequence
    t : int
        Timestep index
    horizon : int
        Number of timesteps in the run

    Returns
    -------
    rate : float
        Scalar value at ``t``

    Raises
    ------
    ConfigError
        If the sequence is shorter than the horizon or ``t`` lies outside it

    Examples
    --------
    >>> resolve_rate(0.2, t=10, horizon=30)
    0.2
    >>> resolve_rate([0.1, 0.2, 0.3], t=1, horizon=3)
    0.2
    """
    if not 0 <= t < horizon:
        raise ConfigError(f"Timestep {t} outside horizon of {horizon}")
    if value is None:
        raise ConfigError("Parameter value must not be None")
    try:
        if _is_scalar(value):
            return float(value)
        series = np.asarray(value, dtype=float)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Parameter value is not numeric: {value!r}") \
            from exc
    if series.ndim != 1 or len(series) < horizon:
        raise ConfigError(
            f"Per-day sequence of length {len(series)} is shorter than "
            f"the horizon ({horizon})"
        )
    return float(series[t])


def _check_domain(name: str, series: np.ndarray, kind: str) -> None:
    if not np.all(np.isfinite(series)):
        raise ConfigError(f"Parameter '{name}' has non-finite values")
    if kind == PROBABILITY:
        if np.any((series < 0) | (series > 1)):
            raise ConfigError(
                f"Parameter '{name}' must lie in [0, 1], got range "
                f"[{series.min():.6g}, {series.max():.6g}]"
            )
    elif kind == RATE:
        if np.any(series < 0):
            raise ConfigError(f"Parameter '{name}' must be non-negative")
    elif kind == POSITIVE:
        if np.any(series <= 0):
            raise ConfigError(f"Parameter '{name}' must be positive")
    elif kind == CAPACITY:
        if np.any(series < 0) or np.any(series != np.floor(series)):
            raise ConfigError(
                f"Parameter '{name}' must be a non-negative integer"
            )
    else:
        raise ConfigError(f"Unknown kind '{kind}' for parameter '{name}'")


@log_call
def resolve_series(
    name: str,
    value: Optional[Rate],
    horizon: int,
    kind: str
) -> Optional[np.ndarray]:
    """
    Validate a parameter and expand it to one value per timestep.

    Sequences longer than the horizon are truncated. ``None`` is only
    allowed for POSITIVE parameters (Weibull shape and scale), where it
    selects the exponential sojourn, and is passed through unchanged.

    Raises
    ------
    ConfigError
        On a short or malformed sequence or a value outside the domain of
        ``kind``
    """
    if value is None:
        if kind == POSITIVE:
            return None
        raise ConfigError(f"Parameter '{name}' must not be None")
    try:
        raw = np.asarray(value, dtype=float)
    except (TypeError, ValueError) as exc:
        raise ConfigError(
            f"Parameter '{name}' is not numeric: {value!r}"
        ) from exc
    if raw.ndim == 0:
        series = np.full(horizon, float(raw))
    elif raw.ndim == 1:
        if len(raw) < horizon:
            raise ConfigError(
                f"Per-day sequence for '{name}' has length {len(raw)}, "
                f"shorter than the horizon ({horizon})"
            )
        series = raw[:horizon].copy()
    else:
        raise ConfigError(
            f"Parameter '{name}' must be a scalar or a 1-D sequence"
        )
    _check_domain(name, series, kind)
    series.setflags(write=False)
    return series


class RateSchedule:
    """
    A ParameterSet resolved into fixed per-day values.

    Built once per scenario, before any replicate runs; ``at(t)`` returns a
    ParameterSet holding only scalars for timestep ``t``.

    Parameters
    ----------
    series : dict
        Flat parameter name -> per-day array (or None)
    horizon : int
        Number of timesteps covered
    """

    def __init__(self, series: Dict[str, Optional[np.ndarray]], horizon: int):
        self.series = series
        self.horizon = horizon

    def value(self, name: str, t: int) -> Optional[float]:
        values = self.series[name]
        if values is None:
            return None
        return float(values[t])

    def at(self, t: int) -> ParameterSet:
        if not 0 <= t < self.horizon:
            raise ConfigError(
                f"Timestep {t} outside horizon of {self.horizon}"
            )
        groups = {}
        for group, cls in GROUPS:
            groups[group] = cls(**{
                f.name: self._scalar(f.name, t) for f in fields(cls)
            })
        return ParameterSet(**groups)

    def _scalar(self, name: str, t: int) -> Any:
        value = self.value(name, t)
        if value is not None and PARAMETER_INDEX[name][1] == CAPACITY:
            return int(value)
        return value


@log_call
def resolve_schedule(parameters: ParameterSet, horizon: int) -> RateSchedule:
    """
    Validate every parameter and pre-resolve it over the horizon.

    Raises
    ------
    ConfigError
        On any invalid parameter, or if the arrival proportions
        ``a_prop_e + a_prop_i + a_prop_q`` exceed 1 on any day
    """
    if horizon <= 0:
        raise ConfigError(f"Horizon must be positive, got {horizon}")
    series = {
        name: resolve_series(name, value, horizon, PARAMETER_INDEX[name][1])
        for name, value in parameters.flat().items()
    }
    proportions = series["a_prop_e"] + series["a_prop_i"] + series["a_prop_q"]
    if np.any(proportions > 1 + 1e-12):
        raise ConfigError(
            "Arrival proportions a_prop_e + a_prop_i + a_prop_q exceed 1"
        )
    return RateSchedule(series, horizon)
