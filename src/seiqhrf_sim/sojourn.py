"""
Draw strategies and sojourn-time distributions.

Every transition in the engine asks the same question: of ``n``
individuals at risk, each leaving with probability ``p``, how many leave
this step? A DrawStrategy answers it either with random binomial draws or
with the deterministic expectation, so transition code never branches on
a stochastic flag.

Sojourn times in E (incubation) and in I/Q (recovery) are not
exponential. Individuals are tracked in cohorts by the number of steps
already spent in the compartment, and a SojournTime supplies each cohort's
per-step departure hazard:

    h(a) = P(leave during step a | stayed a steps) = 1 - S(a + 1) / S(a)

where S is the survival function of the delay distribution.
"""

from abc import ABC, abstractmethod
from typing import Union

import numpy as np
from scipy import stats  # type: ignore

from utils.logging import log_call
from .errors import InvalidStateError

ArrayLike = Union[int, float, np.ndarray]


@log_call
def apportion(expected: np.ndarray) -> np.ndarray:
    """
    Round expected counts to integers that preserve the rounded total.

    Each entry gets the floor of its expectation; the remainder of the
    rounded total goes to the entries with the largest fractional parts
    (ties broken by position). No entry ever exceeds the ceiling of its
    expectation.

    Parameters
    ----------
    expected : np.ndarray
        Non-negative expected counts

    Returns
    -------
    counts : np.ndarray
        Integer counts, same shape as ``expected``

    Examples
    --------
    >>> apportion(np.array([0.4, 0.4, 0.4])).tolist()
    [1, 0, 0]
    """
    expected = np.asarray(expected, dtype=float)
    floors = np.floor(expected)
    fractions = expected - floors
    total = int(np.floor(expected.sum() + 0.5))
    counts = floors.astype(np.int64)
    remainder = total - int(counts.sum())
    if remainder > 0:
        flat_fractions = fractions.ravel()
        order = np.argsort(-flat_fractions, kind="stable")[:remainder]
        flat_counts = counts.ravel()
        flat_counts[order[flat_fractions[order] > 0]] += 1
        counts = flat_counts.reshape(expected.shape)
    return counts


class DrawStrategy(ABC):
    """How many of ``at_risk`` individuals move, given probability ``prob``."""

    @abstractmethod
    def draw(
        self,
        at_risk: ArrayLike,
        prob: ArrayLike,
        rng: np.random.Generator
    ) -> np.ndarray:
        """Return integer movers with the same shape as ``at_risk``."""

    @abstractmethod
    def split(
        self,
        total: int,
        proportions: np.ndarray,
        rng: np.random.Generator
    ) -> np.ndarray:
        """Divide ``total`` individuals among categories."""


class BinomialDraw(DrawStrategy):
    """Each individual moves independently with probability ``prob``."""

    def draw(self, at_risk, prob, rng):
        return np.asarray(rng.binomial(at_risk, prob), dtype=np.int64)

    def split(self, total, proportions, rng):
        return rng.multinomial(int(total), proportions).astype(np.int64)


class ExpectedDraw(DrawStrategy):
    """The expected number of movers, rounded by ``apportion``."""

    def draw(self, at_risk, prob, rng):
        expected = np.asarray(at_risk, dtype=float) * np.asarray(prob)
        return apportion(np.broadcast_to(expected, np.shape(at_risk)))

    def split(self, total, proportions, rng):
        return apportion(int(total) * np.asarray(proportions, dtype=float))


@log_call
def make_draw(stochastic: bool) -> DrawStrategy:
    """BinomialDraw when ``stochastic`` is true, ExpectedDraw otherwise."""
    return BinomialDraw() if stochastic else ExpectedDraw()


class SojournTime(ABC):
    """Distribution of the time spent in a compartment, in timesteps."""

    @abstractmethod
    def hazard(self, ages: np.ndarray) -> np.ndarray:
        """Per-step departure probability for cohorts aged ``ages``."""


class WeibullSojourn(SojournTime):
    """
    Weibull-distributed sojourn time.

    Shape above 1 gives an increasing hazard, i.e. delays more
    concentrated around the mean than an exponential of the same mean.

    Parameters
    ----------
    shape : float
        Weibull shape parameter k > 0
    scale : float
        Weibull scale parameter lambda > 0, in timesteps
    """

    def __init__(self, shape: float, scale: float):
        if shape <= 0 or scale <= 0:
            raise InvalidStateError(
                f"Weibull shape and scale must be positive, got "
                f"shape={shape}, scale={scale}"
            )
        self.shape = float(shape)
        self.scale = float(scale)
        self._dist = stats.weibull_min(self.shape, scale=self.scale)

    def hazard(self, ages):
        ages = np.asarray(ages, dtype=float)
        log_ratio = self._dist.logsf(ages + 1) - self._dist.logsf(ages)
        with np.errstate(invalid="ignore"):
            hazard = -np.expm1(log_ratio)
        # logsf is -inf far in the tail; those cohorts leave for certain
        return np.clip(np.nan_to_num(hazard, nan=1.0), 0.0, 1.0)

    def __repr__(self) -> str:
        return f"WeibullSojourn(shape={self.shape}, scale={self.scale})"


class ExponentialSojourn(SojournTime):
    """Memoryless sojourn: a constant per-step departure probability."""

    def __init__(self, rate: float):
        if not 0 <= rate <= 1:
            raise InvalidStateError(
                f"Per-step rate must lie in [0, 1], got {rate}"
            )
        self.rate = float(rate)

    def hazard(self, ages):
        return np.full(np.shape(ages), self.rate)

    def __repr__(self) -> str:
        return f"ExponentialSojourn(rate={self.rate})"


@log_call
def make_sojourn(rate: float, shape=None, scale=None) -> SojournTime:
    """Weibull when shape and scale are both given, exponential otherwise."""
    if shape is None or scale is None:
        return ExponentialSojourn(rate)
    return WeibullSojourn(shape, scale)


class DelaySampler:
    """
    Draws how many members of each age cohort complete their sojourn.

    Pairs a SojournTime with a DrawStrategy, so random and expected-value
    departures share one contract.
    """

    def __init__(self, sojourn: SojournTime, strategy: DrawStrategy):
        self.sojourn = sojourn
        self.strategy = strategy

    def draw(self, cohorts: np.ndarray, rng: np.random.Generator) -> np.ndarray:
        ages = np.arange(len(cohorts))
        return self.strategy.draw(cohorts, self.sojourn.hazard(ages), rng)
