"""
Vital dynamics: background arrivals and departures.

Independent of the epidemic, new individuals arrive in proportion to the
living population and every living compartment loses members to
background mortality. Dead individuals (F) never depart.
"""

from typing import Optional

import numpy as np

from utils.logging import log_call
from .compartments import CompartmentCounts
from .errors import InvalidStateError
from .parameters import VitalParameters
from .settings import StochasticFlags
from .sojourn import make_draw
from .transitions import CohortState


def _probability(name: str, value: float) -> float:
    if not 0.0 <= value <= 1.0:
        raise InvalidStateError(
            f"Probability '{name}' must lie in [0, 1], got {value}"
        )
    return value


class VitalDynamics:
    """
    Arrivals into S, E, I, Q and background departures from all living
    compartments.

    Parameters
    ----------
    flags : StochasticFlags
        ``arrivals`` and ``departures`` select random or expected draws
    """

    def __init__(self, flags: Optional[StochasticFlags] = None):
        flags = flags or StochasticFlags()
        self._arrival_draw = make_draw(flags.arrivals)
        self._departure_draw = make_draw(flags.departures)

    @log_call
    def arrivals(
        self,
        living: int,
        vital: VitalParameters,
        rng: np.random.Generator
    ) -> CompartmentCounts:
        """
        New individuals for this step.

        The total is drawn from the living population with ``a_rate``;
        it is split into E, I and Q by ``a_prop_*``, with the remainder
        going to S.
        """
        if living < 0:
            raise InvalidStateError(f"Negative living population {living}")
        rate = _probability("a_rate", vital.a_rate)
        total = int(self._arrival_draw.draw(living, rate, rng))
        if total == 0:
            return CompartmentCounts(0, 0, 0, 0, 0, 0, 0)
        to_e = _probability("a_prop_e", vital.a_prop_e)
        to_i = _probability("a_prop_i", vital.a_prop_i)
        to_q = _probability("a_prop_q", vital.a_prop_q)
        to_s = 1.0 - (to_e + to_i + to_q)
        if to_s < -1e-12:
            raise InvalidStateError(
                "Arrival proportions a_prop_e + a_prop_i + a_prop_q exceed 1"
            )
        proportions = np.array([max(to_s, 0.0), to_e, to_i, to_q])
        proportions /= proportions.sum()
        s, e, i, q = (
            int(n) for n in self._arrival_draw.split(total, proportions, rng)
        )
        return CompartmentCounts(s=s, e=e, i=i, q=q, h=0, r=0, f=0)

    @log_call
    def departures(
        self,
        stayers: CohortState,
        vital: VitalParameters,
        rng: np.random.Generator
    ) -> CohortState:
        """
        Background deaths among individuals not otherwise moving this step.

        Returns the removals as a CohortState, cohort by cohort, so they
        can be subtracted with ``CohortState.without``.
        """
        draw = self._departure_draw.draw
        return CohortState(
            s=int(draw(stayers.s, _probability("ds_rate", vital.ds_rate), rng)),
            e=draw(stayers.e, _probability("de_rate", vital.de_rate), rng),
            i=draw(stayers.i, _probability("di_rate", vital.di_rate), rng),
            q=draw(stayers.q, _probability("dq_rate", vital.dq_rate), rng),
            h=draw(stayers.h, _probability("dh_rate", vital.dh_rate), rng),
            r=int(draw(stayers.r, _probability("dr_rate", vital.dr_rate), rng)),
            f=0,
        )
