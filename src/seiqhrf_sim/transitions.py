"""
Transition engine: one timestep of disease-driven flows.

State is kept as compartment counts, with E, I, Q and H further split into
age cohorts (number of steps already spent in the compartment) so that
sojourn times need not be exponential and fatality can depend on time in
hospital. Q cohorts carry the infectious age of I, so recovery from Q uses
the time since becoming infectious.

Flows are drawn in a fixed order:

    1. infection        S -> E
    2. progression      E -> I
    3. quarantine       I -> Q
    4. hospitalisation  I -> H, Q -> H
    5. discharge        H -> R
    6. recovery         I -> R, Q -> R
    7. clearance        E -> S, I -> S, Q -> S
    8. fatality         H -> F

Each draw uses the start-of-step count of its source compartment less what
already left it earlier in the order. Nothing that enters a compartment
during a step can leave it in the same step, and the new state is only
composed once all flows are known.
"""

from dataclasses import dataclass
from typing import Dict, NamedTuple, Optional

import numpy as np

from utils.logging import log_call
from .compartments import CompartmentCounts, Flows
from .errors import InvalidStateError
from .parameters import (
    CapacityParameters,
    InfectionParameters,
    ParameterSet,
)
from .sojourn import DelaySampler, DrawStrategy, make_draw, make_sojourn
from .settings import StochasticFlags


def _cohorts(values: np.ndarray) -> np.ndarray:
    return np.asarray(values, dtype=np.int64)


@dataclass(frozen=True)
class CohortState:
    """
    Compartment counts with age cohorts for E, I, Q and H.

    ``e[a]`` is the number of exposed individuals who have spent ``a``
    steps in E; the last element of each cohort array collects everyone at
    or beyond the maximum tracked age.
    """

    s: int
    e: np.ndarray
    i: np.ndarray
    q: np.ndarray
    h: np.ndarray
    r: int
    f: int

    @classmethod
    def from_counts(
        cls,
        counts: CompartmentCounts,
        max_age: int
    ) -> "CohortState":
        """Initial state: everyone starts at age 0 of their compartment."""
        counts.validate()
        n_ages = max(int(max_age), 0) + 1

        def fresh(n: int) -> np.ndarray:
            cohorts = np.zeros(n_ages, dtype=np.int64)
            cohorts[0] = n
            return cohorts

        return cls(
            s=int(counts.s), e=fresh(counts.e), i=fresh(counts.i),
            q=fresh(counts.q), h=fresh(counts.h), r=int(counts.r),
            f=int(counts.f),
        )

    @property
    def n_ages(self) -> int:
        return len(self.e)

    def counts(self) -> CompartmentCounts:
        return CompartmentCounts(
            self.s, int(self.e.sum()), int(self.i.sum()),
            int(self.q.sum()), int(self.h.sum()), self.r, self.f,
        )

    def living(self) -> int:
        return self.counts().living()

    def validate(self) -> "CohortState":
        """Return self, raising InvalidStateError on any negative count."""
        if self.s < 0 or self.r < 0 or self.f < 0 or any(
            np.any(c < 0) for c in (self.e, self.i, self.q, self.h)
        ):
            raise InvalidStateError(
                f"Negative compartment count in state {tuple(self.counts())}"
            )
        return self

    def without(self, removed: "CohortState") -> "CohortState":
        """Subtract ``removed`` compartment by compartment and cohort by cohort."""
        return CohortState(
            s=self.s - removed.s,
            e=self.e - removed.e,
            i=self.i - removed.i,
            q=self.q - removed.q,
            h=self.h - removed.h,
            r=self.r - removed.r,
            f=self.f - removed.f,
        ).validate()


class StepOutcome(NamedTuple):
    """Flows of one timestep, and who stayed put."""

    flows: Flows
    stayers: CohortState
    # I -> Q movers by infectious age; Q keeps that age
    quarantined: np.ndarray


def _age(cohorts: np.ndarray, entrants: int) -> np.ndarray:
    aged = np.zeros_like(cohorts)
    aged[1:] = cohorts[:-1]
    aged[-1] += cohorts[-1]
    aged[0] = entrants
    return aged


@log_call
def advance(
    stayers: CohortState,
    outcome: StepOutcome,
    arrivals: Optional[CompartmentCounts] = None
) -> CohortState:
    """
    Compose the next state from stayers, disease flows and arrivals.

    Stayers and I -> Q movers age by one step; all other entrants start at
    age 0 of their new compartment.
    """
    flows = outcome.flows
    if arrivals is None:
        arrivals = CompartmentCounts(0, 0, 0, 0, 0, 0, 0)
    return CohortState(
        s=stayers.s + flows.into_s() + arrivals.s,
        e=_age(stayers.e, flows.se + arrivals.e),
        i=_age(stayers.i, flows.ei + arrivals.i),
        q=_age(stayers.q + outcome.quarantined, arrivals.q),
        h=_age(stayers.h, flows.into_h() + arrivals.h),
        r=stayers.r + flows.into_r() + arrivals.r,
        f=stayers.f + flows.hf + arrivals.f,
    ).validate()


def _require_probability(name: str, value: float) -> float:
    if value is None or not 0.0 <= value <= 1.0:
        raise InvalidStateError(
            f"Probability '{name}' must lie in [0, 1], got {value}"
        )
    return value


@log_call
def infection_probability(
    infection: InfectionParameters,
    e: int,
    i: int,
    q: int,
    mixing: int
) -> float:
    """
    Per-step probability that one susceptible becomes exposed.

    A susceptible makes ``act_rate_c * n_c / mixing`` contacts with members
    of each infectious-adjacent compartment ``c`` and escapes infection on
    each of them with probability ``1 - inf_prob_c``:

        p = 1 - prod_c (1 - inf_prob_c) ** (act_rate_c * n_c / mixing)

    Parameters
    ----------
    infection : InfectionParameters
        Scalar contact rates and transmission probabilities
    e, i, q : int
        Current Exposed, Infectious and Quarantined counts
    mixing : int
        Size of the mixing population

    Returns
    -------
    p : float
        Probability in [0, 1]
    """
    if mixing <= 0:
        return 0.0
    escape = 1.0
    for label, count in (("e", e), ("i", i), ("q", q)):
        prob = _require_probability(
            f"inf_prob_{label}", getattr(infection, f"inf_prob_{label}")
        )
        act_rate = getattr(infection, f"act_rate_{label}")
        if act_rate < 0:
            raise InvalidStateError(
                f"Contact rate 'act_rate_{label}' must be non-negative, "
                f"got {act_rate}"
            )
        contacts = act_rate * count / mixing
        escape *= (1.0 - prob) ** contacts
    return _require_probability("infection", 1.0 - escape)


@log_call
def fatality_probability(
    capacity: CapacityParameters,
    occupancy: int,
    ages: np.ndarray
) -> np.ndarray:
    """
    Per-step fatality probability of each hospital cohort.

    With ``x = max(occupancy - hosp_cap, 0) / occupancy`` the fraction of
    hospitalised individuals beyond capacity and ``a`` the days already
    spent in hospital:

        p(a) = fat_rate_base
               + x * (fat_rate_overcap - fat_rate_base) / (1 + fat_tcoeff * a)

    Below capacity every cohort dies at the base rate. Above it the
    over-capacity penalty is shared across all occupants in proportion to
    the excess, and shrinks for patients who have already survived longer.

    Parameters
    ----------
    capacity : CapacityParameters
        Scalar hospital capacity and fatality parameters
    occupancy : int
        Hospitalised count at the start of the step
    ages : np.ndarray
        Days in hospital of each cohort

    Returns
    -------
    probs : np.ndarray
        Fatality probability per cohort, each in [0, 1]
    """
    base = _require_probability("fat_rate_base", capacity.fat_rate_base)
    overcap = _require_probability(
        "fat_rate_overcap", capacity.fat_rate_overcap
    )
    if capacity.fat_tcoeff < 0 or capacity.hosp_cap < 0:
        raise InvalidStateError(
            "fat_tcoeff and hosp_cap must be non-negative"
        )
    ages = np.asarray(ages, dtype=float)
    if occupancy <= capacity.hosp_cap:
        return np.full(ages.shape, base)
    excess = (occupancy - capacity.hosp_cap) / occupancy
    attenuation = 1.0 / (1.0 + capacity.fat_tcoeff * ages)
    return base + excess * (overcap - base) * attenuation


class TransitionEngine:
    """
    Computes the disease-driven flows of one timestep.

    The stochastic flags are read once, here: each transition gets a
    DrawStrategy (binomial draws or rounded expectations) for the lifetime
    of the engine.

    Parameters
    ----------
    flags : StochasticFlags
        Which transitions use random draws
    """

    def __init__(self, flags: Optional[StochasticFlags] = None):
        self.flags = flags or StochasticFlags()
        self.draws: Dict[str, DrawStrategy] = {
            name: make_draw(getattr(self.flags, name))
            for name in (
                "infection", "progression", "quarantine", "hospitalisation",
                "discharge", "recovery", "clearance", "fatality",
            )
        }

    @log_call
    def step(
        self,
        state: CohortState,
        params: ParameterSet,
        rng: np.random.Generator
    ) -> StepOutcome:
        """
        Draw all flows for one timestep.

        Parameters
        ----------
        state : CohortState
            State at the start of the step
        params : ParameterSet
            Scalar parameters for this step (see ``RateSchedule.at``)
        rng : np.random.Generator
            Random stream of the replicate

        Returns
        -------
        outcome : StepOutcome
            Edge flows, the stayers, and the I -> Q movers by age

        Raises
        ------
        InvalidStateError
            On a negative count or a probability outside [0, 1]
        """
        state.validate()
        prog = params.progression
        draws = self.draws
        ages = np.arange(state.n_ages)

        # Working copies: what is still available to leave each compartment
        e = state.e.copy()
        i = state.i.copy()
        q = state.q.copy()
        h = state.h.copy()

        # 1. infection
        mixing = state.s + int(e.sum() + i.sum() + q.sum()) + state.r
        p_inf = infection_probability(
            params.infection, int(e.sum()), int(i.sum()), int(q.sum()), mixing
        )
        se = min(int(draws["infection"].draw(state.s, p_inf, rng)), state.s)

        # 2. progression
        progression = DelaySampler(
            make_sojourn(
                _require_probability("prog_rate", prog.prog_rate),
                prog.prog_dist_shape, prog.prog_dist_scale,
            ),
            draws["progression"],
        )
        ei = _cohorts(progression.draw(e, rng))
        e -= ei

        # 3. quarantine
        iq = _cohorts(draws["quarantine"].draw(
            i, _require_probability("quar_rate", prog.quar_rate), rng
        ))
        i -= iq

        # 4. hospitalisation
        hosp_rate = _require_probability("hosp_rate", prog.hosp_rate)
        ih = _cohorts(draws["hospitalisation"].draw(i, hosp_rate, rng))
        i -= ih
        qh = _cohorts(draws["hospitalisation"].draw(q, hosp_rate, rng))
        q -= qh

        # 5. discharge
        hr = _cohorts(draws["discharge"].draw(
            h, _require_probability("disch_rate", prog.disch_rate), rng
        ))
        h -= hr

        # 6. recovery
        recovery = DelaySampler(
            make_sojourn(
                _require_probability("rec_rate", prog.rec_rate),
                prog.rec_dist_shape, prog.rec_dist_scale,
            ),
            draws["recovery"],
        )
        ir = _cohorts(recovery.draw(i, rng))
        i -= ir
        qr = _cohorts(recovery.draw(q, rng))
        q -= qr

        # 7. clearance
        clearance = draws["clearance"]
        es = _cohorts(clearance.draw(
            e, _require_probability("clear_rate_e", prog.clear_rate_e), rng
        ))
        e -= es
        is_ = _cohorts(clearance.draw(
            i, _require_probability("clear_rate_i", prog.clear_rate_i), rng
        ))
        i -= is_
        qs = _cohorts(clearance.draw(
            q, _require_probability("clear_rate_q", prog.clear_rate_q), rng
        ))
        q -= qs

        # 8. fatality, against start-of-step occupancy
        p_fat = fatality_probability(
            params.capacity, int(state.h.sum()), ages
        )
        hf = _cohorts(draws["fatality"].draw(h, p_fat, rng))
        h -= hf

        stayers = CohortState(
            s=state.s - se, e=e, i=i, q=q, h=h, r=state.r, f=state.f,
        ).validate()
        flows = Flows(
            se=se, ei=int(ei.sum()), es=int(es.sum()), is_=int(is_.sum()),
            iq=int(iq.sum()), ir=int(ir.sum()), ih=int(ih.sum()),
            qs=int(qs.sum()), qr=int(qr.sum()), qh=int(qh.sum()),
            hr=int(hr.sum()), hf=int(hf.sum()),
        )
        return StepOutcome(flows=flows, stayers=stayers, quarantined=iq)
