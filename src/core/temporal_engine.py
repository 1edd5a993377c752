from dataclasses import dataclass
from typing import Optional

from omegaconf import DictConfig, OmegaConf

from seiqhrf_sim.compartments import CompartmentCounts, SimulationOutput
from seiqhrf_sim.orchestrator import run_simulation
from seiqhrf_sim.parameters import ParameterSet
from seiqhrf_sim.policies import apply_policies
from seiqhrf_sim.settings import SimulationConfig, StochasticFlags
from utils.logging import log_call


@dataclass
class TemporalEngine:
    """Runs the scenario described by a composed Hydra config."""

    cfg: DictConfig

    @log_call
    def build_config(self) -> SimulationConfig:
        """Translate the config groups into a SimulationConfig.

        Policies in the ``policy`` group are evaluated into per-day
        sequences here, before the engine sees any parameter.
        """
        sim = self.cfg.simulation
        horizon = int(sim.horizon)
        parameters = ParameterSet.from_flat(
            OmegaConf.to_container(self.cfg.parameters, resolve=True)
        )
        policy = OmegaConf.to_container(self.cfg.policy, resolve=True)
        parameters = apply_policies(
            parameters, policy.get("items", []), horizon
        )
        initial = CompartmentCounts(**{
            key: int(value) for key, value in
            OmegaConf.to_container(self.cfg.initial_state).items()
        })
        flags = StochasticFlags(**OmegaConf.to_container(self.cfg.flags))
        seed: Optional[int] = sim.seed
        return SimulationConfig(
            horizon=horizon,
            nsims=int(sim.nsims),
            ncores=int(sim.ncores),
            initial=initial,
            parameters=parameters,
            flags=flags,
            vital=bool(sim.vital),
            statistic=str(sim.statistic),
            seed=seed,
        )

    @log_call
    def run(self, keep_runs: bool = False) -> SimulationOutput:
        """Simulate all replicates and aggregate them."""
        return run_simulation(self.build_config(), keep_runs=keep_runs)
