from omegaconf import DictConfig, OmegaConf
from omegaconf.errors import OmegaConfBaseException

from config.schemas import SCHEMAS
from seiqhrf_sim.errors import ConfigError
from seiqhrf_sim.parameters import canonical_name
from seiqhrf_sim.settings import STATISTICS
from utils.logging import log_call


@log_call
def validate_config(cfg: DictConfig) -> None:
    """Validation of a composed simulation config; raises ConfigError."""

    for group, schema in SCHEMAS.items():
        if group not in cfg:
            raise ConfigError(f"Missing config group '{group}'")
        try:
            OmegaConf.merge(OmegaConf.structured(schema), cfg[group])
        except OmegaConfBaseException as exc:
            raise ConfigError(f"Invalid '{group}' config: {exc}") from exc

    sim = cfg.simulation
    for key in ("horizon", "nsims", "ncores"):
        if sim[key] <= 0:
            raise ConfigError(f"simulation.{key} must be positive")
    if sim.statistic not in STATISTICS:
        raise ConfigError(
            f"simulation.statistic must be one of {STATISTICS}"
        )
    if any(value < 0 for value in cfg.initial_state.values()):
        raise ConfigError("initial_state counts must be non-negative")
    for name in cfg.get("parameters", {}):
        canonical_name(name)
    for spec in cfg.get("policy", {}).get("items", []):
        if "parameter" not in spec or "kind" not in spec:
            raise ConfigError(
                "policy items need a 'parameter' and a 'kind'"
            )
        canonical_name(spec.parameter)
