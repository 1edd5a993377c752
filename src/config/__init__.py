"""
Hydra entry point for scenario configs.

``configs/config.yaml`` composes the ``simulation``, ``initial_state``,
``parameters``, ``flags`` and ``policy`` groups. Set ``SEIQHRF_CONFIG_DIR``
to compose from another directory laid out the same way.
"""

import logging
import os
from pathlib import Path
from typing import List, Optional

from hydra import compose, initialize_config_dir
from omegaconf import DictConfig

from core import TemporalEngine
from seiqhrf_sim.settings import SimulationConfig
from utils.logging import log_call
from utils.validation import validate_config

CONFIG_DIR = Path(__file__).resolve().parents[2] / "configs"

logger = logging.getLogger(__name__)


def _config_dir() -> Path:
    override = os.getenv("SEIQHRF_CONFIG_DIR")
    return Path(override) if override else CONFIG_DIR


@log_call
def load_config(
    overrides: Optional[List[str]] = None,
    config_name: str = "config"
) -> DictConfig:
    """
    Compose a scenario config and validate it.

    Parameters
    ----------
    overrides : list of str, optional
        Hydra overrides, e.g. ``["policy=lockdown", "simulation.nsims=4"]``
    config_name : str, default="config"
        Primary config file in the config directory

    Raises
    ------
    ConfigError
        If the composed config fails validation
    """
    overrides = list(overrides or [])
    config_dir = _config_dir().resolve()
    with initialize_config_dir(config_dir.as_posix(), version_base=None):
        cfg = compose(config_name=config_name, overrides=overrides)
    logger.info("Composed '%s' from %s with overrides %s",
                config_name, config_dir, overrides)
    validate_config(cfg)
    return cfg


@log_call
def load_simulation_config(
    overrides: Optional[List[str]] = None
) -> SimulationConfig:
    """Compose, validate and translate a config into a SimulationConfig."""
    return TemporalEngine(load_config(overrides)).build_config()
