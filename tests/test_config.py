import argparse
import shutil
from itertools import product

import pytest

import run_tests
from config import CONFIG_DIR, load_config, load_simulation_config
from core import TemporalEngine
from seiqhrf_sim.errors import ConfigError
from utils.validation import validate_config
from fixtures.sample_configs import (
    make_invalid_config,
    make_unknown_parameter_config,
)


@pytest.mark.parametrize(
    "overrides",
    [
        [
            f"simulation={s}",
            f"initial_state={i}",
            f"parameters={p}",
            f"flags={f}",
            f"policy={z}",
        ]
        for s, i, p, f, z in product(
            ["default", "short", "parallel"],
            ["default", "large"],
            ["baseline", "high_capacity"],
            ["default", "deterministic"],
            ["none", "quarantine_ramp", "lockdown", "distancing_steps"],
        )
    ],
)
def test_all_configs_load(overrides):
    cfg = load_config(overrides)
    assert cfg is not None
    config = TemporalEngine(cfg).build_config()
    assert config.validate().horizon == cfg.simulation.horizon


def test_defaults():
    config = TemporalEngine(load_config()).build_config()
    assert config.horizon == 366
    assert config.nsims == 8
    assert config.seed == 42
    assert config.initial.s == 9997 and config.initial.i == 3
    assert config.parameters.capacity.hosp_cap == 40
    assert config.flags.infection and not config.flags.progression


def test_high_capacity_extends_baseline():
    cfg = load_config(["parameters=high_capacity"])
    assert cfg.parameters.hosp_cap == 1000000
    assert cfg.parameters.act_rate_i == 10.0


def test_ramp_policy_becomes_daily_sequence():
    cfg = load_config(["simulation=short", "policy=quarantine_ramp"])
    config = TemporalEngine(cfg).build_config()
    quar_rate = config.parameters.progression.quar_rate
    assert len(quar_rate) == 120
    assert quar_rate[0] == pytest.approx(0.0333)
    assert quar_rate[17] == pytest.approx(0.3333)


def test_step_policy_changes_contacts():
    cfg = load_config(["simulation=short", "policy=distancing_steps"])
    act_rate_i = TemporalEngine(cfg).build_config().parameters.get(
        "act_rate_i"
    )
    assert act_rate_i[19] == 10.0
    assert act_rate_i[20] == 7.5
    assert act_rate_i[40] == 5.0


def test_command_line_style_overrides():
    cfg = load_config(["simulation.nsims=3", "parameters.hosp_cap=100"])
    config = TemporalEngine(cfg).build_config()
    assert config.nsims == 3
    assert config.parameters.capacity.hosp_cap == 100


def test_validation_fails_on_invalid():
    cfg = make_invalid_config()
    with pytest.raises(ValueError):
        validate_config(cfg)


def test_validation_fails_on_unknown_parameter():
    with pytest.raises(ConfigError):
        validate_config(make_unknown_parameter_config())


def test_invalid_override_rejected():
    with pytest.raises(ConfigError):
        load_config(["simulation.horizon=0"])


def test_wrong_type_rejected():
    with pytest.raises(ConfigError):
        load_config(["simulation.nsims=many"])


def test_engine_runs_short_scenario():
    cfg = load_config([
        "simulation=short", "simulation.horizon=30", "simulation.nsims=2",
    ])
    output = TemporalEngine(cfg).run(keep_runs=True)
    assert len(output.aggregated) == 30
    assert len(output.runs) == 2


def test_load_simulation_config():
    config = load_simulation_config(["simulation=short", "flags=deterministic"])
    assert config.horizon == 120
    assert not any(vars(config.flags).values())


def test_config_dir_from_environment(tmp_path, monkeypatch):
    config_dir = tmp_path / "configs"
    shutil.copytree(CONFIG_DIR, config_dir)
    (config_dir / "simulation" / "tiny.yaml").write_text(
        "horizon: 10\nnsims: 1\nncores: 1\nseed: 3\n"
        "statistic: median\nvital: false\n"
    )
    monkeypatch.setenv("SEIQHRF_CONFIG_DIR", str(config_dir))
    config = load_simulation_config(["simulation=tiny"])
    assert config.horizon == 10
    assert config.statistic == "median"
    assert config.vital is False


@pytest.mark.parametrize(
    "flags, marker",
    [
        ({}, "not integration"),
        ({"integration": True}, None),
        ({"integration_only": True}, "integration"),
    ],
)
def test_runner_marker_selection(flags, marker):
    parsed = argparse.Namespace(
        integration=False, integration_only=False, coverage=False
    )
    for key, value in flags.items():
        setattr(parsed, key, value)
    args = run_tests.build_args(parsed, ["-x"])
    assert args[-1] == "-x"
    if marker is None:
        assert "-m" not in args
    else:
        assert args[args.index("-m") + 1] == marker
