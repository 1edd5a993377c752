import pytest

from seiqhrf_sim.errors import ConfigError
from seiqhrf_sim.parameters import ParameterSet
from seiqhrf_sim.policies import (
    apply_policies,
    build_policy,
    constant,
    evaluate_policy,
    linear_ramp,
    step_schedule,
    window,
)


class TestBuilders:

    def test_constant(self):
        assert constant(0.5, 3) == [0.5, 0.5, 0.5]

    def test_linear_ramp_endpoints(self):
        ramp = linear_ramp(0.0333, 0.3333, ramp_days=17, horizon=30)
        assert len(ramp) == 30
        assert ramp[0] == pytest.approx(0.0333)
        assert ramp[17] == pytest.approx(0.3333)
        assert ramp[29] == pytest.approx(0.3333)
        assert all(b >= a for a, b in zip(ramp, ramp[1:]))

    def test_linear_ramp_delayed_start(self):
        ramp = linear_ramp(1.0, 3.0, ramp_days=2, horizon=6, start_day=2)
        assert ramp == pytest.approx([1.0, 1.0, 1.0, 2.0, 3.0, 3.0])

    def test_zero_day_ramp_is_a_step(self):
        ramp = linear_ramp(1.0, 2.0, ramp_days=0, horizon=4, start_day=2)
        assert ramp == [1.0, 1.0, 2.0, 2.0]

    def test_step_schedule(self):
        values = step_schedule(10.0, {4: 5.0, 2: 7.5}, horizon=6)
        assert values == [10.0, 10.0, 7.5, 7.5, 5.0, 5.0]

    def test_window(self):
        values = window(10.0, 2.0, start_day=1, end_day=3, horizon=5)
        assert values == [10.0, 2.0, 2.0, 10.0, 10.0]

    def test_window_bounds_checked(self):
        with pytest.raises(ConfigError):
            window(1.0, 0.0, start_day=5, end_day=2, horizon=10)

    def test_evaluate_policy(self):
        values = evaluate_policy(lambda t: 0.1 if t < 2 else 0.2, horizon=4)
        assert values == [0.1, 0.1, 0.2, 0.2]

    def test_non_positive_horizon(self):
        with pytest.raises(ConfigError):
            constant(1.0, 0)


class TestApplyPolicies:

    def test_ramp_spec(self):
        spec = {
            "parameter": "quar.rate",
            "kind": "ramp",
            "start_value": 0.0333,
            "end_value": 0.3333,
            "ramp_days": 17,
        }
        params = apply_policies(ParameterSet(), [spec], horizon=40)
        quar_rate = params.progression.quar_rate
        assert len(quar_rate) == 40
        assert quar_rate[-1] == pytest.approx(0.3333)

    def test_step_spec_with_string_days(self):
        spec = {
            "parameter": "act_rate_i",
            "kind": "step",
            "initial": 10.0,
            "changes": {"3": 5.0},
        }
        values = build_policy(spec, horizon=5)
        assert values == [10.0, 10.0, 10.0, 5.0, 5.0]

    def test_no_specs_returns_same_set(self, baseline_parameters):
        assert apply_policies(baseline_parameters, [], 10) is \
            baseline_parameters

    @pytest.mark.parametrize(
        "spec",
        [
            {"parameter": "quar_rate", "kind": "sawtooth"},
            {"parameter": "quar_rate", "kind": "ramp", "start_value": 0.1},
            {"kind": "constant", "value": 0.1},
            {"parameter": "no_such_rate", "kind": "constant", "value": 0.1},
            {"parameter": "quar_rate", "kind": "ramp", "start_value": "abc",
             "end_value": 0.3, "ramp_days": 5},
            {"parameter": "act_rate_i", "kind": "window", "base": 10.0,
             "value": "half", "start_day": 1, "end_day": 3},
            {"parameter": "act_rate_i", "kind": "constant", "value": None},
        ],
    )
    def test_invalid_specs(self, spec):
        with pytest.raises(ConfigError):
            apply_policies(ParameterSet(), [spec], horizon=10)
