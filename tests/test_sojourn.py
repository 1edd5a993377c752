"""
Tests for draw strategies and sojourn-time distributions.
"""

import unittest

import numpy as np

from seiqhrf_sim.errors import InvalidStateError
from seiqhrf_sim.sojourn import (
    BinomialDraw,
    DelaySampler,
    ExpectedDraw,
    ExponentialSojourn,
    WeibullSojourn,
    apportion,
    make_draw,
    make_sojourn,
)


class TestApportion(unittest.TestCase):
    """Test cases for rounding expectations to integer counts."""

    def test_total_is_rounded_sum(self):
        expected = np.array([0.3, 1.6, 2.4, 0.2])
        counts = apportion(expected)
        self.assertEqual(counts.sum(), 5)
        self.assertEqual(counts.dtype, np.int64)

    def test_never_exceeds_ceiling(self):
        rng = np.random.default_rng(0)
        for _ in range(50):
            expected = rng.uniform(0, 3, size=20)
            counts = apportion(expected)
            self.assertTrue(np.all(counts <= np.ceil(expected)))
            self.assertTrue(np.all(counts >= np.floor(expected)))

    def test_integers_unchanged(self):
        expected = np.array([0.0, 3.0, 7.0])
        np.testing.assert_array_equal(apportion(expected), [0, 3, 7])

    def test_scalar_input(self):
        self.assertEqual(int(apportion(np.array(2.5))), 3)
        self.assertEqual(int(apportion(np.array(0.49))), 0)


class TestDrawStrategies(unittest.TestCase):
    """Test cases for binomial and expected-value draws."""

    def setUp(self):
        self.rng = np.random.default_rng(42)
        self.cohorts = np.array([100, 50, 0, 10], dtype=np.int64)

    def test_make_draw(self):
        self.assertIsInstance(make_draw(True), BinomialDraw)
        self.assertIsInstance(make_draw(False), ExpectedDraw)

    def test_binomial_bounded_by_at_risk(self):
        movers = BinomialDraw().draw(self.cohorts, 0.7, self.rng)
        self.assertEqual(movers.shape, self.cohorts.shape)
        self.assertTrue(np.all(movers <= self.cohorts))
        self.assertTrue(np.all(movers >= 0))

    def test_expected_is_deterministic(self):
        first = ExpectedDraw().draw(self.cohorts, 0.25, self.rng)
        second = ExpectedDraw().draw(self.cohorts, 0.25, self.rng)
        np.testing.assert_array_equal(first, second)
        np.testing.assert_array_equal(first, [25, 13, 0, 2])

    def test_expected_per_cohort_probabilities(self):
        probs = np.array([0.0, 1.0, 0.5, 0.5])
        movers = ExpectedDraw().draw(self.cohorts, probs, self.rng)
        np.testing.assert_array_equal(movers, [0, 50, 0, 5])

    def test_split_preserves_total(self):
        proportions = np.array([0.97, 0.01, 0.01, 0.01])
        for strategy in (BinomialDraw(), ExpectedDraw()):
            parts = strategy.split(250, proportions, self.rng)
            self.assertEqual(parts.sum(), 250)
            self.assertEqual(len(parts), 4)

    def test_binomial_mean(self):
        movers = BinomialDraw().draw(np.full(2000, 100), 0.1, self.rng)
        self.assertAlmostEqual(movers.mean(), 10.0, delta=0.3)


class TestWeibullSojourn(unittest.TestCase):
    """Test cases for the Weibull sojourn distribution."""

    def test_hazard_matches_survival_ratio(self):
        sojourn = WeibullSojourn(shape=1.5, scale=5.0)
        ages = np.arange(10)
        survival = np.exp(-(ages / 5.0) ** 1.5)
        survival_next = np.exp(-((ages + 1) / 5.0) ** 1.5)
        np.testing.assert_allclose(
            sojourn.hazard(ages), 1 - survival_next / survival, rtol=1e-9
        )

    def test_increasing_hazard_for_shape_above_one(self):
        hazard = WeibullSojourn(1.5, 35.0).hazard(np.arange(100))
        self.assertTrue(np.all(np.diff(hazard) > 0))
        self.assertTrue(np.all((hazard >= 0) & (hazard <= 1)))

    def test_shape_one_is_memoryless(self):
        hazard = WeibullSojourn(1.0, 10.0).hazard(np.arange(20))
        np.testing.assert_allclose(hazard, 1 - np.exp(-0.1))

    def test_far_tail_leaves_for_certain(self):
        hazard = WeibullSojourn(3.0, 2.0).hazard(np.array([500, 5000]))
        np.testing.assert_allclose(hazard, 1.0)

    def test_invalid_parameters(self):
        with self.assertRaises(InvalidStateError):
            WeibullSojourn(0.0, 5.0)
        with self.assertRaises(InvalidStateError):
            WeibullSojourn(1.5, -1.0)


class TestExponentialSojourn(unittest.TestCase):
    """Test cases for the constant-rate sojourn."""

    def test_constant_hazard(self):
        hazard = ExponentialSojourn(0.1).hazard(np.arange(5))
        np.testing.assert_allclose(hazard, 0.1)

    def test_zero_rate_never_leaves(self):
        hazard = ExponentialSojourn(0.0).hazard(np.arange(5))
        np.testing.assert_array_equal(hazard, 0.0)

    def test_rate_out_of_range(self):
        with self.assertRaises(InvalidStateError):
            ExponentialSojourn(1.2)

    def test_make_sojourn(self):
        self.assertIsInstance(make_sojourn(0.1, 1.5, 5.0), WeibullSojourn)
        self.assertIsInstance(make_sojourn(0.1, None, 5.0),
                              ExponentialSojourn)


class TestDelaySampler(unittest.TestCase):
    """Test cases for drawing completed sojourns by cohort."""

    def test_expected_departures_follow_hazard(self):
        sojourn = WeibullSojourn(1.5, 5.0)
        sampler = DelaySampler(sojourn, ExpectedDraw())
        cohorts = np.full(10, 1000, dtype=np.int64)
        departures = sampler.draw(cohorts, np.random.default_rng(0))
        expected = 1000 * sojourn.hazard(np.arange(10))
        self.assertTrue(np.all(np.abs(departures - expected) < 1))

    def test_random_departures_bounded(self):
        sampler = DelaySampler(WeibullSojourn(1.5, 35.0), BinomialDraw())
        cohorts = np.array([5, 0, 300, 20], dtype=np.int64)
        departures = sampler.draw(cohorts, np.random.default_rng(3))
        self.assertTrue(np.all(departures <= cohorts))


if __name__ == '__main__':
    unittest.main()
