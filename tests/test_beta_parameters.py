"""
Tests for Beta distribution parameterisation.
"""

import math
import unittest

import numpy as np
from scipy import stats

from impact_simulator.beta_parameters import (
    derive_beta_shape,
    derive_distribution_parameters,
    describe_beta,
    input_distribution_table,
)
from impact_simulator.exceptions import InvalidParameter
from impact_simulator.models import SimulationConfig


class TestDeriveBetaShape(unittest.TestCase):
    """Test cases for derive_beta_shape."""

    def setUp(self):
        """Set up test fixtures."""
        self.concentration = 40
        self.targets = [0.001, 0.06, 0.145, 0.5, 0.75, 0.999]

    def test_shape_formula(self):
        """shape_a is the concentration, shape_b matches the target mean."""
        shape_a, shape_b = derive_beta_shape(40, 0.06)
        self.assertEqual(shape_a, 40.0)
        self.assertAlmostEqual(shape_b, 40 * 0.94 / 0.06)

    def test_shapes_positive(self):
        """All targets below 1 give strictly positive shapes."""
        for p in self.targets:
            shape_a, shape_b = derive_beta_shape(self.concentration, p)
            self.assertGreater(shape_a, 0)
            self.assertGreater(shape_b, 0, msg=f"Failed for target {p}")

    def test_theoretical_mean_equals_target(self):
        """The mean of Beta(shape_a, shape_b) is exactly the target."""
        for p in self.targets:
            shape_a, shape_b = derive_beta_shape(self.concentration, p)
            self.assertAlmostEqual(
                stats.beta(shape_a, shape_b).mean(), p, places=12
            )

    def test_sample_mean_converges(self):
        """Sample means of large draws are close to the target."""
        rng = np.random.default_rng(42)
        for p in [0.06, 0.145, 0.75]:
            shape_a, shape_b = derive_beta_shape(self.concentration, p)
            sample = rng.beta(shape_a, shape_b, 200_000)
            self.assertAlmostEqual(np.mean(sample), p, delta=0.002)

    def test_concentration_tightens_distribution(self):
        """Higher concentration gives lower variance at the same mean."""
        var_low = stats.beta(*derive_beta_shape(5, 0.3)).var()
        var_high = stats.beta(*derive_beta_shape(100, 0.3)).var()
        self.assertGreater(var_low, var_high)

    def test_target_one_gives_zero_shape_b(self):
        """A target probability of exactly 1 yields shape_b = 0."""
        self.assertEqual(derive_beta_shape(40, 1.0), (40.0, 0.0))

    def test_zero_target_rejected(self):
        """A target of 0 is a configuration error, not an infinite shape."""
        with self.assertRaises(InvalidParameter):
            derive_beta_shape(40, 0.0)

    def test_out_of_range_targets_rejected(self):
        for p in [-0.1, 1.0001, math.nan, math.inf]:
            with self.assertRaises(InvalidParameter, msg=f"target {p}"):
                derive_beta_shape(40, p)

    def test_invalid_concentration_rejected(self):
        for c in [0, -1, math.inf, math.nan, True, "40"]:
            with self.assertRaises(InvalidParameter, msg=f"conc {c!r}"):
                derive_beta_shape(c, 0.5)

    def test_error_names_field(self):
        with self.assertRaises(InvalidParameter) as ctx:
            derive_beta_shape(40, 0)
        self.assertEqual(ctx.exception.field, "target_probability")


class TestDistributionDescriptions(unittest.TestCase):
    """Test cases for derived scenario distributions."""

    def setUp(self):
        self.config = SimulationConfig(
            population_size=1000,
            n_trials=10,
            target_p_reached=1.0,
            target_p_uptake=0.75,
            target_p_adverse_event=0.06,
            effect_size_min=0.1,
            effect_size_max=0.24,
            simulation_name="describe",
        )

    def test_derive_distribution_parameters(self):
        params = derive_distribution_parameters(self.config)
        self.assertEqual(params.reached, (40.0, 0.0))
        self.assertAlmostEqual(params.uptake[1], 40 * 0.25 / 0.75)
        self.assertEqual(params.effect_size_bounds, (0.1, 0.24))

    def test_describe_beta_point_mass(self):
        described = describe_beta(40.0, 0.0)
        self.assertEqual(described["mean"], 1.0)
        self.assertEqual(described["variance"], 0.0)

    def test_describe_beta_interval_contains_mean(self):
        described = describe_beta(*derive_beta_shape(40, 0.145))
        self.assertAlmostEqual(described["mean"], 0.145)
        self.assertLess(described["lower"], described["mean"])
        self.assertGreater(described["upper"], described["mean"])

    def test_input_distribution_table(self):
        table = input_distribution_table(self.config)
        self.assertEqual(
            list(table.index),
            ["p_reached", "p_uptake", "p_adverse_event", "effect_size"],
        )
        self.assertAlmostEqual(table.loc["effect_size", "mean"], 0.17)
        self.assertAlmostEqual(table.loc["p_uptake", "mean"], 0.75)
        self.assertEqual(table.loc["effect_size", "distribution"], "uniform")


if __name__ == '__main__':
    unittest.main()
