import unittest

import numpy as np
from scipy.integrate import trapezoid

from HetDSGE.core import ConfigurationError
from HetDSGE.distributions import (
    BetaAlt,
    GammaAlt,
    Normal,
    RootInverseGamma,
    Uniform,
    calc_stationary_distribution,
    check_row_stochastic,
    make_prior,
    make_tauchen_ar1,
)
from tests import HETDSGE_PRECISION


class MarkovTests(unittest.TestCase):
    def test_tauchen(self):
        # Test with a simple AR(1) process
        N = 5
        sigma = 1.0
        ar_1 = 0.9
        bound = 3.0

        # By default, inflendpoint = True
        standard = make_tauchen_ar1(N, sigma, ar_1, bound)
        alternative = make_tauchen_ar1(N, sigma, ar_1, bound, inflendpoint=False)

        # Check that the grid points of the two methods are identical
        self.assertTrue(np.all(np.equal(standard[0], alternative[0])))

        # Check the shape of the transition matrix
        self.assertEqual(standard[1].shape, (N, N))
        self.assertEqual(alternative[1].shape, (N, N))

        # Check that the sum of each row in the transition matrix is 1
        self.assertTrue(np.allclose(np.sum(standard[1], axis=1), np.ones(N)))
        self.assertTrue(np.allclose(np.sum(alternative[1], axis=1), np.ones(N)))

        # The grid is symmetric around zero
        self.assertAlmostEqual(standard[0][0], -standard[0][-1])

    def test_stationary_distribution(self):
        trans = np.array([[0.9, 0.1], [0.2, 0.8]])
        pi = calc_stationary_distribution(trans)
        self.assertAlmostEqual(pi[0], 2.0 / 3.0, places=HETDSGE_PRECISION)
        self.assertAlmostEqual(pi[1], 1.0 / 3.0, places=HETDSGE_PRECISION)
        self.assertTrue(np.allclose(pi @ trans, pi))

    def test_stationary_distribution_tauchen(self):
        _, trans = make_tauchen_ar1(7, ar_1=0.8)
        pi = calc_stationary_distribution(trans)
        self.assertAlmostEqual(np.sum(pi), 1.0)
        self.assertTrue(np.all(pi >= 0.0))
        # Symmetric process, symmetric distribution
        self.assertTrue(np.allclose(pi, pi[::-1]))

    def test_not_unique(self):
        # Reducible
        self.assertRaises(ConfigurationError, calc_stationary_distribution, np.eye(3))
        # Periodic
        self.assertRaises(
            ConfigurationError, calc_stationary_distribution, np.array([[0.0, 1.0], [1.0, 0.0]])
        )

    def test_row_stochastic(self):
        self.assertRaises(ConfigurationError, check_row_stochastic, np.array([[0.5, 0.6], [0.5, 0.5]]))
        self.assertRaises(ConfigurationError, check_row_stochastic, np.array([[1.2, -0.2], [0.5, 0.5]]))
        self.assertRaises(ConfigurationError, check_row_stochastic, np.ones((2, 3)) / 3)
        self.assertRaises(ConfigurationError, check_row_stochastic, np.array([[np.nan, 1.0], [0.5, 0.5]]))
        trans = check_row_stochastic([[1, 0], [0.5, 0.5]])
        self.assertEqual(trans.dtype, float)


class PriorTests(unittest.TestCase):
    def test_moments(self):
        gamma = GammaAlt(0.5, 0.3)
        self.assertAlmostEqual(gamma.mean(), 0.5)
        self.assertAlmostEqual(gamma.std(), 0.3)

        beta = BetaAlt(0.75, 0.1)
        self.assertAlmostEqual(beta.mean(), 0.75)
        self.assertAlmostEqual(beta.std(), 0.1)

        self.assertAlmostEqual(Normal(4.0, 1.5).std(), 1.5)
        self.assertAlmostEqual(Uniform(0.0025, 0.095).mean(), 0.04875)

    def test_beta_alt_mean(self):
        self.assertRaises(ConfigurationError, BetaAlt, 1.5, 0.1)

    def test_root_inverse_gamma(self):
        prior = RootInverseGamma(2.0, 0.1)
        self.assertTrue(np.isfinite(prior.logpdf(0.15)))
        self.assertEqual(prior.logpdf(-1.0), -np.inf)
        self.assertEqual(prior.support(), (0.0, np.inf))
        draws = prior.rvs(size=100, random_state=0)
        self.assertTrue(np.all(draws > 0.0))

        # The density integrates to one
        x = np.linspace(1e-4, 20.0, 200001)
        self.assertAlmostEqual(trapezoid(prior.pdf(x), x), 1.0, places=2)

    def test_make_prior(self):
        self.assertIsNone(make_prior(None))
        prior = make_prior({"GammaAlt": [0.62, 0.1]})
        self.assertAlmostEqual(prior.mean(), 0.62)
        self.assertRaises(ConfigurationError, make_prior, {"Cauchy": [0.0, 1.0]})
        self.assertRaises(ConfigurationError, make_prior, {"Normal": [0, 1], "Uniform": [0, 1]})
