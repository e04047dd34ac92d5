import dataclasses
import os
import tempfile
import unittest

from HetDSGE.core import ConfigurationError
from HetDSGE.settings import ModelSettings


class testModelSettings(unittest.TestCase):
    def setUp(self):
        self.settings = ModelSettings()

    def test_defaults(self):
        settings = self.settings
        self.assertEqual(settings.nx, 300)
        self.assertEqual(settings.ns, 2)
        self.assertEqual(settings.n, 600)
        self.assertEqual(settings.tauchen_lambda, 2.0)
        self.assertTrue(settings.normalize_distr_variables)
        self.assertEqual(settings.n_degrees_of_freedom_removed_state, 2)
        self.assertEqual(settings.n_degrees_of_freedom_removed_jump, 0)
        self.assertEqual(settings.solution_method, "klein")

    def test_unknown_keys(self):
        self.assertRaises(ConfigurationError, ModelSettings.from_dict, {"nxx": 10})
        self.assertRaises(ConfigurationError, self.settings.replace, policy_damp=0.5)

    def test_types(self):
        self.assertRaises(ConfigurationError, ModelSettings, nx=10.0)
        self.assertRaises(ConfigurationError, ModelSettings, nx=True)
        self.assertRaises(ConfigurationError, ModelSettings, normalize_distr_variables=1)
        self.assertRaises(ConfigurationError, ModelSettings, tauchen_lambda="2")
        # An int is an acceptable float
        self.assertEqual(ModelSettings(tauchen_lambda=3).tauchen_lambda, 3)

    def test_ranges(self):
        self.assertRaises(ConfigurationError, ModelSettings, nx=0)
        self.assertRaises(ConfigurationError, ModelSettings, ns=1)
        self.assertRaises(ConfigurationError, ModelSettings, xhi_multiple=-1.0)
        self.assertRaises(ConfigurationError, ModelSettings, n_anticipated_shocks=-1)
        self.assertRaises(ConfigurationError, ModelSettings, solution_method="gensys")
        self.assertRaises(
            ConfigurationError,
            ModelSettings,
            n_function_valued_jumps=0,
            n_jump_distributional_vars=1,
        )

    def test_degrees_of_freedom(self):
        # Total mass and one marginal per skill state
        self.assertRaises(ConfigurationError, ModelSettings, n_degrees_of_freedom_removed_state=3)
        self.assertRaises(ConfigurationError, ModelSettings, n_degrees_of_freedom_removed_jump=3)
        settings = ModelSettings(ns=3, n_degrees_of_freedom_removed_state=3)
        self.assertEqual(settings.n_degrees_of_freedom_removed_state, 3)
        self.assertRaises(
            ConfigurationError, ModelSettings, nx=1, ns=2, n_degrees_of_freedom_removed_state=2
        )

    def test_replace(self):
        settings = self.settings.replace(nx=50)
        self.assertEqual(settings.nx, 50)
        self.assertEqual(self.settings.nx, 300)
        self.assertRaises(ConfigurationError, self.settings.replace, ns=0)

    def test_frozen(self):
        with self.assertRaises(dataclasses.FrozenInstanceError):
            self.settings.nx = 10

    def test_yaml(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "settings.yaml")
            with open(path, "w") as f:
                f.write("nx: 40\nns: 3\ntauchen_lambda: 2.5\n")
            settings = ModelSettings.from_yaml(path)
        self.assertEqual(settings.n, 120)
        self.assertEqual(settings.tauchen_lambda, 2.5)
        self.assertEqual(ModelSettings.from_dict(settings.to_dict()), settings)
