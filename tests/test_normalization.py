import unittest

import numpy as np
import scipy.sparse as sp

from HetDSGE.core import ConfigurationError
from HetDSGE.indices import BlockKind, IndexRegistryBuilder
from HetDSGE.normalization import (
    DOFNormalizer,
    adding_up_constraints,
    distribution_projection,
)
from HetDSGE.settings import ModelSettings
from tests import gov_debt_builder


def compact_registry(nx, ns, n_scalar_states=7, n_scalar_jumps=14):
    """
    One function-valued state and jump plus the given numbers of scalars.
    """
    builder = IndexRegistryBuilder().add_state("f", True).add_jump("v", True)
    for i in range(n_scalar_states):
        builder.add_state(f"x{i}")
    for i in range(n_scalar_jumps):
        builder.add_jump(f"y{i}")
    builder.add_equilibrium_condition("eq_f", BlockKind.FUNCTION)
    builder.add_equilibrium_condition("eq_v", BlockKind.FUNCTION)
    for i in range(n_scalar_states + n_scalar_jumps):
        builder.add_equilibrium_condition(f"eq_{i}", BlockKind.SCALAR)
    return builder.build(nx * ns)


class testDOFNormalizer(unittest.TestCase):
    def setUp(self):
        self.nx, self.ns = 300, 2
        self.registry = gov_debt_builder().build(self.nx * self.ns)
        self.normalizer = DOFNormalizer(
            self.registry,
            self.nx,
            self.ns,
            n_degrees_of_freedom_removed_state=2,
            n_degrees_of_freedom_removed_jump=0,
            normalized_states=["kf_t"],
        )

    def test_sizes(self):
        norm = self.normalizer
        self.assertEqual(norm.backward_looking_states_normalization_factor, 2)
        self.assertEqual(norm.jumps_normalization_factor, 0)
        # 600 grid points plus 14 scalar states, less 2 degrees of freedom
        self.assertEqual(norm.n_backward_looking_states, 612)
        self.assertEqual(norm.n_jumps, 614)
        self.assertEqual(norm.n_model_states, 1226)

    def test_single_distribution_example(self):
        # 1 function-valued state of length 600 and 7 scalar states
        registry = compact_registry(300, 2, n_scalar_states=7, n_scalar_jumps=14)
        self.assertEqual(len(registry.state_indices), 607)
        norm = DOFNormalizer(registry, 300, 2, normalized_states=["f"])
        self.assertEqual(norm.n_backward_looking_states, 605)
        self.assertEqual(norm.n_jumps, 614)
        self.assertEqual(norm.n_model_states, 1219)
        matrices = norm.compose_normalization_matrices()
        self.assertEqual(matrices.n_predetermined_variables, 605)

    def test_function_valued_jump_not_distributional(self):
        # A function-valued jump that is not a distribution keeps all n rows
        registry = compact_registry(5, 2, n_scalar_states=7, n_scalar_jumps=1)
        norm = DOFNormalizer(
            registry, 5, 2, n_jump_distributional_vars=0, normalized_states=["f"]
        )
        self.assertEqual(norm.n_jumps, 11)
        self.assertEqual(norm.compose_normalization_matrices().Qy.shape, (11, 11))

    def test_matrix_shapes(self):
        Q = self.normalizer.compose_normalization_matrices()
        for M in (Q.Qx, Q.Qy, Q.Qleft, Q.Qright):
            self.assertEqual(M.format, "csr")
        self.assertEqual(Q.Qx.shape, (612, 614))
        self.assertEqual(Q.Qy.shape, (614, 614))
        self.assertEqual(Q.Qleft.shape, (1226, 1228))
        self.assertEqual(Q.Qright.shape, (2456, 2452))
        self.assertEqual(Q.n_predetermined_variables, 612)

    def test_projection_properties(self):
        Qx = self.normalizer.compose_normalization_matrices().Qx.toarray()
        self.assertTrue(np.allclose(Qx @ Qx.T, np.eye(612), atol=1e-10))

        # Perturbations in the reduced basis preserve total mass and the mass
        # of each skill state
        block = Qx[:598, :600]
        self.assertTrue(np.allclose(block @ np.ones(600), 0.0, atol=1e-10))
        low_skill = np.concatenate([np.ones(300), np.zeros(300)])
        self.assertTrue(np.allclose(block @ low_skill, 0.0, atol=1e-10))

        # Scalar states pass through unchanged
        self.assertTrue(np.allclose(Qx[598:, 600:], np.eye(14)))
        self.assertTrue(np.allclose(Qx[598:, :600], 0.0))

    def test_jumps_untouched(self):
        Qy = self.normalizer.compose_normalization_matrices().Qy
        self.assertEqual((Qy != sp.identity(614, format="csr")).nnz, 0)

    def test_normalized_registry(self):
        reg = self.normalizer.normalized_registry()
        self.assertTrue(reg.is_normalized)
        endo = reg.endogenous_states
        self.assertEqual(endo["kf_t"], range(0, 598))
        self.assertEqual(endo["k_t"], range(598, 599))
        self.assertEqual(endo["l_t"], range(612, 1212))
        self.assertEqual(endo["tg_t"], range(1225, 1226))
        self.assertEqual(reg.n_model_states, 1226)
        # The unnormalized layout is kept alongside
        self.assertEqual(reg.endogenous_states_unnormalized["tg_t"], range(1227, 1228))

        reg = reg.augmented(["i_t1", "c_t", "c_t1"])
        self.assertEqual(reg.endogenous_states_augmented["i_t1"], 1226)
        self.assertEqual(reg.endogenous_states_augmented["c_t1"], 1228)
        self.assertEqual(reg.n_model_states_augmented, 1229)
        self.assertRaises(ConfigurationError, reg.augmented, ["c_t"])

    def test_deterministic(self):
        Q1 = self.normalizer.compose_normalization_matrices()
        Q2 = DOFNormalizer(
            gov_debt_builder().build(600), 300, 2, normalized_states=["kf_t"]
        ).compose_normalization_matrices()
        for A, B in ((Q1.Qx, Q2.Qx), (Q1.Qy, Q2.Qy), (Q1.Qleft, Q2.Qleft), (Q1.Qright, Q2.Qright)):
            self.assertTrue(np.array_equal(A.toarray(), B.toarray()))

    def test_reduce_system(self):
        registry = compact_registry(3, 2, n_scalar_states=2, n_scalar_jumps=1)
        norm = DOFNormalizer(registry, 3, 2, normalized_states=["f"])
        Q = norm.compose_normalization_matrices()
        nvars = registry.nvars
        rng = np.random.default_rng(0)
        jac = rng.standard_normal((nvars, 2 * nvars))

        reduced = DOFNormalizer.reduce_system(Q, jac)
        self.assertEqual(reduced.shape, (norm.n_model_states, 2 * norm.n_model_states))
        expected = Q.Qleft.toarray() @ jac @ Q.Qright.toarray()
        self.assertTrue(np.allclose(reduced, expected))

    def test_more_skill_states(self):
        registry = compact_registry(4, 3)
        norm = DOFNormalizer(
            registry, 4, 3, n_degrees_of_freedom_removed_state=3, normalized_states=["f"]
        )
        Qx = norm.compose_normalization_matrices().Qx.toarray()
        self.assertEqual(Qx.shape, (12 + 7 - 3, 12 + 7))
        C = adding_up_constraints(4, 3, 3)
        self.assertTrue(np.allclose(Qx[:9, :12] @ C.T, 0.0, atol=1e-10))

    def test_from_settings(self):
        settings = ModelSettings(nx=300, ns=2)
        norm = DOFNormalizer.from_settings(self.registry, settings, normalized_states=["kf_t"])
        self.assertEqual(norm.n_backward_looking_states, 612)

        settings = settings.replace(normalize_distr_variables=False)
        norm = DOFNormalizer.from_settings(self.registry, settings, normalized_states=["kf_t"])
        self.assertEqual(norm.n_backward_looking_states, 614)
        Qx = norm.compose_normalization_matrices().Qx
        self.assertEqual((Qx != sp.identity(614, format="csr")).nnz, 0)


class testDOFNormalizerConfiguration(unittest.TestCase):
    def setUp(self):
        self.registry = compact_registry(5, 2)

    def test_too_many_degrees_of_freedom(self):
        self.assertRaises(
            ConfigurationError,
            DOFNormalizer,
            self.registry,
            5,
            2,
            n_degrees_of_freedom_removed_state=3,
            normalized_states=["f"],
        )

    def test_grid_mismatch(self):
        self.assertRaises(ConfigurationError, DOFNormalizer, self.registry, 4, 2, normalized_states=["f"])

    def test_function_valued_count_mismatch(self):
        self.assertRaises(
            ConfigurationError,
            DOFNormalizer,
            self.registry,
            5,
            2,
            n_function_valued_backward_looking_states=2,
            normalized_states=["f"],
        )

    def test_normalized_state_must_be_function_valued(self):
        self.assertRaises(
            ConfigurationError, DOFNormalizer, self.registry, 5, 2, normalized_states=["x0"]
        )
        self.assertRaises(ConfigurationError, DOFNormalizer, self.registry, 5, 2, normalized_states=[])

    def test_multiple_distributions(self):
        builder = (
            IndexRegistryBuilder()
            .add_state("f1", True)
            .add_state("f2", True)
            .add_jump("v", True)
            .add_jump("c")
        )
        for name in ("eq_f1", "eq_f2", "eq_v"):
            builder.add_equilibrium_condition(name, BlockKind.FUNCTION)
        builder.add_equilibrium_condition("eq_c")
        registry = builder.build(10)
        self.assertRaises(
            ConfigurationError,
            DOFNormalizer,
            registry,
            5,
            2,
            n_function_valued_backward_looking_states=2,
            n_backward_looking_distributional_vars=2,
            n_degrees_of_freedom_removed_state=1,
            normalized_states=["f1", "f2"],
        )
        # Without removal the configuration is fine
        norm = DOFNormalizer(
            registry,
            5,
            2,
            n_function_valued_backward_looking_states=2,
            n_backward_looking_distributional_vars=2,
            n_degrees_of_freedom_removed_state=0,
        )
        self.assertEqual(norm.n_backward_looking_states, 20)


class testProjection(unittest.TestCase):
    def test_adding_up_constraints(self):
        C = adding_up_constraints(3, 2, 2)
        self.assertTrue(np.array_equal(C[0], np.ones(6)))
        self.assertTrue(np.array_equal(C[1], [1, 1, 1, 0, 0, 0]))
        self.assertEqual(adding_up_constraints(3, 2, 0).shape, (0, 6))

    def test_distribution_projection(self):
        Q = distribution_projection(3, 2, 1)
        self.assertEqual(Q.shape, (5, 6))
        self.assertTrue(np.allclose(Q.sum(axis=1), 0.0))
        self.assertTrue(np.array_equal(distribution_projection(3, 2, 0), np.eye(6)))
