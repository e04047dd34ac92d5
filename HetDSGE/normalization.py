"""
Removal of redundant degrees of freedom from distributional blocks.

A density discretized on n grid points has at most n - 1 free dimensions,
since it integrates to one, and one more dimension is lost for each exogenous
skill state whose marginal mass is fixed by the skill process.  The
normalizer projects each distributional block onto the orthogonal complement
of these adding-up constraints and leaves every other block untouched.
"""

from dataclasses import dataclass

import numpy as np
import scipy.sparse as sp
from scipy.linalg import null_space

from HetDSGE.core import ConfigurationError, _log

__all__ = ["NormalizationMatrices", "DOFNormalizer", "adding_up_constraints"]


def adding_up_constraints(nx, ns, dof):
    """
    Returns the dof x (nx * ns) matrix of adding-up constraints on a density
    over the skill-major total grid: total mass first, then the mass of each
    of the first dof - 1 skill states.
    """
    n = nx * ns
    C = np.zeros((dof, n))
    if dof > 0:
        C[0, :] = 1.0
    for j in range(1, dof):
        C[j, (j - 1) * nx : j * nx] = 1.0
    return C


def distribution_projection(nx, ns, dof):
    """
    Returns the (n - dof) x n projection onto the directions in which a
    discretized density may move without violating its adding-up
    constraints.  Its rows are orthonormal.
    """
    n = nx * ns
    if dof == 0:
        return np.eye(n)
    return null_space(adding_up_constraints(nx, ns, dof)).T


@dataclass(frozen=True)
class NormalizationMatrices:
    """
    Bases in which the linearized system is handed to the Klein solver.

    Attributes
    ----------
    Qx : scipy.sparse.csr_matrix
        n_backward_looking_states x (unnormalized state dimension).
    Qy : scipy.sparse.csr_matrix
        n_jumps x (unnormalized jump dimension).
    Qleft : scipy.sparse.csr_matrix
        blockdiag(Qx, Qy), applied to the rows of a Jacobian.
    Qright : scipy.sparse.csr_matrix
        blockdiag(Qx', Qy', Qx', Qy'), applied to the columns of a Jacobian
        laid out as [X_{t+1}, X_t].
    """

    Qx: sp.csr_matrix
    Qy: sp.csr_matrix
    Qleft: sp.csr_matrix
    Qright: sp.csr_matrix

    @property
    def n_predetermined_variables(self):
        return self.Qx.shape[0]


class DOFNormalizer:
    """
    Computes the normalized dimensions, index ranges and projection matrices
    of a model.

    Parameters
    ----------
    registry : IndexRegistry
        Unnormalized registry.
    nx, ns : int
        Grid sizes; nx * ns must equal the registry's grid size.
    n_function_valued_backward_looking_states : int
    n_backward_looking_distributional_vars : int
    n_function_valued_jumps : int
    n_jump_distributional_vars : int
    n_degrees_of_freedom_removed_state : int
    n_degrees_of_freedom_removed_jump : int
    normalized_states : [str]
        Distributional states whose degrees of freedom are removed.
    normalized_jumps : [str]
        Distributional jumps whose degrees of freedom are removed.
    """

    def __init__(
        self,
        registry,
        nx,
        ns,
        n_function_valued_backward_looking_states=1,
        n_backward_looking_distributional_vars=1,
        n_function_valued_jumps=1,
        n_jump_distributional_vars=1,
        n_degrees_of_freedom_removed_state=2,
        n_degrees_of_freedom_removed_jump=0,
        normalized_states=(),
        normalized_jumps=(),
    ):
        self.registry = registry
        self.nx = nx
        self.ns = ns
        self.n_function_valued_backward_looking_states = n_function_valued_backward_looking_states
        self.n_backward_looking_distributional_vars = n_backward_looking_distributional_vars
        self.n_function_valued_jumps = n_function_valued_jumps
        self.n_jump_distributional_vars = n_jump_distributional_vars
        self.dof_state = n_degrees_of_freedom_removed_state
        self.dof_jump = n_degrees_of_freedom_removed_jump
        self.normalized_states = tuple(normalized_states)
        self.normalized_jumps = tuple(normalized_jumps)
        self._check()

    @classmethod
    def from_settings(cls, registry, settings, normalized_states=(), normalized_jumps=()):
        """
        Builds a normalizer from a ModelSettings record.  When
        normalize_distr_variables is off no degrees of freedom are removed.
        """
        normalize = settings.normalize_distr_variables
        return cls(
            registry,
            settings.nx,
            settings.ns,
            n_function_valued_backward_looking_states=settings.n_function_valued_backward_looking_states,
            n_backward_looking_distributional_vars=settings.n_backward_looking_distributional_vars,
            n_function_valued_jumps=settings.n_function_valued_jumps,
            n_jump_distributional_vars=settings.n_jump_distributional_vars,
            n_degrees_of_freedom_removed_state=settings.n_degrees_of_freedom_removed_state if normalize else 0,
            n_degrees_of_freedom_removed_jump=settings.n_degrees_of_freedom_removed_jump if normalize else 0,
            normalized_states=normalized_states,
            normalized_jumps=normalized_jumps,
        )

    def _check(self):
        reg = self.registry
        n = self.nx * self.ns
        if n != reg.n:
            raise ConfigurationError(
                f"Grid size {self.nx} x {self.ns} does not match registry grid size {reg.n}"
            )

        for role, names, n_fv, n_distr, dof, normalized in (
            (
                "state",
                reg.states,
                self.n_function_valued_backward_looking_states,
                self.n_backward_looking_distributional_vars,
                self.dof_state,
                self.normalized_states,
            ),
            (
                "jump",
                reg.jumps,
                self.n_function_valued_jumps,
                self.n_jump_distributional_vars,
                self.dof_jump,
                self.normalized_jumps,
            ),
        ):
            declared_fv = sum(1 for k in names if k in reg.function_valued)
            if declared_fv != n_fv:
                raise ConfigurationError(
                    f"Registry declares {declared_fv} function-valued {role}s, "
                    f"settings expect {n_fv}"
                )
            if not 0 <= n_distr <= n_fv:
                raise ConfigurationError(
                    f"Number of distributional {role}s must be between 0 and {n_fv}"
                )
            if dof < 0 or dof > self.ns or dof >= n:
                raise ConfigurationError(
                    f"Cannot remove {dof} degrees of freedom from a distributional "
                    f"{role} on a {self.nx} x {self.ns} grid"
                )
            for k in normalized:
                if k not in names or k not in reg.function_valued:
                    raise ConfigurationError(
                        f"{k} is not a function-valued {role} and cannot be normalized"
                    )
            if dof > 0:
                # Removing degrees of freedom jointly from several endogenous
                # distributions is not supported
                if n_distr > 1:
                    raise ConfigurationError(
                        f"Degrees of freedom can only be removed with a single "
                        f"distributional {role}, got {n_distr}"
                    )
                if len(normalized) != n_distr:
                    raise ConfigurationError(
                        f"{n_distr} distributional {role}s but "
                        f"{len(normalized)} listed for normalization"
                    )

        if self.n_backward_looking_states <= 0 or self.n_jumps <= 0:
            raise ConfigurationError(
                "Normalization leaves a non-positive number of states or jumps"
            )

    @property
    def backward_looking_states_normalization_factor(self):
        """
        Number of dimensions removed from the backward-looking states.
        """
        return self.dof_state * self.n_backward_looking_distributional_vars

    @property
    def jumps_normalization_factor(self):
        """
        Number of dimensions removed from the jumps.
        """
        return self.dof_jump * self.n_jump_distributional_vars

    @property
    def n_backward_looking_states(self):
        """
        Number of backward-looking states after normalization.  Function-valued
        states that are not distributions keep all n of their indices.
        """
        n = self.registry.n
        n_distr = self.n_backward_looking_distributional_vars
        n_scalar = len(self.registry.state_indices) - n * n_distr
        return n * n_distr + n_scalar - self.backward_looking_states_normalization_factor

    @property
    def n_jumps(self):
        """
        Number of jumps after normalization.
        """
        n = self.registry.n
        n_distr = self.n_jump_distributional_vars
        n_scalar = len(self.registry.jump_indices) - n * n_distr
        return n * n_distr + n_scalar - self.jumps_normalization_factor

    @property
    def n_model_states(self):
        return self.n_backward_looking_states + self.n_jumps

    def _dof_removed(self, name):
        if name in self.normalized_states:
            return self.dof_state
        if name in self.normalized_jumps:
            return self.dof_jump
        return 0

    def normalize_indices(self):
        """
        Returns the normalized index ranges of every state and jump: ranges of
        normalized blocks shrink by the removed degrees of freedom and all
        later ranges shift down accordingly.
        """
        ranges = {}
        start = 0
        for name, r in self.registry.endogenous_states_unnormalized.items():
            stop = start + len(r) - self._dof_removed(name)
            ranges[name] = range(start, stop)
            start = stop
        return ranges

    def normalized_registry(self):
        return self.registry.normalized(self.normalize_indices())

    def _projection(self, names):
        blocks = []
        for name in names:
            length = len(self.registry.endogenous_states_unnormalized[name])
            dof = self._dof_removed(name)
            if dof > 0:
                blocks.append(sp.csr_matrix(distribution_projection(self.nx, self.ns, dof)))
            else:
                blocks.append(sp.identity(length, format="csr"))
        return sp.block_diag(blocks, format="csr")

    def compose_normalization_matrices(self):
        """
        Builds Qx, Qy, Qleft and Qright.

        Returns
        -------
        NormalizationMatrices
        """
        Qx = self._projection(self.registry.states)
        Qy = self._projection(self.registry.jumps)
        if Qx.shape[0] != self.n_backward_looking_states or Qy.shape[0] != self.n_jumps:
            raise ConfigurationError(
                f"Projection sizes {Qx.shape[0]}, {Qy.shape[0]} do not match normalized "
                f"dimensions {self.n_backward_looking_states}, {self.n_jumps}"
            )
        Qleft = sp.block_diag([Qx, Qy], format="csr")
        Qright = sp.block_diag([Qx.T, Qy.T, Qx.T, Qy.T], format="csr")
        _log.info(
            f"Normalization matrices built: {Qx.shape[0]} predetermined variables, "
            f"{Qy.shape[0]} jumps"
        )
        return NormalizationMatrices(Qx=Qx, Qy=Qy, Qleft=Qleft, Qright=Qright)

    @staticmethod
    def reduce_system(matrices, jacobian):
        """
        Re-expresses a Jacobian of the equilibrium conditions in the reduced
        basis.

        Parameters
        ----------
        matrices : NormalizationMatrices
        jacobian : array or sparse matrix
            nvars x (2 * nvars), rows ordered as the endogenous namespace and
            columns laid out as [X_{t+1}, X_t].

        Returns
        -------
        np.array
            n_model_states x (2 * n_model_states).
        """
        reduced = matrices.Qleft @ sp.csr_matrix(jacobian) @ matrices.Qright
        return reduced.toarray()
