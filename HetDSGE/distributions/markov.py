import numpy as np
from scipy import stats
from scipy.linalg import eig
from scipy.sparse.csgraph import connected_components

from HetDSGE.core import ConfigurationError


def make_tauchen_ar1(N, sigma=1.0, ar_1=0.9, bound=3.0, inflendpoint=True):
    """
    Function to return a discretized version of an AR1 process.
    See http://www.fperri.net/TEACHING/macrotheory08/numerical.pdf for details

    Parameters
    ----------
    N: int
        Size of discretized grid
    sigma: float
        Standard deviation of the error term
    ar_1: float
        AR1 coefficient
    bound: float
        The highest (lowest) grid point will be bound (-bound) multiplied by the unconditional
        standard deviation of the process
    inflendpoint: Bool
        If True: implement the standard method as in Tauchen (1986):
            assign the probability of jumping to a point outside the grid to the closest endpoint
        If False: implement an alternative method:
            discard the probability of jumping to a point outside the grid, effectively
            reassigning it to the remaining points in proportion to their probability of being reached

    Returns
    -------
    y: np.array
        Grid points on which the discretized process takes values
    trans_matrix: np.array
        Markov transition array for the discretized process
    """
    yN = bound * sigma / ((1 - ar_1**2) ** 0.5)
    y = np.linspace(-yN, yN, N)
    d = y[1] - y[0]
    cuts = (y[1:] + y[:-1]) / 2.0
    if inflendpoint:
        cuts = np.concatenate(([-np.inf], cuts, [np.inf]))
    else:
        cuts = np.concatenate(([y[0] - d / 2], cuts, [y[-1] + d / 2]))
    dist = np.reshape(cuts, (1, N + 1)) - np.reshape(ar_1 * y, (N, 1))
    dist /= sigma
    cdf_array = stats.norm.cdf(dist)
    sf_array = stats.norm.sf(dist)
    trans = cdf_array[:, 1:] - cdf_array[:, :-1]
    trans_alt = sf_array[:, :-1] - sf_array[:, 1:]
    trans_matrix = np.maximum(trans, trans_alt)
    trans_matrix /= np.sum(trans_matrix, axis=1, keepdims=True)
    return y, trans_matrix


def check_row_stochastic(trans_matrix, tol=1e-10):
    """
    Verifies that a transition matrix is square, non-negative, and that each
    of its rows sums to one.

    Parameters
    ----------
    trans_matrix : np.array
        Candidate Markov transition matrix.
    tol : float
        Tolerance on the row sums.

    Returns
    -------
    trans_matrix : np.array
        The same matrix, as a float array.
    """
    trans_matrix = np.asarray(trans_matrix, dtype=float)
    if trans_matrix.ndim != 2 or trans_matrix.shape[0] != trans_matrix.shape[1]:
        raise ConfigurationError(
            f"Transition matrix must be square, got shape {trans_matrix.shape}"
        )
    if not np.all(np.isfinite(trans_matrix)):
        raise ConfigurationError("Transition matrix has non-finite entries")
    if np.any(trans_matrix < 0.0):
        raise ConfigurationError("Transition matrix has negative entries")
    row_sums = trans_matrix.sum(axis=1)
    if not np.allclose(row_sums, 1.0, rtol=0.0, atol=tol):
        raise ConfigurationError(
            f"Transition matrix rows must sum to one, got {row_sums}"
        )
    return trans_matrix


def calc_stationary_distribution(trans_matrix, tol=1e-10):
    """
    Computes the stationary distribution of a finite Markov chain.  The chain
    must be irreducible and aperiodic so that the distribution is unique.

    Parameters
    ----------
    trans_matrix : np.array
        Row-stochastic transition matrix, trans_matrix[i, j] = Prob(j | i).
    tol : float
        Tolerance used to identify unit-modulus eigenvalues.

    Returns
    -------
    pi : np.array
        Stationary probability vector, non-negative and summing to one.
    """
    trans_matrix = check_row_stochastic(trans_matrix)

    n_components, _ = connected_components(
        (trans_matrix > 0.0).astype(float), directed=True, connection="strong"
    )
    if n_components != 1:
        raise ConfigurationError("Markov chain is reducible")

    eigvals, eigvecs = eig(trans_matrix.T)
    unit = np.abs(np.abs(eigvals) - 1.0) < tol
    if np.count_nonzero(unit) != 1:
        raise ConfigurationError("Markov chain is periodic")

    pi = np.real(eigvecs[:, np.argmin(np.abs(eigvals - 1.0))])
    pi = pi / np.sum(pi)
    # Clean up roundoff so the weights are a valid probability vector
    pi = np.maximum(pi, 0.0)
    return pi / np.sum(pi)
