"""
Prior distributions for model parameters.  Each constructor returns an object
with the scipy.stats frozen-distribution interface (logpdf, pdf, rvs, mean).
The "Alt" variants are parameterized by mean and standard deviation rather
than by shape and scale.
"""

import numpy as np
from scipy import stats

from HetDSGE.core import ConfigurationError


def Normal(mu=0.0, sigma=1.0):
    return stats.norm(loc=mu, scale=sigma)


def Uniform(bot=0.0, top=1.0):
    return stats.uniform(loc=bot, scale=top - bot)


def GammaAlt(mean, std):
    """
    Gamma distribution with the given mean and standard deviation.
    """
    shape = mean**2 / std**2
    scale = std**2 / mean
    return stats.gamma(a=shape, scale=scale)


def BetaAlt(mean, std):
    """
    Beta distribution with the given mean and standard deviation.
    """
    if not 0.0 < mean < 1.0:
        raise ConfigurationError(f"BetaAlt mean must lie in (0, 1), got {mean}")
    a = (1 - mean) * mean**2 / std**2 - mean
    b = a * (1 / mean - 1)
    return stats.beta(a, b)


class RootInverseGamma:
    """
    Distribution of sigma when sigma**2 follows an inverse gamma distribution
    with shape nu/2 and scale nu*tau**2/2.  Commonly used as a prior on shock
    standard deviations.

    Parameters
    ----------
    nu : float
        Degrees of freedom.
    tau : float
        Scale.
    """

    def __init__(self, nu, tau):
        self.nu = nu
        self.tau = tau
        self._var_dstn = stats.invgamma(a=nu / 2.0, scale=nu * tau**2 / 2.0)

    def logpdf(self, x):
        x = np.asarray(x, dtype=float)
        with np.errstate(divide="ignore", invalid="ignore"):
            out = self._var_dstn.logpdf(x**2) + np.log(2.0 * x)
        return np.where(x > 0.0, out, -np.inf)

    def pdf(self, x):
        return np.exp(self.logpdf(x))

    def rvs(self, size=None, random_state=None):
        return np.sqrt(self._var_dstn.rvs(size=size, random_state=random_state))

    def mean(self):
        return float(np.sqrt(self._var_dstn.mean())) if self.nu > 2 else np.inf

    def support(self):
        return (0.0, np.inf)

    def __repr__(self):
        return f"RootInverseGamma(nu={self.nu}, tau={self.tau})"


PRIOR_FAMILIES = {
    "Normal": Normal,
    "Uniform": Uniform,
    "GammaAlt": GammaAlt,
    "BetaAlt": BetaAlt,
    "RootInverseGamma": RootInverseGamma,
}


def make_prior(declaration):
    """
    Builds a prior from a one-entry mapping such as {"Normal": [0.3, 0.05]},
    the form used in the YAML parameter declarations.

    Parameters
    ----------
    declaration : dict or None
        Family name mapped to its positional arguments.

    Returns
    -------
    prior : frozen distribution or None
    """
    if declaration is None:
        return None
    if not isinstance(declaration, dict) or len(declaration) != 1:
        raise ConfigurationError(f"Malformed prior declaration {declaration!r}")
    family, args = next(iter(declaration.items()))
    if family not in PRIOR_FAMILIES:
        raise ConfigurationError(f"Unknown prior family {family!r}")
    return PRIOR_FAMILIES[family](*args)
