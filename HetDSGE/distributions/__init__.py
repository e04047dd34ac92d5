__all__ = [
    "make_tauchen_ar1",
    "check_row_stochastic",
    "calc_stationary_distribution",
    "Normal",
    "Uniform",
    "GammaAlt",
    "BetaAlt",
    "RootInverseGamma",
    "make_prior",
]

from HetDSGE.distributions.markov import (
    calc_stationary_distribution,
    check_row_stochastic,
    make_tauchen_ar1,
)
from HetDSGE.distributions.priors import (
    BetaAlt,
    GammaAlt,
    Normal,
    RootInverseGamma,
    Uniform,
    make_prior,
)
