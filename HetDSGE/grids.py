"""
Discretization of the two dimensions of household heterogeneity: a persistent
skill process and cash on hand.  The total grid is their cross product, laid
out skill-major (index = s * nx + x).
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np
import xarray as xr

from HetDSGE.core import ConfigurationError, _log
from HetDSGE.distributions import (
    calc_stationary_distribution,
    check_row_stochastic,
    make_tauchen_ar1,
)

__all__ = [
    "Grid",
    "GridSet",
    "uniform_quadrature",
    "persistent_skill_process",
    "cash_grid",
    "build_grids",
]


def _frozen_array(a):
    a = np.array(a, dtype=float)
    a.setflags(write=False)
    return a


@dataclass(frozen=True, eq=False)
class Grid:
    """
    Nodes with matched probability weights.

    Parameters
    ----------
    points : np.array
        Grid nodes.
    weights : np.array
        Non-negative weights summing to one.
    scale : float
        Width of the grid, used to rescale equations defined on it.
    transition : np.array or None
        Row-stochastic transition matrix, for grids of a Markov process.
    """

    points: np.ndarray
    weights: np.ndarray
    scale: float = 1.0
    transition: Optional[np.ndarray] = None

    def __post_init__(self):
        object.__setattr__(self, "points", _frozen_array(self.points))
        object.__setattr__(self, "weights", _frozen_array(self.weights))
        if self.transition is not None:
            object.__setattr__(self, "transition", _frozen_array(self.transition))
        if self.points.shape != self.weights.shape:
            raise ConfigurationError(
                f"Grid has {self.points.size} points but {self.weights.size} weights"
            )
        if np.any(self.weights < 0.0) or not np.isclose(np.sum(self.weights), 1.0):
            raise ConfigurationError("Grid weights must be non-negative and sum to one")

    def __len__(self):
        return self.points.size


def uniform_quadrature(n, lo, hi):
    """
    Midpoint rule with n equal-width cells on [lo, hi].

    Returns
    -------
    points : np.array
    weights : np.array
        Equal to 1 / n, so the weights integrate a density that is constant
        within cells.
    """
    width = (hi - lo) / n
    points = lo + width * (np.arange(n) + 0.5)
    weights = np.full(n, 1.0 / n)
    return points, weights


def persistent_skill_process(sH_over_sL, pLH, pHL, ns=2, tauchen_lambda=2.0):
    """
    Discretizes the persistent skill process.

    With two states the chain is given directly by the switching probabilities
    pLH (low to high) and pHL (high to low).  With more states, log skill is a
    Tauchen AR(1) with persistence 1 - pLH - pHL whose range of log skill
    equals log(sH_over_sL).  Skill levels are normalized so that mean skill
    under the stationary distribution is one.

    Parameters
    ----------
    sH_over_sL : float
        Ratio of the highest to the lowest skill level.
    pLH, pHL : float
        Switching probabilities.
    ns : int
        Number of skill states.
    tauchen_lambda : float
        Bound of the Tauchen grid, in unconditional standard deviations.

    Returns
    -------
    Grid
        Skill levels, stationary weights and transition matrix.
    """
    if ns == 2:
        trans = np.array([[1.0 - pLH, pLH], [pHL, 1.0 - pHL]])
        log_s = np.array([0.0, np.log(sH_over_sL)])
    else:
        y, trans = make_tauchen_ar1(ns, sigma=1.0, ar_1=1.0 - pLH - pHL, bound=tauchen_lambda)
        log_s = (y - y[0]) * np.log(sH_over_sL) / (y[-1] - y[0])

    trans = check_row_stochastic(trans)
    weights = calc_stationary_distribution(trans)
    s = np.exp(log_s)
    s = s / np.dot(weights, s)
    return Grid(s, weights, scale=float(s[-1] - s[0]), transition=trans)


def cash_grid(nx, wage, H, zlo, zhi, s_min, s_max, T, r, gamma, eta, xhi_multiple=4.0):
    """
    Builds the cash on hand grid from steady-state prices.

    The lower bound is the cash on hand of a household with the lowest skill,
    the lowest transitory income draw and maximal debt:
    xlo = wage * H * zlo * s_min + T - (1 + r) * exp(-gamma) * eta.
    The grid then spans xhi_multiple times the highest one-period labor income.

    Returns
    -------
    grid : Grid
        Nodes are NaN when the bounds are infeasible.
    xlo, xhi : float
    feasible : bool
        Whether both bounds are finite, xlo >= 0 and xlo < xhi.
    """
    with np.errstate(all="ignore"):
        xlo = wage * H * zlo * s_min + T - (1.0 + r) * np.exp(-gamma) * eta
        xhi = xlo + xhi_multiple * wage * H * zhi * s_max
        xscale = xhi - xlo

    feasible = bool(np.isfinite(xlo) and np.isfinite(xhi) and 0.0 <= xlo < xhi)
    if feasible:
        points, weights = uniform_quadrature(nx, xlo, xhi)
    else:
        _log.warning(f"Infeasible cash on hand grid bounds: xlo = {xlo}, xhi = {xhi}")
        points, weights = np.full(nx, np.nan), np.full(nx, 1.0 / nx)

    return Grid(points, weights, scale=float(xscale)), float(xlo), float(xhi), feasible


@dataclass(frozen=True, eq=False)
class GridSet:
    """
    The skill grid, the cash on hand grid and their cross product.

    Attributes
    ----------
    skill : Grid
    cash : Grid
    sgrid_total, xgrid_total, weights_total : np.array
        Total grid of length nx * ns, skill-major.
    xlo, xhi : float
        Cash on hand bounds.
    feasible : bool
    """

    skill: Grid
    cash: Grid
    sgrid_total: np.ndarray
    xgrid_total: np.ndarray
    weights_total: np.ndarray
    xlo: float
    xhi: float
    feasible: bool

    @classmethod
    def from_grids(cls, skill, cash, xlo, xhi, feasible):
        ns, nx = len(skill), len(cash)
        return cls(
            skill=skill,
            cash=cash,
            sgrid_total=_frozen_array(np.kron(skill.points, np.ones(nx))),
            xgrid_total=_frozen_array(np.kron(np.ones(ns), cash.points)),
            weights_total=_frozen_array(np.kron(skill.weights, cash.weights)),
            xlo=xlo,
            xhi=xhi,
            feasible=feasible,
        )

    @property
    def nx(self):
        return len(self.cash)

    @property
    def ns(self):
        return len(self.skill)

    @property
    def n(self):
        return self.nx * self.ns

    @property
    def xscale(self):
        return self.cash.scale

    @property
    def sscale(self):
        return self.skill.scale

    def to_dataset(self):
        """
        Returns the total grid as an xarray Dataset along dimension "point".
        """
        return xr.Dataset(
            {
                "s": xr.DataArray(self.sgrid_total, dims=("point",)),
                "x": xr.DataArray(self.xgrid_total, dims=("point",)),
                "weight": xr.DataArray(self.weights_total, dims=("point",)),
            },
            attrs={
                "xlo": self.xlo,
                "xhi": self.xhi,
                "xscale": self.xscale,
                "sscale": self.sscale,
                "feasible": int(self.feasible),
            },
        )


def build_grids(settings, params, steady_state):
    """
    Builds all grids for one parameter draw.

    Parameters
    ----------
    settings : ModelSettings
    params : dict
        Scaled parameter values.
    steady_state : Mapping
        Aggregate steady state; must contain the wage `omegastar` and net
        transfers `Tstar`.

    Returns
    -------
    GridSet
    """
    skill = persistent_skill_process(
        params["sH_over_sL"],
        params["pLH"],
        params["pHL"],
        ns=settings.ns,
        tauchen_lambda=settings.tauchen_lambda,
    )
    cash, xlo, xhi, feasible = cash_grid(
        settings.nx,
        steady_state["omegastar"],
        params["H"],
        params["zlo"],
        params["zhi"],
        skill.points.min(),
        skill.points.max(),
        steady_state["Tstar"],
        params["r"],
        params["gamma"],
        params["eta"],
        xhi_multiple=settings.xhi_multiple,
    )
    grids = GridSet.from_grids(skill, cash, xlo, xhi, feasible)
    _log.info(
        f"Grids built: nx = {grids.nx}, ns = {grids.ns}, "
        f"x in [{xlo:.6g}, {xhi:.6g}]"
    )
    return grids
