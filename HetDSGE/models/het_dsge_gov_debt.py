"""
A heterogeneous-agent New Keynesian model with government debt.  Households
face persistent skill risk and transitory income risk and save in government
bonds; the aggregate block has capital with adjustment costs, sticky prices
and wages, a Taylor rule and a fiscal rule for debt.
"""

import os

import numpy as np

from HetDSGE.indices import BlockKind
from HetDSGE.model import HetModel
from HetDSGE.steadystate import SteadyStateDefinition

__all__ = ["HetDSGEGovDebt", "AGGREGATE_STEADY_STATE"]

PARAMETER_FILE = os.path.join(os.path.dirname(__file__), "het_dsge_gov_debt.yaml")


# Aggregate steady state, needed before the grids can be built.  Argument
# names are parameters (scaled) or values defined above.
AGGREGATE_STEADY_STATE = [
    SteadyStateDefinition(
        "Rkstar",
        lambda r, delta: r + delta,
        description="Rental rate on capital",
        tex_label="Rk_*",
    ),
    SteadyStateDefinition(
        "omegastar",
        lambda alpha, Rkstar: alpha ** (alpha / (1 - alpha))
        * (1 - alpha)
        * Rkstar ** (-alpha / (1 - alpha)),
        description="Real wage",
        tex_label="\\omega_*",
    ),
    SteadyStateDefinition(
        "klstar",
        lambda alpha, omegastar, Rkstar, gamma: (alpha / (1 - alpha))
        * (omegastar / Rkstar)
        * np.exp(gamma),
        description="Capital/Labor ratio",
        tex_label="kl_*",
    ),
    SteadyStateDefinition(
        "kstar",
        lambda klstar, H: klstar * H,
        description="Capital",
        tex_label="k_*",
    ),
    SteadyStateDefinition(
        "xstar",
        lambda delta, gamma, kstar: (1 - (1 - delta) * np.exp(-gamma)) * kstar,
        description="Investment",
        tex_label="x_*",
    ),
    SteadyStateDefinition(
        "ystar",
        lambda alpha, gamma, kstar, H: np.exp(-alpha * gamma) * kstar**alpha * H ** (1 - alpha),
        description="GDP",
        tex_label="y_*",
    ),
    SteadyStateDefinition(
        "bg",
        lambda BoverY, ystar, gamma: BoverY * ystar * np.exp(gamma),
        description="Govt Debt",
        tex_label="bg",
    ),
    SteadyStateDefinition(
        "Tg",
        lambda gamma, r, bg, g, ystar: (np.exp(-gamma) - 1 / (1 + r)) * bg
        + (1 - 1 / g) * ystar,
        description="Net lump sum taxes",
        tex_label="Tg",
    ),
    SteadyStateDefinition(
        "Tstar",
        lambda Rkstar, kstar, gamma, xstar, Tg: Rkstar * kstar * np.exp(-gamma) - xstar - Tg,
        description="Net transfer to households",
        tex_label="T_*",
    ),
]


class HetDSGEGovDebt(HetModel):
    """
    The heterogeneous-agent DSGE model with government debt.

    Parameters
    ----------
    subspec : str
        Parameter subspec, "ss0" by default.
    custom_settings : dict or None
        Overrides of ModelSettings fields, e.g. {"nx": 50}.
    parameter_values : dict or None
        A parameter draw.

    Examples
    --------
    >>> m = HetDSGEGovDebt(custom_settings={"nx": 30})
    >>> m.registry.equilibrium_conditions["eq_rm"]
    range(147, 148)
    """

    name = "HetDSGEGovDebt"
    default_subspec = "ss0"
    parameter_file = PARAMETER_FILE

    # 2 * n + n_scalars endogenous variables
    n_scalars = 28

    states = (
        ("kf_t", True),  # lagged ell function and lagged m function, predicts m
        ("k_t", False),  # capital
        ("R_t1", False),  # lagged real interest rate
        ("i_t1", False),  # lagged nominal interest rate
        ("y_t1", False),  # lagged gdp
        ("w_t1", False),  # lagged real wages
        ("I_t1", False),  # lagged investment
        ("bg_t", False),  # govt debt
        ("b_t", False),  # discount factor shock
        ("g_t", False),  # govt spending
        ("z_t", False),  # tfp growth
        ("mu_t", False),  # investment shock
        ("lambda_w_t", False),  # wage markup
        ("lambda_f_t", False),  # price markup
        ("rm_t", False),  # monetary policy shock
    )

    jumps = (
        ("l_t", True),  # ell function
        ("R_t", False),  # real interest rate
        ("i_t", False),  # nominal interest rate
        ("t_t", False),  # transfers + dividends
        ("w_t", False),  # real wage
        ("L_t", False),  # hours worked
        ("pi_t", False),  # inflation
        ("pi_w_t", False),  # nominal wage inflation
        ("mu_avg_t", False),  # average marginal utility
        ("y_t", False),  # gdp
        ("I_t", False),  # investment
        ("mc_t", False),  # marginal cost
        ("Q_t", False),  # Tobin's q
        ("capreturn_t", False),  # return on capital
        ("tg_t", False),  # lump sum taxes
    )

    equilibrium_conditions = (
        ("eq_euler", BlockKind.FUNCTION),
        ("eq_kolmogorov_fwd", BlockKind.FUNCTION),
        ("eq_market_clearing", BlockKind.AGGREGATION),
        ("eq_lambda", BlockKind.AGGREGATION),
        ("eq_transfers", BlockKind.SCALAR),
        ("eq_investment", BlockKind.SCALAR),
        ("eq_tobin_q", BlockKind.SCALAR),
        ("eq_capital_accumulation", BlockKind.SCALAR),
        ("eq_wage_phillips", BlockKind.SCALAR),
        ("eq_price_phillips", BlockKind.SCALAR),
        ("eq_marginal_cost", BlockKind.SCALAR),
        ("eq_gdp", BlockKind.SCALAR),
        ("eq_optimal_kl", BlockKind.SCALAR),
        ("eq_taylor", BlockKind.SCALAR),
        ("eq_fisher", BlockKind.SCALAR),
        ("eq_nominal_wage_inflation", BlockKind.SCALAR),
        ("eq_fiscal_rule", BlockKind.SCALAR),
        ("eq_g_budget_constraint", BlockKind.SCALAR),
        ("LR", BlockKind.LAG),
        ("LI", BlockKind.LAG),
        ("LY", BlockKind.LAG),
        ("LW", BlockKind.LAG),
        ("LX", BlockKind.LAG),
        ("eq_b", BlockKind.SHOCK),
        ("eq_g", BlockKind.SHOCK),
        ("eq_z", BlockKind.SHOCK),
        ("eq_mu", BlockKind.SHOCK),
        ("eq_lambda_w", BlockKind.SHOCK),
        ("eq_lambda_f", BlockKind.SHOCK),
        ("eq_rm", BlockKind.SHOCK),
    )

    exogenous_shocks = (
        "b_sh",
        "g_sh",
        "z_sh",
        "mu_sh",
        "lambda_w_sh",
        "lambda_f_sh",
        "rm_sh",
    )

    observables = (
        "obs_gdp",
        "obs_hours",
        "obs_wages",
        "obs_gdpdeflator",
        "obs_nominalrate",
        "obs_consumption",
        "obs_investment",
    )

    # Lagged states and observables measurement error, added after solving
    augmented_states = ("i_t1", "c_t", "c_t1")

    normalized_states = ("kf_t",)
    normalized_jumps = ("l_t",)

    def steady_state_definitions(self):
        return AGGREGATE_STEADY_STATE
