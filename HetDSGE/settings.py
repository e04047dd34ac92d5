"""
Typed configuration for heterogeneous-agent models.  Every setting is an
enumerated field of ModelSettings; unknown keys are rejected rather than
stored.
"""

from dataclasses import asdict, dataclass, fields, replace

import yaml

from HetDSGE.core import ConfigurationError

SOLUTION_METHODS = ("klein",)


@dataclass(frozen=True)
class ModelSettings:
    """
    Settings/flags that affect computation without changing the economic
    setup of the model.

    Parameters
    ----------
    nx : int
        Cash on hand distribution grid points.
    ns : int
        Skill distribution grid points.
    tauchen_lambda : float
        Spread of the skill grid, in unconditional standard deviations, used by
        the Tauchen discretization when ns > 2.
    xhi_multiple : float
        Width of the cash on hand grid in units of the highest one-period labor
        income.
    normalize_distr_variables : bool
        Whether to normalize the distributional states in the Klein solution step.
    n_function_valued_backward_looking_states : int
    n_backward_looking_distributional_vars : int
    n_function_valued_jumps : int
    n_jump_distributional_vars : int
    n_degrees_of_freedom_removed_state : int
        Degrees of freedom removed from each distributional state.  One for the
        endogenous distribution (cash on hand), then one for each exogenous
        distribution (skill).
    n_degrees_of_freedom_removed_jump : int
        Degrees of freedom removed from each distributional jump.
    n_anticipated_shocks : int
        Number of anticipated monetary policy shocks.
    solution_method : str
        Only "klein" is supported.
    """

    nx: int = 300
    ns: int = 2
    tauchen_lambda: float = 2.0
    xhi_multiple: float = 4.0
    normalize_distr_variables: bool = True
    n_function_valued_backward_looking_states: int = 1
    n_backward_looking_distributional_vars: int = 1
    n_function_valued_jumps: int = 1
    n_jump_distributional_vars: int = 1
    n_degrees_of_freedom_removed_state: int = 2
    n_degrees_of_freedom_removed_jump: int = 0
    n_anticipated_shocks: int = 0
    solution_method: str = "klein"

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if f.type is int and (isinstance(value, bool) or not isinstance(value, int)):
                raise ConfigurationError(f"Setting {f.name} must be an int, got {value!r}")
            if f.type is bool and not isinstance(value, bool):
                raise ConfigurationError(f"Setting {f.name} must be a bool, got {value!r}")
            if f.type is float and not isinstance(value, (int, float)):
                raise ConfigurationError(f"Setting {f.name} must be a float, got {value!r}")

        if self.nx < 1:
            raise ConfigurationError(f"nx must be positive, got {self.nx}")
        if self.ns < 2:
            raise ConfigurationError(f"ns must be at least 2, got {self.ns}")
        if self.tauchen_lambda <= 0 or self.xhi_multiple <= 0:
            raise ConfigurationError("tauchen_lambda and xhi_multiple must be positive")
        if self.solution_method not in SOLUTION_METHODS:
            raise ConfigurationError(
                f"Unsupported solution method {self.solution_method!r}"
            )

        counts = (
            "n_function_valued_backward_looking_states",
            "n_backward_looking_distributional_vars",
            "n_function_valued_jumps",
            "n_jump_distributional_vars",
            "n_degrees_of_freedom_removed_state",
            "n_degrees_of_freedom_removed_jump",
            "n_anticipated_shocks",
        )
        for name in counts:
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must be non-negative")

        if (
            self.n_backward_looking_distributional_vars
            > self.n_function_valued_backward_looking_states
        ):
            raise ConfigurationError(
                "More distributional states than function-valued states"
            )
        if self.n_jump_distributional_vars > self.n_function_valued_jumps:
            raise ConfigurationError(
                "More distributional jumps than function-valued jumps"
            )

        # Total mass plus one marginal per skill state are the only adding-up
        # constraints on a density over the (x, s) grid.
        for name in (
            "n_degrees_of_freedom_removed_state",
            "n_degrees_of_freedom_removed_jump",
        ):
            dof = getattr(self, name)
            if dof > self.ns or dof >= self.n:
                raise ConfigurationError(
                    f"{name} = {dof} exceeds the available distributional "
                    f"dimension (at most {min(self.ns, self.n - 1)})"
                )

    @property
    def n(self):
        """
        Total grid size, multiplying across grid dimensions.
        """
        return self.nx * self.ns

    @classmethod
    def field_names(cls):
        return tuple(f.name for f in fields(cls))

    @classmethod
    def from_dict(cls, settings):
        """
        Builds a ModelSettings from a mapping, rejecting unknown keys.
        """
        unknown = set(settings) - set(cls.field_names())
        if unknown:
            raise ConfigurationError(f"Unknown settings: {sorted(unknown)}")
        return cls(**settings)

    @classmethod
    def from_yaml(cls, path):
        with open(path) as f:
            settings = yaml.safe_load(f) or {}
        return cls.from_dict(settings)

    def replace(self, **changes):
        """
        Returns a new, validated ModelSettings with some fields changed.
        """
        unknown = set(changes) - set(self.field_names())
        if unknown:
            raise ConfigurationError(f"Unknown settings: {sorted(unknown)}")
        return replace(self, **changes)

    def to_dict(self):
        return asdict(self)
