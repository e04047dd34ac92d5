"""
One-time construction of a heterogeneous-agent model instance: settings,
parameters, index registry, aggregate steady state, grids, degrees of freedom
normalization.  Each instance corresponds to a single parameter draw; a new
draw builds a new instance.
"""

from HetDSGE.core import ConfigurationError, InfeasibilityError, Model, _log
from HetDSGE.grids import build_grids
from HetDSGE.indices import BlockKind, IndexRegistryBuilder
from HetDSGE.normalization import DOFNormalizer
from HetDSGE.parameters import load_parameter_file
from HetDSGE.settings import ModelSettings
from HetDSGE.steadystate import SteadyStateSolver


class HetModel(Model):
    """
    Base class for heterogeneous-agent DSGE models solved with the Klein
    method.  Subclasses declare their symbols as class attributes and their
    aggregate steady state through `steady_state_definitions`.

    Parameters
    ----------
    subspec : str or None
        Parameter subspec; defaults to `default_subspec`.
    custom_settings : dict or None
        Overrides of ModelSettings fields.
    parameter_values : dict or None
        A parameter draw: new values for (free) parameters.
    """

    name = "HetModel"
    default_subspec = None
    parameter_file = None

    # Number of scalar states and jumps, fixed by the model's equations
    n_scalars = 0

    # (name, function_valued)
    states = ()
    jumps = ()
    # (name, BlockKind)
    equilibrium_conditions = ()
    exogenous_shocks = ()
    observables = ()
    augmented_states = ()
    normalized_states = ()
    normalized_jumps = ()

    def __init__(self, subspec=None, custom_settings=None, parameter_values=None):
        super().__init__()
        self.subspec = subspec if subspec is not None else self.default_subspec

        settings = self.default_settings()
        if isinstance(custom_settings, ModelSettings):
            settings = custom_settings
        elif custom_settings:
            settings = settings.replace(**custom_settings)
        self.settings = settings

        self.parameters = load_parameter_file(self.parameter_file, self.subspec)
        if parameter_values:
            self.parameters = self.parameters.with_values(parameter_values)

        # Structural configuration is validated before any numbers are computed
        unnormalized = self.make_registry_builder().build(self.settings.n)
        self._check_dimensions(unnormalized)
        self.normalizer = DOFNormalizer.from_settings(
            unnormalized,
            self.settings,
            normalized_states=self.normalized_states,
            normalized_jumps=self.normalized_jumps,
        )

        params = self.parameters.scaled_values()
        self.steady_state = SteadyStateSolver(self.steady_state_definitions()).solve(params)
        self.grids = build_grids(self.settings, params, self.steady_state)

        self.registry = self.normalizer.normalized_registry().augmented(self.augmented_states)
        self.normalization = self.normalizer.compose_normalization_matrices()
        self._publish_settings()

        _log.info(f"Built {self.description()}")
        if not self.is_feasible():
            _log.warning(f"{self.description()} is infeasible at this parameter draw")

    def default_settings(self):
        return ModelSettings()

    def steady_state_definitions(self):
        """
        Returns the ordered SteadyStateDefinitions of the aggregate steady state.
        """
        raise NotImplementedError()

    def make_registry_builder(self):
        builder = IndexRegistryBuilder()
        for name, function_valued in self.states:
            builder.add_state(name, function_valued)
        for name, function_valued in self.jumps:
            builder.add_jump(name, function_valued)
        for name, kind in self.equilibrium_conditions:
            builder.add_equilibrium_condition(name, BlockKind[kind] if isinstance(kind, str) else kind)
        for name in self.exogenous_shocks:
            builder.add_exogenous_shock(name)
        for i in range(1, self.settings.n_anticipated_shocks + 1):
            builder.add_expected_shock(f"rm_shl{i}")
        for name in self.observables:
            builder.add_observable(name)
        return builder

    def _check_dimensions(self, registry):
        n_fv = (
            self.settings.n_function_valued_backward_looking_states
            + self.settings.n_function_valued_jumps
        )
        expected = registry.expected_dimension(registry.n, self.n_scalars, n_fv)
        if registry.nvars != expected:
            raise ConfigurationError(
                f"Endogenous namespace has dimension {registry.nvars}, expected {expected}"
            )

    def _publish_settings(self):
        reg = self.registry
        self.publish(
            n=self.settings.n,
            xlo=self.grids.xlo,
            xhi=self.grids.xhi,
            xscale=self.grids.xscale,
            sscale=self.grids.sscale,
            nvars=reg.nvars,
            nscalars=reg.n_scalars,
            nxscalars=reg.nxscalars,
            nyscalars=reg.nyscalars,
            state_indices=reg.state_indices,
            jump_indices=reg.jump_indices,
            backward_looking_states_normalization_factor=self.normalizer.backward_looking_states_normalization_factor,
            jumps_normalization_factor=self.normalizer.jumps_normalization_factor,
            n_backward_looking_states=self.normalizer.n_backward_looking_states,
            n_jumps=self.normalizer.n_jumps,
            n_model_states=self.normalizer.n_model_states,
            n_model_states_augmented=reg.n_model_states_augmented,
            n_predetermined_variables=self.normalization.n_predetermined_variables,
            Qleft=self.normalization.Qleft,
            Qright=self.normalization.Qright,
        )

    def infeasibilities(self):
        """
        Names of the quantities that make this instance infeasible.
        """
        problems = self.steady_state.nonfinite()
        if not self.grids.feasible:
            problems += ["xlo", "xhi"]
        return problems

    def is_feasible(self):
        return not self.infeasibilities()

    def check_feasibility(self):
        """
        Raises InfeasibilityError if the steady state or the grids are not
        usable for linearization.
        """
        problems = self.infeasibilities()
        if problems:
            raise InfeasibilityError(problems)

    def description(self):
        return f"{self.name}, {self.subspec}"

    def __repr__(self):
        return (
            f"{self.name}(subspec={self.subspec!r}, nx={self.settings.nx}, "
            f"ns={self.settings.ns}, n_model_states={self.get_setting('n_model_states')})"
        )
