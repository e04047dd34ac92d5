"""
Aggregate steady state as an ordered chain of closed-form definitions.

Each definition is a pure function whose argument names refer to scaled
parameters or to steady-state values defined earlier in the chain.  The order
is fixed when the solver is created, and a definition that reads a later (or
its own) value is rejected then rather than at evaluation time.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from inspect import signature
from typing import Callable

import numpy as np

from HetDSGE.core import ConfigurationError, _log


@dataclass(frozen=True)
class SteadyStateDefinition:
    """
    One named steady-state quantity.

    Parameters
    ----------
    name : str
    func : callable
        Pure function; its argument names are resolved against parameters and
        previously computed values.
    description : str
    tex_label : str
    """

    name: str
    func: Callable
    description: str = ""
    tex_label: str = ""

    @property
    def arguments(self):
        return tuple(signature(self.func).parameters)


class SteadyState(Mapping):
    """
    Read-only result of a steady-state evaluation.  Values may be non-finite
    for parameter draws outside the feasible region.
    """

    def __init__(self, values):
        self._values = dict(values)

    def __getitem__(self, name):
        return self._values[name]

    def __iter__(self):
        return iter(self._values)

    def __len__(self):
        return len(self._values)

    def __repr__(self):
        return f"SteadyState({self._values})"

    def nonfinite(self):
        """
        Names of steady-state values that are NaN or infinite.
        """
        return [k for k, v in self._values.items() if not np.all(np.isfinite(v))]

    def is_finite(self):
        return not self.nonfinite()


class SteadyStateSolver:
    """
    Evaluates steady-state definitions in their declared order.

    Parameters
    ----------
    definitions : [SteadyStateDefinition]
        Definitions in dependency order.
    """

    def __init__(self, definitions):
        self.definitions = tuple(definitions)
        names = [d.name for d in self.definitions]
        position = {}
        for i, name in enumerate(names):
            if name in position:
                raise ConfigurationError(f"Steady-state value {name} defined twice")
            position[name] = i

        for i, definition in enumerate(self.definitions):
            for arg in definition.arguments:
                if arg == definition.name:
                    raise ConfigurationError(
                        f"Steady-state value {definition.name} depends on itself"
                    )
                if position.get(arg, -1) > i:
                    raise ConfigurationError(
                        f"Steady-state value {definition.name} reads {arg}, "
                        "which is defined later"
                    )

    @property
    def names(self):
        return tuple(d.name for d in self.definitions)

    def dependencies(self):
        """
        Returns a dictionary from each steady-state value to the steady-state
        values (not parameters) it reads directly.
        """
        names = set(self.names)
        return {
            d.name: tuple(arg for arg in d.arguments if arg in names)
            for d in self.definitions
        }

    def solve(self, params):
        """
        Evaluates every definition once, in order.

        Parameters
        ----------
        params : dict
            Scaled parameter values.  Steady-state names shadow parameters of
            the same name.

        Returns
        -------
        SteadyState
        """
        # numpy scalars overflow to inf where Python floats would raise
        vals = {k: np.float64(v) for k, v in params.items()}
        result = {}

        # Infeasible draws yield inf/nan, which are propagated, not raised
        with np.errstate(all="ignore"):
            for definition in self.definitions:
                try:
                    args = [vals[arg] for arg in definition.arguments]
                except KeyError as err:
                    raise ConfigurationError(
                        f"Steady-state value {definition.name} reads undefined "
                        f"quantity {err.args[0]}"
                    ) from None
                value = definition.func(*args)
                vals[definition.name] = value
                result[definition.name] = value
                _log.debug(f"{definition.name} = {value}")

        steady_state = SteadyState(result)
        bad = steady_state.nonfinite()
        if bad:
            _log.warning(f"Non-finite steady-state values: {', '.join(bad)}")
        return steady_state
