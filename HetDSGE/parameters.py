"""
Model parameters: values with bounds, a value transform, a prior and an
optional scaling rule.  Parameter declarations are data (YAML), and subspecs
may extend one another.
"""

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

import numpy as np
import yaml
from sympy import Symbol
from sympy.parsing.sympy_parser import parse_expr
from sympy.utilities.lambdify import lambdify

from HetDSGE.core import ConfigurationError
from HetDSGE.distributions import make_prior


class Untransformed:
    """
    Identity map between model space and the real line.
    """

    def to_real_line(self, x, parameterization, c=1.0):
        return x

    def to_model_space(self, x, parameterization, c=1.0):
        return x

    def __repr__(self):
        return "Untransformed()"


class SquareRoot:
    """
    Maps the open interval (a, b) onto the real line.
    """

    def to_real_line(self, x, parameterization, c=1.0):
        a, b = parameterization
        cx = 2.0 * (x - (a + b) / 2.0) / (b - a)
        return (1.0 / c) * cx / np.sqrt(1.0 - cx**2)

    def to_model_space(self, x, parameterization, c=1.0):
        a, b = parameterization
        return (a + b) / 2.0 + (b - a) / 2.0 * c * x / np.sqrt(1.0 + c**2 * x**2)

    def __repr__(self):
        return "SquareRoot()"


class Exponential:
    """
    Maps (a, inf) onto the real line, shifted by b.
    """

    def to_real_line(self, x, parameterization, c=1.0):
        a, b = parameterization
        return b + (1.0 / c) * np.log(x - a)

    def to_model_space(self, x, parameterization, c=1.0):
        a, b = parameterization
        return a + np.exp(c * (x - b))

    def __repr__(self):
        return "Exponential()"


TRANSFORMS = {
    "Untransformed": Untransformed,
    "SquareRoot": SquareRoot,
    "Exponential": Exponential,
}


def math_text_to_lambda(text):
    """
    Returns a function of the single variable `x` represented by the given
    mathematical text, e.g. "x/100" or "1 + x/100".
    """
    expr = parse_expr(text)
    unknown = {str(s) for s in expr.free_symbols} - {"x"}
    if unknown:
        raise ConfigurationError(
            f"Scaling rule {text!r} may only refer to x, found {sorted(unknown)}"
        )
    return lambdify([Symbol("x")], expr, "numpy")


@dataclass
class Parameter:
    """
    A time-invariant model parameter.

    Parameters
    ----------
    key : str
        Name of the parameter.
    value : float
        Value in model units (before scaling).
    valuebounds : (float, float)
        Inclusive bounds on `value`.  Fixed parameters are bounded by their value.
    transform_parameterization : (float, float)
        Parameters of the transform between model space and the real line.
    transform : object
        One of Untransformed, SquareRoot, Exponential.
    prior : frozen distribution or None
        Prior on `value`.
    fixed : bool
        Whether the parameter is held constant in estimation.
    scaling : str or None
        Math text in `x` mapping `value` to the value used in model equations.
    description : str
    tex_label : str
    """

    key: str
    value: float
    valuebounds: Optional[Tuple[float, float]] = None
    transform_parameterization: Optional[Tuple[float, float]] = None
    transform: Any = field(default_factory=Untransformed)
    prior: Any = None
    fixed: bool = True
    scaling: Optional[str] = None
    description: str = ""
    tex_label: str = ""
    _scaling_func: Optional[Callable] = field(
        default=None, init=False, repr=False, compare=False
    )

    def __post_init__(self):
        self.value = float(self.value)
        if self.fixed or self.valuebounds is None:
            self.valuebounds = (self.value, self.value)
        self.valuebounds = tuple(float(b) for b in self.valuebounds)
        if self.transform_parameterization is None:
            self.transform_parameterization = self.valuebounds
        self.transform_parameterization = tuple(
            float(b) for b in self.transform_parameterization
        )
        if self.scaling is not None:
            self._scaling_func = math_text_to_lambda(self.scaling)
        if not self.in_bounds(self.value):
            raise ConfigurationError(
                f"Parameter {self.key} declared with value {self.value} outside "
                f"its bounds {self.valuebounds}"
            )

    def in_bounds(self, value):
        lo, hi = self.valuebounds
        return lo <= value <= hi

    @property
    def scaledvalue(self):
        if self._scaling_func is None:
            return self.value
        return float(self._scaling_func(self.value))

    def to_real_line(self):
        return self.transform.to_real_line(self.value, self.transform_parameterization)

    def to_model_space(self, x):
        return self.transform.to_model_space(x, self.transform_parameterization)


class ParameterVector(Mapping):
    """
    An ordered, name-addressed collection of Parameters.  Values are changed
    through `set_value`, which validates bounds; `with_values` returns a fresh
    copy so that a new parameter draw never mutates an existing vector.

    Parameters
    ----------
    parameters : [Parameter]
        Parameters in declaration order.  Names must be unique.
    """

    def __init__(self, parameters: Iterable[Parameter] = ()):
        self._parameters: Dict[str, Parameter] = {}
        for param in parameters:
            if param.key in self._parameters:
                raise ConfigurationError(f"Parameter {param.key} declared twice")
            self._parameters[param.key] = param

    def __getitem__(self, name):
        try:
            return self._parameters[name]
        except KeyError:
            raise KeyError(f"Unknown parameter {name!r}") from None

    def __iter__(self):
        return iter(self._parameters)

    def __len__(self):
        return len(self._parameters)

    def value(self, name):
        return self[name].value

    def scaledvalue(self, name):
        return self[name].scaledvalue

    def scaled_values(self):
        """
        Returns a dictionary from names to scaled values, the form in which
        parameters enter steady-state and equilibrium computations.
        """
        return {key: param.scaledvalue for key, param in self._parameters.items()}

    def set_value(self, name, value):
        """
        Sets the value of a parameter.

        Parameters
        ----------
        name : str
            name of parameter
        value : float
            new value, in model units

        """
        param = self[name]
        value = float(value)
        if param.fixed and value != param.value:
            raise ValueError(f"Parameter {name} is fixed at {param.value}")
        if not param.in_bounds(value):
            raise ValueError(
                f"Value {value} for parameter {name} is outside its bounds "
                f"{param.valuebounds}"
            )
        param.value = value

    def with_values(self, values):
        """
        Returns a copy of this ParameterVector with some values replaced.

        Parameters
        ----------
        values : dict
            Mapping from parameter names to new values.

        Returns
        -------
        new : ParameterVector
        """
        new = copy.deepcopy(self)
        for name, value in values.items():
            new.set_value(name, value)
        return new

    def free_parameters(self):
        return [key for key, param in self._parameters.items() if not param.fixed]

    def to_array(self):
        return np.array([param.value for param in self._parameters.values()])

    def transform_to_real_line(self):
        """
        Returns the values of all parameters mapped to the real line.  Fixed
        parameters are returned unchanged.
        """
        return np.array(
            [
                param.value if param.fixed else param.to_real_line()
                for param in self._parameters.values()
            ]
        )

    def transform_to_model_space(self, x):
        """
        Maps a real-line vector (ordered as this ParameterVector) back to model
        space and returns the values as a dictionary.
        """
        if len(x) != len(self):
            raise ValueError(f"Expected {len(self)} values, got {len(x)}")
        return {
            key: (xi if param.fixed else float(param.to_model_space(xi)))
            for (key, param), xi in zip(self._parameters.items(), x)
        }

    def prior_logpdf(self):
        """
        Sum of prior log densities over free parameters that carry a prior.
        """
        total = 0.0
        for param in self._parameters.values():
            if not param.fixed and param.prior is not None:
                total += float(param.prior.logpdf(param.value))
        return total

    def __repr__(self):
        return f"ParameterVector({list(self._parameters)})"


PARAMETER_FIELDS = {f.name for f in fields(Parameter) if f.init} - {"key"}


def parameter_from_declaration(key, declaration):
    """
    Builds a Parameter from a YAML declaration.  A bare number declares a
    fixed parameter with that value.
    """
    if not isinstance(declaration, dict):
        return Parameter(key, declaration)

    unknown = set(declaration) - PARAMETER_FIELDS
    if unknown:
        raise ConfigurationError(
            f"Unknown fields {sorted(unknown)} in declaration of parameter {key}"
        )
    kwds = dict(declaration)
    transform = kwds.pop("transform", "Untransformed")
    if transform not in TRANSFORMS:
        raise ConfigurationError(f"Unknown transform {transform!r} for parameter {key}")
    kwds["transform"] = TRANSFORMS[transform]()
    kwds["prior"] = make_prior(kwds.get("prior"))
    for bounds in ("valuebounds", "transform_parameterization"):
        if kwds.get(bounds) is not None:
            kwds[bounds] = tuple(kwds[bounds])
    return Parameter(key, **kwds)


def inherit(name, subspecs):
    """
    Resolves a subspec, following its EXTENDS chain.

    Parameters
    ----------
    name : str
        Name of the subspec.
    subspecs : dict
        All subspec declarations.

    Returns
    -------
    overrides : dict
        Parameter overrides, with those of `name` taking precedence over
        those it extends.
    """
    if name not in subspecs:
        raise ConfigurationError(f"Unknown subspec {name!r}")
    params = subspecs[name] or {}
    if "EXTENDS" in params:
        original = params
        extensions = {}
        for parent in params["EXTENDS"]:
            extensions.update(inherit(parent, subspecs))

        new = copy.copy(extensions)
        new.update(original)
        del new["EXTENDS"]

        return new
    else:
        return dict(params)


def load_parameters(config, subspec=None):
    """
    Builds a ParameterVector from a parsed parameter configuration.

    Parameters
    ----------
    config : dict
        With key "parameters" (name -> declaration) and optionally
        "subspecs" (subspec name -> overrides).
    subspec : str or None
        Subspec to apply.  Overrides are either a number (new value) or a
        dictionary of declaration fields.

    Returns
    -------
    ParameterVector
    """
    declarations = copy.deepcopy(config["parameters"])
    if subspec is not None:
        overrides = inherit(subspec, config.get("subspecs", {}))
        for key, override in overrides.items():
            if key not in declarations:
                raise ConfigurationError(
                    f"Subspec {subspec} overrides undeclared parameter {key}"
                )
            if isinstance(override, dict):
                base = declarations[key]
                if not isinstance(base, dict):
                    base = {"value": base}
                base.update(override)
                declarations[key] = base
            elif isinstance(declarations[key], dict):
                declarations[key]["value"] = override
            else:
                declarations[key] = override

    return ParameterVector(
        parameter_from_declaration(key, decl) for key, decl in declarations.items()
    )


def load_parameter_file(path, subspec=None):
    with open(path) as f:
        config = yaml.safe_load(f)
    return load_parameters(config, subspec)
