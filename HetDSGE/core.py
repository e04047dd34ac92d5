"""
High-level classes and functions shared by every part of HetDSGE.  A model in
HetDSGE is a heterogeneous-agent DSGE model whose equilibrium conditions are
expressed over a discretized cross-sectional grid.  This module holds the
pieces that everything else depends on: the package logger, the error
taxonomy, and the `Model` base class with name-based parameter access.
"""

import logging

logging.basicConfig(format="%(message)s")
_log = logging.getLogger("HetDSGE")
_log.setLevel(logging.ERROR)

__all__ = [
    "ConfigurationError",
    "InfeasibilityError",
    "UnknownSymbolError",
    "Model",
    "disable_logging",
    "enable_logging",
    "warnings",
    "quiet",
    "verbose",
    "set_verbosity_level",
]


def disable_logging():
    _log.disabled = True


def enable_logging():
    _log.disabled = False


def warnings():
    _log.setLevel(logging.WARNING)


def quiet():
    _log.setLevel(logging.ERROR)


def verbose():
    _log.setLevel(logging.INFO)


def set_verbosity_level(level):
    _log.setLevel(level)


class ConfigurationError(Exception):
    """
    Raised when the static configuration of a model is invalid or inconsistent:
    duplicate symbols, unknown settings, degrees of freedom that cannot be
    removed, transition matrices that are not row-stochastic, and so on.

    This is always fatal at construction time.  It intentionally does not
    derive from ValueError so that handlers which reject individual parameter
    draws never swallow it.
    """


class InfeasibilityError(ArithmeticError):
    """
    Raised on request when a parameter draw produces a steady state or grid
    that is not usable (non-finite values, empty cash-on-hand interval).

    Parameters
    ----------
    problems : [str]
        Names of the offending quantities.
    """

    def __init__(self, problems):
        self.problems = list(problems)
        super().__init__(
            "Infeasible model instance, offending quantities: "
            + ", ".join(self.problems)
        )


class UnknownSymbolError(KeyError):
    """
    Raised when a symbol is requested from an index namespace that does not
    define it.
    """

    def __init__(self, namespace, symbol):
        self.namespace = namespace
        self.symbol = symbol
        super().__init__(f"Symbol {symbol!r} is not defined in namespace {namespace!r}")

    def __str__(self):
        return self.args[0]


class Model:
    """
    A class with special handling of parameters and settings.  Subclasses are
    expected to fill `self.parameters` with a ParameterVector and
    `self.settings` with a ModelSettings record.
    """

    def __init__(self):
        if not hasattr(self, "parameters"):
            self.parameters = None
        if not hasattr(self, "settings"):
            self.settings = None
        if not hasattr(self, "_published"):
            self._published = {}

    def __getitem__(self, name):
        """
        Returns the Parameter named `name`.
        """
        return self.parameters[name]

    def get_parameter(self, name):
        """
        Returns the (unscaled) value of a parameter of this model.

        Parameters
        ----------
        name : string
            The name of the parameter to get

        Returns
        -------
        value : float
            The value of the parameter
        """
        return self.parameters.value(name)

    def get_setting(self, name):
        """
        Returns a configuration value.  Fields of the settings record are
        searched first, then quantities published during model construction
        (grid bounds, dimensions of the normalized system, ...).

        Parameters
        ----------
        name : string
            The name of the setting.

        Returns
        -------
        value :
            The value of the setting.
        """
        if self.settings is not None and name in self.settings.field_names():
            return getattr(self.settings, name)
        if name in self._published:
            return self._published[name]
        raise ConfigurationError(f"Unknown setting {name!r}")

    def publish(self, **kwds):
        """
        Records derived configuration values produced while building the model.
        """
        self._published.update(kwds)

    def __str__(self):
        type_ = type(self)
        module = type_.__module__
        qualname = type_.__qualname__

        s = f"<{module}.{qualname} object at {hex(id(self))}.\n"
        s += "Parameters:"

        if self.parameters is not None:
            for p in self.parameters:
                s += f"\n{p}: {self.parameters.value(p)}"

        s += ">"
        return s

    def describe(self):
        return self.__str__()
