"""
Index bookkeeping for heterogeneous-agent models.

Every named model quantity (endogenous state or jump, exogenous shock, expected
shock, equilibrium condition, observable) is assigned a contiguous range inside
a flat numeric vector.  Function-valued variables (discretized functions over
the agent grid) occupy a grid-sized block; everything else occupies a single
index.  Ranges are 0-based and half-open, so a namespace of dimension N is
partitioned by ranges covering 0, ..., N - 1.

Registries are built in two phases: symbols are declared on an
IndexRegistryBuilder, then `build` freezes them into an IndexRegistry laid out
in canonical block order.  Downstream code only reads the frozen registry.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import Tuple

import numpy as np

from HetDSGE.core import ConfigurationError, UnknownSymbolError, _log


class BlockKind(IntEnum):
    """
    Canonical ordering of equilibrium-condition blocks.
    """

    FUNCTION = 0  # real-time blocks which output a function
    AGGREGATION = 1  # blocks which map functions to scalars
    SCALAR = 2  # scalar blocks involving endogenous variables
    LAG = 3  # lagged variables
    SHOCK = 4  # exogenous shock processes


class Namespace(str, Enum):
    ENDOGENOUS_STATES = "endogenous_states"
    EXOGENOUS_SHOCKS = "exogenous_shocks"
    EXPECTED_SHOCKS = "expected_shocks"
    EQUILIBRIUM_CONDITIONS = "equilibrium_conditions"
    OBSERVABLES = "observables"
    AUGMENTED_STATES = "endogenous_states_augmented"


class IndexMap(Mapping):
    """
    A read-only, ordered mapping from symbol names to indices (ranges for
    endogenous states and equilibrium conditions, integers otherwise).  Asking
    for an undefined symbol raises UnknownSymbolError.
    """

    def __init__(self, namespace, entries=()):
        self._namespace = Namespace(namespace)
        self._entries = dict(entries)

    @property
    def namespace(self):
        return self._namespace

    def __getitem__(self, name):
        try:
            return self._entries[name]
        except KeyError:
            raise UnknownSymbolError(self._namespace.value, name) from None

    def __iter__(self):
        return iter(self._entries)

    def __len__(self):
        return len(self._entries)

    def __repr__(self):
        return f"IndexMap({self._namespace.value}, {self._entries})"

    @property
    def dimension(self):
        """
        Total number of indices covered.
        """
        return sum(_length(v) for v in self._entries.values())


def _length(index):
    return len(index) if isinstance(index, range) else 1


def is_partition(ranges, N):
    """
    Checks that a collection of ranges covers 0, ..., N - 1 exactly once.

    Parameters
    ----------
    ranges : iterable of range
    N : int
        Dimension of the namespace.

    Returns
    -------
    bool
    """
    covered = np.zeros(N, dtype=int)
    for r in ranges:
        if r.step != 1 or r.start < 0 or r.stop > N:
            return False
        covered[r.start : r.stop] += 1
    return bool(np.all(covered == 1))


def stack_indices(index_map, names):
    """
    Concatenates the indices of the given symbols into a single array.
    """
    if not names:
        return np.zeros(0, dtype=int)
    return np.concatenate([np.arange(index_map[k].start, index_map[k].stop) for k in names])


@dataclass(frozen=True)
class _Declaration:
    name: str
    function_valued: bool = False
    kind: BlockKind = BlockKind.SCALAR


class IndexRegistryBuilder:
    """
    Collects symbol declarations for an IndexRegistry.  Declaration order is
    preserved within each canonical block; `build` applies the canonical order.
    """

    def __init__(self):
        self._states = []
        self._jumps = []
        self._equilibrium_conditions = []
        self._exogenous_shocks = []
        self._expected_shocks = []
        self._observables = []

    def add_state(self, name, function_valued=False):
        """
        Declares a backward-looking state.
        """
        self._states.append(_Declaration(name, function_valued))
        return self

    def add_jump(self, name, function_valued=False):
        """
        Declares a forward-looking (jump) variable.
        """
        self._jumps.append(_Declaration(name, function_valued))
        return self

    def add_equilibrium_condition(self, name, kind=BlockKind.SCALAR):
        kind = BlockKind(kind)
        self._equilibrium_conditions.append(
            _Declaration(name, kind == BlockKind.FUNCTION, kind)
        )
        return self

    def add_exogenous_shock(self, name):
        self._exogenous_shocks.append(_Declaration(name))
        return self

    def add_expected_shock(self, name):
        self._expected_shocks.append(_Declaration(name))
        return self

    def add_observable(self, name):
        self._observables.append(_Declaration(name))
        return self

    def build(self, n):
        """
        Freezes the declarations into an IndexRegistry.

        Parameters
        ----------
        n : int
            Total grid size; the length of every function-valued block.

        Returns
        -------
        IndexRegistry
        """
        if n < 1:
            raise ConfigurationError(f"Grid size must be positive, got {n}")

        _check_unique(Namespace.ENDOGENOUS_STATES, self._states + self._jumps)
        _check_unique(Namespace.EQUILIBRIUM_CONDITIONS, self._equilibrium_conditions)
        _check_unique(Namespace.EXOGENOUS_SHOCKS, self._exogenous_shocks)
        _check_unique(Namespace.EXPECTED_SHOCKS, self._expected_shocks)
        _check_unique(Namespace.OBSERVABLES, self._observables)

        # Function-valued blocks precede scalar blocks of the same role
        states = sorted(self._states, key=lambda d: not d.function_valued)
        jumps = sorted(self._jumps, key=lambda d: not d.function_valued)
        eqconds = sorted(self._equilibrium_conditions, key=lambda d: d.kind)

        endo = _assign_ranges(states + jumps, n)
        eq = _assign_ranges(eqconds, n)

        nvars = sum(len(r) for r in endo.values())
        n_eq = sum(len(r) for r in eq.values())
        if n_eq != nvars:
            raise ConfigurationError(
                f"Equilibrium conditions span {n_eq} rows but endogenous states span "
                f"{nvars} columns"
            )
        n_fv = sum(d.function_valued for d in states + jumps)
        n_fv_eq = sum(d.function_valued for d in eqconds)
        if n_fv != n_fv_eq:
            raise ConfigurationError(
                f"{n_fv} function-valued variables but {n_fv_eq} function-valued "
                "equilibrium conditions"
            )

        registry = IndexRegistry(
            n=n,
            states=tuple(d.name for d in states),
            jumps=tuple(d.name for d in jumps),
            function_valued=frozenset(d.name for d in states + jumps if d.function_valued),
            endogenous_states_unnormalized=IndexMap(Namespace.ENDOGENOUS_STATES, endo),
            endogenous_states=IndexMap(Namespace.ENDOGENOUS_STATES, endo),
            equilibrium_conditions=IndexMap(Namespace.EQUILIBRIUM_CONDITIONS, eq),
            equilibrium_condition_kinds=IndexMap(
                Namespace.EQUILIBRIUM_CONDITIONS, {d.name: d.kind for d in eqconds}
            ),
            exogenous_shocks=_enumerate(Namespace.EXOGENOUS_SHOCKS, self._exogenous_shocks),
            expected_shocks=_enumerate(Namespace.EXPECTED_SHOCKS, self._expected_shocks),
            observables=_enumerate(Namespace.OBSERVABLES, self._observables),
        )
        _log.info(
            f"Index registry built: {len(registry.states)} states, "
            f"{len(registry.jumps)} jumps, {registry.nvars} endogenous indices"
        )
        return registry


def _check_unique(namespace, declarations):
    seen = set()
    for d in declarations:
        if d.name in seen:
            raise ConfigurationError(
                f"Symbol {d.name!r} declared more than once in {namespace.value}"
            )
        seen.add(d.name)


def _assign_ranges(declarations, n):
    ranges = {}
    start = 0
    for d in declarations:
        stop = start + (n if d.function_valued else 1)
        ranges[d.name] = range(start, stop)
        start = stop
    return ranges


def _enumerate(namespace, declarations):
    return IndexMap(namespace, {d.name: i for i, d in enumerate(declarations)})


@dataclass(frozen=True)
class IndexRegistry:
    """
    Frozen assignment of every model symbol to its indices.

    Attributes
    ----------
    n : int
        Total grid size.
    states : (str,)
        Backward-looking states in canonical order.
    jumps : (str,)
        Jump variables in canonical order.
    function_valued : frozenset
        Names of function-valued states and jumps.
    endogenous_states_unnormalized : IndexMap
        Ranges of states and jumps before any degrees of freedom are removed.
    endogenous_states : IndexMap
        Ranges after normalization (equal to the unnormalized ranges until
        `normalized` has been applied).
    equilibrium_conditions : IndexMap
        Row ranges of the equilibrium conditions.
    equilibrium_condition_kinds : IndexMap
        BlockKind of each equilibrium condition.
    exogenous_shocks, expected_shocks, observables : IndexMap
        Integer indices.
    endogenous_states_augmented : IndexMap
        Indices of purely lagged variables appended after normalization.
    is_normalized : bool
    """

    n: int
    states: Tuple[str, ...]
    jumps: Tuple[str, ...]
    function_valued: frozenset
    endogenous_states_unnormalized: IndexMap
    endogenous_states: IndexMap
    equilibrium_conditions: IndexMap
    equilibrium_condition_kinds: IndexMap
    exogenous_shocks: IndexMap
    expected_shocks: IndexMap
    observables: IndexMap
    endogenous_states_augmented: IndexMap = field(
        default_factory=lambda: IndexMap(Namespace.AUGMENTED_STATES)
    )
    is_normalized: bool = False

    @staticmethod
    def expected_dimension(n, n_scalars, n_function_valued=2):
        """
        Dimension of the endogenous namespace: one grid-sized block per
        function-valued variable plus one index per scalar variable.  With the
        usual one function-valued state and one function-valued jump this is
        2 * n + n_scalars.
        """
        return n_function_valued * n + n_scalars

    @property
    def nvars(self):
        return self.endogenous_states_unnormalized.dimension

    @property
    def n_scalars(self):
        return len(self.states) + len(self.jumps) - len(self.function_valued)

    @property
    def nxscalars(self):
        """
        Number of scalar backward-looking states.
        """
        return sum(1 for s in self.states if s not in self.function_valued)

    @property
    def nyscalars(self):
        """
        Number of scalar jumps.
        """
        return sum(1 for s in self.jumps if s not in self.function_valued)

    @property
    def state_indices(self):
        """
        Unnormalized indices corresponding to backward-looking state variables.
        """
        return stack_indices(self.endogenous_states_unnormalized, self.states)

    @property
    def jump_indices(self):
        """
        Unnormalized indices corresponding to jump variables.
        """
        return stack_indices(self.endogenous_states_unnormalized, self.jumps)

    @property
    def n_model_states(self):
        """
        Dimension of the (possibly normalized) endogenous namespace.
        """
        return self.endogenous_states.dimension

    @property
    def n_model_states_augmented(self):
        return self.n_model_states + len(self.endogenous_states_augmented)

    def lookup(self, namespace, name):
        """
        Returns the index of `name` in `namespace`.
        """
        return getattr(self, Namespace(namespace).value)[name]

    def check_partitions(self):
        """
        Verifies that each ranged namespace is partitioned without gaps or
        overlaps.
        """
        for index_map in (
            self.endogenous_states_unnormalized,
            self.endogenous_states,
            self.equilibrium_conditions,
        ):
            if not is_partition(index_map.values(), index_map.dimension):
                raise ConfigurationError(
                    f"Ranges of {index_map.namespace.value} do not partition the namespace"
                )

    def normalized(self, ranges):
        """
        Returns a new registry whose `endogenous_states` are the given
        normalized ranges.

        Parameters
        ----------
        ranges : dict
            Mapping from every state and jump to its normalized range.
        """
        if list(ranges) != list(self.endogenous_states_unnormalized):
            raise ConfigurationError(
                "Normalized ranges must cover the same symbols in the same order"
            )
        new = replace(
            self,
            endogenous_states=IndexMap(Namespace.ENDOGENOUS_STATES, ranges),
            is_normalized=True,
        )
        new.check_partitions()
        return new

    def augmented(self, names):
        """
        Returns a new registry with purely lagged, non-dynamic variables
        appended after the last normalized index.  Augmented states form their
        own namespace and may share a name with an endogenous state.
        """
        if not self.is_normalized:
            raise ConfigurationError(
                "Augmented states must be appended to a normalized registry"
            )
        offset = max(r.stop for r in self.endogenous_states.values())
        existing = dict(self.endogenous_states_augmented)
        for name in names:
            if name in existing:
                raise ConfigurationError(f"Augmented state {name!r} already defined")
            existing[name] = offset + len(existing)
        return replace(
            self,
            endogenous_states_augmented=IndexMap(Namespace.AUGMENTED_STATES, existing),
        )
