"""
Evaluation of many parameter draws, each in a private model instance.  A draw
that violates parameter bounds or yields an infeasible steady state becomes a
rejected outcome; configuration errors abort the batch.
"""

import multiprocessing
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import pandas as pd
from joblib import Parallel, delayed

from HetDSGE.core import InfeasibilityError, _log


@dataclass(frozen=True)
class DrawOutcome:
    """
    Result of building a model at one parameter draw.

    Parameters
    ----------
    index : Any
        Tag of the draw in the batch.
    accepted : bool
    reason : str
        Why the draw was rejected, empty if accepted.
    steady_state : dict
        Aggregate steady-state values (empty if the model was never built).
    n_predetermined_variables : int or None
    """

    index: Any
    accepted: bool
    reason: str = ""
    steady_state: Dict[str, float] = field(default_factory=dict)
    n_predetermined_variables: Optional[int] = None


def evaluate_draw(model_class, index, draw, subspec=None, custom_settings=None):
    """
    Builds a model at one parameter draw and summarizes it.

    Parameters
    ----------
    model_class : type
        A HetModel subclass.
    index : Any
        Tag identifying the draw.
    draw : dict
        Parameter values.
    subspec : str or None
    custom_settings : dict or None

    Returns
    -------
    DrawOutcome
    """
    try:
        model = model_class(
            subspec=subspec, custom_settings=custom_settings, parameter_values=draw
        )
    except ValueError as err:
        _log.info(f"Draw {index} rejected: {err}")
        return DrawOutcome(index, False, str(err))

    steady_state = {k: float(v) for k, v in model.steady_state.items()}
    try:
        model.check_feasibility()
    except InfeasibilityError as err:
        _log.info(f"Draw {index} rejected: {err}")
        return DrawOutcome(index, False, str(err), steady_state)

    return DrawOutcome(
        index,
        True,
        steady_state=steady_state,
        n_predetermined_variables=model.get_setting("n_predetermined_variables"),
    )


def _tagged(draws):
    if isinstance(draws, Mapping):
        return list(draws.items())
    return list(enumerate(draws))


def multi_thread_draws_fake(
    model_class, draws, subspec=None, custom_settings=None, num_jobs=None
) -> List[DrawOutcome]:
    """
    Evaluates each draw in an ordinary, single-threaded loop.  This function
    exists so as to easily disable multiprocessing, as it uses the same syntax
    as multi_thread_draws.

    Parameters
    ----------
    model_class : type
    draws : [dict] or {tag: dict}
        Parameter draws, tagged by position or by key.
    subspec : str or None
    custom_settings : dict or None
    num_jobs : None
        Dummy input to match syntax of multi_thread_draws.  Does nothing.

    Returns
    -------
    [DrawOutcome]
    """
    return [
        evaluate_draw(model_class, index, draw, subspec, custom_settings)
        for index, draw in _tagged(draws)
    ]


def multi_thread_draws(
    model_class, draws, subspec=None, custom_settings=None, num_jobs=None
) -> List[DrawOutcome]:
    """
    Evaluates each draw in its own worker process.

    Parameters
    ----------
    model_class : type
    draws : [dict] or {tag: dict}
        Parameter draws, tagged by position or by key.
    subspec : str or None
    custom_settings : dict or None
    num_jobs : int or None
        Number of workers.

    Returns
    -------
    [DrawOutcome]
    """
    tagged = _tagged(draws)
    if len(tagged) <= 1:
        return multi_thread_draws_fake(model_class, draws, subspec, custom_settings)

    # Default number of parallel jobs is the smaller of number of draws and
    # the number of available cores.
    if num_jobs is None:
        num_jobs = min(len(tagged), multiprocessing.cpu_count())

    return Parallel(n_jobs=num_jobs)(
        delayed(evaluate_draw)(model_class, index, draw, subspec, custom_settings)
        for index, draw in tagged
    )


def _tag_order(row):
    # Tags of different types are grouped by type and never compared
    tag = row["index"]
    return type(tag).__name__, tag


def collect_outcomes(outcomes):
    """
    Reduces outcomes, in any order, to a DataFrame indexed by draw tag with
    one column per steady-state value.  Rows are sorted by tag within each
    tag type.

    Parameters
    ----------
    outcomes : iterable of DrawOutcome

    Returns
    -------
    pandas.DataFrame
    """
    rows = []
    for outcome in outcomes:
        row = asdict(outcome)
        row.update(row.pop("steady_state"))
        rows.append(row)
    if not rows:
        return pd.DataFrame(
            columns=["accepted", "reason", "n_predetermined_variables"]
        )
    rows.sort(key=_tag_order)
    return pd.DataFrame(rows).set_index("index")
