"""
Result Table Module

Defines the row schema shared by estimators, trial functions and the
simulation drivers, and the helpers that normalise trial output into a
``pd.DataFrame``.

Schema
------
- ``term``, ``estimate``, ``std.error``, ``statistic``, ``p.value``,
  ``conf.low``, ``conf.high``: one fitted coefficient (``RESULT_COLUMNS``)
- ``.iter``: trial index within a replication block
- ``.sim``, ``.arg``: configuration label and argument snapshot (sweeps only)

Trial functions may return a narrower schema (the mean t-test trial reports
``estimate`` and ``p.value`` only); the schema travels with the trial as its
``columns`` attribute.
"""

from collections.abc import Mapping
from typing import Optional, Sequence

import pandas as pd

TERM = 'term'
ESTIMATE = 'estimate'
STD_ERROR = 'std.error'
STATISTIC = 'statistic'
P_VALUE = 'p.value'
CONF_LOW = 'conf.low'
CONF_HIGH = 'conf.high'

ITER = '.iter'
SIM = '.sim'
ARG = '.arg'

RESULT_COLUMNS = [TERM, ESTIMATE, STD_ERROR, STATISTIC, P_VALUE, CONF_LOW, CONF_HIGH]


def trial_columns(trial_fn) -> list:
    """Declared row schema of a trial function (OLS schema when undeclared)."""
    columns = getattr(trial_fn, 'columns', None)
    return list(columns) if columns is not None else list(RESULT_COLUMNS)


def empty_results(columns: Sequence[str], extra: Sequence[str] = (ITER,)) -> pd.DataFrame:
    """Zero-row frame with *columns* followed by the bookkeeping *extra* columns."""
    names = list(columns) + [c for c in extra if c not in columns]
    return pd.DataFrame({c: pd.Series(dtype=object if c in (TERM, SIM, ARG) else float)
                         for c in names})


def as_result_frame(rows, columns: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """
    Normalise trial output to a DataFrame.

    Parameters
    ----------
    rows : pd.DataFrame, mapping, sequence of mappings, or None
        A single mapping is one row; ``None`` or an empty sequence is zero
        rows.
    columns : sequence of str, optional
        Schema used for the zero-row case.

    Returns
    -------
    pd.DataFrame
        A new frame with a fresh ``RangeIndex``.

    Raises
    ------
    TypeError
        If *rows* is of an unsupported type.
    """
    if isinstance(rows, pd.DataFrame):
        return rows.reset_index(drop=True)
    if rows is None:
        return empty_results(columns or [], extra=())
    if isinstance(rows, Mapping):
        return pd.DataFrame([dict(rows)])
    if isinstance(rows, (list, tuple)):
        if not rows:
            return empty_results(columns or [], extra=())
        if not all(isinstance(r, Mapping) for r in rows):
            raise TypeError("trial rows must be mappings of column name to value")
        return pd.DataFrame([dict(r) for r in rows])
    raise TypeError(
        f"trial function returned {type(rows).__name__}; expected a DataFrame, "
        f"a mapping, a list of mappings, or None"
    )


def concat_results(frames: list, columns: Sequence[str]) -> pd.DataFrame:
    """Concatenate result blocks in order, or return the empty schema frame."""
    frames = [f for f in frames if len(f) > 0]
    if not frames:
        return empty_results(columns, extra=())
    return pd.concat(frames, ignore_index=True)
