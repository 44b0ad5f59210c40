"""
Summaries of simulation result tables.

Reduces the rows produced by :func:`olssim.replicate` or
:func:`olssim.sweep` to the usual Monte Carlo performance metrics.

Metrics
-------
- ``mean_estimate``, ``sd_estimate``: mean and SD of the estimates
- ``mean_se``: average reported standard error
- ``se_ratio``: ``mean_se / sd_estimate`` (close to 1 for valid inference)
- ``bias``: ``mean(estimate - truth)``
- ``rmse``: ``sqrt(mean((estimate - truth)**2))``
- ``coverage``: share of intervals with ``conf.low <= truth <= conf.high``
- ``rejection_rate``: share of p-values below ``alpha`` (Type I error rate
  under the null, power otherwise)
"""

from collections.abc import Mapping
from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd

from .exceptions import ConfigurationError
from .results import CONF_HIGH, CONF_LOW, ESTIMATE, P_VALUE, SIM, STD_ERROR, TERM
from .validation import validate_alpha

Truth = Union[float, Mapping]


def _truth_column(results: pd.DataFrame, truth: Truth) -> pd.Series:
    if isinstance(truth, Mapping):
        if TERM not in results.columns:
            raise ConfigurationError(
                "truth given per term but the results have no 'term' column"
            )
        return results[TERM].map(truth).astype(float)
    return pd.Series(float(truth), index=results.index)


def _require(results: pd.DataFrame, columns: Sequence[str]) -> None:
    missing = [c for c in columns if c not in results.columns]
    if missing:
        raise ConfigurationError(
            f"results are missing required column(s) {missing}"
        )


def coverage_rate(results: pd.DataFrame, truth: Truth) -> float:
    """
    Share of confidence intervals that contain the true value.

    Parameters
    ----------
    results : pd.DataFrame
        Rows with ``conf.low`` and ``conf.high``.
    truth : float or mapping
        True parameter, or a mapping from term name to true value.

    Returns
    -------
    float
        Coverage rate in [0, 1]; NaN for an empty table.
    """
    _require(results, [CONF_LOW, CONF_HIGH])
    if len(results) == 0:
        return float('nan')
    true_values = _truth_column(results, truth)
    covered = (results[CONF_LOW] <= true_values) & (true_values <= results[CONF_HIGH])
    return float(covered.mean())


def rejection_rate(results: pd.DataFrame, alpha: float = 0.05) -> float:
    """
    Share of p-values strictly below *alpha*.

    Under a true null hypothesis this estimates the Type I error rate;
    otherwise the power of the test.
    """
    _require(results, [P_VALUE])
    alpha = validate_alpha(alpha)
    if len(results) == 0:
        return float('nan')
    return float((results[P_VALUE] < alpha).mean())


def summarize(
    results: pd.DataFrame,
    truth: Optional[Truth] = None,
    by: Sequence[str] = (SIM, TERM),
    alpha: float = 0.05,
) -> pd.DataFrame:
    """
    Summarize a simulation result table per group.

    Parameters
    ----------
    results : pd.DataFrame
        Output of :func:`olssim.replicate` or :func:`olssim.sweep`.
    truth : float or mapping, optional
        True parameter value(s). Enables ``bias``, ``rmse`` and ``coverage``.
    by : sequence of str, default ('.sim', 'term')
        Grouping columns. Columns absent from *results* are ignored; with no
        grouping columns left the whole table is one group.
    alpha : float, default 0.05
        Significance level for ``rejection_rate``.

    Returns
    -------
    pd.DataFrame
        One row per group, groups in order of first appearance. Metric
        columns depend on the columns available in *results*.
    """
    _require(results, [ESTIMATE])
    alpha = validate_alpha(alpha)
    by = [c for c in by if c in results.columns]

    df = results.copy()
    agg = {
        'n_reps': (ESTIMATE, 'count'),
        'mean_estimate': (ESTIMATE, 'mean'),
        'sd_estimate': (ESTIMATE, 'std'),
    }
    if STD_ERROR in df.columns:
        agg['mean_se'] = (STD_ERROR, 'mean')
    if truth is not None:
        true_values = _truth_column(df, truth)
        df['_error'] = df[ESTIMATE] - true_values
        df['_sq_error'] = df['_error'] ** 2
        agg['bias'] = ('_error', 'mean')
        agg['rmse'] = ('_sq_error', 'mean')
        if CONF_LOW in df.columns and CONF_HIGH in df.columns:
            df['_covered'] = (
                (df[CONF_LOW] <= true_values) & (true_values <= df[CONF_HIGH])
            ).astype(float)
            agg['coverage'] = ('_covered', 'mean')
    if P_VALUE in df.columns:
        df['_reject'] = (df[P_VALUE] < alpha).astype(float)
        agg['rejection_rate'] = ('_reject', 'mean')

    if by:
        summary = df.groupby(by, sort=False).agg(**agg).reset_index()
    else:
        summary = df.groupby(np.zeros(len(df), dtype=int)).agg(**agg).reset_index(drop=True)

    if 'rmse' in summary.columns:
        summary['rmse'] = np.sqrt(summary['rmse'])
    if 'mean_se' in summary.columns:
        with np.errstate(divide='ignore', invalid='ignore'):
            summary['se_ratio'] = summary['mean_se'] / summary['sd_estimate']
    return summary
