"""
Estimation module.

Fits ordinary least squares to a simulated dataset and reports one result
row per coefficient: estimate, standard error, t-statistic, two-sided
p-value and a t-based confidence interval.
"""

import warnings
from typing import Optional, Union

import numpy as np
import pandas as pd
import scipy.stats
import statsmodels.api as sm

from .exceptions import ConfigurationError, InvalidParameterError, SingularDesignError
from .model import ModelSpec, as_model_spec, design_matrix
from .results import (
    CONF_HIGH,
    CONF_LOW,
    ESTIMATE,
    P_VALUE,
    RESULT_COLUMNS,
    STATISTIC,
    STD_ERROR,
    TERM,
)
from .validation import validate_conf_level
from .warnings_categories import DataWarning, NumericalWarning

DEFAULT_CONF_LEVEL = 0.95

_VCE_COV_TYPES = {
    None: 'nonrobust',
    'ols': 'nonrobust',
    'robust': 'HC1',
    'hc1': 'HC1',
    'hc3': 'HC3',
}


def fit_ols(
    data: pd.DataFrame,
    model_spec: Union[ModelSpec, str],
    conf_level: float = DEFAULT_CONF_LEVEL,
    vce: Optional[str] = None,
) -> pd.DataFrame:
    """
    Fit OLS and return one result row per coefficient.

    Parameters
    ----------
    data : pd.DataFrame
        Dataset containing the response and every column the terms use.
    model_spec : ModelSpec or str
        Model specification or formula text.
    conf_level : float, default 0.95
        Confidence level of the intervals, strictly inside (0, 1).
    vce : {None, 'robust', 'hc1', 'hc3'}, optional
        Variance estimator. None gives classical (homoskedastic) standard
        errors; 'robust'/'hc1' and 'hc3' give heteroskedasticity-robust ones.

    Returns
    -------
    pd.DataFrame
        Columns: 'term', 'estimate', 'std.error', 'statistic', 'p.value',
        'conf.low', 'conf.high'; rows in design-matrix column order.

    Raises
    ------
    InvalidParameterError
        If *conf_level* or *vce* is invalid.
    SingularDesignError
        If ``n <= p`` or the design matrix is rank deficient.
    ConfigurationError
        If the response or a term cannot be found in *data*.

    Notes
    -----
    Confidence intervals and p-values use the t distribution with
    ``df = n - p`` residual degrees of freedom for every variance estimator,
    which is exact under normal homoskedastic errors.
    """
    spec = as_model_spec(model_spec)
    conf_level = validate_conf_level(conf_level)
    if vce not in _VCE_COV_TYPES:
        raise InvalidParameterError(
            f"Invalid vce type: '{vce}'. "
            f"Must be one of: None, 'robust', 'hc1', 'hc3'"
        )

    if spec.response not in data.columns:
        raise ConfigurationError(
            f"response column {spec.response!r} is not in the data"
        )
    X = design_matrix(data, spec)
    y = data[spec.response].astype(float)

    complete = X.notna().all(axis=1) & y.notna()
    n_missing = int((~complete).sum())
    if n_missing > 0:
        warnings.warn(
            f"Dropped {n_missing} observations with missing values in the "
            f"response or design columns of '{spec.formula}'.",
            DataWarning,
            stacklevel=2,
        )
        X = X[complete]
        y = y[complete]

    n, p = X.shape
    if n <= p:
        raise SingularDesignError(
            f"Under-determined design for '{spec.formula}': n={n} observations "
            f"for p={p} parameters (need n > p)."
        )
    rank = np.linalg.matrix_rank(X.to_numpy())
    if rank < p:
        raise SingularDesignError(
            f"Design matrix for '{spec.formula}' is rank deficient "
            f"(rank {rank} < {p} columns {list(X.columns)})."
        )

    model = sm.OLS(y.to_numpy(), X.to_numpy())
    results = model.fit(cov_type=_VCE_COV_TYPES[vce])

    params = np.asarray(results.params)
    bse = np.asarray(results.bse)

    if np.any(bse < 1e-10):
        warnings.warn(
            f"Standard error is extremely small (min SE={bse.min():.2e}) in "
            f"'{spec.formula}'. This indicates a perfect fit; t-statistics, "
            f"p-values and confidence intervals are not meaningful.",
            NumericalWarning,
            stacklevel=2,
        )

    df = results.df_resid
    with np.errstate(divide='ignore', invalid='ignore'):
        t_stat = params / bse
    pvalue = 2 * scipy.stats.t.sf(np.abs(t_stat), df)

    t_crit = scipy.stats.t.ppf(1 - (1 - conf_level) / 2, df)
    ci_lower = params - t_crit * bse
    ci_upper = params + t_crit * bse

    return pd.DataFrame({
        TERM: list(X.columns),
        ESTIMATE: params,
        STD_ERROR: bse,
        STATISTIC: t_stat,
        P_VALUE: pvalue,
        CONF_LOW: ci_lower,
        CONF_HIGH: ci_upper,
    }, columns=RESULT_COLUMNS)
