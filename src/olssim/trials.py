"""
Trial functions.

A trial function is the unit of work the simulation drivers repeat: any
callable accepting keyword configuration arguments plus ``iter_id`` (and,
optionally, ``rng``) and returning zero or more result rows. Two variants
ship with the package:

- :class:`OLSTrial` samples covariates, generates a response from a linear
  model with known coefficients, and fits OLS to it.
- :class:`MeanTestTrial` draws a normal sample and runs a one-sample t-test
  of its mean.

A trial may declare its row schema as a ``columns`` attribute and may define
``prepare(*, rng, **config)``, which the replication driver calls once per
configuration block; the keyword arguments it returns are passed to every
trial of that block.
"""

from dataclasses import dataclass, fields, replace
from typing import Any, ClassVar, Optional, Protocol, Sequence, Union, runtime_checkable

import numpy as np
import pandas as pd
import scipy.stats

from .estimation import DEFAULT_CONF_LEVEL, fit_ols
from .exceptions import ConfigurationError, InvalidParameterError
from .model import ModelSpec, as_model_spec, generate
from .results import ESTIMATE, ITER, P_VALUE, RESULT_COLUMNS
from .sampling import sample_mvnormal
from .validation import validate_alpha, validate_sample_size


@runtime_checkable
class TrialFunction(Protocol):
    """Structural type of a trial function."""

    def __call__(self, *, iter_id: Any, **config) -> Any:
        ...


def _apply_overrides(trial, overrides: dict):
    """Return *trial* with configuration overrides applied to its fields."""
    if not overrides:
        return trial
    allowed = {f.name for f in fields(trial)}
    unknown = sorted(set(overrides) - allowed)
    if unknown:
        raise ConfigurationError(
            f"{type(trial).__name__} does not accept configuration "
            f"argument(s) {unknown}; valid names are n, iter_id, rng and "
            f"{sorted(allowed)}"
        )
    return replace(trial, **overrides)


@dataclass(frozen=True)
class OLSTrial:
    """
    OLS estimation trial.

    Each call samples ``n`` covariate rows from a multivariate normal
    distribution, generates the response with :func:`olssim.generate`, fits
    :func:`olssim.fit_ols` and returns its result rows stamped with ``.iter``.

    Parameters
    ----------
    model_spec : ModelSpec or str
        Model to simulate and fit.
    beta : array-like or mapping
        True coefficients aligned to ``model_spec.columns``.
    sigma : float, default 1.0
        Residual standard deviation.
    mu, sd : float or array-like, default 0.0 and 1.0
        Covariate means and standard deviations.
    corr : array-like, optional
        Covariate correlation matrix. Default: independent covariates.
    empirical : bool, default False
        Moment-match the covariate sample exactly (see
        :func:`olssim.sample_mvnormal`).
    conf_level : float, default 0.95
        Confidence level of the reported intervals.
    vce : {None, 'robust', 'hc1', 'hc3'}, optional
        Variance estimator passed to :func:`olssim.fit_ols`.
    resample_covariates_per_trial : bool, default True
        If False, covariates are drawn once per configuration block (in
        :meth:`prepare`) and reused by every trial in it; only the noise is
        redrawn per trial.
    covariate_names : sequence of str, optional
        Names of the sampled covariates. Default: the bare-column terms of
        *model_spec*.

    Examples
    --------
    >>> trial = OLSTrial('y ~ x1', beta=[0, 1], sigma=1, empirical=True)
    >>> replicate(100, trial, n=50, seed=1)  # doctest: +SKIP

    Any field can be overridden per configuration:

    >>> sweep(100, trial, {'n=20': {'n': 20}, 'sigma=2': {'n': 20, 'sigma': 2.0}})  # doctest: +SKIP
    """

    columns: ClassVar[list] = list(RESULT_COLUMNS)

    model_spec: Union[ModelSpec, str]
    beta: Any
    sigma: float = 1.0
    mu: Any = 0.0
    sd: Any = 1.0
    corr: Any = None
    empirical: bool = False
    conf_level: float = DEFAULT_CONF_LEVEL
    vce: Optional[str] = None
    resample_covariates_per_trial: bool = True
    covariate_names: Optional[Sequence[str]] = None

    def __post_init__(self):
        object.__setattr__(self, 'model_spec', as_model_spec(self.model_spec))
        if self.covariate_names is not None:
            object.__setattr__(self, 'covariate_names', tuple(self.covariate_names))

    @property
    def covariates(self) -> list:
        """Names of the sampled covariate columns."""
        if self.covariate_names is not None:
            return list(self.covariate_names)
        return self.model_spec.covariates

    def sample_covariates(self, n: int, rng: Optional[np.random.Generator] = None) -> pd.DataFrame:
        """Draw ``n`` covariate rows."""
        n = validate_sample_size(n)
        names = self.covariates
        if not names:
            return pd.DataFrame(index=pd.RangeIndex(n))
        return sample_mvnormal(
            n,
            mu=self.mu,
            sigma=self.sd,
            R=self.corr,
            empirical=self.empirical,
            rng=rng,
            names=names,
        )

    def prepare(self, *, n: int, rng: Optional[np.random.Generator] = None, **overrides) -> dict:
        """Draw block-level covariates when they are not resampled per trial."""
        trial = _apply_overrides(self, overrides)
        if trial.resample_covariates_per_trial:
            return {}
        return {'covariates': trial.sample_covariates(n, rng)}

    def __call__(
        self,
        *,
        n: int,
        iter_id: Any,
        rng: Optional[np.random.Generator] = None,
        covariates: Optional[pd.DataFrame] = None,
        **overrides,
    ) -> pd.DataFrame:
        trial = _apply_overrides(self, overrides)
        if rng is None:
            rng = np.random.default_rng()

        if covariates is None:
            covariates = trial.sample_covariates(n, rng)
        elif len(covariates) != n:
            raise ConfigurationError(
                f"prepared covariates have {len(covariates)} rows but n={n}"
            )

        data = generate(covariates, trial.model_spec, trial.beta, trial.sigma, rng=rng)
        result = fit_ols(data, trial.model_spec, conf_level=trial.conf_level, vce=trial.vce)
        result[ITER] = iter_id
        return result


@dataclass(frozen=True)
class MeanTestTrial:
    """
    One-sample t-test trial.

    Each call draws ``n`` values from ``N(mean, sd**2)`` and tests
    ``H0: E[x] = mu0`` with :func:`scipy.stats.ttest_1samp`. The single
    result row carries the sample mean (``estimate``), the p-value
    (``p.value``) and ``.iter``; there are no interval columns.

    Parameters
    ----------
    mean : float, default 0.0
        True mean of the sampled distribution.
    sd : float, default 1.0
        True standard deviation, > 0.
    mu0 : float, default 0.0
        Hypothesised mean.
    alternative : {'two-sided', 'less', 'greater'}, default 'two-sided'
        Alternative hypothesis.
    alpha : float, default 0.05
        Significance level the study is evaluated at. It does not change the
        row, which reports the p-value only; pass it on to
        :func:`olssim.rejection_rate` (``rejection_rate(results, trial.alpha)``).
        Being a field, it can be set per configuration like any other.

    Notes
    -----
    With ``mean == mu0`` the share of p-values below ``alpha`` estimates the
    Type I error rate; otherwise it estimates power. See
    :func:`olssim.rejection_rate`.
    """

    columns: ClassVar[list] = [ESTIMATE, P_VALUE]

    mean: float = 0.0
    sd: float = 1.0
    mu0: float = 0.0
    alternative: str = 'two-sided'
    alpha: float = 0.05

    def __post_init__(self):
        if not self.sd > 0:
            raise InvalidParameterError(f"sd must be > 0, got {self.sd!r}")
        if self.alternative not in ('two-sided', 'less', 'greater'):
            raise InvalidParameterError(
                f"alternative must be 'two-sided', 'less' or 'greater', "
                f"got {self.alternative!r}"
            )
        object.__setattr__(self, 'alpha', validate_alpha(self.alpha))

    def __call__(
        self,
        *,
        n: int,
        iter_id: Any,
        rng: Optional[np.random.Generator] = None,
        **overrides,
    ) -> dict:
        trial = _apply_overrides(self, overrides)
        n = validate_sample_size(n)
        if n < 2:
            raise InvalidParameterError(f"a one-sample t-test needs n >= 2, got n={n}")
        if rng is None:
            rng = np.random.default_rng()

        x = rng.normal(trial.mean, trial.sd, size=n)
        test = scipy.stats.ttest_1samp(x, trial.mu0, alternative=trial.alternative)
        return {
            ESTIMATE: float(x.mean()),
            P_VALUE: float(test.pvalue),
            ITER: iter_id,
        }
