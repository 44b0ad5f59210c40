"""
olssim: Monte Carlo Simulation of OLS Sampling Behaviour
========================================================

A small harness for studying ordinary least squares estimators and simple
hypothesis tests under known data-generating processes. Synthetic datasets
are drawn from a linear model with known coefficients, estimators are fitted
to each one, and estimates, standard errors and confidence-interval coverage
are collected across many repetitions and across varying configurations.

Key Features
------------
- Covariance composition ``Σ = diag(σ)·R·diag(σ)`` with validation of the
  correlation matrix
- Multivariate normal covariates, optionally moment-matched so the sample
  mean and covariance equal their targets exactly
- Explicit model specifications (``ModelSpec``) with a pure design-matrix
  builder and R-style formula parsing
- OLS fits with classical or heteroskedasticity-robust (HC1/HC3) standard
  errors and t-based confidence intervals
- Replicate-and-sweep drivers that stack every trial into one tidy
  ``pandas.DataFrame`` tagged with ``.iter``, ``.sim`` and ``.arg``
- Summaries of bias, SD, RMSE, coverage, SE ratio and rejection rates

Main Components
---------------
replicate, sweep : function
    Simulation drivers. See ``help(sweep)``.
OLSTrial, MeanTestTrial : class
    Built-in trial functions.
summarize : function
    Per-configuration performance metrics.
Exception hierarchy : module
    Typed exceptions inheriting from ``OLSSimError``.

Quick Start
-----------
>>> from olssim import OLSTrial, config_grid, summarize, sweep
>>>
>>> trial = OLSTrial('y ~ x1', beta=[0, 1], sigma=1, empirical=True)
>>> results = sweep(1000, trial, config_grid(n=[10, 100]), seed=2024)
>>> summarize(results, truth={'(Intercept)': 0, 'x1': 1})

Notes
-----
Runs are sequential. Randomness comes from a single
``numpy.random.Generator`` passed as ``rng`` (or created from ``seed``) and
threaded through every trial, so a run is reproducible from its seed.
"""

from .aggregation import coverage_rate, rejection_rate, summarize
from .covariance import compose_covariance
from .estimation import DEFAULT_CONF_LEVEL, fit_ols
from .model import ModelSpec, Term, design_matrix, generate
from .sampling import sample_mvnormal
from .simulation import config_grid, replicate, run_trial, sweep
from .trials import MeanTestTrial, OLSTrial, TrialFunction
from .validation import validate_correlation

# Export exception classes
from .exceptions import (
    ConfigurationError,
    DimensionMismatchError,
    InvalidCovarianceError,
    InvalidParameterError,
    OLSSimError,
    SingularDesignError,
)

# Export warning classes
from .warnings_categories import DataWarning, NumericalWarning, OLSSimWarning

__version__ = '0.1.0'

__all__ = [
    # Statistical primitives
    'compose_covariance',
    'validate_correlation',
    'sample_mvnormal',
    'ModelSpec',
    'Term',
    'design_matrix',
    'generate',
    'fit_ols',
    'DEFAULT_CONF_LEVEL',
    # Trials and drivers
    'TrialFunction',
    'OLSTrial',
    'MeanTestTrial',
    'run_trial',
    'replicate',
    'sweep',
    'config_grid',
    # Aggregation
    'summarize',
    'coverage_rate',
    'rejection_rate',
    # Exception classes
    'OLSSimError',
    'InvalidParameterError',
    'InvalidCovarianceError',
    'DimensionMismatchError',
    'SingularDesignError',
    'ConfigurationError',
    # Warning classes
    'OLSSimWarning',
    'NumericalWarning',
    'DataWarning',
]
