"""
Multivariate normal sampling.

Draws covariate datasets from N(mu, Σ) with Σ composed from standard
deviations and a correlation matrix. With ``empirical=True`` the draw is
transformed so that its sample mean and sample covariance equal mu and Σ
exactly, which removes covariate sampling noise from a simulation study.
"""

from typing import Optional, Sequence

import numpy as np
import pandas as pd

from .covariance import compose_covariance
from .exceptions import InvalidParameterError
from .validation import validate_sample_size


def _resolve_moments(mu, sigma, k_hint=None):
    """Broadcast mu and sigma to a common length (at least *k_hint*)."""
    mu_arr = np.atleast_1d(np.asarray(mu, dtype=float))
    if mu_arr.ndim != 1 or mu_arr.size == 0:
        raise InvalidParameterError(
            f"mu must be a non-empty 1-d vector, got shape {mu_arr.shape}"
        )
    if sigma is None:
        sigma_arr = np.ones(mu_arr.size)
    else:
        sigma_arr = np.atleast_1d(np.asarray(sigma, dtype=float))

    k = max(mu_arr.size, sigma_arr.size, k_hint or 0)
    if mu_arr.size == 1:
        mu_arr = np.repeat(mu_arr, k)
    if sigma_arr.size == 1:
        sigma_arr = np.repeat(sigma_arr, k)
    if mu_arr.size != sigma_arr.size:
        raise InvalidParameterError(
            f"mu has {mu_arr.size} entries but sigma has {sigma_arr.size}"
        )
    return mu_arr, sigma_arr


def _standardize_exactly(Z: np.ndarray) -> np.ndarray:
    """
    Transform Z so that its sample mean is 0 and sample covariance is I.

    Centres the columns, rotates them onto the right singular vectors (which
    makes them mutually orthogonal) and rescales each to unit sample
    standard deviation (denominator n - 1).
    """
    Z = Z - Z.mean(axis=0)
    _, _, Vt = np.linalg.svd(Z, full_matrices=False)
    Z = Z @ Vt.T
    return Z / Z.std(axis=0, ddof=1)


def sample_mvnormal(
    n: int,
    mu=0.0,
    sigma=None,
    R=None,
    empirical: bool = False,
    rng: Optional[np.random.Generator] = None,
    names: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """
    Draw a multivariate normal sample.

    Parameters
    ----------
    n : int
        Number of rows, a positive integer.
    mu : float, array-like or pd.Series, default 0.0
        Means. A scalar is broadcast to the length of *sigma*. When a
        ``pd.Series`` is given its index names the columns.
    sigma : float or array-like, optional
        Standard deviations, all > 0. Default: 1 for every variable.
    R : array-like, optional
        Correlation matrix. Default: identity.
    empirical : bool, default False
        If True, the returned sample has sample mean exactly *mu* and sample
        covariance (denominator ``n - 1``) exactly ``compose_covariance(sigma, R)``.
        Requires ``n >= len(mu) + 1``. If False, rows are i.i.d. draws.
    rng : np.random.Generator, optional
        Random stream. A fresh ``np.random.default_rng()`` when omitted.
    names : sequence of str, optional
        Column names. Default: the index of *mu* when it is a Series,
        otherwise ``x1, x2, ...``.

    Returns
    -------
    pd.DataFrame
        ``n`` rows, one column per variable.

    Raises
    ------
    InvalidParameterError
        If *n* is not a positive integer, the moment vectors disagree in
        length, *names* has the wrong length, or ``empirical=True`` with
        ``n <= len(mu)``.
    InvalidCovarianceError
        If *R* is not a valid correlation matrix.

    Notes
    -----
    Σ is factored by its eigen-decomposition ``Σ = V Λ V'`` rather than a
    Cholesky factor so that singular (positive semi-definite) covariance
    matrices, such as perfectly correlated variables, are supported.
    """
    n = validate_sample_size(n)
    if rng is None:
        rng = np.random.default_rng()

    if names is None and isinstance(mu, pd.Series):
        names = [str(c) for c in mu.index]
    if names is not None:
        k_hint = len(names)
    elif R is not None and np.ndim(R) == 2:
        k_hint = np.shape(R)[0]
    else:
        k_hint = None
    mu_arr, sigma_arr = _resolve_moments(mu, sigma, k_hint)
    k = mu_arr.size

    if names is None:
        names = [f'x{j + 1}' for j in range(k)]
    elif len(names) != k:
        raise InvalidParameterError(
            f"names has {len(names)} entries but {k} variables are sampled"
        )

    cov = compose_covariance(sigma_arr, R)
    eigvals, eigvecs = np.linalg.eigh(cov)
    loading = eigvecs * np.sqrt(np.clip(eigvals, 0.0, None))

    Z = rng.standard_normal((n, k))
    if empirical:
        if n < k + 1:
            raise InvalidParameterError(
                f"empirical sampling of {k} variable(s) requires n >= {k + 1}, got n={n}"
            )
        Z = _standardize_exactly(Z)

    X = mu_arr + Z @ loading.T
    return pd.DataFrame(X, columns=list(names))
