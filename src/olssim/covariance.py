"""
Covariance composition.

Builds the covariance matrix Σ = D·R·D from a standard deviation vector σ
(D = diag(σ)) and a correlation matrix R.
"""

import numpy as np

from .validation import validate_correlation, validate_std_devs


def compose_covariance(sigma, R=None) -> np.ndarray:
    """
    Compose a covariance matrix from standard deviations and correlations.

    Parameters
    ----------
    sigma : array-like
        Standard deviations, all > 0.
    R : array-like, optional
        Correlation matrix of matching dimension. Default: identity
        (independent variables).

    Returns
    -------
    np.ndarray of shape (k, k)
        ``diag(sigma) @ R @ diag(sigma)``. Symmetric with diagonal
        ``sigma**2``.

    Raises
    ------
    InvalidParameterError
        If a standard deviation is not positive.
    InvalidCovarianceError
        If R is not a valid correlation matrix of dimension ``len(sigma)``.
    """
    sigma = validate_std_devs(sigma)
    if R is None:
        R = np.eye(sigma.size)
    else:
        R = validate_correlation(R, dim=sigma.size)

    D = np.diag(sigma)
    cov = D @ R @ D
    # D·R·D is symmetric in exact arithmetic; remove rounding asymmetry.
    return (cov + cov.T) / 2
