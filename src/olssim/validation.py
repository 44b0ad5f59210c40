"""
Validation Module

Input validation for the simulation primitives and drivers. Every check
raises immediately; nothing is coerced silently.
"""

import numbers

import numpy as np

from .exceptions import InvalidCovarianceError, InvalidParameterError

# Relative eigenvalue tolerance for positive semi-definiteness.
PSD_TOLERANCE = 1e-6

# Absolute tolerance for symmetry and unit-diagonal checks.
SYMMETRY_TOLERANCE = 1e-8


def _is_integer(value) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def validate_sample_size(n, name: str = 'n') -> int:
    """Return *n* as int, requiring a positive integer."""
    if not _is_integer(n) or n <= 0:
        raise InvalidParameterError(
            f"{name} must be a positive integer, got {n!r}"
        )
    return int(n)


def validate_replications(m) -> int:
    """Return *m* as int, requiring a non-negative integer."""
    if not _is_integer(m) or m < 0:
        raise InvalidParameterError(
            f"m must be a non-negative integer, got {m!r}"
        )
    return int(m)


def validate_conf_level(conf_level) -> float:
    """Require a confidence level strictly inside (0, 1)."""
    if not isinstance(conf_level, numbers.Real) or not 0 < conf_level < 1:
        raise InvalidParameterError(
            f"conf_level must be in the open interval (0, 1), got {conf_level!r}"
        )
    return float(conf_level)


def validate_noise_scale(sigma) -> float:
    """Require a finite, non-negative residual standard deviation."""
    if not isinstance(sigma, numbers.Real) or not np.isfinite(sigma) or sigma < 0:
        raise InvalidParameterError(
            f"sigma must be a finite non-negative number, got {sigma!r}"
        )
    return float(sigma)


def validate_std_devs(sigma) -> np.ndarray:
    """
    Validate a standard deviation vector.

    Parameters
    ----------
    sigma : array-like
        One-dimensional sequence of standard deviations. A scalar is treated
        as a vector of length one.

    Returns
    -------
    np.ndarray
        Float vector of the standard deviations.

    Raises
    ------
    InvalidParameterError
        If the vector is empty, not one-dimensional, or has a non-positive
        or non-finite entry.
    """
    arr = np.atleast_1d(np.asarray(sigma, dtype=float))
    if arr.ndim != 1 or arr.size == 0:
        raise InvalidParameterError(
            f"standard deviations must be a non-empty 1-d vector, got shape {arr.shape}"
        )
    if not np.all(np.isfinite(arr)) or np.any(arr <= 0):
        raise InvalidParameterError(
            f"standard deviations must be finite and > 0, got {arr.tolist()}"
        )
    return arr


def validate_correlation(R, dim: int | None = None) -> np.ndarray:
    """
    Validate a correlation matrix.

    Checks, in order: square shape (and dimension *dim* when given),
    symmetry, unit diagonal, entries in [-1, 1], and positive
    semi-definiteness. The PSD check accepts a smallest eigenvalue down to
    ``-PSD_TOLERANCE * |largest eigenvalue|``.

    Parameters
    ----------
    R : array-like
        Candidate correlation matrix.
    dim : int, optional
        Required number of rows/columns.

    Returns
    -------
    np.ndarray
        The matrix as a float array.

    Raises
    ------
    InvalidCovarianceError
        If any of the checks fails.
    """
    R = np.atleast_2d(np.asarray(R, dtype=float))
    if R.ndim != 2 or R.shape[0] != R.shape[1]:
        raise InvalidCovarianceError(
            f"correlation matrix must be square, got shape {R.shape}"
        )
    if dim is not None and R.shape[0] != dim:
        raise InvalidCovarianceError(
            f"correlation matrix is {R.shape[0]}x{R.shape[1]} but "
            f"{dim} standard deviations were given"
        )
    if not np.all(np.isfinite(R)):
        raise InvalidCovarianceError("correlation matrix contains non-finite entries")
    if not np.allclose(R, R.T, rtol=0, atol=SYMMETRY_TOLERANCE):
        raise InvalidCovarianceError("correlation matrix must be symmetric")
    if not np.allclose(np.diag(R), 1.0, rtol=0, atol=SYMMETRY_TOLERANCE):
        raise InvalidCovarianceError(
            f"correlation matrix must have a unit diagonal, got {np.diag(R).tolist()}"
        )
    if np.any(np.abs(R) > 1.0 + SYMMETRY_TOLERANCE):
        raise InvalidCovarianceError("correlation entries must lie in [-1, 1]")

    eigvals = np.linalg.eigvalsh(R)
    if eigvals[0] < -PSD_TOLERANCE * abs(eigvals[-1]):
        raise InvalidCovarianceError(
            f"correlation matrix is not positive semi-definite "
            f"(smallest eigenvalue {eigvals[0]:.3g})"
        )
    return R


def validate_alpha(alpha) -> float:
    """Require a significance level strictly inside (0, 1)."""
    if not isinstance(alpha, numbers.Real) or not 0 < alpha < 1:
        raise InvalidParameterError(
            f"alpha must be in the open interval (0, 1), got {alpha!r}"
        )
    return float(alpha)
