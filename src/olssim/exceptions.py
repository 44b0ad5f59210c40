"""
Exception Classes Module

Defines exception hierarchy for the olssim package.
"""


class OLSSimError(Exception):
    """
    Base exception class for all olssim package errors.

    All custom exceptions in the olssim package inherit from this class,
    allowing users to catch any olssim-specific error with:

        try:
            results = sweep(1000, trial, configs)
        except OLSSimError as e:
            # Handle any olssim error
            print(f"olssim error: {e}")
            print(e.context)

    Attributes
    ----------
    context : dict
        Location of the failure inside a simulation run. The replication and
        sweep drivers fill in ``'iteration'`` and ``'simulation'`` before the
        exception propagates to the caller.
    """

    def __init__(self, *args):
        super().__init__(*args)
        self.context = {}


class InvalidParameterError(OLSSimError):
    """
    Exception raised when input parameter validation fails.

    This is a general exception for invalid parameter values that do not
    fall into more specific categories. Common triggers include:

    - Non-positive sample size ``n`` or negative replication count ``m``
    - ``conf_level`` outside the open interval (0, 1)
    - Negative noise scale ``sigma`` or non-positive standard deviations
    - Unsupported ``vce`` type

    See Also
    --------
    InvalidCovarianceError : For invalid correlation/covariance matrices.
    DimensionMismatchError : For coefficient vectors of the wrong length.
    """
    pass


class InvalidCovarianceError(InvalidParameterError):
    """
    Exception raised when a correlation or covariance specification is invalid.

    The correlation matrix must be square with the same dimension as the
    standard deviation vector, symmetric, have a unit diagonal, off-diagonal
    entries in [-1, 1], and be positive semi-definite.

    Examples
    --------
    >>> compose_covariance([1.0, 1.0], [[1.0, 1.5], [1.5, 1.0]])  # doctest: +SKIP
    InvalidCovarianceError: correlation entries must lie in [-1, 1]

    See Also
    --------
    olssim.covariance.validate_correlation : Function that performs this validation.
    """
    pass


class DimensionMismatchError(InvalidParameterError):
    """
    Exception raised when the true coefficient vector does not match the design.

    Trigger condition: ``len(beta)`` differs from the number of design-matrix
    columns (intercept included), or a coefficient mapping is keyed by names
    that are not the design-matrix column names.

    See Also
    --------
    olssim.model.generate : Function that performs this check.
    """
    pass


class SingularDesignError(OLSSimError):
    """
    Exception raised when OLS cannot be fitted on the design matrix.

    Trigger conditions:

    - Under-determined design: ``n <= p`` (no residual degrees of freedom)
    - Rank-deficient design: perfectly collinear columns, for example a
      covariate that is constant alongside the intercept

    See Also
    --------
    olssim.estimation.fit_ols : Function that raises this error.
    """
    pass


class ConfigurationError(OLSSimError):
    """
    Exception raised when a simulation is configured inconsistently.

    Trigger conditions include:

    - A configuration entry passes a keyword argument the trial function does
      not accept, or omits one it requires
    - A model term references a column that is not in the data
    - A formula string cannot be parsed

    Examples
    --------
    >>> sweep(10, OLSTrial(spec, beta=[0, 1], sigma=1), {'a': {'nn': 10}})  # doctest: +SKIP
    ConfigurationError: trial function OLSTrial rejected configuration: ...

    See Also
    --------
    olssim.simulation.run_trial : Function that binds configuration arguments.
    """
    pass
