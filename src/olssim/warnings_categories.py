"""
Warning category hierarchy for the olssim package.

Provides structured warning categories for simulation runs, enabling
selective filtering via Python's standard ``warnings.filterwarnings()``
mechanism. All warning classes inherit from :class:`OLSSimWarning`, which
itself inherits from :class:`UserWarning`.

Examples
--------
Silence perfect-fit warnings in a noiseless study:

>>> import warnings
>>> from olssim import NumericalWarning
>>> warnings.filterwarnings('ignore', category=NumericalWarning)

Suppress all olssim warnings at once:

>>> warnings.filterwarnings('ignore', category=OLSSimWarning)
"""


class OLSSimWarning(UserWarning):
    """
    Base warning class for all olssim package warnings.

    Because ``OLSSimWarning`` inherits from ``UserWarning``, existing calls to
    ``warnings.filterwarnings('ignore', category=UserWarning)`` also suppress
    olssim warnings.
    """
    pass


class NumericalWarning(OLSSimWarning):
    """
    Warning raised when numerical instability is detected.

    Triggered by extremely small standard errors (a perfect fit, as in a
    noiseless data-generating process), where t-statistics, p-values and
    confidence intervals are not meaningful.
    """
    pass


class DataWarning(OLSSimWarning):
    """
    Warning raised for data quality issues.

    Triggered when rows with missing values in the response or design
    columns are dropped before fitting.
    """
    pass
