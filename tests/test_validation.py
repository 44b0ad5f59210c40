"""Tests for input validation helpers."""

import numpy as np
import pytest

from olssim import InvalidCovarianceError, InvalidParameterError, validate_correlation
from olssim.validation import (
    validate_alpha,
    validate_conf_level,
    validate_noise_scale,
    validate_replications,
    validate_sample_size,
    validate_std_devs,
)


class TestScalarValidation:

    @pytest.mark.parametrize("n", [1, 10, np.int64(7)])
    def test_sample_size_accepts_positive_integers(self, n):
        assert validate_sample_size(n) == int(n)
        assert isinstance(validate_sample_size(n), int)

    @pytest.mark.parametrize("n", [0, -1, 2.5, '10', True, None])
    def test_sample_size_rejects(self, n):
        with pytest.raises(InvalidParameterError):
            validate_sample_size(n)

    def test_replications_accepts_zero(self):
        assert validate_replications(0) == 0

    @pytest.mark.parametrize("m", [-1, 1.0, False])
    def test_replications_rejects(self, m):
        with pytest.raises(InvalidParameterError):
            validate_replications(m)

    @pytest.mark.parametrize("level", [0, 1, 1.5, -0.1, 'high'])
    def test_conf_level_rejects(self, level):
        with pytest.raises(InvalidParameterError):
            validate_conf_level(level)

    def test_conf_level_accepts(self):
        assert validate_conf_level(0.9) == 0.9

    @pytest.mark.parametrize("alpha", [0, 1, 2])
    def test_alpha_rejects(self, alpha):
        with pytest.raises(InvalidParameterError):
            validate_alpha(alpha)

    def test_noise_scale(self):
        assert validate_noise_scale(0) == 0.0
        with pytest.raises(InvalidParameterError):
            validate_noise_scale(-0.5)
        with pytest.raises(InvalidParameterError):
            validate_noise_scale(float('inf'))


class TestStdDevs:

    def test_scalar_becomes_vector(self):
        np.testing.assert_array_equal(validate_std_devs(2.0), [2.0])

    @pytest.mark.parametrize("sigma", [[], [1.0, 0.0], [1.0, -2.0], [[1.0, 1.0]]])
    def test_rejects(self, sigma):
        with pytest.raises(InvalidParameterError):
            validate_std_devs(sigma)


class TestCorrelation:

    def test_identity_is_valid(self):
        np.testing.assert_array_equal(validate_correlation(np.eye(3)), np.eye(3))

    def test_perfect_correlation_is_psd(self):
        R = np.ones((2, 2))
        validate_correlation(R)

    def test_not_square(self):
        with pytest.raises(InvalidCovarianceError, match="square"):
            validate_correlation(np.ones((2, 3)))

    def test_dimension_mismatch(self):
        with pytest.raises(InvalidCovarianceError, match="2 standard deviations"):
            validate_correlation(np.eye(3), dim=2)

    def test_asymmetric(self):
        R = np.array([[1.0, 0.5], [0.2, 1.0]])
        with pytest.raises(InvalidCovarianceError, match="symmetric"):
            validate_correlation(R)

    def test_non_unit_diagonal(self):
        R = np.array([[2.0, 0.5], [0.5, 1.0]])
        with pytest.raises(InvalidCovarianceError, match="unit diagonal"):
            validate_correlation(R)

    def test_entry_out_of_range(self):
        R = np.array([[1.0, 1.5], [1.5, 1.0]])
        with pytest.raises(InvalidCovarianceError, match=r"\[-1, 1\]"):
            validate_correlation(R)

    def test_not_positive_semidefinite(self):
        R = np.array([
            [1.0, 0.9, -0.9],
            [0.9, 1.0, 0.9],
            [-0.9, 0.9, 1.0],
        ])
        with pytest.raises(InvalidCovarianceError, match="positive semi-definite"):
            validate_correlation(R)

    def test_non_finite(self):
        R = np.array([[1.0, np.nan], [np.nan, 1.0]])
        with pytest.raises(InvalidCovarianceError):
            validate_correlation(R)

    def test_is_parameter_error(self):
        with pytest.raises(InvalidParameterError):
            validate_correlation(np.ones((2, 3)))
