"""
Pytest configuration file providing shared fixtures and helper functions.
"""
import numpy as np
import pandas as pd
import pytest

from olssim import ModelSpec


@pytest.fixture
def rng():
    """Seeded random stream, fresh for every test."""
    return np.random.default_rng(20240531)


@pytest.fixture
def simple_spec():
    """``y ~ x1`` with an intercept."""
    return ModelSpec('y', ['x1'])


@pytest.fixture
def two_covariate_spec():
    """``y ~ x1 + x2`` with an intercept."""
    return ModelSpec('y', ['x1', 'x2'])


@pytest.fixture
def covariate_data(rng):
    """Fifty rows of two independent standard normal covariates."""
    return pd.DataFrame({
        'x1': rng.standard_normal(50),
        'x2': rng.standard_normal(50),
    })


# Test markers
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "monte_carlo: marks Monte Carlo simulation tests"
    )
