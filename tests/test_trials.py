"""Tests for the built-in trial functions."""

import numpy as np
import pandas as pd
import pytest

import olssim.trials
from olssim import (
    ConfigurationError,
    InvalidParameterError,
    MeanTestTrial,
    ModelSpec,
    OLSTrial,
    TrialFunction,
    rejection_rate,
    replicate,
)
from olssim.results import RESULT_COLUMNS


@pytest.fixture
def ols_trial():
    return OLSTrial('y ~ x1 + x2', beta=[0.0, 1.0, -1.0], sigma=1.0)


@pytest.fixture
def recorded_covariates(monkeypatch):
    """Record the covariate frames passed to ``generate`` by OLS trials."""
    seen = []
    real_generate = olssim.trials.generate

    def recording_generate(data, *args, **kwargs):
        seen.append(data)
        return real_generate(data, *args, **kwargs)

    monkeypatch.setattr(olssim.trials, 'generate', recording_generate)
    return seen


class TestOLSTrial:

    def test_is_trial_function(self, ols_trial):
        assert isinstance(ols_trial, TrialFunction)
        assert isinstance(MeanTestTrial(), TrialFunction)

    def test_formula_is_parsed(self, ols_trial):
        assert isinstance(ols_trial.model_spec, ModelSpec)
        assert ols_trial.covariates == ['x1', 'x2']

    def test_call_returns_result_rows(self, ols_trial, rng):
        result = ols_trial(n=40, iter_id=7, rng=rng)
        assert list(result.columns) == RESULT_COLUMNS + ['.iter']
        assert list(result['term']) == ['(Intercept)', 'x1', 'x2']
        assert (result['.iter'] == 7).all()

    def test_reproducible(self, ols_trial):
        a = ols_trial(n=20, iter_id=1, rng=np.random.default_rng(5))
        b = ols_trial(n=20, iter_id=1, rng=np.random.default_rng(5))
        pd.testing.assert_frame_equal(a, b)

    def test_overrides(self, rng):
        trial = OLSTrial('y ~ x1', beta=[1.0, 2.0], sigma=1.0)
        with pytest.warns(Warning):
            result = trial(n=20, iter_id=1, rng=rng, sigma=0.0)
        np.testing.assert_allclose(result['estimate'], [1.0, 2.0], atol=1e-10)

    def test_model_override_rederives_covariates(self, rng):
        trial = OLSTrial('y ~ x1', beta=[0.0, 1.0])
        result = trial(n=20, iter_id=1, rng=rng,
                       model_spec=ModelSpec('y', ['x1', 'x2']), beta=[0.0, 1.0, 1.0])
        assert list(result['term']) == ['(Intercept)', 'x1', 'x2']

    def test_unknown_override(self, ols_trial, rng):
        with pytest.raises(ConfigurationError, match="does not accept"):
            ols_trial(n=20, iter_id=1, rng=rng, sigmaa=2.0)

    def test_derived_terms_use_sampled_covariates(self, rng):
        trial = OLSTrial('y ~ x1 + I(x1**2) + x1:x2', beta=[0.0, 1.0, 0.5, 0.0],
                         covariate_names=['x1', 'x2'])
        result = trial(n=60, iter_id=1, rng=rng)
        assert list(result['term']) == ['(Intercept)', 'x1', 'I(x1**2)', 'x1:x2']

    def test_intercept_only_model(self, rng):
        trial = OLSTrial('y ~ 1', beta=[3.0])
        result = trial(n=30, iter_id=1, rng=rng)
        assert list(result['term']) == ['(Intercept)']

    def test_empirical_covariates(self, recorded_covariates, rng):
        trial = OLSTrial('y ~ x1', beta=[0.0, 1.0], mu=2.0, sd=3.0, empirical=True)
        trial(n=25, iter_id=1, rng=rng)
        x1 = recorded_covariates[0]['x1']
        assert x1.mean() == pytest.approx(2.0, abs=1e-10)
        assert x1.std(ddof=1) == pytest.approx(3.0, abs=1e-10)

    def test_correlated_covariates(self, recorded_covariates, rng):
        R = np.array([[1.0, 0.8], [0.8, 1.0]])
        trial = OLSTrial('y ~ x1 + x2', beta=[0.0, 1.0, 1.0], corr=R, empirical=True)
        trial(n=25, iter_id=1, rng=rng)
        sample = recorded_covariates[0][['x1', 'x2']]
        assert sample.corr().iloc[0, 1] == pytest.approx(0.8, abs=1e-10)

    def test_prepared_covariates_row_mismatch(self, ols_trial, rng):
        covariates = pd.DataFrame({'x1': np.zeros(3), 'x2': np.zeros(3)})
        with pytest.raises(ConfigurationError, match="rows"):
            ols_trial(n=10, iter_id=1, rng=rng, covariates=covariates)


class TestCovariateReuse:
    """Block-level covariates versus per-trial resampling."""

    def test_resampled_per_trial_by_default(self, ols_trial, recorded_covariates):
        assert ols_trial.prepare(n=10, rng=np.random.default_rng(0)) == {}
        replicate(3, ols_trial, n=30, seed=1)

        assert len(recorded_covariates) == 3
        assert not recorded_covariates[0].equals(recorded_covariates[1])

    def test_reused_within_block(self, recorded_covariates):
        trial = OLSTrial('y ~ x1', beta=[0.0, 1.0], resample_covariates_per_trial=False)
        results = replicate(4, trial, n=30, seed=1)

        assert len(recorded_covariates) == 4
        for frame in recorded_covariates[1:]:
            pd.testing.assert_frame_equal(frame, recorded_covariates[0])
        # Only the noise differs between trials
        slopes = results.loc[results['term'] == 'x1', 'estimate']
        assert slopes.nunique() == 4

    def test_prepare_draws_requested_rows(self):
        trial = OLSTrial('y ~ x1', beta=[0.0, 1.0], resample_covariates_per_trial=False)
        prepared = trial.prepare(n=12, rng=np.random.default_rng(0))
        assert list(prepared) == ['covariates']
        assert prepared['covariates'].shape == (12, 1)


class TestMeanTestTrial:

    def test_single_row(self, rng):
        row = MeanTestTrial()(n=20, iter_id=3, rng=rng)
        assert set(row) == {'estimate', 'p.value', '.iter'}
        assert row['.iter'] == 3
        assert 0.0 <= row['p.value'] <= 1.0

    def test_estimate_is_sample_mean(self):
        trial = MeanTestTrial(mean=5.0, sd=2.0)
        row = trial(n=10, iter_id=1, rng=np.random.default_rng(11))
        x = np.random.default_rng(11).normal(5.0, 2.0, size=10)
        assert row['estimate'] == pytest.approx(x.mean())

    def test_large_effect_rejects(self, rng):
        row = MeanTestTrial(mean=3.0)(n=50, iter_id=1, rng=rng)
        assert row['p.value'] < 1e-6

    def test_one_sided(self, rng):
        row = MeanTestTrial(mean=3.0, alternative='less')(n=50, iter_id=1, rng=rng)
        assert row['p.value'] > 0.99

    def test_override_per_configuration(self, rng):
        row = MeanTestTrial()(n=50, iter_id=1, rng=rng, mean=10.0)
        assert row['estimate'] > 5.0

    @pytest.mark.parametrize("kwargs", [
        {'sd': 0.0},
        {'alternative': 'sideways'},
        {'alpha': 1.5},
        {'alpha': 0.0},
    ])
    def test_invalid_parameters(self, kwargs):
        with pytest.raises(InvalidParameterError):
            MeanTestTrial(**kwargs)

    def test_needs_two_observations(self, rng):
        with pytest.raises(InvalidParameterError, match="n >= 2"):
            MeanTestTrial()(n=1, iter_id=1, rng=rng)

    def test_alpha_default(self):
        assert MeanTestTrial().alpha == 0.05

    def test_alpha_as_configuration_value(self):
        trial = MeanTestTrial(mean=3.0)
        results = replicate(20, trial, n=30, seed=1, alpha=0.01)

        assert set(results.columns) == {'estimate', 'p.value', '.iter'}
        assert rejection_rate(results, trial.alpha) == 1.0

    def test_declared_columns(self):
        assert MeanTestTrial.columns == ['estimate', 'p.value']
