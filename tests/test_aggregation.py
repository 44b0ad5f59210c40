"""Tests for result-table summaries."""

import numpy as np
import pandas as pd
import pytest

from olssim import (
    ConfigurationError,
    InvalidParameterError,
    coverage_rate,
    rejection_rate,
    summarize,
)


@pytest.fixture
def toy_results():
    """Hand-built result table with two configurations and two terms."""
    return pd.DataFrame({
        'term': ['a', 'b'] * 4,
        'estimate': [1.0, 2.0, 3.0, 2.0, 0.0, 1.0, 2.0, 3.0],
        'std.error': [1.0, 0.5, 1.0, 0.5, 2.0, 1.0, 2.0, 1.0],
        'p.value': [0.01, 0.20, 0.04, 0.50, 0.06, 0.001, 0.30, 0.02],
        'conf.low': [0.0, 1.5, 2.5, 1.0, -1.0, 0.5, 1.0, 2.5],
        'conf.high': [2.0, 2.5, 3.5, 3.0, 1.0, 1.5, 3.0, 3.5],
        '.iter': [1, 1, 2, 2, 1, 1, 2, 2],
        '.sim': ['s1'] * 4 + ['s2'] * 4,
    })


class TestCoverageRate:

    def test_scalar_truth(self, toy_results):
        subset = toy_results[toy_results['term'] == 'a']
        # intervals [0,2], [2.5,3.5], [-1,1], [1,3] around truth 1
        assert coverage_rate(subset, 1.0) == pytest.approx(0.75)

    def test_truth_per_term(self, toy_results):
        rate = coverage_rate(toy_results, {'a': 1.0, 'b': 2.0})
        # a: 3/4 covered; b: [1.5,2.5], [1,3], [0.5,1.5], [2.5,3.5] -> 2/4
        assert rate == pytest.approx(5 / 8)

    def test_bounds_inclusive(self):
        results = pd.DataFrame({'conf.low': [1.0], 'conf.high': [2.0]})
        assert coverage_rate(results, 1.0) == 1.0
        assert coverage_rate(results, 2.0) == 1.0

    def test_empty(self):
        results = pd.DataFrame({'conf.low': [], 'conf.high': []})
        assert np.isnan(coverage_rate(results, 0.0))

    def test_missing_columns(self):
        with pytest.raises(ConfigurationError, match="conf.low"):
            coverage_rate(pd.DataFrame({'estimate': [1.0]}), 1.0)

    def test_term_truth_without_term_column(self):
        results = pd.DataFrame({'conf.low': [0.0], 'conf.high': [1.0]})
        with pytest.raises(ConfigurationError, match="term"):
            coverage_rate(results, {'a': 0.5})


class TestRejectionRate:

    def test_strictly_below_alpha(self):
        results = pd.DataFrame({'p.value': [0.01, 0.05, 0.2, 0.049]})
        assert rejection_rate(results) == pytest.approx(0.5)
        assert rejection_rate(results, alpha=0.1) == pytest.approx(0.75)

    def test_empty(self):
        assert np.isnan(rejection_rate(pd.DataFrame({'p.value': []})))

    def test_invalid_alpha(self):
        with pytest.raises(InvalidParameterError):
            rejection_rate(pd.DataFrame({'p.value': [0.5]}), alpha=1.5)


class TestSummarize:

    def test_groups_in_order_of_appearance(self, toy_results):
        summary = summarize(toy_results)
        assert list(summary['.sim']) == ['s1', 's1', 's2', 's2']
        assert list(summary['term']) == ['a', 'b', 'a', 'b']
        assert list(summary['n_reps']) == [2, 2, 2, 2]

    def test_metrics_without_truth(self, toy_results):
        summary = summarize(toy_results)
        first = summary.iloc[0]
        assert first['mean_estimate'] == pytest.approx(2.0)
        assert first['sd_estimate'] == pytest.approx(np.std([1.0, 3.0], ddof=1))
        assert first['mean_se'] == pytest.approx(1.0)
        assert first['se_ratio'] == pytest.approx(1.0 / np.std([1.0, 3.0], ddof=1))
        assert first['rejection_rate'] == pytest.approx(1.0)
        assert 'bias' not in summary.columns

    def test_metrics_with_truth(self, toy_results):
        summary = summarize(toy_results, truth={'a': 1.0, 'b': 2.0})
        s1_a = summary.iloc[0]
        assert s1_a['bias'] == pytest.approx(1.0)
        assert s1_a['rmse'] == pytest.approx(np.sqrt((0.0 + 4.0) / 2))
        assert s1_a['coverage'] == pytest.approx(0.5)

        s2_b = summary.iloc[3]
        assert s2_b['bias'] == pytest.approx(0.0)
        assert s2_b['rmse'] == pytest.approx(1.0)
        assert s2_b['coverage'] == pytest.approx(0.0)

    def test_custom_alpha(self, toy_results):
        summary = summarize(toy_results, alpha=0.001)
        assert (summary['rejection_rate'] == 0.0).all()

    def test_single_group(self, toy_results):
        summary = summarize(toy_results[toy_results['term'] == 'a'], by=())
        assert len(summary) == 1
        assert summary.loc[0, 'n_reps'] == 4
        assert summary.loc[0, 'mean_estimate'] == pytest.approx(1.5)

    def test_absent_grouping_columns_ignored(self):
        results = pd.DataFrame({'estimate': [1.0, 3.0], 'p.value': [0.01, 0.5]})
        summary = summarize(results, truth=2.0)
        assert len(summary) == 1
        assert summary.loc[0, 'bias'] == pytest.approx(0.0)
        assert summary.loc[0, 'rmse'] == pytest.approx(1.0)
        assert summary.loc[0, 'rejection_rate'] == pytest.approx(0.5)
        assert 'coverage' not in summary.columns
        assert 'mean_se' not in summary.columns

    def test_does_not_mutate_input(self, toy_results):
        before = toy_results.copy()
        summarize(toy_results, truth={'a': 1.0, 'b': 2.0})
        pd.testing.assert_frame_equal(toy_results, before)

    def test_requires_estimate(self):
        with pytest.raises(ConfigurationError):
            summarize(pd.DataFrame({'p.value': [0.5]}))
