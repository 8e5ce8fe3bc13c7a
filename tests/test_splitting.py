"""
Test Suite for Splitting Module
===============================

Tests for the stratified split and cross-validation folds.
"""

import pytest
import numpy as np
import pandas as pd

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from seoulbike.splitting import stratified_split, make_folds
from seoulbike.exceptions import SchemaError


class TestStratifiedSplit:
    """Tests for stratified_split."""

    def test_sizes_per_stratum(self, daily_data):
        train, test = stratified_split(daily_data, prop=0.75, seed=42)

        for season, n in daily_data["season"].value_counts().items():
            n_train = (train["season"] == season).sum()
            assert abs(n_train - 0.75 * n) <= 1
            assert n_train + (test["season"] == season).sum() == n

    def test_overall_sizes(self, daily_data):
        train, test = stratified_split(daily_data, prop=0.75, seed=42)

        n = len(daily_data)
        assert abs(len(train) - 0.75 * n) <= 4
        assert len(train) + len(test) == n

    def test_disjoint_and_covering(self, daily_data):
        train, test = stratified_split(daily_data, seed=42)

        assert set(train.index).isdisjoint(test.index)
        assert set(train.index) | set(test.index) == set(daily_data.index)

    def test_reproducible(self, daily_data):
        train_a, _ = stratified_split(daily_data, seed=123)
        train_b, _ = stratified_split(daily_data, seed=123)
        train_c, _ = stratified_split(daily_data, seed=124)

        assert train_a.index.equals(train_b.index)
        assert not train_a.index.equals(train_c.index)

    def test_unbalanced_strata(self, daily_data):
        """A small stratum still lands in train within rounding."""
        df = daily_data.iloc[:130].reset_index(drop=True)  # 60 Winter, 60 Spring, 10 Summer

        train, _ = stratified_split(df, seed=0)

        assert (train["season"] == "Summer").sum() in (7, 8)

    def test_missing_strata_column(self, daily_data):
        with pytest.raises(SchemaError):
            stratified_split(daily_data, strata="weather")

    def test_invalid_prop(self, daily_data):
        with pytest.raises(ValueError):
            stratified_split(daily_data, prop=1.0)

    def test_non_unique_index(self, daily_data):
        df = pd.concat([daily_data.iloc[:10], daily_data.iloc[:10]])

        with pytest.raises(SchemaError, match="non-unique"):
            stratified_split(df)


class TestMakeFolds:
    """Tests for make_folds."""

    @pytest.fixture
    def train(self, daily_data):
        train, _ = stratified_split(daily_data, seed=42)
        return train

    def test_fold_count(self, train):
        assert len(make_folds(train, n_folds=10, seed=42)) == 10

    def test_assessment_sets_partition_training_set(self, train):
        folds = make_folds(train, n_folds=10, seed=42)

        assessment = np.concatenate([held for _, held in folds])
        assert len(assessment) == len(train)
        assert sorted(assessment.tolist()) == list(range(len(train)))

    def test_sizes_differ_by_at_most_one(self, train):
        sizes = [len(held) for _, held in make_folds(train, n_folds=10, seed=42)]

        assert max(sizes) - min(sizes) <= 1

    def test_analysis_is_complement(self, train):
        for analysis, held in make_folds(train, n_folds=10, seed=42):
            assert set(analysis).isdisjoint(held)
            assert len(analysis) + len(held) == len(train)

    def test_reproducible(self, train):
        first = make_folds(train, n_folds=10, seed=7)
        second = make_folds(train, n_folds=10, seed=7)

        for (a1, h1), (a2, h2) in zip(first, second):
            np.testing.assert_array_equal(h1, h2)

    def test_too_many_folds(self, train):
        with pytest.raises(ValueError, match="Cannot make"):
            make_folds(train.iloc[:5], n_folds=10)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
