"""
Test Suite for Model Module
===========================

Tests for the OLS model, its coefficient table and persistence.
"""

import pytest
import numpy as np
import pandas as pd

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from seoulbike.model import OlsModel, INTERCEPT, train_model
from seoulbike.exceptions import FitError


@pytest.fixture
def linear_data():
    """y = 3 + 2*a - 0.5*b + small noise."""
    rng = np.random.default_rng(0)
    n = 200
    X = pd.DataFrame({"a": rng.normal(0, 1, n), "b": rng.normal(5, 2, n)})
    y = pd.Series(3 + 2 * X["a"] - 0.5 * X["b"] + rng.normal(0, 0.01, n))
    return X, y


class TestOlsModel:
    """Tests for OlsModel."""

    def test_recovers_coefficients(self, linear_data):
        X, y = linear_data

        model = OlsModel().fit(X, y)
        params = model.results.params

        assert params[INTERCEPT] == pytest.approx(3.0, abs=0.01)
        assert params["a"] == pytest.approx(2.0, abs=0.01)
        assert params["b"] == pytest.approx(-0.5, abs=0.01)

    def test_predict(self, linear_data):
        X, y = linear_data
        model = OlsModel().fit(X, y)

        pred = model.predict(X.iloc[:5])

        assert pred.shape == (5,)
        np.testing.assert_allclose(pred, y.iloc[:5].values, atol=0.05)

    def test_coefficient_table(self, linear_data):
        X, y = linear_data

        table = OlsModel().fit(X, y).coefficient_table()

        assert list(table.columns) == ["term", "estimate", "std_error", "statistic", "p_value"]
        assert table["term"].tolist() == [INTERCEPT, "a", "b"]
        assert (table["std_error"] > 0).all()
        assert table.loc[table["term"] == "a", "p_value"].iloc[0] < 1e-6

    def test_training_info(self, linear_data):
        X, y = linear_data

        model = OlsModel().fit(X, y)

        assert model.training_info["n_samples"] == 200
        assert model.training_info["n_params"] == 3
        assert model.training_info["rsquared"] > 0.99

    def test_rank_deficient(self, linear_data):
        X, y = linear_data
        X = X.assign(a_copy=X["a"] * 2)

        with pytest.raises(FitError, match="rank-deficient"):
            OlsModel().fit(X, y)

    def test_constant_column_collides_with_intercept(self, linear_data):
        X, y = linear_data
        X = X.assign(ones=1.0)

        with pytest.raises(FitError, match="rank-deficient"):
            OlsModel().fit(X, y)

    def test_too_few_rows(self, linear_data):
        X, y = linear_data

        with pytest.raises(FitError, match="more observations"):
            OlsModel().fit(X.iloc[:3], y.iloc[:3])

    def test_non_finite(self, linear_data):
        X, y = linear_data
        X = X.copy()
        X.iloc[0, 0] = np.nan

        with pytest.raises(FitError, match="non-finite"):
            OlsModel().fit(X, y)

    def test_predict_before_fit(self, linear_data):
        X, _ = linear_data

        with pytest.raises(ValueError, match="must be trained"):
            OlsModel().predict(X)

    def test_predict_with_wrong_columns(self, linear_data):
        X, y = linear_data
        model = OlsModel().fit(X, y)

        with pytest.raises(ValueError, match="Expected features"):
            model.predict(X[["b", "a"]])


class TestPersistence:
    """Tests for save/load."""

    def test_save_load(self, linear_data, tmp_path):
        X, y = linear_data
        path = tmp_path / "models" / "ols.joblib"

        model = train_model(X, y, save_path=str(path))
        loaded = OlsModel.load(str(path))

        assert path.exists()
        assert loaded.feature_names_ == ["a", "b"]
        np.testing.assert_allclose(loaded.predict(X), model.predict(X))

    def test_save_untrained(self, tmp_path):
        with pytest.raises(ValueError, match="untrained"):
            OlsModel().save(str(tmp_path / "ols.joblib"))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
