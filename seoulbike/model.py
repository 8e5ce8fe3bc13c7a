"""
Model Training Module
=====================

Ordinary least squares regression of daily rentals on a recipe's design matrix.

Features:
    - Intercept handling and rank checks before fitting
    - Coefficient table (estimate, standard error, t statistic, p-value)
    - Model persistence (save/load)
"""

import logging
from pathlib import Path
from typing import Dict, Any, List, Optional
from datetime import datetime

import numpy as np
import pandas as pd
import joblib
import statsmodels.api as sm

from .exceptions import FitError

logger = logging.getLogger(__name__)

INTERCEPT = "(Intercept)"


class OlsModel:
    """
    Linear regression fitted by ordinary least squares (statsmodels OLS).

    An intercept column is added to the design matrix; the design must have
    full column rank.
    """

    def __init__(self, fit_intercept: bool = True, rank_tol: Optional[float] = None):
        """
        Initialize the model.

        Args:
            fit_intercept: Whether to add a constant column
            rank_tol: Tolerance passed to numpy.linalg.matrix_rank
        """
        self.fit_intercept = fit_intercept
        self.rank_tol = rank_tol

        self.results = None
        self.feature_names_: Optional[List[str]] = None
        self.training_info: Dict[str, Any] = {}
        self._is_fitted = False

    def _design(self, X: pd.DataFrame) -> pd.DataFrame:
        exog = X.astype(float)
        if self.fit_intercept:
            exog = sm.add_constant(exog, has_constant='add', prepend=True)
            exog = exog.rename(columns={'const': INTERCEPT})
        return exog

    def fit(self, X: pd.DataFrame, y: pd.Series) -> 'OlsModel':
        """
        Fit the model.

        Args:
            X: Design matrix (n_samples, n_features)
            y: Outcome (n_samples,)

        Returns:
            Self for method chaining

        Raises:
            FitError: If the design is rank-deficient or has too few rows
        """
        exog = self._design(X)
        n_obs, n_params = exog.shape

        if len(y) != n_obs:
            raise FitError(f"X has {n_obs} rows but y has {len(y)}")
        if n_obs <= n_params:
            raise FitError(
                f"Need more observations ({n_obs}) than parameters ({n_params})"
            )
        if not np.isfinite(exog.values).all() or not np.isfinite(np.asarray(y, dtype=float)).all():
            raise FitError("Design matrix or outcome contains non-finite values")

        rank = np.linalg.matrix_rank(exog.values, tol=self.rank_tol)
        if rank < n_params:
            raise FitError(
                f"Design matrix is rank-deficient (rank {rank} < {n_params} columns); "
                f"check for collinear dummy, interaction or polynomial terms"
            )

        self.results = sm.OLS(np.asarray(y, dtype=float), exog).fit()
        self.feature_names_ = list(X.columns)
        self.training_info = {
            'n_samples': n_obs,
            'n_params': n_params,
            'rsquared': float(self.results.rsquared),
            'rsquared_adj': float(self.results.rsquared_adj),
            'aic': float(self.results.aic),
            'trained_at': datetime.now().isoformat(),
        }
        self._is_fitted = True

        logger.debug(f"Fitted OLS on {n_obs} rows with {n_params} parameters")
        return self

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        """
        Predict the outcome.

        Args:
            X: Design matrix with the training columns

        Returns:
            Predictions array of shape (n_samples,)
        """
        if not self._is_fitted:
            raise ValueError("Model must be trained before prediction. Call fit() first.")

        if list(X.columns) != self.feature_names_:
            raise ValueError(
                f"Expected features {self.feature_names_}, but got {list(X.columns)}"
            )

        return np.asarray(self.results.predict(self._design(X)))

    def coefficient_table(self) -> pd.DataFrame:
        """
        Tidy table of fitted coefficients.

        Returns:
            DataFrame with columns term, estimate, std_error, statistic, p_value
        """
        if not self._is_fitted:
            raise ValueError("Model must be trained first.")

        return pd.DataFrame({
            'term': self.results.params.index,
            'estimate': self.results.params.values,
            'std_error': self.results.bse.values,
            'statistic': self.results.tvalues.values,
            'p_value': self.results.pvalues.values,
        }).reset_index(drop=True)

    def save(self, filepath: str) -> None:
        """
        Save the trained model to disk.

        Args:
            filepath: Path to save the model
        """
        if not self._is_fitted:
            raise ValueError("Cannot save untrained model.")

        state = {
            'results': self.results,
            'fit_intercept': self.fit_intercept,
            'rank_tol': self.rank_tol,
            'feature_names_': self.feature_names_,
            'training_info': self.training_info,
            '_is_fitted': self._is_fitted
        }

        Path(filepath).parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(state, filepath)
        logger.info(f"Model saved to {filepath}")

    @classmethod
    def load(cls, filepath: str) -> 'OlsModel':
        """
        Load a trained model from disk.

        Args:
            filepath: Path to the saved model

        Returns:
            Loaded OlsModel instance
        """
        state = joblib.load(filepath)

        model = cls(fit_intercept=state['fit_intercept'], rank_tol=state['rank_tol'])
        model.results = state['results']
        model.feature_names_ = state['feature_names_']
        model.training_info = state['training_info']
        model._is_fitted = state['_is_fitted']

        logger.info(f"Model loaded from {filepath}")
        return model


def train_model(
    X_train: pd.DataFrame,
    y_train: pd.Series,
    save_path: Optional[str] = None
) -> OlsModel:
    """
    Fit an OLS model and optionally persist it.

    Args:
        X_train: Training design matrix
        y_train: Training outcome
        save_path: Path to save the trained model (optional)

    Returns:
        Trained OlsModel
    """
    model = OlsModel().fit(X_train, y_train)

    if save_path:
        model.save(save_path)

    return model


def print_model_summary(model: OlsModel) -> None:
    """
    Print a summary of the trained model.

    Args:
        model: Trained model instance
    """
    print("\n" + "=" * 50)
    print("MODEL SUMMARY")
    print("=" * 50)
    print("Model Type: OLS (statsmodels)")
    print(f"Number of input features: {len(model.feature_names_ or [])}")

    if model.training_info:
        print("\nTraining Info:")
        print(f"  - Samples: {model.training_info.get('n_samples', 'N/A')}")
        print(f"  - Parameters: {model.training_info.get('n_params', 'N/A')}")
        print(f"  - In-sample R²: {model.training_info.get('rsquared', float('nan')):.4f}")
        print(f"  - Adjusted R²: {model.training_info.get('rsquared_adj', float('nan')):.4f}")
        print(f"  - AIC: {model.training_info.get('aic', float('nan')):.2f}")

    print("=" * 50 + "\n")
