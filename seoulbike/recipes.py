"""
Feature Recipe Module
=====================

Declarative feature-engineering pipelines over the daily table.

A recipe is an ordered list of steps. Fitting a recipe learns step
parameters (normalization mean/sd, resolved interaction columns) from a
training subset and returns a prepared copy; the prepared copy transforms
any other subset without re-estimating anything.

Classes:
    - DayTypeStep: weekday/weekend indicator from the date
    - NormalizeStep: z-score scaling
    - DummyStep: drop-first one-hot encoding
    - InteractStep: pairwise products
    - PolynomialStep: power terms
    - Recipe: ordered composition of steps

Functions:
    - build_recipes: the three recipes compared by the pipeline
"""

import copy
import logging
from collections import OrderedDict
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .data_loader import CATEGORY_LEVELS
from .exceptions import FitError, SchemaError

logger = logging.getLogger(__name__)

OUTCOME = "total_rent_bike"

CONTINUOUS_PREDICTORS: List[str] = [
    "total_rain",
    "total_snow",
    "mean_temp",
    "mean_humidity",
    "mean_wind_speed",
    "mean_visibility",
    "mean_dew_point",
    "mean_solar_radiation",
]

DAY_TYPE_LEVELS: List[str] = ["weekday", "weekend"]

# Reference level of each encoded categorical
BASELINE_LEVELS: Dict[str, str] = {
    "season": CATEGORY_LEVELS["season"][0],
    "holiday": CATEGORY_LEVELS["holiday"][0],
    "day_type": DAY_TYPE_LEVELS[0],
}


class Step:
    """Base class for recipe steps."""

    _is_fitted = False

    def fit(self, df: pd.DataFrame) -> 'Step':
        self._is_fitted = True
        return self

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        raise NotImplementedError

    def fit_transform(self, df: pd.DataFrame) -> pd.DataFrame:
        return self.fit(df).transform(df)

    def _check_fitted(self) -> None:
        if not self._is_fitted:
            raise ValueError(f"{type(self).__name__} must be fitted before transform. Call fit() first.")

    @staticmethod
    def _require(df: pd.DataFrame, columns: Sequence[str]) -> None:
        missing = [col for col in columns if col not in df.columns]
        if missing:
            raise SchemaError(f"Missing columns: {missing}")


class DayTypeStep(Step):
    """Derive a weekday/weekend categorical from a date column."""

    def __init__(self, date_column: str = "date", name: str = "day_type"):
        self.date_column = date_column
        self.name = name

    def fit(self, df: pd.DataFrame) -> 'DayTypeStep':
        self._require(df, [self.date_column])
        return super().fit(df)

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        self._check_fitted()
        df = df.copy()
        # Monday=0, Sunday=6
        is_weekend = pd.to_datetime(df[self.date_column]).dt.dayofweek >= 5
        df[self.name] = pd.Categorical(
            np.where(is_weekend, "weekend", "weekday"),
            categories=DAY_TYPE_LEVELS
        )
        return df


class NormalizeStep(Step):
    """
    Center and scale columns to mean 0 and unit variance.

    Means and sample standard deviations are learned once in fit().
    """

    def __init__(self, columns: Sequence[str]):
        self.columns = list(columns)
        self.means_: Optional[pd.Series] = None
        self.stds_: Optional[pd.Series] = None

    def fit(self, df: pd.DataFrame) -> 'NormalizeStep':
        self._require(df, self.columns)
        values = df[self.columns].astype(float)
        self.means_ = values.mean()
        self.stds_ = values.std(ddof=1)

        constant = self.stds_[~(self.stds_ > 0)].index.tolist()
        if constant:
            raise FitError(f"Cannot normalize zero-variance columns: {constant}")

        logger.debug(f"Fitted normalization on {len(df)} rows")
        return super().fit(df)

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        self._check_fitted()
        df = df.copy()
        df[self.columns] = (df[self.columns].astype(float) - self.means_) / self.stds_
        return df


class DummyStep(Step):
    """
    One-hot encode categoricals into k-1 indicator columns.

    The first declared level is the baseline. Levels come from the
    categorical dtype seen at fit time, so every subset gets the same columns.
    """

    def __init__(self, columns: Sequence[str]):
        self.columns = list(columns)
        self.levels_: Dict[str, List[str]] = {}

    def fit(self, df: pd.DataFrame) -> 'DummyStep':
        self._require(df, self.columns)
        for col in self.columns:
            if isinstance(df[col].dtype, pd.CategoricalDtype):
                levels = list(df[col].cat.categories)
            else:
                levels = sorted(df[col].dropna().unique().tolist())
            if len(levels) < 2:
                raise FitError(f"Column '{col}' needs at least two levels, got {levels}")
            self.levels_[col] = levels
        return super().fit(df)

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        self._check_fitted()
        df = df.copy()
        for col in self.columns:
            levels = self.levels_[col]
            unknown = ~df[col].isin(levels)
            if unknown.any():
                raise SchemaError(
                    f"Column '{col}' has levels not seen at fit time: "
                    f"{sorted(df.loc[unknown, col].astype(str).unique())}"
                )
            for level in levels[1:]:
                df[dummy_name(col, level)] = (df[col] == level).astype(float)
        return df.drop(columns=self.columns)


class InteractStep(Step):
    """
    Add products of column pairs.

    A term ending in "*" is a prefix selector resolved against the columns
    present at fit time, e.g. ("season_*", "mean_temp").
    """

    def __init__(self, terms: Sequence[Tuple[str, str]]):
        self.terms = list(terms)
        self.pairs_: List[Tuple[str, str]] = []

    @staticmethod
    def _resolve(term: str, columns: Sequence[str]) -> List[str]:
        if term.endswith("*"):
            prefix = term[:-1]
            matched = [col for col in columns if col.startswith(prefix)]
        else:
            matched = [term] if term in columns else []
        if not matched:
            raise SchemaError(f"Interaction term '{term}' matches no column")
        return matched

    def fit(self, df: pd.DataFrame) -> 'InteractStep':
        columns = list(df.columns)
        self.pairs_ = []
        for left, right in self.terms:
            for a in self._resolve(left, columns):
                for b in self._resolve(right, columns):
                    self.pairs_.append((a, b))
        return super().fit(df)

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        self._check_fitted()
        df = df.copy()
        for a, b in self.pairs_:
            df[f"{a}_x_{b}"] = df[a].astype(float) * df[b].astype(float)
        return df


class PolynomialStep(Step):
    """Add raw power terms (x^2 .. x^degree), keeping the original column."""

    def __init__(self, columns: Sequence[str], degree: int = 2):
        if degree < 2:
            raise ValueError(f"degree must be at least 2, got {degree}")
        self.columns = list(columns)
        self.degree = degree

    def fit(self, df: pd.DataFrame) -> 'PolynomialStep':
        self._require(df, self.columns)
        return super().fit(df)

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        self._check_fitted()
        df = df.copy()
        for col in self.columns:
            for power in range(2, self.degree + 1):
                df[f"{col}_pow{power}"] = df[col].astype(float) ** power
        return df


def dummy_name(column: str, level: str) -> str:
    """Indicator column name for a categorical level."""
    return f"{column}_{str(level).replace(' ', '_')}"


class Recipe:
    """
    Ordered feature-engineering pipeline.

    The step list is a definition only: fit() works on deep copies and
    returns a new prepared Recipe, so one definition can be fitted on many
    training subsets.
    """

    def __init__(
        self,
        name: str,
        steps: Sequence[Step],
        outcome: str = OUTCOME,
        drop: Sequence[str] = ("date",)
    ):
        """
        Initialize the recipe.

        Args:
            name: Recipe label used in reports
            steps: Steps applied in order
            outcome: Response column, never transformed
            drop: Non-predictor columns removed from the design matrix
        """
        self.name = name
        self.steps: Tuple[Step, ...] = tuple(steps)
        self.outcome = outcome
        self.drop = tuple(drop)

        self.feature_names: Optional[List[str]] = None
        self.n_train_: Optional[int] = None
        self._is_fitted = False

    def fit(self, df: pd.DataFrame) -> 'Recipe':
        """
        Learn step parameters from a training subset.

        Args:
            df: Training DataFrame (daily table)

        Returns:
            A new prepared Recipe; this instance is left untouched
        """
        if self.outcome not in df.columns:
            raise SchemaError(f"Outcome column '{self.outcome}' not found")

        prepared = Recipe(self.name, copy.deepcopy(self.steps), self.outcome, self.drop)

        data = df.drop(columns=[self.outcome])
        for step in prepared.steps:
            data = step.fit_transform(data)

        design = prepared._design(data)
        prepared.feature_names = list(design.columns)
        prepared.n_train_ = len(df)
        prepared._is_fitted = True

        logger.debug(
            f"Prepared recipe '{self.name}' on {len(df)} rows: "
            f"{len(prepared.feature_names)} features"
        )
        return prepared

    def transform(self, df: pd.DataFrame) -> Tuple[pd.DataFrame, pd.Series]:
        """
        Apply fitted steps to any subset.

        Args:
            df: DataFrame to transform

        Returns:
            Tuple of (design matrix, outcome)
        """
        if not self._is_fitted:
            raise ValueError("Recipe must be fitted before transform. Call fit() first.")
        if self.outcome not in df.columns:
            raise SchemaError(f"Outcome column '{self.outcome}' not found")

        y = df[self.outcome].astype(float)
        data = df.drop(columns=[self.outcome])
        for step in self.steps:
            data = step.transform(data)

        X = self._design(data)[self.feature_names]
        return X, y

    def _design(self, data: pd.DataFrame) -> pd.DataFrame:
        data = data.drop(columns=[col for col in self.drop if col in data.columns])
        non_numeric = [
            col for col in data.columns
            if not pd.api.types.is_numeric_dtype(data[col])
        ]
        if non_numeric:
            raise SchemaError(f"Non-numeric columns left in design matrix: {non_numeric}")
        return data.astype(float)

    def __repr__(self) -> str:
        steps = ", ".join(type(step).__name__ for step in self.steps)
        state = "prepared" if self._is_fitted else "unprepared"
        return f"Recipe(name={self.name!r}, steps=[{steps}], {state})"


def build_recipes(continuous: Sequence[str] = CONTINUOUS_PREDICTORS) -> "OrderedDict[str, Recipe]":
    """
    Build the three recipes in increasing complexity.

    - base: day type, normalization, dummy encoding
    - interactions: base + season x holiday, season x mean_temp, mean_temp x total_rain
    - polynomial: interactions + squared continuous predictors

    Args:
        continuous: Continuous predictors to normalize (and square)

    Returns:
        OrderedDict of recipe name -> Recipe, simplest first
    """
    categorical = ["season", "holiday", "day_type"]

    def base_steps() -> List[Step]:
        return [
            DayTypeStep(),
            NormalizeStep(continuous),
            DummyStep(categorical),
        ]

    def interaction_step() -> InteractStep:
        return InteractStep([
            ("season_*", "holiday_*"),
            ("season_*", "mean_temp"),
            ("mean_temp", "total_rain"),
        ])

    recipes = OrderedDict()
    recipes["base"] = Recipe("base", base_steps())
    recipes["interactions"] = Recipe("interactions", base_steps() + [interaction_step()])
    recipes["polynomial"] = Recipe(
        "polynomial",
        base_steps() + [interaction_step(), PolynomialStep(continuous, degree=2)]
    )
    return recipes

