"""
Data Splitting Module
=====================

Stratified train/test partitioning and k-fold cross-validation folds.

Functions:
    - stratified_split: Per-stratum random train/test split
    - make_folds: Shuffled k-fold partition of the training set
    - print_split_summary: Console summary of the partitions
"""

import logging
from typing import List, Tuple

import numpy as np
import pandas as pd
from sklearn.model_selection import KFold

from .exceptions import SchemaError

logger = logging.getLogger(__name__)

DEFAULT_SEED = 42


def stratified_split(
    df: pd.DataFrame,
    strata: str = "season",
    prop: float = 0.75,
    seed: int = DEFAULT_SEED
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Split into train and test sets, preserving each stratum's proportion.

    Each stratum contributes round(prop * n_stratum) rows to the training
    set; the remaining rows form the test set.

    Args:
        df: Aggregated daily DataFrame (unique index)
        strata: Column to stratify on
        prop: Fraction of each stratum assigned to training
        seed: Random seed

    Returns:
        Tuple of (train, test)
    """
    if strata not in df.columns:
        raise SchemaError(f"Stratification column '{strata}' not found")
    if not 0 < prop < 1:
        raise ValueError(f"prop must be in (0, 1), got {prop}")
    if not df.index.is_unique:
        raise SchemaError("Cannot split a DataFrame with a non-unique index")

    train = df.groupby(strata, observed=True).sample(frac=prop, random_state=seed)
    train = train.sort_index()
    test = df.drop(index=train.index)

    logger.info(
        f"Stratified split on '{strata}': {len(train)} train rows, {len(test)} test rows"
    )
    return train, test


def make_folds(
    train: pd.DataFrame,
    n_folds: int = 10,
    seed: int = DEFAULT_SEED
) -> List[Tuple[np.ndarray, np.ndarray]]:
    """
    Partition the training set into shuffled cross-validation folds.

    Args:
        train: Training DataFrame
        n_folds: Number of folds
        seed: Random seed

    Returns:
        List of (analysis_idx, assessment_idx) positional index arrays
    """
    if n_folds < 2:
        raise ValueError(f"n_folds must be at least 2, got {n_folds}")
    if n_folds > len(train):
        raise ValueError(
            f"Cannot make {n_folds} folds from {len(train)} training rows"
        )

    kfold = KFold(n_splits=n_folds, shuffle=True, random_state=seed)
    folds = list(kfold.split(train))

    logger.info(
        f"Created {n_folds} folds, assessment sizes "
        f"{sorted({len(assessment) for _, assessment in folds})}"
    )
    return folds


def print_split_summary(
    train: pd.DataFrame,
    test: pd.DataFrame,
    strata: str = "season"
) -> None:
    """Print partition sizes and per-stratum counts."""
    counts = pd.DataFrame({
        "train": train[strata].value_counts(sort=False),
        "test": test[strata].value_counts(sort=False),
    }).fillna(0).astype(int)
    counts["train_share"] = (counts["train"] / (counts["train"] + counts["test"])).round(3)

    print("\n" + "=" * 50)
    print("SPLIT SUMMARY")
    print("=" * 50)
    print(f"Training rows: {len(train)}")
    print(f"Test rows: {len(test)}")
    print(f"\nPer '{strata}':")
    print(counts.to_string())
    print("=" * 50 + "\n")
