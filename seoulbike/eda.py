"""
Exploratory Data Analysis (EDA) Module
======================================

Numerical exploration of the hourly table and descriptive plots of the
daily table. Nothing here feeds the modelling stages.

Functions:
    - missingness_report: Missing entries per column
    - summary_statistics: Numeric and categorical summaries
    - contingency_tables: Level frequencies and season x holiday cross-tab
    - plot_season_holiday_counts: Bar chart of day counts
    - plot_rental_distribution: Histogram of daily rentals
    - plot_rentals_vs: Rentals against a weather variable, by season
    - plot_correlation_matrix: Correlation heatmap
    - generate_eda_report: Full EDA report with all visualizations
    - strong_correlations: Strongly correlated variable pairs
"""

import logging
from pathlib import Path
from typing import Dict, Any, Optional, Tuple

import pandas as pd
import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns
from scipy import stats

logger = logging.getLogger(__name__)

# Set style for all plots
plt.style.use('seaborn-v0_8-whitegrid')
sns.set_palette("husl")


def missingness_report(df: pd.DataFrame) -> pd.Series:
    """Count missing entries in every column."""
    return df.isnull().sum()


def summary_statistics(df: pd.DataFrame) -> Dict[str, Dict[str, Any]]:
    """
    Summarize every column.

    Numeric columns get mean/median/min/max/std; categorical columns get
    the number of distinct levels observed.

    Args:
        df: DataFrame to summarize

    Returns:
        Dictionary with 'numeric' and 'categorical' sections keyed by column
    """
    summary: Dict[str, Dict[str, Any]] = {"numeric": {}, "categorical": {}}

    for col in df.select_dtypes(include=[np.number]).columns:
        summary["numeric"][col] = {
            "mean": float(df[col].mean()),
            "median": float(df[col].median()),
            "min": float(df[col].min()),
            "max": float(df[col].max()),
            "std": float(df[col].std()),
        }

    for col in df.select_dtypes(include=["category", "object"]).columns:
        summary["categorical"][col] = {"n_levels": int(df[col].nunique())}

    return summary


def contingency_tables(df: pd.DataFrame) -> Dict[str, pd.DataFrame]:
    """
    Frequency table for each categorical column.

    Declared but unobserved levels are listed with a zero count. When both
    season and holiday are present a season x holiday cross-tab is added
    under the key 'season_x_holiday'.

    Args:
        df: DataFrame with categorical columns

    Returns:
        Dictionary of column name -> frequency DataFrame (level, count)
    """
    tables = {}
    for col in df.select_dtypes(include=["category"]).columns:
        counts = df[col].value_counts(sort=False)
        tables[col] = counts.rename_axis(col).reset_index(name="count")

    if {"season", "holiday"} <= set(df.columns):
        tables["season_x_holiday"] = pd.crosstab(df["season"], df["holiday"], dropna=False)

    return tables


def print_exploration_report(df: pd.DataFrame) -> None:
    """
    Print missingness, summary statistics and contingency tables.

    Args:
        df: Cleaned hourly DataFrame
    """
    print("\n" + "=" * 60)
    print("DATA EXPLORATION")
    print("=" * 60)

    print("\nMissing values per column:")
    print("-" * 40)
    print(missingness_report(df).to_string())

    summary = summary_statistics(df)
    print("\nNumeric columns:")
    print("-" * 40)
    print(pd.DataFrame(summary["numeric"]).T.round(3).to_string())

    print("\nCategorical columns (distinct levels):")
    print("-" * 40)
    for col, info in summary["categorical"].items():
        print(f"  {col}: {info['n_levels']}")

    print("\nContingency tables:")
    for name, table in contingency_tables(df).items():
        print("-" * 40)
        # only the cross-tab carries a meaningful index
        print(table.to_string(index=name == "season_x_holiday"))

    print("=" * 60 + "\n")


def plot_season_holiday_counts(
    daily: pd.DataFrame,
    figsize: Tuple[int, int] = (9, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Bar chart of the number of days per season, split by holiday.

    Args:
        daily: Aggregated daily DataFrame
        figsize: Figure size (width, height)
        save_path: Path to save the figure (optional)

    Returns:
        Matplotlib Figure object
    """
    fig, ax = plt.subplots(figsize=figsize)

    sns.countplot(data=daily, x="season", hue="holiday", ax=ax)
    for container in ax.containers:
        ax.bar_label(container, fontsize=8)

    ax.set_xlabel('Season')
    ax.set_ylabel('Number of days')
    ax.set_title('Operating Days by Season and Holiday', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Season x holiday bar chart saved to {save_path}")

    return fig


def plot_rental_distribution(
    daily: pd.DataFrame,
    column: str = "total_rent_bike",
    figsize: Tuple[int, int] = (9, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Histogram (with KDE) of daily total rentals.

    Args:
        daily: Aggregated daily DataFrame
        column: Column to plot
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    fig, ax = plt.subplots(figsize=figsize)

    values = daily[column].dropna()
    sns.histplot(values, kde=True, ax=ax, bins=30, alpha=0.7)

    mean_val = values.mean()
    median_val = values.median()
    ax.axvline(mean_val, color='red', linestyle='--', label=f'Mean: {mean_val:.0f}')
    ax.axvline(median_val, color='green', linestyle='--', label=f'Median: {median_val:.0f}')

    title = f'Distribution of {column}'
    # normaltest needs at least 8 observations
    if len(values) >= 8:
        _, p_value = stats.normaltest(values)
        normality = "Normal" if p_value > 0.05 else "Non-Normal"
        title += f' ({normality}, p={p_value:.3f})'

    ax.set_title(title, fontsize=12, fontweight='bold')
    ax.set_xlabel(column)
    ax.legend(fontsize=8)
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Rental histogram saved to {save_path}")

    return fig


def plot_rentals_vs(
    daily: pd.DataFrame,
    x: str,
    y: str = "total_rent_bike",
    hue: str = "season",
    figsize: Tuple[int, int] = (9, 6),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Scatter plot of rentals against a predictor, coloured by season.

    Args:
        daily: Aggregated daily DataFrame
        x: Predictor column
        y: Outcome column
        hue: Grouping column
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    fig, ax = plt.subplots(figsize=figsize)

    sns.scatterplot(data=daily, x=x, y=y, hue=hue, alpha=0.7, ax=ax)

    ax.set_xlabel(x)
    ax.set_ylabel(y)
    ax.set_title(f'{y} vs {x} by {hue}', fontsize=12, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Scatter plot of {y} vs {x} saved to {save_path}")

    return fig


def plot_correlation_matrix(
    df: pd.DataFrame,
    method: str = 'pearson',
    figsize: Tuple[int, int] = (10, 8),
    save_path: Optional[str] = None
) -> Tuple[plt.Figure, pd.DataFrame]:
    """
    Create a correlation heatmap for all numerical columns.

    Args:
        df: DataFrame with numerical data
        method: Correlation method ('pearson', 'spearman', 'kendall')
        figsize: Figure size (width, height)
        save_path: Path to save the figure (optional)

    Returns:
        Tuple of (Figure, correlation matrix DataFrame)
    """
    corr_matrix = df.select_dtypes(include=[np.number]).corr(method=method)

    fig, ax = plt.subplots(figsize=figsize)

    mask = np.triu(np.ones_like(corr_matrix, dtype=bool), k=1)
    sns.heatmap(
        corr_matrix,
        mask=mask,
        annot=True,
        fmt='.2f',
        cmap='RdYlBu_r',
        center=0,
        square=True,
        linewidths=0.5,
        cbar_kws={"shrink": 0.8, "label": "Correlation"},
        ax=ax,
        vmin=-1,
        vmax=1
    )

    ax.set_title(f'Correlation Matrix ({method.capitalize()})',
                 fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Correlation matrix saved to {save_path}")

    return fig, corr_matrix


def generate_eda_report(
    hourly: pd.DataFrame,
    daily: pd.DataFrame,
    output_dir: str = "reports/figures/",
    show_plots: bool = False
) -> Dict[str, Any]:
    """
    Generate the exploration results and all descriptive figures.

    Args:
        hourly: Cleaned hourly DataFrame (numerical exploration)
        daily: Aggregated daily DataFrame (plots and correlations)
        output_dir: Directory to save figures
        show_plots: Whether to display plots interactively

    Returns:
        Dictionary containing EDA results and file names
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    report = {
        "hourly_shape": hourly.shape,
        "daily_shape": daily.shape,
        "missing": missingness_report(hourly).to_dict(),
        "statistics": summary_statistics(hourly),
        "contingency": {
            name: table.to_dict() for name, table in contingency_tables(hourly).items()
        },
        "figures": [],
        "correlation_matrix": None,
    }

    logger.info("=" * 60)
    logger.info("STARTING EXPLORATORY DATA ANALYSIS")
    logger.info("=" * 60)

    logger.info("Plotting season x holiday counts...")
    plot_season_holiday_counts(
        daily,
        save_path=str(output_dir / "01_season_holiday_counts.png")
    )
    report["figures"].append("01_season_holiday_counts.png")

    logger.info("Plotting rental distribution...")
    plot_rental_distribution(
        daily,
        save_path=str(output_dir / "02_total_rentals_hist.png")
    )
    report["figures"].append("02_total_rentals_hist.png")

    logger.info("Plotting rentals vs temperature...")
    plot_rentals_vs(
        daily, x="mean_temp",
        save_path=str(output_dir / "03_rentals_vs_temp.png")
    )
    report["figures"].append("03_rentals_vs_temp.png")

    logger.info("Plotting rentals vs visibility...")
    plot_rentals_vs(
        daily, x="mean_visibility",
        save_path=str(output_dir / "04_rentals_vs_visibility.png")
    )
    report["figures"].append("04_rentals_vs_visibility.png")

    logger.info("Computing correlation matrix...")
    _, corr_matrix = plot_correlation_matrix(
        daily,
        save_path=str(output_dir / "05_correlation_matrix.png")
    )
    report["figures"].append("05_correlation_matrix.png")
    report["correlation_matrix"] = corr_matrix.to_dict()

    if show_plots:
        plt.show()
    else:
        plt.close('all')

    logger.info("=" * 60)
    logger.info("EDA COMPLETE - All figures saved to: %s", output_dir)
    logger.info("=" * 60)

    return report


def print_correlation_insights(corr_matrix: pd.DataFrame, threshold: float = 0.5) -> None:
    """
    Print the correlation matrix and the strongly correlated pairs.

    Args:
        corr_matrix: Correlation matrix DataFrame
        threshold: Correlation threshold for "strong" correlation
    """
    print("\n" + "=" * 50)
    print("CORRELATION MATRIX")
    print("=" * 50)
    print(corr_matrix.round(2).to_string())

    strong = strong_correlations(corr_matrix, threshold)

    if strong.empty:
        print(f"\nNo strong correlations found (|r| >= {threshold})")
    else:
        print(f"\nStrong correlations (|r| >= {threshold}):")
        for (left, right), r in strong.items():
            direction = "positive" if r > 0 else "negative"
            print(f"  • {left} ↔ {right}: {r:.3f} ({direction})")

    print("=" * 50 + "\n")


def strong_correlations(corr_matrix: pd.DataFrame, threshold: float = 0.5) -> pd.Series:
    """
    Variable pairs with |r| >= threshold, strongest first.

    Each unordered pair appears once; the diagonal is excluded.
    """
    upper = corr_matrix.where(np.triu(np.ones(corr_matrix.shape, dtype=bool), k=1))
    pairs = upper.stack()
    pairs = pairs[pairs.abs() >= threshold]
    return pairs.reindex(pairs.abs().sort_values(ascending=False, kind="mergesort").index)
