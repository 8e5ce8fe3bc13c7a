"""
Model Evaluation Module
=======================

Cross-validated comparison of feature recipes and the final test-set fit.

Features:
    - RMSE and R² per fold, averaged with standard errors
    - Recipe selection (lowest mean RMSE, simpler recipe on ties)
    - Refit of the selected recipe on the full training set
    - Comparison, actual vs predicted, and residual plots
    - Evaluation report generation
"""

import logging
import json
from pathlib import Path
from typing import Dict, Any, List, Mapping, Optional, Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from sklearn.metrics import mean_squared_error, r2_score

from .model import OlsModel, train_model
from .recipes import Recipe, BASELINE_LEVELS

logger = logging.getLogger(__name__)

Folds = List[Tuple[np.ndarray, np.ndarray]]


def calculate_metrics(y_true: np.ndarray, y_pred: np.ndarray) -> Dict[str, float]:
    """
    Calculate regression metrics.

    Args:
        y_true: Ground truth values
        y_pred: Predicted values

    Returns:
        Dictionary with rmse, r2 and n_samples
    """
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)

    return {
        'rmse': float(np.sqrt(mean_squared_error(y_true, y_pred))),
        'r2': float(r2_score(y_true, y_pred)),
        'n_samples': int(len(y_true)),
    }


def cross_validate_recipe(
    recipe: Recipe,
    train: pd.DataFrame,
    folds: Folds
) -> pd.DataFrame:
    """
    Fit and score a recipe + OLS on each fold.

    The recipe is prepared on the analysis rows of each fold only and then
    applied to the held-out rows.

    Args:
        recipe: Unprepared recipe definition
        train: Training DataFrame
        folds: (analysis_idx, assessment_idx) positional index pairs

    Returns:
        DataFrame with one row per fold: fold, rmse, r2, n_samples
    """
    rows = []
    for i, (analysis_idx, assessment_idx) in enumerate(folds, start=1):
        analysis = train.iloc[analysis_idx]
        assessment = train.iloc[assessment_idx]

        prepared = recipe.fit(analysis)
        X_fit, y_fit = prepared.transform(analysis)
        X_held, y_held = prepared.transform(assessment)

        model = OlsModel().fit(X_fit, y_fit)
        metrics = calculate_metrics(y_held, model.predict(X_held))
        rows.append({'fold': i, **metrics})

        logger.debug(
            f"[{recipe.name}] fold {i}: rmse={metrics['rmse']:.3f} r2={metrics['r2']:.4f}"
        )

    return pd.DataFrame(rows)


def summarize_folds(fold_metrics: pd.DataFrame) -> Dict[str, float]:
    """
    Average fold metrics.

    Standard errors are the sample standard deviation across folds divided
    by sqrt(n_folds).
    """
    n = len(fold_metrics)
    summary = {'n_folds': n}
    for metric in ('rmse', 'r2'):
        values = fold_metrics[metric]
        summary[f'mean_{metric}'] = float(values.mean())
        summary[f'std_err_{metric}'] = float(values.std(ddof=1) / np.sqrt(n)) if n > 1 else float('nan')
    return summary


def compare_recipes(
    recipes: Mapping[str, Recipe],
    train: pd.DataFrame,
    folds: Folds
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Cross-validate every recipe on the same folds.

    Args:
        recipes: Ordered mapping of name -> recipe, simplest first
        train: Training DataFrame
        folds: Cross-validation folds

    Returns:
        Tuple of (comparison table, per-fold metrics)
    """
    logger.info("=" * 60)
    logger.info(f"CROSS-VALIDATING {len(recipes)} RECIPES ON {len(folds)} FOLDS")
    logger.info("=" * 60)

    summaries = []
    all_folds = []
    for complexity, (name, recipe) in enumerate(recipes.items()):
        fold_metrics = cross_validate_recipe(recipe, train, folds)
        fold_metrics.insert(0, 'recipe', name)
        all_folds.append(fold_metrics)

        summary = summarize_folds(fold_metrics)
        summaries.append({'recipe': name, 'complexity': complexity, **summary})

        logger.info(
            f"  {name:<14} mean RMSE {summary['mean_rmse']:.3f} "
            f"(± {summary['std_err_rmse']:.3f}), mean R² {summary['mean_r2']:.4f}"
        )

    columns = [
        'recipe', 'complexity', 'mean_rmse', 'std_err_rmse',
        'mean_r2', 'std_err_r2', 'n_folds'
    ]
    comparison = pd.DataFrame(summaries)[columns]
    return comparison, pd.concat(all_folds, ignore_index=True)


def select_best_recipe(comparison: pd.DataFrame) -> str:
    """
    Pick the recipe with the lowest mean RMSE.

    Ties go to the lower complexity (simpler) recipe.

    Args:
        comparison: Table from compare_recipes

    Returns:
        Name of the selected recipe
    """
    if comparison.empty:
        raise ValueError("No recipes to select from")

    ranked = comparison.sort_values(['mean_rmse', 'complexity'], kind='mergesort')
    best = ranked.iloc[0]['recipe']
    logger.info(f"Selected recipe: {best}")
    return best


def final_fit(
    recipe: Recipe,
    train: pd.DataFrame,
    test: pd.DataFrame,
    save_path: Optional[str] = None
) -> Dict[str, Any]:
    """
    Refit a recipe and OLS on the full training set and score the test set once.

    Args:
        recipe: Unprepared recipe definition
        train: Full training partition
        test: Untouched test partition
        save_path: Path to persist the fitted model (optional)

    Returns:
        Dictionary with prepared recipe, model, metrics, coefficients and predictions
    """
    prepared = recipe.fit(train)
    X_train, y_train = prepared.transform(train)
    X_test, y_test = prepared.transform(test)

    model = train_model(X_train, y_train, save_path=save_path)
    y_pred = model.predict(X_test)
    metrics = calculate_metrics(y_test, y_pred)

    logger.info(
        f"Final fit [{recipe.name}]: test RMSE {metrics['rmse']:.3f}, R² {metrics['r2']:.4f}"
    )

    return {
        'recipe': prepared,
        'model': model,
        'metrics': metrics,
        'coefficients': model.coefficient_table(),
        'y_true': y_test.values,
        'y_pred': y_pred,
    }


def plot_recipe_comparison(
    comparison: pd.DataFrame,
    figsize: Tuple[int, int] = (12, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Bar chart of mean cross-validated RMSE and R² with standard-error bars.

    Args:
        comparison: Table from compare_recipes
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    fig, axes = plt.subplots(1, 2, figsize=figsize)
    x = np.arange(len(comparison))

    axes[0].bar(x, comparison['mean_rmse'], yerr=comparison['std_err_rmse'],
                color='steelblue', alpha=0.8, capsize=6)
    axes[0].set_ylabel('RMSE')
    axes[0].set_title('Cross-validated RMSE', fontweight='bold')

    axes[1].bar(x, comparison['mean_r2'], yerr=comparison['std_err_r2'],
                color='coral', alpha=0.8, capsize=6)
    axes[1].axhline(1.0, color='gray', linestyle=':', alpha=0.5)
    axes[1].set_ylabel('R² Score')
    axes[1].set_title('Cross-validated R²', fontweight='bold')

    for ax in axes:
        ax.set_xticks(x)
        ax.set_xticklabels(comparison['recipe'])
        ax.set_xlabel('Recipe')

    plt.suptitle('Recipe Comparison (mean ± standard error)', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Recipe comparison plot saved to {save_path}")

    return fig


def plot_actual_vs_predicted(
    y_true: np.ndarray,
    y_pred: np.ndarray,
    title: str = 'Test set',
    figsize: Tuple[int, int] = (7, 6),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Scatter plot of actual vs predicted daily rentals.

    Args:
        y_true: Ground truth values
        y_pred: Predicted values
        title: Plot title prefix
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    fig, ax = plt.subplots(figsize=figsize)

    ax.scatter(y_true, y_pred, alpha=0.6, s=20)

    # Perfect prediction line
    min_val = min(np.min(y_true), np.min(y_pred))
    max_val = max(np.max(y_true), np.max(y_pred))
    ax.plot([min_val, max_val], [min_val, max_val], 'r--', linewidth=2, label='Perfect')

    metrics = calculate_metrics(y_true, y_pred)
    ax.set_xlabel('Actual total rentals')
    ax.set_ylabel('Predicted total rentals')
    ax.set_title(f"{title}\nR²={metrics['r2']:.4f}, RMSE={metrics['rmse']:.1f}",
                 fontsize=11, fontweight='bold')
    ax.legend(loc='upper left', fontsize=8)

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Actual vs Predicted plot saved to {save_path}")

    return fig


def plot_residuals(
    y_true: np.ndarray,
    y_pred: np.ndarray,
    figsize: Tuple[int, int] = (12, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Residuals vs fitted values and residual distribution.

    Args:
        y_true: Ground truth values
        y_pred: Predicted values
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    residuals = np.asarray(y_true) - np.asarray(y_pred)

    fig, axes = plt.subplots(1, 2, figsize=figsize)

    sns.regplot(x=y_pred, y=residuals, lowess=True, ax=axes[0],
                scatter_kws={'alpha': 0.5, 's': 15}, line_kws={'color': 'red'})
    axes[0].axhline(0, color='gray', linestyle='--')
    axes[0].set_xlabel('Fitted')
    axes[0].set_ylabel('Residual (Actual - Predicted)')
    axes[0].set_title('Residuals vs Fitted', fontweight='bold')

    sns.histplot(residuals, kde=True, ax=axes[1], bins=30, alpha=0.7)
    axes[1].axvline(0, color='red', linestyle='--', linewidth=2)
    axes[1].set_xlabel('Residual')
    axes[1].set_title(f'Residual Distribution (Std: {np.std(residuals):.1f})', fontweight='bold')

    plt.suptitle('Residual Analysis', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Residuals plot saved to {save_path}")

    return fig


def evaluate_models(
    recipes: Mapping[str, Recipe],
    train: pd.DataFrame,
    test: pd.DataFrame,
    folds: Folds,
    output_dir: str = "reports/",
    model_path: Optional[str] = None,
    show_plots: bool = False
) -> Dict[str, Any]:
    """
    Run recipe comparison, selection and the final fit, and write all reports.

    Args:
        recipes: Ordered mapping of recipes to compare
        train: Training partition
        test: Test partition
        folds: Cross-validation folds over train
        output_dir: Directory for output files
        model_path: Path to persist the final model (optional)
        show_plots: Whether to display plots interactively

    Returns:
        Dictionary containing comparison, selection, final fit and file paths
    """
    output_dir = Path(output_dir)
    figures_dir = output_dir / "figures"
    metrics_dir = output_dir / "metrics"

    figures_dir.mkdir(parents=True, exist_ok=True)
    metrics_dir.mkdir(parents=True, exist_ok=True)

    logger.info("=" * 60)
    logger.info("STARTING MODEL EVALUATION")
    logger.info("=" * 60)

    comparison, fold_metrics = compare_recipes(recipes, train, folds)
    best = select_best_recipe(comparison)
    final = final_fit(recipes[best], train, test, save_path=model_path)

    comparison_file = metrics_dir / "model_comparison.csv"
    comparison.to_csv(comparison_file, index=False)
    coefficients_file = metrics_dir / "coefficients.csv"
    final['coefficients'].to_csv(coefficients_file, index=False)

    metrics_file = metrics_dir / "evaluation_metrics.json"
    with open(metrics_file, 'w') as f:
        json.dump({
            'cross_validation': comparison.to_dict(orient='records'),
            'selected_recipe': best,
            'test': final['metrics'],
            'n_train': int(len(train)),
            'n_test': int(len(test)),
        }, f, indent=2)
    logger.info(f"Metrics saved to {metrics_file}")

    figures = []

    logger.info("Generating recipe comparison plot...")
    plot_recipe_comparison(
        comparison,
        save_path=str(figures_dir / "eval_recipe_comparison.png")
    )
    figures.append("eval_recipe_comparison.png")

    logger.info("Generating Actual vs Predicted plot...")
    plot_actual_vs_predicted(
        final['y_true'], final['y_pred'],
        title=f"Test set ({best})",
        save_path=str(figures_dir / "eval_actual_vs_predicted.png")
    )
    figures.append("eval_actual_vs_predicted.png")

    logger.info("Generating residual analysis...")
    plot_residuals(
        final['y_true'], final['y_pred'],
        save_path=str(figures_dir / "eval_residuals.png")
    )
    figures.append("eval_residuals.png")

    if show_plots:
        plt.show()
    else:
        plt.close('all')

    result = {
        'comparison': comparison,
        'fold_metrics': fold_metrics,
        'selected_recipe': best,
        'final': final,
        'figures': figures,
        'metrics_file': str(metrics_file),
        'comparison_file': str(comparison_file),
        'coefficients_file': str(coefficients_file),
    }

    logger.info("=" * 60)
    logger.info("EVALUATION COMPLETE")
    logger.info(f"  Selected recipe: {best}")
    logger.info(f"  Test RMSE: {final['metrics']['rmse']:.3f}")
    logger.info(f"  Test R²: {final['metrics']['r2']:.4f}")
    logger.info("=" * 60)

    return result


def print_comparison_report(comparison: pd.DataFrame, selected: Optional[str] = None) -> None:
    """
    Print the cross-validated recipe comparison table.

    Args:
        comparison: Table from compare_recipes
        selected: Name of the selected recipe, marked in the table
    """
    print("\n" + "=" * 70)
    print("RECIPE COMPARISON (10-fold cross-validation)")
    print("=" * 70)
    print(f"{'Recipe':<15} {'RMSE':<12} {'SE(RMSE)':<12} {'R²':<10} {'SE(R²)':<10}")
    print("-" * 70)

    for _, row in comparison.iterrows():
        marker = "  <- selected" if row['recipe'] == selected else ""
        print(f"{row['recipe']:<15} {row['mean_rmse']:<12.3f} {row['std_err_rmse']:<12.3f} "
              f"{row['mean_r2']:<10.4f} {row['std_err_r2']:<10.4f}{marker}")

    print("=" * 70 + "\n")


def print_coefficient_table(coefficients: pd.DataFrame, metrics: Optional[Dict[str, float]] = None) -> None:
    """
    Print the final model's coefficient table.

    Args:
        coefficients: Table from OlsModel.coefficient_table
        metrics: Test-set metrics to print above the table
    """
    print("\n" + "=" * 78)
    print("FINAL MODEL COEFFICIENTS")
    print("=" * 78)

    if metrics:
        print(f"Test RMSE: {metrics['rmse']:.3f} | Test R²: {metrics['r2']:.4f} "
              f"| n = {metrics['n_samples']}")
    baselines = ", ".join(f"{col}={level}" for col, level in BASELINE_LEVELS.items())
    print(f"Baseline levels: {baselines}")
    print("-" * 78)
    print(f"{'Term':<40} {'Estimate':>10} {'Std.Err':>9} {'t':>8} {'p':>9}")
    print("-" * 78)

    for _, row in coefficients.iterrows():
        print(f"{row['term']:<40} {row['estimate']:>10.2f} {row['std_error']:>9.2f} "
              f"{row['statistic']:>8.2f} {row['p_value']:>9.4f}")

    print("=" * 78 + "\n")
