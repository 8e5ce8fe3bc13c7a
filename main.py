#!/usr/bin/env python3
"""
Seoul Bike Rental Analysis - Main Pipeline
==========================================

Orchestrates the analysis of daily bike-rental demand.

Phases:
    1. Load & clean - Read the hourly CSV, rename, retype, parse dates
    2. Aggregate - Reduce operating hours to daily rows
    3. EDA - Exploration tables, descriptive plots, correlation matrix
    4. Split - Season-stratified train/test split and CV folds
    5. Compare - Cross-validate three OLS recipes, refit the best, report

Usage:
    # Run complete pipeline
    python main.py --data data/raw/SeoulBikeData.csv

    # Run specific phase
    python main.py --data data/raw/SeoulBikeData.csv --phase eda

    # Run with custom config
    python main.py --config config/config.yaml
"""

import argparse
import logging
import sys
from pathlib import Path
from datetime import datetime
from typing import Dict, Any, Optional, Tuple

import pandas as pd

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from seoulbike.data_loader import load_config, load_data, clean_data, validate_data, print_data_summary
from seoulbike.aggregation import aggregate_daily, print_aggregation_summary
from seoulbike.eda import generate_eda_report, print_exploration_report, print_correlation_insights
from seoulbike.splitting import stratified_split, make_folds, print_split_summary, DEFAULT_SEED
from seoulbike.recipes import build_recipes
from seoulbike.evaluation import evaluate_models, print_comparison_report, print_coefficient_table
from seoulbike.model import print_model_summary


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the pipeline."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(f'pipeline_{datetime.now().strftime("%Y%m%d_%H%M%S")}.log')
        ]
    )


def prepare_data(
    data_path: str,
    config: Dict[str, Any]
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Load, clean and aggregate the raw data.

    Args:
        data_path: Path to the hourly CSV file
        config: Configuration dictionary

    Returns:
        Tuple of (cleaned hourly DataFrame, daily DataFrame)
    """
    data_config = config.get('data', {})

    print("\n📊 Loading data...")
    raw = load_data(data_path, encoding=data_config.get('encoding', 'latin-1'))
    hourly = clean_data(raw, date_format=data_config.get('date_format', '%d/%m/%Y'))
    print_data_summary(hourly, title="HOURLY DATA SUMMARY")

    is_valid, _ = validate_data(hourly, strict=False)
    if not is_valid:
        print("⚠️  Data validation warnings detected. Proceeding anyway...")

    daily = aggregate_daily(hourly)
    print_aggregation_summary(hourly, daily)

    return hourly, daily


def run_eda(
    hourly: pd.DataFrame,
    daily: pd.DataFrame,
    config: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Execute the exploratory analysis phase.

    Args:
        hourly: Cleaned hourly data
        daily: Aggregated daily data
        config: Configuration dictionary

    Returns:
        EDA report dictionary
    """
    print("\n" + "=" * 70)
    print("PHASE: EXPLORATORY DATA ANALYSIS")
    print("=" * 70)

    output_dir = config.get('output', {}).get('figures_path', 'reports/figures/')

    print_exploration_report(hourly)
    report = generate_eda_report(hourly, daily, output_dir=output_dir, show_plots=False)

    corr_df = pd.DataFrame(report["correlation_matrix"])
    print_correlation_insights(corr_df)

    print(f"\n✓ EDA complete. {len(report['figures'])} figures saved to {output_dir}")

    return report


def run_split(daily: pd.DataFrame, config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Execute the splitting phase.

    Args:
        daily: Aggregated daily data
        config: Configuration dictionary

    Returns:
        Dictionary with train, test and folds
    """
    print("\n" + "=" * 70)
    print("PHASE: TRAIN/TEST SPLIT")
    print("=" * 70)

    split_config = config.get('split', {})
    seed = split_config.get('random_state', DEFAULT_SEED)
    strata = split_config.get('strata', 'season')

    train, test = stratified_split(
        daily,
        strata=strata,
        prop=split_config.get('train_prop', 0.75),
        seed=seed
    )
    folds = make_folds(train, n_folds=split_config.get('n_folds', 10), seed=seed)

    print_split_summary(train, test, strata=strata)

    return {'train': train, 'test': test, 'folds': folds, 'seed': seed}


def run_comparison(split: Dict[str, Any], config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Execute the model comparison phase.

    Args:
        split: Result of run_split
        config: Configuration dictionary

    Returns:
        Evaluation result dictionary
    """
    print("\n" + "=" * 70)
    print("PHASE: RECIPE COMPARISON & FINAL FIT")
    print("=" * 70)

    output_config = config.get('output', {})

    result = evaluate_models(
        build_recipes(),
        split['train'],
        split['test'],
        split['folds'],
        output_dir=output_config.get('reports_path', 'reports/'),
        model_path=output_config.get('model_path'),
        show_plots=False
    )

    print_comparison_report(result['comparison'], selected=result['selected_recipe'])
    print_model_summary(result['final']['model'])
    print_coefficient_table(result['final']['coefficients'], metrics=result['final']['metrics'])

    return result


def _resolve_data_path(data_path: Optional[str], config: Dict[str, Any]) -> str:
    path = data_path or config.get('data', {}).get('raw_path')
    if not path:
        raise ValueError("No data path given on the command line or in the config")
    return path


def run_full_pipeline(
    data_path: Optional[str] = None,
    config_path: str = "config/config.yaml",
    verbose: bool = False
) -> Dict[str, Any]:
    """
    Execute the complete pipeline.

    Args:
        data_path: Path to input CSV file (defaults to the config's data.raw_path)
        config_path: Path to configuration file
        verbose: Log at DEBUG level regardless of config

    Returns:
        Dictionary containing all phase results
    """
    print("\n" + "=" * 70)
    print("SEOUL BIKE RENTAL ANALYSIS PIPELINE")
    print(f"Started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 70)

    config = load_config(config_path)
    setup_logging('DEBUG' if verbose else config.get('logging', {}).get('level', 'INFO'))

    data_path = _resolve_data_path(data_path, config)
    hourly, daily = prepare_data(data_path, config)

    results = {
        'config': config,
        'hourly_shape': hourly.shape,
        'daily': daily,
    }

    results['eda'] = run_eda(hourly, daily, config)
    results['split'] = run_split(daily, config)
    results['evaluation'] = run_comparison(results['split'], config)

    final = results['evaluation']['final']
    print("\n" + "=" * 70)
    print("PIPELINE COMPLETE")
    print("=" * 70)
    print(f"  • Input data: {hourly.shape[0]} hourly rows → {len(daily)} operating days")
    print(f"  • Selected recipe: {results['evaluation']['selected_recipe']}")
    print(f"  • Test RMSE: {final['metrics']['rmse']:.3f}")
    print(f"  • Test R²: {final['metrics']['r2']:.4f}")
    print(f"  • Coefficients: {results['evaluation']['coefficients_file']}")
    print(f"Completed at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 70 + "\n")

    return results


def run_single_phase(
    phase: str,
    data_path: Optional[str] = None,
    config_path: str = "config/config.yaml",
    verbose: bool = False
) -> Dict[str, Any]:
    """
    Execute a single phase of the pipeline.

    Args:
        phase: Phase to run ('eda', 'aggregate', 'compare')
        data_path: Path to input CSV file
        config_path: Path to configuration file
        verbose: Log at DEBUG level regardless of config

    Returns:
        Phase result dictionary
    """
    if phase not in ('eda', 'aggregate', 'compare'):
        raise ValueError(f"Unknown phase: {phase}. Choose from: eda, aggregate, compare")

    config = load_config(config_path)
    setup_logging('DEBUG' if verbose else config.get('logging', {}).get('level', 'INFO'))

    hourly, daily = prepare_data(_resolve_data_path(data_path, config), config)

    if phase == 'aggregate':
        return {'hourly': hourly, 'daily': daily}

    elif phase == 'eda':
        return run_eda(hourly, daily, config)

    return run_comparison(run_split(daily, config), config)


def main(argv=None):
    """Main entry point with argument parsing."""
    parser = argparse.ArgumentParser(
        description="Seoul bike rental demand analysis",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --data data/raw/SeoulBikeData.csv
  python main.py --data data/raw/SeoulBikeData.csv --phase eda
  python main.py --config config/custom.yaml
        """
    )

    parser.add_argument(
        '--data', '-d',
        type=str,
        default=None,
        help='Path to the input CSV file (default: data.raw_path from config)'
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        default='config/config.yaml',
        help='Path to configuration file (default: config/config.yaml)'
    )

    parser.add_argument(
        '--phase', '-p',
        type=str,
        choices=['eda', 'aggregate', 'compare', 'all'],
        default='all',
        help='Phase to run (default: all)'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose output'
    )

    args = parser.parse_args(argv)

    if not Path(args.config).exists():
        print(f"Error: Config file not found: {args.config}")
        return 1

    try:
        if args.phase == 'all':
            run_full_pipeline(args.data, args.config, verbose=args.verbose)
        else:
            run_single_phase(args.phase, args.data, args.config, verbose=args.verbose)

        return 0

    except Exception as e:
        logging.error(f"Pipeline failed: {e}", exc_info=True)
        print(f"\n❌ Pipeline failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
