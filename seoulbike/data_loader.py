"""
Data Loader Module
==================

Handles CSV ingestion, cleaning, and basic data quality checks.

Functions:
    - load_config: Load YAML configuration file
    - load_data: Load the raw hourly CSV with a fixed text encoding
    - clean_data: Rename columns, coerce categoricals, parse dates
    - validate_data: Check hour range, sign and hour uniqueness per date
    - print_data_summary: Console summary of a DataFrame
"""

import logging
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple

import pandas as pd
import numpy as np
import yaml

from .exceptions import ReadError, ParseError, SchemaError

logger = logging.getLogger(__name__)


# Raw header -> short stable identifier
COLUMN_MAP: Dict[str, str] = {
    "Date": "date",
    "Rented Bike Count": "rent_bike",
    "Hour": "hour",
    "Temperature(°C)": "temp",
    "Humidity(%)": "humidity",
    "Wind speed (m/s)": "wind_speed",
    "Visibility (10m)": "visibility",
    "Dew point temperature(°C)": "dew_point",
    "Solar Radiation (MJ/m2)": "solar_radiation",
    "Rainfall(mm)": "rainfall",
    "Snowfall (cm)": "snowfall",
    "Seasons": "season",
    "Holiday": "holiday",
    "Functioning Day": "functioning_day",
}

# First level is the baseline for dummy encoding
CATEGORY_LEVELS: Dict[str, List[str]] = {
    "season": ["Winter", "Spring", "Summer", "Autumn"],
    "holiday": ["No Holiday", "Holiday"],
    "functioning_day": ["No", "Yes"],
}

NUMERIC_COLUMNS: List[str] = [
    "rent_bike", "hour", "temp", "humidity", "wind_speed", "visibility",
    "dew_point", "solar_radiation", "rainfall", "snowfall",
]

NON_NEGATIVE_COLUMNS: List[str] = ["rent_bike", "rainfall", "snowfall"]

# Signs of a latin-1 file decoded as something else, or vice versa
_MOJIBAKE_MARKERS = ("\ufffd", "Â", "Ã")


def load_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to the configuration file

    Returns:
        Dictionary containing configuration parameters

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is malformed
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f)

    logger.info(f"Loaded configuration from {config_path}")
    return config or {}


def load_data(file_path: str, encoding: str = "latin-1") -> pd.DataFrame:
    """
    Load the raw hourly rental CSV.

    The header contains a degree sign, so the file must be read with the
    encoding it was written in.

    Args:
        file_path: Path to the CSV file
        encoding: Text encoding of the file

    Returns:
        DataFrame with columns typed as read

    Raises:
        ReadError: If the file is missing, undecodable, or the header is garbled
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise ReadError(f"Data file not found: {file_path}")

    try:
        df = pd.read_csv(file_path, encoding=encoding)
    except UnicodeDecodeError as e:
        raise ReadError(f"Cannot decode {file_path} as {encoding}: {e}") from e
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise ReadError(f"Cannot read {file_path}: {e}") from e

    garbled = [
        col for col in df.columns
        if any(marker in str(col) for marker in _MOJIBAKE_MARKERS)
    ]
    if garbled:
        raise ReadError(
            f"Garbled header in {file_path} (wrong encoding '{encoding}'?): {garbled}"
        )

    logger.info(f"Loaded data from {file_path}: {df.shape[0]} rows × {df.shape[1]} columns")
    return df


def _coerce_category(series: pd.Series, levels: List[str]) -> pd.Series:
    """Cast to a categorical with fixed levels, rejecting anything else."""
    bad = ~series.isin(levels)
    if bad.any():
        offending = sorted(series[bad].astype(str).unique().tolist())
        raise ParseError(
            f"Column '{series.name}' has {int(bad.sum())} values outside "
            f"{levels}: {offending}"
        )
    return series.astype(pd.CategoricalDtype(categories=levels))


def clean_data(df: pd.DataFrame, date_format: str = "%d/%m/%Y") -> pd.DataFrame:
    """
    Rename, retype and parse the raw hourly table.

    Steps, in order:
        1. Rename raw headers to short identifiers
        2. Coerce season, holiday and functioning_day to fixed-level categoricals
        3. Parse the day-month-year date column

    Args:
        df: Raw DataFrame from load_data
        date_format: strptime format of the date column

    Returns:
        Cleaned copy of the DataFrame

    Raises:
        SchemaError: If a raw column is absent or a numeric column is mis-typed
        ParseError: If a date or category value is malformed
    """
    missing = [col for col in COLUMN_MAP if col not in df.columns]
    if missing:
        raise SchemaError(f"Missing raw columns: {missing}")

    df = df.rename(columns=COLUMN_MAP)

    for col, levels in CATEGORY_LEVELS.items():
        df[col] = _coerce_category(df[col], levels)

    try:
        df["date"] = pd.to_datetime(df["date"], format=date_format)
    except (ValueError, TypeError) as e:
        raise ParseError(f"Date column does not match '{date_format}': {e}") from e

    # blank cells parse to NaT without raising
    blank = np.flatnonzero(df["date"].isna().to_numpy())
    if len(blank) > 0:
        raise ParseError(f"Date column has blank entries at rows: {blank.tolist()}")

    mistyped = [
        col for col in NUMERIC_COLUMNS
        if not pd.api.types.is_numeric_dtype(df[col])
    ]
    if mistyped:
        raise SchemaError(f"Non-numeric columns after renaming: {mistyped}")

    logger.info(f"Cleaned data: {len(df)} rows, columns {list(df.columns)}")
    return df


def validate_data(df: pd.DataFrame, strict: bool = True) -> Tuple[bool, Dict[str, Any]]:
    """
    Check the hourly table for readings that cannot come from one
    station-day log.

    Checks:
        - hour lies in 0..23
        - rentals and precipitation are non-negative
        - each (date, hour) appears once, so no date has more than 24 rows

    Args:
        df: Cleaned hourly DataFrame
        strict: If True, raise ValueError when any check fails

    Returns:
        Tuple of (is_valid, validation_report)
    """
    report = {
        "total_rows": len(df),
        "n_dates": int(df["date"].nunique()),
        "issues": []
    }

    bad_hours = ~df["hour"].between(0, 23)
    if bad_hours.any():
        issue = f"Hours outside 0..23: {sorted(df.loc[bad_hours, 'hour'].unique().tolist())}"
        report["issues"].append(issue)
        logger.warning(issue)

    for col in NON_NEGATIVE_COLUMNS:
        n_negative = int((df[col] < 0).sum())
        if n_negative > 0:
            issue = f"Column '{col}' has {n_negative} negative values"
            report["issues"].append(issue)
            logger.warning(issue)

    repeated = df.duplicated(subset=["date", "hour"], keep=False)
    if repeated.any():
        dates = df.loc[repeated, "date"].dt.strftime("%Y-%m-%d").unique().tolist()
        issue = f"Repeated hours on dates: {dates}"
        report["issues"].append(issue)
        report["repeated_dates"] = dates
        logger.warning(issue)

    is_valid = len(report["issues"]) == 0
    report["is_valid"] = is_valid

    if strict and not is_valid:
        raise ValueError(f"Data validation failed: {report['issues']}")

    return is_valid, report


def print_data_summary(df: pd.DataFrame, title: Optional[str] = "DATASET SUMMARY") -> None:
    """
    Print a formatted summary of the dataset to console.

    Args:
        df: DataFrame to summarize
        title: Banner title
    """
    print("\n" + "=" * 60)
    print(title)
    print("=" * 60)
    print(f"Shape: {df.shape[0]} rows × {df.shape[1]} columns")
    print(f"Memory Usage: {df.memory_usage(deep=True).sum() / 1024:.2f} KB")
    print("\nColumn Information:")
    print("-" * 40)

    for col in df.columns:
        dtype = df[col].dtype
        non_null = df[col].count()
        null_pct = (1 - non_null / len(df)) * 100 if len(df) else 0.0
        print(f"  {col}: {dtype} | {non_null} non-null ({null_pct:.1f}% missing)")

    print("\nBasic Statistics:")
    print("-" * 40)
    print(df.describe().round(4).to_string())
    print("=" * 60 + "\n")
