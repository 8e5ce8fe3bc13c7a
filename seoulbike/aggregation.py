"""
Daily Aggregation Module
========================

Reduces the cleaned hourly table to one row per operating day.

Functions:
    - aggregate_daily: Filter non-functioning hours and summarise each day
    - print_aggregation_summary: Console summary of the reduction
"""

import logging
from typing import Dict, List, Tuple

import pandas as pd

from .exceptions import SchemaError

logger = logging.getLogger(__name__)

GROUP_KEYS: List[str] = ["date", "season", "holiday"]

# output column -> (hourly column, reduction)
DAILY_AGGREGATIONS: Dict[str, Tuple[str, str]] = {
    "total_rent_bike": ("rent_bike", "sum"),
    "total_rain": ("rainfall", "sum"),
    "total_snow": ("snowfall", "sum"),
    "mean_temp": ("temp", "mean"),
    "mean_humidity": ("humidity", "mean"),
    "mean_wind_speed": ("wind_speed", "mean"),
    "mean_visibility": ("visibility", "mean"),
    "mean_dew_point": ("dew_point", "mean"),
    "mean_solar_radiation": ("solar_radiation", "mean"),
}


def aggregate_daily(df: pd.DataFrame) -> pd.DataFrame:
    """
    Aggregate hourly observations to daily rows.

    Hours with functioning_day other than "Yes" are dropped first, so a date
    without any operating hour does not appear in the output at all.

    Args:
        df: Cleaned hourly DataFrame

    Returns:
        DataFrame with one row per date, sorted by date

    Raises:
        SchemaError: If required columns are missing or a date maps to
            more than one season/holiday combination
    """
    required = GROUP_KEYS + ["functioning_day"] + [src for src, _ in DAILY_AGGREGATIONS.values()]
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise SchemaError(f"Cannot aggregate, missing columns: {missing}")

    operating = df[df["functioning_day"] == "Yes"]
    dropped = len(df) - len(operating)
    logger.info(f"Dropped {dropped} non-functioning hours, {len(operating)} remain")

    # observed=True keeps unseen category combinations from becoming empty rows
    daily = (
        operating
        .groupby(GROUP_KEYS, observed=True, sort=True)
        .agg(**DAILY_AGGREGATIONS)
        .reset_index()
        .sort_values("date", kind="mergesort")
        .reset_index(drop=True)
    )

    duplicated = daily["date"].duplicated(keep=False)
    if duplicated.any():
        dates = sorted(daily.loc[duplicated, "date"].dt.strftime("%Y-%m-%d").unique())
        raise SchemaError(f"Dates with conflicting season/holiday values: {dates}")

    logger.info(f"Aggregated {len(operating)} hourly rows into {len(daily)} daily rows")
    return daily


def print_aggregation_summary(hourly: pd.DataFrame, daily: pd.DataFrame) -> None:
    """
    Print a summary of the hourly-to-daily reduction.

    Args:
        hourly: Cleaned hourly DataFrame
        daily: Output of aggregate_daily
    """
    n_days = hourly["date"].nunique()
    operating_total = hourly.loc[hourly["functioning_day"] == "Yes", "rent_bike"].sum()

    print("\n" + "=" * 50)
    print("AGGREGATION SUMMARY")
    print("=" * 50)
    print(f"Hourly rows: {len(hourly)}")
    print(f"Distinct dates: {n_days}")
    print(f"Operating days kept: {len(daily)}")
    print(f"Non-operating days dropped: {n_days - len(daily)}")
    print(f"Rentals on operating hours: {operating_total}")
    print(f"Rentals after aggregation: {daily['total_rent_bike'].sum()}")
    print("=" * 50 + "\n")
