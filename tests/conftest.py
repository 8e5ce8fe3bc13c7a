"""
Shared fixtures: synthetic hourly (raw-format) and daily rental data.
"""

import sys
from pathlib import Path

import matplotlib
matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from seoulbike.data_loader import CATEGORY_LEVELS

SEASONS = CATEGORY_LEVELS["season"]


def season_for(day_index: int, days_per_season: int) -> str:
    return SEASONS[(day_index // days_per_season) % len(SEASONS)]


def make_raw_rows(rows):
    """
    Build a raw-header DataFrame from short-keyed dicts.

    Unspecified weather fields get fixed defaults.
    """
    records = []
    for row in rows:
        records.append({
            "Date": row["date"],
            "Rented Bike Count": row.get("rent", 100),
            "Hour": row.get("hour", 0),
            "Temperature(°C)": row.get("temp", 10.0),
            "Humidity(%)": row.get("humidity", 50),
            "Wind speed (m/s)": row.get("wind_speed", 1.5),
            "Visibility (10m)": row.get("visibility", 2000),
            "Dew point temperature(°C)": row.get("dew_point", 0.0),
            "Solar Radiation (MJ/m2)": row.get("solar_radiation", 0.5),
            "Rainfall(mm)": row.get("rain", 0.0),
            "Snowfall (cm)": row.get("snow", 0.0),
            "Seasons": row.get("season", "Winter"),
            "Holiday": row.get("holiday", "No Holiday"),
            "Functioning Day": row.get("functioning", "Yes"),
        })
    return pd.DataFrame(records)


@pytest.fixture
def raw_rows():
    """Factory fixture: list of short-keyed dicts -> raw DataFrame."""
    return make_raw_rows


@pytest.fixture
def hourly_raw():
    """
    240 days x 4 hours of raw-format data.

    Seasons change every 60 days, every 5th day is a holiday, day 12 is
    entirely non-functioning and hour 3 of day 20 is non-functioning.
    """
    rng = np.random.default_rng(7)
    n_days, hours = 240, [6, 12, 18, 22]
    start = pd.Timestamp("2018-01-01")

    rows = []
    for d in range(n_days):
        date = start + pd.Timedelta(days=d)
        season = season_for(d, 60)
        base_temp = {"Winter": -2, "Spring": 12, "Summer": 26, "Autumn": 14}[season]
        for h_idx, hour in enumerate(hours):
            temp = base_temp + rng.normal(0, 4)
            rain = float(rng.exponential(1.0)) if rng.random() < 0.2 else 0.0
            snow = float(rng.exponential(0.5)) if season == "Winter" and rng.random() < 0.3 else 0.0
            functioning = "No" if d == 12 or (d == 20 and h_idx == 3) else "Yes"
            rent = max(0, int(300 + 25 * temp - 80 * rain + rng.normal(0, 60)))
            rows.append({
                "date": date.strftime("%d/%m/%Y"),
                "hour": hour,
                "rent": rent if functioning == "Yes" else 0,
                "temp": round(temp, 1),
                "humidity": int(rng.integers(20, 95)),
                "wind_speed": round(float(rng.gamma(2.0, 0.8)), 1),
                "visibility": int(rng.integers(300, 2001)),
                "dew_point": round(temp - rng.uniform(2, 12), 1),
                "solar_radiation": round(max(0.0, float(rng.normal(1.0, 0.6))), 2),
                "rain": round(rain, 1),
                "snow": round(snow, 1),
                "season": season,
                "holiday": "Holiday" if d % 5 == 0 else "No Holiday",
                "functioning": functioning,
            })
    return make_raw_rows(rows)


@pytest.fixture
def daily_data():
    """
    240 synthetic daily rows in the aggregated schema.

    The outcome depends linearly on the weather, on weekends and on
    holidays, plus a quadratic temperature effect.
    """
    rng = np.random.default_rng(42)
    n = 240
    dates = pd.date_range("2018-01-01", periods=n, freq="D")
    season = [season_for(i, 60) for i in range(n)]
    holiday = ["Holiday" if i % 5 == 0 else "No Holiday" for i in range(n)]

    mean_temp = rng.normal(12, 9, n)
    total_rain = np.where(rng.random(n) < 0.3, rng.exponential(4, n), 0.0)
    total_snow = np.where(rng.random(n) < 0.2, rng.exponential(2, n), 0.0)
    mean_humidity = rng.uniform(25, 90, n)
    mean_wind_speed = rng.gamma(2.0, 0.8, n)
    mean_visibility = rng.uniform(300, 2000, n)
    mean_dew_point = mean_temp - rng.uniform(2, 12, n)
    mean_solar_radiation = np.clip(rng.normal(0.7, 0.35, n), 0, None)
    weekend = dates.dayofweek >= 5

    total_rent_bike = (
        9000
        + 700 * mean_temp
        - 18 * (mean_temp - 15) ** 2
        - 350 * total_rain
        - 200 * total_snow
        - 30 * mean_humidity
        + 1.2 * mean_visibility
        + 1500 * mean_solar_radiation
        - 1200 * np.array([h == "Holiday" for h in holiday])
        - 800 * weekend
        + rng.normal(0, 900, n)
    )

    return pd.DataFrame({
        "date": dates,
        "season": pd.Categorical(season, categories=CATEGORY_LEVELS["season"]),
        "holiday": pd.Categorical(holiday, categories=CATEGORY_LEVELS["holiday"]),
        "total_rent_bike": np.round(total_rent_bike),
        "total_rain": total_rain,
        "total_snow": total_snow,
        "mean_temp": mean_temp,
        "mean_humidity": mean_humidity,
        "mean_wind_speed": mean_wind_speed,
        "mean_visibility": mean_visibility,
        "mean_dew_point": mean_dew_point,
        "mean_solar_radiation": mean_solar_radiation,
    })
