"""
===========================================================
metrics.py
Author: Veronica Scerra
Last Updated: 2026-10-19
===========================================================

Description:
    Derived quantities over a regional series: trailing rolling
    means, day-over-day differences and the case-fatality ratio.

    Defines:
        - rolling_average(): trailing mean, NA until the window fills
        - daily_difference(): values[i] - values[i-1], NA at day 0
        - case_fatality_ratio(): deaths / cases, NA where cases == 0
        - derive_metrics(): all of the above as new columns

Example Usage:
    from covidtrends.metrics import derive_metrics
    derived = derive_metrics(series, window=7)
    derived[["new_cases", "new_cases_7d", "cfr"]].tail()

Notes:
    - "No value" is pd.NA in nullable Int64/Float64 columns, never
      NaN or a numeric sentinel.
    - Negative daily differences (downward data corrections) are
      kept unless clip_negative=True.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import numpy as np
import pandas as pd


def _masked_float(values: np.ndarray, index: pd.Index, name=None) -> pd.Series:
    """Float64 series with NA wherever `values` is NaN"""
    mask = np.isnan(values)
    data = np.where(mask, 0.0, values)
    return pd.Series(pd.arrays.FloatingArray(data, mask), index=index, name=name)


def rolling_average(values: pd.Series, window: int = 7) -> pd.Series:
    """
    Trailing (right-aligned) rolling mean.

    Position i holds the mean of positions i-window+1..i and is NA unless
    all of those are defined. Series length is preserved.
    """
    if window < 1:
        raise ValueError("window must be >= 1")
    as_float = values.astype("Float64").to_numpy(dtype=float, na_value=np.nan)
    means = pd.Series(as_float).rolling(window, min_periods=window).mean().to_numpy()
    return _masked_float(means, values.index, name=values.name)


def daily_difference(values: pd.Series, clip_negative: bool = False) -> pd.Series:
    """Day-over-day change of a cumulative series (Int64, NA at position 0)"""
    data = values.to_numpy(dtype=np.int64)
    diffs = np.zeros(len(data), dtype=np.int64)
    diffs[1:] = np.diff(data)
    if clip_negative:
        diffs = np.clip(diffs, 0, None)
    mask = np.zeros(len(data), dtype=bool)
    mask[:1] = True
    return pd.Series(pd.arrays.IntegerArray(diffs, mask), index=values.index, name=values.name)


def case_fatality_ratio(cases: pd.Series, deaths: pd.Series) -> pd.Series:
    """deaths / cases per day; NA (not inf, not NaN) where cases is zero"""
    c = cases.to_numpy(dtype=float)
    d = deaths.to_numpy(dtype=float)
    ratio = np.full(len(c), np.nan)
    np.divide(d, c, out=ratio, where=c != 0)
    return _masked_float(ratio, cases.index, name="cfr")


def derive_metrics(series: pd.DataFrame, window: int = 7, clip_negative: bool = False) -> pd.DataFrame:
    """
    Extend a regional series with derived columns.

    Added columns:
        cases_7d, deaths_7d          # rolling mean of cumulative values
        new_cases, new_deaths        # daily differences
        new_cases_7d, new_deaths_7d  # rolling mean of the daily differences
        cfr                          # cumulative deaths / cumulative cases

    Column names keep the `_7d` suffix whatever the window.
    """
    derived = series.copy()
    for col in ("cases", "deaths"):
        derived[f"{col}_7d"] = rolling_average(series[col], window)
        derived[f"new_{col}"] = daily_difference(series[col], clip_negative=clip_negative)
        derived[f"new_{col}_7d"] = rolling_average(derived[f"new_{col}"], window)
    derived["cfr"] = case_fatality_ratio(series["cases"], series["deaths"])
    derived.attrs = dict(series.attrs)
    return derived
