"""
===========================================================
plotting.py
Author: Veronica Scerra
Last Updated: 2026-10-19
===========================================================
Charts for the regional report: cumulative trends, daily new
counts, deaths against cases with the fitted line, and the
distribution of daily new cases.

Every function draws on `ax` (or a new figure), optionally saves
the figure, and returns the Axes.
"""
from __future__ import annotations
import logging
from pathlib import Path
from typing import Optional, Union
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from matplotlib.axes import Axes

from covidtrends.regression import RegressionResult

logger = logging.getLogger(__name__)

sns.set_style("whitegrid")

PathLike = Union[str, Path]


def _as_float(values: pd.Series) -> np.ndarray:
    """Nullable column -> float array with NaN gaps (matplotlib skips them)"""
    return values.astype("Float64").to_numpy(dtype=float, na_value=np.nan)


def _finish(ax: Axes, show: bool, save_path: Optional[PathLike]) -> Axes:
    ax.figure.tight_layout()
    if save_path:
        ax.figure.savefig(save_path, dpi=150, bbox_inches="tight")
        logger.info("Figure saved to %s", save_path)
    if show:
        plt.show()
    return ax


def _region_title(df: pd.DataFrame, text: str) -> str:
    region = df.attrs.get("region")
    return f"{region}: {text}" if region else text


def plot_cumulative_trends(derived: pd.DataFrame,
                           ax: Optional[Axes] = None,
                           show: bool = False,
                           save_path: Optional[PathLike] = None,
                           title: Optional[str] = None) -> Axes:
    """
    Cumulative cases and deaths with their rolling means.

    Deaths go on a secondary y-axis; they are ~2 orders of magnitude
    smaller than cases.
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(10, 5))

    dates = derived.index
    ax.plot(dates, derived["cases"], color="tab:blue", lw=1, alpha=0.5, label="Cumulative cases")
    ax.plot(dates, _as_float(derived["cases_7d"]), color="tab:blue", lw=2, label="Cases (7-day avg)")
    ax.set_ylabel("Cumulative cases")

    ax2 = ax.twinx()
    ax2.plot(dates, derived["deaths"], color="tab:red", lw=1, alpha=0.5, label="Cumulative deaths")
    ax2.plot(dates, _as_float(derived["deaths_7d"]), color="tab:red", lw=2, label="Deaths (7-day avg)")
    ax2.set_ylabel("Cumulative deaths")
    ax2.grid(False)

    lines = list(ax.get_lines()) + list(ax2.get_lines())
    ax.legend(lines, [l.get_label() for l in lines], loc="upper left")
    ax.set_title(title or _region_title(derived, "cumulative cases and deaths"))
    return _finish(ax, show, save_path)


def plot_daily_new(derived: pd.DataFrame,
                   column: str = "cases",
                   ax: Optional[Axes] = None,
                   show: bool = False,
                   save_path: Optional[PathLike] = None,
                   title: Optional[str] = None) -> Axes:
    """Daily new counts as bars with the rolling mean on top"""
    if ax is None:
        fig, ax = plt.subplots(figsize=(10, 5))

    color = "tab:red" if column == "deaths" else "tab:blue"
    ax.bar(derived.index, _as_float(derived[f"new_{column}"]), width=1.0, color=color, alpha=0.3,
           label=f"Daily new {column}")
    ax.plot(derived.index, _as_float(derived[f"new_{column}_7d"]), color=color, lw=2, label="7-day average")
    ax.axhline(0, color="gray", lw=0.8)
    ax.set_ylabel(f"New {column} per day")
    ax.legend(loc="upper left")
    ax.set_title(title or _region_title(derived, f"daily new {column}"))
    return _finish(ax, show, save_path)


def plot_deaths_vs_cases(series: pd.DataFrame,
                         fit: Optional[RegressionResult] = None,
                         ax: Optional[Axes] = None,
                         show: bool = False,
                         save_path: Optional[PathLike] = None,
                         title: Optional[str] = None) -> Axes:
    """Scatter of cumulative deaths against cumulative cases, plus the OLS line"""
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 6))

    cases = series["cases"].to_numpy(dtype=float)
    ax.scatter(cases, series["deaths"].to_numpy(dtype=float), s=8, alpha=0.6, label="Observed (daily)")
    if fit is not None:
        grid = np.linspace(cases.min(), cases.max(), 200)
        ax.plot(grid, fit.predict(grid), color="black", lw=2, linestyle="--",
                label=f"OLS: {fit.intercept:,.1f} + {fit.slope:.4f} x cases ($R^2$={fit.r_squared:.3f})")
    ax.set_xlabel("Cumulative cases")
    ax.set_ylabel("Cumulative deaths")
    ax.legend(loc="upper left")
    ax.set_title(title or _region_title(series, "deaths vs. cases"))
    return _finish(ax, show, save_path)


def plot_daily_histogram(derived: pd.DataFrame,
                         column: str = "new_cases",
                         bins: int = 40,
                         ax: Optional[Axes] = None,
                         show: bool = False,
                         save_path: Optional[PathLike] = None,
                         title: Optional[str] = None) -> Axes:
    """Distribution of a daily column (missing days left out)"""
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 5))

    values = _as_float(derived[column])
    values = values[~np.isnan(values)]
    sns.histplot(values, bins=bins, ax=ax)
    ax.set_xlabel(column.replace("_", " "))
    ax.set_ylabel("Days")
    ax.set_title(title or _region_title(derived, f"distribution of {column.replace('_', ' ')}"))
    return _finish(ax, show, save_path)
