"""
===========================================================
series.py
Author: Veronica Scerra
Last Updated: 2026-10-19
===========================================================

Description:
    Collapse the county rows of one region into a single daily
    series: per-date sums of cumulative cases and deaths plus the
    regional population, indexed by calendar date.

Example Usage:
    from covidtrends.series import aggregate_region, build_series
    totals = aggregate_region(cases_table, deaths_table)
    series = build_series(totals)

Notes:
    - Sums are int64; state totals reach the millions.
    - Date labels are month-first ("3/1/21" is March 1st, 2021).
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, Tuple
import numpy as np
import pandas as pd

from covidtrends.errors import ColumnMismatchError, DateParseError
from dataio.jhu import CountyTable

logger = logging.getLogger(__name__)

SERIES_COLUMNS = ["cases", "deaths", "population"]


@dataclass(frozen=True)
class RegionalTotals:
    """
    Per-date regional sums, before the dates are parsed.

    `cases` and `deaths` are read-only int64 arrays aligned with `date_labels`.
    """
    region: Optional[str]
    date_labels: Tuple[str, ...]
    cases: np.ndarray
    deaths: np.ndarray
    population: int
    n_subdivisions: int

    def __len__(self) -> int:
        return len(self.date_labels)


def parse_date_labels(labels: Sequence[str], date_format: str = "%m/%d/%y") -> List[datetime]:
    """Parse header labels month-first; the first bad label raises DateParseError"""
    parsed = []
    for label in labels:
        try:
            parsed.append(datetime.strptime(str(label).strip(), date_format))
        except ValueError as e:
            raise DateParseError(str(label), date_format) from e
    return parsed


def aggregate_region(
    cases: CountyTable,
    deaths: CountyTable,
    date_format: str = "%m/%d/%y",
) -> RegionalTotals:
    """
    Sum the filtered county rows of each table, one total per date.

    Each table is sliced from its own first date column, so the deaths
    table's extra population column does not shift the dates.

    Raises
    ------
    ColumnMismatchError
        The two tables do not cover the same ordered dates.
    """
    if cases.region and deaths.region and cases.region != deaths.region:
        raise ValueError(f"Tables filtered to different regions: {cases.region!r} vs {deaths.region!r}")
    if deaths.population_col is None:
        raise ValueError("Deaths table carries no population column")

    case_labels, death_labels = cases.date_columns, deaths.date_columns
    if len(case_labels) != len(death_labels):
        raise ColumnMismatchError(
            f"Cases table has {len(case_labels)} date columns, deaths table has {len(death_labels)}"
        )
    case_dates = parse_date_labels(case_labels, date_format)
    death_dates = parse_date_labels(death_labels, date_format)
    for i, (c, d) in enumerate(zip(case_dates, death_dates)):
        if c != d:
            raise ColumnMismatchError(
                f"Date column {i} differs: cases {case_labels[i]!r} vs deaths {death_labels[i]!r}"
            )

    case_totals = cases.date_values.to_numpy(dtype=np.int64).sum(axis=0, dtype=np.int64)
    death_totals = deaths.date_values.to_numpy(dtype=np.int64).sum(axis=0, dtype=np.int64)
    population = int(deaths.frame[deaths.population_col].to_numpy(dtype=np.int64).sum(dtype=np.int64))
    case_totals.setflags(write=False)
    death_totals.setflags(write=False)

    region = cases.region or deaths.region
    logger.info(
        "Aggregated %d subdivisions of %s over %d dates (population %s)",
        len(cases), region, len(case_labels), f"{population:,}",
    )
    return RegionalTotals(
        region=region,
        date_labels=tuple(case_labels),
        cases=case_totals,
        deaths=death_totals,
        population=population,
        n_subdivisions=len(cases),
    )


def build_series(totals: RegionalTotals, date_format: str = "%m/%d/%y") -> pd.DataFrame:
    """
    Turn regional totals into a date-indexed series.

    Return columns (int64), index 'date' (datetime64[ns], unique, ascending):
        cases        # cumulative cases
        deaths       # cumulative deaths
        population   # constant
    """
    dates = parse_date_labels(totals.date_labels, date_format)
    index = pd.DatetimeIndex(dates, name="date")
    if index.has_duplicates:
        first_dup = int(np.argmax(index.duplicated()))
        raise DateParseError(totals.date_labels[first_dup], date_format, reason="duplicate date label")

    series = pd.DataFrame(
        {
            "cases": np.array(totals.cases, dtype=np.int64),
            "deaths": np.array(totals.deaths, dtype=np.int64),
            "population": np.full(len(dates), totals.population, dtype=np.int64),
        },
        index=index,
    ).sort_index()
    series.attrs["region"] = totals.region
    return series


def find_downward_corrections(series: pd.DataFrame, column: str = "cases") -> pd.Series:
    """
    Dates where a cumulative column went down, with the (negative) change.

    An empty result means the column is non-decreasing.
    """
    delta = series[column].diff()
    drops = delta[delta < 0].astype(np.int64)
    drops.name = f"{column}_correction"
    return drops
