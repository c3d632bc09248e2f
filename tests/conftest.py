"""
Pytest configuration and fixtures for the regional report tests.

Fixture tables mirror the JHU CSSE US layout: 11 metadata columns in the
cases table, 12 (with Population) in the deaths table, then one column per
date.
"""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from covidtrends.series import RegionalTotals


CASES_META = [
    "UID", "iso2", "iso3", "code3", "FIPS", "Admin2", "Province_State",
    "Country_Region", "Lat", "Long_", "Combined_Key",
]
DEATHS_META = CASES_META + ["Population"]

DATES = [f"1/{day}/20" for day in range(22, 32)]

# (FIPS, Admin2, Province_State, Lat, Long_, Population, cumulative cases, cumulative deaths)
COUNTIES = [
    (53033, "King", "Washington", 47.49, -121.83, 2252782,
     [0, 1, 1, 2, 4, 6, 9, 12, 15, 20], [0, 0, 0, 0, 1, 1, 1, 2, 2, 3]),
    (53061, "Snohomish", "Washington", 48.05, -121.72, 822083,
     [0, 0, 1, 1, 2, 3, 5, 7, 10, 12], [0, 0, 0, 0, 0, 0, 1, 1, 1, 1]),
    (41051, "Multnomah", "Oregon", 45.55, -122.42, 812855,
     [0, 0, 0, 0, 1, 1, 2, 2, 3, 3], [0] * 10),
    (53053, "Pierce", "Washington", 47.04, -122.14, 904980,
     [0, 0, 0, 1, 1, 2, 3, 3, 5, 8], [0, 0, 0, 0, 0, 0, 0, 0, 1, 1]),
    (41039, "Lane", "Oregon", 43.93, -122.84, 382067,
     [0, 0, 0, 0, 0, 1, 1, 1, 1, 2], [0] * 10),
]

WA_CASES = [0, 1, 2, 4, 7, 11, 17, 22, 30, 40]
WA_DEATHS = [0, 0, 0, 0, 1, 1, 2, 3, 4, 5]
WA_POPULATION = 2252782 + 822083 + 904980


def make_table_csv(kind="cases", counties=COUNTIES, dates=DATES):
    """Render a JHU-shaped table as CSV text"""
    rows = []
    for fips, admin2, state, lat, lon, population, cases, deaths in counties:
        row = {
            "UID": 84000000 + fips,
            "iso2": "US",
            "iso3": "USA",
            "code3": 840,
            "FIPS": float(fips),
            "Admin2": admin2,
            "Province_State": state,
            "Country_Region": "US",
            "Lat": lat,
            "Long_": lon,
            "Combined_Key": f"{admin2}, {state}, US",
        }
        if kind == "deaths":
            row["Population"] = population
        values = cases if kind == "cases" else deaths
        row.update(dict(zip(dates, values)))
        rows.append(row)
    columns = (CASES_META if kind == "cases" else DEATHS_META) + list(dates)
    return pd.DataFrame(rows, columns=columns).to_csv(index=False)


@pytest.fixture
def write_csv(tmp_path):
    """Write CSV text to a file under tmp_path and return the path."""
    def _write(name, text):
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path
    return _write


@pytest.fixture
def cases_csv(write_csv):
    return write_csv("time_series_covid19_confirmed_US.csv", make_table_csv("cases"))


@pytest.fixture
def deaths_csv(write_csv):
    return write_csv("time_series_covid19_deaths_US.csv", make_table_csv("deaths"))


@pytest.fixture
def wa_totals():
    """Washington totals as the aggregator produces them from the fixture tables."""
    return RegionalTotals(
        region="Washington",
        date_labels=tuple(DATES),
        cases=np.array(WA_CASES, dtype=np.int64),
        deaths=np.array(WA_DEATHS, dtype=np.int64),
        population=WA_POPULATION,
        n_subdivisions=3,
    )
