"""
Tests for regional aggregation and the date-indexed series
"""

import numpy as np
import pandas as pd
import pytest

from conftest import COUNTIES, DATES, WA_CASES, WA_DEATHS, WA_POPULATION, make_table_csv
from covidtrends.errors import ColumnMismatchError, DateParseError
from covidtrends.series import (
    RegionalTotals,
    aggregate_region,
    build_series,
    find_downward_corrections,
    parse_date_labels,
)
from dataio.jhu import filter_region, load_case_and_death_tables, load_county_table


@pytest.fixture
def wa_tables(cases_csv, deaths_csv):
    cases, deaths = load_case_and_death_tables(cases_csv, deaths_csv)
    return filter_region(cases, "Washington"), filter_region(deaths, "Washington")


class TestAggregateRegion:
    """Test per-date sums across subdivisions"""

    def test_sums(self, wa_tables):
        totals = aggregate_region(*wa_tables)

        assert list(totals.cases) == WA_CASES
        assert list(totals.deaths) == WA_DEATHS
        assert totals.population == WA_POPULATION
        assert totals.n_subdivisions == 3
        assert totals.region == "Washington"
        assert totals.date_labels == tuple(DATES)

    def test_int64_and_read_only(self, wa_tables):
        totals = aggregate_region(*wa_tables)

        assert totals.cases.dtype == np.int64
        assert totals.deaths.dtype == np.int64
        assert not totals.cases.flags.writeable
        with pytest.raises(ValueError):
            totals.cases[0] = 1

    def test_no_32bit_overflow(self, write_csv):
        big = [
            (fips, admin2, "Big", lat, lon, 2_000_000_000, [2_000_000_000] * 10, [1_500_000_000] * 10)
            for fips, admin2, _, lat, lon, _, _, _ in COUNTIES[:3]
        ]
        cases = load_county_table(write_csv("c.csv", make_table_csv("cases", counties=big)))
        deaths = load_county_table(write_csv("d.csv", make_table_csv("deaths", counties=big)), kind="deaths")

        totals = aggregate_region(filter_region(cases, "Big"), filter_region(deaths, "Big"))

        assert totals.cases[-1] == 6_000_000_000
        assert totals.deaths[0] == 4_500_000_000
        assert totals.population == 6_000_000_000

    def test_misaligned_dates(self, write_csv):
        shifted = [f"1/{day}/20" for day in range(23, 32)] + ["2/1/20"]
        cases = load_county_table(write_csv("c.csv", make_table_csv("cases")))
        deaths = load_county_table(
            write_csv("d.csv", make_table_csv("deaths", dates=shifted)), kind="deaths"
        )

        with pytest.raises(ColumnMismatchError, match="Date column 0"):
            aggregate_region(cases, deaths)

    def test_different_date_counts(self, write_csv):
        cases = load_county_table(write_csv("c.csv", make_table_csv("cases")))
        deaths = load_county_table(
            write_csv("d.csv", make_table_csv("deaths", dates=DATES[:8])), kind="deaths"
        )

        with pytest.raises(ColumnMismatchError, match="10 date columns"):
            aggregate_region(cases, deaths)

    def test_labels_compared_as_dates(self, write_csv):
        padded = [f"01/{day}/20" for day in range(22, 32)]
        cases = load_county_table(write_csv("c.csv", make_table_csv("cases")))
        deaths = load_county_table(
            write_csv("d.csv", make_table_csv("deaths", dates=padded)), kind="deaths"
        )

        totals = aggregate_region(cases, deaths)

        assert totals.date_labels == tuple(DATES)

    def test_different_regions(self, cases_csv, deaths_csv):
        cases, deaths = load_case_and_death_tables(cases_csv, deaths_csv)

        with pytest.raises(ValueError, match="different regions"):
            aggregate_region(filter_region(cases, "Washington"), filter_region(deaths, "Oregon"))


class TestBuildSeries:
    """Test the date-indexed regional series"""

    def test_shape_and_index(self, wa_totals):
        series = build_series(wa_totals)

        assert len(series) == len(DATES)
        assert list(series.columns) == ["cases", "deaths", "population"]
        assert series.index.name == "date"
        assert series.index.is_unique
        assert series.index.is_monotonic_increasing
        assert series.index[0] == pd.Timestamp("2020-01-22")
        assert series.index[-1] == pd.Timestamp("2020-01-31")

    def test_values(self, wa_totals):
        series = build_series(wa_totals)

        assert list(series["cases"]) == WA_CASES
        assert list(series["deaths"]) == WA_DEATHS
        assert (series["population"] == WA_POPULATION).all()
        assert all(series.dtypes == np.int64)
        assert series.attrs["region"] == "Washington"

    def test_end_to_end_length(self, wa_tables):
        series = build_series(aggregate_region(*wa_tables))

        assert len(series) == len(wa_tables[0].date_columns)

    def test_cumulative_columns_non_decreasing(self, wa_totals):
        series = build_series(wa_totals)

        assert series["cases"].is_monotonic_increasing
        assert series["deaths"].is_monotonic_increasing

    def test_unsorted_labels_are_sorted(self):
        totals = RegionalTotals(
            region=None,
            date_labels=("1/3/21", "1/1/21", "1/2/21"),
            cases=np.array([30, 10, 20]),
            deaths=np.array([3, 1, 2]),
            population=100,
            n_subdivisions=1,
        )

        series = build_series(totals)

        assert list(series["cases"]) == [10, 20, 30]
        assert list(series["deaths"]) == [1, 2, 3]

    def test_unparseable_label(self):
        totals = RegionalTotals(
            region=None,
            date_labels=("1/22/20", "Jan 23", "1/24/20"),
            cases=np.zeros(3, dtype=np.int64),
            deaths=np.zeros(3, dtype=np.int64),
            population=1,
            n_subdivisions=1,
        )

        with pytest.raises(DateParseError) as exc_info:
            build_series(totals)

        assert exc_info.value.label == "Jan 23"

    def test_day_first_label_rejected(self):
        with pytest.raises(DateParseError):
            parse_date_labels(["22/1/20"])

    def test_month_first_precedence(self):
        assert parse_date_labels(["3/1/21"])[0].month == 3

    def test_duplicate_dates(self):
        totals = RegionalTotals(
            region=None,
            date_labels=("1/22/20", "01/22/20"),
            cases=np.zeros(2, dtype=np.int64),
            deaths=np.zeros(2, dtype=np.int64),
            population=1,
            n_subdivisions=1,
        )

        with pytest.raises(DateParseError, match="duplicate"):
            build_series(totals)


class TestFindDownwardCorrections:
    """Test the monotonicity check on cumulative columns"""

    def test_monotone_fixture(self, wa_totals):
        series = build_series(wa_totals)

        assert find_downward_corrections(series, "cases").empty
        assert find_downward_corrections(series, "deaths").empty

    def test_reports_drop(self):
        index = pd.date_range("2021-01-01", periods=5, name="date")
        series = pd.DataFrame({"cases": [10, 15, 12, 20, 20]}, index=index)

        drops = find_downward_corrections(series, "cases")

        assert list(drops.index) == [pd.Timestamp("2021-01-03")]
        assert list(drops) == [-3]
