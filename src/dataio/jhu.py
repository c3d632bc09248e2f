"""
===========================================================
jhu.py
Author: Veronica Scerra
Last Updated: 2026-10-19
===========================================================

Description:
    Loaders for the Johns Hopkins CSSE US county time series
    (`time_series_covid19_confirmed_US.csv` and
    `time_series_covid19_deaths_US.csv`). Both are wide tables:
    one row per county, metadata columns first, then one column
    per calendar date holding a cumulative count.

Example Usage:
    from dataio.jhu import load_case_and_death_tables, filter_region
    cases, deaths = load_case_and_death_tables(cases_csv, deaths_csv)
    cases = filter_region(cases, "Washington")
    deaths = filter_region(deaths, "Washington")

Notes:
    - The deaths table has one extra metadata column (Population)
      before its dates, so dates start at column 12 instead of 11.
      The offset is found from the header (first label that parses
      as a M/D/YY date) and checked against the expected layout.
    - Sources may be local paths, open streams or http(s) URLs.
    - Count cells are coerced to int64; anything else is rejected.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import csv
import io
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import IO, List, Literal, Optional, Sequence, Tuple, Union
import numpy as np
import pandas as pd
import requests

from covidtrends.errors import MalformedInputError, RegionNotFoundError

logger = logging.getLogger(__name__)

JHU_TIME_SERIES_URL = (
    "https://raw.githubusercontent.com/CSSEGISandData/COVID-19/master/"
    "csse_covid_19_data/csse_covid_19_time_series/"
)
JHU_CASES_US_CSV = JHU_TIME_SERIES_URL + "time_series_covid19_confirmed_US.csv"
JHU_DEATHS_US_CSV = JHU_TIME_SERIES_URL + "time_series_covid19_deaths_US.csv"

TableKind = Literal["cases", "deaths"]
Source = Union[str, Path, IO]


@dataclass
class JHUPreprocessConfig:
    """
    Configuration for reading the JHU CSSE US tables
    """
    region_col: str = "Province_State"
    population_col: str = "Population"
    # month-first, 2-digit year ("1/22/20")
    date_format: str = "%m/%d/%y"
    # 0-based index of the first date column; None skips the layout check
    cases_first_date_col: Optional[int] = 11
    deaths_first_date_col: Optional[int] = 12
    # networking
    timeout_s: int = 30


@dataclass(frozen=True)
class CountyTable:
    """
    One loaded wide table. Row and column order are those of the source.

    Attributes:
    -----------
    frame: pd.DataFrame
        Metadata columns as strings, population and date columns as int64
    kind: "cases" | "deaths"
    first_date_index: int
        Position of the first date column in `frame.columns`
    region_col: str
        Name of the parent-region column
    population_col: str, optional
        Name of the population column (deaths table only)
    region: str, optional
        Region the rows were filtered to, if any
    source: str
        Where the table was read from
    """
    frame: pd.DataFrame
    kind: TableKind
    first_date_index: int
    region_col: str
    population_col: Optional[str] = None
    region: Optional[str] = None
    source: str = ""

    @property
    def date_columns(self) -> Tuple[str, ...]:
        return tuple(self.frame.columns[self.first_date_index:])

    @property
    def date_values(self) -> pd.DataFrame:
        return self.frame.iloc[:, self.first_date_index:]

    def __len__(self) -> int:
        return len(self.frame)

# ---- Public API -----------------------------------------------------------

def load_county_table(
    source: Source,
    kind: TableKind = "cases",
    config: Optional[JHUPreprocessConfig] = None,
) -> CountyTable:
    """
    Load one JHU CSSE US time-series table.

    Parameters
    ----------
    source : str | Path | file-like
        Local path, open text/byte stream, or http(s) URL.
    kind : "cases" | "deaths"
        Which table this is. The deaths table must carry a population column.
    config : JHUPreprocessConfig
        Column names, date format and expected layout.

    Returns
    -------
    CountyTable

    Raises
    ------
    MalformedInputError
        Empty file, row wider or narrower than the header, no date columns,
        unexpected first-date position, missing region/population column, or
        a count cell that is not an integer.
    """
    cfg = config or JHUPreprocessConfig()
    name = _source_name(source)
    raw = _read_csv_robust(source, cfg)
    columns = list(raw.columns)

    first = find_first_date_column(columns, cfg.date_format, source=name)
    expected = cfg.cases_first_date_col if kind == "cases" else cfg.deaths_first_date_col
    if expected is not None and first != expected:
        raise MalformedInputError(
            f"{kind} table {name}: dates start at column {first}, expected {expected}",
            source=name,
        )

    metadata = columns[:first]
    region_col = _find_col(metadata, cfg.region_col, name)
    population_col = None
    numeric = columns[first:]
    if kind == "deaths":
        population_col = _find_col(metadata, cfg.population_col, name)
        numeric = [population_col] + numeric

    frame = _coerce_counts(raw, numeric, name)
    logger.debug("%s table %s: first date column %d (%r)", kind, name, first, columns[first])
    logger.info("Loaded %s table from %s: %d rows, %d dates", kind, name, len(frame), len(columns) - first)
    return CountyTable(
        frame=frame,
        kind=kind,
        first_date_index=first,
        region_col=region_col,
        population_col=population_col,
        source=name,
    )


def load_case_and_death_tables(
    cases_source: Source,
    deaths_source: Source,
    config: Optional[JHUPreprocessConfig] = None,
) -> Tuple[CountyTable, CountyTable]:
    """Load the cases table and the deaths table with the same configuration"""
    cfg = config or JHUPreprocessConfig()
    cases = load_county_table(cases_source, kind="cases", config=cfg)
    deaths = load_county_table(deaths_source, kind="deaths", config=cfg)
    return cases, deaths


def filter_region(table: CountyTable, region: str) -> CountyTable:
    """
    Keep the rows whose parent-region field equals `region` exactly.

    Row order is preserved. Raises RegionNotFoundError when nothing matches.
    """
    mask = table.frame[table.region_col].eq(region)
    if not mask.any():
        raise RegionNotFoundError(region, table.region_col)
    sub = table.frame.loc[mask].reset_index(drop=True)
    logger.info("Selected %d of %d %s rows for %s", len(sub), len(table), table.kind, region)
    return replace(table, frame=sub, region=region)


def list_regions(table: CountyTable) -> pd.Series:
    """
    Quick helper to inspect the distinct parent-region values of a table.

    Returns row counts per region, most frequent first.
    """
    return table.frame[table.region_col].value_counts().sort_values(ascending=False)


def is_date_label(label: str, date_format: str = "%m/%d/%y") -> bool:
    try:
        datetime.strptime(str(label).strip(), date_format)
    except ValueError:
        return False
    return True


def find_first_date_column(columns: Sequence[str], date_format: str = "%m/%d/%y", source: str = "") -> int:
    """
    Index of the first header label that parses as a date.

    Every label after it must be a date too.
    """
    for i, label in enumerate(columns):
        if is_date_label(label, date_format):
            stray = [c for c in columns[i:] if not is_date_label(c, date_format)]
            if stray:
                raise MalformedInputError(
                    f"Non-date column {stray[0]!r} after the first date column in {source}",
                    source=source,
                    column=str(stray[0]),
                )
            return i
    raise MalformedInputError(f"No date columns found in header of {source}", source=source)

# ---------- Robust CSV loader ----------------------------------------------

def _read_csv_robust(source: Source, cfg: JHUPreprocessConfig) -> pd.DataFrame:
    """
    Read the raw table from a stream, a URL or a local path.

    Local files are opened here and closed before returning, on both
    success and failure.
    """
    if hasattr(source, "read"):
        return _parse_csv(source, _source_name(source))

    src = str(source)
    if src.startswith(("http://", "https://")):
        return _parse_csv(io.BytesIO(_fetch_url(src, cfg)), src)

    with Path(src).open("r", encoding="utf-8", newline="") as handle:
        return _parse_csv(handle, src)


def _fetch_url(url: str, cfg: JHUPreprocessConfig) -> bytes:
    headers = {"User-Agent": "Mozilla/5.0 (covid-region-report)"}
    try:
        resp = requests.get(url, headers=headers, timeout=cfg.timeout_s)
    except requests.RequestException as e:
        raise MalformedInputError(f"Failed to fetch URL: {url}\n{e}", source=url) from e

    if resp.status_code != 200:
        raise MalformedInputError(f"HTTP {resp.status_code} fetching {url}", source=url)

    content = resp.content or b""
    if len(content) < 10:
        raise MalformedInputError(f"Downloaded 0/very few bytes from {url}", source=url)
    return content


def _parse_csv(handle, name: str) -> pd.DataFrame:
    try:
        raw = handle.read()
        text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
    except UnicodeDecodeError as e:
        raise MalformedInputError(f"{name} is not valid UTF-8: {e}", source=name) from e

    _check_short_rows(text, name)

    # header=None so the header line fixes the row width; wider rows are a
    # parser error
    try:
        df = pd.read_csv(io.StringIO(text), header=None, dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError as e:
        raise MalformedInputError(f"No header row in {name}", source=name) from e
    except pd.errors.ParserError as e:
        raise MalformedInputError(f"Row width does not match header in {name}: {e}", source=name) from e

    header = [str(c).strip() for c in df.iloc[0]]
    body = df.iloc[1:].reset_index(drop=True)
    body.columns = pd.Index(header)
    return body


def _check_short_rows(text: str, name: str) -> None:
    """
    Reject data rows with fewer fields than the header.

    read_csv pads such rows with "" when NA parsing is off, which is
    indistinguishable from a genuinely blank field, so widths are
    counted on the raw text. Blank lines are skipped, as read_csv does.
    """
    try:
        widths = [len(row) for row in csv.reader(io.StringIO(text)) if row]
    except csv.Error as e:
        raise MalformedInputError(f"Unreadable CSV in {name}: {e}", source=name) from e
    if not widths:
        return
    for i, width in enumerate(widths[1:], start=1):
        if width < widths[0]:
            raise MalformedInputError(
                f"Data row {i} of {name} has {width} fields, fewer than the header ({widths[0]})",
                source=name,
            )


def _coerce_counts(df: pd.DataFrame, columns: List[str], name: str) -> pd.DataFrame:
    """Parse the count columns as int64, rejecting blanks and non-integers"""
    block = df[columns].apply(lambda s: pd.to_numeric(s.str.strip(), errors="coerce"))
    bad = (block.isna() | (block % 1 != 0)).to_numpy()
    if bad.any():
        rows, cols = np.nonzero(bad)
        col = columns[cols[0]]
        value = df[col].iloc[rows[0]]
        raise MalformedInputError(
            f"Non-integer value {value!r} in column {col!r}, data row {rows[0] + 1} of {name}",
            source=name,
            column=col,
        )

    out = pd.concat([df.drop(columns=columns), block.astype(np.int64)], axis=1)
    return out[list(df.columns)]


def _find_col(columns: Sequence[str], expected_name: str, source: str) -> str:
    """
    Tolerant column lookup (exact first, then case/space-insensitive).
    """
    names = [str(c) for c in columns]
    for name in names:
        if name == expected_name:
            return name
    exp = expected_name.strip().lower()
    for name in names:
        if name.strip().lower() == exp:
            return name
    raise MalformedInputError(
        f"Expected column '{expected_name}' not found in {source}. Available: {names}",
        source=source,
        column=expected_name,
    )


def _source_name(source: Source) -> str:
    if hasattr(source, "read"):
        return str(getattr(source, "name", "<stream>"))
    return str(source)
