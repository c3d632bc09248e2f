"""
===========================================================
report.py
Author: Veronica Scerra
Last Updated: 2026-10-19
===========================================================

Description:
    Runs the regional report end to end:

        load -> filter region -> aggregate -> build series
             -> derived metrics -> {charts, OLS fit} -> summary

Example Usage:
    from covidtrends.config import ReportConfig
    from covidtrends.report import build_report, format_summary
    report = build_report(ReportConfig(region="Washington"))
    print(format_summary(report))

    # or from the shell
    covid-region-report --region Washington --output-dir out/

Notes:
    - Any pipeline error aborts the run; there are no partial
      reports.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence
import matplotlib.pyplot as plt
import pandas as pd

from covidtrends.config import ReportConfig
from covidtrends.errors import ReportError
from covidtrends.metrics import derive_metrics
from covidtrends.regression import RegressionResult, fit_deaths_on_cases
from covidtrends.series import aggregate_region, build_series, find_downward_corrections
from covidtrends.utils.plotting import (
    plot_cumulative_trends,
    plot_daily_histogram,
    plot_daily_new,
    plot_deaths_vs_cases,
)
from dataio.jhu import JHU_CASES_US_CSV, JHU_DEATHS_US_CSV, filter_region, load_case_and_death_tables

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegionalReport:
    region: str
    series: pd.DataFrame
    derived: pd.DataFrame
    regression: RegressionResult
    # column name -> dates and sizes of decreases in that cumulative column
    corrections: Dict[str, pd.Series]
    n_subdivisions: int


def build_report(config: ReportConfig) -> RegionalReport:
    """Run every stage for `config.region` and collect the results"""
    cfg = config
    logger.info("[1/5] Loading case and death tables...")
    cases, deaths = load_case_and_death_tables(cfg.cases_source, cfg.deaths_source, cfg.jhu)

    logger.info("[2/5] Selecting %s...", cfg.region)
    cases = filter_region(cases, cfg.region)
    deaths = filter_region(deaths, cfg.region)

    logger.info("[3/5] Aggregating to a regional series...")
    totals = aggregate_region(cases, deaths, date_format=cfg.jhu.date_format)
    series = build_series(totals, date_format=cfg.jhu.date_format)

    corrections = {}
    for col in ("cases", "deaths"):
        drops = find_downward_corrections(series, col)
        corrections[col] = drops
        if not drops.empty:
            logger.warning(
                "Cumulative %s decrease on %d day(s), largest drop %s on %s",
                col, len(drops), f"{int(drops.min()):,}", drops.idxmin().date(),
            )

    logger.info("[4/5] Deriving metrics (window=%d)...", cfg.window)
    derived = derive_metrics(series, window=cfg.window, clip_negative=cfg.clip_negative_daily)

    logger.info("[5/5] Fitting deaths ~ cases...")
    fit = fit_deaths_on_cases(series)

    return RegionalReport(
        region=cfg.region,
        series=series,
        derived=derived,
        regression=fit,
        corrections=corrections,
        n_subdivisions=totals.n_subdivisions,
    )


def format_summary(report: RegionalReport) -> str:
    """Plain-text summary: coverage, latest totals and the regression table"""
    series, derived = report.series, report.derived
    first, last = series.index[0].date(), series.index[-1].date()
    latest = derived.iloc[-1]
    population = int(latest["population"])
    cfr = latest["cfr"]

    lines = [
        f"Regional COVID-19 report: {report.region}",
        "=" * 50,
        f"Subdivisions: {report.n_subdivisions}",
        f"Population: {population:,}",
        f"Dates: {first} to {last} ({len(series)} days)",
        f"Cumulative cases: {int(latest['cases']):,}",
        f"Cumulative deaths: {int(latest['deaths']):,}",
        "Case-fatality ratio: " + ("n/a" if pd.isna(cfr) else f"{cfr:.2%}"),
    ]
    if population:
        lines.append(f"Cases per 100k: {latest['cases'] / population * 1e5:,.1f}")
    for col, drops in report.corrections.items():
        if not drops.empty:
            lines.append(f"Downward corrections in cumulative {col}: {len(drops)} day(s)")
    lines += ["", "OLS: deaths ~ cases", "-" * 50, report.regression.summary()]
    return "\n".join(lines)


def render_figures(report: RegionalReport, output_dir: Path) -> List[Path]:
    """Write the report charts as PNGs into output_dir and return their paths"""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    slug = report.region.lower().replace(" ", "_")

    charts = [
        ("cumulative", (10, 5), lambda ax, p: plot_cumulative_trends(report.derived, ax=ax, save_path=p)),
        ("daily_cases", (10, 5), lambda ax, p: plot_daily_new(report.derived, "cases", ax=ax, save_path=p)),
        ("daily_deaths", (10, 5), lambda ax, p: plot_daily_new(report.derived, "deaths", ax=ax, save_path=p)),
        ("deaths_vs_cases", (8, 6),
         lambda ax, p: plot_deaths_vs_cases(report.series, report.regression, ax=ax, save_path=p)),
        ("new_cases_hist", (8, 5),
         lambda ax, p: plot_daily_histogram(report.derived, "new_cases", ax=ax, save_path=p)),
    ]
    paths = []
    for name, figsize, draw in charts:
        path = output_dir / f"{slug}_{name}.png"
        fig, ax = plt.subplots(figsize=figsize)
        try:
            draw(ax, path)
        finally:
            plt.close(fig)
        paths.append(path)
    return paths

# ---- Command line ---------------------------------------------------------

def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="covid-region-report",
        description="Regional COVID-19 cases/deaths trends and deaths~cases regression "
                    "from the JHU CSSE US county time series.",
    )
    parser.add_argument("--region", default=ReportConfig.region, help="Province_State value to report on")
    parser.add_argument("--cases", default=JHU_CASES_US_CSV, help="cases CSV (path or URL)")
    parser.add_argument("--deaths", default=JHU_DEATHS_US_CSV, help="deaths CSV (path or URL)")
    parser.add_argument("--window", type=int, default=ReportConfig.window, help="rolling window in days")
    parser.add_argument("--clip-negative", action="store_true",
                        help="clamp negative daily changes to zero")
    parser.add_argument("--output-dir", type=Path, default=None,
                        help="write charts and summary.txt here")
    parser.add_argument("--no-figures", action="store_true", help="skip chart rendering")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    config = ReportConfig(
        region=args.region,
        cases_source=args.cases,
        deaths_source=args.deaths,
        window=args.window,
        clip_negative_daily=args.clip_negative,
        output_dir=args.output_dir,
        make_figures=not args.no_figures,
    )

    try:
        report = build_report(config)
    except (ReportError, OSError) as e:
        logger.error("Report failed: %s", e)
        return 1

    summary = format_summary(report)
    print(summary)
    if config.output_dir is not None:
        config.output_dir.mkdir(parents=True, exist_ok=True)
        summary_path = config.output_dir / "summary.txt"
        summary_path.write_text(summary + "\n", encoding="utf-8")
        logger.info("Summary written to %s", summary_path)
        if config.make_figures:
            render_figures(report, config.output_dir)
    return 0


if __name__ == "__main__":
    sys.exit(main())
