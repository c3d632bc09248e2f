"""
===========================================================
regression.py
Author: Veronica Scerra
Last Updated: 2026-10-19
===========================================================

Description:
    Single-predictor OLS of cumulative deaths on cumulative
    cases over the whole regional series:

        deaths = intercept + slope * cases + e

Example Usage:
    from covidtrends.regression import fit_deaths_on_cases
    fit = fit_deaths_on_cases(series)
    print(fit.summary())

Notes:
    - Solved by QR decomposition (statsmodels, method="qr");
      cases span several orders of magnitude over a pandemic.
    - p-values assume normal, independent errors. Cumulative
      series violate that; they are reported, not validated.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
import numpy as np
import pandas as pd
import statsmodels.api as sm

from covidtrends.errors import InsufficientDataError

logger = logging.getLogger(__name__)

MIN_OBSERVATIONS = 3


@dataclass(frozen=True)
class RegressionResult:
    intercept: float
    slope: float
    intercept_stderr: float
    slope_stderr: float
    r_squared: float
    residual_std_error: float
    intercept_pvalue: float
    slope_pvalue: float
    n_obs: int
    df_resid: int

    def predict(self, cases) -> np.ndarray:
        """Fitted deaths for the given cumulative cases"""
        return self.intercept + self.slope * np.asarray(cases, dtype=float)

    def summary(self) -> str:
        rows = [
            f"{'':<10}{'coef':>14}{'std err':>14}{'p-value':>12}",
            f"{'intercept':<10}{self.intercept:>14.4f}{self.intercept_stderr:>14.4f}{self.intercept_pvalue:>12.4g}",
            f"{'cases':<10}{self.slope:>14.6f}{self.slope_stderr:>14.6f}{self.slope_pvalue:>12.4g}",
            f"R-squared: {self.r_squared:.4f}   "
            f"Residual std error: {self.residual_std_error:,.2f} on {self.df_resid} df   "
            f"n = {self.n_obs}",
        ]
        return "\n".join(rows)


def fit_deaths_on_cases(series: pd.DataFrame, x_col: str = "cases", y_col: str = "deaths") -> RegressionResult:
    """
    Fit deaths ~ cases by ordinary least squares.

    Rows where either column is missing are dropped first. When deaths are constant
    the R-squared is undefined and comes back NaN.

    Raises
    ------
    InsufficientDataError
        Fewer than 3 usable rows, or the predictor is constant.
    """
    data = series[[x_col, y_col]].dropna()
    n = len(data)
    if n < MIN_OBSERVATIONS:
        raise InsufficientDataError(f"Need at least {MIN_OBSERVATIONS} rows to fit, got {n}")

    x = data[x_col].to_numpy(dtype=float)
    y = data[y_col].to_numpy(dtype=float)
    if np.ptp(x) == 0:
        raise InsufficientDataError(f"{x_col} is constant ({x[0]:g}); slope is undefined")

    X = sm.add_constant(x, has_constant="add")
    # a perfect or flat fit divides by zero in the statistics; those come back NaN
    with np.errstate(divide="ignore", invalid="ignore"):
        model = sm.OLS(y, X).fit(method="qr")
        params = np.asarray(model.params, dtype=float)
        pvalues = np.asarray(model.pvalues, dtype=float)
        bse = np.asarray(model.bse, dtype=float)
        result = RegressionResult(
            intercept=float(params[0]),
            slope=float(params[1]),
            intercept_stderr=float(bse[0]),
            slope_stderr=float(bse[1]),
            r_squared=float(model.rsquared),
            residual_std_error=float(np.sqrt(model.scale)),
            intercept_pvalue=float(pvalues[0]),
            slope_pvalue=float(pvalues[1]),
            n_obs=n,
            df_resid=int(model.df_resid),
        )
    logger.info(
        "OLS %s ~ %s: slope=%.6g intercept=%.6g R2=%.4f (n=%d)",
        y_col, x_col, result.slope, result.intercept, result.r_squared, n,
    )
    return result
