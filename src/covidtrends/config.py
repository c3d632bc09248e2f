"""
===========================================================
config.py
Author: Veronica Scerra
Last Updated: 2026-10-19
===========================================================

Description:
    Options for one run of the regional report. The command line
    maps its flags onto ReportConfig.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dataio.jhu import JHU_CASES_US_CSV, JHU_DEATHS_US_CSV, JHUPreprocessConfig, Source


@dataclass
class ReportConfig:
    """
    Configuration for a regional cases/deaths report
    """
    region: str = "Washington"
    cases_source: Source = JHU_CASES_US_CSV
    deaths_source: Source = JHU_DEATHS_US_CSV
    # trailing window for the rolling means
    window: int = 7
    # clamp negative daily changes (downward corrections) to 0
    clip_negative_daily: bool = False
    # where charts and the text summary go. If None, nothing is written
    output_dir: Optional[Path] = None
    make_figures: bool = True
    jhu: JHUPreprocessConfig = field(default_factory=JHUPreprocessConfig)
