"""
config.py — Parameters for a cohort retention run
-------------------------------------------------
- Analysis window (inclusive start, exclusive end)
- Qualifying order statuses
- First-year horizon and the cohort slice shown in the report
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional, Tuple
import pandas as pd

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

ORDER_STATUSES = ("Complete", "Shipped", "Cancelled", "Returned", "Processing")

@dataclass(frozen=True)
class RetentionParams:
    start:str="2019-01-01"                  # inclusive
    end:str="2025-01-01"                    # exclusive
    statuses:Tuple[str,...]=("Complete","Shipped")
    max_months:int=12
    cohort_start:Optional[str]="2023-01-01" # 2023 cohorts have a full 12-month view
    cohort_end:Optional[str]="2024-01-01"

    @property
    def window(self)->Tuple[pd.Timestamp,pd.Timestamp]:
        return _parse("start", self.start), _parse("end", self.end)

    @property
    def cohort_slice(self)->Tuple[Optional[pd.Timestamp],Optional[pd.Timestamp]]:
        lo = None if self.cohort_start is None else _parse("cohort_start", self.cohort_start)
        hi = None if self.cohort_end is None else _parse("cohort_end", self.cohort_end)
        return lo, hi

    def validate(self)->"RetentionParams":
        start, end = self.window
        if start >= end:
            raise ConfigurationError(f"analysis window is empty: start {start.date()} >= end {end.date()}")
        if isinstance(self.statuses, str):
            raise ConfigurationError(f"statuses must be a collection of names, got {self.statuses!r}")
        if not self.statuses:
            raise ConfigurationError("at least one qualifying status is required")
        if any(not s for s in self.statuses):
            raise ConfigurationError(f"qualifying statuses contain an empty value: {self.statuses!r}")
        unknown = sorted(set(self.statuses) - set(ORDER_STATUSES))
        if unknown:
            logger.warning("qualifying statuses outside the known set: %s", ", ".join(unknown))
        if self.max_months < 0:
            raise ConfigurationError(f"max_months must be >= 0, got {self.max_months}")
        lo, hi = self.cohort_slice
        if lo is not None and hi is not None and lo >= hi:
            raise ConfigurationError(f"cohort slice is empty: {lo.date()} >= {hi.date()}")
        return self

def _parse(name:str, value)->pd.Timestamp:
    try:
        ts = pd.Timestamp(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name} is not a valid date: {value!r}") from exc
    if ts is pd.NaT:
        raise ConfigurationError(f"{name} is not a valid date: {value!r}")
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts
