"""Monthly cohort retention and lifetime-value reporting over an orders snapshot."""
from .cohort_analysis import (
    build_report,
    ltv_by_cohort,
    retention_benchmark,
    retention_matrix,
    retention_phase,
    summarize_cohorts,
)
from .config import RetentionParams
from .errors import CohortRetentionError, ConfigurationError, InputUnavailable
from .snapshot import SimParams, Snapshot, load_snapshot, simulate_snapshot
from .validation import profile_snapshot

__version__ = "0.1.0"
