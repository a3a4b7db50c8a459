"""Errors raised by the cohort retention pipeline."""
from __future__ import annotations


class CohortRetentionError(Exception):
    """Base class; a run that raises one of these produced no report."""


class InputUnavailable(CohortRetentionError):
    """Order or order-item data could not be read."""


class ConfigurationError(CohortRetentionError, ValueError):
    """Analysis parameters were rejected before computation started."""
