"""
errors.py — exception taxonomy for the refresh pipeline.

Components raise these; RefreshOrchestrator converts them into a single
RefreshOutcome. Validation faults are reported as data, not raised.
"""

from __future__ import annotations

from countrydata_shared.constants import SOURCE_LABELS, SourceName


class RefreshError(Exception):
    """Base class for pipeline failures."""


class SourceUnavailable(RefreshError):
    """One of the two external sources failed, timed out or sent garbage."""

    def __init__(self, source: SourceName | str, reason: str = "") -> None:
        self.source = source
        self.reason = reason
        label = SOURCE_LABELS.get(source, source)
        message = f"Could not fetch data from {label}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class PersistenceFailure(RefreshError):
    """The reconciliation transaction failed and was rolled back."""


class RenderFailure(RefreshError):
    """Drawing or writing the summary image failed."""
