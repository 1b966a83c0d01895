"""
countrydata_pipeline.pipelines — orchestrators that wire sources → transforms → loaders.

  refresh — fetch countries + rates, derive GDP, reconcile, render summary
"""

from countrydata_pipeline.pipelines.refresh import (
    RefreshOrchestrator,
    RefreshOutcome,
    RefreshState,
    RefreshStatus,
    build_orchestrator,
    run,
)

__all__ = [
    "RefreshOrchestrator",
    "RefreshOutcome",
    "RefreshState",
    "RefreshStatus",
    "build_orchestrator",
    "run",
]
