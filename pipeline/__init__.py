"""SiteAudit - Analysis Pipeline Package."""

# Lazy imports to avoid requiring all dependencies at import time
# Use explicit imports when these are needed:
# from pipeline.orchestrator import AnalysisOrchestrator, AnalysisContext
# from pipeline.progress import CancellationRegistry, ProgressTracker
# from pipeline.storage import InMemoryStorage, Storage

from typing import Any

__all__ = [
    "AnalysisOrchestrator",
    "AnalysisContext",
    "CancellationRegistry",
    "ProgressTracker",
    "InMemoryStorage",
    "Storage",
]


def __getattr__(name: str) -> Any:
    """Lazy import for pipeline submodules."""
    if name in ("AnalysisOrchestrator", "AnalysisContext"):
        from pipeline.orchestrator import AnalysisContext, AnalysisOrchestrator

        return locals()[name]
    elif name in ("CancellationRegistry", "ProgressTracker"):
        from pipeline.progress import CancellationRegistry, ProgressTracker

        return locals()[name]
    elif name in ("InMemoryStorage", "Storage"):
        from pipeline.storage import InMemoryStorage, Storage

        return locals()[name]
    raise AttributeError(f"module 'pipeline' has no attribute '{name}'")
