"""Status and phase tracking package."""

from .tracker import ReconcilePass, StatusTracker

__all__ = [
    "ReconcilePass",
    "StatusTracker",
]
