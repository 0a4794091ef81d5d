"""State merge reconciliation."""

from .engine import KeycloakReconciler, PassOutcome
from .image import ImageRef, select_image
from .kinds import reconcile
from .ownership import Ownership, OwnershipTable, merge

__all__ = [
    "KeycloakReconciler",
    "PassOutcome",
    "ImageRef",
    "select_image",
    "reconcile",
    "Ownership",
    "OwnershipTable",
    "merge",
]
