"""Publication module for the release pipeline.

This module handles the release side of a run:
- ReleaseReconciler: find-or-create the release for a version
- AssetPublisher: upload artifacts to the resolved release
"""

from .reconciler import ReleaseReconciler
from .publisher import AssetPublisher

__all__ = ["ReleaseReconciler", "AssetPublisher"]
