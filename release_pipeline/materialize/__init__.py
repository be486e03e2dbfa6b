"""Source materialization module.

This module reproduces remote repositories on local disk:
- TreeMaterializer: recursive tree walk with rate-limit retry
- DependencySpec / fetch_dependencies: companion repositories under packages/
"""

from .tree import TreeMaterializer, MaterializeStats
from .dependencies import DependencySpec, fetch_dependencies

__all__ = [
    "TreeMaterializer",
    "MaterializeStats",
    "DependencySpec",
    "fetch_dependencies",
]
