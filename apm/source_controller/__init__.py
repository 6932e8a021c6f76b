"""The source controller module.

This module synchronizes plugin repositories with git and reconciles their
definitions into the registry.
"""

from .controller import RegistryReconciler, SyncResult, remove_from_index
from .git import DefinitionChanges, GitSynchronizer, Synchronizer, branch_reference_name

__all__ = [
    "RegistryReconciler",
    "SyncResult",
    "remove_from_index",
    "DefinitionChanges",
    "GitSynchronizer",
    "Synchronizer",
    "branch_reference_name",
]
