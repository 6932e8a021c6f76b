"""Workflow that synchronizes every tracked repository."""

from dataclasses import dataclass, field
import logging

from apm.source_controller import RegistryReconciler, SyncResult

from .executor import Workflow

__all__ = [
    "Update",
]

_LOGGER = logging.getLogger(__name__)


@dataclass
class Update(Workflow):
    """Reconcile the registry with the latest commit of every repository."""

    reconciler: RegistryReconciler
    results: list[SyncResult] = field(default_factory=list)

    def execute(self) -> None:
        self.results = self.reconciler.sync_all()
        changed = [result.alias for result in self.results if result.changed]
        _LOGGER.info(
            "Synchronized %d repositories (%d changed)", len(self.results), len(changed)
        )
