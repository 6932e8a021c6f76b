"""Workflows for every operation that changes the registry or plugin directory.

Each workflow is constructed with its collaborators and run by an `Executor`.
"""

from .executor import Executor, Workflow
from .install import Install, Uninstall
from .join_subnet import JoinSubnet
from .repository import AddRepository, RemoveRepository
from .update import Update
from .upgrade import Upgrade, UpgradeReport, UpgradeVM

__all__ = [
    "Executor",
    "Workflow",
    "Install",
    "Uninstall",
    "JoinSubnet",
    "AddRepository",
    "RemoveRepository",
    "Update",
    "Upgrade",
    "UpgradeReport",
    "UpgradeVM",
]
