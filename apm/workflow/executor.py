"""Workflows and the executor that runs them."""

from abc import ABC, abstractmethod
import logging

from apm.context import trace_context

__all__ = [
    "Workflow",
    "Executor",
]

_LOGGER = logging.getLogger(__name__)


class Workflow(ABC):
    """A unit of work that mutates the registry or the plugin directory.

    All collaborators of a workflow are bound when it is constructed.
    """

    @abstractmethod
    def execute(self) -> None:
        """Run the workflow, raising an `ApmException` on failure."""


class Executor:
    """Runs workflows, propagating their errors unchanged."""

    def execute(self, workflow: Workflow) -> None:
        with trace_context(type(workflow).__name__):
            workflow.execute()
