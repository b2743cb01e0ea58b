"""External integration adapters."""

from .workflow_source import WorkflowSourceClient

__all__ = [
    "WorkflowSourceClient",
]
