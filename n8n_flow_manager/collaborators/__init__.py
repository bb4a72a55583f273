"""Collaborators the dispatcher's handlers call."""

from .analyzer import FlowAnalyzer
from .base import CapabilitySearch, FlowOperations, ProjectAnalyzer, VersionControl, WorkflowBackend
from .flows import FlowManager
from .git import GitRepository
from .n8n_client import N8nClient
from .search import UnavailableSearch

__all__ = [
    "CapabilitySearch",
    "FlowAnalyzer",
    "FlowManager",
    "FlowOperations",
    "GitRepository",
    "N8nClient",
    "ProjectAnalyzer",
    "UnavailableSearch",
    "VersionControl",
    "WorkflowBackend",
]
