"""Interpret plain instructions and dispatch them to n8n workflow operations."""

from .config import Settings, get_settings
from .core import Response, TaskType
from .errors import ErrorKind, FlowManagerError
from .orchestrator import FlowManagerEngine, Task

__all__ = [
    "ErrorKind",
    "FlowManagerEngine",
    "FlowManagerError",
    "Response",
    "Settings",
    "Task",
    "TaskType",
    "get_settings",
]

__version__ = "0.1.0"
