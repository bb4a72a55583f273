"""Engine lifecycle and the outer surfaces built on it."""

from .engine import FlowManagerEngine
from .task import Task

__all__ = ["FlowManagerEngine", "Task"]
