"""Bounded, thread safe buffers of recent instructions and their outcomes."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

CONTEXT_WINDOW = 5
CONTEXT_RETENTION = 100
MEMORY_CAPACITY = 50


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ContextEntry:
    instruction: str
    context: dict[str, Any]
    timestamp: str = field(default_factory=_now)


@dataclass(frozen=True)
class MemoryEntry:
    instruction: str
    result_summary: dict[str, Any]
    timestamp: str = field(default_factory=_now)


class ContextStack:
    """Keeps up to ``retention`` entries; only the last ``window`` are visible."""

    def __init__(self, window: int = CONTEXT_WINDOW, retention: int = CONTEXT_RETENTION) -> None:
        if window < 1 or retention < window:
            raise ValueError("retention must be at least window, window at least 1")
        self.window = window
        self._entries: deque[ContextEntry] = deque(maxlen=retention)
        self._lock = threading.Lock()

    def push(self, instruction: str, context: dict[str, Any] | None = None) -> ContextEntry:
        entry = ContextEntry(instruction, dict(context or {}))
        with self._lock:
            self._entries.append(entry)
        return entry

    def current(self) -> list[ContextEntry]:
        with self._lock:
            return list(self._entries)[-self.window:]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class ConversationMemory:
    """FIFO buffer of instruction outcomes, oldest evicted first."""

    def __init__(self, capacity: int = MEMORY_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._entries: deque[MemoryEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def record(self, instruction: str, result_summary: dict[str, Any]) -> MemoryEntry:
        entry = MemoryEntry(instruction, dict(result_summary))
        with self._lock:
            self._entries.append(entry)
        return entry

    def recent(self, limit: int | None = None) -> list[MemoryEntry]:
        """Newest last. ``limit`` keeps only the most recent entries."""
        with self._lock:
            entries = list(self._entries)
        if limit is None:
            return entries
        return entries[-limit:] if limit > 0 else []

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    __len__ = size


class ConversationState:
    def __init__(
        self,
        context_window: int = CONTEXT_WINDOW,
        memory_capacity: int = MEMORY_CAPACITY,
    ) -> None:
        self.context = ContextStack(window=context_window)
        self.memory = ConversationMemory(capacity=memory_capacity)

    def begin(self, instruction: str, context: dict[str, Any] | None = None) -> None:
        self.context.push(instruction, context)

    def record(self, instruction: str, result_summary: dict[str, Any]) -> None:
        self.memory.record(instruction, result_summary)

    def history(self, limit: int = 10) -> list[dict[str, Any]]:
        return [
            {"instruction": e.instruction, "result": e.result_summary, "timestamp": e.timestamp}
            for e in self.memory.recent(limit)
        ]

    def snapshot(self) -> dict[str, Any]:
        return {
            "context": [asdict(e) for e in self.context.current()],
            "recent": [asdict(e) for e in self.memory.recent(self.context.window)],
        }


__all__ = [
    "CONTEXT_WINDOW",
    "ContextEntry",
    "ContextStack",
    "ConversationMemory",
    "ConversationState",
    "MEMORY_CAPACITY",
    "MemoryEntry",
]
