"""Interfaces the dispatcher's handlers call.

Each task type's handler invokes exactly one operation on one of these.
Implementations may return the typed result model or a plain mapping that
validates into it.
"""

from __future__ import annotations

from typing import Any, Iterable, Protocol, runtime_checkable


@runtime_checkable
class WorkflowBackend(Protocol):
    async def get_workflow(self, workflow_id: str) -> dict[str, Any]:
        ...

    async def list_workflows(self, active: bool | None = None) -> list[dict[str, Any]]:
        ...

    async def create_workflow(self, spec: dict[str, Any]) -> dict[str, Any]:
        ...

    async def update_workflow(self, workflow_id: str, spec: dict[str, Any]) -> dict[str, Any]:
        ...

    async def export_all(self) -> list[dict[str, Any]]:
        ...

    async def execute_workflow(self, workflow_id: str, data: dict[str, Any] | None = None) -> str:
        ...

    async def get_execution(self, execution_id: str) -> dict[str, Any]:
        ...

    async def test_connection(self) -> Any:
        ...


@runtime_checkable
class VersionControl(Protocol):
    async def status(self) -> Any:
        ...

    async def commit(self, paths: Iterable[str] | None, message: str) -> bool:
        ...


@runtime_checkable
class ProjectAnalyzer(Protocol):
    async def analyze_project(self, detailed: bool = False) -> Any:
        ...

    async def apply_improvements(self, dry_run: bool = True, priority: str | None = None) -> Any:
        ...

    async def plan_upgrade(self, timeline: str | None = None, risk: str | None = None) -> Any:
        ...


@runtime_checkable
class FlowOperations(Protocol):
    async def export_workflows(self, workflow_id: str | None = None) -> Any:
        ...

    async def import_workflow(
        self, file_path: str, update: bool = True, backup: bool = True
    ) -> Any:
        ...

    async def test_workflow(self, workflow_id: str) -> Any:
        ...

    async def review_workflow(self, workflow_id: str) -> Any:
        ...


@runtime_checkable
class CapabilitySearch(Protocol):
    async def search(self, query: str) -> Any:
        ...


__all__ = [
    "CapabilitySearch",
    "FlowOperations",
    "ProjectAnalyzer",
    "VersionControl",
    "WorkflowBackend",
]
