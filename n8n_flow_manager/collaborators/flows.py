"""Workflow export, import, testing and review on top of the backend and git."""

from __future__ import annotations

import asyncio
import json
import re
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiofiles  # type: ignore
import structlog

from ..config import Settings
from ..core.results import (
    ExportedWorkflow,
    ExportReport,
    ImportReport,
    WorkflowReview,
    WorkflowTestReport,
)
from ..errors import BackendError, WorkflowError
from .analyzer import FlowAnalyzer, connected_node_names, is_trigger
from .base import VersionControl, WorkflowBackend

logger = structlog.get_logger()

EXPORTED_BY = "n8n-flow-manager"
EXPORT_METADATA = ("exportedAt", "exportedBy", "version", "createdAt", "updatedAt")
TERMINAL_STATUSES = frozenset({"success", "error", "crashed", "canceled"})


def sanitize_file_name(name: str) -> str:
    return re.sub(r"[^a-z0-9._-]", "_", name, flags=re.IGNORECASE).lower()


def strip_export_metadata(workflow: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in workflow.items() if k not in EXPORT_METADATA}


def validate_structure(workflow: dict[str, Any]) -> tuple[list[str], list[str]]:
    """Return ``(errors, warnings)`` for a workflow about to be executed."""
    errors: list[str] = []
    warnings: list[str] = []
    nodes = workflow.get("nodes") or []
    if not nodes:
        errors.append("Workflow has no nodes")
        return errors, warnings
    if not any(is_trigger(str(n.get("type", ""))) for n in nodes):
        warnings.append("No trigger nodes found")
    linked = connected_node_names(workflow.get("connections"))
    loose = [
        n.get("name")
        for n in nodes
        if n.get("name") not in linked and not is_trigger(str(n.get("type", "")))
    ]
    if len(nodes) > 1 and loose:
        warnings.append(f"Found {len(loose)} disconnected nodes: {', '.join(map(str, loose))}")
    if any(n.get("credentials") for n in nodes):
        warnings.append("Some nodes require credentials")
    return errors, warnings


def execution_error(execution: dict[str, Any]) -> str | None:
    error = ((execution.get("data") or {}).get("resultData") or {}).get("error") or {}
    if isinstance(error, dict):
        return error.get("message")
    return str(error)


class FlowManager:
    """Move workflows between n8n and the flows directory."""

    def __init__(
        self,
        settings: Settings,
        backend: WorkflowBackend,
        vcs: VersionControl,
        analyzer: FlowAnalyzer | None = None,
        poll_interval: float = 1.0,
    ) -> None:
        self.settings = settings
        self.backend = backend
        self.vcs = vcs
        self.flows_directory = Path(settings.flows_directory)
        self.backup_directory = Path(settings.backup_directory)
        self.analyzer = analyzer or FlowAnalyzer(self.flows_directory)
        self.poll_interval = poll_interval

    def ensure_directories(self) -> None:
        for directory in (self.flows_directory, self.backup_directory):
            directory.mkdir(parents=True, exist_ok=True)

    async def _write_json(self, path: Path, data: dict[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(data, indent=2) + "\n")

    async def export_workflows(self, workflow_id: str | None = None) -> ExportReport:
        if workflow_id:
            workflows = [await self.backend.get_workflow(workflow_id)]
        else:
            workflows = await self.backend.export_all()

        exported: list[ExportedWorkflow] = []
        stamp = datetime.now(timezone.utc).isoformat()
        for workflow in workflows:
            wf_id = str(workflow.get("id", workflow_id or ""))
            name = workflow.get("name") or wf_id
            path = self.flows_directory / sanitize_file_name(f"{name}.json")
            await self._write_json(path, {**workflow, "exportedAt": stamp, "exportedBy": EXPORTED_BY})
            exported.append(ExportedWorkflow(id=wf_id, name=name, path=str(path)))

        if not exported:
            return ExportReport()
        if len(exported) == 1:
            message = f"Export workflow: {exported[0].name}"
        else:
            message = f"Export {len(exported)} workflows"
        committed = await self.vcs.commit([e.path for e in exported], message)
        logger.info("workflows_exported", count=len(exported), committed=committed)
        return ExportReport(exported=exported, committed=committed, commit_message=message)

    def _resolve(self, file_path: str) -> Path:
        path = Path(file_path)
        if not path.exists() and not path.is_absolute():
            candidate = self.flows_directory / file_path
            if candidate.exists():
                return candidate
        return path

    async def import_workflow(
        self, file_path: str, update: bool = True, backup: bool = True
    ) -> ImportReport:
        path = self._resolve(file_path)
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                data = json.loads(await f.read())
        except FileNotFoundError as exc:
            raise WorkflowError(f"workflow file not found: {file_path}") from exc
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise WorkflowError(f"{file_path} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise WorkflowError(f"{file_path} does not contain a workflow object")

        remote_id = str(data["id"]) if data.get("id") else None
        remote = None
        if remote_id and update:
            try:
                remote = await self.backend.get_workflow(remote_id)
            except BackendError as exc:
                if exc.status_code != 404:
                    raise

        backup_path = None
        if remote is not None and backup:
            stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
            name = sanitize_file_name(f"{remote.get('name') or remote_id}_backup_{stamp}.json")
            target = self.backup_directory / name
            await self._write_json(target, remote)
            backup_path = str(target)

        clean = strip_export_metadata(data)
        if remote is not None:
            result = await self.backend.update_workflow(remote_id, clean)
            action = "updated"
        else:
            result = await self.backend.create_workflow(clean)
            action = "created"
        logger.info("workflow_imported", file=str(path), action=action)
        return ImportReport(
            workflow_id=str(result.get("id") or remote_id or ""),
            name=result.get("name") or data.get("name") or path.stem,
            action=action,
            backup_path=backup_path,
        )

    async def test_workflow(self, workflow_id: str) -> WorkflowTestReport:
        start = time.monotonic()
        workflow = await self.backend.get_workflow(workflow_id)
        errors, warnings = validate_structure(workflow)
        name = workflow.get("name")
        if errors:
            return WorkflowTestReport(
                workflow_id=workflow_id, name=name, status="invalid", passed=False,
                errors=errors, warnings=warnings,
            )

        execution_id = await self.backend.execute_workflow(workflow_id, {})
        deadline = start + self.settings.test_timeout
        status = "running"
        while True:
            execution = await self.backend.get_execution(execution_id)
            status = execution.get("status") or ("success" if execution.get("finished") else "running")
            if status in TERMINAL_STATUSES:
                break
            if time.monotonic() >= deadline:
                status = "timeout"
                errors.append(
                    f"Execution {execution_id} did not finish within {self.settings.test_timeout:g}s"
                )
                break
            await asyncio.sleep(self.poll_interval)

        if status in TERMINAL_STATUSES and status != "success":
            errors.append(execution_error(execution) or f"Execution ended with status '{status}'")
        return WorkflowTestReport(
            workflow_id=workflow_id,
            name=name,
            execution_id=execution_id,
            status=status,
            passed=status == "success",
            duration_seconds=round(time.monotonic() - start, 3),
            errors=errors,
            warnings=warnings,
        )

    async def review_workflow(self, workflow_id: str) -> WorkflowReview:
        workflow = await self.backend.get_workflow(workflow_id)
        review = self.analyzer.review(workflow)
        return review.model_copy(update={"workflow_id": workflow_id})


__all__ = [
    "FlowManager",
    "sanitize_file_name",
    "strip_export_metadata",
    "validate_structure",
]
