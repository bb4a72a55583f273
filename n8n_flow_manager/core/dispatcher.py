"""Route classified tasks to exactly one collaborator call each."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping

from pydantic import ValidationError

from ..collaborators.base import (
    CapabilitySearch,
    FlowOperations,
    ProjectAnalyzer,
    VersionControl,
    WorkflowBackend,
)
from ..collaborators.search import UnavailableSearch
from ..errors import CapabilityNotImplemented, DispatchConfigurationError, ErrorKind
from .catalog import PatternCatalog, TaskType
from .results import CapabilityOverview, HandlerResult, StatusListing, coerce_result

if TYPE_CHECKING:
    from ..orchestrator.task import Task

Handler = Callable[["Task"], Awaitable[Any]]

DEFAULT_HANDLER_TIMEOUT = 300.0

REQUIRED_PARAMETERS: Mapping[TaskType, tuple[str, ...]] = {
    TaskType.WORKFLOW_IMPORT: ("file_path",),
    TaskType.WORKFLOW_TESTING: ("workflow_id",),
    TaskType.WORKFLOW_ENHANCEMENT: ("workflow_id",),
}


class TaskDispatcher:
    """Total mapping from :class:`TaskType` to an async handler.

    Handlers check nothing themselves: required parameters are validated
    here before the call, the call is bounded by ``timeout`` seconds and any
    exception is reported as a failed :class:`HandlerResult`.
    """

    def __init__(
        self,
        backend: WorkflowBackend,
        vcs: VersionControl,
        analyzer: ProjectAnalyzer,
        flows: FlowOperations,
        search: CapabilitySearch | None = None,
        catalog: PatternCatalog | None = None,
        timeout: float = DEFAULT_HANDLER_TIMEOUT,
    ) -> None:
        self.backend = backend
        self.vcs = vcs
        self.analyzer = analyzer
        self.flows = flows
        self.search = search or UnavailableSearch()
        self.catalog = catalog or PatternCatalog()
        self.timeout = timeout
        self._handlers = dict(self._build_handlers())
        missing = [t.value for t in TaskType if t not in self._handlers]
        if missing:
            raise DispatchConfigurationError(
                f"no handler registered for: {', '.join(missing)}", {"missing": missing}
            )

    def _build_handlers(self) -> Mapping[TaskType, Handler]:
        return {
            TaskType.SYSTEM_ANALYSIS: self._analyze_system,
            TaskType.SYSTEM_IMPROVEMENT: self._improve_system,
            TaskType.UPGRADE_PLANNING: self._plan_upgrade,
            TaskType.WORKFLOW_EXPORT: self._export_workflows,
            TaskType.WORKFLOW_IMPORT: self._import_workflow,
            TaskType.WORKFLOW_TESTING: self._test_workflow,
            TaskType.STATUS_LISTING: self._list_status,
            TaskType.WORKFLOW_ENHANCEMENT: self._review_workflow,
            TaskType.CONNECTION_TEST: self._test_connection,
            TaskType.VERSION_STATUS: self._version_status,
            TaskType.WORKFLOW_SEARCH: self._search_workflows,
            TaskType.GENERAL_QUERY: self._describe_capabilities,
            TaskType.UNKNOWN: self._describe_capabilities,
        }

    @property
    def task_types(self) -> list[TaskType]:
        return list(self._handlers)

    async def dispatch(self, task: Task) -> HandlerResult:
        handler = self._handlers.get(task.type)
        if handler is None:
            raise DispatchConfigurationError(f"no handler registered for {task.type!r}")

        params = task.parameters
        missing = tuple(
            name for name in REQUIRED_PARAMETERS.get(task.type, ()) if getattr(params, name) is None
        )
        if missing:
            return HandlerResult.fail(
                ErrorKind.MISSING_PARAMETER,
                f"missing required parameter: {', '.join(missing)}",
                missing=missing,
            )

        try:
            raw = await asyncio.wait_for(handler(task), timeout=self.timeout)
        except asyncio.TimeoutError:
            return HandlerResult.fail(
                ErrorKind.TIMEOUT, f"{task.type.label} did not finish within {self.timeout:g}s"
            )
        except CapabilityNotImplemented as exc:
            return HandlerResult.fail(ErrorKind.NOT_IMPLEMENTED, str(exc))
        except Exception as exc:  # noqa: BLE001
            return HandlerResult.fail(ErrorKind.HANDLER_FAILURE, str(exc) or type(exc).__name__)

        try:
            data = coerce_result(task.type, raw)
        except ValidationError as exc:
            return HandlerResult.fail(
                ErrorKind.HANDLER_FAILURE,
                f"{task.type.label} returned an unexpected result: {exc.error_count()} invalid field(s)",
            )

        if task.type is TaskType.UNKNOWN:
            return HandlerResult.fail(
                ErrorKind.CLASSIFICATION_AMBIGUOUS,
                "instruction did not match any known task type",
                data=data,
            )
        return HandlerResult.ok(data)

    # handlers -----------------------------------------------------------

    async def _analyze_system(self, task: Task) -> Any:
        return await self.analyzer.analyze_project(detailed=bool(task.parameters.detailed))

    async def _improve_system(self, task: Task) -> Any:
        params = task.parameters
        dry_run = True if params.dry_run else not params.apply
        return await self.analyzer.apply_improvements(dry_run=dry_run, priority=params.priority)

    async def _plan_upgrade(self, task: Task) -> Any:
        params = task.parameters
        return await self.analyzer.plan_upgrade(timeline=params.timeline, risk=params.risk)

    async def _export_workflows(self, task: Task) -> Any:
        params = task.parameters
        workflow_id = None if params.all else params.workflow_id
        return await self.flows.export_workflows(workflow_id)

    async def _import_workflow(self, task: Task) -> Any:
        return await self.flows.import_workflow(
            task.parameters.file_path,
            update=bool(task.context.get("update", True)),
            backup=bool(task.context.get("backup", True)),
        )

    async def _test_workflow(self, task: Task) -> Any:
        return await self.flows.test_workflow(task.parameters.workflow_id)

    async def _list_status(self, task: Task) -> Any:
        params = task.parameters
        active = True if params.active_only else False if params.inactive_only else None
        workflows = await self.backend.list_workflows(active=active)
        if isinstance(workflows, list):
            return StatusListing.from_workflows(workflows)
        return workflows

    async def _review_workflow(self, task: Task) -> Any:
        return await self.flows.review_workflow(task.parameters.workflow_id)

    async def _test_connection(self, task: Task) -> Any:
        return await self.backend.test_connection()

    async def _version_status(self, task: Task) -> Any:
        return await self.vcs.status()

    async def _search_workflows(self, task: Task) -> Any:
        return await self.search.search(task.parameters.query or task.normalized_instruction)

    async def _describe_capabilities(self, task: Task) -> Any:
        return CapabilityOverview(task_types=self.catalog.describe())


__all__ = ["DEFAULT_HANDLER_TIMEOUT", "Handler", "REQUIRED_PARAMETERS", "TaskDispatcher"]
