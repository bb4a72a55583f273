"""Instruction pipeline: classify, extract, gate, dispatch, respond, remember."""

from __future__ import annotations

import time
from typing import Any

import structlog

from ..collaborators.analyzer import FlowAnalyzer
from ..collaborators.base import (
    CapabilitySearch,
    FlowOperations,
    ProjectAnalyzer,
    VersionControl,
    WorkflowBackend,
)
from ..collaborators.flows import FlowManager
from ..collaborators.git import GitRepository
from ..collaborators.n8n_client import N8nClient
from ..config import Settings, get_settings
from ..core.catalog import PatternCatalog, TaskType
from ..core.classifier import IntentClassifier, normalize
from ..core.confirmation import ConfirmationPolicy
from ..core.conversation import ConversationState
from ..core.dispatcher import TaskDispatcher
from ..core.extractor import ParameterExtractor
from ..core.responses import Response, ResponseSynthesizer
from ..environment import validate_environment
from ..errors import ErrorKind, VersionControlError
from ..utils.logging import log_event
from ..utils.tracing import async_span, tracer
from .task import Task

logger = structlog.get_logger()


class FlowManagerEngine:
    """Single entry point for operator instructions.

    Collaborators default to the n8n REST client, the git command line and
    the file based analyzer; pass your own to replace any of them.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        backend: WorkflowBackend | None = None,
        vcs: VersionControl | None = None,
        analyzer: ProjectAnalyzer | None = None,
        flows: FlowOperations | None = None,
        search: CapabilitySearch | None = None,
        catalog: PatternCatalog | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.catalog = catalog or PatternCatalog()
        self.classifier = IntentClassifier(self.catalog)
        self.extractor = ParameterExtractor()
        self.policy = ConfirmationPolicy()
        self.backend = backend or N8nClient(self.settings)
        self.vcs = vcs or GitRepository(self.settings)
        self.analyzer = analyzer or FlowAnalyzer(self.settings.flows_directory)
        self.flows = flows or FlowManager(
            self.settings,
            self.backend,
            self.vcs,
            self.analyzer if isinstance(self.analyzer, FlowAnalyzer) else None,
        )
        self.dispatcher = TaskDispatcher(
            self.backend,
            self.vcs,
            self.analyzer,
            self.flows,
            search=search,
            catalog=self.catalog,
            timeout=self.settings.handler_timeout,
        )
        self.synthesizer = ResponseSynthesizer(self.catalog)
        self.state = ConversationState()
        # In-flight tasks keyed by task id, oldest first.
        self._active: dict[str, Task] = {}
        self.initialized = False

    async def init(self) -> None:
        report = validate_environment(self.settings)
        for issue in report.errors + report.warnings:
            logger.warning("environment_issue", type=issue.type, message=issue.message)
        if isinstance(self.flows, FlowManager):
            self.flows.ensure_directories()
        if isinstance(self.vcs, GitRepository):
            try:
                await self.vcs.ensure_repository()
            except VersionControlError as exc:
                logger.warning("git_unavailable", error=exc.message)
        if isinstance(self.backend, N8nClient):
            await self.backend.open()
        self.initialized = True

    async def shutdown(self) -> None:
        if isinstance(self.backend, N8nClient):
            await self.backend.close()
        self.initialized = False

    async def __aenter__(self) -> "FlowManagerEngine":
        await self.init()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.shutdown()

    async def _emit(self, event: str, data: dict[str, Any]) -> None:
        # The event log is best effort; a full disk must not fail an instruction.
        try:
            await log_event(event, data)
        except Exception as exc:  # noqa: BLE001
            logger.warning("event_log_failed", event_name=event, error=str(exc))

    async def execute_instruction(
        self, instruction: str, context: dict[str, Any] | None = None
    ) -> Response:
        """Interpret ``instruction`` and return a response. Never raises."""
        instruction = instruction or ""
        context = dict(context or {})
        start = time.monotonic()
        try:
            response = await self._execute(instruction, context)
        except Exception as exc:  # noqa: BLE001
            logger.exception("instruction_error", instruction=instruction)
            await self._emit("instruction_error", {"instruction": instruction, "error": str(exc)})
            task = Task(
                raw_instruction=instruction,
                normalized_instruction=normalize(instruction),
                type=TaskType.UNKNOWN,
                context=context,
            )
            response = self.synthesizer.failure(task, f"internal error: {exc}", ErrorKind.HANDLER_FAILURE)

        self.state.record(
            instruction,
            {
                "type": response.task.type.value,
                "status": response.status,
                "success": response.success,
                "message": response.message,
            },
        )
        await self._emit(
            "instruction_completed",
            {
                "type": response.task.type.value,
                "status": response.status,
                "success": response.success,
                "duration_ms": int((time.monotonic() - start) * 1000),
            },
        )
        return response

    async def _execute(self, instruction: str, context: dict[str, Any]) -> Response:
        async with async_span("execute_instruction", tracer):
            await self._emit(
                "instruction_received", {"instruction": instruction, "context_keys": sorted(context)}
            )
            self.state.begin(instruction, context)

            classification = self.classifier.classify(instruction)
            params = self.extractor.extract(instruction, classification.type)
            decision = self.policy.decide(classification.type, params)
            task = Task(
                raw_instruction=instruction,
                normalized_instruction=normalize(instruction),
                type=classification.type,
                parameters=params,
                context=context,
                requires_confirmation=decision.required,
                confidence=classification.confidence,
            )
            self._active[task.id] = task
            await self._emit(
                "instruction_classified",
                {
                    "task_id": task.id,
                    "type": task.type.value,
                    "confidence": task.confidence,
                    "matched_pattern": classification.matched_pattern,
                    "parameters": params.to_dict(),
                },
            )

            try:
                if decision.required and context.get("confirmed") is not True:
                    await self._emit(
                        "confirmation_required",
                        {"task_id": task.id, "type": task.type.value, "reason": decision.reason},
                    )
                    return self.synthesizer.confirmation_required(task, decision)

                async with async_span("dispatch", tracer, attributes={"task_type": task.type.value}):
                    result = await self.dispatcher.dispatch(task)
                if not result.success and result.error_kind is not ErrorKind.CLASSIFICATION_AMBIGUOUS:
                    await self._emit(
                        "handler_failed",
                        {
                            "task_id": task.id,
                            "type": task.type.value,
                            "error_kind": result.error_kind.value if result.error_kind else None,
                            "error": result.error,
                        },
                    )
                return self.synthesizer.synthesize(result, task, classification)
            finally:
                self._active.pop(task.id, None)

    def get_available_task_types(self) -> list[dict[str, Any]]:
        return self.catalog.describe()

    def get_execution_history(self, limit: int = 10) -> list[dict[str, Any]]:
        return self.state.history(limit)

    def get_context(self) -> dict[str, Any]:
        active = [t.summary() for t in self._active.values()]
        return {
            "active_task": active[-1] if active else None,
            "active_tasks": active,
            **self.state.snapshot(),
        }


__all__ = ["FlowManagerEngine"]
