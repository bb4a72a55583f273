"""Turn handler results into uniform, human readable responses."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Literal, NamedTuple, Optional

from pydantic import BaseModel, Field

from ..errors import ErrorKind
from .catalog import PatternCatalog, TaskType
from .classifier import ClassificationResult
from .confirmation import ConfirmationDecision
from .results import (
    AnalysisReport,
    CapabilityOverview,
    ConnectionStatus,
    ExportReport,
    HandlerResult,
    ImportReport,
    ImprovementReport,
    SearchResults,
    StatusListing,
    TaskResult,
    UpgradePlan,
    VersionStatus,
    WorkflowReview,
    WorkflowTestReport,
)

if TYPE_CHECKING:
    from ..orchestrator.task import Task

ResponseStatus = Literal["completed", "failed", "confirmation_required", "ambiguous"]

DEFAULT_MESSAGE = "Operation completed successfully."

GENERIC_RECOVERY = (
    "Check the n8n configuration (N8N_BACKEND_URL and N8N_API_KEY)",
    "Verify the instruction names an existing workflow or file",
    "Try a simpler request, for example 'list workflows'",
)

MISSING_PARAMETER_HINTS = {
    "workflow_id": "Specify a workflow id, for example 'test workflow abc123'",
    "file_path": "Specify a file path, for example 'import workflow file flows/orders.json'",
}


class TaskSummary(BaseModel):
    type: TaskType
    raw_instruction: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    requires_confirmation: bool = False
    confidence: float = 0.0


class Response(BaseModel):
    """The only artifact callers of the engine ever see."""

    success: bool
    status: ResponseStatus
    message: str
    suggestions: list[str] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list)
    task: TaskSummary
    data: Optional[dict[str, Any]] = None
    error_kind: Optional[ErrorKind] = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class Rendered(NamedTuple):
    message: str
    suggestions: list[str]
    next_steps: list[str]


def _analysis(r: AnalysisReport) -> Rendered:
    s = r.summary
    if s.critical > 0:
        return Rendered(
            f"System analysis complete. Found {s.critical} critical issues and {s.total_issues} "
            f"total issues. Overall rating: {s.rating}. Immediate attention required.",
            [
                "Fix critical issues immediately, starting with hardcoded credentials",
                f"Estimated effort: {s.estimated_effort}",
            ],
            ["Preview fixes with 'fix critical issues dry run'", "Create an upgrade plan"],
        )
    if s.total_issues > 0:
        return Rendered(
            f"System analysis complete. Found {s.total_issues} issues. Overall rating: "
            f"{s.rating}. Consider applying improvements.",
            [f"Estimated effort: {s.estimated_effort}"],
            ["Preview fixes with 'apply improvements dry run'", "Create an upgrade plan"],
        )
    return Rendered(
        f"System analysis complete. No issues found in {s.files_analyzed} workflows. "
        f"Overall rating: {s.rating}. System is healthy.",
        [],
        ["Export workflows to keep the repository current"],
    )


def _improvement(r: ImprovementReport) -> Rendered:
    count = len(r.improvements)
    suggestions = []
    if r.manual_count:
        suggestions.append(f"{r.manual_count} issues need manual attention")
    if r.dry_run:
        if count:
            suggestions.insert(0, "Re-run the instruction with 'apply' to write these fixes")
        return Rendered(
            f"System improvement preview: {count} automated fixes available.",
            suggestions,
            ["Review the listed fixes", "Run 'apply improvements' to execute them"],
        )
    return Rendered(
        f"System improvements applied: {r.applied_count} fixes written.",
        suggestions,
        ["Run a system analysis to confirm the fixes", "Export workflows to commit the result"],
    )


def _upgrade(r: UpgradePlan) -> Rendered:
    suggestions = []
    if r.fits_timeline is False:
        suggestions.append(
            f"The plan needs {r.estimated_weeks} weeks, longer than the requested {r.timeline}"
        )
    next_steps = [f"Start with phase 1: {r.phases[0].name}"] if r.phases else []
    return Rendered(
        f"Upgrade plan created: {len(r.phases)} phases over {r.estimated_weeks} weeks. "
        f"Risk level: {r.risk_level}.",
        suggestions,
        next_steps,
    )


def _export(r: ExportReport) -> Rendered:
    if not r.exported:
        return Rendered("No workflows found to export.", ["Check that n8n has workflows"], [])
    saved = "Files saved and committed." if r.committed else "Files saved, nothing new to commit."
    return Rendered(
        f"Workflow export complete: {len(r.exported)} workflows exported. {saved}",
        [],
        ["Run a system analysis on the exported workflows"],
    )


def _import(r: ImportReport) -> Rendered:
    suggestions = [f"Previous version backed up to {r.backup_path}"] if r.backup_path else []
    return Rendered(
        f'Workflow "{r.name}" {r.action} in n8n.',
        suggestions,
        [f"Test it with 'test workflow {r.workflow_id}'"] if r.workflow_id else [],
    )


def _testing(r: WorkflowTestReport) -> Rendered:
    label = r.name or r.workflow_id
    if r.passed:
        return Rendered(
            f"Workflow test passed: {label} finished in {r.duration_seconds:g}s "
            f"with {len(r.warnings)} warnings.",
            list(r.warnings),
            [],
        )
    return Rendered(
        f"Workflow test {r.status}: {label} has {len(r.errors)} errors, "
        f"{len(r.warnings)} warnings.",
        list(r.errors) + list(r.warnings),
        [f"Review the workflow with 'optimize workflow {r.workflow_id}'"],
    )


def _status(r: StatusListing) -> Rendered:
    inactive = r.total - r.active_count
    return Rendered(
        f"Workflow status: {r.total} workflows found ({r.active_count} active, {inactive} inactive).",
        [],
        ["Export workflows to back them up"] if r.total else [],
    )


def _review(r: WorkflowReview) -> Rendered:
    return Rendered(
        f'Workflow "{r.name}" analysis: {len(r.issues)} issues, '
        f"{len(r.optimizations)} optimizations available. Rating: {r.rating}.",
        [i.message for i in r.issues if i.severity in ("critical", "high")] + list(r.optimizations),
        [f"Test it with 'test workflow {r.workflow_id}'"],
    )


def _connection(r: ConnectionStatus) -> Rendered:
    if r.connected:
        return Rendered(
            "n8n connection successful. System is ready for workflow management.",
            [],
            ["List workflows with 'list workflows'"],
        )
    return Rendered(
        f"n8n connection failed: {r.error or 'unknown error'}",
        [f"Check that n8n is running at {r.url}", "Check N8N_API_KEY"],
        [],
    )


def _version(r: VersionStatus) -> Rendered:
    branch = r.branch or "unknown"
    suggestions = [f"Push {r.ahead} local commits"] if r.ahead else []
    if r.clean:
        return Rendered(f"Flows repository is clean on branch {branch}.", suggestions, [])
    return Rendered(
        f"{len(r.changes)} uncommitted changes on branch {branch}.",
        suggestions,
        ["Commit them with 'export workflows' or git"],
    )


def _search(r: SearchResults) -> Rendered:
    return Rendered(f"Found {len(r.results)} workflow templates for '{r.query}'.", [], [])


def _capabilities(r: CapabilityOverview) -> Rendered:
    examples = [
        f"Try '{row['example_phrases'][0]}' ({row['description'].lower()})"
        for row in r.task_types
        if row.get("example_phrases")
    ]
    return Rendered(
        "n8n Flow Manager is ready to help with workflow analysis and management.",
        examples,
        [],
    )


Template = Callable[[Any], Rendered]

TEMPLATES: dict[TaskType, Template] = {
    TaskType.SYSTEM_ANALYSIS: _analysis,
    TaskType.SYSTEM_IMPROVEMENT: _improvement,
    TaskType.UPGRADE_PLANNING: _upgrade,
    TaskType.WORKFLOW_EXPORT: _export,
    TaskType.WORKFLOW_IMPORT: _import,
    TaskType.WORKFLOW_TESTING: _testing,
    TaskType.STATUS_LISTING: _status,
    TaskType.WORKFLOW_ENHANCEMENT: _review,
    TaskType.CONNECTION_TEST: _connection,
    TaskType.VERSION_STATUS: _version,
    TaskType.WORKFLOW_SEARCH: _search,
    TaskType.GENERAL_QUERY: _capabilities,
}


def _dump(data: TaskResult | None) -> dict[str, Any] | None:
    return None if data is None else data.model_dump(mode="json")


class ResponseSynthesizer:
    """Build responses from per task type templates.

    Types without a template fall back to :data:`DEFAULT_MESSAGE`. Failures
    always carry the generic recovery list after any kind specific advice.
    """

    def __init__(
        self,
        catalog: PatternCatalog | None = None,
        templates: dict[TaskType, Template] | None = None,
    ) -> None:
        self.catalog = catalog or PatternCatalog()
        self.templates = TEMPLATES if templates is None else templates

    def _summary(self, task: Task) -> TaskSummary:
        return TaskSummary(**task.summary())

    def synthesize(
        self,
        result: HandlerResult,
        task: Task,
        classification: ClassificationResult | None = None,
    ) -> Response:
        if result.error_kind is ErrorKind.CLASSIFICATION_AMBIGUOUS:
            return self.ambiguous(task, classification)
        if not result.success:
            return self.failure(task, result.error or "unknown error", result.error_kind, result.missing)

        template = self.templates.get(task.type)
        if template is None or result.data is None:
            rendered = Rendered(DEFAULT_MESSAGE, [], [])
        else:
            rendered = template(result.data)
        return Response(
            success=True,
            status="completed",
            message=rendered.message,
            suggestions=rendered.suggestions,
            next_steps=rendered.next_steps,
            task=self._summary(task),
            data=_dump(result.data),
        )

    def failure(
        self,
        task: Task,
        error: str,
        kind: ErrorKind | None = ErrorKind.HANDLER_FAILURE,
        missing: tuple[str, ...] = (),
    ) -> Response:
        specific: list[str] = []
        if kind is ErrorKind.MISSING_PARAMETER:
            specific = [MISSING_PARAMETER_HINTS.get(m, f"Specify {m}") for m in missing]
        elif kind is ErrorKind.TIMEOUT:
            specific = ["Raise N8N_HANDLER_TIMEOUT or narrow the request"]
        elif kind is ErrorKind.NOT_IMPLEMENTED:
            specific = ["This capability has no provider configured"]
        return Response(
            success=False,
            status="failed",
            message=f"{task.type.label} failed: {error}",
            suggestions=specific + list(GENERIC_RECOVERY),
            next_steps=[],
            task=self._summary(task),
            error_kind=kind,
        )

    def ambiguous(self, task: Task, classification: ClassificationResult | None = None) -> Response:
        closest = classification.closest(3) if classification else []
        suggestions = []
        if closest:
            suggestions.append("Did you mean: " + ", ".join(t.label for t in closest) + "?")
        suggestions.append(
            "Available task types: " + ", ".join(t.value for t in self.catalog.task_types)
        )
        suggestions.append("Rephrase using an example such as 'analyze the system' or 'list workflows'")
        return Response(
            success=False,
            status="ambiguous",
            message=f"Could not determine what to do with: '{task.raw_instruction}'",
            suggestions=suggestions,
            next_steps=["Ask 'what can you do' for examples"],
            task=self._summary(task),
            error_kind=ErrorKind.CLASSIFICATION_AMBIGUOUS,
        )

    def confirmation_required(self, task: Task, decision: ConfirmationDecision) -> Response:
        return Response(
            success=False,
            status="confirmation_required",
            message=f"Confirmation required: {decision.reason}.",
            suggestions=[
                'Re-submit the same instruction with context {"confirmed": true} to proceed',
                "Add 'dry run' to the instruction to preview the changes first",
            ],
            next_steps=["Review what will change before confirming"],
            task=self._summary(task),
            error_kind=ErrorKind.CONFIRMATION_REQUIRED,
        )


__all__ = [
    "DEFAULT_MESSAGE",
    "GENERIC_RECOVERY",
    "Rendered",
    "Response",
    "ResponseSynthesizer",
    "TEMPLATES",
    "TaskSummary",
]
