"""Typed result models, one per task type, and the dispatcher's HandlerResult.

Response templates read fields from these models only, so a template cannot
reference a field that its task type does not produce.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..errors import ErrorKind
from .catalog import TaskType

Severity = Literal["critical", "high", "medium", "low"]


class _Result(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Issue(_Result):
    severity: Severity
    type: str
    message: str
    file: Optional[str] = None
    workflow: Optional[str] = None
    node: Optional[str] = None
    fixable: bool = False


class AnalysisSummary(_Result):
    total_issues: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    files_analyzed: int = 0
    rating: str = "Excellent"
    estimated_effort_hours: int = 0
    estimated_effort: str = "< 1 day"


class AnalysisReport(_Result):
    summary: AnalysisSummary
    issues: list[Issue] = Field(default_factory=list)
    detailed: bool = False


class Improvement(_Result):
    file: str
    description: str
    severity: Severity
    workflow: Optional[str] = None
    applied: bool = False


class ImprovementReport(_Result):
    dry_run: bool = True
    priority: Optional[Severity] = None
    improvements: list[Improvement] = Field(default_factory=list)
    applied_count: int = 0
    manual_count: int = 0


class UpgradePhase(_Result):
    name: str
    severity: Severity
    issue_count: int
    estimated_hours: int
    tasks: list[str] = Field(default_factory=list)


class UpgradePlan(_Result):
    phases: list[UpgradePhase] = Field(default_factory=list)
    total_hours: int = 0
    estimated_weeks: int = 0
    risk_level: str = "low"
    timeline: Optional[str] = None
    fits_timeline: Optional[bool] = None


class ExportedWorkflow(_Result):
    id: str
    name: str
    path: str


class ExportReport(_Result):
    exported: list[ExportedWorkflow] = Field(default_factory=list)
    committed: bool = False
    commit_message: Optional[str] = None


class ImportReport(_Result):
    workflow_id: str
    name: str
    action: Literal["created", "updated"]
    backup_path: Optional[str] = None


class WorkflowTestReport(_Result):
    workflow_id: str
    name: Optional[str] = None
    execution_id: Optional[str] = None
    status: str
    passed: bool
    duration_seconds: float = 0.0
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class WorkflowSummary(_Result):
    id: str
    name: str
    active: bool = False
    updated_at: Optional[str] = Field(None, alias="updatedAt")


class StatusListing(_Result):
    workflows: list[WorkflowSummary] = Field(default_factory=list)
    total: int = 0
    active_count: int = 0

    @classmethod
    def from_workflows(cls, workflows: list[Any]) -> "StatusListing":
        items = [
            w if isinstance(w, WorkflowSummary) else WorkflowSummary.model_validate(w)
            for w in workflows
        ]
        return cls(
            workflows=items, total=len(items), active_count=sum(1 for w in items if w.active)
        )


class WorkflowReview(_Result):
    workflow_id: str
    name: str
    issues: list[Issue] = Field(default_factory=list)
    rating: str = "Excellent"
    optimizations: list[str] = Field(default_factory=list)


class ConnectionStatus(_Result):
    connected: bool
    url: str
    workflow_count: Optional[int] = None
    error: Optional[str] = None


class FileChange(_Result):
    path: str
    status: str


class VersionStatus(_Result):
    branch: Optional[str] = None
    ahead: int = 0
    behind: int = 0
    changes: list[FileChange] = Field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.changes


class SearchResults(_Result):
    query: str
    results: list[dict[str, Any]] = Field(default_factory=list)


class CapabilityOverview(_Result):
    task_types: list[dict[str, Any]] = Field(default_factory=list)


TaskResult = Union[
    AnalysisReport,
    ImprovementReport,
    UpgradePlan,
    ExportReport,
    ImportReport,
    WorkflowTestReport,
    StatusListing,
    WorkflowReview,
    ConnectionStatus,
    VersionStatus,
    SearchResults,
    CapabilityOverview,
]

RESULT_MODELS: dict[TaskType, type[_Result]] = {
    TaskType.SYSTEM_ANALYSIS: AnalysisReport,
    TaskType.SYSTEM_IMPROVEMENT: ImprovementReport,
    TaskType.UPGRADE_PLANNING: UpgradePlan,
    TaskType.WORKFLOW_EXPORT: ExportReport,
    TaskType.WORKFLOW_IMPORT: ImportReport,
    TaskType.WORKFLOW_TESTING: WorkflowTestReport,
    TaskType.STATUS_LISTING: StatusListing,
    TaskType.WORKFLOW_ENHANCEMENT: WorkflowReview,
    TaskType.CONNECTION_TEST: ConnectionStatus,
    TaskType.VERSION_STATUS: VersionStatus,
    TaskType.WORKFLOW_SEARCH: SearchResults,
    TaskType.GENERAL_QUERY: CapabilityOverview,
    TaskType.UNKNOWN: CapabilityOverview,
}


def coerce_result(task_type: TaskType, value: Any) -> TaskResult:
    """Validate a collaborator's return value into the task type's model."""
    model = RESULT_MODELS[task_type]
    if isinstance(value, model):
        return value
    return model.model_validate(value)


@dataclass(frozen=True)
class HandlerResult:
    success: bool
    data: Optional[TaskResult] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    missing: tuple[str, ...] = ()

    @classmethod
    def ok(cls, data: TaskResult) -> "HandlerResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls,
        kind: ErrorKind,
        error: str,
        data: Optional[TaskResult] = None,
        missing: tuple[str, ...] = (),
    ) -> "HandlerResult":
        return cls(success=False, data=data, error=error, error_kind=kind, missing=missing)


__all__ = [
    "AnalysisReport",
    "AnalysisSummary",
    "CapabilityOverview",
    "ConnectionStatus",
    "ExportReport",
    "ExportedWorkflow",
    "FileChange",
    "HandlerResult",
    "ImportReport",
    "Improvement",
    "ImprovementReport",
    "Issue",
    "RESULT_MODELS",
    "SearchResults",
    "Severity",
    "StatusListing",
    "TaskResult",
    "WorkflowTestReport",
    "UpgradePhase",
    "UpgradePlan",
    "VersionStatus",
    "WorkflowReview",
    "WorkflowSummary",
    "coerce_result",
]
