"""Static table of task types, their trigger phrases and synonym groups.

Adding a task type means adding a row to ``DEFAULT_PATTERNS`` (and a handler
to the dispatcher); the classifier itself never branches on task types.
Row order matters: the classifier breaks score ties in favour of the row
that comes first.
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TaskType(str, Enum):
    SYSTEM_ANALYSIS = "system_analysis"
    SYSTEM_IMPROVEMENT = "system_improvement"
    UPGRADE_PLANNING = "upgrade_planning"
    WORKFLOW_EXPORT = "workflow_export"
    WORKFLOW_IMPORT = "workflow_import"
    WORKFLOW_TESTING = "workflow_testing"
    STATUS_LISTING = "status_listing"
    WORKFLOW_ENHANCEMENT = "workflow_enhancement"
    CONNECTION_TEST = "connection_test"
    VERSION_STATUS = "version_status"
    WORKFLOW_SEARCH = "workflow_search"
    GENERAL_QUERY = "general_query"
    # Reserved fallback for low-confidence instructions; never a catalog row.
    UNKNOWN = "unknown"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


class TaskPattern(BaseModel):
    """Schema for one catalog row."""

    description: str
    trigger_phrases: tuple[str, ...] = Field(min_length=1)
    examples: tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)

    @field_validator("trigger_phrases")
    @classmethod
    def _normalize_phrases(cls, phrases: tuple[str, ...]) -> tuple[str, ...]:
        cleaned = tuple(" ".join(p.lower().split()) for p in phrases)
        if any(not p for p in cleaned):
            raise ValueError("trigger phrases must not be blank")
        return cleaned


DEFAULT_SYNONYM_GROUPS: tuple[frozenset[str], ...] = (
    frozenset({"analyze", "check", "scan", "examine", "inspect"}),
    frozenset({"fix", "repair", "improve", "enhance", "optimize"}),
    frozenset({"test", "validate", "verify", "check"}),
    frozenset({"export", "save", "backup", "download"}),
    frozenset({"import", "upload", "restore", "load"}),
    frozenset({"workflow", "flow", "process", "automation"}),
    frozenset({"status", "state", "condition", "health"}),
    frozenset({"search", "find", "lookup", "discover"}),
)


# Built-in rows. No phrase may contain, as a contiguous substring, a phrase
# from an earlier row; otherwise the earlier row would win an exact match.
DEFAULT_PATTERNS: dict[TaskType, TaskPattern] = {
    TaskType.SYSTEM_ANALYSIS: TaskPattern(
        description="Analyze exported workflows and report issues by severity",
        trigger_phrases=(
            "analyze the system",
            "analyze system",
            "check system health",
            "system health check",
            "health check",
            "scan for problems",
            "what issues exist",
            "system analysis",
            "code quality check",
            "inspect system",
            "diagnose problems",
        ),
        examples=("analyze the system", "run a detailed system health check"),
    ),
    TaskType.SYSTEM_IMPROVEMENT: TaskPattern(
        description="Preview or apply automated fixes for detected issues",
        trigger_phrases=(
            "fix issues",
            "fix critical issues",
            "apply improvements",
            "apply fixes",
            "improve code",
            "fix problems automatically",
            "make improvements",
            "enhance system",
            "auto-fix",
            "resolve problems",
            "solve issues",
        ),
        examples=("preview fixes for all issues", "fix all critical issues now, apply it"),
    ),
    TaskType.UPGRADE_PLANNING: TaskPattern(
        description="Create a phased upgrade plan from the current issues",
        trigger_phrases=(
            "plan upgrade",
            "create upgrade plan",
            "upgrade plan",
            "create upgrade path",
            "upgrade path",
            "upgrade strategy",
            "strategic planning",
            "roadmap",
            "improvement plan",
        ),
        examples=("create upgrade plan", "build a roadmap within 6 weeks, low risk"),
    ),
    TaskType.WORKFLOW_EXPORT: TaskPattern(
        description="Export workflows from n8n to disk and commit them",
        trigger_phrases=(
            "export workflows",
            "export workflow",
            "export all workflows",
            "save workflows",
            "backup workflows",
            "download flows",
            "extract workflows",
        ),
        examples=("export all workflows", "export workflow abc123"),
    ),
    TaskType.WORKFLOW_IMPORT: TaskPattern(
        description="Import a workflow JSON file into n8n",
        trigger_phrases=(
            "import workflow",
            "upload workflow",
            "restore workflow",
            "deploy workflow",
            "load workflow",
            "install workflow",
        ),
        examples=("import workflow file flows/orders.json",),
    ),
    TaskType.WORKFLOW_TESTING: TaskPattern(
        description="Execute a workflow and validate the run",
        trigger_phrases=(
            "test workflow",
            "validate workflow",
            "check workflow",
            "verify workflow",
            "run tests",
            "test functionality",
        ),
        examples=("test workflow abc123",),
    ),
    TaskType.STATUS_LISTING: TaskPattern(
        description="List workflows and their activation state",
        trigger_phrases=(
            "show status",
            "list workflows",
            "list active workflows",
            "workflow status",
            "workflow list",
            "display workflows",
            "show workflows",
            "current state",
        ),
        examples=("list workflows", "list inactive workflows"),
    ),
    TaskType.WORKFLOW_ENHANCEMENT: TaskPattern(
        description="Review a single workflow for issues and optimizations",
        trigger_phrases=(
            "enhance workflow",
            "optimize workflow",
            "improve workflow",
            "analyze workflow",
            "workflow analysis",
        ),
        examples=("optimize workflow abc123",),
    ),
    TaskType.CONNECTION_TEST: TaskPattern(
        description="Test the connection to the n8n instance",
        trigger_phrases=(
            "test connection",
            "check connection",
            "verify connection",
            "connection status",
            "n8n connection",
            "check n8n connection",
        ),
        examples=("test connection",),
    ),
    TaskType.VERSION_STATUS: TaskPattern(
        description="Show version control state of the flows repository",
        trigger_phrases=(
            "git status",
            "check git status",
            "version control status",
            "uncommitted changes",
            "show git changes",
        ),
        examples=("check git status",),
    ),
    TaskType.WORKFLOW_SEARCH: TaskPattern(
        description="Search external workflow repositories for templates",
        trigger_phrases=(
            "search workflows",
            "find workflow",
            "search templates",
            "find similar workflows",
            "search repository",
        ),
        examples=("search workflows for slack alerts",),
    ),
    TaskType.GENERAL_QUERY: TaskPattern(
        description="Explain what the flow manager can do",
        trigger_phrases=(
            "help",
            "what can you do",
            "show capabilities",
            "available commands",
            "list commands",
        ),
        examples=("what can you do",),
    ),
}


class PatternCatalog:
    """Read-only, ordered view over task patterns and synonym groups."""

    def __init__(
        self,
        patterns: Mapping[TaskType, TaskPattern] | None = None,
        synonym_groups: Iterable[Iterable[str]] | None = None,
    ) -> None:
        rows = dict(DEFAULT_PATTERNS if patterns is None else patterns)
        if TaskType.UNKNOWN in rows:
            raise ValueError("'unknown' is reserved and cannot be a catalog row")
        self._patterns: Mapping[TaskType, TaskPattern] = MappingProxyType(rows)
        groups = DEFAULT_SYNONYM_GROUPS if synonym_groups is None else synonym_groups
        self._groups: tuple[frozenset[str], ...] = tuple(
            frozenset(w.lower() for w in g) for g in groups
        )

    def __iter__(self) -> Iterator[tuple[TaskType, TaskPattern]]:
        return iter(self._patterns.items())

    def __len__(self) -> int:
        return len(self._patterns)

    def __contains__(self, task_type: object) -> bool:
        return task_type in self._patterns

    def get(self, task_type: TaskType) -> TaskPattern:
        return self._patterns[task_type]

    @property
    def task_types(self) -> list[TaskType]:
        return list(self._patterns)

    @property
    def synonym_groups(self) -> tuple[frozenset[str], ...]:
        return self._groups

    def are_synonyms(self, a: str, b: str) -> bool:
        return any(a in g and b in g for g in self._groups)

    def describe(self) -> list[dict]:
        """Return ``{type, description, example_phrases}`` for every row."""
        return [
            {
                "type": task_type.value,
                "description": pattern.description,
                "example_phrases": list(pattern.examples or pattern.trigger_phrases[:3]),
            }
            for task_type, pattern in self
        ]


__all__ = [
    "TaskType",
    "TaskPattern",
    "PatternCatalog",
    "DEFAULT_PATTERNS",
    "DEFAULT_SYNONYM_GROUPS",
]
