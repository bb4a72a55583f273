"""Confirmation gate between preview and execute for irreversible actions."""

from __future__ import annotations

from dataclasses import dataclass

from .catalog import TaskType
from .extractor import ExtractedParameters

DESTRUCTIVE_TYPES = frozenset({TaskType.SYSTEM_IMPROVEMENT, TaskType.WORKFLOW_IMPORT})


@dataclass(frozen=True)
class ConfirmationDecision:
    required: bool
    reason: str | None = None


class ConfirmationPolicy:
    """Pure decision over ``(task_type, parameters)``.

    Confirmation is required when an ``apply`` request targets a destructive
    task type, or when any ``apply`` request carries critical priority.
    ``unknown`` instructions never need confirmation.
    """

    def __init__(self, destructive_types: frozenset[TaskType] = DESTRUCTIVE_TYPES) -> None:
        self.destructive_types = destructive_types

    def decide(self, task_type: TaskType, parameters: ExtractedParameters) -> ConfirmationDecision:
        # An unclassified instruction is answered as ambiguous, never executed.
        if task_type is TaskType.UNKNOWN or not parameters.apply:
            return ConfirmationDecision(False)
        if task_type in self.destructive_types:
            return ConfirmationDecision(
                True, f"{task_type.label} with apply changes workflows irreversibly"
            )
        if parameters.priority == "critical":
            return ConfirmationDecision(True, "critical priority actions must be confirmed")
        return ConfirmationDecision(False)

    def requires_confirmation(self, task_type: TaskType, parameters: ExtractedParameters) -> bool:
        return self.decide(task_type, parameters).required


__all__ = ["ConfirmationDecision", "ConfirmationPolicy", "DESTRUCTIVE_TYPES"]
