"""Static analysis of exported workflow JSON files.

Each workflow is checked against a fixed set of rules. A few findings are
mechanically fixable (pinned test data, padded node names, missing execution
order); everything else needs a human.
"""

from __future__ import annotations

import copy
import json
import math
import re
from pathlib import Path
from typing import Any, Iterable

import aiofiles  # type: ignore
import structlog

from ..core.results import (
    AnalysisReport,
    AnalysisSummary,
    Improvement,
    ImprovementReport,
    Issue,
    Severity,
    UpgradePhase,
    UpgradePlan,
    WorkflowReview,
)

logger = structlog.get_logger()

SEVERITY_ORDER: tuple[Severity, ...] = ("critical", "high", "medium", "low")
EFFORT_HOURS = {"critical": 8, "high": 4, "medium": 2, "low": 1}
PHASE_NAMES = {
    "critical": "Critical fixes",
    "high": "High priority improvements",
    "medium": "Medium priority improvements",
    "low": "Low priority cleanup",
}
FIXABLE_TYPES = frozenset({"pinned_data", "node_name_whitespace", "missing_execution_order"})

_SECRET_KEY = re.compile(r"api[_-]?key|password|passwd|secret|token|authorization", re.IGNORECASE)
_TIMELINE = re.compile(r"(\d+)\s*(day|week|month)", re.IGNORECASE)
_STICKY_NOTE = "n8n-nodes-base.stickynote"
_TRIGGER_SUFFIXES = (".webhook", ".cron", ".start", ".interval")


def is_trigger(node_type: str) -> bool:
    t = node_type.lower()
    return "trigger" in t or t.endswith(_TRIGGER_SUFFIXES)


def connected_node_names(connections: dict[str, Any] | None) -> set[str]:
    names: set[str] = set()
    for source, outputs in (connections or {}).items():
        names.add(source)
        for branches in (outputs or {}).values():
            for branch in branches or []:
                for target in branch or []:
                    if isinstance(target, dict) and target.get("node"):
                        names.add(target["node"])
    return names


def _looks_literal(value: Any) -> bool:
    # n8n expressions start with "=" and are resolved at runtime.
    return isinstance(value, str) and bool(value.strip()) and not value.startswith("=")


def secret_paths(params: Any, prefix: str = "") -> list[str]:
    """Dotted paths of parameters that look like hardcoded credentials."""
    found: list[str] = []
    if isinstance(params, dict):
        name = params.get("name")
        if isinstance(name, str) and _SECRET_KEY.search(name) and _looks_literal(params.get("value")):
            found.append(f"{prefix}.{name}" if prefix else name)
        for key, value in params.items():
            path = f"{prefix}.{key}" if prefix else key
            if _SECRET_KEY.search(key) and _looks_literal(value):
                found.append(path)
            elif isinstance(value, (dict, list)):
                found.extend(secret_paths(value, path))
    elif isinstance(params, list):
        for i, value in enumerate(params):
            found.extend(secret_paths(value, f"{prefix}[{i}]"))
    return found


def review_workflow_data(workflow: dict[str, Any], file: str | None = None) -> list[Issue]:
    """Run every rule against one workflow document."""
    name = workflow.get("name") or file or "unnamed"
    nodes = [n for n in workflow.get("nodes") or [] if isinstance(n, dict)]

    def issue(severity: Severity, kind: str, message: str, node: str | None = None) -> Issue:
        return Issue(
            severity=severity,
            type=kind,
            message=message,
            file=file,
            workflow=name,
            node=node,
            fixable=kind in FIXABLE_TYPES,
        )

    if not nodes:
        return [issue("high", "empty_workflow", f"Workflow '{name}' has no nodes")]

    issues: list[Issue] = []
    for node in nodes:
        for path in secret_paths(node.get("parameters") or {}):
            issues.append(
                issue(
                    "critical",
                    "hardcoded_secret",
                    f"Node '{node.get('name')}' has a hardcoded credential in '{path}'",
                    node.get("name"),
                )
            )

    working = [n for n in nodes if str(n.get("type", "")).lower() != _STICKY_NOTE]
    if working and not any(is_trigger(str(n.get("type", ""))) for n in working):
        issues.append(issue("medium", "missing_trigger", f"Workflow '{name}' has no trigger node"))

    if len(working) > 1:
        linked = connected_node_names(workflow.get("connections"))
        for node in working:
            if node.get("name") not in linked:
                issues.append(
                    issue(
                        "medium",
                        "disconnected_node",
                        f"Node '{node.get('name')}' is not connected to anything",
                        node.get("name"),
                    )
                )

    if workflow.get("pinData"):
        issues.append(issue("low", "pinned_data", f"Workflow '{name}' still carries pinned test data"))

    for node in nodes:
        node_name = node.get("name")
        if isinstance(node_name, str) and node_name != node_name.strip():
            issues.append(
                issue(
                    "low",
                    "node_name_whitespace",
                    f"Node name '{node_name}' has leading or trailing whitespace",
                    node_name,
                )
            )

    if not (workflow.get("settings") or {}).get("executionOrder"):
        issues.append(
            issue("low", "missing_execution_order", f"Workflow '{name}' does not pin an execution order")
        )
    return issues


def apply_fixes(workflow: dict[str, Any], fix_types: Iterable[str]) -> dict[str, Any]:
    """Return a copy of ``workflow`` with the given fixable issue types resolved."""
    fixed = copy.deepcopy(workflow)
    kinds = set(fix_types)
    if "pinned_data" in kinds:
        fixed.pop("pinData", None)
    if "missing_execution_order" in kinds:
        settings = fixed.get("settings") or {}
        settings["executionOrder"] = "v1"
        fixed["settings"] = settings
    if "node_name_whitespace" in kinds:
        renames = {
            n["name"]: n["name"].strip()
            for n in fixed.get("nodes") or []
            if isinstance(n.get("name"), str) and n["name"] != n["name"].strip()
        }
        for node in fixed.get("nodes") or []:
            if node.get("name") in renames:
                node["name"] = renames[node["name"]]
        connections = {}
        for source, outputs in (fixed.get("connections") or {}).items():
            for branches in (outputs or {}).values():
                for branch in branches or []:
                    for target in branch or []:
                        if isinstance(target, dict) and target.get("node") in renames:
                            target["node"] = renames[target["node"]]
            connections[renames.get(source, source)] = outputs
        if "connections" in fixed:
            fixed["connections"] = connections
    return fixed


def count_by_severity(issues: Iterable[Issue]) -> dict[str, int]:
    counts = {s: 0 for s in SEVERITY_ORDER}
    for item in issues:
        counts[item.severity] += 1
    return counts


def overall_rating(critical: int, high: int, medium: int) -> str:
    if critical > 0:
        return "Poor"
    if high > 3:
        return "Below Average"
    if high > 0 or medium > 5:
        return "Average"
    if medium > 0:
        return "Good"
    return "Excellent"


def effort_label(hours: int) -> str:
    if hours > 80:
        return "3-4 weeks"
    if hours > 40:
        return "1-2 weeks"
    if hours > 20:
        return "3-5 days"
    if hours > 8:
        return "1-2 days"
    return "< 1 day"


def weeks_for(hours: int) -> int:
    return math.ceil(math.ceil(hours / 8) / 5)


def timeline_weeks(timeline: str | None) -> int | None:
    match = _TIMELINE.search(timeline or "")
    if not match:
        return None
    amount, unit = int(match.group(1)), match.group(2).lower()
    if unit == "day":
        return math.ceil(amount / 7)
    if unit == "month":
        return amount * 4
    return amount


def _at_least(severity: str, priority: str | None) -> bool:
    if priority is None:
        return True
    return SEVERITY_ORDER.index(severity) <= SEVERITY_ORDER.index(priority)


def optimizations_for(workflow: dict[str, Any]) -> list[str]:
    nodes = [n for n in workflow.get("nodes") or [] if isinstance(n, dict)]
    hints = []
    if len(nodes) > 30:
        hints.append("Split the workflow into sub-workflows to keep it maintainable")
    http_nodes = [n for n in nodes if str(n.get("type", "")).lower().endswith("httprequest")]
    if any(not n.get("retryOnFail") for n in http_nodes):
        hints.append("Enable 'Retry On Fail' on HTTP Request nodes")
    if nodes and not (workflow.get("settings") or {}).get("errorWorkflow"):
        hints.append("Configure an error workflow to be notified about failed executions")
    return hints


class FlowAnalyzer:
    """Analyze, fix and plan work for the workflows in ``flows_directory``."""

    def __init__(self, flows_directory: str | Path) -> None:
        self.flows_directory = Path(flows_directory)

    async def _load(self) -> list[tuple[Path, dict[str, Any] | None, str | None]]:
        if not self.flows_directory.is_dir():
            return []
        loaded = []
        for path in sorted(self.flows_directory.glob("*.json")):
            try:
                async with aiofiles.open(path, "r", encoding="utf-8") as f:
                    data = json.loads(await f.read())
            except (UnicodeDecodeError, json.JSONDecodeError) as exc:
                loaded.append((path, None, str(exc)))
                continue
            if not isinstance(data, dict):
                loaded.append((path, None, "top-level JSON value is not an object"))
                continue
            loaded.append((path, data, None))
        return loaded

    async def _collect(self) -> tuple[list[Issue], int]:
        loaded = await self._load()
        issues: list[Issue] = []
        for path, workflow, error in loaded:
            if workflow is None:
                issues.append(
                    Issue(
                        severity="critical",
                        type="invalid_json",
                        message=f"{path.name} is not a valid workflow export: {error}",
                        file=path.name,
                    )
                )
                continue
            issues.extend(review_workflow_data(workflow, path.name))
        return issues, len(loaded)

    async def analyze_project(self, detailed: bool = False) -> AnalysisReport:
        issues, files = await self._collect()
        counts = count_by_severity(issues)
        hours = sum(counts[s] * EFFORT_HOURS[s] for s in SEVERITY_ORDER)
        summary = AnalysisSummary(
            total_issues=len(issues),
            files_analyzed=files,
            rating=overall_rating(counts["critical"], counts["high"], counts["medium"]),
            estimated_effort_hours=hours,
            estimated_effort=effort_label(hours),
            **counts,
        )
        logger.info("project_analyzed", files=files, issues=len(issues), rating=summary.rating)
        if not detailed:
            issues = [i for i in issues if i.severity in ("critical", "high")]
        return AnalysisReport(summary=summary, issues=issues, detailed=detailed)

    async def apply_improvements(
        self, dry_run: bool = True, priority: str | None = None
    ) -> ImprovementReport:
        improvements: list[Improvement] = []
        manual = 0
        for path, workflow, _ in await self._load():
            if workflow is None:
                if _at_least("critical", priority):
                    manual += 1
                continue
            selected = [
                i for i in review_workflow_data(workflow, path.name) if _at_least(i.severity, priority)
            ]
            fixable = [i for i in selected if i.fixable]
            manual += len(selected) - len(fixable)
            if fixable and not dry_run:
                fixed = apply_fixes(workflow, {i.type for i in fixable})
                async with aiofiles.open(path, "w", encoding="utf-8") as f:
                    await f.write(json.dumps(fixed, indent=2) + "\n")
                logger.info("workflow_fixed", file=path.name, fixes=len(fixable))
            improvements.extend(
                Improvement(
                    file=path.name,
                    workflow=i.workflow,
                    description=i.message,
                    severity=i.severity,
                    applied=not dry_run,
                )
                for i in fixable
            )
        return ImprovementReport(
            dry_run=dry_run,
            priority=priority,
            improvements=improvements,
            applied_count=0 if dry_run else len(improvements),
            manual_count=manual,
        )

    async def plan_upgrade(self, timeline: str | None = None, risk: str | None = None) -> UpgradePlan:
        issues, _ = await self._collect()
        phases = []
        for severity in SEVERITY_ORDER:
            group = [i for i in issues if i.severity == severity]
            if not group:
                continue
            phases.append(
                UpgradePhase(
                    name=PHASE_NAMES[severity],
                    severity=severity,
                    issue_count=len(group),
                    estimated_hours=len(group) * EFFORT_HOURS[severity],
                    tasks=[i.message for i in group],
                )
            )
        total = sum(p.estimated_hours for p in phases)
        weeks = weeks_for(total)
        counts = count_by_severity(issues)
        derived = "high" if counts["critical"] else "medium" if counts["high"] else "low"
        limit = timeline_weeks(timeline)
        return UpgradePlan(
            phases=phases,
            total_hours=total,
            estimated_weeks=weeks,
            risk_level=risk or derived,
            timeline=timeline,
            fits_timeline=None if limit is None else weeks <= limit,
        )

    def review(self, workflow: dict[str, Any]) -> WorkflowReview:
        issues = review_workflow_data(workflow)
        counts = count_by_severity(issues)
        return WorkflowReview(
            workflow_id=str(workflow.get("id", "")),
            name=workflow.get("name") or "unnamed",
            issues=issues,
            rating=overall_rating(counts["critical"], counts["high"], counts["medium"]),
            optimizations=optimizations_for(workflow),
        )


__all__ = [
    "EFFORT_HOURS",
    "FlowAnalyzer",
    "apply_fixes",
    "connected_node_names",
    "effort_label",
    "overall_rating",
    "review_workflow_data",
    "secret_paths",
    "timeline_weeks",
    "weeks_for",
]
