"""Keyword and regex extraction of structured parameters from instructions.

Extraction is a pure function of ``(instruction, task_type)``: it never
mutates its input and fields that do not match are left as ``None`` and
omitted from :meth:`ExtractedParameters.to_dict`. Defaults belong to handlers.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Literal

from .catalog import TaskType

Priority = Literal["critical", "high", "medium", "low"]

_WORKFLOW_ID = re.compile(
    r"\bworkflow(?:\s+(?:id|named|called))?[:\s]+([A-Za-z0-9][\w-]*)", re.IGNORECASE
)
_FILE_PATH = re.compile(r"(?:\bfile[:\s]+)?([^\s'\",;()]+\.json)(?![\w.])", re.IGNORECASE)
_EXPLICIT_PRIORITY = re.compile(
    r"\bpriority[:\s]+(immediate|critical|urgent|high|medium|normal|low)\b", re.IGNORECASE
)

_PRIORITY_ALIASES: dict[str, Priority] = {
    "immediate": "critical",
    "urgent": "critical",
    "critical": "critical",
    "high": "high",
    "medium": "medium",
    "normal": "medium",
    "low": "low",
}

# Checked in order; the first match wins.
_PRIORITY_KEYWORDS: tuple[tuple[re.Pattern[str], Priority], ...] = (
    (re.compile(r"\b(?:critical|urgent|immediate\w*)\b"), "critical"),
    (re.compile(r"\bhigh priority\b|\bimportant\b"), "high"),
    (re.compile(r"\b(?:medium|normal) priority\b"), "medium"),
    (re.compile(r"\blow priority\b|\bminor\b"), "low"),
)

_DRY_RUN = re.compile(r"\bdry[\s-]?run\b|\bpreview\b|\bshow me what\b|\bshow what would\b")
_APPLY = re.compile(r"\bapply\b|\bexecute\b|\bdo it\b|\bfix it\b")
_DETAILED = re.compile(r"\bdetailed\b|\bcomprehensive\b|\bfull analysis\b|\bin detail\b")
_ALL = re.compile(r"\ball (?:workflows|flows)\b|\bevery workflow\b")
_INACTIVE = re.compile(r"\binactive workflows\b")
_ACTIVE = re.compile(r"\bactive workflows\b")

_TIMELINE = re.compile(r"\b(?:in|within|over)\s+(\d+)\s+(day|week|month)s?\b")
_RISK = re.compile(r"\b(low|medium|high)[\s-]risk\b")
_SEARCH_SUBJECT = re.compile(r"\b(?:for|about|like|matching)\s+(.+)$", re.IGNORECASE)

# Words after "workflow" that are never identifiers.
_NOT_IDS = frozenset(
    {
        "a", "an", "and", "the", "to", "from", "for", "in", "on", "of", "or", "is",
        "it", "that", "this", "with", "now", "please", "file", "files", "status",
        "list", "health", "analysis", "issues", "id",
    }
)
_SEARCH_NOISE = frozenset(
    {"search", "find", "lookup", "workflow", "workflows", "template", "templates",
     "repository", "similar", "for", "a", "an", "the", "me", "some", "please"}
)


@dataclass(frozen=True)
class ExtractedParameters:
    workflow_id: str | None = None
    file_path: str | None = None
    priority: Priority | None = None
    dry_run: bool | None = None
    apply: bool | None = None
    detailed: bool | None = None
    all: bool | None = None
    active_only: bool | None = None
    inactive_only: bool | None = None
    # upgrade_planning only
    timeline: str | None = None
    risk: str | None = None
    # workflow_search only
    query: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {k: v for k, v in asdict(self).items() if v is not None}


def _workflow_id(raw: str) -> str | None:
    for match in _WORKFLOW_ID.finditer(raw):
        candidate = match.group(1)
        if candidate.lower() not in _NOT_IDS:
            return candidate
    return None


def _priority(lower: str) -> Priority | None:
    explicit = _EXPLICIT_PRIORITY.search(lower)
    if explicit:
        return _PRIORITY_ALIASES[explicit.group(1).lower()]
    for pattern, level in _PRIORITY_KEYWORDS:
        if pattern.search(lower):
            return level
    return None


def _search_query(raw: str) -> str | None:
    subject = _SEARCH_SUBJECT.search(raw)
    if subject:
        text = subject.group(1).strip(" .?!")
        return text or None
    words = [w for w in re.findall(r"[\w-]+", raw.lower()) if w not in _SEARCH_NOISE]
    return " ".join(words) or None


class ParameterExtractor:
    """Pull identifiers, flags and priority out of raw instruction text."""

    def extract(self, instruction: str, task_type: TaskType) -> ExtractedParameters:
        raw = instruction or ""
        lower = " ".join(raw.lower().split())

        fields: dict[str, object] = {}
        workflow_id = _workflow_id(raw)
        if workflow_id:
            fields["workflow_id"] = workflow_id
        file_match = _FILE_PATH.search(raw)
        if file_match:
            fields["file_path"] = file_match.group(1)
        priority = _priority(lower)
        if priority:
            fields["priority"] = priority

        for name, pattern in (
            ("dry_run", _DRY_RUN),
            ("apply", _APPLY),
            ("detailed", _DETAILED),
            ("all", _ALL),
        ):
            if pattern.search(lower):
                fields[name] = True

        if _INACTIVE.search(lower):
            fields["inactive_only"] = True
        elif _ACTIVE.search(lower):
            fields["active_only"] = True

        if task_type is TaskType.UPGRADE_PLANNING:
            timeline = _TIMELINE.search(lower)
            if timeline:
                fields["timeline"] = f"{timeline.group(1)} {timeline.group(2)}s"
            risk = _RISK.search(lower)
            if risk:
                fields["risk"] = risk.group(1)
        elif task_type is TaskType.WORKFLOW_SEARCH:
            query = _search_query(raw)
            if query:
                fields["query"] = query

        return ExtractedParameters(**fields)


def extract_parameters(instruction: str, task_type: TaskType) -> ExtractedParameters:
    return ParameterExtractor().extract(instruction, task_type)


__all__ = ["ExtractedParameters", "ParameterExtractor", "Priority", "extract_parameters"]
