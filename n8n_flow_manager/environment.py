"""Environment validation for a configured flow manager."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from .config import Settings


@dataclass
class ValidationIssue:
    type: str
    message: str
    solution: str


@dataclass
class ValidationReport:
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def _writable(path: Path) -> bool:
    # Walk up to the first existing ancestor; that is what mkdir would need.
    probe = path
    while not probe.exists():
        if probe.parent == probe:
            return False
        probe = probe.parent
    return os.access(probe, os.W_OK)


def validate_environment(settings: Settings) -> ValidationReport:
    """Check settings for problems that would break collaborator calls.

    Never raises; the caller decides whether errors are fatal.
    """
    report = ValidationReport()

    if not settings.api_key:
        report.errors.append(
            ValidationIssue(
                type="missing_required_variable",
                message="N8N_API_KEY is not set",
                solution="Add N8N_API_KEY=<your key> to your .env file",
            )
        )
    elif len(settings.api_key.strip()) < 10:
        report.warnings.append(
            ValidationIssue(
                type="suspicious_api_key",
                message="N8N_API_KEY seems too short, may be invalid",
                solution="Verify your n8n API key is correct",
            )
        )

    if settings.backend_url.startswith("http://") and "localhost" not in settings.backend_url:
        report.warnings.append(
            ValidationIssue(
                type="insecure_url",
                message=f"N8N_BACKEND_URL uses plain http: {settings.backend_url}",
                solution="Use https for remote n8n instances",
            )
        )

    if settings.git_author_email == "flows@localhost":
        report.warnings.append(
            ValidationIssue(
                type="default_git_author",
                message="Commits will use the default author flows@localhost",
                solution="Set N8N_GIT_AUTHOR_NAME and N8N_GIT_AUTHOR_EMAIL",
            )
        )

    for name in (settings.flows_directory, settings.backup_directory):
        if not _writable(Path(name)):
            report.errors.append(
                ValidationIssue(
                    type="directory_not_writable",
                    message=f"Directory {name} is not writable",
                    solution=f"Check permissions for {name}",
                )
            )

    return report


__all__ = ["ValidationIssue", "ValidationReport", "validate_environment"]
