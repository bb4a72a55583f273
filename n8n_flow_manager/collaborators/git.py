"""Version control of exported workflows through the ``git`` command line."""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import Iterable

import structlog

from ..config import Settings
from ..core.results import FileChange, VersionStatus
from ..errors import VersionControlError

logger = structlog.get_logger()

_BRANCH = re.compile(r"^## (?:No commits yet on |Initial commit on )?(?P<branch>\S+?)(?:\.\.\.|\s|$)")
_AHEAD = re.compile(r"ahead (\d+)")
_BEHIND = re.compile(r"behind (\d+)")

_STATUS_CODES = {
    "M": "modified",
    "A": "added",
    "D": "deleted",
    "R": "renamed",
    "C": "copied",
    "U": "conflicted",
    "?": "untracked",
}


def parse_status(output: str) -> VersionStatus:
    """Parse ``git status --porcelain=v1 --branch`` output."""
    branch = None
    ahead = behind = 0
    changes: list[FileChange] = []
    for line in output.splitlines():
        if line.startswith("## "):
            match = _BRANCH.match(line)
            if match:
                branch = match.group("branch")
            ahead_match = _AHEAD.search(line)
            if ahead_match:
                ahead = int(ahead_match.group(1))
            behind_match = _BEHIND.search(line)
            if behind_match:
                behind = int(behind_match.group(1))
            continue
        if len(line) < 4:
            continue
        code, path = line[:2], line[3:]
        if " -> " in path:
            path = path.split(" -> ", 1)[1]
        key = next((c for c in code if c != " "), "M")
        changes.append(FileChange(path=path, status=_STATUS_CODES.get(key, "modified")))
    return VersionStatus(branch=branch, ahead=ahead, behind=behind, changes=changes)


class GitRepository:
    """Run git in ``repo_path`` with the configured commit author."""

    def __init__(self, settings: Settings, repo_path: str | Path = ".") -> None:
        self.settings = settings
        self.repo_path = Path(repo_path)

    @property
    def author(self) -> str:
        return f"{self.settings.git_author_name} <{self.settings.git_author_email}>"

    async def _git(self, *args: str, check: bool = True) -> tuple[int, str]:
        cmd = (
            "git",
            "-c",
            f"user.name={self.settings.git_author_name}",
            "-c",
            f"user.email={self.settings.git_author_email}",
            *args,
        )
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=str(self.repo_path),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise VersionControlError("git executable not found") from exc
        stdout, stderr = await proc.communicate()
        if check and proc.returncode != 0:
            message = stderr.decode().strip() or stdout.decode().strip()
            raise VersionControlError(
                f"git {args[0]} failed: {message}", {"returncode": proc.returncode}
            )
        return proc.returncode or 0, stdout.decode()

    async def ensure_repository(self) -> bool:
        """Initialize the repository when missing. Returns True if created."""
        self.repo_path.mkdir(parents=True, exist_ok=True)
        code, _ = await self._git("rev-parse", "--is-inside-work-tree", check=False)
        if code == 0:
            return False
        await self._git("init")
        logger.info("git_repository_initialized", path=str(self.repo_path))
        return True

    async def status(self) -> VersionStatus:
        _, output = await self._git("status", "--porcelain=v1", "--branch")
        return parse_status(output)

    async def commit(self, paths: Iterable[str] | None, message: str) -> bool:
        """Stage ``paths`` (or everything) and commit.

        Returns False when there was nothing to commit.
        """
        targets = list(paths) if paths is not None else []
        if targets:
            await self._git("add", "--", *targets)
        else:
            await self._git("add", "-A")
        code, _ = await self._git("diff", "--cached", "--quiet", check=False)
        if code == 0:
            return False
        await self._git("commit", "-m", message, f"--author={self.author}")
        logger.info("git_commit", message=message, files=len(targets) or "all")
        return True


__all__ = ["GitRepository", "parse_status"]
