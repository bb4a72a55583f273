from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
import os
import sys
from typing import Any, MutableMapping

import aiofiles  # type: ignore
import aiofiles.os  # type: ignore
import aiosqlite  # type: ignore
import httpx
import structlog

logger = structlog.get_logger()


async def _rotate(path: str, max_bytes: int) -> None:
    if await aiofiles.os.path.exists(path):
        stat = await aiofiles.os.stat(path)
        if stat.st_size > max_bytes:
            ts = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S%f")
            await aiofiles.os.rename(path, f"{path}.{ts}")


def render_event(event: str, data: dict[str, Any]) -> str:
    """Render an event as a timestamped JSON line."""
    record: MutableMapping[str, Any] = {"event": event, **data}
    record = structlog.processors.TimeStamper(key="timestamp", fmt="iso", utc=True)(
        logger, "info", record
    )
    return str(structlog.processors.JSONRenderer(default=str)(logger, "info", record))


def configure_logging(level: str = "INFO") -> None:
    """Send structlog output to stderr, dropping records below ``level``."""
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        # sys.stderr is looked up per logger, not once at configure time.
        logger_factory=lambda *args: structlog.PrintLogger(sys.stderr),
    )


async def log_event(event: str, data: dict[str, Any]) -> None:
    """Write an event to the flow manager log as JSON."""
    json_line = render_event(event, data)

    db_path = os.getenv("FLOW_MANAGER_DB_PATH")
    if db_path:
        async with aiosqlite.connect(db_path) as db:
            await db.execute("CREATE TABLE IF NOT EXISTS events (json TEXT)")
            await db.execute("INSERT INTO events (json) VALUES (?)", (json_line,))
            await db.commit()
        return

    log_dir = os.getenv("FLOW_MANAGER_LOG_PATH", "logs")
    os.makedirs(log_dir, exist_ok=True)
    max_bytes = int(os.getenv("FLOW_MANAGER_LOG_MAX_BYTES", "5000000"))
    path = os.path.join(log_dir, "flow_manager.log")
    await _rotate(path, max_bytes)
    async with aiofiles.open(path, "a") as f:
        await f.write(json_line + "\n")

    stream_url = os.getenv("FLOW_MANAGER_LOG_STREAM_URL")
    if stream_url:
        async with httpx.AsyncClient(timeout=10) as client:
            await client.post(stream_url, json=json.loads(json_line))


__all__ = ["configure_logging", "logger", "log_event", "render_event"]
