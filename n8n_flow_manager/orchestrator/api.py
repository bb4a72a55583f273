from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI, Query
from fastapi import Response as HTTPResponse
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, generate_latest
from pydantic import BaseModel, Field

from ..core.responses import Response
from ..utils.logging import configure_logging
from .engine import FlowManagerEngine


class InstructionIn(BaseModel):
    instruction: str
    context: dict[str, Any] = Field(default_factory=dict)


def create_app(engine: FlowManagerEngine | None = None) -> FastAPI:
    """Create the HTTP application around ``engine``.

    The engine is initialized on startup and shut down with the app.
    """
    engine = engine or FlowManagerEngine()
    registry = CollectorRegistry()
    instructions_total = Counter(
        "flow_manager_instructions_total",
        "Instructions processed",
        ["task_type", "status"],
        registry=registry,
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        configure_logging(engine.settings.log_level)
        await engine.init()
        try:
            yield
        finally:
            await engine.shutdown()

    app = FastAPI(title="n8n Flow Manager API", lifespan=lifespan)
    app.state.engine = engine
    app.state.registry = registry

    @app.post("/instructions", response_model=Response)
    async def execute(body: InstructionIn) -> Response:
        response = await engine.execute_instruction(body.instruction, body.context)
        instructions_total.labels(response.task.type.value, response.status).inc()
        return response

    @app.get("/task-types")
    async def task_types() -> list[dict[str, Any]]:
        return engine.get_available_task_types()

    @app.get("/history")
    async def history(limit: int = Query(10, ge=1, le=50)) -> list[dict[str, Any]]:
        return engine.get_execution_history(limit)

    @app.get("/context")
    async def context() -> dict[str, Any]:
        return engine.get_context()

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {"status": "ok", "initialized": engine.initialized}

    @app.get("/metrics")
    async def metrics() -> HTTPResponse:
        return HTTPResponse(generate_latest(registry), media_type=CONTENT_TYPE_LATEST)

    return app


__all__ = ["InstructionIn", "create_app"]
