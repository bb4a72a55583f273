"""Async client for the n8n public REST API."""

from __future__ import annotations

from typing import Any

import httpx
import structlog
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from ..config import Settings
from ..errors import BackendError
from ..utils.tracing import async_span, tracer

logger = structlog.get_logger()

# Fields the n8n API accepts on create/update; anything else is rejected.
WRITABLE_FIELDS = ("name", "nodes", "connections", "settings", "staticData")


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return isinstance(exc, httpx.TransportError)


def writable_spec(spec: dict[str, Any]) -> dict[str, Any]:
    body = {k: spec[k] for k in WRITABLE_FIELDS if k in spec}
    body.setdefault("settings", {})
    return body


class N8nClient:
    """Wrap ``/api/v1`` with retries on transport errors and HTTP 5xx.

    Client errors (4xx) fail immediately. Every failure surfaces as
    :class:`BackendError`.
    """

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
        backoff: float = 0.5,
    ) -> None:
        self.settings = settings
        self.base_url = f"{settings.backend_url}/api/v1"
        self._transport = transport
        self._backoff = backoff
        self._client: httpx.AsyncClient | None = None

    async def open(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Accept": "application/json", "Content-Type": "application/json"}
            if self.settings.api_key:
                headers["X-N8N-API-KEY"] = self.settings.api_key
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=self.settings.request_timeout,
                verify=self.settings.verify_ssl,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "N8nClient":
        await self.open()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        client = await self.open()
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.settings.retry_attempts),
            wait=wait_exponential(multiplier=self._backoff, max=8),
            retry=retry_if_exception(_is_transient),
            reraise=True,
        )
        try:
            async with async_span("n8n_request", tracer, attributes={"method": method, "path": path}):
                async for attempt in retrying:
                    with attempt:
                        resp = await client.request(method, path, **kwargs)
                        resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.warning("n8n_request_failed", method=method, path=path, status=status)
            raise BackendError(
                self._describe(status, method, path), status_code=status, details={"path": path}
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("n8n_unreachable", method=method, path=path, error=str(exc))
            raise BackendError(
                f"cannot reach n8n at {self.settings.backend_url}: {exc}", details={"path": path}
            ) from exc
        if not resp.content:
            return {}
        return resp.json()

    @staticmethod
    def _describe(status: int, method: str, path: str) -> str:
        if status == 401:
            return "n8n rejected the API key (HTTP 401); check N8N_API_KEY"
        if status == 404:
            return f"n8n resource not found: {path}"
        return f"n8n returned HTTP {status} for {method} {path}"

    async def list_workflows(self, active: bool | None = None) -> list[dict[str, Any]]:
        params: dict[str, Any] = {}
        if active is not None:
            params["active"] = "true" if active else "false"
        workflows: list[dict[str, Any]] = []
        while True:
            page = await self._request("GET", "/workflows", params=params)
            workflows.extend(page.get("data", []))
            cursor = page.get("nextCursor")
            if not cursor:
                return workflows
            params["cursor"] = cursor

    async def get_workflow(self, workflow_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/workflows/{workflow_id}")

    async def create_workflow(self, spec: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", "/workflows", json=writable_spec(spec))

    async def update_workflow(self, workflow_id: str, spec: dict[str, Any]) -> dict[str, Any]:
        return await self._request("PUT", f"/workflows/{workflow_id}", json=writable_spec(spec))

    async def export_all(self) -> list[dict[str, Any]]:
        """Fetch every workflow with its full node graph."""
        summaries = await self.list_workflows()
        return [await self.get_workflow(str(w["id"])) for w in summaries]

    async def execute_workflow(self, workflow_id: str, data: dict[str, Any] | None = None) -> str:
        body = await self._request("POST", f"/workflows/{workflow_id}/execute", json=data or {})
        payload = body.get("data", body) if isinstance(body, dict) else {}
        execution_id = payload.get("executionId") or payload.get("id")
        if not execution_id:
            raise BackendError(
                f"n8n did not return an execution id for workflow {workflow_id}",
                details={"response": body},
            )
        return str(execution_id)

    async def get_execution(self, execution_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/executions/{execution_id}", params={"includeData": "true"})

    async def test_connection(self) -> dict[str, Any]:
        try:
            page = await self._request("GET", "/workflows", params={"limit": 250})
        except BackendError as exc:
            return {"connected": False, "url": self.settings.backend_url, "error": exc.message}
        return {
            "connected": True,
            "url": self.settings.backend_url,
            "workflow_count": len(page.get("data", [])),
        }


__all__ = ["N8nClient", "WRITABLE_FIELDS", "writable_spec"]
