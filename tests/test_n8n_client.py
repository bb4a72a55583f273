import asyncio
import json

import httpx
import pytest

from n8n_flow_manager.collaborators.n8n_client import N8nClient, writable_spec
from n8n_flow_manager.errors import BackendError


def make_client(settings, handler):
    return N8nClient(settings, transport=httpx.MockTransport(handler), backoff=0)


def test_sends_api_key_and_paginates(settings):
    seen = []

    def handler(request):
        seen.append(request)
        if "cursor" not in request.url.params:
            return httpx.Response(200, json={"data": [{"id": "1"}], "nextCursor": "c2"})
        return httpx.Response(200, json={"data": [{"id": "2"}], "nextCursor": None})

    async def go():
        async with make_client(settings, handler) as client:
            return await client.list_workflows(active=True)

    workflows = asyncio.run(go())
    assert [w["id"] for w in workflows] == ["1", "2"]
    assert seen[0].headers["X-N8N-API-KEY"] == "test-api-key-123456"
    assert seen[0].url.path == "/api/v1/workflows"
    assert seen[0].url.params["active"] == "true"
    assert seen[1].url.params["cursor"] == "c2"


def test_retries_server_errors(settings):
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) < 3:
            return httpx.Response(503)
        return httpx.Response(200, json={"id": "abc123", "name": "Orders Sync"})

    async def go():
        async with make_client(settings, handler) as client:
            return await client.get_workflow("abc123")

    assert asyncio.run(go())["name"] == "Orders Sync"
    assert len(calls) == 3


def test_gives_up_after_configured_attempts(settings):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500)

    async def go():
        async with make_client(settings, handler) as client:
            await client.get_workflow("abc123")

    with pytest.raises(BackendError) as excinfo:
        asyncio.run(go())
    assert excinfo.value.status_code == 500
    assert len(calls) == settings.retry_attempts


@pytest.mark.parametrize(
    "status, message",
    [(401, "n8n rejected the API key"), (404, "n8n resource not found: /workflows/nope")],
)
def test_client_errors_fail_fast(settings, status, message):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(status)

    async def go():
        async with make_client(settings, handler) as client:
            await client.get_workflow("nope")

    with pytest.raises(BackendError) as excinfo:
        asyncio.run(go())
    assert excinfo.value.message.startswith(message)
    assert excinfo.value.status_code == status
    assert len(calls) == 1


def test_unreachable_backend(settings):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async def go():
        async with make_client(settings, handler) as client:
            await client.get_workflow("abc123")

    with pytest.raises(BackendError) as excinfo:
        asyncio.run(go())
    assert "cannot reach n8n at http://n8n.test" in excinfo.value.message
    assert excinfo.value.status_code is None


def test_create_sends_only_writable_fields(settings, workflow):
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={**bodies[-1], "id": "new1"})

    async def go():
        async with make_client(settings, handler) as client:
            return await client.create_workflow({**workflow, "active": True, "tags": []})

    created = asyncio.run(go())
    assert created["id"] == "new1"
    assert set(bodies[0]) == {"name", "nodes", "connections", "settings"}


def test_writable_spec_defaults_settings():
    assert writable_spec({"name": "x", "id": "1"}) == {"name": "x", "settings": {}}


def test_execute_and_fetch_execution(settings):
    def handler(request):
        if request.method == "POST":
            assert request.url.path == "/api/v1/workflows/abc123/execute"
            return httpx.Response(200, json={"data": {"executionId": 77}})
        assert request.url.params["includeData"] == "true"
        return httpx.Response(200, json={"id": "77", "status": "success"})

    async def go():
        async with make_client(settings, handler) as client:
            execution_id = await client.execute_workflow("abc123")
            return execution_id, await client.get_execution(execution_id)

    execution_id, execution = asyncio.run(go())
    assert execution_id == "77"
    assert execution["status"] == "success"


def test_execute_without_id_is_an_error(settings):
    async def go():
        async with make_client(settings, lambda request: httpx.Response(200, json={})) as client:
            await client.execute_workflow("abc123")

    with pytest.raises(BackendError):
        asyncio.run(go())


def test_connection_status(settings):
    def ok(request):
        return httpx.Response(200, json={"data": [{"id": "1"}, {"id": "2"}]})

    def denied(request):
        return httpx.Response(401)

    async def go(handler):
        async with make_client(settings, handler) as client:
            return await client.test_connection()

    assert asyncio.run(go(ok)) == {"connected": True, "url": "http://n8n.test", "workflow_count": 2}
    failed = asyncio.run(go(denied))
    assert failed["connected"] is False
    assert "API key" in failed["error"]
