import pytest

from n8n_flow_manager.collaborators.flows import FlowManager
from n8n_flow_manager.config import Settings
from n8n_flow_manager.errors import BackendError
from n8n_flow_manager.orchestrator.engine import FlowManagerEngine


def make_workflow(workflow_id="abc123", name="Orders Sync", active=True):
    return {
        "id": workflow_id,
        "name": name,
        "active": active,
        "nodes": [
            {"name": "Webhook", "type": "n8n-nodes-base.webhook", "parameters": {}},
            {
                "name": "Save",
                "type": "n8n-nodes-base.httpRequest",
                "parameters": {"url": "https://example.com/orders"},
                "retryOnFail": True,
            },
        ],
        "connections": {"Webhook": {"main": [[{"node": "Save", "type": "main", "index": 0}]]}},
        "settings": {"executionOrder": "v1", "errorWorkflow": "errors"},
    }


class FakeBackend:
    def __init__(self, workflows=None):
        self.workflows = {w["id"]: dict(w) for w in workflows or []}
        self.executions = {}
        self.created = []
        self.updated = []
        self.executed = []
        self.list_calls = []

    async def get_workflow(self, workflow_id):
        if workflow_id not in self.workflows:
            raise BackendError(f"n8n resource not found: /workflows/{workflow_id}", status_code=404)
        return dict(self.workflows[workflow_id])

    async def list_workflows(self, active=None):
        self.list_calls.append(active)
        return [
            w for w in self.workflows.values() if active is None or bool(w.get("active")) == active
        ]

    async def create_workflow(self, spec):
        created = {**spec, "id": f"new{len(self.created) + 1}"}
        self.created.append(created)
        self.workflows[created["id"]] = created
        return created

    async def update_workflow(self, workflow_id, spec):
        self.updated.append((workflow_id, spec))
        merged = {**self.workflows[workflow_id], **spec, "id": workflow_id}
        self.workflows[workflow_id] = merged
        return merged

    async def export_all(self):
        return [dict(w) for w in self.workflows.values()]

    async def execute_workflow(self, workflow_id, data=None):
        self.executed.append(workflow_id)
        return f"exec-{workflow_id}"

    async def get_execution(self, execution_id):
        return self.executions.get(execution_id, {"id": execution_id, "status": "success"})

    async def test_connection(self):
        return {"connected": True, "url": "http://n8n.test", "workflow_count": len(self.workflows)}


class FakeVersionControl:
    def __init__(self):
        self.commits = []

    async def status(self):
        return {"branch": "main", "ahead": 0, "behind": 0, "changes": []}

    async def commit(self, paths, message):
        self.commits.append((list(paths) if paths is not None else None, message))
        return True


@pytest.fixture(autouse=True)
def _event_log(tmp_path, monkeypatch):
    monkeypatch.setenv("FLOW_MANAGER_LOG_PATH", str(tmp_path / "logs"))
    monkeypatch.delenv("FLOW_MANAGER_DB_PATH", raising=False)
    monkeypatch.delenv("FLOW_MANAGER_LOG_STREAM_URL", raising=False)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        backend_url="http://n8n.test",
        api_key="test-api-key-123456",
        flows_directory=str(tmp_path / "flows"),
        backup_directory=str(tmp_path / "backups"),
        handler_timeout=5,
        test_timeout=1,
    )


@pytest.fixture
def workflow():
    return make_workflow()


@pytest.fixture
def backend(workflow):
    return FakeBackend([workflow, make_workflow("def456", "Daily Report", active=False)])


@pytest.fixture
def vcs():
    return FakeVersionControl()


@pytest.fixture
def flows(settings, backend, vcs):
    return FlowManager(settings, backend, vcs, poll_interval=0)


@pytest.fixture
def engine(settings, backend, vcs, flows):
    return FlowManagerEngine(settings, backend=backend, vcs=vcs, flows=flows)
