import asyncio
import json
from pathlib import Path

import pytest

from n8n_flow_manager.collaborators.flows import (
    sanitize_file_name,
    strip_export_metadata,
    validate_structure,
)
from n8n_flow_manager.errors import WorkflowError

from conftest import make_workflow


def test_sanitize_file_name():
    assert sanitize_file_name("Orders Sync / v2.json") == "orders_sync___v2.json"


def test_strip_export_metadata():
    data = {"name": "a", "exportedAt": "x", "exportedBy": "y", "updatedAt": "z", "nodes": []}
    assert strip_export_metadata(data) == {"name": "a", "nodes": []}


def test_validate_structure():
    assert validate_structure(make_workflow()) == ([], [])
    assert validate_structure({"nodes": []}) == (["Workflow has no nodes"], [])
    errors, warnings = validate_structure(
        {"nodes": [{"name": "A", "type": "x.set"}, {"name": "B", "type": "x.set", "credentials": {"k": 1}}]}
    )
    assert errors == []
    assert warnings == [
        "No trigger nodes found",
        "Found 2 disconnected nodes: A, B",
        "Some nodes require credentials",
    ]


def test_export_all_commits_once(flows, backend, vcs, settings):
    report = asyncio.run(flows.export_workflows())
    assert sorted(e.name for e in report.exported) == ["Daily Report", "Orders Sync"]
    assert report.committed
    assert report.commit_message == "Export 2 workflows"
    assert len(vcs.commits) == 1
    assert sorted(p.name for p in Path(settings.flows_directory).iterdir()) == [
        "daily_report.json",
        "orders_sync.json",
    ]


def test_export_with_empty_backend(flows, backend, vcs):
    backend.workflows.clear()
    report = asyncio.run(flows.export_workflows())
    assert report.exported == []
    assert vcs.commits == []


def write_flow(settings, name, data):
    directory = Path(settings.flows_directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text(json.dumps(data))
    return path


def test_import_updates_existing_with_backup(flows, backend, settings):
    data = {**make_workflow(), "name": "Orders Sync v2", "exportedAt": "2024-01-01"}
    write_flow(settings, "orders.json", data)

    report = asyncio.run(flows.import_workflow("orders.json"))
    assert report.action == "updated"
    assert report.workflow_id == "abc123"
    assert report.name == "Orders Sync v2"
    backup = json.loads(Path(report.backup_path).read_text())
    assert backup["name"] == "Orders Sync"
    workflow_id, spec = backend.updated[0]
    assert workflow_id == "abc123"
    assert "exportedAt" not in spec


def test_import_without_backup(flows, backend, settings):
    write_flow(settings, "orders.json", make_workflow())
    report = asyncio.run(flows.import_workflow("orders.json", backup=False))
    assert report.action == "updated"
    assert report.backup_path is None


def test_import_creates_unknown_workflow(flows, backend, settings):
    write_flow(settings, "fresh.json", make_workflow("zzz999", "Fresh"))
    report = asyncio.run(flows.import_workflow("fresh.json"))
    assert report.action == "created"
    assert report.workflow_id == "new1"
    assert report.backup_path is None
    assert backend.updated == []


def test_import_rejects_missing_and_invalid_files(flows, settings):
    with pytest.raises(WorkflowError, match="not found"):
        asyncio.run(flows.import_workflow("absent.json"))
    path = Path(settings.flows_directory) / "bad.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("{oops")
    with pytest.raises(WorkflowError, match="not valid JSON"):
        asyncio.run(flows.import_workflow(str(path)))
    path.write_bytes(b"\xff\xfe\x00garbage")
    with pytest.raises(WorkflowError, match="not valid JSON"):
        asyncio.run(flows.import_workflow(str(path)))


def test_workflow_test_passes(flows, backend):
    report = asyncio.run(flows.test_workflow("abc123"))
    assert report.passed
    assert report.status == "success"
    assert report.execution_id == "exec-abc123"


def test_workflow_test_reports_execution_error(flows, backend):
    backend.executions["exec-abc123"] = {
        "status": "error",
        "data": {"resultData": {"error": {"message": "Save failed"}}},
    }
    report = asyncio.run(flows.test_workflow("abc123"))
    assert not report.passed
    assert report.status == "error"
    assert report.errors == ["Save failed"]


def test_workflow_test_times_out(flows, backend):
    backend.executions["exec-abc123"] = {"status": "running"}
    flows.poll_interval = 0.05
    report = asyncio.run(flows.test_workflow("abc123"))
    assert report.status == "timeout"
    assert not report.passed
    assert "did not finish within 1s" in report.errors[0]


def test_invalid_workflow_is_not_executed(flows, backend):
    backend.workflows["empty"] = {"id": "empty", "name": "Empty", "nodes": []}
    report = asyncio.run(flows.test_workflow("empty"))
    assert report.status == "invalid"
    assert backend.executed == []


def test_review_uses_requested_id(flows):
    review = asyncio.run(flows.review_workflow("def456"))
    assert review.workflow_id == "def456"
    assert review.name == "Daily Report"
