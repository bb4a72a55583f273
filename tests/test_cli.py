import json

import pytest
from typer.testing import CliRunner

from n8n_flow_manager import cli
from n8n_flow_manager.orchestrator.engine import FlowManagerEngine

runner = CliRunner()


@pytest.fixture
def patched_engine(monkeypatch, settings, backend, vcs, flows):
    # Local URL and explicit author keep startup free of environment warnings.
    quiet = settings.model_copy(
        update={"backend_url": "http://localhost:5678", "git_author_email": "ops@example.com"}
    )
    monkeypatch.setattr(
        cli,
        "build_engine",
        lambda settings_=None: FlowManagerEngine(quiet, backend=backend, vcs=vcs, flows=flows),
    )


def test_run_prints_message(patched_engine):
    result = runner.invoke(cli.app, ["run", "list workflows"])
    assert result.exit_code == 0
    assert "Workflow status: 2 workflows found (1 active, 1 inactive)." in result.output


def test_run_requires_confirmation_then_confirms(patched_engine):
    result = runner.invoke(cli.app, ["run", "apply fixes"])
    assert result.exit_code == 1
    assert "Confirmation required" in result.output

    result = runner.invoke(cli.app, ["run", "apply fixes", "--confirm", "--json"])
    assert result.exit_code == 0
    assert json.loads(result.stdout)["status"] == "completed"


def test_run_rejects_malformed_context(patched_engine):
    result = runner.invoke(cli.app, ["run", "list workflows", "-c", "nonsense"])
    assert result.exit_code != 0


def test_context_values_are_parsed():
    assert cli._parse_context(["confirmed=true", "backup=False", "name=a=b"]) == {
        "confirmed": True,
        "backup": False,
        "name": "a=b",
    }


def test_task_types_lists_examples(patched_engine):
    result = runner.invoke(cli.app, ["task-types"])
    assert result.exit_code == 0
    assert "system_analysis: Analyze exported workflows" in result.output
    assert "unknown" not in result.output


def test_validate_reports_missing_key(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("N8N_API_KEY", raising=False)
    monkeypatch.delenv("N8N_CONFIG_FILE", raising=False)
    result = runner.invoke(cli.app, ["validate", "--json"])
    assert result.exit_code == 1
    report = json.loads(result.stdout)
    assert report["valid"] is False
    assert report["errors"][0]["type"] == "missing_required_variable"


def test_unknown_log_level_rejected(patched_engine):
    result = runner.invoke(cli.app, ["--log-level", "chatty", "task-types"])
    assert result.exit_code != 0


def test_invalid_configuration_exits_cleanly(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("N8N_CONFIG_FILE", raising=False)
    monkeypatch.setenv("N8N_BACKEND_URL", "n8n.local")
    result = runner.invoke(cli.app, ["validate"])
    assert result.exit_code == 1
    assert "invalid configuration: backend_url" in result.output
