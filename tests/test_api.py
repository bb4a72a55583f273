from fastapi.testclient import TestClient

from n8n_flow_manager.orchestrator.api import create_app


def test_instruction_round_trip(engine):
    app = create_app(engine)
    with TestClient(app) as client:
        assert client.get("/health").json() == {"status": "ok", "initialized": True}

        resp = client.post("/instructions", json={"instruction": "list workflows"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["status"] == "completed"
        assert body["task"]["type"] == "status_listing"

        resp = client.post(
            "/instructions",
            json={"instruction": "apply fixes now", "context": {"confirmed": False}},
        )
        assert resp.json()["status"] == "confirmation_required"

        history = client.get("/history", params={"limit": 5}).json()
        assert [h["instruction"] for h in history] == ["list workflows", "apply fixes now"]
        assert client.get("/history", params={"limit": 0}).status_code == 422

        assert "flow_manager_instructions_total" in client.get("/metrics").text
        completed = app.state.registry.get_sample_value(
            "flow_manager_instructions_total",
            {"task_type": "status_listing", "status": "completed"},
        )
        assert completed == 1.0

    assert not engine.initialized


def test_task_types_and_context(engine):
    with TestClient(create_app(engine)) as client:
        types = client.get("/task-types").json()
        assert len(types) == 12
        context = client.get("/context").json()
        assert context["active_task"] is None
        assert context["active_tasks"] == []
