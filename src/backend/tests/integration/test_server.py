"""HTTP API: provider listing and the server-sent event stream of a mock run."""

import json
import os

import executor
import pytest
import server
from fastapi.testclient import TestClient

QUESTION = "Which resistor sets the gain of a non-inverting amplifier?"


@pytest.fixture(autouse=True)
def no_graphviz(monkeypatch):
    monkeypatch.setattr("workflows.SchematicWorkflow.shutil.which", lambda name: None)


@pytest.fixture
def client(monkeypatch):
    async def mockRunBatch(options, updateCallback=None):
        return await executor.runBatch(options, updateCallback, use_mock=True)

    monkeypatch.setattr(server, "runBatch", mockRunBatch)
    return TestClient(server.app)


def _events(response):
    return [json.loads(line[len("data: ") :]) for line in response.text.splitlines() if line.startswith("data: ")]


class TestProviders:
    def test_lists_every_provider(self, client, no_api_keys, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        response = client.get("/providers")
        assert response.status_code == 200

        listed = {entry["provider"]: entry for entry in response.json()}
        assert set(listed) == {"openai", "xai", "google", "anthropic"}
        assert all(set(entry) == {"provider", "model", "hasApiKey"} for entry in listed.values())
        assert listed["openai"]["hasApiKey"] is True
        assert listed["anthropic"]["hasApiKey"] is False


class TestRunStream:
    def test_mock_run_streams_until_complete(self, client, tmp_path):
        payload = {"questionText": QUESTION, "outdir": str(tmp_path / "runs"), "enabledProviders": ["openai"]}
        response = client.post("/run/stream-ok", json=payload)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")

        events = _events(response)
        types = [e["type"] for e in events]
        assert types[0] == "run_started"
        assert "run_succeeded" in types
        assert types[-2:] == ["result", "complete"]

        outputs = events[-2]["outputs"]
        assert os.path.dirname(outputs["run_dir"]) == str(tmp_path / "runs")
        assert os.path.exists(outputs["final_cir"])
        assert "stream-ok" not in server.event_queues

    def test_failed_run_reports_error_then_complete(self, client, tmp_path):
        payload = {"questionText": "   ", "outdir": str(tmp_path / "runs"), "enabledProviders": ["openai"]}
        events = _events(client.post("/run/stream-missing", json=payload))
        assert [e["type"] for e in events] == ["error", "complete"]
        assert "Missing required question input" in events[0]["message"]
        assert not (tmp_path / "runs").exists()

    def test_invalid_payload_reports_error_then_complete(self, client):
        events = _events(client.post("/run/stream-bad", json={"questionText": QUESTION, "colour": "blue"}))
        assert [e["type"] for e in events] == ["error", "complete"]
        assert events[0]["message"].startswith("Invalid run configuration")
