from fastapi.testclient import TestClient

from dashboard_agent.api import main
from dashboard_agent.types import BackendReply


class _CannedBackend:
    def __init__(self, text: str) -> None:
        self.text = text

    async def complete(self, system_prompt, tools, turns) -> BackendReply:
        return BackendReply(text_blocks=[self.text], content=[{"type": "text", "text": self.text}])


def test_api_query_executes_commands_and_records_traces() -> None:
    orchestrator = main.build_orchestrator(backend=None)
    main.app.dependency_overrides[main.get_orchestrator] = lambda: orchestrator
    client = TestClient(main.app)

    try:
        health = client.get("/health").json()
        assert health["status"] == "ok"
        assert health["llm_configured"] is False
        assert health["history_length"] == 0

        unavailable = client.post("/query", json={"question": "add a group"})
        assert unavailable.status_code == 200
        assert unavailable.json()["success"] is False
        assert unavailable.json()["messages"][0]["level"] == "error"

        reply = 'Creating it now.\nCommands to run:\n- add-group "Solar System"\n- frobnicate now'
        orchestrator.backend = _CannedBackend(reply)
        query_resp = client.post("/query", json={"question": "add a solar group"})
        assert query_resp.status_code == 200
        payload = query_resp.json()
        assert payload["success"] is True
        assert payload["commands"] == ['add-group "Solar System"', "frobnicate now"]
        errors = [m["text"] for m in payload["messages"] if m["level"] == "error"]
        assert errors == ["Unknown command from AI: frobnicate"]

        list_resp = client.post("/commands", json={"command": "ls"})
        assert list_resp.json()["handled"] is True
        assert any("Solar System" in m["text"] for m in list_resp.json()["messages"])

        assert client.get("/health").json()["history_length"] == 2
        assert client.delete("/history").json()["history_length"] == 0
        assert orchestrator.history.length() == 0

        trace_resp = client.get(f"/traces/{payload['trace_id']}")
        assert trace_resp.status_code == 200
        assert trace_resp.json()["command_count"] == 2
        assert client.get("/traces/does-not-exist").status_code == 404

        metrics = client.get("/metrics").json()
        assert metrics["total_requests"] == 2
        assert metrics["failed_requests"] == 1
    finally:
        main.app.dependency_overrides.clear()


def test_clear_chat_command_clears_the_served_history() -> None:
    orchestrator = main.build_orchestrator(backend=_CannedBackend("Nothing to do."))
    main.app.dependency_overrides[main.get_orchestrator] = lambda: orchestrator
    client = TestClient(main.app)

    try:
        assert client.post("/query", json={"question": "hello", "execute": False}).json()["success"] is True
        assert client.get("/health").json()["history_length"] == 2

        cleared = client.post("/commands", json={"command": "clear-chat"}).json()
        assert cleared["handled"] is True
        assert orchestrator.history.length() == 0
    finally:
        main.app.dependency_overrides.clear()
