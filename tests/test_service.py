"""Tests for the HTTP API."""

import pytest


def _ingest(client, payload) -> str:
    response = client.post("/api/ingest", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["id"]


class TestIngest:
    def test_ingest_returns_id(self, client, full_payload):
        run_id = _ingest(client, full_payload)

        run = client.get(f"/api/runs/{run_id}").json()
        assert run["id"] == run_id
        assert run["name"] == "Checkout investigation"
        assert [s["index"] for s in run["steps"]] == [0, 1]
        assert [t["name"] for t in run["steps"][1]["toolCalls"]] == ["payments.lookup", "payments.retry"]
        assert run["steps"][0]["output"] == "plain string output"
        assert run["metadata"]["nested"]["values"] == [1, 2.5, None, True]

    def test_minimal_trace_gets_defaults(self, client):
        run = client.get(f"/api/runs/{_ingest(client, {})}").json()

        assert run["framework"] == "OTHER"
        assert run["status"] == "RUNNING"
        assert run["startedAt"] is not None
        assert run["endedAt"] is None
        assert run["steps"] == []
        assert run["tags"] == []

    def test_invalid_status_is_rejected(self, client):
        response = client.post("/api/ingest", json={"status": "BOGUS", "steps": [{"index": 0}]})

        assert response.status_code == 400
        body = response.json()
        assert "status" in body["error"]
        assert body["details"][0]["path"] == "status"
        assert client.get("/api/runs").json()["runs"] == []

    def test_nested_error_path(self, client):
        response = client.post("/api/ingest", json={
            "steps": [{"index": 0, "toolCalls": [{"name": "x", "status": "DONE"}]}]
        })

        assert response.status_code == 400
        assert response.json()["details"][0]["path"] == "steps[0].toolCalls[0].status"

    def test_out_of_range_timestamp_is_rejected(self, client):
        response = client.post("/api/ingest", json={
            "startedAt": "0001-01-01T00:00:00+01:00",
            "steps": [{"index": 0, "endedAt": "9999-12-31T23:59:59-01:00"}]
        })

        assert response.status_code == 400
        assert [d["path"] for d in response.json()["details"]] == ["startedAt", "steps[0].endedAt"]
        assert client.get("/api/runs").json()["runs"] == []

    def test_body_must_be_json(self, client):
        response = client.post(
            "/api/ingest",
            content=b"{not json",
            headers={"content-type": "application/json"}
        )
        assert response.status_code == 400
        assert "not valid JSON" in response.json()["error"]

    def test_body_must_be_an_object(self, client):
        response = client.post("/api/ingest", json=[1, 2])
        assert response.status_code == 400

    def test_storage_failure_is_internal_error(self, client, full_payload):
        client.app.state.store.close()

        response = client.post("/api/ingest", json=full_payload)
        assert response.status_code == 500
        assert response.json() == {"error": "Internal error"}


class TestRuns:
    def test_unknown_run(self, client):
        response = client.get("/api/runs/does-not-exist")
        assert response.status_code == 404
        assert response.json() == {"error": "Not found"}

    def test_list_and_filter(self, client, at):
        first = _ingest(client, {"name": "alpha", "status": "SUCCESS", "startedAt": at(0)})
        second = _ingest(client, {"name": "beta", "framework": "LANGGRAPH", "startedAt": at(30),
                                  "tags": ["demo"], "steps": [{"index": 0}]})

        runs = client.get("/api/runs").json()["runs"]
        assert [r["id"] for r in runs] == [second, first]
        assert runs[0]["stepCount"] == 1
        assert runs[0]["tags"][0]["name"] == "demo"

        assert [r["id"] for r in client.get("/api/runs", params={"status": "SUCCESS"}).json()["runs"]] == [first]
        assert [r["id"] for r in client.get("/api/runs", params={"framework": "LANGGRAPH"}).json()["runs"]] == [second]
        assert [r["id"] for r in client.get("/api/runs", params={"q": "DEMO"}).json()["runs"]] == [second]
        assert [r["id"] for r in client.get("/api/runs", params={"limit": 1}).json()["runs"]] == [second]

    @pytest.mark.parametrize("params", [{"status": "BOGUS"}, {"limit": 0}])
    def test_bad_list_parameters(self, client, params):
        assert client.get("/api/runs", params=params).status_code == 422

    def test_delete(self, client, full_payload):
        run_id = _ingest(client, full_payload)

        response = client.delete(f"/api/runs/{run_id}")
        assert response.status_code == 200
        assert response.json() == {"ok": True}
        assert client.get(f"/api/runs/{run_id}").status_code == 404
        assert client.delete(f"/api/runs/{run_id}").status_code == 404

    def test_analytics(self, client, full_payload):
        run_id = _ingest(client, full_payload)

        body = client.get(f"/api/runs/{run_id}/analytics").json()
        analytics = body["analytics"]

        assert body["run"]["id"] == run_id
        assert analytics["runDurationSeconds"] == 90
        assert analytics["toolCalls"] == {"total": 2, "success": 1, "failed": 1, "successRate": 50}
        assert [b["count"] for b in analytics["latencyHistogram"]] == [0, 1, 0, 1]
        assert [s["name"] for s in analytics["toolStats"]] == ["payments.lookup", "payments.retry"]
        assert analytics["toolStats"][1]["avgDurationSeconds"] == 28.0

    def test_analytics_unknown_run(self, client):
        assert client.get("/api/runs/missing/analytics").status_code == 404


class TestMeta:
    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "healthy"

    def test_schema(self, client):
        schema = client.get("/api/schema").json()
        assert schema["type"] == "object"
        assert "RUNNING" in schema["properties"]["status"]["enum"]
        assert schema["properties"]["steps"]["items"]["required"] == ["index"]
