"""Tests for the HTTP client and the command-line interface, run against an in-process API."""

import json
from datetime import datetime, timezone

import httpx
import pytest

from runscope import cli
from runscope.client import RunscopeAPIError, RunscopeClient
from runscope.sample import SAMPLE_TRACES, support_bot_trace
from runscope.trace.schemas import Framework, RunStatus


@pytest.fixture
def api(client) -> RunscopeClient:
    return RunscopeClient(http_client=client)


class TestRunscopeClient:
    def test_send_and_fetch(self, api, full_payload):
        run_id = api.send_trace(full_payload)

        assert api.get_run(run_id)["id"] == run_id
        assert [r["id"] for r in api.list_runs()] == [run_id]
        assert api.get_analytics(run_id)["analytics"]["toolCalls"]["total"] == 2

    def test_list_filters_are_forwarded(self, api, at):
        failed = api.send_trace({"status": "FAILED", "startedAt": at(0)})
        api.send_trace({"framework": "CREWAI", "startedAt": at(10)})

        assert [r["id"] for r in api.list_runs(status="FAILED")] == [failed]
        assert len(api.list_runs(framework="CREWAI")) == 1
        assert len(api.list_runs(limit=1)) == 1

    def test_validation_error_details(self, api):
        with pytest.raises(RunscopeAPIError) as exc_info:
            api.send_trace({"steps": [{"index": -1}]})

        error = exc_info.value
        assert error.status_code == 400
        assert error.details[0]["path"] == "steps[0].index"

    def test_not_found(self, api):
        with pytest.raises(RunscopeAPIError) as exc_info:
            api.get_run("missing")
        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "Not found"

    def test_delete(self, api, full_payload):
        run_id = api.send_trace(full_payload)
        api.delete_run(run_id)

        assert api.list_runs() == []

    def test_schema(self, api):
        assert "steps" in api.get_schema()["properties"]

    def test_borrowed_http_client_stays_open(self, client):
        with RunscopeClient(http_client=client) as api:
            api.get_schema()
        assert client.get("/health").status_code == 200

    @pytest.mark.parametrize("body", [["upstream", "down"], "bad gateway", 42])
    def test_non_object_error_body(self, body):
        transport = httpx.MockTransport(lambda request: httpx.Response(502, json=body))
        with httpx.Client(base_url="http://runscope.test", transport=transport) as http_client:
            api = RunscopeClient(http_client=http_client)
            with pytest.raises(RunscopeAPIError) as exc_info:
                api.get_run("any")

        assert exc_info.value.status_code == 502
        assert exc_info.value.message == "Bad Gateway"
        assert exc_info.value.details == []


class TestSamples:
    @pytest.mark.parametrize("kind", sorted(SAMPLE_TRACES))
    def test_samples_are_accepted(self, api, kind):
        run_id = api.send_trace(SAMPLE_TRACES[kind]())
        assert len(api.get_run(run_id)["steps"]) == 3

    def test_support_bot_timings(self, api):
        now = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
        analytics = api.get_analytics(api.send_trace(support_bot_trace(now)))["analytics"]

        assert analytics["runDurationSeconds"] == 90
        assert analytics["toolCalls"]["successRate"] == 100
        assert [b["count"] for b in analytics["latencyHistogram"]] == [0, 0, 1, 1]


class TestCli:
    @pytest.fixture(autouse=True)
    def in_process_api(self, monkeypatch, api):
        monkeypatch.setattr(cli, "_client", lambda args: api)

    def test_sample_then_list(self, capsys):
        assert cli.main(["--format", "json", "sample", "--kind", "support-bot"]) == 0
        run_id = json.loads(capsys.readouterr().out)["id"]

        assert cli.main(["--format", "json", "runs"]) == 0
        assert [r["id"] for r in json.loads(capsys.readouterr().out)] == [run_id]

    def test_default_command_lists_runs(self, capsys):
        assert cli.main([]) == 0
        assert "Runs" in capsys.readouterr().out

    def test_ingest_file(self, tmp_path, capsys, full_payload):
        path = tmp_path / "trace.json"
        path.write_text(json.dumps(full_payload))

        assert cli.main(["ingest", str(path)]) == 0
        assert "Recorded run" in capsys.readouterr().out

    def test_show_and_analytics_text(self, capsys, api, full_payload):
        run_id = api.send_trace(full_payload)

        assert cli.main(["show", run_id]) == 0
        out = capsys.readouterr().out
        assert "payments.retry" in out
        assert "timeout after 30s" in out

        assert cli.main(["analytics", run_id]) == 0
        out = capsys.readouterr().out
        assert "Tool success rate: 50%" in out
        assert "Run duration: 90s" in out

    def test_delete(self, capsys, api, full_payload):
        run_id = api.send_trace(full_payload)

        assert cli.main(["delete", run_id]) == 0
        assert api.list_runs() == []

    def test_api_error_exit_code(self, capsys):
        assert cli.main(["show", "missing"]) == 1
        assert "Not found" in capsys.readouterr().err

    def test_invalid_trace_lists_field_errors(self, tmp_path, capsys):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"status": "BOGUS"}))

        assert cli.main(["ingest", str(path)]) == 1
        assert "status" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        assert cli.main(["ingest", str(tmp_path / "nope.json")]) == 1


class TestCliArguments:
    def test_run_filters_offer_every_enum_member(self):
        parser = cli.build_parser()

        for status in RunStatus:
            assert parser.parse_args(["runs", "--status", status.value]).status == status.value
        for framework in Framework:
            assert parser.parse_args(["runs", "--framework", framework.value]).framework == framework.value

    @pytest.mark.parametrize("argv", [["runs", "--status", "BOGUS"], ["runs", "--framework", "langchain"]])
    def test_run_filters_reject_unknown_values(self, argv):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(argv)
