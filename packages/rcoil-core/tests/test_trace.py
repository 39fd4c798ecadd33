"""Tests for trace recording."""
import json

import pytest

from rcoil_core import request as R
from rcoil_core.orchestrator.director import CoilEvent, ExecutionDirector
from rcoil_core.orchestrator.tree import Coil
from rcoil_core.request import CANCEL
from rcoil_core.trace import EventName, TraceEvent, TraceRun, TraceWriter, record_run, redact_headers

URL_1 = "http://api.com/one"
URL_2 = "http://api.com/two"


def read_events(path):
    with open(path, encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]


class TestRedaction:
    def test_sensitive_headers(self):
        headers = redact_headers({"Authorization": "Bearer x", "X-API-Key": "k", "Accept": "*/*"})
        assert headers == {"Authorization": "[REDACTED]", "X-API-Key": "[REDACTED]", "Accept": "*/*"}

    def test_none(self):
        assert redact_headers(None) == {}


class TestTraceWriter:
    def test_write_and_reload(self, tmp_path):
        path = tmp_path / "nested" / "run.jsonl"
        with TraceWriter(path) as writer:
            writer.write(TraceEvent(run_id="run_1", kind="lifecycle", name="run_start",
                                    data={"group_count": 0}))
            writer.write(TraceEvent(run_id="run_1", kind="lifecycle", name="run_end",
                                    data={"status": "completed", "duration_ms": 1.0}))
        assert writer.event_count == 2

        run = TraceRun.from_jsonl_file(str(path))
        assert run.run_id == "run_1"
        assert run.start_event is not None
        assert run.end_event is not None
        assert len(run.filter_by_name(EventName.RUN_END)) == 1


class TestRecordRun:
    @pytest.mark.asyncio
    async def test_completed_run(self, tmp_path, fake_http, invoker):
        def build(context, outgoing):
            outgoing.set_header("Authorization", "Bearer secret")
            return {"id": 1}

        coil = (
            Coil()
            .start_group("users").add_request(R.post("create", URL_1).on_input(build))
            .start_group("details")
            .add_request(R.get("skip", URL_2).on_input(lambda context, outgoing: CANCEL))
        )
        director = ExecutionDirector(coil, http_transport=fake_http, invoker=invoker)

        result = await record_run(director, tmp_path / "run.jsonl", plan="users.yaml")

        assert result["status"] == "completed"
        assert result["error"] is None
        assert result["context"] is director.context

        events = read_events(result["trace_path"])
        names = [e["name"] for e in events]
        assert names[0] == "run_start"
        assert names[-1] == "run_end"
        assert names.count("group_start") == 2
        assert names.count("group_end") == 2
        assert names.count("request_start") == 1
        assert names.count("request_end") == 2
        assert {e["run_id"] for e in events} == {result["run_id"]}

        start = events[0]["data"]
        assert start == {"plan": "users.yaml", "group_count": 2, "groups": ["users", "details"]}

        request_start = next(e for e in events if e["name"] == "request_start")
        assert request_start["data"]["headers"]["Authorization"] == "[REDACTED]"
        assert request_start["data"]["method"] == "POST"

        canceled = [e for e in events if e["name"] == "request_end" and e["data"]["request"] == "skip"]
        assert canceled[0]["data"]["is_canceled"] is True

        end = events[-1]["data"]
        assert end["status"] == "completed"
        assert end["completed_groups"] == 2

    @pytest.mark.asyncio
    async def test_aborted_run(self, tmp_path, fake_http, invoker):
        coil = (
            Coil()
            .start_group("first").add_request(R.get("r1", URL_1))
            .start_group("second").add_request(R.get("r2", URL_2))
        )
        director = ExecutionDirector(coil, http_transport=fake_http, invoker=invoker)
        director.on(CoilEvent.GROUP_START, lambda group, context: director.abort())

        result = await record_run(director, tmp_path / "run.jsonl")

        assert result["status"] == "aborted"
        events = read_events(result["trace_path"])
        abort = next(e for e in events if e["name"] == "abort")
        assert abort["data"] == {"settled_groups": ["first"]}
        assert events[-1]["data"]["completed_groups"] == 1

    @pytest.mark.asyncio
    async def test_recorder_detaches(self, tmp_path, fake_http, invoker):
        director = ExecutionDirector(Coil().start_group("g"), http_transport=fake_http, invoker=invoker)
        await record_run(director, tmp_path / "run.jsonl")
        assert all(not handlers for handlers in director._handlers.values())
