"""
Unit Tests for the event log and the snapshot reducer
"""
import json

import pytest

from appforge.modules.orchestrator import (
    AgentEventType,
    AgentPhase,
    EventLog,
    FileStatus,
    Plan,
    RunSnapshot,
    apply_event,
    fold_events,
)
from appforge.modules.orchestrator.event_bus import (
    complete_payload,
    error_payload,
    file_event_payload,
    tool_call_payload,
    tool_result_payload,
)


class TestEventLog:
    """Tests for EventLog"""

    def test_sequence_numbers(self):
        """Test events are numbered from 1 in append order"""
        log = EventLog("run-1")
        log.append(AgentEventType.RUN_START, {"mode": "build"})
        log.append(AgentEventType.ITERATION, {"iteration": 1})

        assert [e.sequence for e in log.history] == [1, 2]
        assert all(e.run_id == "run-1" for e in log.history)

    def test_drain_returns_undelivered_only(self):
        log = EventLog("run-1")
        log.append(AgentEventType.RUN_START)
        assert len(log.drain()) == 1
        assert log.drain() == []

        log.append(AgentEventType.ITERATION, {"iteration": 1})
        assert [e.type for e in log.drain()] == [AgentEventType.ITERATION]
        assert len(log) == 2

    def test_payload_is_copied_and_read_only(self):
        """Test later mutation of the source dict does not leak into the event"""
        source = {"input": {"path": "a.ts"}}
        event = EventLog("run-1").append(AgentEventType.TOOL_CALL, source)
        source["input"]["path"] = "changed.ts"

        assert event["input"]["path"] == "a.ts"
        with pytest.raises(TypeError):
            event.data["tool"] = "x"

    def test_sse_format(self):
        """Test the SSE framing and flattened JSON body"""
        event = EventLog("run-9").append(AgentEventType.PHASE_CHANGE, {"phase": "coding"})
        sse = event.to_sse()

        assert sse.startswith("data: ")
        assert sse.endswith("\n\n")
        body = json.loads(sse[len("data: "):])
        assert body["type"] == "phase_change"
        assert body["phase"] == "coding"
        assert body["runId"] == "run-9"
        assert body["sequence"] == 1

    def test_payload_builders(self):
        assert tool_call_payload("write_file", {"path": "a"}, 2, "c1") == {
            "tool": "write_file", "input": {"path": "a"}, "iteration": 2, "callId": "c1"
        }
        assert tool_result_payload("read_file", {"success": True}, 1) == {
            "tool": "read_file", "result": {"success": True}, "iteration": 1
        }
        assert complete_payload("ok", ["a"]) == {"summary": "ok", "filesCreated": ["a"]}
        assert complete_payload("ok", [], ["ship"], synthesized=True)["synthesized"] is True
        assert error_payload("bad", "X", pending=["a"]) == {"error": "bad", "code": "X", "pending": ["a"]}
        assert file_event_payload("a.ts", "x", "typescript")["language"] == "typescript"


class TestSnapshot:
    """Tests for the pure event reducer"""

    def _plan_events(self, log):
        plan = Plan("TodoApp", "productivity", ("a.ts", "b.ts"))
        log.append(AgentEventType.RUN_START)
        log.append(AgentEventType.PHASE_CHANGE, {"phase": "planning"})
        log.append(AgentEventType.PLAN_CREATED, {"plan": plan.to_dict()})

    def test_plan_and_files(self):
        """Test pending paths shrink as file events arrive"""
        log = EventLog("r")
        self._plan_events(log)
        log.append(AgentEventType.FILE_CREATED, file_event_payload("a.ts", "a", "typescript"))

        snapshot = fold_events(log.history)

        assert snapshot.started
        assert snapshot.phase == AgentPhase.PLANNING
        assert snapshot.pending_paths == ("b.ts",)
        assert snapshot.files["a.ts"].status == FileStatus.CREATED

    def test_apply_event_does_not_mutate_input(self):
        log = EventLog("r")
        self._plan_events(log)
        before = fold_events(log.history)
        event = log.append(AgentEventType.FILE_UPDATED, file_event_payload("b.ts", "b", "typescript"))

        after = apply_event(before, event)

        assert "b.ts" in after.files
        assert before.files["b.ts"].status == FileStatus.PENDING
        assert after.files["b.ts"].status == FileStatus.UPDATED

    def test_successful_delete_reopens_planned_path(self):
        """Test a delete_file result removes the file from the snapshot"""
        log = EventLog("r")
        self._plan_events(log)
        log.append(AgentEventType.FILE_CREATED, file_event_payload("a.ts", "a", "typescript"))
        log.append(AgentEventType.TOOL_CALL, tool_call_payload("delete_file", {"path": "./a.ts"}, 2))
        log.append(AgentEventType.TOOL_RESULT, tool_result_payload("delete_file", {"success": True}, 2))

        snapshot = fold_events(log.history)

        assert snapshot.pending_paths == ("a.ts", "b.ts")
        assert snapshot.files["a.ts"].content == ""

    def test_failed_delete_is_ignored(self):
        log = EventLog("r")
        self._plan_events(log)
        log.append(AgentEventType.FILE_CREATED, file_event_payload("a.ts", "a", "typescript"))
        log.append(AgentEventType.TOOL_CALL, tool_call_payload("delete_file", {"path": "a.ts"}, 2))
        log.append(AgentEventType.TOOL_RESULT, tool_result_payload("delete_file", {"success": False}, 2))

        assert fold_events(log.history).pending_paths == ("b.ts",)

    def test_failed_write_marks_planned_path_error(self):
        """Test a failed write on a pending planned path becomes error, like the contract"""
        log = EventLog("r")
        self._plan_events(log)
        log.append(AgentEventType.TOOL_CALL, tool_call_payload("patch_file", {"path": "b.ts", "find": "x"}, 1))
        log.append(AgentEventType.TOOL_RESULT, tool_result_payload(
            "patch_file", {"success": False, "error": "Cannot patch missing file: b.ts"}, 1
        ))
        log.append(AgentEventType.TOOL_CALL, tool_call_payload("write_file", {"path": "extra.ts"}, 1))
        log.append(AgentEventType.TOOL_RESULT, tool_result_payload("write_file", {"success": False}, 1))

        snapshot = fold_events(log.history)

        assert snapshot.files["b.ts"].status == FileStatus.ERROR
        assert snapshot.files["a.ts"].status == FileStatus.PENDING
        assert "extra.ts" not in snapshot.files
        assert snapshot.pending_paths == ("a.ts", "b.ts")

        # A later successful write clears the error
        log.append(AgentEventType.FILE_CREATED, file_event_payload("b.ts", "b", "typescript"))
        assert fold_events(log.history).files["b.ts"].status == FileStatus.CREATED

    def test_finish_and_error(self):
        log = EventLog("r")
        log.append(AgentEventType.ERROR, error_payload("boom"))
        log.append(AgentEventType.RUN_FINISH, {"phase": "error", "success": False})

        snapshot = fold_events(log.history, RunSnapshot())

        assert snapshot.error == "boom"
        assert snapshot.finished
        assert snapshot.terminal
        assert snapshot.success is False
