"""
Agent Event Stream

The single, append-only channel of typed events an agent run produces. It is
the only externally observable contract of the orchestrator: consumers pull
events from the run (`async for event in run`) and can rebuild the run state
with the pure reducer in `snapshot.py`.

Event Types:
  • run_start        • run_finish       • phase_change    • iteration
  • plan_created     • plan_progress    • tool_call       • tool_result
  • text_delta       • file_created     • file_updated    • error
  • complete
"""

from typing import Dict, Any, List, Optional, Mapping
from types import MappingProxyType
from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
import copy
import json

from appforge.core.logging_config import logger


class AgentEventType(str, Enum):
    """All event types an agent run emits"""

    # Run lifecycle
    RUN_START = "run_start"
    RUN_FINISH = "run_finish"
    PHASE_CHANGE = "phase_change"
    ITERATION = "iteration"

    # Planning
    PLAN_CREATED = "plan_created"
    PLAN_PROGRESS = "plan_progress"

    # Tools
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"

    # Narration
    TEXT_DELTA = "text_delta"

    # Files
    FILE_CREATED = "file_created"
    FILE_UPDATED = "file_updated"

    # Outcome
    ERROR = "error"
    COMPLETE = "complete"


@dataclass(frozen=True)
class AgentEvent:
    """An immutable event in a run's stream"""
    type: AgentEventType
    data: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    run_id: str = ""
    sequence: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __getitem__(self, key: str) -> Any:
        return self.data[key]

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "runId": self.run_id,
            "sequence": self.sequence,
            "timestamp": self.timestamp.isoformat(),
            **copy.deepcopy(dict(self.data)),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    def to_sse(self) -> str:
        """Format for Server-Sent Events"""
        return f"data: {self.to_json()}\n\n"


class EventLog:
    """
    Append-only event channel for one run.

    The orchestrator appends; the run generator drains what has not been
    delivered yet and yields it to the consumer.
    """

    def __init__(self, run_id: str):
        self.run_id = run_id
        self._history: List[AgentEvent] = []
        self._delivered = 0

    def append(self, event_type: AgentEventType, data: Optional[Dict[str, Any]] = None) -> AgentEvent:
        event = AgentEvent(
            type=event_type,
            data=MappingProxyType(copy.deepcopy(data or {})),
            run_id=self.run_id,
            sequence=len(self._history) + 1,
        )
        self._history.append(event)
        logger.debug(f"[EventLog:{self.run_id}] #{event.sequence} {event_type.value}")
        return event

    def drain(self) -> List[AgentEvent]:
        """Events appended since the last drain"""
        pending = self._history[self._delivered:]
        self._delivered = len(self._history)
        return pending

    @property
    def history(self) -> List[AgentEvent]:
        return list(self._history)

    def of_type(self, event_type: AgentEventType) -> List[AgentEvent]:
        return [e for e in self._history if e.type == event_type]

    def __len__(self) -> int:
        return len(self._history)


# ========== Event payload builders ==========

def file_event_payload(path: str, content: str, language: str) -> Dict[str, Any]:
    return {"path": path, "content": content, "language": language}


def tool_call_payload(tool: str, tool_input: Dict[str, Any], iteration: int,
                      call_id: Optional[str] = None) -> Dict[str, Any]:
    data = {"tool": tool, "input": tool_input, "iteration": iteration}
    if call_id:
        data["callId"] = call_id
    return data


def tool_result_payload(tool: str, result: Dict[str, Any], iteration: int,
                        call_id: Optional[str] = None) -> Dict[str, Any]:
    data = {"tool": tool, "result": result, "iteration": iteration}
    if call_id:
        data["callId"] = call_id
    return data


def complete_payload(summary: str, files_created: List[str],
                     next_steps: Optional[List[str]] = None,
                     synthesized: bool = False) -> Dict[str, Any]:
    data: Dict[str, Any] = {"summary": summary, "filesCreated": list(files_created)}
    if next_steps:
        data["nextSteps"] = list(next_steps)
    if synthesized:
        data["synthesized"] = True
    return data


def error_payload(error: str, code: Optional[str] = None, **details: Any) -> Dict[str, Any]:
    data: Dict[str, Any] = {"error": error}
    if code:
        data["code"] = code
    data.update(details)
    return data
