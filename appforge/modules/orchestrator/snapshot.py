"""
Pure reducer over the event stream.

Consumers reconstruct run state by folding events, never by reading
orchestrator internals:

    snapshot = fold_events(run_events)
    snapshot.pending_paths  # ['app/(tabs)/index.tsx']
"""

from typing import Dict, Any, Iterable, Optional, Tuple
from dataclasses import dataclass, field, replace

from appforge.modules.orchestrator.event_bus import AgentEvent, AgentEventType
from appforge.modules.orchestrator.plan_contract import Plan, FileRecord, FileStatus
from appforge.modules.orchestrator.state_machine import AgentPhase, is_terminal
from appforge.modules.tools.schemas import normalize_path


@dataclass(frozen=True)
class RunSnapshot:
    phase: AgentPhase = AgentPhase.IDLE
    iteration: int = 0
    plan: Optional[Plan] = None
    files: Dict[str, FileRecord] = field(default_factory=dict)
    error: Optional[str] = None
    summary: Optional[str] = None
    files_created: Tuple[str, ...] = ()
    started: bool = False
    finished: bool = False
    success: Optional[bool] = None
    last_tool_input: Optional[Dict[str, Any]] = None

    @property
    def terminal(self) -> bool:
        return is_terminal(self.phase)

    @property
    def pending_paths(self) -> Tuple[str, ...]:
        if self.plan is None:
            return ()
        return tuple(
            path for path in self.plan.file_tree
            if path not in self.files or self.files[path].status not in (FileStatus.CREATED, FileStatus.UPDATED)
        )


def _with_file(snapshot: RunSnapshot, record: FileRecord) -> RunSnapshot:
    files = dict(snapshot.files)
    files[record.path] = record
    return replace(snapshot, files=files)


def apply_event(snapshot: RunSnapshot, event: AgentEvent) -> RunSnapshot:
    """Return the snapshot after `event`; the input snapshot is never modified"""
    data = event.data
    event_type = event.type

    if event_type == AgentEventType.RUN_START:
        return replace(snapshot, started=True)

    if event_type == AgentEventType.PHASE_CHANGE:
        return replace(snapshot, phase=AgentPhase(data["phase"]))

    if event_type == AgentEventType.ITERATION:
        return replace(snapshot, iteration=data["iteration"])

    if event_type == AgentEventType.PLAN_CREATED:
        plan = Plan.from_dict(data["plan"])
        files = dict(snapshot.files)
        for path in plan.file_tree:
            existing = files.get(path)
            files[path] = FileRecord(
                path=path,
                content=existing.content if existing else "",
                language=existing.language if existing else "plaintext",
                status=FileStatus.PENDING,
            )
        return replace(snapshot, plan=plan, files=files)

    if event_type in (AgentEventType.FILE_CREATED, AgentEventType.FILE_UPDATED):
        status = FileStatus.CREATED if event_type == AgentEventType.FILE_CREATED else FileStatus.UPDATED
        return _with_file(snapshot, FileRecord(
            path=data["path"],
            content=data.get("content", ""),
            language=data.get("language", "plaintext"),
            status=status,
        ))

    if event_type == AgentEventType.TOOL_CALL:
        tool_input = data.get("input")
        return replace(
            snapshot,
            last_tool_input=dict(tool_input) if isinstance(tool_input, dict) else None
        )

    if event_type == AgentEventType.TOOL_RESULT:
        result = data.get("result") or {}
        tool = data.get("tool")
        path = normalize_path(str((snapshot.last_tool_input or {}).get("path") or ""))
        planned = snapshot.plan is not None and path in snapshot.plan.file_tree
        if tool == "delete_file" and result.get("success") and path:
            files = dict(snapshot.files)
            files.pop(path, None)
            if planned:
                files[path] = FileRecord(path=path, status=FileStatus.PENDING)
            return replace(snapshot, files=files)
        if tool in ("write_file", "patch_file") and not result.get("success") and planned:
            # Same rule as PlanContract.record_failure
            record = snapshot.files.get(path)
            if record is not None and record.status == FileStatus.PENDING:
                return _with_file(snapshot, replace(record, status=FileStatus.ERROR))
        return snapshot

    if event_type == AgentEventType.ERROR:
        return replace(snapshot, error=data.get("error"))

    if event_type == AgentEventType.COMPLETE:
        return replace(
            snapshot,
            summary=data.get("summary"),
            files_created=tuple(data.get("filesCreated") or ()),
        )

    if event_type == AgentEventType.RUN_FINISH:
        return replace(
            snapshot,
            phase=AgentPhase(data.get("phase", snapshot.phase.value)),
            finished=True,
            success=data.get("success"),
        )

    # text_delta, plan_progress
    return snapshot


def fold_events(events: Iterable[AgentEvent], initial: Optional[RunSnapshot] = None) -> RunSnapshot:
    snapshot = initial or RunSnapshot()
    for event in events:
        snapshot = apply_event(snapshot, event)
    return snapshot
