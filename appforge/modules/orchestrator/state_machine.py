"""
Phase State Machine for the agent loop

    IDLE → PLANNING → CODING ⇄ TESTING ⇄ DEBUGGING → COMPLETE
                  └────────── any non-terminal ──────────→ ERROR

Transitions are driven by the tool a backend call invokes. Invalid
transitions are refused and logged; the phase stays where it was.
"""

from typing import Dict, Any, Optional, List, Set
from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
import threading
from collections import deque

from appforge.core.exceptions import InvalidTransitionError
from appforge.core.logging_config import logger


class AgentPhase(str, Enum):
    """Phases of one agent run"""
    IDLE = "idle"
    PLANNING = "planning"
    CODING = "coding"
    TESTING = "testing"
    DEBUGGING = "debugging"
    COMPLETE = "complete"
    ERROR = "error"


TERMINAL_PHASES: Set[AgentPhase] = {AgentPhase.COMPLETE, AgentPhase.ERROR}

PHASE_TRANSITIONS: Dict[AgentPhase, Set[AgentPhase]] = {
    AgentPhase.IDLE: {AgentPhase.PLANNING, AgentPhase.ERROR},
    AgentPhase.PLANNING: {
        AgentPhase.CODING, AgentPhase.TESTING, AgentPhase.DEBUGGING,
        AgentPhase.COMPLETE, AgentPhase.ERROR,
    },
    AgentPhase.CODING: {AgentPhase.TESTING, AgentPhase.DEBUGGING, AgentPhase.COMPLETE, AgentPhase.ERROR},
    AgentPhase.TESTING: {AgentPhase.CODING, AgentPhase.DEBUGGING, AgentPhase.COMPLETE, AgentPhase.ERROR},
    AgentPhase.DEBUGGING: {AgentPhase.CODING, AgentPhase.TESTING, AgentPhase.COMPLETE, AgentPhase.ERROR},
    AgentPhase.COMPLETE: set(),
    AgentPhase.ERROR: set(),
}

# Phase each tool moves the run into; tools not listed leave the phase alone
TOOL_PHASES: Dict[str, AgentPhase] = {
    "create_plan": AgentPhase.PLANNING,
    "search_files": AgentPhase.PLANNING,
    "write_file": AgentPhase.CODING,
    "patch_file": AgentPhase.CODING,
    "delete_file": AgentPhase.CODING,
    "verify_project": AgentPhase.TESTING,
    "run_test": AgentPhase.TESTING,
    "fix_error": AgentPhase.DEBUGGING,
    "complete": AgentPhase.COMPLETE,
}


def phase_for_tool(tool_name: str) -> Optional[AgentPhase]:
    return TOOL_PHASES.get(tool_name)


def is_terminal(phase: AgentPhase) -> bool:
    return phase in TERMINAL_PHASES


@dataclass
class PhaseTransition:
    """Record of a phase transition"""
    from_phase: str
    to_phase: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.from_phase,
            "to": self.to_phase,
            "timestamp": self.timestamp.isoformat(),
            "reason": self.reason,
        }


class PhaseStateMachine:
    """
    Validated phase machine for a single run.

    Features:
    - Validates transitions against PHASE_TRANSITIONS
    - Maintains transition history
    - Optional strict mode raising InvalidTransitionError instead of refusing
    """

    def __init__(
        self,
        name: str = "AgentPhase",
        initial_phase: AgentPhase = AgentPhase.IDLE,
        strict: bool = False,
        max_history: int = 100
    ):
        self.name = name
        self.strict = strict
        self._phase = initial_phase
        self._lock = threading.Lock()
        self._history: deque = deque(maxlen=max_history)

    @property
    def phase(self) -> AgentPhase:
        with self._lock:
            return self._phase

    @property
    def terminal(self) -> bool:
        return is_terminal(self.phase)

    def can_transition(self, to_phase: AgentPhase) -> bool:
        with self._lock:
            return to_phase in PHASE_TRANSITIONS.get(self._phase, set())

    def transition(self, to_phase: AgentPhase, reason: Optional[str] = None) -> bool:
        """
        Move to a new phase.

        Returns:
            True if the phase changed. Re-entering the current phase and
            refused transitions both return False.
        """
        with self._lock:
            current = self._phase
            if to_phase == current:
                return False

            if to_phase not in PHASE_TRANSITIONS.get(current, set()):
                allowed = PHASE_TRANSITIONS.get(current, set())
                if self.strict:
                    raise InvalidTransitionError(current.value, to_phase.value)
                logger.warning(
                    f"[{self.name}] Invalid transition: {current.value} → {to_phase.value}. "
                    f"Allowed: {sorted(p.value for p in allowed)}"
                )
                return False

            self._history.append(PhaseTransition(
                from_phase=current.value,
                to_phase=to_phase.value,
                reason=reason
            ))
            self._phase = to_phase

        logger.info(
            f"[{self.name}] Phase transition: {current.value} → {to_phase.value}"
            + (f" ({reason})" if reason else "")
        )
        return True

    def fail(self, reason: str) -> bool:
        """Move to ERROR from any non-terminal phase"""
        return self.transition(AgentPhase.ERROR, reason)

    def get_history(self, limit: int = 10) -> List[PhaseTransition]:
        with self._lock:
            return list(self._history)[-limit:]
