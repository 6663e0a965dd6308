"""
Per-run types: configuration, token usage, run context and the final result.

Counters and accumulated text live on one RunContext per run, so several
runs can execute independently in the same process.
"""

from typing import Dict, Any, List, Optional
from enum import Enum
from dataclasses import dataclass, field

from appforge.core.config import settings
from appforge.modules.orchestrator.plan_contract import FileRecord
from appforge.modules.orchestrator.state_machine import AgentPhase


class AgentMode(str, Enum):
    BUILD = "build"
    PLAN = "plan"


@dataclass
class AgentConfig:
    """Per-orchestrator limits, defaulting to the environment settings"""
    max_iterations: int = 15
    max_backend_calls: int = 100
    continuation_batch_size: int = 3
    max_plan_retries: int = 1

    @classmethod
    def from_settings(cls, **overrides: Any) -> "AgentConfig":
        values = settings.get_agent_limits()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


@dataclass
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0

    def add(self, other: "TokenUsage") -> None:
        self.input_tokens += other.input_tokens
        self.output_tokens += other.output_tokens

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def to_dict(self) -> Dict[str, int]:
        return {"inputTokens": self.input_tokens, "outputTokens": self.output_tokens}


@dataclass
class AgentResult:
    """Terminal summary of a run, available once the event stream closes"""
    success: bool
    phase: AgentPhase
    files: List[FileRecord] = field(default_factory=list)
    summary: Optional[str] = None
    error: Optional[str] = None
    usage: TokenUsage = field(default_factory=TokenUsage)
    iterations: int = 0
    backend_calls: int = 0

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "success": self.success,
            "phase": self.phase.value,
            "files": [f.to_dict() for f in self.files],
            "usage": self.usage.to_dict(),
            "iterations": self.iterations,
            "backendCalls": self.backend_calls,
        }
        if self.summary is not None:
            result["summary"] = self.summary
        if self.error is not None:
            result["error"] = self.error
        return result


@dataclass
class RunContext:
    """Mutable state owned by exactly one run"""
    run_id: str
    prompt: str
    mode: AgentMode = AgentMode.BUILD
    usage: TokenUsage = field(default_factory=TokenUsage)
    text: List[str] = field(default_factory=list)
    summary: Optional[str] = None
    error: Optional[str] = None
    halted: bool = False
    cancelled: bool = False

    @property
    def accumulated_text(self) -> str:
        return "".join(self.text)
