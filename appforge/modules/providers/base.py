"""
Provider Adapter contract and the provider-neutral conversation model.

The orchestrator keeps the conversation in these types; every adapter renders
it to its backend's wire format and parses the reply back into a
ProviderResponse.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional, FrozenSet
from dataclasses import dataclass, field

from appforge.modules.orchestrator.plan_contract import Plan
from appforge.modules.orchestrator.run_state import AgentMode, TokenUsage
from appforge.modules.tools.schemas import ToolResult


@dataclass
class ToolCall:
    id: str
    name: str
    input: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolResponse:
    """Result of one tool call, as fed back to the backend"""
    tool_call_id: str
    tool_name: str
    result: ToolResult

    @property
    def content(self) -> str:
        return self.result.to_message()

    @property
    def is_error(self) -> bool:
        return not self.result.success


@dataclass
class ConversationMessage:
    role: str  # "user" | "assistant"
    text: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)
    tool_results: List[ToolResponse] = field(default_factory=list)


@dataclass
class ConversationState:
    system_prompt: str
    messages: List[ConversationMessage] = field(default_factory=list)
    plan: Optional[Plan] = None
    mode: AgentMode = AgentMode.BUILD

    def add_user_text(self, text: str) -> None:
        self.messages.append(ConversationMessage(role="user", text=text))

    def add_assistant_turn(self, text: str, tool_calls: List[ToolCall]) -> None:
        self.messages.append(ConversationMessage(role="assistant", text=text, tool_calls=list(tool_calls)))

    def add_tool_results(self, results: List[ToolResponse], text: str = "") -> None:
        self.messages.append(ConversationMessage(role="user", text=text, tool_results=list(results)))


@dataclass
class ProviderResponse:
    text: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)
    usage: TokenUsage = field(default_factory=TokenUsage)
    backend_calls: int = 1
    stop_reason: Optional[str] = None


class ProviderAdapter(ABC):
    """Uniform wrapper around one LLM backend"""

    name: str = ""
    display_name: str = ""
    supported_tools: FrozenSet[str] = frozenset()

    @abstractmethod
    async def submit(
        self,
        conversation: ConversationState,
        tools: List[Dict[str, Any]]
    ) -> ProviderResponse:
        """
        Send the conversation and the offered tool definitions, return text,
        tool calls and the usage of this submission.

        Raises:
            ProviderError: the backend could not produce a response
        """

    @property
    def single_tool(self) -> bool:
        return len(self.supported_tools) == 1
