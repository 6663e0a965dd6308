"""
Claude provider adapter (multi-tool profile).

A thin pass-through: all offered tool definitions go to messages.create as-is
and tool_use blocks come back as ToolCalls.
"""

from typing import Optional, Dict, List, Any
import asyncio

import httpx
from anthropic import AsyncAnthropic

from appforge.core.config import settings
from appforge.core.exceptions import ProviderError
from appforge.core.logging_config import logger
from appforge.modules.orchestrator.run_state import TokenUsage
from appforge.modules.providers.base import (
    ProviderAdapter,
    ConversationState,
    ProviderResponse,
    ToolCall,
)
from appforge.modules.tools.definitions import BUILD_MODE_TOOLS
from appforge.utils.retry import is_retryable_error, calculate_retry_delay


def render_messages(conversation: ConversationState) -> List[Dict[str, Any]]:
    """Render the neutral conversation as Anthropic message params"""
    rendered: List[Dict[str, Any]] = []

    for message in conversation.messages:
        blocks: List[Dict[str, Any]] = []

        if message.role == "assistant":
            if message.text:
                blocks.append({"type": "text", "text": message.text})
            for call in message.tool_calls:
                blocks.append({
                    "type": "tool_use",
                    "id": call.id,
                    "name": call.name,
                    "input": call.input,
                })
        else:
            for response in message.tool_results:
                block = {
                    "type": "tool_result",
                    "tool_use_id": response.tool_call_id,
                    "content": response.content,
                }
                if response.is_error:
                    block["is_error"] = True
                blocks.append(block)
            if message.text:
                blocks.append({"type": "text", "text": message.text})

        # Empty assistant turns are rejected by the API
        if not blocks:
            continue

        if rendered and rendered[-1]["role"] == message.role:
            rendered[-1]["content"].extend(blocks)
        else:
            rendered.append({"role": message.role, "content": blocks})

    return rendered


class ClaudeProvider(ProviderAdapter):
    """Anthropic Messages API backend exposing all 11 tools"""

    name = "claude"
    display_name = "Claude"
    supported_tools = BUILD_MODE_TOOLS

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        max_retries: Optional[int] = None,
        client: Optional[AsyncAnthropic] = None,
    ):
        self.model = model or settings.CLAUDE_MODEL
        self.max_tokens = max_tokens or settings.CLAUDE_MAX_TOKENS
        self.temperature = settings.CLAUDE_TEMPERATURE if temperature is None else temperature
        self.max_retries = settings.CLAUDE_MAX_RETRIES if max_retries is None else max_retries

        if client is None:
            client_kwargs: Dict[str, Any] = {"api_key": api_key or settings.ANTHROPIC_API_KEY}

            # Only set base_url if it's a non-empty string with actual content
            if settings.ANTHROPIC_BASE_URL and settings.ANTHROPIC_BASE_URL.strip():
                client_kwargs["base_url"] = settings.ANTHROPIC_BASE_URL.strip()
                logger.info(f"Using custom Claude API base URL: {settings.ANTHROPIC_BASE_URL}")

            client_kwargs["timeout"] = httpx.Timeout(
                connect=float(settings.CLAUDE_CONNECT_TIMEOUT),
                read=float(settings.CLAUDE_REQUEST_TIMEOUT),
                write=float(settings.CLAUDE_REQUEST_TIMEOUT),
                pool=float(settings.CLAUDE_REQUEST_TIMEOUT)
            )
            client = AsyncAnthropic(**client_kwargs)

        self.client = client
        logger.info(f"Claude provider initialized: model={self.model}, max_tokens={self.max_tokens}")

    async def submit(self, conversation: ConversationState, tools: List[Dict[str, Any]]) -> ProviderResponse:
        messages = render_messages(conversation)
        logger.info(f"Claude API: model={self.model}, messages={len(messages)}, tools={len(tools)}")

        last_error: Optional[Exception] = None
        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.messages.create(
                    model=self.model,
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                    system=conversation.system_prompt,
                    tools=tools,
                    messages=messages,
                )
                return self._parse_response(response)

            except Exception as e:
                last_error = e
                error_type = type(e).__name__
                retryable = is_retryable_error(e)
                if retryable and attempt < self.max_retries:
                    delay = calculate_retry_delay(
                        attempt, settings.CLAUDE_RETRY_BASE_DELAY, settings.CLAUDE_RETRY_MAX_DELAY
                    )
                    logger.warning(
                        f"Claude API error [{error_type}] (attempt {attempt + 1}/{self.max_retries + 1}), "
                        f"retrying in {delay:.1f}s...",
                        extra={
                            "event_type": "claude_api_retry",
                            "error_type": error_type,
                            "attempt": attempt + 1,
                            "max_retries": self.max_retries + 1,
                            "retry_delay": delay
                        }
                    )
                    await asyncio.sleep(delay)
                else:
                    logger.error(
                        f"Claude API error (non-retryable or max retries exceeded): {error_type}: {e}",
                        extra={
                            "event_type": "claude_api_error",
                            "error_type": error_type,
                            "error_message": str(e),
                            "attempt": attempt + 1
                        }
                    )
                    raise ProviderError(self.name, str(e) or error_type, retryable=retryable) from e

        raise ProviderError(self.name, str(last_error))

    def _parse_response(self, response: Any) -> ProviderResponse:
        text_parts: List[str] = []
        tool_calls: List[ToolCall] = []

        for block in response.content or []:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                tool_calls.append(ToolCall(id=block.id, name=block.name, input=dict(block.input or {})))

        usage = TokenUsage(
            input_tokens=getattr(response.usage, "input_tokens", 0) or 0,
            output_tokens=getattr(response.usage, "output_tokens", 0) or 0,
        )
        logger.info(
            f"Claude API response: id={getattr(response, 'id', '-')}, tokens={usage.total_tokens}, "
            f"tool_calls={len(tool_calls)}, stop={response.stop_reason}"
        )
        return ProviderResponse(
            text="".join(text_parts),
            tool_calls=tool_calls,
            usage=usage,
            backend_calls=1,
            stop_reason=response.stop_reason,
        )
