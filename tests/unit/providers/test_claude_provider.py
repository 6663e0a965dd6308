"""
Unit Tests for the Claude provider adapter
"""
from types import SimpleNamespace

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from appforge.core.exceptions import ProviderError
from appforge.modules.providers import ClaudeProvider, ConversationState, ToolCall, ToolResponse
from appforge.modules.providers.claude_provider import render_messages
from appforge.modules.tools import ToolResult, get_tool_definitions, BUILD_MODE_TOOLS


def claude_response(*blocks, input_tokens=12, output_tokens=34, stop_reason="tool_use"):
    return SimpleNamespace(
        id="msg_123",
        content=list(blocks),
        usage=SimpleNamespace(input_tokens=input_tokens, output_tokens=output_tokens),
        stop_reason=stop_reason,
    )


def text_block(text):
    return SimpleNamespace(type="text", text=text)


def tool_use_block(block_id, name, tool_input):
    return SimpleNamespace(type="tool_use", id=block_id, name=name, input=tool_input)


@pytest.fixture
def conversation():
    state = ConversationState(system_prompt="You are AppForge")
    state.add_user_text("Build me a todo app")
    return state


@pytest.fixture
def client():
    mock = MagicMock()
    mock.messages.create = AsyncMock()
    return mock


class TestRenderMessages:
    """Tests for the Anthropic message rendering"""

    def test_tool_round_trip_shape(self, conversation):
        """Test assistant tool_use and user tool_result blocks"""
        conversation.add_assistant_turn("Writing.", [ToolCall("tu_1", "write_file", {"path": "a.ts", "content": "x"})])
        conversation.add_tool_results([
            ToolResponse("tu_1", "write_file", ToolResult.fail("disk full")),
        ], text="Keep going.")

        messages = render_messages(conversation)

        assert [m["role"] for m in messages] == ["user", "assistant", "user"]
        assert messages[1]["content"][1] == {
            "type": "tool_use", "id": "tu_1", "name": "write_file", "input": {"path": "a.ts", "content": "x"}
        }
        result_block = messages[2]["content"][0]
        assert result_block["tool_use_id"] == "tu_1"
        assert result_block["content"] == "Error: disk full"
        assert result_block["is_error"] is True
        assert messages[2]["content"][1] == {"type": "text", "text": "Keep going."}

    def test_consecutive_user_messages_are_merged(self, conversation):
        """Test the API's alternating-role requirement is kept"""
        conversation.add_assistant_turn("", [])
        conversation.add_user_text("Continue please")

        messages = render_messages(conversation)

        assert len(messages) == 1
        assert [b["text"] for b in messages[0]["content"]] == ["Build me a todo app", "Continue please"]


class TestClaudeProvider:
    """Tests for ClaudeProvider.submit"""

    @pytest.mark.asyncio
    async def test_submit_parses_text_and_tool_calls(self, conversation, client):
        """Test text, tool_use blocks and usage are mapped"""
        client.messages.create.return_value = claude_response(
            text_block("Let me plan. "),
            tool_use_block("tu_1", "create_plan", {"app_name": "Todo", "app_type": "p", "file_tree": ["a.ts"]}),
        )
        provider = ClaudeProvider(client=client, model="claude-test", max_tokens=1000, temperature=0.2)
        tools = get_tool_definitions(BUILD_MODE_TOOLS)

        response = await provider.submit(conversation, tools)

        assert response.text == "Let me plan. "
        assert response.tool_calls[0].id == "tu_1"
        assert response.tool_calls[0].name == "create_plan"
        assert response.usage.input_tokens == 12
        assert response.usage.output_tokens == 34
        assert response.backend_calls == 1

        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["model"] == "claude-test"
        assert kwargs["system"] == "You are AppForge"
        assert kwargs["tools"] == tools
        assert kwargs["messages"][0]["role"] == "user"

    @pytest.mark.asyncio
    async def test_retries_retryable_errors(self, conversation, client):
        """Test overloaded errors are retried with backoff"""
        client.messages.create.side_effect = [
            Exception("Overloaded, please retry"),
            claude_response(text_block("ok"), stop_reason="end_turn"),
        ]
        provider = ClaudeProvider(client=client, max_retries=2)

        with patch("appforge.modules.providers.claude_provider.calculate_retry_delay", return_value=0):
            response = await provider.submit(conversation, [])

        assert response.text == "ok"
        assert client.messages.create.await_count == 2

    @pytest.mark.asyncio
    async def test_non_retryable_error_raises_provider_error(self, conversation, client):
        client.messages.create.side_effect = Exception("invalid request: messages malformed")
        provider = ClaudeProvider(client=client, max_retries=3)

        with pytest.raises(ProviderError) as exc_info:
            await provider.submit(conversation, [])

        assert client.messages.create.await_count == 1
        assert exc_info.value.code == "PROVIDER_ERROR"
        assert exc_info.value.details == {"provider": "claude", "retryable": False}

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, conversation, client):
        client.messages.create.side_effect = Exception("connection reset")
        provider = ClaudeProvider(client=client, max_retries=1)

        with patch("appforge.modules.providers.claude_provider.calculate_retry_delay", return_value=0):
            with pytest.raises(ProviderError) as exc_info:
                await provider.submit(conversation, [])

        assert client.messages.create.await_count == 2
        assert exc_info.value.details["retryable"] is True

    def test_profile(self, client):
        """Test the multi-tool profile"""
        provider = ClaudeProvider(client=client)
        assert provider.name == "claude"
        assert provider.supported_tools == BUILD_MODE_TOOLS
        assert provider.single_tool is False
