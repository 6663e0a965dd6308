"""
Unit Tests for the Gemini provider adapter and the provider factory
"""
from types import SimpleNamespace

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from appforge.core.config import Settings
from appforge.core.exceptions import ProviderConfigurationError, ProviderError
from appforge.modules.orchestrator import AgentMode, Plan
from appforge.modules.providers import (
    ClaudeProvider,
    ConversationState,
    GeminiProvider,
    ToolCall,
    ToolResponse,
    create_provider,
)
from appforge.modules.providers.gemini_provider import (
    PLAN_DECLARATION,
    estimate_tokens,
    render_contents,
    to_gemini_schema,
)
from appforge.modules.tools import ToolResult, get_tool_definitions


def function_call_part(name, args):
    return SimpleNamespace(function_call=SimpleNamespace(name=name, args=args), text="")


def text_part(text):
    return SimpleNamespace(function_call=None, text=text)


def gemini_response(*parts, prompt_tokens=100, output_tokens=20, finish="STOP"):
    usage = None
    if prompt_tokens is not None:
        usage = SimpleNamespace(prompt_token_count=prompt_tokens, candidates_token_count=output_tokens)
    return SimpleNamespace(
        candidates=[SimpleNamespace(
            content=SimpleNamespace(parts=list(parts)),
            finish_reason=SimpleNamespace(name=finish),
        )],
        usage_metadata=usage,
    )


PLAN_ARGS = {"app_name": "Todo", "app_type": "productivity", "file_tree": ["a.ts", "b.ts"]}


@pytest.fixture
def model():
    mock = MagicMock()
    mock.generate_content_async = AsyncMock()
    return mock


@pytest.fixture
def provider(model):
    factory = MagicMock(return_value=model)
    return GeminiProvider(model="gemini-test", model_factory=factory, max_retries=1)


@pytest.fixture
def conversation():
    state = ConversationState(system_prompt="You are AppForge")
    state.add_user_text("Build me a todo app")
    return state


@pytest.fixture
def write_tools():
    return get_tool_definitions(["write_file"])


class TestGeminiPlanExtraction:
    """Tests for the internal plan-extraction step"""

    @pytest.mark.asyncio
    async def test_extracts_plan_then_writes(self, provider, model, conversation, write_tools):
        """Test one submit returns the extracted plan and the first writes"""
        model.generate_content_async.side_effect = [
            gemini_response(function_call_part("create_plan", PLAN_ARGS)),
            gemini_response(text_part("Writing a.ts"), function_call_part("write_file", {"path": "a.ts", "content": "x"})),
        ]

        response = await provider.submit(conversation, write_tools)

        assert [c.name for c in response.tool_calls] == ["create_plan", "write_file"]
        assert response.tool_calls[0].input == PLAN_ARGS
        assert response.text == "Writing a.ts"
        assert response.backend_calls == 2
        assert response.usage.input_tokens == 200
        assert response.usage.output_tokens == 40

        plan_config = model.generate_content_async.await_args_list[0].kwargs["tool_config"]
        write_config = model.generate_content_async.await_args_list[1].kwargs["tool_config"]
        assert plan_config["function_calling_config"]["mode"] == "ANY"
        assert plan_config["function_calling_config"]["allowed_function_names"] == ["create_plan"]
        assert write_config["function_calling_config"]["mode"] == "AUTO"

        # The write step sees the accepted plan as a function exchange
        write_contents = model.generate_content_async.await_args_list[1].args[0]
        assert write_contents[-2]["parts"][0]["function_call"]["name"] == "create_plan"
        assert write_contents[-1]["parts"][0]["function_response"]["response"]["success"] is True

    @pytest.mark.asyncio
    async def test_plan_step_only_offers_plan_declaration(self, provider, conversation, write_tools):
        provider._model_factory.return_value.generate_content_async.side_effect = [
            gemini_response(function_call_part("create_plan", PLAN_ARGS)),
            gemini_response(text_part("ok")),
        ]
        await provider.submit(conversation, write_tools)

        first_kwargs = provider._model_factory.call_args_list[0].kwargs
        second_kwargs = provider._model_factory.call_args_list[1].kwargs
        assert first_kwargs["tools"] == [{"function_declarations": [PLAN_DECLARATION]}]
        assert [d["name"] for d in second_kwargs["tools"][0]["function_declarations"]] == ["write_file"]
        assert first_kwargs["model_name"] == "gemini-test"
        assert first_kwargs["system_instruction"] == "You are AppForge"

    @pytest.mark.asyncio
    async def test_plan_mode_makes_one_call(self, provider, model, conversation):
        """Test plan mode returns the plan without a write step"""
        conversation.mode = AgentMode.PLAN
        model.generate_content_async.return_value = gemini_response(function_call_part("create_plan", PLAN_ARGS))

        response = await provider.submit(conversation, [])

        assert [c.name for c in response.tool_calls] == ["create_plan"]
        assert response.backend_calls == 1

    @pytest.mark.asyncio
    async def test_missing_plan_call_returns_text_only(self, provider, model, conversation, write_tools):
        model.generate_content_async.return_value = gemini_response(text_part("What platform?"))

        response = await provider.submit(conversation, write_tools)

        assert response.tool_calls == []
        assert response.text == "What platform?"
        assert response.backend_calls == 1

    @pytest.mark.asyncio
    async def test_skips_extraction_once_planned(self, provider, model, conversation, write_tools):
        """Test a planned conversation goes straight to the write step"""
        conversation.plan = Plan("Todo", "productivity", ("a.ts",))
        model.generate_content_async.return_value = gemini_response(
            function_call_part("write_file", {"path": "a.ts", "content": "x"})
        )

        response = await provider.submit(conversation, write_tools)

        assert model.generate_content_async.await_count == 1
        assert response.backend_calls == 1
        assert response.tool_calls[0].id.startswith("gemini-")

    @pytest.mark.asyncio
    async def test_usage_estimated_without_metadata(self, provider, model, conversation, write_tools):
        conversation.plan = Plan("Todo", "productivity", ("a.ts",))
        model.generate_content_async.return_value = gemini_response(text_part("hi"), prompt_tokens=None)

        response = await provider.submit(conversation, write_tools)

        assert response.usage.input_tokens > 0
        assert response.usage.output_tokens == 1

    @pytest.mark.asyncio
    async def test_errors_become_provider_error(self, provider, model, conversation, write_tools):
        conversation.plan = Plan("Todo", "productivity", ("a.ts",))
        model.generate_content_async.side_effect = Exception("400 API key not valid")

        with pytest.raises(ProviderError) as exc_info:
            await provider.submit(conversation, write_tools)

        assert exc_info.value.details["provider"] == "gemini"
        assert model.generate_content_async.await_count == 1


class TestGeminiRendering:
    """Tests for Gemini content and schema conversion"""

    def test_render_contents(self, conversation):
        conversation.add_assistant_turn("", [ToolCall("gemini-1", "write_file", {"path": "a.ts", "content": "x"})])
        conversation.add_tool_results([ToolResponse("gemini-1", "write_file", ToolResult.ok("File written: a.ts"))])

        contents = render_contents(conversation)

        assert [c["role"] for c in contents] == ["user", "model", "user"]
        assert contents[1]["parts"][0]["function_call"]["name"] == "write_file"
        assert contents[2]["parts"][0]["function_response"] == {
            "name": "write_file",
            "response": {"success": True, "output": "File written: a.ts"},
        }

    def test_schema_types_are_uppercased(self):
        schema = to_gemini_schema({
            "type": "object",
            "properties": {"files": {"type": "array", "items": {"type": "string"}}},
            "required": ["files"],
        })
        assert schema["type"] == "OBJECT"
        assert schema["properties"]["files"]["items"]["type"] == "STRING"
        assert schema["required"] == ["files"]

    def test_estimate_tokens(self):
        assert estimate_tokens("") == 0
        assert estimate_tokens("abcde") == 2

    def test_profile(self, provider):
        """Test the single-tool profile"""
        assert provider.supported_tools == {"write_file"}
        assert provider.single_tool is True


class TestProviderFactory:
    """Tests for create_provider"""

    def test_claude_with_injected_client(self):
        provider = create_provider("claude", client=MagicMock())
        assert isinstance(provider, ClaudeProvider)

    def test_gemini_configures_sdk(self):
        with patch("appforge.modules.providers.gemini_provider.genai") as genai_mock:
            provider = create_provider("gemini", config=Settings(GEMINI_API_KEY="g-key"))

        assert isinstance(provider, GeminiProvider)
        genai_mock.configure.assert_called_once_with(api_key="g-key")

    def test_missing_api_key(self):
        with pytest.raises(ProviderConfigurationError):
            create_provider("claude", config=Settings(ANTHROPIC_API_KEY=""))
        with pytest.raises(ProviderConfigurationError):
            create_provider("gemini", config=Settings(GEMINI_API_KEY=""))

    def test_unknown_provider(self):
        with pytest.raises(ProviderConfigurationError) as exc_info:
            create_provider("llama")
        assert "Available: claude, gemini" in exc_info.value.message
