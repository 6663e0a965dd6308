"""
Gemini provider adapter (single-tool profile).

Gemini is offered only write_file. It has no planning or completion tool of
its own, so the adapter runs a private plan-extraction step: while the
conversation has no plan, the first call forces a `create_plan` function call
whose result is handed to the orchestrator like any other tool call. In build
mode the same submit then asks for the first files, so one iteration may
cost two backend calls. Completion comes from the orchestrator's
auto-complete rule.
"""

from typing import Optional, Dict, List, Any, Tuple, Callable
import asyncio
import itertools
import json
import math

import google.generativeai as genai

from appforge.core.config import settings
from appforge.core.exceptions import ProviderError
from appforge.core.logging_config import logger
from appforge.modules.orchestrator.run_state import AgentMode, TokenUsage
from appforge.modules.providers.base import (
    ProviderAdapter,
    ConversationState,
    ProviderResponse,
    ToolCall,
)
from appforge.modules.tools.definitions import TOOLS_BY_NAME, ToolName
from appforge.utils.retry import is_retryable_error, calculate_retry_delay

PLAN_TOOL_NAME = ToolName.CREATE_PLAN.value

PLAN_EXTRACTION_PROMPT = (
    "Before writing any code, call create_plan with the complete file_tree for this app."
)

PLAN_ACCEPTED_OUTPUT = "Plan accepted. Now write the planned files with write_file, a few per turn, in plan order."


def to_gemini_schema(schema: Dict[str, Any]) -> Dict[str, Any]:
    """Convert a JSON schema fragment to Gemini's OpenAPI subset (uppercase types)"""
    converted: Dict[str, Any] = {}
    if "type" in schema:
        converted["type"] = str(schema["type"]).upper()
    if "description" in schema:
        converted["description"] = schema["description"]
    if "enum" in schema:
        converted["enum"] = list(schema["enum"])
    if "items" in schema:
        converted["items"] = to_gemini_schema(schema["items"])
    if "properties" in schema:
        converted["properties"] = {
            name: to_gemini_schema(prop) for name, prop in schema["properties"].items()
        }
    if schema.get("required"):
        converted["required"] = list(schema["required"])
    return converted


def to_function_declaration(tool: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "name": tool["name"],
        "description": tool["description"],
        "parameters": to_gemini_schema(tool["input_schema"]),
    }


# Internal to this adapter, never part of the offered tool set
PLAN_DECLARATION = to_function_declaration(TOOLS_BY_NAME[PLAN_TOOL_NAME])


def to_plain(value: Any) -> Any:
    """Recursively convert proto map/repeated composites into dicts and lists"""
    if isinstance(value, (str, bytes, int, float, bool)) or value is None:
        return value
    if isinstance(value, dict) or hasattr(value, "items"):
        return {str(k): to_plain(v) for k, v in value.items()}
    try:
        return [to_plain(v) for v in value]
    except TypeError:
        return value


def render_contents(conversation: ConversationState) -> List[Dict[str, Any]]:
    """Render the neutral conversation as Gemini `contents`"""
    contents: List[Dict[str, Any]] = []

    for message in conversation.messages:
        role = "model" if message.role == "assistant" else "user"
        parts: List[Dict[str, Any]] = []

        if message.role == "assistant":
            if message.text:
                parts.append({"text": message.text})
            for call in message.tool_calls:
                parts.append({"function_call": {"name": call.name, "args": call.input}})
        else:
            for response in message.tool_results:
                parts.append({
                    "function_response": {
                        "name": response.tool_name,
                        "response": {"success": not response.is_error, "output": response.content},
                    }
                })
            if message.text:
                parts.append({"text": message.text})

        if not parts:
            continue

        if contents and contents[-1]["role"] == role:
            contents[-1]["parts"].extend(parts)
        else:
            contents.append({"role": role, "parts": parts})

    return contents


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / 4)


class GeminiProvider(ProviderAdapter):
    """Google Gemini backend exposing only write_file"""

    name = "gemini"
    display_name = "Gemini"
    supported_tools = frozenset({ToolName.WRITE_FILE.value})

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_output_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        max_retries: Optional[int] = None,
        model_factory: Optional[Callable[..., Any]] = None,
    ):
        self.model = model or settings.GEMINI_MODEL
        self.max_output_tokens = max_output_tokens or settings.GEMINI_MAX_OUTPUT_TOKENS
        self.temperature = settings.GEMINI_TEMPERATURE if temperature is None else temperature
        self.max_retries = settings.GEMINI_MAX_RETRIES if max_retries is None else max_retries
        self._call_ids = itertools.count(1)

        if model_factory is None:
            genai.configure(api_key=api_key or settings.GEMINI_API_KEY)
            model_factory = genai.GenerativeModel
        self._model_factory = model_factory

        logger.info(f"Gemini provider initialized: model={self.model}, max_output_tokens={self.max_output_tokens}")

    async def submit(self, conversation: ConversationState, tools: List[Dict[str, Any]]) -> ProviderResponse:
        usage = TokenUsage()
        backend_calls = 0
        tool_calls: List[ToolCall] = []
        texts: List[str] = []
        contents = render_contents(conversation)

        if conversation.plan is None:
            plan_contents = contents + [{"role": "user", "parts": [{"text": PLAN_EXTRACTION_PROMPT}]}]
            response = await self._generate(
                conversation.system_prompt,
                [PLAN_DECLARATION],
                plan_contents,
                {"function_calling_config": {"mode": "ANY", "allowed_function_names": [PLAN_TOOL_NAME]}},
            )
            backend_calls += 1
            text, calls, stop_reason = self._parse_response(response)
            usage.add(self._usage(response, conversation.system_prompt, plan_contents, text, calls))

            plan_call = next((c for c in calls if c.name == PLAN_TOOL_NAME), None)
            if text:
                texts.append(text)
            if plan_call is None:
                logger.warning("[GeminiProvider] Plan extraction returned no create_plan call")
                return ProviderResponse("".join(texts), [], usage, backend_calls, stop_reason)

            tool_calls.append(plan_call)
            logger.info(
                f"[GeminiProvider] Extracted plan: {plan_call.input.get('app_name', '?')} "
                f"({len(plan_call.input.get('file_tree') or [])} files)"
            )
            if conversation.mode == AgentMode.PLAN or not tools:
                return ProviderResponse("".join(texts), tool_calls, usage, backend_calls, stop_reason)

            contents = contents + [
                {"role": "model", "parts": [{"function_call": {"name": PLAN_TOOL_NAME, "args": plan_call.input}}]},
                {"role": "user", "parts": [{
                    "function_response": {
                        "name": PLAN_TOOL_NAME,
                        "response": {"success": True, "output": PLAN_ACCEPTED_OUTPUT},
                    }
                }]},
            ]

        if not tools:
            return ProviderResponse("".join(texts), tool_calls, usage, backend_calls, "no_tools")

        response = await self._generate(
            conversation.system_prompt,
            [to_function_declaration(tool) for tool in tools],
            contents,
            {"function_calling_config": {"mode": "AUTO"}},
        )
        backend_calls += 1
        text, calls, stop_reason = self._parse_response(response)
        usage.add(self._usage(response, conversation.system_prompt, contents, text, calls))
        if text:
            texts.append(text)
        tool_calls.extend(calls)

        return ProviderResponse("".join(texts), tool_calls, usage, backend_calls, stop_reason)

    async def _generate(
        self,
        system_prompt: str,
        declarations: List[Dict[str, Any]],
        contents: List[Dict[str, Any]],
        tool_config: Dict[str, Any],
    ) -> Any:
        model = self._model_factory(
            model_name=self.model,
            system_instruction=system_prompt,
            tools=[{"function_declarations": declarations}],
            generation_config={
                "max_output_tokens": self.max_output_tokens,
                "temperature": self.temperature,
            },
        )
        logger.info(
            f"Gemini API: model={self.model}, contents={len(contents)}, "
            f"functions={[d['name'] for d in declarations]}"
        )

        last_error: Optional[Exception] = None
        for attempt in range(self.max_retries + 1):
            try:
                return await model.generate_content_async(contents, tool_config=tool_config)
            except Exception as e:
                last_error = e
                error_type = type(e).__name__
                retryable = is_retryable_error(e)
                if retryable and attempt < self.max_retries:
                    delay = calculate_retry_delay(
                        attempt, settings.CLAUDE_RETRY_BASE_DELAY, settings.CLAUDE_RETRY_MAX_DELAY
                    )
                    logger.warning(
                        f"Gemini API error [{error_type}] (attempt {attempt + 1}/{self.max_retries + 1}), "
                        f"retrying in {delay:.1f}s...",
                        extra={
                            "event_type": "gemini_api_retry",
                            "error_type": error_type,
                            "attempt": attempt + 1,
                            "retry_delay": delay
                        }
                    )
                    await asyncio.sleep(delay)
                else:
                    logger.error(
                        f"Gemini API error (non-retryable or max retries exceeded): {error_type}: {e}",
                        extra={
                            "event_type": "gemini_api_error",
                            "error_type": error_type,
                            "error_message": str(e),
                            "attempt": attempt + 1
                        }
                    )
                    raise ProviderError(self.name, str(e) or error_type, retryable=retryable) from e

        raise ProviderError(self.name, str(last_error))

    def _parse_response(self, response: Any) -> Tuple[str, List[ToolCall], Optional[str]]:
        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            return "", [], None

        candidate = candidates[0]
        finish_reason = getattr(candidate, "finish_reason", None)
        stop_reason = getattr(finish_reason, "name", None) or (str(finish_reason) if finish_reason else None)

        texts: List[str] = []
        calls: List[ToolCall] = []
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            function_call = getattr(part, "function_call", None)
            if function_call is not None and getattr(function_call, "name", ""):
                calls.append(ToolCall(
                    id=f"gemini-{next(self._call_ids)}",
                    name=function_call.name,
                    input=to_plain(getattr(function_call, "args", None) or {}),
                ))
                continue
            text = getattr(part, "text", "")
            if text:
                texts.append(text)

        return "".join(texts), calls, stop_reason

    def _usage(self, response: Any, system_prompt: str, contents: List[Dict[str, Any]],
               text: str, calls: List[ToolCall]) -> TokenUsage:
        metadata = getattr(response, "usage_metadata", None)
        prompt_tokens = getattr(metadata, "prompt_token_count", None) if metadata is not None else None
        output_tokens = getattr(metadata, "candidates_token_count", None) if metadata is not None else None

        if not prompt_tokens:
            prompt_tokens = estimate_tokens(system_prompt + json.dumps(contents, default=str))
        if not output_tokens:
            output_tokens = estimate_tokens(text + "".join(json.dumps(c.input, default=str) for c in calls))

        return TokenUsage(input_tokens=int(prompt_tokens), output_tokens=int(output_tokens))
