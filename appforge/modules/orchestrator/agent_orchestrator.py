"""
Agent Orchestrator - turns one user request into a bounded sequence of LLM
tool invocations and streams typed events while it works.

Flow per iteration:
1. Check cancellation and the Budget Guard
2. Submit the conversation and offered tools to the Provider Adapter
3. Dispatch each returned tool call to the Tool Executor, in order
4. When the turn had no tool calls, ask the Continuation Policy what to do

The run is a pull-based async iterable: the loop only advances while the
caller iterates, and every event is yielded as soon as it is produced.

Usage:
    orchestrator = AgentOrchestrator(provider)
    run = orchestrator.run("A habit tracker with streaks")
    async for event in run:
        print(event.to_sse())
    result = run.result
"""

import time
from typing import Dict, Any, Callable, List, Optional, AsyncIterator

from pydantic import ValidationError

from appforge.core.exceptions import AppForgeError, RunAlreadyStartedError, RunNotFinishedError
from appforge.core.logging_config import logger, generate_run_id, RunLogContext, bind_run_context
from appforge.modules.orchestrator.budget import BudgetGuard
from appforge.modules.orchestrator.continuation import ContinuationPolicy, ContinuationAction
from appforge.modules.orchestrator.event_bus import (
    AgentEvent,
    AgentEventType,
    EventLog,
    file_event_payload,
    tool_call_payload,
    tool_result_payload,
    complete_payload,
    error_payload,
)
from appforge.modules.orchestrator.plan_contract import PlanContract, Plan
from appforge.modules.orchestrator.prompts import (
    build_system_prompt,
    build_initial_prompt,
    build_completion_rejection,
    build_plan_rejection,
)
from appforge.modules.orchestrator.run_state import AgentConfig, AgentMode, AgentResult, RunContext
from appforge.modules.orchestrator.snapshot import RunSnapshot, fold_events
from appforge.modules.orchestrator.state_machine import AgentPhase, PhaseStateMachine, phase_for_tool
from appforge.modules.providers.base import (
    ProviderAdapter,
    ConversationState,
    ProviderResponse,
    ToolCall,
    ToolResponse,
)
from appforge.modules.tools.definitions import (
    BUILD_MODE_TOOLS,
    PLAN_MODE_TOOLS,
    TOOLS_BY_NAME,
    TOOLS_VERSION,
    get_tool_definitions,
)
from appforge.modules.tools.executor import ToolExecutor, execute_tool
from appforge.modules.tools.memory_executor import InMemoryToolExecutor
from appforge.modules.tools.schemas import TOOL_INPUT_MODELS, ToolResult, normalize_path


class AgentRun:
    """
    One orchestrator run. Iterate it once to drive the loop; `result` is
    available after the stream closes.
    """

    def __init__(
        self,
        provider: ProviderAdapter,
        executor: ToolExecutor,
        config: AgentConfig,
        prompt: str,
        existing_files: Optional[Dict[str, str]] = None,
        mode: AgentMode = AgentMode.BUILD,
        run_id: Optional[str] = None,
    ):
        self.run_id = run_id or generate_run_id()
        self.provider = provider
        self.executor = executor
        self.config = config
        self.mode = AgentMode(mode)
        self.log_context = RunLogContext(self.run_id, provider.name, self.mode.value)

        self.events = EventLog(self.run_id)
        self.contract = PlanContract(existing_files)
        self.phases = PhaseStateMachine(name=f"AgentPhase:{self.run_id}")
        self.budget = BudgetGuard(config.max_iterations, config.max_backend_calls)
        self.policy = ContinuationPolicy(config.continuation_batch_size, config.max_plan_retries)
        self.context = RunContext(run_id=self.run_id, prompt=prompt, mode=self.mode)

        allowed = PLAN_MODE_TOOLS if self.mode == AgentMode.PLAN else BUILD_MODE_TOOLS
        self.allowed_tools = frozenset(allowed)
        self.tools = get_tool_definitions(self.allowed_tools & provider.supported_tools)

        self.conversation = ConversationState(
            system_prompt=build_system_prompt(
                plan_mode=self.mode == AgentMode.PLAN,
                single_tool=provider.single_tool,
            ),
            mode=self.mode,
        )
        self.conversation.add_user_text(
            build_initial_prompt(prompt, self.contract.files.keys(), plan_mode=self.mode == AgentMode.PLAN)
        )

        self._started = False
        self._result: Optional[AgentResult] = None
        self._started_at = 0.0

    # ==================== Public API ====================

    def __aiter__(self) -> AsyncIterator[AgentEvent]:
        if self._started:
            raise RunAlreadyStartedError(self.run_id)
        self._started = True
        return self._execute()

    @property
    def result(self) -> AgentResult:
        if self._result is None:
            raise RunNotFinishedError(self.run_id)
        return self._result

    @property
    def finished(self) -> bool:
        return self._result is not None

    @property
    def phase(self) -> AgentPhase:
        return self.phases.phase

    async def collect(self) -> AgentResult:
        """Drain the event stream and return the final result"""
        async for _ in self:
            pass
        return self.result

    def cancel(self) -> None:
        """Stop the run at the next iteration boundary"""
        self.context.cancelled = True

    def snapshot(self) -> RunSnapshot:
        return fold_events(self.events.history)

    # ==================== Loop ====================

    async def _execute(self) -> AsyncIterator[AgentEvent]:
        # The log context is bound per step, never across a yield to the consumer
        self._started_at = time.monotonic()
        steps = self._iterate()
        drained = False

        try:
            while True:
                with bind_run_context(self.log_context):
                    try:
                        await steps.__anext__()
                    except StopAsyncIteration:
                        break
                for event in self.events.drain():
                    yield event
            drained = True
        except Exception as e:
            with bind_run_context(self.log_context):
                self._handle_fatal(e)
            drained = True
        finally:
            with bind_run_context(self.log_context):
                await steps.aclose()
                if not drained and not self.phases.terminal:
                    # Consumer stopped iterating before the run ended
                    self.context.error = self.context.error or "Run cancelled"
                self._finish()

        for event in self.events.drain():
            yield event

    async def _iterate(self):
        logger.info(
            f"Starting {self.mode.value} run with "
            f"{self.provider.display_name or self.provider.name} "
            f"({len(self.tools)} tools, {len(self.contract.files)} existing files)"
        )
        self.events.append(AgentEventType.RUN_START, {
            "mode": self.mode.value,
            "provider": self.provider.name,
            "toolsVersion": TOOLS_VERSION,
        })
        self._transition(AgentPhase.PLANNING, "run started")
        yield

        while not self.phases.terminal and not self.context.halted:
            if self.context.cancelled:
                self._soft_stop("Run cancelled")
                break

            reason = self.budget.exhausted()
            if reason:
                if self.contract.is_satisfied():
                    self._auto_complete()
                else:
                    self._soft_stop(reason, budget=True)
                break

            iteration = self.budget.record_iteration()
            self.log_context.iteration = iteration
            self.events.append(AgentEventType.ITERATION, {"iteration": iteration})
            yield

            response = await self._submit()
            if response.text:
                self.context.text.append(response.text)
                self.events.append(AgentEventType.TEXT_DELTA, {"message": response.text})
            yield

            self.conversation.add_assistant_turn(response.text, response.tool_calls)
            responses: List[ToolResponse] = []
            dispatched = 0

            for call in response.tool_calls:
                if self.phases.terminal:
                    break
                if call.name not in self.allowed_tools:
                    responses.append(ToolResponse(call.id, call.name, self._reject_unknown(call)))
                    continue

                dispatched += 1
                result = await self._dispatch(call, iteration)
                responses.append(ToolResponse(call.id, call.name, result))
                yield

            if self.phases.terminal:
                break

            if dispatched == 0:
                self._handle_stall(responses)
                yield
                continue

            self.conversation.add_tool_results(responses)

    async def _submit(self) -> ProviderResponse:
        started = time.monotonic()
        response = await self.provider.submit(self.conversation, self.tools)
        duration_ms = (time.monotonic() - started) * 1000

        self.budget.record_backend_calls(response.backend_calls)
        self.context.usage.add(response.usage)
        logger.log_backend_turn(
            self.provider.name,
            self.budget.iterations,
            len(response.tool_calls),
            response.usage.input_tokens,
            response.usage.output_tokens,
            duration_ms,
            stop_reason=response.stop_reason,
        )
        return response

    # ==================== Tool dispatch ====================

    def _reject_unknown(self, call: ToolCall) -> ToolResult:
        if call.name in TOOLS_BY_NAME:
            logger.warning(
                f"Tool {call.name} not available in {self.mode.value} mode"
            )
            return ToolResult.fail(f"Tool not available in {self.mode.value} mode: {call.name}")

        logger.warning(f"Backend called unknown tool: {call.name}")
        return ToolResult.fail(f"Unknown tool: {call.name}")

    async def _dispatch(self, call: ToolCall, iteration: int) -> ToolResult:
        self.events.append(
            AgentEventType.TOOL_CALL,
            tool_call_payload(call.name, call.input, iteration, call.id)
        )

        pending = self.contract.pending_paths()
        if call.name == "create_plan" and self.contract.has_plan:
            logger.info("Rejected second create_plan")
            result = ToolResult.fail(
                build_plan_rejection(self.contract.plan.app_name, pending),
                pending=pending,
            )
        elif call.name == "complete" and pending:
            logger.info(
                f"Rejected complete with {len(pending)} pending file(s)"
            )
            result = ToolResult.fail(build_completion_rejection(pending), pending=pending)
        else:
            started = time.monotonic()
            result = await execute_tool(self.executor, call.name, call.input)
            logger.log_tool_result(call.name, result.success, (time.monotonic() - started) * 1000, result.error)

        self.events.append(
            AgentEventType.TOOL_RESULT,
            tool_result_payload(call.name, result.to_dict(include_data=False), iteration, call.id)
        )

        if result.success:
            await self._apply_success(call, result)
        else:
            self._apply_failure(call)
        return result

    def _validated(self, call: ToolCall):
        try:
            return TOOL_INPUT_MODELS[call.name].model_validate(call.input or {})
        except ValidationError:
            return None

    async def _apply_success(self, call: ToolCall, result: ToolResult) -> None:
        params = self._validated(call)
        if params is None:
            return

        if call.name == "complete":
            files_created = list(params.files_created) or list(self.contract.written_this_run)
            self._complete(params.summary or self._default_summary(), files_created, params.next_steps)
            return

        target = phase_for_tool(call.name)
        if target is not None:
            self._transition(target, call.name)

        if call.name == "create_plan":
            plan = Plan.from_input(params)
            self.contract.set_plan(plan)
            self.conversation.plan = plan
            self.events.append(AgentEventType.PLAN_CREATED, {
                "plan": plan.to_dict(),
                "message": f"Plan: {plan.app_name} ({len(plan.file_tree)} files)",
            })
            if self.mode == AgentMode.PLAN:
                self._complete(
                    f"Planned {plan.app_name} ({plan.app_type}) with {len(plan.file_tree)} files",
                    []
                )

        elif call.name in ("write_file", "patch_file"):
            if call.name == "write_file":
                content = params.content
            else:
                content = await self._patched_content(params.path, result)
            is_new = self.contract.record_write(params.path, content)
            record = self.contract.files[params.path]
            self.events.append(
                AgentEventType.FILE_CREATED if is_new else AgentEventType.FILE_UPDATED,
                file_event_payload(record.path, record.content, record.language)
            )
            if self.contract.is_planned(params.path):
                self.events.append(AgentEventType.PLAN_PROGRESS, self.contract.progress(params.path))

        elif call.name == "delete_file":
            self.contract.record_delete(params.path)

    async def _patched_content(self, path: str, result: ToolResult) -> str:
        content = result.data.get("content")
        if isinstance(content, str):
            return content
        read_back = await execute_tool(self.executor, "read_file", {"path": path})
        if read_back.success and read_back.output is not None:
            return read_back.output
        logger.warning(f"Could not read back patched file {path}")
        existing = self.contract.files.get(path)
        return existing.content if existing else ""

    def _apply_failure(self, call: ToolCall) -> None:
        if call.name not in ("write_file", "patch_file"):
            return
        raw_path = (call.input or {}).get("path")
        if isinstance(raw_path, str) and raw_path.strip():
            self.contract.record_failure(normalize_path(raw_path))

    # ==================== Phase & outcome ====================

    def _transition(self, to_phase: AgentPhase, reason: Optional[str] = None) -> bool:
        changed = self.phases.transition(to_phase, reason)
        if changed:
            self.log_context.phase = to_phase.value
            self.events.append(AgentEventType.PHASE_CHANGE, {"phase": to_phase.value})
        return changed

    def _default_summary(self) -> str:
        plan = self.contract.plan
        if plan is not None:
            return f"Built {plan.app_name} ({plan.app_type})"
        return f"Built {len(self.contract.written_this_run)} files"

    def _complete(self, summary: str, files_created: List[str],
                  next_steps: Optional[List[str]] = None, synthesized: bool = False) -> None:
        self._transition(AgentPhase.COMPLETE, "auto-complete" if synthesized else "complete")
        self.context.summary = summary
        self.events.append(
            AgentEventType.COMPLETE,
            complete_payload(summary, files_created, next_steps, synthesized=synthesized)
        )

    def _auto_complete(self) -> None:
        logger.info("Plan satisfied, completing without complete tool")
        self._complete(self._default_summary(), list(self.contract.written_this_run), synthesized=True)

    def _handle_stall(self, responses: List[ToolResponse]) -> None:
        decision = self.policy.decide(
            has_plan=self.contract.has_plan,
            pending=self.contract.pending_paths(),
            files_written=len(self.contract.written_this_run),
            remaining_iterations=self.budget.remaining_iterations,
        )
        logger.info(
            f"Backend stalled, continuation: {decision.action.value}"
            + (f" ({len(decision.pending)} pending)" if decision.pending else "")
        )

        if decision.action in (ContinuationAction.CONTINUE, ContinuationAction.RETRY_PLAN):
            if responses:
                self.conversation.add_tool_results(responses, text=decision.message)
            else:
                self.conversation.add_user_text(decision.message)
        elif decision.action == ContinuationAction.AUTO_COMPLETE:
            self._auto_complete()
        else:
            self._fail(decision.reason or "Backend stopped")

    def _fail(self, message: str, code: Optional[str] = None) -> None:
        self.context.error = message
        self._transition(AgentPhase.ERROR, message)
        self.events.append(AgentEventType.ERROR, error_payload(message, code))

    def _soft_stop(self, reason: str, budget: bool = False) -> None:
        """Budget exhaustion or cancellation: keep files, report success=False"""
        pending = self.contract.pending_paths()
        message = reason
        if pending and budget:
            message += f"; {len(pending)} planned file(s) still pending"
        logger.warning(message)

        if not self.contract.written_this_run:
            self._fail(message, "BUDGET_EXHAUSTED" if budget else "CANCELLED")
        else:
            self.context.error = message
            self.context.halted = True
            self.events.append(
                AgentEventType.ERROR,
                error_payload(message, "BUDGET_EXHAUSTED" if budget else "CANCELLED", pending=pending)
            )

    def _handle_fatal(self, error: Exception) -> None:
        logger.log_error_with_context(error, "Run aborted")
        message = error.message if isinstance(error, AppForgeError) else str(error) or type(error).__name__
        code = error.code if isinstance(error, AppForgeError) else "INTERNAL_ERROR"
        if self.phases.terminal:
            self.context.error = message
            self.events.append(AgentEventType.ERROR, error_payload(message, code))
        else:
            self._fail(message, code)

    def _finish(self) -> None:
        if self._result is not None:
            return

        phase = self.phases.phase
        success = phase == AgentPhase.COMPLETE and self.context.error is None
        self.events.append(AgentEventType.RUN_FINISH, {"phase": phase.value, "success": success})

        self._result = AgentResult(
            success=success,
            phase=phase,
            files=self.contract.written_files(),
            summary=self.context.summary,
            error=None if success else (self.context.error or f"Run ended in phase {phase.value}"),
            usage=self.context.usage,
            iterations=self.budget.iterations,
            backend_calls=self.budget.backend_calls,
        )

        logger.log_run_finish(
            success,
            phase.value,
            self.budget.iterations,
            self.budget.backend_calls,
            len(self._result.files),
            self.context.usage.total_tokens,
            (time.monotonic() - self._started_at) * 1000,
        )


ExecutorFactory = Callable[[Dict[str, str]], ToolExecutor]


class AgentOrchestrator:
    """
    Creates runs bound to one provider.

    Each run gets its own ToolExecutor from `executor_factory`, seeded with
    that run's existing files, so no two runs share a project.
    """

    def __init__(self, provider: ProviderAdapter,
                 executor_factory: Optional[ExecutorFactory] = None,
                 config: Optional[AgentConfig] = None):
        self.provider = provider
        self.executor_factory: ExecutorFactory = executor_factory or InMemoryToolExecutor
        self.config = config or AgentConfig.from_settings()

    def run(
        self,
        prompt: str,
        existing_files: Optional[Dict[str, str]] = None,
        mode: AgentMode = AgentMode.BUILD,
        run_id: Optional[str] = None,
    ) -> AgentRun:
        files = dict(existing_files or {})
        return AgentRun(
            provider=self.provider,
            executor=self.executor_factory(dict(files)),
            config=self.config,
            prompt=prompt,
            existing_files=files,
            mode=mode,
            run_id=run_id,
        )

    async def run_to_completion(self, prompt: str, existing_files: Optional[Dict[str, str]] = None,
                                mode: AgentMode = AgentMode.BUILD) -> AgentResult:
        return await self.run(prompt, existing_files, mode).collect()
