"""
Custom Exceptions for AppForge
==============================

Usage:
    from appforge.core.exceptions import ProviderError, ToolExecutionError

    try:
        response = await provider.submit(conversation, tools)
    except ProviderError as e:
        logger.error(f"Backend failed: {e}")
        raise

Tool-level failures are never raised out of the orchestrator: executors raise
ToolExecutionError and the dispatcher turns it into a failed ToolResult that
is fed back to the backend.
"""

from typing import Optional, Any, Dict, List


class AppForgeError(Exception):
    """Base exception for all AppForge errors"""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Backend (LLM provider) Errors
# ============================================

class ProviderError(AppForgeError):
    """The LLM backend could not be reached or returned an unusable response"""

    def __init__(self, provider: str, message: str, retryable: bool = False):
        super().__init__(
            f"{provider} backend error: {message}",
            code="PROVIDER_ERROR",
            details={"provider": provider, "retryable": retryable}
        )
        self.provider = provider


class ProviderConfigurationError(AppForgeError):
    """Provider cannot be created (unknown name, missing API key)"""

    def __init__(self, message: str):
        super().__init__(message, code="PROVIDER_NOT_CONFIGURED")


# ============================================
# Tool Errors
# ============================================

class ToolExecutionError(AppForgeError):
    """A tool operation failed (patch target missing, file not found, ...)"""

    def __init__(self, tool: str, message: str, path: Optional[str] = None):
        details: Dict[str, Any] = {"tool": tool}
        if path:
            details["path"] = path
        super().__init__(message, code="TOOL_FAILED", details=details)
        self.tool = tool


# ============================================
# Orchestration Errors
# ============================================

class PlanAlreadySetError(AppForgeError):
    """A run may establish its plan only once"""

    def __init__(self, app_name: str, pending: Optional[List[str]] = None):
        super().__init__(
            f"A plan for '{app_name}' already exists for this run",
            code="PLAN_ALREADY_SET",
            details={"app_name": app_name, "pending": pending or []}
        )


class InvalidTransitionError(AppForgeError):
    """Phase transition not allowed by the transition table"""

    def __init__(self, from_phase: str, to_phase: str):
        super().__init__(
            f"Invalid phase transition: {from_phase} -> {to_phase}",
            code="INVALID_TRANSITION",
            details={"from": from_phase, "to": to_phase}
        )


class RunAlreadyStartedError(AppForgeError):
    """An AgentRun event stream can only be consumed once"""

    def __init__(self, run_id: str):
        super().__init__(
            f"Agent run {run_id} has already been started",
            code="RUN_ALREADY_STARTED",
            details={"run_id": run_id}
        )


class RunNotFinishedError(AppForgeError):
    """The run result was requested before the event stream closed"""

    def __init__(self, run_id: str):
        super().__init__(
            f"Agent run {run_id} has not finished yet",
            code="RUN_NOT_FINISHED",
            details={"run_id": run_id}
        )
