"""
AppForge - Logging Configuration

Every record emitted while a run is advancing carries that run's context
(run id, provider, mode, phase, iteration). Development output is one
readable line per record; production output is one JSON object per line.

Usage:
    from appforge.core.logging_config import logger, RunLogContext, bind_run_context

    context = RunLogContext(run_id="a1b2c3d4", provider="claude", mode="build")
    with bind_run_context(context):
        logger.info("Submitting turn")   # ... [a1b2c3d4 claude build/planning #0] Submitting turn
"""

import json
import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from appforge.core.config import settings


@dataclass
class RunLogContext:
    """Mutable view of a run that formatters read at emit time"""
    run_id: str
    provider: str = ""
    mode: str = "build"
    phase: str = "idle"
    iteration: int = 0

    def label(self) -> str:
        return f"{self.run_id} {self.provider or '?'} {self.mode}/{self.phase} #{self.iteration}"


_run_context: ContextVar[Optional[RunLogContext]] = ContextVar("appforge_run_context", default=None)


def current_run_context() -> Optional[RunLogContext]:
    return _run_context.get()


@contextmanager
def bind_run_context(context: RunLogContext) -> Iterator[RunLogContext]:
    """
    Attach `context` to records logged inside the block.

    The previous binding is restored on exit, so a consumer driving several
    runs from one task never sees one run's id on another run's records.
    """
    token = _run_context.set(context)
    try:
        yield context
    finally:
        _run_context.reset(token)


def generate_run_id() -> str:
    return uuid.uuid4().hex[:8]


# LogRecord attributes that are not caller-supplied `extra` fields
_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime", "run"}


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: value for key, value in record.__dict__.items()
        if key not in _RECORD_ATTRIBUTES and not key.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per record; the run context is nested under "run"."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }

        context = current_run_context()
        if context is not None:
            entry["run"] = asdict(context)

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        extra = _extra_fields(record)
        if extra:
            entry["fields"] = extra

        return json.dumps(entry, default=str)


class RunContextFormatter(logging.Formatter):
    """Plain-text formatter exposing the run label as %(run)s"""

    def format(self, record: logging.LogRecord) -> str:
        context = current_run_context()
        record.run = context.label() if context is not None else "no-run"
        return super().format(record)


class AppForgeLogger(logging.Logger):
    """Logger with helpers for the records every run produces"""

    def log_backend_turn(self, provider: str, iteration: int, tool_calls: int,
                         input_tokens: int, output_tokens: int, duration_ms: float,
                         stop_reason: Optional[str] = None, slow_ms: float = 60000) -> None:
        """One backend submit; slow turns are logged as warnings"""
        slow = duration_ms > slow_ms
        self.log(
            logging.WARNING if slow else logging.INFO,
            f"{provider} turn {iteration}: {tool_calls} tool call(s), "
            f"{input_tokens}+{output_tokens} tokens, {duration_ms:.0f}ms"
            + (" (slow)" if slow else ""),
            extra={
                "kind": "backend_turn",
                "tool_calls": tool_calls,
                "input_tokens": input_tokens,
                "output_tokens": output_tokens,
                "duration_ms": round(duration_ms, 1),
                "stop_reason": stop_reason,
            }
        )

    def log_tool_result(self, tool: str, success: bool, duration_ms: float,
                        error: Optional[str] = None) -> None:
        if success:
            self.debug(f"{tool} ok ({duration_ms:.0f}ms)",
                       extra={"kind": "tool_result", "tool": tool, "success": True})
        else:
            self.info(f"{tool} failed: {error}",
                      extra={"kind": "tool_result", "tool": tool, "success": False, "error": error})

    def log_run_finish(self, success: bool, phase: str, iterations: int, backend_calls: int,
                       files: int, total_tokens: int, duration_ms: float) -> None:
        self.log(
            logging.INFO if success else logging.WARNING,
            f"Run finished in {phase} (success={success}, iterations={iterations}, "
            f"backend_calls={backend_calls}, files={files}, tokens={total_tokens}, {duration_ms:.0f}ms)",
            extra={
                "kind": "run_finish",
                "success": success,
                "iterations": iterations,
                "backend_calls": backend_calls,
                "files": files,
                "total_tokens": total_tokens,
            }
        )

    def log_error_with_context(self, error: Exception, context: str) -> None:
        """Log an unexpected error with its AppForge code and details when present"""
        code = getattr(error, "code", None)
        self.error(
            f"{context}: {type(error).__name__}"
            + (f" [{code}]" if code else "")
            + f": {error}",
            exc_info=error,
            extra={
                "kind": "error",
                "error_type": type(error).__name__,
                "error_code": code,
                "error_details": getattr(error, "details", None),
            }
        )


def _build_handlers(production: bool) -> List[logging.Handler]:
    if production:
        console_formatter: logging.Formatter = JSONFormatter()
        file_formatter: logging.Formatter = console_formatter
    else:
        console_formatter = RunContextFormatter("%(levelname)-7s [%(run)s] %(message)s")
        file_formatter = RunContextFormatter(
            "%(asctime)s %(levelname)-7s [%(run)s] %(name)s:%(lineno)d %(message)s"
        )

    # stderr keeps stdout free for `appforge --json`
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(console_formatter)
    handlers: List[logging.Handler] = [console]

    if settings.LOG_FILE:
        path = Path(settings.LOG_FILE)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(path, maxBytes=5 * 1024 * 1024, backupCount=3)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(file_formatter)
        handlers.append(file_handler)

    return handlers


def setup_logging() -> AppForgeLogger:
    """Configure the "appforge" logger from settings and return it"""
    logging.setLoggerClass(AppForgeLogger)
    app_logger = logging.getLogger("appforge")
    app_logger.__class__ = AppForgeLogger
    app_logger.setLevel(getattr(logging, settings.LOG_LEVEL, logging.INFO))

    app_logger.handlers.clear()
    for handler in _build_handlers(settings.is_production()):
        app_logger.addHandler(handler)

    for noisy in ("httpx", "httpcore", "anthropic", "google"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return app_logger


logger: AppForgeLogger = setup_logging()


__all__ = [
    "logger",
    "setup_logging",
    "RunLogContext",
    "bind_run_context",
    "current_run_context",
    "generate_run_id",
    "AppForgeLogger",
    "JSONFormatter",
    "RunContextFormatter",
]
