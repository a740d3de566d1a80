"""
StudyBee Core - Exception Hierarchy

Structured exception taxonomy for the orchestration core.
Every failure mode carries context, a recovery hint, and a severity.
Drain-loop failures are captured as these objects and recorded;
they are never raised back into ``submit`` callers.
"""

from enum import Enum
from typing import Optional, Dict, Any
from datetime import datetime, timezone


# ══════════════════════════════════════════════════════════════════════════════
# SEVERITY CLASSIFICATION
# ══════════════════════════════════════════════════════════════════════════════

class ExceptionSeverity(Enum):
    """Severity levels for exceptions."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class RecoveryAction(Enum):
    """Recommended recovery actions."""
    RETRY = "retry"
    SKIP = "skip"
    ABORT = "abort"
    RECONFIGURE = "reconfigure"
    FALLBACK = "fallback"


# ══════════════════════════════════════════════════════════════════════════════
# BASE EXCEPTION
# ══════════════════════════════════════════════════════════════════════════════

class StudyBeeError(Exception):
    """
    Base exception for all StudyBee orchestration errors.
    Provides structured context, severity, and recovery guidance.
    """

    def __init__(
        self,
        message: str,
        severity: ExceptionSeverity = ExceptionSeverity.ERROR,
        recovery: RecoveryAction = RecoveryAction.ABORT,
        recovery_hint: str = "",
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
        retryable: bool = False,
        error_code: str = "SB-0000",
    ):
        super().__init__(message)
        self.severity = severity
        self.recovery = recovery
        self.recovery_hint = recovery_hint
        self.context = context or {}
        self.cause = cause
        self.retryable = retryable
        self.error_code = error_code
        self.timestamp = datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for monitor records and task outcomes."""
        return {
            "error_code": self.error_code,
            "severity": self.severity.value,
            "message": str(self),
            "recovery_action": self.recovery.value,
            "recovery_hint": self.recovery_hint,
            "retryable": self.retryable,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
            "timestamp": self.timestamp,
            "exception_type": self.__class__.__name__,
        }

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__} [{self.error_code}] "
            f"severity={self.severity.value} "
            f"message='{str(self)[:80]}'>"
        )


# ══════════════════════════════════════════════════════════════════════════════
# ORCHESTRATION EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════════════

class OrchestrationError(StudyBeeError):
    """Base class for dispatcher errors."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("error_code", "SB-ORC-0000")
        super().__init__(message, **kwargs)


class RoutingFailure(OrchestrationError):
    """The selector resolved no handler for a task."""

    def __init__(self, task_id: str, task_type: str = "", **kwargs):
        kwargs.setdefault("error_code", "SB-ORC-0001")
        kwargs.setdefault("severity", ExceptionSeverity.WARNING)
        kwargs.setdefault("recovery", RecoveryAction.RECONFIGURE)
        kwargs.setdefault("recovery_hint", "Set target_agent_types or use a known task type.")
        kwargs.setdefault("context", {"task_id": task_id, "task_type": task_type})
        super().__init__("No suitable handler found", **kwargs)


class HandlerFailure(OrchestrationError):
    """A resolved handler raised while processing a task."""

    def __init__(self, agent_type: str, task_id: str, reason: str = "", **kwargs):
        kwargs.setdefault("error_code", "SB-ORC-0002")
        kwargs.setdefault("context", {"agent_type": agent_type, "task_id": task_id})
        super().__init__(f"Handler {agent_type} failed on task {task_id}: {reason}", **kwargs)


class UnregisteredHandler(OrchestrationError):
    """A resolved handler type has no live instance. Non-fatal."""

    def __init__(self, agent_type: str, **kwargs):
        kwargs.setdefault("error_code", "SB-ORC-0003")
        kwargs.setdefault("severity", ExceptionSeverity.INFO)
        kwargs.setdefault("recovery", RecoveryAction.SKIP)
        kwargs.setdefault("context", {"agent_type": agent_type})
        super().__init__(f"No handler registered for {agent_type}", **kwargs)


class HandlerTimeout(HandlerFailure):
    """A handler did not finish within the configured deadline."""

    def __init__(self, agent_type: str, task_id: str, timeout_seconds: float, **kwargs):
        kwargs.setdefault("error_code", "SB-ORC-0004")
        kwargs.setdefault("recovery", RecoveryAction.RETRY)
        kwargs.setdefault("retryable", True)
        kwargs.setdefault("context", {
            "agent_type": agent_type,
            "task_id": task_id,
            "timeout": timeout_seconds,
        })
        super().__init__(agent_type, task_id, f"timed out after {timeout_seconds}s", **kwargs)


class DuplicateTaskError(OrchestrationError):
    """A task id was submitted twice to the same orchestrator."""

    def __init__(self, task_id: str, **kwargs):
        kwargs.setdefault("error_code", "SB-ORC-0005")
        kwargs.setdefault("severity", ExceptionSeverity.WARNING)
        kwargs.setdefault("recovery", RecoveryAction.SKIP)
        kwargs.setdefault("context", {"task_id": task_id})
        super().__init__(f"Task id already submitted: {task_id}", **kwargs)


class OrchestratorNotRunning(OrchestrationError):
    """submit() was called without a running event loop."""

    def __init__(self, **kwargs):
        kwargs.setdefault("error_code", "SB-ORC-0006")
        kwargs.setdefault("recovery_hint", "Call submit() from inside a coroutine.")
        super().__init__("No running event loop to drain the task queue", **kwargs)


# ══════════════════════════════════════════════════════════════════════════════
# HARNESS EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════════════

class HarnessTimeout(StudyBeeError):
    """A test task did not reach a terminal state in time."""

    def __init__(self, task_id: str, timeout_ms: int, **kwargs):
        kwargs.setdefault("error_code", "SB-TST-0001")
        kwargs.setdefault("severity", ExceptionSeverity.WARNING)
        kwargs.setdefault("recovery", RecoveryAction.RETRY)
        kwargs.setdefault("retryable", True)
        kwargs.setdefault("context", {"task_id": task_id, "timeout_ms": timeout_ms})
        super().__init__("Task processing timed out", **kwargs)


# ══════════════════════════════════════════════════════════════════════════════
# BOUNDARY EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════════════

class ProfileLookupError(StudyBeeError):
    """The external profile repository failed."""

    def __init__(self, owner_id: str, reason: str = "", **kwargs):
        kwargs.setdefault("error_code", "SB-PRF-0001")
        kwargs.setdefault("severity", ExceptionSeverity.WARNING)
        kwargs.setdefault("recovery", RecoveryAction.FALLBACK)
        kwargs.setdefault("recovery_hint", "Continue without a cached profile.")
        kwargs.setdefault("context", {"owner_id": owner_id})
        super().__init__(f"Profile lookup failed for {owner_id}: {reason}", **kwargs)


class ConfigurationError(StudyBeeError):
    """Invalid configuration value."""

    def __init__(self, setting: str, value: Any, reason: str = "", **kwargs):
        kwargs.setdefault("error_code", "SB-CFG-0001")
        kwargs.setdefault("recovery", RecoveryAction.RECONFIGURE)
        kwargs.setdefault("context", {"setting": setting, "value": value})
        super().__init__(f"Invalid value for {setting}: {value!r} ({reason})", **kwargs)
