"""
Master Control Program

The central dispatcher. Accepts tasks, queues them by priority and drains
the queue one task at a time: resolve targets, fan out to the registered
handlers, then record the outcome in system metrics and the task monitor.

Each ``submit`` returns an ``asyncio.Future`` that resolves to the task's
``TaskOutcome``. Failures are carried as data in the outcome; nothing
raised inside the drain loop reaches the submitter.

Usage:
    registry = AgentRegistry()
    registry.register(AgentType.ASSESSMENT, AssessmentAgent())
    mcp = MasterControlProgram(registry)

    outcome = await mcp.submit(create_assessment_task("u1", ["t1"], 0.4))
"""

import asyncio
import copy
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set, Union

from ..agents.base import (
    AgentMessage,
    AgentRegistry,
    AgentTask,
    AgentType,
    BaseAgent,
    MessageType,
    TaskStatus,
    enum_value,
)
from ..config import OrchestratorConfig, monitor_config, orchestrator_config, metrics_config
from ..exceptions import (
    ConfigurationError,
    DuplicateTaskError,
    HandlerFailure,
    HandlerTimeout,
    OrchestratorNotRunning,
    ProfileLookupError,
    RoutingFailure,
    UnregisteredHandler,
)
from ..metrics import MetricsManager
from ..profiles import ProfileRepository
from .monitor import TaskMonitor
from .queue import PriorityTaskQueue
from .selector import AgentSelector
from .tasks import create_cognitive_profiling_task


# ══════════════════════════════════════════════════════════════════════════════
# STATE
# ══════════════════════════════════════════════════════════════════════════════

@dataclass
class SystemMetrics:
    """Process-wide metrics. Only ``task_completion_rate`` is maintained."""
    task_completion_rate: float = 0.0
    average_response_time: float = 0.0
    user_satisfaction_score: float = 0.0
    extra: Dict[str, float] = field(default_factory=dict)


@dataclass
class SystemState:
    active_agent_types: Set[AgentType] = field(default_factory=set)
    metrics: SystemMetrics = field(default_factory=SystemMetrics)
    priority_matrix: Dict[str, Any] = field(default_factory=dict)
    global_variables: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "active_agent_types": sorted(enum_value(t) for t in self.active_agent_types),
            "metrics": {
                "task_completion_rate": self.metrics.task_completion_rate,
                "average_response_time": self.metrics.average_response_time,
                "user_satisfaction_score": self.metrics.user_satisfaction_score,
                **self.metrics.extra,
            },
            "priority_matrix": dict(self.priority_matrix),
            "global_variables": dict(self.global_variables),
        }


@dataclass
class TaskOutcome:
    """Final result of draining one task."""
    task_id: str
    status: TaskStatus
    agent_results: Dict[str, Any] = field(default_factory=dict)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "task_id": self.task_id,
            "status": self.status.value,
            "agent_results": dict(self.agent_results),
            "errors": list(self.errors),
            "skipped": list(self.skipped),
        }


# ══════════════════════════════════════════════════════════════════════════════
# ORCHESTRATOR
# ══════════════════════════════════════════════════════════════════════════════

class MasterControlProgram:
    """Priority-queue dispatcher for the learning agents.

    Responsibilities:
        - Queueing tasks by priority (FIFO within a rank)
        - Target resolution via the selector
        - Concurrent fan-out to handlers, one task in flight at a time
        - Completion-rate bookkeeping and monitor records
        - Broadcast messaging and owner initialization
    """

    def __init__(
        self,
        registry: AgentRegistry,
        monitor: Optional[TaskMonitor] = None,
        selector: Optional[AgentSelector] = None,
        profile_repository: Optional[ProfileRepository] = None,
        config: Optional[OrchestratorConfig] = None,
        metrics: Optional[MetricsManager] = None,
        max_records: Optional[int] = None,
    ):
        self.config = config or orchestrator_config
        self._validate_config(self.config)

        self.registry = registry
        self.monitor = monitor if monitor is not None else TaskMonitor(enabled=monitor_config.enabled)
        self.selector = selector or AgentSelector()
        self.profile_repository = profile_repository
        self.metrics = metrics or MetricsManager(enabled=metrics_config.enabled)
        self.max_records = max_records if max_records is not None else monitor_config.max_records
        self.logger = logging.getLogger("orchestrator")

        self._queue = PriorityTaskQueue()
        self._state = SystemState(
            active_agent_types=set(registry.list_types()),
            metrics=SystemMetrics(task_completion_rate=self.config.initial_completion_rate),
        )
        self._futures: Dict[str, asyncio.Future] = {}
        self._submitted_ids: Set[str] = set()
        self._draining = False
        self._drain_task: Optional[asyncio.Task] = None
        self._finished_count = 0

        self.metrics.set_completion_rate(self._state.metrics.task_completion_rate)

    @staticmethod
    def _validate_config(config: OrchestratorConfig):
        if not 0.0 < config.completion_rate_step <= 1.0:
            raise ConfigurationError("completion_rate_step", config.completion_rate_step, "must be in (0, 1]")
        if not 0.0 <= config.initial_completion_rate <= 1.0:
            raise ConfigurationError("initial_completion_rate", config.initial_completion_rate, "must be in [0, 1]")
        if config.handler_timeout < 0:
            raise ConfigurationError("handler_timeout", config.handler_timeout, "must not be negative")
        if config.eviction_interval < 0:
            raise ConfigurationError("eviction_interval", config.eviction_interval, "must not be negative")

    # ── Registration & globals ───────────────────────────────────────────

    def register_agent(self, agent: BaseAgent):
        """Register ``agent`` under its own type and mark the type active."""
        self.registry.register(agent.agent_type, agent)
        self._state.active_agent_types.add(agent.agent_type)

    def set_global_variable(self, key: str, value: Any):
        self._state.global_variables[key] = value

    def get_global_variable(self, key: str, default: Any = None) -> Any:
        return self._state.global_variables.get(key, default)

    def get_system_state(self) -> SystemState:
        """Snapshot of the system state. Mutating it has no effect here."""
        snapshot = copy.deepcopy(self._state)
        snapshot.active_agent_types = self._active_types()
        return snapshot

    def _active_types(self) -> Set[AgentType]:
        return self._state.active_agent_types | self.registry.list_types()

    @property
    def is_draining(self) -> bool:
        return self._draining

    @property
    def queue_size(self) -> int:
        return self._queue.size()

    # ── Submission ───────────────────────────────────────────────────────

    def submit(self, task: AgentTask) -> "asyncio.Future[TaskOutcome]":
        """Queue ``task`` and make sure the drain loop is running.

        Must be called with a running event loop. Returns a future that
        resolves to the task's outcome once it has been drained.

        Raises:
            OrchestratorNotRunning: no running event loop
            DuplicateTaskError: the task id was already submitted
            ValueError: the task priority is not a known rank
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            raise OrchestratorNotRunning() from None

        if task.task_id in self._submitted_ids:
            raise DuplicateTaskError(task.task_id)

        if task.status is None:
            task.status = TaskStatus.PENDING
        self._queue.add(task)
        self._submitted_ids.add(task.task_id)

        future = loop.create_future()
        self._futures[task.task_id] = future

        if not self.monitor.has_record(task.task_id):
            self.monitor.record_start(task)
        self.metrics.record_submission(enum_value(task.task_type), enum_value(task.priority))
        self.metrics.set_queue_depth(self._queue.size())
        self.logger.info(
            f"Submitted task {task.task_id} ({enum_value(task.task_type)}, "
            f"priority={enum_value(task.priority)})"
        )

        if not self._draining:
            self._draining = True
            self._drain_task = loop.create_task(self._drain())
        return future

    async def join(self):
        """Wait until every queued task has been drained."""
        while self._drain_task is not None and not self._drain_task.done():
            await self._drain_task

    # ── Drain loop ───────────────────────────────────────────────────────

    async def _drain(self):
        try:
            while not self._queue.is_empty():
                task = self._queue.next()
                self.metrics.set_queue_depth(self._queue.size())
                try:
                    outcome = await self._dispatch(task)
                except Exception as e:
                    self.logger.exception(f"Unexpected error dispatching task {task.task_id}")
                    outcome = TaskOutcome(
                        task_id=task.task_id,
                        status=TaskStatus.FAILED,
                        errors=[{"message": str(e), "exception_type": type(e).__name__}],
                    )
                self._finish(task, outcome)
        finally:
            self._draining = False

    async def _dispatch(self, task: AgentTask) -> TaskOutcome:
        targets = self.selector.select_targets(task)
        task.status = TaskStatus.PROCESSING
        self.monitor.record_event(
            task.task_id, "TASK_DISPATCHED",
            {"targets": [enum_value(t) for t in targets]},
            status=TaskStatus.PROCESSING,
        )

        if not targets:
            failure = RoutingFailure(task.task_id, enum_value(task.task_type))
            self.metrics.record_routing_failure(enum_value(task.task_type))
            self.logger.warning(f"Task {task.task_id}: {failure}")
            return TaskOutcome(task_id=task.task_id, status=TaskStatus.FAILED, errors=[failure.to_dict()])

        outcome = TaskOutcome(task_id=task.task_id, status=TaskStatus.COMPLETED)
        runnable = []
        for agent_type in dict.fromkeys(targets):
            agent = self.registry.get(agent_type)
            if agent is None:
                skipped = UnregisteredHandler(enum_value(agent_type))
                outcome.skipped.append(enum_value(agent_type))
                self.monitor.record_event(task.task_id, "HANDLER_SKIPPED", skipped.to_dict())
                self.logger.debug(f"Task {task.task_id}: {skipped}")
                continue
            runnable.append((agent_type, agent))

        if self.config.parallel_dispatch:
            results = await asyncio.gather(
                *(self._invoke(agent_type, agent, task) for agent_type, agent in runnable),
                return_exceptions=True,
            )
        else:
            results = []
            for agent_type, agent in runnable:
                try:
                    results.append(await self._invoke(agent_type, agent, task))
                except HandlerFailure as e:
                    results.append(e)

        for (agent_type, _), result in zip(runnable, results):
            key = enum_value(agent_type)
            if isinstance(result, BaseException):
                error = result.to_dict() if isinstance(result, HandlerFailure) else {
                    "message": str(result), "exception_type": type(result).__name__,
                }
                outcome.errors.append(error)
                outcome.agent_results[key] = {"success": False, "error": error["message"]}
            else:
                outcome.agent_results[key] = {"success": True, "result": result}

        if outcome.errors:
            outcome.status = TaskStatus.FAILED
        return outcome

    async def _invoke(self, agent_type: Union[AgentType, str], agent: BaseAgent, task: AgentTask) -> Any:
        """Run one handler, converting any error into a HandlerFailure."""
        key = enum_value(agent_type)
        timeout = self.config.handler_timeout
        start = time.monotonic()
        try:
            if timeout > 0:
                result = await asyncio.wait_for(agent.process_task(task), timeout)
            else:
                result = await agent.process_task(task)
        except Exception as e:
            if timeout > 0 and isinstance(e, asyncio.TimeoutError):
                failure = HandlerTimeout(key, task.task_id, timeout, cause=e)
            else:
                failure = HandlerFailure(key, task.task_id, str(e), cause=e)
            self.metrics.record_handler_call(key, time.monotonic() - start, success=False)
            self.logger.error(str(failure))
            raise failure from e

        self.metrics.record_handler_call(key, time.monotonic() - start, success=True)
        return result

    def _finish(self, task: AgentTask, outcome: TaskOutcome):
        task.status = outcome.status
        task.completed_at = datetime.now()
        task.result = outcome.to_dict()

        if outcome.success:
            self.record_task_success(task.task_id)
        else:
            reason = outcome.errors[0]["message"] if outcome.errors else "unknown"
            self.record_task_failure(task.task_id, reason)

        self.monitor.record_completion(task.task_id, outcome.status, outcome.to_dict())
        self.metrics.record_task_finished(outcome.status.value)

        future = self._futures.pop(task.task_id, None)
        if future is not None and not future.done():
            future.set_result(outcome)

        self._finished_count += 1
        interval = self.config.eviction_interval
        if interval and self._finished_count % interval == 0:
            self.monitor.evict_oldest(self.max_records)

    # ── Completion-rate bookkeeping ──────────────────────────────────────

    def record_task_success(self, task_id: Optional[str] = None):
        rate = self._state.metrics.task_completion_rate
        rate += (1.0 - rate) * self.config.completion_rate_step
        self._set_completion_rate(rate)
        self.logger.info(f"Task {task_id} completed; completion rate {self._state.metrics.task_completion_rate:.3f}")

    def record_task_failure(self, task_id: Optional[str] = None, reason: str = ""):
        rate = self._state.metrics.task_completion_rate
        rate -= rate * self.config.completion_rate_step
        self._set_completion_rate(rate)
        self.logger.warning(f"Task {task_id} failed: {reason}")

    def _set_completion_rate(self, rate: float):
        rate = min(1.0, max(0.0, rate))
        self._state.metrics.task_completion_rate = rate
        self.metrics.set_completion_rate(rate)

    # ── Messaging ────────────────────────────────────────────────────────

    async def broadcast(self, message: AgentMessage,
                        target_types: Optional[Iterable[Union[AgentType, str]]] = None) -> Dict[str, bool]:
        """Deliver ``message`` to the given types, or to every active type.

        Returns a map of agent type to delivery success. A failing handler
        never prevents delivery to the others.
        """
        if target_types is None:
            targets = sorted(self._active_types(), key=enum_value)
        else:
            targets = list(dict.fromkeys(target_types))

        recipients = []
        for agent_type in targets:
            agent = self.registry.get(agent_type)
            if agent is None:
                self.logger.debug(f"Broadcast skipped unregistered type {enum_value(agent_type)}")
                continue
            recipients.append((agent_type, agent))

        results = await asyncio.gather(
            *(agent.receive_message(message) for _, agent in recipients),
            return_exceptions=True,
        )

        delivered: Dict[str, bool] = {}
        for (agent_type, agent), result in zip(recipients, results):
            ok = not isinstance(result, BaseException)
            if not ok:
                self.logger.error(f"Failed to deliver to {agent.agent_id}: {result}")
            delivered[enum_value(agent_type)] = ok
            self.metrics.record_broadcast(message.message_type.value, ok)
        return delivered

    # ── Owner initialization ─────────────────────────────────────────────

    async def initialize_for_owner(self, owner_id: str) -> "asyncio.Future[TaskOutcome]":
        """Prepare the system for ``owner_id`` and queue initial profiling.

        Caches the owner's profile in global state when the repository has
        one; a failed lookup is logged and treated as no profile.
        """
        self.logger.info(f"Initializing system for owner: {owner_id}")
        self.set_global_variable("current_owner_id", owner_id)
        self.set_global_variable("owner_profile", await self._load_profile(owner_id))

        await self.broadcast(AgentMessage(
            message_type=MessageType.SYSTEM,
            content="INITIALIZE_FOR_OWNER",
            data={"owner_id": owner_id},
            sender_id="orchestrator",
        ))

        task = create_cognitive_profiling_task(owner_id, initial=True)
        return self.submit(task)

    async def _load_profile(self, owner_id: str) -> Optional[Dict[str, Any]]:
        if self.profile_repository is None:
            return None
        try:
            return await self.profile_repository.fetch_profile(owner_id)
        except Exception as e:
            error = ProfileLookupError(owner_id, str(e), cause=e)
            self.logger.warning(f"{error}; continuing without profile")
            return None
