"""
Multi-Agent Infrastructure - Base Types, Agents, Registry

Foundation for the StudyBee learning agents.

Architecture:
    Caller
        -> MasterControlProgram (dispatcher)
            -> PriorityTaskQueue (pending work)
            -> AgentSelector (routing)
            -> AgentRegistry (one live handler per agent type)
            -> BaseAgent subclasses (specialized handlers)
            -> TaskMonitor (lifecycle records)

Features:
    - Closed enums for task types, agent types, priorities and statuses
    - Abstract BaseAgent with metrics, message routing and task history
    - Test-reporter hook so the distribution harness can follow test tasks
    - Thread-safe AgentRegistry lookup table
"""

import asyncio
import logging
import threading
import time
import uuid
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set, Union


# ══════════════════════════════════════════════════════════════════════════════
# ENUMS
# ══════════════════════════════════════════════════════════════════════════════

class AgentType(Enum):
    """Handler types known to the dispatcher."""
    COGNITIVE_PROFILE = "COGNITIVE_PROFILE"
    LEARNING_PATH = "LEARNING_PATH"
    CONTENT_ADAPTATION = "CONTENT_ADAPTATION"
    ASSESSMENT = "ASSESSMENT"
    ENGAGEMENT = "ENGAGEMENT"
    FEEDBACK = "FEEDBACK"
    UI_UX = "UI_UX"
    SCHEDULING = "SCHEDULING"


class TaskType(Enum):
    """Closed set of task types."""
    COGNITIVE_PROFILING = "COGNITIVE_PROFILING"
    LEARNING_PATH_GENERATION = "LEARNING_PATH_GENERATION"
    CONTENT_ADAPTATION = "CONTENT_ADAPTATION"
    ASSESSMENT_GENERATION = "ASSESSMENT_GENERATION"
    ENGAGEMENT_OPTIMIZATION = "ENGAGEMENT_OPTIMIZATION"
    FEEDBACK_GENERATION = "FEEDBACK_GENERATION"
    UI_OPTIMIZATION = "UI_OPTIMIZATION"
    SCHEDULE_OPTIMIZATION = "SCHEDULE_OPTIMIZATION"
    FLASHCARD_OPTIMIZATION = "FLASHCARD_OPTIMIZATION"
    MULTI_AGENT_COORDINATION = "MULTI_AGENT_COORDINATION"


class TaskPriority(Enum):
    """Task priority levels. Lower rank is served first."""
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANKS[self]


_PRIORITY_RANKS = {
    TaskPriority.CRITICAL: 0,
    TaskPriority.HIGH: 1,
    TaskPriority.MEDIUM: 2,
    TaskPriority.LOW: 3,
}


class TaskStatus(Enum):
    """Task lifecycle status."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class MessageType(Enum):
    """Types of messages delivered outside the task path."""
    TASK = "TASK"
    SYSTEM = "SYSTEM"
    NOTIFICATION = "NOTIFICATION"
    RESULT = "RESULT"
    ALERT = "ALERT"


class AgentStatus(Enum):
    """Agent lifecycle status."""
    READY = "ready"
    BUSY = "busy"
    ERROR = "error"


def _coerce(enum_cls, value):
    """Return the enum member for ``value`` or ``value`` itself if unknown."""
    if isinstance(value, enum_cls) or value is None:
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return value


def enum_value(value) -> str:
    """Plain string form of an enum member or raw tag."""
    return value.value if isinstance(value, Enum) else str(value)


# ══════════════════════════════════════════════════════════════════════════════
# DATA STRUCTURES
# ══════════════════════════════════════════════════════════════════════════════

@dataclass
class AgentTask:
    """A unit of work submitted to the orchestrator.

    ``task_type`` and ``target_agent_types`` accept enum members or their
    string values; strings outside the closed sets are kept as-is so the
    selector can report them as unroutable.
    """
    task_type: Union[TaskType, str]
    owner_id: str = ""
    description: str = ""
    priority: Optional[TaskPriority] = None
    target_agent_types: List[Union[AgentType, str]] = field(default_factory=list)
    context: List[str] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)
    task_id: str = field(default_factory=lambda: f"task-{uuid.uuid4()}")
    created_at: datetime = field(default_factory=datetime.now)
    status: Optional[TaskStatus] = None
    completed_at: Optional[datetime] = None
    result: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        self.task_type = _coerce(TaskType, self.task_type)
        self.priority = _coerce(TaskPriority, self.priority)
        self.status = _coerce(TaskStatus, self.status)
        self.target_agent_types = [_coerce(AgentType, t) for t in self.target_agent_types]
        self.context = list(self.context)

    @property
    def is_test_task(self) -> bool:
        return bool(self.data.get("is_test_task"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "task_id": self.task_id,
            "owner_id": self.owner_id,
            "task_type": enum_value(self.task_type),
            "description": self.description,
            "priority": self.priority.value if self.priority else None,
            "target_agent_types": [enum_value(t) for t in self.target_agent_types],
            "context": list(self.context),
            "data": self.data,
            "created_at": self.created_at.isoformat(),
            "status": self.status.value if self.status else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "result": self.result,
        }


@dataclass
class AgentMessage:
    """Broadcast or point-to-point notification."""
    message_type: MessageType
    content: str
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)
    sender_id: Optional[str] = None
    target_id: Optional[str] = None
    message_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message_id": self.message_id,
            "message_type": self.message_type.value,
            "content": self.content,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
            "sender_id": self.sender_id,
            "target_id": self.target_id,
        }


@dataclass
class AgentMetrics:
    """Runtime metrics for an agent."""
    tasks_completed: int = 0
    tasks_failed: int = 0
    total_execution_time: float = 0.0
    avg_execution_time: float = 0.0
    last_active: Optional[datetime] = None
    messages_received: int = 0


# ══════════════════════════════════════════════════════════════════════════════
# BASE AGENT
# ══════════════════════════════════════════════════════════════════════════════

class BaseAgent(ABC):
    """Abstract base class for all learning agents.

    Provides:
        - The dispatcher contract: ``process_task`` and ``receive_message``
        - Metrics and bounded task history
        - Message-type handler table
        - Test-task reporting to an attached distribution tester

    Subclasses must set ``agent_type`` and implement ``_process_task``.
    """

    agent_type: AgentType
    description: str = ""

    def __init__(self):
        self.agent_id = f"{self.agent_type.value.lower()}_agent"
        self.name = self.agent_type.value.replace("_", " ").title()
        self.status = AgentStatus.READY
        self.logger = logging.getLogger(f"agent.{self.agent_type.value.lower()}")
        self.metrics = AgentMetrics()
        self.created_at = datetime.now()
        self.owner_id: Optional[str] = None

        self._message_handlers: Dict[MessageType, Callable] = {}
        self._current_task: Optional[Dict] = None
        self._task_history: deque = deque(maxlen=100)
        self._test_reporter = None

        self._register_default_handlers()

    def _register_default_handlers(self):
        self._message_handlers[MessageType.SYSTEM] = self._handle_system_message
        self._message_handlers[MessageType.NOTIFICATION] = self._handle_notification

    @abstractmethod
    async def _process_task(self, task: AgentTask) -> Dict[str, Any]:
        """Agent-specific task logic.

        Args:
            task: The task routed to this agent

        Returns:
            Result dictionary
        """
        ...

    def attach_test_reporter(self, reporter):
        """Route test-task progress to ``reporter`` (a distribution tester)."""
        self._test_reporter = reporter

    async def process_task(self, task: AgentTask) -> Dict[str, Any]:
        """Process a task with metrics tracking. Errors propagate to the caller."""
        reporting = task.is_test_task and self._test_reporter is not None
        if reporting:
            self._test_reporter.record_agent_processing(task.task_id, self.agent_type)

        self.status = AgentStatus.BUSY
        self._current_task = {
            "task_id": task.task_id,
            "task_type": enum_value(task.task_type),
            "started": datetime.now().isoformat(),
        }
        start_time = time.time()

        try:
            result = await self._process_task(task)
        except (Exception, asyncio.CancelledError) as e:
            # Cancellation comes from the dispatcher deadline; count it as a failure.
            reason = "cancelled" if isinstance(e, asyncio.CancelledError) else str(e)
            exec_time = time.time() - start_time
            self.metrics.tasks_failed += 1
            self.metrics.last_active = datetime.now()
            self._task_history.append({
                "task_id": task.task_id,
                "status": "failed",
                "error": reason,
                "execution_time": exec_time,
                "timestamp": datetime.now().isoformat(),
            })
            self.logger.error(f"Task {task.task_id} failed: {reason}")
            if reporting:
                self._test_reporter.record_agent_completion(
                    task.task_id, self.agent_type, False, {"error": reason}
                )
            raise
        finally:
            self.status = AgentStatus.READY
            self._current_task = None

        exec_time = time.time() - start_time
        self.metrics.tasks_completed += 1
        self.metrics.total_execution_time += exec_time
        self.metrics.avg_execution_time = (
            self.metrics.total_execution_time / self.metrics.tasks_completed
        )
        self.metrics.last_active = datetime.now()
        self._task_history.append({
            "task_id": task.task_id,
            "status": "completed",
            "execution_time": exec_time,
            "timestamp": datetime.now().isoformat(),
        })
        if reporting:
            self._test_reporter.record_agent_completion(
                task.task_id, self.agent_type, True, result
            )
        return result

    # ── Message handling ─────────────────────────────────────────────────

    async def receive_message(self, message: AgentMessage):
        """Route a message to the handler registered for its type."""
        self.metrics.messages_received += 1
        handler = self._message_handlers.get(message.message_type)
        if handler:
            await handler(message)
        else:
            self.logger.debug(f"No handler for message type {message.message_type.value}")

    async def _handle_system_message(self, message: AgentMessage):
        if message.content == "INITIALIZE_FOR_OWNER":
            self.owner_id = message.data.get("owner_id")
            self.logger.info(f"{self.name} initialized for owner {self.owner_id}")

    async def _handle_notification(self, message: AgentMessage):
        self.logger.debug(f"{self.name} notified: {message.content}")

    # ── Status & info ────────────────────────────────────────────────────

    def get_task_history(self) -> List[Dict[str, Any]]:
        return list(self._task_history)

    def get_status(self) -> Dict[str, Any]:
        """Get agent status."""
        return {
            "agent_id": self.agent_id,
            "agent_type": self.agent_type.value,
            "name": self.name,
            "status": self.status.value,
            "owner_id": self.owner_id,
            "metrics": {
                "tasks_completed": self.metrics.tasks_completed,
                "tasks_failed": self.metrics.tasks_failed,
                "avg_execution_time": round(self.metrics.avg_execution_time, 4),
                "messages_received": self.metrics.messages_received,
            },
            "current_task": self._current_task,
            "uptime": str(datetime.now() - self.created_at),
        }


# ══════════════════════════════════════════════════════════════════════════════
# AGENT REGISTRY
# ══════════════════════════════════════════════════════════════════════════════

class AgentRegistry:
    """Lookup table holding one live handler per agent type.

    Registering a type twice replaces the previous handler. Lookups for
    unknown types return None and never raise.
    """

    def __init__(self):
        self.logger = logging.getLogger("agent_registry")
        self._agents: Dict[AgentType, BaseAgent] = {}
        self._lock = threading.Lock()

    def register(self, agent_type: Union[AgentType, str], agent: BaseAgent):
        agent_type = _coerce(AgentType, agent_type)
        if not isinstance(agent_type, AgentType):
            raise ValueError(f"Unknown agent type: {agent_type!r}")
        with self._lock:
            replaced = agent_type in self._agents
            self._agents[agent_type] = agent
        self.logger.info(
            f"{'Replaced' if replaced else 'Registered'} agent: "
            f"{agent.name} [{agent.agent_id}] type={agent_type.value}"
        )

    def unregister(self, agent_type: Union[AgentType, str]) -> Optional[BaseAgent]:
        agent_type = _coerce(AgentType, agent_type)
        with self._lock:
            agent = self._agents.pop(agent_type, None)
        if agent:
            self.logger.info(f"Unregistered agent type {enum_value(agent_type)}")
        return agent

    def get(self, agent_type: Union[AgentType, str]) -> Optional[BaseAgent]:
        """Live handler for ``agent_type`` (enum member or its name), or None."""
        agent_type = _coerce(AgentType, agent_type)
        with self._lock:
            return self._agents.get(agent_type)

    def list_types(self) -> Set[AgentType]:
        with self._lock:
            return set(self._agents)

    def get_all_agents(self) -> List[BaseAgent]:
        with self._lock:
            return list(self._agents.values())

    def get_registry_info(self) -> Dict[str, Any]:
        """Get full registry information."""
        agents = self.get_all_agents()
        return {
            "total_agents": len(agents),
            "agents": [
                {
                    "agent_id": a.agent_id,
                    "agent_type": a.agent_type.value,
                    "status": a.status.value,
                    "tasks_completed": a.metrics.tasks_completed,
                    "tasks_failed": a.metrics.tasks_failed,
                }
                for a in agents
            ],
        }
