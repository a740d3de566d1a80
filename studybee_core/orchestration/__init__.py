"""
StudyBee Orchestration Layer

Priority queue, agent selector, task monitor, task factories and the
Master Control Program dispatcher that ties them together.
"""

from .queue import PriorityTaskQueue
from .selector import (
    AgentSelector,
    select_targets,
    compose_team,
    TASK_TYPE_AGENTS,
    CONTEXT_KEYWORD_AGENTS,
    DEFAULT_TEAM,
)
from .monitor import (
    TaskMonitor,
    TaskProcessingEvent,
    TaskProcessingRecord,
    TaskProcessingStats,
)
from .orchestrator import (
    MasterControlProgram,
    SystemMetrics,
    SystemState,
    TaskOutcome,
)
from .tasks import (
    create_cognitive_profiling_task,
    create_learning_path_task,
    create_content_adaptation_task,
    create_assessment_task,
    create_engagement_task,
    create_schedule_optimization_task,
    create_flashcard_optimization_task,
)


__all__ = [
    "PriorityTaskQueue",
    "AgentSelector", "select_targets", "compose_team",
    "TASK_TYPE_AGENTS", "CONTEXT_KEYWORD_AGENTS", "DEFAULT_TEAM",
    "TaskMonitor", "TaskProcessingEvent", "TaskProcessingRecord", "TaskProcessingStats",
    "MasterControlProgram", "SystemMetrics", "SystemState", "TaskOutcome",
    "create_cognitive_profiling_task", "create_learning_path_task",
    "create_content_adaptation_task", "create_assessment_task",
    "create_engagement_task", "create_schedule_optimization_task",
    "create_flashcard_optimization_task",
]
