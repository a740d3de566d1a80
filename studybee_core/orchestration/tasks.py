"""
Task Factories

Ready-made tasks for the common learner workflows, each with its
canonical priority, explicit handler targets and context tags.
"""

import uuid
from typing import Any, Dict, List, Optional

from ..agents.base import AgentTask, AgentType, TaskPriority, TaskType


def _task_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def create_cognitive_profiling_task(owner_id: str, initial: bool = False) -> AgentTask:
    """Profiling task; ``initial=True`` builds the owner-initialization variant."""
    if initial:
        return AgentTask(
            task_id=_task_id("initial-cognitive-profiling"),
            owner_id=owner_id,
            task_type=TaskType.COGNITIVE_PROFILING,
            description="Initial cognitive profiling for user",
            priority=TaskPriority.HIGH,
            target_agent_types=[AgentType.COGNITIVE_PROFILE],
            context=["initial_setup", "user_profile"],
        )
    return AgentTask(
        task_id=_task_id("cognitive-profile"),
        owner_id=owner_id,
        task_type=TaskType.COGNITIVE_PROFILING,
        description="Create initial cognitive profile",
        priority=TaskPriority.HIGH,
        target_agent_types=[AgentType.COGNITIVE_PROFILE],
        context=["cognitive_profile", "qualification", "adaptive"],
    )


def create_learning_path_task(owner_id: str, qualification_id: Optional[str] = None,
                              options: Optional[Dict[str, Any]] = None) -> AgentTask:
    data: Dict[str, Any] = {}
    if qualification_id is not None:
        data["qualificationId"] = qualification_id
    if options:
        data["options"] = dict(options)
    return AgentTask(
        task_id=_task_id("learning-path"),
        owner_id=owner_id,
        task_type=TaskType.LEARNING_PATH_GENERATION,
        description="Generate initial learning path",
        priority=TaskPriority.HIGH,
        target_agent_types=[AgentType.LEARNING_PATH, AgentType.COGNITIVE_PROFILE],
        context=["learning_path", "qualification", "adaptive"],
        data=data,
    )


def create_content_adaptation_task(owner_id: str, topic_ids: List[str]) -> AgentTask:
    return AgentTask(
        task_id=_task_id("content-adaptation"),
        owner_id=owner_id,
        task_type=TaskType.CONTENT_ADAPTATION,
        description="Adapt learning content to user profile",
        priority=TaskPriority.MEDIUM,
        target_agent_types=[AgentType.CONTENT_ADAPTATION, AgentType.COGNITIVE_PROFILE],
        context=["learning_path", "cognitive_profile", "qualification"],
        data={"topicIds": list(topic_ids)},
    )


def create_assessment_task(owner_id: str, topic_ids: List[str], difficulty: float,
                           question_count: int = 10) -> AgentTask:
    return AgentTask(
        task_id=_task_id("assessment"),
        owner_id=owner_id,
        task_type=TaskType.ASSESSMENT_GENERATION,
        description="Generate adaptive assessment",
        priority=TaskPriority.MEDIUM,
        target_agent_types=[AgentType.ASSESSMENT],
        context=["assessment", "adaptive", "difficulty"],
        data={"topicIds": list(topic_ids), "difficulty": difficulty, "questionCount": question_count},
    )


def create_engagement_task(owner_id: str) -> AgentTask:
    return AgentTask(
        task_id=_task_id("engagement"),
        owner_id=owner_id,
        task_type=TaskType.ENGAGEMENT_OPTIMIZATION,
        description="Optimize user engagement strategies",
        priority=TaskPriority.LOW,
        target_agent_types=[AgentType.ENGAGEMENT, AgentType.COGNITIVE_PROFILE],
        context=["engagement", "user_profile"],
    )


def create_schedule_optimization_task(owner_id: str, options: Dict[str, Any]) -> AgentTask:
    return AgentTask(
        task_id=_task_id("schedule"),
        owner_id=owner_id,
        task_type=TaskType.SCHEDULE_OPTIMIZATION,
        description="Optimize study schedule",
        priority=TaskPriority.MEDIUM,
        target_agent_types=[AgentType.SCHEDULING],
        context=["schedule", "optimization", "study_plan"],
        data={"options": dict(options)},
    )


def create_flashcard_optimization_task(owner_id: str, card_ids: List[str]) -> AgentTask:
    # Explicit target narrows the default profiling+scheduling route.
    return AgentTask(
        task_id=_task_id("flashcard"),
        owner_id=owner_id,
        task_type=TaskType.FLASHCARD_OPTIMIZATION,
        description="Optimize flashcard spaced repetition",
        priority=TaskPriority.MEDIUM,
        target_agent_types=[AgentType.SCHEDULING],
        context=["flashcards", "spaced_repetition", "optimization"],
        data={"cardIds": list(card_ids)},
    )
