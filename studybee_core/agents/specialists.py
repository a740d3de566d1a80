"""
Specialized Learning Agents

The eight handler types the dispatcher routes to:
    - CognitiveProfileAgent: learner profiling
    - LearningPathAgent: study path generation
    - ContentAdaptationAgent: material adaptation
    - AssessmentAgent: adaptive assessment generation
    - EngagementAgent: motivation and gamification strategies
    - FeedbackAgent: feedback generation
    - UIUXAgent: interface adaptation
    - SchedulingAgent: study and spaced-repetition scheduling

The domain logic behind each agent lives in the application's services;
these handlers build the request summary that the services consume and
share the same dispatcher contract.
"""

from typing import Any, Dict, List

from .base import AgentTask, AgentType, BaseAgent, enum_value


def _base_result(agent: BaseAgent, task: AgentTask) -> Dict[str, Any]:
    return {
        "agent_type": agent.agent_type.value,
        "task_id": task.task_id,
        "task_type": enum_value(task.task_type),
        "owner_id": task.owner_id or agent.owner_id,
    }


# ══════════════════════════════════════════════════════════════════════════════
# COGNITIVE PROFILE AGENT
# ══════════════════════════════════════════════════════════════════════════════

class CognitiveProfileAgent(BaseAgent):
    """Builds and refreshes the learner's cognitive profile."""

    agent_type = AgentType.COGNITIVE_PROFILE
    description = "Learning style, pace and knowledge-gap profiling"

    async def _process_task(self, task: AgentTask) -> Dict[str, Any]:
        result = _base_result(self, task)
        result["initial_setup"] = "initial_setup" in task.context
        result["learning_style"] = task.data.get("learning_style", "unassessed")
        return result


# ══════════════════════════════════════════════════════════════════════════════
# LEARNING PATH AGENT
# ══════════════════════════════════════════════════════════════════════════════

class LearningPathAgent(BaseAgent):
    """Generates an ordered study path for a qualification."""

    agent_type = AgentType.LEARNING_PATH
    description = "Adaptive learning path generation"

    async def _process_task(self, task: AgentTask) -> Dict[str, Any]:
        options = task.data.get("options") or {}
        topics: List[str] = list(options.get("priorityTopics", []))
        result = _base_result(self, task)
        result["qualification_id"] = task.data.get("qualificationId")
        result["ordered_topics"] = topics
        return result


# ══════════════════════════════════════════════════════════════════════════════
# CONTENT ADAPTATION AGENT
# ══════════════════════════════════════════════════════════════════════════════

class ContentAdaptationAgent(BaseAgent):
    agent_type = AgentType.CONTENT_ADAPTATION
    description = "Adapts learning material to the learner profile"

    async def _process_task(self, task: AgentTask) -> Dict[str, Any]:
        result = _base_result(self, task)
        result["topic_ids"] = list(task.data.get("topicIds", []))
        return result


# ══════════════════════════════════════════════════════════════════════════════
# ASSESSMENT AGENT
# ══════════════════════════════════════════════════════════════════════════════

class AssessmentAgent(BaseAgent):
    """Generates adaptive assessments."""

    agent_type = AgentType.ASSESSMENT
    description = "Adaptive assessment generation"

    async def _process_task(self, task: AgentTask) -> Dict[str, Any]:
        difficulty = float(task.data.get("difficulty", 0.5))
        if not 0.0 <= difficulty <= 1.0:
            raise ValueError(f"difficulty must be within [0, 1], got {difficulty}")
        result = _base_result(self, task)
        result["topic_ids"] = list(task.data.get("topicIds", []))
        result["difficulty"] = difficulty
        result["question_count"] = int(task.data.get("questionCount", 10))
        return result


# ══════════════════════════════════════════════════════════════════════════════
# ENGAGEMENT AGENT
# ══════════════════════════════════════════════════════════════════════════════

class EngagementAgent(BaseAgent):
    agent_type = AgentType.ENGAGEMENT
    description = "Motivation and gamification strategies"

    async def _process_task(self, task: AgentTask) -> Dict[str, Any]:
        result = _base_result(self, task)
        result["signals"] = [tag for tag in task.context if tag in ("engagement", "motivation", "gamification")]
        return result


# ══════════════════════════════════════════════════════════════════════════════
# FEEDBACK AGENT
# ══════════════════════════════════════════════════════════════════════════════

class FeedbackAgent(BaseAgent):
    agent_type = AgentType.FEEDBACK
    description = "Feedback generation"

    async def _process_task(self, task: AgentTask) -> Dict[str, Any]:
        result = _base_result(self, task)
        result["subject"] = task.data.get("subject")
        return result


# ══════════════════════════════════════════════════════════════════════════════
# UI/UX AGENT
# ══════════════════════════════════════════════════════════════════════════════

class UIUXAgent(BaseAgent):
    agent_type = AgentType.UI_UX
    description = "Interface adaptation"

    async def _process_task(self, task: AgentTask) -> Dict[str, Any]:
        result = _base_result(self, task)
        result["layout"] = task.data.get("layout", "default")
        return result


# ══════════════════════════════════════════════════════════════════════════════
# SCHEDULING AGENT
# ══════════════════════════════════════════════════════════════════════════════

class SchedulingAgent(BaseAgent):
    """Study schedule and flashcard review scheduling."""

    agent_type = AgentType.SCHEDULING
    description = "Study schedule and spaced-repetition optimization"

    async def _process_task(self, task: AgentTask) -> Dict[str, Any]:
        result = _base_result(self, task)
        if "cardIds" in task.data:
            result["card_ids"] = list(task.data["cardIds"])
        else:
            options = task.data.get("options") or {}
            result["daily_minutes"] = options.get("dailyAvailableTime")
        return result


ALL_SPECIALISTS = [
    CognitiveProfileAgent,
    LearningPathAgent,
    ContentAdaptationAgent,
    AssessmentAgent,
    EngagementAgent,
    FeedbackAgent,
    UIUXAgent,
    SchedulingAgent,
]
