"""
Agent Selector

Pure routing: given a task, return the agent types that should process it.

Resolution order:
    1. A non-empty ``target_agent_types`` list is returned verbatim.
    2. Single-purpose task types map through ``TASK_TYPE_AGENTS``.
    3. MULTI_AGENT_COORDINATION builds a team from context keywords,
       falling back to ``DEFAULT_TEAM``.
    4. Anything else resolves to no agents.
"""

from typing import Dict, List, Tuple, Union

from ..agents.base import AgentTask, AgentType, TaskType


TASK_TYPE_AGENTS: Dict[TaskType, Tuple[AgentType, ...]] = {
    TaskType.COGNITIVE_PROFILING: (AgentType.COGNITIVE_PROFILE,),
    TaskType.LEARNING_PATH_GENERATION: (AgentType.LEARNING_PATH,),
    TaskType.CONTENT_ADAPTATION: (AgentType.CONTENT_ADAPTATION,),
    TaskType.ASSESSMENT_GENERATION: (AgentType.ASSESSMENT,),
    TaskType.ENGAGEMENT_OPTIMIZATION: (AgentType.ENGAGEMENT,),
    TaskType.FEEDBACK_GENERATION: (AgentType.FEEDBACK,),
    TaskType.UI_OPTIMIZATION: (AgentType.UI_UX,),
    TaskType.SCHEDULE_OPTIMIZATION: (AgentType.SCHEDULING,),
    TaskType.FLASHCARD_OPTIMIZATION: (AgentType.COGNITIVE_PROFILE, AgentType.SCHEDULING),
}

# Scanned in this order, so team order is stable for equal contexts.
CONTEXT_KEYWORD_AGENTS: Tuple[Tuple[Tuple[str, ...], AgentType], ...] = (
    (("learning_path", "study_plan"), AgentType.LEARNING_PATH),
    (("assessment", "test", "quiz"), AgentType.ASSESSMENT),
    (("content", "material", "resources"), AgentType.CONTENT_ADAPTATION),
    (("user_profile", "cognitive", "learning_style"), AgentType.COGNITIVE_PROFILE),
    (("feedback", "review", "evaluation"), AgentType.FEEDBACK),
    (("engagement", "motivation", "gamification"), AgentType.ENGAGEMENT),
    (("ui", "interface", "display"), AgentType.UI_UX),
    (("schedule", "timing", "planning", "spaced_repetition", "flashcard"), AgentType.SCHEDULING),
)

DEFAULT_TEAM: Tuple[AgentType, ...] = (
    AgentType.COGNITIVE_PROFILE,
    AgentType.LEARNING_PATH,
    AgentType.ASSESSMENT,
)


def compose_team(context) -> List[AgentType]:
    """Team for a coordination task, from its context tags."""
    tags = set(context)
    team = [agent for keywords, agent in CONTEXT_KEYWORD_AGENTS if tags.intersection(keywords)]
    return team or list(DEFAULT_TEAM)


def select_targets(task: AgentTask) -> List[Union[AgentType, str]]:
    """Agent types that should process ``task``. Never mutates the task."""
    if task.target_agent_types:
        return list(task.target_agent_types)

    task_type = task.task_type
    if task_type is TaskType.MULTI_AGENT_COORDINATION:
        return compose_team(task.context)
    if isinstance(task_type, TaskType):
        return list(TASK_TYPE_AGENTS[task_type])
    return []


class AgentSelector:
    """Object wrapper around :func:`select_targets` for injection."""

    def select_targets(self, task: AgentTask) -> List[Union[AgentType, str]]:
        return select_targets(task)
