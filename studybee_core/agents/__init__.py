"""
StudyBee Multi-Agent Layer

Handler contract, registry and the eight specialist agents.

Usage:
    from studybee_core.agents import AgentRegistry, ALL_SPECIALISTS

    registry = AgentRegistry()
    for cls in ALL_SPECIALISTS:
        agent = cls()
        registry.register(agent.agent_type, agent)
"""

from .base import (
    AgentType,
    TaskType,
    TaskPriority,
    TaskStatus,
    MessageType,
    AgentStatus,
    AgentTask,
    AgentMessage,
    AgentMetrics,
    BaseAgent,
    AgentRegistry,
    enum_value,
)

from .specialists import (
    CognitiveProfileAgent,
    LearningPathAgent,
    ContentAdaptationAgent,
    AssessmentAgent,
    EngagementAgent,
    FeedbackAgent,
    UIUXAgent,
    SchedulingAgent,
    ALL_SPECIALISTS,
)


__all__ = [
    "AgentType", "TaskType", "TaskPriority", "TaskStatus", "MessageType",
    "AgentStatus", "AgentTask", "AgentMessage", "AgentMetrics",
    "BaseAgent", "AgentRegistry", "enum_value",
    "CognitiveProfileAgent", "LearningPathAgent", "ContentAdaptationAgent",
    "AssessmentAgent", "EngagementAgent", "FeedbackAgent", "UIUXAgent",
    "SchedulingAgent", "ALL_SPECIALISTS",
]
