"""Distribution test harness for the dispatch pipeline."""

from .distribution import (
    AgentProcessingRecord,
    TaskDistributionTester,
    TestTaskRecord,
    TestTaskResult,
)

__all__ = [
    "AgentProcessingRecord",
    "TaskDistributionTester",
    "TestTaskRecord",
    "TestTaskResult",
]
