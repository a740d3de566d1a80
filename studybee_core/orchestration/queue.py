"""
Priority Task Queue

Single ordered list with stable priority insertion: a new task lands
after every queued task of equal or higher priority and before every
task of strictly lower priority, so equal priorities stay FIFO.
"""

import threading
from typing import List, Optional

from ..agents.base import AgentTask, TaskPriority


class PriorityTaskQueue:
    """In-memory task queue with four-rank priority ordering."""

    def __init__(self):
        self._tasks: List[AgentTask] = []
        self._lock = threading.RLock()

    def add(self, task: AgentTask):
        """Insert ``task`` by priority. A missing priority becomes MEDIUM."""
        if task.priority is None:
            task.priority = TaskPriority.MEDIUM
        elif not isinstance(task.priority, TaskPriority):
            raise ValueError(f"Unknown priority: {task.priority!r}")

        rank = task.priority.rank
        with self._lock:
            for index, queued in enumerate(self._tasks):
                if queued.priority.rank > rank:
                    self._tasks.insert(index, task)
                    return
            self._tasks.append(task)

    def next(self) -> Optional[AgentTask]:
        """Remove and return the front task, or None when empty."""
        with self._lock:
            if not self._tasks:
                return None
            return self._tasks.pop(0)

    def peek(self, count: int = 10) -> List[AgentTask]:
        """Next tasks in dispatch order without removing them."""
        with self._lock:
            return list(self._tasks[:count])

    def remove(self, task_id: str) -> bool:
        """Drop a pending task by id."""
        with self._lock:
            for index, queued in enumerate(self._tasks):
                if queued.task_id == task_id:
                    del self._tasks[index]
                    return True
            return False

    def is_empty(self) -> bool:
        with self._lock:
            return not self._tasks

    def size(self) -> int:
        with self._lock:
            return len(self._tasks)

    def __len__(self) -> int:
        return self.size()
