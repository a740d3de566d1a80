"""
Task Monitor

Per-task lifecycle records for debugging and performance analysis.
Records are created on start, appended to until a terminal status,
then retained until the owner evicts them with ``evict_oldest``.

Times are epoch milliseconds.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from ..agents.base import AgentTask, TaskStatus, enum_value


def _now_ms() -> float:
    return time.time() * 1000.0


@dataclass
class TaskProcessingEvent:
    """Event in task processing."""
    time: float
    event: str
    details: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {"time": self.time, "event": self.event, "details": self.details}


@dataclass
class TaskProcessingRecord:
    """Record of a task's processing history."""
    task_id: str
    task_type: str
    owner_id: str
    start_time: float
    status: Union[TaskStatus, str]
    target_agents: List[str] = field(default_factory=list)
    end_time: Optional[float] = None
    events: List[TaskProcessingEvent] = field(default_factory=list)
    result: Any = None

    @property
    def duration_ms(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return self.end_time - self.start_time

    def to_dict(self) -> Dict[str, Any]:
        return {
            "task_id": self.task_id,
            "task_type": self.task_type,
            "owner_id": self.owner_id,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "status": enum_value(self.status),
            "target_agents": list(self.target_agents),
            "events": [e.to_dict() for e in self.events],
            "result": self.result,
        }


@dataclass
class TaskProcessingStats:
    """Task processing statistics."""
    total_tasks: int = 0
    completed: int = 0
    failed: int = 0
    pending: int = 0
    processing: int = 0
    success_rate: float = 0.0
    average_processing_time: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_tasks": self.total_tasks,
            "completed": self.completed,
            "failed": self.failed,
            "pending": self.pending,
            "processing": self.processing,
            "success_rate": self.success_rate,
            "average_processing_time": self.average_processing_time,
        }


class TaskMonitor:
    """Records task lifecycle events and derives aggregate statistics.

    All record calls are no-ops while the monitor is disabled. Calls for
    unknown task ids log a warning and never raise.
    """

    def __init__(self, enabled: bool = True):
        self.logger = logging.getLogger("task_monitor")
        self._records: Dict[str, TaskProcessingRecord] = {}
        self._enabled = enabled
        self._lock = threading.Lock()

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool):
        self._enabled = enabled
        self.logger.info(f"Task monitoring {'enabled' if enabled else 'disabled'}")

    def record_start(self, task: AgentTask):
        """Start (or restart) the record for ``task``."""
        if not self._enabled:
            return

        now = _now_ms()
        record = TaskProcessingRecord(
            task_id=task.task_id,
            task_type=enum_value(task.task_type),
            owner_id=task.owner_id,
            start_time=now,
            status=task.status or TaskStatus.PENDING,
            target_agents=[enum_value(t) for t in task.target_agent_types],
            events=[TaskProcessingEvent(
                time=now,
                event="TASK_STARTED",
                details=f"Task {task.task_id} ({enum_value(task.task_type)}) processing started",
            )],
        )
        with self._lock:
            self._records[task.task_id] = record
        self.logger.debug(f"Started monitoring task {task.task_id}")

    def record_event(self, task_id: str, event: str, details: Any = None,
                     status: Optional[TaskStatus] = None):
        """Append an event; optionally move the record to ``status``."""
        if not self._enabled:
            return

        with self._lock:
            record = self._records.get(task_id)
            if record is None:
                self.logger.warning(f"Attempted to record event for unknown task: {task_id}")
                return
            record.events.append(TaskProcessingEvent(
                time=_now_ms(),
                event=event,
                details=details if details is not None else event,
            ))
            if status is not None:
                record.status = status
        self.logger.debug(f"Recorded event for task {task_id}: {event}")

    def record_completion(self, task_id: str, status: Union[TaskStatus, str], result: Any = None):
        """Close the record for ``task_id`` with a terminal status."""
        if not self._enabled:
            return

        if isinstance(status, str):
            try:
                status = TaskStatus(status)
            except ValueError:
                pass

        with self._lock:
            record = self._records.get(task_id)
            if record is None:
                self.logger.warning(f"Attempted to complete unknown task: {task_id}")
                return
            record.end_time = _now_ms()
            record.status = status
            record.result = result
            record.events.append(TaskProcessingEvent(
                time=record.end_time,
                event="TASK_COMPLETED",
                details=f"Task {task_id} completed with status: {enum_value(status)}",
            ))
            duration = record.end_time - record.start_time

        self.logger.info(
            f"Task {task_id} completed in {duration:.1f}ms with status: {enum_value(status)}"
        )

    # ── Queries ──────────────────────────────────────────────────────────

    def has_record(self, task_id: str) -> bool:
        with self._lock:
            return task_id in self._records

    def get_record(self, task_id: str) -> Optional[TaskProcessingRecord]:
        with self._lock:
            return self._records.get(task_id)

    def get_owner_records(self, owner_id: str) -> List[TaskProcessingRecord]:
        with self._lock:
            return [r for r in self._records.values() if r.owner_id == owner_id]

    def stats(self) -> TaskProcessingStats:
        """Aggregate statistics over all retained records."""
        with self._lock:
            records = list(self._records.values())

        total = len(records)
        completed = sum(1 for r in records if r.status == TaskStatus.COMPLETED)
        failed = sum(1 for r in records if r.status == TaskStatus.FAILED)
        pending = sum(1 for r in records if r.status == TaskStatus.PENDING)
        processing = sum(1 for r in records if r.status == TaskStatus.PROCESSING)
        durations = [r.end_time - r.start_time for r in records if r.end_time is not None]

        return TaskProcessingStats(
            total_tasks=total,
            completed=completed,
            failed=failed,
            pending=pending,
            processing=processing,
            success_rate=completed / total if total else 0.0,
            average_processing_time=sum(durations) / len(durations) if durations else 0.0,
        )

    # ── Retention ────────────────────────────────────────────────────────

    def evict_oldest(self, max_records: int = 1000) -> int:
        """Keep the ``max_records`` most recently started records.

        Returns the number of records removed.
        """
        with self._lock:
            ordered = sorted(self._records.values(), key=lambda r: r.start_time, reverse=True)
            to_remove = ordered[max(max_records, 0):]
            for record in to_remove:
                del self._records[record.task_id]

        if to_remove:
            self.logger.info(f"Cleaned up {len(to_remove)} old task records")
        return len(to_remove)

    def clear(self):
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
