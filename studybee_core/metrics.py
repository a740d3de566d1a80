"""
StudyBee Core - Prometheus Metrics

Metrics collection and export for:
- Task submissions and terminal outcomes
- Handler dispatch latency and error rates
- Queue depth and system completion rate
- Broadcast deliveries
"""

import logging
from typing import Dict, Any

from prometheus_client import (
    Counter, Histogram, Gauge, Info,
    CollectorRegistry, generate_latest, start_http_server,
)

from . import __version__

logger = logging.getLogger("studybee_metrics")


# ══════════════════════════════════════════════════════════════════════════════
# METRICS DEFINITIONS
# ══════════════════════════════════════════════════════════════════════════════

REGISTRY = CollectorRegistry()

# ── Task Metrics ──
TASKS_SUBMITTED = Counter(
    "studybee_tasks_submitted_total",
    "Total number of tasks submitted to the orchestrator",
    ["task_type", "priority"],
    registry=REGISTRY,
)
TASKS_FINISHED = Counter(
    "studybee_tasks_finished_total",
    "Total number of tasks that reached a terminal status",
    ["status"],
    registry=REGISTRY,
)
ROUTING_FAILURES = Counter(
    "studybee_routing_failures_total",
    "Tasks for which no handler could be resolved",
    ["task_type"],
    registry=REGISTRY,
)
QUEUE_DEPTH = Gauge(
    "studybee_queue_depth",
    "Number of tasks waiting in the priority queue",
    registry=REGISTRY,
)
COMPLETION_RATE = Gauge(
    "studybee_task_completion_rate",
    "Exponential moving average of task success",
    registry=REGISTRY,
)

# ── Handler Metrics ──
HANDLER_CALLS = Counter(
    "studybee_handler_calls_total",
    "Total number of handler invocations",
    ["agent_type", "status"],
    registry=REGISTRY,
)
HANDLER_DURATION = Histogram(
    "studybee_handler_duration_seconds",
    "Duration of handler invocations in seconds",
    ["agent_type"],
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30],
    registry=REGISTRY,
)

# ── Broadcast Metrics ──
BROADCAST_DELIVERIES = Counter(
    "studybee_broadcast_deliveries_total",
    "Broadcast message deliveries",
    ["message_type", "status"],
    registry=REGISTRY,
)

# ── Framework Info ──
FRAMEWORK_INFO = Info(
    "studybee_core",
    "Orchestration core information",
    registry=REGISTRY,
)
FRAMEWORK_INFO.info({"version": __version__, "name": "StudyBee Core"})


# ══════════════════════════════════════════════════════════════════════════════
# METRICS MANAGER
# ══════════════════════════════════════════════════════════════════════════════

class MetricsManager:
    """Central metrics management."""

    def __init__(self, enabled: bool = True):
        self._enabled = enabled
        self._server_started = False

    @property
    def enabled(self) -> bool:
        return self._enabled

    def start_server(self, port: int = 9090):
        """Start Prometheus metrics HTTP server."""
        if not self._enabled:
            logger.warning("Metrics disabled, not starting exporter")
            return

        if self._server_started:
            return

        try:
            start_http_server(port, registry=REGISTRY)
            self._server_started = True
            logger.info(f"Prometheus metrics server started on port {port}")
        except OSError as e:
            logger.error(f"Failed to start metrics server: {e}")

    def record_submission(self, task_type: str, priority: str):
        if not self._enabled:
            return
        TASKS_SUBMITTED.labels(task_type=task_type, priority=priority).inc()

    def record_task_finished(self, status: str):
        if not self._enabled:
            return
        TASKS_FINISHED.labels(status=status).inc()

    def record_routing_failure(self, task_type: str):
        if not self._enabled:
            return
        ROUTING_FAILURES.labels(task_type=task_type).inc()

    def record_handler_call(self, agent_type: str, duration: float, success: bool):
        """Record one handler invocation."""
        if not self._enabled:
            return
        status = "success" if success else "error"
        HANDLER_CALLS.labels(agent_type=agent_type, status=status).inc()
        HANDLER_DURATION.labels(agent_type=agent_type).observe(duration)

    def record_broadcast(self, message_type: str, delivered: bool):
        if not self._enabled:
            return
        BROADCAST_DELIVERIES.labels(
            message_type=message_type,
            status="delivered" if delivered else "failed",
        ).inc()

    def set_queue_depth(self, depth: int):
        if not self._enabled:
            return
        QUEUE_DEPTH.set(depth)

    def set_completion_rate(self, rate: float):
        if not self._enabled:
            return
        COMPLETION_RATE.set(rate)

    def get_metrics_text(self) -> str:
        """Get metrics in Prometheus exposition format."""
        if not self._enabled:
            return "# Prometheus metrics disabled\n"
        return generate_latest(REGISTRY).decode("utf-8")

    def get_summary(self) -> Dict[str, Any]:
        """Get a human-readable metrics summary."""
        return {
            "enabled": self._enabled,
            "server_started": self._server_started,
        }
