"""
StudyBee Core - Health Check System

Validates a wired agent system: handler coverage for every routable task
type, monitor state, queue backlog and the completion-rate signal.

Usage:
    studybee health          # Text report
    studybee health --json   # JSON output
"""

import datetime
import platform
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from .agents.base import TaskType, enum_value
from .orchestration.selector import DEFAULT_TEAM, TASK_TYPE_AGENTS
from .system import AgentSystem


# ══════════════════════════════════════════════════════════════════════════════
# DATA MODELS
# ══════════════════════════════════════════════════════════════════════════════

class Status(str, Enum):
    OK = "ok"
    WARN = "warn"
    FAIL = "fail"
    SKIP = "skip"


@dataclass
class CheckResult:
    name: str
    status: Status
    message: str
    duration_ms: float = 0.0
    details: Optional[Dict] = None


@dataclass
class HealthReport:
    timestamp: str = ""
    overall_status: Status = Status.OK
    version: str = ""
    python_version: str = ""
    checks: List[CheckResult] = field(default_factory=list)
    summary: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "overall_status": self.overall_status.value,
            "version": self.version,
            "python_version": self.python_version,
            "summary": self.summary,
            "checks": [
                {
                    "name": c.name,
                    "status": c.status.value,
                    "message": c.message,
                    "duration_ms": round(c.duration_ms, 2),
                    **({"details": c.details} if c.details else {}),
                }
                for c in self.checks
            ],
        }


class _Timer:
    def __init__(self):
        self.start = 0.0
        self.elapsed_ms = 0.0

    def __enter__(self):
        self.start = time.perf_counter()
        return self

    def __exit__(self, *args):
        self.elapsed_ms = (time.perf_counter() - self.start) * 1000


# ══════════════════════════════════════════════════════════════════════════════
# CHECKS
# ══════════════════════════════════════════════════════════════════════════════

def check_agent_coverage(system: AgentSystem) -> CheckResult:
    """Every task type must resolve to at least one registered handler."""
    with _Timer() as t:
        registered = system.registry.list_types()
        uncovered = []
        partial = []
        routes = dict(TASK_TYPE_AGENTS)
        routes[TaskType.MULTI_AGENT_COORDINATION] = DEFAULT_TEAM
        for task_type, agents in routes.items():
            missing = [enum_value(a) for a in agents if a not in registered]
            if len(missing) == len(agents):
                uncovered.append(task_type.value)
            elif missing:
                partial.append(f"{task_type.value}: {', '.join(missing)}")

    details = {"registered": sorted(enum_value(a) for a in registered)}
    if uncovered:
        details["uncovered"] = uncovered
        return CheckResult("agent_coverage", Status.FAIL,
                           f"{len(uncovered)} task types have no registered handler",
                           t.elapsed_ms, details)
    if partial:
        details["partial"] = partial
        return CheckResult("agent_coverage", Status.WARN,
                           f"{len(partial)} task types are missing some handlers",
                           t.elapsed_ms, details)
    return CheckResult("agent_coverage", Status.OK,
                       f"All {len(routes)} task types covered by {len(registered)} agents",
                       t.elapsed_ms, details)


def check_monitor(system: AgentSystem) -> CheckResult:
    with _Timer() as t:
        stats = system.monitor.stats()

    if not system.monitor.is_enabled:
        return CheckResult("task_monitor", Status.SKIP, "Task monitoring disabled", t.elapsed_ms)
    return CheckResult("task_monitor", Status.OK,
                       f"{stats.total_tasks} records retained",
                       t.elapsed_ms, stats.to_dict())


def check_queue(system: AgentSystem) -> CheckResult:
    with _Timer() as t:
        depth = system.orchestrator.queue_size
        draining = system.orchestrator.is_draining

    details = {"depth": depth, "draining": draining}
    if depth and not draining:
        return CheckResult("task_queue", Status.FAIL,
                           f"{depth} tasks queued with no drain loop running",
                           t.elapsed_ms, details)
    return CheckResult("task_queue", Status.OK, f"{depth} tasks queued", t.elapsed_ms, details)


def check_completion_rate(system: AgentSystem, warn_below: float = 0.5) -> CheckResult:
    with _Timer() as t:
        state = system.orchestrator.get_system_state()
        stats = system.monitor.stats()
        rate = state.metrics.task_completion_rate

    details = {"task_completion_rate": round(rate, 4)}
    if stats.completed + stats.failed == 0:
        return CheckResult("completion_rate", Status.SKIP, "No tasks finished yet", t.elapsed_ms, details)
    if rate < warn_below:
        return CheckResult("completion_rate", Status.WARN,
                           f"Completion rate {rate:.2f} below {warn_below:.2f}",
                           t.elapsed_ms, details)
    return CheckResult("completion_rate", Status.OK, f"Completion rate {rate:.2f}", t.elapsed_ms, details)


CHECKS = [
    check_agent_coverage,
    check_monitor,
    check_queue,
    check_completion_rate,
]


def run_health_check(system: AgentSystem) -> HealthReport:
    """
    Run all health checks against ``system`` and produce a report.

    Returns:
        HealthReport with all results.
    """
    from studybee_core import __version__

    report = HealthReport(
        timestamp=datetime.datetime.now().isoformat(),
        version=__version__,
        python_version=platform.python_version(),
    )

    for check_fn in CHECKS:
        try:
            report.checks.append(check_fn(system))
        except Exception as e:
            report.checks.append(CheckResult(
                check_fn.__name__, Status.FAIL,
                f"Check crashed: {e}", 0.0
            ))

    summary = {"ok": 0, "warn": 0, "fail": 0, "skip": 0}
    for check in report.checks:
        summary[check.status.value] += 1
    report.summary = summary

    if summary["fail"] > 0:
        report.overall_status = Status.FAIL
    elif summary["warn"] > 0:
        report.overall_status = Status.WARN
    else:
        report.overall_status = Status.OK

    return report


def format_report_text(report: HealthReport) -> str:
    """Format health report as human-readable text."""
    labels = {
        Status.OK: "[ OK ]",
        Status.WARN: "[WARN]",
        Status.FAIL: "[FAIL]",
        Status.SKIP: "[SKIP]",
    }

    lines = []
    lines.append("=" * 60)
    lines.append("  StudyBee Core - Health Check Report")
    lines.append("=" * 60)
    lines.append(f"  Timestamp:  {report.timestamp}")
    lines.append(f"  Version:    {report.version}")
    lines.append(f"  Python:     {report.python_version}")
    lines.append("")
    lines.append(f"  Overall:    {labels[report.overall_status]}  {report.overall_status.value.upper()}")
    lines.append(f"  Summary:    ok={report.summary.get('ok', 0)}  "
                 f"warn={report.summary.get('warn', 0)}  "
                 f"fail={report.summary.get('fail', 0)}  "
                 f"skip={report.summary.get('skip', 0)}")
    lines.append("-" * 60)

    for check in report.checks:
        lines.append(f"  {labels[check.status]}  {check.name:<20}  {check.message}")
        if check.details:
            for key, val in check.details.items():
                if isinstance(val, list) and len(val) > 5:
                    lines.append(f"       {key}: [{len(val)} items]")
                else:
                    lines.append(f"       {key}: {val}")
        lines.append(f"       ({check.duration_ms:.1f}ms)")

    lines.append("-" * 60)
    lines.append("")
    return "\n".join(lines)
