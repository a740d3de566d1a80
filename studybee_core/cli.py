"""
StudyBee Core - Command Line Interface

    studybee route MULTI_AGENT_COORDINATION -c quiz -c schedule
    studybee selftest --json
    studybee health
    studybee metrics
    studybee config
"""

import asyncio
import json
import logging
import sys
from typing import List, Tuple

import click

from .agents.base import AgentTask, TaskType, enum_value
from .config import get_all_configs, runtime_config
from .healthcheck import Status, format_report_text, run_health_check
from .orchestration.selector import select_targets
from .system import AgentSystem, build_agent_system
from .testing import TestTaskResult


async def _run_selftest(system: AgentSystem, timeout_ms: int) -> List[Tuple[str, TestTaskResult]]:
    results = []
    for task_type in TaskType:
        result = await system.tester.run_test(task_type=task_type, timeout_ms=timeout_ms)
        results.append((task_type.value, result))
    return results


@click.group()
@click.option("--log-level", default=runtime_config.log_level, show_default=True,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
              help="Logging level")
def main(log_level: str):
    """StudyBee task orchestration tools."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        stream=sys.stderr,
    )


@main.command()
@click.argument("task_type")
@click.option("--context", "-c", multiple=True, help="Context tag (repeatable)")
@click.option("--target", "-t", multiple=True, help="Explicit agent type (repeatable)")
def route(task_type: str, context: Tuple[str, ...], target: Tuple[str, ...]):
    """Print the agent types a task would be routed to."""
    task = AgentTask(task_type=task_type, context=list(context), target_agent_types=list(target))
    targets = select_targets(task)
    if not targets:
        click.echo("No suitable handler found", err=True)
        sys.exit(1)
    for agent_type in targets:
        click.echo(enum_value(agent_type))


@main.command()
@click.option("--json", "as_json", is_flag=True, default=False, help="Output as JSON")
@click.option("--timeout-ms", default=None, type=int, help="Per-task harness timeout")
def selftest(as_json: bool, timeout_ms: int):
    """Run one test task per task type through the default agents."""
    system = build_agent_system()
    results = asyncio.run(_run_selftest(system, timeout_ms or system.tester.config.timeout_ms))

    if as_json:
        click.echo(json.dumps({name: r.to_dict() for name, r in results}, indent=2, default=str))
    else:
        for name, r in results:
            mark = "PASS" if r.success else "FAIL"
            agents = ", ".join(r.agent_results) or "-"
            click.echo(f"  [{mark}] {name:<28} {r.processing_time_ms:8.1f}ms  {agents}")
            if r.error:
                click.echo(f"         {r.error}")

    sys.exit(0 if all(r.success for _, r in results) else 1)


@main.command()
@click.option("--json", "as_json", is_flag=True, default=False, help="Output as JSON")
@click.option("--selftest/--no-selftest", "warm_up", default=True,
              help="Run the self-test first so the report reflects real traffic")
def health(as_json: bool, warm_up: bool):
    """Run health checks against a freshly built agent system."""
    system = build_agent_system()
    if warm_up:
        asyncio.run(_run_selftest(system, system.tester.config.timeout_ms))

    report = run_health_check(system)
    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        click.echo(format_report_text(report))

    sys.exit(0 if report.overall_status != Status.FAIL else 1)


@main.command()
def metrics():
    """Print Prometheus metrics after a self-test run."""
    system = build_agent_system()
    asyncio.run(_run_selftest(system, system.tester.config.timeout_ms))
    click.echo(system.metrics.get_metrics_text())


@main.command()
def config():
    """Print the effective configuration."""
    click.echo(json.dumps(get_all_configs(), indent=2))


if __name__ == "__main__":
    main()
