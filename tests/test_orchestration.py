"""
StudyBee Core - Orchestration Test Suite

Covers the dispatcher end to end:
  1. Master Control Program (ordering, routing, fan-out, bookkeeping)
  2. Broadcast & Owner Initialization
  3. Distribution Test Harness
  4. Composition Root & Health Check
  5. CLI

Every test builds its own orchestrator; nothing is shared between tests.

Run with:  pytest tests/test_orchestration.py -v
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from click.testing import CliRunner

from studybee_core.agents import (
    AgentMessage,
    AgentRegistry,
    AgentTask,
    AgentType,
    BaseAgent,
    CognitiveProfileAgent,
    MessageType,
    TaskPriority,
    TaskStatus,
    TaskType,
)
from studybee_core.config import HarnessConfig, OrchestratorConfig
from studybee_core.exceptions import ConfigurationError, DuplicateTaskError, OrchestratorNotRunning
from studybee_core.metrics import MetricsManager
from studybee_core.orchestration import MasterControlProgram, TaskMonitor
from studybee_core.profiles import InMemoryProfileRepository
from studybee_core.testing import TaskDistributionTester


# ══════════════════════════════════════════════════════════════════════════════
# FIXTURES
# ══════════════════════════════════════════════════════════════════════════════

class RecordingAgent(BaseAgent):
    """Agent that logs what it processed and can be told to fail or stall."""

    def __init__(self, agent_type: AgentType, log: list, fail: bool = False, delay: float = 0.0):
        self.agent_type = agent_type
        super().__init__()
        self.log = log
        self.fail = fail
        self.delay = delay
        self.messages = []

    async def _process_task(self, task):
        self.log.append(f"{self.agent_type.value}:start:{task.task_id}")
        if self.delay:
            await asyncio.sleep(self.delay)
        self.log.append(f"{self.agent_type.value}:end:{task.task_id}")
        if self.fail:
            raise RuntimeError("handler exploded")
        return {"seen": task.task_id}

    async def receive_message(self, message):
        self.messages.append(message)
        await super().receive_message(message)


class BrokenInboxAgent(RecordingAgent):
    async def receive_message(self, message):
        raise RuntimeError("inbox full")


def build(*agents, **config) -> MasterControlProgram:
    registry = AgentRegistry()
    for agent in agents:
        registry.register(agent.agent_type, agent)
    return MasterControlProgram(
        registry,
        monitor=TaskMonitor(),
        config=OrchestratorConfig(**config),
        metrics=MetricsManager(enabled=False),
    )


def processed(log: list) -> list:
    """Task ids in the order their handlers started."""
    return [entry.split(":", 2)[2] for entry in log if ":start:" in entry]


@pytest.fixture
def log():
    return []


@pytest.fixture
def fast_harness():
    return HarnessConfig(timeout_ms=2000, poll_interval_ms=5)


# ══════════════════════════════════════════════════════════════════════════════
# 1. MASTER CONTROL PROGRAM
# ══════════════════════════════════════════════════════════════════════════════

class TestDrainOrdering:
    """Priority and FIFO guarantees of the drain loop."""

    @pytest.mark.asyncio
    async def test_high_drains_before_low(self, log):
        mcp = build(RecordingAgent(AgentType.COGNITIVE_PROFILE, log))
        low = AgentTask(task_type=TaskType.COGNITIVE_PROFILING, priority=TaskPriority.LOW)
        high = AgentTask(task_type=TaskType.COGNITIVE_PROFILING, priority=TaskPriority.HIGH)

        mcp.submit(low)
        mcp.submit(high)
        await mcp.join()

        assert processed(log) == [high.task_id, low.task_id]

    @pytest.mark.asyncio
    async def test_equal_priority_drains_fifo(self, log):
        mcp = build(RecordingAgent(AgentType.COGNITIVE_PROFILE, log))
        tasks = [
            AgentTask(task_type=TaskType.COGNITIVE_PROFILING, priority=TaskPriority.MEDIUM)
            for _ in range(3)
        ]
        for task in tasks:
            mcp.submit(task)
        await mcp.join()

        assert processed(log) == [t.task_id for t in tasks]

    @pytest.mark.asyncio
    async def test_one_task_in_flight_at_a_time(self, log):
        mcp = build(RecordingAgent(AgentType.COGNITIVE_PROFILE, log, delay=0.01))
        first = AgentTask(task_type=TaskType.COGNITIVE_PROFILING)
        second = AgentTask(task_type=TaskType.COGNITIVE_PROFILING)
        mcp.submit(first)
        mcp.submit(second)
        await mcp.join()

        assert log == [
            f"COGNITIVE_PROFILE:start:{first.task_id}",
            f"COGNITIVE_PROFILE:end:{first.task_id}",
            f"COGNITIVE_PROFILE:start:{second.task_id}",
            f"COGNITIVE_PROFILE:end:{second.task_id}",
        ]

    @pytest.mark.asyncio
    async def test_submit_during_drain_is_picked_up(self, log):
        mcp = build(RecordingAgent(AgentType.COGNITIVE_PROFILE, log, delay=0.01))
        first = AgentTask(task_type=TaskType.COGNITIVE_PROFILING)
        mcp.submit(first)
        await asyncio.sleep(0)
        assert mcp.is_draining

        second = AgentTask(task_type=TaskType.COGNITIVE_PROFILING)
        outcome = await mcp.submit(second)

        assert outcome.success
        assert processed(log) == [first.task_id, second.task_id]
        await mcp.join()
        assert not mcp.is_draining


class TestRoutingAndOutcomes:

    @pytest.mark.asyncio
    async def test_unknown_task_type_is_routing_failure(self, log):
        mcp = build(RecordingAgent(AgentType.COGNITIVE_PROFILE, log))
        task = AgentTask(task_type="MYSTERY_TASK", context=["nothing", "here"])

        outcome = await mcp.submit(task)

        assert outcome.status is TaskStatus.FAILED
        assert outcome.errors[0]["message"] == "No suitable handler found"
        assert outcome.errors[0]["error_code"] == "SB-ORC-0001"
        assert mcp.monitor.stats().failed == 1
        assert log == []

    @pytest.mark.asyncio
    async def test_success_updates_task_and_monitor(self, log):
        mcp = build(RecordingAgent(AgentType.COGNITIVE_PROFILE, log))
        task = AgentTask(task_type=TaskType.COGNITIVE_PROFILING, owner_id="u1")

        outcome = await mcp.submit(task)

        assert outcome.success
        assert outcome.agent_results["COGNITIVE_PROFILE"] == {"success": True, "result": {"seen": task.task_id}}
        assert task.status is TaskStatus.COMPLETED
        assert task.completed_at is not None
        record = mcp.monitor.get_record(task.task_id)
        assert record.status is TaskStatus.COMPLETED
        assert [e.event for e in record.events] == ["TASK_STARTED", "TASK_DISPATCHED", "TASK_COMPLETED"]
        assert mcp.monitor.stats().completed == 1

    @pytest.mark.asyncio
    async def test_handler_failure_is_isolated(self, log):
        mcp = build(
            RecordingAgent(AgentType.COGNITIVE_PROFILE, log),
            RecordingAgent(AgentType.SCHEDULING, log, fail=True),
        )
        task = AgentTask(task_type=TaskType.FLASHCARD_OPTIMIZATION)

        outcome = await mcp.submit(task)

        assert outcome.status is TaskStatus.FAILED
        assert outcome.agent_results["COGNITIVE_PROFILE"]["success"] is True
        assert outcome.agent_results["SCHEDULING"]["success"] is False
        assert outcome.errors[0]["error_code"] == "SB-ORC-0002"
        assert "handler exploded" in outcome.errors[0]["message"]

        follow_up = await mcp.submit(AgentTask(task_type=TaskType.COGNITIVE_PROFILING))
        assert follow_up.success

    @pytest.mark.asyncio
    async def test_unregistered_handlers_are_skipped(self, log):
        mcp = build(RecordingAgent(AgentType.COGNITIVE_PROFILE, log))
        task = AgentTask(
            task_type=TaskType.FEEDBACK_GENERATION,
            target_agent_types=[AgentType.FEEDBACK, AgentType.COGNITIVE_PROFILE],
        )

        outcome = await mcp.submit(task)

        assert outcome.success
        assert outcome.skipped == ["FEEDBACK"]
        assert list(outcome.agent_results) == ["COGNITIVE_PROFILE"]

    @pytest.mark.asyncio
    async def test_all_handlers_unregistered_still_completes(self):
        mcp = build()
        outcome = await mcp.submit(AgentTask(task_type=TaskType.UI_OPTIMIZATION))
        assert outcome.success
        assert outcome.skipped == ["UI_UX"]

    @pytest.mark.asyncio
    async def test_duplicate_targets_dispatch_once(self, log):
        mcp = build(RecordingAgent(AgentType.FEEDBACK, log))
        task = AgentTask(
            task_type=TaskType.FEEDBACK_GENERATION,
            target_agent_types=[AgentType.FEEDBACK, "FEEDBACK"],
        )
        await mcp.submit(task)
        assert processed(log) == [task.task_id]

    @pytest.mark.asyncio
    async def test_handler_timeout(self, log):
        agent = RecordingAgent(AgentType.ASSESSMENT, log, delay=1.0)
        mcp = build(agent, handler_timeout=0.05)
        outcome = await mcp.submit(AgentTask(task_type=TaskType.ASSESSMENT_GENERATION))

        assert outcome.status is TaskStatus.FAILED
        assert outcome.errors[0]["error_code"] == "SB-ORC-0004"
        assert outcome.errors[0]["exception_type"] == "HandlerTimeout"
        assert agent.metrics.tasks_failed == 1
        assert agent.metrics.tasks_completed == 0
        last = agent.get_task_history()[-1]
        assert last["status"] == "failed"
        assert last["error"] == "cancelled"

    @pytest.mark.asyncio
    async def test_target_named_by_string_is_dispatched(self, log):
        mcp = build(RecordingAgent(AgentType.FEEDBACK, log))
        task = AgentTask(task_type="MYSTERY")
        task.target_agent_types.append("FEEDBACK")

        outcome = await mcp.submit(task)

        assert outcome.status is TaskStatus.COMPLETED
        assert outcome.skipped == []
        assert "FEEDBACK" in outcome.agent_results
        assert processed(log) == [task.task_id]

    @pytest.mark.asyncio
    async def test_parallel_fan_out(self, log):
        mcp = build(
            RecordingAgent(AgentType.COGNITIVE_PROFILE, log, delay=0.01),
            RecordingAgent(AgentType.SCHEDULING, log, delay=0.01),
        )
        task = AgentTask(task_type=TaskType.FLASHCARD_OPTIMIZATION)
        await mcp.submit(task)
        assert [entry.split(":")[1] for entry in log[:2]] == ["start", "start"]

    @pytest.mark.asyncio
    async def test_sequential_fan_out(self, log):
        mcp = build(
            RecordingAgent(AgentType.COGNITIVE_PROFILE, log, delay=0.01),
            RecordingAgent(AgentType.SCHEDULING, log, delay=0.01),
            parallel_dispatch=False,
        )
        task = AgentTask(task_type=TaskType.FLASHCARD_OPTIMIZATION)
        await mcp.submit(task)
        assert [entry.rsplit(":", 1)[0] for entry in log] == [
            "COGNITIVE_PROFILE:start",
            "COGNITIVE_PROFILE:end",
            "SCHEDULING:start",
            "SCHEDULING:end",
        ]


class TestSubmission:

    def test_submit_requires_running_loop(self):
        mcp = build()
        with pytest.raises(OrchestratorNotRunning):
            mcp.submit(AgentTask(task_type=TaskType.COGNITIVE_PROFILING))

    @pytest.mark.asyncio
    async def test_duplicate_task_id_rejected(self, log):
        mcp = build(RecordingAgent(AgentType.COGNITIVE_PROFILE, log))
        task = AgentTask(task_type=TaskType.COGNITIVE_PROFILING)
        await mcp.submit(task)

        with pytest.raises(DuplicateTaskError):
            mcp.submit(task)

    @pytest.mark.asyncio
    async def test_unknown_priority_rejected(self):
        mcp = build()
        with pytest.raises(ValueError):
            mcp.submit(AgentTask(task_type=TaskType.COGNITIVE_PROFILING, priority="URGENT"))
        assert mcp.queue_size == 0

    @pytest.mark.asyncio
    async def test_missing_priority_defaults_to_medium(self, log):
        mcp = build(RecordingAgent(AgentType.COGNITIVE_PROFILE, log))
        task = AgentTask(task_type=TaskType.COGNITIVE_PROFILING)
        await mcp.submit(task)
        assert task.priority is TaskPriority.MEDIUM

    def test_invalid_config_rejected(self):
        with pytest.raises(ConfigurationError):
            build(completion_rate_step=0.0)
        with pytest.raises(ConfigurationError):
            build(initial_completion_rate=1.5)
        with pytest.raises(ConfigurationError):
            build(handler_timeout=-1.0)

    @pytest.mark.asyncio
    async def test_monitor_eviction_runs_periodically(self, log):
        mcp = build(RecordingAgent(AgentType.COGNITIVE_PROFILE, log), eviction_interval=3)
        mcp.max_records = 1
        for _ in range(3):
            mcp.submit(AgentTask(task_type=TaskType.COGNITIVE_PROFILING))
        await mcp.join()
        assert len(mcp.monitor) == 1


class TestCompletionRate:

    @pytest.mark.asyncio
    async def test_moving_average(self, log):
        mcp = build(
            RecordingAgent(AgentType.COGNITIVE_PROFILE, log),
            RecordingAgent(AgentType.FEEDBACK, log, fail=True),
        )
        assert mcp.get_system_state().metrics.task_completion_rate == 0.0

        await mcp.submit(AgentTask(task_type=TaskType.COGNITIVE_PROFILING))
        assert mcp.get_system_state().metrics.task_completion_rate == pytest.approx(0.1)

        await mcp.submit(AgentTask(task_type=TaskType.COGNITIVE_PROFILING))
        assert mcp.get_system_state().metrics.task_completion_rate == pytest.approx(0.19)

        await mcp.submit(AgentTask(task_type=TaskType.FEEDBACK_GENERATION))
        assert mcp.get_system_state().metrics.task_completion_rate == pytest.approx(0.171)

    def test_rate_stays_within_bounds(self):
        mcp = build(initial_completion_rate=1.0)
        mcp.record_task_success()
        assert mcp.get_system_state().metrics.task_completion_rate == 1.0

        mcp = build(initial_completion_rate=0.0)
        mcp.record_task_failure(reason="x")
        assert mcp.get_system_state().metrics.task_completion_rate == 0.0


# ══════════════════════════════════════════════════════════════════════════════
# 2. BROADCAST & OWNER INITIALIZATION
# ══════════════════════════════════════════════════════════════════════════════

class TestBroadcast:

    @pytest.mark.asyncio
    async def test_failing_inbox_does_not_block_others(self, log):
        good = RecordingAgent(AgentType.COGNITIVE_PROFILE, log)
        bad = BrokenInboxAgent(AgentType.FEEDBACK, log)
        also_good = RecordingAgent(AgentType.SCHEDULING, log)
        mcp = build(good, bad, also_good)

        delivered = await mcp.broadcast(AgentMessage(message_type=MessageType.NOTIFICATION, content="hi"))

        assert delivered == {"COGNITIVE_PROFILE": True, "FEEDBACK": False, "SCHEDULING": True}
        assert len(good.messages) == 1
        assert len(also_good.messages) == 1

    @pytest.mark.asyncio
    async def test_targeted_broadcast(self, log):
        profile = RecordingAgent(AgentType.COGNITIVE_PROFILE, log)
        scheduling = RecordingAgent(AgentType.SCHEDULING, log)
        mcp = build(profile, scheduling)

        delivered = await mcp.broadcast(
            AgentMessage(message_type=MessageType.ALERT, content="only you"),
            [AgentType.SCHEDULING, AgentType.UI_UX],
        )

        assert delivered == {"SCHEDULING": True}
        assert profile.messages == []
        assert len(scheduling.messages) == 1

    @pytest.mark.asyncio
    async def test_broadcast_to_type_names(self, log):
        assessment = RecordingAgent(AgentType.ASSESSMENT, log)
        mcp = build(assessment)

        delivered = await mcp.broadcast(
            AgentMessage(message_type=MessageType.NOTIFICATION, content="by name"),
            ["ASSESSMENT"],
        )

        assert delivered == {"ASSESSMENT": True}
        assert len(assessment.messages) == 1


class TestSystemState:

    def test_snapshot_is_a_copy(self):
        mcp = build()
        mcp.set_global_variable("current_owner_id", "u1")

        state = mcp.get_system_state()
        state.global_variables["current_owner_id"] = "intruder"
        state.metrics.task_completion_rate = 0.99
        state.active_agent_types.add(AgentType.UI_UX)

        fresh = mcp.get_system_state()
        assert fresh.global_variables["current_owner_id"] == "u1"
        assert fresh.metrics.task_completion_rate == 0.0
        assert AgentType.UI_UX not in fresh.active_agent_types

    def test_register_agent_marks_type_active(self, log):
        mcp = build()
        mcp.register_agent(RecordingAgent(AgentType.ENGAGEMENT, log))
        assert AgentType.ENGAGEMENT in mcp.get_system_state().active_agent_types
        assert mcp.registry.get(AgentType.ENGAGEMENT) is not None
        assert mcp.get_system_state().to_dict()["active_agent_types"] == ["ENGAGEMENT"]

    def test_snapshot_follows_registry(self, log):
        mcp = build()
        mcp.registry.register(AgentType.UI_UX, RecordingAgent(AgentType.UI_UX, log))
        assert AgentType.UI_UX in mcp.get_system_state().active_agent_types

        mcp.registry.unregister(AgentType.UI_UX)
        assert AgentType.UI_UX not in mcp.get_system_state().active_agent_types


class TestInitializeForOwner:

    @pytest.mark.asyncio
    async def test_profile_lookup_failure_is_tolerated(self, log):
        agent = RecordingAgent(AgentType.COGNITIVE_PROFILE, log)
        mcp = build(agent)
        repository = AsyncMock()
        repository.fetch_profile.side_effect = RuntimeError("profile store down")
        mcp.profile_repository = repository

        future = await mcp.initialize_for_owner("owner-1")
        outcome = await future

        assert outcome.success
        repository.fetch_profile.assert_awaited_once_with("owner-1")
        assert mcp.get_global_variable("current_owner_id") == "owner-1"
        assert mcp.get_global_variable("owner_profile") is None
        assert agent.owner_id == "owner-1"
        assert agent.messages[0].content == "INITIALIZE_FOR_OWNER"

    @pytest.mark.asyncio
    async def test_profile_is_cached_and_profiling_task_queued(self, log):
        agent = RecordingAgent(AgentType.COGNITIVE_PROFILE, log)
        mcp = build(agent)
        mcp.profile_repository = InMemoryProfileRepository({"owner-2": {"learning_style": "visual"}})

        outcome = await (await mcp.initialize_for_owner("owner-2"))

        assert mcp.get_global_variable("owner_profile") == {"learning_style": "visual"}
        record = mcp.monitor.get_record(outcome.task_id)
        assert record.owner_id == "owner-2"
        assert record.task_type == "COGNITIVE_PROFILING"
        assert record.target_agents == ["COGNITIVE_PROFILE"]
        assert outcome.task_id.startswith("initial-cognitive-profiling-")


# ══════════════════════════════════════════════════════════════════════════════
# 3. DISTRIBUTION TEST HARNESS
# ══════════════════════════════════════════════════════════════════════════════

class TestDistributionTester:

    @pytest.mark.asyncio
    async def test_timed_out_agent_reports_failure(self, log, fast_harness):
        mcp = build(RecordingAgent(AgentType.ASSESSMENT, log, delay=1.0), handler_timeout=0.05)
        tester = TaskDistributionTester(mcp, config=fast_harness)

        result = await tester.run_test(target_agents=[AgentType.ASSESSMENT])

        assert result.success is False
        assert result.agent_results["ASSESSMENT"]["success"] is False
        assert result.agent_results["ASSESSMENT"]["result"] == {"error": "cancelled"}
        assert result.agent_results["ASSESSMENT"]["processing_time_ms"] is not None

    @pytest.mark.asyncio
    async def test_one_failing_agent_fails_the_test(self, log, fast_harness):
        mcp = build(
            RecordingAgent(AgentType.COGNITIVE_PROFILE, log),
            RecordingAgent(AgentType.FEEDBACK, log, fail=True),
        )
        tester = TaskDistributionTester(mcp, config=fast_harness)

        result = await tester.run_test(target_agents=[AgentType.COGNITIVE_PROFILE, AgentType.FEEDBACK])

        assert result.success is False
        assert set(result.agent_results) == {"COGNITIVE_PROFILE", "FEEDBACK"}
        assert result.agent_results["COGNITIVE_PROFILE"]["success"] is True
        assert result.agent_results["FEEDBACK"]["success"] is False
        assert result.agent_results["FEEDBACK"]["result"] == {"error": "handler exploded"}
        assert tester.get_test_record(result.task_id).status == "failed"

    @pytest.mark.asyncio
    async def test_selector_resolves_targets(self, log, fast_harness):
        mcp = build(
            RecordingAgent(AgentType.COGNITIVE_PROFILE, log),
            RecordingAgent(AgentType.SCHEDULING, log),
        )
        tester = TaskDistributionTester(mcp, config=fast_harness)

        result = await tester.run_test(
            owner_id="owner-7",
            task_type=TaskType.FLASHCARD_OPTIMIZATION,
            payload={"cardIds": ["c1"]},
        )

        assert result.success is True
        assert result.error is None
        assert set(result.agent_results) == {"COGNITIVE_PROFILE", "SCHEDULING"}
        record = tester.get_test_record(result.task_id)
        assert set(record.target_agents) == {"COGNITIVE_PROFILE", "SCHEDULING"}
        assert result.task_id == f"test-task-{result.test_id}"
        assert mcp.monitor.get_record(result.task_id).owner_id == "owner-7"

    @pytest.mark.asyncio
    async def test_timeout_returns_partial_results(self, log, fast_harness):
        mcp = build(RecordingAgent(AgentType.ASSESSMENT, log, delay=0.3))
        tester = TaskDistributionTester(mcp, config=fast_harness)

        result = await tester.run_test(task_type=TaskType.ASSESSMENT_GENERATION, timeout_ms=50)

        assert result.success is False
        assert result.error == "Task processing timed out"
        assert result.agent_results["ASSESSMENT"]["processing_time_ms"] is None
        assert tester.get_test_record(result.task_id).status == "timeout"
        await mcp.join()

    @pytest.mark.asyncio
    async def test_routing_failure_settles_without_timeout(self, fast_harness):
        mcp = build()
        tester = TaskDistributionTester(mcp, config=fast_harness)

        result = await tester.run_test(task_type="MYSTERY_TASK", timeout_ms=1000)

        assert result.success is False
        assert result.error == "No suitable handler found"
        assert result.processing_time_ms < 1000

    @pytest.mark.asyncio
    async def test_unregistered_target_fails_the_test(self, log, fast_harness):
        mcp = build(RecordingAgent(AgentType.COGNITIVE_PROFILE, log))
        tester = TaskDistributionTester(mcp, config=fast_harness)

        result = await tester.run_test(target_agents=[AgentType.COGNITIVE_PROFILE, AgentType.UI_UX])

        assert result.success is False
        assert result.error == "No handler registered for: UI_UX"
        assert result.agent_results["COGNITIVE_PROFILE"]["success"] is True

    @pytest.mark.asyncio
    async def test_submission_error_returns_immediately(self, fast_harness):
        mcp = build()
        tester = TaskDistributionTester(mcp, config=fast_harness)

        result = await tester.run_test(priority="URGENT")

        assert result.success is False
        assert "Unknown priority" in result.error
        assert result.agent_results == {}
        assert tester.get_test_record(result.task_id).status == "failed"
        stats = mcp.monitor.stats()
        assert stats.pending == 0
        assert stats.failed == 1
        assert mcp.monitor.get_record(result.task_id).status is TaskStatus.FAILED

    @pytest.mark.asyncio
    async def test_record_queries(self, log, fast_harness):
        mcp = build(RecordingAgent(AgentType.COGNITIVE_PROFILE, log))
        tester = TaskDistributionTester(mcp, config=fast_harness)

        first = await tester.run_test()
        second = await tester.run_test()

        assert {r.task_id for r in tester.get_all_test_records()} == {first.task_id, second.task_id}
        assert tester.get_test_record("missing") is None
        tester.clear_test_records()
        assert tester.get_all_test_records() == []

    @pytest.mark.asyncio
    async def test_agents_registered_later_are_attached(self, log, fast_harness):
        mcp = build()
        tester = TaskDistributionTester(mcp, config=fast_harness)
        mcp.register_agent(RecordingAgent(AgentType.UI_UX, log))

        result = await tester.run_test(task_type=TaskType.UI_OPTIMIZATION)

        assert result.success is True
        assert list(result.agent_results) == ["UI_UX"]


# ══════════════════════════════════════════════════════════════════════════════
# 4. COMPOSITION ROOT & HEALTH CHECK
# ══════════════════════════════════════════════════════════════════════════════

class TestAgentSystem:

    @pytest.mark.asyncio
    async def test_every_task_type_passes_selftest(self, fast_harness):
        from studybee_core.system import build_agent_system

        system = build_agent_system(harness_settings=fast_harness)
        assert len(system.registry.list_types()) == len(AgentType)

        for task_type in TaskType:
            result = await system.tester.run_test(task_type=task_type)
            assert result.success, f"{task_type.value}: {result.error}"

    def test_systems_are_independent(self):
        from studybee_core.system import build_agent_system

        first = build_agent_system()
        second = build_agent_system()
        first.orchestrator.set_global_variable("k", "v")
        assert second.orchestrator.get_global_variable("k") is None
        assert first.registry.get(AgentType.ASSESSMENT) is not second.registry.get(AgentType.ASSESSMENT)


class TestHealthCheck:

    def test_fresh_system_is_healthy(self):
        from studybee_core.healthcheck import Status, run_health_check
        from studybee_core.system import build_agent_system

        report = run_health_check(build_agent_system())

        assert report.overall_status is Status.OK
        checks = {c.name: c.status for c in report.checks}
        assert checks["agent_coverage"] is Status.OK
        assert checks["completion_rate"] is Status.SKIP
        assert sum(report.summary.values()) == len(report.checks)

    def test_missing_agents_fail_coverage(self):
        from studybee_core.healthcheck import Status, run_health_check
        from studybee_core.system import build_agent_system

        report = run_health_check(build_agent_system(agents=[CognitiveProfileAgent]))

        coverage = next(c for c in report.checks if c.name == "agent_coverage")
        assert coverage.status is Status.FAIL
        assert "LEARNING_PATH_GENERATION" in coverage.details["uncovered"]
        assert report.overall_status is Status.FAIL

    def test_report_rendering(self):
        from studybee_core.healthcheck import format_report_text, run_health_check
        from studybee_core.system import build_agent_system

        report = run_health_check(build_agent_system())
        text = format_report_text(report)
        assert "Health Check Report" in text
        assert "agent_coverage" in text
        assert json.loads(json.dumps(report.to_dict()))["overall_status"] == "ok"


# ══════════════════════════════════════════════════════════════════════════════
# 5. CLI
# ══════════════════════════════════════════════════════════════════════════════

class TestCli:

    def test_route(self):
        from studybee_core.cli import main

        result = CliRunner().invoke(main, ["route", "FLASHCARD_OPTIMIZATION"])
        assert result.exit_code == 0
        assert result.output.split() == ["COGNITIVE_PROFILE", "SCHEDULING"]

    def test_route_with_context(self):
        from studybee_core.cli import main

        result = CliRunner().invoke(main, ["route", "MULTI_AGENT_COORDINATION", "-c", "quiz", "-c", "ui"])
        assert result.exit_code == 0
        assert set(result.output.split()) == {"ASSESSMENT", "UI_UX"}

    def test_route_unknown_type_fails(self):
        from studybee_core.cli import main

        result = CliRunner().invoke(main, ["route", "MYSTERY_TASK"])
        assert result.exit_code == 1

    def test_selftest_json(self):
        from studybee_core.cli import main

        result = CliRunner().invoke(main, ["--log-level", "ERROR", "selftest", "--json", "--timeout-ms", "2000"])
        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert set(payload) == {t.value for t in TaskType}
        assert all(entry["success"] for entry in payload.values())

    def test_health_json(self):
        from studybee_core.cli import main

        result = CliRunner().invoke(main, ["--log-level", "ERROR", "health", "--json", "--no-selftest"])
        assert result.exit_code == 0
        assert json.loads(result.output)["overall_status"] == "ok"

    def test_config(self):
        from studybee_core.cli import main

        result = CliRunner().invoke(main, ["config"])
        assert result.exit_code == 0
        assert "orchestrator" in json.loads(result.output)
