"""
Composition root.

Builds a fresh, fully wired agent system. Each call returns independent
instances, so tests and embedding applications never share state.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Type

from .agents import ALL_SPECIALISTS, AgentRegistry, BaseAgent
from .config import MonitorConfig, OrchestratorConfig, HarnessConfig, monitor_config
from .metrics import MetricsManager
from .orchestration import MasterControlProgram, TaskMonitor
from .profiles import ProfileRepository
from .testing import TaskDistributionTester

logger = logging.getLogger("studybee")


@dataclass
class AgentSystem:
    registry: AgentRegistry
    monitor: TaskMonitor
    orchestrator: MasterControlProgram
    tester: TaskDistributionTester
    metrics: MetricsManager


def build_agent_system(
    agents: Optional[Iterable[Type[BaseAgent]]] = None,
    profile_repository: Optional[ProfileRepository] = None,
    orchestrator_config: Optional[OrchestratorConfig] = None,
    monitor_settings: Optional[MonitorConfig] = None,
    harness_settings: Optional[HarnessConfig] = None,
    metrics: Optional[MetricsManager] = None,
) -> AgentSystem:
    """Create a registry with one instance of each agent class and wire it up.

    Args:
        agents: Agent classes to instantiate (default: all eight specialists)
        profile_repository: Profile store used by ``initialize_for_owner``
        orchestrator_config: Dispatcher settings
        monitor_settings: Monitor enablement and retention
        harness_settings: Test harness timeouts
        metrics: Metrics manager (default: enabled per environment)

    Returns:
        AgentSystem bundling all components
    """
    monitor_settings = monitor_settings or monitor_config
    registry = AgentRegistry()
    for agent_cls in (agents if agents is not None else ALL_SPECIALISTS):
        agent = agent_cls()
        registry.register(agent.agent_type, agent)

    monitor = TaskMonitor(enabled=monitor_settings.enabled)
    orchestrator = MasterControlProgram(
        registry,
        monitor=monitor,
        profile_repository=profile_repository,
        config=orchestrator_config,
        metrics=metrics,
        max_records=monitor_settings.max_records,
    )
    tester = TaskDistributionTester(orchestrator, config=harness_settings)

    logger.info(f"Agent system ready with {len(registry.list_types())} agent types")
    return AgentSystem(
        registry=registry,
        monitor=monitor,
        orchestrator=orchestrator,
        tester=tester,
        metrics=orchestrator.metrics,
    )
