"""
StudyBee Core - Task Orchestration for the Learning Agents

Central dispatcher that queues learner tasks by priority, routes them to
specialist agents and tracks every task's lifecycle.

Modules:
- config: Centralized configuration (environment-driven)
- exceptions: Structured exception hierarchy
- metrics: Prometheus metrics export
- agents: Handler contract, registry and the eight specialist agents
- orchestration: Priority queue, selector, monitor and dispatcher
- testing: Distribution test harness
- profiles: Learner profile store boundary
- system: Composition root
- healthcheck: System health diagnostics
- cli: Command line interface
"""

__version__ = "1.0.0"
__author__ = "StudyBee Development Team"
__description__ = "Priority task orchestration for adaptive learning agents"
