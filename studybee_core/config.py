"""
StudyBee Core - Centralized Configuration

Single source of truth for orchestration settings.
Environment-variable driven with safe defaults.
"""

import os
from dataclasses import dataclass, asdict
from typing import Dict, Any
from enum import Enum


# ══════════════════════════════════════════════════════════════════════════════
# ENVIRONMENT
# ══════════════════════════════════════════════════════════════════════════════

class Environment(Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


def _env(key: str, default: str = "") -> str:
    return os.environ.get(key, default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = os.environ.get(key, str(default)).lower()
    return val in ("true", "1", "yes", "on")


def _env_int(key: str, default: int = 0) -> int:
    try:
        return int(os.environ.get(key, str(default)))
    except (ValueError, TypeError):
        return default


def _env_float(key: str, default: float = 0.0) -> float:
    try:
        return float(os.environ.get(key, str(default)))
    except (ValueError, TypeError):
        return default


# ══════════════════════════════════════════════════════════════════════════════
# RUNTIME CONFIG
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RuntimeConfig:
    """Process-level settings (logging, environment)."""
    log_level: str = _env("STUDYBEE_LOG_LEVEL", "INFO")
    environment: str = _env("STUDYBEE_ENVIRONMENT", Environment.PRODUCTION.value)


# ══════════════════════════════════════════════════════════════════════════════
# ORCHESTRATOR CONFIG
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class OrchestratorConfig:
    """Master Control Program configuration."""
    # Exponential moving average step applied to task_completion_rate
    completion_rate_step: float = _env_float("STUDYBEE_COMPLETION_RATE_STEP", 0.1)
    initial_completion_rate: float = _env_float("STUDYBEE_INITIAL_COMPLETION_RATE", 0.0)
    # Seconds; 0 disables the per-handler deadline
    handler_timeout: float = _env_float("STUDYBEE_HANDLER_TIMEOUT", 0.0)
    parallel_dispatch: bool = _env_bool("STUDYBEE_PARALLEL_DISPATCH", True)
    # Number of finished tasks between two monitor evictions
    eviction_interval: int = _env_int("STUDYBEE_EVICTION_INTERVAL", 50)


# ══════════════════════════════════════════════════════════════════════════════
# MONITOR CONFIG
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class MonitorConfig:
    """Task monitor configuration."""
    enabled: bool = _env_bool("STUDYBEE_MONITOR_ENABLED", True)
    max_records: int = _env_int("STUDYBEE_MONITOR_MAX_RECORDS", 1000)


# ══════════════════════════════════════════════════════════════════════════════
# HARNESS CONFIG
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class HarnessConfig:
    """Task distribution test harness configuration."""
    timeout_ms: int = _env_int("STUDYBEE_HARNESS_TIMEOUT_MS", 10000)
    poll_interval_ms: int = _env_int("STUDYBEE_HARNESS_POLL_MS", 100)
    default_owner_id: str = _env("STUDYBEE_HARNESS_OWNER", "test-user")


# ══════════════════════════════════════════════════════════════════════════════
# METRICS CONFIG
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class MetricsConfig:
    """Prometheus metrics configuration."""
    enabled: bool = _env_bool("STUDYBEE_METRICS_ENABLED", True)
    port: int = _env_int("STUDYBEE_METRICS_PORT", 9090)


# ══════════════════════════════════════════════════════════════════════════════
# GLOBAL CONFIG INSTANCE
# ══════════════════════════════════════════════════════════════════════════════

runtime_config = RuntimeConfig()
orchestrator_config = OrchestratorConfig()
monitor_config = MonitorConfig()
harness_config = HarnessConfig()
metrics_config = MetricsConfig()


def get_all_configs() -> Dict[str, Any]:
    """Return all configuration as a serializable dictionary."""
    return {
        "runtime": asdict(runtime_config),
        "orchestrator": asdict(orchestrator_config),
        "monitor": asdict(monitor_config),
        "harness": asdict(harness_config),
        "metrics": asdict(metrics_config),
    }
