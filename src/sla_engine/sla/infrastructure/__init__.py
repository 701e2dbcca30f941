"""
SLA Infrastructure Layer
=========================

Infrastructure implementations for SLA tracking:
- Repositories: In-memory per-project ledgers, static config provider
- External: YAML config loading with file watcher
"""

from sla_engine.sla.infrastructure.repositories import (
    InMemorySLARepository,
    StaticConfigProvider,
)
from sla_engine.sla.infrastructure.external import (
    ConfigFileHandler,
    SLAConfigManager,
)

__all__ = [
    "InMemorySLARepository",
    "StaticConfigProvider",
    "ConfigFileHandler",
    "SLAConfigManager",
]
