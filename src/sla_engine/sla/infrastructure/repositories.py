"""
SLA Infrastructure Repositories
=================================

Concrete implementations of the SLA repository interfaces.

State lives in memory, one ledger per project inside a ``ProjectRegistry``;
a storage backend only has to provide the same lock-and-yield contract.
"""

from contextlib import AbstractContextManager
from typing import List, Optional

from sla_engine.shared.infrastructure.registry import ProjectRegistry
from sla_engine.sla.application import ISLALedgerRepository, ISLAConfigProvider
from sla_engine.sla.domain import ProjectSLALedger, SLAConfig


class InMemorySLARepository(ISLALedgerRepository):
    """
    In-memory implementation of the SLA ledger repository.

    Handles per-project SLA state (policies, task states, breach log).
    """

    def __init__(self, registry: Optional[ProjectRegistry[ProjectSLALedger]] = None):
        self._registry = registry or ProjectRegistry(ProjectSLALedger, name="sla")

    def locked(self, project_id: str) -> AbstractContextManager[ProjectSLALedger]:
        return self._registry.locked(project_id)

    def reset(self, project_id: str) -> bool:
        return self._registry.reset(project_id)

    def project_ids(self) -> List[str]:
        return self._registry.project_ids()

    def dispose(self) -> None:
        self._registry.dispose()


class StaticConfigProvider(ISLAConfigProvider):
    """
    SLA configuration provider holding a fixed configuration.

    Used when no YAML file is watched (library use, tests).
    """

    def __init__(self, config: Optional[SLAConfig] = None):
        self._config = config or SLAConfig()

    def get_config(self) -> SLAConfig:
        """Get current SLA configuration."""
        return self._config
