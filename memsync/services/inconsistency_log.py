"""
Sinks for inconsistencies detected while writing to both stores.

The coordinator reports every partial failure through an InconsistencyLog.
The default sink only logs; InMemoryInconsistencyLog keeps the records so a
caller can hand them to SyncService.repair_inconsistencies() later.
"""

from abc import ABC, abstractmethod

from memsync.models.sync import Inconsistency, InconsistencyIssue
from memsync.utils.logger import get_logger

logger = get_logger(__name__)


class InconsistencyLog(ABC):
    """Hook receiving every inconsistency the coordinator detects."""

    @abstractmethod
    async def record(self, inconsistency: Inconsistency) -> None:
        """
        Persist or forward one inconsistency.

        Args:
            inconsistency: Detected mismatch between the stores
        """
        pass


class LoggingInconsistencyLog(InconsistencyLog):
    """Writes inconsistencies to the application log."""

    async def record(self, inconsistency: Inconsistency) -> None:
        logger.warning(
            f"Inconsistency detected: {inconsistency.issue.value}",
            extra={
                "inconsistency_id": inconsistency.id,
                "memory_id": inconsistency.memory_id,
                "issue": inconsistency.issue.value,
                "details": inconsistency.details,
                **inconsistency.context,
            },
        )


class InMemoryInconsistencyLog(LoggingInconsistencyLog):
    """Logs inconsistencies and keeps them until drained."""

    def __init__(self):
        self.inconsistencies: list[Inconsistency] = []

    async def record(self, inconsistency: Inconsistency) -> None:
        await super().record(inconsistency)
        self.inconsistencies.append(inconsistency)

    def pending(self, issue: InconsistencyIssue | None = None) -> list[Inconsistency]:
        """
        Recorded inconsistencies, optionally filtered by issue.

        Args:
            issue: Only return this kind of issue

        Returns:
            Copy of the recorded list
        """
        if issue is None:
            return list(self.inconsistencies)
        return [inc for inc in self.inconsistencies if inc.issue == issue]

    def clear(self) -> None:
        """Forget all recorded inconsistencies."""
        self.inconsistencies.clear()
