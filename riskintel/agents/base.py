"""
Agent interface shared by the Guardian and the Sentinel.
"""
from abc import ABC, abstractmethod

from riskintel.core.models import AgentStatus


class RiskAgent(ABC):
    """An autonomous agent with a start/stop lifecycle and a status snapshot."""

    name: str = "RiskAgent"
    version: str = "1.0.0"

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    @abstractmethod
    async def start(self) -> None:
        ...

    @abstractmethod
    async def stop(self) -> None:
        ...

    @abstractmethod
    def status(self) -> AgentStatus:
        """Snapshot computed from the agent's counters."""


def success_rate(successes: int, total: int) -> float:
    """Percentage with two decimals; 0 when nothing has run yet."""
    if total <= 0:
        return 0.0
    return round(successes / total * 100, 2)
