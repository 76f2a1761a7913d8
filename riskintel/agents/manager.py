"""
Agent Manager - builds, starts, stops and reports on the agents.
One instance per application, held on app.state rather than as a global.
"""
import asyncio
import logging
from typing import Dict, Optional

from riskintel.agents.base import RiskAgent
from riskintel.agents.guardian import RiskGuardian
from riskintel.agents.sentinel import RiskSentinel
from riskintel.core.config import Settings
from riskintel.core.models import AgentStatus

logger = logging.getLogger("riskintel.agents.manager")


class AgentManager:
    """
    Owns the Guardian and Sentinel instances.
    The Guardian reaches the Sentinel watchlist only through
    add_to_sentinel_watch().
    """

    def __init__(self, settings: Settings, engine, registry=None):
        self.settings = settings
        self.engine = engine
        self.registry = registry
        self.agents: Dict[str, RiskAgent] = {}
        self._sentinel: Optional[RiskSentinel] = None
        self._guardian: Optional[RiskGuardian] = None
        self.initialized = False

    @property
    def sentinel(self) -> Optional[RiskSentinel]:
        return self._sentinel

    @property
    def guardian(self) -> Optional[RiskGuardian]:
        return self._guardian

    def initialize(self) -> None:
        """Construct the agents enabled in settings."""
        if self.initialized:
            logger.warning("Agent manager already initialized")
            return

        s = self.settings
        if s.sentinel_enabled:
            self._sentinel = RiskSentinel(
                self.engine,
                self.registry,
                interval_seconds=s.sentinel_interval_seconds,
                threshold=s.sentinel_threshold,
                max_alerts=s.sentinel_max_alerts,
                dedup_capacity=s.sentinel_dedup_capacity,
            )
            self.agents[self._sentinel.name] = self._sentinel
            logger.info(
                "Sentinel configured (interval=%ss, threshold=%s, max_alerts=%s)",
                s.sentinel_interval_seconds, s.sentinel_threshold, s.sentinel_max_alerts,
            )

        if s.guardian_enabled:
            self._guardian = RiskGuardian(
                self.engine,
                threshold=s.guardian_threshold,
                escalate=self.add_to_sentinel_watch,
            )
            self.agents[self._guardian.name] = self._guardian
            logger.info("Guardian configured (threshold=%s)", s.guardian_threshold)

        self.initialized = True
        logger.info("Agent manager initialized with %d agent(s): %s", len(self.agents), list(self.agents))

    async def start_all(self) -> None:
        if not self.initialized:
            raise RuntimeError("Agent manager not initialized. Call initialize() first.")

        names = list(self.agents)
        results = await asyncio.gather(
            *(self.agents[name].start() for name in names),
            return_exceptions=True,
        )

        failures = 0
        for name, result in zip(names, results):
            if isinstance(result, Exception):
                failures += 1
                logger.error("Failed to start %s: %s", name, result)

        if failures:
            logger.warning("%d agent(s) failed to start", failures)
        else:
            logger.info("All agents started")

    async def stop_all(self) -> None:
        names = list(self.agents)
        results = await asyncio.gather(
            *(self.agents[name].stop() for name in names),
            return_exceptions=True,
        )
        for name, result in zip(names, results):
            if isinstance(result, Exception):
                logger.warning("Error stopping %s: %s", name, result)

        logger.info("All agents stopped")

    def status(self) -> Dict[str, AgentStatus]:
        return {name: agent.status() for name, agent in self.agents.items()}

    def add_to_sentinel_watch(self, address: str) -> None:
        if self._sentinel is None:
            logger.warning("Sentinel not enabled, cannot add %s to watchlist", address)
            return
        self._sentinel.add_watch_address(address)
