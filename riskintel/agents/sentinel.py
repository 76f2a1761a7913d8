"""
Risk Sentinel - autonomous watchlist monitor.
Re-evaluates watched addresses on an interval and submits high-risk
findings to the on-chain registry.
"""
import asyncio
import logging
import time
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from riskintel.agents.base import RiskAgent, success_rate
from riskintel.core.enums import DecisionLevel
from riskintel.core.models import (
    AgentStatus,
    RiskAlert,
    RiskDecision,
    RiskIntelligenceResult,
    SubmitResult,
)
from riskintel.services.decision_engine import DecisionEngine, should_submit_to_registry

logger = logging.getLogger("riskintel.agents.sentinel")


def _epoch_ms() -> int:
    return int(time.time() * 1000)


def build_report_payload(address: str, result: RiskIntelligenceResult) -> Dict[str, Any]:
    """Payload whose canonical JSON is hashed into the registry."""
    return {
        "target": address,
        "score": result.risk_score,
        "level": result.risk_level.value,
        "breakdown": result.breakdown.model_dump(),
        "timestamp": _epoch_ms(),
    }


class RiskSentinel(RiskAgent):
    """
    Lifecycle:
    - start() schedules the monitoring loop; the first cycle runs immediately
    - each cycle: analyze every watched address, decide, submit, update alerts
    - stop() ends scheduling and waits for an in-flight cycle to finish

    The watchlist is the key set of the alert cache. Only one cycle runs
    at a time; a trigger that arrives mid-cycle is skipped.
    """

    name = "RiskSentinel"

    def __init__(
        self,
        engine,
        registry,
        interval_seconds: float = 120.0,
        threshold: int = 70,
        max_alerts: int = 100,
        dedup_capacity: int = 10_000,
        enabled: bool = True,
        decision_engine: Optional[DecisionEngine] = None,
    ):
        super().__init__(enabled)
        self.engine = engine
        self.registry = registry
        self.interval_seconds = interval_seconds
        self.threshold = threshold
        self.max_alerts = max_alerts
        self.dedup_capacity = dedup_capacity
        self.decision_engine = decision_engine or DecisionEngine()

        self.running = False
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._cycle_in_progress = False

        self._alerts: Dict[str, RiskAlert] = {}
        # (address, score) pairs already on chain, oldest first
        self._submitted: "OrderedDict[Tuple[str, int], None]" = OrderedDict()

        self.runs_total = 0
        self.successful_runs = 0
        self.errors_total = 0
        self.submissions_to_chain = 0
        self.last_run: Optional[datetime] = None

    async def start(self) -> None:
        if self.running:
            logger.warning("Sentinel already running, skipping start")
            return

        self.running = True
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run_loop())
        logger.info(
            "Starting autonomous monitoring (interval=%ss, threshold=%s, max_alerts=%s)",
            self.interval_seconds, self.threshold, self.max_alerts,
        )

    async def stop(self) -> None:
        if not self.running:
            return

        self.running = False
        self._stop_event.set()
        if self._task is not None:
            await self._task
            self._task = None

        logger.info(
            "Autonomous monitoring stopped (runs=%d, successful=%d, errors=%d, submissions=%d)",
            self.runs_total, self.successful_runs, self.errors_total, self.submissions_to_chain,
        )

    async def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            await self.run_monitoring_cycle()
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass

    async def run_monitoring_cycle(self) -> None:
        """OBSERVE -> DECIDE -> ACT over the current watchlist."""
        if self._cycle_in_progress:
            logger.warning("Monitoring cycle still in progress, skipping trigger")
            return

        addresses = list(self._alerts)
        self.last_run = datetime.now(timezone.utc)
        if not addresses:
            logger.debug("No addresses to monitor")
            return

        self._cycle_in_progress = True
        self.runs_total += 1
        started = time.monotonic()

        try:
            logger.info("Starting monitoring cycle %d over %d addresses", self.runs_total, len(addresses))

            outcomes = await asyncio.gather(
                *(self.engine.analyze(address) for address in addresses),
                return_exceptions=True,
            )

            submitted = 0
            for address, outcome in zip(addresses, outcomes):
                if isinstance(outcome, BaseException):
                    logger.warning("Analysis failed for %s: %s", address, outcome)
                    continue

                decision = self.decision_engine.decide(outcome.risk_score, self.threshold)
                submit_result = None

                if should_submit_to_registry(decision, self.threshold):
                    key = (address, outcome.risk_score)
                    if key not in self._submitted:
                        submit_result = await self._submit_to_registry(address, outcome)
                        if submit_result.success and submit_result.tx_hash:
                            submitted += 1
                            self.submissions_to_chain += 1
                            self._remember_submission(key)
                            logger.info(
                                "Submitted to registry: target=%s, score=%d, tx=%s",
                                address, decision.risk_score, submit_result.tx_hash,
                            )
                        else:
                            submit_result = None

                self._update_alert(address, decision, submit_result)

            self.successful_runs += 1
            logger.info(
                "Monitoring cycle %d complete: checked=%d, submitted=%d, alerts=%d, duration=%dms",
                self.runs_total, len(addresses), submitted, len(self._alerts),
                int((time.monotonic() - started) * 1000),
            )

        except Exception as e:
            self.errors_total += 1
            logger.error("Monitoring cycle %d failed: %s", self.runs_total, e, exc_info=True)

        finally:
            self._cycle_in_progress = False

    async def _submit_to_registry(self, address: str, result: RiskIntelligenceResult) -> SubmitResult:
        try:
            return await self.registry.submit_report(
                address, result.risk_score, build_report_payload(address, result)
            )
        except Exception as e:
            logger.error("Registry submission failed for %s: %s", address, e)
            return SubmitResult(success=False, error=str(e) or "Unknown error")

    def _remember_submission(self, key: Tuple[str, int]) -> None:
        self._submitted[key] = None
        while len(self._submitted) > self.dedup_capacity:
            self._submitted.popitem(last=False)

    def _update_alert(self, address: str, decision: RiskDecision,
                      submit_result: Optional[SubmitResult] = None) -> None:
        now = datetime.now(timezone.utc)
        alert = self._alerts.get(address)

        updates = {
            "risk_score": decision.risk_score,
            "level": decision.level,
            "reason": decision.reasoning,
            "timestamp": now,
        }
        if submit_result is not None:
            updates.update(
                submitted_to_chain=True,
                tx_hash=submit_result.tx_hash,
                report_hash=submit_result.report_hash,
            )

        if alert is None:
            alert = RiskAlert(id=f"{address}-{_epoch_ms()}", agent=self.name, target=address, **updates)
        else:
            alert = alert.model_copy(update=updates)

        self._alerts[address] = alert
        self._evict_oldest()

    def _evict_oldest(self) -> None:
        if len(self._alerts) > self.max_alerts:
            oldest = min(self._alerts.values(), key=lambda a: a.timestamp)
            del self._alerts[oldest.target]
            logger.debug("Alert cache full, evicted %s", oldest.target)

    def add_watch_address(self, address: str) -> None:
        """Seed a zero-score alert so the next cycle picks the address up."""
        if address in self._alerts:
            return

        self._alerts[address] = RiskAlert(
            id=f"{address}-{_epoch_ms()}",
            agent=self.name,
            target=address,
            risk_score=0,
            level=DecisionLevel.ALLOW,
            reason="Initial observation",
            timestamp=datetime.now(timezone.utc),
        )
        logger.info("Added %s to watchlist", address)
        self._evict_oldest()

    def remove_watch_address(self, address: str) -> bool:
        if address not in self._alerts:
            return False
        del self._alerts[address]
        logger.info("Removed %s from watchlist", address)
        return True

    def get_watchlist(self) -> List[str]:
        return list(self._alerts)

    def get_alerts(self) -> List[RiskAlert]:
        return list(self._alerts.values())

    def has_submitted(self, address: str, score: int) -> bool:
        return (address, score) in self._submitted

    def status(self) -> AgentStatus:
        return AgentStatus(
            name=self.name,
            enabled=self.enabled,
            running=self.running,
            last_run=self.last_run,
            runs_total=self.runs_total,
            errors_total=self.errors_total,
            success_rate=success_rate(self.successful_runs, self.runs_total),
            alerts_generated=len(self._alerts),
            submissions_to_chain=self.submissions_to_chain,
        )
