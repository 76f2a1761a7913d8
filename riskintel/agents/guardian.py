"""
Risk Guardian - request/response protection gate.
Analyzes a target on demand and answers ALLOW, WARN, or BLOCK.
"""
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from riskintel.agents.base import RiskAgent, success_rate
from riskintel.core.enums import DecisionConfidence, DecisionLevel
from riskintel.core.models import AgentStatus, GuardianCheckResponse
from riskintel.services.decision_engine import DecisionEngine, format_decision_log

logger = logging.getLogger("riskintel.agents.guardian")

FAIL_SAFE_REASONING = "analysis unavailable — blocked for safety."


class RiskGuardian(RiskAgent):
    """
    Stateless gate over the risk engine.
    Addresses scoring at or above ESCALATION_SCORE are handed to the
    escalate callable (the manager routes them to the Sentinel watchlist).
    """

    name = "RiskGuardian"
    ESCALATION_SCORE = 70

    def __init__(
        self,
        engine,
        threshold: int = 60,
        enabled: bool = True,
        escalate: Optional[Callable[[str], None]] = None,
        decision_engine: Optional[DecisionEngine] = None,
    ):
        super().__init__(enabled)
        self.engine = engine
        self.threshold = threshold
        self.escalate = escalate
        self.decision_engine = decision_engine or DecisionEngine()

        # Ready from construction
        self.running = True

        self.checks_total = 0
        self.errors_total = 0
        self.blocked_count = 0
        self.allowed_count = 0
        self.last_check: Optional[datetime] = None

    async def start(self) -> None:
        self.running = True
        logger.info("Protection gate initialized (threshold=%s)", self.threshold)

    async def stop(self) -> None:
        self.running = False
        logger.info(
            "Protection gate stopped (checks=%d, blocked=%d, allowed=%d, errors=%d)",
            self.checks_total, self.blocked_count, self.allowed_count, self.errors_total,
        )

    async def check_address(self, address: str) -> GuardianCheckResponse:
        """
        OBSERVE -> DECIDE -> RESPOND.
        Any failure returns a BLOCK decision with score 100.
        """
        started = time.monotonic()
        self.checks_total += 1
        self.last_check = datetime.now(timezone.utc)

        try:
            logger.info("Checking address %s", address)

            result = await self.engine.analyze(address)
            decision = self.decision_engine.decide(result.risk_score, self.threshold)

            if decision.allowed:
                self.allowed_count += 1
            else:
                self.blocked_count += 1

            if decision.risk_score >= self.ESCALATION_SCORE:
                self._escalate(address, decision.risk_score)

            logger.info(
                "Protection check complete for %s: score=%d, decision=%s, duration=%dms",
                address, decision.risk_score, decision.level.value,
                int((time.monotonic() - started) * 1000),
            )
            logger.debug("Decision record: %s", format_decision_log(address, decision))

            return GuardianCheckResponse(
                allowed=decision.allowed,
                level=decision.level,
                recommended_action=decision.recommended_action,
                risk_score=decision.risk_score,
                reasoning=decision.reasoning,
                confidence=decision.confidence,
            )

        except Exception as e:
            self.errors_total += 1
            logger.error("Protection check failed for %s: %s", address, e, exc_info=True)
            return GuardianCheckResponse(
                allowed=False,
                level=DecisionLevel.BLOCK,
                recommended_action=DecisionLevel.BLOCK,
                risk_score=100,
                reasoning=FAIL_SAFE_REASONING,
                confidence=DecisionConfidence.HIGH,
            )

    def _escalate(self, address: str, score: float) -> None:
        if self.escalate is None:
            return
        try:
            self.escalate(address)
            logger.info("High-risk address %s (score=%d) added to Sentinel watchlist", address, score)
        except Exception as e:
            logger.warning("Failed to add %s to Sentinel watchlist: %s", address, e)

    def status(self) -> AgentStatus:
        return AgentStatus(
            name=self.name,
            enabled=self.enabled,
            running=self.running,
            last_run=self.last_check,
            runs_total=self.checks_total,
            errors_total=self.errors_total,
            success_rate=success_rate(self.checks_total - self.errors_total, self.checks_total),
            alerts_generated=self.blocked_count,
            submissions_to_chain=0,
        )
