"""
Decision Engine - Maps a risk score and threshold to an agent decision.
Pure and deterministic: no state, no I/O.
"""
from datetime import datetime, timezone
from typing import Any, Dict

from riskintel.core.enums import DecisionConfidence, DecisionLevel
from riskintel.core.models import RiskDecision


def _clamp(value: float) -> float:
    # Bounded to 0..100, never rounded
    return max(0.0, min(100.0, float(value)))


class DecisionEngine:
    """
    Implements the decide step shared by the Guardian and the Sentinel.
    Outputs: ALLOW, WARN, or BLOCK.
    """

    # Level is a function of the score alone
    WARN_THRESHOLD = 30
    BLOCK_THRESHOLD = 60

    # Distance from the agent threshold
    HIGH_CONFIDENCE_DISTANCE = 30
    MEDIUM_CONFIDENCE_DISTANCE = 15

    def decide(self, risk_score: float, threshold: float) -> RiskDecision:
        """
        Decide on a score (0-100) against an agent's threshold (0-100).
        The threshold only affects confidence and reasoning.
        """
        score = _clamp(risk_score)
        thresh = _clamp(threshold)

        level = self._determine_level(score)
        return RiskDecision(
            level=level,
            allowed=level != DecisionLevel.BLOCK,
            recommended_action=level,
            confidence=self._determine_confidence(score, thresh),
            risk_score=score,
            reasoning=self._generate_reasoning(score, thresh, level),
            timestamp=datetime.now(timezone.utc),
        )

    def _determine_level(self, score: float) -> DecisionLevel:
        if score < self.WARN_THRESHOLD:
            return DecisionLevel.ALLOW
        if score < self.BLOCK_THRESHOLD:
            return DecisionLevel.WARN
        return DecisionLevel.BLOCK

    def _determine_confidence(self, score: float, threshold: float) -> DecisionConfidence:
        """Closer to the threshold means lower confidence."""
        distance = abs(score - threshold)
        if distance > self.HIGH_CONFIDENCE_DISTANCE:
            return DecisionConfidence.HIGH
        if distance > self.MEDIUM_CONFIDENCE_DISTANCE:
            return DecisionConfidence.MEDIUM
        return DecisionConfidence.LOW

    @staticmethod
    def _generate_reasoning(score: float, threshold: float, level: DecisionLevel) -> str:
        if level == DecisionLevel.BLOCK:
            if score >= threshold:
                return f"Risk score {score:g} exceeds threshold {threshold:g}. Flagged for protection."
            return (
                f"Risk score {score:g} is in the blocking band, below threshold {threshold:g}. "
                "Blocked without registry submission."
            )
        if level == DecisionLevel.WARN:
            return (
                f"Risk score {score:g} indicates elevated activity (threshold {threshold:g}). "
                "User should verify legitimacy."
            )
        return f"Risk score {score:g} within acceptable range (threshold {threshold:g}). Contract appears safe."


_engine = DecisionEngine()


def decide_on_risk(risk_score: float, threshold: float) -> RiskDecision:
    return _engine.decide(risk_score, threshold)


def decide_on_scores(scores: Dict[str, float], threshold: float) -> Dict[str, RiskDecision]:
    """Batch form of decide_on_risk keyed by address."""
    return {address: decide_on_risk(score, threshold) for address, score in scores.items()}


def should_submit_to_registry(decision: RiskDecision, threshold: float) -> bool:
    """Only BLOCK decisions at or above the threshold go to the registry."""
    return decision.level == DecisionLevel.BLOCK and decision.risk_score >= threshold


def format_decision_log(address: str, decision: RiskDecision) -> Dict[str, Any]:
    """Flat record of a decision for structured logging."""
    return {
        "timestamp": decision.timestamp.isoformat(),
        "address": address,
        "risk_score": decision.risk_score,
        "decision_level": decision.level.value,
        "allowed": decision.allowed,
        "action": decision.recommended_action.value,
        "confidence": decision.confidence.value,
        "reason": decision.reasoning,
    }
