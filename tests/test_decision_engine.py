"""
Tests for the decision engine - level bands, confidence and submission gate.
"""
from riskintel.core.enums import DecisionConfidence, DecisionLevel
from riskintel.services.decision_engine import (
    DecisionEngine,
    decide_on_risk,
    decide_on_scores,
    format_decision_log,
    should_submit_to_registry,
)


def test_level_bands():
    assert decide_on_risk(0, 60).level == DecisionLevel.ALLOW
    assert decide_on_risk(29, 60).level == DecisionLevel.ALLOW
    assert decide_on_risk(30, 60).level == DecisionLevel.WARN
    assert decide_on_risk(59, 60).level == DecisionLevel.WARN
    assert decide_on_risk(60, 60).level == DecisionLevel.BLOCK
    assert decide_on_risk(100, 60).level == DecisionLevel.BLOCK


def test_level_does_not_depend_on_threshold():
    for threshold in (0, 30, 60, 90, 100):
        assert decide_on_risk(45, threshold).level == DecisionLevel.WARN


def test_allowed_and_recommended_action_follow_level():
    for score in (10, 45, 80):
        decision = decide_on_risk(score, 60)
        assert decision.recommended_action == decision.level
        assert decision.allowed == (decision.level != DecisionLevel.BLOCK)


def test_confidence_from_distance_to_threshold():
    assert decide_on_risk(0, 60).confidence == DecisionConfidence.HIGH      # 60 away
    assert decide_on_risk(40, 60).confidence == DecisionConfidence.MEDIUM   # 20 away
    assert decide_on_risk(45, 60).confidence == DecisionConfidence.LOW      # exactly 15
    assert decide_on_risk(90, 60).confidence == DecisionConfidence.MEDIUM   # exactly 30
    assert decide_on_risk(91, 60).confidence == DecisionConfidence.HIGH


def test_inputs_are_clamped():
    assert decide_on_risk(150, 60).risk_score == 100
    assert decide_on_risk(-20, 60).risk_score == 0
    assert decide_on_risk(50, 250).confidence == DecisionConfidence.HIGH   # threshold clamped to 100


def test_fractional_scores_are_not_rounded():
    assert decide_on_risk(29.6, 50).level == DecisionLevel.ALLOW
    assert decide_on_risk(29.6, 50).risk_score == 29.6
    assert decide_on_risk(30.0, 50).level == DecisionLevel.WARN
    assert decide_on_risk(59.5, 60).level == DecisionLevel.WARN
    assert decide_on_risk(59.99, 60).level == DecisionLevel.WARN
    assert decide_on_risk(60.0, 60).level == DecisionLevel.BLOCK


def test_fractional_confidence_boundaries():
    assert decide_on_risk(45.4, 30).confidence == DecisionConfidence.MEDIUM   # 15.4 away
    assert decide_on_risk(44.6, 30).confidence == DecisionConfidence.LOW      # 14.6 away
    assert decide_on_risk(14.6, 30).confidence == DecisionConfidence.MEDIUM   # 15.4 below
    assert decide_on_risk(60.5, 30).confidence == DecisionConfidence.HIGH     # 30.5 away
    assert decide_on_risk(59.5, 30).confidence == DecisionConfidence.MEDIUM   # 29.5 away


def test_reasoning_templates():
    assert "exceeds threshold 60" in decide_on_risk(75, 60).reasoning
    assert "elevated activity" in decide_on_risk(45, 60).reasoning
    assert "within acceptable range" in decide_on_risk(5, 60).reasoning
    assert "29.6" in decide_on_risk(29.6, 60).reasoning


def test_reasoning_for_block_below_threshold():
    reasoning = decide_on_risk(65, 70).reasoning
    assert "below threshold 70" in reasoning
    assert "acceptable range" not in reasoning


def test_reasoning_mentions_threshold():
    assert "threshold 40" in decide_on_risk(45, 40).reasoning
    assert "threshold 40" in decide_on_risk(5, 40).reasoning


def test_decide_is_deterministic_apart_from_timestamp():
    engine = DecisionEngine()
    first = engine.decide(72, 70).model_dump(exclude={"timestamp"})
    second = engine.decide(72, 70).model_dump(exclude={"timestamp"})
    assert first == second


def test_decide_on_scores_batch():
    decisions = decide_on_scores({"0xa": 10, "0xb": 90}, 60)
    assert decisions["0xa"].level == DecisionLevel.ALLOW
    assert decisions["0xb"].level == DecisionLevel.BLOCK


def test_should_submit_requires_block_at_threshold():
    assert should_submit_to_registry(decide_on_risk(75, 70), 70) is True
    assert should_submit_to_registry(decide_on_risk(70, 70), 70) is True
    # BLOCK but below the agent threshold
    assert should_submit_to_registry(decide_on_risk(65, 70), 70) is False
    assert should_submit_to_registry(decide_on_risk(45, 30), 30) is False


def test_format_decision_log():
    decision = decide_on_risk(80, 60)
    record = format_decision_log("0xabc", decision)
    assert record["address"] == "0xabc"
    assert record["decision_level"] == "BLOCK"
    assert record["action"] == "BLOCK"
    assert record["allowed"] is False
    assert record["confidence"] == decision.confidence.value
