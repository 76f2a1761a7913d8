"""
Tests for the risk intelligence engine - aggregation, floor rules and explanation.
"""
import asyncio

import pytest

from riskintel.core.enums import AddressType, DecisionLevel, RiskLevel, Severity
from riskintel.core.models import (
    AnalysisSet,
    ContractAnalysis,
    EvidenceFlag,
    OnChainBehaviorAnalysis,
    OnChainMetrics,
    ScamDatabaseAnalysis,
    TransparencyAnalysis,
    WalletHistoryAnalysis,
)
from riskintel.services.analyzer_base import BaseAnalyzer
from riskintel.services.behavior_analyzer import OnChainBehaviorAnalyzer
from riskintel.services.contract_analyzer import ContractAnalyzer
from riskintel.services.decision_engine import decide_on_risk
from riskintel.services.risk_engine import NO_ADJUSTMENTS, RiskIntelligenceEngine, get_risk_level
from riskintel.services.scam_database import ScamDatabaseChecker
from riskintel.services.transparency_checker import TransparencyChecker
from riskintel.services.wallet_history import WalletHistoryChecker

TOKEN = "0x1111111111111111111111111111111111111111"
DEPLOYER = "0x3333333333333333333333333333333333333333"


def flag(flag_id, severity=Severity.MEDIUM, weight=10):
    return EvidenceFlag(
        id=flag_id,
        name=flag_id.replace("_", " ").title(),
        severity=severity,
        description=f"{flag_id} description",
        evidence="observed",
        category="test",
        risk_weight=weight,
    )


class StubAnalyzer(BaseAnalyzer):
    """Returns a fixed result and remembers the context it was called with."""

    def __init__(self, name, result, fallback=None):
        self.name = name
        self.result = result
        self.fallback = fallback if fallback is not None else result
        self.context = None

    async def _analyze(self, address, **context):
        self.context = context
        return self.result

    def degraded_result(self):
        return self.fallback


class ExplodingAnalyzer(StubAnalyzer):
    async def analyze(self, address, **context):
        raise RuntimeError("boom")


def stub_engine(contract=None, onchain=None, wallet=None, transparency=None, scam=None, explorer=None):
    return RiskIntelligenceEngine(
        contract=StubAnalyzer("contract", contract or ContractAnalysis()),
        onchain=StubAnalyzer("onchain", onchain or OnChainBehaviorAnalysis()),
        wallet=StubAnalyzer("wallet", wallet or WalletHistoryAnalysis()),
        transparency=StubAnalyzer("transparency", transparency or TransparencyAnalysis()),
        scam_database=StubAnalyzer("scam_database", scam or ScamDatabaseAnalysis()),
        explorer=explorer,
    )


def test_risk_level_bands():
    assert get_risk_level(0) == RiskLevel.VERY_LOW
    assert get_risk_level(19) == RiskLevel.VERY_LOW
    assert get_risk_level(20) == RiskLevel.LOW
    assert get_risk_level(40) == RiskLevel.MEDIUM
    assert get_risk_level(60) == RiskLevel.HIGH
    assert get_risk_level(79) == RiskLevel.HIGH
    assert get_risk_level(80) == RiskLevel.VERY_HIGH


def test_breakdown_rounds_half_up():
    analysis = AnalysisSet(
        contract=ContractAnalysis(score=35),
        onchain=OnChainBehaviorAnalysis(score=25),
        wallet=WalletHistoryAnalysis(score=0),
        transparency=TransparencyAnalysis(score=33),
        scam_database=ScamDatabaseAnalysis(score=0),
    )
    breakdown = RiskIntelligenceEngine.compute_breakdown(analysis)

    assert breakdown.contract_risk == 35
    assert breakdown.behavior_risk == 15
    assert breakdown.reputation_risk == 17  # 16.5


def test_unverified_contract_without_activity(chain, explorer, make_github):
    chain.codes[TOKEN] = b"\x60" * 50
    engine = RiskIntelligenceEngine(
        contract=ContractAnalyzer(chain, explorer),
        onchain=OnChainBehaviorAnalyzer(chain, explorer),
        wallet=WalletHistoryChecker(chain, explorer),
        transparency=TransparencyChecker(make_github(repo=None)),
        scam_database=ScamDatabaseChecker(known_scams={}),
        explorer=explorer,
    )

    result = asyncio.run(engine.analyze(TOKEN))

    assert result.address_type == AddressType.CONTRACT
    assert result.breakdown.contract_risk == 35
    assert result.breakdown.behavior_risk == 15
    assert result.breakdown.reputation_risk == 16
    # 35*0.4 + 15*0.4 + 16*0.2 = 23.2, lifted by eight non-info flags
    assert result.score_calculation.adjustments == ["Flag count floor: 23 → 65 (8 significant flags)"]
    assert result.risk_score == 65
    assert result.risk_level == RiskLevel.HIGH
    assert result.explanation.summary.startswith("This smart contract shows HIGH RISK (65%)")
    assert result.evidence.scam_flags[0].id == "clean_scam_check"
    assert result.onchain_indicators == result.analysis.onchain.indicators
    assert result.analysis_time_ms >= 0


def test_repeated_analysis_gives_same_score(chain, explorer, make_github, make_tx):
    chain.codes[TOKEN] = b"\x60" * 50
    chain.balances[TOKEN] = 10 ** 18
    chain.nonces[TOKEN] = 4
    explorer.txs[TOKEN] = [make_tx(DEPLOYER, TOKEN, 10 ** 17), make_tx(TOKEN, DEPLOYER, 10 ** 16)]
    engine = RiskIntelligenceEngine(
        contract=ContractAnalyzer(chain, explorer),
        onchain=OnChainBehaviorAnalyzer(chain, explorer),
        wallet=WalletHistoryChecker(chain, explorer),
        transparency=TransparencyChecker(make_github(repo=None)),
        scam_database=ScamDatabaseChecker(known_scams={}),
        explorer=explorer,
    )

    first = asyncio.run(engine.analyze(TOKEN))
    second = asyncio.run(engine.analyze(TOKEN))

    assert second.score_calculation.final_score == first.score_calculation.final_score
    assert second.breakdown == first.breakdown
    assert second.score_calculation.adjustments == first.score_calculation.adjustments


def test_no_adjustments_keeps_weighted_score():
    engine = stub_engine(
        contract=ContractAnalysis(is_contract=True, score=20),
        onchain=OnChainBehaviorAnalysis(score=10),
    )
    result = asyncio.run(engine.analyze(TOKEN))

    # 20*0.4 + 6*0.4 + 0 = 10.4
    assert result.risk_score == 10
    assert result.score_calculation.adjustments == [NO_ADJUSTMENTS]
    assert result.score_calculation.final_score == 10
    assert result.explanation.key_findings == ["No significant risk factors detected in the analysis."]
    assert result.explanation.risk_factors == ["Contract Risk: 20/100", "On-chain Behavior Risk: 10/100"]


def test_critical_flag_floor():
    engine = stub_engine(contract=ContractAnalysis(
        is_contract=True, score=20, flags=[flag("selfdestruct", Severity.CRITICAL, 20)],
    ))
    result = asyncio.run(engine.analyze(TOKEN))

    assert result.risk_score == 70
    assert result.score_calculation.adjustments == ["Critical flag floor: 8 → 70 (1 critical flag(s))"]


def test_scam_database_floor_blocks():
    engine = stub_engine(scam=ScamDatabaseAnalysis(
        score=30, known_scam=True, flags=[flag("known_scam", Severity.CRITICAL, 30)],
    ))
    result = asyncio.run(engine.analyze(TOKEN))

    assert result.risk_score >= 85
    assert any(a.startswith("Scam DB floor") for a in result.score_calculation.adjustments)
    assert decide_on_risk(result.risk_score, 60).level == DecisionLevel.BLOCK


def test_floors_apply_in_order():
    wallet = WalletHistoryAnalysis(
        score=40,
        linked_rugpulls=["0x" + "9" * 40],
        flags=[flag("destroyed_0x" + "9" * 40, Severity.CRITICAL, 20)]
              + [flag(f"high_{i}", Severity.HIGH, 15) for i in range(3)],
    )
    engine = stub_engine(wallet=wallet)
    result = asyncio.run(engine.analyze(TOKEN))

    rules = [a.split(":")[0] for a in result.score_calculation.adjustments]
    assert rules == ["Critical flag floor", "Rugpull link floor"]
    assert result.risk_score == 80


def test_component_floor():
    engine = stub_engine(contract=ContractAnalysis(is_contract=True, score=90))
    result = asyncio.run(engine.analyze(TOKEN))

    # 90*0.4 = 36 -> 60
    assert result.score_calculation.adjustments == ["Component floor: 36 → 60 (max component score: 90)"]
    assert result.risk_score == 60


def test_high_flag_floor():
    engine = stub_engine(contract=ContractAnalysis(
        is_contract=True, score=20, flags=[flag(f"high_{i}", Severity.HIGH, 15) for i in range(3)],
    ))
    result = asyncio.run(engine.analyze(TOKEN))

    assert result.score_calculation.adjustments == ["High flag floor: 8 → 60 (3 high-severity flags)"]
    assert result.risk_score == 60


def test_two_high_flags_do_not_trigger_floor():
    engine = stub_engine(contract=ContractAnalysis(
        is_contract=True, score=20, flags=[flag(f"high_{i}", Severity.HIGH, 15) for i in range(2)],
    ))
    result = asyncio.run(engine.analyze(TOKEN))

    assert result.score_calculation.adjustments == [NO_ADJUSTMENTS]
    assert result.risk_score == 8


def test_flag_count_floor():
    engine = stub_engine(contract=ContractAnalysis(
        is_contract=True, score=20, flags=[flag(f"medium_{i}", Severity.MEDIUM, 10) for i in range(7)],
    ))
    result = asyncio.run(engine.analyze(TOKEN))

    assert result.score_calculation.adjustments == ["Flag count floor: 8 → 65 (7 significant flags)"]
    assert result.risk_score == 65


def test_info_flags_do_not_count_toward_flag_floor():
    flags = [flag(f"medium_{i}", Severity.MEDIUM, 10) for i in range(6)]
    flags += [flag(f"info_{i}", Severity.INFO, 0) for i in range(4)]
    engine = stub_engine(contract=ContractAnalysis(is_contract=True, score=20, flags=flags))
    result = asyncio.run(engine.analyze(TOKEN))

    assert result.score_calculation.adjustments == [NO_ADJUSTMENTS]
    assert result.risk_score == 8


def test_floor_rules_are_idempotent():
    engine = stub_engine()
    analysis = AnalysisSet(
        contract=ContractAnalysis(score=50, flags=[flag("x", Severity.CRITICAL)]),
        onchain=OnChainBehaviorAnalysis(score=80),
        wallet=WalletHistoryAnalysis(),
        transparency=TransparencyAnalysis(),
        scam_database=ScamDatabaseAnalysis(known_scam=True),
    )
    breakdown = engine.compute_breakdown(analysis)
    once, _ = engine.apply_floor_rules(engine.weighted_score(breakdown), breakdown, analysis)
    twice, adjustments = engine.apply_floor_rules(once, breakdown, analysis)

    assert once == 85
    assert twice == once
    assert adjustments == []


def test_context_flows_into_second_phase(explorer):
    explorer.creations[TOKEN] = {"contractAddress": TOKEN, "contractCreator": DEPLOYER, "txHash": "0x01"}
    deployed = ["0x" + "5" * 40]
    engine = stub_engine(
        contract=ContractAnalysis(is_contract=True, contract_name="Vault"),
        onchain=OnChainBehaviorAnalysis(metrics=OnChainMetrics(has_dex_pair=True, token_symbol="VLT")),
        wallet=WalletHistoryAnalysis(deployed_contracts=deployed),
        explorer=explorer,
    )

    result = asyncio.run(engine.analyze(TOKEN))

    assert engine.transparency.context == {"token_symbol": "VLT", "contract_name": "Vault"}
    assert engine.scam_database.context == {"deployer_address": DEPLOYER, "deployed_contracts": deployed}
    assert result.address_type == AddressType.TOKEN


def test_contract_name_falls_back_to_explorer(explorer):
    explorer.sources[TOKEN] = {"ContractName": "FromExplorer", "SourceCode": "", "ABI": "[]"}
    engine = stub_engine(contract=ContractAnalysis(is_contract=True), explorer=explorer)

    asyncio.run(engine.analyze(TOKEN))

    assert engine.transparency.context["contract_name"] == "FromExplorer"
    assert engine.scam_database.context["deployer_address"] is None


def test_raising_analyzer_is_replaced_by_degraded_result():
    degraded = OnChainBehaviorAnalysis(score=30, flags=[flag("analysis_error", Severity.MEDIUM, 10)])
    engine = stub_engine()
    engine.onchain = ExplodingAnalyzer("onchain", degraded)

    result = asyncio.run(engine.analyze(TOKEN))

    assert result.analysis.onchain.score == 30
    assert result.evidence.onchain_flags[0].id == "analysis_error"
    assert result.address_type == AddressType.WALLET


def test_top_findings_ordered_by_weight():
    flags = [
        flag("info", Severity.INFO, 50),
        flag("a", Severity.LOW, 5),
        flag("b", Severity.HIGH, 15),
        flag("c", Severity.CRITICAL, 30),
        flag("d", Severity.MEDIUM, 10),
        flag("e", Severity.MEDIUM, 8),
        flag("f", Severity.LOW, 2),
    ]
    top = RiskIntelligenceEngine.top_findings(flags)
    assert [f.id for f in top] == ["c", "b", "d", "e", "a"]


@pytest.mark.parametrize("score, expected", [
    (10, "Standard precautions apply. Always verify before large transactions."),
    (45, "Proceed with caution and do additional research."),
    (65, "Exercise extreme caution before any interaction."),
    (90, "AVOID interacting with this address. High probability of scam or rugpull."),
])
def test_recommendations_by_band(score, expected):
    engine = stub_engine()
    analysis = AnalysisSet(
        contract=ContractAnalysis(),
        onchain=OnChainBehaviorAnalysis(),
        wallet=WalletHistoryAnalysis(),
        transparency=TransparencyAnalysis(),
        scam_database=ScamDatabaseAnalysis(),
    )
    explanation = engine.generate_explanation(score, AddressType.WALLET, analysis)
    assert explanation.recommendations[0] == expected
    assert "wallet" in explanation.summary
