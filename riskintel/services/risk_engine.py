"""
Risk Intelligence Engine - Aggregates the five analyzers into one score.
Weighted sub-scores, floor rules, address type, and a readable explanation.
"""
import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from riskintel.core.enums import AddressType, RiskLevel, Severity
from riskintel.core.models import (
    AnalysisSet,
    ContractAnalysis,
    EvidenceFlag,
    EvidencePanels,
    OnChainBehaviorAnalysis,
    RiskBreakdown,
    RiskExplanation,
    RiskIntelligenceResult,
    ScamDatabaseAnalysis,
    ScoreCalculation,
    TransparencyAnalysis,
    WalletHistoryAnalysis,
    clamp_score,
)
from riskintel.services.analyzer_base import BaseAnalyzer
from riskintel.services.behavior_analyzer import OnChainBehaviorAnalyzer
from riskintel.services.chain_client import ChainClient
from riskintel.services.contract_analyzer import ContractAnalyzer
from riskintel.services.explorer_client import ExplorerClient
from riskintel.services.github_client import GitHubClient
from riskintel.services.scam_database import ScamDatabaseChecker
from riskintel.services.transparency_checker import TransparencyChecker
from riskintel.services.wallet_history import WalletHistoryChecker

logger = logging.getLogger("riskintel.services.risk_engine")

NO_ADJUSTMENTS = "No adjustments applied - raw weighted score used."


def get_risk_level(score: int) -> RiskLevel:
    if score < 20:
        return RiskLevel.VERY_LOW
    if score < 40:
        return RiskLevel.LOW
    if score < 60:
        return RiskLevel.MEDIUM
    if score < 80:
        return RiskLevel.HIGH
    return RiskLevel.VERY_HIGH


class RiskIntelligenceEngine:
    """
    Runs the analyzers in two phases and turns their results into a single
    explainable assessment. analyze() never raises.
    """

    WEIGHTS = {
        "contract_risk": 0.40,
        "behavior_risk": 0.40,
        "reputation_risk": 0.20,
    }
    FORMULA = (
        "Risk Score = (Contract Risk × 0.40) + (On-chain Behavior Risk × 0.40) "
        "+ (Reputation Risk × 0.20)"
    )

    # Floor values
    CRITICAL_FLAG_FLOOR = 70
    HIGH_FLAG_FLOOR = 60
    HIGH_FLAG_COUNT = 3
    COMPONENT_FLOOR = 60
    COMPONENT_TRIGGER = 75
    SCAM_DB_FLOOR = 85
    RUGPULL_FLOOR = 80
    FLAG_COUNT_FLOOR = 65
    FLAG_COUNT_TRIGGER = 7

    def __init__(
        self,
        contract: BaseAnalyzer,
        onchain: BaseAnalyzer,
        wallet: BaseAnalyzer,
        transparency: BaseAnalyzer,
        scam_database: BaseAnalyzer,
        explorer: Optional[ExplorerClient] = None,
    ):
        self.contract = contract
        self.onchain = onchain
        self.wallet = wallet
        self.transparency = transparency
        self.scam_database = scam_database
        self.explorer = explorer

    @classmethod
    def from_settings(cls) -> "RiskIntelligenceEngine":
        """Wire the engine to the live chain, explorer and GitHub clients."""
        chain = ChainClient()
        explorer = ExplorerClient()
        return cls(
            contract=ContractAnalyzer(chain, explorer),
            onchain=OnChainBehaviorAnalyzer(chain, explorer),
            wallet=WalletHistoryChecker(chain, explorer),
            transparency=TransparencyChecker(GitHubClient()),
            scam_database=ScamDatabaseChecker(),
            explorer=explorer,
        )

    async def analyze(self, address: str) -> RiskIntelligenceResult:
        """Full pipeline for one address."""
        started = time.monotonic()
        logger.info("Starting intelligence analysis for %s", address)

        # Phase 1: independent analyzers
        contract, onchain, wallet = await self._gather(
            address,
            [(self.contract, {}), (self.onchain, {}), (self.wallet, {})],
        )

        # Context for phase 2
        contract_name, deployer_address = None, None
        if contract.is_contract:
            contract_name, deployer_address = await self._extract_context(address, contract)

        token_symbol = onchain.metrics.token_symbol if onchain.metrics.has_dex_pair else None

        # Phase 2: context-dependent analyzers
        transparency, scam = await self._gather(
            address,
            [
                (self.transparency, {"token_symbol": token_symbol, "contract_name": contract_name}),
                (self.scam_database, {
                    "deployer_address": deployer_address,
                    "deployed_contracts": wallet.deployed_contracts,
                }),
            ],
        )

        analysis = AnalysisSet(
            contract=contract,
            onchain=onchain,
            wallet=wallet,
            transparency=transparency,
            scam_database=scam,
        )

        # Phase 3: scoring
        breakdown = self.compute_breakdown(analysis)
        weighted = self.weighted_score(breakdown)
        final_score, adjustments = self.apply_floor_rules(weighted, breakdown, analysis)

        address_type = self.classify_address(contract, onchain)
        explanation = self.generate_explanation(final_score, address_type, analysis)

        result = RiskIntelligenceResult(
            address=address,
            address_type=address_type,
            risk_score=final_score,
            risk_level=get_risk_level(final_score),
            breakdown=breakdown,
            evidence=EvidencePanels(
                contract_flags=contract.flags,
                onchain_flags=onchain.flags,
                wallet_flags=wallet.flags,
                transparency_flags=transparency.flags,
                scam_flags=scam.flags,
            ),
            analysis=analysis,
            score_calculation=ScoreCalculation(
                formula=self.FORMULA,
                weights=dict(self.WEIGHTS),
                raw_scores=breakdown,
                adjustments=adjustments or [NO_ADJUSTMENTS],
                final_score=final_score,
            ),
            onchain_indicators=onchain.indicators,
            explanation=explanation,
            timestamp=datetime.now(timezone.utc),
            analysis_time_ms=int((time.monotonic() - started) * 1000),
        )

        logger.info(
            "Analysis complete for %s: score=%d, level=%s, flags=%d, time=%dms",
            address, final_score, result.risk_level.value,
            len(analysis.all_flags()), result.analysis_time_ms,
        )
        return result

    async def _gather(self, address: str, jobs):
        """
        Run analyzers concurrently. A job that still raises is replaced by
        that analyzer's degraded result; siblings are unaffected.
        """
        outcomes = await asyncio.gather(
            *(analyzer.analyze(address, **context) for analyzer, context in jobs),
            return_exceptions=True,
        )
        results = []
        for (analyzer, _), outcome in zip(jobs, outcomes):
            if isinstance(outcome, BaseException):
                logger.error("%s raised for %s: %s", analyzer.name, address, outcome)
                outcome = analyzer.degraded_result()
            results.append(outcome)
        return results

    async def _extract_context(self, address: str, contract: ContractAnalysis) -> Tuple[Optional[str], Optional[str]]:
        """Best-effort contract name and deployer address."""
        contract_name = contract.contract_name
        deployer_address = None
        if self.explorer is None:
            return contract_name, deployer_address

        if contract_name is None:
            try:
                source = await self.explorer.get_contract_source(address)
                if source:
                    contract_name = source.get("ContractName") or None
            except Exception as e:
                logger.debug("Contract name lookup failed for %s: %s", address, e)

        try:
            creation = await self.explorer.get_contract_creation([address])
            if creation:
                deployer_address = creation[0].get("contractCreator") or None
        except Exception as e:
            logger.debug("Deployer lookup failed for %s: %s", address, e)

        return contract_name, deployer_address

    @staticmethod
    def compute_breakdown(analysis: AnalysisSet) -> RiskBreakdown:
        return RiskBreakdown(
            contract_risk=clamp_score(analysis.contract.score),
            behavior_risk=clamp_score(analysis.onchain.score * 0.6 + analysis.wallet.score * 0.4),
            reputation_risk=clamp_score(analysis.transparency.score * 0.5 + analysis.scam_database.score * 0.5),
        )

    def weighted_score(self, breakdown: RiskBreakdown) -> int:
        return clamp_score(
            breakdown.contract_risk * self.WEIGHTS["contract_risk"]
            + breakdown.behavior_risk * self.WEIGHTS["behavior_risk"]
            + breakdown.reputation_risk * self.WEIGHTS["reputation_risk"]
        )

    def apply_floor_rules(self, score: int, breakdown: RiskBreakdown,
                          analysis: AnalysisSet) -> Tuple[int, List[str]]:
        """
        Raise the score to fixed minimums when strong signals are present.
        Rules run in order against the running score and never lower it.
        Returns: (final_score, adjustments)
        """
        adjustments: List[str] = []
        all_flags = analysis.all_flags()
        scam = analysis.scam_database

        def floor(rule: str, minimum: int, reason: str) -> None:
            nonlocal score
            if minimum > score:
                adjustments.append(f"{rule}: {score} → {minimum} ({reason})")
                score = minimum

        critical = [f for f in all_flags if f.severity == Severity.CRITICAL]
        if critical:
            floor("Critical flag floor", self.CRITICAL_FLAG_FLOOR, f"{len(critical)} critical flag(s)")

        high = [f for f in all_flags if f.severity == Severity.HIGH]
        if len(high) >= self.HIGH_FLAG_COUNT:
            floor("High flag floor", self.HIGH_FLAG_FLOOR, f"{len(high)} high-severity flags")

        max_component = max(breakdown.contract_risk, breakdown.behavior_risk, breakdown.reputation_risk)
        if max_component >= self.COMPONENT_TRIGGER:
            floor("Component floor", self.COMPONENT_FLOOR, f"max component score: {max_component}")

        if scam.known_scam or scam.is_blacklisted:
            floor("Scam DB floor", self.SCAM_DB_FLOOR, "address flagged in scam database")

        if scam.rugpull_history or analysis.wallet.linked_rugpulls:
            floor("Rugpull link floor", self.RUGPULL_FLOOR, "linked to known rugpull")

        significant = [f for f in all_flags if f.severity != Severity.INFO]
        if len(significant) >= self.FLAG_COUNT_TRIGGER:
            floor("Flag count floor", self.FLAG_COUNT_FLOOR, f"{len(significant)} significant flags")

        return clamp_score(score), adjustments

    @staticmethod
    def classify_address(contract: ContractAnalysis, onchain: OnChainBehaviorAnalysis) -> AddressType:
        if not contract.is_contract:
            return AddressType.WALLET
        if onchain.metrics.has_dex_pair:
            return AddressType.TOKEN
        return AddressType.CONTRACT

    def generate_explanation(self, score: int, address_type: AddressType,
                             analysis: AnalysisSet) -> RiskExplanation:
        """Summary, key findings, recommendations and risk factors for a final score."""
        type_label = {
            AddressType.TOKEN: "token contract",
            AddressType.CONTRACT: "smart contract",
            AddressType.WALLET: "wallet",
        }[address_type]

        if score < 20:
            summary = f"This {type_label} shows a very low risk profile ({score}%). No significant security concerns detected."
        elif score < 40:
            summary = f"This {type_label} has a low risk score ({score}%) with minor concerns. Generally safe but verify before large transactions."
        elif score < 60:
            summary = f"This {type_label} has a moderate risk score ({score}%). Several risk factors were identified that warrant caution."
        elif score < 80:
            summary = f"This {type_label} shows HIGH RISK ({score}%). Multiple significant risk factors detected. Exercise extreme caution."
        else:
            summary = f"This {type_label} is flagged as VERY HIGH RISK ({score}%). Critical security concerns identified. Interaction is strongly discouraged."

        key_findings = [
            f"[{flag.severity.value.upper()}] {flag.name}: {flag.description}"
            for flag in self.top_findings(analysis.all_flags())
        ]
        if not key_findings:
            key_findings.append("No significant risk factors detected in the analysis.")

        if score >= 80:
            recommendations = [
                "AVOID interacting with this address. High probability of scam or rugpull.",
                "If you have funds at risk, consider withdrawing immediately.",
                "Report this address to BNB Chain community scam databases.",
            ]
        elif score >= 60:
            recommendations = [
                "Exercise extreme caution before any interaction.",
                "Verify the project through multiple independent sources.",
                "Start with a very small test transaction if you must interact.",
                "Check if the contract source code is verified on BscScan.",
            ]
        elif score >= 40:
            recommendations = [
                "Proceed with caution and do additional research.",
                "Verify the project team and their track record.",
                "Check community sentiment on BSC forums and social media.",
            ]
        else:
            recommendations = [
                "Standard precautions apply. Always verify before large transactions.",
                "Keep monitoring the address for changes in behavior.",
            ]

        risk_factors = []
        for label, analyzer_score in (
            ("Contract Risk", analysis.contract.score),
            ("On-chain Behavior Risk", analysis.onchain.score),
            ("Wallet History Risk", analysis.wallet.score),
            ("Transparency Risk", analysis.transparency.score),
            ("Scam Database Risk", analysis.scam_database.score),
        ):
            if analyzer_score > 0:
                risk_factors.append(f"{label}: {analyzer_score}/100")

        return RiskExplanation(
            summary=summary,
            key_findings=key_findings,
            recommendations=recommendations,
            risk_factors=risk_factors,
        )

    @staticmethod
    def top_findings(flags: List[EvidenceFlag], limit: int = 5) -> List[EvidenceFlag]:
        significant = [f for f in flags if f.severity != Severity.INFO]
        return sorted(significant, key=lambda f: f.risk_weight, reverse=True)[:limit]
