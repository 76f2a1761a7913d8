"""
Pydantic models for analyzer results, aggregate results, and agent state.
Every score field is bounded to the 0-100 range.
"""
import math
from typing import Optional, List, Dict
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from .enums import (
    Severity,
    AddressType,
    RiskLevel,
    DecisionLevel,
    DecisionConfidence,
)


def clamp_score(value: float) -> int:
    """Round half up and bound a score to 0-100."""
    return int(max(0, min(100, math.floor(value + 0.5))))


class EvidenceFlag(BaseModel):
    """One discrete, explainable finding with its score contribution."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    severity: Severity
    description: str
    evidence: str  # The observed fact backing the flag
    category: str
    source: Optional[str] = None  # e.g. "BscScan", "RPC", "PancakeSwap"
    code_snippet: Optional[str] = None
    explorer_link: Optional[str] = None
    risk_weight: int = Field(..., ge=0, le=100)


class OnChainIndicator(BaseModel):
    """Row of the on-chain indicators table."""
    indicator: str
    evidence: str
    risk_weight: int = Field(0, ge=0, le=100)


# ===== Per-analyzer results =====

class ContractDetections(BaseModel):
    owner_privileges: bool = False
    withdraw_functions: bool = False
    mint_functions: bool = False
    proxy_pattern: bool = False
    no_renounce_ownership: bool = False
    upgradeability: bool = False
    self_destruct: bool = False
    honeypot_logic: bool = False


class ContractAnalysis(BaseModel):
    is_contract: bool = False
    is_verified: bool = False
    code_size: int = 0
    compiler_version: Optional[str] = None
    contract_name: Optional[str] = None
    source_code_available: bool = False
    flags: List[EvidenceFlag] = Field(default_factory=list)
    score: int = Field(0, ge=0, le=100)
    detections: ContractDetections = Field(default_factory=ContractDetections)


class OnChainMetrics(BaseModel):
    top_holder_concentration: Optional[float] = None  # percentage
    contract_age_days: Optional[int] = None
    holder_count: Optional[int] = None
    transaction_count: int = 0
    balance: str = "0"  # native units
    liquidity_native: Optional[str] = None
    has_dex_pair: bool = False
    token_symbol: Optional[str] = None
    rug_pull_risk: int = Field(0, ge=0, le=100)


class OnChainBehaviorAnalysis(BaseModel):
    flags: List[EvidenceFlag] = Field(default_factory=list)
    indicators: List[OnChainIndicator] = Field(default_factory=list)
    score: int = Field(0, ge=0, le=100)
    metrics: OnChainMetrics = Field(default_factory=OnChainMetrics)


class WalletHistoryAnalysis(BaseModel):
    flags: List[EvidenceFlag] = Field(default_factory=list)
    score: int = Field(0, ge=0, le=100)
    deployed_contracts: List[str] = Field(default_factory=list)
    linked_rugpulls: List[str] = Field(default_factory=list)
    fund_flow_summary: str = ""
    is_contract: bool = False
    transaction_count: int = 0
    age_in_days: int = 0
    balance: str = "0"


class GitHubPresence(BaseModel):
    found: bool = False
    repo_url: Optional[str] = None
    last_commit_date: Optional[str] = None
    contributors_count: Optional[int] = None
    stars_count: Optional[int] = None


class AuditInfo(BaseModel):
    detected: bool = False
    auditor_name: Optional[str] = None
    report_url: Optional[str] = None


class TransparencyAnalysis(BaseModel):
    flags: List[EvidenceFlag] = Field(default_factory=list)
    score: int = Field(0, ge=0, le=100)
    github: GitHubPresence = Field(default_factory=GitHubPresence)
    audit: AuditInfo = Field(default_factory=AuditInfo)
    team_doxxed: bool = False


class ScamDatabaseAnalysis(BaseModel):
    flags: List[EvidenceFlag] = Field(default_factory=list)
    score: int = Field(0, ge=0, le=100)
    is_blacklisted: bool = False
    known_scam: bool = False
    rugpull_history: bool = False
    matched_database: List[str] = Field(default_factory=list)


# ===== Aggregate result =====

class RiskBreakdown(BaseModel):
    contract_risk: int = Field(..., ge=0, le=100)
    behavior_risk: int = Field(..., ge=0, le=100)
    reputation_risk: int = Field(..., ge=0, le=100)


class ScoreCalculation(BaseModel):
    """Transparent record of how the final score was produced."""
    formula: str
    weights: Dict[str, float]
    raw_scores: RiskBreakdown
    adjustments: List[str]  # Floor rules applied, in order
    final_score: int = Field(..., ge=0, le=100)


class RiskExplanation(BaseModel):
    summary: str
    key_findings: List[str]
    recommendations: List[str]
    risk_factors: List[str]


class EvidencePanels(BaseModel):
    contract_flags: List[EvidenceFlag]
    onchain_flags: List[EvidenceFlag]
    wallet_flags: List[EvidenceFlag]
    transparency_flags: List[EvidenceFlag]
    scam_flags: List[EvidenceFlag]


class AnalysisSet(BaseModel):
    contract: ContractAnalysis
    onchain: OnChainBehaviorAnalysis
    wallet: WalletHistoryAnalysis
    transparency: TransparencyAnalysis
    scam_database: ScamDatabaseAnalysis

    def all_flags(self) -> List[EvidenceFlag]:
        return [
            *self.contract.flags,
            *self.onchain.flags,
            *self.wallet.flags,
            *self.transparency.flags,
            *self.scam_database.flags,
        ]


class RiskIntelligenceResult(BaseModel):
    """Full evidence-based risk assessment for one address."""
    address: str
    address_type: AddressType
    risk_score: int = Field(..., ge=0, le=100)
    risk_level: RiskLevel

    breakdown: RiskBreakdown
    evidence: EvidencePanels
    analysis: AnalysisSet
    score_calculation: ScoreCalculation
    onchain_indicators: List[OnChainIndicator]
    explanation: RiskExplanation

    timestamp: datetime
    analysis_time_ms: int


# ===== Decisions and agents =====

class RiskDecision(BaseModel):
    """Result of the decide step."""
    level: DecisionLevel
    allowed: bool
    recommended_action: DecisionLevel
    confidence: DecisionConfidence
    risk_score: float = Field(..., ge=0, le=100)
    reasoning: str
    timestamp: datetime


class GuardianCheckResponse(BaseModel):
    allowed: bool
    level: DecisionLevel
    recommended_action: DecisionLevel
    risk_score: float = Field(..., ge=0, le=100)
    reasoning: str
    confidence: DecisionConfidence


class RiskAlert(BaseModel):
    """Watchlist entry owned by the Sentinel."""
    id: str
    agent: str
    target: str
    risk_score: float = Field(0, ge=0, le=100)
    level: DecisionLevel = DecisionLevel.ALLOW
    reason: str
    submitted_to_chain: bool = False
    tx_hash: Optional[str] = None
    report_hash: Optional[str] = None
    timestamp: datetime


class AgentStatus(BaseModel):
    name: str
    enabled: bool
    running: bool
    last_run: Optional[datetime] = None
    runs_total: int = 0
    errors_total: int = 0
    success_rate: float = 0.0  # percentage
    alerts_generated: int = 0
    submissions_to_chain: int = 0


# ===== Registry =====

class SubmitResult(BaseModel):
    success: bool
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None
    gas_used: Optional[str] = None
    report_hash: Optional[str] = None
    error: Optional[str] = None


class OnChainReport(BaseModel):
    target_address: str
    risk_score: int
    risk_level: str
    report_hash: str
    timestamp: datetime
    analyzer: str


class RegistryInfo(BaseModel):
    contract_address: str
    network: str
    total_reports: int
    analyzer_approved: bool
    analyzer_address: str
