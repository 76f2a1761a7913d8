"""
Response schemas for v1 API endpoints.
Includes structured error handling.
"""
from typing import Optional, List
from pydantic import BaseModel, Field
from datetime import datetime, timezone
from enum import Enum

from riskintel.core.models import (
    AgentStatus,
    GuardianCheckResponse,
    OnChainReport,
    RegistryInfo,
    RiskAlert,
    RiskIntelligenceResult,
)


# ===== Error Handling =====

class ErrorCode(str, Enum):
    """Standardized error codes."""
    INVALID_ADDRESS = "INVALID_ADDRESS"
    AGENT_UNAVAILABLE = "AGENT_UNAVAILABLE"
    NOT_FOUND = "NOT_FOUND"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class StructuredError(BaseModel):
    """Error payload carried in HTTPException.detail."""
    code: ErrorCode
    message: str
    source: Optional[str] = Field(None, description="Which component failed")
    retryable: bool = Field(False, description="Whether client should retry")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# ===== Risk =====

class OnChainProof(BaseModel):
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None
    report_hash: Optional[str] = None
    gas_used: Optional[str] = None


class RegistrySubmission(BaseModel):
    """Outcome of recording an analysis in the on-chain registry."""
    contract_address: str
    on_chain_proof: Optional[OnChainProof] = None
    previous_report: Optional[OnChainReport] = None
    total_reports_for_address: int = 0
    submission_status: str = Field(..., description="confirmed | skipped")
    submission_error: Optional[str] = None


class RiskResponse(BaseModel):
    """Response for GET /v1/risk/{address}"""
    success: bool = True
    rug_pull_risk: int = Field(..., ge=0, le=100)
    flags: List[str] = Field(default=[], description="Non-info flags as one-line summaries")
    result: RiskIntelligenceResult
    registry: Optional[RegistrySubmission] = None


# ===== Agents =====

class GuardianCheckEnvelope(BaseModel):
    success: bool = True
    data: GuardianCheckResponse


class AgentStatusResponse(BaseModel):
    success: bool = True
    agent: AgentStatus


class WatchResponse(BaseModel):
    success: bool = True
    message: str
    address: str


class WatchlistResponse(BaseModel):
    success: bool = True
    watchlist: List[str]
    count: int
    monitoring: bool


class AlertsResponse(BaseModel):
    success: bool = True
    alerts: List[RiskAlert]
    count: int


# ===== Registry =====

class RegistryInfoResponse(BaseModel):
    success: bool = True
    info: RegistryInfo


class RegistryReportResponse(BaseModel):
    success: bool = True
    address: str
    latest_report: Optional[OnChainReport] = None
    total_reports: int
    has_on_chain_report: bool


class RegistryHistoryResponse(BaseModel):
    success: bool = True
    address: str
    reports: List[OnChainReport]
    count: int
