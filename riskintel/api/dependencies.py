"""
FastAPI dependencies - shared components injected via Depends().
All of them live on app.state and are built in the application lifespan.
"""
from fastapi import HTTPException, Request

from riskintel.agents.guardian import RiskGuardian
from riskintel.agents.manager import AgentManager
from riskintel.agents.sentinel import RiskSentinel
from riskintel.api.v1.schemas.responses import ErrorCode, StructuredError
from riskintel.core.validation import is_valid_address, normalize_address
from riskintel.services.registry_client import RegistryClient
from riskintel.services.response_cache import ResponseCache
from riskintel.services.risk_engine import RiskIntelligenceEngine

INVALID_ADDRESS_MESSAGE = "Address must be a valid EVM address (0x followed by 40 hexadecimal characters)"


def api_error(status_code: int, code: ErrorCode, message: str, source: str = None) -> HTTPException:
    error = StructuredError(code=code, message=message, source=source)
    return HTTPException(status_code=status_code, detail=error.model_dump(mode="json"))


def validated_address(raw: str) -> str:
    """Normalized address, or HTTP 400 when the format is wrong."""
    if not is_valid_address(raw):
        raise api_error(400, ErrorCode.INVALID_ADDRESS, INVALID_ADDRESS_MESSAGE)
    return normalize_address(raw)


def get_engine(request: Request) -> RiskIntelligenceEngine:
    return request.app.state.engine


def get_registry(request: Request) -> RegistryClient:
    return request.app.state.registry


def get_risk_cache(request: Request) -> ResponseCache:
    return request.app.state.risk_cache


def get_manager(request: Request) -> AgentManager:
    return request.app.state.manager


def get_guardian(request: Request) -> RiskGuardian:
    guardian = get_manager(request).guardian
    if guardian is None:
        raise api_error(503, ErrorCode.AGENT_UNAVAILABLE, "Risk Guardian protection agent is not enabled", "guardian")
    return guardian


def get_sentinel(request: Request) -> RiskSentinel:
    sentinel = get_manager(request).sentinel
    if sentinel is None:
        raise api_error(503, ErrorCode.AGENT_UNAVAILABLE, "Risk Sentinel monitoring agent is not enabled", "sentinel")
    return sentinel
