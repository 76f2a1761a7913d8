"""
Guardian endpoints - /v1/guardian/*
On-demand protection checks.
"""
from fastapi import APIRouter, Depends

from riskintel.agents.guardian import RiskGuardian
from riskintel.api.dependencies import get_guardian, validated_address
from riskintel.api.v1.schemas.requests import TargetAddressRequest
from riskintel.api.v1.schemas.responses import AgentStatusResponse, GuardianCheckEnvelope

router = APIRouter()


@router.post("/guardian/check", response_model=GuardianCheckEnvelope)
async def guardian_check(request: TargetAddressRequest, guardian: RiskGuardian = Depends(get_guardian)):
    """
    **Protection gate check**

    Returns ALLOW, WARN or BLOCK for the target. If analysis fails the
    answer is BLOCK with score 100.
    """
    address = validated_address(request.target_address)
    decision = await guardian.check_address(address)
    return GuardianCheckEnvelope(data=decision)


@router.get("/guardian/status", response_model=AgentStatusResponse)
async def guardian_status(guardian: RiskGuardian = Depends(get_guardian)):
    return AgentStatusResponse(agent=guardian.status())
