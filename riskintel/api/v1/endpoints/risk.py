"""
Risk Intelligence endpoint - /v1/risk/{address}
Full evidence-based assessment, recorded in the on-chain registry.
"""
import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends

from riskintel.api.dependencies import get_engine, get_registry, get_risk_cache, validated_address
from riskintel.api.v1.schemas.responses import OnChainProof, RegistrySubmission, RiskResponse
from riskintel.core.enums import Severity
from riskintel.core.models import RiskIntelligenceResult
from riskintel.services.registry_client import RegistryClient
from riskintel.services.response_cache import ResponseCache
from riskintel.services.risk_engine import RiskIntelligenceEngine

logger = logging.getLogger("riskintel.api.risk")

router = APIRouter()

REPORT_SCHEMA_VERSION = "2.0"


@router.get("/risk/{address}", response_model=RiskResponse)
async def get_risk(
    address: str,
    engine: RiskIntelligenceEngine = Depends(get_engine),
    registry: Optional[RegistryClient] = Depends(get_registry),
    cache: ResponseCache = Depends(get_risk_cache),
):
    """
    **Risk Intelligence Analysis**

    Returns:
    - risk score (0-100), level and address type
    - contract / behavior / reputation breakdown
    - evidence flags per analyzer, on-chain indicators
    - score calculation with applied floor rules
    - explanation and recommendations
    - registry submission outcome
    """
    address = validated_address(address)

    cached = cache.get(address)
    if cached is not None:
        logger.info("Cache hit for %s", address)
        return cached

    result = await engine.analyze(address)

    response = RiskResponse(
        rug_pull_risk=result.analysis.onchain.metrics.rug_pull_risk,
        flags=[
            f"[{flag.severity.value.upper()}] {flag.name}: {flag.description}"
            for flag in result.analysis.all_flags()
            if flag.severity != Severity.INFO
        ],
        result=result,
        registry=await _record_in_registry(registry, address, result) if registry else None,
    )

    cache.set(address, response)
    logger.info(
        "Risk analysis for %s completed in %dms: score=%d, level=%s",
        address, result.analysis_time_ms, result.risk_score, result.risk_level.value,
    )
    return response


async def _record_in_registry(registry: RegistryClient, address: str,
                              result: RiskIntelligenceResult) -> RegistrySubmission:
    report_data = {
        "address": result.address,
        "risk_score": result.risk_score,
        "risk_level": result.risk_level.value,
        "breakdown": result.breakdown.model_dump(),
        "timestamp": result.timestamp.isoformat(),
        "schema_version": REPORT_SCHEMA_VERSION,
    }

    submit_result, previous_report, report_count = await asyncio.gather(
        registry.submit_report(address, result.risk_score, report_data),
        registry.get_latest_report(address),
        registry.get_report_count(address),
    )

    proof = None
    if submit_result.success:
        proof = OnChainProof(
            tx_hash=submit_result.tx_hash,
            block_number=submit_result.block_number,
            report_hash=submit_result.report_hash,
            gas_used=submit_result.gas_used,
        )

    return RegistrySubmission(
        contract_address=registry.contract_address,
        on_chain_proof=proof,
        previous_report=previous_report,
        total_reports_for_address=report_count + (1 if submit_result.success else 0),
        submission_status="confirmed" if submit_result.success else "skipped",
        submission_error=submit_result.error,
    )
