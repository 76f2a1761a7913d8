"""
Registry endpoints - /v1/registry/*
Read access to reports stored on chain.
"""
from fastapi import APIRouter, Depends

from riskintel.api.dependencies import api_error, get_registry, validated_address
from riskintel.api.v1.schemas.responses import (
    ErrorCode,
    RegistryHistoryResponse,
    RegistryInfoResponse,
    RegistryReportResponse,
)
from riskintel.services.registry_client import RegistryClient

router = APIRouter()


def _require(registry):
    if registry is None:
        raise api_error(503, ErrorCode.UPSTREAM_ERROR, "Risk registry is not configured", "registry")
    return registry


@router.get("/registry/info", response_model=RegistryInfoResponse)
async def registry_info(registry: RegistryClient = Depends(get_registry)):
    info = await _require(registry).get_registry_info()
    return RegistryInfoResponse(info=info)


@router.get("/registry/{address}", response_model=RegistryReportResponse)
async def registry_report(address: str, registry: RegistryClient = Depends(get_registry)):
    address = validated_address(address)
    registry = _require(registry)

    latest = await registry.get_latest_report(address)
    total = await registry.get_report_count(address)
    return RegistryReportResponse(
        address=address,
        latest_report=latest,
        total_reports=total,
        has_on_chain_report=latest is not None,
    )


@router.get("/registry/{address}/history", response_model=RegistryHistoryResponse)
async def registry_history(address: str, registry: RegistryClient = Depends(get_registry)):
    address = validated_address(address)
    reports = await _require(registry).get_reports_for_target(address)
    return RegistryHistoryResponse(address=address, reports=reports, count=len(reports))
