"""
Sentinel endpoints - /v1/sentinel/*
Watchlist management, alerts and agent status.
"""
from fastapi import APIRouter, Depends

from riskintel.agents.sentinel import RiskSentinel
from riskintel.api.dependencies import api_error, get_sentinel, validated_address
from riskintel.api.v1.schemas.requests import TargetAddressRequest
from riskintel.api.v1.schemas.responses import (
    AgentStatusResponse,
    AlertsResponse,
    ErrorCode,
    WatchlistResponse,
    WatchResponse,
)

router = APIRouter()


@router.post("/sentinel/watch", response_model=WatchResponse)
async def add_watch(request: TargetAddressRequest, sentinel: RiskSentinel = Depends(get_sentinel)):
    address = validated_address(request.target_address)
    sentinel.add_watch_address(address)
    return WatchResponse(
        message=f"Address {address[:6]}... added to monitoring watchlist",
        address=address,
    )


@router.get("/sentinel/watchlist", response_model=WatchlistResponse)
async def get_watchlist(sentinel: RiskSentinel = Depends(get_sentinel)):
    watchlist = sentinel.get_watchlist()
    return WatchlistResponse(watchlist=watchlist, count=len(watchlist), monitoring=bool(watchlist))


@router.delete("/sentinel/watch/{address}", response_model=WatchResponse)
async def remove_watch(address: str, sentinel: RiskSentinel = Depends(get_sentinel)):
    address = validated_address(address)
    if not sentinel.remove_watch_address(address):
        raise api_error(404, ErrorCode.NOT_FOUND, f"Address {address[:6]}... not found in watchlist", "sentinel")
    return WatchResponse(
        message=f"Address {address[:6]}... removed from monitoring watchlist",
        address=address,
    )


@router.get("/sentinel/status", response_model=AgentStatusResponse)
async def sentinel_status(sentinel: RiskSentinel = Depends(get_sentinel)):
    return AgentStatusResponse(agent=sentinel.status())


@router.get("/sentinel/alerts", response_model=AlertsResponse)
async def sentinel_alerts(sentinel: RiskSentinel = Depends(get_sentinel)):
    alerts = sentinel.get_alerts()
    return AlertsResponse(alerts=alerts, count=len(alerts))
