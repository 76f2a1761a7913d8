"""
V1 API router - aggregates all v1 endpoints.
"""
from fastapi import APIRouter
from riskintel.api.v1.endpoints import risk, guardian, sentinel, registry

api_router = APIRouter()

# Include all v1 endpoints
api_router.include_router(risk.router, tags=["Risk Intelligence"])
api_router.include_router(guardian.router, tags=["Guardian"])
api_router.include_router(sentinel.router, tags=["Sentinel"])
api_router.include_router(registry.router, tags=["Registry"])
