"""
FastAPI application main entry point.
Wires the risk engine, registry client, response cache and agents onto app.state.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from riskintel.core.config import settings
from riskintel.core.logging import setup_logging
from riskintel.agents.manager import AgentManager
from riskintel.services.registry_client import RegistryClient
from riskintel.services.response_cache import ResponseCache
from riskintel.services.risk_engine import RiskIntelligenceEngine

# Import V1 API router
from riskintel.api.v1.api import api_router as api_v1_router

logger = logging.getLogger("riskintel.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level)

    engine = RiskIntelligenceEngine.from_settings()
    registry = RegistryClient()
    manager = AgentManager(settings, engine, registry)

    app.state.engine = engine
    app.state.registry = registry
    app.state.risk_cache = ResponseCache(settings.risk_cache_ttl_seconds, settings.risk_cache_max_entries)
    app.state.manager = manager

    manager.initialize()
    await manager.start_all()
    logger.info("%s v%s started (registry %s on %s)",
                settings.app_name, settings.app_version, registry.contract_address, registry.network)

    yield

    await manager.stop_all()
    logger.info("%s stopped", settings.app_name)


# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Evidence-based risk intelligence for EVM addresses, with autonomous monitoring "
                "agents and an on-chain report registry.",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS middleware (adjust origins for production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include V1 API routes
app.include_router(api_v1_router, prefix="/v1")


@app.get("/")
async def root():
    """Health check and API info."""
    return {
        "status": "operational",
        "service": settings.app_name,
        "version": settings.app_version,
        "endpoints": {
            "risk": "GET /v1/risk/{address}",
            "guardian_check": "POST /v1/guardian/check",
            "guardian_status": "GET /v1/guardian/status",
            "sentinel_watch": "POST /v1/sentinel/watch",
            "sentinel_unwatch": "DELETE /v1/sentinel/watch/{address}",
            "sentinel_watchlist": "GET /v1/sentinel/watchlist",
            "sentinel_status": "GET /v1/sentinel/status",
            "sentinel_alerts": "GET /v1/sentinel/alerts",
            "registry_info": "GET /v1/registry/info",
            "registry_report": "GET /v1/registry/{address}",
            "registry_history": "GET /v1/registry/{address}/history",
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    return {"status": "healthy", "service": settings.app_name}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
