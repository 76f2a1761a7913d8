"""
Tests for the v1 HTTP API. Components on app.state are replaced with fakes;
the lifespan is not entered, so nothing touches the network.
"""
import pytest
from fastapi.testclient import TestClient

from riskintel.agents.manager import AgentManager
from riskintel.core.config import Settings
from riskintel.core.models import SubmitResult
from riskintel.main import app
from riskintel.services.response_cache import ResponseCache

SAFE = "0x1111111111111111111111111111111111111111"
RISKY = "0x2222222222222222222222222222222222222222"
MIXED_CASE = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"


def _install(engine, registry, **settings_overrides):
    values = dict(sentinel_enabled=True, guardian_enabled=True, sentinel_interval_seconds=3600)
    values.update(settings_overrides)
    manager = AgentManager(Settings(**values), engine, registry)
    manager.initialize()

    app.state.engine = engine
    app.state.registry = registry
    app.state.risk_cache = ResponseCache(60)
    app.state.manager = manager
    return manager


@pytest.fixture
def engine(make_engine):
    return make_engine({RISKY: 85}, default=10)


@pytest.fixture
def manager(engine, registry):
    return _install(engine, registry)


@pytest.fixture
def client(manager):
    return TestClient(app)


def _error_code(response):
    return response.json()["detail"]["code"]


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_root_lists_endpoints(client):
    data = client.get("/").json()
    assert data["status"] == "operational"
    assert data["endpoints"]["risk"] == "GET /v1/risk/{address}"


# ===== Risk =====

def test_risk_rejects_invalid_address(client, engine):
    response = client.get("/v1/risk/0x1234")

    assert response.status_code == 400
    assert _error_code(response) == "INVALID_ADDRESS"
    assert response.json()["detail"]["retryable"] is False
    assert engine.calls == []


def test_risk_analysis_is_recorded_and_cached(client, engine, registry):
    first = client.get(f"/v1/risk/{RISKY}")
    second = client.get(f"/v1/risk/{RISKY}")

    assert first.status_code == 200
    data = first.json()
    assert data["success"] is True
    assert data["result"]["risk_score"] == 85
    assert data["result"]["risk_level"] == "Very High"
    assert data["flags"] == []

    submission = data["registry"]
    assert submission["submission_status"] == "confirmed"
    assert submission["on_chain_proof"]["tx_hash"].startswith("0x")
    assert submission["total_reports_for_address"] == 1

    target, score, report = registry.submissions[0]
    assert (target, score) == (RISKY, 85)
    assert report["schema_version"] == "2.0"
    assert report["risk_level"] == "Very High"

    assert second.json() == data
    assert engine.calls == [RISKY]
    assert len(registry.submissions) == 1


def test_risk_address_is_normalized(client, engine):
    response = client.get(f"/v1/risk/{MIXED_CASE}")

    assert response.status_code == 200
    assert engine.calls == [MIXED_CASE.lower()]


def test_risk_registry_submission_skipped(client, registry, on_chain_report):
    registry.results = [SubmitResult(success=False, error="No analyzer key configured")]
    registry.reports[SAFE] = [on_chain_report(SAFE, 40)]

    submission = client.get(f"/v1/risk/{SAFE}").json()["registry"]

    assert submission["submission_status"] == "skipped"
    assert submission["submission_error"] == "No analyzer key configured"
    assert submission["on_chain_proof"] is None
    assert submission["total_reports_for_address"] == 1
    assert submission["previous_report"]["risk_score"] == 40


def test_risk_without_registry(engine):
    _install(engine, None)
    response = TestClient(app).get(f"/v1/risk/{SAFE}")

    assert response.status_code == 200
    assert response.json()["registry"] is None


# ===== Guardian =====

def test_guardian_check_blocks_and_escalates(client, manager):
    response = client.post("/v1/guardian/check", json={"targetAddress": RISKY})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["allowed"] is False
    assert data["level"] == "BLOCK"
    assert data["risk_score"] == 85
    assert manager.sentinel.get_watchlist() == [RISKY]


def test_guardian_check_accepts_field_name(client):
    response = client.post("/v1/guardian/check", json={"target_address": SAFE})

    assert response.status_code == 200
    assert response.json()["data"]["level"] == "ALLOW"


def test_guardian_check_rejects_invalid_address(client):
    response = client.post("/v1/guardian/check", json={"targetAddress": "not-an-address"})

    assert response.status_code == 400
    assert _error_code(response) == "INVALID_ADDRESS"


def test_guardian_status(client):
    client.post("/v1/guardian/check", json={"targetAddress": SAFE})
    agent = client.get("/v1/guardian/status").json()["agent"]

    assert agent["name"] == "RiskGuardian"
    assert agent["runs_total"] == 1
    assert agent["success_rate"] == 100.0


def test_disabled_guardian_is_unavailable(engine, registry):
    _install(engine, registry, guardian_enabled=False)
    response = TestClient(app).post("/v1/guardian/check", json={"targetAddress": SAFE})

    assert response.status_code == 503
    assert _error_code(response) == "AGENT_UNAVAILABLE"


# ===== Sentinel =====

def test_sentinel_watchlist_flow(client):
    added = client.post("/v1/sentinel/watch", json={"targetAddress": SAFE})
    assert added.status_code == 200
    assert added.json()["message"] == "Address 0x1111... added to monitoring watchlist"

    watchlist = client.get("/v1/sentinel/watchlist").json()
    assert watchlist["watchlist"] == [SAFE]
    assert watchlist["count"] == 1
    assert watchlist["monitoring"] is True

    alerts = client.get("/v1/sentinel/alerts").json()
    assert alerts["count"] == 1
    assert alerts["alerts"][0]["reason"] == "Initial observation"

    assert client.delete(f"/v1/sentinel/watch/{SAFE}").status_code == 200
    missing = client.delete(f"/v1/sentinel/watch/{SAFE}")
    assert missing.status_code == 404
    assert _error_code(missing) == "NOT_FOUND"

    assert client.get("/v1/sentinel/watchlist").json()["monitoring"] is False


def test_sentinel_status(client):
    agent = client.get("/v1/sentinel/status").json()["agent"]

    assert agent["name"] == "RiskSentinel"
    assert agent["running"] is False
    assert agent["runs_total"] == 0


def test_disabled_sentinel_is_unavailable(engine, registry):
    _install(engine, registry, sentinel_enabled=False)
    response = TestClient(app).get("/v1/sentinel/watchlist")

    assert response.status_code == 503
    assert _error_code(response) == "AGENT_UNAVAILABLE"


# ===== Registry =====

def test_registry_info(client, registry):
    info = client.get("/v1/registry/info").json()["info"]

    assert info["contract_address"] == registry.contract_address
    assert info["analyzer_approved"] is True


def test_registry_report_and_history(client, registry, on_chain_report):
    registry.reports[RISKY] = [on_chain_report(RISKY, 70), on_chain_report(RISKY, 85)]

    report = client.get(f"/v1/registry/{RISKY}").json()
    assert report["has_on_chain_report"] is True
    assert report["total_reports"] == 2
    assert report["latest_report"]["risk_score"] == 85

    history = client.get(f"/v1/registry/{RISKY}/history").json()
    assert history["count"] == 2
    assert [r["risk_score"] for r in history["reports"]] == [70, 85]


def test_registry_report_for_unknown_address(client):
    report = client.get(f"/v1/registry/{SAFE}").json()

    assert report["has_on_chain_report"] is False
    assert report["latest_report"] is None
    assert report["total_reports"] == 0


def test_registry_rejects_invalid_address(client):
    response = client.get("/v1/registry/0xzz/history")
    assert response.status_code == 400
