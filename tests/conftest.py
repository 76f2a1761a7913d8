"""
Shared fixtures: in-memory stand-ins for the chain, explorer, GitHub and
registry clients, plus a builder for aggregate results.
"""
from datetime import datetime, timezone

import pytest

from riskintel.core.enums import AddressType
from riskintel.core.models import (
    AnalysisSet,
    ContractAnalysis,
    EvidencePanels,
    OnChainBehaviorAnalysis,
    OnChainReport,
    RegistryInfo,
    RiskBreakdown,
    RiskExplanation,
    RiskIntelligenceResult,
    ScamDatabaseAnalysis,
    ScoreCalculation,
    SubmitResult,
    TransparencyAnalysis,
    WalletHistoryAnalysis,
)
from riskintel.services.risk_engine import get_risk_level

WRAPPED_NATIVE = "0xbb4CdB9CBd36B01bD1cBaEBF2De08d9173bc095c"


class FakeChain:
    """Per-address balances, nonces and bytecode; everything else empty."""

    def __init__(self):
        self.wrapped_native_address = WRAPPED_NATIVE
        self.balances = {}
        self.nonces = {}
        self.codes = {}
        self.pairs = {}
        self.reserves = {}
        self.symbols = {}
        self.implementations = {}
        self.fail = False

    async def get_balance(self, address):
        if self.fail:
            raise ConnectionError("rpc down")
        return self.balances.get(address.lower(), 0)

    async def get_code(self, address):
        if self.fail:
            raise ConnectionError("rpc down")
        return self.codes.get(address.lower(), b"")

    async def get_transaction_count(self, address):
        if self.fail:
            raise ConnectionError("rpc down")
        return self.nonces.get(address.lower(), 0)

    async def get_implementation_address(self, address):
        return self.implementations.get(address.lower())

    async def get_pair(self, token_address):
        return self.pairs.get(token_address.lower())

    async def get_pair_reserves(self, pair_address):
        return self.reserves[pair_address.lower()]

    async def get_token_decimals(self, token_address):
        return 18

    async def get_token_symbol(self, token_address):
        return self.symbols.get(token_address.lower(), "UNKNOWN")


class FakeExplorer:
    """Explorer records keyed by lowercase address."""

    def __init__(self):
        self.sources = {}
        self.txs = {}
        self.creations = {}

    async def get_contract_source(self, address):
        return self.sources.get(address.lower())

    async def get_transaction_list(self, address, page=1, offset=50, sort="desc"):
        txs = sorted(
            self.txs.get(address.lower(), []),
            key=lambda tx: int(tx["timeStamp"]),
            reverse=sort != "asc",
        )
        return txs[:offset]

    async def get_contract_creation(self, addresses):
        return [self.creations[a.lower()] for a in addresses if a.lower() in self.creations]

    def address_url(self, address):
        return f"https://bscscan.com/address/{address}"

    def source_url(self, address):
        return f"https://bscscan.com/address/{address}#code"


class FakeGitHub:
    def __init__(self, repo=None, contributors=3, readme=None):
        self.repo = repo
        self.contributors = contributors
        self.readme = readme
        self.queries = []

    async def search_repository(self, query):
        self.queries.append(query)
        return self.repo

    async def get_contributor_count(self, full_name):
        return self.contributors

    async def get_readme(self, full_name):
        return self.readme


class FakeRegistry:
    """Records submissions; returns queued results, then a default success."""

    contract_address = "0x20B28a7b961a6d82222150905b0C01256607B5A3"

    def __init__(self):
        self.submissions = []
        self.results = []
        self.reports = {}

    async def submit_report(self, target_address, risk_score, report_data):
        self.submissions.append((target_address, risk_score, report_data))
        if self.results:
            result = self.results.pop(0)
            if isinstance(result, Exception):
                raise result
            return result
        return SubmitResult(
            success=True,
            tx_hash=f"0x{len(self.submissions):064x}",
            block_number=100 + len(self.submissions),
            gas_used="52000",
            report_hash="0x" + "ab" * 32,
        )

    async def get_latest_report(self, target_address):
        reports = self.reports.get(target_address.lower(), [])
        return reports[-1] if reports else None

    async def get_report_count(self, target_address):
        return len(self.reports.get(target_address.lower(), []))

    async def get_reports_for_target(self, target_address):
        return list(self.reports.get(target_address.lower(), []))

    async def get_registry_info(self):
        return RegistryInfo(
            contract_address=self.contract_address,
            network="BNB Smart Chain Testnet",
            total_reports=sum(len(r) for r in self.reports.values()),
            analyzer_approved=True,
            analyzer_address="0x" + "9" * 40,
        )


def build_result(address, score, address_type=AddressType.CONTRACT):
    """Minimal aggregate result carrying the given final score."""
    breakdown = RiskBreakdown(contract_risk=score, behavior_risk=score, reputation_risk=score)
    return RiskIntelligenceResult(
        address=address,
        address_type=address_type,
        risk_score=score,
        risk_level=get_risk_level(score),
        breakdown=breakdown,
        evidence=EvidencePanels(
            contract_flags=[], onchain_flags=[], wallet_flags=[], transparency_flags=[], scam_flags=[],
        ),
        analysis=AnalysisSet(
            contract=ContractAnalysis(),
            onchain=OnChainBehaviorAnalysis(),
            wallet=WalletHistoryAnalysis(),
            transparency=TransparencyAnalysis(),
            scam_database=ScamDatabaseAnalysis(),
        ),
        score_calculation=ScoreCalculation(
            formula="test", weights={}, raw_scores=breakdown, adjustments=[], final_score=score,
        ),
        onchain_indicators=[],
        explanation=RiskExplanation(summary="", key_findings=[], recommendations=[], risk_factors=[]),
        timestamp=datetime.now(timezone.utc),
        analysis_time_ms=1,
    )


class FakeEngine:
    """Scores per address; an Exception value is raised instead."""

    def __init__(self, scores=None, default=10):
        self.scores = scores or {}
        self.default = default
        self.calls = []

    async def analyze(self, address):
        self.calls.append(address)
        score = self.scores.get(address, self.default)
        if isinstance(score, Exception):
            raise score
        return build_result(address, score)


@pytest.fixture
def chain():
    return FakeChain()


@pytest.fixture
def explorer():
    return FakeExplorer()


@pytest.fixture
def registry():
    return FakeRegistry()


@pytest.fixture
def make_result():
    return build_result


@pytest.fixture
def make_engine():
    return FakeEngine


@pytest.fixture
def make_github():
    return FakeGitHub


@pytest.fixture
def on_chain_report():
    def _make(address, score=80):
        return OnChainReport(
            target_address=address,
            risk_score=score,
            risk_level="HIGH",
            report_hash="0x" + "cd" * 32,
            timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
            analyzer="0x" + "9" * 40,
        )
    return _make


def tx(sender, recipient, value_wei=0, timestamp=1_700_000_000, gas_used=21000, contract_address=""):
    """Explorer txlist row."""
    return {
        "from": sender,
        "to": recipient,
        "value": str(value_wei),
        "timeStamp": str(timestamp),
        "gasUsed": str(gas_used),
        "contractAddress": contract_address,
    }


@pytest.fixture
def make_tx():
    return tx
