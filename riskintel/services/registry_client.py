"""
Risk registry client.
Hashes risk reports and submits them to the on-chain registry contract;
reads back previously submitted reports.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List
from web3 import AsyncWeb3, Web3
from eth_account import Account
from riskintel.core.config import settings
from riskintel.core.enums import OnChainRiskLevel
from riskintel.core.models import SubmitResult, OnChainReport, RegistryInfo

logger = logging.getLogger("riskintel.services.registry")

_REPORT_TUPLE = {
    "name": "",
    "type": "tuple",
    "components": [
        {"name": "targetAddress", "type": "address"},
        {"name": "riskScore", "type": "uint8"},
        {"name": "riskLevel", "type": "uint8"},
        {"name": "reportHash", "type": "bytes32"},
        {"name": "timestamp", "type": "uint256"},
        {"name": "analyzer", "type": "address"},
    ],
}


def _view(name: str, inputs: List[Dict[str, str]], outputs: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"name": name, "type": "function", "stateMutability": "view", "inputs": inputs, "outputs": outputs}


REGISTRY_ABI = [
    {
        "name": "submitRiskReport",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "targetAddress", "type": "address"},
            {"name": "riskScore", "type": "uint8"},
            {"name": "riskLevel", "type": "uint8"},
            {"name": "reportHash", "type": "bytes32"},
        ],
        "outputs": [],
    },
    _view("getReport", [{"name": "reportIndex", "type": "uint256"}], [_REPORT_TUPLE]),
    _view("getLatestReportForTarget", [{"name": "targetAddress", "type": "address"}], [_REPORT_TUPLE]),
    _view("getReportsByTarget", [{"name": "targetAddress", "type": "address"}], [{"name": "", "type": "uint256[]"}]),
    _view("getTotalReports", [], [{"name": "", "type": "uint256"}]),
    _view("getReportCountForTarget", [{"name": "targetAddress", "type": "address"}], [{"name": "", "type": "uint256"}]),
    _view("approvedAnalyzers", [{"name": "", "type": "address"}], [{"name": "", "type": "bool"}]),
]


def canonical_report_json(report: Dict[str, Any]) -> str:
    """Byte-stable serialization: sorted keys, no whitespace, UTF-8 preserved."""
    return json.dumps(report, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


def hash_report(report: Dict[str, Any]) -> str:
    """keccak-256 proof of a report, 0x-prefixed hex."""
    return Web3.to_hex(Web3.keccak(text=canonical_report_json(report)))


def score_to_risk_level(score: int) -> OnChainRiskLevel:
    """Map a 0-100 score to the registry's LOW/MEDIUM/HIGH enum."""
    if score <= 33:
        return OnChainRiskLevel.LOW
    if score <= 66:
        return OnChainRiskLevel.MEDIUM
    return OnChainRiskLevel.HIGH


def risk_level_label(level: int) -> str:
    try:
        return OnChainRiskLevel(level).name
    except ValueError:
        return "UNKNOWN"


def _to_report(raw) -> OnChainReport:
    target, score, level, report_hash, timestamp, analyzer = raw
    return OnChainReport(
        target_address=target,
        risk_score=int(score),
        risk_level=risk_level_label(int(level)),
        report_hash=Web3.to_hex(report_hash),
        timestamp=datetime.fromtimestamp(int(timestamp), tz=timezone.utc),
        analyzer=analyzer,
    )


class RegistryClient:
    """Reads and writes risk reports on the registry contract."""

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        contract_address: Optional[str] = None,
        private_key: Optional[str] = None,
    ):
        self.rpc_url = rpc_url or settings.registry_rpc_url
        self.contract_address = Web3.to_checksum_address(contract_address or settings.registry_contract_address)
        self.private_key = settings.analyzer_private_key if private_key is None else private_key
        self.web3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(self.rpc_url))
        self.contract = self.web3.eth.contract(address=self.contract_address, abi=REGISTRY_ABI)
        self._account = Account.from_key(self.private_key) if self.private_key else None

    @property
    def network(self) -> str:
        url = self.rpc_url.lower()
        if "testnet" in url or "prebsc" in url:
            return "bnbTestnet"
        return "bnbMainnet"

    @property
    def analyzer_address(self) -> str:
        return self._account.address if self._account else ""

    async def submit_report(self, target_address: str, risk_score: int, report_data: Dict[str, Any]) -> SubmitResult:
        """
        Hash report_data and submit it for target_address.
        Never raises: failures are reported through SubmitResult.error.
        """
        if self._account is None:
            logger.warning("No analyzer private key configured, skipping on-chain submission")
            return SubmitResult(success=False, error="Analyzer private key not configured")

        report_hash = hash_report(report_data)
        risk_level = score_to_risk_level(risk_score)

        try:
            logger.info(
                "Submitting report for %s (score=%s, level=%s)",
                target_address, risk_score, risk_level.name,
            )
            nonce = await self.web3.eth.get_transaction_count(self._account.address)
            tx = await self.contract.functions.submitRiskReport(
                Web3.to_checksum_address(target_address),
                int(risk_score),
                int(risk_level),
                Web3.to_bytes(hexstr=report_hash),
            ).build_transaction({"from": self._account.address, "nonce": nonce})

            signed = self._account.sign_transaction(tx)
            tx_hash = await self.web3.eth.send_raw_transaction(signed.raw_transaction)
            receipt = await self.web3.eth.wait_for_transaction_receipt(tx_hash)

            logger.info(
                "Report submitted: tx=%s, block=%s, gas=%s",
                Web3.to_hex(receipt["transactionHash"]), receipt["blockNumber"], receipt["gasUsed"],
            )
            return SubmitResult(
                success=True,
                tx_hash=Web3.to_hex(receipt["transactionHash"]),
                block_number=int(receipt["blockNumber"]),
                gas_used=str(receipt["gasUsed"]),
                report_hash=report_hash,
            )

        except Exception as e:
            logger.error("Registry submit failed for %s: %s", target_address, e)
            return SubmitResult(success=False, error=str(e) or "Unknown error", report_hash=report_hash)

    async def get_latest_report(self, target_address: str) -> Optional[OnChainReport]:
        """Latest report for a target, or None when none exists or the RPC fails."""
        try:
            raw = await self.contract.functions.getLatestReportForTarget(
                Web3.to_checksum_address(target_address)
            ).call()
            return _to_report(raw)
        except Exception as e:
            logger.debug("Latest report lookup failed for %s: %s", target_address, e)
            return None

    async def get_report_count(self, target_address: str) -> int:
        try:
            count = await self.contract.functions.getReportCountForTarget(
                Web3.to_checksum_address(target_address)
            ).call()
            return int(count)
        except Exception as e:
            logger.debug("Report count lookup failed for %s: %s", target_address, e)
            return 0

    async def get_total_reports(self) -> int:
        try:
            return int(await self.contract.functions.getTotalReports().call())
        except Exception as e:
            logger.warning("Total reports lookup failed: %s", e)
            return 0

    async def is_analyzer_approved(self) -> bool:
        if not self.analyzer_address:
            return False
        try:
            return bool(await self.contract.functions.approvedAnalyzers(self.analyzer_address).call())
        except Exception as e:
            logger.warning("Analyzer approval lookup failed: %s", e)
            return False

    async def get_reports_for_target(self, target_address: str) -> List[OnChainReport]:
        try:
            indices = await self.contract.functions.getReportsByTarget(
                Web3.to_checksum_address(target_address)
            ).call()
            reports = []
            for index in indices:
                reports.append(_to_report(await self.contract.functions.getReport(index).call()))
            return reports
        except Exception as e:
            logger.warning("Report history lookup failed for %s: %s", target_address, e)
            return []

    async def get_registry_info(self) -> RegistryInfo:
        return RegistryInfo(
            contract_address=self.contract_address,
            network=self.network,
            total_reports=await self.get_total_reports(),
            analyzer_approved=await self.is_analyzer_approved(),
            analyzer_address=self.analyzer_address,
        )
