"""
Contract analysis.
Detects proxy patterns, dangerous admin functions, and ownership structures
from bytecode and verified source code.
"""
import logging
import re
from typing import Optional, List, Tuple

from riskintel.core.enums import Severity, SEVERITY_WEIGHTS
from riskintel.core.models import ContractAnalysis, ContractDetections, EvidenceFlag, clamp_score
from riskintel.services.analyzer_base import BaseAnalyzer, error_flag
from riskintel.services.chain_client import ChainClient
from riskintel.services.explorer_client import ExplorerClient, is_verified_record

logger = logging.getLogger("riskintel.services.contract_analyzer")

SNIPPET_LENGTH = 200
TINY_BYTECODE_BYTES = 100
EIP170_LIMIT_BYTES = 24576


class ContractAnalyzer(BaseAnalyzer):
    """Analyzes smart contract bytecode and source code for risk patterns."""

    name = "contract"

    # EIP-1167 minimal proxy bytecode fragments
    PROXY_BYTECODE_PATTERNS = [
        "363d3d373d3d3d363d73",
        "5860208158601c335a63",
    ]

    # (id, name, pattern, severity, description)
    DANGEROUS_PATTERNS: List[Tuple[str, str, re.Pattern, Severity, str]] = [
        (
            "owner_withdraw", "Owner Withdraw Function",
            re.compile(r"function\s+(?:withdraw|drain|sweep|emergencyWithdraw)\s*\([^)]*\)[^{]*\{[^}]*(?:onlyOwner|_owner|owner\(\))", re.DOTALL),
            Severity.HIGH,
            "Owner can withdraw funds from the contract at any time, potentially draining user deposits.",
        ),
        (
            "mint_function", "Unrestricted Mint Function",
            re.compile(r"function\s+(?:mint|_mint)\s*\([^)]*\)[^{]*(?:public|external)[^{]*\{", re.DOTALL),
            Severity.HIGH,
            "Contract can mint new tokens, potentially diluting holder value through unlimited supply inflation.",
        ),
        (
            "owner_mint", "Owner Mint Privileges",
            re.compile(r"function\s+mint\s*\([^)]*\)[^{]*(?:onlyOwner|onlyMinter)", re.DOTALL),
            Severity.MEDIUM,
            "Owner has exclusive minting privileges, which could be used to inflate supply.",
        ),
        (
            "selfdestruct", "Self-Destruct Capability",
            re.compile(r"selfdestruct\s*\(|suicide\s*\("),
            Severity.CRITICAL,
            "Contract contains selfdestruct which can permanently destroy the contract and send remaining funds to a chosen address.",
        ),
        (
            "no_renounce", "No Ownership Renouncement",
            re.compile(r"Ownable"),
            Severity.MEDIUM,
            "Contract uses the Ownable pattern. Unless renounceOwnership has been called, the owner retains full control.",
        ),
        (
            "blacklist", "Blacklist / Whitelist Function",
            re.compile(r"function\s+(?:blacklist|addToBlacklist|setBlacklist|exclude|ban)\s*\("),
            Severity.HIGH,
            "Contract can blacklist addresses, preventing them from transferring or selling tokens (honeypot indicator).",
        ),
        (
            "pause_trading", "Trading Pause Mechanism",
            re.compile(r"function\s+(?:pause|unpause|setPaused|toggleTrading|setTradingEnabled)\s*\("),
            Severity.HIGH,
            "Owner can pause trading at any time, preventing holders from selling their tokens.",
        ),
        (
            "fee_manipulation", "Adjustable Transaction Fee",
            re.compile(r"function\s+(?:setFee|setTax|setTaxRate|updateFee|changeFee|setBuyFee|setSellFee)\s*\("),
            Severity.HIGH,
            "Owner can change transaction fees. Malicious actors raise fees to 100% after gaining liquidity.",
        ),
        (
            "max_tx_limit", "Adjustable Max Transaction",
            re.compile(r"function\s+(?:setMaxTx|setMaxTransaction|setMaxTransferAmount|updateMaxTx)\s*\("),
            Severity.MEDIUM,
            "Owner can limit the max transaction amount, which can be set near zero to prevent selling.",
        ),
        (
            "hidden_transfer_logic", "Hidden Transfer Restrictions",
            re.compile(r"function\s+_transfer\s*\([^)]*\)[^{]*\{[^}]*(?:require\s*\([^)]*(?:_isExcluded|isBot|_blacklist|tradingOpen))", re.DOTALL),
            Severity.CRITICAL,
            "Transfer function contains hidden restrictions that may prevent certain addresses from selling.",
        ),
        (
            "proxy_upgradeable", "Upgradeable Proxy Pattern",
            re.compile(r"(?:upgradeTo|upgradeToAndCall|_setImplementation|TransparentUpgradeableProxy|UUPSUpgradeable)"),
            Severity.HIGH,
            "Contract is upgradeable via a proxy pattern. The owner can change all logic, including fund transfers.",
        ),
        (
            "delegatecall", "Delegatecall Usage",
            re.compile(r"delegatecall\s*\("),
            Severity.HIGH,
            "Contract uses delegatecall, which executes external code in the contract's context.",
        ),
    ]

    def __init__(self, chain: ChainClient, explorer: ExplorerClient):
        self.chain = chain
        self.explorer = explorer

    async def _analyze(self, address: str, **context) -> ContractAnalysis:
        flags: List[EvidenceFlag] = []
        detections = ContractDetections()
        score = 0

        # Step 1: Bytecode
        code = await self.chain.get_code(address)
        if not code:
            return ContractAnalysis()

        code_size = len(code)
        address_link = self.explorer.address_url(address)
        source_link = self.explorer.source_url(address)

        # Step 2: Proxy detection
        is_proxy, proxy_evidence = await self.detect_proxy(address, code.hex())
        if is_proxy:
            detections.proxy_pattern = True
            flags.append(EvidenceFlag(
                id="proxy_detected",
                name="Proxy Contract Detected",
                severity=Severity.HIGH,
                description="This contract uses a proxy pattern. The actual logic resides in a separate implementation contract that the owner can change.",
                evidence=proxy_evidence,
                category="contract",
                source="Bytecode Analysis",
                explorer_link=address_link,
                risk_weight=15,
            ))
            score += 15

        # Step 3: Code size
        if code_size < TINY_BYTECODE_BYTES:
            flags.append(EvidenceFlag(
                id="tiny_bytecode",
                name="Minimal Bytecode",
                severity=Severity.MEDIUM,
                description="Contract has very small bytecode, possibly a minimal proxy stub or placeholder.",
                evidence=f"Contract bytecode is only {code_size} bytes.",
                category="contract",
                source="Bytecode Analysis",
                explorer_link=address_link,
                risk_weight=10,
            ))
            score += 10
        elif code_size > EIP170_LIMIT_BYTES:
            flags.append(EvidenceFlag(
                id="large_bytecode",
                name="Large Complex Contract",
                severity=Severity.LOW,
                description="Contract bytecode exceeds the EIP-170 size recommendation, making it harder to audit.",
                evidence=f"Contract bytecode is {code_size} bytes (limit: {EIP170_LIMIT_BYTES:,}).",
                category="contract",
                source="Bytecode Analysis",
                explorer_link=address_link,
                risk_weight=5,
            ))
            score += 5

        # Step 4: Source verification and pattern scan
        is_verified = False
        compiler_version: Optional[str] = None
        contract_name: Optional[str] = None

        try:
            source_data = await self.explorer.get_contract_source(address)

            if is_verified_record(source_data):
                is_verified = True
                compiler_version = source_data.get("CompilerVersion") or None
                contract_name = source_data.get("ContractName") or None
                source_code = source_data.get("SourceCode", "")

                for flag in self.detect_source_patterns(source_code, source_link):
                    flags.append(flag)
                    score += flag.risk_weight
                    self._record_detection(detections, flag.id)

                if "Ownable" in source_code and "renounceOwnership" not in source_code:
                    detections.no_renounce_ownership = True
                    flags.append(EvidenceFlag(
                        id="no_renounce_impl",
                        name="Ownership Not Renounceable",
                        severity=Severity.MEDIUM,
                        description="Contract uses Ownable but does not implement renounceOwnership, so the owner permanently retains control.",
                        evidence="Ownable pattern found but renounceOwnership function is missing from source.",
                        category="contract",
                        source="Source Code Analysis",
                        explorer_link=source_link,
                        risk_weight=10,
                    ))
                    score += 10

                implementation = source_data.get("Implementation")
                if source_data.get("Proxy") == "1" and implementation:
                    detections.proxy_pattern = True
                    detections.upgradeability = True
                    flags.append(EvidenceFlag(
                        id="explorer_proxy",
                        name="Explorer Confirmed Proxy",
                        severity=Severity.HIGH,
                        description=f"Contract is a confirmed proxy pointing to implementation: {implementation}",
                        evidence=f"Explorer proxy verification confirms implementation at {implementation}.",
                        category="contract",
                        source="BscScan",
                        explorer_link=source_link,
                        risk_weight=15,
                    ))
                    score += 15
            else:
                flags.append(EvidenceFlag(
                    id="unverified_source",
                    name="Source Code Not Verified",
                    severity=Severity.HIGH,
                    description="Contract source code is not verified on the block explorer. Cannot inspect for malicious logic.",
                    evidence="Explorer API reports no verified source code for this contract.",
                    category="contract",
                    source="BscScan",
                    explorer_link=source_link,
                    risk_weight=20,
                ))
                score += 20

        except Exception as e:
            logger.warning("Source code check failed for %s: %s", address, e)
            flags.append(EvidenceFlag(
                id="source_check_failed",
                name="Source Verification Unavailable",
                severity=Severity.MEDIUM,
                description="Unable to verify contract source code via the block explorer API.",
                evidence="Explorer API request failed or timed out.",
                category="contract",
                source="BscScan",
                explorer_link=source_link,
                risk_weight=10,
            ))
            score += 10

        # Step 5: Outgoing activity (nonce)
        try:
            tx_count = await self.chain.get_transaction_count(address)
        except Exception as e:
            logger.warning("Nonce lookup failed for %s: %s", address, e)
            tx_count = None

        if tx_count == 0:
            flags.append(EvidenceFlag(
                id="no_outgoing_tx",
                name="No Outgoing Transactions",
                severity=Severity.LOW,
                description="Contract has zero outgoing transactions, suggesting it may be newly deployed or inactive.",
                evidence="Transaction count (nonce) is 0.",
                category="contract",
                source="RPC",
                explorer_link=address_link,
                risk_weight=5,
            ))
            score += 5

        logger.info(
            "Contract analysis for %s: verified=%s, flags=%d, score=%d",
            address, is_verified, len(flags), score,
        )

        return ContractAnalysis(
            is_contract=True,
            is_verified=is_verified,
            code_size=code_size,
            compiler_version=compiler_version,
            contract_name=contract_name,
            source_code_available=is_verified,
            flags=flags,
            score=clamp_score(score),
            detections=detections,
        )

    async def detect_proxy(self, address: str, code_hex: str) -> Tuple[bool, str]:
        """
        Detect if address is a proxy.
        Returns: (is_proxy, evidence)
        """
        code_hex = code_hex.lower()
        if any(pattern in code_hex for pattern in self.PROXY_BYTECODE_PATTERNS):
            return True, "EIP-1167 minimal proxy bytecode pattern detected in contract bytecode."

        try:
            implementation = await self.chain.get_implementation_address(address)
        except Exception:
            implementation = None

        if implementation:
            return True, f"EIP-1967 implementation slot points to {implementation}."

        return False, "No proxy pattern detected"

    def detect_source_patterns(self, source_code: str, source_link: Optional[str] = None) -> List[EvidenceFlag]:
        """Scan verified source for dangerous patterns, one flag per matched rule."""
        flags = []
        for pattern_id, name, pattern, severity, description in self.DANGEROUS_PATTERNS:
            match = pattern.search(source_code)
            if not match:
                continue

            snippet = match.group(0)[:SNIPPET_LENGTH].strip()
            if len(match.group(0)) > SNIPPET_LENGTH:
                snippet += "..."

            flags.append(EvidenceFlag(
                id=pattern_id,
                name=name,
                severity=severity,
                description=description,
                evidence="Pattern detected in verified source code.",
                category="contract",
                source="Source Code Analysis",
                code_snippet=snippet,
                explorer_link=source_link,
                risk_weight=SEVERITY_WEIGHTS[severity],
            ))
        return flags

    @staticmethod
    def _record_detection(detections: ContractDetections, pattern_id: str) -> None:
        if pattern_id == "owner_withdraw":
            detections.withdraw_functions = True
        if pattern_id in ("mint_function", "owner_mint"):
            detections.mint_functions = True
        if pattern_id == "selfdestruct":
            detections.self_destruct = True
        if pattern_id == "no_renounce":
            detections.no_renounce_ownership = True
        if pattern_id == "proxy_upgradeable":
            detections.upgradeability = True
            detections.proxy_pattern = True
        if pattern_id in ("blacklist", "hidden_transfer_logic", "pause_trading"):
            detections.honeypot_logic = True
        if pattern_id in ("fee_manipulation", "owner_withdraw"):
            detections.owner_privileges = True

    def degraded_result(self) -> ContractAnalysis:
        return ContractAnalysis(
            flags=[error_flag(
                "analysis_failed",
                "Contract Analysis Failed",
                Severity.MEDIUM,
                "Unable to complete contract analysis due to RPC or API error.",
                "Analysis module encountered an error during execution.",
                "contract",
                15,
            )],
            score=30,
        )
