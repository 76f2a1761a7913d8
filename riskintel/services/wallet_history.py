"""
Wallet history checks.
Deployed contracts, linked rugpulls, and fund flow patterns.
"""
import asyncio
import logging
import time
from typing import List, Optional

from riskintel.core.config import settings
from riskintel.core.enums import Severity
from riskintel.core.models import EvidenceFlag, WalletHistoryAnalysis, clamp_score
from riskintel.services.analyzer_base import BaseAnalyzer, error_flag
from riskintel.services.chain_client import ChainClient, from_wei
from riskintel.services.explorer_client import ExplorerClient

logger = logging.getLogger("riskintel.services.wallet_history")

HISTORY_PAGE_SIZE = 100
MAX_DEPLOYMENTS_CHECKED = 5


def _short(address: str) -> str:
    return f"{address[:10]}...{address[-6:]}"


class WalletHistoryChecker(BaseAnalyzer):
    """Looks for scam-operator patterns in an address's own history."""

    name = "wallet"

    def __init__(self, chain: ChainClient, explorer: ExplorerClient, native_symbol: Optional[str] = None):
        self.chain = chain
        self.explorer = explorer
        self.native_symbol = native_symbol or settings.native_symbol

    async def _analyze(self, address: str, **context) -> WalletHistoryAnalysis:
        flags: List[EvidenceFlag] = []
        deployed_contracts: List[str] = []
        linked_rugpulls: List[str] = []
        score = 0
        symbol = self.native_symbol
        link = self.explorer.address_url(address)
        lowered = address.lower()

        balance_wei, tx_count, code = await asyncio.gather(
            self.chain.get_balance(address),
            self.chain.get_transaction_count(address),
            self.chain.get_code(address),
        )

        # Rough age when the explorer has nothing
        age_in_days = min(tx_count // 2, 365)

        tx_list = []
        try:
            tx_list = await self.explorer.get_transaction_list(address, page=1, offset=HISTORY_PAGE_SIZE)
            timestamps = [int(tx["timeStamp"]) for tx in tx_list if int(tx.get("timeStamp") or 0) > 0]
            if timestamps:
                age_in_days = int((time.time() - min(timestamps)) // 86400)
        except Exception as e:
            logger.warning("Could not fetch tx list for wallet history of %s: %s", address, e)

        # Creation transactions have no recipient
        for tx in tx_list:
            if (tx.get("from") or "").lower() == lowered and not tx.get("to") and tx.get("contractAddress"):
                deployed_contracts.append(tx["contractAddress"])

        count = len(deployed_contracts)
        if count > 10:
            first_five = ", ".join(c[:10] + "..." for c in deployed_contracts[:5])
            flags.append(EvidenceFlag(
                id="mass_deployer",
                name="Mass Contract Deployer",
                severity=Severity.HIGH,
                description=f"This wallet has deployed {count} contracts. Mass deployment is a common pattern in rugpull and scam token operations.",
                evidence=f"{count} contract creation transactions found. First 5: {first_five}",
                category="wallet",
                source="BscScan",
                explorer_link=link,
                risk_weight=20,
            ))
            score += 20
        elif count > 3:
            flags.append(EvidenceFlag(
                id="multi_deployer",
                name="Multiple Contract Deployments",
                severity=Severity.MEDIUM,
                description=f"Wallet has deployed {count} contracts. Multiple deployments may indicate testing or serial token launches.",
                evidence=f"{count} contract creation transactions detected.",
                category="wallet",
                source="BscScan",
                explorer_link=link,
                risk_weight=10,
            ))
            score += 10
        elif count > 0:
            flags.append(EvidenceFlag(
                id="contract_deployer",
                name="Contract Deployer",
                severity=Severity.INFO,
                description=f"Wallet has deployed {count} contract(s).",
                evidence=f"{count} contract creation transaction(s) found.",
                category="wallet",
                source="BscScan",
                explorer_link=link,
                risk_weight=2,
            ))

        # A deployment that no longer has bytecode was self-destructed
        for contract_address in deployed_contracts[:MAX_DEPLOYMENTS_CHECKED]:
            try:
                contract_code = await self.chain.get_code(contract_address)
            except Exception as e:
                logger.debug("Skipping deployed contract %s: %s", contract_address, e)
                continue

            if not contract_code:
                linked_rugpulls.append(contract_address)
                flags.append(EvidenceFlag(
                    id=f"destroyed_{contract_address}",
                    name="Linked Destroyed Contract",
                    severity=Severity.CRITICAL,
                    description="A contract previously deployed by this wallet has been self-destructed, a common rugpull exit strategy.",
                    evidence=f"Contract {_short(contract_address)} deployed by this wallet no longer has bytecode.",
                    category="wallet",
                    source="RPC",
                    explorer_link=self.explorer.address_url(contract_address),
                    risk_weight=20,
                ))
                score += 18

        # Fund flow
        total_inflow = 0.0
        total_outflow = 0.0
        recipients = set()
        senders = set()
        for tx in tx_list:
            value = from_wei(int(tx.get("value") or 0))
            sender = (tx.get("from") or "").lower()
            recipient = (tx.get("to") or "").lower()
            if sender == lowered:
                total_outflow += value
                if recipient:
                    recipients.add(recipient)
            if recipient and recipient == lowered:
                total_inflow += value
                senders.add(sender)

        fund_flow_summary = (
            f"Inflow: {total_inflow:.4f} {symbol} from {len(senders)} sources | "
            f"Outflow: {total_outflow:.4f} {symbol} to {len(recipients)} recipients"
        )

        if len(senders) > 10 and len(recipients) <= 2 and total_outflow > total_inflow * 0.8:
            outflow_pct = total_outflow / (total_inflow or 1) * 100
            flags.append(EvidenceFlag(
                id="funnel_pattern",
                name="Fund Funneling Pattern",
                severity=Severity.CRITICAL,
                description="Wallet receives from many addresses but sends to very few. This is a classic scam collection wallet pattern.",
                evidence=(
                    f"Received from {len(senders)} addresses, sent to only {len(recipients)}. "
                    f"Outflow {total_outflow:.2f} {symbol} ≈ {outflow_pct:.0f}% of inflow."
                ),
                category="wallet",
                source="BscScan",
                explorer_link=link,
                risk_weight=20,
            ))
            score += 20

        if len(tx_list) >= 20:
            timestamps = [int(tx["timeStamp"]) for tx in tx_list if int(tx.get("timeStamp") or 0) > 0]
            if len(timestamps) >= 2:
                hours_span = (max(timestamps) - min(timestamps)) / 3600
                if 0 < hours_span < 24 and total_outflow > 5:
                    flags.append(EvidenceFlag(
                        id="rapid_movement",
                        name="Rapid Fund Movement",
                        severity=Severity.HIGH,
                        description=f"Large amounts of {symbol} moved within a short timeframe, suggesting urgency to transfer funds.",
                        evidence=f"{total_outflow:.2f} {symbol} moved across {len(tx_list)} transactions in {hours_span:.1f} hours.",
                        category="wallet",
                        source="BscScan",
                        explorer_link=link,
                        risk_weight=15,
                    ))
                    score += 12

        if age_in_days < 7 and tx_count < 5 and total_inflow > 0 and total_outflow == 0:
            flags.append(EvidenceFlag(
                id="new_inbound_only",
                name="New Wallet (Inbound Only)",
                severity=Severity.LOW,
                description="Recently created wallet that has only received funds, no outgoing activity yet.",
                evidence=f"{age_in_days} days old, {tx_count} tx, {total_inflow:.4f} {symbol} received, 0 {symbol} sent.",
                category="wallet",
                source="BscScan",
                explorer_link=link,
                risk_weight=5,
            ))
            score += 5

        logger.info(
            "Wallet history analysis for %s: score=%d, deployed=%d, rugpulls=%d",
            address, score, len(deployed_contracts), len(linked_rugpulls),
        )

        return WalletHistoryAnalysis(
            flags=flags,
            score=clamp_score(score),
            deployed_contracts=deployed_contracts,
            linked_rugpulls=linked_rugpulls,
            fund_flow_summary=fund_flow_summary,
            is_contract=bool(code),
            transaction_count=tx_count,
            age_in_days=age_in_days,
            balance=str(from_wei(balance_wei)),
        )

    def degraded_result(self) -> WalletHistoryAnalysis:
        return WalletHistoryAnalysis(
            flags=[error_flag(
                "wallet_analysis_error",
                "Wallet Analysis Error",
                Severity.MEDIUM,
                "Unable to complete wallet history analysis.",
                "RPC or API connection failed during wallet history check.",
                "wallet",
                10,
            )],
            score=20,
            fund_flow_summary="Analysis failed",
        )
