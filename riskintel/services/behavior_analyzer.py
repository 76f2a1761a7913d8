"""
On-chain behavior analysis.
Looks at activity volume, balance, age, outflows, gas, clustering,
deployer history and DEX liquidity for an address.
"""
import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import List, Optional

from riskintel.core.config import settings
from riskintel.core.enums import Severity
from riskintel.core.models import (
    EvidenceFlag,
    OnChainBehaviorAnalysis,
    OnChainIndicator,
    OnChainMetrics,
    clamp_score,
)
from riskintel.services.analyzer_base import BaseAnalyzer, error_flag
from riskintel.services.chain_client import ChainClient, from_wei
from riskintel.services.explorer_client import ExplorerClient

logger = logging.getLogger("riskintel.services.behavior_analyzer")

SECONDS_PER_DAY = 86400
HIGH_GAS_THRESHOLD = 500_000
CLUSTERING_TX_PER_HOUR = 10


class OnChainBehaviorAnalyzer(BaseAnalyzer):
    """Scores an address from its observable on-chain activity."""

    name = "onchain"

    def __init__(self, chain: ChainClient, explorer: ExplorerClient, native_symbol: Optional[str] = None):
        self.chain = chain
        self.explorer = explorer
        self.native_symbol = native_symbol or settings.native_symbol

    async def _analyze(self, address: str, **context) -> OnChainBehaviorAnalysis:
        flags: List[EvidenceFlag] = []
        indicators: List[OnChainIndicator] = []
        metrics = OnChainMetrics()
        score = 0
        symbol = self.native_symbol
        link = self.explorer.address_url(address)

        balance_wei, tx_count, code = await asyncio.gather(
            self.chain.get_balance(address),
            self.chain.get_transaction_count(address),
            self.chain.get_code(address),
        )
        is_contract = bool(code)
        balance = from_wei(balance_wei)
        metrics.balance = str(balance)
        metrics.transaction_count = tx_count

        # Transaction count
        if tx_count == 0:
            indicators.append(OnChainIndicator(indicator="Transaction Count", evidence="0 transactions", risk_weight=30))
            flags.append(EvidenceFlag(
                id="zero_tx",
                name="Zero Transactions",
                severity=Severity.MEDIUM,
                description="Address has no transaction history.",
                evidence="RPC getTransactionCount returned 0.",
                category="onchain",
                source="RPC",
                explorer_link=link,
                risk_weight=15,
            ))
            score += 15
        elif tx_count < 5:
            indicators.append(OnChainIndicator(
                indicator="Transaction Count", evidence=f"{tx_count} transactions (very new)", risk_weight=20,
            ))
            score += 12
        elif tx_count < 20:
            indicators.append(OnChainIndicator(
                indicator="Transaction Count", evidence=f"{tx_count} transactions (limited history)", risk_weight=10,
            ))
            score += 8
        elif tx_count < 50:
            indicators.append(OnChainIndicator(
                indicator="Transaction Count", evidence=f"{tx_count} transactions (moderate)", risk_weight=5,
            ))
            score += 3
        else:
            indicators.append(OnChainIndicator(
                indicator="Transaction Count", evidence=f"{tx_count} transactions (established)", risk_weight=0,
            ))

        # Balance
        if balance == 0 and tx_count > 10:
            flags.append(EvidenceFlag(
                id="zero_balance_active",
                name="Zero Balance Despite Activity",
                severity=Severity.HIGH,
                description=f"Address has been active but currently holds 0 {symbol}. Funds may have been drained or moved.",
                evidence=f"Balance: 0 {symbol} with {tx_count} transactions recorded.",
                category="onchain",
                source="RPC",
                explorer_link=link,
                risk_weight=15,
            ))
            indicators.append(OnChainIndicator(
                indicator="Balance",
                evidence=f"0 {symbol} ({tx_count} tx recorded - possible drainer)",
                risk_weight=20,
            ))
            score += 15
        else:
            indicators.append(OnChainIndicator(indicator="Balance", evidence=f"{balance:.4f} {symbol}", risk_weight=0))

        # Age from the earliest known transaction
        try:
            first_txs = await self.explorer.get_transaction_list(address, page=1, offset=1, sort="asc")
            if first_txs:
                first_tx_time = int(first_txs[0]["timeStamp"])
                age_days = int((time.time() - first_tx_time) // SECONDS_PER_DAY)
                metrics.contract_age_days = age_days

                if age_days < 1:
                    indicators.append(OnChainIndicator(
                        indicator="Contract Age", evidence="Less than 1 day old", risk_weight=25,
                    ))
                    first_seen = datetime.fromtimestamp(first_tx_time, tz=timezone.utc).isoformat()
                    flags.append(EvidenceFlag(
                        id="brand_new",
                        name="Brand New Address",
                        severity=Severity.HIGH,
                        description="This address was first active less than 24 hours ago.",
                        evidence=f"First transaction timestamp: {first_seen}",
                        category="onchain",
                        source="BscScan",
                        explorer_link=link,
                        risk_weight=15,
                    ))
                    score += 15
                elif age_days < 7:
                    indicators.append(OnChainIndicator(
                        indicator="Contract Age", evidence=f"{age_days} days old", risk_weight=15,
                    ))
                    score += 10
                elif age_days < 30:
                    indicators.append(OnChainIndicator(
                        indicator="Contract Age", evidence=f"{age_days} days old", risk_weight=8,
                    ))
                    score += 5
                else:
                    indicators.append(OnChainIndicator(
                        indicator="Contract Age", evidence=f"{age_days} days old", risk_weight=0,
                    ))
        except Exception as e:
            logger.warning("Could not determine age for %s: %s", address, e)

        # Recent transaction patterns
        try:
            recent_txs = await self.explorer.get_transaction_list(address, page=1, offset=50)
            score += self._score_recent_activity(address, recent_txs, flags, indicators, link)
        except Exception as e:
            logger.warning("Could not analyze transactions for %s: %s", address, e)

        if is_contract:
            # Deployer history
            try:
                creation = await self.explorer.get_contract_creation([address])
                if creation:
                    deployer = creation[0]["contractCreator"]
                    indicators.append(OnChainIndicator(
                        indicator="Deployer", evidence=f"{deployer[:10]}...{deployer[-6:]}", risk_weight=0,
                    ))
                    deployer_tx_count = await self.chain.get_transaction_count(deployer)
                    if deployer_tx_count > 50:
                        flags.append(EvidenceFlag(
                            id="serial_deployer",
                            name="Serial Contract Deployer",
                            severity=Severity.MEDIUM,
                            description="The deployer wallet has a high transaction count, suggesting it may be a serial contract deployer (common in scam patterns).",
                            evidence=f"Deployer {deployer[:10]}... has {deployer_tx_count} transactions.",
                            category="onchain",
                            source="RPC",
                            explorer_link=self.explorer.address_url(deployer),
                            risk_weight=10,
                        ))
                        indicators.append(OnChainIndicator(
                            indicator="Deployer History",
                            evidence=f"{deployer_tx_count} tx (serial deployer risk)",
                            risk_weight=12,
                        ))
                        score += 8
                    else:
                        indicators.append(OnChainIndicator(
                            indicator="Deployer History", evidence=f"{deployer_tx_count} transactions", risk_weight=0,
                        ))
            except Exception as e:
                logger.warning("Could not check deployer for %s: %s", address, e)

            # Liquidity and DEX pair
            try:
                score += await self._score_liquidity(address, metrics, flags, indicators)
            except Exception as e:
                logger.warning("Could not check DEX data for %s: %s", address, e)

        # Suspicious combinations
        if tx_count > 100 and balance == 0:
            flags.append(EvidenceFlag(
                id="fund_drainer",
                name="Possible Fund Drainer",
                severity=Severity.CRITICAL,
                description="High transaction count with zero balance is a strong indicator of fund draining activity.",
                evidence=f"{tx_count} transactions with 0 {symbol} balance remaining.",
                category="onchain",
                source="RPC",
                explorer_link=link,
                risk_weight=20,
            ))
            score += 18

        if tx_count < 3 and balance > 10:
            flags.append(EvidenceFlag(
                id="fresh_large_balance",
                name="Fresh Wallet with Large Balance",
                severity=Severity.MEDIUM,
                description=f"New wallet holding significant {symbol}. Verify the source of funds.",
                evidence=f"Only {tx_count} transactions but holds {balance} {symbol}.",
                category="onchain",
                source="RPC",
                explorer_link=link,
                risk_weight=10,
            ))
            score += 8

        metrics.rug_pull_risk = clamp_score(metrics.rug_pull_risk)

        logger.info("On-chain behavior analysis for %s: score=%d, flags=%d", address, score, len(flags))

        return OnChainBehaviorAnalysis(
            flags=flags,
            indicators=indicators,
            score=clamp_score(score),
            metrics=metrics,
        )

    def _score_recent_activity(self, address, recent_txs, flags, indicators, link) -> int:
        """Outflows, gas usage and clustering over the most recent transactions."""
        if not recent_txs:
            return 0

        score = 0
        symbol = self.native_symbol
        lowered = address.lower()

        large_outflows = [
            tx for tx in recent_txs
            if (tx.get("from") or "").lower() == lowered and from_wei(int(tx.get("value") or 0)) > 1
        ]
        if len(large_outflows) > 5:
            flags.append(EvidenceFlag(
                id="many_large_outflows",
                name="Multiple Large Outflows",
                severity=Severity.HIGH,
                description=f"Multiple large {symbol} transfers detected from this address, suggesting fund distribution or draining.",
                evidence=f"{len(large_outflows)} outgoing transactions over 1 {symbol} in recent history.",
                category="onchain",
                source="BscScan",
                explorer_link=link,
                risk_weight=15,
            ))
            indicators.append(OnChainIndicator(
                indicator="Large Outflows", evidence=f"{len(large_outflows)} transfers > 1 {symbol}", risk_weight=15,
            ))
            score += 12

        gas_usages = [int(tx.get("gasUsed") or 0) for tx in recent_txs]
        gas_usages = [g for g in gas_usages if g > 0]
        if len(gas_usages) > 5:
            avg_gas = sum(gas_usages) / len(gas_usages)
            if avg_gas > HIGH_GAS_THRESHOLD:
                flags.append(EvidenceFlag(
                    id="high_gas_usage",
                    name="High Gas Usage",
                    severity=Severity.MEDIUM,
                    description="Transactions from this address consume unusually high gas, suggesting complex or obfuscated logic.",
                    evidence=f"Average gas usage: {round(avg_gas):,} per transaction.",
                    category="onchain",
                    source="BscScan",
                    explorer_link=link,
                    risk_weight=8,
                ))
                indicators.append(OnChainIndicator(
                    indicator="Gas Usage", evidence=f"Avg {round(avg_gas):,} gas (high)", risk_weight=10,
                ))
                score += 5
            else:
                indicators.append(OnChainIndicator(
                    indicator="Gas Usage", evidence=f"Avg {round(avg_gas):,} gas (normal)", risk_weight=0,
                ))

        if len(recent_txs) >= 10:
            timestamps = [int(tx["timeStamp"]) for tx in recent_txs]
            time_range = max(timestamps) - min(timestamps)
            tx_per_hour = len(recent_txs) / ((time_range / 3600) or 1)

            if tx_per_hour > CLUSTERING_TX_PER_HOUR:
                flags.append(EvidenceFlag(
                    id="tx_clustering",
                    name="Transaction Clustering",
                    severity=Severity.MEDIUM,
                    description="High frequency of transactions in a short timeframe, suggesting automated or bot-like behavior.",
                    evidence=f"{tx_per_hour:.1f} transactions per hour detected.",
                    category="onchain",
                    source="BscScan",
                    explorer_link=link,
                    risk_weight=10,
                ))
                indicators.append(OnChainIndicator(
                    indicator="Transaction Clustering", evidence=f"{tx_per_hour:.1f} tx/hour", risk_weight=10,
                ))
                score += 8

        return score

    async def _score_liquidity(self, address, metrics: OnChainMetrics, flags, indicators) -> int:
        """Pair liquidity and reserve balance against the wrapped native token."""
        symbol = self.native_symbol
        pair_address = await self.chain.get_pair(address)

        if not pair_address:
            flags.append(EvidenceFlag(
                id="no_dex_pair",
                name="No DEX Trading Pair",
                severity=Severity.MEDIUM,
                description="No DEX trading pair found for this token against the wrapped native asset. Cannot be traded on the primary DEX.",
                evidence="DEX factory getPair returned zero address.",
                category="onchain",
                source="PancakeSwap",
                risk_weight=12,
            ))
            indicators.append(OnChainIndicator(indicator="DEX Pair", evidence="Not found on DEX", risk_weight=15))
            metrics.rug_pull_risk += 20
            return 10

        score = 0
        metrics.has_dex_pair = True

        try:
            metrics.token_symbol = await self.chain.get_token_symbol(address)
        except Exception as e:
            logger.debug("Token symbol unavailable for %s: %s", address, e)

        reserve0, reserve1, token0 = await self.chain.get_pair_reserves(pair_address)
        native_is_token0 = token0.lower() == self.chain.wrapped_native_address.lower()
        native_reserve = reserve0 if native_is_token0 else reserve1
        token_reserve = reserve1 if native_is_token0 else reserve0

        liquidity = from_wei(native_reserve)
        metrics.liquidity_native = f"{liquidity:.4f}"

        if liquidity < 1:
            flags.append(EvidenceFlag(
                id="low_liquidity",
                name="Very Low Liquidity",
                severity=Severity.HIGH,
                description=f"Less than 1 {symbol} in the DEX liquidity pool. Extremely high slippage and rug pull risk.",
                evidence=f"DEX pair has {liquidity:.4f} {symbol} in reserves.",
                category="onchain",
                source="PancakeSwap",
                explorer_link=self.explorer.address_url(pair_address),
                risk_weight=20,
            ))
            indicators.append(OnChainIndicator(
                indicator=f"Liquidity ({symbol})", evidence=f"{liquidity:.4f} {symbol} (critical)", risk_weight=25,
            ))
            score += 18
            metrics.rug_pull_risk += 30
        elif liquidity < 10:
            indicators.append(OnChainIndicator(
                indicator=f"Liquidity ({symbol})", evidence=f"{liquidity:.2f} {symbol} (low)", risk_weight=15,
            ))
            score += 10
            metrics.rug_pull_risk += 15
        elif liquidity < 50:
            indicators.append(OnChainIndicator(
                indicator=f"Liquidity ({symbol})", evidence=f"{liquidity:.2f} {symbol} (moderate)", risk_weight=5,
            ))
            score += 3
            metrics.rug_pull_risk += 5
        else:
            indicators.append(OnChainIndicator(
                indicator=f"Liquidity ({symbol})", evidence=f"{liquidity:.2f} {symbol} (healthy)", risk_weight=0,
            ))

        try:
            decimals = await self.chain.get_token_decimals(address)
        except Exception:
            decimals = 18

        token_value = from_wei(token_reserve, decimals)
        total_value = liquidity + token_value
        if total_value > 0:
            ratio = liquidity / total_value
            if ratio < 0.2 or ratio > 0.8:
                flags.append(EvidenceFlag(
                    id="imbalanced_pool",
                    name="Severely Imbalanced Pool",
                    severity=Severity.HIGH,
                    description="Liquidity pool reserves are severely imbalanced, indicating possible manipulation or imminent rug pull.",
                    evidence=f"{symbol} ratio in pool: {ratio * 100:.1f}% (expected ~50%).",
                    category="onchain",
                    source="PancakeSwap",
                    risk_weight=15,
                ))
                indicators.append(OnChainIndicator(
                    indicator="Pool Balance",
                    evidence=f"{ratio * 100:.1f}% {symbol} ratio (severely imbalanced)",
                    risk_weight=18,
                ))
                score += 12
                metrics.rug_pull_risk += 20
            elif ratio < 0.35 or ratio > 0.65:
                indicators.append(OnChainIndicator(
                    indicator="Pool Balance", evidence=f"{ratio * 100:.1f}% {symbol} ratio (imbalanced)", risk_weight=8,
                ))
                score += 5
                metrics.rug_pull_risk += 10
            else:
                indicators.append(OnChainIndicator(
                    indicator="Pool Balance", evidence=f"{ratio * 100:.1f}% {symbol} ratio (balanced)", risk_weight=0,
                ))

        return score

    def degraded_result(self) -> OnChainBehaviorAnalysis:
        return OnChainBehaviorAnalysis(
            flags=[error_flag(
                "analysis_error",
                "Analysis Error",
                Severity.MEDIUM,
                "On-chain behavior analysis could not be completed.",
                "RPC or API connection failed during analysis.",
                "onchain",
                10,
            )],
            score=30,
        )
