"""
Scam database checks.
Matches an address, its deployer and its deployments against curated
in-process registries.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from riskintel.core.enums import Severity
from riskintel.core.models import EvidenceFlag, ScamDatabaseAnalysis, clamp_score
from riskintel.services.analyzer_base import BaseAnalyzer, error_flag

logger = logging.getLogger("riskintel.services.scam_database")

SUSPICIOUS_PREFIXES = ("00000000", "deadbeef", "ffffffff")


@dataclass(frozen=True)
class ScamEntry:
    name: str
    type: str
    source: str


# Keys are lowercase addresses
KNOWN_SCAM_ADDRESSES: Dict[str, ScamEntry] = {
    "0x0000000000000000000000000000000000000001": ScamEntry("Test Scam", "rugpull", "Internal"),
}


def _lowered(addresses: Optional[Iterable[str]]) -> set:
    return {a.lower() for a in (addresses or ())}


class ScamDatabaseChecker(BaseAnalyzer):
    """Registry lookups. No I/O; registries are fixed at construction."""

    name = "scam_database"

    def __init__(
        self,
        known_scams: Optional[Dict[str, ScamEntry]] = None,
        scam_deployers: Optional[Iterable[str]] = None,
        honeypots: Optional[Iterable[str]] = None,
        community_blacklist: Optional[Iterable[str]] = None,
    ):
        scams = KNOWN_SCAM_ADDRESSES if known_scams is None else known_scams
        self.known_scams = {address.lower(): entry for address, entry in scams.items()}
        self.scam_deployers = _lowered(scam_deployers)
        self.honeypots = _lowered(honeypots)
        self.community_blacklist = _lowered(community_blacklist)

    async def _analyze(self, address: str, deployer_address: Optional[str] = None,
                       deployed_contracts: Optional[List[str]] = None, **context) -> ScamDatabaseAnalysis:
        flags: List[EvidenceFlag] = []
        matched_database: List[str] = []
        score = 0
        is_blacklisted = False
        known_scam = False
        rugpull_history = False

        normalized = address.lower()

        entry = self.known_scams.get(normalized)
        if entry:
            known_scam = True
            matched_database.append(f"Internal Scam DB: {entry.name}")
            flags.append(EvidenceFlag(
                id="known_scam",
                name="Known Scam Address",
                severity=Severity.CRITICAL,
                description=f'This address is listed in the scam database as "{entry.name}" ({entry.type}).',
                evidence=f"Matched in {entry.source} database. Classification: {entry.type}.",
                category="scam",
                source=entry.source,
                risk_weight=30,
            ))
            score += 30

        if deployer_address and deployer_address.lower() in self.scam_deployers:
            known_scam = True
            matched_database.append("Known Scam Deployer Registry")
            flags.append(EvidenceFlag(
                id="scam_deployer",
                name="Deployed by Known Scam Wallet",
                severity=Severity.CRITICAL,
                description="The wallet that deployed this contract is flagged as a known scam deployer.",
                evidence=f"Deployer {deployer_address[:10]}... is in the scam deployer registry.",
                category="scam",
                source="Deployer Registry",
                risk_weight=25,
            ))
            score += 25

        if normalized in self.honeypots:
            is_blacklisted = True
            matched_database.append("Honeypot Registry")
            flags.append(EvidenceFlag(
                id="known_honeypot",
                name="Confirmed Honeypot",
                severity=Severity.CRITICAL,
                description="This contract is a confirmed honeypot - tokens can be bought but not sold.",
                evidence="Address matched in the honeypot contract registry.",
                category="scam",
                source="Honeypot Registry",
                risk_weight=30,
            ))
            score += 30

        if normalized in self.community_blacklist:
            is_blacklisted = True
            matched_database.append("Community Blacklist")
            flags.append(EvidenceFlag(
                id="community_blacklist",
                name="Community Blacklisted",
                severity=Severity.HIGH,
                description="This address has been reported and blacklisted by the community.",
                evidence="Address found in community-curated blacklist.",
                category="scam",
                source="Community Reports",
                risk_weight=20,
            ))
            score += 20

        # One linked rugpull is enough
        for contract_address in deployed_contracts or []:
            if contract_address.lower() in self.known_scams:
                rugpull_history = True
                matched_database.append(f"Linked Rugpull: {contract_address[:10]}...")
                flags.append(EvidenceFlag(
                    id=f"linked_rug_{contract_address[:8]}",
                    name="Linked to Known Rugpull",
                    severity=Severity.CRITICAL,
                    description="This address has deployed or is linked to a known rugpull contract.",
                    evidence=f"Deployed contract {contract_address[:10]}... is flagged as a rugpull.",
                    category="scam",
                    source="Internal",
                    risk_weight=25,
                ))
                score += 25
                break

        prefix = normalized[2:10]
        if prefix in SUSPICIOUS_PREFIXES:
            flags.append(EvidenceFlag(
                id="suspicious_prefix",
                name="Suspicious Address Pattern",
                severity=Severity.LOW,
                description="Address uses a vanity/generated prefix pattern sometimes associated with scam contracts.",
                evidence=f"Address prefix 0x{prefix} matches known suspicious pattern.",
                category="scam",
                source="Pattern Analysis",
                risk_weight=5,
            ))
            score += 5

        if not flags:
            flags.append(EvidenceFlag(
                id="clean_scam_check",
                name="No Scam Records Found",
                severity=Severity.INFO,
                description="This address was not found in any scam databases or blacklists checked.",
                evidence="Checked: Internal Scam DB, Honeypot Registry, Community Blacklist, Deployer Registry.",
                category="scam",
                source="Internal",
                risk_weight=0,
            ))

        logger.info(
            "Scam database check for %s: scam=%s, blacklisted=%s, score=%d",
            address, known_scam, is_blacklisted, score,
        )

        return ScamDatabaseAnalysis(
            flags=flags,
            score=clamp_score(score),
            is_blacklisted=is_blacklisted,
            known_scam=known_scam,
            rugpull_history=rugpull_history,
            matched_database=matched_database,
        )

    def degraded_result(self) -> ScamDatabaseAnalysis:
        return ScamDatabaseAnalysis(
            flags=[error_flag(
                "scam_check_error",
                "Scam Check Error",
                Severity.LOW,
                "Unable to complete scam database check.",
                "Database lookup encountered an error.",
                "scam",
                5,
            )],
            score=5,
        )
