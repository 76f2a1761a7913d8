"""
Project transparency checks.
Public repository presence and health, audit mentions, team identity.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from riskintel.core.enums import Severity
from riskintel.core.models import (
    AuditInfo,
    EvidenceFlag,
    GitHubPresence,
    TransparencyAnalysis,
    clamp_score,
)
from riskintel.services.analyzer_base import BaseAnalyzer, error_flag
from riskintel.services.github_client import GitHubClient

logger = logging.getLogger("riskintel.services.transparency")

STALE_REPO_DAYS = 180

# lowercase match term -> display name
KNOWN_AUDITORS = {
    "certik": "CertiK",
    "slowmist": "SlowMist",
    "peckshield": "PeckShield",
    "hacken": "Hacken",
    "quantstamp": "Quantstamp",
    "openzeppelin": "OpenZeppelin",
    "trail of bits": "Trail of Bits",
    "consensys": "ConsenSys",
    "halborn": "Halborn",
    "solidproof": "SolidProof",
    "techrate": "TechRate",
    "interfi": "InterFi",
    "rugdoc": "RugDoc",
    "dessert finance": "Dessert Finance",
}

# Symbols that say nothing about the project
IGNORED_SYMBOLS = {"UNKNOWN", "BNB"}


def build_search_terms(address: str, token_symbol: Optional[str] = None,
                       contract_name: Optional[str] = None) -> List[str]:
    terms = []
    if token_symbol and token_symbol.upper() not in IGNORED_SYMBOLS:
        terms.append(f"{token_symbol} token bnb")
        terms.append(token_symbol)
    if contract_name:
        terms.append(contract_name)
    terms.append(address[:10])
    return terms


def find_auditor(readme: str) -> Optional[str]:
    content = readme.lower()
    for term, display_name in KNOWN_AUDITORS.items():
        if term in content:
            return display_name
    return None


class TransparencyChecker(BaseAnalyzer):
    """Scores how much of a project is publicly verifiable."""

    name = "transparency"

    def __init__(self, github: GitHubClient):
        self.github = github

    async def _analyze(self, address: str, token_symbol: Optional[str] = None,
                       contract_name: Optional[str] = None, **context) -> TransparencyAnalysis:
        flags: List[EvidenceFlag] = []
        score = 0
        github = GitHubPresence()
        audit = AuditInfo()
        full_name = None

        search_terms = build_search_terms(address, token_symbol, contract_name)

        for term in search_terms:
            try:
                repo = await self.github.search_repository(term)
            except Exception as e:
                logger.warning("Repository search for %r failed: %s", term, e)
                continue
            if not repo:
                continue

            full_name = repo.get("full_name")
            contributors = None
            if full_name:
                try:
                    contributors = await self.github.get_contributor_count(full_name)
                except Exception as e:
                    logger.warning("Contributor count for %s failed: %s", full_name, e)

            github = GitHubPresence(
                found=True,
                repo_url=repo.get("repo_url"),
                last_commit_date=repo.get("last_commit_date"),
                contributors_count=contributors,
                stars_count=repo.get("stars_count"),
            )
            break

        if github.found:
            score += self._score_repository(github, flags)
        else:
            flags.append(EvidenceFlag(
                id="no_github",
                name="No GitHub Repository Found",
                severity=Severity.MEDIUM,
                description="No public GitHub repository could be found for this project. Open-source code increases trust and verifiability.",
                evidence=f"Searched GitHub for: {', '.join(search_terms[:3])}. No matching repositories found.",
                category="transparency",
                source="GitHub",
                risk_weight=12,
            ))
            score += 12

        # Audit mentions in the README
        if github.found and full_name:
            try:
                readme = await self.github.get_readme(full_name)
            except Exception as e:
                logger.warning("README fetch for %s failed: %s", full_name, e)
                readme = None
            auditor = find_auditor(readme) if readme else None
            if auditor:
                audit = AuditInfo(detected=True, auditor_name=auditor)

        if not audit.detected:
            flags.append(EvidenceFlag(
                id="no_audit",
                name="No Audit Report Detected",
                severity=Severity.MEDIUM,
                description="No security audit report was found for this project. Unaudited contracts carry higher smart contract risk.",
                evidence="No known audit firm (CertiK, SlowMist, PeckShield, etc.) found in project materials.",
                category="transparency",
                source="GitHub",
                risk_weight=12,
            ))
            score += 12

        # There is no source for verified team identity
        flags.append(EvidenceFlag(
            id="team_not_doxxed",
            name="Team Identity Not Verified",
            severity=Severity.LOW,
            description="Team members have not been publicly identified (doxxed). Anonymous teams carry higher trust risk.",
            evidence="No verifiable team identity found in GitHub or project materials.",
            category="transparency",
            source="GitHub",
            risk_weight=8,
        ))
        score += 8

        logger.info(
            "Transparency analysis for %s: github=%s, audit=%s, score=%d",
            address, github.found, audit.detected, score,
        )

        return TransparencyAnalysis(
            flags=flags,
            score=clamp_score(score),
            github=github,
            audit=audit,
            team_doxxed=False,
        )

    @staticmethod
    def _score_repository(github: GitHubPresence, flags: List[EvidenceFlag]) -> int:
        score = 0

        if github.last_commit_date:
            last_commit = datetime.fromisoformat(github.last_commit_date.replace("Z", "+00:00"))
            days_since_commit = (datetime.now(timezone.utc) - last_commit).days
            if days_since_commit > STALE_REPO_DAYS:
                flags.append(EvidenceFlag(
                    id="stale_repo",
                    name="Stale GitHub Repository",
                    severity=Severity.MEDIUM,
                    description=f"Last commit was {days_since_commit} days ago. Project may be abandoned.",
                    evidence=f"GitHub repo last updated: {github.last_commit_date}",
                    category="transparency",
                    source="GitHub",
                    explorer_link=github.repo_url,
                    risk_weight=10,
                ))
                score += 10

        if github.contributors_count is not None and github.contributors_count <= 1:
            flags.append(EvidenceFlag(
                id="solo_dev",
                name="Single Developer",
                severity=Severity.MEDIUM,
                description="Only 1 contributor found on GitHub. Single-developer projects carry higher abandonment risk.",
                evidence=f"GitHub repository has {github.contributors_count} contributor(s).",
                category="transparency",
                source="GitHub",
                explorer_link=github.repo_url,
                risk_weight=8,
            ))
            score += 8

        if github.stars_count is not None and github.stars_count < 5:
            flags.append(EvidenceFlag(
                id="low_stars",
                name="Low Community Interest",
                severity=Severity.LOW,
                description="Repository has very few stars, indicating low community engagement.",
                evidence=f"GitHub repository has {github.stars_count} stars.",
                category="transparency",
                source="GitHub",
                explorer_link=github.repo_url,
                risk_weight=5,
            ))
            score += 5

        return score

    def degraded_result(self) -> TransparencyAnalysis:
        return TransparencyAnalysis(
            flags=[error_flag(
                "transparency_check_error",
                "Transparency Check Error",
                Severity.MEDIUM,
                "Unable to complete transparency checks.",
                "Repository search failed during transparency analysis.",
                "transparency",
                10,
            )],
            score=20,
        )
