"""
Common shape of the evidence analyzers.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any

from riskintel.core.enums import Severity
from riskintel.core.models import EvidenceFlag

logger = logging.getLogger("riskintel.services.analyzers")


class BaseAnalyzer(ABC):
    """
    An analyzer turns one address (plus optional context) into a bounded
    score and a list of evidence flags.

    analyze() never raises: any fault inside _analyze() is logged and
    replaced by degraded_result(), a conservative non-zero score with a
    single error flag, so the aggregation pipeline always completes.
    """

    name: str = "analyzer"

    async def analyze(self, address: str, **context: Any):
        try:
            return await self._analyze(address, **context)
        except Exception as e:
            logger.error("%s failed for %s: %s", self.name, address, e, exc_info=True)
            return self.degraded_result()

    @abstractmethod
    async def _analyze(self, address: str, **context: Any):
        ...

    @abstractmethod
    def degraded_result(self):
        """Result returned when the analysis cannot complete."""


def error_flag(flag_id: str, name: str, severity: Severity, description: str,
               evidence: str, category: str, risk_weight: int) -> EvidenceFlag:
    return EvidenceFlag(
        id=flag_id,
        name=name,
        severity=severity,
        description=description,
        evidence=evidence,
        category=category,
        source="System",
        risk_weight=risk_weight,
    )
