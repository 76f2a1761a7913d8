"""
Core enums and types for the risk engine.
Defines severities, risk levels, and agent decision levels.
"""
from enum import Enum


class Severity(str, Enum):
    """Severity of a single evidence flag."""
    INFO = "info"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AddressType(str, Enum):
    """Inferred kind of the analyzed address."""
    WALLET = "wallet"
    CONTRACT = "contract"
    TOKEN = "token"


class RiskLevel(str, Enum):
    """Human label for an aggregate risk score."""
    VERY_LOW = "Very Low"     # < 20
    LOW = "Low"               # < 40
    MEDIUM = "Medium"         # < 60
    HIGH = "High"             # < 80
    VERY_HIGH = "Very High"   # >= 80


class DecisionLevel(str, Enum):
    """Action recommended by the decision engine."""
    ALLOW = "ALLOW"   # Safe to interact
    WARN = "WARN"     # Proceed with caution
    BLOCK = "BLOCK"   # Protection recommended


class DecisionConfidence(str, Enum):
    """Confidence derived from distance between score and threshold."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class OnChainRiskLevel(int, Enum):
    """Risk level enum stored by the registry contract."""
    LOW = 0      # score 0-33
    MEDIUM = 1   # score 34-66
    HIGH = 2     # score 67-100


# Score contribution of a source-code pattern by its severity
SEVERITY_WEIGHTS = {
    Severity.CRITICAL: 20,
    Severity.HIGH: 15,
    Severity.MEDIUM: 10,
    Severity.LOW: 5,
    Severity.INFO: 2,
}
