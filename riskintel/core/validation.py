"""
Address validation helpers.
"""
from eth_utils import is_hex_address


def is_valid_address(address) -> bool:
    """True for a 0x-prefixed, 20-byte hex address (any letter case)."""
    if not address or not isinstance(address, str):
        return False
    candidate = address.strip()
    return candidate.startswith("0x") and is_hex_address(candidate)


def normalize_address(address: str) -> str:
    """Lowercase, checksum-less form used as cache and watchlist key."""
    return address.strip().lower()
