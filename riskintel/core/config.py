"""
Configuration management using Pydantic settings.
Loads from environment variables with validation.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # RPC Endpoints
    bsc_rpc_url: str = "https://bsc-dataseed.binance.org/"
    registry_rpc_url: str = "https://data-seed-prebsc-1-s1.binance.org:8545/"

    # Block explorer (Etherscan-compatible)
    bscscan_api_url: str = "https://api.bscscan.com/api"
    bscscan_api_key: str = ""
    explorer_web_url: str = "https://bscscan.com"

    # Repository search
    github_api_url: str = "https://api.github.com"
    github_token: str = ""

    # HTTP timeouts (seconds)
    explorer_timeout: float = 10.0
    github_timeout: float = 8.0

    # DEX (PancakeSwap V2 on BNB Chain)
    dex_factory_address: str = "0xcA143Ce32Fe78f1f7019d7d551a6402fC5350c73"
    wrapped_native_address: str = "0xbb4CdB9CBd36B01bD1cBaEBF2De08d9173bc095c"
    native_symbol: str = "BNB"

    # On-chain risk registry
    registry_contract_address: str = "0x20B28a7b961a6d82222150905b0C01256607B5A3"
    analyzer_private_key: str = ""

    # Sentinel agent
    sentinel_enabled: bool = False
    sentinel_interval_seconds: float = 120.0
    sentinel_threshold: int = 70
    sentinel_max_alerts: int = 100
    sentinel_dedup_capacity: int = 10_000

    # Guardian agent
    guardian_enabled: bool = False
    guardian_threshold: int = 60

    # Cache settings
    risk_cache_ttl_seconds: int = 120
    risk_cache_max_entries: int = 1000

    # App settings
    app_name: str = "Risk Intelligence Engine"
    app_version: str = "1.0.0"
    log_level: str = "INFO"
    debug: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False
    )


settings = Settings()
