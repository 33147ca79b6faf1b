"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from web3 import Web3

from token_indexer.config.constants import (
    BSC_CHAIN_ID,
    DEFAULT_RPC_ENDPOINTS,
    FALLBACK_HOLDERS,
    FALLBACK_TOTAL_TRANSFERS,
    FRESHNESS_WINDOW_SECONDS,
    LOCATOR_CUSHION,
    LOCATOR_MAX_PROBES,
    LOCATOR_WINDOW,
    LOG_CHUNK_SIZE,
    RPC_CALL_TIMEOUT,
    TOKEN_CONTRACT_ADDRESS,
    TOP_HOLDERS_LIMIT,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Token
    token_contract_address: str = TOKEN_CONTRACT_ADDRESS
    chain_id: int = Field(default=BSC_CHAIN_ID, gt=0)

    # Blockchain RPC Providers (comma-separated, priority order)
    rpc_endpoints: str = ",".join(DEFAULT_RPC_ENDPOINTS)
    rpc_call_timeout: float = Field(
        default=RPC_CALL_TIMEOUT,
        gt=0,
        description="Per RPC call timeout in seconds"
    )

    # Scanning
    log_chunk_size: int = Field(
        default=LOG_CHUNK_SIZE,
        ge=1,
        le=50000,
        description="Maximum block span of a single eth_getLogs request"
    )
    locator_window: int = Field(
        default=LOCATOR_WINDOW,
        ge=1,
        description="Window size used by the first-activity binary search"
    )
    locator_cushion: int = Field(default=LOCATOR_CUSHION, ge=0)
    locator_max_probes: int = Field(default=LOCATOR_MAX_PROBES, ge=1)
    token_start_block: int | None = Field(
        default=None,
        ge=0,
        description="Known deployment block; skips the first-activity search"
    )

    # Cache
    freshness_window_seconds: float = Field(
        default=FRESHNESS_WINDOW_SECONDS,
        ge=0,
        description="Minimum time between two network-driven refreshes"
    )
    fallback_holders: int = Field(default=FALLBACK_HOLDERS, ge=0)
    fallback_transfers: int = Field(default=FALLBACK_TOTAL_TRANSFERS, ge=0)
    top_holders_limit: int = Field(default=TOP_HOLDERS_LIMIT, ge=0)
    warm_up_on_start: bool = Field(
        default=True,
        description="Bootstrap the ledger at startup instead of on first request"
    )

    # HTTP API
    api_host: str = "0.0.0.0"
    api_port: int = Field(
        default=8080, ge=1, le=65535, description="Stats HTTP server port"
    )

    # Application
    log_level: str = "INFO"
    log_file: str | None = "logs/indexer.log"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("token_contract_address")
    @classmethod
    def validate_contract_address(cls, v: str) -> str:
        """Validate token contract address format."""
        if not Web3.is_address(v):
            raise ValueError(
                f"Invalid token contract address: {v!r}. "
                "Expected 0x-prefixed 20-byte hex address."
            )
        return v

    @field_validator("rpc_endpoints")
    @classmethod
    def validate_rpc_endpoints(cls, v: str) -> str:
        """At least one http(s) endpoint is required."""
        urls = [u.strip() for u in v.split(",") if u.strip()]
        if not urls:
            raise ValueError("RPC_ENDPOINTS must contain at least one URL")
        for url in urls:
            if not url.startswith(("http://", "https://")):
                raise ValueError(f"RPC endpoint must be http(s): {url}")
        return ",".join(urls)

    @model_validator(mode="after")
    def warn_on_wide_chunks(self) -> "Settings":
        """Public BSC nodes reject eth_getLogs spans above ~5000 blocks."""
        if self.log_chunk_size > 5000:
            logger.warning(
                f"LOG_CHUNK_SIZE={self.log_chunk_size} exceeds the range "
                "most public BSC nodes accept; expect provider rotations"
            )
        return self

    @property
    def rpc_endpoint_list(self) -> list[str]:
        """RPC endpoints as an ordered list."""
        return self.rpc_endpoints.split(",")


settings = Settings()
