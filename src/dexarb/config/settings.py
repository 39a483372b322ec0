"""
Application settings with environment variable support.

Uses Pydantic Settings for type-safe configuration with automatic
environment variable loading and validation.
"""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dexarb.config.constants import (
    DEFAULT_BRIDGE_COST,
    DEFAULT_CYCLE_TOLERANCE,
    DEFAULT_DECIMALS,
    DEFAULT_FEE_PER_THOUSAND,
    DEFAULT_FEE_RATE,
    DEFAULT_NODE_URL,
    DEFAULT_TRADE_AMOUNT,
    METRICS_REPORT_INTERVAL,
)


class PairConfig(BaseModel):
    """A monitored trading pair as configured by the operator."""

    address: str
    asset1: str
    asset2: str
    venue: str = "UniswapV2"
    decimals1: int = Field(default=DEFAULT_DECIMALS, ge=0, le=36)
    decimals2: int = Field(default=DEFAULT_DECIMALS, ge=0, le=36)
    fee_per_thousand: int = Field(default=DEFAULT_FEE_PER_THOUSAND, ge=0, lt=1000)

    @model_validator(mode="after")
    def validate_assets(self) -> "PairConfig":
        """A pair must trade two different assets."""
        if self.asset1 == self.asset2:
            raise ValueError(f"Pair {self.address} trades {self.asset1} against itself")
        return self


# asset1 is the pool's token0, asset2 its token1
DEFAULT_PAIRS: list[PairConfig] = [
    PairConfig(
        address="0x0d4a11d5EEaaC28EC3F61d100daF4d40471f1852",
        asset1="ETH", asset2="USDT", decimals2=6,
    ),
    PairConfig(
        address="0xa478c2975ab1ea89e8196811f51a7b7ade33eb11",
        asset1="DAI", asset2="ETH",
    ),
    PairConfig(
        address="0x004375Dff511095CC5A197A54140a24eFEF3A416",
        asset1="WBTC", asset2="USDC", decimals1=8, decimals2=6,
    ),
    PairConfig(
        address="0xb4e16d0168e52d35cacd2c6185b44281ec28c9dc",
        asset1="USDC", asset2="ETH", decimals1=6,
    ),
    PairConfig(
        address="0x517f9dd285e75b599234f7221227339478d0fcc8",
        asset1="DAI", asset2="MKR",
    ),
    PairConfig(
        address="0xbb2b8038a1640196fbe3e38816f3e67cba72d940",
        asset1="WBTC", asset2="ETH", decimals1=8,
    ),
    PairConfig(
        address="0x06da0fd433c1a5d7a4faa01111c044910a184553",
        asset1="ETH", asset2="USDT", venue="SushiSwap", decimals2=6,
    ),
]


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    The pair roster is read from ``PAIRS`` as a JSON list.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Node Connectivity
    # =========================================================================

    node_url: str = Field(
        default=DEFAULT_NODE_URL,
        description="Websocket JSON-RPC endpoint of an Ethereum node",
    )

    sender_address: str = Field(
        default="",
        description="Node-managed account that submits swap transactions",
    )

    # =========================================================================
    # Market Roster
    # =========================================================================

    pairs: list[PairConfig] = Field(
        default_factory=lambda: list(DEFAULT_PAIRS),
        description="Trading pairs to monitor",
    )

    # =========================================================================
    # Detection
    # =========================================================================

    fee_rate: float = Field(
        default=DEFAULT_FEE_RATE,
        ge=0.0,
        lt=1.0,
        description="Extra fee deducted from every pair hop (e.g., 0.001 = 0.1%)",
    )

    bridge_cost: float = Field(
        default=DEFAULT_BRIDGE_COST,
        ge=0.0,
        description="Edge cost of moving an asset between venues",
    )

    tolerance: float = Field(
        default=DEFAULT_CYCLE_TOLERANCE,
        ge=0.0,
        le=0.01,
        description="Minimum cycle weight below zero before reporting",
    )

    # =========================================================================
    # Execution
    # =========================================================================

    trade_amount: float = Field(
        default=DEFAULT_TRADE_AMOUNT,
        gt=0.0,
        description="Units of the starting asset sent around each loop",
    )

    dry_run: bool = Field(
        default=True,
        description="Simulate trades without sending transactions",
    )

    simulate: bool = Field(
        default=False,
        description="Use simulated pairs instead of a live node",
    )

    # =========================================================================
    # Operation
    # =========================================================================

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )

    use_uvloop: bool = Field(
        default=True,
        description="Use uvloop for improved async performance",
    )

    report_interval: float = Field(
        default=METRICS_REPORT_INTERVAL,
        gt=0.0,
        description="Seconds between status reports",
    )

    show_status: bool = Field(
        default=True,
        description="Redraw the status panel every report_interval seconds",
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("pairs", mode="after")
    @classmethod
    def validate_pairs(cls, v: list[PairConfig]) -> list[PairConfig]:
        """Ensure the roster is non-empty and has no duplicate pools."""
        if not v:
            raise ValueError("At least one pair must be configured")
        seen: set[tuple[str, str]] = set()
        for pair in v:
            key = (pair.venue, pair.address.lower())
            if key in seen:
                raise ValueError(f"Duplicate pair {pair.address} on {pair.venue}")
            seen.add(key)
        return v

    @model_validator(mode="after")
    def validate_live_trading(self) -> "Settings":
        """Live trading needs an account to send transactions from."""
        if not self.dry_run and not self.simulate and not self.sender_address:
            raise ValueError("sender_address is required when dry_run is disabled")
        return self

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def venues(self) -> set[str]:
        """Venues present in the roster."""
        return {pair.venue for pair in self.pairs}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are loaded only once.
    Clear cache with `get_settings.cache_clear()` if needed.
    """
    return Settings()
