"""Configuration system using pydantic-settings with environment variable loading."""

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ChainSettings(BaseSettings):
    """RPC endpoints per chain id.

    CHAIN_RPC_URLS is parsed as JSON, e.g. '{"1": "https://...", "42161": "https://..."}'.
    """

    model_config = SettingsConfigDict(env_prefix="CHAIN_")

    rpc_urls: dict[str, str] = {}
    request_timeout_seconds: float = 30.0

    def rpc_url_for(self, chain_id: int) -> str | None:
        """Return the configured RPC URL for a chain id, if any."""
        return self.rpc_urls.get(str(chain_id))


class BackfillSettings(BaseSettings):
    """Historical backfill walk and adaptive batch sizing.

    All fields configurable via BACKFILL_ environment variable prefix.
    """

    model_config = SettingsConfigDict(env_prefix="BACKFILL_")

    networks: list[int] = [1]
    lookback_months: int = 4
    initial_batch_size: int = 100  # blocks per eth_getLogs request at start
    min_batch_size: int = 1
    max_batch_size: int = 10_000
    batch_delay_seconds: float = 2.0  # courtesy pause between batches
    max_capacity_retries_at_min: int = 5  # skip a range after this many consecutive capacity errors at min size
    eta_window: int = 10  # batches in the rolling ETA average
    warm_token_metadata: bool = True

    @field_validator("lookback_months")
    @classmethod
    def _positive_months(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("lookback_months must be positive")
        return value

    @model_validator(mode="after")
    def _check_batch_bounds(self) -> "BackfillSettings":
        if self.min_batch_size < 1:
            raise ValueError("min_batch_size must be at least 1")
        if self.min_batch_size > self.max_batch_size:
            raise ValueError("min_batch_size must not exceed max_batch_size")
        if not self.min_batch_size <= self.initial_batch_size <= self.max_batch_size:
            raise ValueError("initial_batch_size must lie within [min_batch_size, max_batch_size]")
        return self


class StorageSettings(BaseSettings):
    """Per-network SQLite files and cache lifetime."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    data_dir: str = "data"
    cache_ttl_seconds: int = 24 * 60 * 60


class TradeApiSettings(BaseSettings):
    """Order API access. base_url overrides the per-network default when set."""

    model_config = SettingsConfigDict(env_prefix="TRADE_API_")

    base_url: str | None = None
    timeout_seconds: float = 15.0


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: str = "console"  # "json" or "console", env LOG_FORMAT
    chain: ChainSettings = ChainSettings()
    backfill: BackfillSettings = BackfillSettings()
    storage: StorageSettings = StorageSettings()
    trade_api: TradeApiSettings = TradeApiSettings()
