"""
Settings Module
===============

Pydantic-based configuration with environment variable loading.

Version: 0.1.0
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class BlockchainMode(str, Enum):
    """Blockchain operation mode."""

    MOCK = "mock"
    TESTNET = "testnet"
    MAINNET = "mainnet"


class ZKMode(str, Enum):
    """Proof verification backend."""

    MOCK = "mock"
    SNARKJS = "snarkjs"


class StoreBackend(str, Enum):
    """Packet and nullifier persistence backend."""

    MEMORY = "memory"
    REDIS = "redis"


class RedisSettings(BaseSettings):
    """Redis configuration."""

    model_config = SettingsConfigDict(env_prefix="REDIS_")

    host: str = "localhost"
    port: int = 6379
    password: SecretStr = SecretStr("redpacket_redis_password")
    db: int = 0

    @property
    def url(self) -> str:
        """Generate Redis connection URL."""
        pwd = self.password.get_secret_value()
        return f"redis://:{pwd}@{self.host}:{self.port}/{self.db}"


class PacketSettings(BaseSettings):
    """Packet protocol limits and persistence."""

    model_config = SettingsConfigDict(env_prefix="PACKET_")

    max_count: int = Field(default=100, ge=1)
    max_duration_seconds: int = Field(default=7 * 24 * 3600, ge=1)
    min_amount: int = Field(default=1, ge=1)
    max_tree_depth: int = Field(default=32, ge=0)

    # Process-wide pause flag, owned by operators
    paused: bool = False

    store: StoreBackend = StoreBackend.MEMORY
    redis_prefix: str = "redpacket"
    lock_timeout_seconds: int = Field(default=10, ge=1)


class ZKSettings(BaseSettings):
    """Zero-knowledge verification configuration."""

    model_config = SettingsConfigDict(env_prefix="ZK_")

    mode: ZKMode = ZKMode.MOCK
    build_dir: Path = Field(
        default_factory=lambda: Path(__file__).parent.parent.parent / "circuits" / "build"
    )
    claim_circuit: str = "redpacket_claim"
    # Must stay below packet.lock_timeout_seconds
    verify_timeout_seconds: int = Field(default=5, ge=1)


class BlockchainSettings(BaseSettings):
    """Blockchain integration configuration."""

    model_config = SettingsConfigDict(env_prefix="BLOCKCHAIN_")

    mode: BlockchainMode = BlockchainMode.MOCK

    escrow_address: str = "0x0000000000000000000000000000000000e5c0"


class JWTSettings(BaseSettings):
    """JWT authentication configuration."""

    model_config = SettingsConfigDict(env_prefix="JWT_")

    secret_key: SecretStr = SecretStr("your-jwt-secret-key-min-32-chars-long")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30


class CORSSettings(BaseSettings):
    """CORS configuration."""

    model_config = SettingsConfigDict(env_prefix="CORS_")

    origins: str = "http://localhost:3000,http://localhost:5173"
    allow_credentials: bool = True

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into list."""
        return [o.strip() for o in self.origins.split(",") if o.strip()]


class ServicePorts(BaseSettings):
    """Service port configuration."""

    packet: int = Field(default=8010, alias="PACKET_SERVICE_PORT")


class Settings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables with sensible defaults.
    Use the global `settings` singleton or call `get_settings()`.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # General
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = True
    log_level: LogLevel = LogLevel.INFO

    ports: ServicePorts = Field(default_factory=ServicePorts)

    # Protocol
    packet: PacketSettings = Field(default_factory=PacketSettings)
    zk: ZKSettings = Field(default_factory=ZKSettings)

    # Infrastructure
    redis: RedisSettings = Field(default_factory=RedisSettings)
    blockchain: BlockchainSettings = Field(default_factory=BlockchainSettings)

    # Authentication
    jwt: JWTSettings = Field(default_factory=JWTSettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Ensure log level is uppercase."""
        if isinstance(v, str):
            return LogLevel(v.upper())
        return v

    @model_validator(mode="after")
    def check_verify_within_lock(self) -> "Settings":
        """Proof verification has to finish while the packet lock is held."""
        if self.zk.verify_timeout_seconds >= self.packet.lock_timeout_seconds:
            raise ValueError(
                "ZK_VERIFY_TIMEOUT_SECONDS must be lower than PACKET_LOCK_TIMEOUT_SECONDS"
            )
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        """Check if running in test mode."""
        return self.environment == Environment.TESTING


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings singleton.
    """
    return Settings()
