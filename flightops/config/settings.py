from typing import Optional
from urllib.parse import quote_plus

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseSettings):
    """Database configuration"""

    host: str = "localhost"
    port: int = 5432
    username: str = "postgres"
    password: SecretStr = Field(default=SecretStr("postgres"))
    database: str = "levant_flightops"
    dsn: Optional[str] = Field(
        default=None,
        description="Full SQLAlchemy URL; overrides the host/port/credential fields.",
    )
    serverless: bool = Field(
        default=True,
        description="If true, disable connection pooling so serverless DBs can pause.",
    )

    @property
    def url(self) -> str:
        """Get database URL"""
        if self.dsn:
            return self.dsn
        username = quote_plus(self.username)
        password = quote_plus(self.password.get_secret_value())
        return (
            "postgresql+asyncpg://"
            f"{username}:{password}"
            f"@{self.host}:{self.port}/{self.database}"
        )

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class SecurityConfig(BaseSettings):
    """JWT verification settings shared with the identity service."""

    jwt_secret_key: SecretStr = Field(
        default=SecretStr("change-me"),
        validation_alias="JWT_SECRET",
    )
    jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
    access_token_expires_minutes: int = Field(
        default=60,
        validation_alias="JWT_EXPIRATION_MINUTES",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class MaintenanceConfig(BaseSettings):
    """Grounding, repair and grading thresholds.

    Read by the adjudication engine and the economics ledger on every call so
    an administrator can hot-reload it without restarting the process.
    """

    grounded_threshold: float = Field(default=20.0, ge=0.0, le=100.0)
    repair_margin: float = Field(default=5.0, ge=0.0, le=100.0)
    repair_rate_per_percent: float = Field(default=100.0, ge=0.0)
    auto_reject_landing_rate: int = Field(default=-700, le=0)
    base_decay_per_flight: float = Field(default=0.5, ge=0.0)
    landing_penalty_soft_limit: int = Field(default=300, ge=0)
    landing_penalty_per_100fpm: float = Field(default=1.0, ge=0.0)

    model_config = SettingsConfigDict(
        env_prefix="MAINTENANCE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class EconomicsConfig(BaseSettings):
    """Revenue and expense rates applied at settlement."""

    passenger_yield_per_nm: float = 0.12
    cargo_yield_per_tonne_nm: float = 0.35
    fuel_price_per_kg: float = 0.85
    airport_fee_per_movement: float = 150.0
    pilot_wage_per_hour: float = 60.0
    initial_vault_balance: float = 500_000.0

    model_config = SettingsConfigDict(
        env_prefix="ECONOMICS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class OperationsConfig(BaseSettings):
    """Dispatch rules, timeouts and submission policy."""

    bid_ttl_hours: float = Field(default=24.0, gt=0)
    session_idle_minutes: float = Field(default=45.0, gt=0)
    reaper_interval_seconds: float = Field(default=300.0, gt=0)
    reaper_enabled: bool = True
    timezone: str = "Asia/Amman"
    tracker_domain: str = "tracker.ivao.aero"
    vfr_aircraft: list[str] = [
        "C172",
        "C152",
        "C150",
        "C182",
        "P28A",
        "PA28",
        "DR40",
        "C206",
        "PA18",
        "C208",
    ]
    restricted_aircraft: list[str] = ["A380", "A388", "380"]

    model_config = SettingsConfigDict(
        env_prefix="OPS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class SimBriefConfig(BaseSettings):
    """SimBrief OFP fetcher configuration."""

    base_url: str = "https://www.simbrief.com/api/xml.fetcher.php"
    timeout_seconds: float = 10.0

    model_config = SettingsConfigDict(
        env_prefix="SIMBRIEF_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Application settings"""

    app_name: str = "Levant VA Flight Operations"
    app_version: str = "1.0.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    log_file: str = "logs/app.log"
    adjudication_log_file: str = "logs/adjudication.log"

    # Database
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)

    # Security
    security: SecurityConfig = Field(default_factory=SecurityConfig)

    # Fleet maintenance and grading
    maintenance: MaintenanceConfig = Field(default_factory=MaintenanceConfig)

    # Settlement rates
    economics: EconomicsConfig = Field(default_factory=EconomicsConfig)

    # Dispatch and sessions
    operations: OperationsConfig = Field(default_factory=OperationsConfig)

    # SimBrief
    simbrief: SimBriefConfig = Field(default_factory=SimBriefConfig)

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()


def reload_maintenance_config() -> MaintenanceConfig:
    """Re-read the maintenance thresholds from the environment."""

    settings.maintenance = MaintenanceConfig()
    return settings.maintenance
