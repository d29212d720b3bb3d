"""Runtime settings, read from the environment (and an optional `.env` file)."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


class Settings(BaseSettings):
    """Every tunable of the service. Field names map to upper-case env vars."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./pet_adoption.db",
        description="Async SQLAlchemy connection string (postgresql+asyncpg in production)",
    )

    # JWT
    jwt_secret_key: str = Field(min_length=32, description="Secret key for signing JWTs (minimum 32 characters)")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    jwt_access_token_expire_minutes: int = Field(
        default=60,
        description="Access token expiration in minutes",
        gt=0,
    )
    jwt_refresh_token_expire_days: int = Field(
        default=7,
        description="Refresh token expiration in days",
        gt=0,
    )
    bare_token_min_length: int = Field(
        default=20,
        description="Minimum length of a bearer token sent without the 'Bearer ' scheme",
        gt=0,
    )

    # Login attempts and account lockout
    login_window_minutes: int = Field(
        default=15,
        description="Sliding window for counting failed logins",
        gt=0,
    )
    login_max_attempts: int = Field(
        default=5,
        description="Failed logins allowed within the window before lockout",
        gt=0,
    )
    login_lockout_minutes: int = Field(
        default=30,
        description="Lockout applied after too many failed logins",
        gt=0,
    )
    account_lockout_max_minutes: int = Field(
        default=24 * 60,
        description="Upper bound for the progressive (doubling) account lockout",
        gt=0,
    )

    # Throttled actions
    register_window_minutes: int = Field(default=60, description="Registration throttle window", gt=0)
    register_max_attempts: int = Field(default=3, description="Registrations per window per client", gt=0)
    token_window_minutes: int = Field(default=15, description="Window for counting rejected bearer tokens", gt=0)
    token_max_failures: int = Field(default=20, description="Rejected bearer tokens per window per client", gt=0)
    adoption_create_per_hour: int = Field(
        default=10,
        description="Adoption applications a client may submit per hour",
        gt=0,
    )
    adoption_update_per_hour: int = Field(
        default=50,
        description="Adoption status updates a reviewer may perform per hour",
        gt=0,
    )

    # Adoption workflow
    adoption_follow_up_days: int = Field(
        default=3,
        description="Days until the follow-up scheduled when a request enters review",
        gt=0,
    )
    adoption_min_rejection_reason_length: int = Field(
        default=10,
        description="Minimum length of a rejection reason",
        ge=1,
    )
    adoption_max_rereviews: int | None = Field(
        default=None,
        description="Maximum times a rejected request may be reopened (unbounded when unset)",
        ge=0,
    )

    # Logging
    log_level: str = Field(default="INFO", description="Minimum level for the console and file sinks")
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )

    # CORS
    cors_origins: str = Field(
        default="",
        description="Comma-separated list of allowed CORS origins (must be explicitly configured)",
    )
    cors_origin_regex: str = Field(
        default="",
        description="Regex pattern for allowed CORS origins",
    )

    # Environment
    environment: str = Field(
        default="production",
        description="Deployment environment name (e.g. production, dev, staging)",
    )

    # API
    api_v1_prefix: str = Field(default="/api/v1", description="Mount point of the versioned routes")
    rate_limit_per_minute: int = Field(
        default=200,
        description="Requests per minute a single client IP may make across the API",
        gt=0,
    )
    trusted_proxy_headers: str = Field(
        default="",
        description=(
            "Comma-separated headers carrying the client IP, in priority order. Only set behind a proxy that"
            " overwrites them; when empty the socket peer address is used"
        ),
    )

    @property
    def trusted_proxy_header_list(self) -> list[str]:
        """Header names consulted for the client IP, highest priority first."""
        return _split_csv(self.trusted_proxy_headers)

    @property
    def cors_origin_list(self) -> list[str]:
        return _split_csv(self.cors_origins)


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()  # type: ignore[call-arg]
