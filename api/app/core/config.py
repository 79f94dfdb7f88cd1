from dataclasses import dataclass
from functools import lru_cache
from urllib.parse import urlparse

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "FDU_"


class Settings(BaseSettings):
    app_name: str = "fairdatause-intake-api"
    environment: str = "dev"
    database_url: str | None = None
    test_database_url: str | None = None
    database_pool_min_size: int = 1
    database_pool_max_size: int = 10
    database_command_timeout_seconds: float = 15.0
    managed_database_host_suffix: str = "neon.tech"
    reddit_client_id: str | None = None
    reddit_client_secret: str | None = None
    reddit_user_agent: str = "fairdatause-intake/0.1"
    reddit_token_url: str = "https://www.reddit.com/api/v1/access_token"
    reddit_api_base_url: str = "https://oauth.reddit.com"
    verification_timeout_seconds: float = 10.0
    ping_message: str = "ping"
    cors_allowed_origins: str = "*"
    otel_enabled: bool = True
    otel_service_name: str = "fairdatause-intake-api"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, extra="ignore")

    @property
    def is_test(self) -> bool:
        return self.environment == "test"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


@dataclass(slots=True, frozen=True)
class IntakeConfig:
    """Everything the intake flows read from the environment, resolved once."""

    connection_string: str | None
    connection_env_name: str
    use_encrypted_transport: bool
    identity_client_id: str | None
    identity_client_secret: str | None


def resolve_intake_config(settings: Settings) -> IntakeConfig:
    if settings.is_test:
        connection_string = settings.test_database_url
        connection_env_name = f"{ENV_PREFIX}TEST_DATABASE_URL"
    else:
        connection_string = settings.database_url
        connection_env_name = f"{ENV_PREFIX}DATABASE_URL"

    connection_string = connection_string.strip() if connection_string else None
    return IntakeConfig(
        connection_string=connection_string or None,
        connection_env_name=connection_env_name,
        use_encrypted_transport=is_managed_database_host(
            connection_string,
            suffix=settings.managed_database_host_suffix,
        ),
        identity_client_id=settings.reddit_client_id or None,
        identity_client_secret=settings.reddit_client_secret or None,
    )


def is_managed_database_host(connection_string: str | None, *, suffix: str) -> bool:
    if not connection_string or not suffix:
        return False
    try:
        host = urlparse(connection_string).hostname
    except ValueError:
        return False
    if not host:
        return False
    normalized_suffix = suffix.lower().lstrip(".")
    return host == normalized_suffix or host.endswith(f".{normalized_suffix}")


@lru_cache
def get_settings() -> Settings:
    return Settings()
