"""
config.py — Service Configuration

All settings come from the environment (or a local `.env` file) and are
loaded once at startup into a `Settings` object that is handed to every
component. Missing secrets are a fatal startup error outside of managed
production hosting, where the platform injects them.
"""

from decimal import Decimal
from typing import List, Optional

from pydantic import SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError
from .logging_config import get_logger

log = get_logger(__name__)

PROCESSOR_API_URLS = {
    "production": "https://api.payabli.com",
    "sandbox": "https://api-sandbox.payabli.com",
}
PROCESSOR_COMPONENT_URLS = {
    "production": "https://embedded-component.payabli.com/component.js",
    "sandbox": "https://embedded-component-sandbox.payabli.com/component.js",
}

REQUIRED_SECRETS = (
    "processor_public_token",
    "processor_api_key",
    "processor_entry_point",
    "checkout_hash_secret",
)


class Settings(BaseSettings):
    app_env: str = "development"

    processor_env: str = "sandbox"
    processor_public_token: Optional[str] = None
    processor_api_key: Optional[str] = None
    processor_entry_point: Optional[str] = None
    processor_timeout_seconds: float = 30.0

    checkout_hash_secret: Optional[SecretStr] = None
    session_max_age_ms: int = 30 * 60 * 1000
    amount_tolerance: Decimal = Decimal("0.01")

    port: int = 3000
    log_file: Optional[str] = None

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def processor_base_url(self) -> str:
        key = "production" if self.processor_env == "production" else "sandbox"
        return PROCESSOR_API_URLS[key]

    @property
    def processor_component_url(self) -> str:
        key = "production" if self.processor_env == "production" else "sandbox"
        return PROCESSOR_COMPONENT_URLS[key]

    @property
    def hash_secret(self) -> bytes:
        if self.checkout_hash_secret is None:
            return b""
        return self.checkout_hash_secret.get_secret_value().encode("utf-8")

    def missing_secrets(self) -> List[str]:
        missing = []
        for name in REQUIRED_SECRETS:
            value = getattr(self, name)
            if isinstance(value, SecretStr):
                value = value.get_secret_value()
            if not value:
                missing.append(name.upper())
        return missing


def load_settings(**overrides) -> Settings:
    """
    Builds the settings from the environment and validates required secrets.

    Raises:
        ConfigurationError: If the environment is malformed or, outside of
            production, a required secret is missing.
    """
    try:
        settings = Settings(**overrides)
    except ValidationError as e:
        log.critical(f"Invalid configuration: {e}")
        raise ConfigurationError(str(e)) from e

    if not settings.is_production:
        missing = settings.missing_secrets()
        if missing:
            for name in missing:
                log.critical(f"Missing required environment variable: {name}")
            raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")

    return settings
