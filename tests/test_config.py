from decimal import Decimal

import pytest

from checkout_service.config import Settings, load_settings
from checkout_service.errors import ConfigurationError

ENV_VARS = (
    "APP_ENV",
    "PROCESSOR_ENV",
    "PROCESSOR_PUBLIC_TOKEN",
    "PROCESSOR_API_KEY",
    "PROCESSOR_ENTRY_POINT",
    "CHECKOUT_HASH_SECRET",
    "SESSION_MAX_AGE_MS",
    "PORT",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(settings):
    assert settings.session_max_age_ms == 30 * 60 * 1000
    assert settings.amount_tolerance == Decimal("0.01")
    assert settings.processor_timeout_seconds == 30.0
    assert settings.port == 3000
    assert settings.processor_base_url == "https://api-sandbox.payabli.com"


def test_production_processor_urls(settings):
    prod = settings.model_copy(update={"processor_env": "production"})
    assert prod.processor_base_url == "https://api.payabli.com"
    assert prod.processor_component_url == "https://embedded-component.payabli.com/component.js"


def test_hash_secret_is_not_serialized(settings):
    assert "test-hash-secret" not in settings.model_dump_json()
    assert settings.hash_secret == b"test-hash-secret"


def test_load_settings_from_environment(clean_env):
    clean_env.setenv("PROCESSOR_PUBLIC_TOKEN", "pk")
    clean_env.setenv("PROCESSOR_API_KEY", "sk")
    clean_env.setenv("PROCESSOR_ENTRY_POINT", "entry")
    clean_env.setenv("CHECKOUT_HASH_SECRET", "s3cret")
    clean_env.setenv("SESSION_MAX_AGE_MS", "60000")

    settings = load_settings()
    assert settings.processor_api_key == "sk"
    assert settings.session_max_age_ms == 60000


def test_missing_secrets_are_fatal_outside_production(clean_env):
    clean_env.setenv("PROCESSOR_PUBLIC_TOKEN", "pk")

    with pytest.raises(ConfigurationError) as excinfo:
        load_settings()
    message = str(excinfo.value)
    assert "PROCESSOR_API_KEY" in message
    assert "CHECKOUT_HASH_SECRET" in message
    assert "PROCESSOR_PUBLIC_TOKEN" not in message


def test_production_does_not_check_secrets_at_load(clean_env):
    clean_env.setenv("APP_ENV", "production")
    settings = load_settings()
    assert settings.is_production
    assert settings.missing_secrets() == [
        "PROCESSOR_PUBLIC_TOKEN", "PROCESSOR_API_KEY", "PROCESSOR_ENTRY_POINT", "CHECKOUT_HASH_SECRET",
    ]


def test_malformed_environment(clean_env):
    clean_env.setenv("SESSION_MAX_AGE_MS", "soon")
    with pytest.raises(ConfigurationError):
        load_settings()


def test_settings_read_dotenv_file(clean_env, tmp_path):
    (tmp_path / ".env").write_text("CHECKOUT_HASH_SECRET=from-file\nPORT=8080\n")
    settings = Settings()
    assert settings.hash_secret == b"from-file"
    assert settings.port == 8080
