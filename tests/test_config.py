import pytest

from insights import config as config_module
from insights.config import get_config, validate_supabase_url

ENV_VARS = [
    "SUPABASE_URL",
    "SUPABASE_ANON_KEY",
    "USE_SAMPLE_DATA",
    "CORS_ORIGINS",
    "LOG_LEVEL",
    "BACKEND_RETRY_ATTEMPTS",
    "BACKEND_RETRY_BASE_DELAY",
    "PASSWORD_RESET_REDIRECT_URL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config_module, "load_dotenv", lambda **kwargs: False)


def test_defaults_to_sample_data():
    cfg = get_config()
    assert cfg.supabase_configured is False
    assert cfg.use_sample_data is True
    assert cfg.retry_attempts == 3
    assert "http://localhost:3000" in cfg.cors_origins


def test_live_configuration(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://abc.supabase.co/")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("BACKEND_RETRY_ATTEMPTS", "0")
    monkeypatch.setenv("BACKEND_RETRY_BASE_DELAY", "bogus")
    cfg = get_config()
    assert cfg.supabase_url == "https://abc.supabase.co"
    assert cfg.use_sample_data is False
    assert cfg.cors_origins == ["https://a.example", "https://b.example"]
    assert cfg.log_level == "DEBUG"
    assert cfg.retry_attempts == 1
    assert cfg.retry_base_delay == 1.0


def test_sample_data_can_be_forced(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://abc.supabase.co")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
    monkeypatch.setenv("USE_SAMPLE_DATA", "true")
    assert get_config().use_sample_data is True


def test_validate_supabase_url():
    assert validate_supabase_url(None) is None
    assert validate_supabase_url("  ") is None
    assert validate_supabase_url("https://x.supabase.co//") == "https://x.supabase.co"
