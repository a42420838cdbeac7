"""
Tests for configuration validation
"""
import pytest
from pydantic import ValidationError
from app.core.config import Settings


def _settings(**overrides):
    values = {
        "DATABASE_URL": "postgresql://test",
        "JWT_SECRET_KEY": "test-key",
    }
    values.update(overrides)
    return Settings(**values)


def test_prod_settings_rejects_wildcard_origins():
    settings = _settings(JWT_SECRET_KEY="a" * 32, APP_ENV="prod", ALLOWED_ORIGINS="*")
    
    with pytest.raises(ValueError, match="ALLOWED_ORIGINS"):
        settings.validate_production()


def test_prod_settings_rejects_short_jwt_secret():
    settings = _settings(JWT_SECRET_KEY="short", APP_ENV="prod", ALLOWED_ORIGINS="https://example.com")
    
    with pytest.raises(ValueError, match="JWT_SECRET_KEY"):
        settings.validate_production()


def test_local_settings_allows_wildcard_origins():
    settings = _settings(APP_ENV="local", ALLOWED_ORIGINS="*")
    
    settings.validate_production()
    assert settings.get_allowed_origins_list() == ["*"]


def test_get_allowed_origins_list():
    settings = _settings(ALLOWED_ORIGINS="https://example.com, https://app.example.com")
    
    origins = settings.get_allowed_origins_list()
    assert origins == ["https://example.com", "https://app.example.com"]


def test_invalid_app_env_rejected():
    with pytest.raises(ValidationError):
        _settings(APP_ENV="production")


def test_log_level_is_upper_cased():
    assert _settings(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"


def test_pto_engine_defaults():
    settings = _settings()
    
    assert settings.PTO_FALLBACK_APPROVER_ID is None
    assert settings.PTO_FALLBACK_APPROVER_ROLE == "ADMIN"
    assert settings.BLACKOUT_LIMIT_LOCKING is True
    assert "blackout" in settings.DEFAULT_OVERRIDE_DENIAL_REASON.lower()


def test_fallback_role_normalized():
    assert _settings(PTO_FALLBACK_APPROVER_ROLE=" hr ").PTO_FALLBACK_APPROVER_ROLE == "HR"
