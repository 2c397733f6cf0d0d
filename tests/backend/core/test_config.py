import pytest

from backend.core import config


def test_get_bool_reads_common_truthy_values() -> None:
    assert config._get_bool(' Yes ') is True
    assert config._get_bool('0') is False
    assert config._get_bool(None, default=True) is True


def test_get_list_splits_and_trims() -> None:
    assert config._get_list('http://a.test, ,http://b.test ', []) == ['http://a.test', 'http://b.test']
    assert config._get_list(None, ['fallback']) == ['fallback']


def test_validate_runtime_config_rejects_default_secret_in_production(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'APP_ENV', 'production')
    monkeypatch.setattr(config, 'JWT_SECRET_KEY', 'change-me')

    with pytest.raises(RuntimeError):
        config.validate_runtime_config()


def test_validate_runtime_config_rejects_non_positive_rate_limit(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'BOOKING_RATE_LIMIT_MAX', 0)

    with pytest.raises(RuntimeError):
        config.validate_runtime_config()


def test_validate_runtime_config_accepts_development_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'APP_ENV', 'development')

    config.validate_runtime_config()
