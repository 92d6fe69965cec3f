"""Unit tests for SecuritySettings."""

import pytest

from devicecrypt.core.exceptions import InvalidArgumentError
from devicecrypt.core.models import CipherMode
from devicecrypt.core.settings import SecuritySettings


def test_defaults_are_valid():
    settings = SecuritySettings()
    assert settings.session_timeout_minutes == 30
    assert settings.keyring_service == "devicecrypt"
    assert settings.cipher_mode is CipherMode.GCM
    assert settings.is_valid()
    assert settings.validate() is settings


@pytest.mark.parametrize("minutes", [0, -5, 1441])
def test_timeout_out_of_range(minutes):
    settings = SecuritySettings(session_timeout_minutes=minutes)
    assert not settings.is_valid()
    with pytest.raises(InvalidArgumentError, match="session timeout"):
        settings.validate()


@pytest.mark.parametrize("minutes", [1, 1440])
def test_timeout_bounds_inclusive(minutes):
    assert SecuritySettings(session_timeout_minutes=minutes).is_valid()


def test_blank_service_rejected():
    with pytest.raises(InvalidArgumentError, match="keyring service"):
        SecuritySettings(keyring_service="  ").validate()


def test_from_env_empty_gives_defaults():
    assert SecuritySettings.from_env({}) == SecuritySettings()


def test_from_env_reads_all_values():
    settings = SecuritySettings.from_env(
        {
            "DEVICECRYPT_SESSION_TIMEOUT_MINUTES": "90",
            "DEVICECRYPT_KEYRING_SERVICE": "my-app",
            "DEVICECRYPT_CIPHER_MODE": "CBC",
        }
    )
    assert settings.session_timeout_minutes == 90
    assert settings.keyring_service == "my-app"
    assert settings.cipher_mode is CipherMode.CBC


def test_from_env_uses_process_environment(monkeypatch):
    monkeypatch.setenv("DEVICECRYPT_SESSION_TIMEOUT_MINUTES", "15")
    assert SecuritySettings.from_env().session_timeout_minutes == 15


@pytest.mark.parametrize(
    "env,match",
    [
        ({"DEVICECRYPT_SESSION_TIMEOUT_MINUTES": "soon"}, "must be an integer"),
        ({"DEVICECRYPT_SESSION_TIMEOUT_MINUTES": "5000"}, "session timeout"),
        ({"DEVICECRYPT_CIPHER_MODE": "rot13"}, "unknown cipher mode"),
    ],
)
def test_from_env_rejects_bad_values(env, match):
    with pytest.raises(InvalidArgumentError, match=match):
        SecuritySettings.from_env(env)
