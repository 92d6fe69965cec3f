"""
Unit tests for the keystore module.
"""

import pytest
from unittest.mock import MagicMock, patch

from keyring.errors import KeyringError, PasswordDeleteError

from devicecrypt.core.exceptions import KeystoreError
from devicecrypt.security import keystore


# ==============================================================================
# Fixtures
# ==============================================================================

@pytest.fixture
def mock_keyring_lib():
    """Patches the keyring module within devicecrypt.security.keystore."""
    with patch("devicecrypt.security.keystore.keyring", autospec=True) as mock_lib:
        yield mock_lib


@pytest.fixture
def no_keyring_lib():
    """Simulates keyring not being installed."""
    with patch("devicecrypt.security.keystore.keyring", None):
        yield


# ==============================================================================
# Tests: Dependency availability
# ==============================================================================

def test_operations_raise_if_keyring_missing(no_keyring_lib):
    with pytest.raises(KeystoreError, match="keyring package is not available"):
        keystore.save_token("service", "user", "token")

    with pytest.raises(KeystoreError, match="keyring package is not available"):
        keystore.load_token("service", "user")

    with pytest.raises(KeystoreError, match="keyring package is not available"):
        keystore.delete_token("service", "user")


def test_keystore_error_is_runtime_error(no_keyring_lib):
    with pytest.raises(RuntimeError):
        keystore.load_token("service", "user")


def test_assess_backend_returns_false_if_missing(no_keyring_lib):
    is_secure, msg = keystore.assess_keyring_backend()
    assert is_secure is False
    assert "not installed" in msg


# ==============================================================================
# Tests: Save / load / delete
# ==============================================================================

def test_save_token_stores_string(mock_keyring_lib):
    keystore.save_token("devicecrypt", "alice", "dG9rZW4=")
    mock_keyring_lib.set_password.assert_called_once_with("devicecrypt", "alice", "dG9rZW4=")


def test_save_token_wraps_backend_error(mock_keyring_lib):
    mock_keyring_lib.set_password.side_effect = KeyringError("locked")
    with pytest.raises(KeystoreError, match="failed to store token"):
        keystore.save_token("svc", "usr", "tok")


def test_load_token_returns_stored_string(mock_keyring_lib):
    mock_keyring_lib.get_password.return_value = "stored-token"
    assert keystore.load_token("svc", "usr") == "stored-token"
    mock_keyring_lib.get_password.assert_called_once_with("svc", "usr")


def test_load_token_returns_none_if_missing(mock_keyring_lib):
    mock_keyring_lib.get_password.return_value = None
    assert keystore.load_token("svc", "usr") is None


def test_load_token_wraps_backend_error(mock_keyring_lib):
    mock_keyring_lib.get_password.side_effect = KeyringError("dbus down")
    with pytest.raises(KeystoreError, match="failed to read token"):
        keystore.load_token("svc", "usr")


def test_delete_token(mock_keyring_lib):
    keystore.delete_token("svc", "usr")
    mock_keyring_lib.delete_password.assert_called_once_with("svc", "usr")


def test_delete_missing_token_is_ignored(mock_keyring_lib):
    mock_keyring_lib.delete_password.side_effect = PasswordDeleteError("not found")
    keystore.delete_token("svc", "usr")


# ==============================================================================
# Tests: Backend assessment
# ==============================================================================

def _backend(name, priority=1):
    backend = MagicMock()
    backend.__class__.__name__ = name
    backend.priority = priority
    return backend


def test_assess_backend_lookup_failure(mock_keyring_lib):
    mock_keyring_lib.get_keyring.side_effect = Exception("no backend")
    is_secure, msg = keystore.assess_keyring_backend()
    assert is_secure is False
    assert "failed to get keyring backend" in msg


@pytest.mark.parametrize("name", ["PlaintextKeyring", "EncryptedFileKeyring", "NullKeyring", "FailKeyring"])
def test_assess_backend_insecure_names(mock_keyring_lib, name):
    mock_keyring_lib.get_keyring.return_value = _backend(name)
    is_secure, msg = keystore.assess_keyring_backend()
    assert is_secure is False
    assert "insecure backend detected" in msg


def test_assess_backend_low_priority(mock_keyring_lib):
    mock_keyring_lib.get_keyring.return_value = _backend("SomeGenericBackend", priority=0)
    is_secure, msg = keystore.assess_keyring_backend()
    assert is_secure is False
    assert "no suitable secure keyring backend" in msg


@pytest.mark.parametrize("name", ["KeychainKeyring", "WinVaultKeyring", "SecretServiceKeyring", "KWalletKeyring"])
def test_assess_backend_secure_names(mock_keyring_lib, name):
    mock_keyring_lib.get_keyring.return_value = _backend(name)
    is_secure, msg = keystore.assess_keyring_backend()
    assert is_secure is True
    assert "looks acceptable" in msg


def test_assess_backend_unknown_but_high_priority(mock_keyring_lib):
    mock_keyring_lib.get_keyring.return_value = _backend("HardwareTokenKeyring", priority=5)
    is_secure, msg = keystore.assess_keyring_backend()
    assert is_secure is True
    assert "treat with caution" in msg
