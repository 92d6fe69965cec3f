"""OS keystore integration using keyring for optional session-token storage.

This module provides a tiny wrapper around `keyring` to store and retrieve
session token strings under a service/account pair. Use this only for opt-in
convenience storage; do not assume keyring provides hardware-backed security
on all platforms.
"""
from typing import Optional

from devicecrypt.core.exceptions import KeystoreError

try:
    import keyring
    from keyring.errors import KeyringError, PasswordDeleteError
except ImportError:
    keyring = None


def _require_keyring():
    if keyring is None:
        raise KeystoreError("keyring package is not available; install keyring to use keystore features")


def save_token(service: str, account: str, token: str) -> None:
    """Persist a session token string in the OS keystore under (service, account)."""
    _require_keyring()
    try:
        keyring.set_password(service, account, token)
    except KeyringError as e:
        raise KeystoreError(f"failed to store token in OS keystore: {e}") from e


def assess_keyring_backend() -> tuple[bool, str]:
    """Return (is_secure, message) describing the current keyring backend.

    Heuristics are used because the `keyring` package exposes different backends
    across platforms. If `keyring` is not available this returns (False, reason).
    """
    if keyring is None:
        return False, "keyring package is not installed"

    try:
        backend = keyring.get_keyring()
    except Exception as e:
        return False, f"failed to get keyring backend: {e}"

    name = backend.__class__.__name__
    priority = getattr(backend, "priority", None)

    insecure_indicators = ("Plaintext", "Uncrypted", "Null", "Fail", "File")
    if any(tok in name for tok in insecure_indicators):
        return False, f"insecure backend detected: {name}"

    if priority is not None and priority <= 0:
        return False, f"no suitable secure keyring backend available (priority={priority}, backend={name})"

    if "Win" in name or "Keychain" in name or "SecretService" in name or "KWallet" in name:
        return True, f"backend looks acceptable: {name} (priority={priority})"

    return True, f"unknown backend '{name}', treat with caution (priority={priority})"


def load_token(service: str, account: str) -> Optional[str]:
    """Load a persisted token from the OS keystore; returns None when absent."""
    _require_keyring()
    try:
        return keyring.get_password(service, account)
    except KeyringError as e:
        raise KeystoreError(f"failed to read token from OS keystore: {e}") from e


def delete_token(service: str, account: str) -> None:
    """Remove the token from the OS keystore; a missing entry is not an error."""
    _require_keyring()
    try:
        keyring.delete_password(service, account)
    except PasswordDeleteError:
        pass
