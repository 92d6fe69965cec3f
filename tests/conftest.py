"""Shared pytest fixtures."""

import pytest

from devicecrypt.security import kdf


@pytest.fixture
def fast_kdf(monkeypatch):
    """Lower the PBKDF2 iteration count for tests that only need *a* key, not the production cost."""
    monkeypatch.setattr(kdf, "KEY_DERIVATION_ITERATIONS", 1000)
    yield


@pytest.fixture
def device_key(fast_kdf):
    """A freshly derived 32-byte key for the example device."""
    return kdf.derive_key("DESKTOP-ABC-001", "salt-A")
