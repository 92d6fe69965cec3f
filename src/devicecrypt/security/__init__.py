"""Security helpers: device-bound key derivation, text encryption and session tokens.

This package provides:
- PBKDF2-based key derivation from a device identifier
- AES-256 text encryption (GCM by default, CBC for legacy data)
- signed, expiring session tokens validated without a server
- best-effort wiping of key buffers

Integrity checksums live in :mod:`devicecrypt.core.hashing`.
"""

from .kdf import generate_salt, derive_key
from .encryption import encrypt_data, decrypt_data
from .memory import secure_wipe
from .tokens import generate_session_token, validate_session_token, validate_session_token_async
from .session import SessionManager, get_session
from .keystore import save_token, load_token, delete_token

__all__ = [
    "generate_salt",
    "derive_key",
    "encrypt_data",
    "decrypt_data",
    "secure_wipe",
    "generate_session_token",
    "validate_session_token",
    "validate_session_token_async",
    "SessionManager",
    "get_session",
    "save_token",
    "load_token",
    "delete_token",
]
