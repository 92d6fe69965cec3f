import base64
import logging
import os
from typing import Dict

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from devicecrypt.core.exceptions import CryptographicError, InvalidArgumentError

logger = logging.getLogger(__name__)

KEY_LENGTH = 32
DEFAULT_SALT_LENGTH = 32
# changing this invalidates every stored token and ciphertext
KEY_DERIVATION_ITERATIONS = 100_000


def generate_salt(length: int = DEFAULT_SALT_LENGTH) -> str:
    """Return ``length`` cryptographically secure random bytes as base64 text."""
    if length <= 0:
        raise InvalidArgumentError("salt length must be greater than 0")
    return base64.b64encode(os.urandom(length)).decode("ascii")


def derive_key(device_id: str, salt: str) -> bytearray:
    """
    Derive a 32-byte key bound to a device identifier using PBKDF2-HMAC-SHA256.

    Both arguments are used as UTF-8 text. The same (device_id, salt) pair
    always yields the same key; using a different salt per purpose keeps
    e.g. encryption and token-signing keys independent.

    The key is returned as a ``bytearray`` so the caller can pass it to
    :func:`devicecrypt.security.memory.secure_wipe` when done.
    """
    if device_id is None or not device_id.strip():
        raise InvalidArgumentError("device id must not be empty")
    if salt is None or not salt.strip():
        raise InvalidArgumentError("salt must not be empty")

    try:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_LENGTH,
            salt=salt.encode("utf-8"),
            iterations=KEY_DERIVATION_ITERATIONS,
        )
        key = bytearray(kdf.derive(device_id.encode("utf-8")))
    except Exception as exc:
        logger.error("key derivation failed: %s", exc)
        raise CryptographicError("key derivation failed") from exc

    logger.debug("derived device key")
    return key


def kdf_params_to_dict(salt: str) -> Dict:
    return {
        "algo": "pbkdf2-hmac-sha256",
        "salt": salt,
        "iterations": KEY_DERIVATION_ITERATIONS,
        "length": KEY_LENGTH,
    }
