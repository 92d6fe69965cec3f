"""
Symmetric encryption of local text with a device-derived key.

Wire format (both modes): ``base64(iv[16] || ciphertext)``

- ``CipherMode.GCM`` (default): AES-256-GCM with a 16-byte random nonce in the
  IV slot; the 16-byte tag is appended to the ciphertext, so any modified byte
  (IV included) makes decryption fail.
- ``CipherMode.CBC``: AES-256-CBC with PKCS#7 padding. Kept for reading and
  writing data produced by the earlier CBC-only format. It has no integrity
  protection of its own; pair it with :mod:`devicecrypt.core.hashing`.

Empty input maps to empty output in both directions without touching a cipher.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from devicecrypt.core.exceptions import CryptographicError, InvalidArgumentError
from devicecrypt.core.models import CipherMode

logger = logging.getLogger(__name__)

KEY_SIZE = 32
IV_SIZE = 16


def _check_key(key: bytes) -> bytes:
    if key is not None and not isinstance(key, (bytes, bytearray, memoryview)):
        raise InvalidArgumentError(f"key must be bytes, not {type(key).__name__}")
    if key is None or len(key) != KEY_SIZE:
        raise InvalidArgumentError("key length must be 32 bytes (256 bits)")
    return bytes(key)


# ----------------------------------------------------------------------
# Per-mode primitives (raw bytes in, raw bytes out)
# ----------------------------------------------------------------------


def _encrypt_cbc(key: bytes, iv: bytes, plain: bytes) -> bytes:
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(plain) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    return encryptor.update(padded) + encryptor.finalize()


def _decrypt_cbc(key: bytes, iv: bytes, ct: bytes) -> bytes:
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(ct) + decryptor.finalize()
    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    return unpadder.update(padded) + unpadder.finalize()


def _encrypt_gcm(key: bytes, iv: bytes, plain: bytes) -> bytes:
    return AESGCM(key).encrypt(iv, plain, None)


def _decrypt_gcm(key: bytes, iv: bytes, ct: bytes) -> bytes:
    return AESGCM(key).decrypt(iv, ct, None)


_ENCRYPTORS = {CipherMode.GCM: _encrypt_gcm, CipherMode.CBC: _encrypt_cbc}
_DECRYPTORS = {CipherMode.GCM: _decrypt_gcm, CipherMode.CBC: _decrypt_cbc}


# ----------------------------------------------------------------------
# Text API
# ----------------------------------------------------------------------


def encrypt_data(plain_text: str, key: bytes, mode: CipherMode | str = CipherMode.GCM) -> str:
    """Encrypt UTF-8 text and return ``base64(iv || ciphertext)``."""
    if not plain_text:
        return ""

    key = _check_key(key)
    mode = CipherMode.parse(mode)

    try:
        iv = os.urandom(IV_SIZE)
        ct = _ENCRYPTORS[mode](key, iv, plain_text.encode("utf-8"))
    except Exception as exc:
        logger.error("encryption failed (%s): %s", mode.value, exc)
        raise CryptographicError("data encryption failed") from exc

    logger.debug("encrypted %d characters (%s)", len(plain_text), mode.value)
    return base64.b64encode(iv + ct).decode("ascii")


def decrypt_data(cipher_text: str, key: bytes, mode: CipherMode | str = CipherMode.GCM) -> str:
    """
    Decrypt the output of :func:`encrypt_data`.

    Raises ``InvalidArgumentError`` for a bad key length or a blob too short
    to hold an IV, and ``CryptographicError`` when the blob is not base64 or
    the key/ciphertext pair does not decrypt cleanly.
    """
    if not cipher_text:
        return ""

    key = _check_key(key)
    mode = CipherMode.parse(mode)

    try:
        blob = base64.b64decode(cipher_text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise CryptographicError("encrypted data is not valid base64") from exc

    if len(blob) < IV_SIZE:
        raise InvalidArgumentError("encrypted data is too short to contain an IV")

    iv, ct = blob[:IV_SIZE], blob[IV_SIZE:]
    try:
        plain = _DECRYPTORS[mode](key, iv, ct)
        result = plain.decode("utf-8")
    except (InvalidTag, ValueError) as exc:
        # ValueError covers bad padding, bad block length and undecodable UTF-8
        logger.error("decryption failed (%s): %s", mode.value, type(exc).__name__)
        raise CryptographicError("data decryption failed") from exc

    logger.debug("decrypted %d bytes (%s)", len(blob), mode.value)
    return result
