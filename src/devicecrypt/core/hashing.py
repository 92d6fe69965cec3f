""" Keyed integrity checksums (HMAC-SHA256) for tamper detection. """

import base64
import hashlib
import hmac
import logging

from devicecrypt.core.exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)


def compute_hash(data: str, key: bytes) -> str:
    """
    Return base64(HMAC-SHA256(utf8(data), key)).

    Empty data yields an empty digest without hashing; the key is only
    checked when there is something to hash.
    """
    if not data:
        return ""
    if not key:
        raise InvalidArgumentError("integrity key must not be empty")
    if not isinstance(key, (bytes, bytearray, memoryview)):
        raise InvalidArgumentError(f"integrity key must be bytes, not {type(key).__name__}")

    mac = hmac.new(bytes(key), data.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(mac).decode("ascii")


def verify_integrity(data: str, digest: str, key: bytes) -> bool:
    # both empty is a vacuous match; any failure while recomputing counts as a mismatch
    if not data and not digest:
        return True
    if not digest:
        return False

    try:
        expected = compute_hash(data, key)
    except Exception as exc:
        logger.error("integrity verification failed: %s", exc)
        return False

    result = hmac.compare_digest(expected.encode("ascii"), digest.encode("utf-8"))
    logger.debug("integrity verification result: %s", result)
    return result
