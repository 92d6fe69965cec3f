"""Self-contained signed session tokens bound to a user and a device.

Token string layout::

    base64(json({"Data": base64(payload_json),
                 "Signature": base64(hmac_sha256(payload_json, key)),
                 "Salt": salt}))

The signing key is never stored. It is re-derived at validation time from the
*expected* machine id and the salt carried in the token, so a token presented
on another device fails the signature check exactly like a forged one.
Each issuance uses a fresh salt and token id, so two tokens for the same
arguments never compare equal.
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import logging
from datetime import datetime, timezone

from devicecrypt.core.exceptions import CryptographicError, InvalidArgumentError
from devicecrypt.core.models import (
    SessionTokenPayload,
    SignedToken,
    TokenValidationResult,
    utc_now,
)
from .kdf import derive_key, generate_salt
from .memory import secure_wipe

logger = logging.getLogger(__name__)

REASON_EMPTY = "token is empty"
REASON_FORMAT = "token format invalid"
REASON_SIGNATURE = "signature invalid"
REASON_DATA = "token data invalid"
REASON_MISMATCH = "user or machine id mismatch"
REASON_EXPIRED = "token expired"


def _b64encode(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def _b64decode(text: str) -> bytes:
    return base64.b64decode(text, validate=True)


def _sign(machine_id: str, salt: str, data: bytes) -> bytes:
    key = derive_key(machine_id, salt)
    try:
        return hmac.new(bytes(key), data, hashlib.sha256).digest()
    finally:
        secure_wipe(key)


def generate_session_token(user_id: str, machine_id: str, expiration_time: datetime) -> str:
    """
    Issue a signed token for ``user_id`` on ``machine_id`` valid until ``expiration_time``.

    Naive datetimes are interpreted as local time and converted to UTC.
    """
    if user_id is None or not user_id.strip():
        raise InvalidArgumentError("user id must not be empty")
    if machine_id is None or not machine_id.strip():
        raise InvalidArgumentError("machine id must not be empty")
    if not isinstance(expiration_time, datetime):
        raise InvalidArgumentError("expiration time must be a datetime")

    try:
        payload = SessionTokenPayload(
            user_id=user_id,
            machine_id=machine_id,
            expiration_time=expiration_time.astimezone(timezone.utc),
        )
        payload_bytes = json.dumps(payload.to_dict(), separators=(",", ":")).encode("utf-8")

        salt = generate_salt()
        signature = _sign(machine_id, salt, payload_bytes)

        signed = SignedToken(
            data=_b64encode(payload_bytes),
            signature=_b64encode(signature),
            salt=salt,
        )
        token = _b64encode(json.dumps(signed.to_dict(), separators=(",", ":")).encode("utf-8"))
    except Exception as exc:
        logger.error("session token generation failed for user %s: %s", user_id, exc)
        raise CryptographicError("session token generation failed") from exc

    logger.debug("issued session token %s for user %s", payload.token_id, user_id)
    return token


def _decode_envelope(token: str) -> SignedToken:
    raw = _b64decode(token.strip())
    return SignedToken.from_dict(json.loads(raw.decode("utf-8")))


def validate_session_token(
    token: str, expected_user_id: str, expected_machine_id: str
) -> TokenValidationResult:
    """
    Check a token against the user and machine it is expected to belong to.

    Never raises: every negative outcome, including unexpected internal
    errors, comes back as an invalid :class:`TokenValidationResult`.
    """
    if token is None or not str(token).strip():
        return TokenValidationResult.invalid(REASON_EMPTY)

    try:
        try:
            signed = _decode_envelope(token)
            data_bytes = _b64decode(signed.data)
            expected_signature = _b64decode(signed.signature)
        except (binascii.Error, UnicodeDecodeError, ValueError, TypeError, AttributeError):
            return TokenValidationResult.invalid(REASON_FORMAT)

        actual_signature = _sign(expected_machine_id, signed.salt, data_bytes)
        if not hmac.compare_digest(actual_signature, expected_signature):
            logger.warning("session token signature check failed for user %s", expected_user_id)
            return TokenValidationResult.invalid(REASON_SIGNATURE)

        try:
            payload = SessionTokenPayload.from_dict(json.loads(data_bytes.decode("utf-8")))
        except (UnicodeDecodeError, ValueError, KeyError, TypeError):
            return TokenValidationResult.invalid(REASON_DATA)

        if payload.user_id != expected_user_id or payload.machine_id != expected_machine_id:
            logger.warning(
                "session token identity mismatch: expected user %s, token user %s",
                expected_user_id,
                payload.user_id,
            )
            return TokenValidationResult.invalid(REASON_MISMATCH)

        if utc_now() > payload.expiration_time:
            logger.debug("session token %s expired at %s", payload.token_id, payload.expiration_time)
            return TokenValidationResult.expired(payload, REASON_EXPIRED)

        logger.debug("session token %s valid for user %s", payload.token_id, payload.user_id)
        return TokenValidationResult.valid(payload)
    except Exception as exc:
        logger.error("session token validation error for user %s: %s", expected_user_id, exc)
        return TokenValidationResult.invalid(f"token validation error: {exc}")


async def validate_session_token_async(
    token: str, expected_user_id: str, expected_machine_id: str
) -> TokenValidationResult:
    # no I/O involved; the coroutine form exists for asyncio callers
    return validate_session_token(token, expected_user_id, expected_machine_id)
