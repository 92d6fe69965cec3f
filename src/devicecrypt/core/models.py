"""
Value types shared by the token, session and audit code
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
import uuid

from devicecrypt.core.exceptions import InvalidArgumentError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render an aware or naive datetime as ISO-8601 UTC with a ``Z`` suffix."""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def parse_timestamp(text: str) -> datetime:
    """
    Parse an ISO-8601 UTC timestamp into an aware datetime.

    Accepts a ``Z`` or ``+00:00`` suffix, no suffix (read as UTC), and up to
    seven fractional digits; anything past microseconds is dropped.
    """
    if not isinstance(text, str) or not text:
        raise ValueError("timestamp must be a non-empty string")

    value = text.strip()
    if value.endswith("Z") or value.endswith("z"):
        value = value[:-1] + "+00:00"

    # split off a trailing offset so the fraction can be normalized
    offset = ""
    for sign in ("+", "-"):
        idx = value.rfind(sign)
        if idx > 10:
            value, offset = value[:idx], value[idx:]
            break

    if "." in value:
        base, fraction = value.split(".", 1)
        if not fraction.isdigit():
            raise ValueError(f"invalid fractional seconds in {text!r}")
        value = f"{base}.{fraction[:6].ljust(6, '0')}"

    parsed = datetime.fromisoformat(value + offset)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class CipherMode(Enum):
    GCM = "gcm"
    CBC = "cbc"

    @classmethod
    def parse(cls, value: "str | CipherMode") -> "CipherMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise InvalidArgumentError(f"unknown cipher mode {value!r}; expected 'gcm' or 'cbc'") from exc


# ----------------------------------------------------------------------
# Session tokens
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class SessionTokenPayload:
    # the signed body of a session token
    user_id: str
    machine_id: str
    expiration_time: datetime
    issued_at: datetime = field(default_factory=utc_now)
    token_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "UserId": self.user_id,
            "MachineId": self.machine_id,
            "ExpirationTime": format_timestamp(self.expiration_time),
            "IssuedAt": format_timestamp(self.issued_at),
            "TokenId": self.token_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionTokenPayload":
        """Rebuild a payload from its JSON form; raises ValueError/KeyError when malformed."""
        if not isinstance(data, dict):
            raise ValueError("token payload must be a JSON object")
        return cls(
            user_id=str(data["UserId"]),
            machine_id=str(data["MachineId"]),
            expiration_time=parse_timestamp(data["ExpirationTime"]),
            issued_at=parse_timestamp(data["IssuedAt"]),
            token_id=str(data["TokenId"]),
        )


@dataclass(frozen=True)
class SignedToken:
    # outer envelope: base64 payload, base64 HMAC, and the salt used for the signing key
    data: str
    signature: str
    salt: str

    def to_dict(self) -> Dict[str, str]:
        return {"Data": self.data, "Signature": self.signature, "Salt": self.salt}

    @classmethod
    def from_dict(cls, data: Any) -> "SignedToken":
        if not isinstance(data, dict):
            raise ValueError("signed token must be a JSON object")
        values = []
        for name in ("Data", "Signature", "Salt"):
            value = data.get(name)
            if not isinstance(value, str) or not value:
                raise ValueError(f"signed token field {name!r} is missing")
            values.append(value)
        return cls(*values)


class TokenStatus(Enum):
    VALID = "valid"
    INVALID = "invalid"
    EXPIRED = "expired"


@dataclass(frozen=True)
class TokenValidationResult:
    """
    Outcome of a token validation.

    Expired tokens are reported with ``is_valid=False`` and ``is_expired=True``
    and still carry the identity fields from the payload.
    """

    is_valid: bool
    is_expired: bool = False
    user_id: Optional[str] = None
    machine_id: Optional[str] = None
    expiration_time: Optional[datetime] = None
    failure_reason: Optional[str] = None

    @property
    def status(self) -> TokenStatus:
        if self.is_valid:
            return TokenStatus.VALID
        if self.is_expired:
            return TokenStatus.EXPIRED
        return TokenStatus.INVALID

    @classmethod
    def valid(cls, payload: SessionTokenPayload) -> "TokenValidationResult":
        return cls(
            is_valid=True,
            user_id=payload.user_id,
            machine_id=payload.machine_id,
            expiration_time=payload.expiration_time,
        )

    @classmethod
    def expired(cls, payload: SessionTokenPayload, reason: str) -> "TokenValidationResult":
        return cls(
            is_valid=False,
            is_expired=True,
            user_id=payload.user_id,
            machine_id=payload.machine_id,
            expiration_time=payload.expiration_time,
            failure_reason=reason,
        )

    @classmethod
    def invalid(cls, reason: str) -> "TokenValidationResult":
        return cls(is_valid=False, failure_reason=reason)


# ----------------------------------------------------------------------
# Audit events
# ----------------------------------------------------------------------


class SecurityEventType(Enum):
    # values match the numbering used by existing audit stores
    USER_LOGIN = 1
    USER_LOGOUT = 2
    SESSION_CREATED = 10
    SESSION_EXPIRED = 11
    AUTHENTICATION_FAILED = 12
    SUSPICIOUS_ACTIVITY = 14
    SYSTEM_ERROR = 15


class SecurityEventSeverity(Enum):
    INFORMATION = 1
    WARNING = 2
    ERROR = 3
    CRITICAL = 4


@dataclass(frozen=True)
class SecurityEvent:
    user_id: str
    event_type: SecurityEventType
    description: str
    severity: SecurityEventSeverity = SecurityEventSeverity.INFORMATION
    is_successful: bool = True
    machine_id: Optional[str] = None
    session_id: Optional[str] = None
    error_code: Optional[str] = None
    occurred_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "event_type": self.event_type.name,
            "severity": self.severity.name,
            "description": self.description,
            "is_successful": self.is_successful,
            "machine_id": self.machine_id,
            "session_id": self.session_id,
            "error_code": self.error_code,
            "occurred_at": format_timestamp(self.occurred_at),
        }
