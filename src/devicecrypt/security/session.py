"""Local session manager built on signed session tokens.

Holds the current session token for one device and the user it was issued to.
Validation never needs a server: the token is re-checked against this
machine's id every time. The token can optionally be kept in the OS keystore
so a restart picks the session back up.

Security-relevant transitions (created, expired, rejected, ended) are emitted
to an :class:`~devicecrypt.security.audit.AuditSink`.
"""
from __future__ import annotations

import hashlib
import logging
from datetime import timedelta
from typing import Dict, Optional

from devicecrypt.core.exceptions import InvalidArgumentError, KeystoreError, SessionError
from devicecrypt.core.models import (
    SecurityEvent,
    SecurityEventSeverity,
    SecurityEventType,
    TokenValidationResult,
    utc_now,
)
from devicecrypt.core.settings import SecuritySettings
from .audit import AuditSink, LoggingAuditSink
from .keystore import assess_keyring_backend, delete_token, load_token, save_token
from .tokens import REASON_MISMATCH, REASON_SIGNATURE, generate_session_token, validate_session_token

logger = logging.getLogger(__name__)


def session_fingerprint(token: str) -> str:
    # short stable id for correlating audit records without exposing the token
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]


class SessionManager:
    def __init__(
        self,
        machine_id: str,
        settings: Optional[SecuritySettings] = None,
        audit_sink: Optional[AuditSink] = None,
    ):
        if machine_id is None or not machine_id.strip():
            raise InvalidArgumentError("machine id must not be empty")
        self.machine_id = machine_id
        self.settings = (settings or SecuritySettings()).validate()
        self.audit_sink = audit_sink or LoggingAuditSink()
        self._token: Optional[str] = None
        self._user_id: Optional[str] = None

    @property
    def current_token(self) -> Optional[str]:
        return self._token

    @property
    def current_user_id(self) -> Optional[str]:
        return self._user_id

    def _emit(
        self,
        event_type: SecurityEventType,
        user_id: str,
        description: str,
        severity: SecurityEventSeverity = SecurityEventSeverity.INFORMATION,
        is_successful: bool = True,
        token: Optional[str] = None,
        error_code: Optional[str] = None,
    ) -> None:
        event = SecurityEvent(
            user_id=user_id,
            event_type=event_type,
            description=description,
            severity=severity,
            is_successful=is_successful,
            machine_id=self.machine_id,
            session_id=session_fingerprint(token) if token else None,
            error_code=error_code,
        )
        try:
            self.audit_sink.record(event)
        except Exception as e:
            # a failing sink must not break authentication
            logger.error("audit sink rejected %s event: %s", event_type.name, e)

    def _emit_keystore_failure(self, user_id: Optional[str], action: str, error: Exception) -> None:
        self._emit(
            SecurityEventType.SYSTEM_ERROR,
            user_id or "",
            f"failed to {action} session token in OS keystore: {error}",
            severity=SecurityEventSeverity.ERROR,
            is_successful=False,
            error_code="KEYSTORE_ERROR",
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create_session(self, user_id: str) -> str:
        """Issue a token for ``user_id`` valid for the configured timeout and make it current."""
        expires = utc_now() + timedelta(minutes=self.settings.session_timeout_minutes)
        token = generate_session_token(user_id, self.machine_id, expires)
        self._token = token
        self._user_id = user_id
        self._emit(
            SecurityEventType.SESSION_CREATED,
            user_id,
            f"session created, expires {expires.isoformat()}",
            token=token,
        )
        return token

    def validate_session(self, token: Optional[str] = None) -> TokenValidationResult:
        """
        Validate ``token`` (or the current session token) for the current user on this machine.

        Raises SessionError when there is neither a token argument nor a
        current session to validate against.
        """
        token = token if token is not None else self._token
        if token is None or self._user_id is None:
            raise SessionError("No active session")

        result = validate_session_token(token, self._user_id, self.machine_id)
        if result.is_expired:
            self._emit(
                SecurityEventType.SESSION_EXPIRED,
                self._user_id,
                "session token expired",
                severity=SecurityEventSeverity.WARNING,
                is_successful=False,
                token=token,
            )
        elif not result.is_valid:
            self._emit(
                SecurityEventType.AUTHENTICATION_FAILED,
                self._user_id,
                f"session token rejected: {result.failure_reason}",
                severity=SecurityEventSeverity.WARNING,
                is_successful=False,
                token=token,
                error_code="INVALID_TOKEN",
            )
        return result

    def refresh_session(self) -> str:
        """Replace a still-valid current session with a freshly issued token."""
        result = self.validate_session()
        if not result.is_valid:
            raise SessionError(f"Cannot refresh session: {result.failure_reason}")
        return self.create_session(self._user_id)

    def end_session(self) -> None:
        if self._token is None:
            return
        user_id, token = self._user_id, self._token
        self._token = None
        self._user_id = None
        self._emit(SecurityEventType.USER_LOGOUT, user_id, "session ended", token=token)

    # ------------------------------------------------------------------
    # Keystore
    # ------------------------------------------------------------------

    def persist_to_keyring(self, account: str, force: bool = False) -> None:
        """
        Store the current session token in the OS keystore under
        (settings.keyring_service, account).

        Refuses backends that look insecure unless ``force`` is set.
        """
        if self._token is None:
            raise SessionError("No session token to persist")
        if not force:
            secure, msg = assess_keyring_backend()
            if not secure:
                raise SessionError(
                    f"refusing to persist session token to OS keystore: {msg}; "
                    "pass force=True to override if you understand the risk"
                )
        try:
            save_token(self.settings.keyring_service, account, self._token)
        except KeystoreError as e:
            self._emit_keystore_failure(self._user_id, "store", e)
            raise

    def load_from_keyring(self, account: str, user_id: str) -> TokenValidationResult:
        """
        Load a stored token and adopt it as the current session if it validates for ``user_id``.

        A stored token whose signature or identity does not match this
        machine is reported as suspicious activity rather than a plain
        authentication failure.
        """
        try:
            token = load_token(self.settings.keyring_service, account)
        except KeystoreError as e:
            self._emit_keystore_failure(user_id, "read", e)
            raise
        if token is None:
            raise SessionError("No session token found in OS keystore for given account")

        result = validate_session_token(token, user_id, self.machine_id)
        if result.is_valid:
            self._token = token
            self._user_id = user_id
            self._emit(SecurityEventType.USER_LOGIN, user_id, "session restored from OS keystore", token=token)
        elif result.failure_reason in (REASON_SIGNATURE, REASON_MISMATCH):
            self._emit(
                SecurityEventType.SUSPICIOUS_ACTIVITY,
                user_id,
                f"stored session token does not belong here: {result.failure_reason}",
                severity=SecurityEventSeverity.ERROR,
                is_successful=False,
                token=token,
                error_code="INVALID_TOKEN",
            )
        else:
            self._emit(
                SecurityEventType.AUTHENTICATION_FAILED,
                user_id,
                f"stored session token rejected: {result.failure_reason}",
                severity=SecurityEventSeverity.WARNING,
                is_successful=False,
                token=token,
                error_code="EXPIRED_TOKEN" if result.is_expired else "INVALID_TOKEN",
            )
        return result

    def delete_from_keyring(self, account: str) -> None:
        delete_token(self.settings.keyring_service, account)


# one default manager per machine id
_default_sessions: Dict[str, SessionManager] = {}


def get_session(machine_id: str) -> SessionManager:
    if machine_id not in _default_sessions:
        _default_sessions[machine_id] = SessionManager(machine_id)
    return _default_sessions[machine_id]
