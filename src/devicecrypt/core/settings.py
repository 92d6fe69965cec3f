"""Runtime settings for the session manager and the CLI.

The cryptographic primitives take no configuration; only the layers that
decide *policy* (how long a session lives, where tokens are kept) read these.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from devicecrypt.core.exceptions import InvalidArgumentError
from devicecrypt.core.models import CipherMode

MAX_SESSION_TIMEOUT_MINUTES = 24 * 60

ENV_SESSION_TIMEOUT = "DEVICECRYPT_SESSION_TIMEOUT_MINUTES"
ENV_KEYRING_SERVICE = "DEVICECRYPT_KEYRING_SERVICE"
ENV_CIPHER_MODE = "DEVICECRYPT_CIPHER_MODE"


@dataclass
class SecuritySettings:
    session_timeout_minutes: int = 30
    keyring_service: str = "devicecrypt"
    cipher_mode: CipherMode = CipherMode.GCM

    def is_valid(self) -> bool:
        return (
            bool(self.keyring_service and self.keyring_service.strip())
            and 0 < self.session_timeout_minutes <= MAX_SESSION_TIMEOUT_MINUTES
        )

    def validate(self) -> "SecuritySettings":
        """Return self, or raise InvalidArgumentError describing the first bad field."""
        if not 0 < self.session_timeout_minutes <= MAX_SESSION_TIMEOUT_MINUTES:
            raise InvalidArgumentError(
                f"session timeout must be between 1 and {MAX_SESSION_TIMEOUT_MINUTES} minutes"
            )
        if not self.keyring_service or not self.keyring_service.strip():
            raise InvalidArgumentError("keyring service name must not be empty")
        return self

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SecuritySettings":
        """
        Build settings from environment variables, falling back to defaults.

        Recognised variables: DEVICECRYPT_SESSION_TIMEOUT_MINUTES,
        DEVICECRYPT_KEYRING_SERVICE and DEVICECRYPT_CIPHER_MODE (``gcm``/``cbc``).
        """
        env = os.environ if environ is None else environ
        settings = cls()

        raw_timeout = env.get(ENV_SESSION_TIMEOUT)
        if raw_timeout:
            try:
                settings.session_timeout_minutes = int(raw_timeout)
            except ValueError as exc:
                raise InvalidArgumentError(
                    f"{ENV_SESSION_TIMEOUT} must be an integer, got {raw_timeout!r}"
                ) from exc

        service = env.get(ENV_KEYRING_SERVICE)
        if service:
            settings.keyring_service = service

        raw_mode = env.get(ENV_CIPHER_MODE)
        if raw_mode:
            settings.cipher_mode = CipherMode.parse(raw_mode)

        return settings.validate()
