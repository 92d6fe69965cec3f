"""Command-line front end for devicecrypt.

Examples::

    devicecrypt salt
    devicecrypt encrypt "secret-pref=dark-mode" --salt prefs-v1
    devicecrypt issue-token --user user-42 --minutes 60 --copy
    devicecrypt validate-token <token> --user user-42
"""

from __future__ import annotations

import argparse
import base64
import logging
import platform
import sys
from datetime import timedelta
from typing import List, Optional

import pyperclip

from devicecrypt.core.exceptions import DeviceCryptError, InvalidArgumentError
from devicecrypt.core.hashing import compute_hash, verify_integrity
from devicecrypt.core.models import CipherMode, utc_now
from devicecrypt.core.settings import SecuritySettings
from devicecrypt.security.encryption import decrypt_data, encrypt_data
from devicecrypt.security.kdf import DEFAULT_SALT_LENGTH, derive_key, generate_salt
from devicecrypt.security.memory import secure_wipe
from devicecrypt.security.tokens import generate_session_token, validate_session_token
from .logging_config import configure_logging, level_for_verbosity

logger = logging.getLogger(__name__)


def default_device_id() -> str:
    return platform.node() or "localhost"


# ----------------------------------------------------------------------
# Command handlers: each returns the text to print
# ----------------------------------------------------------------------


def _cmd_salt(args: argparse.Namespace, settings: SecuritySettings) -> str:
    return generate_salt(args.length)


def _cmd_derive(args: argparse.Namespace, settings: SecuritySettings) -> str:
    key = derive_key(args.device_id, args.salt)
    try:
        return base64.b64encode(bytes(key)).decode("ascii")
    finally:
        secure_wipe(key)


def _cmd_encrypt(args: argparse.Namespace, settings: SecuritySettings) -> str:
    key = derive_key(args.device_id, args.salt)
    try:
        return encrypt_data(args.text, key, mode=args.mode or settings.cipher_mode)
    finally:
        secure_wipe(key)


def _cmd_decrypt(args: argparse.Namespace, settings: SecuritySettings) -> str:
    key = derive_key(args.device_id, args.salt)
    try:
        return decrypt_data(args.blob, key, mode=args.mode or settings.cipher_mode)
    finally:
        secure_wipe(key)


def _cmd_hash(args: argparse.Namespace, settings: SecuritySettings) -> str:
    key = derive_key(args.device_id, args.salt)
    try:
        return compute_hash(args.text, key)
    finally:
        secure_wipe(key)


def _cmd_verify(args: argparse.Namespace, settings: SecuritySettings) -> str:
    key = derive_key(args.device_id, args.salt)
    try:
        ok = verify_integrity(args.text, args.digest, key)
    finally:
        secure_wipe(key)
    if not ok:
        raise DeviceCryptError("integrity check failed")
    return "ok"


def _cmd_issue_token(args: argparse.Namespace, settings: SecuritySettings) -> str:
    minutes = args.minutes if args.minutes is not None else settings.session_timeout_minutes
    try:
        expires = utc_now() + timedelta(minutes=minutes)
    except OverflowError as e:
        raise InvalidArgumentError(f"token lifetime of {minutes} minutes is out of range") from e
    return generate_session_token(args.user, args.device_id, expires)


def _cmd_validate_token(args: argparse.Namespace, settings: SecuritySettings) -> str:
    result = validate_session_token(args.token, args.user, args.device_id)
    if not result.is_valid:
        raise DeviceCryptError(f"token rejected ({result.status.value}): {result.failure_reason}")
    return f"valid user={result.user_id} machine={result.machine_id} expires={result.expiration_time.isoformat()}"


# ----------------------------------------------------------------------
# Parser
# ----------------------------------------------------------------------


def _add_key_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--device-id",
        default=default_device_id(),
        help="Device identifier the key is bound to (default: host name)",
    )
    parser.add_argument(
        "--salt",
        required=True,
        help="Salt string; use a different one per purpose",
    )


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devicecrypt",
        description="Device-bound encryption, integrity checksums and session tokens.",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log output (-vv for debug)")
    parser.add_argument("--copy", action="store_true", help="Also copy the output to the clipboard")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("salt", help="Generate a random base64 salt")
    p.add_argument("--length", type=int, default=DEFAULT_SALT_LENGTH, help="Number of random bytes (default: 32)")
    p.set_defaults(handler=_cmd_salt)

    p = sub.add_parser("derive", help="Derive a device key and print it as base64")
    _add_key_args(p)
    p.set_defaults(handler=_cmd_derive)

    for name, handler, positional, help_text in (
        ("encrypt", _cmd_encrypt, "text", "Encrypt text with a device key"),
        ("decrypt", _cmd_decrypt, "blob", "Decrypt base64 data with a device key"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument(positional)
        _add_key_args(p)
        p.add_argument(
            "--mode",
            type=CipherMode.parse,
            default=None,
            help="Cipher mode: gcm or cbc (default: DEVICECRYPT_CIPHER_MODE or gcm)",
        )
        p.set_defaults(handler=handler)

    p = sub.add_parser("hash", help="Compute a keyed integrity checksum")
    p.add_argument("text")
    _add_key_args(p)
    p.set_defaults(handler=_cmd_hash)

    p = sub.add_parser("verify", help="Verify a keyed integrity checksum")
    p.add_argument("text")
    p.add_argument("digest")
    _add_key_args(p)
    p.set_defaults(handler=_cmd_verify)

    p = sub.add_parser("issue-token", help="Issue a signed session token")
    p.add_argument("--user", required=True, help="User id the token is issued to")
    p.add_argument("--device-id", default=default_device_id(), help="Machine id (default: host name)")
    p.add_argument("--minutes", type=int, default=None, help="Lifetime in minutes (default: session timeout)")
    p.set_defaults(handler=_cmd_issue_token)

    p = sub.add_parser("validate-token", help="Validate a session token")
    p.add_argument("token")
    p.add_argument("--user", required=True, help="Expected user id")
    p.add_argument("--device-id", default=default_device_id(), help="Expected machine id (default: host name)")
    p.set_defaults(handler=_cmd_validate_token)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)
    configure_logging(level_for_verbosity(args.verbose))

    try:
        settings = SecuritySettings.from_env()
        output = args.handler(args, settings)
    except DeviceCryptError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(output)
    if args.copy:
        try:
            pyperclip.copy(output)
        except pyperclip.PyperclipException as e:
            logger.warning("could not copy to clipboard: %s", e)
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":  # pragma: no cover - CLI entry
    run()
