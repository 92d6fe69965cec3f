"""
Exceptions for the devicecrypt package
Everything raised on purpose derives from DeviceCryptError so callers have one catch-all
"""


class DeviceCryptError(Exception):
    # general container for errors
    pass


class InvalidArgumentError(DeviceCryptError, ValueError):
    # raised when the caller passes an empty id, a bad key length, etc.
    pass


class CryptographicError(DeviceCryptError):
    # raised when a data/key pair does not work (wrong key, tampered ciphertext)
    pass


class KeystoreError(DeviceCryptError, RuntimeError):
    # raised when the OS keystore is missing or refuses to store a secret
    pass


class SessionError(DeviceCryptError, RuntimeError):
    # raised when a session operation needs an active session and there is none
    pass
