"""
Exceptions for strongbox.

Every operational failure raised by the store derives from StoreError so the
CLI can report it as a single diagnostic line.
"""


class StoreError(Exception):
    """Base exception for secret store errors."""

    def __init__(self, message: str, name: str | None = None):
        super().__init__(message)
        self.name = name


class ValidationError(StoreError):
    """Entry name is malformed or unsafe."""

    pass


class AlreadyExistsError(StoreError):
    """An entry with this name already exists."""

    pass


class NotFoundError(StoreError):
    """Requested entry does not exist."""

    pass


class DecryptError(StoreError):
    """No identity opens the ciphertext, or the ciphertext is corrupt."""

    pass


class EncryptError(StoreError):
    """Encryption against the recipient set failed."""

    pass


class StorageError(StoreError):
    """Filesystem I/O, directory creation or atomic replace failed."""

    pass


class UserAbort(StoreError):
    """User declined a confirmation or gave empty required input."""

    pass
