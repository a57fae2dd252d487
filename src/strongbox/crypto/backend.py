"""
Encryption boundary.

All plaintext secret bytes pass through an EncryptionBackend. Backends must
never write plaintext to persistent storage, pass it as a process argument or
log it.
"""

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class EncryptionBackend(Protocol):
    """Asymmetric multi-recipient encryption primitive."""

    name: str

    def generate_identity(self) -> str:
        """Create a new private identity record (one line)."""
        ...

    def derive_recipient(self, identity: str) -> str:
        """Derive the public recipient record for an identity."""
        ...

    def encrypt(self, plaintext: bytes, recipients: Sequence[str]) -> bytes:
        """Encrypt so that any one of ``recipients`` can decrypt."""
        ...

    def decrypt(self, ciphertext: bytes, identities: Sequence[str]) -> bytes:
        """Decrypt with the first identity that opens ``ciphertext``."""
        ...


def get_backend(name: str, identities_file: Path | None = None) -> EncryptionBackend:
    """
    Get an encryption backend by name.

    Args:
        name: ``native`` or ``age``.
        identities_file: Identities file that the age backend hands to age
            directly instead of copying the records.

    Returns:
        Backend instance.
    """
    if name == "native":
        from strongbox.crypto.native import NativeBackend

        return NativeBackend()
    if name == "age":
        from strongbox.crypto.age import AgeBackend

        return AgeBackend(identities_file=identities_file)
    raise ValueError(f"Unknown encryption backend: {name}")
