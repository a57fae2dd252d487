"""
strongbox encryption boundary.

Provides the EncryptionBackend protocol and its native and age implementations.
"""

from strongbox.crypto.backend import EncryptionBackend, get_backend
from strongbox.crypto.native import NativeBackend

__all__ = [
    "EncryptionBackend",
    "NativeBackend",
    "get_backend",
]
