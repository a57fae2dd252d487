"""
strongbox entry store.

Provides name validation, the encrypted entry store, key rotation and
password generation.
"""

from strongbox.store.entries import EntryStore
from strongbox.store.generator import generate_password
from strongbox.store.names import Namespace, validate_name
from strongbox.store.rotation import RotationResult, rotate_keys

__all__ = [
    "EntryStore",
    "Namespace",
    "RotationResult",
    "generate_password",
    "rotate_keys",
    "validate_name",
]
