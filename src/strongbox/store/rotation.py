"""
Key rotation.

Mints a new identity/recipient pair and re-encrypts every entry so that the
new key can open it too. The pre-rotation keys are kept, so at no point does
an entry stop being decryptable by the identities on disk.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from strongbox.keys import KeyRing
from strongbox.storage.atomic import atomic_write
from strongbox.store.entries import EntryStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


@dataclass
class RotationResult:
    """Outcome of a completed rotation."""

    recipient: str
    entries: list[str] = field(default_factory=list)


def rotate_keys(
    store: EntryStore,
    staged: KeyRing | None = None,
    on_entry: ProgressCallback | None = None,
) -> RotationResult:
    """
    Add a key pair and re-encrypt every entry to the extended recipient set.

    Steps, in order:
    1. Stage copies of the identity and recipient sequences.
    2. Append one new key pair to the staged copies.
    3. Re-encrypt each entry: decrypt with the current identities, encrypt to
       the staged recipients, atomically replace the file.
    4. Atomically replace the key files with the staged copies.

    If step 3 fails the key files are untouched. Entries already rewritten
    are encrypted to a superset of the old recipients, so the old identity
    still opens everything and the rotation can simply be retried.

    Args:
        store: Entry store to rotate.
        staged: Key sequences to start from instead of the persisted ones.
        on_entry: Called with each entry name after it is re-encrypted.

    Returns:
        The new recipient and the re-encrypted entry names.
    """
    keys = store.keys

    if staged is None:
        staged = keys.stage()
    else:
        staged = KeyRing(identities=list(staged.identities), recipients=list(staged.recipients))

    recipient = keys.append_new_key_pair(staged.identities, staged.recipients)
    logger.info(f"Rotating to {len(staged.recipients)} recipient(s), new: {recipient}")

    rotated: list[str] = []
    paths: list[Path] = []
    for name in store.list():
        path = store.path(name)
        plaintext = store.show(name)
        atomic_write(path, store.backend.encrypt(plaintext, staged.recipients))

        rotated.append(name)
        paths.append(path)
        logger.debug(f"Re-encrypted {name}")
        if on_entry is not None:
            on_entry(name)

    keys.commit(staged)
    logger.info(f"Rotated keys for {len(rotated)} entries")

    paths.append(keys.recipients_path)
    if store.audit is not None:
        store.audit.record(paths, f"Rotate keys: re-encrypt {len(rotated)} entries.")

    return RotationResult(recipient=recipient, entries=rotated)
