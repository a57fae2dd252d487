"""
Key material store.

Manages two ordered, append-only key lists persisted as flat files: the
identities (private) and the recipients (public) derived from them. Entry
``i`` of one always corresponds to entry ``i`` of the other.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from strongbox.config.schema import StoreConfig
from strongbox.crypto.backend import EncryptionBackend
from strongbox.exceptions import StorageError, StoreError
from strongbox.storage.atomic import atomic_write

logger = logging.getLogger(__name__)


@dataclass
class KeyRing:
    """A working copy of the identity and recipient sequences."""

    identities: list[str] = field(default_factory=list)
    recipients: list[str] = field(default_factory=list)


def read_key_file(path: Path) -> list[str]:
    """
    Read a line-oriented key file.

    Blank lines and ``#`` comments are skipped.

    Returns:
        Key records in file order, empty if the file does not exist.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return []
    except OSError as e:
        raise StorageError(f"cannot read {path}: {e}") from e

    return [
        line.strip()
        for line in text.splitlines()
        if line.strip() and not line.lstrip().startswith("#")
    ]


def write_key_file(path: Path, records: list[str], mode: int) -> None:
    """Atomically replace a key file with ``records``."""
    try:
        path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError(f"cannot create {path.parent}: {e}") from e
    atomic_write(path, "".join(f"{record}\n" for record in records).encode("utf-8"), mode=mode)


class KeyMaterialStore:
    """Identity and recipient files for one store root."""

    def __init__(self, config: StoreConfig, backend: EncryptionBackend) -> None:
        self.config = config
        self.backend = backend

    @property
    def identities_path(self) -> Path:
        return self.config.identities_path

    @property
    def recipients_path(self) -> Path:
        return self.config.recipients_path

    def has_keys(self) -> bool:
        return bool(read_key_file(self.identities_path))

    def ensure_key_pair(self) -> bool:
        """
        Create the first identity and recipient if none exist.

        A recipients file left behind by an interrupted commit is brought back
        in step with the identities.

        Returns:
            True if a key pair was generated.
        """
        if self.has_keys():
            staged = self.stage()
            if staged.recipients != self.current_recipients():
                self.commit(staged)
            return False

        staged = KeyRing()
        self.append_new_key_pair(staged.identities, staged.recipients)
        self.commit(staged)
        logger.info(f"Generated new key pair: {staged.recipients[0]}")
        return True

    def current_identities(self) -> list[str]:
        return read_key_file(self.identities_path)

    def current_recipients(self) -> list[str]:
        """Get the recipient sequence. Reads only the public recipients file."""
        return read_key_file(self.recipients_path)

    def stage(self) -> KeyRing:
        """
        Copy the persisted sequences into a KeyRing.

        If the recipients file is out of step with the identities (for
        example after a crash between the two renames in commit), the staged
        recipients are re-derived from the identities. Nothing is written;
        the repair reaches disk with the next commit.
        """
        identities = self.current_identities()
        recipients = self.current_recipients()
        if len(recipients) != len(identities):
            logger.warning(
                f"Recipients file has {len(recipients)} record(s) for {len(identities)} "
                "identity(ies); re-deriving recipients"
            )
            recipients = [self.backend.derive_recipient(identity) for identity in identities]
        return KeyRing(identities=list(identities), recipients=list(recipients))

    def append_new_key_pair(self, identities: list[str], recipients: list[str]) -> str:
        """
        Generate one identity, derive its recipient and append both.

        Nothing is persisted; ``identities`` and ``recipients`` are staged copies.

        Returns:
            The new recipient.
        """
        try:
            identity = self.backend.generate_identity()
            recipient = self.backend.derive_recipient(identity)
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"key generation failed: {e}") from e

        identities.append(identity)
        recipients.append(recipient)
        return recipient

    def commit(self, keyring: KeyRing) -> None:
        """
        Persist a staged KeyRing.

        The identities file is replaced first: a crash before the second
        rename leaves extra identities, which stage re-derives.
        """
        if len(keyring.identities) != len(keyring.recipients):
            raise StoreError("identity and recipient sequences differ in length")

        write_key_file(self.identities_path, keyring.identities, mode=0o600)
        write_key_file(self.recipients_path, keyring.recipients, mode=0o644)
        logger.debug(f"Persisted {len(keyring.identities)} key pair(s)")
