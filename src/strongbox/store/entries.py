"""
Entry store for strongbox.

Maps validated entry names to ciphertext files under the store root. Every
write goes through an atomic replace, so a crash leaves either the old or the
new ciphertext in place and never plaintext.
"""

import logging
import os
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import TYPE_CHECKING

from strongbox.config.schema import StoreConfig
from strongbox.crypto.backend import EncryptionBackend
from strongbox.exceptions import AlreadyExistsError, NotFoundError, StorageError
from strongbox.keys import KeyMaterialStore
from strongbox.storage.atomic import TEMP_SUFFIX, atomic_write, scratch_directory
from strongbox.store.names import Namespace, validate_name

if TYPE_CHECKING:
    from strongbox.audit.trail import GitAuditTrail

logger = logging.getLogger(__name__)

Mutator = Callable[[Path], None]


class EntryStore:
    """
    Encrypted secrets stored as one ciphertext file per entry.

    Entries are encrypted against every current recipient, so any current
    identity can decrypt them.
    """

    def __init__(
        self,
        config: StoreConfig,
        keys: KeyMaterialStore,
        backend: EncryptionBackend,
        audit: "GitAuditTrail | None" = None,
    ) -> None:
        """
        Initialize the entry store.

        Args:
            config: Store configuration.
            keys: Identity and recipient files for this store.
            backend: Encryption backend.
            audit: Optional audit trail notified of each mutation.
        """
        self.config = config
        self.keys = keys
        self.backend = backend
        self.audit = audit
        self.root = config.store_root
        self.namespace = Namespace(self.root, config.suffix)

    def _ensure_root(self) -> None:
        try:
            self.root.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"cannot create store root {self.root}: {e}") from e

    def _record(self, paths: list[Path], message: str) -> None:
        if self.audit is not None:
            self.audit.record(paths, message)

    def _read(self, path: Path, name: str) -> bytes:
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise NotFoundError(f"{name} is not in the store", name) from e
        except OSError as e:
            raise StorageError(f"cannot read {name}: {e}", name) from e

    def _write(self, path: Path, plaintext: bytes, recipients: list[str]) -> None:
        ciphertext = self.backend.encrypt(plaintext, recipients)
        atomic_write(path, ciphertext)

    def exists(self, name: str) -> bool:
        """Check whether an entry exists."""
        return self.namespace.path_for(name).is_file()

    def path(self, name: str) -> Path:
        """Get the ciphertext path of an existing entry."""
        path = self.namespace.path_for(name)
        if not path.is_file():
            raise NotFoundError(f"{name} is not in the store", name)
        return path

    def add(self, name: str, plaintext: bytes) -> Path:
        """
        Encrypt and store a new entry.

        Args:
            name: Hierarchical entry name.
            plaintext: Secret content.

        Returns:
            Path of the new ciphertext file.

        Raises:
            AlreadyExistsError: If the entry already exists.
        """
        validate_name(name)
        if self.exists(name):
            raise AlreadyExistsError(f"{name} already exists", name)

        self._ensure_root()
        self.keys.ensure_key_pair()
        path = self.namespace.prepare(name)
        self._write(path, plaintext, self.keys.current_recipients())

        logger.info(f"Stored secret: {name}")
        self._record([path], f"Add given secret for {name} to store.")
        return path

    def replace(self, name: str, plaintext: bytes) -> Path:
        """
        Overwrite an existing entry with new content.

        Raises:
            NotFoundError: If the entry does not exist.
        """
        path = self.path(name)
        self._write(path, plaintext, self.keys.current_recipients())

        logger.info(f"Replaced secret: {name}")
        self._record([path], f"Replace secret for {name}.")
        return path

    def show(self, name: str) -> bytes:
        """
        Decrypt an entry.

        Raises:
            NotFoundError: If the entry does not exist.
            DecryptError: If no current identity opens the ciphertext.
        """
        path = self.path(name)
        return self.backend.decrypt(self._read(path, name), self.keys.current_identities())

    def edit(self, name: str, mutator: Mutator, editor: str | None = None) -> Path:
        """
        Edit an entry through a plaintext scratch file.

        The plaintext lives in a private, preferably memory-backed, scratch
        directory that is removed on every exit path.

        Args:
            name: Entry to edit.
            mutator: Called with the scratch file path; typically launches
                an editor.
            editor: Editor name for the audit message.

        Returns:
            Path of the rewritten ciphertext file.
        """
        path = self.path(name)
        plaintext = self.backend.decrypt(self._read(path, name), self.keys.current_identities())

        with scratch_directory() as scratch:
            scratch_file = scratch / f"{validate_name(name).name}.txt"
            fd = os.open(scratch_file, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
            with os.fdopen(fd, "wb") as f:
                f.write(plaintext)

            mutator(scratch_file)

            try:
                edited = scratch_file.read_bytes()
            except OSError as e:
                raise StorageError(f"cannot read edited content for {name}: {e}", name) from e

            self._write(path, edited, self.keys.current_recipients())

        logger.info(f"Edited secret: {name}")
        self._record([path], f"Edit secret for {name} using {editor or 'editor'}.")
        return path

    def delete(self, name: str) -> None:
        """
        Remove an entry and prune its empty categories.

        Raises:
            NotFoundError: If the entry does not exist.
        """
        path = self.path(name)
        try:
            path.unlink()
        except FileNotFoundError as e:
            raise NotFoundError(f"{name} is not in the store", name) from e
        except OSError as e:
            raise StorageError(f"cannot remove {name}: {e}", name) from e

        self._prune(path.parent)
        logger.info(f"Deleted secret: {name}")
        self._record([path], f"Remove {name} from store.")

    def _prune(self, directory: Path) -> None:
        root = self.root.resolve()
        while directory.resolve() != root:
            try:
                directory.rmdir()
            except OSError:
                # Not empty: another entry shares this category
                return
            directory = directory.parent

    def list(self, prefix: str | None = None) -> Iterator[str]:
        """
        Enumerate entry names in lexicographic order.

        Re-reads the filesystem on every call.

        Args:
            prefix: Only yield this entry or entries in this category.

        Yields:
            Entry names without the ciphertext suffix.
        """
        if prefix:
            prefix = prefix.rstrip("/") or None
        if prefix:
            validate_name(prefix)

        for path in sorted(self._iter_files(), key=lambda p: self.namespace.name_for(p)):
            name = self.namespace.name_for(path)
            if prefix and name != prefix and not name.startswith(prefix + "/"):
                continue
            yield name

    def _iter_files(self) -> Iterator[Path]:
        if not self.root.is_dir():
            return
        for dirpath, dirnames, filenames in os.walk(self.root):
            # Skip .git and other hidden directories
            dirnames[:] = [d for d in dirnames if not d.startswith(".")]
            for filename in filenames:
                if filename.startswith(".") or filename.endswith(TEMP_SUFFIX):
                    continue
                if filename.endswith(self.config.suffix) and len(filename) > len(self.config.suffix):
                    yield Path(dirpath) / filename
