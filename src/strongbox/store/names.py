"""
Entry name validation.

Turns user-supplied hierarchical names (``web/mail/personal``) into paths
relative to the store root, rejecting anything that could escape it.
"""

import logging
from pathlib import Path, PurePosixPath

from strongbox.exceptions import StorageError, ValidationError

logger = logging.getLogger(__name__)

SEPARATOR = "/"


def validate_name(raw_name: str) -> PurePosixPath:
    """
    Validate and normalize an entry name.

    Args:
        raw_name: Name as typed by the user.

    Returns:
        Relative path whose parts are the categories and the entry base name.

    Raises:
        ValidationError: If the name is empty, absolute, contains ``..`` or
            is otherwise malformed.
    """
    if not raw_name:
        raise ValidationError("entry name is empty")

    segments = raw_name.split(SEPARATOR)
    if ".." in segments:
        raise ValidationError(f"entry name must not contain '..': {raw_name}", raw_name)
    if raw_name.startswith(SEPARATOR):
        raise ValidationError(f"entry name must not start with '/': {raw_name}", raw_name)

    for segment in segments:
        if not segment:
            raise ValidationError(f"entry name has an empty segment: {raw_name}", raw_name)
        if segment.startswith("."):
            raise ValidationError(f"entry name segment must not start with '.': {raw_name}", raw_name)
        if "\x00" in segment or "\\" in segment:
            raise ValidationError(f"entry name contains an invalid character: {raw_name!r}", raw_name)

    return PurePosixPath(*segments)


class Namespace:
    """Maps entry names to ciphertext paths under a store root."""

    def __init__(self, root: Path, suffix: str) -> None:
        self.root = Path(root)
        self.suffix = suffix

    def path_for(self, name: str) -> Path:
        """Resolve the ciphertext path of a validated name."""
        relative = validate_name(name)
        path = self.root.joinpath(*relative.parts[:-1], relative.name + self.suffix)

        # Symlinked categories must not lead outside the store
        root = self.root.resolve()
        try:
            path.parent.resolve().relative_to(root)
        except ValueError as e:
            raise ValidationError(f"entry name resolves outside the store: {name}", name) from e
        return path

    def prepare(self, name: str) -> Path:
        """
        Resolve a path for writing, creating intermediate categories.

        Raises:
            StorageError: If a category directory cannot be created.
        """
        path = self.path_for(name)
        try:
            path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"cannot create category {path.parent}: {e}", name) from e
        return path

    def name_for(self, path: Path) -> str:
        """Inverse of path_for: strip the root and the suffix."""
        relative = path.relative_to(self.root).as_posix()
        return relative[: -len(self.suffix)]
