"""Storage utilities for strongbox."""

from strongbox.storage.atomic import atomic_write, fsync_directory, scratch_directory
from strongbox.storage.paths import (
    DEFAULT_EXTENSION,
    expand_path,
    get_config_path,
    get_identities_path,
    get_recipients_path,
    get_store_dir,
    get_strongbox_home,
)

__all__ = [
    "DEFAULT_EXTENSION",
    "atomic_write",
    "expand_path",
    "fsync_directory",
    "get_config_path",
    "get_identities_path",
    "get_recipients_path",
    "get_store_dir",
    "get_strongbox_home",
    "scratch_directory",
]
