"""
Path utilities for strongbox.

Provides the default locations of the store, the key files and the optional
configuration file.
"""

import os
from pathlib import Path

DEFAULT_EXTENSION = "age"


def get_strongbox_home() -> Path:
    """
    Get the strongbox home directory.

    Resolution order:
    1. STRONGBOX_HOME environment variable
    2. Default: ~/.strongbox

    Returns:
        Path to the strongbox home directory.
    """
    env_home = os.environ.get("STRONGBOX_HOME")
    if env_home:
        return expand_path(env_home)
    return Path.home() / ".strongbox"


def get_config_path(home: Path | None = None) -> Path:
    """
    Get the path to the optional configuration file.

    Returns:
        Path to ~/.strongbox/config.yaml
    """
    return (home or get_strongbox_home()) / "config.yaml"


def get_store_dir(home: Path | None = None) -> Path:
    """
    Get the default store root.

    Returns:
        Path to ~/.strongbox/store/
    """
    return (home or get_strongbox_home()) / "store"


def get_identities_path(home: Path | None = None) -> Path:
    """
    Get the default identities file.

    Kept outside the store root so private keys never enter the git history.

    Returns:
        Path to ~/.strongbox/identities
    """
    return (home or get_strongbox_home()) / "identities"


def get_recipients_path(store_dir: Path) -> Path:
    """
    Get the default recipients file for a store root.

    Returns:
        Path to <store>/.recipients
    """
    return store_dir / ".recipients"


def expand_path(path: str | Path) -> Path:
    """
    Expand a path string, handling ~ and environment variables.

    Args:
        path: Path string or Path object.

    Returns:
        Expanded and absolute Path.
    """
    if isinstance(path, str):
        path = os.path.expandvars(path)
        path = os.path.expanduser(path)
    return Path(path).expanduser().absolute()
