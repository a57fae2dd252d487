"""
Pytest configuration and fixtures for strongbox tests.
"""

import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest
from typer.testing import CliRunner

from strongbox.config import StoreConfig
from strongbox.crypto import NativeBackend
from strongbox.keys import KeyMaterialStore
from strongbox.storage import atomic
from strongbox.store import EntryStore


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def scratch_base(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Redirect plaintext scratch directories to an inspectable location."""
    base = temp_dir / "shm"
    base.mkdir()
    monkeypatch.setattr(atomic, "SHM_DIR", base)
    return base


@pytest.fixture
def store_config(temp_dir: Path) -> StoreConfig:
    """Provide a configuration rooted in a temporary home, auditing off."""
    return StoreConfig.model_validate(
        {
            "home": temp_dir / "home",
            "audit": {"enable": False},
        }
    )


@pytest.fixture
def backend() -> NativeBackend:
    """Provide the native encryption backend."""
    return NativeBackend()


@pytest.fixture
def keys(store_config: StoreConfig, backend: NativeBackend) -> KeyMaterialStore:
    """Provide a key material store."""
    return KeyMaterialStore(store_config, backend)


@pytest.fixture
def store(
    store_config: StoreConfig,
    keys: KeyMaterialStore,
    backend: NativeBackend,
    scratch_base: Path,
) -> EntryStore:
    """Provide an entry store without an audit trail."""
    return EntryStore(store_config, keys, backend)


@pytest.fixture
def strongbox_env(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the CLI at a temporary home with auditing disabled."""
    home = temp_dir / "cli-home"
    monkeypatch.setenv("STRONGBOX_HOME", str(home))
    monkeypatch.setenv("STRONGBOX_NOGIT", "1")
    for var in (
        "STRONGBOX_DIR",
        "STRONGBOX_IDENTITIES_FILE",
        "STRONGBOX_RECIPIENTS_FILE",
        "STRONGBOX_BACKEND",
        "STRONGBOX_EXTENSION",
        "STRONGBOX_GENERATED_LENGTH",
        "STRONGBOX_CHARACTER_SET",
        "STRONGBOX_CHARACTER_SET_NO_SYMBOLS",
    ):
        monkeypatch.delenv(var, raising=False)
    shm = temp_dir / "cli-shm"
    shm.mkdir()
    monkeypatch.setattr(atomic, "SHM_DIR", shm)
    return home
