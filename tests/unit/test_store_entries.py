"""Tests for the entry store."""

from pathlib import Path

import pytest

from strongbox.crypto import NativeBackend
from strongbox.exceptions import (
    AlreadyExistsError,
    DecryptError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from strongbox.store import EntryStore


class TestAddShow:
    """Test adding and showing entries."""

    def test_round_trip(self, store: EntryStore) -> None:
        """Test that show returns exactly what add stored."""
        store.add("web/example.com", b"hunter2\nuser: me\n")
        assert store.show("web/example.com") == b"hunter2\nuser: me\n"

    def test_binary_round_trip(self, store: EntryStore) -> None:
        """Test arbitrary bytes."""
        data = bytes(range(256))
        store.add("blob", data)
        assert store.show("blob") == data

    def test_add_creates_keys(self, store: EntryStore) -> None:
        """Test that the first add mints a key pair."""
        store.add("first", b"x")
        assert len(store.keys.current_identities()) == 1

    def test_ciphertext_on_disk(self, store: EntryStore) -> None:
        """Test that no plaintext reaches the ciphertext file."""
        path = store.add("mail", b"top secret")
        assert path == store.root / "mail.age"
        assert b"top secret" not in path.read_bytes()

    def test_no_temp_files_left(self, store: EntryStore) -> None:
        """Test that atomic writes clean up their temporary files."""
        store.add("a/b", b"x")
        leftovers = [p for p in store.root.rglob("*.tmp")]
        assert leftovers == []

    def test_uniqueness(self, store: EntryStore) -> None:
        """Test that a second add fails and keeps the first value."""
        store.add("x", b"p1")
        with pytest.raises(AlreadyExistsError):
            store.add("x", b"p2")
        assert store.show("x") == b"p1"

    def test_show_missing(self, store: EntryStore) -> None:
        """Test showing an absent entry."""
        with pytest.raises(NotFoundError):
            store.show("missing")

    def test_show_without_matching_identity(self, store: EntryStore, backend: NativeBackend) -> None:
        """Test that a ciphertext for a foreign key is a DecryptError."""
        store.add("x", b"p")
        foreign = backend.derive_recipient(backend.generate_identity())
        store.namespace.path_for("x").write_bytes(backend.encrypt(b"p", [foreign]))

        with pytest.raises(DecryptError):
            store.show("x")

    @pytest.mark.parametrize("name", ["../escape", "/abs"])
    def test_traversal_rejected(self, store: EntryStore, temp_dir: Path, name: str) -> None:
        """Test that unsafe names fail and write nothing outside the root."""
        before = sorted(temp_dir.rglob("*"))
        with pytest.raises(ValidationError):
            store.add(name, b"p")
        assert not (store.root.parent / "escape.age").exists()
        assert not Path("/abs.age").exists()
        assert sorted(temp_dir.rglob("*")) == before

    def test_encrypt_failure_leaves_nothing(
        self, store: EntryStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that a failed encryption does not create the entry."""
        store.keys.ensure_key_pair()

        def broken(plaintext: bytes, recipients: list[str]) -> bytes:
            raise StoreError("boom")

        monkeypatch.setattr(store.backend, "encrypt", broken)
        with pytest.raises(StoreError):
            store.add("x", b"p")
        assert not store.exists("x")


class TestReplace:
    """Test replacing entries."""

    def test_replace(self, store: EntryStore) -> None:
        """Test overwriting an existing entry."""
        store.add("x", b"old")
        store.replace("x", b"new")
        assert store.show("x") == b"new"

    def test_replace_missing(self, store: EntryStore) -> None:
        """Test that replace requires an existing entry."""
        with pytest.raises(NotFoundError):
            store.replace("x", b"new")


class TestDelete:
    """Test deleting entries."""

    def test_delete_prunes_empty_categories(self, store: EntryStore) -> None:
        """Test that empty ancestors disappear with the last entry."""
        store.add("a/b/c", b"p")
        store.delete("a/b/c")

        assert not (store.root / "a").exists()
        assert store.root.is_dir()

    def test_delete_keeps_shared_categories(self, store: EntryStore) -> None:
        """Test that siblings keep their category."""
        store.add("a/b/c", b"p")
        store.add("a/b/d", b"p")
        store.delete("a/b/c")

        assert (store.root / "a" / "b").is_dir()
        assert store.show("a/b/d") == b"p"
        assert list(store.list()) == ["a/b/d"]

    def test_delete_missing(self, store: EntryStore) -> None:
        """Test deleting an absent entry."""
        with pytest.raises(NotFoundError):
            store.delete("nothing")


class TestList:
    """Test listing entries."""

    def test_empty_store(self, store: EntryStore) -> None:
        """Test listing before the root exists."""
        assert list(store.list()) == []

    def test_sorted_and_stripped(self, store: EntryStore) -> None:
        """Test lexicographic order without root or suffix."""
        for name in ["zeta", "alpha/two", "alpha/one", "mid"]:
            store.add(name, b"p")

        assert list(store.list()) == ["alpha/one", "alpha/two", "mid", "zeta"]

    def test_idempotent(self, store: EntryStore) -> None:
        """Test that repeated listing gives identical output."""
        store.add("b", b"p")
        store.add("a", b"p")
        assert list(store.list()) == list(store.list())

    def test_restartable(self, store: EntryStore) -> None:
        """Test that each call re-reads the filesystem."""
        store.add("a", b"p")
        first = list(store.list())
        store.add("b", b"p")
        assert first == ["a"]
        assert list(store.list()) == ["a", "b"]

    def test_ignores_foreign_files(self, store: EntryStore) -> None:
        """Test that key files, git data and temp files are not entries."""
        store.add("a", b"p")
        (store.root / ".git").mkdir()
        (store.root / ".git" / "x.age").write_bytes(b"")
        (store.root / ".a.age.123.tmp").write_bytes(b"")
        (store.root / "notes.txt").write_text("hi")

        assert list(store.list()) == ["a"]

    def test_prefix(self, store: EntryStore) -> None:
        """Test restricting the listing to a category."""
        for name in ["web/a", "web/b", "webmail", "other"]:
            store.add(name, b"p")

        assert list(store.list("web")) == ["web/a", "web/b"]
        assert list(store.list("web/")) == ["web/a", "web/b"]
        assert list(store.list("webmail")) == ["webmail"]

    @pytest.mark.parametrize("prefix", ["/", "//", ""])
    def test_root_prefix_lists_everything(self, store: EntryStore, prefix: str) -> None:
        """Test that a prefix naming the store root is no restriction."""
        for name in ["b/x", "a"]:
            store.add(name, b"p")

        assert list(store.list(prefix)) == ["a", "b/x"]


class TestEdit:
    """Test editing entries."""

    def test_edit(self, store: EntryStore) -> None:
        """Test that the mutator's changes are stored."""
        store.add("x", b"old\n")

        def mutate(path: Path) -> None:
            assert path.read_bytes() == b"old\n"
            path.write_bytes(b"new\n")

        store.edit("x", mutate)
        assert store.show("x") == b"new\n"

    def test_edit_leaves_no_residue(self, store: EntryStore, scratch_base: Path) -> None:
        """Test that the scratch file and directory are removed."""
        store.add("x", b"old")
        seen: list[Path] = []

        def mutate(path: Path) -> None:
            seen.append(path)
            assert path.parent.parent == scratch_base
            path.write_bytes(b"new")

        store.edit("x", mutate)

        assert not seen[0].exists()
        assert list(scratch_base.iterdir()) == []

    def test_edit_failure_leaves_no_residue(self, store: EntryStore, scratch_base: Path) -> None:
        """Test cleanup and an unchanged entry when the editor fails."""
        store.add("x", b"old")

        def mutate(path: Path) -> None:
            path.write_bytes(b"half-written")
            raise StoreError("editor exited with status 1")

        with pytest.raises(StoreError):
            store.edit("x", mutate)

        assert list(scratch_base.iterdir()) == []
        assert store.show("x") == b"old"

    def test_edit_interrupted(self, store: EntryStore, scratch_base: Path) -> None:
        """Test cleanup when the edit is interrupted."""
        store.add("x", b"old")

        def mutate(path: Path) -> None:
            raise KeyboardInterrupt

        with pytest.raises(KeyboardInterrupt):
            store.edit("x", mutate)

        assert list(scratch_base.iterdir()) == []
        assert store.show("x") == b"old"

    def test_edit_missing(self, store: EntryStore) -> None:
        """Test editing an absent entry."""
        with pytest.raises(NotFoundError):
            store.edit("x", lambda path: None)
