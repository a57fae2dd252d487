"""Tests for entry name validation."""

from pathlib import Path, PurePosixPath

import pytest

from strongbox.exceptions import StorageError, ValidationError
from strongbox.store.names import Namespace, validate_name


class TestValidateName:
    """Test validate_name rules."""

    def test_simple_name(self) -> None:
        """Test a single-segment name."""
        assert validate_name("github") == PurePosixPath("github")

    def test_hierarchical_name(self) -> None:
        """Test that segments map to path parts."""
        path = validate_name("web/mail/personal")
        assert path.parts == ("web", "mail", "personal")
        assert path.name == "personal"

    def test_empty_name(self) -> None:
        """Test that an empty name is rejected."""
        with pytest.raises(ValidationError):
            validate_name("")

    @pytest.mark.parametrize("name", ["..", "../escape", "a/../b", "a/b/.."])
    def test_parent_segment_rejected(self, name: str) -> None:
        """Test that '..' anywhere is rejected."""
        with pytest.raises(ValidationError, match=r"\.\."):
            validate_name(name)

    def test_absolute_name_rejected(self) -> None:
        """Test that a leading slash is rejected."""
        with pytest.raises(ValidationError, match="start with '/'"):
            validate_name("/abs")

    @pytest.mark.parametrize("name", ["a//b", "a/", ".hidden", "a/.git/b", "a/./b"])
    def test_malformed_segments_rejected(self, name: str) -> None:
        """Test that empty and dot-prefixed segments are rejected."""
        with pytest.raises(ValidationError):
            validate_name(name)

    def test_nul_rejected(self) -> None:
        """Test that NUL bytes are rejected."""
        with pytest.raises(ValidationError):
            validate_name("a\x00b")

    def test_dots_inside_segment_allowed(self) -> None:
        """Test that dots inside a segment are fine."""
        assert validate_name("web/example.com").name == "example.com"


class TestNamespace:
    """Test Namespace path mapping."""

    def test_path_for(self, temp_dir: Path) -> None:
        """Test mapping a name to a ciphertext path."""
        namespace = Namespace(temp_dir, ".age")
        assert namespace.path_for("web/example.com") == temp_dir / "web" / "example.com.age"

    def test_path_for_does_not_create(self, temp_dir: Path) -> None:
        """Test that plain resolution has no side effects."""
        namespace = Namespace(temp_dir, ".age")
        namespace.path_for("a/b/c")
        assert not (temp_dir / "a").exists()

    def test_prepare_creates_categories(self, temp_dir: Path) -> None:
        """Test that prepare creates intermediate directories."""
        namespace = Namespace(temp_dir, ".age")
        path = namespace.prepare("a/b/c")
        assert (temp_dir / "a" / "b").is_dir()
        assert not path.exists()

    def test_prepare_storage_error(self, temp_dir: Path) -> None:
        """Test that a file blocking a category is a StorageError."""
        (temp_dir / "a").write_text("not a directory")
        namespace = Namespace(temp_dir, ".age")
        with pytest.raises(StorageError):
            namespace.prepare("a/b")

    def test_symlink_escape_rejected(self, temp_dir: Path) -> None:
        """Test that a symlinked category cannot lead outside the root."""
        root = temp_dir / "store"
        outside = temp_dir / "outside"
        root.mkdir()
        outside.mkdir()
        (root / "link").symlink_to(outside)

        namespace = Namespace(root, ".age")
        with pytest.raises(ValidationError, match="outside"):
            namespace.prepare("link/secret")

    def test_name_for(self, temp_dir: Path) -> None:
        """Test the inverse mapping."""
        namespace = Namespace(temp_dir, ".age")
        assert namespace.name_for(temp_dir / "web" / "example.com.age") == "web/example.com"
