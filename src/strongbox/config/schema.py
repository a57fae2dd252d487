"""
Pydantic configuration schema for strongbox.

A StoreConfig is built once per invocation and handed to every component.
"""

import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from strongbox.storage.paths import (
    DEFAULT_EXTENSION,
    get_identities_path,
    get_recipients_path,
    get_store_dir,
    get_strongbox_home,
)

# =============================================================================
# Audit Configuration
# =============================================================================


class AuditConfig(BaseModel):
    """Git audit trail configuration."""

    enable: bool = True
    driver: str = "strongbox"


# =============================================================================
# Store Configuration
# =============================================================================


class StoreConfig(BaseModel):
    """Root configuration model."""

    model_config = ConfigDict(extra="forbid")

    home: Path = Field(default_factory=get_strongbox_home)
    store_dir: Path | None = None
    identities_file: Path | None = None
    recipients_file: Path | None = None

    backend: Literal["native", "age"] = "native"
    extension: str = Field(default=DEFAULT_EXTENSION, min_length=1, pattern=r"^[A-Za-z0-9_-]+$")

    generated_length: int = Field(default=25, ge=1)
    character_set: str = Field(default="[:alnum:][:punct:]", min_length=1)
    no_symbols_set: str = Field(default="[:alnum:]", min_length=1)

    editor: str | None = None

    audit: AuditConfig = Field(default_factory=AuditConfig)

    @model_validator(mode="after")
    def _resolve_paths(self) -> "StoreConfig":
        self.home = self.home.expanduser()
        if self.store_dir is None:
            self.store_dir = get_store_dir(self.home)
        self.store_dir = self.store_dir.expanduser()
        if self.identities_file is None:
            self.identities_file = get_identities_path(self.home)
        self.identities_file = self.identities_file.expanduser()
        if self.recipients_file is None:
            self.recipients_file = get_recipients_path(self.store_dir)
        self.recipients_file = self.recipients_file.expanduser()
        return self

    @property
    def store_root(self) -> Path:
        assert self.store_dir is not None
        return self.store_dir

    @property
    def identities_path(self) -> Path:
        assert self.identities_file is not None
        return self.identities_file

    @property
    def recipients_path(self) -> Path:
        assert self.recipients_file is not None
        return self.recipients_file

    @property
    def suffix(self) -> str:
        """File suffix of ciphertext files, including the dot."""
        return f".{self.extension}"

    def resolve_editor(self) -> str:
        """Editor command: configured value, then $VISUAL, $EDITOR, vi."""
        return self.editor or os.environ.get("VISUAL") or os.environ.get("EDITOR") or "vi"
