"""
Git-backed audit trail for strongbox.

Each store mutation becomes one commit in a git repository at the store
root. The history is best-effort: a failed commit is reported but never rolls
back the mutation that has already been applied.
"""

import logging
import shlex
import sys
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from git import Repo
from git.exc import GitError, InvalidGitRepositoryError, NoSuchPathError

from strongbox.storage.atomic import atomic_write

logger = logging.getLogger(__name__)

INITIAL_MESSAGE = "Initialize store history."


@dataclass
class AuditRecord:
    """One commit of the audit history."""

    sha: str
    timestamp: datetime
    message: str


def default_textconv_command() -> str:
    """Command git runs to render a ciphertext file as text."""
    return f"{shlex.quote(sys.executable)} -m strongbox textconv"


class GitAuditTrail:
    """
    Records store mutations as git commits.

    The repository is created lazily on the first recorded mutation, with a
    diff driver that decrypts ciphertext files for ``git diff`` and
    ``git log -p``.
    """

    def __init__(
        self,
        root: str | Path,
        suffix: str,
        enable: bool = True,
        driver: str = "strongbox",
        textconv_command: str | None = None,
    ) -> None:
        """
        Initialize the audit trail.

        Args:
            root: Store root, also the git working tree.
            suffix: Ciphertext file suffix, e.g. ``.age``.
            enable: Whether mutations are committed at all.
            driver: Name of the git diff driver for ciphertext files.
            textconv_command: Command that decrypts a file to stdout.
        """
        self.root = Path(root)
        self.suffix = suffix
        self.enable = enable
        self.driver = driver
        self.textconv_command = textconv_command or default_textconv_command()
        self._repo: Repo | None = None

    @classmethod
    def from_config(cls, config: Any) -> "GitAuditTrail":
        """
        Create an audit trail from configuration.

        Args:
            config: StoreConfig instance

        Returns:
            Configured GitAuditTrail
        """
        return cls(
            root=config.store_root,
            suffix=config.suffix,
            enable=config.audit.enable,
            driver=config.audit.driver,
        )

    def _open(self) -> Repo | None:
        if self._repo is None:
            try:
                self._repo = Repo(self.root)
            except (InvalidGitRepositoryError, NoSuchPathError):
                return None
        return self._repo

    def initialize(self, pending: Iterable[str] = ()) -> Repo:
        """
        Create the repository, configure the diff driver and commit the store.

        Args:
            pending: Store-relative paths left out of the initial commit so
                the mutation that triggered initialization gets its own.

        Returns:
            The opened repository.
        """
        repo = self._open()
        if repo is not None:
            return repo

        self.root.mkdir(mode=0o700, parents=True, exist_ok=True)
        repo = Repo.init(self.root)
        atomic_write(
            self.root / ".gitattributes",
            f"*{self.suffix} diff={self.driver}\n".encode(),
            mode=0o644,
        )
        with repo.config_writer() as writer:
            writer.set_value(f'diff "{self.driver}"', "textconv", self.textconv_command)

        repo.git.add(A=True)
        if pending:
            repo.git.rm("--cached", "--quiet", "--ignore-unmatch", "--", *pending)
        repo.index.commit(INITIAL_MESSAGE)
        logger.info(f"Initialized audit history in {self.root}")

        self._repo = repo
        return repo

    def record(self, paths: Iterable[Path], message: str) -> bool:
        """
        Stage the changed paths and commit them.

        Args:
            paths: Files that were added, modified or deleted. Paths outside
                the store root are left out of the commit.
            message: Commit message.

        Returns:
            True if the history is up to date, False if auditing is disabled
            or the commit failed.
        """
        if not self.enable:
            return False

        try:
            relatives: dict[str, Path] = {}
            for path in map(Path, paths):
                if not path.is_relative_to(self.root):
                    # e.g. a recipients file configured outside the store
                    logger.debug(f"Not recording path outside the store: {path}")
                    continue
                relatives[path.relative_to(self.root).as_posix()] = path

            repo = self.initialize(list(relatives))
            index = repo.index

            added: list[str] = []
            removed: list[str] = []
            for relative, path in relatives.items():
                if path.exists():
                    added.append(relative)
                elif (relative, 0) in index.entries:
                    removed.append(relative)

            if added:
                index.add(added)
            if removed:
                index.remove(removed, working_tree=False)

            if repo.head.is_valid() and not index.diff(repo.head.commit):
                logger.debug(f"Nothing to commit for: {message}")
                return True

            commit = index.commit(message)
        except (GitError, OSError, ValueError) as e:
            logger.warning(f"Could not record audit history: {e}")
            return False

        logger.debug(f"Recorded {commit.hexsha[:8]}: {message}")
        return True

    def history(self, limit: int = 20) -> list[AuditRecord]:
        """
        Get the most recent audit records, newest first.

        Args:
            limit: Maximum number of records.

        Returns:
            Audit records, empty if no history exists yet.
        """
        repo = self._open()
        if repo is None or not repo.head.is_valid():
            return []

        return [
            AuditRecord(
                sha=commit.hexsha[:8],
                timestamp=commit.committed_datetime,
                message=str(commit.summary),
            )
            for commit in repo.iter_commits(max_count=limit)
        ]
