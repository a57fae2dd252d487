"""External editor invocation."""

import logging
import shlex
import subprocess
from pathlib import Path

from strongbox.exceptions import StoreError

logger = logging.getLogger(__name__)


def launch_editor(editor: str, path: Path) -> None:
    """
    Open ``path`` in ``editor`` and wait for it to exit.

    Args:
        editor: Editor command line, e.g. ``vim`` or ``code --wait``.
        path: File to edit.

    Raises:
        StoreError: If the editor cannot be started or exits with an error.
    """
    command = [*shlex.split(editor), str(path)]
    logger.debug(f"Launching editor: {command[0]}")
    try:
        result = subprocess.run(command, check=False)
    except FileNotFoundError as e:
        raise StoreError(f"editor not found: {command[0]}") from e

    if result.returncode != 0:
        raise StoreError(f"editor exited with status {result.returncode}")
