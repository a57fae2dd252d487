"""Integration tests for cleanup when the CLI process is signalled."""

import os
import shutil
import signal
import subprocess
import sys
import time
from pathlib import Path

import pytest

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(shutil.which("sh") is None, reason="needs a POSIX shell"),
]


def _cli_env(temp_dir: Path, editor: str) -> dict[str, str]:
    env = {k: v for k, v in os.environ.items() if not k.startswith("STRONGBOX_")}
    env.pop("VISUAL", None)
    env.update(
        {
            "STRONGBOX_HOME": str(temp_dir / "home"),
            "STRONGBOX_NOGIT": "1",
            "TMPDIR": str(temp_dir),
            "EDITOR": editor,
        }
    )
    return env


def _wait_for(path: Path, timeout: float = 20.0) -> str:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if path.exists() and path.read_text().strip():
            return path.read_text().strip()
        time.sleep(0.05)
    raise AssertionError(f"{path} was not written in time")


@pytest.mark.parametrize("sig", [signal.SIGHUP, signal.SIGTERM])
def test_edit_scratch_removed_when_signalled(temp_dir: Path, sig: signal.Signals) -> None:
    """Test that a signal during edit leaves no plaintext behind."""
    marker = temp_dir / "editing"
    # The editor reports the scratch path it was given, then waits
    editor = f"sh -c 'echo \"$1\" > {marker}; exec sleep 60' sh"
    env = _cli_env(temp_dir, editor)
    command = [sys.executable, "-m", "strongbox"]

    added = subprocess.run(
        [*command, "add", "-m", "mail"], input=b"secret\n", env=env, capture_output=True, timeout=60
    )
    assert added.returncode == 0, added.stderr

    process = subprocess.Popen(
        [*command, "edit", "mail"],
        env=env,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    )
    try:
        scratch_file = Path(_wait_for(marker))
        assert scratch_file.read_text() == "secret\n"

        process.send_signal(sig)
        process.wait(timeout=20)
    finally:
        if process.poll() is None:
            process.kill()
            process.wait()

    assert process.returncode == 128 + sig
    assert not scratch_file.exists()
    assert not scratch_file.parent.exists()

    shown = subprocess.run(
        [*command, "show", "mail"], env=env, capture_output=True, timeout=60
    )
    assert shown.stdout == b"secret\n"
