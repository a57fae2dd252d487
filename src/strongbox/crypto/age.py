"""
age encryption backend.

Drives the external ``age`` and ``age-keygen`` binaries. Plaintext only ever
travels over pipes. Recipients and identities are handed over as file paths,
never as process arguments.
"""

import logging
import subprocess
from collections.abc import Sequence
from pathlib import Path

from strongbox.exceptions import DecryptError, EncryptError, StoreError
from strongbox.storage.atomic import scratch_directory

logger = logging.getLogger(__name__)

AGE_REPO_URL = "https://github.com/FiloSottile/age"


def _run(command: list[str], input_data: bytes | None, error: type[StoreError]) -> bytes:
    try:
        process = subprocess.run(command, input=input_data, capture_output=True, check=False)
    except FileNotFoundError as e:
        raise error(f"'{command[0]}' is not installed, see {AGE_REPO_URL}") from e

    if process.returncode != 0:
        detail = process.stderr.decode("utf-8", "replace").strip()
        raise error(f"{command[0]} failed: {detail}")
    return process.stdout


class AgeBackend:
    """
    Encryption through the age command-line tools.

    With ``identities_file`` set, decryption hands age that file directly and
    the identity records passed to decrypt must be its contents. Without it,
    the records are written to a private scratch file for the call.
    """

    name = "age"

    def __init__(
        self,
        age: str = "age",
        age_keygen: str = "age-keygen",
        identities_file: Path | None = None,
    ) -> None:
        self.age = age
        self.age_keygen = age_keygen
        self.identities_file = identities_file

    def generate_identity(self) -> str:
        output = _run([self.age_keygen], None, StoreError).decode("utf-8")
        for line in output.splitlines():
            if line.startswith("AGE-SECRET-KEY-"):
                return line.strip()
        raise StoreError("failed to parse age-keygen output")

    def derive_recipient(self, identity: str) -> str:
        output = _run([self.age_keygen, "-y"], identity.encode("utf-8") + b"\n", StoreError)
        return output.decode("utf-8").strip()

    def encrypt(self, plaintext: bytes, recipients: Sequence[str]) -> bytes:
        if not recipients:
            raise EncryptError("no recipients to encrypt to")

        # Recipients may be a staged set that is not on disk yet
        with scratch_directory() as scratch:
            recipients_file = scratch / "recipients"
            recipients_file.write_text("\n".join(recipients) + "\n", encoding="utf-8")
            return _run(
                [self.age, "--encrypt", "--recipients-file", str(recipients_file)],
                plaintext,
                EncryptError,
            )

    def decrypt(self, ciphertext: bytes, identities: Sequence[str]) -> bytes:
        if not identities:
            raise DecryptError("no identities available")

        if self.identities_file is not None and self.identities_file.is_file():
            return self._decrypt_with(ciphertext, self.identities_file)

        with scratch_directory() as scratch:
            identity_file = scratch / "identities"
            identity_file.touch(mode=0o600)
            identity_file.write_text("\n".join(identities) + "\n", encoding="utf-8")
            return self._decrypt_with(ciphertext, identity_file)

    def _decrypt_with(self, ciphertext: bytes, identity_file: Path) -> bytes:
        logger.debug(f"Decrypting {len(ciphertext)} bytes with identities from {identity_file}")
        return _run(
            [self.age, "--decrypt", "--identity", str(identity_file)], ciphertext, DecryptError
        )
