"""
Native encryption backend.

An envelope format built on the cryptography package: a random file key
encrypts the body with ChaCha20-Poly1305, and one X25519 stanza per recipient
wraps that file key.

Layout::

    MAGIC | count (u16) | count * (ephemeral public key | wrapped file key)
          | body nonce | ChaCha20-Poly1305(file key, plaintext, aad=header)
"""

import base64
import binascii
import logging
import os
import struct
from collections.abc import Sequence

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey, X25519PublicKey
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.serialization import Encoding, NoEncryption, PrivateFormat, PublicFormat

from strongbox.exceptions import DecryptError, EncryptError

logger = logging.getLogger(__name__)

MAGIC = b"strongbox-v1\n"
IDENTITY_PREFIX = "STRONGBOX-SECRET-KEY-"
RECIPIENT_PREFIX = "strongbox1"

KEY_LEN = 32
NONCE_LEN = 12
TAG_LEN = 16
WRAPPED_LEN = KEY_LEN + TAG_LEN
STANZA_LEN = KEY_LEN + WRAPPED_LEN
WRAP_INFO = b"strongbox-v1 wrap"
# Each wrap key is single-use, so a fixed nonce is safe
WRAP_NONCE = bytes(NONCE_LEN)


def _encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _decode(text: str) -> bytes:
    padded = text + "=" * (-len(text) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def _raw_public(key: X25519PublicKey) -> bytes:
    return key.public_bytes(Encoding.Raw, PublicFormat.Raw)


def _wrap_key(shared: bytes, ephemeral: bytes, recipient: bytes) -> bytes:
    return HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_LEN,
        salt=ephemeral + recipient,
        info=WRAP_INFO,
    ).derive(shared)


class NativeBackend:
    """X25519 + ChaCha20-Poly1305 multi-recipient encryption."""

    name = "native"

    def generate_identity(self) -> str:
        key = X25519PrivateKey.generate()
        raw = key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())
        return IDENTITY_PREFIX + _encode(raw)

    def derive_recipient(self, identity: str) -> str:
        key = self._parse_identity(identity)
        return RECIPIENT_PREFIX + _encode(_raw_public(key.public_key()))

    def _parse_identity(self, identity: str) -> X25519PrivateKey:
        identity = identity.strip()
        if not identity.startswith(IDENTITY_PREFIX):
            raise DecryptError("malformed identity record")
        try:
            raw = _decode(identity[len(IDENTITY_PREFIX) :])
            return X25519PrivateKey.from_private_bytes(raw)
        except (binascii.Error, ValueError) as e:
            raise DecryptError("malformed identity record") from e

    def _parse_recipient(self, recipient: str) -> X25519PublicKey:
        recipient = recipient.strip()
        if not recipient.startswith(RECIPIENT_PREFIX):
            raise EncryptError(f"malformed recipient record: {recipient}")
        try:
            raw = _decode(recipient[len(RECIPIENT_PREFIX) :])
            return X25519PublicKey.from_public_bytes(raw)
        except (binascii.Error, ValueError) as e:
            raise EncryptError(f"malformed recipient record: {recipient}") from e

    def encrypt(self, plaintext: bytes, recipients: Sequence[str]) -> bytes:
        if not recipients:
            raise EncryptError("no recipients to encrypt to")

        public_keys = [self._parse_recipient(r) for r in recipients]
        file_key = ChaCha20Poly1305.generate_key()

        stanzas = []
        for public_key in public_keys:
            ephemeral = X25519PrivateKey.generate()
            ephemeral_raw = _raw_public(ephemeral.public_key())
            wrap = _wrap_key(ephemeral.exchange(public_key), ephemeral_raw, _raw_public(public_key))
            wrapped = ChaCha20Poly1305(wrap).encrypt(WRAP_NONCE, file_key, None)
            stanzas.append(ephemeral_raw + wrapped)

        header = MAGIC + struct.pack(">H", len(stanzas)) + b"".join(stanzas)
        nonce = os.urandom(NONCE_LEN)
        body = ChaCha20Poly1305(file_key).encrypt(nonce, plaintext, header)
        logger.debug(f"Encrypted {len(plaintext)} bytes to {len(stanzas)} recipient(s)")
        return header + nonce + body

    def _split(self, ciphertext: bytes) -> tuple[bytes, list[bytes], bytes, bytes]:
        if not ciphertext.startswith(MAGIC):
            raise DecryptError("ciphertext has unknown format")
        offset = len(MAGIC)
        if len(ciphertext) < offset + 2:
            raise DecryptError("ciphertext is truncated")
        (count,) = struct.unpack(">H", ciphertext[offset : offset + 2])
        offset += 2

        header_end = offset + count * STANZA_LEN
        if len(ciphertext) < header_end + NONCE_LEN + TAG_LEN:
            raise DecryptError("ciphertext is truncated")

        stanzas = [
            ciphertext[pos : pos + STANZA_LEN] for pos in range(offset, header_end, STANZA_LEN)
        ]
        nonce = ciphertext[header_end : header_end + NONCE_LEN]
        return ciphertext[:header_end], stanzas, nonce, ciphertext[header_end + NONCE_LEN :]

    def _unwrap(self, stanzas: list[bytes], identity: X25519PrivateKey) -> bytes | None:
        own = _raw_public(identity.public_key())
        for stanza in stanzas:
            ephemeral_raw, wrapped = stanza[:KEY_LEN], stanza[KEY_LEN:]
            try:
                shared = identity.exchange(X25519PublicKey.from_public_bytes(ephemeral_raw))
            except ValueError:
                continue
            wrap = _wrap_key(shared, ephemeral_raw, own)
            try:
                return ChaCha20Poly1305(wrap).decrypt(WRAP_NONCE, wrapped, None)
            except InvalidTag:
                continue
        return None

    def decrypt(self, ciphertext: bytes, identities: Sequence[str]) -> bytes:
        if not identities:
            raise DecryptError("no identities available")

        header, stanzas, nonce, body = self._split(ciphertext)
        for identity in identities:
            file_key = self._unwrap(stanzas, self._parse_identity(identity))
            if file_key is None:
                continue
            try:
                return ChaCha20Poly1305(file_key).decrypt(nonce, body, header)
            except InvalidTag as e:
                raise DecryptError("ciphertext is corrupt") from e

        raise DecryptError("no identity matched the ciphertext")
