"""Field-level encryption for sensitive registration data.

Protects a single string (the national ID) with AES-256-GCM and serializes
the result as ``<ivHex>:<tagHex>:<ciphertextHex>`` so it fits a plain TEXT
column and can be parsed back without ambiguity (``:`` is not a hex digit).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache

from cryptography.exceptions import InvalidTag

from cisa.config import get_settings
from cisa.utils.crypto import (
    GCM_IV_BYTES,
    GCM_TAG_BYTES,
    aes_gcm_decrypt_parts,
    aes_gcm_encrypt_parts,
)

logger = logging.getLogger(__name__)

ENVELOPE_DELIMITER = ":"
KEY_BYTES = 32

# Shown in place of a national ID whose envelope fails to decrypt.
UNDECRYPTABLE = "[undecryptable]"

_LOWER_HEX_RE = re.compile(r"^(?:[0-9a-f]{2})*$")


class CipherConfigError(ValueError):
    """Raised when the field cipher is constructed without a usable 256-bit key."""


class DecryptionError(Exception):
    """Raised when an envelope is malformed or fails authentication.

    The message is generic; never forward it to end users with the
    underlying cause attached.
    """


class FieldCipher:
    """AES-256-GCM wrapper for one plaintext string per envelope.

    Holds only the key; every call is a pure transformation, so a single
    instance is safe to share across requests.
    """

    __slots__ = ("_key",)

    def __init__(self, key: bytes) -> None:
        if not key:
            raise CipherConfigError("Encryption key is not configured")
        if len(key) != KEY_BYTES:
            raise CipherConfigError(
                f"Encryption key must be {KEY_BYTES} bytes, got {len(key)}"
            )
        self._key = bytes(key)

    @classmethod
    def from_hex(cls, key_hex: str | None) -> FieldCipher:
        if not key_hex or not key_hex.strip():
            raise CipherConfigError("Encryption key is not configured")
        try:
            key = bytes.fromhex(key_hex.strip())
        except ValueError as exc:
            raise CipherConfigError("Encryption key is not valid hex") from exc
        return cls(key)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt plaintext under a fresh random IV.

        Two calls with the same plaintext produce different envelopes.
        """
        iv, tag, ciphertext = aes_gcm_encrypt_parts(self._key, plaintext.encode("utf-8"))
        return ENVELOPE_DELIMITER.join((iv.hex(), tag.hex(), ciphertext.hex()))

    def decrypt(self, envelope: str) -> str:
        """Decrypt an envelope produced by encrypt().

        Raises DecryptionError on any malformed segment, wrong lengths,
        failed tag check, or non-UTF-8 plaintext.
        """
        parts = envelope.split(ENVELOPE_DELIMITER)
        if len(parts) != 3:
            raise DecryptionError("Decryption failed: malformed envelope")
        if not all(_LOWER_HEX_RE.match(p) for p in parts):
            raise DecryptionError("Decryption failed: malformed envelope")

        iv, tag, ciphertext = (bytes.fromhex(p) for p in parts)
        if len(iv) != GCM_IV_BYTES or len(tag) != GCM_TAG_BYTES:
            raise DecryptionError("Decryption failed: malformed envelope")

        try:
            plaintext = aes_gcm_decrypt_parts(self._key, iv, tag, ciphertext)
        except InvalidTag as exc:
            raise DecryptionError("Decryption failed: authentication tag mismatch") from exc
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecryptionError("Decryption failed: invalid plaintext encoding") from exc


def looks_encrypted(value: str) -> bool:
    """True if the stored value has the envelope delimiter.

    Values without it are pre-migration plaintext. This is a migration
    check only; it proves nothing about authenticity.
    """
    return ENVELOPE_DELIMITER in value


@dataclass(frozen=True, slots=True)
class RevealedField:
    """Result of reading a stored field back for display or comparison.

    ``legacy`` is True when the stored value was unencrypted plaintext
    passed through without verification. ``value`` is UNDECRYPTABLE when
    decryption failed.
    """

    value: str
    legacy: bool = False
    undecryptable: bool = False

    @property
    def verified(self) -> bool:
        return not self.legacy and not self.undecryptable


def reveal_field(cipher: FieldCipher, stored: str) -> RevealedField:
    """Decrypt a stored value, isolating failures to this one value."""
    if not looks_encrypted(stored):
        return RevealedField(value=stored, legacy=True)
    try:
        return RevealedField(value=cipher.decrypt(stored))
    except DecryptionError:
        logger.warning("Stored field failed to decrypt; substituting sentinel")
        return RevealedField(value=UNDECRYPTABLE, undecryptable=True)


def mask_national_id(national_id: str) -> str:
    """Replace every digit except the last four with 'X'."""
    if len(national_id) < 4:
        return national_id
    return re.sub(r"\d", "X", national_id[:-4]) + national_id[-4:]


@lru_cache
def get_field_cipher() -> FieldCipher:
    """Process-wide cipher built once from settings."""
    return FieldCipher.from_hex(get_settings().encryption_key)


def protect_field(plaintext: str) -> str:
    """Encrypt a value for storage with the configured key."""
    return get_field_cipher().encrypt(plaintext)


def unprotect_field(envelope: str) -> str:
    """Reverse protect_field. Raises DecryptionError."""
    return get_field_cipher().decrypt(envelope)
