"""Low-level cryptographic primitives for CISA.

Pure functions with no domain knowledge.
"""

from __future__ import annotations

import os

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

GCM_IV_BYTES = 16
GCM_TAG_BYTES = 16

_password_hasher = PasswordHasher()


def generate_key() -> bytes:
    """Generate a fresh random 256-bit AES key."""
    return AESGCM.generate_key(bit_length=256)


def aes_gcm_encrypt_parts(
    key: bytes, plaintext: bytes, aad: bytes | None = None
) -> tuple[bytes, bytes, bytes]:
    """Encrypt plaintext with AES-256-GCM under a fresh 16-byte IV.

    Returns (iv, tag, ciphertext) as separate byte strings. AESGCM appends
    the 16-byte tag to the ciphertext; it is split off here.
    """
    iv = os.urandom(GCM_IV_BYTES)
    sealed = AESGCM(key).encrypt(iv, plaintext, aad)
    return iv, sealed[-GCM_TAG_BYTES:], sealed[:-GCM_TAG_BYTES]


def aes_gcm_decrypt_parts(
    key: bytes, iv: bytes, tag: bytes, ciphertext: bytes, aad: bytes | None = None
) -> bytes:
    """Decrypt data produced by aes_gcm_encrypt_parts.

    Raises cryptography.exceptions.InvalidTag on tampered data or wrong key.
    """
    return AESGCM(key).decrypt(iv, ciphertext + tag, aad)


def hash_password(password: str) -> str:
    """Hash an admin password with Argon2id (PHC string format)."""
    return _password_hasher.hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    """Check a password against an Argon2 hash. Never raises on mismatch."""
    try:
        return _password_hasher.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False
