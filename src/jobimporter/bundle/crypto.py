"""
Passphrase encryption for exported bundles.

Encrypted bundles use Fernet symmetric encryption with a key derived from
the passphrase by PBKDF2-HMAC-SHA256. The iteration count and salt are
stored in the file header, so bundles written with different parameters
remain readable.

File Layout:
    magic     b"JIBX"              4 bytes
    version   0x01                 1 byte
    iters     unsigned 32-bit BE   4 bytes
    salt      random               32 bytes
    token     Fernet token         rest of file
"""

import base64
import secrets
import struct

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

# OWASP 2023 recommends 600,000 iterations for PBKDF2-SHA256
PBKDF2_ITERATIONS = 600_000
# Upper bound accepted from a bundle header
MAX_PBKDF2_ITERATIONS = 10 * PBKDF2_ITERATIONS
SALT_LENGTH = 32  # 256 bits

MAGIC = b"JIBX"
FORMAT_VERSION = 1

_HEADER = struct.Struct(">4sBI")
HEADER_LENGTH = _HEADER.size + SALT_LENGTH


class EnvelopeError(Exception):
    """Raised when an encrypted envelope is malformed."""

    pass


def is_encrypted(data: bytes) -> bool:
    """Check whether ``data`` starts with the encrypted bundle magic."""
    return data[: len(MAGIC)] == MAGIC


def derive_key(passphrase: str, salt: bytes, iterations: int = PBKDF2_ITERATIONS) -> Fernet:
    """
    Derive an encryption key from passphrase and salt.

    Args:
        passphrase: User-provided passphrase.
        salt: Random salt bytes.
        iterations: PBKDF2 iteration count.

    Returns:
        Fernet instance configured with the derived key.
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,  # Fernet requires 32-byte keys
        salt=salt,
        iterations=iterations,
    )
    key = base64.urlsafe_b64encode(kdf.derive(passphrase.encode()))
    return Fernet(key)


def encrypt(plaintext: bytes, passphrase: str, iterations: int = PBKDF2_ITERATIONS) -> bytes:
    """Encrypt ``plaintext`` into an envelope."""
    if not 1 <= iterations <= MAX_PBKDF2_ITERATIONS:
        raise ValueError(f"iterations must be between 1 and {MAX_PBKDF2_ITERATIONS}")
    salt = secrets.token_bytes(SALT_LENGTH)
    token = derive_key(passphrase, salt, iterations).encrypt(plaintext)
    return _HEADER.pack(MAGIC, FORMAT_VERSION, iterations) + salt + token


def check_envelope(envelope: bytes) -> int:
    """
    Check an envelope header.

    Returns:
        The PBKDF2 iteration count from the header.

    Raises:
        EnvelopeError: If the header is truncated, has an unknown version
            or an iteration count outside 1..MAX_PBKDF2_ITERATIONS.
    """
    if len(envelope) <= HEADER_LENGTH:
        raise EnvelopeError("Encrypted bundle is truncated")

    magic, version, iterations = _HEADER.unpack_from(envelope)
    if magic != MAGIC:
        raise EnvelopeError("Not an encrypted bundle")
    if version != FORMAT_VERSION:
        raise EnvelopeError(f"Unsupported encrypted bundle version: {version}")
    if not 1 <= iterations <= MAX_PBKDF2_ITERATIONS:
        raise EnvelopeError("Invalid key derivation parameters")
    return iterations


def decrypt(envelope: bytes, passphrase: str) -> bytes:
    """
    Decrypt an envelope.

    Raises:
        EnvelopeError: If the header is truncated or has an unknown version.
        InvalidToken: If the passphrase is wrong or the data was altered.
    """
    iterations = check_envelope(envelope)

    salt = envelope[_HEADER.size:HEADER_LENGTH]
    token = envelope[HEADER_LENGTH:]
    return derive_key(passphrase, salt, iterations).decrypt(token)


__all__ = [
    "MAX_PBKDF2_ITERATIONS",
    "PBKDF2_ITERATIONS",
    "SALT_LENGTH",
    "EnvelopeError",
    "InvalidToken",
    "check_envelope",
    "decrypt",
    "derive_key",
    "encrypt",
    "is_encrypted",
]
