"""
AES-256-GCM sealing of secret content.

Each seal() draws a fresh key and a fresh nonce from the randomness source,
so a (key, nonce) pair is never used twice.
"""

import base64
import binascii
import os
from collections.abc import Callable
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from envshare.errors import DecryptionFailure, EncryptionFailure

KEY_SIZE = 32
NONCE_SIZE = 12


@dataclass(frozen=True, slots=True)
class SealedSecret:
    """Result of sealing: the key leaves with the caller, ciphertext and nonce get stored."""

    key: bytes
    nonce: bytes
    ciphertext: bytes

    def __repr__(self) -> str:
        return f"SealedSecret(nonce={self.nonce.hex()}, ciphertext_size={len(self.ciphertext)})"


class CipherCodec:
    def __init__(self, random_bytes: Callable[[int], bytes] = os.urandom) -> None:
        self._random_bytes = random_bytes

    def seal(self, plaintext: str) -> SealedSecret:
        key = self._random_bytes(KEY_SIZE)
        nonce = self._random_bytes(NONCE_SIZE)
        try:
            ciphertext = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), None)
        except (ValueError, OverflowError, UnicodeEncodeError) as e:
            raise EncryptionFailure(f"Encryption failed: {type(e).__name__}") from e
        return SealedSecret(key=key, nonce=nonce, ciphertext=ciphertext)

    def open(self, key: bytes, nonce: bytes, ciphertext: bytes) -> str:
        """
        Authenticate and decrypt ciphertext.

        Raises DecryptionFailure for a wrong key, wrong nonce, tampered or
        truncated ciphertext, and for output that is not UTF-8 text. The
        error never carries key or ciphertext material.
        """
        if len(key) != KEY_SIZE or len(nonce) != NONCE_SIZE:
            raise DecryptionFailure("Decryption failed: invalid key or nonce size")
        try:
            plaintext = AESGCM(key).decrypt(nonce, ciphertext, None)
        except InvalidTag as e:
            raise DecryptionFailure("Decryption failed: authentication tag mismatch") from e
        except ValueError as e:
            raise DecryptionFailure("Decryption failed: invalid input") from e

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionFailure("Decryption failed: content is not valid text") from e


def encode_bytes(value: bytes) -> str:
    """Text encoding for ciphertext and nonce at rest."""
    return base64.b64encode(value).decode("ascii")


def decode_bytes(value: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecryptionFailure("Stored ciphertext is not valid base64") from e
