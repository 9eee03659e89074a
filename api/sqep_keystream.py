#!/usr/bin/env python3
"""
SQEP Keystream
==============
Per-message keystream for the masking layer.

    prk  = HKDF-Extract(salt=nonce, ikm=key)
    seed = HKDF-Expand(prk, info=QT_DOMAIN, L=32)
    ks   = ChaCha20(seed, counter=0, stream=0)[:length]

Binding the nonce into the derivation keeps every message's stream
independent under one key, as long as nonces never repeat.
"""

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

KEY_LEN = 32
NONCE_LEN = 12
SEED_LEN = 32
QT_DOMAIN = b"SQEP:LITE:QT:v1"

# 32-bit block counter followed by a 96-bit stream id, all zero.
_CHACHA_ZERO_IV = bytes(16)


def _check_inputs(key: bytes, nonce: bytes) -> None:
    if not isinstance(key, (bytes, bytearray)) or len(key) != KEY_LEN:
        raise ValueError("INVALID_KEY_LEN: key must be 32 bytes")
    if not isinstance(nonce, (bytes, bytearray)) or len(nonce) != NONCE_LEN:
        raise ValueError("INVALID_NONCE_LEN: nonce must be 12 bytes")


def derive_seed(key: bytes, nonce: bytes) -> bytes:
    """HKDF-SHA256 extract-then-expand to the 32-byte generator seed."""
    _check_inputs(key, nonce)
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=SEED_LEN,
        salt=bytes(nonce),
        info=QT_DOMAIN,
    )
    return hkdf.derive(bytes(key))


def seed_stream(seed: bytes, length: int) -> bytes:
    """First ``length`` bytes of the 20-round ChaCha keystream for ``seed``."""
    if isinstance(length, bool) or not isinstance(length, int) or length < 0:
        raise ValueError("INVALID_LENGTH: length must be a non-negative int")
    if len(seed) != SEED_LEN:
        raise ValueError("INVALID_SEED_LEN: seed must be 32 bytes")
    if length == 0:
        return b""
    encryptor = Cipher(algorithms.ChaCha20(bytes(seed), _CHACHA_ZERO_IV), mode=None).encryptor()
    return encryptor.update(bytes(length)) + encryptor.finalize()


def derive_keystream(key: bytes, nonce: bytes, length: int) -> bytes:
    """Return exactly ``length`` keystream bytes for (key, nonce)."""
    if isinstance(length, bool) or not isinstance(length, int) or length < 0:
        raise ValueError("INVALID_LENGTH: length must be a non-negative int")
    return seed_stream(derive_seed(key, nonce), length)
