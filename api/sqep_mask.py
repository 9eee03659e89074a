#!/usr/bin/env python3
"""Keyed, self-inverse XOR whitening applied underneath the AEAD layer."""

from sqep_keystream import derive_keystream


def mask(data: bytes, key: bytes, nonce: bytes) -> bytes:
    """XOR ``data`` with the (key, nonce) keystream. Applying it twice is a no-op."""
    ks = derive_keystream(key, nonce, len(data))
    return bytes(a ^ b for a, b in zip(data, ks))


# Unmasking is the same transform.
unmask = mask
