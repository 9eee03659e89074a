"""tests/test_keystream.py — HKDF seed + ChaCha20 keystream derivation."""
import hashlib
import hmac

import pytest

from sqep_keystream import QT_DOMAIN, derive_keystream, derive_seed, seed_stream

# RFC 8439 A.1 test vector #1: all-zero key, nonce and counter.
CHACHA20_ZERO_BLOCK = bytes.fromhex(
    "76b8e0ada0f13d90405d6ae55386bd28"
    "bdd219b8a08ded1aa836efcc8b770dc7"
    "da41597c5157488d7724e03fb8d84a37"
    "6a43b8f41518a11cc387b669b2ee6586"
)

NONCE = bytes(range(100, 112))


def _hkdf_sha256_reference(ikm: bytes, salt: bytes, info: bytes) -> bytes:
    prk = hmac.new(salt, ikm, hashlib.sha256).digest()
    return hmac.new(prk, info + b"\x01", hashlib.sha256).digest()


def test_generator_matches_rfc8439_zero_block():
    assert seed_stream(bytes(32), 64) == CHACHA20_ZERO_BLOCK


def test_generator_partial_word_is_prefix():
    # Output is drawn in generation order; any length is a prefix of a longer draw.
    assert seed_stream(bytes(32), 7) == CHACHA20_ZERO_BLOCK[:7]
    assert seed_stream(bytes(32), 130)[:64] == CHACHA20_ZERO_BLOCK


def test_seed_matches_independent_hkdf(test_key):
    assert derive_seed(test_key, NONCE) == _hkdf_sha256_reference(test_key, NONCE, QT_DOMAIN)


def test_keystream_is_seed_stream_of_hkdf_seed(test_key):
    seed = _hkdf_sha256_reference(test_key, NONCE, QT_DOMAIN)
    assert derive_keystream(test_key, NONCE, 100) == seed_stream(seed, 100)


def test_deterministic(test_key):
    assert derive_keystream(test_key, NONCE, 257) == derive_keystream(test_key, NONCE, 257)


def test_exact_length(test_key):
    for n in (0, 1, 3, 4, 5, 63, 64, 65, 1000):
        assert len(derive_keystream(test_key, NONCE, n)) == n


def test_zero_length_is_empty(test_key):
    assert derive_keystream(test_key, NONCE, 0) == b""


def test_nonce_changes_stream(test_key):
    other = bytes(12)
    assert derive_keystream(test_key, NONCE, 64) != derive_keystream(test_key, other, 64)


def test_key_changes_stream(test_key, other_key):
    assert derive_keystream(test_key, NONCE, 64) != derive_keystream(other_key, NONCE, 64)


def test_domain_label_is_bound(test_key):
    unlabeled = _hkdf_sha256_reference(test_key, NONCE, b"")
    assert derive_seed(test_key, NONCE) != unlabeled


@pytest.mark.parametrize("key", [b"", bytes(16), bytes(31), bytes(33)])
def test_bad_key_length_rejected(key):
    with pytest.raises(ValueError, match="INVALID_KEY_LEN"):
        derive_keystream(key, NONCE, 8)


@pytest.mark.parametrize("nonce", [b"", bytes(8), bytes(11), bytes(13), bytes(24)])
def test_bad_nonce_length_rejected(test_key, nonce):
    with pytest.raises(ValueError, match="INVALID_NONCE_LEN"):
        derive_keystream(test_key, nonce, 8)


@pytest.mark.parametrize("length", [-1, 1.5, "8", True])
def test_bad_length_rejected(test_key, length):
    with pytest.raises(ValueError, match="INVALID_LENGTH"):
        derive_keystream(test_key, NONCE, length)
