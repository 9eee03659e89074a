#!/usr/bin/env python3
"""
SQEP Security - [ZEROSHIELD LITE]
=================================
MISSION: Seal arbitrary byte payloads under one 256-bit key into a
         self-describing, tamper-evident frame, and reverse it.
FEAT:    ChaCha20-Poly1305 AEAD, HKDF-SHA256 + ChaCha20 keyed XOR mask
         underneath the AEAD, SHA-256 seal metadata.
FRAME:   FORMAT_TAG || NONCE(12) || CIPHERTEXT || TAG(16)

The mask is whitening only. Integrity comes from the Poly1305 tag alone.
"""

import base64
import hashlib
import hmac
import os
import time
from dataclasses import dataclass
from typing import Tuple, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305
from pydantic import BaseModel, ConfigDict, Field

from sqep_keystream import KEY_LEN, NONCE_LEN
from sqep_mask import mask

# =========================================================
# 1. SECURITY CONFIGURATION
# =========================================================

TAG_LEN = 16
SQEP39_PAD_LEN = 16
FINGERPRINT_BYTES = 6

MAGIC_LITE = b"SQEP4.0-LITE"
MAGIC_LEGACY = b"SQEP3.9"


@dataclass(frozen=True)
class CipherProfile:
    """Frame tag plus whether the keyed mask sits under the AEAD."""
    name: str
    format_tag: bytes
    masking: bool

    @property
    def min_frame_len(self) -> int:
        return len(self.format_tag) + NONCE_LEN


PROFILE_LITE = CipherProfile(name="lite", format_tag=MAGIC_LITE, masking=True)
PROFILE_LEGACY = CipherProfile(name="legacy", format_tag=MAGIC_LEGACY, masking=False)


# =========================================================
# 2. ERRORS
# =========================================================

class SqepError(Exception):
    """Base for every sealing outcome a caller may need to tell apart."""


class MalformedFrameError(SqepError, ValueError):
    """Frame too short or format tag mismatch. Raised before any crypto work."""


class DecryptionError(SqepError, PermissionError):
    """AEAD rejected the frame. Deliberately carries no detail."""


class TextDecodeError(SqepError, ValueError):
    """Authenticated plaintext is not valid text."""


class EntropyUnavailableError(SqepError, RuntimeError):
    """The OS secure random source failed. Nothing can be sealed safely."""


def secure_random(n: int) -> bytes:
    try:
        return os.urandom(n)
    except (NotImplementedError, OSError) as exc:
        raise EntropyUnavailableError(f"ENTROPY_UNAVAILABLE: {exc}") from exc


# =========================================================
# 3. SEAL METADATA
# =========================================================

class SealMeta(BaseModel):
    """
    Provenance produced alongside a frame.

    Not checked by unseal. Callers that keep a SealMeta and want to detect
    frame substitution before decrypting must call verify_meta() themselves.
    """
    model_config = ConfigDict(frozen=True)

    timestamp: int = Field(ge=0)
    hash: str = Field(pattern=r"^[0-9a-f]{64}$")

    def to_dict(self) -> dict:
        return self.model_dump()

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_dict(cls, data: dict) -> "SealMeta":
        return cls.model_validate(data)


def frame_digest(frame: bytes) -> str:
    return hashlib.sha256(frame).hexdigest()


def verify_meta(frame: bytes, meta: SealMeta) -> bool:
    """True when ``frame`` is byte-identical to the one ``meta`` was computed over."""
    return hmac.compare_digest(frame_digest(bytes(frame)), meta.hash)


def decode_text(data: bytes, encoding: str = "utf-8") -> str:
    try:
        return data.decode(encoding)
    except UnicodeDecodeError:
        raise TextDecodeError("INVALID_TEXT") from None


# =========================================================
# 4. CIPHER
# =========================================================

class ZeroshieldCipher:
    def __init__(self, key: Union[bytes, bytearray], profile: CipherProfile = PROFILE_LITE):
        """
        key:     exactly 32 raw bytes, held immutably for the instance lifetime.
        profile: PROFILE_LITE (masked) or PROFILE_LEGACY (SQEP3.9 tag, unmasked,
                 ciphertext the same length as the plaintext). Frames written by
                 the SQEP 3.9 library carry 16 zero bytes after the plaintext;
                 read those with unseal_sqep39().
        """
        if not isinstance(key, (bytes, bytearray)):
            raise TypeError("INVALID_KEY_TYPE: key must be bytes")
        if len(key) != KEY_LEN:
            raise ValueError(f"INVALID_KEY_LEN: key must be {KEY_LEN} bytes, got {len(key)}")
        self._key = bytes(key)
        self._aead = ChaCha20Poly1305(self._key)
        self.profile = profile

    @classmethod
    def generate(cls, profile: CipherProfile = PROFILE_LITE) -> "ZeroshieldCipher":
        return cls(secure_random(KEY_LEN), profile)

    @classmethod
    def from_key(cls, key: bytes, profile: CipherProfile = PROFILE_LITE) -> "ZeroshieldCipher":
        return cls(key, profile)

    @classmethod
    def from_key_base64(cls, text: str, profile: CipherProfile = PROFILE_LITE) -> "ZeroshieldCipher":
        try:
            raw = base64.b64decode(text.strip(), validate=True)
        except (ValueError, TypeError) as exc:
            raise ValueError(f"INVALID_KEY_B64: {exc}") from None
        return cls(raw, profile)

    def __repr__(self) -> str:
        return f"ZeroshieldCipher(profile={self.profile.name!r}, fingerprint={self.fingerprint()!r})"

    def __copy__(self) -> "ZeroshieldCipher":
        return type(self)(self._key, self.profile)

    def __eq__(self, other) -> bool:
        if not isinstance(other, ZeroshieldCipher):
            return NotImplemented
        return self.profile == other.profile and hmac.compare_digest(self._key, other._key)

    def __hash__(self) -> int:
        return hash((self.profile, self.fingerprint()))

    def fingerprint(self) -> str:
        """First 6 bytes of SHA-256(key), hex. Safe to display."""
        return hashlib.sha256(self._key).digest()[:FINGERPRINT_BYTES].hex()

    def export_key_base64(self) -> str:
        """Explicit export of the raw key. The only path the key leaves the instance."""
        return base64.b64encode(self._key).decode("ascii")

    def seal(self, plaintext: bytes) -> Tuple[bytes, SealMeta]:
        """
        1. fresh 12-byte nonce
        2. keyed XOR mask (profile permitting)
        3. ChaCha20-Poly1305, empty AAD, tag appended
        4. FORMAT_TAG || NONCE || CT+TAG
        5. SealMeta(timestamp, sha256(frame))
        """
        if plaintext is None:
            plaintext = b""
        if not isinstance(plaintext, (bytes, bytearray, memoryview)):
            raise TypeError("INVALID_DATA_TYPE")
        data = bytes(plaintext)

        nonce = secure_random(NONCE_LEN)
        if self.profile.masking:
            data = mask(data, self._key, nonce)
        sealed = self._aead.encrypt(nonce, data, None)

        frame = self.profile.format_tag + nonce + sealed
        meta = SealMeta(timestamp=int(time.time()), hash=frame_digest(frame))
        return frame, meta

    def unseal(self, frame: bytes) -> bytes:
        """Verify and decrypt a frame produced by seal() under the same key and profile."""
        if not isinstance(frame, (bytes, bytearray, memoryview)):
            raise TypeError("INVALID_FRAME_TYPE")
        blob = bytes(frame)

        if len(blob) < self.profile.min_frame_len:
            raise MalformedFrameError("INVALID_FRAME: too short")

        p = len(self.profile.format_tag)
        if not hmac.compare_digest(blob[:p], self.profile.format_tag):
            raise MalformedFrameError("INVALID_MAGIC")

        nonce = blob[p:p + NONCE_LEN]
        sealed = blob[p + NONCE_LEN:]
        if len(sealed) < TAG_LEN:
            raise DecryptionError("DECRYPTION_FAILURE")
        try:
            data = self._aead.decrypt(nonce, sealed, None)
        except InvalidTag:
            raise DecryptionError("DECRYPTION_FAILURE") from None

        if self.profile.masking:
            data = mask(data, self._key, nonce)
        return data

    def unseal_text(self, frame: bytes, encoding: str = "utf-8") -> str:
        return decode_text(self.unseal(frame), encoding)

    def unseal_sqep39(self, frame: bytes) -> bytes:
        """
        Read a frame written by the SQEP 3.9 library, which sealed
        plaintext || 16 zero bytes. The padding is stripped and must be all zero.
        """
        if self.profile.masking:
            raise ValueError("INVALID_PROFILE: SQEP 3.9 frames are unmasked")
        data = self.unseal(frame)
        if len(data) < SQEP39_PAD_LEN or any(data[-SQEP39_PAD_LEN:]):
            raise MalformedFrameError("INVALID_SQEP39_PADDING")
        return data[:-SQEP39_PAD_LEN]

    # SQEP 3.x method names.
    encrypt_with_meta = seal
    decrypt = unseal
    decrypt_utf8 = unseal_text

    def encrypt_file(self, input_path, output_path) -> SealMeta:
        with open(input_path, "rb") as f:
            data = f.read()
        frame, meta = self.seal(data)
        with open(output_path, "wb") as f:
            f.write(frame)
        return meta

    def decrypt_file(self, input_path, output_path) -> None:
        with open(input_path, "rb") as f:
            frame = f.read()
        data = self.unseal(frame)
        with open(output_path, "wb") as f:
            f.write(data)
