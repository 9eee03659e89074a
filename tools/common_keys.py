#!/usr/bin/env python3
"""Key resolution and key-file handling for the SQEP tools."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from cli_runtime import chmod_private, ensure_api_on_path, resolve_repo_root

ensure_api_on_path(resolve_repo_root(__file__))

from sqep_security import CipherProfile, PROFILE_LITE, SqepError, ZeroshieldCipher  # type: ignore  # noqa: E402


KEY_ENV = "SQEP_KEY"
KEY_PATH_ENV = "SQEP_KEY_PATH"


class KeyConfigError(SqepError, ValueError):
    """No usable key could be resolved from arguments, env or disk."""


def default_key_path() -> Path:
    env = os.environ.get(KEY_PATH_ENV)
    if env:
        return Path(env).expanduser().resolve()
    return (Path.home() / ".sqep" / "sqep.key").resolve()


def write_key_file(cipher: ZeroshieldCipher, key_path: Path, *, overwrite: bool = False) -> Path:
    kp = Path(key_path).expanduser().resolve()
    if kp.exists() and not overwrite:
        raise KeyConfigError(f"KEY_EXISTS: {kp} (pass --force to replace)")
    kp.parent.mkdir(parents=True, exist_ok=True)
    kp.write_text(cipher.export_key_base64() + "\n", encoding="ascii")
    chmod_private(kp)
    return kp


def read_key_file(key_path: Path, profile: CipherProfile = PROFILE_LITE) -> ZeroshieldCipher:
    kp = Path(key_path).expanduser().resolve()
    if not kp.exists():
        raise KeyConfigError(f"MISSING_KEY: key file not found: {kp}")
    return ZeroshieldCipher.from_key_base64(kp.read_text(encoding="ascii"), profile)


def load_cipher(key_file: Optional[str] = None, profile: CipherProfile = PROFILE_LITE) -> ZeroshieldCipher:
    """
    Resolution order:
    1. explicit --key-file
    2. SQEP_KEY (base64 key text)
    3. SQEP_KEY_PATH, then ~/.sqep/sqep.key
    """
    if key_file:
        return read_key_file(Path(key_file), profile)
    env_key = os.environ.get(KEY_ENV, "")
    if env_key:
        return ZeroshieldCipher.from_key_base64(env_key, profile)
    kp = default_key_path()
    if not kp.exists():
        raise KeyConfigError(
            f"MISSING_KEY: set {KEY_ENV}, {KEY_PATH_ENV} or pass --key-file (looked in {kp})"
        )
    return read_key_file(kp, profile)
