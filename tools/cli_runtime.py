#!/usr/bin/env python3
"""Shared runtime helpers for SQEP CLI wrappers."""

from __future__ import annotations

import hashlib
import json
import os
import platform
import sys
import time
from pathlib import Path
from typing import Any, Dict, Iterable, List


def resolve_repo_root(script_file: str) -> Path:
    """Repo root for a script living in tools/."""
    return Path(script_file).resolve().parent.parent


def ensure_api_on_path(repo_root: Path) -> None:
    api_dir = str(repo_root / "api")
    if api_dir not in sys.path:
        sys.path.insert(0, api_dir)


def get_build_info(tool: str, repo_root: Path) -> Dict[str, Any]:
    try:
        import cryptography  # type: ignore
        crypto_ver = getattr(cryptography, "__version__", None)
    except Exception:
        crypto_ver = None
    try:
        import pydantic  # type: ignore
        pydantic_ver = getattr(pydantic, "VERSION", None)
    except Exception:
        pydantic_ver = None

    return {
        "tool": tool,
        "sqep_version": os.environ.get("SQEP_BUILD_VERSION", "dev"),
        "build_commit": os.environ.get("GITHUB_SHA") or os.environ.get("SQEP_BUILD_COMMIT") or "",
        "platform": platform.platform(),
        "system": platform.system(),
        "machine": platform.machine(),
        "python": platform.python_version(),
        "frozen": bool(getattr(sys, "frozen", False)),
        "repo_root": str(repo_root),
        "components": {
            "cryptography": crypto_ver,
            "pydantic": pydantic_ver,
        },
    }


def _check(name: str, ok: bool, severity: str = "error", **extra: Any) -> Dict[str, Any]:
    row = {"name": name, "ok": bool(ok), "severity": severity}
    row.update(extra)
    return row


def summarize_checks(checks: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    checks = list(checks)
    errors = sum(1 for c in checks if not c.get("ok") and c.get("severity") == "error")
    warnings = sum(1 for c in checks if not c.get("ok") and c.get("severity") == "warning")
    return {
        "checks_total": len(checks),
        "checks_passed": sum(1 for c in checks if c.get("ok")),
        "errors": errors,
        "warnings": warnings,
        "ok": errors == 0,
    }


def self_test_core(*, tool: str, repo_root: Path) -> Dict[str, Any]:
    checks: List[Dict[str, Any]] = []
    started = time.time()
    payload = b"sqep-self-test::" + os.urandom(32)

    ensure_api_on_path(repo_root)
    try:
        from sqep_security import (  # type: ignore
            PROFILE_LEGACY,
            PROFILE_LITE,
            DecryptionError,
            MalformedFrameError,
            ZeroshieldCipher,
            verify_meta,
        )
    except Exception as exc:
        checks.append(_check("import_core", False, detail=str(exc)))
        return {
            "version": "sqep-cli-self-test-v1",
            "build": get_build_info(tool, repo_root),
            "summary": summarize_checks(checks),
            "checks": checks,
            "duration_seconds": round(time.time() - started, 3),
        }

    for profile in (PROFILE_LITE, PROFILE_LEGACY):
        name = profile.name
        try:
            cipher = ZeroshieldCipher.generate(profile)
            frame, meta = cipher.seal(payload)
            out = cipher.unseal(frame)
            checks.append(_check(f"{name}_roundtrip", out == payload))
            checks.append(_check(f"{name}_meta_digest", verify_meta(frame, meta)))
            checks.append(_check(f"{name}_payload_not_plaintext", payload not in frame))
        except Exception as exc:
            checks.append(_check(f"{name}_roundtrip", False, detail=str(exc)))
            continue

        tampered = bytearray(frame)
        tampered[-1] ^= 0x01
        try:
            cipher.unseal(bytes(tampered))
            checks.append(_check(f"{name}_tamper_rejected", False))
        except DecryptionError:
            checks.append(_check(f"{name}_tamper_rejected", True))
        except Exception as exc:
            checks.append(_check(f"{name}_tamper_rejected", False, detail=f"{type(exc).__name__}: {exc}"))

        try:
            cipher.unseal(b"\x00" + frame[1:])
            checks.append(_check(f"{name}_header_rejected", False))
        except MalformedFrameError:
            checks.append(_check(f"{name}_header_rejected", True))
        except Exception as exc:
            checks.append(_check(f"{name}_header_rejected", False, detail=f"{type(exc).__name__}: {exc}"))

    return {
        "version": "sqep-cli-self-test-v1",
        "build": get_build_info(tool, repo_root),
        "summary": summarize_checks(checks),
        "checks": checks,
        "duration_seconds": round(time.time() - started, 3),
        "fingerprint_sha256": hashlib.sha256(payload).hexdigest(),
    }


def version_result(*, tool: str, repo_root: Path) -> Dict[str, Any]:
    return {
        "version": "sqep-cli-version-v1",
        "build": get_build_info(tool, repo_root),
    }


def chmod_private(path: Path) -> None:
    if os.name != "nt":
        try:
            path.chmod(0o600)
        except OSError:
            pass


def write_json_private_default(path: Path, payload: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    chmod_private(path)
