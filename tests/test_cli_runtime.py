#!/usr/bin/env python3
"""Shared CLI runtime helpers."""
from pathlib import Path

from cli_runtime import resolve_repo_root, self_test_core
import sqep_security
from sqep_security import DecryptionError, SqepError


REPO_ROOT = Path(__file__).resolve().parent.parent


def test_resolve_repo_root_from_tools_script():
    assert resolve_repo_root(str(REPO_ROOT / "tools" / "sqep_cli.py")) == REPO_ROOT


def test_self_test_passes():
    result = self_test_core(tool="sqep_cli", repo_root=REPO_ROOT)
    assert result["summary"]["ok"] is True
    assert all(c["ok"] for c in result["checks"])


def test_self_test_records_unexpected_error_as_failed_check(monkeypatch):
    real_unseal = sqep_security.ZeroshieldCipher.unseal

    def _unseal(self, frame):
        try:
            return real_unseal(self, frame)
        except DecryptionError:
            raise SqepError("UNEXPECTED_OUTCOME")

    monkeypatch.setattr(sqep_security.ZeroshieldCipher, "unseal", _unseal)
    result = self_test_core(tool="sqep_cli", repo_root=REPO_ROOT)

    rows = {c["name"]: c for c in result["checks"]}
    assert rows["lite_tamper_rejected"]["ok"] is False
    assert "UNEXPECTED_OUTCOME" in rows["lite_tamper_rejected"]["detail"]
    assert rows["lite_header_rejected"]["ok"] is True
    assert result["summary"]["ok"] is False
