#!/usr/bin/env python3
"""
sqep_cli.py
===========
Seal and unseal files with a SQEP Lite key.

Commands:
    keygen       — create a new random key file
    fingerprint  — print the short fingerprint of the configured key
    export-key   — print the configured key as base64 (handle with care)
    seal         — seal a file, writing the frame and optional SealMeta JSON
    unseal       — unseal a frame back to the original bytes
    verify-meta  — check a frame against a retained SealMeta JSON
    self-test    — seal/unseal/tamper checks with throwaway keys
    version      — build info

Usage:
    python tools/sqep_cli.py keygen --out ~/.sqep/sqep.key
    python tools/sqep_cli.py seal report.pdf report.pdf.sqep --meta-file report.meta.json
    python tools/sqep_cli.py unseal report.pdf.sqep report.pdf
    python tools/sqep_cli.py verify-meta report.pdf.sqep report.meta.json --json

Key resolution: --key-file, then SQEP_KEY (base64), then SQEP_KEY_PATH,
then ~/.sqep/sqep.key.
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from cli_runtime import (
    ensure_api_on_path,
    resolve_repo_root,
    self_test_core,
    version_result,
    write_json_private_default,
)
from common_keys import default_key_path, load_cipher, write_key_file

REPO_ROOT = resolve_repo_root(__file__)
ensure_api_on_path(REPO_ROOT)

from sqep_security import (  # type: ignore  # noqa: E402
    PROFILE_LEGACY,
    PROFILE_LITE,
    SealMeta,
    SqepError,
    ZeroshieldCipher,
    decode_text,
    verify_meta,
)

CLI_SCHEMA_VERSION = "sqep.cli.v1"
TOOL = "sqep_cli"


def _emit(command: str, ok: bool, result: Dict[str, Any], *, enabled_json: bool, json_file: Optional[Path]) -> None:
    payload = {
        "schema_version": CLI_SCHEMA_VERSION,
        "tool": TOOL,
        "command": command,
        "ok": ok,
        "result": result,
    }
    if json_file:
        write_json_private_default(json_file, payload)
    if enabled_json:
        print(json.dumps(payload, indent=2))


def _fail(args: argparse.Namespace, exc: Exception) -> int:
    result = {"error": str(exc), "error_type": type(exc).__name__}
    _emit(args.command, False, result, enabled_json=args.json, json_file=args.json_file)
    if not args.json:
        print(f"ERROR: {exc}", file=sys.stderr)
    return 1


def _profile(args: argparse.Namespace):
    if getattr(args, "legacy", False) or getattr(args, "sqep39", False):
        return PROFILE_LEGACY
    return PROFILE_LITE


def cmd_keygen(args: argparse.Namespace) -> int:
    out = Path(args.out).expanduser() if args.out else default_key_path()
    cipher = ZeroshieldCipher.generate()
    kp = write_key_file(cipher, out, overwrite=args.force)
    result = {"key_path": str(kp), "fingerprint": cipher.fingerprint()}
    _emit("keygen", True, result, enabled_json=args.json, json_file=args.json_file)
    if not args.json:
        print(f"[keygen] OK key={kp}")
        print(f"  fingerprint={cipher.fingerprint()}")
    return 0


def cmd_fingerprint(args: argparse.Namespace) -> int:
    cipher = load_cipher(args.key_file)
    result = {"fingerprint": cipher.fingerprint()}
    _emit("fingerprint", True, result, enabled_json=args.json, json_file=args.json_file)
    if not args.json:
        print(cipher.fingerprint())
    return 0


def cmd_export_key(args: argparse.Namespace) -> int:
    cipher = load_cipher(args.key_file)
    exported = cipher.export_key_base64()
    result = {"key_base64": exported, "fingerprint": cipher.fingerprint()}
    _emit("export-key", True, result, enabled_json=args.json, json_file=args.json_file)
    if not args.json:
        print(exported)
    return 0


def cmd_seal(args: argparse.Namespace) -> int:
    cipher = load_cipher(args.key_file, _profile(args))
    meta = cipher.encrypt_file(args.input, args.output)
    if args.meta_file:
        write_json_private_default(Path(args.meta_file), meta.to_dict())
    result = {
        "input": str(args.input),
        "output": str(args.output),
        "profile": cipher.profile.name,
        "fingerprint": cipher.fingerprint(),
        "meta": meta.to_dict(),
    }
    _emit("seal", True, result, enabled_json=args.json, json_file=args.json_file)
    if not args.json:
        print(f"[seal] OK {args.input} -> {args.output}")
        print(f"  sha256={meta.hash} timestamp={meta.timestamp}")
    return 0


def cmd_unseal(args: argparse.Namespace) -> int:
    cipher = load_cipher(args.key_file, _profile(args))
    frame = Path(args.input).read_bytes()
    data = cipher.unseal_sqep39(frame) if args.sqep39 else cipher.unseal(frame)
    if args.text:
        # Validate only; bytes are written as recovered.
        decode_text(data)
    Path(args.output).write_bytes(data)
    size = len(data)
    result = {"input": str(args.input), "output": str(args.output), "profile": cipher.profile.name, "bytes": size}
    _emit("unseal", True, result, enabled_json=args.json, json_file=args.json_file)
    if not args.json:
        print(f"[unseal] OK {args.input} -> {args.output} ({size} bytes)")
    return 0


def cmd_verify_meta(args: argparse.Namespace) -> int:
    frame = Path(args.frame).read_bytes()
    meta = SealMeta.from_dict(json.loads(Path(args.meta).read_text(encoding="utf-8")))
    ok = verify_meta(frame, meta)
    result = {"frame": str(args.frame), "expected_sha256": meta.hash, "timestamp": meta.timestamp}
    _emit("verify-meta", ok, result, enabled_json=args.json, json_file=args.json_file)
    if not args.json:
        print(f"[verify-meta] {'PASS' if ok else 'FAIL'} frame={args.frame}")
    return 0 if ok else 1


def cmd_self_test(args: argparse.Namespace) -> int:
    result = self_test_core(tool=TOOL, repo_root=REPO_ROOT)
    ok = bool(result["summary"]["ok"])
    _emit("self-test", ok, result, enabled_json=args.json, json_file=args.json_file)
    if not args.json:
        s = result["summary"]
        print(f"[self-test] {'PASS' if ok else 'FAIL'} {s['checks_passed']}/{s['checks_total']} checks")
        for c in result["checks"]:
            if not c["ok"]:
                print(f"  FAIL {c['name']} {c.get('detail', '')}".rstrip())
    return 0 if ok else 1


def cmd_version(args: argparse.Namespace) -> int:
    result = version_result(tool=TOOL, repo_root=REPO_ROOT)
    _emit("version", True, result, enabled_json=args.json, json_file=args.json_file)
    if not args.json:
        print(f"sqep {result['build']['sqep_version']} (python {result['build']['python']})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sqep",
        description="Seal and unseal files with a SQEP Lite key.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    def _common(p: argparse.ArgumentParser, *, key: bool = True) -> None:
        if key:
            p.add_argument("--key-file", default=None, help="Key file (base64). Overrides SQEP_KEY/SQEP_KEY_PATH")
        p.add_argument("--json", action="store_true", help="Emit a JSON result envelope on stdout")
        p.add_argument("--json-file", default=None, type=Path, help="Also write the JSON envelope to this file")

    p_keygen = sub.add_parser("keygen", help="Create a new random key file")
    p_keygen.add_argument("--out", default=None, help="Key file path (default: SQEP_KEY_PATH or ~/.sqep/sqep.key)")
    p_keygen.add_argument("--force", action="store_true", help="Replace an existing key file")
    _common(p_keygen, key=False)

    p_fp = sub.add_parser("fingerprint", help="Show key fingerprint")
    _common(p_fp)

    p_export = sub.add_parser("export-key", help="Print the key as base64")
    _common(p_export)

    p_seal = sub.add_parser("seal", help="Seal a file")
    p_seal.add_argument("input")
    p_seal.add_argument("output")
    p_seal.add_argument("--meta-file", default=None, help="Write SealMeta JSON here")
    p_seal.add_argument("--legacy", action="store_true", help="SQEP3.9 tag, unmasked body (not the 3.9 library's zero-padded layout)")
    _common(p_seal)

    p_unseal = sub.add_parser("unseal", help="Unseal a frame")
    p_unseal.add_argument("input")
    p_unseal.add_argument("output")
    p_unseal.add_argument("--text", action="store_true", help="Require UTF-8 text output")
    p_unseal.add_argument("--legacy", action="store_true", help="Frames written with seal --legacy")
    p_unseal.add_argument("--sqep39", action="store_true", help="Frames written by the SQEP 3.9 library (16 zero bytes after the plaintext)")
    _common(p_unseal)

    p_vm = sub.add_parser("verify-meta", help="Check a frame against retained SealMeta JSON")
    p_vm.add_argument("frame")
    p_vm.add_argument("meta")
    _common(p_vm, key=False)

    p_st = sub.add_parser("self-test", help="Run built-in seal/unseal checks")
    _common(p_st, key=False)

    p_ver = sub.add_parser("version", help="Show build info")
    _common(p_ver, key=False)

    return parser


COMMANDS = {
    "keygen": cmd_keygen,
    "fingerprint": cmd_fingerprint,
    "export-key": cmd_export_key,
    "seal": cmd_seal,
    "unseal": cmd_unseal,
    "verify-meta": cmd_verify_meta,
    "self-test": cmd_self_test,
    "version": cmd_version,
}


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return COMMANDS[args.command](args)
    except (SqepError, OSError, ValueError) as exc:
        return _fail(args, exc)


if __name__ == "__main__":
    sys.exit(main())
