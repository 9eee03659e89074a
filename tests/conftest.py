"""tests/conftest.py — Shared fixtures for the SQEP test suite."""
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parent.parent

# Add api/ and tools/ to sys.path for module imports
for _d in (REPO_ROOT / "api", REPO_ROOT / "tools"):
    if str(_d) not in sys.path:
        sys.path.insert(0, str(_d))

# Fixed 32-byte test key: 0x00..0x1f
TEST_KEY = bytes(range(32))
OTHER_KEY = bytes(range(1, 33))
HELLO = b"hello quantum world!"


@pytest.fixture
def test_key():
    return TEST_KEY


@pytest.fixture
def other_key():
    return OTHER_KEY


@pytest.fixture
def hello():
    return HELLO


@pytest.fixture
def cipher():
    from sqep_security import ZeroshieldCipher
    return ZeroshieldCipher(TEST_KEY)


@pytest.fixture
def legacy_cipher():
    from sqep_security import PROFILE_LEGACY, ZeroshieldCipher
    return ZeroshieldCipher(TEST_KEY, PROFILE_LEGACY)


@pytest.fixture
def sample_payload():
    return b"".join(
        b'{"seq":%d,"event":"tick","payload":"%s"}\n' % (i, b"x" * (i % 17))
        for i in range(200)
    )
