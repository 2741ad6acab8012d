"""Shared test fixtures for passvault."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence, Union

import pytest

from passvault.crypto import CryptoBackend
from passvault.errors import DecryptionError, EncryptionError, KeyNotFoundError
from passvault.models import KeyInfo
from passvault.store import SecretStore
from passvault.vcs import VersionControl

RECIPIENT = "ABCDEF"
MAGIC = b"FAKEPGP:"


class FakeCrypto(CryptoBackend):
    """Reversible stand-in for an OpenPGP engine.

    Ciphertext is ``FAKEPGP:<recipient>:<plaintext>``.
    """

    def __init__(self, recipient: str = RECIPIENT):
        self.recipient = recipient
        self.encrypted: list[tuple[bytes, str]] = []

    @property
    def name(self) -> str:
        return "fake"

    def encrypt(self, data: bytes, recipient: str) -> bytes:
        if not recipient:
            raise EncryptionError("No recipient configured")
        self.encrypted.append((data, recipient))
        return MAGIC + recipient.encode() + b":" + data

    def decrypt(self, data: bytes) -> bytes:
        if not data.startswith(MAGIC):
            raise DecryptionError("not a fake message")
        _, _, plain = data[len(MAGIC):].partition(b":")
        return plain

    def find_secret_key(self, identifier: str) -> KeyInfo:
        if identifier != self.recipient:
            raise KeyNotFoundError(identifier)
        return KeyInfo(fingerprint=identifier, key_id=identifier, has_secret=True)


class RecordingVcs(VersionControl):
    """Remembers every call in order."""

    def __init__(self):
        self.calls: list[tuple[str, str]] = []

    @property
    def name(self) -> str:
        return "recording"

    def add(self, path: Union[str, Path]) -> int:
        self.calls.append(("add", str(path)))
        return 0

    def remove(self, path: Union[str, Path]) -> int:
        self.calls.append(("remove", str(path)))
        return 0

    def commit(self, message: str) -> int:
        self.calls.append(("commit", message))
        return 0

    def dispatch(self, args: Sequence[str]) -> int:
        self.calls.append(("dispatch", " ".join(args)))
        return 0

    @property
    def verbs(self) -> list[str]:
        return [verb for verb, _ in self.calls]


def seal(text: str, recipient: str = RECIPIENT) -> bytes:
    """Ciphertext FakeCrypto can read back."""
    return MAGIC + recipient.encode() + b":" + text.encode()


@pytest.fixture
def fake_crypto() -> FakeCrypto:
    return FakeCrypto()


@pytest.fixture
def vcs() -> RecordingVcs:
    return RecordingVcs()


@pytest.fixture
def store_dir(tmp_path: Path) -> Path:
    """A small store: a.gpg, b/c.gpg, a .gpg-id, and things to ignore."""
    root = tmp_path / "password-store"
    (root / "b").mkdir(parents=True)
    (root / ".gpg-id").write_text(f"{RECIPIENT}\n")
    (root / "a.gpg").write_bytes(seal("alpha-secret\nuser: alice\n"))
    (root / "b" / "c.gpg").write_bytes(seal("charlie-secret\nuser: carol\n"))
    (root / "notes.txt").write_text("not a secret")
    (root / ".git").mkdir()
    (root / ".git" / "config").write_text("[core]\n")
    return root


@pytest.fixture
def store(store_dir: Path, fake_crypto: FakeCrypto) -> SecretStore:
    return SecretStore(store_dir, crypto=fake_crypto)
