"""Tests for the PGPy backend: real OpenPGP round-trips."""

from __future__ import annotations

import logging

import pytest

pgpy = pytest.importorskip("pgpy")

from pgpy.constants import (  # noqa: E402
    HashAlgorithm,
    KeyFlags,
    PubKeyAlgorithm,
    SymmetricKeyAlgorithm,
)

from passvault.crypto import PgpyBackend, create_crypto  # noqa: E402
from passvault.errors import DecryptionError, EncryptionError, KeyNotFoundError  # noqa: E402
from passvault.models import StoreConfig  # noqa: E402

PASSPHRASE = "correct horse battery staple"


def _generate_key(name: str, email: str, passphrase: str | None = None) -> pgpy.PGPKey:
    """Generate a test RSA-2048 key usable for encryption."""
    key = pgpy.PGPKey.new(PubKeyAlgorithm.RSAEncryptOrSign, 2048)
    uid = pgpy.PGPUID.new(name, email=email)
    key.add_uid(
        uid,
        usage={
            KeyFlags.Sign,
            KeyFlags.Certify,
            KeyFlags.EncryptCommunications,
            KeyFlags.EncryptStorage,
        },
        hashes=[HashAlgorithm.SHA256],
        ciphers=[SymmetricKeyAlgorithm.AES256],
    )
    if passphrase:
        key.protect(passphrase, SymmetricKeyAlgorithm.AES256, HashAlgorithm.SHA256)
    return key


@pytest.fixture(scope="session")
def alice_key() -> str:
    """Unprotected secret key."""
    return str(_generate_key("Alice", "alice@example.com"))


@pytest.fixture(scope="session")
def bob_key() -> str:
    """Passphrase-protected secret key."""
    return str(_generate_key("Bob", "bob@example.com", PASSPHRASE))


def _fingerprint(armored: str) -> str:
    key, _ = pgpy.PGPKey.from_blob(armored)
    return str(key.fingerprint).replace(" ", "")


def _public(armored: str) -> str:
    key, _ = pgpy.PGPKey.from_blob(armored)
    return str(key.pubkey)


class TestPgpyBackend:
    """Real OpenPGP round-trips through PGPy."""

    def test_roundtrip(self, alice_key):
        backend = PgpyBackend([alice_key])
        ciphertext = backend.encrypt(b"hunter2\n", "alice@example.com")

        assert b"hunter2" not in ciphertext
        assert backend.decrypt(ciphertext) == b"hunter2\n"

    def test_recipient_by_fingerprint(self, alice_key):
        backend = PgpyBackend([alice_key])
        fingerprint = _fingerprint(alice_key)

        for identifier in (fingerprint, fingerprint[-16:], "0x" + fingerprint[-16:].lower()):
            ciphertext = backend.encrypt(b"x", identifier)
            assert backend.decrypt(ciphertext) == b"x"

    def test_encrypt_with_public_key_only(self, alice_key):
        public_only = PgpyBackend([_public(alice_key)])
        ciphertext = public_only.encrypt(b"secret", "Alice")

        with pytest.raises(DecryptionError):
            public_only.decrypt(ciphertext)
        assert PgpyBackend([alice_key]).decrypt(ciphertext) == b"secret"

    def test_protected_key_needs_passphrase(self, bob_key):
        ciphertext = PgpyBackend([bob_key]).encrypt(b"bob-secret", "bob@example.com")

        with pytest.raises(DecryptionError):
            PgpyBackend([bob_key]).decrypt(ciphertext)
        with pytest.raises(DecryptionError):
            PgpyBackend([bob_key], passphrase="wrong").decrypt(ciphertext)
        assert PgpyBackend([bob_key], passphrase=PASSPHRASE).decrypt(ciphertext) == b"bob-secret"

    def test_wrong_key(self, alice_key, bob_key):
        ciphertext = PgpyBackend([alice_key]).encrypt(b"for alice", "Alice")
        with pytest.raises(DecryptionError):
            PgpyBackend([bob_key], passphrase=PASSPHRASE).decrypt(ciphertext)

    def test_unknown_recipient(self, alice_key):
        backend = PgpyBackend([alice_key])
        with pytest.raises(EncryptionError):
            backend.encrypt(b"x", "mallory@example.com")

    def test_empty_recipient(self, alice_key):
        with pytest.raises(EncryptionError):
            PgpyBackend([alice_key]).encrypt(b"x", "")

    def test_find_secret_key(self, alice_key, bob_key):
        backend = PgpyBackend([_public(bob_key), alice_key])

        alice = backend.find_secret_key("ALICE@example.com")
        assert alice.has_secret is True
        assert alice.fingerprint == _fingerprint(alice_key)
        assert alice.user_ids == ["Alice <alice@example.com>"]

        bob = backend.find_secret_key("bob")
        assert bob.has_secret is False

        with pytest.raises(KeyNotFoundError):
            backend.find_secret_key("carol")
        with pytest.raises(KeyNotFoundError):
            backend.find_secret_key("  ")

    def test_add_key_describes(self, alice_key):
        info = PgpyBackend().add_key(alice_key)
        assert info.key_id == info.fingerprint[-16:]

    def test_from_keyring(self, tmp_path, alice_key, bob_key, caplog):
        keyring = tmp_path / "keys"
        keyring.mkdir()
        (keyring / "alice.asc").write_text(alice_key)
        (keyring / "bob.asc").write_text(bob_key)
        (keyring / "broken.asc").write_text("not a key")
        (keyring / "README").write_text("ignored")

        with caplog.at_level(logging.WARNING, logger="passvault.crypto"):
            backend = PgpyBackend.from_keyring(keyring, passphrase=PASSPHRASE)

        assert "broken.asc" in caplog.text
        ciphertext = backend.encrypt(b"x", "bob@example.com")
        assert backend.decrypt(ciphertext) == b"x"

    def test_name(self):
        assert PgpyBackend().name == "pgpy"


class TestCreatePgpy:
    def test_from_keyring_dir(self, tmp_path, alice_key):
        (tmp_path / "alice.asc").write_text(alice_key)
        config = StoreConfig(crypto_backend="pgpy", keyring_dir=tmp_path)
        backend = create_crypto(config)
        assert isinstance(backend, PgpyBackend)
        assert backend.find_secret_key("alice").has_secret is True
