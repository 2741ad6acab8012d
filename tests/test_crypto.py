"""Tests for the gpg backend (mocked subprocess) and the backend factory."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from passvault.crypto import GpgBackend, _parse_colons, create_crypto
from passvault.errors import DecryptionError, EncryptionError, KeyNotFoundError
from passvault.models import CryptoBackendType, StoreConfig


def _completed(returncode: int = 0, stdout: bytes = b"", stderr: bytes = b""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


SECRET_LISTING = (
    "sec:u:255:22:89ABCDEF01234567:1600000000:::u:::scESC:::+:::ed25519:::0:\n"
    "fpr:::::::::0123456789ABCDEF012389ABCDEF01234567:\n"
    "grp:::::::::AAAA:\n"
    "uid:u::::1600000000::HASH::Alice <alice@example.com>::::::::::0:\n"
    "ssb:u:255:18:7654321076543210:1600000000::::::e:::+:::cv25519::\n"
    "fpr:::::::::FFFFFFFFFFFFFFFFFFFF7654321076543210:\n"
)


class TestGpgBackend:
    """Command lines and error mapping for the gpg binary."""

    def test_encrypt_command(self):
        backend = GpgBackend(homedir=Path("/tmp/gnupg"))
        with patch("passvault.crypto.subprocess.run", return_value=_completed(stdout=b"CIPHER")) as run:
            assert backend.encrypt(b"plain", "ABCDEF") == b"CIPHER"

        cmd = run.call_args.args[0]
        assert cmd[:5] == ["gpg", "--quiet", "--yes", "--homedir", "/tmp/gnupg"]
        assert cmd[cmd.index("--recipient") + 1] == "ABCDEF"
        assert "--no-encrypt-to" in cmd
        assert cmd[cmd.index("--compress-algo") + 1] == "none"
        assert run.call_args.kwargs["input"] == b"plain"
        assert run.call_args.kwargs["check"] is False

    def test_encrypt_without_recipient(self):
        with patch("passvault.crypto.subprocess.run") as run:
            with pytest.raises(EncryptionError):
                GpgBackend().encrypt(b"plain", "")
        run.assert_not_called()

    def test_encrypt_failure(self):
        failed = _completed(returncode=2, stderr=b"No public key")
        with patch("passvault.crypto.subprocess.run", return_value=failed):
            with pytest.raises(EncryptionError) as exc_info:
                GpgBackend().encrypt(b"plain", "ABCDEF")
        assert "No public key" in exc_info.value.detail

    def test_missing_binary(self):
        with patch("passvault.crypto.subprocess.run", side_effect=FileNotFoundError("gpg2")):
            with pytest.raises(EncryptionError):
                GpgBackend(binary="gpg2").encrypt(b"plain", "ABCDEF")
            with pytest.raises(DecryptionError):
                GpgBackend(binary="gpg2").decrypt(b"cipher")

    def test_timeout(self):
        with patch(
            "passvault.crypto.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="gpg", timeout=1),
        ):
            with pytest.raises(DecryptionError):
                GpgBackend(timeout=1).decrypt(b"cipher")

    def test_decrypt(self):
        with patch("passvault.crypto.subprocess.run", return_value=_completed(stdout=b"plain")) as run:
            assert GpgBackend().decrypt(b"cipher") == b"plain"
        cmd = run.call_args.args[0]
        assert cmd == ["gpg", "--quiet", "--yes", "--decrypt"]

    def test_decrypt_failure(self):
        failed = _completed(returncode=2, stderr=b"decryption failed: No secret key")
        with patch("passvault.crypto.subprocess.run", return_value=failed):
            with pytest.raises(DecryptionError) as exc_info:
                GpgBackend().decrypt(b"cipher")
        assert "No secret key" in str(exc_info.value)

    def test_find_secret_key(self):
        with patch(
            "passvault.crypto.subprocess.run",
            return_value=_completed(stdout=SECRET_LISTING.encode()),
        ) as run:
            info = GpgBackend().find_secret_key("alice")

        assert info.fingerprint == "0123456789ABCDEF012389ABCDEF01234567"
        assert info.key_id == "89ABCDEF01234567"
        assert info.user_ids == ["Alice <alice@example.com>"]
        assert info.has_secret is True
        assert "--list-secret-keys" in run.call_args.args[0]

    def test_find_falls_back_to_public(self):
        public = SECRET_LISTING.replace("sec:", "pub:").encode()
        with patch(
            "passvault.crypto.subprocess.run",
            side_effect=[_completed(returncode=2), _completed(stdout=public)],
        ) as run:
            info = GpgBackend().find_secret_key("alice")

        assert info.has_secret is False
        assert "--list-keys" in run.call_args.args[0]

    def test_find_nothing(self):
        with patch("passvault.crypto.subprocess.run", return_value=_completed(returncode=2)):
            with pytest.raises(KeyNotFoundError):
                GpgBackend().find_secret_key("nobody")


class TestParseColons:
    """gpg --with-colons parsing."""

    def test_first_key_only(self):
        second = SECRET_LISTING.replace("89ABCDEF01234567", "1111111111111111")
        info = _parse_colons(SECRET_LISTING + second, has_secret=True)
        assert info.key_id == "89ABCDEF01234567"
        assert len(info.user_ids) == 1

    def test_empty(self):
        assert _parse_colons("", has_secret=False) is None
        assert _parse_colons("tru::1:1600000000:0:3:1:5\n", has_secret=False) is None


class TestCreateCrypto:
    """Backend factory."""

    def test_gpg_default(self):
        backend = create_crypto(StoreConfig(gpg_binary="gpg2"))
        assert isinstance(backend, GpgBackend)
        assert backend.binary == "gpg2"

    def test_pgpy_needs_keyring(self):
        with pytest.raises(ValueError):
            create_crypto(StoreConfig(crypto_backend=CryptoBackendType.PGPY))
