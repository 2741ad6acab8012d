"""
Crypto backends -- who actually does the OpenPGP work.

The store never encrypts anything itself. It hands bytes to a backend
and gets bytes back.

GPG: shells out to the system ``gpg`` binary and its keyring. This is
    what pass(1) does, so existing stores just work.
PGPy: pure-Python OpenPGP over a directory of armored keys. Handy when
    there is no gpg-agent around (containers, CI, tests).
"""

from __future__ import annotations

import logging
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Optional

from .errors import DecryptionError, EncryptionError, KeyNotFoundError
from .models import CryptoBackendType, KeyInfo, StoreConfig

if TYPE_CHECKING:
    from pgpy import PGPKey, PGPMessage

logger = logging.getLogger("passvault.crypto")


class CryptoBackend(ABC):
    """Abstract OpenPGP engine."""

    @abstractmethod
    def encrypt(self, data: bytes, recipient: str) -> bytes:
        """Encrypt ``data`` to ``recipient``.

        Raises:
            EncryptionError: Missing or unusable recipient key.
        """

    @abstractmethod
    def decrypt(self, data: bytes) -> bytes:
        """Decrypt ``data`` with whatever secret key fits.

        Raises:
            DecryptionError: Malformed input or no usable secret key.
        """

    @abstractmethod
    def find_secret_key(self, identifier: str) -> KeyInfo:
        """Look up a key by fingerprint, key id or user id.

        Raises:
            KeyNotFoundError: Nothing matches ``identifier``.
        """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable backend name."""


class GpgBackend(CryptoBackend):
    """System gpg, driven over stdin/stdout.

    Encryption mirrors pass(1): no encrypt-to, no compression.
    """

    def __init__(
        self,
        binary: str = "gpg",
        homedir: Optional[Path] = None,
        timeout: int = 60,
    ):
        self.binary = binary
        self.homedir = homedir.expanduser() if homedir else None
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "gpg"

    def _command(self, *args: str) -> list[str]:
        cmd = [self.binary, "--quiet", "--yes"]
        if self.homedir:
            cmd.extend(["--homedir", str(self.homedir)])
        cmd.extend(args)
        return cmd

    def _run(self, cmd: list[str], data: Optional[bytes] = None) -> subprocess.CompletedProcess:
        logger.debug("Running: %s", " ".join(cmd))
        return subprocess.run(
            cmd,
            input=data,
            capture_output=True,
            check=False,
            timeout=self.timeout,
        )

    def encrypt(self, data: bytes, recipient: str) -> bytes:
        if not recipient:
            raise EncryptionError("No recipient configured (missing .gpg-id?)")

        cmd = self._command(
            "--batch", "--trust-model", "always",
            "--encrypt", "--recipient", recipient,
            "--no-encrypt-to", "--compress-algo", "none",
        )
        try:
            result = self._run(cmd, data)
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise EncryptionError(f"Could not run {self.binary}: {exc}") from exc

        if result.returncode != 0:
            stderr = result.stderr.decode(errors="replace").strip()
            raise EncryptionError(f"gpg encryption for {recipient} failed: {stderr}")
        return result.stdout

    def decrypt(self, data: bytes) -> bytes:
        # No --batch here: gpg-agent may need to ask for a passphrase.
        cmd = self._command("--decrypt")
        try:
            result = self._run(cmd, data)
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise DecryptionError(f"Could not run {self.binary}: {exc}") from exc

        if result.returncode != 0:
            stderr = result.stderr.decode(errors="replace").strip()
            raise DecryptionError(f"gpg decryption failed: {stderr}")
        return result.stdout

    def find_secret_key(self, identifier: str) -> KeyInfo:
        for listing, has_secret in (("--list-secret-keys", True), ("--list-keys", False)):
            cmd = self._command("--batch", "--with-colons", listing, identifier)
            try:
                result = self._run(cmd)
            except (OSError, subprocess.TimeoutExpired) as exc:
                raise KeyNotFoundError(f"Could not run {self.binary}: {exc}") from exc
            if result.returncode != 0:
                continue
            info = _parse_colons(result.stdout.decode(errors="replace"), has_secret)
            if info is not None:
                return info
        raise KeyNotFoundError(f"No key found for {identifier!r}")


def _parse_colons(output: str, has_secret: bool) -> Optional[KeyInfo]:
    """Read the first primary key out of ``gpg --with-colons`` output."""
    info: Optional[KeyInfo] = None
    for line in output.splitlines():
        fields = line.split(":")
        record = fields[0]
        if record in ("sec", "pub"):
            if info is not None:
                break
            info = KeyInfo(
                fingerprint="",
                key_id=fields[4] if len(fields) > 4 else "",
                has_secret=has_secret,
            )
        elif info is None:
            continue
        elif record == "fpr" and not info.fingerprint and len(fields) > 9:
            info.fingerprint = fields[9]
        elif record == "uid" and len(fields) > 9:
            info.user_ids.append(fields[9])
    return info


class PgpyBackend(CryptoBackend):
    """OpenPGP via PGPy over an in-memory set of armored keys.

    Args:
        keys: ASCII-armored public or private keys.
        passphrase: Unlocks protected private keys.
    """

    def __init__(self, keys: Iterable[str] = (), passphrase: Optional[str] = None):
        self.passphrase = passphrase
        self._keys: list[PGPKey] = []
        for blob in keys:
            self.add_key(blob)

    @classmethod
    def from_keyring(cls, keyring_dir: Path, passphrase: Optional[str] = None) -> PgpyBackend:
        """Load every ``*.asc`` file under ``keyring_dir``."""
        from pgpy.errors import PGPError

        keyring_dir = keyring_dir.expanduser()
        backend = cls(passphrase=passphrase)
        for key_file in sorted(keyring_dir.glob("*.asc")):
            try:
                backend.add_key(key_file.read_text(encoding="utf-8"))
            except (OSError, ValueError, PGPError) as exc:
                logger.warning("Skipping unreadable key %s: %s", key_file.name, exc)
        logger.debug("Loaded %d key(s) from %s", len(backend._keys), keyring_dir)
        return backend

    @property
    def name(self) -> str:
        return "pgpy"

    def add_key(self, armored: str) -> KeyInfo:
        import pgpy

        key, _ = pgpy.PGPKey.from_blob(armored)
        self._keys.append(key)
        return _describe(key)

    def _matching(self, identifier: str) -> list[PGPKey]:
        if not identifier.strip():
            return []
        return [k for k in self._keys if _key_matches(k, identifier)]

    def find_secret_key(self, identifier: str) -> KeyInfo:
        matches = self._matching(identifier)
        if not matches:
            raise KeyNotFoundError(f"No key found for {identifier!r}")
        secret = [k for k in matches if not k.is_public]
        return _describe(secret[0] if secret else matches[0])

    def encrypt(self, data: bytes, recipient: str) -> bytes:
        import pgpy
        from pgpy.errors import PGPError

        if not recipient:
            raise EncryptionError("No recipient configured (missing .gpg-id?)")

        matches = self._matching(recipient)
        if not matches:
            raise EncryptionError(f"No key found for recipient {recipient!r}")

        key = matches[0]
        public = key if key.is_public else key.pubkey
        try:
            encrypted = public.encrypt(pgpy.PGPMessage.new(data))
        except (PGPError, ValueError, NotImplementedError) as exc:
            raise EncryptionError(f"Encryption for {recipient} failed: {exc}") from exc
        return bytes(encrypted)

    def decrypt(self, data: bytes) -> bytes:
        import pgpy
        from pgpy.errors import PGPError

        try:
            message = pgpy.PGPMessage.from_blob(data)
        except (PGPError, ValueError, TypeError) as exc:
            raise DecryptionError(f"Not an OpenPGP message: {exc}") from exc

        for key in self._keys:
            if key.is_public:
                continue
            try:
                plain = self._decrypt_with(key, message)
            except PGPError as exc:
                logger.debug("Key %s cannot decrypt: %s", key.fingerprint.keyid, exc)
                continue
            if plain is None:
                continue
            payload = plain.message
            return payload.encode("utf-8") if isinstance(payload, str) else bytes(payload)

        raise DecryptionError("No secret key available to decrypt message")

    def _decrypt_with(self, key: PGPKey, message: PGPMessage) -> Optional[PGPMessage]:
        if not key.is_protected:
            return key.decrypt(message)
        if self.passphrase is None:
            logger.debug("Key %s is protected and no passphrase given", key.fingerprint.keyid)
            return None
        with key.unlock(self.passphrase):
            return key.decrypt(message)


def _describe(key: PGPKey) -> KeyInfo:
    user_ids = []
    for uid in key.userids:
        user_ids.append(f"{uid.name} <{uid.email}>" if uid.email else uid.name)
    return KeyInfo(
        fingerprint=str(key.fingerprint).replace(" ", ""),
        key_id=key.fingerprint.keyid,
        user_ids=user_ids,
        has_secret=not key.is_public,
    )


def _key_matches(key: PGPKey, identifier: str) -> bool:
    """Fingerprint / key-id suffix match, else case-insensitive user id match."""
    wanted = identifier.replace(" ", "").upper()
    if wanted.startswith("0X"):
        wanted = wanted[2:]
    fingerprint = str(key.fingerprint).replace(" ", "").upper()
    if wanted and fingerprint.endswith(wanted):
        return True
    needle = identifier.strip().lower()
    return any(
        needle in (uid.name or "").lower() or needle in (uid.email or "").lower()
        for uid in key.userids
    )


def create_crypto(config: StoreConfig, passphrase: Optional[str] = None) -> CryptoBackend:
    """Factory function to create the configured crypto backend.

    Args:
        config: Resolved store configuration.
        passphrase: Unlocks protected keys (PGPy backend only).

    Returns:
        Instantiated CryptoBackend.

    Raises:
        ValueError: If the backend is unsupported or misconfigured.
    """
    if config.crypto_backend == CryptoBackendType.GPG:
        return GpgBackend(binary=config.gpg_binary, homedir=config.gpg_homedir)
    if config.crypto_backend == CryptoBackendType.PGPY:
        if config.keyring_dir is None:
            raise ValueError("The pgpy backend needs keyring_dir to be set")
        return PgpyBackend.from_keyring(config.keyring_dir, passphrase=passphrase)
    raise ValueError(f"Unsupported crypto backend: {config.crypto_backend}")
