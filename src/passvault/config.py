"""
Configuration -- where the store lives and how to talk to it.

Resolution order, later wins:

    defaults -> config.yaml -> environment

    PASSVAULT_CONFIG     path to the YAML file (default ~/.config/passvault/config.yaml)
    PASSWORD_STORE_DIR   store directory, same variable pass(1) reads
    PASSVAULT_CRYPTO     crypto backend: gpg | pgpy

The store itself never reads the environment. It is handed the values
resolved here.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

import yaml
from pydantic import ValidationError

from .models import StoreConfig

logger = logging.getLogger("passvault.config")

DEFAULT_CONFIG_FILE = Path("~/.config/passvault/config.yaml")

ENV_CONFIG_FILE = "PASSVAULT_CONFIG"
ENV_STORE_DIR = "PASSWORD_STORE_DIR"
ENV_CRYPTO = "PASSVAULT_CRYPTO"


def config_path(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Location of the YAML config file."""
    env = os.environ if environ is None else environ
    raw = env.get(ENV_CONFIG_FILE, "").strip()
    return Path(raw).expanduser() if raw else DEFAULT_CONFIG_FILE.expanduser()


def _load_file(config_file: Path) -> dict:
    if not config_file.exists():
        return {}
    try:
        data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Failed to read config %s: %s", config_file, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: expected a mapping", config_file)
        return {}
    return data


def load_config(
    config_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> StoreConfig:
    """Resolve the store configuration.

    Args:
        config_file: YAML file to read. Defaults to ``config_path()``.
        environ: Environment mapping. Defaults to ``os.environ``.

    Returns:
        StoreConfig with paths expanded.
    """
    env = os.environ if environ is None else environ
    source = config_file or config_path(env)
    data = _load_file(source)

    store_dir = env.get(ENV_STORE_DIR, "").strip()
    if store_dir:
        data["store_dir"] = store_dir
    crypto = env.get(ENV_CRYPTO, "").strip()
    if crypto:
        data["crypto_backend"] = crypto

    try:
        config = StoreConfig(**data)
    except ValidationError as exc:
        logger.warning("Invalid config in %s, using defaults: %s", source, exc)
        config = StoreConfig()
        if store_dir:
            config.store_dir = Path(store_dir)

    config.store_dir = config.store_dir.expanduser()
    if config.keyring_dir is not None:
        config.keyring_dir = config.keyring_dir.expanduser()
    return config


def resolve_passphrase(
    config: StoreConfig,
    environ: Optional[Mapping[str, str]] = None,
) -> Optional[str]:
    """Key passphrase from the environment variable named in the config."""
    if not config.passphrase_env:
        return None
    env = os.environ if environ is None else environ
    return env.get(config.passphrase_env)


def save_config(config: StoreConfig, config_file: Optional[Path] = None) -> Path:
    """Persist ``config`` as YAML.

    Returns:
        The file written.
    """
    target = config_file or config_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(mode="json", exclude_none=True)
    target.write_text(yaml.dump(data, default_flow_style=False), encoding="utf-8")
    logger.info("Saved config to %s", target)
    return target
