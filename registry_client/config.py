from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Union

from dotenv import find_dotenv, load_dotenv
from solders.pubkey import Pubkey

from registry_client.constants import DEFAULT_PROGRAM_ID
from registry_client.errors import ConfigError, InvalidAddress
from registry_client.pdas import parse_pubkey

PLACEHOLDER_VALUES = {"<YOUR_KEY>", "YOUR_KEY", "changeme"}


@dataclass(frozen=True)
class Settings:
    rpc_url: str
    program_id: Pubkey
    private_key: Optional[str] = None
    keypair_path: Optional[str] = None
    airdrop_timeout: float = 60.0
    poll_interval: float = 0.5
    log_level: str = "INFO"

    def __repr__(self) -> str:
        key = "***" if self.private_key else None
        return (
            f"Settings(rpc_url={self.rpc_url!r}, program_id={self.program_id}, private_key={key!r}, "
            f"keypair_path={self.keypair_path!r}, airdrop_timeout={self.airdrop_timeout}, "
            f"poll_interval={self.poll_interval}, log_level={self.log_level!r})"
        )


def _read(env: Mapping[str, str], name: str) -> str:
    value = (env.get(name) or "").strip()
    if value in PLACEHOLDER_VALUES:
        return ""
    return value


def _positive_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = _read(env, name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}")
    return value


def load_settings(
    env_file: Union[str, Path, None] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Build :class:`Settings` from the process environment.

    ``.env`` (or ``env_file``) is loaded first without overriding variables
    that are already set. Passing ``environ`` skips dotenv entirely.
    """
    if environ is None:
        load_dotenv(env_file or find_dotenv(usecwd=True), override=False)
        environ = os.environ

    rpc_url = _read(environ, "SOLANA_RPC_URL")
    if not rpc_url:
        raise ConfigError("SOLANA_RPC_URL missing. Set it in env/.env.")

    try:
        program_id = parse_pubkey(_read(environ, "PROGRAM_ID") or DEFAULT_PROGRAM_ID, "PROGRAM_ID")
    except InvalidAddress as exc:
        raise ConfigError(str(exc)) from exc

    private_key = _read(environ, "WALLET_PRIVATE_KEY") or None
    keypair_path = _read(environ, "WALLET_KEYPAIR_PATH") or None
    if not private_key and not keypair_path:
        raise ConfigError("WALLET_PRIVATE_KEY or WALLET_KEYPAIR_PATH must be set.")

    return Settings(
        rpc_url=rpc_url,
        program_id=program_id,
        private_key=private_key,
        keypair_path=keypair_path,
        airdrop_timeout=_positive_float(environ, "REGISTRY_AIRDROP_TIMEOUT", 60.0),
        poll_interval=_positive_float(environ, "REGISTRY_POLL_INTERVAL", 0.5),
        log_level=_read(environ, "LOG_LEVEL").upper() or "INFO",
    )
