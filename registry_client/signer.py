"""Load the wallet keypair from a secret string or an ``id.json`` file."""

from __future__ import annotations

import base64
import binascii
import json
from pathlib import Path
from typing import Optional

import base58
from solders.keypair import Keypair

from registry_client.errors import ConfigError
from registry_client.logging import log


def _from_raw(raw: bytes) -> Optional[Keypair]:
    if len(raw) == 64:
        return Keypair.from_bytes(raw)
    if len(raw) == 32:
        return Keypair.from_seed(raw)
    return None


def _try_json_array(text: str) -> Optional[Keypair]:
    if not text.startswith("["):
        return None
    try:
        arr = json.loads(text)
    except json.JSONDecodeError:
        return None
    if not (isinstance(arr, list) and all(isinstance(x, int) and 0 <= x <= 255 for x in arr)):
        return None
    return _from_raw(bytes(arr))


def _try_base58(text: str) -> Optional[Keypair]:
    try:
        raw = base58.b58decode(text)
    except ValueError:
        return None
    return _from_raw(raw)


def _try_base64(text: str) -> Optional[Keypair]:
    try:
        raw = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        return None
    return _from_raw(raw)


def keypair_from_secret(secret: str) -> Keypair:
    text = secret.strip()
    for fn in (_try_json_array, _try_base58, _try_base64):
        kp = fn(text)
        if kp is not None:
            log.debug(f"wallet key loaded via {fn.__name__[5:]}", source="signer")
            return kp
    raise ConfigError(
        "Unsupported private key format. Use one of:\n"
        "- base58 secret key (64 bytes) or seed (32 bytes), or\n"
        "- base64 secret (32/64 bytes), or\n"
        "- Solana id.json array of ints."
    )


def load_keypair(secret: Optional[str] = None, path: Optional[str] = None) -> Keypair:
    """``secret`` wins over ``path``; one of them is required."""
    if secret:
        return keypair_from_secret(secret)
    if path:
        p = Path(path).expanduser()
        if not p.is_file():
            raise ConfigError(f"Keypair file not found: {p}")
        return keypair_from_secret(p.read_text(encoding="utf-8"))
    raise ConfigError("No wallet key configured. Set WALLET_PRIVATE_KEY or WALLET_KEYPAIR_PATH.")
