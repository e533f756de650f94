from __future__ import annotations

from typing import List, Sequence, Tuple, Union

from solders.pubkey import Pubkey

from registry_client.constants import (
    DELEGATION_PROGRAM,
    MAX_SEED_LEN,
    MAX_SEEDS,
    SEED_BUFFER,
    SEED_DELEGATION_METADATA,
    SEED_DELEGATION_RECORD,
)
from registry_client.errors import DerivationExhausted, InvalidAddress, InvalidSeed

__all__ = [
    "parse_pubkey",
    "derive",
    "find_program_address",
    "registry_address",
    "entry_address",
    "buffer_address",
    "delegation_record_address",
    "delegation_metadata_address",
]

Addressish = Union[str, bytes, bytearray, Pubkey]


def parse_pubkey(value: Addressish, label: str = "address") -> Pubkey:
    """Coerce a base58 string / 32 raw bytes / Pubkey into a Pubkey."""
    if isinstance(value, Pubkey):
        return value
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 32:
            raise InvalidAddress(f"Invalid {label}: expected 32 bytes, got {len(value)}")
        return Pubkey.from_bytes(bytes(value))
    if isinstance(value, str):
        text = value.strip()
        try:
            return Pubkey.from_string(text)
        except ValueError as exc:
            raise InvalidAddress(f"Invalid {label} {text!r}: {exc}") from exc
    raise InvalidAddress(f"Invalid {label}: unsupported type {type(value).__name__}")


# ---------------------------------------------------------------------------
# Core helper
# ---------------------------------------------------------------------------

def _check_seeds(seeds: Sequence[bytes]) -> List[bytes]:
    # the bump occupies one seed slot
    if len(seeds) >= MAX_SEEDS:
        raise InvalidSeed(f"too many seeds ({len(seeds)} + bump > {MAX_SEEDS})")
    out: List[bytes] = []
    for i, seed in enumerate(seeds):
        raw = bytes(seed)
        if len(raw) > MAX_SEED_LEN:
            raise InvalidSeed(f"seed #{i} too long ({len(raw)}B > {MAX_SEED_LEN}B)")
        out.append(raw)
    return out


def derive(seeds: Sequence[bytes], program_id: Pubkey) -> Tuple[Pubkey, int]:
    """Checked wrapper around ``Pubkey.find_program_address`` returning ``(pda, bump)``."""
    checked = _check_seeds(seeds)
    try:
        return Pubkey.find_program_address(checked, program_id)
    except BaseException as exc:
        # solders panics (pyo3 PanicException) when every bump lands on the curve
        if type(exc).__name__ != "PanicException":
            raise
        raise DerivationExhausted(f"no off-curve address for {len(checked)} seeds under {program_id}") from exc


def find_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> Pubkey:
    pda, _ = derive(seeds, program_id)
    return pda


# ---------------------------------------------------------------------------
# Registry program addresses
# ---------------------------------------------------------------------------

def _name_seed(name: str) -> bytes:
    raw = name.encode("utf-8")
    if not raw:
        raise InvalidSeed("registry name must not be empty")
    if len(raw) > MAX_SEED_LEN:
        raise InvalidSeed(f"registry name too long ({len(raw)}B > {MAX_SEED_LEN}B)")
    return raw


def registry_address(program_id: Pubkey, authority: Pubkey, name: str) -> Tuple[Pubkey, int]:
    """PDA(["<authority>", "<name>"])"""
    return derive([bytes(authority), _name_seed(name)], program_id)


def entry_address(program_id: Pubkey, account: Pubkey, registry: Pubkey) -> Tuple[Pubkey, int]:
    """PDA(["<account>", "<registry>"]); shared by client and node entries."""
    return derive([bytes(account), bytes(registry)], program_id)


# ---------------------------------------------------------------------------
# Delegation accounts (delegate-node)
# ---------------------------------------------------------------------------

def buffer_address(program_id: Pubkey, delegated: Pubkey) -> Pubkey:
    return find_program_address([SEED_BUFFER, bytes(delegated)], program_id)


def delegation_record_address(delegated: Pubkey) -> Pubkey:
    return find_program_address([SEED_DELEGATION_RECORD, bytes(delegated)], DELEGATION_PROGRAM)


def delegation_metadata_address(delegated: Pubkey) -> Pubkey:
    return find_program_address([SEED_DELEGATION_METADATA, bytes(delegated)], DELEGATION_PROGRAM)
