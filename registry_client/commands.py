"""Command variants produced by the CLI parser.

Every subcommand maps to one frozen dataclass whose fields are already typed
and validated; argparse ``type=`` converters below do the validation so a bad
argument is reported as a usage error before any config or network access.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass, fields
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, Type, Union

from solders.pubkey import Pubkey

from registry_client.constants import (
    CLI_MAX_DOMAIN_CHARS,
    I32_MAX,
    I32_MIN,
    LAMPORTS_PER_SOL,
    MAX_SEED_LEN,
    U32_MAX,
    U64_MAX,
)
from registry_client.errors import InvalidAddress
from registry_client.pdas import parse_pubkey

# ---------------------------------------------------------------------------
# argparse converters
# ---------------------------------------------------------------------------


def pubkey_arg(text: str) -> Pubkey:
    try:
        return parse_pubkey(text)
    except InvalidAddress as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def registry_name_arg(text: str) -> str:
    size = len(text.encode("utf-8"))
    if size == 0 or size > MAX_SEED_LEN:
        raise argparse.ArgumentTypeError(f"registry name must be 1-{MAX_SEED_LEN} bytes, got {size}")
    return text


def domain_arg(text: str) -> str:
    if len(text) > CLI_MAX_DOMAIN_CHARS:
        raise argparse.ArgumentTypeError(f"Domain name must be {CLI_MAX_DOMAIN_CHARS} characters or less")
    return text


def bool_arg(text: str) -> bool:
    value = text.strip().lower()
    if value == "true":
        return True
    if value == "false":
        return False
    raise argparse.ArgumentTypeError(f"must be true/false, got {text!r}")


def int_range_arg(lo: int, hi: int) -> Callable[[str], int]:
    def convert(text: str) -> int:
        try:
            value = int(text, 10)
        except ValueError as exc:
            raise argparse.ArgumentTypeError(f"invalid integer {text!r}") from exc
        if value < lo or value > hi:
            raise argparse.ArgumentTypeError(f"{value} out of range [{lo}, {hi}]")
        return value

    convert.__name__ = "integer"
    return convert


def sol_amount_arg(text: str) -> int:
    """SOL amount -> lamports, truncating below one lamport."""
    try:
        sol = Decimal(text)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError(f"invalid amount {text!r}") from exc
    if not sol.is_finite() or sol < 0:
        raise argparse.ArgumentTypeError(f"invalid amount {text!r}")
    # compare before scaling; a huge exponent overflows the decimal context
    if sol > Decimal(U64_MAX) / LAMPORTS_PER_SOL:
        raise argparse.ArgumentTypeError(f"amount {text} SOL is too large")
    return int(sol * LAMPORTS_PER_SOL)


limit_arg = int_range_arg(0, U32_MAX)
online_value_arg = int_range_arg(I32_MIN, I32_MAX)
valid_days_arg = int_range_arg(0, 365 * 100)


# ---------------------------------------------------------------------------
# Variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Create:
    name: str


@dataclass(frozen=True)
class AddClient:
    name: str
    account: Pubkey
    valid_days: int
    limit: int


@dataclass(frozen=True)
class AddNode:
    name: str
    account: Pubkey
    domain: str


@dataclass(frozen=True)
class DelegateNode:
    name: str
    account: Pubkey


@dataclass(frozen=True)
class UndelegateNode:
    name: str
    account: Pubkey


@dataclass(frozen=True)
class GetClient:
    name: str
    account: Pubkey


@dataclass(frozen=True)
class GetNode:
    name: str
    account: Pubkey


@dataclass(frozen=True)
class DeleteClient:
    name: str
    account: Pubkey


@dataclass(frozen=True)
class DeleteNode:
    name: str
    account: Pubkey


@dataclass(frozen=True)
class ListClients:
    name: str


@dataclass(frozen=True)
class ListNodes:
    name: str


@dataclass(frozen=True)
class UpdateNodeOnline:
    name: str
    authority: Pubkey
    account: Pubkey
    value: int


@dataclass(frozen=True)
class UpdateNodeActive:
    name: str
    authority: Pubkey
    account: Pubkey
    active: bool


@dataclass(frozen=True)
class Transfer:
    to: Pubkey
    lamports: int


@dataclass(frozen=True)
class Balance:
    pass


@dataclass(frozen=True)
class Airdrop:
    lamports: int = LAMPORTS_PER_SOL


Command = Union[
    Create, AddClient, AddNode, DelegateNode, UndelegateNode, GetClient, GetNode,
    DeleteClient, DeleteNode, ListClients, ListNodes, UpdateNodeOnline,
    UpdateNodeActive, Transfer, Balance, Airdrop,
]

COMMANDS: Dict[str, Type] = {
    "create": Create,
    "add-client": AddClient,
    "add-node": AddNode,
    "delegate-node": DelegateNode,
    "undelegate-node": UndelegateNode,
    "get-client": GetClient,
    "get-node": GetNode,
    "delete-client": DeleteClient,
    "delete-node": DeleteNode,
    "list-clients": ListClients,
    "list-nodes": ListNodes,
    "update-node-online": UpdateNodeOnline,
    "update-node-active": UpdateNodeActive,
    "transfer": Transfer,
    "balance": Balance,
    "airdrop": Airdrop,
}


def from_namespace(ns: argparse.Namespace) -> Command:
    cls = COMMANDS[ns.command]
    return cls(**{f.name: getattr(ns, f.name) for f in fields(cls)})
