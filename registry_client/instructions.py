from __future__ import annotations

from typing import List, Tuple

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer

from registry_client.codec import (
    ACCOUNT_ARGS,
    ADD_CLIENT_ARGS,
    ADD_NODE_ARGS,
    INIT_REGISTRY_ARGS,
    UPDATE_NODE_ACTIVE_ARGS,
    UPDATE_NODE_ONLINE_ARGS,
)
from registry_client.constants import (
    DELEGATION_PROGRAM,
    DISCRIMINATORS,
    I32_MAX,
    I32_MIN,
    I64_MAX,
    I64_MIN,
    MAGIC_CONTEXT,
    MAGIC_PROGRAM,
    MAX_DOMAIN_LEN,
    SYSTEM_PROGRAM,
    U32_MAX,
    U64_MAX,
    Operation,
)
from registry_client.errors import DomainTooLong, InvalidArgument, NegativeOnlineValue
from registry_client.pdas import (
    buffer_address,
    delegation_metadata_address,
    delegation_record_address,
    entry_address,
    registry_address,
)

__all__ = [
    "build_init_registry",
    "build_add_client",
    "build_add_node",
    "build_delegate_node",
    "build_undelegate_node",
    "build_remove_client",
    "build_remove_node",
    "build_update_node_online",
    "build_update_node_active",
    "build_transfer",
]


def _meta(pubkey: Pubkey, *, signer: bool = False, writable: bool = False) -> AccountMeta:
    return AccountMeta(pubkey=pubkey, is_signer=signer, is_writable=writable)


def _check_range(label: str, value: int, lo: int, hi: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument(f"{label} must be an integer, got {type(value).__name__}")
    if value < lo or value > hi:
        raise InvalidArgument(f"{label} must be within [{lo}, {hi}], got {value}")
    return value


def check_domain(domain: str) -> str:
    size = len(domain.encode("utf-8"))
    if size > MAX_DOMAIN_LEN:
        raise DomainTooLong(f"Domain name must be {MAX_DOMAIN_LEN} bytes or less (got {size})")
    return domain


def check_online_value(value: int) -> int:
    _check_range("online value", value, I32_MIN, I32_MAX)
    if value < 0:
        raise NegativeOnlineValue(f"online value must be non-negative, got {value}")
    return value


def _ix(program_id: Pubkey, op: Operation, args: bytes, accounts: List[AccountMeta]) -> Instruction:
    return Instruction(program_id=program_id, accounts=accounts, data=DISCRIMINATORS[op] + args)


def build_init_registry(program_id: Pubkey, authority: Pubkey, name: str) -> Tuple[Instruction, Pubkey]:
    registry, _ = registry_address(program_id, authority, name)
    data = INIT_REGISTRY_ARGS.build({"name": name})
    accounts = [
        _meta(registry, writable=True),
        _meta(authority, signer=True, writable=True),
        _meta(SYSTEM_PROGRAM),
    ]
    return _ix(program_id, Operation.INIT_REGISTRY, data, accounts), registry


def build_add_client(
    program_id: Pubkey,
    authority: Pubkey,
    registry: Pubkey,
    account: Pubkey,
    until: int,
    limit: int,
) -> Instruction:
    _check_range("until", until, I64_MIN, I64_MAX)
    _check_range("limit", limit, 0, U32_MAX)
    entry, _ = entry_address(program_id, account, registry)
    data = ADD_CLIENT_ARGS.build({"account": bytes(account), "until": until, "limit": limit})
    accounts = [
        _meta(entry, writable=True),
        _meta(registry),
        _meta(authority, signer=True, writable=True),
        _meta(SYSTEM_PROGRAM),
    ]
    return _ix(program_id, Operation.ADD_CLIENT, data, accounts)


def build_add_node(
    program_id: Pubkey,
    authority: Pubkey,
    registry: Pubkey,
    account: Pubkey,
    domain: str,
) -> Instruction:
    check_domain(domain)
    entry, _ = entry_address(program_id, account, registry)
    data = ADD_NODE_ARGS.build({"account": bytes(account), "domain": domain})
    accounts = [
        _meta(entry, writable=True),
        _meta(registry),
        _meta(authority, signer=True, writable=True),
        _meta(SYSTEM_PROGRAM),
    ]
    return _ix(program_id, Operation.ADD_NODE, data, accounts)


def build_delegate_node(
    program_id: Pubkey,
    authority: Pubkey,
    registry: Pubkey,
    account: Pubkey,
) -> Instruction:
    """
    Hand the node entry PDA over to the delegation program. Besides the
    declared accounts, the program expects the delegation buffer / record /
    metadata PDAs, itself as owner program, the delegation program and the
    system program, in that order.
    """
    node, _ = entry_address(program_id, account, registry)
    data = ACCOUNT_ARGS.build({"account": bytes(account)})
    accounts = [
        _meta(node, writable=True),
        _meta(registry),
        _meta(authority, signer=True, writable=True),
        _meta(buffer_address(program_id, node), writable=True),
        _meta(delegation_record_address(node), writable=True),
        _meta(delegation_metadata_address(node), writable=True),
        _meta(program_id),
        _meta(DELEGATION_PROGRAM),
        _meta(SYSTEM_PROGRAM),
    ]
    return _ix(program_id, Operation.DELEGATE_NODE, data, accounts)


def build_undelegate_node(
    program_id: Pubkey,
    receiver: Pubkey,
    registry: Pubkey,
    account: Pubkey,
) -> Instruction:
    """Commit and undelegate a node entry; sent to the ephemeral rollup."""
    node, _ = entry_address(program_id, account, registry)
    data = ACCOUNT_ARGS.build({"account": bytes(account)})
    accounts = [
        _meta(node, writable=True),
        _meta(registry),
        _meta(receiver, signer=True, writable=True),
        _meta(MAGIC_CONTEXT, writable=True),
        _meta(MAGIC_PROGRAM),
    ]
    return _ix(program_id, Operation.UNDELEGATE_NODE, data, accounts)


def _build_remove(op: Operation, program_id: Pubkey, authority: Pubkey, registry: Pubkey, account: Pubkey) -> Instruction:
    entry, _ = entry_address(program_id, account, registry)
    data = ACCOUNT_ARGS.build({"account": bytes(account)})
    accounts = [
        _meta(entry, writable=True),
        _meta(registry),
        _meta(authority, signer=True, writable=True),
    ]
    return _ix(program_id, op, data, accounts)


def build_remove_client(program_id: Pubkey, authority: Pubkey, registry: Pubkey, account: Pubkey) -> Instruction:
    return _build_remove(Operation.REMOVE_CLIENT, program_id, authority, registry, account)


def build_remove_node(program_id: Pubkey, authority: Pubkey, registry: Pubkey, account: Pubkey) -> Instruction:
    return _build_remove(Operation.REMOVE_NODE, program_id, authority, registry, account)


def build_update_node_online(
    program_id: Pubkey,
    authority: Pubkey,
    registry: Pubkey,
    account: Pubkey,
    value: int,
) -> Instruction:
    """``authority`` must be the node account itself; the program checks entry.registered == signer."""
    check_online_value(value)
    entry, _ = entry_address(program_id, account, registry)
    data = UPDATE_NODE_ONLINE_ARGS.build({"account": bytes(account), "value": value})
    accounts = [
        _meta(entry, writable=True),
        _meta(registry),
        _meta(authority, signer=True, writable=True),
    ]
    return _ix(program_id, Operation.UPDATE_NODE_ONLINE, data, accounts)


def build_update_node_active(
    program_id: Pubkey,
    authority: Pubkey,
    registry: Pubkey,
    account: Pubkey,
    active: bool,
) -> Instruction:
    """``authority`` signs and must itself hold a node entry in ``registry``."""
    entry, _ = entry_address(program_id, account, registry)
    authority_node, _ = entry_address(program_id, authority, registry)
    data = UPDATE_NODE_ACTIVE_ARGS.build({"account": bytes(account), "active": bool(active)})
    accounts = [
        _meta(entry, writable=True),
        _meta(registry),
        _meta(authority_node),
        _meta(authority, signer=True),
    ]
    return _ix(program_id, Operation.UPDATE_NODE_ACTIVE, data, accounts)


def build_transfer(sender: Pubkey, recipient: Pubkey, lamports: int) -> Instruction:
    _check_range("lamports", lamports, 0, U64_MAX)
    return transfer(TransferParams(from_pubkey=sender, to_pubkey=recipient, lamports=lamports))
