"""High level registry operations.

Each method derives the addresses it needs, builds one instruction and
either submits it through :class:`TransactionPipeline` or fetches and
decodes the entry account. Registries are derived from the held key,
except for the two ``update_node_*`` calls which take the registry
authority explicitly.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, List, Optional, Tuple, TypeVar, Union

from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature

from registry_client.codec import ClientEntry, NodeEntry, decode_client_entry, decode_node_entry
from registry_client.config import Settings
from registry_client.constants import CLIENT_ENTRY_SIZE, LAMPORTS_PER_SOL, NODE_ENTRY_SIZE, PARENT_OFFSET
from registry_client.errors import InsufficientBalance, InvalidArgument, MalformedAccount
from registry_client.instructions import (
    build_add_client,
    build_add_node,
    build_delegate_node,
    build_init_registry,
    build_remove_client,
    build_remove_node,
    build_transfer,
    build_undelegate_node,
    build_update_node_active,
    build_update_node_online,
)
from registry_client.logging import log
from registry_client.pdas import Addressish, entry_address, parse_pubkey, registry_address
from registry_client.pipeline import TransactionPipeline
from registry_client.signer import load_keypair
from registry_client.transport import DataSizeFilter, MemcmpFilter, RegistryTransport, SolanaTransport

E = TypeVar("E")


class RegistryFacade:
    def __init__(
        self,
        transport: RegistryTransport,
        keypair: Keypair,
        program_id: Addressish,
        *,
        airdrop_timeout: float = 60.0,
        poll_interval: float = 0.5,
        pipeline: Optional[TransactionPipeline] = None,
    ) -> None:
        self.transport = transport
        self.program_id = parse_pubkey(program_id, "program id")
        self._keypair = keypair
        self.pipeline = pipeline or TransactionPipeline(
            transport,
            keypair,
            airdrop_timeout=airdrop_timeout,
            poll_interval=poll_interval,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "RegistryFacade":
        keypair = load_keypair(settings.private_key, settings.keypair_path)
        transport = SolanaTransport(settings.rpc_url, poll_interval=settings.poll_interval)
        return cls(
            transport,
            keypair,
            settings.program_id,
            airdrop_timeout=settings.airdrop_timeout,
            poll_interval=settings.poll_interval,
        )

    @property
    def authority(self) -> Pubkey:
        return self._keypair.pubkey()

    # ------------------------------------------------------------------
    # resources
    # ------------------------------------------------------------------
    def close(self) -> None:
        self.transport.close()

    def __enter__(self) -> "RegistryFacade":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ------------------------------------------------------------------
    # addresses
    # ------------------------------------------------------------------
    def registry_address(self, name: str, authority: Optional[Addressish] = None) -> Pubkey:
        owner = parse_pubkey(authority, "authority") if authority is not None else self.authority
        address, _ = registry_address(self.program_id, owner, name)
        return address

    def entry_address(self, name: str, account: Addressish) -> Pubkey:
        address, _ = entry_address(self.program_id, parse_pubkey(account, "account"), self.registry_address(name))
        return address

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------
    def create_registry(self, name: str) -> Signature:
        ix, registry = build_init_registry(self.program_id, self.authority, name)
        log.info(f"creating registry {name!r} at {registry}", source="RegistryFacade")
        return self.pipeline.submit(ix, "init-registry")

    def add_client(self, name: str, account: Addressish, until: Union[datetime, int], limit: int) -> Signature:
        if isinstance(until, datetime):
            if until.tzinfo is None:
                raise InvalidArgument("until must be timezone-aware")
            until = int(until.timestamp())
        ix = build_add_client(
            self.program_id,
            self.authority,
            self.registry_address(name),
            parse_pubkey(account, "account"),
            until,
            limit,
        )
        return self.pipeline.submit(ix, "add-client")

    def add_node(self, name: str, account: Addressish, domain: str) -> Signature:
        ix = build_add_node(
            self.program_id,
            self.authority,
            self.registry_address(name),
            parse_pubkey(account, "account"),
            domain,
        )
        return self.pipeline.submit(ix, "add-node")

    def delegate_node(self, name: str, account: Addressish) -> Signature:
        ix = build_delegate_node(
            self.program_id, self.authority, self.registry_address(name), parse_pubkey(account, "account")
        )
        return self.pipeline.submit(ix, "delegate-node")

    def undelegate_node(self, name: str, account: Addressish) -> Signature:
        ix = build_undelegate_node(
            self.program_id, self.authority, self.registry_address(name), parse_pubkey(account, "account")
        )
        return self.pipeline.submit(ix, "undelegate-node")

    def delete_client(self, name: str, account: Addressish) -> Signature:
        ix = build_remove_client(
            self.program_id, self.authority, self.registry_address(name), parse_pubkey(account, "account")
        )
        return self.pipeline.submit(ix, "remove-client")

    def delete_node(self, name: str, account: Addressish) -> Signature:
        ix = build_remove_node(
            self.program_id, self.authority, self.registry_address(name), parse_pubkey(account, "account")
        )
        return self.pipeline.submit(ix, "remove-node")

    def update_node_online(self, name: str, authority: Addressish, account: Addressish, value: int) -> Signature:
        """The node account signs; the held key must be that account."""
        node = parse_pubkey(account, "account")
        registry = self.registry_address(name, authority)
        ix = build_update_node_online(self.program_id, node, registry, node, value)
        return self.pipeline.submit(ix, "update-node-online")

    def update_node_active(self, name: str, authority: Addressish, account: Addressish, active: bool) -> Signature:
        registry = self.registry_address(name, authority)
        ix = build_update_node_active(
            self.program_id, self.authority, registry, parse_pubkey(account, "account"), active
        )
        return self.pipeline.submit(ix, "update-node-active")

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------
    def get_client(self, name: str, account: Addressish) -> Optional[ClientEntry]:
        return decode_client_entry(self.transport.fetch_account(self.entry_address(name, account)))

    def get_node(self, name: str, account: Addressish) -> Optional[NodeEntry]:
        return decode_node_entry(self.transport.fetch_account(self.entry_address(name, account)))

    def _scan(self, name: str, size: int, decode: Callable[[bytes], Optional[E]]) -> List[E]:
        registry = self.registry_address(name)
        filters = [MemcmpFilter(offset=PARENT_OFFSET, bytes=bytes(registry)), DataSizeFilter(size=size)]
        found: List[Tuple[Pubkey, bytes]] = self.transport.scan_program_accounts(self.program_id, filters)
        entries: List[E] = []
        for address, data in found:
            try:
                entry = decode(data)
            except MalformedAccount as exc:
                log.debug(f"skipping {address}: {exc}", source="RegistryFacade")
                continue
            if entry is not None:
                entries.append(entry)
        return entries

    def list_clients(self, name: str) -> List[ClientEntry]:
        return self._scan(name, CLIENT_ENTRY_SIZE, decode_client_entry)

    def list_nodes(self, name: str) -> List[NodeEntry]:
        return self._scan(name, NODE_ENTRY_SIZE, decode_node_entry)

    # ------------------------------------------------------------------
    # wallet
    # ------------------------------------------------------------------
    def balance(self) -> int:
        return self.transport.get_balance(self.authority)

    def transfer(self, to: Addressish, lamports: int) -> Signature:
        recipient = parse_pubkey(to, "recipient")
        ix = build_transfer(self.authority, recipient, lamports)
        have = self.balance()
        if have < lamports:
            raise InsufficientBalance(have, lamports)
        return self.pipeline.submit(ix, "transfer")

    def airdrop(self, lamports: int = LAMPORTS_PER_SOL) -> Signature:
        if isinstance(lamports, bool) or not isinstance(lamports, int) or lamports <= 0:
            raise InvalidArgument(f"airdrop amount must be a positive integer, got {lamports!r}")
        return self.pipeline.airdrop(lamports)
