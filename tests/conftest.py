from typing import Dict, List, Optional

import pytest
from borsh_construct import CStruct, U32, U64
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature

from registry_client.codec import (
    ADD_CLIENT_ARGS,
    ADD_NODE_ARGS,
    UPDATE_NODE_ONLINE_ARGS,
    ClientEntry,
    NodeEntry,
    decode_node_entry,
    encode_client_entry,
    encode_node_entry,
)
from registry_client.constants import (
    DEFAULT_PROGRAM_ID,
    DISCRIMINATORS,
    REGISTRY_ACCOUNT_DISC,
    SYSTEM_PROGRAM,
    Operation,
)
from registry_client.pdas import parse_pubkey
from registry_client.pipeline import TransactionPipeline
from registry_client.registry import RegistryFacade
from registry_client.transport import BlockReference, DataSizeFilter, MemcmpFilter, SignatureState

PROGRAM_ID = parse_pubkey(DEFAULT_PROGRAM_ID)
OPS = {disc: op for op, disc in DISCRIMINATORS.items()}
SYSTEM_TRANSFER_ARGS = CStruct("index" / U32, "lamports" / U64)


def make_keypair(seed_start: int = 0) -> Keypair:
    return Keypair.from_seed(bytes(range(seed_start, seed_start + 32)))


class FakeTransport:
    """In-memory stand-in for the RPC node that applies registry writes."""

    def __init__(self, program_id: Pubkey = PROGRAM_ID):
        self.program_id = program_id
        self.accounts: Dict[Pubkey, bytes] = {}
        self.balances: Dict[Pubkey, int] = {}
        self.sent: List = []
        self.statuses: List[Optional[SignatureState]] = []
        self.airdrops: List = []
        self.calls: List[str] = []
        self.closed = False

    # --- collaborator interface -------------------------------------
    def fetch_recent_block_reference(self) -> BlockReference:
        self.calls.append("blockhash")
        return BlockReference(blockhash=Hash.new_unique(), last_valid_block_height=1000)

    def fetch_account(self, address: Pubkey) -> Optional[bytes]:
        self.calls.append("account")
        return self.accounts.get(address)

    def scan_program_accounts(self, program_id, filters):
        self.calls.append("scan")
        out = []
        for address, data in self.accounts.items():
            ok = True
            for f in filters:
                if isinstance(f, DataSizeFilter) and len(data) != f.size:
                    ok = False
                if isinstance(f, MemcmpFilter) and data[f.offset:f.offset + len(f.bytes)] != f.bytes:
                    ok = False
            if ok:
                out.append((address, data))
        return out

    def submit_and_confirm(self, transaction, block_ref) -> Signature:
        self.calls.append("submit")
        transaction.verify()
        self.sent.append(transaction)
        msg = transaction.message
        keys = msg.account_keys
        for ix in msg.instructions:
            program = keys[ix.program_id_index]
            accounts = [keys[i] for i in bytes(ix.accounts)]
            self._apply(program, accounts, bytes(ix.data))
        return transaction.signatures[0]

    def request_airdrop(self, address: Pubkey, lamports: int) -> Signature:
        self.calls.append("airdrop")
        self.airdrops.append((address, lamports))
        self.balances[address] = self.balances.get(address, 0) + lamports
        return Signature.new_unique()

    def signature_status(self, signature: Signature) -> Optional[SignatureState]:
        self.calls.append("status")
        if self.statuses:
            return self.statuses.pop(0)
        return SignatureState(confirmation="finalized")

    def get_balance(self, address: Pubkey) -> int:
        self.calls.append("balance")
        return self.balances.get(address, 0)

    def close(self) -> None:
        self.closed = True

    # --- program simulation -----------------------------------------
    def _apply(self, program: Pubkey, accounts: List[Pubkey], data: bytes) -> None:
        if program == SYSTEM_PROGRAM:
            # system transfer: u32 index 2, u64 lamports
            parsed = SYSTEM_TRANSFER_ARGS.parse(data)
            assert parsed.index == 2
            lamports = parsed.lamports
            src, dst = accounts[0], accounts[1]
            self.balances[src] = self.balances.get(src, 0) - lamports
            self.balances[dst] = self.balances.get(dst, 0) + lamports
            return
        assert program == self.program_id
        op = OPS[data[:8]]
        args = data[8:]
        target = accounts[0]
        if op is Operation.INIT_REGISTRY:
            self.accounts[target] = REGISTRY_ACCOUNT_DISC + bytes(accounts[1]) + args
        elif op is Operation.ADD_CLIENT:
            parsed = ADD_CLIENT_ARGS.parse(args)
            entry = ClientEntry(accounts[1], Pubkey.from_bytes(parsed.account), parsed.until, parsed.limit)
            self.accounts[target] = encode_client_entry(entry)
        elif op is Operation.ADD_NODE:
            parsed = ADD_NODE_ARGS.parse(args)
            entry = NodeEntry(accounts[1], Pubkey.from_bytes(parsed.account), parsed.domain, 0, False)
            self.accounts[target] = encode_node_entry(entry)
        elif op in (Operation.REMOVE_CLIENT, Operation.REMOVE_NODE):
            self.accounts.pop(target, None)
        elif op is Operation.UPDATE_NODE_ONLINE:
            node = decode_node_entry(self.accounts[target])
            value = UPDATE_NODE_ONLINE_ARGS.parse(args).value
            self.accounts[target] = encode_node_entry(
                NodeEntry(node.parent, node.registered, node.domain, value, node.active)
            )
        elif op is Operation.UPDATE_NODE_ACTIVE:
            node = decode_node_entry(self.accounts[target])
            self.accounts[target] = encode_node_entry(
                NodeEntry(node.parent, node.registered, node.domain, node.online, args[32] == 1)
            )


@pytest.fixture
def keypair():
    return make_keypair(0)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def pipeline(transport, keypair):
    return TransactionPipeline(transport, keypair, airdrop_timeout=5, poll_interval=0.01, sleep=lambda _: None)


@pytest.fixture
def registry(transport, keypair, pipeline):
    return RegistryFacade(transport, keypair, PROGRAM_ID, pipeline=pipeline)
