"""RPC transport used by the pipeline and the facade.

The core only talks to :class:`RegistryTransport`; :class:`SolanaTransport`
implements it on top of ``solana-py``'s synchronous client. Every call uses
finalized commitment.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Sequence, Tuple, TypeVar, Union

from solana.exceptions import SolanaRpcException
from solana.rpc.api import Client
from solana.rpc.commitment import Finalized
from solana.rpc.core import (
    RPCException,
    TransactionExpiredBlockheightExceededError,
    UnconfirmedTxError,
)
from solana.rpc.types import MemcmpOpts, TxOpts
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction
from solders.transaction_status import TransactionConfirmationStatus

from registry_client.errors import TransportFailure, Unconfirmed
from registry_client.logging import log

T = TypeVar("T")


@dataclass(frozen=True)
class BlockReference:
    blockhash: Hash
    last_valid_block_height: int


@dataclass(frozen=True)
class MemcmpFilter:
    offset: int
    bytes: bytes


@dataclass(frozen=True)
class DataSizeFilter:
    size: int


ScanFilter = Union[MemcmpFilter, DataSizeFilter]


@dataclass(frozen=True)
class SignatureState:
    confirmation: Optional[str]     # "processed" | "confirmed" | "finalized"
    err: Optional[str] = None

    @property
    def finalized(self) -> bool:
        return self.confirmation == "finalized"


class RegistryTransport(Protocol):
    def fetch_recent_block_reference(self) -> BlockReference: ...

    def fetch_account(self, address: Pubkey) -> Optional[bytes]: ...

    def scan_program_accounts(
        self, program_id: Pubkey, filters: Sequence[ScanFilter]
    ) -> List[Tuple[Pubkey, bytes]]: ...

    def submit_and_confirm(self, transaction: Transaction, block_ref: BlockReference) -> Signature: ...

    def request_airdrop(self, address: Pubkey, lamports: int) -> Signature: ...

    def signature_status(self, signature: Signature) -> Optional[SignatureState]: ...

    def get_balance(self, address: Pubkey) -> int: ...

    def close(self) -> None: ...


def _confirmation_name(status: TransactionConfirmationStatus) -> str:
    if status == TransactionConfirmationStatus.Finalized:
        return "finalized"
    if status == TransactionConfirmationStatus.Confirmed:
        return "confirmed"
    return "processed"


def to_rpc_filters(filters: Sequence[ScanFilter]) -> List[Union[int, MemcmpOpts]]:
    out: List[Union[int, MemcmpOpts]] = []
    for f in filters:
        if isinstance(f, DataSizeFilter):
            out.append(f.size)
        elif isinstance(f, MemcmpFilter):
            # memcmp bytes travel base58-encoded; 32 raw bytes encode like a pubkey
            out.append(MemcmpOpts(offset=f.offset, bytes=str(Pubkey.from_bytes(f.bytes))))
        else:
            raise TypeError(f"unsupported scan filter: {f!r}")
    return out


class SolanaTransport:
    """Synchronous JSON-RPC transport over ``solana.rpc.api.Client``."""

    def __init__(
        self,
        rpc_url: str,
        *,
        poll_interval: float = 0.5,
        client: Optional[Client] = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.poll_interval = poll_interval
        self._client = client or Client(rpc_url, commitment=Finalized)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _call(self, what: str, fn: Callable[..., T], *args, **kwargs) -> T:
        try:
            return fn(*args, **kwargs)
        except (SolanaRpcException, RPCException) as exc:
            log.error(f"{what} failed: {exc!r}", source="SolanaTransport")
            raise TransportFailure(f"{what} failed: {exc}") from exc

    # ------------------------------------------------------------------
    # collaborator interface
    # ------------------------------------------------------------------
    def fetch_recent_block_reference(self) -> BlockReference:
        resp = self._call("getLatestBlockhash", self._client.get_latest_blockhash, Finalized)
        return BlockReference(
            blockhash=resp.value.blockhash,
            last_valid_block_height=resp.value.last_valid_block_height,
        )

    def fetch_account(self, address: Pubkey) -> Optional[bytes]:
        resp = self._call(
            "getAccountInfo", self._client.get_account_info, address, commitment=Finalized, encoding="base64"
        )
        if resp.value is None:
            return None
        return bytes(resp.value.data)

    def scan_program_accounts(
        self, program_id: Pubkey, filters: Sequence[ScanFilter]
    ) -> List[Tuple[Pubkey, bytes]]:
        resp = self._call(
            "getProgramAccounts",
            self._client.get_program_accounts,
            program_id,
            commitment=Finalized,
            encoding="base64",
            filters=to_rpc_filters(filters),
        )
        return [(keyed.pubkey, bytes(keyed.account.data)) for keyed in (resp.value or [])]

    def submit_and_confirm(self, transaction: Transaction, block_ref: BlockReference) -> Signature:
        opts = TxOpts(skip_confirmation=True, preflight_commitment=Finalized)
        resp = self._call("sendTransaction", self._client.send_raw_transaction, bytes(transaction), opts=opts)
        sig = resp.value
        log.debug(f"sent {sig}, awaiting finalization", source="SolanaTransport")
        try:
            confirmed = self._client.confirm_transaction(
                sig,
                Finalized,
                sleep_seconds=self.poll_interval,
                last_valid_block_height=block_ref.last_valid_block_height,
            )
        except (UnconfirmedTxError, TransactionExpiredBlockheightExceededError) as exc:
            raise Unconfirmed(f"transaction {sig} not confirmed: {exc}") from exc
        except (SolanaRpcException, RPCException) as exc:
            raise TransportFailure(f"confirmTransaction failed for {sig}: {exc}") from exc
        status = confirmed.value[0] if confirmed.value else None
        if status is not None and status.err is not None:
            raise TransportFailure(f"transaction {sig} failed: {status.err}")
        return sig

    def request_airdrop(self, address: Pubkey, lamports: int) -> Signature:
        resp = self._call("requestAirdrop", self._client.request_airdrop, address, lamports, Finalized)
        return resp.value

    def signature_status(self, signature: Signature) -> Optional[SignatureState]:
        resp = self._call("getSignatureStatuses", self._client.get_signature_statuses, [signature])
        status = resp.value[0] if resp.value else None
        if status is None:
            return None
        if status.confirmation_status is not None:
            confirmation = _confirmation_name(status.confirmation_status)
        else:
            # older nodes: confirmations == None means rooted
            confirmation = "finalized" if status.confirmations is None else "confirmed"
        err = str(status.err) if status.err is not None else None
        return SignatureState(confirmation=confirmation, err=err)

    def get_balance(self, address: Pubkey) -> int:
        resp = self._call("getBalance", self._client.get_balance, address, Finalized)
        return int(resp.value)

    def close(self) -> None:
        provider = getattr(self._client, "_provider", None)
        session = getattr(provider, "session", None)
        if session is not None:
            session.close()
