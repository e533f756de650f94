"""Binary layouts for registry instructions and entry accounts.

Writes go through ``borsh-construct`` layouts (little-endian, u32 length
prefixed strings, no padding). Reads go through :class:`AccountReader`, a
cursor that parses one field at a time with the same borsh primitives and
raises :class:`~registry_client.errors.MalformedAccount` on any out-of-range
read.

Entry account layout (after the 8-byte Anchor account discriminator)::

    ClientEntry: parent[32] registered[32] until:i64 limit:u32
    NodeEntry:   parent[32] registered[32] domain:(u32 len + utf8) online:i32 active:u8
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from borsh_construct import Bool, CStruct, I32, I64, String, U8, U32
from construct import Bytes as FixedBytes
from construct import Construct, ConstructError
from solders.pubkey import Pubkey

from registry_client.constants import (
    CLIENT_ENTRY_ACCOUNT_DISC,
    CLIENT_ENTRY_SIZE,
    DISCRIMINATOR_SIZE,
    NODE_ENTRY_ACCOUNT_DISC,
    NODE_ENTRY_SIZE,
    PUBKEY_SIZE,
)
from registry_client.errors import MalformedAccount

PUBKEY = FixedBytes(PUBKEY_SIZE)

# ---------------------------------------------------------------------------
# Instruction argument layouts
# ---------------------------------------------------------------------------

INIT_REGISTRY_ARGS = CStruct("name" / String)
ADD_CLIENT_ARGS = CStruct("account" / PUBKEY, "until" / I64, "limit" / U32)
ADD_NODE_ARGS = CStruct("account" / PUBKEY, "domain" / String)
ACCOUNT_ARGS = CStruct("account" / PUBKEY)
UPDATE_NODE_ONLINE_ARGS = CStruct("account" / PUBKEY, "value" / I32)
UPDATE_NODE_ACTIVE_ARGS = CStruct("account" / PUBKEY, "active" / Bool)

# ---------------------------------------------------------------------------
# Account body layouts (write side, used to produce account bytes)
# ---------------------------------------------------------------------------

CLIENT_ENTRY_LAYOUT = CStruct(
    "parent" / PUBKEY,
    "registered" / PUBKEY,
    "until" / I64,
    "limit" / U32,
)
NODE_ENTRY_LAYOUT = CStruct(
    "parent" / PUBKEY,
    "registered" / PUBKEY,
    "domain" / String,
    "online" / I32,
    "active" / Bool,
)


@dataclass(frozen=True)
class ClientEntry:
    parent: Pubkey
    registered: Pubkey
    until: int
    limit: int

    @property
    def valid_until(self) -> datetime:
        return datetime.fromtimestamp(self.until, tz=timezone.utc)


@dataclass(frozen=True)
class NodeEntry:
    parent: Pubkey
    registered: Pubkey
    domain: str
    online: int
    active: bool


class AccountReader:
    """
    Forward-only cursor over an account blob. Every field is parsed with the
    borsh layouts above; running past the end of the blob or hitting invalid
    UTF-8 raises :class:`MalformedAccount`.
    """

    def __init__(self, data: bytes) -> None:
        self._size = len(data)
        self._stream = io.BytesIO(bytes(data))

    @property
    def offset(self) -> int:
        return self._stream.tell()

    @property
    def remaining(self) -> int:
        return self._size - self._stream.tell()

    def _parse(self, con: Construct, field: str):
        start = self.offset
        try:
            return con.parse_stream(self._stream)
        except ConstructError as exc:
            raise MalformedAccount(
                f"read of {field} at offset {start} overruns {self._size}B account: {exc}"
            ) from exc
        except UnicodeDecodeError as exc:
            raise MalformedAccount(f"{field} is not valid UTF-8: {exc}") from exc

    def read(self, n: int, field: str = "bytes") -> bytes:
        if n < 0:
            raise MalformedAccount(f"negative read of {field} ({n}B)")
        return self._parse(FixedBytes(n), field)

    def read_pubkey(self, field: str = "pubkey") -> Pubkey:
        return Pubkey.from_bytes(self._parse(PUBKEY, field))

    def read_u8(self, field: str = "u8") -> int:
        return self._parse(U8, field)

    def read_u32(self, field: str = "u32") -> int:
        return self._parse(U32, field)

    def read_i32(self, field: str = "i32") -> int:
        return self._parse(I32, field)

    def read_i64(self, field: str = "i64") -> int:
        return self._parse(I64, field)

    def read_string(self, field: str = "string") -> str:
        return self._parse(String, field)


# ---------------------------------------------------------------------------
# Decode
# ---------------------------------------------------------------------------

def _open(data: bytes, expected_disc: bytes, kind: str) -> AccountReader:
    reader = AccountReader(data)
    disc = reader.read(DISCRIMINATOR_SIZE, "discriminator")
    if disc != expected_disc:
        raise MalformedAccount(f"account discriminator {disc.hex()} is not a {kind}")
    return reader


def decode_client_entry(data: Optional[bytes]) -> Optional[ClientEntry]:
    """Decode a ClientEntry account. ``None``/empty data means "not found"."""
    if not data:
        return None
    if len(data) != CLIENT_ENTRY_SIZE:
        raise MalformedAccount(
            f"invalid account data size: expected {CLIENT_ENTRY_SIZE}, got {len(data)}"
        )
    r = _open(data, CLIENT_ENTRY_ACCOUNT_DISC, "ClientEntry")
    return ClientEntry(
        parent=r.read_pubkey("parent"),
        registered=r.read_pubkey("registered"),
        until=r.read_i64("until"),
        limit=r.read_u32("limit"),
    )


def decode_node_entry(data: Optional[bytes]) -> Optional[NodeEntry]:
    """Decode a NodeEntry account; trailing allocation padding is ignored."""
    if not data:
        return None
    r = _open(data, NODE_ENTRY_ACCOUNT_DISC, "NodeEntry")
    return NodeEntry(
        parent=r.read_pubkey("parent"),
        registered=r.read_pubkey("registered"),
        domain=r.read_string("domain"),
        online=r.read_i32("online"),
        active=r.read_u8("active") == 1,
    )


# ---------------------------------------------------------------------------
# Encode
# ---------------------------------------------------------------------------

def encode_client_entry(entry: ClientEntry) -> bytes:
    body = CLIENT_ENTRY_LAYOUT.build({
        "parent": bytes(entry.parent),
        "registered": bytes(entry.registered),
        "until": entry.until,
        "limit": entry.limit,
    })
    return CLIENT_ENTRY_ACCOUNT_DISC + body


def encode_node_entry(entry: NodeEntry, pad: bool = True) -> bytes:
    """Account bytes for ``entry``; ``pad`` zero-fills to the allocated size."""
    body = NODE_ENTRY_LAYOUT.build({
        "parent": bytes(entry.parent),
        "registered": bytes(entry.registered),
        "domain": entry.domain,
        "online": entry.online,
        "active": entry.active,
    })
    raw = NODE_ENTRY_ACCOUNT_DISC + body
    if pad and len(raw) < NODE_ENTRY_SIZE:
        raw += b"\x00" * (NODE_ENTRY_SIZE - len(raw))
    return raw
