from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Mapping

from solders.pubkey import Pubkey

DEFAULT_PROGRAM_ID = "E2FcHsC9STeB6FEtxBKGAwMTX7cbfYMyjSHKs4QbBAmh"

SYSTEM_PROGRAM     = Pubkey.from_string("11111111111111111111111111111111")
DELEGATION_PROGRAM = Pubkey.from_string("DELeGGvXpWV2fqJUhqcF5ZSYMS4JTLjteaAMARRSaeSh")
MAGIC_PROGRAM      = Pubkey.from_string("Magic11111111111111111111111111111111111111")
MAGIC_CONTEXT      = Pubkey.from_string("MagicContext1111111111111111111111111111111")

# Delegation PDA seed prefixes (ephemeral rollups delegation program)
SEED_BUFFER              = b"buffer"
SEED_DELEGATION_RECORD   = b"delegation"
SEED_DELEGATION_METADATA = b"delegation-metadata"

MAX_SEED_LEN    = 32
MAX_SEEDS       = 16

LAMPORTS_PER_SOL = 1_000_000_000

DISCRIMINATOR_SIZE = 8
PUBKEY_SIZE        = 32

# Account sizes as allocated by the program (discriminator included).
CLIENT_ENTRY_SIZE = DISCRIMINATOR_SIZE + 32 + 32 + 8 + 4              # 84
MAX_DOMAIN_LEN    = 253
NODE_ENTRY_SIZE   = DISCRIMINATOR_SIZE + 32 + 32 + 4 + MAX_DOMAIN_LEN + 4 + 1  # 334

# Offset of ``parent`` inside entry accounts; used by the list scan memcmp filter.
PARENT_OFFSET = DISCRIMINATOR_SIZE

# The CLI rejects longer domains before the builder's MAX_DOMAIN_LEN check runs.
CLI_MAX_DOMAIN_CHARS = 64

I32_MIN, I32_MAX = -(2**31), 2**31 - 1
I64_MIN, I64_MAX = -(2**63), 2**63 - 1
U32_MAX = 2**32 - 1
U64_MAX = 2**64 - 1


class Operation(str, Enum):
    INIT_REGISTRY = "init-registry"
    ADD_CLIENT = "add-client"
    ADD_NODE = "add-node"
    DELEGATE_NODE = "delegate-node"
    UNDELEGATE_NODE = "undelegate-node"
    CHECK_CLIENT = "check-client"
    CHECK_NODE = "check-node"
    REMOVE_CLIENT = "remove-client"
    REMOVE_NODE = "remove-node"
    UPDATE_NODE_ONLINE = "update-node-online"
    UPDATE_NODE_ACTIVE = "update-node-active"


# Anchor instruction discriminators: sha256("global:<ix_name>")[:8]
DISCRIMINATORS: Mapping[Operation, bytes] = MappingProxyType({
    Operation.INIT_REGISTRY:      bytes([131, 22, 4, 103, 24, 94, 163, 239]),
    Operation.ADD_CLIENT:         bytes([198, 64, 62, 101, 62, 204, 69, 108]),
    Operation.ADD_NODE:           bytes([135, 249, 13, 74, 61, 190, 188, 33]),
    Operation.DELEGATE_NODE:      bytes([177, 5, 63, 9, 89, 233, 39, 75]),
    Operation.UNDELEGATE_NODE:    bytes([215, 20, 17, 214, 131, 184, 155, 117]),
    Operation.CHECK_CLIENT:       bytes([56, 122, 178, 30, 199, 2, 243, 22]),
    Operation.CHECK_NODE:         bytes([62, 101, 38, 142, 134, 79, 122, 116]),
    Operation.REMOVE_CLIENT:      bytes([32, 83, 79, 126, 155, 239, 104, 60]),
    Operation.REMOVE_NODE:        bytes([96, 10, 183, 238, 187, 248, 96, 36]),
    Operation.UPDATE_NODE_ONLINE: bytes([35, 22, 232, 250, 60, 30, 62, 83]),
    Operation.UPDATE_NODE_ACTIVE: bytes([121, 150, 132, 175, 172, 145, 197, 132]),
})

# Anchor account discriminators: sha256("account:<Name>")[:8]
REGISTRY_ACCOUNT_DISC     = bytes([47, 174, 110, 246, 184, 182, 252, 218])
CLIENT_ENTRY_ACCOUNT_DISC = bytes([68, 218, 150, 47, 57, 1, 247, 170])
NODE_ENTRY_ACCOUNT_DISC   = bytes([226, 29, 121, 132, 47, 28, 209, 67])
