"""Client library and CLI for the Solana registry program."""

from registry_client.codec import ClientEntry, NodeEntry
from registry_client.config import Settings, load_settings
from registry_client.errors import RegistryError
from registry_client.registry import RegistryFacade

__all__ = [
    "ClientEntry",
    "NodeEntry",
    "RegistryError",
    "RegistryFacade",
    "Settings",
    "load_settings",
]
