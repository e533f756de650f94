"""Typed failures raised by the registry client.

Everything derives from :class:`RegistryError` so callers (and the CLI) can
catch one type. Argument-shaped errors also derive from :class:`ValueError`.
"""

from __future__ import annotations


class RegistryError(RuntimeError):
    pass


class ConfigError(RegistryError):
    pass


class InvalidAddress(RegistryError, ValueError):
    pass


class InvalidSeed(RegistryError, ValueError):
    pass


class DerivationExhausted(RegistryError):
    """No bump in [0, 255] produced an off-curve address. Should never happen."""


class MalformedAccount(RegistryError):
    pass


class MissingSigner(RegistryError):
    pass


class TransportFailure(RegistryError):
    pass


class Unconfirmed(RegistryError):
    pass


class InvalidArgument(RegistryError, ValueError):
    pass


class DomainTooLong(InvalidArgument):
    pass


class NegativeOnlineValue(InvalidArgument):
    pass


class InsufficientBalance(RegistryError):
    def __init__(self, have: int, need: int) -> None:
        self.have = have
        self.need = need
        super().__init__(f"Insufficient balance: have {have} lamports, need {need} lamports")
