from __future__ import annotations

import time
from typing import Callable, Optional

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction

from registry_client.errors import MissingSigner, TransportFailure, Unconfirmed
from registry_client.logging import log
from registry_client.transport import RegistryTransport

DEFAULT_AIRDROP_TIMEOUT = 60.0
DEFAULT_POLL_INTERVAL = 0.5


class TransactionPipeline:
    """
    Wrap one instruction in a transaction paid and signed by the held key,
    submit it at finalized commitment and block until it is confirmed.

    Failures are surfaced once; nothing is retried here.
    """

    def __init__(
        self,
        transport: RegistryTransport,
        keypair: Keypair,
        *,
        airdrop_timeout: float = DEFAULT_AIRDROP_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.transport = transport
        self._keypair = keypair
        self.airdrop_timeout = airdrop_timeout
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._clock = clock

    @property
    def payer(self) -> Pubkey:
        return self._keypair.pubkey()

    def _check_signers(self, instruction: Instruction) -> None:
        msg = Message([instruction], self.payer)
        required = msg.account_keys[: msg.header.num_required_signatures]
        missing = [str(k) for k in required if k != self.payer]
        if missing:
            raise MissingSigner(
                f"transaction requires signature(s) from {', '.join(missing)}; held key is {self.payer}"
            )

    def submit(self, instruction: Instruction, label: Optional[str] = None) -> Signature:
        label = label or "transaction"
        self._check_signers(instruction)

        block_ref = self.transport.fetch_recent_block_reference()
        message = Message.new_with_blockhash([instruction], self.payer, block_ref.blockhash)
        tx = Transaction([self._keypair], message, block_ref.blockhash)

        log.debug(f"{label}: submitting with blockhash {block_ref.blockhash}", source="TransactionPipeline")
        sig = self.transport.submit_and_confirm(tx, block_ref)
        log.success(f"{label}: confirmed {sig}", source="TransactionPipeline")
        return sig

    # ------------------------------------------------------------------
    # Airdrop
    # ------------------------------------------------------------------
    def airdrop(self, lamports: int, recipient: Optional[Pubkey] = None) -> Signature:
        recipient = recipient or self.payer
        sig = self.transport.request_airdrop(recipient, lamports)
        log.info(f"airdrop of {lamports} lamports requested: {sig}", source="TransactionPipeline")
        self.wait_for_finalization(sig, self.airdrop_timeout)
        return sig

    def wait_for_finalization(self, signature: Signature, timeout: float) -> None:
        """Poll the signature status until finalized; ``Unconfirmed`` after ``timeout`` seconds."""
        deadline = self._clock() + timeout
        while True:
            state = self.transport.signature_status(signature)
            if state is not None:
                if state.err is not None:
                    raise TransportFailure(f"transaction {signature} failed: {state.err}")
                if state.finalized:
                    return
            if self._clock() >= deadline:
                raise Unconfirmed(f"transaction {signature} not finalized within {timeout:.0f}s")
            self._sleep(self.poll_interval)
