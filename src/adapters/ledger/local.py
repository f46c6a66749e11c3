"""
Local ledger adapter - Implements BlockClock protocol.

This module provides a process-local stand-in for the host ledger: it
owns the block height, sequences transactions one at a time, and turns
each outcome into a receipt holding either the ok value or the error
kind. Used for development, demos and tests.

Heights start at the genesis height (1); mining a block advances the
height before its transactions run, so the first mined block is at
height 2.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from src.domain.authorization import Operation
from src.domain.exceptions import ErrorKind, RegistryError
from src.domain.registry import RegistryService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transaction:
    """One operation invocation signed by `sender`."""

    sender: str
    operation: Operation
    args: tuple[Any, ...] = ()


@dataclass(frozen=True)
class Receipt:
    """Tagged result of a transaction: ok value or error kind, never both."""

    value: Any = None
    error: ErrorKind | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def __str__(self) -> str:
        if self.ok:
            return f"(ok {self.value!r})"
        return f"(err {self.error.value})"


@dataclass(frozen=True)
class Block:
    """A mined block and the receipts of its transactions, in order."""

    height: int
    receipts: list[Receipt] = field(default_factory=list)


class LocalChain:
    """
    Implements BlockClock protocol with an in-process block counter.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, genesis_height: int = 1) -> None:
        self._height = genesis_height

    @property
    def height(self) -> int:
        return self._height

    def current_height(self) -> int:
        return self._height

    def advance(self) -> int:
        """Start a new block and return its height."""
        self._height += 1
        return self._height

    def mine_block(self, registry: RegistryService, transactions: Sequence[Transaction]) -> Block:
        """
        Mine one block containing `transactions`.

        Transactions run in order against `registry`. A RegistryError
        becomes an error receipt; its writes were already discarded by
        the repository transaction. Any other exception propagates.

        Args:
            registry: Registry engine the transactions are delivered to
            transactions: Signed invocations, executed in order

        Returns:
            Block with one receipt per transaction
        """
        height = self.advance()
        receipts = []
        for tx in transactions:
            try:
                value = registry.invoke(tx.operation, tx.sender, *tx.args)
            except RegistryError as e:
                logger.info(
                    "Block %d: %s by %s rejected (%s)",
                    height,
                    tx.operation.value,
                    tx.sender,
                    e.kind.value,
                )
                receipts.append(Receipt(error=e.kind))
            else:
                receipts.append(Receipt(value=value))
        logger.debug("Mined block %d with %d transaction(s)", height, len(receipts))
        return Block(height=height, receipts=receipts)
