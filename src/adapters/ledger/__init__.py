"""Ledger adapters - Host block height and transaction sequencing."""

from .local import Block, LocalChain, Receipt, Transaction

__all__ = ["Block", "LocalChain", "Receipt", "Transaction"]
