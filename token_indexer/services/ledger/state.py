"""
Ledger state.

In-memory balances rebuilt from Transfer events. Lives for the process
lifetime; nothing is persisted.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal

from token_indexer.config.constants import ZERO_ADDRESS
from token_indexer.services.blockchain.events import TransferEvent
from token_indexer.services.blockchain.token_metadata import TokenMetadata


@dataclass(frozen=True)
class HolderShare:
    address: str
    balance: int
    percent: Decimal

    def to_dict(self, metadata: TokenMetadata) -> dict:
        return {
            "address": self.address,
            "balance": str(self.balance),
            "balanceFormatted": str(metadata.to_units(self.balance)),
            "percent": f"{self.percent:.4f}%",
        }


@dataclass
class LedgerState:
    """
    Balances-by-address folded from Transfer events.

    Invariants:
    - balances never holds a zero entry, nor the zero address
    - total_transfers counts every folded event
    - last_block_processed and updated_at only move forward
    """

    initialized: bool = False
    balances: dict[str, int] = field(default_factory=dict)
    total_transfers: int = 0
    last_block_processed: int = 0
    first_block: int = 0
    updated_at: float = 0.0
    metadata: TokenMetadata = field(default_factory=TokenMetadata)

    @property
    def decimals(self) -> int:
        return self.metadata.decimals

    def _add_balance(self, address: str, delta: int) -> None:
        key = address.lower()
        balance = self.balances.get(key, 0) + delta
        if balance == 0:
            self.balances.pop(key, None)
        else:
            self.balances[key] = balance

    def fold(self, events: Iterable[TransferEvent]) -> int:
        """
        Apply events in the given (ascending block, log index) order.

        Mints only credit the recipient, burns only debit the sender.

        Returns:
            Number of events folded
        """
        folded = 0
        for event in events:
            if event.from_address.lower() != ZERO_ADDRESS:
                self._add_balance(event.from_address, -event.value)
            if event.to_address.lower() != ZERO_ADDRESS:
                self._add_balance(event.to_address, event.value)
            folded += 1
        self.total_transfers += folded
        return folded

    def advance(self, block: int, now: float) -> None:
        """Mark everything up to block as folded."""
        self.last_block_processed = max(self.last_block_processed, block)
        self.updated_at = max(self.updated_at, now)

    def holder_count(self) -> int:
        # > 0 rather than != 0: an inconsistent log stream must not
        # produce negative holders
        return sum(1 for balance in self.balances.values() if balance > 0)

    def top_holders(self, limit: int) -> list[HolderShare]:
        """
        Largest positive balances with their share of all positive balances.

        Args:
            limit: Maximum number of holders returned

        Returns:
            Holders sorted by balance, largest first (ties by address)
        """
        if limit <= 0:
            return []
        positive = [(a, b) for a, b in self.balances.items() if b > 0]
        held = sum(b for _, b in positive)
        positive.sort(key=lambda item: (-item[1], item[0]))
        return [
            HolderShare(
                address=address,
                balance=balance,
                percent=Decimal(balance) * 100 / Decimal(held),
            )
            for address, balance in positive[:limit]
        ]
