"""
Block window index: fast lookups over an immutable transaction arena.

Built once in a single pass over the loader's ordered output. Transactions
live in one tuple (the arena) sorted by (block, position); each block maps to
a contiguous slice of it, so a block-range query is a bisect over the sorted
distinct block numbers plus one slice: O(log B + k), never O(n).

The index is read-only after build; heuristics may share it across threads.
"""

from __future__ import annotations

from bisect import bisect_left, bisect_right
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Iterable

from toxicflow.core.exceptions import UnknownTokenError
from toxicflow.feed.models import Side, TokenPair, Transaction
from toxicflow.flow_logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class WalletHistory:
    """
    Aggregated view of one wallet's activity, computed on demand.

    Not stored in the index; derived from the wallet's ordered transactions.
    """

    wallet: str
    transactions: tuple[Transaction, ...]
    pairs: tuple[TokenPair, ...]
    exchanges: tuple[str, ...]
    buy_count: int
    sell_count: int
    volume_quote: float
    first_block: int | None
    last_block: int | None
    contract_origin: bool
    """True if any of the wallet's swaps came from a contract."""

    @property
    def tx_count(self) -> int:
        return len(self.transactions)

    def to_dict(self) -> dict[str, Any]:
        return {
            "wallet": self.wallet,
            "tx_count": self.tx_count,
            "pairs": [str(p) for p in self.pairs],
            "exchanges": list(self.exchanges),
            "buy_count": self.buy_count,
            "sell_count": self.sell_count,
            "volume_quote": self.volume_quote,
            "first_block": self.first_block,
            "last_block": self.last_block,
            "contract_origin": self.contract_origin,
        }


class BlockWindowIndex:
    """
    Block, pair, wallet and exchange lookups over an ordered feed.

    Use BlockWindowIndex.build(transactions); the constructor expects the
    arena to be sorted already.
    """

    def __init__(self, arena: tuple[Transaction, ...]) -> None:
        self._arena = arena
        self._block_numbers: list[int] = []
        self._block_slices: dict[int, tuple[int, int]] = {}
        self._pair_blocks: dict[TokenPair, dict[int, list[Transaction]]] = defaultdict(dict)
        self._pair_block_numbers: dict[TokenPair, list[int]] = {}
        self._wallet_txs: dict[str, list[Transaction]] = defaultdict(list)
        self._exchange_txs: dict[str, list[Transaction]] = defaultdict(list)
        self._launch_blocks: dict[TokenPair, int] = {}
        self._pair_supply: dict[TokenPair, float] = {}
        self._by_id: dict[str, Transaction] = {}

        start = 0
        current: int | None = None
        for i, tx in enumerate(arena):
            if tx.block_number != current:
                if current is not None:
                    self._block_slices[current] = (start, i)
                self._block_numbers.append(tx.block_number)
                current = tx.block_number
                start = i
            self._pair_blocks[tx.pair].setdefault(tx.block_number, []).append(tx)
            self._wallet_txs[tx.wallet].append(tx)
            self._exchange_txs[tx.exchange].append(tx)
            self._launch_blocks.setdefault(tx.pair, tx.block_number)
            if tx.token_supply is not None:
                self._pair_supply[tx.pair] = max(self._pair_supply.get(tx.pair, 0.0), tx.token_supply)
            self._by_id[tx.tx_id] = tx
        if current is not None:
            self._block_slices[current] = (start, len(arena))

        # Pair block lists are appended in arena order, so already sorted.
        for pair, blocks in self._pair_blocks.items():
            self._pair_block_numbers[pair] = list(blocks)

        # Freeze containers: no writer exists after build.
        self._pair_blocks = dict(self._pair_blocks)
        self._wallet_txs = dict(self._wallet_txs)
        self._exchange_txs = dict(self._exchange_txs)

    @classmethod
    def build(cls, transactions: Iterable[Transaction]) -> "BlockWindowIndex":
        """
        Index a transaction sequence in one pass.

        The input is expected in loader order; it is re-sorted by
        (block, position) defensively with a stable sort, which is O(n)
        on already-sorted input.
        """
        arena = tuple(sorted(transactions, key=lambda t: t.sort_key))
        index = cls(arena)
        logger.info(
            "index_built",
            transactions=len(arena),
            blocks=len(index._block_numbers),
            pairs=len(index._launch_blocks),
            wallets=len(index._wallet_txs),
        )
        return index

    # ------------------------------------------------------------------ basics

    def __len__(self) -> int:
        return len(self._arena)

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return self._arena

    def get(self, tx_id: str) -> Transaction:
        """Return the transaction with this id (KeyError if absent)."""
        return self._by_id[tx_id]

    def blocks(self) -> list[int]:
        """Distinct block numbers, ascending."""
        return list(self._block_numbers)

    def block(self, block_number: int) -> tuple[Transaction, ...]:
        """Transactions of one block in execution order; empty if the block has none."""
        bounds = self._block_slices.get(block_number)
        if bounds is None:
            return ()
        return self._arena[bounds[0]:bounds[1]]

    def pairs(self) -> list[TokenPair]:
        """Observed token pairs, sorted."""
        return sorted(self._launch_blocks)

    def wallets(self) -> list[str]:
        return sorted(self._wallet_txs)

    def exchanges(self) -> list[str]:
        return sorted(self._exchange_txs)

    # ------------------------------------------------------------ pair lookups

    def _require_pair(self, pair: TokenPair) -> None:
        if pair not in self._launch_blocks:
            raise UnknownTokenError(pair)

    def launch_block(self, pair: TokenPair) -> int:
        """First block in which the pair traded (launch proxy)."""
        self._require_pair(pair)
        return self._launch_blocks[pair]

    def pair_supply(self, pair: TokenPair) -> float | None:
        """Largest reported total supply of the pair's base token, if any swap carried one."""
        self._require_pair(pair)
        return self._pair_supply.get(pair)

    def pair_block(self, pair: TokenPair, block_number: int) -> tuple[Transaction, ...]:
        """Transactions of one pair in one block, in execution order."""
        self._require_pair(pair)
        return tuple(self._pair_blocks[pair].get(block_number, ()))

    def pair_blocks(self, pair: TokenPair) -> list[int]:
        """Blocks in which the pair traded, ascending."""
        self._require_pair(pair)
        return list(self._pair_block_numbers[pair])

    # ---------------------------------------------------------- window queries

    def transactions_in_range(self, center_block: int, width: int) -> tuple[Transaction, ...]:
        """
        All transactions with block in [center_block - width, center_block + width], ordered.

        Raises:
            ValueError: width is negative.
        """
        if width < 0:
            raise ValueError(f"width must be >= 0, got {width}")
        return self.transactions_between(center_block - width, center_block + width)

    def transactions_between(
        self,
        start_block: int,
        end_block: int,
        pair: TokenPair | None = None,
    ) -> tuple[Transaction, ...]:
        """
        All transactions with start_block <= block <= end_block, ordered.

        With pair given, only that pair's transactions (UnknownTokenError if unseen).
        """
        if end_block < start_block:
            return ()
        if pair is None:
            lo = bisect_left(self._block_numbers, start_block)
            hi = bisect_right(self._block_numbers, end_block)
            if lo >= hi:
                return ()
            first = self._block_slices[self._block_numbers[lo]][0]
            last = self._block_slices[self._block_numbers[hi - 1]][1]
            return self._arena[first:last]

        self._require_pair(pair)
        numbers = self._pair_block_numbers[pair]
        by_block = self._pair_blocks[pair]
        lo = bisect_left(numbers, start_block)
        hi = bisect_right(numbers, end_block)
        out: list[Transaction] = []
        for b in numbers[lo:hi]:
            out.extend(by_block[b])
        return tuple(out)

    # ---------------------------------------------------------- wallet lookups

    def wallet_transactions(self, wallet: str) -> tuple[Transaction, ...]:
        """The wallet's transactions in feed order; empty for an unseen wallet."""
        return tuple(self._wallet_txs.get(wallet, ()))

    def wallet_pairs(self, wallet: str) -> dict[TokenPair, tuple[Transaction, ...]]:
        """The wallet's transactions grouped by pair, each group in feed order."""
        grouped: dict[TokenPair, list[Transaction]] = defaultdict(list)
        for tx in self._wallet_txs.get(wallet, ()):
            grouped[tx.pair].append(tx)
        return {pair: tuple(txs) for pair, txs in sorted(grouped.items())}

    def wallet_history(self, wallet: str) -> WalletHistory:
        txs = tuple(self._wallet_txs.get(wallet, ()))
        return WalletHistory(
            wallet=wallet,
            transactions=txs,
            pairs=tuple(sorted({t.pair for t in txs})),
            exchanges=tuple(sorted({t.exchange for t in txs})),
            buy_count=sum(1 for t in txs if t.side is Side.BUY),
            sell_count=sum(1 for t in txs if t.side is Side.SELL),
            volume_quote=sum(t.notional for t in txs),
            first_block=txs[0].block_number if txs else None,
            last_block=txs[-1].block_number if txs else None,
            contract_origin=any(t.is_contract for t in txs),
        )

    def exchange_transactions(self, exchange: str) -> tuple[Transaction, ...]:
        return tuple(self._exchange_txs.get(exchange, ()))
