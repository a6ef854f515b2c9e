"""
Transaction feed models: immutable swap records and token pairs.

Schema is stable and scoring-agnostic. Transactions are created once by the
loader and never mutated; heuristics and flags refer to them by tx_id.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

# Economically equivalent tokens; every other symbol is its own group.
TOKEN_EQUIVALENCE_GROUPS: dict[str, str] = {
    "USDC": "STABLECOINS",
    "USDT": "STABLECOINS",
    "DAI": "STABLECOINS",
    "FRAX": "STABLECOINS",
    "BUSD": "STABLECOINS",
    "ETH": "ETH_GROUP",
    "WETH": "ETH_GROUP",
    "stETH": "ETH_GROUP",
    "WBTC": "BTC_GROUP",
    "renBTC": "BTC_GROUP",
    "sBTC": "BTC_GROUP",
}


def token_group(token: str) -> str:
    """Return the equivalence group of a token symbol (the symbol itself if ungrouped)."""
    return TOKEN_EQUIVALENCE_GROUPS.get(token, token)


def tokens_equivalent(a: str, b: str) -> bool:
    return token_group(a) == token_group(b)


class Side(str, Enum):
    BUY = "buy"
    SELL = "sell"

    @property
    def opposite(self) -> "Side":
        return Side.SELL if self is Side.BUY else Side.BUY


@dataclass(frozen=True, order=True)
class TokenPair:
    """Base/quote pair; price is quote per base."""

    base: str
    quote: str

    def __str__(self) -> str:
        return f"{self.base}/{self.quote}"

    def canonical(self) -> "TokenPair":
        """Pair with both tokens replaced by their equivalence groups (USDC and USDT collapse)."""
        return TokenPair(token_group(self.base), token_group(self.quote))

    def reversed(self) -> "TokenPair":
        return TokenPair(self.quote, self.base)

    def market_key(self) -> tuple[str, str]:
        """Orientation-free market identity: SHIB/USDC and USDT/SHIB share a key."""
        canonical = self.canonical()
        low, high = sorted((canonical.base, canonical.quote))
        return (low, high)

    @classmethod
    def parse(cls, text: str) -> "TokenPair":
        base, sep, quote = text.partition("/")
        if not sep or not base.strip() or not quote.strip():
            raise ValueError(f"token pair must look like BASE/QUOTE, got {text!r}")
        return cls(base.strip(), quote.strip())


@dataclass(frozen=True)
class Transaction:
    """
    A single DEX swap as seen in a block.

    amount is in base-token units; price is the execution price in quote per base.
    """

    tx_id: str
    block_number: int
    position: int
    """Intra-block execution order; lower executes first."""
    timestamp: int
    """Unix timestamp (seconds) of the block."""
    wallet: str
    pair: TokenPair
    exchange: str
    side: Side
    amount: float
    price: float
    gas_price: float
    slippage_tolerance: float
    """Maximum adverse price move the sender accepted, as a fraction."""
    is_contract: bool
    """True when the swap originated from a contract rather than an EOA wallet."""
    token_supply: float | None = None
    """Total supply of the base token, when known."""
    pool: str | None = None
    """Pool address; defaults to the exchange identifier."""

    @property
    def notional(self) -> float:
        """Quote-token value of the swap."""
        return self.amount * self.price

    @property
    def pool_id(self) -> str:
        return self.pool or self.exchange

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.block_number, self.position)

    def inverted(self) -> "Transaction":
        """
        The same swap with base and quote swapped.

        The side flips, amount becomes the quote leg and price is inverted, so
        a SHIB/USDC buy reads as a USDC/SHIB sell of the same value.
        """
        return replace(
            self,
            pair=self.pair.reversed(),
            side=self.side.opposite,
            amount=self.notional,
            price=1.0 / self.price if self.price > 0 else 0.0,
            token_supply=None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dict; pair is rendered as BASE/QUOTE."""
        return {
            "tx_id": self.tx_id,
            "block_number": self.block_number,
            "position": self.position,
            "timestamp": self.timestamp,
            "wallet": self.wallet,
            "pair": str(self.pair),
            "exchange": self.exchange,
            "side": self.side.value,
            "amount": self.amount,
            "price": self.price,
            "gas_price": self.gas_price,
            "slippage_tolerance": self.slippage_tolerance,
            "is_contract": self.is_contract,
            "token_supply": self.token_supply,
            "pool": self.pool,
        }
