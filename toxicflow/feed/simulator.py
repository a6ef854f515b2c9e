"""
Synthetic transaction feed: deterministic fake data for offline runs.

Generates background swaps across a few pairs and exchanges, then injects
labeled adversarial patterns (sandwich, snipe, arbitrage, wash trade) so the
heuristics have something to find. Same seed, same feed.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from toxicflow.feed.models import Side, TokenPair, Transaction
from toxicflow.flow_logging import get_logger

logger = get_logger(__name__)

BLOCK_TIME_SEC = 12
GENESIS_TIMESTAMP = 1_700_000_000

EXCHANGES = ("uniswap_v2", "sushiswap", "curve")

# Background pairs and their reference prices (quote per base).
NOISE_PAIRS: dict[TokenPair, float] = {
    TokenPair("LINK", "USDC"): 14.5,
    TokenPair("PEPE", "WETH"): 0.0000004,
    TokenPair("UNI", "USDT"): 7.2,
}

SANDWICH_PAIR = TokenPair("SHIB", "USDC")
SNIPE_PAIR = TokenPair("NEWTOKEN", "WETH")
ARB_PAIR = TokenPair("ARB", "USDC")
WASH_PAIR = TokenPair("MEME", "WETH")

SNIPE_SUPPLY = 1_000_000_000.0


@dataclass
class SimulatedFeed:
    """Generated transactions plus the wallets deliberately given each behavior."""

    transactions: list[Transaction]
    labels: dict[str, str] = field(default_factory=dict)
    """wallet -> injected behavior (sandwich, snipe, arbitrage, wash_trade)."""


class _BlockBuilder:
    """Accumulates swaps per block and assigns positions in insertion order."""

    def __init__(self, start_block: int) -> None:
        self.start_block = start_block
        self._rows: dict[int, list[dict]] = {}
        self._counter = 0

    def add(self, block: int, **fields) -> str:
        self._counter += 1
        tx_id = f"0x{self._counter:08x}"
        self._rows.setdefault(block, []).append({"tx_id": tx_id, **fields})
        return tx_id

    def build(self) -> list[Transaction]:
        out: list[Transaction] = []
        for block in sorted(self._rows):
            for position, row in enumerate(self._rows[block]):
                out.append(
                    Transaction(
                        block_number=block,
                        position=position,
                        timestamp=GENESIS_TIMESTAMP + (block - self.start_block) * BLOCK_TIME_SEC,
                        **row,
                    )
                )
        return out


def _swap(
    wallet: str,
    pair: TokenPair,
    exchange: str,
    side: Side,
    amount: float,
    price: float,
    gas: float,
    *,
    slippage: float = 0.01,
    contract: bool = False,
    supply: float | None = None,
) -> dict:
    return {
        "wallet": wallet,
        "pair": pair,
        "exchange": exchange,
        "side": side,
        "amount": float(amount),
        "price": float(price),
        "gas_price": float(gas),
        "slippage_tolerance": float(slippage),
        "is_contract": contract,
        "token_supply": supply,
    }


def generate_feed(
    *,
    seed: int = 7,
    blocks: int = 60,
    start_block: int = 18_000_000,
    noise_per_block: int = 4,
    noise_wallets: int = 200,
) -> SimulatedFeed:
    """
    Generate a deterministic synthetic feed with injected toxic patterns.

    Pattern swaps are placed at the start of their block, background swaps
    after them, so background noise never lands inside an injected sandwich.

    Args:
        seed: numpy Generator seed.
        blocks: number of consecutive blocks to fill (minimum 20).
        start_block: first block number.
        noise_per_block: mean background swaps per block (Poisson).
        noise_wallets: size of the background wallet population.

    Returns:
        SimulatedFeed with ordered transactions and wallet labels.
    """
    if blocks < 20:
        raise ValueError("blocks must be >= 20 to fit every injected pattern")
    rng = np.random.default_rng(seed)
    builder = _BlockBuilder(start_block)
    labels: dict[str, str] = {}
    end_block = start_block + blocks

    # Sandwich: attacker brackets a victim's buy in the same block, with more gas.
    for i, block in enumerate((start_block + 3, start_block + 11, start_block + 17)):
        attacker = "0xsandwich_bot"
        victim = f"0xvictim{i:02d}"
        labels[attacker] = "sandwich"
        price = 0.00001 * (1 + 0.001 * i)
        size = float(rng.uniform(2e8, 5e8))
        builder.add(block, **_swap(attacker, SANDWICH_PAIR, "uniswap_v2", Side.BUY, size, price, 80.0, contract=True))
        builder.add(block, **_swap(victim, SANDWICH_PAIR, "uniswap_v2", Side.BUY, size * 4, price * 1.012, 20.0, slippage=0.015))
        builder.add(block, **_swap(attacker, SANDWICH_PAIR, "uniswap_v2", Side.SELL, size, price * 1.02, 15.0, contract=True))

    # Snipe: the token launches, a contract and a cluster of fresh wallets buy immediately.
    launch = start_block + 5
    builder.add(launch, **_swap("0xdeployer", SNIPE_PAIR, "uniswap_v2", Side.SELL, 1e6, 0.000001, 30.0, supply=SNIPE_SUPPLY))
    labels["0xsnipe_contract"] = "snipe"
    builder.add(launch + 1, **_swap("0xsnipe_contract", SNIPE_PAIR, "uniswap_v2", Side.BUY, 0.04 * SNIPE_SUPPLY, 0.0000012, 200.0, contract=True, supply=SNIPE_SUPPLY))
    for j in range(4):
        wallet = f"0xsniper{j:02d}"
        labels[wallet] = "snipe"
        builder.add(launch + 1 + j % 2, **_swap(wallet, SNIPE_PAIR, "uniswap_v2", Side.BUY, 0.002 * SNIPE_SUPPLY, 0.0000013, 150.0, supply=SNIPE_SUPPLY))
    builder.add(launch + 12, **_swap("0xlate_buyer", SNIPE_PAIR, "uniswap_v2", Side.BUY, 1e5, 0.000002, 20.0, supply=SNIPE_SUPPLY))

    # Arbitrage: same block, 5% spread between two exchanges, one bot on both sides.
    labels["0xarb_bot"] = "arbitrage"
    for block in (start_block + 8, start_block + 14):
        builder.add(block, **_swap("0xarb_bot", ARB_PAIR, "uniswap_v2", Side.BUY, 1000.0, 1.00, 60.0, contract=True))
        builder.add(block, **_swap("0xarb_bot", ARB_PAIR, "sushiswap", Side.SELL, 1000.0, 1.05, 60.0, contract=True))

    # Wash trade: buy and sell back at the same price a block later.
    labels["0xwash_trader"] = "wash_trade"
    for k in range(3):
        block = start_block + 2 + 4 * k
        builder.add(block, **_swap("0xwash_trader", WASH_PAIR, "uniswap_v2", Side.BUY, 5e6, 0.00002, 25.0))
        builder.add(block + 1, **_swap("0xwash_trader", WASH_PAIR, "uniswap_v2", Side.SELL, 5e6, 0.00002, 25.0))

    # Background flow: random wallets, sides, sizes; prices drift slowly per pair.
    pairs = list(NOISE_PAIRS)
    prices = np.array([NOISE_PAIRS[p] for p in pairs], dtype=float)
    for block in range(start_block, end_block):
        prices *= np.exp(rng.normal(0.0, 0.002, size=len(prices)))
        for _ in range(int(rng.poisson(noise_per_block))):
            p_idx = int(rng.integers(len(pairs)))
            wallet = f"0xtrader{int(rng.integers(noise_wallets)):04d}"
            side = Side.BUY if rng.random() < 0.5 else Side.SELL
            price = float(prices[p_idx] * (1 + rng.normal(0.0, 0.001)))
            builder.add(
                block,
                **_swap(
                    wallet,
                    pairs[p_idx],
                    EXCHANGES[int(rng.integers(len(EXCHANGES)))],
                    side,
                    round(float(rng.lognormal(3.0, 1.0)), 6),
                    price,
                    round(float(rng.uniform(10.0, 40.0)), 2),
                    slippage=0.005,
                ),
            )

    transactions = builder.build()
    logger.info(
        "simulated_feed_generated",
        seed=seed,
        blocks=blocks,
        transactions=len(transactions),
        labeled_wallets=len(labels),
    )
    return SimulatedFeed(transactions=transactions, labels=labels)
