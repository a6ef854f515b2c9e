"""
Pytest fixtures for toxic flow tests: transaction factory and default config.
"""

from __future__ import annotations

import pytest

from toxicflow.config.settings import DetectionConfig
from toxicflow.feed.models import Side, TokenPair, Transaction

PAIR = TokenPair("SHIB", "USDC")


def make_tx(
    tx_id: str,
    block: int,
    wallet: str,
    side: str = "buy",
    *,
    position: int = 0,
    pair: TokenPair = PAIR,
    exchange: str = "uniswap_v2",
    amount: float = 100.0,
    price: float = 1.0,
    gas: float = 20.0,
    slippage: float = 0.01,
    contract: bool = False,
    supply: float | None = None,
    pool: str | None = None,
) -> Transaction:
    """Build a Transaction with sensible defaults; timestamp follows the block."""
    return Transaction(
        tx_id=tx_id,
        block_number=block,
        position=position,
        timestamp=1_700_000_000 + block * 12,
        wallet=wallet,
        pair=pair,
        exchange=exchange,
        side=Side(side),
        amount=amount,
        price=price,
        gas_price=gas,
        slippage_tolerance=slippage,
        is_contract=contract,
        token_supply=supply,
        pool=pool,
    )


def feed_record(tx_id: str, block: int, **overrides) -> dict:
    """Raw loader record (strings, as read from CSV)."""
    rec = {
        "tx_id": tx_id,
        "block_number": str(block),
        "timestamp": str(1_700_000_000 + block * 12),
        "wallet": "0xwallet",
        "base_token": "SHIB",
        "quote_token": "USDC",
        "exchange": "uniswap_v2",
        "side": "buy",
        "amount": "100.0",
        "price": "1.0",
        "gas_price": "20.0",
        "slippage_tolerance": "0.01",
        "is_contract": "false",
    }
    rec.update(overrides)
    return rec


@pytest.fixture
def config() -> DetectionConfig:
    return DetectionConfig()
