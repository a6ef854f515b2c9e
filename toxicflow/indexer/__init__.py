"""
Block window indexer — block, pair, wallet and exchange lookups over the feed.
"""

from toxicflow.indexer.block_index import BlockWindowIndex, WalletHistory

__all__ = ["BlockWindowIndex", "WalletHistory"]
