"""
Transaction feed package — models, loader, and synthetic feed generator.

Produces the ordered, immutable transaction sequence every other stage consumes.
"""

from toxicflow.feed.loader import dump_feed, load_feed, load_records, transactions_to_records
from toxicflow.feed.models import Side, TokenPair, Transaction, token_group, tokens_equivalent
from toxicflow.feed.simulator import SimulatedFeed, generate_feed

__all__ = [
    "Side",
    "TokenPair",
    "Transaction",
    "token_group",
    "tokens_equivalent",
    "dump_feed",
    "load_feed",
    "load_records",
    "transactions_to_records",
    "SimulatedFeed",
    "generate_feed",
]
