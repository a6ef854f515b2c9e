"""
Same-block sandwich detection.

Groups each block's swaps by market: token equivalence groups in either
orientation (USDC and USDT count as the same quote, ETH and WETH as the same
asset, SHIB/USDC and USDC/SHIB as one market). Swaps quoted the other way
round are inverted to the first swap's orientation. It then looks for a wallet whose two
opposite-side swaps bracket exactly one swap from another wallet going the
same way as the opening leg. A match is a pattern, not proof of profit; the
confidence reflects how much it looks like a MEV bot.
"""

from __future__ import annotations

from collections import defaultdict

from toxicflow.config.settings import DetectionConfig
from toxicflow.feed.models import Side, Transaction
from toxicflow.flow_logging import get_logger
from toxicflow.heuristics.base import Flag, HeuristicKind, clamp_confidence, sort_flags
from toxicflow.indexer.block_index import BlockWindowIndex

logger = get_logger(__name__)


def _price_impact(front: Transaction, victim: Transaction) -> float:
    """Adverse move the victim got relative to the front-run price (>= 0)."""
    if front.price <= 0:
        return 0.0
    if front.side is Side.BUY:
        move = (victim.price - front.price) / front.price
    else:
        move = (front.price - victim.price) / front.price
    return max(0.0, move)


def _gas_premium(front: Transaction, victim: Transaction) -> float:
    """Relative gas the front-run paid over the victim (0 when it paid less)."""
    if victim.gas_price <= 0:
        return 1.0 if front.gas_price > 0 else 0.0
    return max(0.0, (front.gas_price - victim.gas_price) / victim.gas_price)


def _profit_quote(front: Transaction, back: Transaction) -> float:
    """Quote-token PnL of the round trip, sized on the smaller leg."""
    size = min(front.amount, back.amount)
    if front.side is Side.BUY:
        return size * (back.price - front.price)
    return size * (front.price - back.price)


def _is_proportional(front: Transaction, victim: Transaction, back: Transaction) -> bool:
    """Front-run 5-50% of the victim's value, back-run within 0.5x-2x of the front-run."""
    if victim.notional <= 0 or front.notional <= 0:
        return False
    front_ratio = front.notional / victim.notional
    back_ratio = back.notional / victim.notional
    return 0.05 <= front_ratio <= 0.5 and front_ratio * 0.5 <= back_ratio <= front_ratio * 2.0


def sandwich_confidence(
    front: Transaction,
    victim: Transaction,
    back: Transaction,
    config: DetectionConfig,
) -> tuple[float, dict]:
    """
    Confidence that (front, victim, back) is a sandwich, plus its evidence.

    Starts at sandwich_base_confidence and grows monotonically with the gas
    premium paid by the front-run and with victim price impact beyond
    min_price_impact_threshold. Fixed bonuses: a back-run paying less gas than
    the victim, legs sent from contracts, a profitable round trip, and legs
    sized in proportion to the victim. Clamped to [0, 1].
    """
    premium = _gas_premium(front, victim)
    impact = _price_impact(front, victim)
    threshold = config.min_price_impact_threshold
    profit = _profit_quote(front, back)

    confidence = config.sandwich_base_confidence
    confidence += config.sandwich_gas_weight * min(1.0, premium)
    back_gas_below = back.gas_price < victim.gas_price
    if back_gas_below:
        confidence += config.sandwich_back_gas_weight
    if impact > threshold:
        excess = (impact - threshold) / threshold if threshold > 0 else 1.0
        confidence += config.sandwich_impact_weight * min(1.0, excess)
    contract_legs = int(front.is_contract) + int(back.is_contract)
    confidence += config.sandwich_contract_weight * contract_legs
    if profit > 0:
        confidence += config.sandwich_profit_weight
    proportional = _is_proportional(front, victim, back)
    if proportional:
        confidence += config.sandwich_size_weight

    tolerance = victim.slippage_tolerance
    evidence = {
        "front_gas_price": front.gas_price,
        "back_gas_price": back.gas_price,
        "victim_gas_price": victim.gas_price,
        "gas_premium": round(premium, 6),
        "back_gas_below_victim": back_gas_below,
        "victim_price_impact": round(impact, 6),
        "min_price_impact_threshold": threshold,
        "victim_slippage_tolerance": tolerance,
        "slippage_used": round(impact / tolerance, 6) if tolerance > 0 else None,
        "exceeds_slippage_tolerance": impact > tolerance,
        "attacker_profit_quote": round(profit, 12),
        "front_to_victim_size": round(front.amount / victim.amount, 6) if victim.amount > 0 else None,
        "proportional_size": proportional,
        "contract_legs": contract_legs,
        "cross_pool": front.pool_id != victim.pool_id,
    }
    return clamp_confidence(confidence), evidence


def _oriented(txs: list[Transaction]) -> list[Transaction]:
    """Express every swap of one market in the first swap's base/quote orientation."""
    reference = txs[0].pair.canonical()
    return [tx if tx.pair.canonical() == reference else tx.inverted() for tx in txs]


def _find_in_market(txs: list[Transaction], config: DetectionConfig, index: BlockWindowIndex) -> list[Flag]:
    flags: list[Flag] = []
    for i, front in enumerate(txs):
        back_pos = None
        for k in range(i + 1, len(txs)):
            cand = txs[k]
            if cand.wallet == front.wallet and cand.side is front.side.opposite:
                back_pos = k
                break
        if back_pos is None:
            continue
        between = [t for t in txs[i + 1:back_pos] if t.wallet != front.wallet]
        if len(between) != 1:
            continue
        victim = between[0]
        if victim.side is not front.side:
            continue
        back = txs[back_pos]
        confidence, evidence = sandwich_confidence(front, victim, back, config)
        flags.append(
            Flag(
                kind=HeuristicKind.SANDWICH,
                tx_ids=(front.tx_id, victim.tx_id, back.tx_id),
                wallets=(front.wallet, victim.wallet),
                actors=(front.wallet,),
                block_number=front.block_number,
                pair=index.get(front.tx_id).pair,
                confidence=confidence,
                evidence=evidence,
            )
        )
        logger.debug(
            "sandwich_detected",
            wallet=front.wallet,
            victim=victim.wallet,
            block=front.block_number,
            confidence=round(confidence, 4),
        )
    return flags


def detect_sandwiches(index: BlockWindowIndex, config: DetectionConfig) -> list[Flag]:
    """
    Find same-block sandwiches across the whole feed.

    Args:
        index: Built block window index.
        config: Detection thresholds.

    Returns:
        Flags implicating attacker and victim, sorted by (block, tx id).
    """
    flags: list[Flag] = []
    for block_number in index.blocks():
        markets: dict[tuple[str, str], list[Transaction]] = defaultdict(list)
        for tx in index.block(block_number):
            markets[tx.pair.market_key()].append(tx)
        for key in sorted(markets):
            txs = markets[key]
            if len(txs) < 3:
                continue
            flags.extend(_find_in_market(_oriented(txs), config, index))
    logger.info("sandwich_scan_done", flags=len(flags))
    return sort_flags(flags)
