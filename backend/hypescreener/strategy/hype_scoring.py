"""
Hype scoring for newly discovered tokens.

The score is a heuristic popularity signal in the 60-95 range built
from a random base plus independent bonuses for youth, market cap,
volume and price momentum. Mention and holder counts are synthetic.
Every random draw goes through an injectable ``random.Random`` so
callers (and tests) can pin the sequence.
"""
from __future__ import annotations

import math
import random
from typing import Optional

from ..discovery.models import TokenRecord, parse_age_hours

MIN_HYPE_SCORE = 60
MAX_HYPE_SCORE = 95
BASE_SCORE_SPREAD = 15

# (threshold, bonus) pairs; every threshold that is passed adds its bonus
AGE_BONUSES = ((3, 10), (6, 5))
MARKET_CAP_BONUSES = ((100_000, 5), (500_000, 5))
VOLUME_BONUSES = ((5_000, 5), (20_000, 5))
PRICE_CHANGE_BONUSES = ((10, 5), (50, 5))

BASE_MENTIONS = 50
MENTIONS_SPREAD = 200
MARKET_CAP_PER_MULTIPLE = 50_000
VOLUME_PER_MULTIPLE = 5_000
MAX_MULTIPLE = 5

MIN_HOLDERS = 50
HOLDERS_SPREAD = 300

_default_rng = random.Random()


def _above(value: float, bonuses) -> int:
    return sum(bonus for threshold, bonus in bonuses if value > threshold)


def compute_hype_score(token: TokenRecord, rng: Optional[random.Random] = None) -> int:
    """
    Calculate the hype score of a token.

    Args:
        token: Token with age and market attributes filled in
        rng: Randomness source for the base score

    Returns:
        Integer score, never above 95
    """
    rng = rng or _default_rng
    score = MIN_HYPE_SCORE + math.floor(rng.random() * BASE_SCORE_SPREAD)

    age_hours = parse_age_hours(token.age)
    if age_hours is not None:
        score += sum(bonus for limit, bonus in AGE_BONUSES if age_hours < limit)

    score += _above(token.market_cap, MARKET_CAP_BONUSES)
    score += _above(token.volume, VOLUME_BONUSES)
    score += _above(token.price_change, PRICE_CHANGE_BONUSES)

    return min(score, MAX_HYPE_SCORE)


def compute_mentions(token: TokenRecord, rng: Optional[random.Random] = None) -> int:
    """
    Generate a synthetic social mention count.

    The base count is scaled by the average of a market cap multiple and
    a volume multiple, each capped at 5. A missing (zero) attribute
    counts as a multiple of 1.
    """
    rng = rng or _default_rng
    base = BASE_MENTIONS + math.floor(rng.random() * MENTIONS_SPREAD)

    market_cap_multiple = (
        min(token.market_cap / MARKET_CAP_PER_MULTIPLE, MAX_MULTIPLE) if token.market_cap else 1
    )
    volume_multiple = (
        min(token.volume / VOLUME_PER_MULTIPLE, MAX_MULTIPLE) if token.volume else 1
    )

    return math.floor(base * (market_cap_multiple + volume_multiple) / 2)


def synthesize_holders(rng: Optional[random.Random] = None) -> int:
    """Synthetic holder count in [50, 350)."""
    rng = rng or _default_rng
    return MIN_HOLDERS + math.floor(rng.random() * HOLDERS_SPREAD)


__all__ = [
    "compute_hype_score",
    "compute_mentions",
    "synthesize_holders",
    "MIN_HYPE_SCORE",
    "MAX_HYPE_SCORE",
]
