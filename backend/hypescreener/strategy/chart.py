"""Synthetic price trend used for the sparkline next to each token."""
from __future__ import annotations

import random
from typing import List, Optional

CHART_POINTS = 11
RISING_BASELINE = 10.0
FALLING_BASELINE = 30.0
TREND_WEIGHT = 0.5
NOISE_LOW = -0.1
NOISE_HIGH = 0.2

_default_rng = random.Random()


def synthesize_chart(price_change: float, rng: Optional[random.Random] = None) -> List[float]:
    """
    Build an 11 point trend line from a percentage price change.

    Positive changes climb from 10, negative ones fall from 30. Noise
    grows with the distance along the line.

    Args:
        price_change: 24h price change in percent
        rng: Randomness source for the noise

    Returns:
        List of 11 floats
    """
    rng = rng or _default_rng
    magnitude = abs(price_change or 0.0)
    rising = (price_change or 0.0) >= 0

    points = []
    for i in range(CHART_POINTS):
        progress = i / (CHART_POINTS - 1)
        trend = progress * magnitude * TREND_WEIGHT
        noise = progress * magnitude * rng.uniform(NOISE_LOW, NOISE_HIGH)
        if rising:
            points.append(RISING_BASELINE + trend + noise)
        else:
            points.append(FALLING_BASELINE - trend + noise)
    return points


__all__ = ["synthesize_chart", "CHART_POINTS"]
