"""Hacker-News-like time-decay scoring."""

import math
from datetime import datetime

from v2ex_digest.ranker.constants import GRAVITY, HOUR_OFFSET, SECONDS_PER_HOUR
from v2ex_digest.store.models import Item


def hours_since(created_at: datetime, now: datetime) -> float:
    """Elapsed hours between creation and now, clamped at zero."""
    elapsed = (now - created_at).total_seconds() / SECONDS_PER_HOUR
    return max(elapsed, 0.0)


def compute_score(item: Item, now: datetime) -> float:
    """Compute the popularity score of an item.

    Score = (replies - 1) / (hours_since_post + 2) ^ 1.8

    New topics with many replies score high; old topics decay. Items
    without replies score 0, and so does any negative or non-finite
    result.

    Args:
        item: Item to score.
        now: Reference time, usually the collection tick start.

    Returns:
        Non-negative, finite score.
    """
    if item.replies <= 0:
        return 0.0

    hours = hours_since(item.created_at, now)
    score = (item.replies - 1) / math.pow(hours + HOUR_OFFSET, GRAVITY)
    if not math.isfinite(score) or score < 0:
        return 0.0
    return score
