"""Time-decay scoring and one-shot ranking of fetched topics."""

from v2ex_digest.ranker.ranker import normalize_nodes, rank_top
from v2ex_digest.ranker.scorer import compute_score, hours_since


__all__ = [
    "compute_score",
    "hours_since",
    "normalize_nodes",
    "rank_top",
]
