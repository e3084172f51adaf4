"""One-shot ranking: dedupe, filter, score, sort and cap."""

from collections.abc import Collection, Iterable
from datetime import datetime

import structlog

from v2ex_digest.ranker.scorer import compute_score
from v2ex_digest.store.models import Item, ScoredItem


logger = structlog.get_logger()


def normalize_nodes(nodes: Iterable[str]) -> frozenset[str]:
    """Lower-cased node names for case-insensitive matching."""
    return frozenset(node.lower() for node in nodes)


def rank_top(
    items: Iterable[Item],
    top_n: int,
    now: datetime,
    skip_ids: Collection[str] = frozenset(),
    exclude_nodes: Iterable[str] = (),
) -> list[ScoredItem]:
    """Rank fetched items and return the best ``top_n``.

    Steps:
        1. Deduplicate by id, keeping the first occurrence.
        2. Drop ids in ``skip_ids`` and items from excluded nodes
           (case-insensitive).
        3. Score survivors and drop scores <= 0.
        4. Sort by descending score; ties keep input order.
        5. Truncate to ``top_n``.

    Args:
        items: Fetched items, possibly with duplicates.
        top_n: Maximum number of results.
        now: Reference time for scoring.
        skip_ids: Ids that must not be selected.
        exclude_nodes: Node names that must not be selected.

    Returns:
        At most ``top_n`` scored items, best first.
    """
    excluded = normalize_nodes(exclude_nodes)

    seen: set[str] = set()
    unique: list[Item] = []
    total = 0
    for item in items:
        total += 1
        if item.id in seen:
            continue
        seen.add(item.id)
        unique.append(item)

    candidates = [
        item
        for item in unique
        if item.id not in skip_ids and item.node_name.lower() not in excluded
    ]

    scored = [
        ScoredItem(item=item, score=compute_score(item, now)) for item in candidates
    ]
    scored = [entry for entry in scored if entry.score > 0]
    scored.sort(key=lambda entry: entry.score, reverse=True)

    result = scored[: max(top_n, 0)]
    logger.debug(
        "rank_complete",
        component="ranker",
        items_in=total,
        duplicates=total - len(unique),
        candidates=len(candidates),
        scored=len(scored),
        selected=len(result),
    )
    return result
