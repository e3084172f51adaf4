"""Turn ranked items into render-ready digest data."""

from collections.abc import Sequence

import structlog

from v2ex_digest.llm.summarizer import Summarizer
from v2ex_digest.renderer.markdown import expand_vars
from v2ex_digest.renderer.models import RenderData
from v2ex_digest.store.models import ScoredItem, SummarizedItem


logger = structlog.get_logger()


def digest_filename(period: str) -> str:
    """File name of the digest for a period."""
    return f"daily-{period}.md"


def compose_digest(  # noqa: PLR0913
    period: str,
    ranked: Sequence[ScoredItem],
    title_template: str,
    summarizer: Summarizer | None = None,
    language: str = "Chinese",
    zen_summary: bool = False,
) -> RenderData:
    """Summarize the ranked items and assemble the render input.

    Without a summarizer every description and the overall summary stay
    blank.

    Args:
        period: Period key, also used as the displayed date.
        ranked: Selected items, best first.
        title_template: Title with ``{date}`` placeholders.
        summarizer: Optional summarizer.
        language: Summary language.
        zen_summary: Also request the short reflective summary.

    Returns:
        RenderData for the renderer.
    """
    log = logger.bind(component="builder", subcomponent="compose", period=period)
    title = expand_vars(title_template, period)

    if summarizer is None:
        log.info("summaries_skipped", items=len(ranked))
        return RenderData(
            title=title,
            date=period,
            items=[SummarizedItem(item=r.item, score=r.score) for r in ranked],
        )

    items: list[SummarizedItem] = []
    for entry in ranked:
        description = summarizer.summarize_item(
            entry.item.title, entry.item.content, language
        )
        items.append(
            SummarizedItem(item=entry.item, score=entry.score, description=description)
        )

    topics = [entry.item for entry in ranked]
    overall = summarizer.summarize_overall(topics, language)
    zen = summarizer.summarize_zen(topics, language) if zen_summary else ""

    log.info(
        "summaries_complete",
        items=len(items),
        described=sum(1 for i in items if i.description),
        overall=bool(overall),
        zen=bool(zen),
    )
    return RenderData(
        title=title,
        date=period,
        summary=overall,
        items=items,
        frontmatter_summary=zen,
    )
