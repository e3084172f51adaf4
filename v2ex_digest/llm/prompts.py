"""Prompt templates for topic and digest summaries."""

from collections.abc import Sequence

from v2ex_digest.store.models import Item


ITEM_CONTENT_LIMIT = 1500
OVERALL_ITEM_LIMIT = 10

_STYLE = (
    "The summary should retain the deep meaning or deep wisdom of the text.\n"
    "You must summarize in the author's writing style.\n"
    "You must be creative, be fun."
)


def item_system_prompt(language: str) -> str:
    """System prompt for a single topic summary (1-3 sentences)."""
    return (
        "Try your best to rewrite the text into a summary, "
        f"write in {language}, return 1–3 sentences (30–180 words), "
        f"summarizing the topic.\n{_STYLE}"
    )


def item_user_prompt(title: str, body: str) -> str:
    """User prompt for a single topic.

    The body falls back to the title when blank and is cut to
    ITEM_CONTENT_LIMIT characters.
    """
    content = body.strip() or title
    return f"Title: {title}\nContent: {content[:ITEM_CONTENT_LIMIT]}"


def overall_system_prompt(language: str) -> str:
    """System prompt for the digest-wide summary (3-5 sentences)."""
    return (
        "Try your best to rewrite the text into a summary, "
        f"write in {language}, return 3–5 sentences (90–270 words), "
        f"summarizing the topic.\n{_STYLE}"
    )


def zen_system_prompt(language: str) -> str:
    """System prompt for the short reflective summary (1-2 sentences)."""
    return (
        "Try your best to rewrite the text into a summary, "
        f"write in {language}, return 1–2 sentences (20–90 words), "
        f"summarizing the topic.\n{_STYLE}\n"
        "The summary should be as short as possible.\n"
        "You must try your best to get the deep principal idea of the text, "
        "may be in ZEN way."
    )


def item_listing(items: Sequence[Item]) -> str:
    """Bullet list of the first OVERALL_ITEM_LIMIT titles with their node."""
    return "\n".join(
        f"- {item.title} ({item.node_title or item.node_name})"
        for item in items[:OVERALL_ITEM_LIMIT]
    )


def overall_user_prompt(items: Sequence[Item]) -> str:
    """User prompt for the digest-wide summary."""
    return (
        f"Top items (title and node):\n{item_listing(items)}\n"
        "Task: Write some sentences for summarizing today's highlights. "
        "Output the summarization only, plain text, two or three or more "
        "paragraphs, no links."
    )


def zen_user_prompt(items: Sequence[Item]) -> str:
    """User prompt for the reflective summary."""
    return (
        f"Today's information streams (title and source):\n{item_listing(items)}\n"
        "Task: Reflect upon these happenings with zen-like insight. Illuminate "
        "the hidden threads that connect these events. Share your contemplation "
        "in plain text, flowing like a gentle river across one paragraph, with "
        "no external links to disturb the meditation."
    )
