"""Markdown rendering of a daily digest using a Jinja2 template."""

from jinja2 import Environment, PackageLoader, select_autoescape

from v2ex_digest.fetch.client import V2EX_BASE_URL
from v2ex_digest.renderer.models import RenderData


FRONTMATTER_SUMMARY_CHARS = 100
DIGEST_TEMPLATE = "daily.md.j2"


def expand_vars(template: str, date: str) -> str:
    """Expand ``{date}`` in a title template."""
    return template.replace("{date}", date)


def _frontmatter_summary(data: RenderData) -> str:
    if data.frontmatter_summary:
        return data.frontmatter_summary.split("\n")[0]
    if not data.summary:
        return ""
    first_line = data.summary[:FRONTMATTER_SUMMARY_CHARS].split("\n")[0]
    return f"{first_line}…"


def _yaml_quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _create_environment() -> Environment:
    env = Environment(
        loader=PackageLoader("v2ex_digest.renderer", "templates"),
        autoescape=select_autoescape(["html", "xml"]),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["yaml_quote"] = _yaml_quote
    return env


_env = _create_environment()


def render_markdown(data: RenderData) -> str:
    """Render a digest as Markdown with YAML frontmatter.

    Layout: frontmatter (title, date, optional summary), the overall
    summary paragraph, then one section per item with its description
    and a meta line (replies, node link, creation time, author).
    """
    template = _env.get_template(DIGEST_TEMPLATE)
    return template.render(
        title=data.title,
        date=data.date,
        frontmatter_summary=_frontmatter_summary(data),
        summary=data.summary,
        items=data.items,
        node_base_url=f"{V2EX_BASE_URL}/go",
    )
