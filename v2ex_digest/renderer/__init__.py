"""Markdown digest rendering and output."""

from v2ex_digest.renderer.io import AtomicWriter, StagedFile
from v2ex_digest.renderer.markdown import expand_vars, render_markdown
from v2ex_digest.renderer.models import GeneratedFile, RenderData


__all__ = [
    "AtomicWriter",
    "GeneratedFile",
    "RenderData",
    "StagedFile",
    "expand_vars",
    "render_markdown",
]
