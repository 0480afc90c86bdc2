"""Markdown rendering for Inkwell.

Posts are rendered with mistune. Headings get stable anchor ids and are
collected for the table of contents; fenced code blocks are highlighted
with Pygments.

Key classes:
- MarkdownRenderer: Renders Markdown and MDX bodies to HTML.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

import mistune
from markupsafe import Markup
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .html_utils import escape_html

# Top-level ESM statements in MDX files. Multi-line imports are not supported.
MDX_STATEMENT_RE = re.compile(r"^(?:import|export)\s.*$\n?", re.MULTILINE)

HIGHLIGHT_CSS_CLASS = "highlight"


@dataclass
class Heading:
    """A heading extracted from Markdown for TOC generation.

    Attributes:
        id: Anchor ID for the heading (URL-friendly slug).
        text: The text content of the heading.
        level: Heading level (1-6).
    """

    id: str
    text: str
    level: int


def generate_heading_id(text: str) -> str:
    """Generate a URL-friendly ID from heading text.

    Inline markup is dropped before slugifying.
    """
    slug = re.sub(r"<[^>]+>", "", text).lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug)
    return slug.strip("-")


def strip_mdx_statements(text: str) -> str:
    """Remove top-level ``import``/``export`` lines from an MDX body.

    Lines inside fenced code blocks are kept.
    """
    result: list[str] = []
    in_fence = False
    for line in text.splitlines(keepends=True):
        if line.lstrip().startswith(("```", "~~~")):
            in_fence = not in_fence
        if not in_fence and MDX_STATEMENT_RE.match(line):
            continue
        result.append(line)
    return "".join(result)


def pygments_css() -> str:
    """Return Pygments CSS styles for the highlight class."""
    return HtmlFormatter(cssclass=HIGHLIGHT_CSS_CLASS).get_style_defs(
        f".{HIGHLIGHT_CSS_CLASS}"
    )


class _PostRenderer(mistune.HTMLRenderer):
    """Renders heading anchors and highlighted code.

    Attributes:
        headings: Headings in document order, collected while rendering.
    """

    def __init__(self):
        super().__init__(escape=False)
        self.headings: list[Heading] = []
        self._heading_id_counts: dict[str, int] = {}

    def heading(self, text: str, level: int, **attrs) -> str:
        base_id = generate_heading_id(text) or "section"

        if base_id in self._heading_id_counts:
            self._heading_id_counts[base_id] += 1
            heading_id = f"{base_id}-{self._heading_id_counts[base_id]}"
        else:
            self._heading_id_counts[base_id] = 0
            heading_id = base_id

        plain = Markup(text).striptags()
        self.headings.append(Heading(id=heading_id, text=plain, level=level))
        return f'<h{level} id="{heading_id}">{text}</h{level}>\n'

    def block_code(self, code: str, info: str | None = None) -> str:
        lang = info.split()[0] if info else ""
        if lang:
            try:
                lexer = get_lexer_by_name(lang, stripall=True)
            except ClassNotFound:
                lexer = None
            if lexer is not None:
                formatter = HtmlFormatter(cssclass=HIGHLIGHT_CSS_CLASS)
                return highlight(code, lexer, formatter)
        lang_class = f' class="language-{escape_html(lang)}"' if lang else ""
        return f"<pre><code{lang_class}>{escape_html(code)}</code></pre>\n"


class MarkdownRenderer:
    """Renders Markdown and MDX content to HTML."""

    PLUGINS = ["strikethrough", "footnotes", "table", "url"]

    def render(self, content: str, mdx: bool = False) -> tuple[str, list[Heading]]:
        """Render Markdown content to HTML.

        Args:
            content: Markdown source content (front-matter already removed).
            mdx: Whether the source is MDX, whose import/export lines are dropped.

        Returns:
            Tuple of (rendered HTML, list of Heading objects).
        """
        if mdx:
            content = strip_mdx_statements(content)
        renderer = _PostRenderer()
        markdown = mistune.create_markdown(renderer=renderer, plugins=self.PLUGINS)
        html = markdown(content)
        return html, renderer.headings
