"""Template rendering engine for Inkwell.

This module uses Jinja2 to render posts, redirect pages and the 404 page.
Templates are looked up in the project's ``layouts/`` directory first and
then in the built-in theme shipped with the package.

Key objects:
- TemplateEngine: Renders pages with the site configuration as context.
- render_toc: Nested table of contents for a post.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any

from jinja2 import ChoiceLoader, Environment, FileSystemLoader, PackageLoader, select_autoescape
from markupsafe import Markup

from .config import SiteConfig
from .content import Post
from .html_utils import escape_html, join_root_url, normalize_path
from .renderers import Heading

THEME_ASSET_DIR = "_inkwell"
THEME_STYLESHEET = "inkwell.css"
HIGHLIGHT_STYLESHEET = "highlight.css"

__all__ = ["TemplateEngine", "render_toc", "custom_css_url"]


def render_toc(post: Post) -> Markup:
    """Render the table of contents of a post as nested HTML lists.

    Only headings within the post's heading bounds are included.

    Args:
        post: Post whose headings are rendered.

    Returns:
        Markup-safe HTML, or empty Markup if there are no headings.
    """
    return _render_toc_from_headings(post.toc_headings)


def _render_toc_from_headings(headings: Sequence[Heading]) -> Markup:
    if not headings:
        return Markup("")

    html_parts: list[str] = []
    level_stack: list[int] = []

    for heading in headings:
        level = heading.level

        # Close nested lists if going to a shallower level
        while level_stack and level_stack[-1] > level:
            level_stack.pop()
            html_parts.append("</li></ul>")

        if level_stack and level_stack[-1] == level:
            html_parts.append("</li>")
        elif not level_stack or level > level_stack[-1]:  # pragma: no branch
            html_parts.append("<ul>")
            level_stack.append(level)

        html_parts.append(
            f'<li><a href="#{escape_html(heading.id)}">{escape_html(heading.text)}</a>'
        )

    while level_stack:
        level_stack.pop()
        html_parts.append("</li></ul>")

    return Markup("".join(html_parts))


def custom_css_url(path: str) -> str:
    """Output URL of a custom stylesheet given by its project-relative path."""
    return f"/{THEME_ASSET_DIR}/custom/{Path(path).name}"


def _canonical_link(link: str) -> str:
    link = normalize_path(link)
    if link.startswith("/") and not link.endswith("/") and "." not in link.rsplit("/", 1)[-1]:
        link += "/"
    return link


class TemplateEngine:
    """Template rendering engine using Jinja2.

    Attributes:
        config: Site configuration.
        env: Jinja2 environment.
        posts: All posts of the site, set with update_posts().
    """

    def __init__(self, config: SiteConfig):
        self.config = config
        self.env = Environment(
            loader=ChoiceLoader(
                [
                    FileSystemLoader(str(config.layouts_dir)),
                    PackageLoader("inkwell", "theme"),
                ]
            ),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
        )
        self.posts: list[Post] = []
        self._posts_by_url: dict[str, Post] = {}
        self._install_globals()

    def _install_globals(self) -> None:
        self.env.globals["site"] = self.config
        self.env.globals["url_for"] = self.url_for
        self.env.globals["render_toc"] = render_toc
        self.env.globals["is_current"] = self.is_current
        self.env.globals["stylesheets"] = self.stylesheets()

    def update_posts(self, posts: Sequence[Post]) -> None:
        self.posts = list(posts)
        self._posts_by_url = {post.url: post for post in self.posts}
        self.env.globals["posts"] = self.posts

    def url_for(self, path: str) -> str:
        """Root-relative URL for a sidebar or content link."""
        return normalize_path(path)

    def absolute_url(self, path: str) -> str:
        """Absolute URL on the configured site, used for canonical links."""
        if path.startswith(("http://", "https://")):
            return path
        return join_root_url(self.config.site, normalize_path(path))

    @staticmethod
    def is_current(link: str | None, url: str) -> bool:
        return link is not None and _canonical_link(link) == url

    def stylesheets(self) -> list[str]:
        sheets = [
            f"/{THEME_ASSET_DIR}/{THEME_STYLESHEET}",
            f"/{THEME_ASSET_DIR}/{HIGHLIGHT_STYLESHEET}",
        ]
        sheets.extend(custom_css_url(path) for path in self.config.custom_css)
        return sheets

    def pagination(self, post: Post) -> tuple[Post | None, Post | None]:
        """Previous and next post in sidebar order.

        Returns (None, None) when pagination is disabled or the post is not
        linked from the sidebar.
        """
        if not self.config.pagination:
            return None, None
        ordered: list[Post] = []
        for link in self.config.sidebar_links():
            target = self._posts_by_url.get(_canonical_link(link))
            if target is not None and target not in ordered:
                ordered.append(target)
        if post not in ordered:
            return None, None
        index = ordered.index(post)
        prev_post = ordered[index - 1] if index > 0 else None
        next_post = ordered[index + 1] if index + 1 < len(ordered) else None
        return prev_post, next_post

    def render_post(self, post: Post) -> str:
        """Render a post with the page layout."""
        prev_post, next_post = self.pagination(post)
        context: dict[str, Any] = {
            "post": post,
            "page_content": Markup(post.content),
            "toc": render_toc(post),
            "prev_post": prev_post,
            "next_post": next_post,
            "canonical": self.absolute_url(post.url) if self.config.site else "",
            "banner_url": self.absolute_url(post.banner) if post.banner else "",
        }
        return self.env.get_template("page.html.jinja").render(**context)

    def render_redirect(self, source: str, target: str) -> str:
        """Render a meta-refresh page sending ``source`` to ``target``."""
        canonical = self.absolute_url(target) if self.config.site else target
        return self.env.get_template("redirect.html.jinja").render(
            source=source, target=target, canonical=canonical
        )

    def render_not_found(self) -> str:
        return self.env.get_template("404.html.jinja").render()
