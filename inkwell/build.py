"""Site building functionality for Inkwell.

This module contains the core logic for building the static site: it loads
the configuration, renders every post, writes redirect pages and the 404
page, copies static files and stylesheets, and writes the sitemap.

Key functions:
- build_site: Main function to build the entire site.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path

import click
from jinja2 import TemplateError

from .config import SiteConfig, load_config
from .content import ContentProcessor, DuplicateUrlError, Post
from .extractors import FrontmatterError
from .renderers import pygments_css
from .sitemap import SitemapGenerator
from .templates import (
    HIGHLIGHT_STYLESHEET,
    THEME_ASSET_DIR,
    THEME_STYLESHEET,
    TemplateEngine,
)
from .utils import ensure_clean_dir, url_to_relpath

THEME_DIR = Path(__file__).parent / "theme"


class BuildError(Exception):
    """Error during site build with file context.

    Attributes:
        source_path: Path to the source file that caused the error.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        posts: All rendered posts.
        output_dir: Directory where the site was built.
        redirects: Redirects written, as source path to target path.
        sitemap_urls: URLs listed in the sitemap, None when it was skipped.
    """

    posts: list[Post]
    output_dir: Path
    redirects: dict[str, str] = field(default_factory=dict)
    sitemap_urls: list[str] | None = None


def build_site(
    project_root: Path,
    include_drafts: bool = False,
    clean_output: bool = True,
    output_dir_override: Path | None = None,
    config: SiteConfig | None = None,
) -> BuildResult:
    """Build the entire static site.

    Args:
        project_root: Root directory of the project.
        include_drafts: Whether to include draft posts.
        clean_output: Whether to wipe the output directory before building.
        output_dir_override: Optional path to write the build output to
            instead of the configured output directory.
        config: Already loaded configuration; loaded from disk when omitted.

    Returns:
        BuildResult describing the generated site.

    Raises:
        BuildError: If a post, template, redirect or stylesheet is invalid.
        ConfigError: If the configuration is invalid.
    """
    config = config or load_config(project_root)
    output_dir = output_dir_override or config.output_path
    if clean_output:
        ensure_clean_dir(output_dir)
    else:
        output_dir.mkdir(parents=True, exist_ok=True)

    try:
        posts = ContentProcessor(config).load(include_drafts=include_drafts)
    except FrontmatterError as exc:
        raise BuildError(exc.source_path, exc.message, exc) from exc
    except DuplicateUrlError as exc:
        raise BuildError(exc.second, f"URL {exc.url} is already used by {exc.first}", exc) from exc

    engine = TemplateEngine(config)
    engine.update_posts(posts)
    for post in posts:
        try:
            rendered = engine.render_post(post)
        except TemplateError as exc:
            raise BuildError(post.path, _format_error_message(exc), exc) from exc
        _write_page(output_dir, post.url, rendered)

    redirects = _write_redirects(engine, config, output_dir, posts)
    (output_dir / "404.html").write_text(engine.render_not_found(), encoding="utf-8")

    _copy_public(config, output_dir)
    _write_stylesheets(config, output_dir)

    page_urls = [post.url for post in posts]
    sitemap_urls = SitemapGenerator(config).write(output_dir, page_urls)
    if sitemap_urls is None:
        click.echo("No site URL configured; skipping sitemap.")

    if config.nojekyll:
        (output_dir / ".nojekyll").touch()

    return BuildResult(
        posts=posts,
        output_dir=output_dir,
        redirects=redirects,
        sitemap_urls=sitemap_urls,
    )


def _format_error_message(exc: Exception) -> str:
    """Format a template exception into a user-friendly error message."""
    error_type = type(exc).__name__
    lineno = getattr(exc, "lineno", None)
    if error_type == "TemplateSyntaxError" and lineno:
        return f"Template syntax error on line {lineno}: {exc}"
    if error_type == "UndefinedError":
        return f"Undefined variable: {exc}"
    if error_type == "TemplateNotFound":
        return f"Template not found: {exc}"
    return f"{error_type}: {exc}"


def _write_page(output_dir: Path, url: str, rendered: str) -> Path:
    """Write rendered HTML to ``<output_dir>/<url>/index.html``."""
    target_dir = output_dir / url_to_relpath(url)
    target_dir.mkdir(parents=True, exist_ok=True)
    html_path = target_dir / "index.html"
    html_path.write_text(rendered, encoding="utf-8")
    return html_path


def _write_redirects(
    engine: TemplateEngine,
    config: SiteConfig,
    output_dir: Path,
    posts: list[Post],
) -> dict[str, str]:
    """Write one meta-refresh page per configured redirect."""
    taken = {url_to_relpath(post.url): post for post in posts}
    config_path = config.project_root / "inkwell.yaml"
    for source, target in config.redirects.items():
        rel = url_to_relpath(source)
        if rel in taken:
            raise BuildError(
                config_path,
                f"redirect source {source} collides with post {taken[rel].path.name}",
            )
        _write_page(output_dir, source, engine.render_redirect(source, target))
    return dict(config.redirects)


def _copy_public(config: SiteConfig, output_dir: Path) -> None:
    """Copy ``public/`` into the output directory verbatim."""
    public = config.public_dir
    if not public.is_dir():
        return
    for item in public.rglob("*"):
        if item.is_dir():
            continue
        dest = output_dir / item.relative_to(public)
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(item, dest)


def _write_stylesheets(config: SiteConfig, output_dir: Path) -> None:
    """Write the theme, highlight and custom stylesheets."""
    target = output_dir / THEME_ASSET_DIR
    target.mkdir(parents=True, exist_ok=True)
    shutil.copy2(THEME_DIR / THEME_STYLESHEET, target / THEME_STYLESHEET)
    (target / HIGHLIGHT_STYLESHEET).write_text(pygments_css(), encoding="utf-8")

    custom = target / "custom"
    for rel in config.custom_css:
        source = config.project_root / rel
        if not source.is_file():
            raise BuildError(source, "custom stylesheet listed in custom_css does not exist")
        custom.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, custom / source.name)
