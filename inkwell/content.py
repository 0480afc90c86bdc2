"""Content processing for Inkwell.

This module loads Markdown/MDX posts from the content directory, validates
their front-matter, renders them and creates Post objects.

Key classes:
- Post: Dataclass representing one rendered post.
- FileContentLoader: Discovers content files.
- UrlDeriver: Maps file locations and slugs to URLs.
- PostBuilder: Builds a Post from one source file.
- ContentProcessor: Facade loading every post of a site.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from .config import SiteConfig, TocConfig
from .extractors import PostMetadata, extract_frontmatter
from .renderers import Heading, MarkdownRenderer
from .utils import (
    extract_date_from_name,
    first_paragraph,
    is_markdown,
    is_mdx,
    slugify,
    url_to_relpath,
)


class DuplicateUrlError(ValueError):
    """Two posts resolve to the same URL."""

    def __init__(self, url: str, first: Path, second: Path):
        self.url = url
        self.first = first
        self.second = second
        super().__init__(f"{second}: URL {url} is already used by {first}")


@dataclass
class Post:
    """A rendered post with its metadata.

    Attributes:
        title: Post title.
        description: Short summary.
        url: Root-relative URL of the post, always ending in '/'.
        slug: Last URL segment.
        authors: Author names.
        date: Publish date, if known.
        last_updated: Last-updated date shown on the page, if any.
        draft: Whether this is a draft.
        body: Markdown body without front-matter.
        content: Rendered HTML.
        headings: All headings of the post, in document order.
        toc: Heading bounds in effect for this post, None when disabled.
        path: Source file.
        banner: URL of the banner image, if one exists.
        frontmatter: Raw front-matter mapping.
    """

    title: str
    description: str
    url: str
    slug: str
    authors: list[str]
    date: datetime | None
    last_updated: datetime | None
    draft: bool
    body: str
    content: str
    headings: list[Heading]
    toc: TocConfig | None
    path: Path
    banner: str | None = None
    frontmatter: dict[str, Any] = field(default_factory=dict)

    @property
    def toc_headings(self) -> list[Heading]:
        """Headings within the table-of-contents bounds."""
        if self.toc is None:
            return []
        return [h for h in self.headings if self.toc.includes(h.level)]


class FileContentLoader:
    """Discovers content files below a directory.

    Files and folders whose name starts with ``_`` are drafts or internal;
    files are included as drafts only on request, folders never.
    """

    def __init__(self, content_dir: Path):
        self.content_dir = content_dir

    def iter_files(self, include_drafts: bool = False) -> list[Path]:
        """Return content files in a stable, sorted order."""
        files: list[Path] = []
        if not self.content_dir.exists():
            return files
        for path in sorted(self.content_dir.rglob("*")):
            if path.is_dir() or not is_markdown(path):
                continue
            rel = path.relative_to(self.content_dir)
            if any(part.startswith("_") for part in rel.parts[:-1]):
                continue
            if rel.name.startswith("_") and not include_drafts:
                continue
            files.append(path)
        return files


class UrlDeriver:
    """Derives root-relative URLs for posts."""

    def derive(self, rel: Path, slug_override: str | None = None) -> str:
        """Derive the URL for a post.

        Args:
            rel: Source path relative to the content directory.
            slug_override: Front-matter slug replacing the whole path.

        Returns:
            URL path such as ``/blog/my-post/``.
        """
        if slug_override is not None:
            path = slug_override.strip("/")
            return f"/{path}/" if path else "/"
        segments = [slugify(p) for p in rel.parent.parts if p]
        stem = rel.stem.lstrip("_")
        if stem != "index":
            segments.append(slugify(stem))
        path = "/".join(segments)
        return f"/{path}/" if path else "/"


class PostBuilder:
    """Builds Post objects from source files.

    Attributes:
        config: Site configuration.
        renderer: Markdown renderer.
        url_deriver: URL deriver.
    """

    def __init__(self, config: SiteConfig, renderer: MarkdownRenderer | None = None):
        self.config = config
        self.renderer = renderer or MarkdownRenderer()
        self.url_deriver = UrlDeriver()

    def build(self, path: Path) -> Post:
        """Build a Post from one source file.

        Raises:
            FrontmatterError: If the front-matter is invalid or lacks a title.
        """
        content_dir = self.config.content_dir
        rel = path.relative_to(content_dir)
        raw = path.read_text(encoding="utf-8")
        frontmatter, body = extract_frontmatter(raw, path)
        meta = PostMetadata.from_frontmatter(frontmatter, path)

        html, headings = self.renderer.render(body, mdx=is_mdx(path))
        url = self.url_deriver.derive(rel, meta.slug)
        slug = url.strip("/").rsplit("/", 1)[-1] or "index"

        publish_date = meta.date or extract_date_from_name(path.stem)
        last_updated = meta.last_updated
        if last_updated is None and self.config.last_updated:
            last_updated = datetime.fromtimestamp(path.stat().st_mtime)

        toc = meta.toc if meta.toc_overridden else self.config.table_of_contents

        return Post(
            title=meta.title,
            description=meta.description or first_paragraph(body),
            url=url,
            slug=slug,
            authors=meta.authors,
            date=publish_date,
            last_updated=last_updated,
            draft=meta.draft or path.name.startswith("_"),
            body=body,
            content=html,
            headings=headings,
            toc=toc,
            path=path,
            banner=self._find_banner(url),
            frontmatter=frontmatter,
        )

    def _find_banner(self, url: str) -> str | None:
        """Return the banner URL when ``public/<url-path>.jpg`` exists."""
        rel = url_to_relpath(url)
        if rel == Path("."):
            return None
        candidate = self.config.public_dir / rel.with_suffix(".jpg")
        if candidate.is_file():
            return "/" + rel.with_suffix(".jpg").as_posix()
        return None


class ContentProcessor:
    """Facade for loading every post of a site.

    Attributes:
        config: Site configuration.
    """

    def __init__(
        self,
        config: SiteConfig,
        content_loader: FileContentLoader | None = None,
        post_builder: PostBuilder | None = None,
    ):
        self.config = config
        self._content_loader = content_loader or FileContentLoader(config.content_dir)
        self._post_builder = post_builder or PostBuilder(config)

    def load(self, include_drafts: bool = False) -> list[Post]:
        """Load all posts.

        Args:
            include_drafts: Whether to include draft posts.

        Returns:
            Posts in source order.

        Raises:
            FrontmatterError: For invalid front-matter.
            DuplicateUrlError: When two posts share a URL.
        """
        posts: list[Post] = []
        seen: dict[str, Path] = {}
        for path in self._content_loader.iter_files(include_drafts):
            post = self._post_builder.build(path)
            if post.draft and not include_drafts:
                continue
            if post.url in seen:
                raise DuplicateUrlError(post.url, seen[post.url], path)
            seen[post.url] = path
            posts.append(post)
        return posts
