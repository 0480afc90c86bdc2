"""Front-matter extraction for Inkwell.

Posts start with a YAML block between ``---`` markers. This module splits
that block from the body and normalizes the recognised keys.

Key objects:
- extract_frontmatter: Split raw text into a mapping and the body.
- PostMetadata: Normalized front-matter of one post.
- FrontmatterError: Raised for missing titles and malformed values.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any

import yaml

from .config import ConfigError, TocConfig, parse_toc_bounds

FRONTMATTER_RE = re.compile(r"^---[ \t]*\n(?:(.*?)\n)?---[ \t]*(?:\n|$)", re.DOTALL)


class FrontmatterError(ValueError):
    """Malformed or incomplete front-matter.

    Attributes:
        source_path: File holding the front-matter.
        message: Human-readable error message.
    """

    def __init__(self, source_path: Path, message: str):
        self.source_path = source_path
        self.message = message
        super().__init__(f"{source_path}: {message}")


def extract_frontmatter(text: str, path: Path) -> tuple[dict[str, Any], str]:
    """Extract YAML front-matter from content.

    Args:
        text: Raw file content.
        path: Source file, used in error messages.

    Returns:
        Tuple of (front-matter dict, remaining content). Content without a
        front-matter block yields an empty dict and the unchanged text.

    Raises:
        FrontmatterError: If the block is not valid YAML or not a mapping.
    """
    match = FRONTMATTER_RE.match(text)
    if not match:
        return {}, text
    try:
        data = yaml.safe_load(match.group(1) or "")
    except yaml.YAMLError as exc:
        raise FrontmatterError(path, f"invalid YAML front-matter: {exc}") from exc
    except ValueError as exc:
        # PyYAML builds dates eagerly, so 2024-02-30 fails here
        raise FrontmatterError(path, f"invalid value in front-matter: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise FrontmatterError(path, "front-matter must be a mapping")
    return data, text[match.end() :]


def parse_date(value: Any, key: str, path: Path) -> datetime | None:
    """Coerce a front-matter date (YAML date, datetime or ISO string)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError as exc:
            raise FrontmatterError(path, f"{key}: unrecognised date {value!r}") from exc
    raise FrontmatterError(path, f"{key}: unrecognised date {value!r}")


@dataclass
class PostMetadata:
    """Normalized front-matter of a post.

    Attributes:
        title: Post title (required).
        description: Short summary, empty when not given.
        slug: Explicit URL path, overriding the file location.
        authors: Author names.
        date: Publish date.
        last_updated: Last-updated date given in the front-matter.
        draft: Whether the post is a draft.
        toc: Per-post heading bounds; None disables the TOC, unset inherits.
        toc_overridden: Whether the post replaces the site-wide TOC bounds.
        extra: Remaining keys, exposed to templates untouched.
    """

    title: str
    description: str = ""
    slug: str | None = None
    authors: list[str] = field(default_factory=list)
    date: datetime | None = None
    last_updated: datetime | None = None
    draft: bool = False
    toc: TocConfig | None = None
    toc_overridden: bool = False
    extra: dict[str, Any] = field(default_factory=dict)

    KNOWN_KEYS = (
        "title",
        "description",
        "slug",
        "author",
        "authors",
        "date",
        "lastUpdated",
        "last_updated",
        "draft",
        "tableOfContents",
    )

    @classmethod
    def from_frontmatter(cls, data: dict[str, Any], path: Path) -> PostMetadata:
        """Validate a raw front-matter mapping.

        Raises:
            FrontmatterError: If the title is missing or a value is malformed.
        """
        title = data.get("title")
        if title is None or not str(title).strip():
            raise FrontmatterError(path, "missing required front-matter field 'title'")

        authors = data.get("authors", data.get("author"))
        if authors is None:
            authors = []
        elif isinstance(authors, str):
            authors = [authors]
        elif isinstance(authors, list):
            authors = [str(a) for a in authors]
        else:
            raise FrontmatterError(path, "author must be a string or a list of strings")

        slug = data.get("slug")
        if slug is not None:
            slug = str(slug).strip("/")

        # true (or an empty key) keeps the site-wide bounds
        toc_value = data.get("tableOfContents")
        toc_overridden = toc_value is not None and toc_value is not True
        toc = None
        if toc_overridden:
            try:
                toc = parse_toc_bounds(toc_value, "tableOfContents")
            except ConfigError as exc:
                raise FrontmatterError(path, str(exc)) from exc

        last_updated = data.get("lastUpdated", data.get("last_updated"))
        return cls(
            title=str(title).strip(),
            description=str(data.get("description") or "").strip(),
            slug=slug,
            authors=authors,
            date=parse_date(data.get("date"), "date", path),
            last_updated=parse_date(last_updated, "lastUpdated", path),
            draft=bool(data.get("draft", False)),
            toc=toc,
            toc_overridden=toc_overridden,
            extra={k: v for k, v in data.items() if k not in cls.KNOWN_KEYS},
        )
