"""Small string and path helpers shared across Inkwell.

Key functions:
    slugify: Turn a file or folder name into a URL segment.
    extract_date_from_name: Read a YYYY-MM-DD filename prefix.
    first_paragraph: Plain-text first paragraph for descriptions.
    ensure_clean_dir: Recreate a directory empty.
    url_to_relpath: Map a page URL to the directory it is written to.
"""

from __future__ import annotations

import re
import shutil
from datetime import datetime
from pathlib import Path

CONTENT_SUFFIXES = (".md", ".mdx")

DATE_PREFIX_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:-|$)")

# Blocks that never make a good summary.
_NON_PROSE = ("#", "![", "```", "~~~", "---", "import ", "export ", "<", "|", ">")


def slugify(name: str) -> str:
    """Lower-case ``name``, drop a date prefix and join words with dashes.

    Examples:
        >>> slugify("2024-03-01-Exhaustiveness Checks")
        'exhaustiveness-checks'
    """
    words = re.findall(r"[a-z0-9]+", DATE_PREFIX_RE.sub("", name).lower())
    return "-".join(words) or "index"


def extract_date_from_name(name: str) -> datetime | None:
    """Return the date a name starts with, or None.

    Examples:
        >>> extract_date_from_name("2024-01-15-hello-world")
        datetime.datetime(2024, 1, 15, 0, 0)
        >>> extract_date_from_name("2024-13-01-bad") is None
        True
    """
    match = DATE_PREFIX_RE.match(name)
    if match is None:
        return None
    try:
        return datetime(*(int(group) for group in match.groups()))
    except ValueError:
        return None


def first_paragraph(text: str, limit: int = 160) -> str:
    """Return the first prose paragraph of Markdown as plain text.

    Headings, images, fences, tables, quotes, MDX statements and HTML
    blocks are skipped. Inline tags and link syntax are removed, whitespace
    collapsed and the result cut to ``limit`` characters.
    """
    for block in re.split(r"\n\s*\n", text):
        block = block.strip()
        if not block or block.startswith(_NON_PROSE):
            continue
        plain = re.sub(r"\[([^\]]*)\]\([^)]*\)", r"\1", re.sub(r"<[^>]+>", "", block))
        return " ".join(plain.split())[:limit]
    return ""


def ensure_clean_dir(path: Path) -> None:
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True)


def is_markdown(path: Path) -> bool:
    """Check if a path is a Markdown (.md) or MDX (.mdx) file."""
    return path.suffix.lower() in CONTENT_SUFFIXES


def is_mdx(path: Path) -> bool:
    return path.suffix.lower() == ".mdx"


def url_to_relpath(url: str) -> Path:
    """Map a root-relative URL to the output directory holding its index.html.

    Examples:
        >>> url_to_relpath("/blog/")
        PosixPath('blog')
        >>> url_to_relpath("/")
        PosixPath('.')
    """
    return Path(url.strip("/") or ".")
