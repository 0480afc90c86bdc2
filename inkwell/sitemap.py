"""Sitemap generation for Inkwell.

The sitemap is split into an index (``sitemap-index.xml``) pointing at a
single URL set (``sitemap-0.xml``). Only pages whose full URL is on the
configured allow-list are listed; redirect pages never are.

Classes:
    SitemapGenerator: Builds and writes the sitemap files.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from xml.sax.saxutils import escape

from .config import SiteConfig
from .html_utils import join_root_url

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"
INDEX_FILENAME = "sitemap-index.xml"
URLSET_FILENAME = "sitemap-0.xml"


class SitemapGenerator:
    """Generates the sitemap files for a site.

    Attributes:
        config: Site configuration providing the site URL and allow-list.
    """

    def __init__(self, config: SiteConfig):
        self.config = config

    def select(self, page_urls: Iterable[str]) -> list[str]:
        """Return the full URLs of allow-listed pages, sorted.

        Args:
            page_urls: Root-relative page URLs.

        Returns:
            Absolute URLs admitted into the sitemap.
        """
        if not self.config.site:
            return []
        allowed = self.config.sitemap.allowed_urls(self.config.site)
        full = {join_root_url(self.config.site, url) for url in page_urls}
        return sorted(full & allowed)

    def render_urlset(self, urls: Iterable[str]) -> str:
        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            f'<urlset xmlns="{SITEMAP_NS}">',
        ]
        for url in urls:
            lines.append(f"  <url><loc>{escape(url)}</loc></url>")
        lines.append("</urlset>")
        return "\n".join(lines) + "\n"

    def render_index(self) -> str:
        loc = join_root_url(self.config.site, f"/{URLSET_FILENAME}")
        return "\n".join(
            [
                '<?xml version="1.0" encoding="UTF-8"?>',
                f'<sitemapindex xmlns="{SITEMAP_NS}">',
                f"  <sitemap><loc>{escape(loc)}</loc></sitemap>",
                "</sitemapindex>",
            ]
        ) + "\n"

    def write(self, output_dir: Path, page_urls: Iterable[str]) -> list[str] | None:
        """Write the sitemap files into ``output_dir``.

        Args:
            output_dir: Build output directory.
            page_urls: Root-relative URLs of the generated pages.

        Returns:
            The URLs written, or None when no site URL is configured.
        """
        if not self.config.site:
            return None
        urls = self.select(page_urls)
        (output_dir / URLSET_FILENAME).write_text(self.render_urlset(urls), encoding="utf-8")
        (output_dir / INDEX_FILENAME).write_text(self.render_index(), encoding="utf-8")
        return urls
