"""Site configuration for Inkwell.

This module loads ``inkwell.yaml`` from the project root, merges it over the
built-in defaults and validates it into typed dataclasses.

Key objects:
- SiteConfig: Complete, validated site configuration.
- SidebarItem: One sidebar entry (a link or a group of entries).
- TocConfig: Heading-level bounds for the table of contents.
- SitemapConfig: Allow-list of paths included in the sitemap.
- BannerConfig: Settings for the banner image pipeline.
- load_config: Read and validate the configuration file.
"""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .html_utils import join_root_url, normalize_path

CONFIG_FILENAME = "inkwell.yaml"

CONVERTERS = ("pillow", "magick")

# Project folders read by the build; the output may not overlap them
SOURCE_DIRS = ("content", "public", "layouts", "assets")

DEFAULT_CONFIG: dict[str, Any] = {
    "title": "Blog",
    "site": "",
    "output_dir": "docs",
    "favicon": "/favicon.ico",
    "social": {},
    "custom_css": [],
    "sidebar": [{"label": "Blog", "link": "blog/"}],
    "pagination": False,
    "table_of_contents": {"min_heading_level": 1, "max_heading_level": 5},
    "last_updated": False,
    "redirects": {"/": "/blog"},
    "sitemap": {"include": ["/blog/"]},
    "banners": {
        "source_dir": "images/blog-banners",
        "output_dir": "public/blog",
        "pattern": "*-banner.jpg",
        "width": 1280,
        "default_quality": 75,
        "quality": {},
        "converter": "pillow",
    },
    "nojekyll": True,
    "port": 4321,
    "upgrade_packages": [
        "inkwell",
        "mistune",
        "Jinja2",
        "Pygments",
        "Pillow",
    ],
}


class ConfigError(ValueError):
    """Invalid site configuration.

    Attributes:
        key: Configuration key that failed validation.
        message: Human-readable error message.
    """

    def __init__(self, key: str, message: str):
        self.key = key
        self.message = message
        super().__init__(f"{key}: {message}")


@dataclass
class SidebarItem:
    """A sidebar entry: either a link or a labelled group of entries."""

    label: str
    link: str | None = None
    items: list[SidebarItem] = field(default_factory=list)

    @property
    def is_group(self) -> bool:
        return self.link is None

    def iter_links(self):
        """Yield every link in this item and its descendants, depth first."""
        if self.link is not None:
            yield self.link
        for child in self.items:
            yield from child.iter_links()


@dataclass
class TocConfig:
    min_heading_level: int = 1
    max_heading_level: int = 5

    def includes(self, level: int) -> bool:
        return self.min_heading_level <= level <= self.max_heading_level


@dataclass
class SitemapConfig:
    include: list[str] = field(default_factory=lambda: ["/blog/"])

    def allowed_urls(self, site: str) -> set[str]:
        """Full URLs admitted into the sitemap for the given site URL."""
        return {join_root_url(site, path) for path in self.include}


@dataclass
class BannerConfig:
    source_dir: str = "images/blog-banners"
    output_dir: str = "public/blog"
    pattern: str = "*-banner.jpg"
    width: int = 1280
    default_quality: int = 75
    quality: dict[str, int] = field(default_factory=dict)
    converter: str = "pillow"

    def quality_for(self, slug: str) -> int:
        return self.quality.get(slug, self.default_quality)


@dataclass
class SiteConfig:
    """Validated site configuration.

    Attributes:
        project_root: Directory holding inkwell.yaml.
        title: Site title shown in the header.
        site: Absolute site URL used for the sitemap and canonical links.
        output_dir: Build output directory, relative to the project root.
        favicon: Favicon URL.
        social: Mapping of social network name to profile URL.
        custom_css: Project-relative stylesheets added to every page.
        sidebar: Sidebar structure.
        pagination: Whether posts get previous/next links.
        table_of_contents: Heading bounds, or None when disabled.
        last_updated: Whether file modification times are shown.
        redirects: Mapping of source path to target path.
        sitemap: Sitemap allow-list.
        banners: Banner pipeline settings.
        nojekyll: Whether to write a .nojekyll marker into the output.
        port: Port of the preview and dev servers.
        ws_port: Port of the live reload websocket.
        upgrade_packages: Packages upgraded by the uplift task.
    """

    project_root: Path
    title: str
    site: str
    output_dir: str
    favicon: str
    social: dict[str, str]
    custom_css: list[str]
    sidebar: list[SidebarItem]
    pagination: bool
    table_of_contents: TocConfig | None
    last_updated: bool
    redirects: dict[str, str]
    sitemap: SitemapConfig
    banners: BannerConfig
    nojekyll: bool
    port: int
    ws_port: int
    upgrade_packages: list[str]

    @property
    def output_path(self) -> Path:
        return self.project_root / self.output_dir

    @property
    def content_dir(self) -> Path:
        return self.project_root / "content"

    @property
    def public_dir(self) -> Path:
        return self.project_root / "public"

    @property
    def layouts_dir(self) -> Path:
        return self.project_root / "layouts"

    def sidebar_links(self) -> list[str]:
        """Flattened, root-relative sidebar links in display order."""
        links: list[str] = []
        for item in self.sidebar:
            links.extend(normalize_path(link) for link in item.iter_links())
        return links


def load_config(project_root: Path) -> SiteConfig:
    """Load site configuration from inkwell.yaml.

    Args:
        project_root: Root directory of the project.

    Returns:
        Validated SiteConfig with defaults applied.

    Raises:
        ConfigError: If the file cannot be parsed or holds invalid values.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    config_path = project_root / CONFIG_FILENAME
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            try:
                loaded = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise ConfigError(CONFIG_FILENAME, f"invalid YAML: {exc}") from exc
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(CONFIG_FILENAME, "top level must be a mapping")
        for key, value in loaded.items():
            if key in ("banners", "sitemap") and isinstance(value, dict):
                config[key].update(value)
            else:
                config[key] = value
    return parse_config(project_root, config)


def parse_config(project_root: Path, raw: dict[str, Any]) -> SiteConfig:
    """Validate a merged configuration mapping into a SiteConfig."""
    port = _int(raw, "port", minimum=1)
    ws_port = _int(raw, "ws_port", minimum=1) if raw.get("ws_port") is not None else port + 1
    return SiteConfig(
        project_root=project_root,
        title=str(raw.get("title") or ""),
        site=str(raw.get("site") or "").rstrip("/"),
        output_dir=_parse_output_dir(raw),
        favicon=str(raw.get("favicon") or ""),
        social=_str_mapping(raw, "social"),
        custom_css=_str_list(raw, "custom_css"),
        sidebar=[_parse_sidebar_item(entry, "sidebar") for entry in _list(raw, "sidebar")],
        pagination=bool(raw.get("pagination")),
        table_of_contents=parse_toc_bounds(raw.get("table_of_contents")),
        last_updated=bool(raw.get("last_updated")),
        redirects=_parse_redirects(raw.get("redirects")),
        sitemap=_parse_sitemap(raw.get("sitemap")),
        banners=_parse_banners(raw.get("banners")),
        nojekyll=bool(raw.get("nojekyll", True)),
        port=port,
        ws_port=ws_port,
        upgrade_packages=_str_list(raw, "upgrade_packages"),
    )


def parse_toc_bounds(value: Any, key: str = "table_of_contents") -> TocConfig | None:
    """Parse heading bounds given as ``{min_heading_level, max_heading_level}``.

    Accepts the camelCase spelling used in front-matter as well. ``False``
    disables the table of contents.
    """
    if value is False:
        return None
    if value is None or value is True:
        return TocConfig()
    if not isinstance(value, dict):
        raise ConfigError(key, "must be false or a mapping of heading levels")
    low = value.get("min_heading_level", value.get("minHeadingLevel", 1))
    high = value.get("max_heading_level", value.get("maxHeadingLevel", 5))
    try:
        low, high = int(low), int(high)
    except (TypeError, ValueError) as exc:
        raise ConfigError(key, "heading levels must be integers") from exc
    if not 1 <= low <= high <= 6:
        raise ConfigError(
            key, f"heading levels must satisfy 1 <= min <= max <= 6 (got {low}..{high})"
        )
    return TocConfig(min_heading_level=low, max_heading_level=high)


def _parse_output_dir(raw: dict[str, Any]) -> str:
    """Validate output_dir: a relative folder inside the project, apart from the sources."""
    value = _non_empty(raw, "output_dir")
    if Path(value).is_absolute():
        raise ConfigError("output_dir", f"{value!r} must be relative to the project root")
    parts = Path(os.path.normpath(value)).parts
    if parts in ((), (".",)):
        raise ConfigError("output_dir", "must not be the project root")
    if parts[0] == "..":
        raise ConfigError("output_dir", f"{value!r} points outside the project")
    if parts[0] in SOURCE_DIRS:
        raise ConfigError("output_dir", f"{value!r} overlaps the {parts[0]}/ sources")
    return value


def _parse_sidebar_item(entry: Any, key: str) -> SidebarItem:
    if not isinstance(entry, dict) or not entry.get("label"):
        raise ConfigError(key, "each sidebar item needs a label")
    label = str(entry["label"])
    link = entry.get("link")
    children = entry.get("items") or []
    if link is None and not children:
        raise ConfigError(key, f"sidebar item {label!r} needs a link or items")
    if not isinstance(children, list):
        raise ConfigError(key, f"items of sidebar item {label!r} must be a list")
    return SidebarItem(
        label=label,
        link=str(link) if link is not None else None,
        items=[_parse_sidebar_item(child, f"{key}.{label}") for child in children],
    )


def _parse_redirects(value: Any) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError("redirects", "must be a mapping of source to target path")
    redirects: dict[str, str] = {}
    for source, target in value.items():
        source, target = str(source), str(target)
        if not source.startswith("/"):
            raise ConfigError("redirects", f"source {source!r} must start with '/'")
        if not target.startswith(("/", "http://", "https://")):
            raise ConfigError(
                "redirects", f"target {target!r} must be root-relative or absolute"
            )
        if source.rstrip("/") == target.rstrip("/"):
            raise ConfigError("redirects", f"{source!r} redirects to itself")
        redirects[source] = target
    return redirects


def _parse_sitemap(value: Any) -> SitemapConfig:
    if not isinstance(value, dict):
        raise ConfigError("sitemap", "must be a mapping")
    include = value.get("include") or []
    if isinstance(include, str):
        include = [include]
    return SitemapConfig(include=[normalize_path(str(path)) for path in include])


def _parse_banners(value: Any) -> BannerConfig:
    if not isinstance(value, dict):
        raise ConfigError("banners", "must be a mapping")
    width = _int(value, "width", minimum=1, prefix="banners.")
    default_quality = _quality(value.get("default_quality"), "banners.default_quality")
    quality = value.get("quality") or {}
    if not isinstance(quality, dict):
        raise ConfigError("banners.quality", "must be a mapping of slug to quality")
    converter = str(value.get("converter") or "pillow")
    if converter not in CONVERTERS:
        raise ConfigError(
            "banners.converter", f"unknown converter {converter!r}; use one of {CONVERTERS}"
        )
    return BannerConfig(
        source_dir=_non_empty(value, "source_dir", prefix="banners."),
        output_dir=_non_empty(value, "output_dir", prefix="banners."),
        pattern=_non_empty(value, "pattern", prefix="banners."),
        width=width,
        default_quality=default_quality,
        quality={
            str(slug): _quality(q, f"banners.quality.{slug}") for slug, q in quality.items()
        },
        converter=converter,
    )


def _quality(value: Any, key: str) -> int:
    try:
        quality = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(key, "quality must be an integer") from exc
    if not 1 <= quality <= 100:
        raise ConfigError(key, f"quality must be between 1 and 100 (got {quality})")
    return quality


def _int(raw: dict[str, Any], key: str, minimum: int, prefix: str = "") -> int:
    try:
        value = int(raw.get(key))
    except (TypeError, ValueError) as exc:
        raise ConfigError(prefix + key, "must be an integer") from exc
    if value < minimum:
        raise ConfigError(prefix + key, f"must be at least {minimum}")
    return value


def _non_empty(raw: dict[str, Any], key: str, prefix: str = "") -> str:
    value = raw.get(key)
    if not value or not isinstance(value, str):
        raise ConfigError(prefix + key, "must be a non-empty string")
    return value


def _list(raw: dict[str, Any], key: str) -> list:
    value = raw.get(key) or []
    if not isinstance(value, list):
        raise ConfigError(key, "must be a list")
    return value


def _str_list(raw: dict[str, Any], key: str) -> list[str]:
    return [str(item) for item in _list(raw, key)]


def _str_mapping(raw: dict[str, Any], key: str) -> dict[str, str]:
    value = raw.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(key, "must be a mapping")
    return {str(k): str(v) for k, v in value.items()}
