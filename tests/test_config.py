import pytest

from inkwell.config import ConfigError, TocConfig, load_config


def write_config(tmp_path, text):
    (tmp_path / "inkwell.yaml").write_text(text, encoding="utf-8")
    return tmp_path


def test_defaults_without_file(tmp_path):
    config = load_config(tmp_path)
    assert config.output_dir == "docs"
    assert config.output_path == tmp_path / "docs"
    assert config.redirects == {"/": "/blog"}
    assert config.table_of_contents == TocConfig(1, 5)
    assert config.sitemap.include == ["/blog/"]
    assert config.banners.width == 1280
    assert config.banners.default_quality == 75
    assert config.banners.pattern == "*-banner.jpg"
    assert config.pagination is False
    assert config.last_updated is False
    assert config.nojekyll is True
    assert config.ws_port == config.port + 1
    assert config.sidebar_links() == ["/blog/"]


def test_load_full_config(tmp_path):
    write_config(
        tmp_path,
        """
title: David's blog
site: https://david-04.github.io/
output_dir: ./docs
social:
  github: https://github.com/david-04
sidebar:
  - label: Blog
    link: blog/
  - label: Guides
    items:
      - label: Example
        link: /guides/example/
pagination: true
table_of_contents:
  min_heading_level: 2
  max_heading_level: 3
banners:
  width: 800
  quality:
    exhaustiveness-checks-in-typescript: 60
ws_port: 9000
""",
    )
    config = load_config(tmp_path)
    assert config.title == "David's blog"
    assert config.site == "https://david-04.github.io"
    assert config.social == {"github": "https://github.com/david-04"}
    assert config.pagination is True
    assert config.table_of_contents == TocConfig(2, 3)
    assert config.sidebar[1].is_group
    assert config.sidebar_links() == ["/blog/", "/guides/example/"]
    # Partial banner settings keep the remaining defaults.
    assert config.banners.width == 800
    assert config.banners.source_dir == "images/blog-banners"
    assert config.banners.quality_for("exhaustiveness-checks-in-typescript") == 60
    assert config.banners.quality_for("other") == 75
    assert config.ws_port == 9000
    assert config.sitemap.allowed_urls(config.site) == {"https://david-04.github.io/blog/"}


def test_table_of_contents_can_be_disabled(tmp_path):
    write_config(tmp_path, "table_of_contents: false\n")
    assert load_config(tmp_path).table_of_contents is None


def test_empty_file_uses_defaults(tmp_path):
    write_config(tmp_path, "")
    assert load_config(tmp_path).output_dir == "docs"


@pytest.mark.parametrize(
    "text, key",
    [
        ("- just\n- a list\n", "inkwell.yaml"),
        ("title: [unclosed\n", "inkwell.yaml"),
        ("table_of_contents:\n  min_heading_level: 4\n  max_heading_level: 2\n", "table_of_contents"),
        ("table_of_contents:\n  max_heading_level: 7\n", "table_of_contents"),
        ("sidebar:\n  - label: Orphan\n", "sidebar"),
        ("redirects:\n  blog: /elsewhere\n", "redirects"),
        ("redirects:\n  /blog: /blog/\n", "redirects"),
        ("banners:\n  default_quality: 0\n", "banners.default_quality"),
        ("banners:\n  quality:\n    post: 101\n", "banners.quality.post"),
        ("banners:\n  width: 0\n", "banners.width"),
        ("banners:\n  converter: gimp\n", "banners.converter"),
        ("output_dir: ''\n", "output_dir"),
        ("port: http\n", "port"),
        ("ws_port: live\n", "ws_port"),
        ("ws_port: 0\n", "ws_port"),
        ("output_dir: .\n", "output_dir"),
        ("output_dir: ./\n", "output_dir"),
        ("output_dir: /tmp/site\n", "output_dir"),
        ("output_dir: ../docs\n", "output_dir"),
        ("output_dir: docs/../..\n", "output_dir"),
        ("output_dir: content\n", "output_dir"),
        ("output_dir: public/site\n", "output_dir"),
    ],
)
def test_invalid_config(tmp_path, text, key):
    write_config(tmp_path, text)
    with pytest.raises(ConfigError) as excinfo:
        load_config(tmp_path)
    assert excinfo.value.key == key


def test_output_dir_and_ws_port_accepted(tmp_path):
    write_config(tmp_path, "output_dir: build/site\nport: 8000\nws_port: 9000\n")
    config = load_config(tmp_path)
    assert config.output_path == tmp_path / "build" / "site"
    assert config.ws_port == 9000
