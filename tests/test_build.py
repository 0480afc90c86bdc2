import pytest

from inkwell.build import BuildError, build_site
from inkwell.config import ConfigError


def test_build_site_writes_everything(site_project):
    result = build_site(site_project)
    out = site_project / "docs"
    assert result.output_dir == out
    assert {p.url for p in result.posts} == {
        "/blog/",
        "/blog/exhaustiveness-checks-in-typescript/",
    }

    assert (out / "blog" / "index.html").exists()
    post_html = (out / "blog" / "exhaustiveness-checks-in-typescript" / "index.html").read_text(
        encoding="utf-8"
    )
    assert "Switch statements over union types" in post_html

    redirect = (out / "index.html").read_text(encoding="utf-8")
    assert 'content="0;url=/blog"' in redirect
    assert result.redirects == {"/": "/blog"}

    assert (out / "404.html").exists()
    assert (out / ".nojekyll").exists()
    assert (out / "favicon.ico").read_bytes() == b"\x00\x00\x01\x00"
    assert (out / "_inkwell" / "inkwell.css").exists()
    assert ".highlight" in (out / "_inkwell" / "highlight.css").read_text(encoding="utf-8")
    assert (out / "_inkwell" / "custom" / "customization.css").read_text(
        encoding="utf-8"
    ) == ":root { --accent: teal; }"


def test_sitemap_only_lists_allowed_paths(site_project):
    result = build_site(site_project)
    out = site_project / "docs"
    assert result.sitemap_urls == ["https://david-04.github.io/blog/"]
    urlset = (out / "sitemap-0.xml").read_text(encoding="utf-8")
    assert "<loc>https://david-04.github.io/blog/</loc>" in urlset
    assert "exhaustiveness" not in urlset
    index = (out / "sitemap-index.xml").read_text(encoding="utf-8")
    assert "<loc>https://david-04.github.io/sitemap-0.xml</loc>" in index


def test_sitemap_skipped_without_site(site_project, capsys):
    config = site_project / "inkwell.yaml"
    config.write_text(
        config.read_text(encoding="utf-8").replace("site: https://david-04.github.io\n", ""),
        encoding="utf-8",
    )
    result = build_site(site_project)
    assert result.sitemap_urls is None
    assert not (site_project / "docs" / "sitemap-index.xml").exists()
    assert "skipping sitemap" in capsys.readouterr().out


def test_build_cleans_output_and_honours_override(site_project, tmp_path):
    stale = site_project / "docs" / "old" / "index.html"
    stale.parent.mkdir(parents=True)
    stale.write_text("old", encoding="utf-8")
    build_site(site_project)
    assert not stale.exists()

    staging = tmp_path / "staging"
    result = build_site(site_project, output_dir_override=staging)
    assert result.output_dir == staging
    assert (staging / "blog" / "index.html").exists()


def test_nojekyll_can_be_disabled(site_project):
    config = site_project / "inkwell.yaml"
    config.write_text(config.read_text(encoding="utf-8") + "nojekyll: false\n", encoding="utf-8")
    build_site(site_project)
    assert not (site_project / "docs" / ".nojekyll").exists()


def test_drafts_only_with_flag(site_project):
    draft = site_project / "content" / "blog" / "_next.md"
    draft.write_text("---\ntitle: Next\n---\nSoon", encoding="utf-8")
    build_site(site_project)
    assert not (site_project / "docs" / "blog" / "next").exists()
    build_site(site_project, include_drafts=True)
    assert (site_project / "docs" / "blog" / "next" / "index.html").exists()


def test_missing_title_fails_build(site_project):
    bad = site_project / "content" / "blog" / "untitled.md"
    bad.write_text("---\ndescription: no title\n---\nBody", encoding="utf-8")
    with pytest.raises(BuildError) as excinfo:
        build_site(site_project)
    assert excinfo.value.source_path == bad
    assert "title" in excinfo.value.message


def test_duplicate_url_fails_build(site_project):
    dup = site_project / "content" / "blog" / "copy.md"
    dup.write_text(
        "---\ntitle: Copy\nslug: blog/exhaustiveness-checks-in-typescript\n---\n",
        encoding="utf-8",
    )
    with pytest.raises(BuildError) as excinfo:
        build_site(site_project)
    assert "already used" in excinfo.value.message


def test_redirect_collision_fails_build(site_project):
    (site_project / "content" / "index.md").write_text("---\ntitle: Home\n---\n", encoding="utf-8")
    with pytest.raises(BuildError) as excinfo:
        build_site(site_project)
    assert "collides" in excinfo.value.message


def test_missing_custom_css_fails_build(site_project):
    (site_project / "assets" / "customization.css").unlink()
    with pytest.raises(BuildError) as excinfo:
        build_site(site_project)
    assert excinfo.value.source_path.name == "customization.css"


def test_broken_layout_reports_template_error(site_project):
    layouts = site_project / "layouts"
    layouts.mkdir()
    (layouts / "page.html.jinja").write_text("{% if %}", encoding="utf-8")
    with pytest.raises(BuildError) as excinfo:
        build_site(site_project)
    assert excinfo.value.message.startswith("Template syntax error")


def test_impossible_date_fails_build(site_project):
    bad = site_project / "content" / "blog" / "leap.md"
    bad.write_text("---\ntitle: Leap\ndate: 2024-02-30\n---\nBody", encoding="utf-8")
    with pytest.raises(BuildError) as excinfo:
        build_site(site_project)
    assert excinfo.value.source_path == bad
    assert "out of range" in excinfo.value.message


def test_output_dir_at_project_root_is_refused(site_project):
    config_path = site_project / "inkwell.yaml"
    config_path.write_text(
        config_path.read_text(encoding="utf-8").replace("output_dir: docs", "output_dir: ."),
        encoding="utf-8",
    )
    with pytest.raises(ConfigError) as excinfo:
        build_site(site_project)
    assert excinfo.value.key == "output_dir"
    assert (site_project / "content" / "blog" / "exhaustiveness.md").exists()
