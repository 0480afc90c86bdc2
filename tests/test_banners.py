import os
import stat
from pathlib import Path

import pytest
from PIL import Image

from inkwell.banners import (
    BannerError,
    BannerJob,
    BannerPipeline,
    MagickConverter,
    PillowConverter,
    create_converter,
    plan_banners,
    slug_from_source,
)
from inkwell.config import BannerConfig


def write_banner(directory: Path, slug: str, size=(2560, 1000)) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{slug}-banner.jpg"
    Image.new("RGB", size, color="navy").save(path, "JPEG")
    return path


def make_config(**overrides) -> BannerConfig:
    config = BannerConfig(quality={"exhaustiveness-checks-in-typescript": 75})
    for key, value in overrides.items():
        setattr(config, key, value)
    return config


def test_slug_from_source():
    assert slug_from_source(Path("my-post-banner.jpg")) == "my-post"
    assert slug_from_source(Path("other.jpg")) == "other"


def test_plan_banners(tmp_path):
    sources = tmp_path / "images" / "blog-banners"
    write_banner(sources, "exhaustiveness-checks-in-typescript")
    write_banner(sources, "another-post")
    (sources / "notes.txt").write_text("not an image", encoding="utf-8")
    (sources / "plain.jpg").write_bytes(b"")

    jobs = plan_banners(tmp_path, make_config(default_quality=80))
    assert [job.slug for job in jobs] == ["another-post", "exhaustiveness-checks-in-typescript"]
    assert jobs[0].target == tmp_path / "public" / "blog" / "another-post.jpg"
    assert jobs[0].quality == 80
    assert jobs[1].quality == 75


def test_plan_banners_without_sources(tmp_path):
    assert plan_banners(tmp_path, make_config()) == []


def test_pipeline_converts_every_source(tmp_path, capsys):
    sources = tmp_path / "images" / "blog-banners"
    slugs = ["alpha", "beta", "exhaustiveness-checks-in-typescript"]
    for slug in slugs:
        write_banner(sources, slug)

    report = BannerPipeline(tmp_path, make_config()).run()
    output = tmp_path / "public" / "blog"
    assert sorted(p.name for p in output.iterdir()) == [f"{slug}.jpg" for slug in slugs]
    assert [job.slug for job in report.converted] == slugs
    assert capsys.readouterr().out.splitlines() == [f"- {slug}" for slug in slugs]

    with Image.open(output / "alpha.jpg") as img:
        assert img.size == (1280, 500)
        assert img.format == "JPEG"


def test_pipeline_skips_fresh_targets(tmp_path):
    sources = tmp_path / "images" / "blog-banners"
    source = write_banner(sources, "alpha")
    pipeline = BannerPipeline(tmp_path, make_config())
    pipeline.run()

    second = pipeline.run()
    assert second.converted == []
    assert [job.slug for job in second.skipped] == ["alpha"]

    forced = pipeline.run(force=True)
    assert [job.slug for job in forced.converted] == ["alpha"]

    # A source newer than its target makes the target stale again.
    target = tmp_path / "public" / "blog" / "alpha.jpg"
    old = target.stat().st_mtime - 100
    os.utime(target, (old, old))
    assert BannerJob("alpha", source, target, 75).is_stale()
    assert [job.slug for job in pipeline.run().converted] == ["alpha"]


def test_pillow_converter_upscales_narrow_images(tmp_path):
    source = write_banner(tmp_path, "small", size=(640, 320))
    target = tmp_path / "out" / "small.jpg"
    PillowConverter(1280).convert(BannerJob("small", source, target, 50))
    with Image.open(target) as img:
        assert img.size == (1280, 640)


def test_pillow_converter_reports_broken_images(tmp_path):
    source = tmp_path / "broken-banner.jpg"
    source.write_bytes(b"not a jpeg")
    target = tmp_path / "out" / "broken.jpg"
    with pytest.raises(BannerError) as excinfo:
        PillowConverter(1280).convert(BannerJob("broken", source, target, 75))
    assert excinfo.value.returncode == 1
    assert excinfo.value.source_path == source
    assert not target.exists()


def make_tool(directory: Path, name: str, script: str) -> str:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text("#!/bin/sh\n" + script, encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IEXEC)
    return str(path)


def fake_tools(monkeypatch, tmp_path, cjpeg_script: str, magick_exit: int = 0) -> Path:
    bin_dir = tmp_path / "bin"
    log = tmp_path / "magick.log"
    magick_script = f'echo "$@" > "{log}"\nprintf RESIZED\nexit {magick_exit}\n'
    tools = {
        "magick": make_tool(bin_dir, "magick", magick_script),
        "cjpeg": make_tool(bin_dir, "cjpeg", cjpeg_script),
    }
    monkeypatch.setattr("inkwell.banners.require_executable", lambda name: tools[name])
    return log


def test_magick_converter_pipes_into_cjpeg(monkeypatch, tmp_path):
    log = fake_tools(monkeypatch, tmp_path, 'echo "quality $2" >&2\ncat\n')
    source = tmp_path / "post-banner.jpg"
    source.write_bytes(b"source")
    target = tmp_path / "public" / "blog" / "post.jpg"

    MagickConverter(1280).convert(BannerJob("post", source, target, 75))
    assert target.read_bytes() == b"RESIZED"
    assert log.read_text(encoding="utf-8").split() == [str(source), "-resize", "1280x", "JPG:-"]


def test_magick_converter_propagates_exit_status(monkeypatch, tmp_path):
    fake_tools(monkeypatch, tmp_path, "cat > /dev/null\nexit 3\n")
    source = tmp_path / "post-banner.jpg"
    source.write_bytes(b"source")
    target = tmp_path / "public" / "blog" / "post.jpg"

    with pytest.raises(BannerError) as excinfo:
        MagickConverter(1280).convert(BannerJob("post", source, target, 75))
    assert excinfo.value.returncode == 3
    assert "cjpeg" in excinfo.value.message
    assert not target.exists()


def test_magick_failure_wins_over_successful_cjpeg(monkeypatch, tmp_path):
    fake_tools(monkeypatch, tmp_path, "cat\n", magick_exit=5)
    source = tmp_path / "post-banner.jpg"
    source.write_bytes(b"source")
    target = tmp_path / "public" / "blog" / "post.jpg"

    with pytest.raises(BannerError) as excinfo:
        MagickConverter(1280).convert(BannerJob("post", source, target, 75))
    assert excinfo.value.returncode == 5
    assert "magick" in excinfo.value.message
    assert not target.exists()


def test_create_converter():
    assert isinstance(create_converter(make_config()), PillowConverter)
    magick = create_converter(make_config(converter="magick", width=800))
    assert isinstance(magick, MagickConverter)
    assert magick.width == 800
