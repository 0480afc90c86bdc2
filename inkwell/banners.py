"""Banner image pipeline for Inkwell.

Each ``<slug>-banner.jpg`` in the banner source directory becomes
``<output_dir>/<slug>.jpg``: resized to a fixed width (keeping the aspect
ratio) and recompressed at the quality configured for that slug. Targets that
exist and are newer than their source are skipped.

Key classes:
- BannerJob: One source/target pair with its quality.
- BaseBannerConverter: Interface shared by converters.
- PillowConverter: Converts in-process with Pillow.
- MagickConverter: Pipes ImageMagick into cjpeg.
- BannerPipeline: Plans and runs the conversions.
"""

from __future__ import annotations

import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

import click
from PIL import Image

from .config import BannerConfig
from .executable_utils import require_executable

BANNER_SUFFIX = "-banner.jpg"


class BannerError(RuntimeError):
    """A banner conversion failed.

    Attributes:
        source_path: Source image of the failed conversion.
        message: Human-readable error message.
        returncode: Exit status of the failing tool (1 for in-process errors).
    """

    def __init__(self, source_path: Path, message: str, returncode: int = 1):
        self.source_path = source_path
        self.message = message
        self.returncode = returncode
        super().__init__(f"{source_path}: {message}")


@dataclass(frozen=True)
class BannerJob:
    """A single banner conversion."""

    slug: str
    source: Path
    target: Path
    quality: int

    def is_stale(self) -> bool:
        """True when the target is missing or older than the source."""
        if not self.target.exists():
            return True
        return self.target.stat().st_mtime < self.source.stat().st_mtime


@dataclass
class BannerReport:
    converted: list[BannerJob] = field(default_factory=list)
    skipped: list[BannerJob] = field(default_factory=list)


def slug_from_source(path: Path) -> str:
    """Return the slug of a banner source file.

    Examples:
        >>> slug_from_source(Path("exhaustiveness-checks-in-typescript-banner.jpg"))
        'exhaustiveness-checks-in-typescript'
    """
    name = path.name
    if name.endswith(BANNER_SUFFIX):
        return name[: -len(BANNER_SUFFIX)]
    return path.stem


def plan_banners(project_root: Path, config: BannerConfig) -> list[BannerJob]:
    """List one job per banner source, sorted by slug.

    Args:
        project_root: Root directory of the project.
        config: Banner settings.

    Returns:
        Jobs for every source matching the configured pattern.
    """
    source_dir = project_root / config.source_dir
    output_dir = project_root / config.output_dir
    if not source_dir.is_dir():
        return []
    jobs = []
    for source in sorted(source_dir.glob(config.pattern)):
        if not source.is_file():
            continue
        slug = slug_from_source(source)
        jobs.append(
            BannerJob(
                slug=slug,
                source=source,
                target=output_dir / f"{slug}.jpg",
                quality=config.quality_for(slug),
            )
        )
    return jobs


class BaseBannerConverter(ABC):
    """Resizes a banner to a fixed width and recompresses it as JPEG."""

    def __init__(self, width: int):
        self.width = width

    @abstractmethod
    def convert(self, job: BannerJob) -> None:
        """Write ``job.target`` from ``job.source``.

        Raises:
            BannerError: If the conversion fails.
        """
        ...

    def ensure_dest_dir(self, dest: Path) -> None:
        dest.parent.mkdir(parents=True, exist_ok=True)


class PillowConverter(BaseBannerConverter):
    """Converts banners with Pillow."""

    def convert(self, job: BannerJob) -> None:
        self.ensure_dest_dir(job.target)
        try:
            with Image.open(job.source) as img:
                height = max(1, round(img.height * self.width / img.width))
                resized = img.convert("RGB").resize(
                    (self.width, height), Image.Resampling.LANCZOS
                )
                resized.save(job.target, "JPEG", quality=job.quality, optimize=True)
        except OSError as exc:
            job.target.unlink(missing_ok=True)
            raise BannerError(job.source, f"cannot convert image: {exc}") from exc


class MagickConverter(BaseBannerConverter):
    """Converts banners with ``magick ... JPG:- | cjpeg -quality Q``."""

    def convert(self, job: BannerJob) -> None:
        magick = require_executable("magick")
        cjpeg = require_executable("cjpeg")
        self.ensure_dest_dir(job.target)

        resize_cmd = [magick, str(job.source), "-resize", f"{self.width}x", "JPG:-"]
        compress_cmd = [cjpeg, "-quality", str(job.quality)]
        with open(job.target, "wb") as out:
            resize = subprocess.Popen(resize_cmd, stdout=subprocess.PIPE)
            compress = subprocess.Popen(compress_cmd, stdin=resize.stdout, stdout=out)
            # Let magick receive SIGPIPE if cjpeg exits early.
            resize.stdout.close()
            compress_rc = compress.wait()
            resize_rc = resize.wait()

        if resize_rc != 0:
            job.target.unlink(missing_ok=True)
            raise BannerError(job.source, f"magick exited with status {resize_rc}", resize_rc)
        if compress_rc != 0:
            job.target.unlink(missing_ok=True)
            raise BannerError(job.source, f"cjpeg exited with status {compress_rc}", compress_rc)


def create_converter(config: BannerConfig) -> BaseBannerConverter:
    """Return the converter selected in the configuration."""
    if config.converter == "magick":
        return MagickConverter(config.width)
    return PillowConverter(config.width)


class BannerPipeline:
    """Runs the banner conversions of a project.

    Attributes:
        project_root: Root directory of the project.
        config: Banner settings.
        converter: Converter used for stale jobs.
    """

    def __init__(
        self,
        project_root: Path,
        config: BannerConfig,
        converter: BaseBannerConverter | None = None,
    ):
        self.project_root = project_root
        self.config = config
        self.converter = converter or create_converter(config)

    def run(self, force: bool = False) -> BannerReport:
        """Convert every stale banner, one after the other.

        Args:
            force: Convert all banners, even up-to-date ones.

        Returns:
            Report of converted and skipped jobs.

        Raises:
            BannerError: On the first failed conversion.
        """
        report = BannerReport()
        for job in plan_banners(self.project_root, self.config):
            if not force and not job.is_stale():
                report.skipped.append(job)
                continue
            click.echo(f"- {job.slug}")
            self.converter.convert(job)
            report.converted.append(job)
        return report
