"""Command-line interface for Inkwell.

This module defines the CLI commands using the Click framework. Running
``inkwell`` without a command prints the list of actions.

Commands (aliases in parentheses):
- build (release): Generate the static website.
- preview: Serve the generated website.
- run (dev): Run the development server with live reload.
- revert (unrelease, reset): Revert the output directory.
- uplift (upgrade): Upgrade the site's packages.
- banners: Resize and recompress banner images.
- post: Create a new post interactively.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import click
import questionary
import yaml

from . import __version__
from .config import ConfigError, load_config
from .executable_utils import ExecutableNotFoundError
from .utils import slugify

ALIASES = {
    "release": "build",
    "dev": "run",
    "unrelease": "revert",
    "reset": "revert",
    "upgrade": "uplift",
}


class AliasedGroup(click.Group):
    """Click group resolving the alternative names of each action."""

    def get_command(self, ctx, cmd_name):
        return super().get_command(ctx, ALIASES.get(cmd_name, cmd_name))

    def resolve_command(self, ctx, args):
        _, cmd, args = super().resolve_command(ctx, args)
        return cmd.name if cmd else None, cmd, args


def _fail(label: str, message: str, path: Path | None = None, status: int = 1):
    """Print a coloured error and exit with ``status``.

    A negative status (a tool killed by a signal) exits with 128 + signal,
    as the shell reports it.
    """
    click.echo(click.style(f"{label}:", fg="red", bold=True), err=True)
    if path is not None:
        click.echo(click.style(f"  File: {path}", fg="yellow"), err=True)
    click.echo(click.style(f"  Error: {message}", fg="white"), err=True)
    raise SystemExit(status if status >= 0 else 128 - status)


def _relative(path: Path, root: Path) -> Path:
    try:
        return path.relative_to(root)
    except ValueError:
        return path


def _load_config_or_fail(project_root: Path):
    try:
        return load_config(project_root)
    except ConfigError as exc:
        _fail("Invalid configuration", str(exc), project_root / "inkwell.yaml")


@click.group(cls=AliasedGroup, invoke_without_command=True)
@click.version_option(version=__version__, prog_name="inkwell")
@click.pass_context
def cli(ctx):
    """Inkwell static blog builder."""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command(short_help="Generate the static website (alias: release).")
@click.option("--drafts", is_flag=True, help="Include draft posts")
@click.option("--with-banners", is_flag=True, help="Convert stale banner images first")
def build(drafts: bool, with_banners: bool):
    """Generate the static website into the output directory."""
    project_root = Path.cwd()
    config = _load_config_or_fail(project_root)
    if with_banners:
        _run_banners(project_root, config, force=False)

    from .build import BuildError, build_site

    try:
        result = build_site(project_root, include_drafts=drafts, config=config)
    except BuildError as exc:
        _fail("Build failed", exc.message, _relative(exc.source_path, project_root))
    click.echo(f"Built {len(result.posts)} posts into {result.output_dir}")


@cli.command(short_help="Start a static web server to preview the website.")
@click.option("--port", type=int, required=False, help="Port to serve on (overrides inkwell.yaml)")
def preview(port: int | None):
    """Serve the already generated website without rebuilding it."""
    project_root = Path.cwd()
    _load_config_or_fail(project_root)
    from .server import PreviewServer

    server = PreviewServer(project_root, port=port)
    try:
        server.check_output()
    except FileNotFoundError as exc:
        raise click.ClickException(str(exc)) from exc
    server.start()


@cli.command(short_help="Run the development server (alias: dev).")
@click.option("--drafts", is_flag=True, help="Include draft posts")
@click.option("--port", type=int, required=False, help="Port for the dev server (overrides inkwell.yaml)")
@click.option(
    "--ws-port",
    type=int,
    required=False,
    help="Port for the live reload websocket server (overrides inkwell.yaml ws_port)",
)
def run(drafts: bool, port: int | None, ws_port: int | None):
    """Build, serve and rebuild the website on every change."""
    project_root = Path.cwd()
    _load_config_or_fail(project_root)
    from .build import BuildError
    from .server import DevServer

    server = DevServer(project_root, http_port=port, ws_port=ws_port)
    try:
        server.start(include_drafts=drafts)
    except BuildError as exc:
        _fail("Build failed", exc.message, _relative(exc.source_path, project_root))


@cli.command(short_help="Revert the output directory (aliases: unrelease, reset).")
def revert():
    """Discard uncommitted changes in the output directory using git."""
    project_root = Path.cwd()
    config = _load_config_or_fail(project_root)
    from .tasks import TaskError, revert_output

    try:
        revert_output(project_root, config.output_dir)
    except ExecutableNotFoundError as exc:
        _fail("Revert failed", str(exc), status=127)
    except TaskError as exc:
        _fail("Revert failed", str(exc), status=exc.returncode)


@cli.command(short_help="Upgrade the site's packages (alias: upgrade).")
def uplift():
    """Upgrade the packages listed in upgrade_packages with pip."""
    project_root = Path.cwd()
    config = _load_config_or_fail(project_root)
    from .tasks import TaskError, upgrade_packages

    try:
        upgrade_packages(project_root, config.upgrade_packages)
    except TaskError as exc:
        _fail("Upgrade failed", str(exc), status=exc.returncode)


@cli.command(short_help="Resize and recompress banner images.")
@click.option("--force", is_flag=True, help="Convert all banners, even up-to-date ones")
def banners(force: bool):
    """Convert every <slug>-banner.jpg into a site-ready <slug>.jpg."""
    project_root = Path.cwd()
    config = _load_config_or_fail(project_root)
    report = _run_banners(project_root, config, force=force)
    click.echo(
        f"Converted {len(report.converted)} banners, {len(report.skipped)} up to date"
    )


def _run_banners(project_root: Path, config, force: bool):
    from .banners import BannerError, BannerPipeline

    try:
        return BannerPipeline(project_root, config.banners).run(force=force)
    except ExecutableNotFoundError as exc:
        _fail("Banner conversion failed", str(exc), status=127)
    except BannerError as exc:
        _fail(
            "Banner conversion failed",
            exc.message,
            _relative(exc.source_path, project_root),
            status=exc.returncode,
        )


@cli.command()
@click.option("--folder", default="blog", show_default=True, help="Folder below content/")
def post(folder: str):
    """Create a new post interactively."""
    project_root = Path.cwd()
    config = _load_config_or_fail(project_root)
    if not config.content_dir.exists():
        raise click.ClickException(
            "No content/ directory found. Run this command from an Inkwell project root."
        )

    title = questionary.text(
        "Title:",
        validate=lambda x: len(x.strip()) > 0 or "Title cannot be empty",
        style=_questionary_style(),
    ).ask()
    if title is None:
        raise click.Abort()

    slug = questionary.text(
        "Slug:", default=slugify(title), style=_questionary_style()
    ).ask()
    if slug is None:
        raise click.Abort()

    description = questionary.text("Description:", style=_questionary_style()).ask()
    if description is None:
        raise click.Abort()

    slug = slugify(slug)
    target = config.content_dir / folder / f"{slug}.md"
    if target.exists():
        raise click.ClickException(f"File already exists: {_relative(target, project_root)}")

    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(new_post_text(title.strip(), description.strip()), encoding="utf-8")
    click.echo(f"Created {_relative(target, project_root)}")
    banner = project_root / config.banners.source_dir / f"{slug}-banner.jpg"
    click.echo(f"Banner image goes to {_relative(banner, project_root)}")


def new_post_text(title: str, description: str, today: datetime | None = None) -> str:
    """Return the initial text of a new post with its front-matter."""
    today = today or datetime.now()
    frontmatter = {
        "title": title,
        "description": description,
        "date": today.date(),
    }
    dumped = yaml.safe_dump(frontmatter, sort_keys=False, allow_unicode=True)
    return f"---\n{dumped}---\n\n"


def _questionary_style():
    """Return consistent questionary style."""
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )


def main():
    """Entry point for the CLI application."""
    cli()
