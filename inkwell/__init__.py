"""Inkwell static blog builder.

This package builds a static blog from Markdown/MDX posts, a YAML site
configuration and a Jinja2 theme. It also resizes banner images and wraps the
release chores (preview, revert, upgrade) in a single command-line tool.

The main entry point is the CLI module, which maps the named build actions
(build/release, preview, run/dev, revert/unrelease/reset, uplift/upgrade)
to their implementations.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
