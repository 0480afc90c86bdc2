"""HTML and URL string helpers.

Functions:
    escape_html: Escape text for HTML bodies and attribute values.
    join_root_url: Prefix a root-relative path with the site origin.
    normalize_path: Turn a site path or link into a root-relative URL.
"""

from __future__ import annotations

from markupsafe import escape

# Links normalize_path leaves alone
_EXTERNAL_PREFIXES = ("http://", "https://", "//", "mailto:", "tel:", "#")


def escape_html(text: str) -> str:
    """Escape ``&``, ``<``, ``>`` and both quote characters.

    Examples:
        >>> escape_html('Tom & "Jerry"')
        'Tom &amp; &#34;Jerry&#34;'
    """
    return str(escape(text))


def join_root_url(root_url: str, path: str) -> str:
    """Join the site origin and a path with exactly one slash between them.

    An empty ``root_url`` returns ``path`` unchanged.

    Examples:
        >>> join_root_url('https://david-04.github.io/', 'blog/')
        'https://david-04.github.io/blog/'
    """
    if not root_url:
        return path
    return f"{root_url.rstrip('/')}/{path.lstrip('/')}"


def normalize_path(link: str) -> str:
    """Make a sidebar or redirect link root-relative.

    External links and fragments are returned unchanged.

    Examples:
        >>> normalize_path('blog/')
        '/blog/'
        >>> normalize_path('https://github.com/david-04')
        'https://github.com/david-04'
    """
    if not link or link.startswith(_EXTERNAL_PREFIXES) or link.startswith("/"):
        return link
    return "/" + link
