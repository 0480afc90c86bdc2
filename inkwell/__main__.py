"""Entry point for the Inkwell CLI.

Allows running the package directly with ``python -m inkwell``.
"""

from .cli import main

if __name__ == "__main__":  # pragma: no cover
    main()
