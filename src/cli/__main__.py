"""Run the Afterglow CLI as ``python -m cli``.

Arguments after the module name are forwarded to ``cli.main.main``.
"""

from __future__ import annotations

import sys

from cli.main import main


def run() -> int:
    """Forward process arguments to the CLI and return its exit code."""
    return main(sys.argv[1:])


if __name__ == "__main__":
    sys.exit(run())
