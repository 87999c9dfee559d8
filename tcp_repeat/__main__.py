"""Allow ``python -m tcp_repeat`` to launch the server."""

from __future__ import annotations

import sys


def main() -> None:
    from tcp_repeat import run
    sys.exit(run(sys.argv[1:]))


if __name__ == "__main__":
    main()
