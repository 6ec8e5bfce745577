from __future__ import annotations

import sys

from .scanner import cli as scan_cli

_USAGE = """\
usage: python -m artiscan <command> [options]

commands:
  scan         scan the artifact repository of the running game
  test-image   recognize the artifact shown in a full-window screenshot
"""


def main(argv=None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        return scan_cli.main([])

    cmd, *rest = args
    cmd = cmd.lower().strip()

    if cmd == "scan":
        return scan_cli.main(rest)
    if cmd in {"test-image", "test_image"}:
        return scan_cli.image_main(rest)
    if cmd in {"-h", "--help", "help"}:
        print(_USAGE)
        return 0

    print(f"Unknown command: {cmd}\n")
    print(_USAGE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
