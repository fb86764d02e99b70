#!/usr/bin/env python3
"""
pkgbot entry point
"""

from pkgbot.cli import cli


def main() -> None:
    cli(prog_name="pkgbot")


if __name__ == "__main__":
    main()
