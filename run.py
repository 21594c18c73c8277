#!/usr/bin/env python3
"""Convenience script to open a yzterm session."""

import asyncio
import sys

from yzterm.app import main as _main


def main():
    sys.exit(asyncio.run(_main()))

if __name__ == "__main__":
    main()
