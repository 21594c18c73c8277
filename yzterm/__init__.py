# yzterm SSH session core

import asyncio
import sys

from yzterm.app import main as _main


def main():
    """Entry point for the yzterm CLI command."""
    sys.exit(asyncio.run(_main()))
