#!/usr/bin/env python3
"""
Inbox Unsubscriber - command-line entry point.

Usage:
    python main.py init
    python main.py scan [--json] [--min-count N]
    python main.py unsubscribe --domain DOMAIN --ids ID1,ID2
    python main.py skip add|remove|list
    python main.py cache stats|clear
"""

from dotenv import load_dotenv

# Config reads the environment at import time
load_dotenv()

from inbox_unsubscriber.cli import cli  # noqa: E402


def main():
    cli()


if __name__ == '__main__':
    main()
