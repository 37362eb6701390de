"""CLI package for Kiro account auth

Subcommands for logging in, refreshing, checking and importing accounts,
and for serving the HTTP API.
"""

from cli.main import main

__all__ = [
    "main",
]
