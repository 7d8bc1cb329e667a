"""Command line interface for batchkit."""

from __future__ import annotations

from batchkit.cli.main import BatchKitCLI, main

__all__ = [
    "BatchKitCLI",
    "main",
]
