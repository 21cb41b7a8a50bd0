"""CLI command modules."""

from ward.cli.commands import service

__all__ = ["service"]
