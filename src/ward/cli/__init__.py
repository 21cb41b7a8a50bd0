"""Command line interface for Ward."""
