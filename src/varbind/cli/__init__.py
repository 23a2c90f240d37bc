"""Command line interface for varbind."""
