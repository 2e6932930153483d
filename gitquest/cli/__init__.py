"""Command-line interface for gitquest."""
