"""Command-line interface for csvintake."""
