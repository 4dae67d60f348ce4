"""Command-line presentation layer."""
