"""Command-line interface for recallcore."""
