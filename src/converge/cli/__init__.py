"""Command-line interface for Converge."""
