"""Command-line entry points for auctor."""
