"""Command-line tools for Memorial Console."""
