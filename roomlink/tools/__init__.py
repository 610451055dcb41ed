"""Command-line tools built on the roomlink client."""
