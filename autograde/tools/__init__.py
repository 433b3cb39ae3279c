"""Command-line tools and services built on the shared libraries."""
