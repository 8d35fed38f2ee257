"""Command line interface for SnapKit."""
