"""Command-line interface for xgit."""
