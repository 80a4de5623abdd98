"""Command-line interface for Pitch Recall."""
