"""CLI module for calauth."""
