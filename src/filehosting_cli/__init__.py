"""Command-line entry point for filehosting."""
