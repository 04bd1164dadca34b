"""Command-line test orchestration."""
