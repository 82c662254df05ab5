"""Operator-facing rendering and the command-line entry point."""
