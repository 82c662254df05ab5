"""Shared cross-cutting code (exceptions)."""
