"""Shared helpers for the spine-orm test suite."""
