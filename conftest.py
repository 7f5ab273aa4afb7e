"""Shared pytest configuration; the repository root holds the `bcall` package."""
