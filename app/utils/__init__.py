"""Shared helpers for clock handling and logging."""
