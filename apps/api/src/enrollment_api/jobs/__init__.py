"""Recurring job entrypoints for enrollment upkeep."""

__all__ = ["enrollment"]
