"""Enrollment job exports."""

from .maintenance import run_enrollment_maintenance  # noqa: F401

__all__ = ["run_enrollment_maintenance"]
