"""Enrollment pipeline exception hierarchy.

Each stage of the report raises a specific error type so the page or the
report entry point can tell the user which table, column or rows failed.
"""

from __future__ import annotations


class EnrollmentError(Exception):
    """Base exception for all enrollment pipeline failures."""


class SchemaError(EnrollmentError):
    """Raised when an input table is missing a required column."""


class ParseError(EnrollmentError):
    """Raised when a year or count value cannot be parsed."""


class UnknownCategoryError(EnrollmentError):
    """Raised when a value falls outside a closed category set."""


class InsufficientDataError(EnrollmentError):
    """Raised when the model input has too few rows for its parameters."""
