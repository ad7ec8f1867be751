"""
Exception classes for icugenotypes.

This module provides the error taxonomy used across the package:
- Malformed input (file type, missing columns) and invalid data values
  (unexpected genotype levels, missing outcome) are fatal.
- Degenerate statistical input (zero divisors, zero-variance groups) is raised
  as a domain error instead of being returned as a silent NaN.
"""

from typing import Dict, Optional


class AnalysisError(Exception):
    """Base exception for all icugenotypes errors."""

    def __init__(self, message: str, details: Optional[Dict] = None):
        """Initialize analysis error.

        Parameters
        ----------
        message : str
            Error message
        details : dict, optional
            Additional error details
        """
        super().__init__(message)
        self.details = details or {}


class InputFormatError(AnalysisError):
    """Raised when an input table has an invalid format."""

    def __init__(self, file_path: str, problem: str):
        """Initialize input format error."""
        message = f"Invalid input table {file_path}: {problem}"
        super().__init__(message, {"file": file_path, "problem": problem})


class DataValidationError(AnalysisError):
    """Raised when data values violate the study's data model."""

    def __init__(self, message: str, field: Optional[str] = None):
        """Initialize data validation error."""
        super().__init__(message, {"field": field})
        self.field = field


class DegenerateDataError(AnalysisError):
    """Raised when a statistic is undefined for the supplied data."""
