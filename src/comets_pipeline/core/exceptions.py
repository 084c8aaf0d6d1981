"""
Exception and warning types raised by the correlation pipeline.
"""

from __future__ import annotations


class CometsError(Exception):
    """Base class for pipeline errors."""


class ConfigurationError(CometsError, ValueError):
    """
    Fatal model configuration problem.

    Raised before any output is produced: too few observations without a
    stratification path, adjustment variables that are also outcomes or
    exposures, or a stratification variable with too many distinct values.
    """


class DataQualityWarning(UserWarning):
    """Non-fatal data problem that was recovered by dropping or skipping."""
