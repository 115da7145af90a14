"""
Core Utilities Package

This package contains utility functions and helpers used throughout the application.

Modules:
    - formatting: Price formatting and display labels
"""

from core.utils.formatting import (
    LOADING_LABEL,
    NO_PAIRS_LABEL,
    OFFLINE_LABEL,
    format_price,
    fraction_digits,
)

__all__ = ["LOADING_LABEL", "NO_PAIRS_LABEL", "OFFLINE_LABEL", "format_price", "fraction_digits"]
