"""
Validation adapters for cross-checking against external libraries.

Usage
-----
>>> from fi_toolkit.adapters import QUANTLIB_AVAILABLE
>>> if QUANTLIB_AVAILABLE:
...     from fi_toolkit.adapters import QuantLibAdapter
"""

from fi_toolkit.adapters.base import BaseAdapter, ValidationResult
from fi_toolkit.adapters.quantlib_adapter import QUANTLIB_AVAILABLE, QuantLibAdapter

__all__ = [
    "ValidationResult",
    "BaseAdapter",
    "QUANTLIB_AVAILABLE",
    "QuantLibAdapter",
]
