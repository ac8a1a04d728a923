"""
Quote loaders and synthetic quote sets.
"""

from fi_toolkit.loaders.quotes import (
    QuoteLoader,
    SyntheticQuoteProvider,
    load_discount_curve,
    load_survival_curve,
    parse_frequency,
    quotes_to_frame,
)

__all__ = [
    "QuoteLoader",
    "SyntheticQuoteProvider",
    "load_discount_curve",
    "load_survival_curve",
    "parse_frequency",
    "quotes_to_frame",
]
