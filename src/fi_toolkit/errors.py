"""
Domain exceptions for fi_toolkit.

Input validation raises ValueError with a "CRITICAL:" message. The classes
here cover failures that are not simple bad arguments.
"""


class CalibrationError(Exception):
    """Raised when a bootstrap step fails to bracket or converge."""

    def __init__(self, message: str, tenor: str | None = None):
        super().__init__(message)
        self.tenor = tenor


class QuoteLoadError(Exception):
    """Raised when a quote table is missing or malformed."""

    pass


class CurveValidationError(ValueError):
    """Raised when a curve fails a HALT validation gate."""

    pass
