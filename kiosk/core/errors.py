"""
Error taxonomy for the kiosk.

Only hard failures are exceptions. "No face" and "no hand" are ordinary
results (empty roster, cleared debounce state) and never raised.
"""


class KioskError(Exception):
    """Base class for kiosk errors."""


class ModelUnavailable(KioskError):
    """An oracle model could not be loaded. Recognition stays pre-trigger."""

    def __init__(self, model: str, reason: str = ""):
        self.model = model
        self.reason = reason
        message = f"{model} model unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class WeatherUnavailable(KioskError):
    """Weather lookup failed. The message is shown to the visitor as-is."""


class CatalogError(KioskError):
    """The menu catalog file is missing or malformed."""
