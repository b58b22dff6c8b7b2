"""Exceptions raised by the soil advisor services."""
from typing import List, Optional


class SoilAdvisorError(Exception):
    """Base class for soil advisor failures."""


class SoilValidationError(SoilAdvisorError):
    """One or more soil test fields are non-numeric or out of range."""

    def __init__(self, problems: List, message: Optional[str] = None):
        self.problems = list(problems)
        fields = ", ".join(p.field for p in self.problems)
        super().__init__(message or f"Invalid soil inputs: {fields}")


class ConfigurationError(SoilAdvisorError):
    """
    A selection cannot be used for the role it was given.

    Raised for unknown crops, fertilizers or currencies, and for sources
    lacking the nutrient of their role (e.g. a potash source selected for
    phosphorus). Distinct from validation: it stems from selection, not
    measurement.
    """

    def __init__(self, message: str, field: Optional[str] = None, value: Optional[str] = None):
        self.field = field
        self.value = value
        super().__init__(message)
