"""
Exception hierarchy for opsagenda.

The agenda pipeline itself is total: filtering, grouping, pagination, range
expansion and change detection degrade on malformed input instead of raising.
These exceptions cover the boundaries around it, namely configuration loading
and strict construction of filter values.
"""

from typing import Any, Optional


class AgendaError(Exception):
    """Base exception for all opsagenda errors.

    Args:
        message: Human-readable error description
        details: Optional dictionary containing additional error context

    Example:
        >>> raise AgendaError("Configuration failed", {"component": "settings"})
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ConfigurationError(AgendaError):
    """Raised when a configuration value fails validation.

    Args:
        message: Human-readable validation error description
        field_name: Name of the setting that failed validation
        field_value: The invalid value
        details: Additional context about the failure

    Example:
        >>> raise ConfigurationError(
        ...     "week_start must be between 0 and 6",
        ...     field_name="week_start",
        ...     field_value=9,
        ... )
    """

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        field_value: Optional[Any] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        self.field_name = field_name
        self.field_value = field_value

        error_details = details or {}
        if field_name:
            error_details["field_name"] = field_name
        if field_value is not None:
            error_details["field_value"] = str(field_value)

        super().__init__(message, error_details)


class InvalidPresetError(AgendaError):
    """Raised by strict period construction when the preset name is unknown."""

    def __init__(self, preset: str, valid: Optional[list[str]] = None) -> None:
        self.preset = preset
        self.valid = valid or []
        super().__init__(
            f"Unknown period preset: {preset!r}",
            {"valid_presets": ", ".join(self.valid)} if self.valid else None,
        )
