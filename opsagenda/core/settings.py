"""
Validated configuration model for opsagenda.

All tunables of the agenda pipeline live here with their defaults. Values are
validated with pydantic; invalid values raise ``ConfigurationError`` from the
validators, which pydantic propagates unchanged to the caller.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from .exceptions import ConfigurationError
from .time_utils import is_valid_timezone


WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class AgendaSettings(BaseModel):
    """Configuration for the agenda pipeline.

    Attributes:
        default_page_size: Items revealed per incremental page
        buffer_days: Distance to the fetch-window edge that triggers expansion
        expansion_days: Days added to the fetch window per expansion
        week_start: First day of the week for the ``thisWeek`` preset (0=Monday)
        checkout_horizon_days: How far ahead reservation checkouts are merged into
            the maintenance agenda
        fullscreen_window_days: Initial fetch window length in fullscreen mode
        compact_window_months: Initial fetch window length in compact mode
        timezone: IANA timezone used for calendar days, None for naive local time

    Example:
        >>> settings = AgendaSettings(default_page_size=50, week_start="sunday")
        >>> settings.week_start
        6
    """

    model_config = ConfigDict(frozen=True)

    default_page_size: int = Field(default=20, description="Items per incremental page")
    buffer_days: int = Field(default=30, description="Expansion trigger distance in days")
    expansion_days: int = Field(default=90, description="Days added per expansion")
    week_start: int = Field(default=0, description="Week start day, 0=Monday .. 6=Sunday")
    checkout_horizon_days: int = Field(default=15, description="Checkout lookahead in days")
    fullscreen_window_days: int = Field(default=180, description="Fullscreen window length")
    compact_window_months: int = Field(default=3, description="Compact window length in months")
    timezone: Optional[str] = Field(default=None, description="IANA timezone for day keys")

    @field_validator(
        "default_page_size",
        "buffer_days",
        "expansion_days",
        "checkout_horizon_days",
        "fullscreen_window_days",
        "compact_window_months",
    )
    @classmethod
    def validate_positive(cls, v: int, info: ValidationInfo) -> int:
        """Reject zero or negative counts."""
        if v < 1:
            raise ConfigurationError(
                f"{info.field_name} must be at least 1",
                field_name=info.field_name,
                field_value=v,
            )
        return v

    @field_validator("week_start", mode="before")
    @classmethod
    def validate_week_start(cls, v: object) -> int:
        """Accept a weekday index or an English weekday name."""
        if isinstance(v, str):
            name = v.strip().lower()
            if name in WEEKDAY_NAMES:
                return WEEKDAY_NAMES.index(name)
            try:
                v = int(name)
            except ValueError:
                raise ConfigurationError(
                    f"Unknown weekday name: {v!r}", field_name="week_start", field_value=v
                ) from None
        if not isinstance(v, int) or isinstance(v, bool) or not 0 <= v <= 6:
            raise ConfigurationError(
                "week_start must be between 0 (Monday) and 6 (Sunday)",
                field_name="week_start",
                field_value=v,
            )
        return v

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        """Ensure the timezone is a loadable IANA name."""
        if v is None:
            return None
        v = v.strip()
        if not v:
            return None
        if not is_valid_timezone(v):
            raise ConfigurationError(
                f"Unknown timezone: {v}", field_name="timezone", field_value=v
            )
        return v
