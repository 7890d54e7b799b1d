"""Data models for the opsagenda pipeline.

Value types that cross component boundaries (intervals, period selections,
filter criteria, fetch windows) and the entity records of the operations
dashboard are pydantic models. Lightweight per-render results (grouped
buckets, pagination state, snapshot registry) are frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Generic, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..core.exceptions import InvalidPresetError
from ..core.time_utils import at_midnight

T = TypeVar("T")

# Raw date fields are kept as delivered by the data feed; parsing happens in
# time_utils so malformed values degrade instead of failing model validation.
DateValue = Union[datetime, date, str, None]
InstantValue = Union[int, float, datetime, str, None]

ALL = "all"


# ---------------------------------------------------------------------------
# Intervals and period selection
# ---------------------------------------------------------------------------


class TimeInterval(BaseModel):
    """Half-open interval ``[start, end)``."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @model_validator(mode="after")
    def validate_order(self) -> TimeInterval:
        if self.start > self.end:
            raise ValueError(f"interval start {self.start} is after end {self.end}")
        return self

    @classmethod
    def for_days(cls, first_day: date, days: int, tzinfo: Any = None) -> TimeInterval:
        """Build ``[midnight(first_day), midnight(first_day + days))``."""
        start = at_midnight(first_day, tzinfo)
        end = at_midnight(date.fromordinal(first_day.toordinal() + days), tzinfo)
        return cls(start=start, end=end)

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end

    def contains_day(self, day: date) -> bool:
        """True when midnight of ``day`` lies inside the interval."""
        return self.contains(at_midnight(day, self.start.tzinfo))

    @property
    def first_day(self) -> date:
        return self.start.date()

    @property
    def end_day(self) -> date:
        """Exclusive end as a calendar day."""
        return self.end.date()


class PeriodPreset(str, Enum):
    """Named, relative time windows resolved against the current instant."""

    TODAY = "today"
    NEXT_7_DAYS = "next7days"
    NEXT_30_DAYS = "next30days"
    THIS_WEEK = "thisWeek"
    THIS_MONTH = "thisMonth"
    YEAR_TO_DATE = "yearToDate"
    LAST_30_DAYS = "last30days"
    LAST_12_MONTHS = "last12months"
    ALL = "all"


class PeriodSelection(BaseModel):
    """Either ``Preset(name)`` or ``Custom(start_date, end_date)``.

    Custom bounds are stored raw; an absent or unparseable bound makes the
    selection behave like ``all`` when resolved.
    """

    model_config = ConfigDict(frozen=True)

    kind: str = Field(default="preset", pattern="^(preset|custom)$")
    name: str = Field(default=ALL, description="Preset name when kind == 'preset'")
    start_date: DateValue = None
    end_date: DateValue = None

    @classmethod
    def preset(cls, name: Union[str, PeriodPreset], strict: bool = False) -> PeriodSelection:
        """Create a preset selection.

        Args:
            name: Preset name (see PeriodPreset)
            strict: Raise InvalidPresetError for unknown names instead of
                deferring to the resolver's "no constraint" fallback

        Returns:
            PeriodSelection
        """
        value = name.value if isinstance(name, PeriodPreset) else str(name)
        if strict and value not in {p.value for p in PeriodPreset}:
            raise InvalidPresetError(value, [p.value for p in PeriodPreset])
        return cls(kind="preset", name=value)

    @classmethod
    def custom(cls, start_date: DateValue, end_date: DateValue) -> PeriodSelection:
        return cls(kind="custom", name="custom", start_date=start_date, end_date=end_date)

    @property
    def is_custom(self) -> bool:
        return self.kind == "custom"


# ---------------------------------------------------------------------------
# Filter criteria
# ---------------------------------------------------------------------------

FacetValue = Union[str, tuple[str, ...]]


def _normalize_facet(value: Any) -> FacetValue:
    """Collapse multi-select facets into a sorted tuple; empty or ALL means 'all'."""
    if value is None:
        return ALL
    if isinstance(value, (list, tuple, set, frozenset)):
        values = sorted({str(v) for v in value if v is not None and str(v) != ""})
        if not values or any(v.lower() == ALL for v in values):
            return ALL
        if len(values) == 1:
            return values[0]
        return tuple(values)
    text = str(value)
    if text == "" or text.lower() == ALL:
        return ALL
    return text


def facet_matches(facet: FacetValue, actual: Any) -> bool:
    """Exact-match facet test; ``'all'`` is the universal wildcard."""
    if facet == ALL:
        return True
    if isinstance(facet, tuple):
        return actual in facet
    return actual == facet


class FilterCriteria(BaseModel):
    """Immutable filter state chosen in the UI.

    Every facet is optional and defaults to the ``'all'`` wildcard. Multi-select
    facets (guest statuses, property sets) are given as lists and normalized
    to sorted tuples so equal selections compare equal.
    """

    model_config = ConfigDict(frozen=True)

    search: str = ""
    status: FacetValue = ALL
    assignee: FacetValue = ALL
    property_code: FacetValue = ALL
    category: FacetValue = ALL
    ticket_type: FacetValue = ALL
    period: PeriodSelection = Field(default_factory=PeriodSelection)

    @field_validator("status", "assignee", "property_code", "category", "ticket_type", mode="before")
    @classmethod
    def normalize_facets(cls, v: Any) -> FacetValue:
        return _normalize_facet(v)

    @field_validator("search", mode="before")
    @classmethod
    def normalize_search(cls, v: Any) -> str:
        return "" if v is None else str(v)

    def replace(self, **changes: Any) -> FilterCriteria:
        """Return a new, re-validated criteria value with ``changes`` applied."""
        data = {name: getattr(self, name) for name in type(self).model_fields}
        data.update(changes)
        return type(self).model_validate(data)

    def signature(self) -> FilterSignature:
        from .signature import compute_signature

        return compute_signature(self)


class FilterSignature(BaseModel):
    """Canonical, comparable form of a complete FilterCriteria.

    Equality contract: two signatures are equal exactly when the criteria
    they were computed from have identical facet content.
    """

    model_config = ConfigDict(frozen=True)

    value: str

    def __str__(self) -> str:
        return self.value


def signature_text(signature: Union[FilterSignature, str, None]) -> Optional[str]:
    """Accept either a FilterSignature or a pre-computed signature string."""
    if signature is None:
        return None
    return str(signature)


# ---------------------------------------------------------------------------
# Pipeline results and state cells
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GroupedEntity(Generic[T]):
    """One day bucket of an agenda view.

    ``key`` is the calendar day; backlog buckets (entities without a schedule)
    have ``key=None`` and ``is_backlog=True``.
    """

    key: Optional[date]
    items: tuple[T, ...]
    label: str = ""
    is_backlog: bool = False

    def __len__(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class PaginationState:
    """Incremental pagination state; ``display_count`` only grows per ``reset_key``."""

    display_count: int
    reset_key: Optional[str]


@dataclass(frozen=True)
class SnapshotRegistry:
    """Ids already observed under one filter signature.

    ``signature`` is None until the first observation; the registry is
    reseeded whenever the signature changes.
    """

    signature: Optional[str] = None
    seen_ids: frozenset = field(default_factory=frozenset)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self.seen_ids

    def __len__(self) -> int:
        return len(self.seen_ids)

    def __bool__(self) -> bool:
        # an empty seeded registry is still a registry
        return True


class FetchWindow(BaseModel):
    """Externally fetched date range backing a scrollable calendar, ``[from, to)``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_date: date = Field(alias="from")
    to_date: date = Field(alias="to")

    @model_validator(mode="after")
    def validate_order(self) -> FetchWindow:
        if self.from_date > self.to_date:
            raise ValueError(f"fetch window from {self.from_date} is after to {self.to_date}")
        return self

    @property
    def key(self) -> str:
        """Idempotency key used to suppress duplicate expansion requests."""
        return f"{self.from_date.isoformat()}|{self.to_date.isoformat()}"

    def covers(self, interval: TimeInterval) -> bool:
        return self.from_date <= interval.first_day and interval.end_day <= self.to_date


# ---------------------------------------------------------------------------
# Entity records
# ---------------------------------------------------------------------------


class TicketStatus(str, Enum):
    OPEN = "open"
    ASSIGNED = "assigned"
    ON_THE_WAY = "on_the_way"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class TicketCategory(str, Enum):
    MAINTENANCE = "maintenance"
    CONCIERGE = "concierge"


class ReservationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CHECKIN = "checkin"
    CHECKOUT = "checkout"
    CANCELED = "canceled"


class DailyStatus(str, Enum):
    """What happens to a reservation on a given agenda day."""

    CHECKIN = "CHECKIN"
    CHECKOUT = "CHECKOUT"
    INHOUSE = "INHOUSE"


class _FeedRecord(BaseModel):
    """Base for records coming from the document feed (camelCase keys accepted)."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
        use_enum_values=True,
        validate_default=True,
    )


class MaintenanceTicket(_FeedRecord):
    """Maintenance or concierge work order."""

    id: str
    property_code: str = ""
    description: str = ""
    status: TicketStatus = TicketStatus.OPEN
    assignee: Optional[str] = None
    assignees: list[str] = Field(default_factory=list)
    category: Optional[TicketCategory] = None
    service_type: str = ""
    desired_date: DateValue = None
    scheduled_date: DateValue = None
    completed_date: DateValue = None
    created_at: InstantValue = None
    is_checkout_ticket: bool = False
    is_preventive: bool = False
    is_guest_request: bool = False

    @property
    def effective_category(self) -> str:
        return self.category or TicketCategory.MAINTENANCE.value

    @property
    def is_done(self) -> bool:
        return self.status == TicketStatus.DONE.value


class Reservation(_FeedRecord):
    """Guest stay as delivered by the reservations feed."""

    id: str
    property_code: str = ""
    guest_name: str = ""
    channel: Optional[str] = None
    check_in_date: DateValue = None
    check_out_date: DateValue = None
    status: ReservationStatus = ReservationStatus.CONFIRMED
    daily_status: Optional[DailyStatus] = None
    created_at: InstantValue = None

    @property
    def is_canceled(self) -> bool:
        return self.status == ReservationStatus.CANCELED.value


class CheckoutItem(BaseModel):
    """A reservation checkout projected into the maintenance agenda."""

    model_config = ConfigDict(frozen=True)

    reservation: Reservation

    @property
    def id(self) -> str:
        return f"checkout:{self.reservation.id}"

    @property
    def property_code(self) -> str:
        return self.reservation.property_code
