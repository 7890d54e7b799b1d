"""Filter & grouping engine for agenda views.

Turns a raw entity collection plus FilterCriteria into day buckets:

1. resolve the period and drop entities whose relevant day falls outside it
2. AND-combine every active facet (search, status, assignee, property, ...)
3. partition survivors by calendar day
4. order buckets by day, and items inside a bucket by a deterministic key

The generic ``group()`` knows nothing about tickets or reservations; the
maintenance and guest views plug in their own key, match and sort functions.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Iterable, Sequence
from typing import Any, Callable, Optional, TypeVar

from pydantic import ValidationError

from ..core.time_utils import TzLike, in_zone, midnight, to_day, to_wall_clock
from .models import (
    ALL,
    CheckoutItem,
    DailyStatus,
    FilterCriteria,
    GroupedEntity,
    MaintenanceTicket,
    Reservation,
    TicketCategory,
    facet_matches,
)
from .period_resolver import DEFAULT_WEEK_START, resolve

logger = logging.getLogger(__name__)

T = TypeVar("T")

KeyFn = Callable[[Any], Optional[datetime.date]]
MatchFn = Callable[[Any, str, Any], bool]
SortKeyFn = Callable[[Any], Any]

SEARCH_FACET = "search"
EXACT_FACETS = ("status", "assignee", "property_code", "category", "ticket_type")

BACKLOG_LABEL = "Awaiting scheduling"


def day_label(day: datetime.date, today: datetime.date) -> str:
    """Human label for a day bucket, e.g. ``"Today • Friday, March 15"``."""
    label = f"{day:%A}, {day:%B} {day.day}"
    if day == today:
        return f"Today • {label}"
    if day == today + datetime.timedelta(days=1):
        return f"Tomorrow • {label}"
    return label


def active_facets(criteria: FilterCriteria) -> list[tuple[str, Any]]:
    """Facets that constrain the result; wildcards and blank search are skipped."""
    facets: list[tuple[str, Any]] = []
    term = criteria.search.strip().lower()
    if term:
        facets.append((SEARCH_FACET, term))
    for name in EXACT_FACETS:
        value = getattr(criteria, name)
        if value != ALL:
            facets.append((name, value))
    return facets


def _safe_key(key_fn: KeyFn, entity: Any) -> Optional[datetime.date]:
    try:
        return key_fn(entity)
    except Exception as e:
        logger.warning("Failed to compute day key for %r: %s", entity, e)
        return None


def _safe_match(match_fn: MatchFn, entity: Any, facet: str, value: Any) -> bool:
    try:
        return bool(match_fn(entity, facet, value))
    except Exception as e:
        logger.warning("Facet %s match failed for %r: %s", facet, entity, e)
        return False


def group(
    entities: Iterable[T],
    criteria: FilterCriteria,
    key_fn: KeyFn,
    match_fn: MatchFn,
    *,
    now: datetime.datetime,
    sort_key: Optional[SortKeyFn] = None,
    week_start: int = DEFAULT_WEEK_START,
    descending: bool = False,
    include_backlog: bool = True,
    backlog_sort_key: Optional[SortKeyFn] = None,
) -> list[GroupedEntity[T]]:
    """Filter entities by criteria and bucket them by calendar day.

    Entities whose ``key_fn`` yields None (missing or unparseable date) are
    excluded whenever the period resolves to an interval; under ``all`` they
    are collected into a leading backlog bucket (``key=None``) unless
    ``include_backlog`` is False.

    Items inside a bucket are ordered by ``sort_key`` (stable, so ties keep
    input order); without a sort key the input order is preserved.

    This function is total: failures inside caller-supplied functions are
    logged and the entity is treated as excluded.

    Args:
        entities: Raw entity collection
        criteria: Active filter criteria
        key_fn: Entity -> relevant calendar day (DateKey) or None
        match_fn: (entity, facet_name, facet_value) -> bool for each active facet
        now: Current instant, used for period resolution and day labels
        sort_key: Secondary in-bucket ordering key
        week_start: Week start for the ``thisWeek`` preset
        descending: Order buckets newest day first
        include_backlog: Emit the undated backlog bucket under ``all``
        backlog_sort_key: Ordering key for the backlog bucket (defaults to sort_key)

    Returns:
        Day buckets; dated keys strictly ascending (or descending)
    """
    interval = resolve(criteria.period, now, week_start)
    facets = active_facets(criteria)

    buckets: dict[datetime.date, list[T]] = {}
    backlog: list[T] = []
    total = 0

    for entity in entities:
        total += 1
        day = _safe_key(key_fn, entity)

        if interval is not None and (day is None or not interval.contains_day(day)):
            continue

        if not all(_safe_match(match_fn, entity, name, value) for name, value in facets):
            continue

        if day is None:
            backlog.append(entity)
        else:
            buckets.setdefault(day, []).append(entity)

    today = midnight(now).date()
    groups: list[GroupedEntity[T]] = []

    if include_backlog and backlog:
        backlog_key = backlog_sort_key or sort_key
        items = sorted(backlog, key=backlog_key) if backlog_key else backlog
        groups.append(GroupedEntity(key=None, items=tuple(items), label=BACKLOG_LABEL, is_backlog=True))

    for day in sorted(buckets, reverse=descending):
        items = buckets[day]
        if sort_key is not None:
            items = sorted(items, key=sort_key)
        groups.append(GroupedEntity(key=day, items=tuple(items), label=day_label(day, today)))

    logger.debug(
        "Grouped %d/%d entities into %d buckets (period=%s, facets=%s)",
        sum(len(g) for g in groups),
        total,
        len(groups),
        interval,
        [name for name, _ in facets],
    )
    return groups


def flatten(groups: Sequence[GroupedEntity[T]]) -> list[T]:
    """All items of ``groups`` in display order."""
    return [item for g in groups for item in g.items]


# ---------------------------------------------------------------------------
# Shared helpers for entity adapters
# ---------------------------------------------------------------------------


def _instant_sort_value(value: Any, tz: TzLike = None) -> tuple[bool, datetime.datetime]:
    """Sortable form of a date field; missing values sort last."""
    dt = to_wall_clock(value, tz)
    return (dt is None, dt or datetime.datetime.min)


def _contains(term: str, *fields: Optional[str]) -> bool:
    return any(term in f.lower() for f in fields if f)


def coerce_records(raw: Iterable[Any], model: type) -> list[Any]:
    """Validate raw feed records into ``model`` instances.

    Records that are already instances pass through; records that fail
    validation are dropped with a warning rather than aborting the view.
    """
    records = []
    for item in raw:
        if isinstance(item, model):
            records.append(item)
            continue
        try:
            records.append(model.model_validate(item))
        except ValidationError as e:
            logger.warning(
                "Dropping malformed %s record %r: %d validation error(s)",
                model.__name__,
                item.get("id") if isinstance(item, dict) else item,
                e.error_count(),
            )
    return records


# ---------------------------------------------------------------------------
# Maintenance view
# ---------------------------------------------------------------------------

TICKET_TYPE_CHECKOUT = "checkout"
TICKET_TYPE_PREVENTIVE = "preventive"
TICKET_TYPE_GUEST = "guest"
TICKET_TYPE_REGULAR = "regular"

AUTOMATIC_CHECKOUT_MARKER = "checkout autom"


def is_automatic_checkout_ticket(ticket: MaintenanceTicket) -> bool:
    """Tickets generated automatically for a guest checkout.

    Matches the explicit flag or the marker text in description or service type.
    """
    if ticket.is_checkout_ticket:
        return True
    if ticket.description and AUTOMATIC_CHECKOUT_MARKER in ticket.description.lower():
        return True
    return bool(ticket.service_type and AUTOMATIC_CHECKOUT_MARKER in ticket.service_type.lower())


def ticket_type(ticket: MaintenanceTicket) -> str:
    if ticket.is_checkout_ticket:
        return TICKET_TYPE_CHECKOUT
    if ticket.is_preventive:
        return TICKET_TYPE_PREVENTIVE
    if ticket.is_guest_request:
        return TICKET_TYPE_GUEST
    return TICKET_TYPE_REGULAR


def _ticket_type_matches(ticket: MaintenanceTicket, wanted: Any) -> bool:
    flags = {
        TICKET_TYPE_CHECKOUT: ticket.is_checkout_ticket,
        TICKET_TYPE_PREVENTIVE: ticket.is_preventive,
        TICKET_TYPE_GUEST: ticket.is_guest_request,
        TICKET_TYPE_REGULAR: ticket_type(ticket) == TICKET_TYPE_REGULAR,
    }
    wanted_types = wanted if isinstance(wanted, tuple) else (wanted,)
    return any(flags.get(w, False) for w in wanted_types)


def ticket_date_value(ticket: MaintenanceTicket) -> Any:
    """Raw relevant date: scheduled, else completion (done tickets), else desired."""
    if ticket.scheduled_date:
        return ticket.scheduled_date
    if ticket.is_done and ticket.completed_date:
        return ticket.completed_date
    return ticket.desired_date


def maintenance_key_fn(tz: TzLike = None) -> KeyFn:
    def key(item: Any) -> Optional[datetime.date]:
        if isinstance(item, CheckoutItem):
            return to_day(item.reservation.check_out_date, tz)
        return to_day(ticket_date_value(item), tz)

    return key


def match_maintenance_facet(item: Any, facet: str, value: Any) -> bool:
    """Facet test for maintenance agenda items (tickets and projected checkouts).

    Projected checkouts only honor search, property, category and type; the
    ticket workflow facets (status, assignee) do not apply to them.
    """
    if isinstance(item, CheckoutItem):
        reservation = item.reservation
        if facet == SEARCH_FACET:
            return _contains(value, reservation.guest_name, reservation.property_code)
        if facet == "property_code":
            return facet_matches(value, reservation.property_code)
        if facet == "category":
            return facet_matches(value, TicketCategory.MAINTENANCE.value)
        if facet == "ticket_type":
            return facet_matches(value, TICKET_TYPE_CHECKOUT)
        return True

    ticket: MaintenanceTicket = item
    if facet == SEARCH_FACET:
        return _contains(value, ticket.description, ticket.property_code, ticket.assignee, *ticket.assignees)
    if facet == "status":
        return facet_matches(value, ticket.status)
    if facet == "assignee":
        return facet_matches(value, ticket.assignee) or any(facet_matches(value, a) for a in ticket.assignees)
    if facet == "property_code":
        return facet_matches(value, ticket.property_code)
    if facet == "category":
        return facet_matches(value, ticket.effective_category)
    if facet == "ticket_type":
        return _ticket_type_matches(ticket, value)
    return True


def maintenance_sort_key(tz: TzLike = None) -> SortKeyFn:
    """Scheduled time, then tickets before checkouts, then creation time, then id."""

    def sort_key(item: Any) -> tuple:
        if isinstance(item, CheckoutItem):
            r = item.reservation
            return (_instant_sort_value(r.check_out_date, tz), 1, _instant_sort_value(r.created_at), item.id)
        return (
            _instant_sort_value(ticket_date_value(item), tz),
            0,
            _instant_sort_value(item.created_at),
            item.id,
        )

    return sort_key


def _backlog_sort_key(item: Any) -> tuple:
    return (_instant_sort_value(getattr(item, "created_at", None)), item.id)


def _hide_stale_done(ticket: MaintenanceTicket, today: datetime.date, tz: TzLike) -> bool:
    """Done tickets whose day is before today are hidden from the agenda."""
    if not ticket.is_done:
        return False
    day = to_day(ticket.completed_date or ticket.scheduled_date or ticket.desired_date, tz)
    return day is not None and day < today


def upcoming_checkouts(
    reservations: Iterable[Reservation],
    now: datetime.datetime,
    horizon_days: int = 15,
    tz: TzLike = None,
) -> list[Reservation]:
    """Non-canceled reservations checking out within ``[today, today + horizon_days]``."""
    today = midnight(now).date()
    last_day = today + datetime.timedelta(days=horizon_days)

    selected = []
    for r in reservations:
        if r.is_canceled:
            continue
        day = to_day(r.check_out_date, tz)
        if day is not None and today <= day <= last_day:
            selected.append(r)
    return sorted(selected, key=lambda r: (to_day(r.check_out_date, tz), r.id))


def group_maintenance(
    tickets: Iterable[Any],
    criteria: FilterCriteria,
    now: datetime.datetime,
    reservations: Iterable[Any] = (),
    *,
    checkout_horizon_days: int = 15,
    week_start: int = DEFAULT_WEEK_START,
    tz: TzLike = None,
    descending: bool = False,
) -> list[GroupedEntity[Any]]:
    """Build the maintenance/concierge agenda.

    Tickets are bucketed by their relevant date; undated tickets form the
    backlog under ``all``. Upcoming reservation checkouts are merged in as
    CheckoutItem rows when the category and type facets allow them.

    Args:
        tickets: MaintenanceTicket instances or raw feed dicts
        criteria: Active filter criteria
        now: Current instant
        reservations: Reservations used for the checkout projection
        checkout_horizon_days: Checkout lookahead in days
        week_start: Week start for ``thisWeek``
        tz: Timezone for calendar days (defaults to ``now``'s tzinfo)
        descending: Order buckets newest first

    Returns:
        Day buckets of tickets and CheckoutItems
    """
    if tz is not None:
        now = in_zone(now, tz)
    zone = tz if tz is not None else now.tzinfo
    today = midnight(now).date()

    items: list[Any] = [
        t for t in coerce_records(tickets, MaintenanceTicket) if not _hide_stale_done(t, today, zone)
    ]

    if facet_matches(criteria.category, TicketCategory.MAINTENANCE.value) and (
        criteria.ticket_type == ALL or facet_matches(criteria.ticket_type, TICKET_TYPE_CHECKOUT)
    ):
        checkouts = upcoming_checkouts(
            coerce_records(reservations, Reservation), now, checkout_horizon_days, zone
        )
        items.extend(CheckoutItem(reservation=r) for r in checkouts)

    return group(
        items,
        criteria,
        maintenance_key_fn(zone),
        match_maintenance_facet,
        now=now,
        sort_key=maintenance_sort_key(zone),
        week_start=week_start,
        descending=descending,
        backlog_sort_key=_backlog_sort_key,
    )


# ---------------------------------------------------------------------------
# Guest / reservation view
# ---------------------------------------------------------------------------

_DAILY_STATUS_PRIORITY = {
    DailyStatus.CHECKOUT.value: 0,
    DailyStatus.CHECKIN.value: 1,
    DailyStatus.INHOUSE.value: 2,
}


def guest_daily_status(reservation: Reservation) -> str:
    """Agenda status of a reservation; rows keyed by checkout day default to CHECKOUT."""
    return reservation.daily_status or DailyStatus.CHECKOUT.value


def guest_key_fn(tz: TzLike = None) -> KeyFn:
    def key(reservation: Reservation) -> Optional[datetime.date]:
        return to_day(reservation.check_out_date, tz)

    return key


def match_guest_facet(reservation: Reservation, facet: str, value: Any) -> bool:
    if facet == SEARCH_FACET:
        return _contains(value, reservation.guest_name, reservation.property_code, reservation.channel)
    if facet == "status":
        wanted = value if isinstance(value, tuple) else (value,)
        return guest_daily_status(reservation) in {w.upper() for w in wanted}
    if facet == "property_code":
        return facet_matches(value, reservation.property_code)
    # assignee/category/ticket_type have no meaning for reservations
    return True


def guest_sort_key(reservation: Reservation) -> tuple:
    """CHECKOUT before CHECKIN before INHOUSE, then property code, guest name, id."""
    return (
        _DAILY_STATUS_PRIORITY.get(guest_daily_status(reservation), 3),
        reservation.property_code,
        reservation.guest_name,
        reservation.id,
    )


def group_guests(
    reservations: Iterable[Any],
    criteria: FilterCriteria,
    now: datetime.datetime,
    *,
    week_start: int = DEFAULT_WEEK_START,
    tz: TzLike = None,
    descending: bool = False,
) -> list[GroupedEntity[Reservation]]:
    """Build the guest agenda: non-canceled reservations bucketed by checkout day."""
    if tz is not None:
        now = in_zone(now, tz)
    zone = tz if tz is not None else now.tzinfo
    active = [r for r in coerce_records(reservations, Reservation) if not r.is_canceled]
    return group(
        active,
        criteria,
        guest_key_fn(zone),
        match_guest_facet,
        now=now,
        sort_key=guest_sort_key,
        week_start=week_start,
        descending=descending,
    )
