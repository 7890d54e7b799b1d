"""Agenda view pipeline for opsagenda.

Wires the components together for one dashboard view:

    raw entities + FilterCriteria
        -> grouping (period resolver + facets + day buckets)
        -> pagination (growing prefix, reset on signature change)
        -> change detection (new-since-last-check, reseeded on signature change)

Usage:
    pipeline = AgendaPipeline(view="maintenance", settings=settings)
    view = pipeline.evaluate(tickets, criteria, now, reservations=reservations)
    for bucket in view.page.visible:
        ...
    if view.page.has_more:
        view = pipeline.load_more()

The pipeline owns the two state cells (pagination state, snapshot registry)
for its view; callers keep one pipeline per view and call it from a single
thread.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from ..agenda_logging import view_context
from ..core.settings import AgendaSettings
from ..core.time_utils import in_zone
from .change_detector import ChangeDetectionResult, default_id_fn, detect_new
from .grouping import flatten, group_guests, group_maintenance, is_automatic_checkout_ticket
from .models import (
    CheckoutItem,
    FilterCriteria,
    FilterSignature,
    GroupedEntity,
    MaintenanceTicket,
    PaginationState,
    SnapshotRegistry,
    TimeInterval,
)
from .pagination import PageView, load_more, paginate, sync_state
from .period_resolver import resolve
from .signature import compute_signature

logger = logging.getLogger(__name__)

VIEW_MAINTENANCE = "maintenance"
VIEW_GUEST = "guest"
VIEWS = (VIEW_MAINTENANCE, VIEW_GUEST)


def _notifiable_maintenance_item(item: Any) -> bool:
    """Projected checkouts and automatic checkout tickets never raise notifications."""
    if isinstance(item, CheckoutItem):
        return False
    return not (isinstance(item, MaintenanceTicket) and is_automatic_checkout_ticket(item))


@dataclass
class AgendaView:
    """Everything a panel needs to render one evaluation."""

    view: str
    signature: FilterSignature
    interval: Optional[TimeInterval]
    groups: list[GroupedEntity[Any]]
    page: PageView[Any]
    new_items: tuple[Any, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def pagination_meta(self) -> dict[str, Any]:
        return {
            "has_more": self.page.has_more,
            "total_items": self.page.total_items,
            "display_count": self.page.display_count,
        }


class AgendaPipeline:
    """Evaluates one agenda view and keeps its pagination and registry state."""

    def __init__(
        self,
        view: str = VIEW_MAINTENANCE,
        settings: Optional[AgendaSettings] = None,
        on_new_items: Optional[Callable[[tuple[Any, ...]], None]] = None,
        page_size: Optional[int] = None,
        session_started_at: Optional[datetime.datetime] = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            view: ``maintenance`` or ``guest``
            settings: Agenda settings (defaults apply when None)
            on_new_items: Notification collaborator called with newly detected items
            page_size: Override for settings.default_page_size
            session_started_at: Items created before this instant never notify
        """
        if view not in VIEWS:
            raise ValueError(f"Unknown agenda view {view!r}; expected one of {VIEWS}")

        self.view = view
        self.settings = settings or AgendaSettings()
        self.page_size = page_size or self.settings.default_page_size
        self.on_new_items = on_new_items
        self.session_started_at = session_started_at

        self.pagination_state: Optional[PaginationState] = None
        self.registry = SnapshotRegistry()

        self._last: Optional[AgendaView] = None

    def _group(
        self,
        entities: Iterable[Any],
        criteria: FilterCriteria,
        now: datetime.datetime,
        reservations: Iterable[Any],
    ) -> list[GroupedEntity[Any]]:
        tz = self.settings.timezone
        if self.view == VIEW_GUEST:
            return group_guests(entities, criteria, now, week_start=self.settings.week_start, tz=tz)
        return group_maintenance(
            entities,
            criteria,
            now,
            reservations,
            checkout_horizon_days=self.settings.checkout_horizon_days,
            week_start=self.settings.week_start,
            tz=tz,
        )

    def _detect(self, items: list[Any], signature: FilterSignature) -> ChangeDetectionResult[Any]:
        include_fn = _notifiable_maintenance_item if self.view == VIEW_MAINTENANCE else None
        return detect_new(
            items,
            self.registry,
            signature,
            default_id_fn,
            include_fn=include_fn,
            created_after=self.session_started_at,
        )

    def evaluate(
        self,
        entities: Iterable[Any],
        criteria: FilterCriteria,
        now: datetime.datetime,
        reservations: Iterable[Any] = (),
    ) -> AgendaView:
        """Run grouping, pagination and change detection for the current state.

        Args:
            entities: Tickets (maintenance view) or reservations (guest view)
            criteria: Active filter criteria
            now: Current instant, converted into settings.timezone when one is set
            reservations: Reservations for the maintenance checkout projection

        Returns:
            AgendaView for rendering
        """
        now = in_zone(now, self.settings.timezone)
        with view_context(self.view):
            signature = compute_signature(criteria, scope=self.view)
            groups = self._group(entities, criteria, now, reservations)

            self.pagination_state = sync_state(self.pagination_state, signature, self.page_size)
            page = paginate(groups, self.pagination_state, self.page_size)

            detection = self._detect(flatten(groups), signature)
            self.registry = detection.registry

            if detection.new_items and self.on_new_items is not None:
                try:
                    self.on_new_items(detection.new_items)
                except Exception:
                    logger.exception("New-item notification callback failed")

            result = AgendaView(
                view=self.view,
                signature=signature,
                interval=resolve(criteria.period, now, self.settings.week_start),
                groups=groups,
                page=page,
                new_items=detection.new_items,
                metadata={"reseeded": detection.reseeded, "buckets": len(groups)},
            )
            logger.debug(
                "Evaluated %s view: %d buckets, %d/%d items visible, %d new",
                self.view,
                len(groups),
                page.visible_count,
                page.total_items,
                len(detection.new_items),
            )
            self._last = result
            return result

    def load_more(self) -> Optional[AgendaView]:
        """Reveal one more page of the last evaluation (None before the first evaluation)."""
        if self._last is None or self.pagination_state is None:
            return None

        with view_context(self.view):
            self.pagination_state = load_more(
                self.pagination_state, self._last.page.total_items, self.page_size
            )
            page = paginate(self._last.groups, self.pagination_state, self.page_size)
            self._last = AgendaView(
                view=self._last.view,
                signature=self._last.signature,
                interval=self._last.interval,
                groups=self._last.groups,
                page=page,
                metadata=dict(self._last.metadata),
            )
            return self._last
