"""Detect entities that appeared since the previous evaluation.

The registry of seen ids is an immutable value scoped to one filter
signature. The first evaluation under a signature only seeds the registry;
later evaluations under the same signature report ids not seen before, each
exactly once. Changing filters therefore never produces a burst of "new"
notifications for items that were merely filtered in.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar, Union

from ..core.time_utils import to_wall_clock
from .models import FilterSignature, SnapshotRegistry, signature_text

logger = logging.getLogger(__name__)

T = TypeVar("T")

IdFn = Callable[[Any], Any]


def default_id_fn(entity: Any) -> Any:
    """``entity.id`` for records, ``entity["id"]`` for raw dicts."""
    if isinstance(entity, dict):
        return entity["id"]
    return entity.id


@dataclass(frozen=True)
class ChangeDetectionResult(Generic[T]):
    """Newly discovered entities plus the registry to store for the next call."""

    new_items: tuple[T, ...]
    registry: SnapshotRegistry
    reseeded: bool = False

    @property
    def has_new(self) -> bool:
        return bool(self.new_items)


def _created_before(
    entity: Any, created_at_fn: Callable[[Any], Any], cutoff: datetime.datetime
) -> bool:
    """True when the entity was created before ``cutoff`` or has no usable timestamp."""
    zone = cutoff.tzinfo
    created = to_wall_clock(created_at_fn(entity), zone)
    if created is None:
        logger.debug("Entity %r has no usable creation time; not reporting it", entity)
        return True
    return created < to_wall_clock(cutoff, zone)


def detect_new(
    current: Iterable[T],
    registry: Optional[SnapshotRegistry],
    signature: Union[FilterSignature, str, None],
    id_fn: IdFn = default_id_fn,
    *,
    include_fn: Optional[Callable[[T], bool]] = None,
    created_after: Optional[datetime.datetime] = None,
    created_at_fn: Callable[[Any], Any] = lambda e: getattr(e, "created_at", None),
) -> ChangeDetectionResult[T]:
    """Diff ``current`` against the registry for ``signature``.

    Args:
        current: Entities currently visible under the signature
        registry: Registry returned by the previous call (None on first use)
        signature: Active filter signature
        id_fn: Entity -> stable id
        include_fn: Entities failing this predicate are recorded as seen but
            never reported (e.g. automatically generated tickets)
        created_after: Entities created before this instant are recorded as
            seen but not reported
        created_at_fn: Entity -> creation timestamp, used with created_after

    Returns:
        ChangeDetectionResult; ``new_items`` keeps the input order
    """
    # "" keeps an explicit None signature distinct from an unseeded registry
    key = signature_text(signature) or ""
    previous = registry if registry is not None else SnapshotRegistry()

    entities: list[tuple[Any, T]] = []
    for entity in current:
        try:
            entities.append((id_fn(entity), entity))
        except (KeyError, AttributeError, TypeError) as e:
            logger.warning("Skipping entity without id %r: %s", entity, e)

    current_ids = frozenset(entity_id for entity_id, _ in entities)

    if previous.signature != key:
        logger.info(
            "Seeding change registry with %d ids for new filter signature", len(current_ids)
        )
        return ChangeDetectionResult(
            new_items=(),
            registry=SnapshotRegistry(signature=key, seen_ids=current_ids),
            reseeded=True,
        )

    new_items: list[T] = []
    reported: set[Any] = set()
    for entity_id, entity in entities:
        if entity_id in previous.seen_ids or entity_id in reported:
            continue
        reported.add(entity_id)
        if include_fn is not None and not include_fn(entity):
            continue
        if created_after is not None and _created_before(entity, created_at_fn, created_after):
            continue
        new_items.append(entity)

    if current_ids <= previous.seen_ids:
        updated = previous
    else:
        updated = SnapshotRegistry(signature=key, seen_ids=previous.seen_ids | current_ids)

    if new_items:
        logger.info("%d new item(s) detected", len(new_items))

    return ChangeDetectionResult(new_items=tuple(new_items), registry=updated)


class ChangeDetector(Generic[T]):
    """Holds the registry cell for one notification feed.

    Example:
        detector = ChangeDetector(include_fn=lambda t: not is_automatic_checkout_ticket(t))
        new_tickets = detector.observe(tickets, signature)
    """

    def __init__(
        self,
        id_fn: IdFn = default_id_fn,
        include_fn: Optional[Callable[[T], bool]] = None,
        created_after: Optional[datetime.datetime] = None,
    ) -> None:
        self.id_fn = id_fn
        self.include_fn = include_fn
        self.created_after = created_after
        self.registry = SnapshotRegistry()

    def observe(
        self, current: Iterable[T], signature: Union[FilterSignature, str, None]
    ) -> tuple[T, ...]:
        result = detect_new(
            current,
            self.registry,
            signature,
            self.id_fn,
            include_fn=self.include_fn,
            created_after=self.created_after,
        )
        self.registry = result.registry
        return result.new_items

    def reset(self) -> None:
        self.registry = SnapshotRegistry()
