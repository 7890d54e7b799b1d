"""Dynamic fetch-window management for the scrollable reservation calendar.

The calendar only holds data for a FetchWindow. As the viewport approaches
either edge of that window (closer than ``buffer_days``), the window grows by
``expansion_days`` in that direction. The component only *proposes* windows;
fetching is the caller's job.
"""

from __future__ import annotations

import datetime
import logging
import threading
from typing import Optional

from ..core.time_utils import days_between, first_of_month
from .models import FetchWindow, TimeInterval

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_DAYS = 30
DEFAULT_EXPANSION_DAYS = 90
DEFAULT_FULLSCREEN_WINDOW_DAYS = 180
DEFAULT_COMPACT_WINDOW_MONTHS = 3

MODE_COMPACT = "compact"
MODE_FULLSCREEN = "fullscreen"
_MODE_ALIASES = {"normal": MODE_COMPACT, MODE_COMPACT: MODE_COMPACT, MODE_FULLSCREEN: MODE_FULLSCREEN}


def normalize_mode(mode: str) -> str:
    """Map a calendar mode name onto ``compact`` or ``fullscreen`` (unknown -> compact)."""
    normalized = _MODE_ALIASES.get(str(mode).strip().lower())
    if normalized is None:
        logger.warning("Unknown calendar mode %r; using %s", mode, MODE_COMPACT)
        return MODE_COMPACT
    return normalized


def initial_window(
    mode: str,
    today: datetime.date,
    fullscreen_window_days: int = DEFAULT_FULLSCREEN_WINDOW_DAYS,
    compact_window_months: int = DEFAULT_COMPACT_WINDOW_MONTHS,
) -> FetchWindow:
    """Default window for a calendar mode.

    - compact:    [first of current month, first of the month N months later)
    - fullscreen: [today, today + fullscreen_window_days)
    """
    if normalize_mode(mode) == MODE_FULLSCREEN:
        return FetchWindow(
            from_date=today, to_date=today + datetime.timedelta(days=fullscreen_window_days)
        )
    return FetchWindow(
        from_date=first_of_month(today),
        to_date=first_of_month(today, compact_window_months),
    )


def propose_expansion(
    current: FetchWindow,
    viewport: TimeInterval,
    buffer_days: int = DEFAULT_BUFFER_DAYS,
    expansion_days: int = DEFAULT_EXPANSION_DAYS,
) -> Optional[FetchWindow]:
    """Decide whether ``current`` must grow to keep ``viewport`` buffered.

    Backward: ``0 <= days(current.from, viewport.start) < buffer_days`` moves
    ``from`` back by ``expansion_days``. Forward: ``0 <= days(viewport.end,
    current.to) < buffer_days`` moves ``to`` ahead by ``expansion_days``.
    A viewport that already lies partly outside the window (after a jump)
    widens the window to the viewport plus one expansion margin.

    The result is never smaller than ``current``.

    Returns:
        Proposed window, or None when no expansion is needed
    """
    expansion = datetime.timedelta(days=expansion_days)
    new_from = current.from_date
    new_to = current.to_date

    days_from_start = days_between(current.from_date, viewport.first_day)
    if 0 <= days_from_start < buffer_days:
        new_from = current.from_date - expansion
    elif days_from_start < 0:
        new_from = viewport.first_day - expansion

    days_to_end = days_between(viewport.end_day, current.to_date)
    if 0 <= days_to_end < buffer_days:
        new_to = current.to_date + expansion
    elif days_to_end < 0:
        new_to = viewport.end_day + expansion

    if new_from == current.from_date and new_to == current.to_date:
        return None

    return FetchWindow(from_date=new_from, to_date=new_to)


class RangeExpansionCache:
    """Tracks the fetched window of one calendar and deduplicates expansions.

    Every accepted window (initial or expanded) gets a new generation number.
    Fetch results should be applied only while ``is_current(generation)``
    holds, so a slow fetch for an older window never overwrites newer data.
    """

    def __init__(
        self,
        mode: str = MODE_COMPACT,
        today: Optional[datetime.date] = None,
        buffer_days: int = DEFAULT_BUFFER_DAYS,
        expansion_days: int = DEFAULT_EXPANSION_DAYS,
        fullscreen_window_days: int = DEFAULT_FULLSCREEN_WINDOW_DAYS,
        compact_window_months: int = DEFAULT_COMPACT_WINDOW_MONTHS,
    ) -> None:
        self.buffer_days = buffer_days
        self.expansion_days = expansion_days
        self.fullscreen_window_days = fullscreen_window_days
        self.compact_window_months = compact_window_months

        self._lock = threading.Lock()
        self._last_key = ""
        self.generation = 0
        self.mode = normalize_mode(mode)
        self.window = initial_window(
            self.mode, today or datetime.date.today(), fullscreen_window_days, compact_window_months
        )

    def maybe_expand(
        self,
        viewport: TimeInterval,
        current: Optional[FetchWindow] = None,
        buffer_days: Optional[int] = None,
        expansion_days: Optional[int] = None,
    ) -> Optional[FetchWindow]:
        """Propose a wider window for ``viewport`` unless it duplicates the last one.

        Args:
            viewport: Currently visible interval
            current: Window to expand from (defaults to the tracked window)
            buffer_days: Override for the trigger distance
            expansion_days: Override for the growth increment

        Returns:
            The newly accepted window, or None (no expansion needed, or the
            same window was already proposed)
        """
        with self._lock:
            base = current or self.window
            proposal = propose_expansion(
                base,
                viewport,
                self.buffer_days if buffer_days is None else buffer_days,
                self.expansion_days if expansion_days is None else expansion_days,
            )
            if proposal is None:
                return None

            if proposal.key == self._last_key:
                logger.debug("Suppressing duplicate expansion request %s", proposal.key)
                return None

            merged = FetchWindow(
                from_date=min(proposal.from_date, self.window.from_date),
                to_date=max(proposal.to_date, self.window.to_date),
            )
            self._last_key = proposal.key
            if merged == self.window:
                return None

            self.window = merged
            self.generation += 1
            logger.info(
                "Expanding calendar range to %s -> %s (generation %d)",
                merged.from_date,
                merged.to_date,
                self.generation,
            )
            return merged

    def reset(self, mode: Optional[str] = None, today: Optional[datetime.date] = None) -> FetchWindow:
        """Recompute the initial window from scratch (e.g. after a mode change)."""
        with self._lock:
            if mode is not None:
                self.mode = normalize_mode(mode)
            self.window = initial_window(
                self.mode,
                today or datetime.date.today(),
                self.fullscreen_window_days,
                self.compact_window_months,
            )
            self._last_key = ""
            self.generation += 1
            logger.info(
                "Calendar range reset for %s mode: %s -> %s",
                self.mode,
                self.window.from_date,
                self.window.to_date,
            )
            return self.window

    def set_mode(self, mode: str, today: Optional[datetime.date] = None) -> Optional[FetchWindow]:
        """Switch calendar mode; returns the fresh window, or None if the mode is unchanged."""
        if normalize_mode(mode) == self.mode:
            return None
        return self.reset(mode, today)

    def is_current(self, generation: int) -> bool:
        """True while ``generation`` is the latest accepted window."""
        return generation == self.generation


def maybe_expand(
    current: FetchWindow,
    viewport: TimeInterval,
    buffer_days: int = DEFAULT_BUFFER_DAYS,
    expansion_days: int = DEFAULT_EXPANSION_DAYS,
    last_key: str = "",
) -> tuple[Optional[FetchWindow], str]:
    """Stateless variant: thread the idempotency key through the caller.

    Returns:
        (proposed window or None, idempotency key to pass on the next call)
    """
    proposal = propose_expansion(current, viewport, buffer_days, expansion_days)
    if proposal is None:
        return None, last_key
    if proposal.key == last_key:
        logger.debug("Suppressing duplicate expansion request %s", proposal.key)
        return None, last_key
    return proposal, proposal.key
