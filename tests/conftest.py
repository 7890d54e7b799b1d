"""Shared fixtures for opsagenda tests."""

import datetime
import os
from collections.abc import Generator
from typing import Any, Callable

import pytest

from opsagenda.domain.models import MaintenanceTicket, Reservation


def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "smoke: Basic smoke tests")


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Remove OPSAGENDA_* variables so host configuration never leaks into tests."""
    for key in list(os.environ):
        if key.startswith("OPSAGENDA_"):
            monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture
def fixed_now() -> datetime.datetime:
    """Friday 2024-03-15 10:00, naive local wall clock."""
    return datetime.datetime(2024, 3, 15, 10, 0)


@pytest.fixture
def make_ticket() -> Callable[..., MaintenanceTicket]:
    """Factory for maintenance tickets with sensible defaults."""

    def factory(ticket_id: str, **fields: Any) -> MaintenanceTicket:
        data: dict[str, Any] = {
            "id": ticket_id,
            "property_code": "AP101",
            "description": f"Ticket {ticket_id}",
            "status": "open",
        }
        data.update(fields)
        return MaintenanceTicket(**data)

    return factory


@pytest.fixture
def make_reservation() -> Callable[..., Reservation]:
    """Factory for reservations with sensible defaults."""

    def factory(reservation_id: str, **fields: Any) -> Reservation:
        data: dict[str, Any] = {
            "id": reservation_id,
            "property_code": "AP101",
            "guest_name": f"Guest {reservation_id}",
            "check_in_date": "2024-03-10",
            "check_out_date": "2024-03-15",
        }
        data.update(fields)
        return Reservation(**data)

    return factory


@pytest.fixture
def sample_tickets(make_ticket: Callable[..., MaintenanceTicket]) -> list[MaintenanceTicket]:
    """A week of tickets around fixed_now, plus one without any date."""
    return [
        make_ticket("t1", scheduled_date="2024-03-15T14:00:00", assignee="ana"),
        make_ticket("t2", scheduled_date="2024-03-15T09:00:00", assignee="bruno"),
        make_ticket("t3", scheduled_date="2024-03-16", property_code="AP202"),
        make_ticket("t4", desired_date="2024-03-20", category="concierge", description="Airport transfer"),
        make_ticket("t5", scheduled_date="2024-04-02", status="assigned", assignee="ana"),
        make_ticket("t6", description="Broken shower, no date yet"),
    ]
