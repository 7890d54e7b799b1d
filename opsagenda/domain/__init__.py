"""Agenda domain logic: period resolution, grouping, pagination, range expansion, change detection."""
