"""Infrastructure for opsagenda: configuration, settings, exceptions and time helpers."""
