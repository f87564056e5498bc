"""Logbook blueprint package. Exposes logbook_bp; routes live in routes.py."""

from .routes import logbook_bp  # noqa: F401
