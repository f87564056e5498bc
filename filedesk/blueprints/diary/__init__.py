"""Diary blueprint package. Exposes diary_bp; routes live in routes.py."""

from .routes import diary_bp  # noqa: F401
