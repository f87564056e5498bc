"""Records blueprint package. Exposes records_bp; routes live in routes.py."""

from .routes import records_bp  # noqa: F401
