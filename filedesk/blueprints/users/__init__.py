"""Users blueprint package. Exposes users_bp; routes live in routes.py."""

from .routes import users_bp  # noqa: F401
