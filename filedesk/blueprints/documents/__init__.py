"""Documents blueprint package. Exposes documents_bp; routes live in routes.py."""

from .routes import documents_bp  # noqa: F401
