"""
Central place for Flask extensions and the two storage services.

This avoids circular imports and keeps create_app clean.
Everything here is initialized in create_app() in __init__.py, where the app context is available.
"""

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_wtf import CSRFProtect

# Global extension instances - imported and initialized in create_app() with the app context.
db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
csrf = CSRFProtect()

# Imported after `db` exists: both services depend on it.
from .store import KeyedStore  # noqa: E402
from .storage import BlobStorage  # noqa: E402

store = KeyedStore()
blobs = BlobStorage()
