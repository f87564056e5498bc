"""
filedesk/__init__.py

Flask application factory for File Desk.

File Desk is a role-based records desk: staff upload files with metadata,
browse/search/filter/sort them, and keep a personal travel diary and vehicle
log-book with monthly PDF reports.

Roles:
- admin     admin dashboard, user management, own + all subadmin records
- subadmin  subadmin dashboard, own records only

Navigation:
- Sidebar sections are filtered by role for visibility only; every route
  enforces its own permissions.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler

import click
from flask import Flask, flash, redirect, render_template, request, url_for
from flask_login import current_user

from .extensions import blobs, csrf, db, login_manager, migrate, store
from .models import User
from .utils import format_file_size, status_class, file_icon, file_label
from .timeutils import format_long_date


# -------------------------------------------------------------------
# NAVIGATION STRUCTURE (UI visibility only; security enforced in routes)
# -------------------------------------------------------------------

NAV_SECTIONS = [
    {
        "key": "records",
        "label": "Records",
        "items": [
            {"label": "Dashboard", "endpoint": "records.dashboard", "roles": ("admin",)},
            {"label": "Dashboard", "endpoint": "records.subadmin_dashboard", "roles": ("subadmin",)},
            {"label": "Upload File", "endpoint": "records.create_record"},
            {"label": "All Records", "endpoint": "records.list_records"},
        ],
    },
    {
        "key": "personal",
        "label": "Personal",
        "items": [
            {"label": "Travel Diary", "endpoint": "diary.list_entries"},
            {"label": "Vehicle Log Book", "endpoint": "logbook.list_entries"},
            {"label": "My Documents", "endpoint": "documents.list_documents"},
        ],
    },
    {
        "key": "management",
        "label": "Management",
        "items": [
            {"label": "Users", "endpoint": "users.list_users", "roles": ("admin",)},
            {"label": "Add User", "endpoint": "users.create_user", "roles": ("admin",)},
        ],
    },
]


def _configure_logging(app: Flask) -> None:
    """Package logger level from LOG_LEVEL; optional rotating file from LOG_FILE."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    package_logger = logging.getLogger(__name__)
    package_logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    log_file = app.config.get("LOG_FILE")
    if log_file and not any(isinstance(h, RotatingFileHandler) for h in package_logger.handlers):
        file_handler = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=5)
        file_handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s"))
        package_logger.addHandler(file_handler)


def create_app(config_object: str | object = "config.Config") -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)
    _configure_logging(app)

    # Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)
    store.init_app(app)
    blobs.init_app(app)

    login_manager.init_app(app)
    login_manager.login_view = "auth.login"
    login_manager.login_message_category = "info"

    @login_manager.user_loader
    def load_user(user_id: str) -> User | None:
        """Load user for Flask-Login."""
        try:
            return db.session.get(User, int(user_id))
        except (TypeError, ValueError):
            return None

    # ----------------------------------------------------------------------
    # Blueprints
    # ----------------------------------------------------------------------
    from .blueprints.auth import auth_bp
    from .blueprints.records import records_bp
    from .blueprints.diary import diary_bp
    from .blueprints.logbook import logbook_bp
    from .blueprints.documents import documents_bp
    from .blueprints.users import users_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(records_bp)
    app.register_blueprint(diary_bp)
    app.register_blueprint(logbook_bp)
    app.register_blueprint(documents_bp)
    app.register_blueprint(users_bp)

    # ----------------------------------------------------------------------
    # Template helpers
    # ----------------------------------------------------------------------
    app.jinja_env.filters["file_size"] = format_file_size
    app.jinja_env.filters["status_class"] = status_class
    app.jinja_env.filters["file_icon"] = file_icon
    app.jinja_env.filters["file_label"] = file_label
    app.jinja_env.filters["long_date"] = format_long_date

    @app.context_processor
    def inject_globals():
        """
        Inject navigation filtered by role, and the current AppSession.

        SECURITY NOTE:
        - This only filters visibility. Routes enforce permissions.
        """
        from .auth import auth_service

        app_session = auth_service.current_session() if current_user.is_authenticated else None
        visible_sections = []
        if app_session is not None:
            for section in NAV_SECTIONS:
                items = [
                    item for item in section["items"]
                    if app_session.role in item.get("roles", (app_session.role,))
                ]
                if items:
                    visible_sections.append({"key": section["key"], "label": section["label"], "items": items})

        return {"config": app.config, "nav_sections": visible_sections, "app_session": app_session}

    # ----------------------------------------------------------------------
    # Errors
    # ----------------------------------------------------------------------
    @app.errorhandler(403)
    def forbidden(_error):
        return render_template("errors/403.html"), 403

    @app.errorhandler(404)
    def not_found(_error):
        return render_template("errors/404.html"), 404

    @app.errorhandler(413)
    def too_large(_error):
        limit_mb = app.config["MAX_UPLOAD_BYTES"] // (1024 * 1024)
        flash(f"File size must be less than {limit_mb}MB", "danger")
        return redirect(request.referrer or url_for("index"))

    # ----------------------------------------------------------------------
    # CLI
    # ----------------------------------------------------------------------
    @app.cli.command("init-db")
    def init_db_command():
        """Create all tables."""
        db.create_all()
        click.echo("Database tables created.")

    @app.cli.command("create-admin")
    @click.argument("email")
    @click.argument("password")
    @click.option("--name", default="", help="Display name for the admin profile.")
    def create_admin_command(email, password, name):
        """Create an admin account (or promote an existing one)."""
        from .errors import AuthError
        from .seed import create_admin

        try:
            uid = create_admin(email, password, name)
        except AuthError as exc:
            raise click.ClickException(str(exc))
        click.echo(f"Admin ready: {email} ({uid})")

    # ----------------------------------------------------------------------
    # Home
    # ----------------------------------------------------------------------
    @app.route("/")
    def index():
        """Home: redirect to the role dashboard or login."""
        if current_user.is_authenticated:
            from .auth import auth_service

            return redirect(url_for(auth_service.current_session().dashboard_endpoint()))
        return redirect(url_for("auth.login"))

    return app
