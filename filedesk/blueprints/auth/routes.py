"""
Authentication Routes

Provides:
- /auth/login
- /auth/logout
- /auth/signup             self sign-up, always as subadmin
- /auth/forgot-password
- /auth/reset-password/<token>

Auth failures are shown as a banner on the same page; the user may retry.
"""

import logging

from flask import (
    Blueprint,
    render_template,
    redirect,
    url_for,
    flash,
    request,
)
from flask_login import login_required, current_user

from ...auth import auth_service
from ...errors import AuthError, StoreError
from ...session import SUBADMIN

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _dashboard_url() -> str:
    return url_for(auth_service.current_session().dashboard_endpoint())


def _safe_next(target: str | None) -> str | None:
    """Only same-site relative paths are followed after login."""
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return None


# ============================================================
# LOGIN / LOGOUT
# ============================================================

@auth_bp.route("/login", methods=["GET", "POST"])
def login():
    if current_user.is_authenticated:
        return redirect(_dashboard_url())

    if request.method == "POST":
        email = request.form.get("email", "").strip()
        password = request.form.get("password", "")

        try:
            session = auth_service.sign_in(email, password)
        except AuthError as exc:
            flash(f"Failed to login: {exc}", "danger")
            return render_template("auth/login.html", email=email), 401
        except StoreError:
            logger.exception("Profile lookup failed during login")
            flash("Failed to load your profile. Please try again.", "danger")
            return render_template("auth/login.html", email=email), 503

        flash(f"Welcome, {session.display_name}!", "success")
        next_url = _safe_next(request.args.get("next"))
        return redirect(next_url or url_for(session.dashboard_endpoint()))

    return render_template("auth/login.html", email="")


@auth_bp.route("/logout")
@login_required
def logout():
    auth_service.sign_out()
    flash("You have been logged out.", "info")
    return redirect(url_for("auth.login"))


# ============================================================
# SIGN UP
# ============================================================

@auth_bp.route("/signup", methods=["GET", "POST"])
def signup():
    if current_user.is_authenticated:
        return redirect(_dashboard_url())

    form = {
        "name": request.form.get("name", "").strip(),
        "email": request.form.get("email", "").strip(),
        "mobile": request.form.get("mobile", "").strip(),
    }

    if request.method == "POST":
        password = request.form.get("password", "")
        confirm = request.form.get("confirm_password", "")

        if password != confirm:
            flash("Passwords do not match!", "danger")
            return render_template("auth/signup.html", form=form), 400

        try:
            auth_service.sign_up(
                form["email"],
                password,
                name=form["name"],
                mobile=form["mobile"],
                role=SUBADMIN,
            )
            session = auth_service.sign_in(form["email"], password)
        except AuthError as exc:
            flash(str(exc), "danger")
            return render_template("auth/signup.html", form=form), 400
        except StoreError:
            logger.exception("Sign-up profile write failed for %s", form["email"])
            flash("Failed to save your profile. Please try again.", "danger")
            return render_template("auth/signup.html", form=form), 503

        flash("Account created successfully.", "success")
        return redirect(url_for(session.dashboard_endpoint()))

    return render_template("auth/signup.html", form=form)


# ============================================================
# PASSWORD RESET
# ============================================================

@auth_bp.route("/forgot-password", methods=["GET", "POST"])
def forgot_password():
    email = request.form.get("email", "").strip()

    if request.method == "POST":
        try:
            auth_service.send_password_reset(email)
        except AuthError as exc:
            flash(str(exc), "danger")
            return render_template("auth/forgot_password.html", email=email), 400

        flash("Password reset link sent. Check your email.", "success")
        return redirect(url_for("auth.login"))

    return render_template("auth/forgot_password.html", email=email)


@auth_bp.route("/reset-password/<token>", methods=["GET", "POST"])
def reset_password(token):
    if request.method == "POST":
        password = request.form.get("password", "")
        if password != request.form.get("confirm_password", ""):
            flash("Passwords do not match!", "danger")
            return render_template("auth/reset_password.html", token=token), 400
        try:
            auth_service.reset_password(token, password)
        except AuthError as exc:
            flash(str(exc), "danger")
            return render_template("auth/reset_password.html", token=token), 400

        flash("Password updated. Please sign in.", "success")
        return redirect(url_for("auth.login"))

    return render_template("auth/reset_password.html", token=token)
