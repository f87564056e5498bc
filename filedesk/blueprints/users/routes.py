"""
User Management (Admin Only).

Provides:
- /users/        all profiles (user/<uid>)
- /users/new     create an admin or subadmin account

Self sign-up only creates subadmins; this screen is the only place an
admin can create another admin.
"""

import logging

from flask import Blueprint, flash, redirect, render_template, request, url_for
from flask_login import login_required

from ...auth import auth_service
from ...errors import AuthError, StoreError
from ...security import admin_required
from ...session import ROLE_LABELS, ROLES, SUBADMIN

logger = logging.getLogger(__name__)

users_bp = Blueprint("users", __name__, url_prefix="/users")


@users_bp.route("/")
@login_required
@admin_required
def list_users():
    try:
        profiles = auth_service.list_profiles()
    except StoreError:
        flash("Failed to load users.", "danger")
        profiles = []
    return render_template("users/list.html", profiles=profiles, role_labels=ROLE_LABELS)


@users_bp.route("/new", methods=["GET", "POST"])
@login_required
@admin_required
def create_user():
    form = {
        "name": (request.form.get("name") or "").strip(),
        "email": (request.form.get("email") or "").strip(),
        "mobile": (request.form.get("mobile") or "").strip(),
        "role": request.form.get("role") or SUBADMIN,
    }

    if request.method == "POST":
        if not form["name"]:
            flash("Name is required", "danger")
            return render_template("users/new.html", form=form, roles=ROLES, role_labels=ROLE_LABELS), 400
        try:
            auth_service.sign_up(
                form["email"],
                request.form.get("password") or "",
                name=form["name"],
                mobile=form["mobile"],
                role=form["role"],
            )
        except AuthError as exc:
            flash(str(exc), "danger")
            return render_template("users/new.html", form=form, roles=ROLES, role_labels=ROLE_LABELS), 400
        except StoreError:
            logger.exception("Profile write failed for %s", form["email"])
            flash("Failed to save the profile. Please try again.", "danger")
            return render_template("users/new.html", form=form, roles=ROLES, role_labels=ROLE_LABELS), 503

        logger.info("User %s created with role %s", form["email"], form["role"])
        flash(f"{ROLE_LABELS[form['role']]} account created.", "success")
        return redirect(url_for("users.list_users"))

    return render_template("users/new.html", form=form, roles=ROLES, role_labels=ROLE_LABELS)
