"""
Vehicle Log Book Routes

Provides:
- /logbook/                  month entries, trip count, total kilometers
- /logbook/new
- /logbook/<key>/edit        merge update of the entry
- /logbook/<key>/delete      POST
- /logbook/report            print view
- /logbook/report.pdf        A4 landscape download: LogBook-M-YYYY.pdf

Kilometers are derived from the odometer readings (after - before) and are
never taken from the submitted form.
"""

import logging
from io import BytesIO

from flask import (
    Blueprint,
    abort,
    flash,
    redirect,
    render_template,
    request,
    send_file,
    url_for,
)
from flask_login import login_required

from ...aggregation import summarize_period
from ...audit import CREATE, DELETE, UPDATE, record_mutation
from ...auth import auth_service
from ...entities import LOGBOOK_ROOT, LogBookEntry
from ...errors import InvalidPathError, StoreError
from ...extensions import store
from ...lifecycle import LogBookView, ViewState
from ...reports import logbook_filename, render_logbook_pdf
from ...store import join_path
from ...timeutils import HOURS_12, MINUTES, PERIODS, current_period, format_period, is_period, period_key
from ...validators import LogBookForm

logger = logging.getLogger(__name__)

logbook_bp = Blueprint("logbook", __name__, url_prefix="/logbook")


def _month_arg() -> str:
    month = request.args.get("month")
    return month if is_period(month) else current_period()


def _load_entry_or_404(app_session, key: str) -> LogBookEntry:
    try:
        value = store.read_once(join_path(LOGBOOK_ROOT, app_session.user_id, key))
    except InvalidPathError:
        abort(404)
    if value is None:
        abort(404)
    return LogBookEntry.from_snapshot(key, value)


def _month_summary(app_session, month: str):
    with LogBookView(store, app_session) as view:
        if view.state is ViewState.ERROR:
            flash("Failed to load log book entries.", "danger")
        return summarize_period(view.items, month, amount_field="kilometers")


def _form_context(form, entry=None):
    return {
        "form": form,
        "entry": entry,
        "hours": [f"{h:02d}" for h in HOURS_12],
        "minutes": [f"{m:02d}" for m in MINUTES],
        "periods": PERIODS,
    }


@logbook_bp.route("/")
@login_required
def list_entries():
    app_session = auth_service.current_session()
    month = _month_arg()
    return render_template(
        "logbook/list.html",
        month=month,
        month_label=format_period(month),
        summary=_month_summary(app_session, month),
    )


@logbook_bp.route("/new", methods=["GET", "POST"])
@login_required
def create_entry():
    app_session = auth_service.current_session()

    if request.method == "GET":
        form = LogBookForm({"date": request.args.get("date", "")})
        return render_template("logbook/form.html", **_form_context(form))

    form = LogBookForm.from_form(request.form)
    if form.validate():
        flash("Please fix validation errors", "danger")
        return render_template("logbook/form.html", **_form_context(form)), 400

    entry = LogBookEntry.from_form(form.values)
    try:
        entry.key = LogBookView(store, app_session).create(entry)
    except StoreError:
        flash("Failed to save the entry. Please try again.", "danger")
        return render_template("logbook/form.html", **_form_context(form)), 503

    record_mutation(LogBookEntry.KIND, entry.key, CREATE, after=entry)
    flash("Log entry added successfully!", "success")
    return redirect(url_for("logbook.list_entries", month=period_key(entry.date)))


@logbook_bp.route("/<key>/edit", methods=["GET", "POST"])
@login_required
def edit_entry(key):
    app_session = auth_service.current_session()
    entry = _load_entry_or_404(app_session, key)
    baseline = entry.form_values()

    if request.method == "GET":
        return render_template("logbook/form.html", **_form_context(LogBookForm(baseline), entry))

    form = LogBookForm.from_form(request.form)
    if not form.is_dirty(baseline):
        flash("No changes detected", "info")
        return redirect(url_for("logbook.list_entries", month=period_key(entry.date)))

    if form.validate():
        flash("Please fix validation errors", "danger")
        return render_template("logbook/form.html", **_form_context(form, entry)), 400

    updated = LogBookEntry.from_form(form.values, key=key, created_at=entry.created_at)
    updated.remarks = entry.remarks
    try:
        LogBookView(store, app_session).update(key, updated.to_store())
    except StoreError:
        flash("Failed to update the entry. Please try again.", "danger")
        return render_template("logbook/form.html", **_form_context(form, entry)), 503

    record_mutation(LogBookEntry.KIND, key, UPDATE, before=entry, after=updated)
    flash("Log entry updated successfully!", "success")
    return redirect(url_for("logbook.list_entries", month=period_key(updated.date)))


@logbook_bp.route("/<key>/delete", methods=["POST"])
@login_required
def delete_entry(key):
    app_session = auth_service.current_session()
    entry = _load_entry_or_404(app_session, key)
    try:
        LogBookView(store, app_session).delete(key)
    except StoreError:
        flash("Failed to delete the entry. Please try again.", "danger")
    else:
        record_mutation(LogBookEntry.KIND, key, DELETE, before=entry)
        flash("Log entry deleted successfully!", "success")
    return redirect(url_for("logbook.list_entries", month=period_key(entry.date)))


@logbook_bp.route("/report")
@login_required
def report():
    app_session = auth_service.current_session()
    month = _month_arg()
    return render_template(
        "logbook/report.html",
        month=month,
        month_label=format_period(month),
        summary=_month_summary(app_session, month),
    )


@logbook_bp.route("/report.pdf")
@login_required
def report_pdf():
    app_session = auth_service.current_session()
    month = _month_arg()
    summary = _month_summary(app_session, month)
    pdf = render_logbook_pdf(summary, month)
    logger.info("Log book report %s generated for %s (%s entries)", month, app_session.email, summary.count)
    return send_file(
        BytesIO(pdf),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=logbook_filename(month),
    )
