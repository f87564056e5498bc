"""
Travel Diary Routes

Provides:
- /diary/                    month selector, month entries, trip count and total distance
- /diary/new
- /diary/<key>/edit          merge update of the entry
- /diary/<key>/delete        POST
- /diary/report              print view (browser print dialog)
- /diary/report.pdf          A4 portrait download: Monthly-Travel-MM-YYYY.pdf
- /diary/report-config       report header/footer, kept in the client session cookie

Entries live at dairy/<uid>/<key>; each user only ever sees their own path.
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
    session,
    url_for,
)
from flask_login import login_required

from ...aggregation import summarize_period
from ...audit import CREATE, DELETE, UPDATE, record_mutation
from ...auth import auth_service
from ...entities import DIARY_ROOT, DiaryEntry
from ...errors import InvalidPathError, StoreError
from ...extensions import store
from ...lifecycle import DiaryView, ViewState
from ...reports import (
    ReportConfiguration,
    diary_filename,
    load_report_config,
    render_diary_pdf,
    save_report_config,
)
from ...store import join_path
from ...timeutils import HOURS_12, MINUTES, PERIODS, current_period, format_period, is_period, period_key
from ...validators import DiaryForm

logger = logging.getLogger(__name__)

diary_bp = Blueprint("diary", __name__, url_prefix="/diary")


def _month_arg() -> str:
    month = request.args.get("month")
    return month if is_period(month) else current_period()


def _load_entry_or_404(app_session, key: str) -> DiaryEntry:
    try:
        value = store.read_once(join_path(DIARY_ROOT, app_session.user_id, key))
    except InvalidPathError:
        abort(404)
    if value is None:
        abort(404)
    return DiaryEntry.from_snapshot(key, value)


def _month_summary(app_session, month: str):
    with DiaryView(store, app_session) as view:
        if view.state is ViewState.ERROR:
            flash("Failed to load diary entries.", "danger")
        return summarize_period(view.items, month)


def _form_context(form, entry=None):
    return {
        "form": form,
        "entry": entry,
        "hours": [str(h) for h in HOURS_12],
        "minutes": [str(m) for m in MINUTES],
        "periods": PERIODS,
    }


# ---------------------------------------------------------------------
# LIST
# ---------------------------------------------------------------------

@diary_bp.route("/")
@login_required
def list_entries():
    app_session = auth_service.current_session()
    month = _month_arg()
    summary = _month_summary(app_session, month)
    return render_template(
        "diary/list.html",
        month=month,
        month_label=format_period(month),
        summary=summary,
    )


# ---------------------------------------------------------------------
# CREATE / EDIT / DELETE
# ---------------------------------------------------------------------

@diary_bp.route("/new", methods=["GET", "POST"])
@login_required
def create_entry():
    app_session = auth_service.current_session()

    if request.method == "GET":
        form = DiaryForm({"date": request.args.get("date", "")})
        return render_template("diary/form.html", **_form_context(form))

    form = DiaryForm.from_form(request.form)
    if form.validate():
        flash("Please fix validation errors", "danger")
        return render_template("diary/form.html", **_form_context(form)), 400

    entry = DiaryEntry.from_form(form.values)
    try:
        entry.key = DiaryView(store, app_session).create(entry)
    except StoreError:
        flash("Failed to save the entry. Please try again.", "danger")
        return render_template("diary/form.html", **_form_context(form)), 503

    record_mutation(DiaryEntry.KIND, entry.key, CREATE, after=entry)
    flash("Entry added successfully!", "success")
    return redirect(url_for("diary.list_entries", month=period_key(entry.date)))


@diary_bp.route("/<key>/edit", methods=["GET", "POST"])
@login_required
def edit_entry(key):
    app_session = auth_service.current_session()
    entry = _load_entry_or_404(app_session, key)
    baseline = entry.form_values()

    if request.method == "GET":
        return render_template("diary/form.html", **_form_context(DiaryForm(baseline), entry))

    form = DiaryForm.from_form(request.form)
    if not form.is_dirty(baseline):
        flash("No changes detected", "info")
        return redirect(url_for("diary.list_entries", month=period_key(entry.date)))

    if form.validate():
        flash("Please fix validation errors", "danger")
        return render_template("diary/form.html", **_form_context(form, entry)), 400

    updated = DiaryEntry.from_form(form.values, key=key, created_at=entry.created_at)
    try:
        DiaryView(store, app_session).update(key, updated.to_store())
    except StoreError:
        flash("Failed to update the entry. Please try again.", "danger")
        return render_template("diary/form.html", **_form_context(form, entry)), 503

    record_mutation(DiaryEntry.KIND, key, UPDATE, before=entry, after=updated)
    flash("Entry updated successfully!", "success")
    return redirect(url_for("diary.list_entries", month=period_key(updated.date)))


@diary_bp.route("/<key>/delete", methods=["POST"])
@login_required
def delete_entry(key):
    app_session = auth_service.current_session()
    entry = _load_entry_or_404(app_session, key)
    try:
        DiaryView(store, app_session).delete(key)
    except StoreError:
        flash("Failed to delete the entry. Please try again.", "danger")
    else:
        record_mutation(DiaryEntry.KIND, key, DELETE, before=entry)
        flash("Entry deleted successfully!", "success")
    return redirect(url_for("diary.list_entries", month=period_key(entry.date)))


# ---------------------------------------------------------------------
# REPORTS
# ---------------------------------------------------------------------

@diary_bp.route("/report")
@login_required
def report():
    app_session = auth_service.current_session()
    month = _month_arg()
    return render_template(
        "diary/report.html",
        month=month,
        month_label=format_period(month),
        summary=_month_summary(app_session, month),
        report_config=load_report_config(session),
    )


@diary_bp.route("/report.pdf")
@login_required
def report_pdf():
    app_session = auth_service.current_session()
    month = _month_arg()
    summary = _month_summary(app_session, month)
    pdf = render_diary_pdf(summary, load_report_config(session), month)
    logger.info("Diary report %s generated for %s (%s entries)", month, app_session.email, summary.count)
    return send_file(
        BytesIO(pdf),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=diary_filename(month),
    )


@diary_bp.route("/report-config", methods=["GET", "POST"])
@login_required
def report_config():
    if request.method == "POST":
        config = ReportConfiguration.from_mapping(request.form.to_dict())
        save_report_config(session, config)
        flash("Report settings saved.", "success")
        return redirect(url_for("diary.report", month=_month_arg()))

    return render_template(
        "diary/report_config.html",
        report_config=load_report_config(session),
        month=_month_arg(),
    )
