"""
Records Routes (department files)

Provides:
- /dashboard                 admin dashboard: stats + file list
- /subadmin-dashboard        subadmin dashboard
- /records/                  records view (search / department / status / sort)
- /records/new               upload a file with metadata
- /records/<key>             detail
- /records/<key>/edit        full overwrite of the record; optional file replacement
- /records/<key>/delete      POST; deletes the blob, then the record
- /records/inward-check      JSON uniqueness lookup for the inward number
- /records/stream            server-sent events: the visible list after every change
- /blobs/<path>              file download (visibility checked)

Rules:
- Lists come from a RecordsView: the full records snapshot, filtered by the
  session's visibility rule. Single-record routes check the same rule
  server-side (record_access_required).
- Validation runs before any upload or store write.
- An edit with no changed field and no new file is a no-op.

Audit:
- CREATE / UPDATE / DELETE logged after the store write.
"""

import json
import logging
import os
import queue
from dataclasses import asdict

from flask import (
    Blueprint,
    Response,
    abort,
    current_app,
    flash,
    g,
    jsonify,
    redirect,
    render_template,
    request,
    send_file,
    stream_with_context,
    url_for,
)
from flask_login import login_required

from ...aggregation import record_stats, unique_values
from ...audit import CREATE, DELETE, UPDATE, record_mutation
from ...auth import auth_service
from ...entities import RECORDS_ROOT, Record, now_ms
from ...errors import InvalidPathError, StorageError, StoreError
from ...extensions import blobs, store
from ...lifecycle import RecordsView, ViewState
from ...listing import (
    ADMIN_SEARCH_FIELDS,
    RECORD_SEARCH_FIELDS,
    SORT_KEYS,
    STATUS_FILTERS,
    filter_by_status,
    normalize_sort,
    transform,
)
from ...security import _forbidden, admin_required, can_access_record, record_access_required, subadmin_required
from ...storage import PERSONAL_FILES_ROOT, RECORD_FILES_ROOT, record_file_path
from ...store import join_path
from ...utils import (
    ACCEPTED_EXTENSIONS,
    DEFAULT_STATUS,
    DEPARTMENTS,
    PUBLIC_REP_TYPES,
    PUBLIC_REPRESENTATION,
    RECORD_STATUSES,
    file_category,
)
from ...validators import RecordForm

logger = logging.getLogger(__name__)

records_bp = Blueprint("records", __name__)


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def load_record_or_404(key: str) -> Record:
    try:
        value = store.read_once(join_path(RECORDS_ROOT, key))
    except InvalidPathError:
        abort(404)
    if value is None:
        abort(404)
    return Record.from_snapshot(key, value)


def _list_params():
    args = request.args
    sort_key, sort_order = normalize_sort(args.get("sort"), args.get("order"))
    status = args.get("status") if args.get("status") in STATUS_FILTERS else "all"
    return {
        "q": (args.get("q") or "").strip(),
        "department": (args.get("department") or "").strip(),
        "status": status,
        "sort": sort_key,
        "order": sort_order,
    }


def _apply_params(items, params, search_fields):
    items = filter_by_status(items, params["status"])
    return transform(
        items,
        params["q"],
        params["department"],
        params["sort"],
        params["order"],
        search_fields=search_fields,
    )


def _upload_size(upload) -> int:
    stream = upload.stream
    position = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(position)
    return size


def _selected_file():
    """(upload, mime_type, size) for a newly chosen file, or (None, None, None)."""
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        return None, None, None
    return upload, upload.mimetype or "application/octet-stream", _upload_size(upload)


def _record_fields(values) -> dict:
    fields = {name: (values.get(name) or "").strip() for name in Record.FORM_FIELDS}
    if fields["department"] != PUBLIC_REPRESENTATION:
        fields["public_rep_type"] = ""
    fields["status"] = fields["status"] or DEFAULT_STATUS
    return fields


def _store_upload(session, upload, mime_type, size) -> dict:
    """Upload the chosen file; returns the record's file metadata."""
    ms = now_ms()
    category = file_category(mime_type)
    path = record_file_path(session.user_id, category, upload.filename, ms)
    progress = blobs.upload_all(
        path,
        upload.stream,
        {"original_name": upload.filename, "content_type": mime_type, "uploaded_by": session.user_id},
        total=size,
    )
    return {
        "file_name": upload.filename,
        "file_url": progress.url,
        "file_size": progress.size,
        "file_type": mime_type,
        "file_category": category,
        "storage_path": path,
    }


def _discard_blob(path: str) -> None:
    if not path:
        return
    try:
        blobs.delete(path)
    except StorageError:
        logger.warning("Could not remove blob %s", path)


def _form_context(form, record=None):
    return {
        "form": form,
        "record": record,
        "departments": DEPARTMENTS,
        "public_rep_types": PUBLIC_REP_TYPES,
        "public_representation": PUBLIC_REPRESENTATION,
        "statuses": RECORD_STATUSES,
        "accepted_extensions": ACCEPTED_EXTENSIONS,
        "max_upload_mb": current_app.config["MAX_UPLOAD_BYTES"] // (1024 * 1024),
    }


def _render_listing(template: str, title: str, search_fields, **extra):
    session = auth_service.current_session()
    params = _list_params()

    with RecordsView(store, session) as view:
        if view.state is ViewState.ERROR:
            flash("Failed to load records. Please try again.", "danger")
        visible = list(view.items)

    return render_template(
        template,
        title=title,
        records=_apply_params(visible, params, search_fields),
        stats=record_stats(visible),
        departments=unique_values(visible, "department") or DEPARTMENTS,
        params=params,
        sort_keys=SORT_KEYS,
        status_filters=STATUS_FILTERS,
        **extra,
    )


# ---------------------------------------------------------------------
# DASHBOARDS / LIST
# ---------------------------------------------------------------------

@records_bp.route("/dashboard")
@login_required
@admin_required
def dashboard():
    return _render_listing("records/dashboard.html", "Admin Dashboard", ADMIN_SEARCH_FIELDS, view_name="dashboard")


@records_bp.route("/subadmin-dashboard")
@login_required
@subadmin_required
def subadmin_dashboard():
    return _render_listing("records/dashboard.html", "Dashboard", ADMIN_SEARCH_FIELDS, view_name="dashboard")


@records_bp.route("/records/")
@login_required
def list_records():
    return _render_listing("records/list.html", "Records", RECORD_SEARCH_FIELDS, view_name="records")


# ---------------------------------------------------------------------
# CREATE
# ---------------------------------------------------------------------

@records_bp.route("/records/new", methods=["GET", "POST"])
@login_required
def create_record():
    session = auth_service.current_session()

    if request.method == "GET":
        return render_template("records/form.html", **_form_context(RecordForm()))

    form = RecordForm.from_form(request.form)
    upload, mime_type, size = _selected_file()

    with RecordsView(store, session) as view:
        taken = view.inward_taken(form.values["inward_number"])

    errors = form.validate(
        require_file=True,
        file_type=mime_type,
        file_size=size,
        max_bytes=current_app.config["MAX_UPLOAD_BYTES"],
        inward_taken=taken,
    )
    if errors:
        flash("Please fix validation errors", "danger")
        return render_template("records/form.html", **_form_context(form)), 400

    try:
        file_info = _store_upload(session, upload, mime_type, size)
    except StorageError as exc:
        flash(f"Upload failed: {exc}", "danger")
        return render_template("records/form.html", **_form_context(form)), 400

    created = now_ms()
    record = Record(
        **_record_fields(form.values),
        **file_info,
        uploaded_by=session.user_id,
        uploader_email=session.email,
        uploader_role=session.role,
        uploader_name=session.name,
        created_at=created,
        updated_at=created,
    )
    try:
        record.key = RecordsView(store, session).create(record)
    except StoreError:
        _discard_blob(file_info["storage_path"])
        flash("Failed to save the record. Please try again.", "danger")
        return render_template("records/form.html", **_form_context(form)), 503

    record_mutation(Record.KIND, record.key, CREATE, after=record)
    logger.info("Record %s created by %s", record.key, session.email)
    flash("File uploaded successfully!", "success")
    return redirect(url_for("records.list_records"))


# ---------------------------------------------------------------------
# DETAIL / EDIT / DELETE
# ---------------------------------------------------------------------

@records_bp.route("/records/<key>")
@login_required
@record_access_required(lambda key: load_record_or_404(key))
def record_detail(key):
    return render_template("records/detail.html", record=g.record)


@records_bp.route("/records/<key>/edit", methods=["GET", "POST"])
@login_required
@record_access_required(lambda key: load_record_or_404(key))
def edit_record(key):
    session = auth_service.current_session()
    record = g.record
    baseline = record.form_values()

    if request.method == "GET":
        return render_template("records/form.html", **_form_context(RecordForm(baseline), record))

    form = RecordForm.from_form(request.form)
    upload, mime_type, size = _selected_file()

    if upload is None and not form.is_dirty(baseline):
        flash("No changes detected", "info")
        return redirect(url_for("records.record_detail", key=key))

    with RecordsView(store, session) as view:
        taken = view.inward_taken(form.values["inward_number"], exclude_key=key)

    errors = form.validate(
        require_file=False,
        file_type=mime_type,
        file_size=size,
        max_bytes=current_app.config["MAX_UPLOAD_BYTES"],
        inward_taken=taken,
    )
    if errors:
        flash("Please fix validation errors", "danger")
        return render_template("records/form.html", **_form_context(form, record)), 400

    file_info = record.file_info()
    if upload is not None:
        try:
            file_info = _store_upload(session, upload, mime_type, size)
        except StorageError as exc:
            flash(f"Upload failed: {exc}", "danger")
            return render_template("records/form.html", **_form_context(form, record)), 400

    data = asdict(record)
    data.update(_record_fields(form.values))
    data.update(file_info)
    data["updated_at"] = now_ms()
    updated = Record(**data)

    try:
        RecordsView(store, session).replace(key, updated)
    except StoreError:
        if upload is not None:
            _discard_blob(file_info["storage_path"])
        flash("Failed to update the record. Please try again.", "danger")
        return render_template("records/form.html", **_form_context(form, record)), 503

    if upload is not None and record.storage_path != file_info["storage_path"]:
        _discard_blob(record.storage_path)

    record_mutation(Record.KIND, key, UPDATE, before=record, after=updated)
    flash("Record updated successfully!", "success")
    return redirect(url_for("records.record_detail", key=key))


@records_bp.route("/records/<key>/delete", methods=["POST"])
@login_required
@record_access_required(lambda key: load_record_or_404(key))
def delete_record(key):
    session = auth_service.current_session()
    record = g.record

    try:
        if record.storage_path:
            blobs.delete(record.storage_path)
        RecordsView(store, session).delete(key)
    except (StorageError, StoreError) as exc:
        logger.warning("Delete of record %s failed: %s", key, exc)
        flash("Failed to delete the record. Please try again.", "danger")
        return redirect(url_for("records.record_detail", key=key))

    record_mutation(Record.KIND, key, DELETE, before=record)
    flash("Record deleted successfully!", "success")
    return redirect(url_for(session.dashboard_endpoint()))


# ---------------------------------------------------------------------
# INWARD NUMBER CHECK (JSON)
# ---------------------------------------------------------------------

@records_bp.route("/records/inward-check")
@login_required
def inward_check():
    number = (request.args.get("number") or "").strip()
    exclude = request.args.get("exclude") or None
    with RecordsView(store, auth_service.current_session()) as view:
        taken = view.inward_taken(number, exclude_key=exclude)
    return jsonify({"number": number, "taken": taken})


# ---------------------------------------------------------------------
# LIVE STREAM (server-sent events)
# ---------------------------------------------------------------------

def _record_json(record: Record) -> dict:
    data = record.to_store()
    data.pop("storage_path", None)
    data["key"] = record.key
    return data


@records_bp.route("/records/stream")
@login_required
def stream():
    session = auth_service.current_session()
    params = _list_params()
    search_fields = ADMIN_SEARCH_FIELDS if request.args.get("view") == "dashboard" else RECORD_SEARCH_FIELDS
    heartbeat = current_app.config["STREAM_HEARTBEAT_SECONDS"]

    updates: queue.Queue = queue.Queue()
    view = RecordsView(store, session)
    view.on_change(updates.put)
    view.open()

    def _payload(items) -> str:
        return json.dumps({
            "stats": record_stats(items),
            "records": [_record_json(r) for r in _apply_params(items, params, search_fields)],
        })

    @stream_with_context
    def gen():
        try:
            while True:
                try:
                    items = updates.get(timeout=heartbeat)
                except queue.Empty:
                    yield ": keep-alive\n\n"
                    continue
                # Only the latest snapshot matters.
                while not updates.empty():
                    items = updates.get_nowait()
                yield f"data: {_payload(items)}\n\n"
        finally:
            view.close()

    headers = {
        "Content-Type": "text/event-stream",
        "Cache-Control": "no-cache",
        "X-Accel-Buffering": "no",
    }
    return Response(gen(), headers=headers)


# ---------------------------------------------------------------------
# BLOB DOWNLOAD
# ---------------------------------------------------------------------

def _record_for_blob(path: str):
    tree = store.read_once(RECORDS_ROOT) or {}
    for key, value in tree.items():
        if isinstance(value, dict) and value.get("storage_path") == path:
            return Record.from_snapshot(key, value)
    return None


@records_bp.route("/blobs/<path:path>")
@login_required
def blob(path):
    session = auth_service.current_session()
    parts = path.split("/")

    if parts[0] == PERSONAL_FILES_ROOT:
        allowed = len(parts) > 2 and parts[1] == session.user_id
    elif parts[0] == RECORD_FILES_ROOT:
        record = _record_for_blob(path)
        if record is None:
            abort(404)
        allowed = can_access_record(record)
    else:
        abort(404)

    if not allowed:
        return _forbidden()

    try:
        item = blobs.stat(path)
        handle = blobs.open(path)
    except StorageError:
        abort(404)

    return send_file(
        handle,
        mimetype=item.content_type,
        download_name=item.name,
        as_attachment=request.args.get("download") == "1",
    )
