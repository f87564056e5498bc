"""
Personal Documents Routes

Provides:
- /documents/                    list + upload form
- /documents/upload              POST
- /documents/<key>/rename        POST; merge update of the title
- /documents/<key>/delete        POST; blob first, then the entry

Entries live at portfolioDocuments/<uid>/<key>, blobs under personalFiles/<uid>/.
"""

import logging
import os

from flask import Blueprint, abort, current_app, flash, redirect, render_template, request, url_for
from flask_login import login_required

from ...audit import CREATE, DELETE, UPDATE, record_mutation
from ...auth import auth_service
from ...entities import DOCUMENTS_ROOT, PersonalDocument, now_iso, now_ms
from ...errors import InvalidPathError, StorageError, StoreError
from ...extensions import blobs, store
from ...lifecycle import DocumentsView, ViewState
from ...storage import personal_file_path
from ...store import join_path

logger = logging.getLogger(__name__)

documents_bp = Blueprint("documents", __name__, url_prefix="/documents")


def _load_document_or_404(app_session, key: str) -> PersonalDocument:
    try:
        value = store.read_once(join_path(DOCUMENTS_ROOT, app_session.user_id, key))
    except InvalidPathError:
        abort(404)
    if value is None:
        abort(404)
    return PersonalDocument.from_snapshot(key, value)


@documents_bp.route("/")
@login_required
def list_documents():
    app_session = auth_service.current_session()
    with DocumentsView(store, app_session) as view:
        if view.state is ViewState.ERROR:
            flash("Failed to load documents.", "danger")
        documents = list(view.items)
    return render_template(
        "documents/list.html",
        documents=documents,
        max_upload_mb=current_app.config["MAX_UPLOAD_BYTES"] // (1024 * 1024),
    )


@documents_bp.route("/upload", methods=["POST"])
@login_required
def upload_document():
    app_session = auth_service.current_session()
    upload = request.files.get("file")
    title = (request.form.get("title") or "").strip()

    if upload is None or not upload.filename:
        flash("Please select a file", "danger")
        return redirect(url_for("documents.list_documents"))

    stream = upload.stream
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    max_bytes = current_app.config["MAX_UPLOAD_BYTES"]
    if size > max_bytes:
        flash(f"File size must be less than {max_bytes // (1024 * 1024)}MB", "danger")
        return redirect(url_for("documents.list_documents"))

    path = personal_file_path(app_session.user_id, upload.filename, now_ms())
    try:
        progress = blobs.upload_all(
            path,
            stream,
            {"original_name": upload.filename, "content_type": upload.mimetype, "uploaded_by": app_session.user_id},
            total=size,
        )
    except StorageError as exc:
        flash(f"Upload failed: {exc}", "danger")
        return redirect(url_for("documents.list_documents"))

    document = PersonalDocument(
        title=title or upload.filename,
        file_name=upload.filename,
        file_url=progress.url,
        storage_path=path,
        size=progress.size,
        uploaded_at=now_iso(),
    )
    try:
        document.key = DocumentsView(store, app_session).create(document)
    except StoreError:
        blobs.delete(path)
        flash("Failed to save the document. Please try again.", "danger")
        return redirect(url_for("documents.list_documents"))

    record_mutation(PersonalDocument.KIND, document.key, CREATE, after=document)
    flash("Document uploaded successfully!", "success")
    return redirect(url_for("documents.list_documents"))


@documents_bp.route("/<key>/rename", methods=["POST"])
@login_required
def rename_document(key):
    app_session = auth_service.current_session()
    document = _load_document_or_404(app_session, key)
    title = (request.form.get("title") or "").strip()

    if not title:
        flash("Title is required", "danger")
        return redirect(url_for("documents.list_documents"))
    if title == document.title:
        flash("No changes detected", "info")
        return redirect(url_for("documents.list_documents"))

    updates = {"title": title, "updated_at": now_iso()}
    try:
        DocumentsView(store, app_session).update(key, updates)
    except StoreError:
        flash("Failed to rename the document. Please try again.", "danger")
        return redirect(url_for("documents.list_documents"))

    renamed = PersonalDocument.from_snapshot(key, {**document.to_store(), **updates})
    record_mutation(PersonalDocument.KIND, key, UPDATE, before=document, after=renamed)
    flash("Document renamed.", "success")
    return redirect(url_for("documents.list_documents"))


@documents_bp.route("/<key>/delete", methods=["POST"])
@login_required
def delete_document(key):
    app_session = auth_service.current_session()
    document = _load_document_or_404(app_session, key)
    try:
        if document.storage_path:
            blobs.delete(document.storage_path)
        DocumentsView(store, app_session).delete(key)
    except (StorageError, StoreError) as exc:
        logger.warning("Delete of document %s failed: %s", key, exc)
        flash("Failed to delete the document. Please try again.", "danger")
        return redirect(url_for("documents.list_documents"))

    record_mutation(PersonalDocument.KIND, key, DELETE, before=document)
    flash("Document deleted.", "success")
    return redirect(url_for("documents.list_documents"))
