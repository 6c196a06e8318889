"""
API Blueprint - summarize uploads, list and delete the caller's summaries
"""
from typing import List, Optional, Tuple

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required
from werkzeug.exceptions import HTTPException

from paperbrief import db
from paperbrief.errors import NotFound, SummarizerError
from paperbrief.models import Summary
from paperbrief.services.openai_service import get_ai_client
from paperbrief.services.summarizer import SummarizerSettings, summarize_upload

api_bp = Blueprint('api', __name__)


# ============ Helper Functions ============

def _read_upload(file_storage) -> Optional[bytes]:
    """File field contents, or None for a blank field the browser sent anyway"""
    if file_storage is None or not (file_storage.filename or "").strip():
        return None
    data = file_storage.read()
    return data or None


def _read_form_files() -> Tuple[Optional[bytes], Optional[str], List[bytes]]:
    pdf_file = request.files.get("pdf")
    pdf_bytes = _read_upload(pdf_file)
    pdf_name = pdf_file.filename if pdf_bytes is not None else None

    images: List[bytes] = []
    for f in request.files.getlist("images"):
        data = _read_upload(f)
        if data is not None:
            images.append(data)
    return pdf_bytes, pdf_name, images


def _owned_summary(summary_id: str) -> Summary:
    row = Summary.query.filter_by(id=summary_id, user_id=current_user.id).first()
    if row is None:
        raise NotFound()
    return row


# ============ Error Handlers ============

@api_bp.errorhandler(SummarizerError)
def handle_summarizer_error(e):
    db.session.rollback()
    current_app.logger.warning("%s: %s", type(e).__name__, e.message)
    return jsonify(e.to_dict()), e.status_code


@api_bp.errorhandler(Exception)
def handle_unexpected_error(e):
    if isinstance(e, HTTPException):
        return jsonify({"ok": False, "error": e.description or e.name}), e.code
    db.session.rollback()
    current_app.logger.exception("Unhandled error in %s", request.path)
    return jsonify({"ok": False, "error": str(e) or "Server error"}), 500


# ============ API Routes ============

@api_bp.route("/summarize", methods=["POST"])
@login_required
def summarize():
    client = get_ai_client()
    pdf_bytes, pdf_name, images = _read_form_files()

    outcome = summarize_upload(
        client,
        SummarizerSettings.from_config(current_app.config),
        pdf_bytes=pdf_bytes,
        pdf_name=pdf_name,
        images=images,
    )

    row = Summary.from_outcome(current_user.id, outcome, current_app.config["DEFAULT_SUMMARY_TITLE"])
    db.session.add(row)
    db.session.commit()
    current_app.logger.info("Saved summary %s (%s) for user %s", row.id, outcome.source, current_user.id)

    return jsonify({"ok": True, "data": row.to_dict()}), 200


@api_bp.route("/history", methods=["GET"])
@login_required
def history():
    rows = (
        Summary.query.filter_by(user_id=current_user.id)
        .order_by(Summary.created_at.desc(), Summary.id.desc())
        .limit(current_app.config["HISTORY_LIMIT"])
        .all()
    )
    return jsonify({"ok": True, "data": [r.to_dict() for r in rows]}), 200


@api_bp.route("/summaries", methods=["GET"])
@login_required
def summaries():
    rows = (
        Summary.query.filter_by(user_id=current_user.id)
        .order_by(Summary.created_at.desc(), Summary.id.desc())
        .limit(current_app.config["SUMMARIES_LIMIT"])
        .all()
    )
    return jsonify({"ok": True, "data": [r.to_dict(include_input=True) for r in rows]}), 200


@api_bp.route("/summary/<summary_id>", methods=["GET"])
@login_required
def get_summary(summary_id):
    row = _owned_summary(summary_id)
    return jsonify({"ok": True, "data": row.to_dict(include_input=True)}), 200


@api_bp.route("/summary/<summary_id>", methods=["DELETE"])
@login_required
def delete_summary(summary_id):
    deleted = Summary.query.filter_by(id=summary_id, user_id=current_user.id).delete()
    if not deleted:
        return jsonify({"error": "Not found"}), 404
    db.session.commit()
    current_app.logger.info("Deleted summary %s for user %s", summary_id, current_user.id)
    return jsonify({"success": True}), 200
