"""
api.routes_import - /api/v1/import endpoints.

Accepts an .xlsx workbook via multipart upload (field name 'file').
The upload is written to config.UPLOAD_DIR for the duration of the
request and removed afterwards.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from pathlib import Path

from flask import request, jsonify
from werkzeug.utils import secure_filename

from api import api_bp
from db import get_session
from import_engine import (
    DeleteCountMismatchError, ReplaceError, SpreadsheetError,
    preview, replace_imported_data, run_import,
)
from services.coerce import to_int
from services.loads_service import LoadsService
import config

logger = logging.getLogger(__name__)


class UploadError(ValueError):
    pass


@contextmanager
def _uploaded_workbook():
    """Save the uploaded workbook to a temp path; always removed on exit."""
    f = request.files.get("file")
    if not f or not f.filename:
        raise UploadError("No file uploaded")
    ext = Path(secure_filename(f.filename)).suffix.lower()
    if ext not in config.ALLOWED_IMPORT_EXTENSIONS:
        raise UploadError("Only Excel files (.xlsx) are allowed")

    config.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    path = config.UPLOAD_DIR / f"import-{uuid.uuid4().hex}{ext}"
    f.save(path)
    try:
        yield path
    finally:
        try:
            path.unlink()
        except OSError as exc:
            logger.error(f"Failed to clean up uploaded file {path}: {exc}")


@api_bp.route("/import/excel", methods=["POST"])
def import_excel():
    """POST /api/v1/import/excel - add every row of the workbook."""
    try:
        with _uploaded_workbook() as path:
            logger.info(f"Processing Excel import from: {path}")
            report = run_import(path)
    except UploadError as exc:
        return jsonify({"error": str(exc)}), 400

    if not report.success:
        return jsonify({"error": "Import failed", "details": report.errors}), 500

    body = report.to_dict()
    body["message"] = f"Successfully imported {report.imported} loads"
    return jsonify(body)


@api_bp.route("/import/preview", methods=["POST"])
def import_preview():
    """POST /api/v1/import/preview?limit=10 - mapped rows, nothing inserted."""
    limit = to_int(request.args.get("limit"), config.PREVIEW_DEFAULT_LIMIT)
    if limit < 1:
        limit = config.PREVIEW_DEFAULT_LIMIT
    try:
        with _uploaded_workbook() as path:
            data = preview(path, limit)
    except UploadError as exc:
        return jsonify({"error": str(exc)}), 400
    except SpreadsheetError as exc:
        return jsonify({"error": "Failed to preview Excel file", "details": str(exc)}), 500

    return jsonify({
        "success": True,
        "total": data["total"],
        "preview": data["preview"],
        "message": f"Preview of {len(data['preview'])} rows from {data['total']} total",
    })


@api_bp.route("/import/replace", methods=["POST"])
def import_replace():
    """
    POST /api/v1/import/replace

    Replace all imported loads with the uploaded workbook.
    User-created loads (source = "user") are preserved.
    """
    try:
        with _uploaded_workbook() as path:
            logger.info(f"Processing replace operation from: {path}")
            report = replace_imported_data(path)
    except UploadError as exc:
        return jsonify({"error": str(exc)}), 400
    except DeleteCountMismatchError as exc:
        return jsonify({
            "error": "Delete count mismatch",
            "details": str(exc),
            "expected": exc.expected,
            "actual": exc.actual,
        }), 500
    except ReplaceError as exc:
        return jsonify({"error": "Failed to replace imported loads", "details": str(exc)}), 500

    if not report.success:
        body = report.to_dict()
        body["error"] = "Import failed after delete"
        return jsonify(body), 500

    body = report.to_dict()
    body["message"] = "Successfully replaced imported data"
    return jsonify(body)


@api_bp.route("/import/status")
def import_status():
    """GET /api/v1/import/status - does the database hold imported loads?"""
    session = get_session()
    try:
        status = LoadsService.import_status(session)
    finally:
        session.close()
    count = status["importedCount"]
    status["message"] = (f"Database contains {count} imported loads"
                         if count else "No imported loads found")
    return jsonify(status)
