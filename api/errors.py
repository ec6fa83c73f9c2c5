"""
api.errors - JSON error handlers for the API blueprint.

Route-level failures (validation, not found, import errors) are turned
into JSON by the routes themselves; these cover what Flask raises.
"""

from flask import jsonify

import config
from api import api_bp


@api_bp.errorhandler(413)
def upload_too_large(_e):
    return jsonify({"error": f"Upload exceeds the {config.MAX_UPLOAD_MB} MB limit"}), 413


@api_bp.errorhandler(500)
def api_server_error(_e):
    return jsonify({"error": "Internal server error"}), 500
