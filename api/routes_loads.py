"""
api.routes_loads - /api/v1/loads CRUD and listing endpoints.
"""

import logging

from flask import request, jsonify
from sqlalchemy.exc import SQLAlchemyError

from api import api_bp
from db import get_session
from services.loads_service import LoadsService, LoadValidationError
from services.search_service import LoadFilter, QueryError, SearchService
import config

logger = logging.getLogger(__name__)


@api_bp.route("/loads")
def list_loads():
    """
    GET /api/v1/loads?caliber=&bullet_weight_min=&my_collection=&search=
                     &sort_field=&sort_order=&page=1&limit=50

    Any exact-match column listed in LoadFilter plus range, collection
    and free-text filters.  Bad paging/sort input falls back to defaults.
    """
    flt = LoadFilter.from_args(request.args)
    flt.limit = min(flt.limit, config.API_MAX_LIMIT)

    session = get_session()
    try:
        page = SearchService.search(session, flt)
        return jsonify(page.to_dict())
    except QueryError as exc:
        return jsonify({"error": "Failed to fetch loads", "details": str(exc)}), 500
    finally:
        session.close()


@api_bp.route("/loads/filters")
def filter_options():
    """GET /api/v1/loads/filters - dropdown values for the browse page."""
    session = get_session()
    try:
        return jsonify(LoadsService.filter_options(session))
    finally:
        session.close()


@api_bp.route("/loads/distinct/<column>")
def distinct_values(column: str):
    """GET /api/v1/loads/distinct/{column} (allow-listed columns only)"""
    session = get_session()
    try:
        return jsonify(LoadsService.distinct_values(session, column))
    except LoadValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    finally:
        session.close()


@api_bp.route("/loads/<int:load_id>")
def get_load(load_id: int):
    """GET /api/v1/loads/{id}"""
    session = get_session()
    try:
        load = LoadsService.get(session, load_id)
        if not load:
            return jsonify({"error": "Load not found"}), 404
        return jsonify(load.to_dict())
    finally:
        session.close()


@api_bp.route("/loads", methods=["POST"])
def create_load():
    """
    POST /api/v1/loads

    JSON body with load fields.  ``caliber`` is required; ``source``
    defaults to "user".
    """
    data = request.get_json(force=True, silent=True) or {}
    session = get_session()
    try:
        load = LoadsService.create(session, data)
        session.commit()
        return jsonify(load.to_dict()), 201
    except LoadValidationError as exc:
        session.rollback()
        return jsonify({"error": str(exc)}), 400
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error(f"Error creating load: {exc}")
        return jsonify({"error": "Failed to create load", "details": str(exc)}), 500
    finally:
        session.close()


@api_bp.route("/loads/<int:load_id>", methods=["PUT"])
def update_load(load_id: int):
    """PUT /api/v1/loads/{id}  (full replace of the editable fields)"""
    data = request.get_json(force=True, silent=True) or {}
    session = get_session()
    try:
        load = LoadsService.update(session, load_id, data)
        if not load:
            return jsonify({"error": "Load not found"}), 404
        session.commit()
        return jsonify(load.to_dict())
    except LoadValidationError as exc:
        session.rollback()
        return jsonify({"error": str(exc)}), 400
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error(f"Error updating load {load_id}: {exc}")
        return jsonify({"error": "Failed to update load", "details": str(exc)}), 500
    finally:
        session.close()


@api_bp.route("/loads/<int:load_id>", methods=["DELETE"])
def delete_load(load_id: int):
    """DELETE /api/v1/loads/{id}"""
    session = get_session()
    try:
        if not LoadsService.delete(session, load_id):
            return jsonify({"error": "Load not found"}), 404
        session.commit()
        return "", 204
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error(f"Error deleting load {load_id}: {exc}")
        return jsonify({"error": "Failed to delete load", "details": str(exc)}), 500
    finally:
        session.close()


@api_bp.route("/loads/<int:load_id>/collection", methods=["POST", "PUT", "DELETE"])
def collection(load_id: int):
    """
    POST   → toggle in_my_collection
    PUT    → add to my collection
    DELETE → remove from my collection
    """
    session = get_session()
    try:
        if request.method == "POST":
            load = LoadsService.toggle_collection(session, load_id)
        else:
            load = LoadsService.set_collection(session, load_id, request.method == "PUT")
        if not load:
            return jsonify({"error": "Load not found"}), 404
        session.commit()
        return jsonify(load.to_dict())
    finally:
        session.close()
