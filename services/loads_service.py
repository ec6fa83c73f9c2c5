"""
services.loads_service - CRUD operations on Load records.

All session management is the caller's responsibility (open before,
close/commit after).  This keeps the service testable and allows
the caller to batch multiple operations in one transaction, which the
replace operation relies on.
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from db.models import (
    FLOAT_FIELDS, INT_FIELDS, STRING_FIELDS, IMPORTED_SOURCE, USER_SOURCE, Load,
)
from services.coerce import clean_str, to_bool, to_float, to_int

logger = logging.getLogger(__name__)


class LoadValidationError(ValueError):
    """Input rejected before anything is written."""


class ColumnNotAllowedError(LoadValidationError):
    """Distinct-value lookup requested on a column outside the allow-list."""

    def __init__(self, column: str):
        super().__init__(f'Column "{column}" is not allowed for distinct values query')
        self.column = column


# Columns exposed to filter dropdowns.  Never interpolate anything else.
DISTINCT_COLUMNS: dict[str, object] = {
    name: getattr(Load, name) for name in (
        "caliber", "test_weapon",
        "bullet_manufacturer", "bullet_type", "bullet_weight_grains",
        "powder_manufacturer", "powder_type", "charge_weight_grains",
        "primer_manufacturer", "primer_type",
        "case_manufacturer", "total_cartridge_length_mm",
        "velocity_ms", "group_size_mm", "distance_meters",
        "source", "batch_number",
        "bullet_weight_grams", "bullet_diameter_inches", "bullet_diameter_mm",
    )
}


def _apply_fields(load: Load, data: dict, *, skip: frozenset = frozenset()) -> None:
    """Write every canonical field from *data* (absent keys become NULL)."""
    for name in STRING_FIELDS:
        if name not in skip:
            setattr(load, name, clean_str(data.get(name)))
    for name in FLOAT_FIELDS:
        setattr(load, name, to_float(data.get(name)))
    for name in INT_FIELDS:
        setattr(load, name, to_int(data.get(name)))


def _require_caliber(data: dict) -> None:
    if not clean_str(data.get("caliber")):
        raise LoadValidationError("Caliber is required")


class LoadsService:

    # ── Create ─────────────────────────────────────────────────────────

    @staticmethod
    def create(session: Session, data: dict) -> Load:
        """
        Insert a new Load.  ``caliber`` is required; ``source`` defaults
        to "user" when absent or blank.
        """
        _require_caliber(data)

        load = Load()
        _apply_fields(load, data)
        if load.source is None:
            load.source = USER_SOURCE
        load.in_my_collection = to_bool(data.get("in_my_collection"))

        session.add(load)
        session.flush()
        return load

    # ── Read ───────────────────────────────────────────────────────────

    @staticmethod
    def get(session: Session, load_id: int) -> Load | None:
        return session.get(Load, load_id)

    # ── Update ─────────────────────────────────────────────────────────

    @staticmethod
    def update(session: Session, load_id: int, data: dict) -> Load | None:
        """
        Full replace of the non-identity fields.  Classification
        (source, in_my_collection) is left alone.
        Returns None when the id does not exist.
        """
        load = session.get(Load, load_id)
        if load is None:
            return None
        _require_caliber(data)
        _apply_fields(load, data, skip=frozenset({"source"}))
        session.flush()
        return load

    # ── Delete ─────────────────────────────────────────────────────────

    @staticmethod
    def delete(session: Session, load_id: int) -> bool:
        load = session.get(Load, load_id)
        if load is None:
            return False
        session.delete(load)
        session.flush()
        return True

    # ── Collection flag ────────────────────────────────────────────────

    @staticmethod
    def toggle_collection(session: Session, load_id: int) -> Load | None:
        load = session.get(Load, load_id)
        if load is None:
            return None
        load.in_my_collection = not load.in_my_collection
        session.flush()
        return load

    @staticmethod
    def set_collection(session: Session, load_id: int, value: bool) -> Load | None:
        load = session.get(Load, load_id)
        if load is None:
            return None
        load.in_my_collection = bool(value)
        session.flush()
        return load

    # ── Counts / bulk delete (used by the replace operation) ───────────

    @staticmethod
    def count_all(session: Session) -> int:
        return session.scalar(select(func.count()).select_from(Load))

    @staticmethod
    def count_user(session: Session) -> int:
        return session.scalar(
            select(func.count()).select_from(Load).where(Load.is_user)
        )

    @staticmethod
    def count_imported(session: Session) -> int:
        return session.scalar(
            select(func.count()).select_from(Load).where(Load.is_imported)
        )

    @staticmethod
    def delete_imported(session: Session) -> int:
        """Delete every non-user row.  Returns the affected-row count."""
        result = session.execute(
            delete(Load).where(Load.is_imported),
            execution_options={"synchronize_session": False},
        )
        # Drop any identity-map copies of the rows that just vanished
        session.expire_all()
        return result.rowcount

    # ── Lookups for dropdowns ──────────────────────────────────────────

    @staticmethod
    def distinct_values(session: Session, column: str) -> list:
        col = DISTINCT_COLUMNS.get(column)
        if col is None:
            raise ColumnNotAllowedError(column)
        stmt = select(col).where(col.isnot(None)).distinct().order_by(col)
        return list(session.scalars(stmt))

    @staticmethod
    def filter_options(session: Session) -> dict:
        return {
            "calibers": LoadsService.distinct_values(session, "caliber"),
            "bulletManufacturers": LoadsService.distinct_values(session, "bullet_manufacturer"),
            "powderTypes": LoadsService.distinct_values(session, "powder_type"),
        }

    @staticmethod
    def import_status(session: Session) -> dict:
        count = session.scalar(
            select(func.count()).select_from(Load).where(Load.source == IMPORTED_SOURCE)
        )
        return {"hasImportedLoads": count > 0, "importedCount": count}
