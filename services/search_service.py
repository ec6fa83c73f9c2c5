"""
services.search_service - Filtered, sorted, paginated listing.

A request's filters are parsed once into a ``LoadFilter``.  The filter
produces a single ordered list of SQL predicates, and ``LoadQuery``
renders that same list into two statements: the page of rows
(ORDER BY / LIMIT / OFFSET) and the total count (no ordering, no
pagination).  Both statements go through ``LoadQuery._filtered`` so
they cannot drift apart.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Mapping

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql import ColumnElement, Select

import config
from db.models import Load
from services.coerce import clean_str, to_bool, to_float, to_int

logger = logging.getLogger(__name__)

# LIMIT / OFFSET are bound as signed 64-bit integers
MAX_SQL_INT = 2**63 - 1


class QueryError(RuntimeError):
    """The listing query failed in storage."""


# Equality filters, in the order their predicates are applied.
# True → value is parsed as float before comparison.
EXACT_FILTERS: tuple[tuple[str, bool], ...] = (
    ("caliber", False),
    ("bullet_manufacturer", False),
    ("bullet_type", False),
    ("bullet_weight_grains", True),
    ("powder_manufacturer", False),
    ("powder_type", False),
    ("charge_weight_grains", True),
    ("velocity_ms", True),
    ("total_cartridge_length_mm", True),
    ("source", False),
)

DEFAULT_SORT_FIELD = "created_at"


@dataclass
class LoadFilter:
    """Parsed, validated listing filter."""

    exact: dict[str, Any] = field(default_factory=dict)
    weight_min: float | None = None
    weight_max: float | None = None
    my_collection: bool = False
    search: str | None = None
    sort_field: str = DEFAULT_SORT_FIELD
    sort_order: str = "desc"
    page: int = 1
    limit: int = config.DEFAULT_PAGE_SIZE

    # Sortable columns mapping.  Anything else falls back to created_at.
    SORTABLE_COLUMNS = {
        "created_at": Load.created_at,
        "caliber": Load.caliber,
        "bullet_manufacturer": Load.bullet_manufacturer,
        "bullet_type": Load.bullet_type,
        "bullet_weight_grains": Load.bullet_weight_grains,
        "powder_manufacturer": Load.powder_manufacturer,
        "powder_type": Load.powder_type,
        "charge_weight_grains": Load.charge_weight_grains,
        "velocity_ms": Load.velocity_ms,
        "total_cartridge_length_mm": Load.total_cartridge_length_mm,
        "source": Load.source,
    }

    @classmethod
    def from_args(cls, args: Mapping[str, Any] | None) -> "LoadFilter":
        """
        Build a filter from loosely-typed request arguments.

        Unknown keys are ignored; blank or unparseable values mean
        "not filtered"; bad sort/page/limit input falls back to defaults.
        """
        args = args or {}
        flt = cls()

        for key, numeric in EXACT_FILTERS:
            raw = args.get(key)
            val = to_float(raw) if numeric else clean_str(raw)
            if val is not None:
                flt.exact[key] = val

        flt.weight_min = to_float(args.get("bullet_weight_min"))
        flt.weight_max = to_float(args.get("bullet_weight_max"))
        flt.my_collection = to_bool(args.get("my_collection"))
        flt.search = clean_str(args.get("search"))

        sort_field = clean_str(args.get("sort_field"))
        flt.sort_field = sort_field if sort_field in cls.SORTABLE_COLUMNS else DEFAULT_SORT_FIELD
        sort_order = clean_str(args.get("sort_order")) or ""
        flt.sort_order = "asc" if sort_order.lower() == "asc" else "desc"

        page = to_int(args.get("page"), 1)
        limit = to_int(args.get("limit"), config.DEFAULT_PAGE_SIZE)
        flt.limit = limit if 1 <= limit <= MAX_SQL_INT else config.DEFAULT_PAGE_SIZE
        flt.page = page if 1 <= page and (page - 1) * flt.limit <= MAX_SQL_INT else 1
        return flt

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def predicates(self) -> list[ColumnElement]:
        """The WHERE conditions, in a fixed order."""
        preds: list[ColumnElement] = []
        for key, _numeric in EXACT_FILTERS:
            if key in self.exact:
                preds.append(getattr(Load, key) == self.exact[key])
        if self.my_collection:
            preds.append(or_(Load.is_user, Load.in_my_collection.is_(True)))
        if self.weight_min is not None:
            preds.append(Load.bullet_weight_grains >= self.weight_min)
        if self.weight_max is not None:
            preds.append(Load.bullet_weight_grains <= self.weight_max)
        if self.search:
            preds.append(Load.search_text.contains(self.search.lower(), autoescape=True))
        return preds


class LoadQuery:
    """Renders one ``LoadFilter`` into the rows and count statements."""

    def __init__(self, flt: LoadFilter):
        self.filter = flt
        self.predicates = flt.predicates()

    def _filtered(self, stmt: Select) -> Select:
        return stmt.where(*self.predicates)

    def rows(self) -> Select:
        flt = self.filter
        sort_col = LoadFilter.SORTABLE_COLUMNS[flt.sort_field]
        if flt.sort_order == "asc":
            order = (sort_col.asc(), Load.id.asc())
        else:
            order = (sort_col.desc(), Load.id.desc())
        return (
            self._filtered(select(Load))
            .order_by(*order)
            .limit(flt.limit)
            .offset(flt.offset)
        )

    def count(self) -> Select:
        return self._filtered(select(func.count()).select_from(Load))


@dataclass
class LoadPage:
    records: list[Load]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit)

    def to_dict(self) -> dict:
        return {
            "records": [r.to_dict() for r in self.records],
            "pagination": {
                "page": self.page,
                "limit": self.limit,
                "total": self.total,
                "totalPages": self.total_pages,
            },
        }


class SearchService:

    @staticmethod
    def search(session: Session, filters: Mapping[str, Any] | LoadFilter | None = None) -> LoadPage:
        """
        List loads.  Returns one page plus the unpaged total.
        Storage failures are re-raised as QueryError.
        """
        flt = filters if isinstance(filters, LoadFilter) else LoadFilter.from_args(filters)
        query = LoadQuery(flt)
        try:
            records = list(session.scalars(query.rows()))
            total = session.scalar(query.count())
        except SQLAlchemyError as exc:
            logger.error(f"Load listing failed: {exc}")
            raise QueryError(f"query failed: {exc}") from exc
        return LoadPage(records=records, page=flt.page, limit=flt.limit, total=total)
