"""
db.models - SQLAlchemy ORM declarations.

Tables
------
loads  - one row per reloading-session entry.  Bullet, powder, primer,
         case and performance data are flat columns; ``search_text`` is a
         lowercase concatenation of the text columns, refreshed on every
         insert/update so free-text search is a single LIKE.

Classification
--------------
``source`` holds the label the row came from.  Exactly one value,
``"user"``, marks manually authored rows; anything else (including NULL)
counts as imported.  Use ``Origin`` / ``Load.is_user`` /
``Load.is_imported`` rather than comparing strings.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, Column, DateTime, Float, Index, Integer, String, Text, event, or_,
)
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import DeclarativeBase


USER_SOURCE     = "user"
IMPORTED_SOURCE = "imported"


class Origin(str, enum.Enum):
    USER     = USER_SOURCE
    IMPORTED = IMPORTED_SOURCE

    @classmethod
    def of(cls, source: str | None) -> "Origin":
        """Classify a raw source label."""
        return cls.USER if source == USER_SOURCE else cls.IMPORTED


# ── Field groups (shared by the store and the spreadsheet mapper) ──────
STRING_FIELDS: tuple[str, ...] = (
    "test_weapon", "caliber",
    "bullet_manufacturer", "bullet_type",
    "powder_manufacturer", "powder_type",
    "primer_manufacturer", "primer_type",
    "case_manufacturer",
    "notes", "source",
    "loading_date", "tested_date",
    "group_photo_path", "batch_number",
    "twist_rate",
)

FLOAT_FIELDS: tuple[str, ...] = (
    "bullet_weight_grains", "bullet_weight_grams",
    "bullet_diameter_inches", "bullet_diameter_mm",
    "charge_weight_grains",
    "total_cartridge_length_mm", "free_travel_mm",
    "velocity_ms", "velocity_sd", "velocity_es",
    "group_size_mm", "distance_meters",
    "temperature_celsius", "humidity_percent",
    "barrel_length_inches",
)

INT_FIELDS: tuple[str, ...] = ("cartridges_loaded",)

# Every column a caller may write (id, timestamps, search_text and
# in_my_collection are owned by the store).
LOAD_FIELDS: tuple[str, ...] = STRING_FIELDS + FLOAT_FIELDS + INT_FIELDS

SEARCH_FIELDS: tuple[str, ...] = (
    "caliber", "test_weapon",
    "bullet_manufacturer", "bullet_type",
    "powder_manufacturer", "powder_type",
    "primer_manufacturer", "primer_type",
    "case_manufacturer", "batch_number", "notes",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class Load(Base):
    __tablename__ = "loads"

    # ── Identity ───────────────────────────────────────────────────────
    id         = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime, default=_utcnow, index=True)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    # ── Weapon / caliber ───────────────────────────────────────────────
    caliber              = Column(String(100), nullable=False, index=True)
    test_weapon          = Column(String(200))
    barrel_length_inches = Column(Float)
    twist_rate           = Column(String(50))

    # ── Bullet ─────────────────────────────────────────────────────────
    bullet_manufacturer    = Column(String(200), index=True)
    bullet_type            = Column(String(200))
    bullet_weight_grains   = Column(Float, index=True)
    bullet_weight_grams    = Column(Float)
    bullet_diameter_inches = Column(Float)
    bullet_diameter_mm     = Column(Float)

    # ── Powder ─────────────────────────────────────────────────────────
    powder_manufacturer  = Column(String(200))
    powder_type          = Column(String(200), index=True)
    charge_weight_grains = Column(Float)

    # ── Primer ─────────────────────────────────────────────────────────
    primer_manufacturer = Column(String(200))
    primer_type         = Column(String(200))

    # ── Case / cartridge ───────────────────────────────────────────────
    case_manufacturer         = Column(String(200))
    total_cartridge_length_mm = Column(Float)
    free_travel_mm            = Column(Float)

    # ── Performance ────────────────────────────────────────────────────
    velocity_ms         = Column(Float)
    velocity_sd         = Column(Float)
    velocity_es         = Column(Float)
    group_size_mm       = Column(Float)
    distance_meters     = Column(Float)
    tested_date         = Column(String(20))
    temperature_celsius = Column(Float)
    humidity_percent    = Column(Float)

    # ── Session metadata ───────────────────────────────────────────────
    loading_date      = Column(String(20))
    cartridges_loaded = Column(Integer)
    batch_number      = Column(String(100))
    group_photo_path  = Column(String(500))     # opaque blob-store reference

    # ── Classification ─────────────────────────────────────────────────
    source           = Column(String(100), default=USER_SOURCE, index=True)
    in_my_collection = Column(Boolean, nullable=False, default=False)

    # ── Free text ──────────────────────────────────────────────────────
    notes       = Column(Text)
    search_text = Column(Text, default="")

    __table_args__ = (
        Index("ix_loads_source_collection", "source", "in_my_collection"),
        {"sqlite_autoincrement": True},
    )

    # ── Classification helpers ─────────────────────────────────────────
    @hybrid_property
    def is_user(self) -> bool:
        return self.source == USER_SOURCE

    @is_user.inplace.expression
    @classmethod
    def _is_user_expression(cls):
        return cls.source == USER_SOURCE

    @hybrid_property
    def is_imported(self) -> bool:
        return self.source != USER_SOURCE

    @is_imported.inplace.expression
    @classmethod
    def _is_imported_expression(cls):
        # NULL != 'user' is NULL in SQL, so NULL sources are matched explicitly
        return or_(cls.source != USER_SOURCE, cls.source.is_(None))

    @property
    def origin(self) -> Origin:
        return Origin.of(self.source)

    # ── Serialisation ──────────────────────────────────────────────────
    def to_dict(self) -> dict:
        d = {"id": self.id}
        for name in LOAD_FIELDS:
            d[name] = getattr(self, name)
        d["in_my_collection"] = bool(self.in_my_collection)
        d["origin"] = self.origin.value
        d["created_at"] = self.created_at.isoformat() if self.created_at else None
        d["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        return d


def build_search_text(load: Load) -> str:
    """Lowercase, space-joined text of every searchable column that is set."""
    parts = []
    for name in SEARCH_FIELDS:
        val = getattr(load, name)
        if val not in (None, ""):
            parts.append(str(val))
    return " ".join(parts).lower()


@event.listens_for(Load, "before_insert")
@event.listens_for(Load, "before_update")
def _refresh_search_text(_mapper, _connection, target: Load) -> None:
    target.search_text = build_search_text(target)
