"""
import_engine.row_mapper - Transform one spreadsheet row into Load fields.

Single-responsibility: given a {header: cell} dict, return a dict with
every canonical Load field present.  No validation happens here; the
pipeline decides which rows to skip and the store rejects bad input.
"""

from __future__ import annotations

from db.models import FLOAT_FIELDS, INT_FIELDS, LOAD_FIELDS
from import_engine.field_map import COLUMN_MAP, REQUIRED_COLUMN
from services.coerce import clean_str, to_float, to_int


def map_row(row: dict) -> dict:
    """
    Map a localized row to canonical field names.

    Strings are trimmed (blank → None), numbers parsed as float
    (junk → None).  ``source`` stays None when the sheet does not
    provide one; the caller applies its default.
    """
    data: dict = dict.fromkeys(LOAD_FIELDS)
    for header, attr in COLUMN_MAP.items():
        raw = row.get(header)
        if attr in FLOAT_FIELDS:
            data[attr] = to_float(raw)
        elif attr in INT_FIELDS:
            data[attr] = to_int(raw)
        else:
            data[attr] = clean_str(raw)
    return data


def has_required(row: dict) -> bool:
    """True when the row carries a caliber cell at all."""
    return row.get(REQUIRED_COLUMN) not in (None, "")
