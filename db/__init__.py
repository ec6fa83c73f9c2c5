"""
db - Database layer.

Public API:
    init_db()       → create engine + tables
    get_session()   → new Session
    Load, Origin    → ORM model + user/imported classification
"""

from db.engine import init_db, get_engine, get_session          # noqa: F401
from db.models import (                                          # noqa: F401
    Base, Load, Origin, USER_SOURCE, IMPORTED_SOURCE,
    LOAD_FIELDS, STRING_FIELDS, FLOAT_FIELDS, INT_FIELDS,
)
