"""
services - Business-logic layer sitting between API and DB.
"""

from services.loads_service import (                                    # noqa: F401
    LoadsService, LoadValidationError, ColumnNotAllowedError,
)
from services.search_service import (                                   # noqa: F401
    SearchService, LoadFilter, LoadQuery, LoadPage, QueryError,
)
