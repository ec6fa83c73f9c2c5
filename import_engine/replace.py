"""
import_engine.replace - Replace all imported loads with a fresh spreadsheet.

User-authored loads (source = "user") are never touched.  The whole
run (delete + import) happens in one transaction:

    1. count before
    2. count preserved / expected deletes, delete non-user rows,
       verify the affected-row count   → DeleteCountMismatchError
    3. import the spreadsheet with source "imported"
    4. count after, commit

If step 3 cannot read the file the transaction is rolled back and the
report says so.  Storage errors roll back and raise ReplaceError.

There is no lock against two replace runs at once; concurrent writers
are serialised only by the database itself.
"""

from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError

from db.engine import get_session
from db.models import IMPORTED_SOURCE
from import_engine.importer import import_file
from import_engine.report import ReplaceReport
from services.loads_service import LoadsService

logger = logging.getLogger(__name__)


class ReplaceError(RuntimeError):
    """The replace operation failed and was rolled back."""


class DeleteCountMismatchError(ReplaceError):
    """Rows actually deleted differ from the independently counted set."""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Delete count mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


def replace_imported_data(path: str | Path) -> ReplaceReport:
    """
    Delete every non-user load and import *path* in its place.

    Raises
    ------
    DeleteCountMismatchError
        the delete touched a different number of rows than counted;
        nothing is imported and the delete is rolled back.
    ReplaceError
        any storage failure; the transaction is rolled back.
    """
    session = get_session()
    try:
        before = LoadsService.count_all(session)
        preserved = LoadsService.count_user(session)
        expected = LoadsService.count_imported(session)

        deleted = LoadsService.delete_imported(session)
        logger.info(f"Deleted {deleted} imported loads, preserved {preserved} user loads")
        if deleted != expected:
            raise DeleteCountMismatchError(expected, deleted)

        result = import_file(session, path, IMPORTED_SOURCE)
        if not result.success:
            session.rollback()
            logger.error("Import failed after delete; delete rolled back")
            return ReplaceReport(
                success=False,
                deleted=deleted,
                preserved=preserved,
                errors=result.errors,
                before=before,
                after=before,
                rolled_back=True,
                warning="The import failed; no loads were deleted or added",
            )

        after = LoadsService.count_all(session)
        session.commit()
        logger.info(f"After: {after} total loads")
    except DeleteCountMismatchError as exc:
        session.rollback()
        logger.error(str(exc))
        raise
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error(f"Replace operation error: {exc}")
        raise ReplaceError(f"Failed to replace imported loads: {exc}") from exc
    finally:
        session.close()

    return ReplaceReport(
        success=True,
        deleted=deleted,
        preserved=preserved,
        imported=result.imported,
        skipped=result.skipped,
        errors=result.errors,
        before=before,
        after=after,
    )
