"""
import_engine.report - Structured results of an import or replace run.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ImportReport:
    success: bool = False
    total_rows: int = 0
    imported: int = 0
    skipped: int = 0
    errors: list[dict] = field(default_factory=list)   # [{row, error}]

    def add_error(self, row: int | str, error: str):
        self.errors.append({"row": row, "error": error})

    @classmethod
    def failed(cls, error: str) -> "ImportReport":
        """Pipeline-level failure: nothing was processed."""
        report = cls(success=False)
        report.add_error("general", error)
        return report

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "total_rows": self.total_rows,
            "imported": self.imported,
            "skipped": self.skipped,
            "errors": self.errors,
        }


@dataclass
class ReplaceReport:
    success: bool
    deleted: int = 0
    preserved: int = 0
    imported: int = 0
    skipped: int = 0
    errors: list[dict] = field(default_factory=list)
    before: int = 0
    after: int = 0
    rolled_back: bool = False
    warning: str = ""

    @property
    def counts(self) -> dict:
        return {"before": self.before, "after": self.after, "userLoads": self.preserved}

    def to_dict(self) -> dict:
        d = {
            "success": self.success,
            "deleted": self.deleted,
            "preserved": self.preserved,
            "imported": self.imported,
            "skipped": self.skipped,
            "errors": self.errors,
            "counts": self.counts,
        }
        if not self.success:
            d["rolled_back"] = self.rolled_back
            d["warning"] = self.warning
        return d
