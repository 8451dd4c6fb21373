"""
RosterMatch services - workflows built on the deduplication engine.

Usage:
    from rostermatch.services import bulk_import_for_team, create_for_team
"""

from rostermatch.services.roster_import import (
    ImportedRow,
    RosterImportResult,
    RowError,
    bulk_import_for_team,
    create_for_team,
)

__all__ = [
    "bulk_import_for_team",
    "create_for_team",
    "RosterImportResult",
    "ImportedRow",
    "RowError",
]
