"""Bulk import package."""

from orgledger.imports.csv_members import (
    REQUIRED_COLUMNS,
    CsvFormatError,
    ImportReport,
    SkippedRow,
    import_members,
    read_member_rows,
    row_to_member_input,
)

__all__ = [
    "REQUIRED_COLUMNS",
    "CsvFormatError",
    "ImportReport",
    "SkippedRow",
    "import_members",
    "read_member_rows",
    "row_to_member_input",
]
