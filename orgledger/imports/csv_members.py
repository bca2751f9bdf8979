"""
CSV Member Import

Bulk-adds members from a CSV file with a header row. The header must
name the columns email, name, role and phoneNumber (any case, any
order; extra columns are ignored).

Each row goes through the same path as a single add: the Member schema
and the (orgId, email) duplicate check. A bad row never stops the
import; it is reported and the next row is tried.

Role is ADMIN only when the cell says "admin" in any case. Anything
else, including blank, means MEMBER.
"""

import csv
import io
from typing import Iterator, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field

from orgledger.models.entities import Member, MemberRole
from orgledger.repository import (
    DuplicateMemberError,
    MemberRepository,
    OrgLedgerError,
    ValidationFailedError,
)


REQUIRED_COLUMNS = ("email", "name", "role", "phoneNumber")


class CsvFormatError(OrgLedgerError):
    """The file as a whole cannot be imported (empty, or header columns missing)."""
    pass


class SkippedRow(BaseModel):
    row_number: int = Field(..., ge=2, description="1-based line number; the header is line 1")
    reason: str
    email: Optional[str] = None


class ImportReport(BaseModel):
    """Outcome of one CSV import."""

    added: list[Member] = Field(default_factory=list)
    skipped: list[SkippedRow] = Field(default_factory=list)
    # Emails that already belonged to a member of the organization
    duplicates: list[str] = Field(default_factory=list)

    @property
    def added_count(self) -> int:
        return len(self.added)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def duplicate_count(self) -> int:
        return len(self.duplicates)


def decode_csv(content: Union[bytes, str]) -> str:
    """Bytes to text (UTF-8, falling back to Latin-1) without a leading BOM."""
    if isinstance(content, bytes):
        try:
            text = content.decode("utf-8")
        except UnicodeDecodeError:
            text = content.decode("latin-1")
    else:
        text = content

    # Handle BOM
    if text.startswith("\ufeff"):
        text = text[1:]
    return text


def read_member_rows(content: Union[bytes, str]) -> Iterator[tuple[int, dict[str, str]]]:
    """
    Yield (line_number, row) for every data row.

    Rows are keyed by the logical column names in REQUIRED_COLUMNS with
    stripped values; missing cells come back as "".

    Raises:
        CsvFormatError: No header, or a required column is absent
    """
    reader = csv.DictReader(io.StringIO(decode_csv(content)))
    if not reader.fieldnames:
        raise CsvFormatError("CSV file is empty")

    columns = {
        header.strip().lower(): header
        for header in reader.fieldnames
        if header and header.strip()
    }
    missing = [column for column in REQUIRED_COLUMNS if column.lower() not in columns]
    if missing:
        raise CsvFormatError(f"CSV header is missing columns: {', '.join(missing)}")

    for row in reader:
        yield reader.line_num, {
            column: (row.get(columns[column.lower()]) or "").strip()
            for column in REQUIRED_COLUMNS
        }


def row_to_member_input(row: dict[str, str], org_id: str) -> dict:
    """Raw NewMember input for one CSV row."""
    role = MemberRole.ADMIN if row["role"].upper() == MemberRole.ADMIN.value else MemberRole.MEMBER
    return {
        "name": row["name"],
        "email": row["email"],
        "role": role,
        "phoneNumber": row["phoneNumber"] or None,
        "orgId": org_id,
    }


async def import_members(
    members: MemberRepository,
    org_id: str,
    content: Union[bytes, str],
    correlation_id: Optional[UUID] = None,
) -> ImportReport:
    """
    Add every valid, new member in ``content`` to ``org_id``.

    Raises:
        CsvFormatError: Before any row is processed, if the file is unusable
    """
    report = ImportReport()
    rows = list(read_member_rows(content))

    for line_number, row in rows:
        if not row["email"] or not row["name"]:
            report.skipped.append(SkippedRow(
                row_number=line_number,
                reason="Missing email or name",
                email=row["email"] or None,
            ))
            continue

        try:
            member = await members.add_member(
                row_to_member_input(row, org_id),
                correlation_id=correlation_id,
            )
        except DuplicateMemberError as e:
            report.duplicates.append(e.email)
        except ValidationFailedError as e:
            report.skipped.append(SkippedRow(
                row_number=line_number,
                reason="; ".join(f"{issue.field}: {issue.message}" for issue in e.issues),
                email=row["email"],
            ))
        else:
            report.added.append(member)

    return report
