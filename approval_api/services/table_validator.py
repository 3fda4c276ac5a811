"""Pre-upload validation of table (spreadsheet) attachments."""

from __future__ import annotations

import io
import re
import zipfile
import zlib
from dataclasses import dataclass
from typing import Any

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from approval_api.core.config import settings

ALLOWED_TABLE_EXTENSIONS = {"xlsx", "xlsm"}
MAX_REPORTED_ROW_ERRORS = 5

_WHITESPACE = re.compile(r"\s+")


class TableValidationError(ValueError):
    """Raised when a table attachment is unreadable or fails the content checks."""


@dataclass
class RowError:
    row: int
    column: str
    message: str


def _normalize(value: Any) -> str:
    if value is None:
        return ""
    return _WHITESPACE.sub("", str(value))


def _extension(file_name: str) -> str:
    return file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""


def _format_errors(errors: list[RowError]) -> str:
    shown = [f"row {e.row} [{e.column}]: {e.message}" for e in errors[:MAX_REPORTED_ROW_ERRORS]]
    message = f"{len(errors)} row error(s): " + "; ".join(shown)
    hidden = len(errors) - MAX_REPORTED_ROW_ERRORS
    if hidden > 0:
        message += f"; and {hidden} more"
    return message


def validate_table(
    file_name: str,
    payload: bytes,
    *,
    required_headers: list[str] | None = None,
    scan_rows: int | None = None,
) -> int:
    """
    Validate a workbook's first sheet; return the number of data rows.

    The header row is the first of the leading ``scan_rows`` rows that
    contains every required header (whitespace ignored). Blank rows are
    skipped; every other row must fill each required column.
    """
    required = required_headers if required_headers is not None else settings.table_required_headers_list
    scan_rows = scan_rows or settings.TABLE_HEADER_SCAN_ROWS
    normalized_required = [_normalize(h) for h in required]

    if _extension(file_name) not in ALLOWED_TABLE_EXTENSIONS:
        allowed = ", ".join(sorted(ALLOWED_TABLE_EXTENSIONS))
        raise TableValidationError(f"unsupported table format (allowed: {allowed})")

    try:
        workbook = load_workbook(io.BytesIO(payload), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, OSError, KeyError, SyntaxError) as exc:
        raise TableValidationError(f"file is not a readable workbook ({exc})") from exc

    try:
        if not workbook.sheetnames:
            raise TableValidationError("workbook has no sheets")
        # read-only sheets parse lazily, so broken sheet XML only surfaces here
        rows = [list(row) for row in workbook.worksheets[0].iter_rows(values_only=True)]
    except TableValidationError:
        raise
    # ElementTree and lxml parse errors both derive from SyntaxError
    except (SyntaxError, ValueError, KeyError, TypeError, zipfile.BadZipFile, zlib.error) as exc:
        raise TableValidationError(f"sheet content is unreadable ({exc})") from exc
    finally:
        workbook.close()

    if not rows:
        raise TableValidationError("workbook is empty")

    header_index = -1
    columns: dict[str, int] = {}
    for index, row in enumerate(rows[:scan_rows]):
        cleaned = [_normalize(cell) for cell in row]
        if all(header in cleaned for header in normalized_required):
            header_index = index
            columns = {header: cleaned.index(header) for header in normalized_required}
            break

    if header_index < 0:
        raise TableValidationError(
            f"header row not found in the first {scan_rows} rows; "
            f"expected columns: {', '.join(required)}"
        )

    errors: list[RowError] = []
    data_rows = 0
    for offset, row in enumerate(rows[header_index + 1 :]):
        if all(_normalize(cell) == "" for cell in row):
            continue
        data_rows += 1
        for header, label in zip(normalized_required, required):
            position = columns[header]
            value = row[position] if position < len(row) else None
            if _normalize(value) == "":
                errors.append(
                    RowError(
                        # 1-based sheet row number
                        row=header_index + offset + 2,
                        column=label,
                        message="value is required",
                    )
                )

    if errors:
        raise TableValidationError(_format_errors(errors))
    return data_rows
