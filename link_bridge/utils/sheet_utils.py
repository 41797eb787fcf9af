"""A1 notation helpers for Google Sheets ranges."""

from openpyxl.utils import get_column_letter

# Header occupies row 1, data starts at row 2
HEADER_ROW = 1
FIRST_DATA_ROW = 2


def column_letter(index: int) -> str:
    """Convert a zero-based column index into sheet column letters (0 -> A, 26 -> AA)."""
    if index < 0:
        raise ValueError(f"Column index must be non-negative, got {index}")
    return get_column_letter(index + 1)


def absolute_row_number(offset: int) -> int:
    """Convert a zero-based data row offset into the one-based sheet row number."""
    if offset < 0:
        raise ValueError(f"Row offset must be non-negative, got {offset}")
    return FIRST_DATA_ROW + offset


def quote_sheet_name(sheet_name: str) -> str:
    """Quote a tab name for use in an A1 range ("Stats (RU)" -> "'Stats (RU)'")."""
    escaped = sheet_name.replace("'", "''")
    return f"'{escaped}'"


def build_range(sheet_name: str, start: str, end: str = "") -> str:
    """Build a sheet-qualified A1 range such as 'Sheet'!A1:Z1."""
    cells = f"{start}:{end}" if end else start
    return f"{quote_sheet_name(sheet_name)}!{cells}"


def build_cell_range(sheet_name: str, col_index: int, row_number: int) -> str:
    """Build the sheet-qualified address of a single cell."""
    return build_range(sheet_name, f"{column_letter(col_index)}{row_number}")


def header_range(sheet_name: str, width: int) -> str:
    """Range covering the first ``width`` header cells."""
    return build_range(
        sheet_name,
        f"A{HEADER_ROW}",
        f"{column_letter(width - 1)}{HEADER_ROW}",
    )


def header_row_range(sheet_name: str) -> str:
    """Range covering the whole header row, with no right bound ('Sheet'!1:1)."""
    return build_range(sheet_name, str(HEADER_ROW), str(HEADER_ROW))


def data_range(sheet_name: str, width: int, last_row: int) -> str:
    """Range covering the bounded data window beneath the header."""
    return build_range(
        sheet_name,
        f"A{FIRST_DATA_ROW}",
        f"{column_letter(width - 1)}{last_row}",
    )
