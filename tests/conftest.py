"""Shared fixtures."""

from typing import Any, List

import pytest
from openpyxl.utils.cell import range_boundaries

from link_bridge.config_manager import BridgeConfig
from link_bridge.utils.exceptions import WriteError


class FakeSheetStore:
    """In-memory stand-in for ``SheetsClient`` with Sheets API read semantics.

    Reads drop trailing empty cells and trailing empty rows, like
    ``spreadsheets.values.get``. Row-only ranges such as ``1:1`` have no
    right bound.
    """

    def __init__(self, rows: List[List[Any]] = None):
        self.grid = [list(row) for row in (rows or [])]
        self.reads: List[str] = []
        self.writes: List[tuple] = []
        self.fail_writes = False

    @staticmethod
    def _bounds(range_name: str):
        _sheet, _, cells = range_name.rpartition("!")
        min_col, min_row, max_col, max_row = range_boundaries(cells)
        return min_col or 1, min_row, max_col, max_row

    def read_range(self, range_name: str) -> List[List[Any]]:
        self.reads.append(range_name)
        min_col, min_row, max_col, max_row = self._bounds(range_name)

        values = []
        for row_number in range(min_row, max_row + 1):
            if row_number > len(self.grid):
                break
            row = self.grid[row_number - 1][min_col - 1:max_col]
            while row and row[-1] in ("", None):
                row.pop()
            values.append(row)

        while values and not values[-1]:
            values.pop()
        return values

    def write_range(self, range_name: str, values: List[List[Any]]) -> dict:
        if self.fail_writes:
            raise WriteError(f"write_range failed: {range_name}")

        self.writes.append((range_name, values))
        min_col, min_row, _max_col, _max_row = self._bounds(range_name)

        for row_offset, row_values in enumerate(values):
            row_number = min_row + row_offset
            while len(self.grid) < row_number:
                self.grid.append([])
            row = self.grid[row_number - 1]
            for col_offset, value in enumerate(row_values):
                col_index = min_col - 1 + col_offset
                while len(row) <= col_index:
                    row.append("")
                row[col_index] = value
        return {"updatedRange": range_name}

    def cell(self, address: str) -> Any:
        col, row, _, _ = range_boundaries(address)
        try:
            return self.grid[row - 1][col - 1]
        except IndexError:
            return ""


@pytest.fixture
def make_store():
    """Factory for in-memory sheets: ``make_store([[header...], [row...]])``."""
    return FakeSheetStore


@pytest.fixture
def bridge_config():
    """Fully populated configuration for tests."""
    return BridgeConfig(
        discord_client_id="client-id",
        discord_client_secret="client-secret",
        redirect_uri="https://example.test/auth/discord/callback",
        bot_token="123:bot-token",
        sheet_id="sheet-id",
        sheet_name="Stats (RU)",
    )


@pytest.fixture
def sample_store(make_store):
    """Sheet with a Discord column and no Telegram column."""
    return make_store(
        [
            ["Nickname", "Discord ID"],
            ["Alice", "12345"],
        ]
    )
