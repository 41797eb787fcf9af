"""Links an external identity to an existing sheet row.

The sheet is header-driven: row 1 holds labels, data rows start at row 2.
The reconciler locates the key column (Discord id), finds or creates the link
column (Telegram id), finds the first row whose key equals the identity and
writes the correlation value into exactly one cell.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from .config_manager import BridgeConfig
from .utils.exceptions import ConfigurationError, NotFoundError
from .utils.sheet_utils import (
    absolute_row_number,
    build_cell_range,
    build_range,
    column_letter,
    data_range,
    header_range,
    header_row_range,
)

logger = logging.getLogger(__name__)


@dataclass
class ColumnResolution:
    """Resolved column positions for one reconciliation."""

    key_index: int
    link_index: int
    header: List[str]
    appended: bool = False


@dataclass
class LinkResult:
    """Location of the written cell; used for logging only."""

    row_number: int
    column_letter: str
    cell: str
    range: str


def normalize_label(value: Any) -> str:
    """Trimmed, lower-cased text of a header cell."""
    if value is None:
        return ""
    return str(value).strip().lower()


def find_column(header: Sequence[Any], markers: Sequence[str]) -> Optional[int]:
    """Return the index of the first header containing any marker, else None."""
    needles = [marker.strip().lower() for marker in markers if marker and marker.strip()]
    for index, label in enumerate(header):
        text = normalize_label(label)
        if text and any(needle in text for needle in needles):
            return index
    return None


def cell_text(row: Sequence[Any], index: int) -> str:
    """Trimmed text of a cell; cells past the stored row length are empty."""
    if index >= len(row):
        return ""
    value = row[index]
    if value is None:
        return ""
    return str(value).strip()


class TableReconciler:
    """Finds the identity row in the sheet and records the correlation value."""

    def __init__(self, store: Any, config: BridgeConfig, lock: Optional[threading.Lock] = None):
        """
        Args:
            store: Object exposing ``read_range(range)`` and ``write_range(range, values)``
            config: Bridge configuration (sheet name, markers, scan window)
            lock: Optional lock serialising reconciliations within this process
        """
        self.store = store
        self.config = config
        self._lock = lock

    @property
    def sheet_name(self) -> str:
        return self.config.sheet_name

    def resolve_columns(self, header: Sequence[Any]) -> ColumnResolution:
        """Locate the key column and find-or-create the link column.

        Raises:
            ConfigurationError: if no header contains the key marker
        """
        raw_header = ["" if label is None else str(label) for label in header]

        key_index = find_column(raw_header, [self.config.key_column_marker])
        if key_index is None:
            raise ConfigurationError(
                f'Key column not found in sheet header (searching for header containing '
                f'"{self.config.key_column_marker}")',
                error_code="key_column_not_found",
            )

        link_index = find_column(raw_header, self.config.link_column_markers)
        if link_index is not None:
            return ColumnResolution(key_index, link_index, raw_header)

        extended = raw_header + [self.config.link_column_label]
        return ColumnResolution(key_index, len(raw_header), extended, appended=True)

    def read_header(self) -> List[Any]:
        """Read the header row.

        The first read is bounded by ``header_scan_width``. When it comes back
        full, labels may continue past the window, so the whole row is read
        before any column position is chosen.
        """
        width = self.config.header_scan_width
        rows = self.store.read_range(header_range(self.sheet_name, width))
        header = list(rows[0]) if rows else []

        if len(header) >= width:
            rows = self.store.read_range(header_row_range(self.sheet_name))
            header = list(rows[0]) if rows else header
            logger.debug(f"Header fills the {width}-column window; read {len(header)} labels")

        return header

    def write_header(self, header: List[str]) -> str:
        """Persist the full header so existing labels are rewritten verbatim."""
        last_letter = column_letter(len(header) - 1)
        target = build_range(self.sheet_name, "A1", f"{last_letter}1")
        self.store.write_range(target, [header])
        logger.info(f"Appended '{header[-1]}' column to header at {target}")
        return target

    def read_rows(self, width: Optional[int] = None) -> List[List[Any]]:
        """Read the data window; ``width`` widens it to cover the whole header."""
        width = max(width or 0, self.config.header_scan_width)
        return self.store.read_range(
            data_range(self.sheet_name, width, self.config.max_scan_rows)
        )

    def find_row(self, rows: Sequence[Sequence[Any]], key_index: int, identity: Any) -> int:
        """Return the offset of the first row whose key cell equals ``identity``.

        Raises:
            NotFoundError: if no row in the scan window matches
        """
        wanted = str(identity).strip()
        matches = [
            offset
            for offset, row in enumerate(rows)
            if wanted and cell_text(row, key_index) == wanted
        ]

        if not matches:
            raise NotFoundError(
                f"Discord id {wanted} not found in sheet rows",
                identity=wanted,
                error_code="identity_not_found",
            )

        if len(matches) > 1:
            duplicates = [absolute_row_number(offset) for offset in matches]
            logger.warning(
                f"Identity {wanted} appears in rows {duplicates}; using row {duplicates[0]}"
            )

        return matches[0]

    def write_link(self, link_index: int, offset: int, value: Any) -> LinkResult:
        """Write ``value`` into the link cell of the given data row."""
        row_number = absolute_row_number(offset)
        letter = column_letter(link_index)
        target = build_cell_range(self.sheet_name, link_index, row_number)

        self.store.write_range(target, [[str(value)]])

        return LinkResult(
            row_number=row_number,
            column_letter=letter,
            cell=f"{letter}{row_number}",
            range=target,
        )

    def reconcile(self, external_id: Any, correlation_value: Any) -> LinkResult:
        """Record ``correlation_value`` in the row keyed by ``external_id``.

        Raises:
            ConfigurationError: missing sheet settings or key column
            NotFoundError: identity absent from the scan window
            TableStoreError / WriteError: the store failed a read or write
        """
        self.config.require("sheet_id", "sheet_name")

        if self._lock is None:
            return self._reconcile(external_id, correlation_value)

        with self._lock:
            return self._reconcile(external_id, correlation_value)

    def _reconcile(self, external_id: Any, correlation_value: Any) -> LinkResult:
        resolution = self.resolve_columns(self.read_header())
        if resolution.appended:
            self.write_header(resolution.header)

        rows = self.read_rows(len(resolution.header))
        offset = self.find_row(rows, resolution.key_index, external_id)
        result = self.write_link(resolution.link_index, offset, correlation_value)

        logger.info(
            f"Linked identity {str(external_id).strip()} -> {correlation_value} at {result.range} "
            f"({len(rows)} data rows scanned)"
        )
        return result
