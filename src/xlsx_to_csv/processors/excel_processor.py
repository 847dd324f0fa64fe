"""Workbook reading for the xlsx-to-csv option exporter.

This module opens the input workbook, selects the configured worksheet and
deserializes its rows into Records by looking up the ExperienceProductID and
OptionID columns by header name.
"""

import zipfile
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from xlsx_to_csv.models.data_models import (
    DEFAULT_SHEET_NAME,
    OpenError,
    Record,
    RowDeserializationError,
    SheetNotFoundError,
)
from xlsx_to_csv.utils.logger import get_processing_logger
from xlsx_to_csv.utils.logging_decorators import log_operation, operation_context


class CellValueError(ValueError):
    """Raised when a cell cannot be read as text."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


def cell_to_text(cell: Any) -> str:
    """Read a worksheet cell as text.

    Strings are returned unchanged, integral numbers lose their fractional
    part, booleans become ``true``/``false`` and dates use ISO-8601.

    Args:
        cell: openpyxl cell (regular, read-only or empty)

    Returns:
        Text value of the cell

    Raises:
        CellValueError: If the cell is empty or holds a spreadsheet error
    """
    value = getattr(cell, "value", None)

    if getattr(cell, "data_type", None) == "e":
        raise CellValueError(f"cell contains spreadsheet error {value}")
    if value is None:
        raise CellValueError("cell is missing")

    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, timedelta):
        return str(value)
    return str(value)


def _is_blank(row: Sequence[Any]) -> bool:
    return all(getattr(cell, "value", None) is None for cell in row)


class ExcelProcessor:
    """Reads Records from one worksheet of a workbook.

    Example:
        >>> processor = ExcelProcessor()
        >>> records = processor.read_records("options.xlsx")
        >>> records[0].as_tuple()
        ('123', '45')
    """

    def __init__(self, sheet_name: str = DEFAULT_SHEET_NAME):
        """Initialize the processor.

        Args:
            sheet_name: Exact name of the worksheet to read
        """
        self.sheet_name = sheet_name
        self.logger = get_processing_logger(__name__)

    @log_operation("read_records")
    def read_records(self, file_path: Union[str, Path]) -> List[Record]:
        """Read every data row of the worksheet as a Record.

        The workbook is closed before returning, whether or not reading
        succeeded.

        Args:
            file_path: Path to the workbook

        Returns:
            Records in worksheet row order

        Raises:
            OpenError: If the workbook cannot be opened
            SheetNotFoundError: If the worksheet does not exist
            RowDeserializationError: If any row cannot be deserialized
        """
        file_path = Path(file_path)

        with operation_context("workbook_read", self.logger,
                               file_path=file_path, sheet_name=self.sheet_name) as metrics:
            workbook = self._open_workbook(file_path)
            try:
                worksheet = self._select_worksheet(workbook, file_path)
                records = list(self._deserialize_rows(worksheet, file_path))
            finally:
                workbook.close()

            metrics.add_metadata("records_read", len(records))

        self.logger.info(
            f"Read {len(records)} records from worksheet '{self.sheet_name}' of {file_path}",
            extra={"sheet_name": self.sheet_name, "record_count": len(records)}
        )
        return records

    def _open_workbook(self, file_path: Path) -> Any:
        """Open the workbook read-only with cached formula values.

        Raises:
            OpenError: If the path is missing, not a file, or not a readable workbook
        """
        if not file_path.exists():
            raise OpenError("File not found", file_path)
        if not file_path.is_file():
            raise OpenError("Path is not a file", file_path)

        try:
            return openpyxl.load_workbook(file_path, read_only=True, data_only=True)
        except InvalidFileException as e:
            raise OpenError(f"Unsupported workbook format: {e}", file_path) from e
        except zipfile.BadZipFile as e:
            raise OpenError(f"Not a workbook container: {e}", file_path) from e
        except (KeyError, ValueError, TypeError) as e:
            raise OpenError(f"Corrupt workbook: {e}", file_path) from e
        except OSError as e:
            raise OpenError(f"Cannot read workbook: {e}", file_path) from e

    def _select_worksheet(self, workbook: Any, file_path: Path) -> Any:
        """Select the worksheet by exact name.

        Raises:
            SheetNotFoundError: If no worksheet has that name
        """
        sheet_names = list(workbook.sheetnames)
        if self.sheet_name not in sheet_names:
            raise SheetNotFoundError(self.sheet_name, file_path, sheet_names)

        worksheet = workbook[self.sheet_name]
        if not hasattr(worksheet, "iter_rows"):
            # chartsheets share the name space but hold no cells
            raise SheetNotFoundError(self.sheet_name, file_path, sheet_names)

        # the stored <dimension> can be stale, read the cells actually present
        worksheet.reset_dimensions()
        return worksheet

    def _numbered_rows(self, worksheet: Any) -> Iterator[Tuple[int, Tuple[Any, ...]]]:
        return enumerate(worksheet.iter_rows(min_row=1), start=1)

    def _locate_columns(
        self,
        header: Sequence[Any],
        row_index: int,
        file_path: Path
    ) -> Dict[str, int]:
        """Map each required header name to its column position.

        Matching is exact and case-sensitive; the first occurrence wins.

        Raises:
            RowDeserializationError: If a required header is absent
        """
        positions: Dict[str, int] = {}
        for position, cell in enumerate(header):
            value = getattr(cell, "value", None)
            if isinstance(value, str) and value in Record.headers() and value not in positions:
                positions[value] = position

        for column in Record.headers():
            if column not in positions:
                raise RowDeserializationError(
                    row_index, "header row has no such column", column, file_path
                )

        self.logger.debug(f"Header row {row_index} column positions: {positions}")
        return positions

    def _read_field(
        self,
        row: Sequence[Any],
        position: int,
        column: str,
        row_index: int,
        file_path: Path
    ) -> str:
        if position >= len(row):
            raise RowDeserializationError(row_index, "cell is missing", column, file_path)
        try:
            return cell_to_text(row[position])
        except CellValueError as e:
            raise RowDeserializationError(row_index, e.reason, column, file_path) from e

    def _deserialize_rows(self, worksheet: Any, file_path: Path) -> Iterator[Record]:
        """Yield a Record for every data row below the header.

        Leading blank rows before the header and trailing blank rows after the
        last data row are not part of the table. A blank row between data rows
        is a data row with missing cells and fails.

        Raises:
            RowDeserializationError: On the first row that cannot be deserialized
        """
        positions: Optional[Dict[str, int]] = None
        pending_blank: Optional[int] = None
        experience_column, option_column = Record.headers()

        for row_index, row in self._numbered_rows(worksheet):
            if _is_blank(row):
                if positions is not None and pending_blank is None:
                    pending_blank = row_index
                continue

            if positions is None:
                positions = self._locate_columns(row, row_index, file_path)
                continue

            if pending_blank is not None:
                raise RowDeserializationError(
                    pending_blank, "cell is missing", experience_column, file_path
                )

            yield Record.from_values(
                self._read_field(row, positions[experience_column],
                                 experience_column, row_index, file_path),
                self._read_field(row, positions[option_column],
                                 option_column, row_index, file_path),
            )

        if positions is None:
            raise RowDeserializationError(1, "worksheet has no header row", file_path=file_path)
