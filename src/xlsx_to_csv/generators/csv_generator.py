"""Delimited file generation for the xlsx-to-csv option exporter.

This module writes Records to the output file:
- Output path derivation from the input workbook
- Header record followed by one record per row
- Minimal quoting with a configurable single-character delimiter
- Removal of the line terminator after the last record
"""

import csv
import os
from pathlib import Path
from typing import IO, Iterable, Union

import pandas as pd

from xlsx_to_csv.models.data_models import (
    DEFAULT_DELIMITER,
    OutputOpenError,
    OutputTruncateError,
    Record,
    WriteError,
    validate_delimiter,
)
from xlsx_to_csv.utils.logger import get_processing_logger
from xlsx_to_csv.utils.logging_decorators import log_operation, operation_context


def determine_output_path(input_path: Union[str, Path]) -> Path:
    """Derive the default output path for a workbook.

    Args:
        input_path: Path of the input workbook

    Returns:
        The input path with its extension replaced by ``.csv``
    """
    return Path(input_path).with_suffix(".csv")


class CSVGenerator:
    """Writes Records as a delimited text file.

    Example:
        >>> generator = CSVGenerator(delimiter=";")
        >>> generator.write_records([Record("123", "45")], Path("out.csv"))
        35
        >>> Path("out.csv").read_text()
        'ExperienceProductID;OptionID\\n123;45'
    """

    def __init__(
        self,
        delimiter: str = DEFAULT_DELIMITER,
        encoding: str = "utf-8",
        line_terminator: str = "\n",
        strip_trailing_terminator: bool = True
    ):
        """Initialize the generator.

        Args:
            delimiter: Field delimiter, a single byte in the output encoding
            encoding: Output file encoding
            line_terminator: Sequence written after each record
            strip_trailing_terminator: Remove the terminator after the last record
        """
        self.delimiter = validate_delimiter(delimiter, encoding)
        self.encoding = encoding
        self.line_terminator = line_terminator
        self.strip_trailing_terminator = strip_trailing_terminator
        self.logger = get_processing_logger(__name__)

    @property
    def terminator_bytes(self) -> bytes:
        """Line terminator as encoded in the output file, without any BOM."""
        prefix = "x".encode(self.encoding)
        return ("x" + self.line_terminator).encode(self.encoding)[len(prefix):]

    @log_operation("write_records", log_args=False)
    def write_records(self, records: Iterable[Record], output_path: Union[str, Path]) -> int:
        """Write the header and every record to the output file.

        Args:
            records: Records to write, in output order
            output_path: File to create or overwrite

        Returns:
            Size of the finished output file in bytes

        Raises:
            OutputOpenError: If the output file cannot be opened for writing
            WriteError: If writing a record fails; the partial file is left behind
            OutputTruncateError: If the trailing terminator cannot be removed
        """
        output_path = Path(output_path)
        data = self._records_to_dataframe(records)

        with operation_context("output_write", self.logger,
                               output_path=output_path, rows=len(data)) as metrics:
            handle = self._open_output(output_path)
            try:
                with handle:
                    self._write_dataframe(data, handle)
                    handle.flush()
            except (OSError, ValueError, csv.Error) as e:
                raise WriteError(f"Failed to write records: {e}", output_path) from e

            if self.strip_trailing_terminator:
                self.strip_terminator(output_path)

            file_size = output_path.stat().st_size
            metrics.add_metadata("file_size_bytes", file_size)

        self.logger.debug(f"Wrote {len(data)} records to {output_path} ({file_size:,} bytes)")
        return file_size

    def _records_to_dataframe(self, records: Iterable[Record]) -> pd.DataFrame:
        return pd.DataFrame(
            [record.as_tuple() for record in records],
            columns=list(Record.headers()),
            dtype=str,
        )

    def _open_output(self, output_path: Path) -> IO[str]:
        """Create or truncate the output file.

        Raises:
            OutputOpenError: If the location is not writable
        """
        try:
            return open(output_path, "w", encoding=self.encoding, newline="")
        except OSError as e:
            raise OutputOpenError(f"Cannot open output for writing: {e}", output_path) from e

    def _write_dataframe(self, data: pd.DataFrame, handle: IO[str]) -> None:
        data.to_csv(
            handle,
            sep=self.delimiter,
            index=False,
            header=True,
            quoting=csv.QUOTE_MINIMAL,
            quotechar='"',
            doublequote=True,
            lineterminator=self.line_terminator,
        )

    def strip_terminator(self, output_path: Union[str, Path]) -> int:
        """Remove the line terminator that ends the file.

        Nothing is removed when the file is shorter than the terminator or
        does not end with it.

        Args:
            output_path: File to truncate in place

        Returns:
            Number of bytes removed

        Raises:
            OutputTruncateError: If the file cannot be reopened or inspected
        """
        output_path = Path(output_path)
        terminator = self.terminator_bytes

        try:
            with open(output_path, "r+b") as handle:
                size = os.fstat(handle.fileno()).st_size
                if size < len(terminator):
                    self.logger.warning(f"Output {output_path} is empty, nothing to strip")
                    return 0

                handle.seek(size - len(terminator))
                if handle.read() != terminator:
                    self.logger.warning(
                        f"Output {output_path} does not end with {self.line_terminator!r}, "
                        "leaving it unchanged"
                    )
                    return 0

                handle.truncate(size - len(terminator))
        except OSError as e:
            raise OutputTruncateError(f"Cannot remove trailing line terminator: {e}",
                                      output_path) from e

        return len(terminator)
