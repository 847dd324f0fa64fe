"""Core data models for the xlsx-to-csv option exporter.

This module contains the dataclasses, configuration objects and the
conversion error taxonomy used throughout the application.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple


DEFAULT_SHEET_NAME = "Tabelle1"
DEFAULT_DELIMITER = "|"

# Characters that cannot serve as a field delimiter
FORBIDDEN_DELIMITERS = {'"', "\r", "\n"}

SUPPORTED_LINE_TERMINATORS = ("\n", "\r\n")


@dataclass(frozen=True)
class Record:
    """One output row.

    Attributes:
        experience_product_id: Trimmed value of the ExperienceProductID column
        option_id: Trimmed value of the OptionID column
    """
    experience_product_id: str
    option_id: str

    EXPERIENCE_PRODUCT_ID_HEADER = "ExperienceProductID"
    OPTION_ID_HEADER = "OptionID"

    @classmethod
    def headers(cls) -> Tuple[str, str]:
        """Column names in output order."""
        return (cls.EXPERIENCE_PRODUCT_ID_HEADER, cls.OPTION_ID_HEADER)

    @classmethod
    def from_values(cls, experience_product_id: str, option_id: str) -> "Record":
        """Build a record from raw text values, trimming surrounding whitespace."""
        return cls(experience_product_id.strip(), option_id.strip())

    def as_tuple(self) -> Tuple[str, str]:
        return (self.experience_product_id, self.option_id)


@dataclass
class ConversionResult:
    """Outcome of a successful conversion.

    Attributes:
        input_path: Workbook that was read
        output_path: Delimited file that was written
        sheet_name: Worksheet the records came from
        delimiter: Field delimiter used in the output
        records_written: Number of data records (header excluded)
        bytes_written: Final size of the output file
        duration_ms: Wall-clock duration of the conversion
    """
    input_path: Path
    output_path: Path
    sheet_name: str
    delimiter: str
    records_written: int = 0
    bytes_written: int = 0
    duration_ms: float = 0.0

    def __post_init__(self) -> None:
        if not isinstance(self.input_path, Path):
            self.input_path = Path(self.input_path)
        if not isinstance(self.output_path, Path):
            self.output_path = Path(self.output_path)
        if self.records_written < 0:
            raise ValueError("records_written cannot be negative")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "input_path": str(self.input_path),
            "output_path": str(self.output_path),
            "sheet_name": self.sheet_name,
            "delimiter": self.delimiter,
            "records_written": self.records_written,
            "bytes_written": self.bytes_written,
            "duration_ms": self.duration_ms,
        }


@dataclass
class ConversionConfig:
    """Configuration for reading the worksheet and writing the output.

    Attributes:
        sheet_name: Exact name of the worksheet to convert
        delimiter: Single-character field delimiter
        encoding: Character encoding of the output file
        line_terminator: Sequence written after every record
        strip_trailing_terminator: Whether to remove the final terminator
    """
    sheet_name: str = DEFAULT_SHEET_NAME
    delimiter: str = DEFAULT_DELIMITER
    encoding: str = "utf-8"
    line_terminator: str = "\n"
    strip_trailing_terminator: bool = True

    def __post_init__(self) -> None:
        """Validate conversion configuration after initialization."""
        if not isinstance(self.sheet_name, str) or not self.sheet_name.strip():
            raise ValueError("sheet_name cannot be empty")

        if not self.encoding.strip():
            raise ValueError("encoding cannot be empty")

        validate_delimiter(self.delimiter, self.encoding)

        if self.line_terminator not in SUPPORTED_LINE_TERMINATORS:
            raise ValueError(
                f"line_terminator must be one of {[repr(t) for t in SUPPORTED_LINE_TERMINATORS]}"
            )


def validate_delimiter(delimiter: Any, encoding: Optional[str] = None) -> str:
    """Check that a delimiter is a single usable character.

    Args:
        delimiter: Candidate delimiter
        encoding: Output encoding the delimiter must fit into as one byte;
                  None skips the byte check

    Returns:
        The delimiter unchanged

    Raises:
        ValueError: If the delimiter is not exactly one permitted character, or
                    does not encode to a single byte
    """
    if not isinstance(delimiter, str) or len(delimiter) != 1:
        raise ValueError("delimiter must be a single character")
    if delimiter in FORBIDDEN_DELIMITERS:
        raise ValueError(f"delimiter cannot be {delimiter!r}")

    if encoding is not None:
        try:
            # measured after a leading character so a BOM is not counted
            width = len(("x" + delimiter).encode(encoding)) - len("x".encode(encoding))
        except UnicodeEncodeError:
            width = 0
        except LookupError as e:
            raise ValueError(f"unknown encoding {encoding!r}") from e
        if width != 1:
            raise ValueError(f"delimiter {delimiter!r} must be a single byte in {encoding}")
    return delimiter


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level
        format: Log message format string
        file_enabled: Whether to log to file
        file_path: Path for log file
        console_enabled: Whether to log to console
        structured_enabled: Whether to use structured JSON logging
    """
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_enabled: bool = False
    file_path: Path = Path("./logs/xlsx_to_csv.log")
    console_enabled: bool = True
    structured_enabled: bool = False

    def __post_init__(self) -> None:
        """Validate logging configuration after initialization."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.level.upper() not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}")

        self.level = self.level.upper()

        if not isinstance(self.file_path, Path):
            self.file_path = Path(self.file_path)

    @property
    def log_level(self) -> int:
        """Get numeric logging level."""
        return getattr(logging, self.level)


@dataclass
class Config:
    """Main configuration for the converter.

    Attributes:
        conversion: Worksheet and output settings
        logging: Logging configuration
    """
    conversion: ConversionConfig = field(default_factory=ConversionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


class ConversionError(Exception):
    """Base class for every failure of a conversion run.

    Errors from the workbook reader, the delimited writer and the filesystem
    are all normalized into a subclass of this exception so that callers have
    a single failure type to report.

    Attributes:
        message: Error message describing what went wrong
        file_path: Path to the file involved (if applicable)
        error_type: Short category of the error
    """

    error_type = "conversion"

    def __init__(
        self,
        message: str,
        file_path: Optional[Path] = None,
        error_type: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.file_path = Path(file_path) if file_path is not None else None
        if error_type is not None:
            self.error_type = error_type

    def __str__(self) -> str:
        name = type(self).__name__
        if self.file_path:
            return f"{name}[{self.error_type}]: {self.message} (File: {self.file_path})"
        return f"{name}[{self.error_type}]: {self.message}"


class OpenError(ConversionError):
    """The input workbook could not be opened."""
    error_type = "open"


class SheetNotFoundError(ConversionError):
    """The workbook has no worksheet with the requested name."""
    error_type = "sheet_not_found"

    def __init__(
        self,
        sheet_name: str,
        file_path: Optional[Path] = None,
        available_sheets: Optional[List[str]] = None
    ):
        self.sheet_name = sheet_name
        self.available_sheets = list(available_sheets or [])
        message = f"Cannot find worksheet '{sheet_name}'"
        if self.available_sheets:
            message += f" (available: {', '.join(self.available_sheets)})"
        super().__init__(message, file_path)


class RowDeserializationError(ConversionError):
    """A worksheet row could not be turned into a Record.

    Attributes:
        row_index: 1-based worksheet row number of the offending row
        column: Header name of the column that failed, if known
    """
    error_type = "row_deserialization"

    def __init__(
        self,
        row_index: int,
        reason: str,
        column: Optional[str] = None,
        file_path: Optional[Path] = None
    ):
        self.row_index = row_index
        self.column = column
        self.reason = reason
        location = f"row {row_index}"
        if column:
            location += f", column '{column}'"
        super().__init__(f"Cannot deserialize {location}: {reason}", file_path)


class OutputOpenError(ConversionError):
    """The output file could not be created or truncated."""
    error_type = "output_open"


class WriteError(ConversionError):
    """Writing a record to the output file failed."""
    error_type = "write"


class OutputTruncateError(ConversionError):
    """The trailing line terminator could not be removed."""
    error_type = "output_truncate"
