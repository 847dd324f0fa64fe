"""xlsx-to-csv option exporter.

Converts the 'Tabelle1' worksheet of an Excel workbook into a two-column
delimited file holding its ExperienceProductID and OptionID values.
"""

__version__ = "1.0.0"

from xlsx_to_csv.models.data_models import (
    Config,
    ConversionConfig,
    ConversionError,
    ConversionResult,
    LoggingConfig,
    OpenError,
    OutputOpenError,
    OutputTruncateError,
    Record,
    RowDeserializationError,
    SheetNotFoundError,
    WriteError,
)
from xlsx_to_csv.processors.excel_processor import ExcelProcessor
from xlsx_to_csv.generators.csv_generator import CSVGenerator
from xlsx_to_csv.converter import XlsxToCsvConverter, convert

__all__ = [
    "Config",
    "ConversionConfig",
    "ConversionError",
    "ConversionResult",
    "LoggingConfig",
    "OpenError",
    "OutputOpenError",
    "OutputTruncateError",
    "Record",
    "RowDeserializationError",
    "SheetNotFoundError",
    "WriteError",
    "ExcelProcessor",
    "CSVGenerator",
    "XlsxToCsvConverter",
    "convert",
]
