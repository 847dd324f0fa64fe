"""Conversion orchestrator for the xlsx-to-csv option exporter.

This module ties the workbook reader and the delimited writer together:
- Resolves the output path and delimiter from arguments and configuration
- Reads every record before touching the output file
- Writes the output and strips its trailing line terminator
- Reports a ConversionResult or a single ConversionError
"""

from pathlib import Path
from typing import List, Optional, Union

from xlsx_to_csv.config.config_manager import config_manager
from xlsx_to_csv.generators.csv_generator import CSVGenerator, determine_output_path
from xlsx_to_csv.models.data_models import (
    Config,
    ConversionError,
    ConversionResult,
    validate_delimiter,
)
from xlsx_to_csv.processors.excel_processor import ExcelProcessor
from xlsx_to_csv.utils.correlation import CorrelationContext
from xlsx_to_csv.utils.logger import get_processing_logger, setup_logging
from xlsx_to_csv.utils.logging_decorators import operation_context
from xlsx_to_csv.utils.metrics import OperationMetrics, get_metrics_collector


class XlsxToCsvConverter:
    """Converts one worksheet of a workbook into a two-column delimited file.

    Example:
        >>> converter = XlsxToCsvConverter()
        >>> result = converter.convert("options.xlsx")
        >>> result.output_path
        PosixPath('options.csv')
    """

    def __init__(
        self,
        config_path: Optional[Union[str, Path]] = None,
        config: Optional[Config] = None,
        configure_logging: bool = True
    ):
        """Initialize the converter.

        Args:
            config_path: Path to configuration file (None for defaults)
            config: Ready-made configuration, takes precedence over config_path
            configure_logging: Whether to install the configured log handlers
        """
        self.config = config or config_manager.load_config(config_path)

        if configure_logging:
            setup_logging(self.config.logging)
        self.logger = get_processing_logger(__name__)
        self.last_run_metrics: List[OperationMetrics] = []

    def convert(
        self,
        input_path: Union[str, Path],
        output_path: Optional[Union[str, Path]] = None,
        delimiter: Optional[str] = None
    ) -> ConversionResult:
        """Convert the configured worksheet of a workbook.

        Args:
            input_path: Workbook to read
            output_path: File to write; defaults to the input path with a .csv extension
            delimiter: Field delimiter; defaults to the configured delimiter

        Returns:
            Summary of the finished conversion

        Raises:
            ValueError: If the delimiter is not a single permitted character
            ConversionError: If any step of the conversion fails
        """
        conversion = self.config.conversion
        input_path = Path(input_path)
        output_path = Path(output_path) if output_path else determine_output_path(input_path)
        delimiter = validate_delimiter(conversion.delimiter if delimiter is None else delimiter,
                                       conversion.encoding)

        with CorrelationContext() as run_id:
            self.logger.log_conversion_start(input_path, output_path,
                                             conversion.sheet_name, delimiter)
            try:
                with operation_context("conversion", self.logger,
                                       input_path=input_path, output_path=output_path) as metrics:
                    records = ExcelProcessor(conversion.sheet_name).read_records(input_path)

                    generator = CSVGenerator(
                        delimiter=delimiter,
                        encoding=conversion.encoding,
                        line_terminator=conversion.line_terminator,
                        strip_trailing_terminator=conversion.strip_trailing_terminator,
                    )
                    file_size = generator.write_records(records, output_path)
                    metrics.add_metadata("records_written", len(records))
            except ConversionError as e:
                self.logger.log_error(e.error_type, str(e), input_path)
                raise
            finally:
                self.last_run_metrics = get_metrics_collector().pop_run_metrics(run_id)

        result = ConversionResult(
            input_path=input_path,
            output_path=output_path,
            sheet_name=conversion.sheet_name,
            delimiter=delimiter,
            records_written=len(records),
            bytes_written=file_size,
            duration_ms=metrics.duration_ms or 0.0,
        )
        self.logger.log_conversion_complete(output_path, result.records_written,
                                            result.bytes_written, result.duration_ms)
        return result


def convert(
    input_path: Union[str, Path],
    output_path: Optional[Union[str, Path]] = None,
    delimiter: Optional[str] = None,
    config: Optional[Config] = None
) -> ConversionResult:
    """Convert a workbook without touching the logging setup.

    Args:
        input_path: Workbook to read
        output_path: File to write; defaults to the input path with a .csv extension
        delimiter: Field delimiter; defaults to the configured delimiter
        config: Configuration to use; defaults to built-in defaults

    Returns:
        Summary of the finished conversion
    """
    converter = XlsxToCsvConverter(config=config or Config(), configure_logging=False)
    return converter.convert(input_path, output_path, delimiter)
