"""Command-line interface for the xlsx-to-csv option exporter.

Converts the ExperienceProductID and OptionID columns of one worksheet into a
delimited text file:

    xlsx-to-csv -i options.xlsx -o options.csv -d ';'
"""

import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

import click

from xlsx_to_csv import __version__
from xlsx_to_csv.config.config_manager import ConfigurationError, config_manager
from xlsx_to_csv.converter import XlsxToCsvConverter
from xlsx_to_csv.models.data_models import Config, ConversionError, validate_delimiter


def _validate_delimiter(ctx: click.Context, param: click.Parameter,
                        value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    try:
        return validate_delimiter(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option('--input', '-i', 'input_path', required=True,
              type=click.Path(dir_okay=False, path_type=Path),
              help='Excel workbook to be converted')
@click.option('--output', '-o', 'output_path',
              type=click.Path(dir_okay=False, path_type=Path),
              help='Destination file [default: input name with .csv extension]')
@click.option('--delimiter', '-d', callback=_validate_delimiter,
              help="Single-character field delimiter [default: '|']")
@click.option('--sheet', '-s', 'sheet_name',
              help="Worksheet to convert [default: 'Tabelle1']")
@click.option('--config', '-c', 'config_path', type=click.Path(exists=True, dir_okay=False),
              help='Configuration file path')
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                                                case_sensitive=False),
              help='Override the configured logging level')
@click.version_option(__version__, '--version', prog_name='xlsx-to-csv')
def main(
    input_path: Path,
    output_path: Optional[Path],
    delimiter: Optional[str],
    sheet_name: Optional[str],
    config_path: Optional[str],
    log_level: Optional[str]
) -> None:
    """Convert the 'Tabelle1' worksheet of an Excel workbook to a delimited file.

    Only the ExperienceProductID and OptionID columns are exported, with
    surrounding whitespace trimmed. The output has no trailing newline.
    """
    try:
        config = config_manager.load_config(config_path)
    except ConfigurationError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)

    # copies, the loaded config is cached
    conversion = config.conversion
    if sheet_name is not None:
        try:
            conversion = replace(conversion, sheet_name=sheet_name)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="'--sheet'") from e
    logging_config = config.logging
    if log_level:
        logging_config = replace(logging_config, level=log_level.upper())
    config = Config(conversion=conversion, logging=logging_config)

    try:
        converter = XlsxToCsvConverter(config=config)
        result = converter.convert(input_path, output_path, delimiter)
    except ValueError as e:
        # only the byte check against the configured encoding is left to fail here
        raise click.BadParameter(str(e), param_hint="'--delimiter'") from e
    except ConversionError as e:
        # the converter already logged the failure to the console
        if not config.logging.console_enabled:
            click.echo(f"Conversion error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Wrote {result.records_written} records to {result.output_path}")


if __name__ == '__main__':
    main()
