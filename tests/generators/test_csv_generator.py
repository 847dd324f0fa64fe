"""Unit tests for the delimited file writer."""

from pathlib import Path
from unittest.mock import patch

import pandas as pd
import pytest

from xlsx_to_csv.generators.csv_generator import CSVGenerator, determine_output_path
from xlsx_to_csv.models.data_models import (
    OutputOpenError,
    OutputTruncateError,
    Record,
    WriteError,
)
from xlsx_to_csv.utils.correlation import CorrelationContext
from xlsx_to_csv.utils.metrics import get_metrics_collector


@pytest.fixture
def records():
    return [Record("123", "45"), Record("A 7", "opt 1")]


class TestDetermineOutputPath:
    """Test cases for default output path derivation."""

    def test_extension_replaced(self):
        assert determine_output_path("/data/options.xlsx") == Path("/data/options.csv")

    def test_only_last_extension_replaced(self):
        assert determine_output_path("export.2024.xlsx") == Path("export.2024.csv")

    def test_path_without_extension(self):
        assert determine_output_path(Path("dir/options")) == Path("dir/options.csv")


class TestCSVGenerator:
    """Test cases for CSVGenerator."""

    def test_init_defaults(self):
        generator = CSVGenerator()
        assert generator.delimiter == "|"
        assert generator.line_terminator == "\n"
        assert generator.strip_trailing_terminator is True

    def test_init_rejects_multi_character_delimiter(self):
        with pytest.raises(ValueError, match="single character"):
            CSVGenerator(delimiter="||")

    def test_write_records(self, temp_dir: Path, records):
        output = temp_dir / "out.csv"

        size = CSVGenerator().write_records(records, output)

        content = output.read_bytes()
        assert content == b"ExperienceProductID|OptionID\n123|45\nA 7|opt 1"
        assert size == len(content)

    def test_custom_delimiter(self, temp_dir: Path, records):
        output = temp_dir / "out.csv"

        CSVGenerator(delimiter=";").write_records(records, output)

        assert output.read_text() == "ExperienceProductID;OptionID\n123;45\nA 7;opt 1"

    def test_header_only_when_no_records(self, temp_dir: Path):
        output = temp_dir / "out.csv"

        CSVGenerator().write_records([], output)

        assert output.read_bytes() == b"ExperienceProductID|OptionID"

    def test_field_containing_delimiter_is_quoted(self, temp_dir: Path):
        output = temp_dir / "out.csv"

        CSVGenerator().write_records([Record("a|b", 'say "hi"')], output)

        assert output.read_text() == 'ExperienceProductID|OptionID\n"a|b"|"say ""hi"""'

    def test_leading_zeros_and_empty_fields_preserved(self, temp_dir: Path):
        output = temp_dir / "out.csv"

        CSVGenerator().write_records([Record("007", "")], output)

        assert output.read_text() == "ExperienceProductID|OptionID\n007|"

    def test_crlf_terminator(self, temp_dir: Path, records):
        output = temp_dir / "out.csv"

        CSVGenerator(line_terminator="\r\n").write_records(records, output)

        assert output.read_bytes() == b"ExperienceProductID|OptionID\r\n123|45\r\nA 7|opt 1"

    def test_strip_disabled_keeps_final_newline(self, temp_dir: Path, records):
        output = temp_dir / "out.csv"

        CSVGenerator(strip_trailing_terminator=False).write_records(records, output)

        assert output.read_bytes().endswith(b"A 7|opt 1\n")

    def test_overwrites_existing_file(self, temp_dir: Path, records):
        output = temp_dir / "out.csv"
        output.write_text("old content that is much longer than the new output" * 10)

        CSVGenerator().write_records(records[:1], output)

        assert output.read_text() == "ExperienceProductID|OptionID\n123|45"

    def test_round_trip_with_pandas(self, temp_dir: Path, records):
        output = temp_dir / "out.csv"

        CSVGenerator(delimiter="\t").write_records(records, output)

        parsed = pd.read_csv(output, sep="\t", dtype=str, keep_default_na=False)
        assert list(parsed.columns) == ["ExperienceProductID", "OptionID"]
        assert [tuple(row) for row in parsed.itertuples(index=False)] == [
            r.as_tuple() for r in records
        ]

    def test_standalone_writes_do_not_share_run_id(self, temp_dir: Path, records):
        generator = CSVGenerator()

        generator.write_records(records, temp_dir / "first.csv")
        generator.write_records(records, temp_dir / "second.csv")

        run_ids = {m.correlation_id for m in get_metrics_collector().metrics
                   if m.operation_name == "write_records"}
        assert len(run_ids) == 2
        assert CorrelationContext.get_correlation_id() is None

    def test_missing_parent_directory(self, temp_dir: Path, records):
        with pytest.raises(OutputOpenError) as exc_info:
            CSVGenerator().write_records(records, temp_dir / "missing" / "out.csv")

        assert exc_info.value.file_path == temp_dir / "missing" / "out.csv"

    def test_output_is_directory(self, temp_dir: Path, records):
        with pytest.raises(OutputOpenError):
            CSVGenerator().write_records(records, temp_dir)

    def test_write_failure_leaves_partial_file(self, temp_dir: Path, records):
        output = temp_dir / "out.csv"

        def failing_write(self, data, handle):
            handle.write("ExperienceProductID|OptionID\n")
            raise OSError("No space left on device")

        with patch.object(CSVGenerator, "_write_dataframe", failing_write):
            with pytest.raises(WriteError, match="No space left"):
                CSVGenerator().write_records(records, output)

        assert output.read_text() == "ExperienceProductID|OptionID\n"

    def test_unencodable_value_is_write_error(self, temp_dir: Path):
        output = temp_dir / "out.csv"

        with pytest.raises(WriteError):
            CSVGenerator(encoding="ascii").write_records([Record("Käse", "1")], output)


class TestStripTerminator:
    """Test cases for removing the trailing line terminator."""

    def test_removes_single_newline(self, temp_dir: Path):
        path = temp_dir / "out.csv"
        path.write_bytes(b"a|b\n1|2\n")

        removed = CSVGenerator().strip_terminator(path)

        assert removed == 1
        assert path.read_bytes() == b"a|b\n1|2"

    def test_removes_only_one_terminator(self, temp_dir: Path):
        path = temp_dir / "out.csv"
        path.write_bytes(b"a|b\n\n")

        CSVGenerator().strip_terminator(path)

        assert path.read_bytes() == b"a|b\n"

    def test_removes_crlf(self, temp_dir: Path):
        path = temp_dir / "out.csv"
        path.write_bytes(b"a|b\r\n")

        removed = CSVGenerator(line_terminator="\r\n").strip_terminator(path)

        assert removed == 2
        assert path.read_bytes() == b"a|b"

    def test_empty_file_untouched(self, temp_dir: Path):
        path = temp_dir / "out.csv"
        path.write_bytes(b"")

        assert CSVGenerator().strip_terminator(path) == 0
        assert path.read_bytes() == b""

    def test_file_without_terminator_untouched(self, temp_dir: Path):
        path = temp_dir / "out.csv"
        path.write_bytes(b"a|b\n1|2")

        assert CSVGenerator().strip_terminator(path) == 0
        assert path.read_bytes() == b"a|b\n1|2"

    def test_vanished_file(self, temp_dir: Path):
        with pytest.raises(OutputTruncateError):
            CSVGenerator().strip_terminator(temp_dir / "gone.csv")

    def test_terminator_bytes_follow_encoding(self):
        assert CSVGenerator().terminator_bytes == b"\n"
        assert CSVGenerator(line_terminator="\r\n").terminator_bytes == b"\r\n"
        assert CSVGenerator(encoding="cp1252", line_terminator="\r\n").terminator_bytes == b"\r\n"

    def test_delimiter_must_be_single_byte(self):
        with pytest.raises(ValueError, match="single byte"):
            CSVGenerator(delimiter="\u00e4")
        with pytest.raises(ValueError, match="single byte"):
            CSVGenerator(encoding="utf-16")

    def test_latin1_delimiter_written_as_one_byte(self, temp_dir: Path, records):
        output = temp_dir / "out.csv"

        CSVGenerator(delimiter="\u00a7", encoding="latin-1").write_records(records, output)

        assert output.read_bytes().splitlines()[1] == b"123\xa745"
