"""Pytest configuration and shared fixtures for xlsx-to-csv tests."""

import os
import tempfile
from pathlib import Path
from typing import Dict, Generator, List, Sequence

import openpyxl
import pytest
import yaml

from xlsx_to_csv.config.config_manager import config_manager
from xlsx_to_csv.utils.correlation import CorrelationContext
from xlsx_to_csv.utils.logger import shutdown_logging
from xlsx_to_csv.utils.metrics import get_metrics_collector


HEADER = ["ExperienceProductID", "OptionID"]


def write_workbook(path: Path, sheets: Dict[str, List[Sequence]]) -> Path:
    """Write a workbook with one worksheet per entry, rows appended in order."""
    workbook = openpyxl.Workbook()
    workbook.remove(workbook.active)
    for name, rows in sheets.items():
        worksheet = workbook.create_sheet(name)
        for row in rows:
            worksheet.append(list(row))
    workbook.save(path)
    return path


@pytest.fixture(autouse=True)
def reset_global_state() -> Generator[None, None, None]:
    """Keep cached config, metrics, run IDs and log handlers from leaking between tests."""
    config_manager.clear_cache()
    get_metrics_collector().clear_metrics()
    run_id_token = CorrelationContext._context.set(None)
    yield
    CorrelationContext._context.reset(run_id_token)
    shutdown_logging()
    config_manager.clear_cache()
    get_metrics_collector().clear_metrics()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def make_workbook(temp_dir: Path):
    """Factory writing a workbook into the temporary directory."""
    def factory(sheets: Dict[str, List[Sequence]], name: str = "options.xlsx") -> Path:
        return write_workbook(temp_dir / name, sheets)
    return factory


@pytest.fixture
def sample_rows() -> List[Sequence]:
    """Header plus data rows with padding, an extra column and a numeric id."""
    return [
        ["ExperienceProductID", "OptionID", "Extra"],
        [" 123 ", "45", "ignored"],
        ["A 7", "  opt 1  ", None],
        [900, 12.0, "x"],
    ]


@pytest.fixture
def sample_workbook(make_workbook, sample_rows) -> Path:
    """Workbook whose 'Tabelle1' sheet holds the sample rows."""
    return make_workbook({"Tabelle1": sample_rows})


@pytest.fixture
def sample_config_dict() -> dict:
    """Sample configuration dictionary for testing."""
    return {
        "conversion": {
            "sheet_name": "Optionen",
            "delimiter": ";",
        },
        "logging": {
            "level": "DEBUG",
        },
    }


@pytest.fixture
def sample_config_file(temp_dir: Path, sample_config_dict: dict) -> Path:
    """Create a sample configuration file for testing."""
    config_file = temp_dir / "test_config.yaml"
    with open(config_file, 'w', encoding='utf-8') as f:
        yaml.safe_dump(sample_config_dict, f)
    return config_file


@pytest.fixture
def env_override():
    """Set XLSX_TO_CSV_* environment variables, restoring them afterwards."""
    class EnvOverride:
        def __init__(self):
            self.original_env = {}

        def set(self, key: str, value: str):
            if key not in self.original_env:
                self.original_env[key] = os.environ.get(key)
            os.environ[key] = value

        def clear(self):
            for key, value in self.original_env.items():
                if value is None:
                    os.environ.pop(key, None)
                else:
                    os.environ[key] = value

    override = EnvOverride()
    yield override
    override.clear()
