"""Shared fixtures for the data-sheet codec tests."""

from pathlib import Path
from typing import Any, Dict

import pytest
import yaml

from datasheet_codec.core.snapshot import SchemaSnapshot
from datasheet_codec.exporters.datasheet_exporter import DatasheetExporter

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def dictionary_path() -> Path:
    """Path of the sample YAML dictionary."""
    return FIXTURES_DIR / "dictionary.yaml"


@pytest.fixture
def dictionary_data(dictionary_path: Path) -> Dict[str, Any]:
    """Raw sample dictionary, for tests that tweak a table before loading it."""
    with open(dictionary_path, 'r') as f:
        return yaml.safe_load(f)


@pytest.fixture
def snapshot(dictionary_path: Path) -> SchemaSnapshot:
    """Fresh snapshot of the sample dictionary (merges mutate it)."""
    return SchemaSnapshot.from_yaml(dictionary_path)


@pytest.fixture
def empty_snapshot() -> SchemaSnapshot:
    """Snapshot with no definitions at all."""
    return SchemaSnapshot()


@pytest.fixture
def exporter(snapshot: SchemaSnapshot) -> DatasheetExporter:
    """Exporter bound to the sample dictionary."""
    return DatasheetExporter(snapshot)
