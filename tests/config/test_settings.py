"""Tests for codec settings and the components that fall back on them."""

import pytest

from datasheet_codec.config import settings
from datasheet_codec.config.settings import get_all_settings, get_setting, set_setting
from datasheet_codec.core.error_policy import ErrorCategory, always_ignore_all
from datasheet_codec.core.snapshot import SchemaSnapshot
from datasheet_codec.exporters.datasheet_exporter import DatasheetExporter, ExportOptions
from datasheet_codec.exporters.xml_writer import DatasheetXMLWriter
from datasheet_codec.importers.datasheet_importer import DatasheetImporter
from datasheet_codec.models.document import Document, GenericEntry, Namespace, SetRole


@pytest.fixture
def restore_settings(monkeypatch):
    """Undo any set_setting call after the test."""
    monkeypatch.setattr(settings, "SETTINGS", dict(settings.SETTINGS))


class TestSettings:

    def test_defaults(self):
        assert set(get_all_settings()) == {
            'default_system_name', 'system_field_key', 'pretty_print',
            'max_archived_row_gap',
        }

    def test_unknown_setting(self):
        with pytest.raises(KeyError, match="Unknown setting"):
            get_setting('colour')

    def test_set_unknown_setting(self, restore_settings):
        with pytest.raises(KeyError, match="Available settings"):
            set_setting('colour', 'red')

    def test_get_all_settings_is_a_copy(self):
        get_all_settings()['pretty_print'] = 'changed'
        assert get_setting('pretty_print') != 'changed'


class TestSettingFallbacks:

    def test_default_system_name(self, snapshot: SchemaSnapshot, restore_settings):
        set_setting('default_system_name', 'Bus')

        document = DatasheetExporter(snapshot).export(["Notes"])

        assert document.namespaces[0].name == "Table: Notes : Bus"

    def test_system_field_key(self, snapshot: SchemaSnapshot, restore_settings):
        set_setting('system_field_key', 'Subsystem')

        document = DatasheetExporter(snapshot).export(["Thermo"], ExportOptions())

        assert document.namespaces[0].name == "Table: Thermo : thermal"

    def test_pretty_print(self, snapshot: SchemaSnapshot, restore_settings):
        set_setting('pretty_print', False)
        assert DatasheetXMLWriter().pretty_print is False

    def test_max_archived_row_gap(self, snapshot: SchemaSnapshot, restore_settings):
        set_setting('max_archived_row_gap', 1)
        namespace = Namespace(name="Table: Log : Sys")
        namespace.add_generic_entries(
            SetRole.TABLE_TYPE, [GenericEntry(key="Table type", value="Notes")]
        )
        namespace.add_generic_entries(SetRole.COLUMN, [
            GenericEntry(key="Key : Row: 0", value="a"),
            GenericEntry(key="Key : Row: 1", value="b"),
            GenericEntry(key="Key : Row: 4", value="e"),
        ])

        result = DatasheetImporter(snapshot, decide=always_ignore_all).import_document(
            Document(namespaces=[namespace])
        )

        assert result.table_defs[0].rows == [["a", ""], ["b", ""]]
        assert [category for category, _ in result.skipped] == [ErrorCategory.COLUMN]
        assert "row 4 out of range" in result.skipped[0][1]
