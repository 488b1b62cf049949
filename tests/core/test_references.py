"""Tests for the export-time reference collector."""

from datasheet_codec.core.references import ReferenceCollector
from datasheet_codec.models.dictionary import VariablePathEntry


class TestReferenceCollector:

    def test_records_are_idempotent_and_ordered(self):
        references = ReferenceCollector()
        references.record_table_type("Structure")
        references.record_table_type("Command")
        references.record_table_type("Structure")
        references.record_primitive_type("uint8")
        references.record_primitive_type("uint8")

        assert references.table_types == ["Structure", "Command"]
        assert references.primitive_types == ["uint8"]

    def test_macros_compare_case_insensitively(self):
        references = ReferenceCollector()

        assert references.record_macro("Size") is True
        assert references.record_macro("SIZE") is False
        assert references.has_macro("size")
        # First spelling is kept
        assert references.macros == ["Size"]

    def test_variable_paths_keyed_by_path(self):
        references = ReferenceCollector()
        references.record_variable_path(VariablePathEntry(path="T,int.a", alias="T_a"))
        references.record_variable_path(VariablePathEntry(path="T,int.a", alias="other"))

        assert references.variable_paths == [VariablePathEntry(path="T,int.a", alias="T_a")]

    def test_accessors_return_copies(self):
        references = ReferenceCollector()
        references.record_table_type("Structure")
        references.table_types.append("Bogus")

        assert references.table_types == ["Structure"]
