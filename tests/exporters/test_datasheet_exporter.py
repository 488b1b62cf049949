"""Unit tests for the data-sheet exporter.

Tests cover:
- Structure tables (parameters, bit lengths, enumerations, units, archive)
- Command tables (argument groups, owned enumerations, archive)
- Opaque tables (archive only)
- Registry namespaces (table types, data types, macros, reserved IDs,
  variable paths) and minimality of what is emitted
- Warnings for unknown tables and malformed enumerations
"""

from typing import Any, Dict, List

import pytest

from datasheet_codec.core.records import encode_record
from datasheet_codec.core.snapshot import SchemaSnapshot
from datasheet_codec.exporters.datasheet_exporter import (
    DatasheetExporter,
    ExportOptions,
    VariablePathSeparators,
)
from datasheet_codec.models.document import (
    Argument,
    EnumeratedDataType,
    FloatDataType,
    IntegerDataType,
    Namespace,
    SetRole,
)
from datasheet_codec.models.units import PhysicalUnit


def _entries(namespace: Namespace, role: SetRole) -> Dict[str, str]:
    """Generic entries of one role as a key -> value mapping."""
    return {entry.key: entry.value for entry in namespace.generic_entries(role)}


def _rows(data: Dict[str, Any], table_name: str) -> List[List[str]]:
    for table in data["tables"]:
        if table["name"] == table_name:
            return table["rows"]
    raise KeyError(table_name)


# ============================================================================
# Structure tables
# ============================================================================

class TestStructureExport:

    @pytest.fixture
    def namespace(self, exporter: DatasheetExporter) -> Namespace:
        document = exporter.export(["Thermo"])
        return document.find_namespace("Table: Thermo : DefaultSystem")

    def test_namespace_name_and_description(self, namespace: Namespace):
        assert namespace is not None
        assert namespace.description == "Thermal telemetry"

    def test_one_parameter_per_row(self, namespace: Namespace):
        assert [p.name for p in namespace.parameters] == ["temp", "status"]
        assert [p.type for p in namespace.parameters] == ["float32", "uint8"]
        assert namespace.parameters[0].description == "Board temperature"

    def test_recognized_unit_attached(self, namespace: Namespace):
        assert namespace.parameters[0].unit == PhysicalUnit.DEGREE_CELSIUS
        assert namespace.parameters[1].unit is None

    def test_enumeration_declared_with_primitive_encoding(self, namespace: Namespace):
        assert namespace.data_types == [EnumeratedDataType(
            name="status",
            size_in_bits=8,
            signed=False,
            labels=[(0, "OFF"), (1, "ON")],
        )]

    def test_table_type_and_data_fields(self, namespace: Namespace):
        assert _entries(namespace, SetRole.TABLE_TYPE) == {"Table type": "Structure"}
        assert _entries(namespace, SetRole.DATA_FIELD) == {
            "Data field": encode_record([
                "Subsystem", "Owning subsystem", 10, "Text", "false", "All tables", "thermal",
            ]),
        }

    def test_cells_archived_including_bit_length(self, namespace: Namespace):
        assert _entries(namespace, SetRole.COLUMN) == {
            "Data Type : Row: 0": "float32",
            "Description : Row: 0": "Board temperature",
            "Units : Row: 0": "degC",
            "Data Type : Row: 1": "uint8",
            "Enumeration : Row: 1": "0|OFF,1|ON",
            "Bit Length : Row: 1": "2",
        }

    def test_system_name_from_data_field(self, exporter: DatasheetExporter):
        document = exporter.export(["Power"])
        assert document.find_namespace("Table: Power : EPS") is not None

    def test_unrecognized_unit_dropped_but_archived(self, exporter: DatasheetExporter):
        namespace = exporter.export(["Power"]).find_namespace("Table: Power : EPS")

        depth = namespace.parameters[1]
        assert depth.name == "depth"
        assert depth.unit is None
        assert _entries(namespace, SetRole.COLUMN)["Units : Row: 1"] == "furlongs/fortnight"
        assert exporter.warnings == []

    @pytest.mark.parametrize("enumeration", ["OFF ON", "0|OFF 1|ON"])
    def test_malformed_enumeration_warns_and_continues(self, dictionary_data, enumeration):
        _rows(dictionary_data, "Thermo")[1][2] = enumeration
        exporter = DatasheetExporter(SchemaSnapshot.from_dict(dictionary_data))

        namespace = exporter.export(["Thermo"]).find_namespace("Table: Thermo : DefaultSystem")

        assert len(exporter.warnings) == 1
        assert enumeration in exporter.warnings[0]
        assert namespace.data_types == []
        assert [p.name for p in namespace.parameters] == ["temp", "status"]
        assert _entries(namespace, SetRole.COLUMN)["Enumeration : Row: 1"] == enumeration


# ============================================================================
# Command tables
# ============================================================================

class TestCommandExport:

    @pytest.fixture
    def namespace(self, exporter: DatasheetExporter) -> Namespace:
        document = exporter.export(["ResetCmd"])
        return document.find_namespace("Table: ResetCmd : DefaultSystem")

    def test_one_command_per_row(self, namespace: Namespace):
        assert [c.name for c in namespace.commands] == ["Reset", "Ping"]
        assert namespace.commands[0].description == "Reset the unit"
        assert namespace.commands[1].description is None

    def test_arguments_from_groups(self, namespace: Namespace):
        assert namespace.commands[0].arguments == [
            Argument(name="mode", type="uint8", description="Mode to enter"),
        ]
        assert namespace.commands[1].arguments == [
            Argument(name="count", type="int16", description="Ping count"),
            Argument(name="flag", type="uint8"),
        ]

    def test_enumerations_owned_by_command(self, namespace: Namespace):
        owners = [(e.name, e.description, e.labels) for e in namespace.enumerations()]
        assert owners == [
            ("mode", "Reset", [(0, "SAFE"), (1, "RUN")]),
            ("flag", "Ping", [(0, "NO"), (1, "YES")]),
        ]

    def test_unclaimed_cells_archived(self, namespace: Namespace):
        assert _entries(namespace, SetRole.COLUMN) == {
            "Arg 1 Minimum : Row: 0": "0",
            "Command Code : Row: 0": "0x01",
            "Command Code : Row: 1": "0x02",
        }

    def test_group_without_data_type_is_archived_whole(self, dictionary_data):
        _rows(dictionary_data, "ResetCmd")[0][4] = ""
        exporter = DatasheetExporter(SchemaSnapshot.from_dict(dictionary_data))

        namespace = exporter.export(["ResetCmd"]).find_namespace(
            "Table: ResetCmd : DefaultSystem"
        )

        assert namespace.commands[0].arguments == []
        archived = _entries(namespace, SetRole.COLUMN)
        assert archived["Arg 1 Name : Row: 0"] == "mode"
        assert archived["Arg 1 Enumeration : Row: 0"] == "0|SAFE,1|RUN"
        assert archived["Arg 1 Description : Row: 0"] == "Mode to enter"
        assert [e.name for e in namespace.enumerations()] == ["flag"]


class TestOpaqueExport:

    def test_every_cell_archived(self, exporter: DatasheetExporter):
        namespace = exporter.export(["Notes"]).find_namespace("Table: Notes : DefaultSystem")

        assert namespace.parameters == []
        assert namespace.commands == []
        assert _entries(namespace, SetRole.COLUMN) == {
            "Key : Row: 0": "owner",
            "Value : Row: 0": "thermal team",
            "Key : Row: 1": "rev",
            "Value : Row: 1": "3",
        }


# ============================================================================
# Registry namespaces
# ============================================================================

class TestRegistryNamespaces:

    def test_namespace_order(self, exporter: DatasheetExporter):
        document = exporter.export(["Thermo"])
        assert [ns.name for ns in document.namespaces] == [
            "Table: Thermo : DefaultSystem",
            "Table type",
            "Data type",
        ]

    def test_only_referenced_table_types(self, exporter: DatasheetExporter):
        namespace = exporter.export(["Thermo"]).find_namespace("Table type")
        assert list(_entries(namespace, SetRole.TABLE_TYPE)) == ["Structure"]

    def test_table_type_record(self, exporter: DatasheetExporter):
        namespace = exporter.export(["Notes"]).find_namespace("Table type")
        assert _entries(namespace, SetRole.TABLE_TYPE) == {
            "Notes": encode_record([
                "Free-form key/value notes",
                "Key", "", "Text", "false", "false", "false", "false",
                "Value", "", "Text", "false", "false", "false", "false",
            ]),
        }

    def test_table_type_data_fields(self, exporter: DatasheetExporter):
        namespace = exporter.export(["Thermo"]).find_namespace("Table type")
        field_sets = namespace.generic_sets_for(SetRole.DATA_FIELD)

        assert [s.role_name for s in field_sets] == ["Data field:Structure"]
        assert field_sets[0].qualifier == "Structure"
        assert field_sets[0].entries[0].key == "Data field:Structure"
        assert field_sets[0].entries[0].value == encode_record([
            "Message ID", "Telemetry message ID", 8, "Message ID", "false", "Roots only", "",
        ])

    def test_data_types(self, exporter: DatasheetExporter):
        namespace = exporter.export(["Thermo"]).find_namespace("Data type")

        assert namespace.data_types == [
            FloatDataType(name="float32", size_in_bits=32),
            IntegerDataType(name="uint8", size_in_bits=8, signed=False),
        ]
        assert _entries(namespace, SetRole.DATA_TYPE) == {
            "float32": encode_record(["float", 4, "floating point"]),
            "uint8": encode_record(["unsigned char", 1, "unsigned integer"]),
        }

    def test_no_macro_namespace_without_references(self, exporter: DatasheetExporter):
        document = exporter.export(["Thermo", "ResetCmd", "Notes"])
        assert document.find_namespace("Macro") is None

    def test_referenced_macros_and_their_references(self, exporter: DatasheetExporter):
        namespace = exporter.export(["Power"]).find_namespace("Macro")

        # UNUSED is not referenced anywhere
        assert _entries(namespace, SetRole.MACRO) == {
            "SIZE": encode_record(["4"]),
            "DEPTH": encode_record(["##SIZE##*2"]),
        }

    def test_substitution_replaces_macros(self, exporter: DatasheetExporter):
        document = exporter.export(["Power"], ExportOptions(substitute_macros=True))
        namespace = document.find_namespace("Table: Power : EPS")

        assert [p.description for p in namespace.parameters] == ["Bus voltage 4", "4*2"]
        assert document.find_namespace("Macro") is None

    def test_reserved_ids_only_on_request(self, exporter: DatasheetExporter):
        assert exporter.export(["Thermo"]).find_namespace("Reserved Message ID") is None

        document = exporter.export(["Thermo"], ExportOptions(include_reserved_ids=True))
        namespace = document.find_namespace("Reserved Message ID")
        assert _entries(namespace, SetRole.RESERVED_MSG_ID) == {
            "0x0800-0x08FF": encode_record(["Ground support"]),
        }

    def test_variable_paths(self, exporter: DatasheetExporter):
        document = exporter.export(["Thermo"], ExportOptions(include_variable_paths=True))
        namespace = document.find_namespace("Variable Path")

        assert _entries(namespace, SetRole.VARIABLE_PATH) == {
            "Thermo,float32.temp": encode_record(["Thermo_temp"]),
            "Thermo,uint8.status": encode_record(["Thermo_status"]),
        }

    def test_variable_path_alias_with_types(self, exporter: DatasheetExporter):
        options = ExportOptions(
            include_variable_paths=True,
            variable_path_separators=VariablePathSeparators(
                path_separator=".", hide_data_types=False, type_name_separator=":",
            ),
        )
        namespace = exporter.export(["Thermo"], options).find_namespace("Variable Path")
        assert _entries(namespace, SetRole.VARIABLE_PATH)["Thermo,float32.temp"] == (
            encode_record(["Thermo.float32:temp"])
        )


# ============================================================================
# Run behaviour
# ============================================================================

class TestExportRun:

    def test_unknown_table_skipped_with_warning(self, exporter: DatasheetExporter):
        document = exporter.export(["Missing", "Thermo"])

        assert exporter.warnings == ["Table 'Missing' not found; skipped"]
        assert document.find_namespace("Table: Thermo : DefaultSystem") is not None

    def test_repeated_table_exported_once(self, exporter: DatasheetExporter):
        document = exporter.export(["Thermo", "Thermo"])
        namespace = document.find_namespace("Table: Thermo : DefaultSystem")

        assert len(namespace.parameters) == 2
        assert len([ns for ns in document.namespaces if ns.name.startswith("Table:")]) == 1

    def test_state_reset_between_runs(self, exporter: DatasheetExporter):
        exporter.export(["Power", "Missing"])
        document = exporter.export(["Thermo"])

        assert exporter.warnings == []
        assert exporter.references.macros == []
        assert document.find_namespace("Macro") is None
        assert exporter.document is document
