"""Unit tests for the data-sheet XML writer.

Tests cover:
- Element layout of namespaces, data types, parameter/command sets and
  generic sets
- Integer encodings and enumeration lists
- File output, pretty printing and I/O failures
- The export_to_datasheet_xml convenience function
"""

from pathlib import Path

import pytest
from lxml import etree

from datasheet_codec.core.errors import DocumentIOError
from datasheet_codec.core.snapshot import SchemaSnapshot
from datasheet_codec.exporters.datasheet_exporter import DatasheetExporter
from datasheet_codec.exporters.xml_writer import DatasheetXMLWriter, export_to_datasheet_xml
from datasheet_codec.models.document import Document


@pytest.fixture
def writer() -> DatasheetXMLWriter:
    return DatasheetXMLWriter(pretty_print=True)


@pytest.fixture
def document(exporter: DatasheetExporter) -> Document:
    return exporter.export(["Thermo", "ResetCmd"])


def _namespace(root, name):
    for ns_elem in root.findall("Namespace"):
        if ns_elem.get("name") == name:
            return ns_elem
    return None


class TestElementLayout:

    def test_root(self, writer: DatasheetXMLWriter, document: Document):
        root = writer.to_element(document)

        assert root.tag == "DataSheet"
        assert root.get("name") == "FlightDictionary"
        assert [ns.get("name") for ns in root.findall("Namespace")] == [
            "Table: Thermo : DefaultSystem",
            "Table: ResetCmd : DefaultSystem",
            "Table type",
            "Data type",
        ]

    def test_parameters(self, writer: DatasheetXMLWriter, document: Document):
        ns_elem = _namespace(writer.to_element(document), "Table: Thermo : DefaultSystem")
        params = ns_elem.findall("DeclaredInterfaceSet/Interface/ParameterSet/Parameter")

        assert [p.get("name") for p in params] == ["temp", "status"]
        assert params[0].get("type") == "float32"
        assert params[0].get("shortDescription") == "Board temperature"
        assert params[0].find("Semantics").get("unit") == "degC"
        assert params[1].find("Semantics") is None
        assert params[1].get("shortDescription") is None

    def test_enumerated_type(self, writer: DatasheetXMLWriter, document: Document):
        ns_elem = _namespace(writer.to_element(document), "Table: Thermo : DefaultSystem")
        enum_elem = ns_elem.find("DataTypeSet/EnumeratedDataType")

        assert enum_elem.get("name") == "status"
        encoding = enum_elem.find("IntegerDataEncoding")
        assert encoding.get("sizeInBits") == "8"
        assert encoding.get("encoding") == "unsigned"
        assert [
            (e.get("value"), e.get("label"))
            for e in enum_elem.findall("EnumerationList/Enumeration")
        ] == [("0", "OFF"), ("1", "ON")]

    def test_data_type_set_precedes_interfaces(
        self, writer: DatasheetXMLWriter, document: Document
    ):
        ns_elem = _namespace(writer.to_element(document), "Table: Thermo : DefaultSystem")
        assert [child.tag for child in ns_elem] == ["DataTypeSet", "DeclaredInterfaceSet"]

    def test_commands(self, writer: DatasheetXMLWriter, document: Document):
        ns_elem = _namespace(writer.to_element(document), "Table: ResetCmd : DefaultSystem")
        commands = ns_elem.findall("DeclaredInterfaceSet/Interface/CommandSet/Command")

        assert [c.get("name") for c in commands] == ["Reset", "Ping"]
        args = commands[1].findall("Argument")
        assert [(a.get("name"), a.get("type")) for a in args] == [
            ("count", "int16"), ("flag", "uint8"),
        ]
        owner = ns_elem.find("DataTypeSet/EnumeratedDataType")
        assert owner.get("shortDescription") == "Reset"

    def test_generic_sets(self, writer: DatasheetXMLWriter, document: Document):
        ns_elem = _namespace(writer.to_element(document), "Table: Thermo : DefaultSystem")
        interfaces = ns_elem.findall("DeclaredInterfaceSet/Interface[@name]")

        assert [i.get("name") for i in interfaces] == ["Table type", "Data field", "Column data"]
        table_type = interfaces[0].find("GenericTypeSet/GenericType")
        assert table_type.get("name") == "Table type"
        assert table_type.get("shortDescription") == "Structure"

    def test_primitive_types(self, writer: DatasheetXMLWriter, document: Document):
        ns_elem = _namespace(writer.to_element(document), "Data type")
        type_set = ns_elem.find("DataTypeSet")

        assert [(t.tag, t.get("name")) for t in type_set] == [
            ("FloatDataType", "float32"),
            ("IntegerDataType", "uint8"),
            ("IntegerDataType", "int16"),
        ]
        int16 = type_set[2].find("IntegerDataEncoding")
        assert int16.get("encoding") == "signMagnitude"
        assert int16.get("sizeInBits") == "16"


class TestOutput:

    def test_to_bytes_has_declaration(self, writer: DatasheetXMLWriter, document: Document):
        data = writer.to_bytes(document)
        assert data.startswith(b"<?xml version='1.0' encoding='UTF-8'?>")

    def test_pretty_print_toggle(self, document: Document):
        pretty = DatasheetXMLWriter(pretty_print=True).to_bytes(document)
        compact = DatasheetXMLWriter(pretty_print=False).to_bytes(document)

        assert b"\n  <Namespace" in pretty
        assert b"\n  <Namespace" not in compact

    def test_write_creates_parent_directories(
        self, writer: DatasheetXMLWriter, document: Document, tmp_path: Path
    ):
        output_path = tmp_path / "nested" / "out.xml"
        writer.write(document, output_path)

        tree = etree.parse(str(output_path))
        assert tree.getroot().tag == "DataSheet"

    def test_write_failure_is_io_error(
        self, writer: DatasheetXMLWriter, document: Document, tmp_path: Path
    ):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        with pytest.raises(DocumentIOError, match="Cannot export data-sheet XML"):
            writer.write(document, blocker / "out.xml")

    def test_control_character_is_io_error(
        self, writer: DatasheetXMLWriter, dictionary_data, tmp_path: Path
    ):
        dictionary_data["tables"][0]["rows"][0][4] = "Board\x0btemperature"
        document = DatasheetExporter(SchemaSnapshot.from_dict(dictionary_data)).export(["Thermo"])
        output_path = tmp_path / "nested" / "out.xml"

        with pytest.raises(DocumentIOError, match="Cannot export data-sheet XML") as exc_info:
            writer.write(document, output_path)

        assert isinstance(exc_info.value.__cause__, ValueError)
        assert not output_path.exists()


class TestExportToDatasheetXML:

    def test_writes_file_and_returns_exporter(self, snapshot: SchemaSnapshot, tmp_path: Path):
        output_path = tmp_path / "thermo.xml"
        exporter = export_to_datasheet_xml(snapshot, ["Thermo", "Missing"], output_path)

        assert output_path.exists()
        assert len(exporter.warnings) == 1
        root = etree.parse(str(output_path)).getroot()
        assert _namespace(root, "Table: Thermo : DefaultSystem") is not None
