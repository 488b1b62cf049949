"""Data-sheet XML writer.

Serializes an in-memory Document to data-sheet XML:

    <DataSheet name="...">
      <Namespace name="Table: Thermo : DefaultSystem" shortDescription="...">
        <DataTypeSet>
          <EnumeratedDataType name="status">
            <IntegerDataEncoding sizeInBits="8" encoding="unsigned"/>
            <EnumerationList>
              <Enumeration value="0" label="OFF"/>
            </EnumerationList>
          </EnumeratedDataType>
        </DataTypeSet>
        <DeclaredInterfaceSet>
          <Interface><ParameterSet>...</ParameterSet></Interface>
          <Interface><CommandSet>...</CommandSet></Interface>
          <Interface name="Column data"><GenericTypeSet>
            <GenericType name="Units : Row: 0" shortDescription="degC"/>
          </GenericTypeSet></Interface>
        </DeclaredInterfaceSet>
      </Namespace>
    </DataSheet>

Element order within a namespace is fixed (DataTypeSet, then
DeclaredInterfaceSet); interfaces are written parameter set first, then
command set, then generic sets in document order.
"""

import logging
from pathlib import Path
from typing import Optional, Sequence

from lxml import etree

from datasheet_codec.config.settings import get_setting
from datasheet_codec.core.errors import DocumentIOError
from datasheet_codec.core.snapshot import SchemaSnapshot
from datasheet_codec.models.document import (
    Document,
    EnumeratedDataType,
    FloatDataType,
    IntegerDataType,
    Namespace,
    StringDataType,
)

from .datasheet_exporter import DatasheetExporter, ExportOptions

logger = logging.getLogger(__name__)

UNSIGNED_ENCODING = "unsigned"
SIGNED_ENCODING = "signMagnitude"


class DatasheetXMLWriter:
    """Writes Document instances as data-sheet XML.

    Usage:
        writer = DatasheetXMLWriter()
        writer.write(document, Path("export.xml"))
    """

    def __init__(self, pretty_print: Optional[bool] = None):
        """Initialize writer.

        Args:
            pretty_print: Indent output (defaults to the 'pretty_print' setting)
        """
        self.pretty_print = (
            get_setting('pretty_print') if pretty_print is None else pretty_print
        )

    def write(self, document: Document, output_path: Path) -> None:
        """Write a document to an XML file.

        Raises:
            DocumentIOError: If the document cannot be serialized (e.g. a
                control character in a cell) or the file cannot be written
        """
        try:
            data = self.to_bytes(document)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_bytes(data)
        except (OSError, ValueError) as e:
            logger.error(f"Cannot write data-sheet XML to {output_path}: {e}")
            raise DocumentIOError(
                f"Cannot export data-sheet XML to file '{output_path}'; cause '{e}'"
            ) from e

        logger.info(f"Wrote data-sheet XML to {output_path}")

    def to_bytes(self, document: Document) -> bytes:
        return etree.tostring(
            self.to_element(document),
            encoding="UTF-8",
            xml_declaration=True,
            pretty_print=self.pretty_print,
        )

    def to_element(self, document: Document) -> etree._Element:
        """Build the DataSheet root element."""
        root = etree.Element("DataSheet")
        _set_optional(root, "name", document.name)
        _set_optional(root, "shortDescription", document.description)

        for namespace in document.namespaces:
            self._write_namespace(root, namespace)

        return root

    def _write_namespace(self, parent: etree._Element, namespace: Namespace) -> None:
        ns_elem = etree.SubElement(parent, "Namespace")
        ns_elem.set("name", namespace.name)
        _set_optional(ns_elem, "shortDescription", namespace.description)

        if namespace.data_types:
            type_set = etree.SubElement(ns_elem, "DataTypeSet")
            for data_type in namespace.data_types:
                self._write_data_type(type_set, data_type)

        if not (namespace.parameters or namespace.commands or namespace.generic_sets):
            return

        interface_set = etree.SubElement(ns_elem, "DeclaredInterfaceSet")

        if namespace.parameters:
            parameter_set = etree.SubElement(
                etree.SubElement(interface_set, "Interface"), "ParameterSet"
            )
            for parameter in namespace.parameters:
                param_elem = etree.SubElement(parameter_set, "Parameter")
                param_elem.set("name", parameter.name)
                _set_optional(param_elem, "type", parameter.type)
                _set_optional(param_elem, "shortDescription", parameter.description)
                if parameter.unit is not None:
                    etree.SubElement(param_elem, "Semantics").set("unit", parameter.unit.value)

        if namespace.commands:
            command_set = etree.SubElement(
                etree.SubElement(interface_set, "Interface"), "CommandSet"
            )
            for command in namespace.commands:
                cmd_elem = etree.SubElement(command_set, "Command")
                cmd_elem.set("name", command.name)
                _set_optional(cmd_elem, "shortDescription", command.description)
                for argument in command.arguments:
                    arg_elem = etree.SubElement(cmd_elem, "Argument")
                    arg_elem.set("name", argument.name)
                    _set_optional(arg_elem, "type", argument.type)
                    _set_optional(arg_elem, "shortDescription", argument.description)

        for generic_set in namespace.generic_sets:
            interface = etree.SubElement(interface_set, "Interface")
            interface.set("name", generic_set.role_name)
            type_set = etree.SubElement(interface, "GenericTypeSet")
            for entry in generic_set.entries:
                entry_elem = etree.SubElement(type_set, "GenericType")
                entry_elem.set("name", entry.key)
                entry_elem.set("shortDescription", entry.value)

    @staticmethod
    def _write_data_type(parent: etree._Element, data_type) -> None:
        if isinstance(data_type, IntegerDataType):
            type_elem = etree.SubElement(parent, "IntegerDataType")
            type_elem.set("name", data_type.name)
            _write_integer_encoding(type_elem, data_type.size_in_bits, data_type.signed)

        elif isinstance(data_type, FloatDataType):
            type_elem = etree.SubElement(parent, "FloatDataType")
            type_elem.set("name", data_type.name)
            if data_type.size_in_bits is not None:
                encoding = etree.SubElement(type_elem, "FloatDataEncoding")
                encoding.set("sizeInBits", str(data_type.size_in_bits))

        elif isinstance(data_type, StringDataType):
            type_elem = etree.SubElement(parent, "StringDataType")
            type_elem.set("name", data_type.name)

        elif isinstance(data_type, EnumeratedDataType):
            type_elem = etree.SubElement(parent, "EnumeratedDataType")
            type_elem.set("name", data_type.name)
            _set_optional(type_elem, "shortDescription", data_type.description)
            _write_integer_encoding(type_elem, data_type.size_in_bits, data_type.signed)
            enum_list = etree.SubElement(type_elem, "EnumerationList")
            for value, label in data_type.labels:
                enum_elem = etree.SubElement(enum_list, "Enumeration")
                enum_elem.set("value", str(value))
                enum_elem.set("label", label)


def _write_integer_encoding(
    parent: etree._Element,
    size_in_bits: Optional[int],
    signed: bool,
) -> None:
    encoding = etree.SubElement(parent, "IntegerDataEncoding")
    if size_in_bits is not None:
        encoding.set("sizeInBits", str(size_in_bits))
    encoding.set("encoding", SIGNED_ENCODING if signed else UNSIGNED_ENCODING)


def _set_optional(element: etree._Element, name: str, value: Optional[str]) -> None:
    if value is not None:
        element.set(name, value)


def export_to_datasheet_xml(
    snapshot: SchemaSnapshot,
    table_names: Sequence[str],
    output_path: Path,
    options: Optional[ExportOptions] = None,
) -> DatasheetExporter:
    """Convenience function to export tables straight to a data-sheet XML file.

    Returns:
        The exporter used, so callers can inspect ``warnings``

    Example:
        >>> snapshot = SchemaSnapshot.from_yaml(Path("dictionary.yaml"))
        >>> exporter = export_to_datasheet_xml(snapshot, ["Thermo"], Path("thermo.xml"))
        >>> exporter.warnings
        []
    """
    exporter = DatasheetExporter(snapshot)
    document = exporter.export(table_names, options)
    DatasheetXMLWriter().write(document, output_path)
    return exporter
