"""Data-sheet XML reader.

Parses data-sheet XML (as written by DatasheetXMLWriter) back into the
in-memory Document model. Unknown elements are ignored; structural problems
such as a nameless namespace or a non-integer size raise
MalformedDocumentError. Namespace elements that repeat a name are merged
into the first one, which keeps its description.
"""

import logging
from pathlib import Path
from typing import Optional

from lxml import etree

from datasheet_codec.core.error_policy import DecisionCallback
from datasheet_codec.core.errors import DocumentIOError, MalformedDocumentError
from datasheet_codec.core.snapshot import SchemaSnapshot
from datasheet_codec.models.document import (
    Argument,
    Command,
    Document,
    EnumeratedDataType,
    FloatDataType,
    GenericEntry,
    GenericSet,
    IntegerDataType,
    Namespace,
    Parameter,
    StringDataType,
)
from datasheet_codec.models.units import PhysicalUnit

from .datasheet_importer import DatasheetImporter, ImportResult, ImportScope

logger = logging.getLogger(__name__)

ROOT_TAG = "DataSheet"


class DatasheetXMLReader:
    """Reads data-sheet XML into Document instances.

    Usage:
        reader = DatasheetXMLReader()
        document = reader.read(Path("export.xml"))
    """

    def read(self, path: Path) -> Document:
        """Read a document from an XML file.

        Raises:
            DocumentIOError: If the file cannot be read or parsed
            MalformedDocumentError: If the XML is not a valid data sheet
        """
        try:
            data = path.read_bytes()
        except OSError as e:
            logger.error(f"Cannot read data-sheet XML {path}: {e}")
            raise DocumentIOError(f"Cannot read data-sheet XML file '{path}'; cause '{e}'") from e

        document = self.from_bytes(data)
        logger.info(f"Read data-sheet XML {path}: {len(document.namespaces)} namespaces")
        return document

    def from_bytes(self, data: bytes) -> Document:
        try:
            root = etree.fromstring(data)
        except etree.XMLSyntaxError as e:
            logger.error(f"Data-sheet XML does not parse: {e}")
            raise DocumentIOError(f"Cannot parse data-sheet XML; cause '{e}'") from e
        return self.from_element(root)

    def from_element(self, root: etree._Element) -> Document:
        """Build a Document from a DataSheet root element."""
        if root.tag != ROOT_TAG:
            raise MalformedDocumentError(
                f"Root element is '{root.tag}', expected '{ROOT_TAG}'"
            )

        document = Document(
            name=root.get("name"),
            description=root.get("shortDescription"),
        )

        for ns_elem in root.findall("Namespace"):
            name = ns_elem.get("name")
            if not name:
                raise MalformedDocumentError("Namespace without a name")
            if document.find_namespace(name) is not None:
                logger.debug(f"Namespace '{name}' repeated; merging into the first")
            namespace = document.get_or_add_namespace(name, ns_elem.get("shortDescription"))
            self._read_namespace(ns_elem, namespace)

        return document

    def _read_namespace(self, ns_elem: etree._Element, namespace: Namespace) -> None:
        """Append the contents of one Namespace element to ``namespace``."""
        name = namespace.name

        type_set = ns_elem.find("DataTypeSet")
        if type_set is not None:
            for type_elem in type_set:
                data_type = _read_data_type(type_elem, name)
                if data_type is not None:
                    namespace.data_types.append(data_type)

        interface_set = ns_elem.find("DeclaredInterfaceSet")
        if interface_set is None:
            return

        for interface in interface_set.findall("Interface"):
            for param_elem in interface.findall("ParameterSet/Parameter"):
                namespace.parameters.append(_read_parameter(param_elem, name))

            for cmd_elem in interface.findall("CommandSet/Command"):
                command = Command(
                    name=_required(cmd_elem, "name", name),
                    description=cmd_elem.get("shortDescription"),
                )
                for arg_elem in cmd_elem.findall("Argument"):
                    command.arguments.append(Argument(
                        name=_required(arg_elem, "name", name),
                        type=arg_elem.get("type"),
                        description=arg_elem.get("shortDescription"),
                    ))
                namespace.commands.append(command)

            generic_types = interface.findall("GenericTypeSet/GenericType")
            if generic_types:
                role_name = _required(interface, "name", name)
                namespace.generic_sets.append(GenericSet(
                    role_name=role_name,
                    entries=[
                        GenericEntry(
                            key=entry.get("name") or "",
                            value=entry.get("shortDescription") or "",
                        )
                        for entry in generic_types
                    ],
                ))


def _read_parameter(param_elem: etree._Element, namespace_name: str) -> Parameter:
    parameter = Parameter(
        name=_required(param_elem, "name", namespace_name),
        type=param_elem.get("type"),
        description=param_elem.get("shortDescription"),
    )

    semantics = param_elem.find("Semantics")
    if semantics is not None and semantics.get("unit"):
        parameter.unit = PhysicalUnit.parse(semantics.get("unit"))
        if parameter.unit is None:
            logger.warning(
                f"Unit '{semantics.get('unit')}' of parameter '{parameter.name}' "
                f"is not a recognized unit; ignored"
            )
    return parameter


def _read_data_type(type_elem: etree._Element, namespace_name: str):
    tag = type_elem.tag
    if not isinstance(tag, str):
        # Comments and processing instructions
        return None

    if tag == "IntegerDataType":
        size, signed = _read_integer_encoding(type_elem, namespace_name)
        return IntegerDataType(
            name=_required(type_elem, "name", namespace_name),
            size_in_bits=size,
            signed=signed,
        )

    if tag == "FloatDataType":
        encoding = type_elem.find("FloatDataEncoding")
        return FloatDataType(
            name=_required(type_elem, "name", namespace_name),
            size_in_bits=(
                _int_attribute(encoding, "sizeInBits", namespace_name)
                if encoding is not None else None
            ),
        )

    if tag == "StringDataType":
        return StringDataType(name=_required(type_elem, "name", namespace_name))

    if tag == "EnumeratedDataType":
        size, signed = _read_integer_encoding(type_elem, namespace_name)
        labels = []
        for enum_elem in type_elem.findall("EnumerationList/Enumeration"):
            value = _int_attribute(enum_elem, "value", namespace_name)
            if value is None:
                raise MalformedDocumentError(
                    f"Enumeration without a value in namespace '{namespace_name}'"
                )
            labels.append((value, enum_elem.get("label") or ""))
        return EnumeratedDataType(
            name=_required(type_elem, "name", namespace_name),
            description=type_elem.get("shortDescription"),
            size_in_bits=size,
            signed=signed,
            labels=labels,
        )

    logger.debug(f"Ignoring data type element '{tag}' in namespace '{namespace_name}'")
    return None


def _read_integer_encoding(type_elem: etree._Element, namespace_name: str):
    encoding = type_elem.find("IntegerDataEncoding")
    if encoding is None:
        return None, True
    return (
        _int_attribute(encoding, "sizeInBits", namespace_name),
        encoding.get("encoding") != "unsigned",
    )


def _int_attribute(
    element: etree._Element,
    attribute: str,
    namespace_name: str,
) -> Optional[int]:
    text = element.get(attribute)
    if text is None or text == "":
        return None
    try:
        return int(text)
    except ValueError as e:
        raise MalformedDocumentError(
            f"Attribute {attribute}='{text}' of <{element.tag}> in namespace "
            f"'{namespace_name}' is not an integer"
        ) from e


def _required(element: etree._Element, attribute: str, namespace_name: str) -> str:
    value = element.get(attribute)
    if value is None:
        raise MalformedDocumentError(
            f"<{element.tag}> in namespace '{namespace_name}' is missing '{attribute}'"
        )
    return value


def import_from_datasheet_xml(
    path: Path,
    snapshot: SchemaSnapshot,
    scope: ImportScope = ImportScope.ALL_DEFINITIONS,
    decide: Optional[DecisionCallback] = None,
) -> ImportResult:
    """Convenience function to import a data-sheet XML file.

    Example:
        >>> snapshot = SchemaSnapshot.from_yaml(Path("dictionary.yaml"))
        >>> result = import_from_datasheet_xml(Path("thermo.xml"), snapshot)
        >>> [table.name for table in result.table_defs]
        ['Thermo']
    """
    document = DatasheetXMLReader().read(path)
    return DatasheetImporter(snapshot, decide).import_document(document, scope)
