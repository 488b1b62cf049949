"""Exporters for converting dictionary tables to data-sheet documents.

Available Exporters:
    - DatasheetExporter: Build the in-memory Document from selected tables
    - DatasheetXMLWriter: Serialize a Document as data-sheet XML
"""

from datasheet_codec.exporters.datasheet_exporter import (
    DatasheetExporter,
    ExportOptions,
    VariablePathSeparators,
)
from datasheet_codec.exporters.xml_writer import (
    DatasheetXMLWriter,
    export_to_datasheet_xml,
)

__all__ = [
    "DatasheetExporter",
    "DatasheetXMLWriter",
    "ExportOptions",
    "VariablePathSeparators",
    "export_to_datasheet_xml",
]
