"""Importers for converting data-sheet documents back to dictionary tables.

Available Importers:
    - DatasheetXMLReader: Parse data-sheet XML into a Document
    - DatasheetImporter: Rebuild and merge relational definitions from a Document
"""

from datasheet_codec.importers.datasheet_importer import (
    DatasheetImporter,
    ImportResult,
    ImportScope,
)
from datasheet_codec.importers.row_grid import RowGrid
from datasheet_codec.importers.xml_reader import (
    DatasheetXMLReader,
    import_from_datasheet_xml,
)

__all__ = [
    "DatasheetImporter",
    "DatasheetXMLReader",
    "ImportResult",
    "ImportScope",
    "RowGrid",
    "import_from_datasheet_xml",
]
